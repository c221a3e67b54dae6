"""Operations for gl-fix-labels."""

# Import all operations to register them
from gl_fix_labels.operations.add_labels import AddLabelsOperation
from gl_fix_labels.operations.base import Operation, get_operation_registry, register_operation
from gl_fix_labels.operations.delete_labels import DeleteLabelsOperation
from gl_fix_labels.operations.replace_labels import ReplaceLabelsOperation

__all__ = [
    "Operation",
    "register_operation",
    "get_operation_registry",
    "AddLabelsOperation",
    "DeleteLabelsOperation",
    "ReplaceLabelsOperation",
]
