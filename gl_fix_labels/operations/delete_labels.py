"""Delete every label of a project."""

from __future__ import annotations

from gl_fix_labels.models import ActionResult
from gl_fix_labels.operations.base import Operation, register_operation


@register_operation("delete")
class DeleteLabelsOperation(Operation):
    """Completely delete all of a project's labels."""

    intro = "Attempting to delete all labels on {scope}..."

    def apply_to_project(self, project_id: int) -> ActionResult:
        deleted = self.synchronizer.delete_all_labels(project_id)
        return self._record(
            ActionResult(
                target_id=project_id,
                operation=self.operation_name,
                action="applied" if deleted else "already_set",
                detail=f"deleted={deleted}",
                deleted=deleted,
            )
        )
