"""Replace all labels of a project with the reference labels."""

from __future__ import annotations

from gl_fix_labels.models import ActionResult
from gl_fix_labels.operations.base import Operation, register_operation


@register_operation("replace")
class ReplaceLabelsOperation(Operation):
    """Delete all labels of the target, then add the admin labels."""

    intro = "Attempting to delete and replace all labels on {scope}..."

    def apply_to_project(self, project_id: int) -> ActionResult:
        deleted = self.synchronizer.delete_all_labels(project_id)
        created, skipped = self.synchronizer.copy_reference_labels(project_id, allow_duplicates=False)
        return self._record(
            ActionResult(
                target_id=project_id,
                operation=self.operation_name,
                action="applied" if deleted or created else "already_set",
                detail=f"deleted={deleted} created={created}",
                deleted=deleted,
                created=created,
                skipped=skipped,
            )
        )
