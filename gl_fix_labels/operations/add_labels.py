"""Add the reference labels to a project."""

from __future__ import annotations

from gl_fix_labels.models import ActionResult
from gl_fix_labels.operations.base import Operation, register_operation


@register_operation("add")
class AddLabelsOperation(Operation):
    """Add the admin labels to the target; existing labels are not touched and duplicates are skipped."""

    intro = "Attempting to add labels (skipping duplicates) to {scope}..."

    def apply_to_project(self, project_id: int) -> ActionResult:
        created, skipped = self.synchronizer.copy_reference_labels(
            project_id, allow_duplicates=self.config.allow_duplicates
        )
        return self._record(
            ActionResult(
                target_id=project_id,
                operation=self.operation_name,
                action="applied" if created else "already_set",
                detail=f"created={created} skipped={skipped}",
                created=created,
                skipped=skipped,
            )
        )
