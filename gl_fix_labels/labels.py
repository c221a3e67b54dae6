"""Label primitives applied to a single target project."""

from __future__ import annotations

import logging

from gl_fix_labels.client import GitLabClient
from gl_fix_labels.models import Label
from gl_fix_labels.reference import ReferenceProject


class LabelSynchronizer:
    """Deletes and copies labels between the reference project and a target."""

    def __init__(self, client: GitLabClient, reference: ReferenceProject):
        self.client = client
        self.reference = reference
        self.logger = logging.getLogger("gl-fix-labels")

    def list_labels(self, project_id: int) -> list[Label]:
        return self.client.list_labels(project_id)

    def delete_all_labels(self, project_id: int) -> int:
        """Delete every label on the project. Returns the number of labels deleted."""
        labels = self.list_labels(project_id)
        for label in labels:
            self.logger.debug(f"Deleting label '{label.name}' from project {project_id}")
            self.client.delete_label(project_id, label.name)
        return len(labels)

    def copy_reference_labels(self, project_id: int, allow_duplicates: bool = False) -> tuple[int, int]:
        """
        Create the reference labels on the project.

        Unless ``allow_duplicates`` is set, labels whose name already exists on
        the target are skipped. Returns ``(created, skipped)``.
        """
        existing: set[str] = set()
        if not allow_duplicates:
            existing = {label.name for label in self.list_labels(project_id)}

        reference_labels = self.reference.fetch_labels()
        missing = [label for label in reference_labels if label.name not in existing]

        for label in missing:
            self.logger.debug(f"Creating label '{label.name}' ({label.color}) on project {project_id}")
            self.client.create_label(project_id, label)
        return len(missing), len(reference_labels) - len(missing)
