"""Lifecycle of the scratch project that holds the instance's default labels."""

from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime

from gl_fix_labels.client import GitLabClient
from gl_fix_labels.models import NO_PROJECT, REFERENCE_NAME_PREFIX, ContractViolation, Label


def unique_project_name() -> str:
    """Name for a new reference project, derived from the current time."""
    stamp = json.dumps(datetime.now().isoformat())
    return REFERENCE_NAME_PREFIX + hashlib.sha1(stamp.encode("utf-8")).hexdigest()


class ReferenceProject:
    """
    A throwaway private project created so that GitLab populates it with the
    administrator's default labels.

    The project id and the fetched labels live on the client's run context.
    """

    def __init__(self, client: GitLabClient):
        self.client = client
        self.context = client.context
        self.logger = logging.getLogger("gl-fix-labels")

    @property
    def project_id(self) -> int:
        return self.context.reference_project_id

    @property
    def exists(self) -> bool:
        return self.context.reference_project_id != NO_PROJECT

    def create(self) -> int:
        if self.exists:
            raise ContractViolation("create called while the reference project already exists")

        name = unique_project_name()
        result = self.client.create_project(name)
        self.context.reference_project_id = result["id"]
        self.logger.debug(f"Created reference project {name} (id={result['id']})")
        return self.context.reference_project_id

    def fetch_labels(self) -> list[Label]:
        if not self.exists:
            raise ContractViolation("fetch_labels called before create")

        if self.context.reference_labels is None:
            self.context.reference_labels = self.client.list_labels(self.project_id)
            self.logger.debug(f"Reference project has {len(self.context.reference_labels)} labels")
        return self.context.reference_labels

    def destroy(self) -> None:
        if not self.exists:
            raise ContractViolation("destroy called before create")

        self.client.delete_project(self.project_id)
        self.logger.debug(f"Deleted reference project (id={self.project_id})")
        self.context.reference_project_id = NO_PROJECT
