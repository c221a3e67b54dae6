"""Drive one label operation over its target scope, from reference setup to cleanup."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable

import requests

from gl_fix_labels.client import GitLabClient
from gl_fix_labels.models import RunReport, TargetScope
from gl_fix_labels.operations import Operation
from gl_fix_labels.reference import ReferenceProject

ProgressCallback = Callable[[float, float], None]

# Progress milestones, in percent of the whole run
PROGRESS_TOTAL = 100
STARTED = 1
REFERENCE_CREATED = 20
LABELS_CACHED = 40
SCOPE_RESOLVED = 60
APPLIED = 99


class RunState(Enum):
    IDLE = "idle"
    REFERENCE_CREATED = "reference_created"
    REFERENCE_LABELS_CACHED = "reference_labels_cached"
    APPLYING = "applying"
    ABORTING = "aborting"
    CLEANUP = "cleanup"
    DONE = "done"


def _no_progress(completed: float, total: float) -> None:
    pass


class LabelRun:
    """
    One pass of an operation over a target scope.

    The reference project is created and its labels cached before anything
    else. Any failure up to and including that point, or on an explicit single
    target, aborts the run. In "all" scope a failing project is recorded and
    the batch moves on. The reference project is removed on every path.
    """

    def __init__(
        self,
        client: GitLabClient,
        reference: ReferenceProject,
        operation: Operation,
        scope: TargetScope,
        on_progress: ProgressCallback | None = None,
    ):
        self.client = client
        self.reference = reference
        self.operation = operation
        self.scope = scope
        self.on_progress = on_progress or _no_progress
        self.state = RunState.IDLE
        self.logger = logging.getLogger("gl-fix-labels")

    def _progress(self, completed: float) -> None:
        self.on_progress(completed, PROGRESS_TOTAL)

    def run(self) -> RunReport:
        report = RunReport(state=self.state.value, results=self.operation.results)
        self.logger.info(self.operation.intro.format(scope=self.scope.describe()))
        self._progress(STARTED)

        try:
            self.reference.create()
            self.state = RunState.REFERENCE_CREATED
            self._progress(REFERENCE_CREATED)

            self.reference.fetch_labels()
            self.state = RunState.REFERENCE_LABELS_CACHED
            self._progress(LABELS_CACHED)

            self.state = RunState.APPLYING
            if self.scope.all_projects:
                self._apply_to_all()
            else:
                self._progress(SCOPE_RESOLVED)
                self.operation.apply_to_project(self.scope.project_id)
                self._progress(APPLIED)
        except Exception as e:
            self.state = RunState.ABORTING
            self.logger.error(f"FATAL error: {e}")
            report.error = e
        finally:
            ended_in = self.state
            report.cleaned_up = self._cleanup()
            # The runner always ends DONE; an aborted run keeps ABORTING on its report
            report.state = (ended_in if ended_in is RunState.ABORTING else self.state).value

        if not report.aborted:
            self._progress(PROGRESS_TOTAL)
        return report

    def _apply_to_all(self) -> None:
        project_ids = self.client.list_project_ids()
        self._progress(SCOPE_RESOLVED)

        if not project_ids:
            self.logger.info("No projects visible to this token, nothing to do")
            self._progress(APPLIED)
            return

        step = (APPLIED - SCOPE_RESOLVED) / len(project_ids)
        for done, project_id in enumerate(project_ids, start=1):
            try:
                self.operation.apply_to_project(project_id)
            except Exception as e:
                self.logger.error(f'FAILURE for #"{project_id}": ({e})')
                self.operation.record_failure(project_id, e)
            self._progress(SCOPE_RESOLVED + step * done)

    def _cleanup(self) -> bool:
        """Remove the reference project if one was created. Returns True if it was removed."""
        self.state = RunState.CLEANUP
        try:
            if not self.reference.exists:
                return False
            project_id = self.reference.project_id
            try:
                self.reference.destroy()
            except requests.RequestException as e:
                self.logger.error(f"Could not remove reference project #{project_id}: {e}")
                return False
            return True
        finally:
            self.state = RunState.DONE
