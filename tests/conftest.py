"""Shared test fixtures for gl-fix-labels tests."""

import json
import logging
import re
import sys
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlparse

import pytest
import responses

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from gl_fix_labels.client import GitLabClient
from gl_fix_labels.labels import LabelSynchronizer
from gl_fix_labels.models import RunConfig, RunContext, TargetScope
from gl_fix_labels.reference import ReferenceProject

# Constants for use in tests - pytest makes conftest.py fixtures available,
# but these constants need to be imported directly from tests
MOCK_API_URL = "https://gitlab.example.com/api/v4"
REFERENCE_ID = 1000

DEFAULT_LABELS = [
    {"name": "bug", "color": "#f00", "description": "Something is broken"},
    {"name": "feature", "color": "#0f0", "description": "New functionality"},
    {"name": "docs", "color": "#00f", "description": None},
]


class FakeGitLab:
    """
    In-memory GitLab serving the project and label endpoints through responses.

    New projects get a copy of ``default_labels``, like GitLab instantiating
    the admin default labels on project creation.
    """

    def __init__(self, default_labels: list[dict] | None = None):
        self.default_labels = [dict(label) for label in (default_labels or DEFAULT_LABELS)]
        self.projects: dict[int, list[dict]] = {}
        self.next_id = REFERENCE_ID
        self.broken: set[int] = set()
        self.fail_create = False
        self.fail_reference_labels = False
        self.fail_project_delete = False
        # Called with the project id after a label listing has been answered
        self.after_list_labels = None
        self.calls: list[tuple[str, str, dict]] = []

    # -- setup --

    def add_project(self, project_id: int, labels: list[dict] | None = None) -> None:
        self.projects[project_id] = [dict(label) for label in (labels or [])]

    def label_names(self, project_id: int) -> list[str]:
        return [label["name"] for label in self.projects[project_id]]

    def register(self, rsps: responses.RequestsMock) -> None:
        base = re.escape(MOCK_API_URL)
        rsps.add_callback(
            responses.GET, re.compile(rf"{base}/projects(\?|$)"), callback=self._list_projects
        )
        rsps.add_callback(
            responses.POST, re.compile(rf"{base}/projects(\?|$)"), callback=self._create_project
        )
        rsps.add_callback(
            responses.DELETE, re.compile(rf"{base}/projects/\d+(\?|$)"), callback=self._delete_project
        )
        rsps.add_callback(
            responses.GET, re.compile(rf"{base}/projects/\d+/labels"), callback=self._list_labels
        )
        rsps.add_callback(
            responses.POST, re.compile(rf"{base}/projects/\d+/labels"), callback=self._create_label
        )
        rsps.add_callback(
            responses.DELETE, re.compile(rf"{base}/projects/\d+/labels"), callback=self._delete_label
        )

    # -- call log helpers --

    def writes(self) -> list[tuple[str, str, dict]]:
        return [call for call in self.calls if call[0] != "GET"]

    def count(self, method: str, path: str) -> int:
        return sum(1 for call in self.calls if call[0] == method and call[1] == path)

    # -- handlers --

    def _parse(self, request) -> tuple[str, dict, dict]:
        parsed = urlparse(request.url)
        path = parsed.path[len(urlparse(MOCK_API_URL).path) + 1 :]
        query = {key: values[0] for key, values in parse_qs(parsed.query).items()}
        body = json.loads(request.body) if request.body else {}
        self.calls.append((request.method, path, {**query, **body}))
        return path, query, body

    @staticmethod
    def _json(status: int, payload: Any):
        return (status, {"Content-Type": "application/json"}, json.dumps(payload))

    @staticmethod
    def _project_id(path: str) -> int:
        return int(path.split("/")[1])

    def _list_projects(self, request):
        _, query, _ = self._parse(request)
        page = int(query.get("page", 1))
        per_page = int(query.get("per_page", 20))
        ids = sorted(self.projects)[(page - 1) * per_page : page * per_page]
        return self._json(200, [{"id": project_id, "name": f"project-{project_id}"} for project_id in ids])

    def _create_project(self, request):
        _, _, body = self._parse(request)
        if self.fail_create:
            return self._json(500, {"message": "500 Internal Server Error"})
        project_id = self.next_id
        self.next_id += 1
        self.add_project(project_id, self.default_labels)
        return self._json(201, {"id": project_id, "name": body["name"], "visibility": body["visibility"]})

    def _delete_project(self, request):
        path, _, _ = self._parse(request)
        project_id = self._project_id(path)
        if self.fail_project_delete:
            return self._json(500, {"message": "500 Internal Server Error"})
        if project_id not in self.projects:
            return self._json(404, {"message": "404 Project Not Found"})
        del self.projects[project_id]
        return self._json(202, {"message": "202 Accepted"})

    def _label_request(self, request) -> tuple[int, dict, dict, tuple | None]:
        path, query, body = self._parse(request)
        project_id = self._project_id(path)
        if project_id in self.broken or (self.fail_reference_labels and project_id == REFERENCE_ID):
            return project_id, query, body, self._json(500, {"message": "500 Internal Server Error"})
        if project_id not in self.projects:
            return project_id, query, body, self._json(404, {"message": "404 Project Not Found"})
        return project_id, query, body, None

    def _list_labels(self, request):
        project_id, query, _, error = self._label_request(request)
        if error:
            return error
        per_page = int(query.get("per_page", 20))
        response = self._json(200, self.projects[project_id][:per_page])
        if self.after_list_labels:
            self.after_list_labels(project_id)
        return response

    def _create_label(self, request):
        project_id, _, body, error = self._label_request(request)
        if error:
            return error
        if body["name"] in self.label_names(project_id):
            return self._json(409, {"message": "Label already exists"})
        label = {"name": body["name"], "color": body["color"], "description": body.get("description")}
        self.projects[project_id].append(label)
        return self._json(201, label)

    def _delete_label(self, request):
        project_id, query, _, error = self._label_request(request)
        if error:
            return error
        name = query.get("name")
        if name not in self.label_names(project_id):
            return self._json(404, {"message": "404 Label Not Found"})
        self.projects[project_id] = [label for label in self.projects[project_id] if label["name"] != name]
        return (204, {}, "")


@pytest.fixture
def fake_gitlab():
    """Stateful fake GitLab, active for the duration of the test."""
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        fake = FakeGitLab()
        fake.register(rsps)
        yield fake


@pytest.fixture(autouse=True)
def reset_logger():
    """Drop handlers that setup_logging attached to streams of an earlier test."""
    yield
    logger = logging.getLogger("gl-fix-labels")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def context() -> RunContext:
    return RunContext()


@pytest.fixture
def mock_client(context):
    """GitLabClient pointing at the mock server, without backoff delays."""
    return GitLabClient(MOCK_API_URL, "test-token", context=context, retry_delay_ms=0)


@pytest.fixture
def reference(mock_client) -> ReferenceProject:
    return ReferenceProject(mock_client)


@pytest.fixture
def synchronizer(mock_client, reference) -> LabelSynchronizer:
    return LabelSynchronizer(mock_client, reference)


def make_config(**kwargs) -> RunConfig:
    """Helper to create a RunConfig with default values."""
    defaults = {
        "api_url": f"{MOCK_API_URL}/",
        "token": "test-token",
        "action": "add",
        "scope": TargetScope(),
        "max_retries": 3,
        "retry_delay_ms": 0,
        "allow_duplicates": False,
        "show_progress": False,
        "json_output": False,
        "verbose": False,
    }
    defaults.update(kwargs)
    return RunConfig(**defaults)
