"""GitLab API client with fault classification, linear retry and project pagination."""

from __future__ import annotations

import http.client
import logging
import time
from typing import Any, Iterator

import requests

from gl_fix_labels.models import (
    DEFAULT_MAX_RETRIES,
    LABEL_LIMIT,
    LABEL_NOT_FOUND_MESSAGE,
    PER_PAGE,
    RETRY_DELAY_MS,
    Fault,
    Label,
    Outcome,
    OutcomeKind,
    RetryState,
    RunContext,
)


def normalize_api_url(uri: str) -> str:
    """Return the API base URI with exactly one trailing separator appended if missing."""
    return uri if uri.endswith("/") else f"{uri}/"


def _iter_causes(exc: BaseException) -> Iterator[BaseException]:
    """Walk an exception, its wrapped args and its cause/context chain."""
    seen: set[int] = set()
    stack = [exc]
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current
        stack.extend(arg for arg in current.args if isinstance(arg, BaseException))
        for linked in (current.__cause__, current.__context__):
            if linked is not None:
                stack.append(linked)


def _error_message(resp: requests.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or ""
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or "")
    return str(body)


def classify_fault(method: str, exc: BaseException) -> Fault:
    """
    Map a transport exception to a Fault.

    A 404 on a DELETE, or any 404 reporting a missing label, means the thing is
    already gone. Responses whose framing could not be parsed (GitLab sometimes
    sends more body bytes than it advertises, which poisons the keep-alive
    connection) are parse overruns. Everything else is retryable.
    """
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        if exc.response.status_code == 404:
            if method.upper() == "DELETE" or LABEL_NOT_FOUND_MESSAGE in _error_message(exc.response):
                return Fault.NOT_FOUND
        return Fault.OTHER

    if isinstance(exc, (requests.exceptions.ChunkedEncodingError, requests.exceptions.JSONDecodeError)):
        return Fault.PARSE_OVERRUN

    if isinstance(exc, requests.ConnectionError):
        if any(isinstance(cause, http.client.HTTPException) for cause in _iter_causes(exc)):
            return Fault.PARSE_OVERRUN

    return Fault.OTHER


def decide(
    method: str,
    fault: Fault,
    error: BaseException,
    state: RetryState,
    ignore_parse_overrun: bool,
    max_retries: int = DEFAULT_MAX_RETRIES,
    retry_delay_ms: int = RETRY_DELAY_MS,
) -> Outcome:
    """Decide what happens after a failed attempt. Has no side effects."""
    if ignore_parse_overrun and fault is Fault.PARSE_OVERRUN and method.upper() == "DELETE":
        return Outcome.success()

    if fault is Fault.NOT_FOUND:
        return Outcome.ignored()

    next_state = RetryState(failures=state.failures + 1, delay_ms=state.delay_ms + retry_delay_ms)
    if next_state.failures > max_retries:
        return Outcome.fatal(error)
    return Outcome.retry(next_state, error)


class GitLabClient:
    """Thin wrapper around the GitLab REST API with fault-classifying retry logic."""

    def __init__(
        self,
        api_url: str,
        token: str,
        context: RunContext | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay_ms: int = RETRY_DELAY_MS,
    ):
        self.api_url = normalize_api_url(api_url)
        self.session = requests.Session()
        self.session.headers.update(
            {
                "PRIVATE-TOKEN": token,
                "Content-Type": "application/json",
            }
        )
        self.context = context if context is not None else RunContext()
        self.max_retries = max_retries
        self.retry_delay_ms = retry_delay_ms
        self.logger = logging.getLogger("gl-fix-labels")

    def _send(self, method: str, endpoint: str, **kwargs) -> Any:
        url = f"{self.api_url}{endpoint}"
        self.logger.debug(f"{method} {url} {kwargs.get('params', '')} {kwargs.get('json', '')}")
        resp = self.session.request(method, url, **kwargs)
        resp.raise_for_status()
        if not resp.content:
            return None
        return resp.json()

    def attempt(self, method: str, endpoint: str, state: RetryState, **kwargs) -> Outcome:
        """Issue the request once and classify the result."""
        try:
            return Outcome.success(self._send(method, endpoint, **kwargs))
        except requests.RequestException as e:
            fault = classify_fault(method, e)
            return decide(
                method,
                fault,
                e,
                state,
                self.context.ignore_parse_overrun,
                max_retries=self.max_retries,
                retry_delay_ms=self.retry_delay_ms,
            )

    def request(self, method: str, endpoint: str, **kwargs) -> Any:
        """Make an HTTP request, retrying transient failures with linear backoff."""
        state = RetryState(delay_ms=self.retry_delay_ms)

        while True:
            time.sleep(state.delay_ms / 1000)
            outcome = self.attempt(method, endpoint, state, **kwargs)

            if outcome.kind is OutcomeKind.SUCCESS:
                return outcome.value

            if outcome.kind is OutcomeKind.IGNORED:
                self.logger.warning(
                    f"IGNORING 404 on {method} {endpoint}: target already gone. "
                    "Response framing errors on DELETE are ignored from now on."
                )
                self.context.ignore_parse_overrun = True
                return None

            if outcome.kind is OutcomeKind.FATAL:
                raise outcome.error

            state = outcome.state
            self.logger.warning(f"RETRYING failed request in {state.delay_ms}ms... ({outcome.error})")

    def get(self, endpoint: str, params: dict | None = None) -> Any:
        return self.request("GET", endpoint, params=params)

    def post(self, endpoint: str, data: dict | None = None) -> Any:
        return self.request("POST", endpoint, json=data)

    def delete(self, endpoint: str, params: dict | None = None) -> Any:
        return self.request("DELETE", endpoint, params=params)

    # -- Projects --

    def create_project(self, name: str) -> dict:
        return self.post(
            "projects",
            data={
                "name": name,
                "visibility": "private",
                "issues_enabled": True,
            },
        )

    def delete_project(self, project_id: int) -> None:
        self.delete(f"projects/{project_id}")

    def list_project_ids(self) -> list[int]:
        """
        Walk the project listing page by page and return every visible project id.

        Stops at the first page that contributes no unseen id. The reference
        project is left out. The result is cached on the run context.
        """
        if self.context.project_ids is not None:
            return self.context.project_ids

        ids: list[int] = []
        seen: set[int] = set()
        page = 0
        while True:
            page += 1
            results = self.get(
                "projects",
                params={
                    "order_by": "id",
                    "simple": "true",
                    "per_page": PER_PAGE,
                    "page": page,
                },
            )
            added = 0
            for project in results or []:
                project_id = project["id"]
                if project_id == self.context.reference_project_id or project_id in seen:
                    continue
                seen.add(project_id)
                ids.append(project_id)
                added += 1
            if not added:
                break

        self.logger.debug(f"Found {len(ids)} projects over {page} pages")
        self.context.project_ids = ids
        return ids

    # -- Labels --

    def list_labels(self, project_id: int) -> list[Label]:
        """Get up to LABEL_LIMIT labels of a project."""
        data = self.get(f"projects/{project_id}/labels", params={"per_page": LABEL_LIMIT, "page": 1})
        return [Label.from_api(item) for item in data or []]

    def create_label(self, project_id: int, label: Label) -> Any:
        return self.post(f"projects/{project_id}/labels", data=label.to_payload())

    def delete_label(self, project_id: int, name: str) -> None:
        self.delete(f"projects/{project_id}/labels", params={"name": name})
