"""Data models and constants for gl-fix-labels."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

PER_PAGE = 100
LABEL_LIMIT = 100  # labels are never paginated

# Retry configuration
DEFAULT_MAX_RETRIES = 3
RETRY_DELAY_MS = 100  # linear backoff step, also the delay before the first attempt

NO_PROJECT = -1
KEYWORD_ALL = "all"
REFERENCE_NAME_PREFIX = "deleteme-"
LABEL_NOT_FOUND_MESSAGE = "404 Label Not Found"

PROGRESS_REFRESH_INTERVAL = 0.2  # seconds


class ContractViolation(RuntimeError):
    """Raised when the reference project lifecycle is driven out of order."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class Fault(Enum):
    """Classification of a failed request."""

    NOT_FOUND = "not_found"
    PARSE_OVERRUN = "parse_overrun"
    OTHER = "other"


class OutcomeKind(Enum):
    SUCCESS = "success"
    IGNORED = "ignored"
    RETRY = "retry"
    FATAL = "fatal"


# ---------------------------------------------------------------------------
# Data Classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Label:
    """A project label. Two labels are the same label when their names match."""

    name: str
    color: str
    description: str = ""

    @classmethod
    def from_api(cls, data: dict) -> Label:
        return cls(
            name=data["name"],
            color=data.get("color") or "",
            description=data.get("description") or "",
        )

    def to_payload(self) -> dict:
        return {"name": self.name, "color": self.color, "description": self.description}


@dataclass(frozen=True)
class TargetScope:
    """Either one explicit project id or every project visible to the token."""

    project_id: int | None = None

    @property
    def all_projects(self) -> bool:
        return self.project_id is None

    def describe(self) -> str:
        return "all projects" if self.all_projects else f'project id #"{self.project_id}"'


@dataclass(frozen=True)
class RetryState:
    """Per-request retry bookkeeping."""

    failures: int = 0
    delay_ms: int = RETRY_DELAY_MS


@dataclass(frozen=True)
class Outcome:
    """What the request loop should do after one attempt."""

    kind: OutcomeKind
    value: object = None
    state: RetryState | None = None
    error: BaseException | None = None

    @classmethod
    def success(cls, value: object = None) -> Outcome:
        return cls(OutcomeKind.SUCCESS, value=value)

    @classmethod
    def ignored(cls) -> Outcome:
        return cls(OutcomeKind.IGNORED)

    @classmethod
    def retry(cls, state: RetryState, error: BaseException) -> Outcome:
        return cls(OutcomeKind.RETRY, state=state, error=error)

    @classmethod
    def fatal(cls, error: BaseException) -> Outcome:
        return cls(OutcomeKind.FATAL, error=error)


@dataclass
class RunContext:
    """Mutable state shared by everything that takes part in one run."""

    ignore_parse_overrun: bool = False
    reference_project_id: int = NO_PROJECT
    reference_labels: list[Label] | None = None
    project_ids: list[int] | None = None


@dataclass
class RunConfig:
    """Everything the command line decides about a run."""

    api_url: str
    token: str
    action: str
    scope: TargetScope
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_delay_ms: int = RETRY_DELAY_MS
    allow_duplicates: bool = False
    show_progress: bool = True
    json_output: bool = False
    verbose: bool = False


@dataclass
class ActionResult:
    """Result of applying an operation to a single project."""

    target_id: int
    operation: str
    action: str  # "applied", "already_set", "error"
    detail: str = ""
    deleted: int = 0
    created: int = 0
    skipped: int = 0

    def to_dict(self) -> dict:
        return {
            "target_type": "project",
            "target_id": self.target_id,
            "operation": self.operation,
            "action": self.action,
            "detail": self.detail,
            "deleted": self.deleted,
            "created": self.created,
            "skipped": self.skipped,
        }


@dataclass
class RunReport:
    """Summary of a finished run, returned by the orchestrator."""

    state: str
    results: list[ActionResult] = field(default_factory=list)
    error: BaseException | None = None
    cleaned_up: bool = False

    @property
    def aborted(self) -> bool:
        return self.error is not None

    @property
    def errors(self) -> int:
        return sum(1 for r in self.results if r.action == "error")
