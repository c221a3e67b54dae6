"""Base class and registry for label operations."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from gl_fix_labels.models import ActionResult, RunConfig

if TYPE_CHECKING:
    from gl_fix_labels.labels import LabelSynchronizer

# ---------------------------------------------------------------------------
# Operation Registry
# ---------------------------------------------------------------------------

_operation_registry: dict[str, type[Operation]] = {}


def register_operation(name: str):
    """Decorator to register an operation class under a CLI action name."""

    def decorator(cls):
        _operation_registry[name] = cls
        cls.operation_name = name
        return cls

    return decorator


def get_operation_registry() -> dict[str, type[Operation]]:
    """Get the operation registry."""
    return _operation_registry


# ---------------------------------------------------------------------------
# Operation Base Class
# ---------------------------------------------------------------------------


class Operation(ABC):
    """Base class for all label operations."""

    operation_name: str = ""
    # Message printed when the run starts, formatted with the scope description
    intro: str = ""

    def __init__(self, synchronizer: LabelSynchronizer, config: RunConfig):
        self.synchronizer = synchronizer
        self.config = config
        self.logger = logging.getLogger("gl-fix-labels")
        self.results: list[ActionResult] = []

    @abstractmethod
    def apply_to_project(self, project_id: int) -> ActionResult:
        """Apply this operation to a single project. Errors propagate to the caller."""
        ...

    def record_failure(self, project_id: int, error: BaseException) -> ActionResult:
        return self._record(
            ActionResult(
                target_id=project_id,
                operation=self.operation_name,
                action="error",
                detail=str(error),
            )
        )

    def _record(self, result: ActionResult) -> ActionResult:
        self.results.append(result)
        icon = {
            "applied": "✓",
            "already_set": "·",
            "error": "✗",
        }.get(result.action, "?")

        # JSON mode emits every result; text mode only shows them with --verbose
        handler = self.logger.handlers[0] if self.logger.handlers else None
        json_mode = bool(handler and getattr(handler.formatter, "json_mode", False))
        level = logging.INFO if json_mode else logging.DEBUG
        if self.logger.isEnabledFor(level):
            message = (
                f"{icon} [project] #{result.target_id}: {result.operation} → {result.action}"
                f"{' (' + result.detail + ')' if result.detail else ''}"
            )
            record = self.logger.makeRecord("gl-fix-labels", level, "", 0, message, (), None)
            record.action_result = result
            self.logger.handle(record)
        return result
