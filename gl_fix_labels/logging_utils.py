"""Logging utilities for gl-fix-labels."""

from __future__ import annotations

import json
import logging
import sys


class StructuredFormatter(logging.Formatter):
    """Formatter that can emit JSON lines when configured."""

    def __init__(self, json_mode: bool = False):
        super().__init__()
        self.json_mode = json_mode

    def format(self, record: logging.LogRecord) -> str:
        stamp = int(record.created * 1000)
        if self.json_mode and hasattr(record, "action_result"):
            return json.dumps({"time": stamp, **record.action_result.to_dict()})
        if self.json_mode:
            return json.dumps({"time": stamp, "level": record.levelname, "message": record.getMessage()})
        return f"<{stamp}> [{record.levelname:<7}] {record.getMessage()}"


def setup_logging(json_mode: bool = False, verbose: bool = False) -> logging.Logger:
    logger = logging.getLogger("gl-fix-labels")
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredFormatter(json_mode=json_mode))
    logger.addHandler(handler)
    return logger
