"""CLI entry point for gl-fix-labels."""

from __future__ import annotations

import argparse
import os
import re
import sys

from tqdm.contrib.logging import logging_redirect_tqdm

# Ensure all operations are registered by importing the operations package
import gl_fix_labels.operations  # noqa: F401
from gl_fix_labels.client import GitLabClient, normalize_api_url
from gl_fix_labels.labels import LabelSynchronizer
from gl_fix_labels.logging_utils import setup_logging
from gl_fix_labels.models import DEFAULT_MAX_RETRIES, KEYWORD_ALL, RETRY_DELAY_MS, RunConfig, RunContext, TargetScope
from gl_fix_labels.operations import get_operation_registry
from gl_fix_labels.progress import ProgressReporter
from gl_fix_labels.reference import ReferenceProject
from gl_fix_labels.runner import LabelRun

DESCRIPTION = f"""
Propagate the global admin labels of a GitLab instance (set in the administrator
area) into the projects of your choice.

Actions:

    add      add the admin labels to the target project(s); existing labels are
             not touched and labels with an existing name are skipped
    delete   completely delete all of a project's labels
    replace  the same as "delete" followed by "add"

Target:

    Either the string "{KEYWORD_ALL}" (case sensitive) or a project id larger than 0.

Environment:
    GITLAB_TOKEN - used when AUTH_TOKEN is given as "-"

A token that starts with "-" must follow a "--" separator after any options:
    gl-fix-labels --no-progress -- https://gitlab.com/api/v4 -abc123 add 10

Examples:
    # Add the admin labels to project 10
    gl-fix-labels https://git.example.org/api/v4 mytoken add 10

    # Delete the labels of every project the token can see
    gl-fix-labels https://gitlab.example.com/api/v4 mytoken delete {KEYWORD_ALL}

    # Replace the labels of every project with the admin defaults
    gl-fix-labels http://git.example.net/api/v4/ mytoken replace {KEYWORD_ALL}

Note: at most 100 labels per project are handled.
"""

_PROJECT_ID = re.compile(r"^[0-9]+$")


class UsageError(Exception):
    """Raised for missing or malformed command-line arguments."""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str):
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="gl-fix-labels",
        description="Copy the GitLab admin default labels into one or all projects.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=DESCRIPTION,
    )
    parser.add_argument("api_url", metavar="API_BASE_URI", help="GitLab API endpoint, e.g. https://gitlab.com/api/v4")
    parser.add_argument("token", metavar="AUTH_TOKEN", help="Personal access token with api scope")
    parser.add_argument(
        "action", metavar="ACTION", help=f"One of: {', '.join(sorted(get_operation_registry()))}"
    )
    parser.add_argument("target", metavar="TARGET", help=f'"{KEYWORD_ALL}" or a project id')
    parser.add_argument(
        "--max-retries",
        type=int,
        default=DEFAULT_MAX_RETRIES,
        help=f"Maximum retry attempts for failed requests (default: {DEFAULT_MAX_RETRIES})",
    )
    parser.add_argument(
        "--retry-delay-ms",
        type=int,
        default=RETRY_DELAY_MS,
        help=f"Backoff step between attempts in milliseconds (default: {RETRY_DELAY_MS})",
    )
    parser.add_argument(
        "--allow-duplicates",
        action="store_true",
        help="add: create every admin label even if the project already has one with that name",
    )
    parser.add_argument("--no-progress", action="store_true", help="Do not draw the progress bar")
    parser.add_argument(
        "--json", action="store_true", dest="json_output", help="Output log lines as JSON (to stderr)"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def parse_target(raw: str) -> TargetScope:
    """Turn the TARGET argument into a scope."""
    if raw == KEYWORD_ALL:
        return TargetScope()
    if not _PROJECT_ID.match(raw) or int(raw) <= 0:
        raise UsageError(f'Target must be "{KEYWORD_ALL}" or an integer larger than 0, got "{raw}"')
    return TargetScope(project_id=int(raw))


def parse_config(parser: argparse.ArgumentParser, argv: list[str]) -> RunConfig:
    args = parser.parse_args(argv)

    if args.action not in get_operation_registry():
        raise UsageError(f'Unrecognized action "{args.action}"')

    token = args.token
    if token == "-":
        token = os.environ.get("GITLAB_TOKEN", "")
        if not token:
            raise UsageError("AUTH_TOKEN is '-' but the GITLAB_TOKEN environment variable is not set")

    if not args.api_url:
        raise UsageError("API_BASE_URI must not be empty")
    if args.max_retries < 0 or args.retry_delay_ms < 0:
        raise UsageError("--max-retries and --retry-delay-ms must not be negative")

    return RunConfig(
        api_url=normalize_api_url(args.api_url),
        token=token,
        action=args.action,
        scope=parse_target(args.target),
        max_retries=args.max_retries,
        retry_delay_ms=args.retry_delay_ms,
        allow_duplicates=args.allow_duplicates,
        show_progress=not (args.no_progress or args.json_output),
        json_output=args.json_output,
        verbose=args.verbose,
    )


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    argv = sys.argv[1:] if argv is None else list(argv)

    if not argv:
        parser.print_help()
        return 0

    try:
        config = parse_config(parser, argv)
    except UsageError as e:
        parser.print_help()
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    # Setup logging
    logger = setup_logging(json_mode=config.json_output, verbose=config.verbose)

    # Build client and collaborators around one run context
    context = RunContext()
    client = GitLabClient(
        config.api_url,
        config.token,
        context=context,
        max_retries=config.max_retries,
        retry_delay_ms=config.retry_delay_ms,
    )
    reference = ReferenceProject(client)
    synchronizer = LabelSynchronizer(client, reference)
    operation = get_operation_registry()[config.action](synchronizer, config)

    progress = ProgressReporter(enabled=config.show_progress)
    try:
        with progress, logging_redirect_tqdm(loggers=[logger]):
            report = LabelRun(client, reference, operation, config.scope, on_progress=progress).run()
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    if report.aborted:
        if report.cleaned_up:
            logger.info("(removed dummy project)")
        return 1

    # Summary
    total = len(report.results)
    applied = sum(1 for r in report.results if r.action == "applied")
    already = sum(1 for r in report.results if r.action == "already_set")
    logger.info(f"Done: {total} targets, {applied} changed, {already} already set, {report.errors} errors")

    # Exit code: non-zero if any target failed
    return 1 if report.errors > 0 else 0


if __name__ == "__main__":
    sys.exit(main())
