"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import NoReturn

import typer

from pkgrel.core.errors import ErrorCode
from pkgrel.output.console import ConsoleProtocol, Style
from pkgrel.release.errors import ReleaseError, ReleaseErrorKind

_EXIT_CODES: dict[ReleaseErrorKind, ErrorCode] = {
    "unknown_package": ErrorCode.USER_ERROR,
    "invalid_bump": ErrorCode.USER_ERROR,
    "config_invalid": ErrorCode.USER_ERROR,
    "publish_auth_missing": ErrorCode.ENV_ERROR,
    "gh_missing": ErrorCode.ENV_ERROR,
    "gh_auth_required": ErrorCode.ENV_ERROR,
    "compatibility_failure": ErrorCode.GATE_ERROR,
    "build_test_failure": ErrorCode.GATE_ERROR,
    "registry_failed": ErrorCode.NETWORK_ERROR,
    "publish_failed": ErrorCode.NETWORK_ERROR,
    "push_failed": ErrorCode.NETWORK_ERROR,
    "release_failed": ErrorCode.NETWORK_ERROR,
    "invalid_manifest": ErrorCode.IO_ERROR,
    "git_failed": ErrorCode.IO_ERROR,
    "tag_exists": ErrorCode.IO_ERROR,
    "changelog_failure": ErrorCode.IO_ERROR,
    "already_published": ErrorCode.ALREADY_PUBLISHED,
}


def exit_code_for(kind: ReleaseErrorKind) -> ErrorCode:
    return _EXIT_CODES.get(kind, ErrorCode.USER_ERROR)


def print_release_error(error: ReleaseError, console: ConsoleProtocol) -> None:
    console.error(error.message)
    if error.stage is not None:
        console.print(f"stage: {error.stage}", Style.DIM)
    for detail in error.details:
        console.print(f"  - {detail}")
    if error.hint:
        console.print(f"hint: {error.hint}", Style.DIM)


def exit_on_release_error(error: ReleaseError, console: ConsoleProtocol) -> NoReturn:
    """Print a release error and exit with the code mapped from its kind."""
    print_release_error(error, console)
    raise typer.Exit(code=int(exit_code_for(error.kind)))
