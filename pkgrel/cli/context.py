from __future__ import annotations

import os
from dataclasses import dataclass

import typer

from pkgrel.core.config import ReleaseConfig, load_repo_config
from pkgrel.core.errors import ErrorCode
from pkgrel.core.result import Err
from pkgrel.core.workspace import Workspace, detect_workspace
from pkgrel.output.console import ConsoleProtocol, RichConsole

VERBOSE_ENV_VAR = "PKGREL_VERBOSE"


@dataclass(frozen=True, slots=True)
class CLIContext:
    workspace: Workspace
    config: ReleaseConfig
    console: ConsoleProtocol


def build_context() -> CLIContext:
    """Detect the repository and load its release.toml.

    Unlike a missing file, an invalid release.toml is fatal: releasing with a
    half-read package set would be worse than stopping.
    """
    workspace_result = detect_workspace()
    if isinstance(workspace_result, Err):
        typer.echo(f"error: {workspace_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

    workspace = workspace_result.value

    config_result = load_repo_config(workspace.root)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(
        workspace=workspace,
        config=config_result.value,
        console=RichConsole(verbose=os.environ.get(VERBOSE_ENV_VAR) == "1"),
    )
