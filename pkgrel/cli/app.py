from __future__ import annotations

import os
from pathlib import Path

import typer

from pkgrel import __version__
from pkgrel.cli.commands.release_cmd import release_app
from pkgrel.cli.context import VERBOSE_ENV_VAR
from pkgrel.core.errors import ErrorCode
from pkgrel.core.workspace import ROOT_ENV_VAR, is_workspace_root

app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Sub-apps
app.add_typer(release_app, name="release", help="Release packages of this repository.")


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(False, "--version", help="Show version and exit."),
    repo: Path | None = typer.Option(
        None,
        "--repo",
        help="Repository root (overrides auto detection)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show commands and tool output."),
) -> None:
    if version:
        typer.echo(__version__)
        raise typer.Exit(code=0)

    if verbose:
        os.environ[VERBOSE_ENV_VAR] = "1"

    if repo is not None:
        try:
            root = repo.expanduser().resolve()
        except OSError as e:
            typer.echo(f"error: invalid --repo: {e}", err=True)
            raise typer.Exit(code=int(ErrorCode.USER_ERROR))

        if not root.is_dir() or not is_workspace_root(root):
            typer.echo(
                f"error: --repo '{root}' is not a repository root (missing release.toml or .git)",
                err=True,
            )
            raise typer.Exit(code=int(ErrorCode.ENV_ERROR))

        os.environ[ROOT_ENV_VAR] = str(root)


def main() -> None:
    app()
