"""Repository root detection.

The workspace is the root of the repository whose packages are released. It
is identified by a `release.toml` file or, failing that, a `.git` entry.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .config import CONFIG_FILE_NAME
from .result import Err, Ok, Result

__all__ = [
    "ROOT_ENV_VAR",
    "Workspace",
    "WorkspaceError",
    "detect_workspace",
    "find_workspace_upward",
    "is_workspace_root",
]

ROOT_ENV_VAR = "PKGREL_ROOT"


@dataclass(frozen=True)
class WorkspaceError:
    """Error when the repository root cannot be detected."""

    message: str
    searched_from: Path | None = None


@dataclass(frozen=True, slots=True)
class Workspace:
    """A detected repository root."""

    root: Path

    @property
    def config_path(self) -> Path:
        """Path to release.toml (may not exist)."""
        return self.root / CONFIG_FILE_NAME

    def package_dir(self, package_path: str) -> Path:
        return self.root / package_path

    def __str__(self) -> str:
        return str(self.root)


def is_workspace_root(path: Path) -> bool:
    return (path / CONFIG_FILE_NAME).is_file() or (path / ".git").exists()


def find_workspace_upward(start: Path) -> Path | None:
    """Search upward from start for the nearest repository root."""
    for parent in (start, *start.parents):
        if is_workspace_root(parent):
            return parent
    return None


def detect_workspace(
    *,
    start_dir: Path | None = None,
    env_var: str = ROOT_ENV_VAR,
) -> Result[Workspace, WorkspaceError]:
    """Detect the repository root.

    Detection order:
    1. The env_var environment variable (if set, it must be valid)
    2. Search upward from start_dir (or cwd)
    """
    env_value = os.environ.get(env_var)
    if env_value:
        env_path = Path(env_value).expanduser().resolve()
        if env_path.is_dir() and is_workspace_root(env_path):
            return Ok(Workspace(root=env_path))
        return Err(
            WorkspaceError(
                message=f"${env_var} is set to '{env_value}' but it is not a repository root",
                searched_from=env_path if env_path.is_dir() else None,
            )
        )

    search_start = (start_dir or Path.cwd()).resolve()
    found = find_workspace_upward(search_start)
    if found is not None:
        return Ok(Workspace(root=found))

    return Err(
        WorkspaceError(
            message=f"no repository root found (no {CONFIG_FILE_NAME} or .git above {search_start})",
            searched_from=search_start,
        )
    )
