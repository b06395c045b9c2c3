from __future__ import annotations

from pathlib import Path

from pkgrel.core.result import Err, Ok, Result
from pkgrel.platform.process import run as run_process
from pkgrel.platform.process import which
from pkgrel.release.errors import ReleaseError
from pkgrel.services.release.model import ReleaseRecord
from pkgrel.services.release.timeouts import GH_TIMEOUT_SECONDS


def ensure_gh_available() -> Result[None, ReleaseError]:
    if which("gh") is None:
        return Err(
            ReleaseError(
                kind="gh_missing",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
                stage="release",
            )
        )
    return Ok(None)


def ensure_gh_auth(*, root: Path) -> Result[None, ReleaseError]:
    result = run_process(["gh", "auth", "status"], cwd=root, timeout=GH_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="gh_auth_required",
                message="gh auth required",
                hint="Run: gh auth login (or export GH_TOKEN)",
                stage="release",
            )
        )
    return Ok(None)


def release_create_command(*, tag: str, body: str, github_repo: str | None) -> list[str]:
    cmd = ["gh", "release", "create", tag, "--title", tag, "--notes", body, "--verify-tag"]
    if github_repo:
        cmd.extend(["--repo", github_repo])
    return cmd


def create_release(
    *,
    root: Path,
    tag: str,
    body: str,
    github_repo: str | None,
) -> Result[ReleaseRecord, ReleaseError]:
    """Create a hosted release for an already pushed tag.

    Returns:
        Ok(ReleaseRecord) with the release URL printed by gh, if any.
    """
    available = ensure_gh_available()
    if isinstance(available, Err):
        return available

    auth = ensure_gh_auth(root=root)
    if isinstance(auth, Err):
        return auth

    cmd = release_create_command(tag=tag, body=body, github_repo=github_repo)
    result = run_process(cmd, cwd=root, timeout=GH_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="release_failed",
                message=f"gh release create {tag} failed",
                hint=result.error.stderr.strip() or None,
                stage="release",
            )
        )

    url = result.value.strip().splitlines()[-1] if result.value.strip() else None
    return Ok(ReleaseRecord(tag=tag, body=body, url=url))
