"""Git repository abstraction.

Provides the Repository class for the git operations a release needs: reading
tags and path-scoped history, committing the version bump, tagging and
pushing. All operations return Result types.

Usage:
    repo = Repository(Path("/path/to/repo"))

    match repo.log(rev_range="zk-sdk@v1.0.0..HEAD", path="zk-sdk"):
        case Ok(commits):
            for c in commits:
                print(c.short_sha, c.subject)
        case Err(e):
            print(f"Error: {e.message}")
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pkgrel.core.config import GitIdentity
from pkgrel.core.result import Err, Ok, Result
from pkgrel.platform.process import ProcessError
from pkgrel.platform.process import run as run_process

_GIT_TIMEOUT_SECONDS = 30.0
_GIT_NETWORK_TIMEOUT_SECONDS = 3 * 60.0

_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = f"%H{_FIELD_SEP}%an{_FIELD_SEP}%aI{_FIELD_SEP}%s{_RECORD_SEP}"

__all__ = [
    "CommitInfo",
    "GitError",
    "GitIdentity",
    "Repository",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """Error from a git operation.

    Attributes:
        command: The git subcommand that failed
        message: Error message
        returncode: Process return code
    """

    command: str
    message: str
    returncode: int = 1


@dataclass(frozen=True, slots=True)
class CommitInfo:
    """One commit from `git log`."""

    sha: str
    author: str
    date: str
    subject: str

    @property
    def short_sha(self) -> str:
        return self.sha[:8]


class Repository:
    """Git repository abstraction.

    Attributes:
        path: Path to the repository root
        identity: Optional committer identity for commits and tags, applied
            with `git -c`
    """

    def __init__(self, path: Path, identity: GitIdentity | None = None) -> None:
        self.path = path
        self.identity = identity

    def exists(self) -> bool:
        """Check if this is a git repository (worktrees have a .git file)."""
        return (self.path / ".git").exists()

    def is_clean(self) -> bool:
        """Check if the working tree has no changes.

        Returns False if status cannot be determined.
        """
        result = self._run(["status", "--porcelain"])
        match result:
            case Ok(stdout):
                return stdout.strip() == ""
            case Err(_):
                return False

    def head_sha(self) -> Result[str, GitError]:
        result = self._run(["rev-parse", "HEAD"])
        match result:
            case Err(e):
                return Err(self._error("rev-parse", e, "cannot resolve HEAD"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def tag_exists(self, tag: str) -> bool:
        result = self._run(["rev-parse", "-q", "--verify", f"refs/tags/{tag}"])
        return isinstance(result, Ok)

    def commit(self, paths: list[Path], message: str) -> Result[str, GitError]:
        """Stage the given paths and commit them.

        Returns:
            Ok(sha) of the new commit
            Err(GitError) if staging or committing failed
        """
        rel = [str(p.relative_to(self.path)) if p.is_absolute() else str(p) for p in paths]
        added = self._run(["add", "--", *rel])
        if isinstance(added, Err):
            return Err(self._error("add", added.error, "git add failed"))

        committed = self._run(["commit", "-m", message, "--", *rel])
        if isinstance(committed, Err):
            return Err(self._error("commit", committed.error, "git commit failed"))

        return self.head_sha()

    def create_tag(self, tag: str, message: str) -> Result[None, GitError]:
        """Create an annotated tag at HEAD."""
        result = self._run(["tag", "-a", tag, "-m", message])
        match result:
            case Err(e):
                return Err(self._error("tag", e, f"failed to create tag {tag}"))
            case Ok(_):
                return Ok(None)

    def push(self, remote: str, refs: list[str]) -> Result[str, GitError]:
        """Push refs atomically: either every ref lands or none does."""
        result = self._run(["push", "--atomic", remote, *refs])
        match result:
            case Err(e):
                return Err(self._error("push", e, "push failed"))
            case Ok(stdout):
                return Ok(stdout.strip())

    def log(self, *, rev_range: str, path: str | None = None) -> Result[list[CommitInfo], GitError]:
        """List commits in rev_range, oldest first, optionally limited to a path."""
        args = ["log", "--reverse", f"--format={_LOG_FORMAT}", rev_range]
        if path is not None:
            args.extend(["--", path])
        result = self._run(args)
        match result:
            case Err(e):
                return Err(self._error("log", e, f"git log {rev_range} failed"))
            case Ok(stdout):
                return Ok(self._parse_log(stdout))

    def _error(self, command: str, error: ProcessError, fallback: str) -> GitError:
        return GitError(
            command=command,
            message=error.stderr.strip() or error.stdout.strip() or fallback,
            returncode=error.returncode,
        )

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        """Run a git command in this repository."""
        command = args[0] if args else ""
        timeout = (
            _GIT_NETWORK_TIMEOUT_SECONDS
            if command in {"fetch", "pull", "push"}
            else _GIT_TIMEOUT_SECONDS
        )
        prefix = ["git", "-C", str(self.path)]
        if self.identity is not None:
            prefix.extend(
                ["-c", f"user.name={self.identity.name}", "-c", f"user.email={self.identity.email}"]
            )
        return run_process([*prefix, *args], cwd=self.path, timeout=timeout)

    def _parse_log(self, output: str) -> list[CommitInfo]:
        commits: list[CommitInfo] = []
        for record in output.split(_RECORD_SEP):
            record = record.strip("\n")
            if not record.strip():
                continue
            parts = record.split(_FIELD_SEP)
            if len(parts) != 4:
                continue
            sha, author, date, subject = parts
            commits.append(CommitInfo(sha=sha.strip(), author=author, date=date, subject=subject))
        return commits
