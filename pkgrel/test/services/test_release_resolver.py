from __future__ import annotations

from pathlib import Path

import pytest

from pkgrel.core.result import Err, Ok
from pkgrel.git.repository import GitError, Repository
from pkgrel.services.release import resolver
from pkgrel.services.release.model import ResolvedVersion


def test_resolve_patch(tmp_path: Path, write_cargo) -> None:
    pkg = write_cargo(version="1.2.3")
    result = resolver.resolve_version(root=tmp_path, package=pkg, level="patch")
    assert result == Ok(ResolvedVersion(package=pkg, previous="1.2.3", version="1.2.4", bump="patch"))


def test_resolve_explicit_is_verbatim(tmp_path: Path, write_cargo) -> None:
    pkg = write_cargo(version="1.2.3")
    result = resolver.resolve_version(root=tmp_path, package=pkg, level="version", explicit="1.0.0-rc.1")
    assert isinstance(result, Ok)
    # No ordering check for explicit versions.
    assert result.value.version == "1.0.0-rc.1"
    assert result.value.bump == "1.0.0-rc.1"


@pytest.mark.parametrize("explicit", [None, "", "   "])
def test_empty_explicit_version_fails_before_reading_manifest(tmp_path: Path, write_cargo, explicit) -> None:
    pkg = write_cargo()
    pkg.manifest_path(tmp_path).unlink()

    result = resolver.resolve_version(root=tmp_path, package=pkg, level="version", explicit=explicit)

    assert isinstance(result, Err)
    assert result.error.kind == "invalid_bump"
    assert result.error.stage == "resolve"


def test_malformed_explicit_version(tmp_path: Path, write_cargo) -> None:
    pkg = write_cargo()
    result = resolver.resolve_version(root=tmp_path, package=pkg, level="version", explicit="v2")
    assert isinstance(result, Err)
    assert result.error.kind == "invalid_bump"


def test_release_of_stable_version_is_invalid(tmp_path: Path, write_cargo) -> None:
    pkg = write_cargo(version="1.2.3")
    result = resolver.resolve_version(root=tmp_path, package=pkg, level="release")
    assert isinstance(result, Err)
    assert result.error.kind == "invalid_bump"
    assert "nothing to release" in result.error.message


def test_non_semver_manifest_version(tmp_path: Path, write_cargo) -> None:
    pkg = write_cargo(version="latest")
    result = resolver.resolve_version(root=tmp_path, package=pkg, level="patch")
    assert isinstance(result, Err)
    assert result.error.kind == "invalid_manifest"


class _RecordingRepo(Repository):
    def __init__(self, root: Path, fail: bool = False) -> None:
        super().__init__(root)
        self.fail = fail
        self.commits: list[tuple[list[Path], str]] = []

    def commit(self, paths: list[Path], message: str):  # type: ignore[override]
        self.commits.append((paths, message))
        if self.fail:
            return Err(GitError(command="commit", message="nothing to commit"))
        return Ok("abc123")


def test_apply_version_without_commit(tmp_path: Path, write_cargo) -> None:
    pkg = write_cargo(version="1.2.3")
    resolved = ResolvedVersion(package=pkg, previous="1.2.3", version="1.2.4", bump="patch")
    repo = _RecordingRepo(tmp_path)

    assert resolver.apply_version(root=tmp_path, resolved=resolved, repo=repo, commit_message=None) == Ok(True)

    assert 'version = "1.2.4"' in pkg.manifest_path(tmp_path).read_text(encoding="utf-8")
    assert repo.commits == []


def test_apply_version_with_commit(tmp_path: Path, write_cargo) -> None:
    pkg = write_cargo(version="1.2.3")
    resolved = ResolvedVersion(package=pkg, previous="1.2.3", version="1.2.4", bump="patch")
    repo = _RecordingRepo(tmp_path)

    result = resolver.apply_version(
        root=tmp_path, resolved=resolved, repo=repo, commit_message="Publish solana-zk-sdk v1.2.4"
    )

    assert result == Ok(True)
    assert repo.commits == [([pkg.manifest_path(tmp_path)], "Publish solana-zk-sdk v1.2.4")]


def test_commit_failure_is_git_failed(tmp_path: Path, write_cargo) -> None:
    pkg = write_cargo(version="1.2.3")
    resolved = ResolvedVersion(package=pkg, previous="1.2.3", version="1.2.4", bump="patch")

    result = resolver.commit_version(
        root=tmp_path, resolved=resolved, repo=_RecordingRepo(tmp_path, fail=True), message="m"
    )

    assert isinstance(result, Err)
    assert result.error.kind == "git_failed"
