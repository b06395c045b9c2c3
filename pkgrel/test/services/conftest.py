from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import pytest

from pkgrel.core.result import Err, Ok, Result
from pkgrel.git.repository import CommitInfo, GitError, Repository
from pkgrel.services.release.model import ReleasePackage

CARGO_TEMPLATE = """\
[package]
name = "{name}"
version = "{version}"   # bumped by pkgrel
edition = "2021"

[dependencies]
serde = {{ version = "1.0.200", features = ["derive"] }}
"""

WriteCargo = Callable[..., ReleasePackage]
WriteNpm = Callable[..., ReleasePackage]


@pytest.fixture
def write_cargo(tmp_path: Path) -> WriteCargo:
    def _write(
        path: str = "zk-sdk",
        *,
        name: str = "solana-zk-sdk",
        version: str = "1.2.3",
        profiles: tuple[str, ...] = ("native", "sbf", "wasm"),
    ) -> ReleasePackage:
        pkg_dir = tmp_path / path
        pkg_dir.mkdir(parents=True, exist_ok=True)
        (pkg_dir / "Cargo.toml").write_text(CARGO_TEMPLATE.format(name=name, version=version), encoding="utf-8")
        return ReleasePackage(
            path=path,
            name=name,
            kind="cargo",
            profiles=profiles,  # type: ignore[arg-type]
            token_env="CARGO_REGISTRY_TOKEN",
        )

    return _write


@pytest.fixture
def write_npm(tmp_path: Path) -> WriteNpm:
    def _write(
        path: str = "js/client",
        *,
        name: str = "@solana/zk-client",
        version: str = "0.4.0",
        private: bool = False,
    ) -> ReleasePackage:
        pkg_dir = tmp_path / path
        pkg_dir.mkdir(parents=True, exist_ok=True)
        data: dict[str, object] = {"name": name, "version": version, "scripts": {"build": "tsc"}}
        if private:
            data["private"] = True
        (pkg_dir / "package.json").write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        return ReleasePackage(
            path=path,
            name=name,
            kind="npm",
            profiles=("native",),
            token_env="NPM_TOKEN",
        )

    return _write


class FakeRepository(Repository):
    """Repository double that records writes instead of running git."""

    def __init__(self, root: Path) -> None:
        super().__init__(root)
        self.tags: dict[str, str] = {}
        self.commits: list[str] = []
        self.pushes: list[tuple[str, list[str]]] = []
        self.history: list[CommitInfo] = []
        self.log_ranges: list[tuple[str, str | None]] = []
        self.clean = True
        self.fail_push = False
        self.fail_log = False

    def exists(self) -> bool:
        return True

    def is_clean(self) -> bool:
        return self.clean

    def tag_exists(self, tag: str) -> bool:
        return tag in self.tags

    def commit(self, paths: list[Path], message: str) -> Result[str, GitError]:
        del paths
        self.commits.append(message)
        return Ok(f"{len(self.commits):040d}")

    def create_tag(self, tag: str, message: str) -> Result[None, GitError]:
        if tag in self.tags:
            return Err(GitError(command="tag", message=f"tag '{tag}' already exists"))
        self.tags[tag] = message
        return Ok(None)

    def push(self, remote: str, refs: list[str]) -> Result[str, GitError]:
        if self.fail_push:
            return Err(GitError(command="push", message="rejected (non-fast-forward)"))
        self.pushes.append((remote, refs))
        return Ok("")

    def log(self, *, rev_range: str, path: str | None = None) -> Result[list[CommitInfo], GitError]:
        self.log_ranges.append((rev_range, path))
        if self.fail_log:
            return Err(GitError(command="log", message="bad revision"))
        return Ok(list(self.history))


@pytest.fixture
def fake_repo(tmp_path: Path) -> FakeRepository:
    return FakeRepository(tmp_path)
