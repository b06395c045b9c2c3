from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import pytest

from pkgrel.core.result import Err, Ok
from pkgrel.output.console import MockConsole
from pkgrel.platform.http import HttpError, MockHttpClient
from pkgrel.platform.process import ProcessError
from pkgrel.services.release import registry as registry_mod
from pkgrel.services.release.registry import CargoRegistry, MockRegistry, NpmRegistry, registry_for


class TestCargoRegistry:
    def test_version_exists(self, write_cargo) -> None:
        http = MockHttpClient()
        http.set_json("https://crates.io/api/v1/crates/solana-zk-sdk/1.2.3", {"version": {"num": "1.2.3"}})
        registry = CargoRegistry(http)
        pkg = write_cargo()

        assert registry.version_exists(pkg, "1.2.3") == Ok(True)
        assert registry.version_exists(pkg, "1.2.4") == Ok(False)

    def test_lookup_failure(self, write_cargo) -> None:
        http = MockHttpClient()
        url = "https://crates.io/api/v1/crates/solana-zk-sdk/1.2.4"
        http.set_json(url, HttpError(url=url, status=503, message="Service Unavailable"))

        result = CargoRegistry(http).version_exists(write_cargo(), "1.2.4")

        assert isinstance(result, Err)
        assert result.error.kind == "registry_failed"

    def test_has_releases(self, write_cargo) -> None:
        http = MockHttpClient()
        pkg = write_cargo()
        assert CargoRegistry(http).has_releases(pkg) == Ok(False)

        http.set_json("https://crates.io/api/v1/crates/solana-zk-sdk", {"crate": {"max_version": "1.2.3"}})
        assert CargoRegistry(http).has_releases(pkg) == Ok(True)

    def test_dry_run_publish_command(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, write_cargo
    ) -> None:
        seen: list[tuple[list[str], Path]] = []

        def fake_run(cmd: list[str], cwd: Path, env: Mapping[str, str] | None = None, *, timeout=None):
            del env, timeout
            seen.append((cmd, cwd))
            return Ok("")

        monkeypatch.setattr(registry_mod, "run_process", fake_run)

        result = CargoRegistry(MockHttpClient()).publish(
            root=tmp_path, package=write_cargo(), version="1.2.4", dry_run=True, console=MockConsole()
        )

        assert result == Ok(None)
        assert seen == [
            (
                ["cargo", "publish", "--manifest-path", "zk-sdk/Cargo.toml", "--dry-run", "--allow-dirty"],
                tmp_path,
            )
        ]

    def test_publish_failure(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, write_cargo) -> None:
        def fake_run(cmd: list[str], cwd: Path, env=None, *, timeout=None):
            return Err(ProcessError(command=tuple(cmd), returncode=101, stdout="", stderr="error: 403 Forbidden"))

        monkeypatch.setattr(registry_mod, "run_process", fake_run)

        result = CargoRegistry(MockHttpClient()).publish(
            root=tmp_path, package=write_cargo(), version="1.2.4", dry_run=False, console=MockConsole()
        )

        assert isinstance(result, Err)
        assert result.error.kind == "publish_failed"
        assert result.error.hint == "error: 403 Forbidden"


class TestNpmRegistry:
    def test_version_exists_uses_encoded_scope(self, write_npm) -> None:
        http = MockHttpClient()
        http.set_json("https://registry.npmjs.org/@solana%2Fzk-client", {"versions": {"0.4.0": {}}})
        registry = NpmRegistry(http)
        pkg = write_npm()

        assert registry.version_exists(pkg, "0.4.0") == Ok(True)
        assert registry.version_exists(pkg, "0.4.1") == Ok(False)

    def test_unknown_package_is_not_published(self, write_npm) -> None:
        assert NpmRegistry(MockHttpClient()).version_exists(write_npm(), "0.4.0") == Ok(False)
        assert NpmRegistry(MockHttpClient()).has_releases(write_npm()) == Ok(False)

    def test_publish_passes_token_to_tool(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path, write_npm
    ) -> None:
        seen: list[tuple[list[str], Path, Mapping[str, str] | None]] = []

        def fake_run(cmd: list[str], cwd: Path, env: Mapping[str, str] | None = None, *, timeout=None):
            seen.append((cmd, cwd, env))
            return Ok("")

        monkeypatch.setattr(registry_mod, "run_process", fake_run)
        monkeypatch.setenv("NPM_TOKEN", "npm_secret")

        NpmRegistry(MockHttpClient()).publish(
            root=tmp_path, package=write_npm(), version="0.4.1", dry_run=False, console=MockConsole()
        )

        cmd, cwd, env = seen[0]
        assert cmd == ["pnpm", "publish", "--access", "public", "--no-git-checks"]
        assert cwd == tmp_path / "js/client"
        assert env == {"NODE_AUTH_TOKEN": "npm_secret"}


def test_registry_for_kind(write_cargo, write_npm) -> None:
    http = MockHttpClient()
    assert isinstance(registry_for(write_cargo(), http), CargoRegistry)
    assert isinstance(registry_for(write_npm(), http), NpmRegistry)


def test_mock_registry_records_dry_runs_without_publishing(tmp_path: Path, write_cargo) -> None:
    registry = MockRegistry()
    pkg = write_cargo()

    registry.publish(root=tmp_path, package=pkg, version="1.2.4", dry_run=True, console=MockConsole())
    assert registry.version_exists(pkg, "1.2.4") == Ok(False)

    registry.publish(root=tmp_path, package=pkg, version="1.2.4", dry_run=False, console=MockConsole())
    assert registry.version_exists(pkg, "1.2.4") == Ok(True)
    assert registry.calls == [("solana-zk-sdk", "1.2.4", True), ("solana-zk-sdk", "1.2.4", False)]
