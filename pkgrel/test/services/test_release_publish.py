from __future__ import annotations

from pathlib import Path

import pytest

from pkgrel.core.config import ReleaseConfig
from pkgrel.core.result import Err, Ok
from pkgrel.output.console import MockConsole
from pkgrel.release.contracts import ReleaseRequest
from pkgrel.release.errors import ReleaseError
from pkgrel.services.release.model import ResolvedVersion, TagPair
from pkgrel.services.release.publish import (
    ensure_not_published,
    ensure_registry_token,
    publish_package,
    release_tags,
)
from pkgrel.services.release.registry import MockRegistry


@pytest.fixture(autouse=True)
def _token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CARGO_REGISTRY_TOKEN", "cio_secret")


def _resolved(pkg) -> ResolvedVersion:
    return ResolvedVersion(package=pkg, previous="1.2.3", version="1.2.4", bump="patch")


def _publish(tmp_path: Path, pkg, repo, registry, *, dry_run: bool, push: bool = True, console=None):
    return publish_package(
        root=tmp_path,
        request=ReleaseRequest(package=pkg.path, level="patch", dry_run=dry_run, push=push),
        resolved=_resolved(pkg),
        repo=repo,
        registry=registry,
        config=ReleaseConfig(),
        console=console or MockConsole(),
    )


class TestEnsureRegistryToken:
    @pytest.mark.parametrize("value", [None, "", "  "])
    def test_missing_or_blank(self, monkeypatch: pytest.MonkeyPatch, write_cargo, value) -> None:
        if value is None:
            monkeypatch.delenv("CARGO_REGISTRY_TOKEN", raising=False)
        else:
            monkeypatch.setenv("CARGO_REGISTRY_TOKEN", value)

        result = ensure_registry_token(write_cargo())

        assert isinstance(result, Err)
        assert result.error.kind == "publish_auth_missing"
        assert result.error.stage == "preflight"

    def test_present_value_is_not_exposed(self, write_cargo) -> None:
        result = ensure_registry_token(write_cargo())
        assert result == Ok("CARGO_REGISTRY_TOKEN")


def test_ensure_not_published(write_cargo) -> None:
    pkg = write_cargo()
    registry = MockRegistry(published={(pkg.name, "1.2.4")})

    result = ensure_not_published(registry, _resolved(pkg))

    assert isinstance(result, Err)
    assert result.error.kind == "already_published"


def test_release_tags_old_only_if_present(fake_repo, write_cargo) -> None:
    resolved = _resolved(write_cargo())
    config = ReleaseConfig()

    assert release_tags(repo=fake_repo, config=config, resolved=resolved) == TagPair(
        old=None, new="solana-zk-sdk@v1.2.4"
    )

    fake_repo.tags["solana-zk-sdk@v1.2.3"] = "previous"
    assert release_tags(repo=fake_repo, config=config, resolved=resolved) == TagPair(
        old="solana-zk-sdk@v1.2.3", new="solana-zk-sdk@v1.2.4"
    )


def test_dry_run_publishes_nothing(tmp_path: Path, fake_repo, write_cargo) -> None:
    pkg = write_cargo()
    registry = MockRegistry()

    result = _publish(tmp_path, pkg, fake_repo, registry, dry_run=True)

    assert isinstance(result, Ok)
    outcome = result.value
    assert outcome.dry_run is True
    assert outcome.tags is None
    assert outcome.planned_tag == "solana-zk-sdk@v1.2.4"
    assert registry.calls == [("solana-zk-sdk", "1.2.4", True)]
    assert registry.published == set()
    assert fake_repo.tags == {}
    assert fake_repo.pushes == []


def test_real_publish_tags_and_pushes(tmp_path: Path, fake_repo, write_cargo) -> None:
    pkg = write_cargo()
    fake_repo.tags["solana-zk-sdk@v1.2.3"] = "previous"
    registry = MockRegistry()

    result = _publish(tmp_path, pkg, fake_repo, registry, dry_run=False)

    assert isinstance(result, Ok)
    outcome = result.value
    assert outcome.tags == TagPair(old="solana-zk-sdk@v1.2.3", new="solana-zk-sdk@v1.2.4")
    assert outcome.pushed is True
    assert registry.published == {("solana-zk-sdk", "1.2.4")}
    assert fake_repo.tags["solana-zk-sdk@v1.2.4"] == "Publish solana-zk-sdk v1.2.4"
    assert fake_repo.pushes == [("origin", ["HEAD", "refs/tags/solana-zk-sdk@v1.2.4"])]


def test_no_push(tmp_path: Path, fake_repo, write_cargo) -> None:
    result = _publish(tmp_path, write_cargo(), fake_repo, MockRegistry(), dry_run=False, push=False)

    assert isinstance(result, Ok)
    assert result.value.pushed is False
    assert result.value.tags is not None
    assert fake_repo.pushes == []


def test_publish_is_idempotent(tmp_path: Path, fake_repo, write_cargo) -> None:
    pkg = write_cargo()
    registry = MockRegistry()
    assert isinstance(_publish(tmp_path, pkg, fake_repo, registry, dry_run=False), Ok)

    again = _publish(tmp_path, pkg, fake_repo, registry, dry_run=False)

    assert isinstance(again, Err)
    assert again.error.kind == "already_published"
    assert len(registry.calls) == 1


def test_existing_tag_without_publish_is_refused(tmp_path: Path, fake_repo, write_cargo) -> None:
    fake_repo.tags["solana-zk-sdk@v1.2.4"] = "stale"
    registry = MockRegistry()

    result = _publish(tmp_path, write_cargo(), fake_repo, registry, dry_run=False)

    assert isinstance(result, Err)
    assert result.error.kind == "tag_exists"
    assert registry.calls == []


def test_existing_tag_only_warns_on_dry_run(tmp_path: Path, fake_repo, write_cargo) -> None:
    fake_repo.tags["solana-zk-sdk@v1.2.4"] = "stale"
    console = MockConsole()

    result = _publish(tmp_path, write_cargo(), fake_repo, MockRegistry(), dry_run=True, console=console)

    assert isinstance(result, Ok)
    assert console.has_warning()


def test_registry_failure(tmp_path: Path, fake_repo, write_cargo) -> None:
    registry = MockRegistry(fail_publish=ReleaseError(kind="publish_failed", message="403"))

    result = _publish(tmp_path, write_cargo(), fake_repo, registry, dry_run=False)

    assert isinstance(result, Err)
    assert result.error.kind == "publish_failed"
    assert result.error.stage == "publish"
    assert fake_repo.tags == {}


def test_push_failure_keeps_publish_and_gives_resume_hint(tmp_path: Path, fake_repo, write_cargo) -> None:
    fake_repo.fail_push = True
    registry = MockRegistry()

    result = _publish(tmp_path, write_cargo(), fake_repo, registry, dry_run=False)

    assert isinstance(result, Err)
    assert result.error.kind == "push_failed"
    assert result.error.hint == "Resume with: git push --atomic origin HEAD refs/tags/solana-zk-sdk@v1.2.4"
    assert registry.published == {("solana-zk-sdk", "1.2.4")}
    assert "solana-zk-sdk@v1.2.4" in fake_repo.tags
