"""Registry access: published-version lookups and the publish command.

Lookups use the registries' public read APIs; publishing shells out to the
package tool, which owns authentication and upload.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol
from urllib.parse import quote

from pkgrel.core.result import Err, Ok, Result
from pkgrel.core.structured import get_table
from pkgrel.output.console import ConsoleProtocol
from pkgrel.platform.http import HttpClient, HttpError
from pkgrel.platform.process import run as run_process
from pkgrel.release.errors import ReleaseError
from pkgrel.services.release.config import CRATES_IO_API, NPM_REGISTRY
from pkgrel.services.release.model import ReleasePackage
from pkgrel.services.release.timeouts import TOOL_TIMEOUT_SECONDS


class Registry(Protocol):
    def version_exists(self, package: ReleasePackage, version: str) -> Result[bool, ReleaseError]:
        """Whether the registry already serves this exact version."""
        ...

    def has_releases(self, package: ReleasePackage) -> Result[bool, ReleaseError]:
        """Whether any version of the package was ever published."""
        ...

    def publish(
        self,
        *,
        root: Path,
        package: ReleasePackage,
        version: str,
        dry_run: bool,
        console: ConsoleProtocol,
    ) -> Result[None, ReleaseError]:
        """Upload the package as it is in the working tree (validate only on dry run)."""
        ...


def _lookup_failed(package: ReleasePackage, error: HttpError) -> Err[ReleaseError]:
    return Err(
        ReleaseError(
            kind="registry_failed",
            message=f"registry lookup failed for {package.name}",
            hint=str(error),
        )
    )


def _publish(
    *,
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None,
    package: ReleasePackage,
    version: str,
    dry_run: bool,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    suffix = " (dry run)" if dry_run else ""
    console.info(f"Publishing {package.name} v{version}{suffix}")
    console.debug("$ " + " ".join(cmd))
    result = run_process(cmd, cwd=cwd, env=env, timeout=TOOL_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        return Err(
            ReleaseError(
                kind="publish_failed",
                message=f"{result.error} while publishing {package.name}",
                hint=result.error.tail() or None,
            )
        )
    return Ok(None)


class CargoRegistry:
    """crates.io."""

    def __init__(self, http: HttpClient, api_url: str = CRATES_IO_API) -> None:
        self.http = http
        self.api_url = api_url.rstrip("/")

    def version_exists(self, package: ReleasePackage, version: str) -> Result[bool, ReleaseError]:
        result = self.http.get_json(f"{self.api_url}/{package.name}/{version}")
        if isinstance(result, Ok):
            return Ok(True)
        if result.error.is_not_found:
            return Ok(False)
        return _lookup_failed(package, result.error)

    def has_releases(self, package: ReleasePackage) -> Result[bool, ReleaseError]:
        result = self.http.get_json(f"{self.api_url}/{package.name}")
        if isinstance(result, Ok):
            return Ok(True)
        if result.error.is_not_found:
            return Ok(False)
        return _lookup_failed(package, result.error)

    def publish(
        self,
        *,
        root: Path,
        package: ReleasePackage,
        version: str,
        dry_run: bool,
        console: ConsoleProtocol,
    ) -> Result[None, ReleaseError]:
        cmd = ["cargo", "publish", "--manifest-path", f"{package.path}/Cargo.toml"]
        if dry_run:
            # The bumped manifest is uncommitted on dry runs.
            cmd.extend(["--dry-run", "--allow-dirty"])
        return _publish(
            cmd=cmd,
            cwd=root,
            env=None,
            package=package,
            version=version,
            dry_run=dry_run,
            console=console,
        )


class NpmRegistry:
    """registry.npmjs.org."""

    def __init__(self, http: HttpClient, registry_url: str = NPM_REGISTRY) -> None:
        self.http = http
        self.registry_url = registry_url.rstrip("/")

    def _versions(self, package: ReleasePackage) -> Result[dict[str, object], ReleaseError]:
        # Scoped names keep their "@" but encode the slash.
        result = self.http.get_json(f"{self.registry_url}/{quote(package.name, safe='@')}")
        if isinstance(result, Err):
            if result.error.is_not_found:
                return Ok({})
            return _lookup_failed(package, result.error)
        return Ok(get_table(result.value, "versions") or {})

    def version_exists(self, package: ReleasePackage, version: str) -> Result[bool, ReleaseError]:
        versions = self._versions(package)
        if isinstance(versions, Err):
            return versions
        return Ok(version in versions.value)

    def has_releases(self, package: ReleasePackage) -> Result[bool, ReleaseError]:
        versions = self._versions(package)
        if isinstance(versions, Err):
            return versions
        return Ok(bool(versions.value))

    def publish(
        self,
        *,
        root: Path,
        package: ReleasePackage,
        version: str,
        dry_run: bool,
        console: ConsoleProtocol,
    ) -> Result[None, ReleaseError]:
        cmd = ["pnpm", "publish", "--access", "public", "--no-git-checks"]
        if dry_run:
            cmd.append("--dry-run")
        token = os.environ.get(package.token_env, "").strip()
        env = {"NODE_AUTH_TOKEN": token} if token else None
        return _publish(
            cmd=cmd,
            cwd=root / package.path,
            env=env,
            package=package,
            version=version,
            dry_run=dry_run,
            console=console,
        )


def registry_for(package: ReleasePackage, http: HttpClient) -> Registry:
    if package.kind == "cargo":
        return CargoRegistry(http)
    return NpmRegistry(http)


def _empty_versions() -> set[tuple[str, str]]:
    return set()


def _empty_calls() -> list[tuple[str, str, bool]]:
    return []


@dataclass
class MockRegistry:
    """In-memory registry for tests.

    `published` holds (name, version) pairs; only non-dry-run publishes add to
    it. `calls` records (name, version, dry_run) for every publish.
    """

    published: set[tuple[str, str]] = field(default_factory=_empty_versions)
    calls: list[tuple[str, str, bool]] = field(default_factory=_empty_calls)
    fail_publish: ReleaseError | None = None

    def version_exists(self, package: ReleasePackage, version: str) -> Result[bool, ReleaseError]:
        return Ok((package.name, version) in self.published)

    def has_releases(self, package: ReleasePackage) -> Result[bool, ReleaseError]:
        return Ok(any(name == package.name for name, _ in self.published))

    def publish(
        self,
        *,
        root: Path,
        package: ReleasePackage,
        version: str,
        dry_run: bool,
        console: ConsoleProtocol,
    ) -> Result[None, ReleaseError]:
        del root, console
        self.calls.append((package.name, version, dry_run))
        if self.fail_publish is not None:
            return Err(self.fail_publish)
        if not dry_run:
            self.published.add((package.name, version))
        return Ok(None)
