"""Public API compatibility check against the last published version.

Cargo packages are checked with `cargo semver-checks check-release`, whose
baseline is the latest version on the registry. npm packages have no checker.
"""

from __future__ import annotations

import re
from pathlib import Path

from pkgrel.core.result import Err, Ok, Result
from pkgrel.output.console import ConsoleProtocol
from pkgrel.platform.process import run as run_process
from pkgrel.release.errors import ReleaseError
from pkgrel.services.release.model import BreakingChange, CompatibilityVerdict, ResolvedVersion
from pkgrel.services.release.registry import Registry
from pkgrel.services.release.semver import crosses_major, parse_version
from pkgrel.services.release.timeouts import TOOL_TIMEOUT_SECONDS

_FAILURE_HEADER_RE = re.compile(r"^--- failure ([\w-]+): (.*?) ---$")
_LOCATION_SUFFIX_RE = re.compile(r",?\s+(?:previously )?in file .*$")


def semver_checks_command(root: Path, resolved: ResolvedVersion, *, strict: bool = True) -> list[str]:
    """Build the checker command line.

    cargo-semver-checks derives the allowed change from the manifest version,
    which admits any break on a major bump. Strict mode pins the release type
    so breaking changes are always reported.
    """
    cmd = [
        "cargo",
        "semver-checks",
        "check-release",
        "--manifest-path",
        str(resolved.package.manifest_path(root)),
    ]
    if strict:
        cmd.extend(["--release-type", "minor"])
    return cmd


def parse_semver_checks_output(text: str) -> list[BreakingChange]:
    """Extract (item, lint) pairs from cargo-semver-checks failure blocks.

    Each block looks like:

        --- failure function_missing: pub fn removed or renamed ---
        ...
        Failed in:
          function zk_sdk::foo, previously in file src/lib.rs:10
    """
    changes: list[BreakingChange] = []
    lint: str | None = None
    in_items = False

    for raw in text.splitlines():
        line = raw.rstrip()
        header = _FAILURE_HEADER_RE.match(line.strip())
        if header is not None:
            lint = header.group(1)
            in_items = False
            continue
        if lint is None:
            continue
        if line.strip() == "Failed in:":
            in_items = True
            continue
        if not in_items:
            continue
        if not line.strip() or not raw[:1].isspace():
            in_items = False
            continue
        item = _LOCATION_SUFFIX_RE.sub("", line.strip())
        changes.append(BreakingChange(item=item, kind=lint))

    return changes


def _tolerated(resolved: ResolvedVersion, allow_breaking_on_major: bool) -> bool:
    if not allow_breaking_on_major:
        return False
    prev = parse_version(resolved.previous)
    new = parse_version(resolved.version)
    if prev is None or new is None:
        return False
    return crosses_major(prev, new)


def check_compatibility(
    *,
    root: Path,
    resolved: ResolvedVersion,
    allow_breaking_on_major: bool,
    registry: Registry,
    console: ConsoleProtocol,
) -> Result[CompatibilityVerdict, ReleaseError]:
    """Compare the post-bump public API with the last published one.

    Read-only. A failing verdict is returned as Ok; Err means the checker itself
    could not produce a verdict.

    A crate with no published version has no baseline; its first release
    passes unchecked.
    """
    package = resolved.package
    if package.kind != "cargo":
        console.warning(f"{package.name}: no API compatibility checker for {package.kind} packages")
        return Ok(CompatibilityVerdict(passed=True, checked=False))

    baseline = registry.has_releases(package)
    if isinstance(baseline, Err):
        return Err(baseline.error.at("compatibility"))
    if not baseline.value:
        console.warning(f"{package.name}: first release, no published baseline to check the public API against")
        return Ok(CompatibilityVerdict(passed=True, checked=False))

    tolerated = _tolerated(resolved, allow_breaking_on_major)
    cmd = semver_checks_command(root, resolved, strict=not tolerated)
    console.debug("$ " + " ".join(cmd))
    result = run_process(cmd, cwd=root, timeout=TOOL_TIMEOUT_SECONDS)
    if isinstance(result, Ok):
        console.success(f"{package.name}: public API compatible with {resolved.version}")
        return Ok(CompatibilityVerdict(passed=True))

    error = result.error
    breaking = parse_semver_checks_output(f"{error.stdout}\n{error.stderr}")
    if not breaking:
        return Err(
            ReleaseError(
                kind="compatibility_failure",
                message=f"{' '.join(cmd[:3])} did not produce a verdict (exit {error.returncode})",
                hint=error.tail() or "Is cargo-semver-checks installed? cargo install cargo-semver-checks",
                stage="compatibility",
            )
        )

    if tolerated:
        console.warning(
            f"{package.name}: {len(breaking)} breaking change(s) tolerated by major bump "
            f"{resolved.previous} -> {resolved.version}"
        )
        return Ok(CompatibilityVerdict(passed=True, breaking=tuple(breaking)))

    console.error(f"{package.name}: {len(breaking)} breaking change(s) detected")
    return Ok(CompatibilityVerdict(passed=False, breaking=tuple(breaking)))
