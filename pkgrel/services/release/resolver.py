from __future__ import annotations

from pathlib import Path

from pkgrel.core.result import Err, Ok, Result
from pkgrel.git.repository import Repository
from pkgrel.release.contracts import BumpLevel
from pkgrel.release.errors import ReleaseError
from pkgrel.services.release.manifest import read_manifest, write_manifest_version
from pkgrel.services.release.model import ReleasePackage, ResolvedVersion
from pkgrel.services.release.semver import bump_version, parse_version


def _invalid_bump(message: str, hint: str | None = None) -> Err[ReleaseError]:
    return Err(ReleaseError(kind="invalid_bump", message=message, hint=hint, stage="resolve"))


def validate_explicit_version(value: str | None) -> Result[str, ReleaseError]:
    raw = (value or "").strip()
    if not raw:
        return _invalid_bump(
            "explicit version is empty",
            hint="Pass --version X.Y.Z together with --level version.",
        )
    if parse_version(raw) is None:
        return _invalid_bump(
            f"invalid explicit version: {raw}",
            hint="Expected MAJOR.MINOR.PATCH[-PRERELEASE][+BUILD]",
        )
    return Ok(raw)


def resolve_version(
    *,
    root: Path,
    package: ReleasePackage,
    level: BumpLevel,
    explicit: str | None = None,
) -> Result[ResolvedVersion, ReleaseError]:
    """Compute the target version from the manifest's current version.

    The manifest is read exactly once; the result is passed forward to every
    later stage. Explicit versions are accepted verbatim if they are valid
    semver, with no ordering check.
    """
    explicit_version: str | None = None
    if level == "version":
        valid = validate_explicit_version(explicit)
        if isinstance(valid, Err):
            return valid
        explicit_version = valid.value

    info = read_manifest(package.manifest_path(root), package.kind)
    if isinstance(info, Err):
        return Err(info.error.at("resolve"))
    previous = info.value.version

    if explicit_version is not None:
        return Ok(
            ResolvedVersion(
                package=package,
                previous=previous,
                version=explicit_version,
                bump=explicit_version,
            )
        )

    current = parse_version(previous)
    if current is None:
        return Err(
            ReleaseError(
                kind="invalid_manifest",
                message=f"current version of {package.name} is not semver: {previous}",
                hint=str(package.manifest_path(root)),
                stage="resolve",
            )
        )

    bumped = bump_version(current, level)
    if isinstance(bumped, Err):
        return _invalid_bump(f"cannot apply '{level}' to {previous}: {bumped.error}")

    return Ok(
        ResolvedVersion(
            package=package,
            previous=previous,
            version=str(bumped.value),
            bump=level,
        )
    )


def apply_version(
    *,
    root: Path,
    resolved: ResolvedVersion,
    repo: Repository,
    commit_message: str | None,
) -> Result[bool, ReleaseError]:
    """Write the resolved version into the manifest in the working tree.

    With a commit message the change is committed locally. Nothing is tagged,
    published or pushed here.

    Returns:
        Ok(True) if the manifest changed.
    """
    path = resolved.package.manifest_path(root)
    written = write_manifest_version(path, resolved.package.kind, resolved.version)
    if isinstance(written, Err):
        return Err(written.error.at("resolve"))

    if not written.value or commit_message is None:
        return Ok(written.value)

    committed = commit_version(root=root, resolved=resolved, repo=repo, message=commit_message)
    if isinstance(committed, Err):
        return committed
    return Ok(True)


def commit_version(
    *,
    root: Path,
    resolved: ResolvedVersion,
    repo: Repository,
    message: str,
) -> Result[str, ReleaseError]:
    """Commit the bumped manifest locally and return the new commit sha."""
    path = resolved.package.manifest_path(root)
    committed = repo.commit([path], message)
    if isinstance(committed, Err):
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"failed to commit version bump: {committed.error.message}",
                hint="Configure a git identity ([git] in release.toml) or check the working tree.",
                stage="resolve",
            )
        )
    return committed
