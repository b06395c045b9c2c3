"""Publish a resolved version, then tag and push it.

The executor never re-resolves the version: it publishes exactly the
ResolvedVersion it is handed, which the orchestrator already wrote into the
manifest.
"""

from __future__ import annotations

import os
from pathlib import Path

from pkgrel.core.config import ReleaseConfig
from pkgrel.core.result import Err, Ok, Result
from pkgrel.git.repository import Repository
from pkgrel.output.console import ConsoleProtocol
from pkgrel.release.contracts import ReleaseRequest
from pkgrel.release.errors import ReleaseError
from pkgrel.services.release.model import PublishOutcome, ReleasePackage, ResolvedVersion, TagPair
from pkgrel.services.release.registry import Registry


def ensure_registry_token(package: ReleasePackage) -> Result[str, ReleaseError]:
    """Return the name of the credential variable if it holds a value.

    The value itself is never returned or printed.
    """
    value = os.environ.get(package.token_env, "")
    if not value.strip():
        return Err(
            ReleaseError(
                kind="publish_auth_missing",
                message=f"{package.token_env} is not set",
                hint=f"Export {package.token_env} with a registry token for {package.name}.",
                stage="preflight",
            )
        )
    return Ok(package.token_env)


def ensure_not_published(registry: Registry, resolved: ResolvedVersion) -> Result[None, ReleaseError]:
    package = resolved.package
    exists = registry.version_exists(package, resolved.version)
    if isinstance(exists, Err):
        return Err(exists.error.at("publish"))
    if exists.value:
        return Err(
            ReleaseError(
                kind="already_published",
                message=f"{package.name} {resolved.version} is already published",
                hint="Nothing to do; pick a different bump to release new changes.",
                stage="publish",
            )
        )
    return Ok(None)


def release_tags(
    *, repo: Repository, config: ReleaseConfig, resolved: ResolvedVersion
) -> TagPair:
    """Tags around this release. The old tag is kept only if the repository has it."""
    name = resolved.package.name
    old = config.format_tag(name=name, version=resolved.previous)
    new = config.format_tag(name=name, version=resolved.version)
    return TagPair(old=old if repo.tag_exists(old) else None, new=new)


def publish_package(
    *,
    root: Path,
    request: ReleaseRequest,
    resolved: ResolvedVersion,
    repo: Repository,
    registry: Registry,
    config: ReleaseConfig,
    console: ConsoleProtocol,
) -> Result[PublishOutcome, ReleaseError]:
    """Publish to the registry (validate only under dry run) and tag the release.

    Returns:
        Ok(PublishOutcome) with a TagPair unless dry_run.
        Err(ReleaseError) attributed to the stage that failed.
    """
    package = resolved.package

    token = ensure_registry_token(package)
    if isinstance(token, Err):
        return token

    published = ensure_not_published(registry, resolved)
    if isinstance(published, Err):
        return published

    tags = release_tags(repo=repo, config=config, resolved=resolved)
    if repo.tag_exists(tags.new):
        if not request.dry_run:
            return Err(
                ReleaseError(
                    kind="tag_exists",
                    message=f"tag {tags.new} already exists but {resolved.version} is not published",
                    hint=f"Inspect the tag, then delete it (git tag -d {tags.new}) to retry.",
                    stage="publish",
                )
            )
        console.warning(f"tag {tags.new} already exists; a real run would stop here")

    uploaded = registry.publish(
        root=root,
        package=package,
        version=resolved.version,
        dry_run=request.dry_run,
        console=console,
    )
    if isinstance(uploaded, Err):
        return Err(uploaded.error.at("publish"))

    if request.dry_run:
        console.success(f"{package.name} v{resolved.version} would publish as {tags.new}")
        return Ok(PublishOutcome(version=resolved.version, planned_tag=tags.new, dry_run=True))

    console.success(f"Published {package.name} v{resolved.version}")

    message = config.format_commit_message(name=package.name, version=resolved.version)
    tagged = repo.create_tag(tags.new, message)
    if isinstance(tagged, Err):
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"published, but failed to create tag {tags.new}: {tagged.error.message}",
                hint=f"Create it by hand: git tag -a {tags.new} -m '{message}'",
                stage="publish",
            )
        )
    console.success(f"Tagged {tags.new}")

    if not request.push:
        console.info("Push skipped (--no-push)")
        return Ok(PublishOutcome(version=resolved.version, planned_tag=tags.new, dry_run=False, tags=tags))

    refs = ["HEAD", f"refs/tags/{tags.new}"]
    pushed = repo.push(config.remote, refs)
    if isinstance(pushed, Err):
        return Err(
            ReleaseError(
                kind="push_failed",
                message=f"published, but pushing {tags.new} failed: {pushed.error.message}",
                hint=f"Resume with: git push --atomic {config.remote} {' '.join(refs)}",
                stage="publish",
            )
        )
    console.success(f"Pushed release commit and {tags.new} to {config.remote}")

    return Ok(
        PublishOutcome(
            version=resolved.version,
            planned_tag=tags.new,
            dry_run=False,
            tags=tags,
            pushed=True,
        )
    )
