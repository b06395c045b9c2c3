"""Release orchestration.

    resolve -> preflight -> (compatibility || build/test) -> publish
            -> changelog -> hosted release

Every stage returns a Result; the first Err stops the run and is returned with
the stage it happened in. Values computed by one stage (the resolved version,
the tag pair) are passed forward as arguments and never recomputed.
"""

from __future__ import annotations

import concurrent.futures
from dataclasses import dataclass, replace
from pathlib import Path

from pkgrel.core.config import ReleaseConfig
from pkgrel.core.result import Err, Ok, Result
from pkgrel.git.repository import Repository
from pkgrel.output.console import ConsoleProtocol, Style
from pkgrel.platform.files import FileSnapshot
from pkgrel.platform.http import HttpClient, RealHttpClient
from pkgrel.release.contracts import ReleaseRequest
from pkgrel.release.errors import ReleaseError
from pkgrel.services.release.changelog import emit_changelog, render_changelog
from pkgrel.services.release.compat import check_compatibility
from pkgrel.services.release.gates import run_build_test
from pkgrel.services.release.gh import create_release, ensure_gh_auth, ensure_gh_available
from pkgrel.services.release.model import (
    BuildTestReport,
    ChangelogDocument,
    CompatibilityVerdict,
    GateReport,
    PipelineReport,
    PublishOutcome,
    ReleasePackage,
    ReleaseRecord,
    ResolvedVersion,
    TagPair,
)
from pkgrel.services.release.packages import find_package, known_packages
from pkgrel.services.release.publish import (
    ensure_not_published,
    ensure_registry_token,
    publish_package,
    release_tags,
)
from pkgrel.services.release.registry import Registry, registry_for
from pkgrel.services.release.resolver import (
    apply_version,
    commit_version,
    resolve_version,
    validate_explicit_version,
)


@dataclass(frozen=True, slots=True)
class ReleasePlan:
    """What a run would do, computed without side effects."""

    resolved: ResolvedVersion
    old_tag: str | None
    new_tag: str


def _compatibility_failure(resolved: ResolvedVersion, verdict: CompatibilityVerdict) -> ReleaseError:
    return ReleaseError(
        kind="compatibility_failure",
        message=(
            f"{len(verdict.breaking)} breaking change(s) in the public API of "
            f"{resolved.package.name} for {resolved.previous} -> {resolved.version}"
        ),
        hint="Revert the breaking changes, or set allow_breaking_on_major in release.toml and bump major.",
        details=tuple(b.describe() for b in verdict.breaking),
        stage="compatibility",
    )


def _build_test_failure(package: ReleasePackage, report: BuildTestReport) -> ReleaseError:
    failures = report.failures
    return ReleaseError(
        kind="build_test_failure",
        message=f"{len(failures)} of {len(report.results)} build/test step(s) failed for {package.name}",
        hint="Re-run with --verbose to see the tool output.",
        details=tuple(f.step.label for f in failures),
        stage="build-test",
    )


def _merge_gate_errors(first: ReleaseError, second: ReleaseError) -> ReleaseError:
    return replace(
        first,
        message=f"{first.message}; also {second.message}",
        details=first.details + tuple(f"[{second.stage}] {d}" for d in second.details),
    )


def run_gates(
    *,
    root: Path,
    resolved: ResolvedVersion,
    config: ReleaseConfig,
    registry: Registry,
    console: ConsoleProtocol,
) -> Result[GateReport, ReleaseError]:
    """Run the compatibility check and the build/test gate concurrently.

    Both branches always run to completion and both results are collected
    before deciding; a failure in one never cancels the other. When both fail
    the compatibility error leads and carries the build/test failures in its
    details.
    """
    with concurrent.futures.ThreadPoolExecutor(max_workers=2, thread_name_prefix="pkgrel-gate") as pool:
        compat_future = pool.submit(
            check_compatibility,
            root=root,
            resolved=resolved,
            allow_breaking_on_major=config.allow_breaking_on_major,
            registry=registry,
            console=console,
        )
        build_future = pool.submit(
            run_build_test,
            root=root,
            package=resolved.package,
            console=console,
        )
        compat = compat_future.result()
        build = build_future.result()

    errors: list[ReleaseError] = []
    verdict: CompatibilityVerdict | None = None
    if isinstance(compat, Err):
        errors.append(compat.error.at("compatibility"))
    elif not compat.value.passed:
        errors.append(_compatibility_failure(resolved, compat.value))
    else:
        verdict = compat.value
    if not build.passed:
        errors.append(_build_test_failure(resolved.package, build))

    if len(errors) == 2:
        return Err(_merge_gate_errors(errors[0], errors[1]))
    if errors or verdict is None:
        return Err(errors[0])

    return Ok(GateReport(verdict=verdict, build_test=build))


def plan_release(
    *,
    root: Path,
    request: ReleaseRequest,
    config: ReleaseConfig,
    repo: Repository,
) -> Result[ReleasePlan, ReleaseError]:
    """Resolve the package, version and tags. Reads only."""
    if request.level == "version":
        valid = validate_explicit_version(request.version)
        if isinstance(valid, Err):
            return valid

    packages = known_packages(root, config)
    if isinstance(packages, Err):
        return Err(packages.error.at("resolve"))
    package = find_package(packages.value, request.package)
    if isinstance(package, Err):
        return Err(package.error.at("resolve"))

    resolved = resolve_version(
        root=root,
        package=package.value,
        level=request.level,
        explicit=request.version,
    )
    if isinstance(resolved, Err):
        return resolved

    tags = release_tags(repo=repo, config=config, resolved=resolved.value)
    return Ok(ReleasePlan(resolved=resolved.value, old_tag=tags.old, new_tag=tags.new))


def _preflight(
    *,
    root: Path,
    request: ReleaseRequest,
    resolved: ResolvedVersion,
    repo: Repository,
    registry: Registry,
    console: ConsoleProtocol,
) -> Result[None, ReleaseError]:
    token = ensure_registry_token(resolved.package)
    if isinstance(token, Err):
        return token
    console.success(f"{token.value} is set")

    published = ensure_not_published(registry, resolved)
    if isinstance(published, Err):
        return published
    console.success(f"{resolved.package.name} {resolved.version} is not published yet")

    if request.dry_run:
        return Ok(None)

    if not repo.exists():
        return Err(
            ReleaseError(
                kind="git_failed",
                message=f"{repo.path} is not a git repository",
                hint="A real release commits, tags and pushes; run it from a git checkout.",
                stage="preflight",
            )
        )
    if not repo.is_clean():
        return Err(
            ReleaseError(
                kind="git_failed",
                message="working tree is not clean",
                hint="Commit or stash local changes before releasing.",
                stage="preflight",
            )
        )

    if request.create_release and request.push:
        # The hosted release comes after the irreversible publish.
        available = ensure_gh_available()
        if isinstance(available, Err):
            return Err(replace(available.error, stage="preflight"))
        auth = ensure_gh_auth(root=root)
        if isinstance(auth, Err):
            return Err(replace(auth.error, stage="preflight"))
        console.success("gh is ready for the hosted release")
    return Ok(None)


def _release_resume_hint(package: ReleasePackage, tags: TagPair) -> str:
    since = f" --from {tags.old}" if tags.old else ""
    return (
        "The package is published and tagged; create the release by hand: "
        f"pkgrel release changelog {package.path}{since} --to {tags.new} | gh release create {tags.new} -F -"
    )


def _restore_manifest(snapshot: FileSnapshot) -> Result[None, ReleaseError]:
    try:
        snapshot.restore()
    except OSError as e:
        return Err(
            ReleaseError(
                kind="invalid_manifest",
                message=f"failed to restore {snapshot.path}: {e}",
                hint=f"Restore it by hand: git checkout -- {snapshot.path}",
                stage="resolve",
            )
        )
    return Ok(None)


def _gate_commit_publish(
    *,
    root: Path,
    request: ReleaseRequest,
    resolved: ResolvedVersion,
    repo: Repository,
    registry: Registry,
    config: ReleaseConfig,
    console: ConsoleProtocol,
) -> tuple[Result[tuple[GateReport, PublishOutcome], ReleaseError], bool]:
    """Returns the stage result and whether the manifest now belongs to HEAD."""
    applied = apply_version(root=root, resolved=resolved, repo=repo, commit_message=None)
    if isinstance(applied, Err):
        return applied, False
    changed = applied.value

    console.header("Gates")
    gates = run_gates(root=root, resolved=resolved, config=config, registry=registry, console=console)
    if isinstance(gates, Err):
        return gates, False

    committed = False
    if not request.dry_run:
        if changed:
            message = config.format_commit_message(name=resolved.package.name, version=resolved.version)
            sha = commit_version(root=root, resolved=resolved, repo=repo, message=message)
            if isinstance(sha, Err):
                return sha, False
            console.success(f"Committed '{message}' ({sha.value[:8]})")
        else:
            console.info(f"Manifest already at {resolved.version}; releasing HEAD as is")
        committed = True

    console.header("Publish")
    outcome = publish_package(
        root=root,
        request=request,
        resolved=resolved,
        repo=repo,
        registry=registry,
        config=config,
        console=console,
    )
    if isinstance(outcome, Err):
        return outcome, committed
    return Ok((gates.value, outcome.value)), committed


def _bump_gate_publish(
    *,
    root: Path,
    request: ReleaseRequest,
    resolved: ResolvedVersion,
    repo: Repository,
    registry: Registry,
    config: ReleaseConfig,
    console: ConsoleProtocol,
) -> Result[tuple[GateReport, PublishOutcome], ReleaseError]:
    """Write the bump, gate it, commit it (real runs only) and publish.

    The manifest is restored byte for byte unless the bump was committed, so a
    dry run or a failed gate leaves the working tree as it found it. A version
    already in the manifest needs no commit; HEAD is the release commit.
    """
    snapshot = FileSnapshot.take(resolved.package.manifest_path(root))
    try:
        result, committed = _gate_commit_publish(
            root=root,
            request=request,
            resolved=resolved,
            repo=repo,
            registry=registry,
            config=config,
            console=console,
        )
    except Exception:
        snapshot.restore()
        raise

    if committed:
        return result

    restored = _restore_manifest(snapshot)
    if isinstance(restored, Err):
        if isinstance(result, Ok):
            return restored
        console.error(restored.error.message)
    return result


def _changelog(
    *,
    request: ReleaseRequest,
    plan: ReleasePlan,
    outcome: PublishOutcome,
    repo: Repository,
    warnings: list[str],
    console: ConsoleProtocol,
) -> ChangelogDocument | None:
    if outcome.tags is not None:
        old_tag, new_ref = outcome.tags.old, outcome.tags.new
    else:
        old_tag, new_ref = plan.old_tag, "HEAD"

    doc = emit_changelog(
        repo=repo,
        package_path=plan.resolved.package.path,
        old_tag=old_tag,
        new_ref=new_ref,
    )
    if isinstance(doc, Err):
        warning = f"changelog: {doc.error.message}"
        warnings.append(warning)
        console.warning(warning)
        return None

    console.success(f"{len(doc.value.entries)} commit(s) since {old_tag or 'the first commit'}")
    if request.dry_run:
        console.print("Changelog preview:", Style.DIM)
    return doc.value


def run_release(
    *,
    root: Path,
    request: ReleaseRequest,
    config: ReleaseConfig,
    console: ConsoleProtocol,
    registry: Registry | None = None,
    http: HttpClient | None = None,
    repo: Repository | None = None,
) -> Result[PipelineReport, ReleaseError]:
    """Run one release end to end.

    Under dry_run nothing durable happens: the registry only validates, no
    commit or tag is created, nothing is pushed and no hosted release is made.
    """
    repo = repo or Repository(root, identity=config.git_identity)
    warnings: list[str] = []

    console.header(f"Release {request.package} ({request.bump_spec})")
    plan = plan_release(root=root, request=request, config=config, repo=repo)
    if isinstance(plan, Err):
        return plan
    resolved = plan.value.resolved
    console.success(f"{resolved.package.name}: {resolved.previous} -> {resolved.version}")
    if request.dry_run:
        console.print("Dry run: nothing will be published, committed, tagged or pushed", Style.DIM)

    registry = registry or registry_for(resolved.package, http or RealHttpClient())

    console.header("Preflight")
    ready = _preflight(root=root, request=request, resolved=resolved, repo=repo, registry=registry, console=console)
    if isinstance(ready, Err):
        return ready

    done = _bump_gate_publish(
        root=root,
        request=request,
        resolved=resolved,
        repo=repo,
        registry=registry,
        config=config,
        console=console,
    )
    if isinstance(done, Err):
        return done
    gates, outcome = done.value
    if not gates.verdict.checked:
        warnings.append(f"public API of {resolved.package.name} was not checked")

    if not request.create_release:
        return Ok(
            PipelineReport(
                request=request,
                resolved=resolved,
                gates=gates,
                publish=outcome,
                warnings=tuple(warnings),
            )
        )

    console.header("Changelog")
    doc = _changelog(
        request=request,
        plan=plan.value,
        outcome=outcome,
        repo=repo,
        warnings=warnings,
        console=console,
    )
    body = render_changelog(doc, config.github_repo) if doc is not None else ""
    if request.dry_run and body:
        console.print(body)

    record: ReleaseRecord | None = None
    if not request.dry_run:
        console.header("Release")
        if outcome.pushed:
            created = create_release(
                root=root,
                tag=outcome.planned_tag,
                body=body,
                github_repo=config.github_repo,
            )
            if isinstance(created, Err):
                error = created.error
                details = error.details + ((error.hint,) if error.hint else ())
                tags = outcome.tags or TagPair(old=plan.value.old_tag, new=outcome.planned_tag)
                return Err(replace(error, hint=_release_resume_hint(resolved.package, tags), details=details))
            record = created.value
            console.success(f"Release {record.tag} created" + (f": {record.url}" if record.url else ""))
        else:
            warning = f"{outcome.planned_tag} was not pushed; hosted release skipped"
            warnings.append(warning)
            console.warning(warning)

    return Ok(
        PipelineReport(
            request=request,
            resolved=resolved,
            gates=gates,
            publish=outcome,
            changelog=doc,
            record=record,
            warnings=tuple(warnings),
        )
    )
