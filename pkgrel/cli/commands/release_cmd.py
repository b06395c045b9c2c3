from __future__ import annotations

from typing import cast

import typer

from pkgrel.cli.commands._helpers import exit_on_release_error
from pkgrel.cli.context import CLIContext, build_context
from pkgrel.core.result import Err
from pkgrel.git.repository import Repository
from pkgrel.output.console import ConsoleProtocol, Style
from pkgrel.release.contracts import BUMP_LEVELS, BumpLevel, ReleaseRequest
from pkgrel.release.errors import ReleaseError
from pkgrel.services.release.changelog import emit_changelog, render_changelog
from pkgrel.services.release.manifest import read_manifest
from pkgrel.services.release.model import PipelineReport
from pkgrel.services.release.packages import find_package, known_packages
from pkgrel.services.release.pipeline import ReleasePlan, plan_release, run_release

release_app = typer.Typer(add_completion=False, no_args_is_help=True)

_LEVEL_HELP = "patch, minor, major, rc, beta, alpha, release, or version (with --version)"


def _parse_level(level: str, version: str | None, ctx: CLIContext) -> BumpLevel:
    raw = level.strip().lower()
    if raw not in BUMP_LEVELS:
        exit_on_release_error(
            ReleaseError(
                kind="invalid_bump",
                message=f"invalid --level: {level}",
                hint=f"Expected one of: {', '.join(BUMP_LEVELS)}",
                stage="resolve",
            ),
            ctx.console,
        )
    if version is not None and raw != "version":
        exit_on_release_error(
            ReleaseError(
                kind="invalid_bump",
                message="--version is only valid with --level version",
                stage="resolve",
            ),
            ctx.console,
        )
    return cast(BumpLevel, raw)


def _repo(ctx: CLIContext) -> Repository:
    return Repository(ctx.workspace.root, identity=ctx.config.git_identity)


def _print_plan(*, plan: ReleasePlan, console: ConsoleProtocol) -> None:
    r = plan.resolved
    console.header(f"Plan: {r.package.name}")
    console.print(f"path: {r.package.path} ({r.package.kind})")
    console.print(f"version: {r.previous} -> {r.version} ({r.bump})")
    console.print(f"profiles: {', '.join(r.package.profiles)}")
    console.print(f"previous tag: {plan.old_tag or '(none)'}")
    console.print(f"new tag: {plan.new_tag}")


def _print_report(*, report: PipelineReport, console: ConsoleProtocol) -> None:
    outcome = report.publish
    console.header("Summary")
    console.print(f"{report.resolved.package.name}: {report.resolved.previous} -> {report.resolved.version}")
    for result in report.gates.build_test.results:
        console.print(f"{result.step.label}: {'ok' if result.ok else 'failed'}", Style.DIM)
    if outcome.dry_run:
        console.success(f"Dry run complete; {outcome.planned_tag} was not created")
        console.print("Re-run with --execute to publish.", Style.DIM)
    else:
        console.success(f"Released {outcome.planned_tag}")
        if report.record is not None and report.record.url:
            console.print(report.record.url, Style.DIM)
    for warning in report.warnings:
        console.warning(warning)


@release_app.command("run")
def run_cmd(
    package: str = typer.Argument(..., help="Package path (or registry name)"),
    level: str = typer.Option(..., "--level", "-l", help=_LEVEL_HELP),
    version: str | None = typer.Option(None, "--version", help="Explicit version for --level version"),
    dry_run: bool = typer.Option(
        True, "--dry-run/--execute", help="Simulate (default) or really publish"
    ),
    create_release: bool = typer.Option(
        True,
        "--create-release/--no-create-release",
        help="Emit a changelog and a GitHub release",
    ),
    push: bool = typer.Option(True, "--push/--no-push", help="Push the release commit and tag"),
) -> None:
    """Release one package: bump, gate, publish, tag, changelog."""
    ctx = build_context()
    request = ReleaseRequest(
        package=package,
        level=_parse_level(level, version, ctx),
        version=version,
        dry_run=dry_run,
        create_release=create_release,
        push=push,
    )

    result = run_release(
        root=ctx.workspace.root,
        request=request,
        config=ctx.config,
        console=ctx.console,
        repo=_repo(ctx),
    )
    if isinstance(result, Err):
        exit_on_release_error(result.error, ctx.console)

    _print_report(report=result.value, console=ctx.console)


@release_app.command("plan")
def plan_cmd(
    package: str = typer.Argument(..., help="Package path (or registry name)"),
    level: str = typer.Option(..., "--level", "-l", help=_LEVEL_HELP),
    version: str | None = typer.Option(None, "--version", help="Explicit version for --level version"),
) -> None:
    """Show the version and tags a release would use (no side effects)."""
    ctx = build_context()
    request = ReleaseRequest(package=package, level=_parse_level(level, version, ctx), version=version)

    plan = plan_release(
        root=ctx.workspace.root,
        request=request,
        config=ctx.config,
        repo=_repo(ctx),
    )
    if isinstance(plan, Err):
        exit_on_release_error(plan.error, ctx.console)

    _print_plan(plan=plan.value, console=ctx.console)


@release_app.command("packages")
def packages_cmd() -> None:
    """List the releasable packages of this repository."""
    ctx = build_context()
    packages = known_packages(ctx.workspace.root, ctx.config)
    if isinstance(packages, Err):
        exit_on_release_error(packages.error, ctx.console)

    if not packages.value:
        ctx.console.warning("no releasable packages found")
        return

    source = "release.toml" if ctx.config.packages else "discovered"
    ctx.console.header(f"Packages ({source})")
    for p in packages.value:
        ctx.console.print(f"{p.path}  {p.name}  [{p.kind}]  {', '.join(p.profiles)}  ${p.token_env}")


@release_app.command("changelog")
def changelog_cmd(
    package: str = typer.Argument(..., help="Package path (or registry name)"),
    from_ref: str | None = typer.Option(
        None, "--from", help="Exclusive start (default: tag of the current version)"
    ),
    to_ref: str = typer.Option("HEAD", "--to", help="Inclusive end"),
) -> None:
    """Print the changelog of one package between two refs."""
    ctx = build_context()
    root = ctx.workspace.root
    repo = _repo(ctx)

    packages = known_packages(root, ctx.config)
    if isinstance(packages, Err):
        exit_on_release_error(packages.error, ctx.console)
    found = find_package(packages.value, package)
    if isinstance(found, Err):
        exit_on_release_error(found.error, ctx.console)
    pkg = found.value

    since = from_ref
    if since is None:
        info = read_manifest(pkg.manifest_path(root), pkg.kind)
        if isinstance(info, Err):
            exit_on_release_error(info.error, ctx.console)
        current_tag = ctx.config.format_tag(name=pkg.name, version=info.value.version)
        if repo.tag_exists(current_tag):
            since = current_tag
        else:
            ctx.console.print(f"{current_tag} not found; using the whole history", Style.DIM)

    doc = emit_changelog(repo=repo, package_path=pkg.path, old_tag=since, new_ref=to_ref)
    if isinstance(doc, Err):
        exit_on_release_error(doc.error, ctx.console)

    ctx.console.print(render_changelog(doc.value, ctx.config.github_repo))
