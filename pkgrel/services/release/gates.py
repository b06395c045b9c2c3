"""Format, lint, multi-profile build and test gate.

Depends only on the package path, never on the resolved version. Every step
runs even after a failure so the report lists each failing profile.
"""

from __future__ import annotations

from pathlib import Path

from pkgrel.core.result import Err
from pkgrel.output.console import ConsoleProtocol
from pkgrel.platform.process import run as run_process
from pkgrel.services.release.config import WASM_TARGET
from pkgrel.services.release.model import BuildTestReport, GateStep, ReleasePackage, StepResult
from pkgrel.services.release.timeouts import TOOL_TIMEOUT_SECONDS


def _cargo_steps(package: ReleasePackage) -> list[GateStep]:
    manifest = f"{package.path}/Cargo.toml"
    mp = ("--manifest-path", manifest)

    steps = [
        GateStep("format", None, ("cargo", "fmt", *mp, "--", "--check"), "."),
        GateStep("lint", None, ("cargo", "clippy", *mp, "--all-targets", "--", "--deny=warnings"), "."),
    ]
    for profile in package.profiles:
        match profile:
            case "native":
                argv: tuple[str, ...] = ("cargo", "build", *mp)
            case "sbf":
                argv = ("cargo", "build-sbf", *mp)
            case "wasm":
                argv = ("cargo", "build", *mp, "--target", WASM_TARGET)
        steps.append(GateStep("build", profile, argv, "."))
    steps.append(GateStep("test", None, ("cargo", "test", *mp), "."))
    return steps


def _npm_steps(package: ReleasePackage) -> list[GateStep]:
    return [
        GateStep("format", None, ("pnpm", "run", "format"), package.path),
        GateStep("lint", None, ("pnpm", "run", "lint"), package.path),
        GateStep("build", "native", ("pnpm", "run", "build"), package.path),
        GateStep("test", None, ("pnpm", "run", "test"), package.path),
    ]


def gate_steps(package: ReleasePackage) -> list[GateStep]:
    """Steps in run order: format, lint, one build per profile, then tests."""
    if package.kind == "cargo":
        return _cargo_steps(package)
    return _npm_steps(package)


def run_step(*, root: Path, step: GateStep, console: ConsoleProtocol) -> StepResult:
    console.debug("$ " + " ".join(step.argv))
    result = run_process(list(step.argv), cwd=root / step.cwd, timeout=TOOL_TIMEOUT_SECONDS)
    if isinstance(result, Err):
        console.error(f"{step.label}: {result.error}")
        tail = result.error.tail()
        if tail:
            console.debug(tail)
        return StepResult(step=step, ok=False, output_tail=tail)

    console.success(step.label)
    return StepResult(step=step, ok=True)


def run_build_test(*, root: Path, package: ReleasePackage, console: ConsoleProtocol) -> BuildTestReport:
    results = [run_step(root=root, step=s, console=console) for s in gate_steps(package)]
    return BuildTestReport(results=tuple(results))
