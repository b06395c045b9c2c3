from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pkgrel.core.config import BuildProfile, PackageKind
from pkgrel.release.contracts import ReleaseRequest
from pkgrel.services.release.config import MANIFEST_FILES

GateStepName = Literal["format", "lint", "build", "test"]


@dataclass(frozen=True, slots=True)
class ReleasePackage:
    """A releasable package from the repository's closed package set."""

    path: str  # relative to the repository root
    name: str  # registry name, read from the manifest
    kind: PackageKind
    profiles: tuple[BuildProfile, ...]
    token_env: str

    def directory(self, root: Path) -> Path:
        return root / self.path

    def manifest_path(self, root: Path) -> Path:
        return root / self.path / MANIFEST_FILES[self.kind]


@dataclass(frozen=True, slots=True)
class ResolvedVersion:
    package: ReleasePackage
    previous: str
    version: str
    bump: str


@dataclass(frozen=True, slots=True)
class BreakingChange:
    item: str
    kind: str

    def describe(self) -> str:
        return f"{self.kind}: {self.item}"


@dataclass(frozen=True, slots=True)
class CompatibilityVerdict:
    passed: bool
    breaking: tuple[BreakingChange, ...] = ()
    # False when no API checker exists for the package kind.
    checked: bool = True


@dataclass(frozen=True, slots=True)
class GateStep:
    name: GateStepName
    profile: BuildProfile | None
    argv: tuple[str, ...]
    cwd: str  # relative to the repository root

    @property
    def label(self) -> str:
        if self.profile is None:
            return self.name
        return f"{self.name} ({self.profile})"


@dataclass(frozen=True, slots=True)
class StepResult:
    step: GateStep
    ok: bool
    output_tail: str = ""


@dataclass(frozen=True, slots=True)
class BuildTestReport:
    results: tuple[StepResult, ...]

    @property
    def passed(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def failures(self) -> tuple[StepResult, ...]:
        return tuple(r for r in self.results if not r.ok)


@dataclass(frozen=True, slots=True)
class GateReport:
    verdict: CompatibilityVerdict
    build_test: BuildTestReport


@dataclass(frozen=True, slots=True)
class TagPair:
    old: str | None  # None on the package's first release
    new: str


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    version: str
    planned_tag: str
    dry_run: bool
    tags: TagPair | None = None
    pushed: bool = False


@dataclass(frozen=True, slots=True)
class ChangelogEntry:
    sha: str
    author: str
    date: str
    subject: str
    group: str

    @property
    def short_sha(self) -> str:
        return self.sha[:8]


@dataclass(frozen=True, slots=True)
class ChangelogDocument:
    package_path: str
    since: str | None  # exclusive
    until: str  # inclusive
    entries: tuple[ChangelogEntry, ...]


@dataclass(frozen=True, slots=True)
class ReleaseRecord:
    tag: str
    body: str
    url: str | None = None


@dataclass(frozen=True, slots=True)
class PipelineReport:
    request: ReleaseRequest
    resolved: ResolvedVersion
    gates: GateReport
    publish: PublishOutcome
    changelog: ChangelogDocument | None = None
    record: ReleaseRecord | None = None
    warnings: tuple[str, ...] = ()
