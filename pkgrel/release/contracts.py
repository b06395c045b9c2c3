"""Cross-layer contracts for the release pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

BumpLevel = Literal["patch", "minor", "major", "rc", "beta", "alpha", "release", "version"]

BUMP_LEVELS: tuple[BumpLevel, ...] = (
    "patch",
    "minor",
    "major",
    "rc",
    "beta",
    "alpha",
    "release",
    "version",
)


@dataclass(frozen=True, slots=True)
class ReleaseRequest:
    """One release invocation, normalized by the CLI and never mutated.

    Attributes:
        package: Package path relative to the repository root.
        level: Requested bump; "version" means `version` holds an explicit value.
        version: Explicit target version, only meaningful with level "version".
        dry_run: Validate everything, change nothing durable.
        create_release: Emit a changelog and a hosted release after publishing.
        push: Push the release commit and tag after publishing.
    """

    package: str
    level: BumpLevel
    version: str | None = None
    dry_run: bool = True
    create_release: bool = True
    push: bool = True

    @property
    def bump_spec(self) -> str:
        """The bump as the user expressed it ("patch", ..., or the explicit version)."""
        if self.level == "version":
            return self.version or ""
        return self.level
