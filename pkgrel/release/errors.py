"""Error types for the release pipeline."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

ReleaseErrorKind = Literal[
    "unknown_package",
    "invalid_bump",
    "invalid_manifest",
    "config_invalid",
    "git_failed",
    "publish_auth_missing",
    "compatibility_failure",
    "build_test_failure",
    "already_published",
    "tag_exists",
    "registry_failed",
    "publish_failed",
    "push_failed",
    "changelog_failure",
    "gh_missing",
    "gh_auth_required",
    "release_failed",
]

ReleaseStage = Literal[
    "resolve",
    "preflight",
    "compatibility",
    "build-test",
    "publish",
    "changelog",
    "release",
]


@dataclass(frozen=True, slots=True)
class ReleaseError:
    """Canonical release error payload.

    Attributes:
        kind: Machine-readable failure kind; the CLI maps it to an exit code.
        message: One-line description.
        hint: What to do next, when known.
        details: Offending API items or failing steps, one per entry.
        stage: Pipeline stage that failed, set by the orchestrator so the
            report says where to resume.
    """

    kind: ReleaseErrorKind
    message: str
    hint: str | None = None
    details: tuple[str, ...] = ()
    stage: ReleaseStage | None = None

    def at(self, stage: ReleaseStage) -> ReleaseError:
        """Return a copy attributed to a stage (an existing stage is kept)."""
        if self.stage is not None:
            return self
        return replace(self, stage=stage)
