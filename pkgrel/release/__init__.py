"""Release contracts shared by the CLI and the pipeline services."""

from __future__ import annotations

from pkgrel.release.contracts import BUMP_LEVELS, BumpLevel, ReleaseRequest
from pkgrel.release.errors import ReleaseError, ReleaseErrorKind, ReleaseStage

__all__ = [
    "BUMP_LEVELS",
    "BumpLevel",
    "ReleaseError",
    "ReleaseErrorKind",
    "ReleaseRequest",
    "ReleaseStage",
]
