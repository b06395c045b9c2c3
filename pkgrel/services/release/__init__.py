"""Release pipeline stages and their orchestrator."""

from pkgrel.services.release.pipeline import ReleasePlan, plan_release, run_gates, run_release

__all__ = [
    "ReleasePlan",
    "plan_release",
    "run_gates",
    "run_release",
]
