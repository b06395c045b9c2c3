from __future__ import annotations

# gh operations (auth status, release create)
GH_TIMEOUT_SECONDS = 60.0

# Build, test, API check and registry publish: no limit of our own; the tools
# enforce their own timeouts.
TOOL_TIMEOUT_SECONDS: float | None = None
