"""Exit codes for the pkgrel CLI.

Each release failure kind maps to one of these codes (see
`pkgrel.cli.commands._helpers.exit_code_for`). The numeric values are part of
the CLI contract and should remain stable:
- 0: Success
- 1: User error (unknown package, invalid bump)
- 2: Environment error (missing registry token, missing gh)
- 3: Gate error (compatibility or build/test failure)
- 4: Network error (registry, push, release creation)
- 5: I/O error (manifest or git failure)
- 6: Already published (nothing to do)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    GATE_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    ALREADY_PUBLISHED = 6

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
