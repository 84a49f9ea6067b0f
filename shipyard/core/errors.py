"""Process exit codes for the shipyard CLI.

The numeric values are part of the CLI contract (CI jobs branch on them)
and must remain stable:

- 0: Success
- 1: User error (unknown operation, missing version, bad option)
- 2: Environment error (missing tools, incomplete credentials)
- 3: Build error (an external build/package/sign step failed)
- 4: Service error (backend rejected or unreachable, notarization failed)
- 5: I/O error (artifact missing or corrupt)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    SERVICE_ERROR = 4
    IO_ERROR = 5

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK
