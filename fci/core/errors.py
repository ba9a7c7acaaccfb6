"""Process exit codes.

Every CLI command ends with one of these codes. The values are part of the
tool's contract with CI hosts and shell scripts and must stay stable:
- 0: Success
- 1: User error (bad arguments, invalid configuration)
- 2: Environment error (no project config, missing tools)
- 3: Build error (a run, job or cell failed)
- 4: Network error (release host unreachable)
- 5: I/O error (packaging, artifact store)
- 130: Cancelled (interrupted by the user)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands."""

    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    BUILD_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
    CANCELLED = 130

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")
