"""Process exit codes for lanes.

A lane exits with the code of the first failure it hit. The numbers are part
of the CLI contract and must stay stable:
- 0: Lane completed
- 1: User error (missing or invalid lane parameter)
- 2: Environment error (missing tool, credentials or environment variable)
- 3: Stage error (an external action exited non-zero)
- 4: Network error (hosting or chat service unreachable)
- 5: I/O error (changelog, notes or deploy directory unreadable/unwritable)
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    OK = 0
    USER_ERROR = 1
    ENV_ERROR = 2
    STAGE_ERROR = 3
    NETWORK_ERROR = 4
    IO_ERROR = 5
