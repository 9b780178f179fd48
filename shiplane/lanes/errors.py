"""Error payload shared by every lane stage."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

from shiplane.core.errors import ErrorCode

LaneErrorKind = Literal[
    "missing_parameter",
    "invalid_input",
    "tool_missing",
    "auth_required",
    "stage_failed",
    "io_failed",
    "notify_failed",
]


@dataclass(frozen=True, slots=True)
class LaneError:
    """Canonical lane error.

    ``stage`` is filled in by the orchestrator when the error crosses a
    stage boundary, so the message can stay the external tool's own text.
    """

    kind: LaneErrorKind
    message: str
    hint: str | None = None
    stage: str | None = None

    def in_stage(self, stage: str) -> LaneError:
        if self.stage is not None:
            return self
        return replace(self, stage=stage)


def lane_error_code(kind: LaneErrorKind) -> ErrorCode:
    if kind in {"missing_parameter", "invalid_input"}:
        return ErrorCode.USER_ERROR
    if kind in {"tool_missing", "auth_required"}:
        return ErrorCode.ENV_ERROR
    if kind == "notify_failed":
        return ErrorCode.NETWORK_ERROR
    if kind == "io_failed":
        return ErrorCode.IO_ERROR
    return ErrorCode.STAGE_ERROR
