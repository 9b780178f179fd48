from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

StageStatus = Literal["ok", "failed", "skipped"]


@dataclass(frozen=True, slots=True)
class StageRecord:
    name: str
    status: StageStatus
    seconds: float = 0.0
    detail: str | None = None


def _empty_records() -> list[StageRecord]:
    return []


@dataclass
class LaneReport:
    """What happened during one lane run, in stage order."""

    lane: str
    records: list[StageRecord] = field(default_factory=_empty_records)
    facts: dict[str, str] = field(default_factory=dict)

    @property
    def failed(self) -> StageRecord | None:
        for record in self.records:
            if record.status == "failed":
                return record
        return None

    @property
    def succeeded(self) -> bool:
        return self.failed is None

    @property
    def total_seconds(self) -> float:
        return sum(r.seconds for r in self.records)

    def stage_names(self, status: StageStatus | None = None) -> list[str]:
        return [r.name for r in self.records if status is None or r.status == status]

    def rows(self) -> list[tuple[str, str, str]]:
        return [
            (r.name, r.status, f"{r.seconds:.1f}s" if r.status != "skipped" else "-")
            for r in self.records
        ]
