"""Linear stage runner shared by every lane.

A lane is an ordered list of stages. Stages run one after another; the first
``Err`` stops the lane, the remaining stages are recorded as skipped, and the
completion hook posts exactly one failure notification. There is no retry
and no rollback at this layer.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from time import monotonic

from shiplane.core.result import Err, Ok, Result
from shiplane.lanes.errors import LaneError
from shiplane.lanes.report import LaneReport, StageRecord
from shiplane.output.console import ConsoleProtocol
from shiplane.services.notify import Notifier

StageFn = Callable[[], Result[None, LaneError]]


@dataclass(frozen=True, slots=True)
class Stage:
    name: str
    run: StageFn


def _no_notes() -> str | None:
    return None


def run_lane(
    *,
    report: LaneReport,
    stages: Sequence[Stage],
    console: ConsoleProtocol,
    notifier: Notifier,
    notes: Callable[[], str | None] = _no_notes,
) -> Result[LaneReport, LaneError]:
    total = len(stages)
    for index, stage in enumerate(stages, start=1):
        console.header(f"[{index}/{total}] {stage.name}")
        started = monotonic()
        result = stage.run()
        elapsed = monotonic() - started

        if isinstance(result, Err):
            error = result.error.in_stage(stage.name)
            report.records.append(
                StageRecord(name=stage.name, status="failed", seconds=elapsed, detail=error.message)
            )
            report.records.extend(StageRecord(name=s.name, status="skipped") for s in stages[index:])
            print_summary(report, console)
            _warn_on_notify_error(notifier.lane_failed(report, error), console)
            return Err(error)

        report.records.append(StageRecord(name=stage.name, status="ok", seconds=elapsed))

    print_summary(report, console)
    _warn_on_notify_error(notifier.lane_succeeded(report, notes=notes()), console)
    return Ok(report)


def print_summary(report: LaneReport, console: ConsoleProtocol) -> None:
    rows = [*report.rows(), *((k, v, "") for k, v in report.facts.items())]
    console.table(f"Summary: {report.lane}", ("stage", "status", "time"), rows)


def _warn_on_notify_error(result: Result[None, LaneError], console: ConsoleProtocol) -> None:
    if isinstance(result, Err):
        console.warning(result.error.message)
