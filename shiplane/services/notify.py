"""Chat notifications for lane completion.

One message per lane run: success with the release facts and the plain
changelog, or failure with the failing stage and its message verbatim.
"""

from __future__ import annotations

from typing import Protocol

from shiplane.core.result import Err, Ok, Result
from shiplane.lanes.errors import LaneError
from shiplane.lanes.report import LaneReport
from shiplane.output.console import ConsoleProtocol, Style
from shiplane.services.http import HttpClient

__all__ = ["ChatNotifier", "Notifier", "build_payload"]

_GOOD = "good"
_DANGER = "danger"
_MAX_TEXT = 3000


class Notifier(Protocol):
    def lane_succeeded(self, report: LaneReport, *, notes: str | None) -> Result[None, LaneError]: ...

    def lane_failed(self, report: LaneReport, error: LaneError) -> Result[None, LaneError]: ...


def _truncate(text: str) -> str:
    if len(text) <= _MAX_TEXT:
        return text
    return text[: _MAX_TEXT - 3].rstrip() + "..."


def build_payload(
    report: LaneReport,
    *,
    error: LaneError | None,
    notes: str | None,
    channel: str | None,
) -> dict[str, object]:
    """Build an incoming-webhook payload (Slack attachment format)."""
    fields: list[dict[str, object]] = [
        {"title": key, "value": value, "short": True} for key, value in report.facts.items()
    ]

    if error is None:
        text = f"Lane `{report.lane}` succeeded in {report.total_seconds:.0f}s"
        color = _GOOD
        if notes:
            fields.append({"title": "Changelog", "value": _truncate(notes), "short": False})
    else:
        stage = error.stage or (report.failed.name if report.failed else "unknown")
        text = f"Lane `{report.lane}` failed at stage `{stage}`"
        color = _DANGER
        fields.append({"title": "Error", "value": _truncate(error.message), "short": False})

    payload: dict[str, object] = {
        "text": text,
        "attachments": [{"color": color, "fields": fields}],
    }
    if channel:
        payload["channel"] = channel
    return payload


class ChatNotifier:
    """Posts lane results to an incoming webhook.

    Without a webhook URL the notifier only prints that it was skipped.
    """

    def __init__(
        self,
        *,
        webhook_url: str | None,
        channel: str | None,
        http: HttpClient,
        console: ConsoleProtocol,
        dry_run: bool = False,
    ) -> None:
        self._url = webhook_url
        self._channel = channel
        self._http = http
        self._console = console
        self._dry_run = dry_run

    def lane_succeeded(self, report: LaneReport, *, notes: str | None) -> Result[None, LaneError]:
        return self._post(build_payload(report, error=None, notes=notes, channel=self._channel))

    def lane_failed(self, report: LaneReport, error: LaneError) -> Result[None, LaneError]:
        return self._post(build_payload(report, error=error, notes=None, channel=self._channel))

    def _post(self, payload: dict[str, object]) -> Result[None, LaneError]:
        if self._url is None:
            self._console.print("notify: no webhook configured (SLACK_URL), skipped", Style.DIM)
            return Ok(None)
        if self._dry_run:
            self._console.print(f"notify: {payload['text']}", Style.DIM)
            return Ok(None)

        result = self._http.post_json(self._url, payload)
        if isinstance(result, Err):
            return Err(
                LaneError(
                    kind="notify_failed",
                    message=f"chat notification failed: {result.error}",
                    hint="check SLACK_URL",
                )
            )
        return Ok(None)
