"""Webhook transport.

``ChatNotifier`` depends on the ``HttpClient`` protocol only; the urllib
implementation posts for real and ``MockHttpClient`` records payloads.
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from shiplane import __version__
from shiplane.core.result import Err, Ok, Result

__all__ = ["HttpClient", "HttpError", "MockHttpClient", "RealHttpClient"]


@dataclass(frozen=True, slots=True)
class HttpError:
    """A failed POST. ``status`` is 0 when no HTTP response was received."""

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        return f"HTTP {self.status}: {self.message}" if self.status else self.message


@runtime_checkable
class HttpClient(Protocol):
    def post_json(self, url: str, payload: dict[str, object]) -> Result[str, HttpError]:
        """POST ``payload`` as JSON and return the response body."""
        ...


def _to_http_error(url: str, exc: Exception) -> HttpError:
    match exc:
        case urllib.error.HTTPError():
            return HttpError(url=url, status=exc.code, message=str(exc.reason))
        case urllib.error.URLError():
            return HttpError(url=url, status=0, message=str(exc.reason))
        case TimeoutError():
            return HttpError(url=url, status=0, message="request timed out")
        case _:
            return HttpError(url=url, status=0, message=str(exc))


class RealHttpClient:
    """urllib client verifying TLS against the system certificate store."""

    def __init__(self, timeout: float = 15.0, user_agent: str = f"shiplane/{__version__}") -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._tls = ssl.create_default_context()

    def _request(self, url: str, payload: dict[str, object]) -> urllib.request.Request:
        return urllib.request.Request(
            url,
            data=json.dumps(payload).encode("utf-8"),
            method="POST",
            headers={"User-Agent": self.user_agent, "Content-Type": "application/json"},
        )

    def post_json(self, url: str, payload: dict[str, object]) -> Result[str, HttpError]:
        try:
            request = self._request(url, payload)
            with urllib.request.urlopen(request, timeout=self.timeout, context=self._tls) as resp:
                body: bytes = resp.read()
        # HTTPError and URLError are OSError subclasses; ValueError covers a malformed URL.
        except (OSError, ValueError) as e:
            return Err(_to_http_error(url, e))
        return Ok(body.decode("utf-8", errors="replace"))


class MockHttpClient:
    """Records every POST; URLs registered with ``fail`` return that error."""

    def __init__(self) -> None:
        self.posts: list[tuple[str, dict[str, object]]] = []
        self._failures: dict[str, HttpError] = {}

    def fail(self, url: str, error: HttpError) -> None:
        self._failures[url] = error

    def post_json(self, url: str, payload: dict[str, object]) -> Result[str, HttpError]:
        self.posts.append((url, payload))
        error = self._failures.get(url)
        return Ok("ok") if error is None else Err(error)
