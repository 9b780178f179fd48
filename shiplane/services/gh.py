from __future__ import annotations

import shlex
import shutil
from pathlib import Path
from time import sleep
from typing import Protocol

from shiplane.core.result import Err, Ok, Result
from shiplane.lanes.errors import LaneError, LaneErrorKind
from shiplane.output.console import ConsoleProtocol, Style
from shiplane.platform.process import ProcessError
from shiplane.platform.process import run as run_process

GH_READ_RETRY_ATTEMPTS = 3
GH_READ_RETRY_DELAY_SECONDS = 1.0


class ReleasePublisher(Protocol):
    def publish(self, *, repo: str, version: str, notes: str) -> Result[str, LaneError]:
        """Create a hosted release named and tagged ``version``; return its URL."""
        ...


def _is_transient_gh_error(error: ProcessError) -> bool:
    text = f"{error.stderr}\n{error.stdout}".lower()
    markers = (
        "timed out",
        "timeout",
        "connection reset",
        "connection refused",
        "temporarily unavailable",
        "service unavailable",
        "bad gateway",
        "gateway timeout",
        "http 429",
        "http 500",
        "http 502",
        "http 503",
        "http 504",
    )
    return any(marker in text for marker in markers)


def run_gh_read(
    *,
    root: Path,
    cmd: list[str],
    kind: LaneErrorKind,
    message: str,
    timeout: float,
    retry_attempts: int = GH_READ_RETRY_ATTEMPTS,
) -> Result[str, ProcessError | LaneError]:
    """Run an idempotent gh query, retrying transient network failures.

    Non-transient failures are returned as the raw ``ProcessError`` so the
    caller can tell "not found" apart from a real error.
    """
    attempts = max(1, retry_attempts)
    for attempt in range(attempts):
        result = run_process(cmd, cwd=root, timeout=timeout)
        if isinstance(result, Ok):
            return result

        error = result.error
        if not _is_transient_gh_error(error):
            return result
        if attempt < attempts - 1:
            sleep(GH_READ_RETRY_DELAY_SECONDS * (attempt + 1))
            continue

        return Err(LaneError(kind=kind, message=message, hint=error.stderr.strip() or None))

    return Err(LaneError(kind=kind, message=message))


def ensure_gh_available() -> Result[None, LaneError]:
    if shutil.which("gh") is None:
        return Err(
            LaneError(
                kind="tool_missing",
                message="gh: missing",
                hint="Install GitHub CLI: https://cli.github.com/",
            )
        )
    return Ok(None)


def ensure_gh_auth(*, root: Path, timeout: float) -> Result[None, LaneError]:
    result = run_process(["gh", "auth", "status"], cwd=root, timeout=timeout)
    if isinstance(result, Err):
        return Err(
            LaneError(
                kind="auth_required",
                message="gh auth required",
                hint="Run: gh auth login (or export GITHUB_TOKEN)",
            )
        )
    return Ok(None)


def release_exists(*, root: Path, repo: str, tag: str, timeout: float) -> Result[bool, LaneError]:
    result = run_gh_read(
        root=root,
        cmd=["gh", "release", "view", tag, "--repo", repo, "--json", "tagName"],
        kind="stage_failed",
        message=f"failed to query release {tag} in {repo}",
        timeout=timeout,
    )
    match result:
        case Ok(_):
            return Ok(True)
        case Err(LaneError() as e):
            return Err(e)
        case Err(ProcessError() as e):
            if "not found" in e.stderr.lower():
                return Ok(False)
            return Err(
                LaneError(
                    kind="stage_failed",
                    message=f"failed to query release {tag} in {repo}",
                    hint=e.stderr.strip() or None,
                )
            )
    return Ok(False)


def create_release(
    *,
    root: Path,
    repo: str,
    tag: str,
    notes: str,
    timeout: float,
) -> Result[str, LaneError]:
    cmd = ["gh", "release", "create", tag, "--repo", repo, "--title", tag, "--notes", notes]
    result = run_process(cmd, cwd=root, timeout=timeout)
    if isinstance(result, Err):
        e = result.error
        return Err(
            LaneError(
                kind="stage_failed",
                message=e.detail,
                hint=f"gh release create {tag} --repo {repo}",
            )
        )
    # gh prints the release URL on success.
    return Ok(result.value.strip())


class GhReleasePublisher:
    """Publishes changelog entries as GitHub releases through the gh CLI."""

    def __init__(
        self,
        *,
        root: Path,
        console: ConsoleProtocol,
        timeout: float,
        dry_run: bool = False,
    ) -> None:
        self._root = root
        self._console = console
        self._timeout = timeout
        self._dry_run = dry_run

    def publish(self, *, repo: str, version: str, notes: str) -> Result[str, LaneError]:
        self._console.print(
            shlex.join(["gh", "release", "create", version, "--repo", repo, "--title", version]),
            Style.DIM,
        )
        if self._dry_run:
            return Ok("(dry-run)")

        ok = ensure_gh_available()
        if isinstance(ok, Err):
            return ok
        auth = ensure_gh_auth(root=self._root, timeout=self._timeout)
        if isinstance(auth, Err):
            return auth

        exists = release_exists(root=self._root, repo=repo, tag=version, timeout=self._timeout)
        if isinstance(exists, Err):
            return exists
        if exists.value:
            return Err(
                LaneError(
                    kind="invalid_input",
                    message=f"release {version} already exists in {repo}",
                    hint="bump the version or delete the existing release",
                )
            )

        return create_release(
            root=self._root, repo=repo, tag=version, notes=notes, timeout=self._timeout
        )
