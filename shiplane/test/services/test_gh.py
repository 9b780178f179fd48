from __future__ import annotations

from pathlib import Path

import pytest

from shiplane.core.result import Err, Ok
from shiplane.output.console import MockConsole
from shiplane.platform.process import ProcessError
from shiplane.services import gh as gh_mod


def _err(*, stderr: str, returncode: int = 1) -> Err[ProcessError]:
    return Err(
        ProcessError(
            command=("gh", "release", "view", "1.2.0"),
            returncode=returncode,
            stdout="",
            stderr=stderr,
        )
    )


def _no_sleep(seconds: float) -> None:
    del seconds


def _script(monkeypatch: pytest.MonkeyPatch, responses: list[object]) -> list[list[str]]:
    calls: list[list[str]] = []

    def fake_run(cmd: list[str], *, cwd: Path, timeout: float | None = None):
        del cwd
        del timeout
        calls.append(cmd)
        return responses.pop(0)

    monkeypatch.setattr(gh_mod, "run_process", fake_run)
    monkeypatch.setattr(gh_mod, "sleep", _no_sleep)
    return calls


def test_release_exists_retries_transient_error(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    calls = _script(
        monkeypatch,
        [_err(stderr="HTTP 503 Service Unavailable"), Ok('{"tagName": "1.2.0"}')],
    )

    result = gh_mod.release_exists(root=tmp_path, repo="acme/App", tag="1.2.0", timeout=5)

    assert result == Ok(True)
    assert len(calls) == 2


def test_release_exists_not_found(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = _script(monkeypatch, [_err(stderr="release not found")])

    result = gh_mod.release_exists(root=tmp_path, repo="acme/App", tag="1.2.0", timeout=5)

    assert result == Ok(False)
    assert len(calls) == 1


def test_release_exists_gives_up_after_retries(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    calls = _script(monkeypatch, [_err(stderr="HTTP 502 Bad Gateway") for _ in range(3)])

    result = gh_mod.release_exists(root=tmp_path, repo="acme/App", tag="1.2.0", timeout=5)

    assert isinstance(result, Err)
    assert result.error.kind == "stage_failed"
    assert len(calls) == gh_mod.GH_READ_RETRY_ATTEMPTS


def test_create_release_returns_url(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    calls = _script(monkeypatch, [Ok("https://github.com/acme/App/releases/tag/1.2.0\n")])

    result = gh_mod.create_release(
        root=tmp_path, repo="acme/App", tag="1.2.0", notes="### Added\n* X", timeout=5
    )

    assert result == Ok("https://github.com/acme/App/releases/tag/1.2.0")
    assert calls[0] == [
        "gh",
        "release",
        "create",
        "1.2.0",
        "--repo",
        "acme/App",
        "--title",
        "1.2.0",
        "--notes",
        "### Added\n* X",
    ]


def test_ensure_gh_auth_failure(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    _script(monkeypatch, [_err(stderr="You are not logged into any GitHub hosts")])

    result = gh_mod.ensure_gh_auth(root=tmp_path, timeout=5)

    assert isinstance(result, Err)
    assert result.error.kind == "auth_required"


class TestPublisher:
    def test_dry_run_touches_nothing(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        calls = _script(monkeypatch, [])
        console = MockConsole()
        publisher = gh_mod.GhReleasePublisher(
            root=tmp_path, console=console, timeout=5, dry_run=True
        )

        result = publisher.publish(repo="acme/App", version="1.2.0", notes="notes")

        assert isinstance(result, Ok)
        assert calls == []
        assert console.find("gh release create 1.2.0")

    def test_existing_release_is_rejected(
        self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path
    ) -> None:
        monkeypatch.setattr(gh_mod.shutil, "which", lambda name: f"/usr/bin/{name}")
        calls = _script(monkeypatch, [Ok("logged in"), Ok('{"tagName": "1.2.0"}')])
        publisher = gh_mod.GhReleasePublisher(root=tmp_path, console=MockConsole(), timeout=5)

        result = publisher.publish(repo="acme/App", version="1.2.0", notes="notes")

        assert isinstance(result, Err)
        assert "already exists" in result.error.message
        assert len(calls) == 2

    def test_creates_release(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setattr(gh_mod.shutil, "which", lambda name: f"/usr/bin/{name}")
        calls = _script(
            monkeypatch,
            [
                Ok("logged in"),
                _err(stderr="release not found"),
                Ok("https://github.com/acme/App/releases/tag/1.2.0"),
            ],
        )
        publisher = gh_mod.GhReleasePublisher(root=tmp_path, console=MockConsole(), timeout=5)

        result = publisher.publish(repo="acme/App", version="1.2.0", notes="notes")

        assert result == Ok("https://github.com/acme/App/releases/tag/1.2.0")
        assert calls[-1][:3] == ["gh", "release", "create"]

    def test_missing_gh(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.setattr(gh_mod.shutil, "which", lambda name: None)
        publisher = gh_mod.GhReleasePublisher(root=tmp_path, console=MockConsole(), timeout=5)

        result = publisher.publish(repo="acme/App", version="1.2.0", notes="notes")

        assert isinstance(result, Err)
        assert result.error.kind == "tool_missing"
