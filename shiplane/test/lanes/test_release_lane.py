from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import pytest

from shiplane.core.config import Config
from shiplane.core.result import Err, Ok, Result
from shiplane.lanes.context import LaneContext
from shiplane.lanes.errors import LaneError
from shiplane.lanes.release import run_refresh_dsyms_lane, run_release_lane, run_test_lane
from shiplane.output.console import MockConsole
from shiplane.services.actions import RecordingActionRunner
from shiplane.services.http import MockHttpClient
from shiplane.services.notify import ChatNotifier

WEBHOOK = "https://hooks.example/T000/B000"

CHANGELOG = """\
# Changelog

## [1.2.0] - 2024-05-01
### Added
* [Feature: Offline mode - caches the last feed.
"""


@dataclass
class FakePublisher:
    fail: str | None = None
    calls: list[tuple[str, str, str]] = field(default_factory=list)
    log: list[str] | None = None

    def publish(self, *, repo: str, version: str, notes: str) -> Result[str, LaneError]:
        self.calls.append((repo, version, notes))
        if self.log is not None:
            self.log.append("publish")
        if self.fail is not None:
            return Err(LaneError(kind="stage_failed", message=self.fail))
        return Ok(f"https://github.com/{repo}/releases/tag/{version}")


@dataclass
class OrderedRunner(RecordingActionRunner):
    """Recording runner that also writes into a shared event log."""

    log: list[str] = field(default_factory=list)

    def run(self, action, params):  # type: ignore[no-untyped-def]
        self.log.append(action)
        return super().run(action, params)


@dataclass
class Harness:
    ctx: LaneContext
    runner: OrderedRunner
    publisher: FakePublisher
    http: MockHttpClient
    console: MockConsole


def _project(tmp_path: Path) -> None:
    (tmp_path / "CHANGELOG.md").write_text(CHANGELOG, encoding="utf-8")
    (tmp_path / "fastlane").mkdir()
    (tmp_path / "fastlane" / "whats_new.txt").write_text("Offline mode.\n", encoding="utf-8")


def _harness(
    tmp_path: Path,
    *,
    scheme: str | None = "Acme",
    firebase_app_id: str | None = "1:123:ios:abc",
    failures: dict[str, str] | None = None,
    publish_fail: str | None = None,
) -> Harness:
    config = Config.from_dict(
        {
            "project": {"scheme": scheme} if scheme else {},
            "release": {"firebase_app_id": firebase_app_id} if firebase_app_id else {},
        }
    )
    log: list[str] = []
    runner = OrderedRunner(failures=failures or {}, log=log)
    publisher = FakePublisher(fail=publish_fail, log=log)
    http = MockHttpClient()
    console = MockConsole()
    ctx = LaneContext(
        root=tmp_path,
        config=config,
        console=console,
        actions=runner,
        publisher=publisher,
        notifier=ChatNotifier(webhook_url=WEBHOOK, channel=None, http=http, console=console),
    )
    return Harness(ctx=ctx, runner=runner, publisher=publisher, http=http, console=console)


def _release(h: Harness, **overrides: object) -> Result:
    kwargs: dict[str, object] = {
        "product_name": "Acme",
        "version": "1.2.0",
        "build_number": "42",
        "account": "acme-inc",
        "tester_groups": ["qa"],
    }
    kwargs.update(overrides)
    return run_release_lane(h.ctx, **kwargs)  # type: ignore[arg-type]


class TestReleaseLane:
    def test_full_run(self, tmp_path: Path) -> None:
        _project(tmp_path)
        h = _harness(tmp_path)

        result = _release(h)

        assert isinstance(result, Ok)
        assert h.runner.log == [
            "cocoapods",
            "scan",
            "increment_build_number",
            "increment_version_number",
            "gym",
            "publish",
            "upload_symbols_to_crashlytics",
            "firebase_app_distribution",
            "upload_to_testflight",
            "download_dsyms",
            "clean_build_artifacts",
        ]
        assert result.value.stage_names("ok") == [
            "validate",
            "tests",
            "bump",
            "changelog",
            "build",
            "publish",
            "upload-symbols",
            "distribute",
            "refresh-dsyms",
        ]
        assert h.console.find("release: https://github.com/acme-inc/Acme/releases/tag/1.2.0")

    def test_action_arguments(self, tmp_path: Path) -> None:
        _project(tmp_path)
        h = _harness(tmp_path)

        _release(h)

        assert h.runner.params_for("increment_build_number") == {"build_number": "42"}
        assert h.runner.params_for("increment_version_number") == {"version_number": "1.2.0"}

        gym = h.runner.params_for("gym")
        assert gym["clean"] is True
        assert gym["include_symbols"] is True
        assert gym["include_bitcode"] is True
        assert gym["output_name"] == "Acme"
        assert gym["output_directory"] == tmp_path / "build" / "deploy"

        scan = h.runner.params_for("scan")
        assert scan["device"] == "iPhone 15"
        assert scan["scheme"] == "Acme"

        beta = h.runner.params_for("firebase_app_distribution")
        assert beta["groups"] == ["qa"]
        assert beta["release_notes"] == "Added\n* Offline mode"

        testflight = h.runner.params_for("upload_to_testflight")
        assert testflight["changelog"] == "Offline mode."

    def test_publish_uses_markdown_changelog(self, tmp_path: Path) -> None:
        _project(tmp_path)
        h = _harness(tmp_path)

        _release(h)

        assert h.publisher.calls == [
            (
                "acme-inc/Acme",
                "1.2.0",
                "### Added\n* [Feature: Offline mode - caches the last feed.",
            )
        ]

    def test_success_notification(self, tmp_path: Path) -> None:
        _project(tmp_path)
        h = _harness(tmp_path)

        _release(h)

        assert len(h.http.posts) == 1
        url, payload = h.http.posts[0]
        assert url == WEBHOOK
        assert "succeeded" in str(payload["text"])
        assert "Offline mode" in str(payload["attachments"])

    def test_review_runs_after_tests(self, tmp_path: Path) -> None:
        _project(tmp_path)
        h = _harness(tmp_path)

        _release(h, review=True)

        assert h.runner.actions[:3] == ["cocoapods", "scan", "swiftlint"]

    def test_default_tester_groups(self, tmp_path: Path) -> None:
        _project(tmp_path)
        h = _harness(tmp_path)
        h = Harness(
            ctx=LaneContext(
                root=h.ctx.root,
                config=Config.from_dict(
                    {
                        "project": {"scheme": "Acme"},
                        "release": {"default_tester_groups": ["beta", "internal"]},
                    }
                ),
                console=h.console,
                actions=h.runner,
                publisher=h.publisher,
                notifier=h.ctx.notifier,
            ),
            runner=h.runner,
            publisher=h.publisher,
            http=h.http,
            console=h.console,
        )

        result = _release(h, tester_groups=None)

        assert isinstance(result, Ok)
        assert h.runner.params_for("upload_to_testflight")["groups"] == ["beta", "internal"]
        # No firebase app id configured in this config.
        assert "firebase_app_distribution" not in h.runner.actions
        assert h.console.has_warning()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"product_name": ""},
            {"build_number": None},
            {"account": " "},
            {"tester_groups": []},
            {"version": None},
        ],
    )
    def test_missing_parameter_has_no_side_effects(
        self, tmp_path: Path, overrides: dict[str, object]
    ) -> None:
        _project(tmp_path)
        h = _harness(tmp_path)

        result = _release(h, **overrides)

        assert isinstance(result, Err)
        assert result.error.kind == "missing_parameter"
        assert h.runner.calls == []
        assert h.publisher.calls == []
        assert h.http.posts == []
        assert not (tmp_path / "build").exists()

    def test_missing_scheme(self, tmp_path: Path) -> None:
        _project(tmp_path)
        h = _harness(tmp_path, scheme=None)

        result = _release(h)

        assert isinstance(result, Err)
        assert "scheme" in result.error.message
        assert h.runner.calls == []

    def test_test_failure_stops_before_build(self, tmp_path: Path) -> None:
        _project(tmp_path)
        h = _harness(tmp_path, failures={"scan": "scan: 3 tests failed"})

        result = _release(h)

        assert isinstance(result, Err)
        assert result.error.stage == "tests"
        assert "gym" not in h.runner.actions
        assert h.publisher.calls == []

        _, payload = h.http.posts[0]
        assert "failed at stage `tests`" in str(payload["text"])
        assert "scan: 3 tests failed" in str(payload["attachments"])

    def test_changelog_read_before_publish_and_distribute(self, tmp_path: Path) -> None:
        # No changelog file: the lane must stop before publishing or distributing.
        (tmp_path / "fastlane").mkdir()
        (tmp_path / "fastlane" / "whats_new.txt").write_text("x", encoding="utf-8")
        h = _harness(tmp_path)

        result = _release(h)

        assert isinstance(result, Err)
        assert result.error.stage == "changelog"
        assert h.publisher.calls == []
        assert "gym" not in h.runner.actions
        assert "upload_to_testflight" not in h.runner.actions

    def test_publish_failure_is_fatal(self, tmp_path: Path) -> None:
        _project(tmp_path)
        h = _harness(tmp_path, publish_fail="release 1.2.0 already exists")

        result = _release(h)

        assert isinstance(result, Err)
        assert result.error.stage == "publish"
        assert "upload_symbols_to_crashlytics" not in h.runner.actions


class TestRefreshDsyms:
    def test_uploads_downloaded_archives(self, tmp_path: Path) -> None:
        h = _harness(tmp_path)
        dsyms = tmp_path / "build" / "deploy" / "dsyms"
        dsyms.mkdir(parents=True)
        (dsyms / "Acme.app.dSYM.zip").write_bytes(b"zip")

        result = run_refresh_dsyms_lane(h.ctx, version="1.2.0", build_number="42")

        assert isinstance(result, Ok)
        assert h.runner.actions == [
            "download_dsyms",
            "upload_symbols_to_crashlytics",
            "clean_build_artifacts",
        ]
        upload = h.runner.params_for("upload_symbols_to_crashlytics")
        assert upload["dsym_paths"] == [str(dsyms / "Acme.app.dSYM.zip")]
        assert "api_token" not in upload

    def test_nothing_downloaded_warns(self, tmp_path: Path) -> None:
        h = _harness(tmp_path)

        result = run_refresh_dsyms_lane(h.ctx, version="1.2.0", build_number="42")

        assert isinstance(result, Ok)
        assert h.runner.actions == ["download_dsyms", "clean_build_artifacts"]
        assert h.console.has_warning()

    def test_requires_build_number(self, tmp_path: Path) -> None:
        h = _harness(tmp_path)

        result = run_refresh_dsyms_lane(h.ctx, version="1.2.0", build_number=None)

        assert isinstance(result, Err)
        assert result.error.kind == "missing_parameter"
        assert h.runner.calls == []


class TestTestLane:
    def test_runs_deps_then_tests(self, tmp_path: Path) -> None:
        h = _harness(tmp_path)

        result = run_test_lane(h.ctx, review=False)

        assert isinstance(result, Ok)
        assert h.runner.actions == ["cocoapods", "scan"]

    def test_dependency_failure(self, tmp_path: Path) -> None:
        h = _harness(tmp_path, failures={"cocoapods": "pod install failed"})

        result = run_test_lane(h.ctx, review=True)

        assert isinstance(result, Err)
        assert h.runner.actions == ["cocoapods"]
