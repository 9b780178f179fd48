"""The lanes: ``test``, ``release`` and ``refresh_dsyms``.

Stage order of ``release``::

    validate -> tests -> bump -> changelog -> build -> publish
             -> upload-symbols -> distribute -> refresh-dsyms -> summary

Parameters are validated before the first stage runs; a missing one ends the
lane without any external call and without a notification.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from shiplane.core.result import Err, Ok, Result
from shiplane.lanes.changelog import read_changelog_section, read_whats_new, strip_markdown
from shiplane.lanes.context import LaneContext
from shiplane.lanes.errors import LaneError
from shiplane.lanes.params import (
    ReleaseParams,
    require_param,
    resolve_tester_groups,
    validate_release_params,
)
from shiplane.lanes.pipeline import Stage, run_lane
from shiplane.lanes.report import LaneReport, StageRecord
from shiplane.services.actions import ActionParam


@dataclass
class ReleaseState:
    """Values produced by one stage and consumed by a later one."""

    changelog: str | None = None
    plain_notes: str | None = None
    whats_new: str | None = None
    release_url: str | None = None


def _run_actions(
    ctx: LaneContext, calls: Sequence[tuple[str, Mapping[str, ActionParam]]]
) -> Result[None, LaneError]:
    for action, params in calls:
        result = ctx.actions.run(action, params)
        if isinstance(result, Err):
            return result
    return Ok(None)


def _require_scheme(ctx: LaneContext) -> Result[str, LaneError]:
    scheme = ctx.config.project.scheme
    if scheme is None:
        return Err(
            LaneError(
                kind="missing_parameter",
                message="missing required parameter: scheme",
                hint="set project.scheme in shiplane.toml or export SCHEME",
                stage="validate",
            )
        )
    return Ok(scheme)


def _ensure_deploy_dir(ctx: LaneContext) -> Result[None, LaneError]:
    try:
        ctx.deploy_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        return Err(
            LaneError(
                kind="io_failed",
                message=f"failed to create deploy directory: {e}",
                hint=str(ctx.deploy_dir),
            )
        )
    return Ok(None)


# -----------------------------------------------------------------------------
# Stages
# -----------------------------------------------------------------------------


def tests_stage(ctx: LaneContext, *, scheme: str, review: bool) -> Stage:
    project = ctx.config.project

    def run() -> Result[None, LaneError]:
        calls: list[tuple[str, Mapping[str, ActionParam]]] = [
            ("cocoapods", {"try_repo_update_on_error": True}),
            (
                "scan",
                {
                    "workspace": project.workspace,
                    "scheme": scheme,
                    "device": project.device,
                    "clean": True,
                    "output_directory": ctx.deploy_dir / "test_output",
                },
            ),
        ]
        if review:
            calls.append(("swiftlint", {"mode": "lint", "strict": True}))
        return _run_actions(ctx, calls)

    return Stage("tests", run)


def bump_stage(ctx: LaneContext, params: ReleaseParams) -> Stage:
    def run() -> Result[None, LaneError]:
        return _run_actions(
            ctx,
            [
                ("increment_build_number", {"build_number": params.build_number}),
                ("increment_version_number", {"version_number": params.version}),
            ],
        )

    return Stage("bump", run)


def changelog_stage(ctx: LaneContext, params: ReleaseParams, state: ReleaseState) -> Stage:
    def run() -> Result[None, LaneError]:
        section = read_changelog_section(ctx.changelog_path, params.version)
        if isinstance(section, Err):
            return section
        whats_new = read_whats_new(ctx.whats_new_path)
        if isinstance(whats_new, Err):
            return whats_new

        state.changelog = section.value
        state.plain_notes = strip_markdown(section.value)
        state.whats_new = whats_new.value
        return Ok(None)

    return Stage("changelog", run)


def build_stage(ctx: LaneContext, params: ReleaseParams, *, scheme: str) -> Stage:
    def run() -> Result[None, LaneError]:
        ready = _ensure_deploy_dir(ctx)
        if isinstance(ready, Err):
            return ready
        return _run_actions(
            ctx,
            [
                (
                    "gym",
                    {
                        "workspace": ctx.config.project.workspace,
                        "scheme": scheme,
                        "clean": True,
                        "include_symbols": True,
                        "include_bitcode": True,
                        "export_options": ctx.export_options_path,
                        "output_directory": ctx.deploy_dir,
                        "output_name": params.product_name,
                        "buildlog_path": ctx.deploy_dir,
                    },
                )
            ],
        )

    return Stage("build", run)


def publish_stage(ctx: LaneContext, params: ReleaseParams, state: ReleaseState) -> Stage:
    def run() -> Result[None, LaneError]:
        if state.changelog is None:
            return Err(LaneError(kind="invalid_input", message="changelog was not read"))
        url = ctx.publisher.publish(
            repo=params.repo_slug, version=params.version, notes=state.changelog
        )
        if isinstance(url, Err):
            return url
        state.release_url = url.value
        return Ok(None)

    return Stage("publish", run)


def _crashlytics_params(ctx: LaneContext) -> dict[str, ActionParam]:
    # api_token is read by the action from CRASHLYTICS_API_TOKEN.
    return {"gsp_path": ctx.google_service_info_path}


def upload_symbols_stage(ctx: LaneContext, params: ReleaseParams) -> Stage:
    def run() -> Result[None, LaneError]:
        return _run_actions(
            ctx,
            [
                (
                    "upload_symbols_to_crashlytics",
                    {"dsym_path": ctx.dsym_path(params.product_name), **_crashlytics_params(ctx)},
                )
            ],
        )

    return Stage("upload-symbols", run)


def distribute_stage(ctx: LaneContext, params: ReleaseParams, state: ReleaseState) -> Stage:
    def run() -> Result[None, LaneError]:
        if state.plain_notes is None or state.whats_new is None:
            return Err(LaneError(kind="invalid_input", message="changelog was not read"))

        ipa = ctx.ipa_path(params.product_name)
        calls: list[tuple[str, Mapping[str, ActionParam]]] = []
        app_id = ctx.config.release.firebase_app_id
        if app_id is None:
            ctx.console.warning("release.firebase_app_id not set, skipping beta distribution")
        else:
            calls.append(
                (
                    "firebase_app_distribution",
                    {
                        "app": app_id,
                        "ipa_path": ipa,
                        "groups": list(params.tester_groups),
                        "release_notes": state.plain_notes,
                    },
                )
            )
        calls.append(
            (
                "upload_to_testflight",
                {
                    "ipa": ipa,
                    "changelog": state.whats_new,
                    "groups": list(params.tester_groups),
                    "distribute_external": True,
                },
            )
        )
        return _run_actions(ctx, calls)

    return Stage("distribute", run)


def refresh_dsyms_stage(ctx: LaneContext, *, version: str, build_number: str) -> Stage:
    """Re-fetch the dSYMs the store recompiled from bitcode and upload them again."""

    def run() -> Result[None, LaneError]:
        downloaded = ctx.actions.run(
            "download_dsyms",
            {
                "version": version,
                "build_number": build_number,
                "output_directory": ctx.dsyms_dir,
                "wait_for_dsym_processing": True,
            },
        )
        if isinstance(downloaded, Err):
            return downloaded

        archives = _find_dsym_archives(ctx.dsyms_dir)
        if archives:
            uploaded = ctx.actions.run(
                "upload_symbols_to_crashlytics",
                {"dsym_paths": [str(p) for p in archives], **_crashlytics_params(ctx)},
            )
            if isinstance(uploaded, Err):
                return uploaded
        else:
            ctx.console.warning(f"no dSYM archives found in {ctx.dsyms_dir}")

        cleaned = ctx.actions.run("clean_build_artifacts", {})
        if isinstance(cleaned, Err):
            return cleaned
        return Ok(None)

    return Stage("refresh-dsyms", run)


def _find_dsym_archives(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(directory.glob("*.dSYM.zip"))


# -----------------------------------------------------------------------------
# Lanes
# -----------------------------------------------------------------------------


def _validated(report: LaneReport) -> None:
    report.records.append(StageRecord(name="validate", status="ok"))


def run_test_lane(ctx: LaneContext, *, review: bool) -> Result[LaneReport, LaneError]:
    scheme = _require_scheme(ctx)
    if isinstance(scheme, Err):
        return scheme

    report = LaneReport(lane="test")
    _validated(report)
    return run_lane(
        report=report,
        stages=[tests_stage(ctx, scheme=scheme.value, review=review)],
        console=ctx.console,
        notifier=ctx.notifier,
    )


def run_release_lane(
    ctx: LaneContext,
    *,
    product_name: str | None,
    version: str | None,
    build_number: str | None,
    account: str | None,
    tester_groups: Sequence[str] | None,
    review: bool = False,
) -> Result[LaneReport, LaneError]:
    validated = validate_release_params(
        product_name=product_name,
        version=version,
        build_number=build_number,
        account=account,
        tester_groups=resolve_tester_groups(
            tester_groups, default=ctx.config.release.default_tester_groups
        ),
        review=review,
    )
    if isinstance(validated, Err):
        return validated
    scheme = _require_scheme(ctx)
    if isinstance(scheme, Err):
        return scheme

    params = validated.value
    state = ReleaseState()
    report = LaneReport(
        lane="release",
        facts={
            "product": params.product_name,
            "version": params.version,
            "build": params.build_number,
            "groups": ", ".join(params.tester_groups),
        },
    )
    _validated(report)

    stages = [
        tests_stage(ctx, scheme=scheme.value, review=params.review),
        bump_stage(ctx, params),
        changelog_stage(ctx, params, state),
        build_stage(ctx, params, scheme=scheme.value),
        publish_stage(ctx, params, state),
        upload_symbols_stage(ctx, params),
        distribute_stage(ctx, params, state),
        refresh_dsyms_stage(ctx, version=params.version, build_number=params.build_number),
    ]
    result = run_lane(
        report=report,
        stages=stages,
        console=ctx.console,
        notifier=ctx.notifier,
        notes=lambda: state.plain_notes,
    )
    if isinstance(result, Ok) and state.release_url:
        ctx.console.success(f"release: {state.release_url}")
    return result


def run_refresh_dsyms_lane(
    ctx: LaneContext, *, version: str | None, build_number: str | None
) -> Result[LaneReport, LaneError]:
    ver = require_param(version, name="version", flag="--version")
    if isinstance(ver, Err):
        return ver
    build = require_param(build_number, name="build_number", flag="--build-number")
    if isinstance(build, Err):
        return build

    report = LaneReport(lane="refresh_dsyms", facts={"version": ver.value, "build": build.value})
    _validated(report)
    return run_lane(
        report=report,
        stages=[refresh_dsyms_stage(ctx, version=ver.value, build_number=build.value)],
        console=ctx.console,
        notifier=ctx.notifier,
    )
