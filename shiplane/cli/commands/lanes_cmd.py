from __future__ import annotations

import typer

from shiplane.cli.commands._helpers import exit_on_lane_error
from shiplane.cli.context import build_context, build_lane_context
from shiplane.lanes.changelog import read_changelog_section, strip_markdown
from shiplane.lanes.release import run_refresh_dsyms_lane, run_release_lane, run_test_lane


def release(
    product_name: str | None = typer.Option(None, "--product-name", help="App / repo name"),
    version: str | None = typer.Option(None, "--version", help="Marketing version, e.g. 1.4.0"),
    build_number: str | None = typer.Option(None, "--build-number", help="Build number"),
    account: str | None = typer.Option(
        None, "--account", help="GitHub account that owns the repo"
    ),
    groups: list[str] = typer.Option(
        [], "--groups", "-g", help="Tester group (repeatable; defaults to config)"
    ),
    review: bool = typer.Option(False, "--review", help="Run swiftlint after the tests"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without running them"),
) -> None:
    """Test, build, publish and distribute a release."""
    ctx = build_context()
    lane = build_lane_context(ctx, dry_run=dry_run)
    exit_on_lane_error(
        run_release_lane(
            lane,
            product_name=product_name,
            version=version,
            build_number=build_number,
            account=account,
            tester_groups=groups,
            review=review,
        ),
        ctx.console,
    )


def run_tests(
    review: bool = typer.Option(False, "--review", help="Run swiftlint after the tests"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without running them"),
) -> None:
    """Install dependencies and run the test suite."""
    ctx = build_context()
    lane = build_lane_context(ctx, dry_run=dry_run)
    exit_on_lane_error(run_test_lane(lane, review=review), ctx.console)


def refresh_dsyms(
    version: str | None = typer.Option(None, "--version", help="Marketing version"),
    build_number: str | None = typer.Option(None, "--build-number", help="Build number"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without running them"),
) -> None:
    """Download recompiled dSYMs and upload them to the crash reporter."""
    ctx = build_context()
    lane = build_lane_context(ctx, dry_run=dry_run)
    exit_on_lane_error(
        run_refresh_dsyms_lane(lane, version=version, build_number=build_number),
        ctx.console,
    )


def changelog(
    version: str = typer.Option(..., "--version", help="Changelog section to read"),
    markdown: bool = typer.Option(False, "--markdown", help="Print the section unstripped"),
) -> None:
    """Print the changelog section for a version (plain text by default)."""
    ctx = build_context()
    path = ctx.config.resolve(ctx.root, ctx.config.paths.changelog)
    section = exit_on_lane_error(read_changelog_section(path, version), ctx.console)
    typer.echo(section if markdown else strip_markdown(section))
