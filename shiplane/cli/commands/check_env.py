from __future__ import annotations

import os

import typer

from shiplane.cli.context import CLIContext, build_context
from shiplane.core.errors import ErrorCode
from shiplane.output.console import Style
from shiplane.services.checks import CheckResult, CheckStatus
from shiplane.services.env_check import EnvChecker


def check_env(
    strict: bool = typer.Option(
        True,
        "--strict/--no-strict",
        help="Exit non-zero when required values or tools are missing",
    ),
) -> None:
    """Check credentials, identity and tools required by the lanes."""
    ctx = build_context()

    report = EnvChecker(env=os.environ, config=ctx.config).run()

    ctx.console.print(f"project: {ctx.root}", Style.DIM)
    _print_group(ctx, "Credentials", report.credentials)
    _print_group(ctx, "Identity", report.identity)
    _print_group(ctx, "Tools", report.tools)

    if strict and report.has_errors():
        raise typer.Exit(code=int(ErrorCode.ENV_ERROR))


def _print_group(ctx: CLIContext, title: str, results: list[CheckResult]) -> None:
    console = ctx.console
    console.header(title)
    for r in results:
        console.print(f"{r.name}: {r.message}", _style_for_status(r.status))
        if r.hint and r.status != CheckStatus.OK:
            console.print(f"hint: {r.hint}", Style.DIM)


def _style_for_status(status: CheckStatus) -> Style:
    if status == CheckStatus.OK:
        return Style.SUCCESS
    if status == CheckStatus.WARNING:
        return Style.WARNING
    return Style.ERROR
