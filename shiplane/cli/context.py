from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

import typer

from shiplane.core.config import CONFIG_FILENAME, Config, apply_env, load_config_or_default
from shiplane.core.errors import ErrorCode
from shiplane.core.result import Err
from shiplane.lanes.context import BUILD_LOG_NAME, LaneContext
from shiplane.output.console import ConsoleProtocol, RichConsole
from shiplane.services.actions import FastlaneRunner
from shiplane.services.gh import GhReleasePublisher
from shiplane.services.http import RealHttpClient
from shiplane.services.notify import ChatNotifier

PROJECT_ENV_VAR = "SHIPLANE_PROJECT"


@dataclass(frozen=True, slots=True)
class CLIContext:
    root: Path
    config: Config
    console: ConsoleProtocol


def project_root() -> Path:
    env = os.environ.get(PROJECT_ENV_VAR)
    if env:
        return Path(env).expanduser().resolve()
    return Path.cwd().resolve()


def build_context() -> CLIContext:
    root = project_root()
    config_result = load_config_or_default(root / CONFIG_FILENAME)
    if isinstance(config_result, Err):
        typer.echo(f"error: {config_result.error.message}", err=True)
        raise typer.Exit(code=int(ErrorCode.USER_ERROR))

    return CLIContext(
        root=root,
        config=apply_env(config_result.value, os.environ),
        console=RichConsole(),
    )


def build_lane_context(ctx: CLIContext, *, dry_run: bool) -> LaneContext:
    config = ctx.config
    deploy_dir = config.resolve(ctx.root, config.paths.deploy_dir)
    return LaneContext(
        root=ctx.root,
        config=config,
        console=ctx.console,
        actions=FastlaneRunner(
            root=ctx.root,
            log_path=deploy_dir / BUILD_LOG_NAME,
            console=ctx.console,
            timeout=config.timeouts.action_seconds,
            dry_run=dry_run,
            env=config.credentials.action_env(),
        ),
        publisher=GhReleasePublisher(
            root=ctx.root,
            console=ctx.console,
            timeout=config.timeouts.gh_seconds,
            dry_run=dry_run,
        ),
        notifier=ChatNotifier(
            webhook_url=config.notify.webhook_url,
            channel=config.notify.channel,
            http=RealHttpClient(timeout=config.timeouts.http_seconds),
            console=ctx.console,
            dry_run=dry_run,
        ),
    )
