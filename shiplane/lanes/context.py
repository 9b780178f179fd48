from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from shiplane.core.config import Config
from shiplane.output.console import ConsoleProtocol
from shiplane.services.actions import ActionRunner
from shiplane.services.gh import ReleasePublisher
from shiplane.services.notify import Notifier

BUILD_LOG_NAME = "shiplane-build.log"


@dataclass(frozen=True, slots=True)
class LaneContext:
    """Everything a lane needs; the CLI builds it, tests inject fakes."""

    root: Path
    config: Config
    console: ConsoleProtocol
    actions: ActionRunner
    publisher: ReleasePublisher
    notifier: Notifier

    @property
    def deploy_dir(self) -> Path:
        return self.config.resolve(self.root, self.config.paths.deploy_dir)

    @property
    def build_log(self) -> Path:
        return self.deploy_dir / BUILD_LOG_NAME

    @property
    def dsyms_dir(self) -> Path:
        return self.deploy_dir / "dsyms"

    @property
    def changelog_path(self) -> Path:
        return self.config.resolve(self.root, self.config.paths.changelog)

    @property
    def whats_new_path(self) -> Path:
        return self.config.resolve(self.root, self.config.paths.whats_new)

    @property
    def export_options_path(self) -> Path:
        return self.config.resolve(self.root, self.config.paths.export_options)

    @property
    def google_service_info_path(self) -> Path:
        return self.config.resolve(self.root, self.config.paths.google_service_info)

    def ipa_path(self, product_name: str) -> Path:
        return self.deploy_dir / f"{product_name}.ipa"

    def dsym_path(self, product_name: str) -> Path:
        return self.deploy_dir / f"{product_name}.app.dSYM.zip"
