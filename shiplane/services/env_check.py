"""The ``check-env`` lane: are credentials, identity and tools in place?

Nothing here has side effects; the lane only reads the environment, the
loaded config and ``PATH``.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable, Mapping
from dataclasses import dataclass

from shiplane.core.config import Config
from shiplane.services.checks import CheckResult

# (variable, required, what it is for)
CREDENTIAL_VARS: tuple[tuple[str, bool, str], ...] = (
    ("GITHUB_TOKEN", True, "publish releases with gh"),
    ("SLACK_URL", False, "post lane results to chat"),
    ("DEPLOY_DIR", False, "where ipa, dSYM and build log are written"),
    ("CRASHLYTICS_API_TOKEN", True, "upload dSYMs"),
    ("CRASHLYTICS_BUILD_SECRET", False, "legacy Crashlytics beta uploads"),
)

IDENTITY_VARS: tuple[str, ...] = ("TEAM_ID", "BUNDLE_ID", "SCHEME", "TARGET", "TESTER_GROUPS")

REQUIRED_TOOLS: tuple[tuple[str, str], ...] = (
    ("fastlane", "brew install fastlane"),
    ("gh", "brew install gh"),
    ("xcodebuild", "xcode-select --install"),
    ("pod", "brew install cocoapods"),
)


@dataclass(frozen=True, slots=True)
class EnvReport:
    credentials: list[CheckResult]
    identity: list[CheckResult]
    tools: list[CheckResult]

    def all_results(self) -> list[CheckResult]:
        return [*self.credentials, *self.identity, *self.tools]

    def has_errors(self) -> bool:
        return any(r.is_error for r in self.all_results())


def _identity_value(config: Config, var: str) -> str | None:
    match var:
        case "TEAM_ID":
            return config.project.team_id
        case "BUNDLE_ID":
            return config.project.bundle_id
        case "SCHEME":
            return config.project.scheme
        case "TARGET":
            return config.project.target
        case "TESTER_GROUPS":
            groups = config.release.default_tester_groups
            return ", ".join(groups) if groups else None
    return None


class EnvChecker:
    def __init__(
        self,
        *,
        env: Mapping[str, str],
        config: Config,
        which: Callable[[str], str | None] = shutil.which,
    ) -> None:
        self._env = env
        self._config = config
        self._which = which

    def check_credentials(self) -> list[CheckResult]:
        results: list[CheckResult] = []
        for var, required, purpose in CREDENTIAL_VARS:
            if self._env.get(var, "").strip():
                results.append(CheckResult.success(var, "set"))
            elif var == "SLACK_URL" and self._config.notify.webhook_url:
                results.append(CheckResult.success(var, "set in shiplane.toml"))
            elif required:
                results.append(CheckResult.error(var, "missing", hint=f"export {var} ({purpose})"))
            else:
                results.append(
                    CheckResult.warning(var, "not set", hint=f"export {var} ({purpose})")
                )
        return results

    def check_identity(self) -> list[CheckResult]:
        # Config already carries the environment overrides.
        results: list[CheckResult] = []
        for var in IDENTITY_VARS:
            value = _identity_value(self._config, var)
            if value:
                results.append(CheckResult.success(var, value))
            else:
                results.append(
                    CheckResult.error(
                        var, "missing", hint=f"export {var} or set it in shiplane.toml"
                    )
                )
        return results

    def check_tools(self) -> list[CheckResult]:
        results: list[CheckResult] = []
        for tool, hint in REQUIRED_TOOLS:
            path = self._which(tool)
            if path:
                results.append(CheckResult.success(tool, path))
            else:
                results.append(CheckResult.error(tool, "missing", hint=hint))
        return results

    def run(self) -> EnvReport:
        return EnvReport(
            credentials=self.check_credentials(),
            identity=self.check_identity(),
            tools=self.check_tools(),
        )
