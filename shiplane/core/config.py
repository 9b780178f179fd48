"""Typed configuration for lanes.

``shiplane.toml`` lives at the project root. Every table is optional; a
missing file yields the defaults. Environment variables override the file
(see ``ENV_OVERRIDES``) so CI can inject secrets without touching it.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_float, get_str, get_str_list, get_table, split_csv

__all__ = [
    "Config",
    "ConfigError",
    "Credentials",
    "NotifyConfig",
    "PathsConfig",
    "ProjectConfig",
    "ReleaseConfig",
    "TimeoutsConfig",
    "CONFIG_FILENAME",
    "ENV_OVERRIDES",
    "apply_env",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "shiplane.toml"

DEFAULT_DEVICE = "iPhone 15"
DEFAULT_ACTION_TIMEOUT_SECONDS = 60 * 60.0
DEFAULT_GH_TIMEOUT_SECONDS = 60.0
DEFAULT_HTTP_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    """Xcode project identity."""

    workspace: str = "App.xcworkspace"
    scheme: str | None = None
    target: str | None = None
    device: str = DEFAULT_DEVICE
    bundle_id: str | None = None
    team_id: str | None = None


@dataclass(frozen=True, slots=True)
class PathsConfig:
    """Paths relative to the project root (absolute paths are kept as is)."""

    deploy_dir: str = "build/deploy"
    changelog: str = "CHANGELOG.md"
    whats_new: str = "fastlane/whats_new.txt"
    export_options: str = "fastlane/ExportOptions.plist"
    google_service_info: str = "GoogleService-Info.plist"


@dataclass(frozen=True, slots=True)
class ReleaseConfig:
    default_tester_groups: tuple[str, ...] = ()
    firebase_app_id: str | None = None


@dataclass(frozen=True, slots=True)
class NotifyConfig:
    webhook_url: str | None = None
    channel: str | None = None


@dataclass(frozen=True, slots=True)
class TimeoutsConfig:
    action_seconds: float = DEFAULT_ACTION_TIMEOUT_SECONDS
    gh_seconds: float = DEFAULT_GH_TIMEOUT_SECONDS
    http_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS


@dataclass(frozen=True, slots=True)
class Credentials:
    """Secrets only ever read from the environment.

    ``GITHUB_TOKEN`` is not kept here: gh reads it from the inherited
    environment itself.
    """

    crashlytics_api_token: str | None = None

    def action_env(self) -> dict[str, str]:
        """Variables handed to external actions through their environment."""
        env: dict[str, str] = {}
        if self.crashlytics_api_token:
            env["CRASHLYTICS_API_TOKEN"] = self.crashlytics_api_token
        return env


@dataclass(frozen=True, slots=True)
class Config:
    """Main configuration container."""

    project: ProjectConfig = field(default_factory=ProjectConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    release: ReleaseConfig = field(default_factory=ReleaseConfig)
    notify: NotifyConfig = field(default_factory=NotifyConfig)
    timeouts: TimeoutsConfig = field(default_factory=TimeoutsConfig)
    credentials: Credentials = field(default_factory=Credentials)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Config:
        """Create Config from a mapping (parsed TOML)."""
        project: StrDict = get_table(data, "project") or {}
        paths: StrDict = get_table(data, "paths") or {}
        release: StrDict = get_table(data, "release") or {}
        notify: StrDict = get_table(data, "notify") or {}
        timeouts: StrDict = get_table(data, "timeouts") or {}

        defaults = PathsConfig()
        return cls(
            project=ProjectConfig(
                workspace=get_str(project, "workspace") or "App.xcworkspace",
                scheme=get_str(project, "scheme"),
                target=get_str(project, "target"),
                device=get_str(project, "device") or DEFAULT_DEVICE,
                bundle_id=get_str(project, "bundle_id"),
                team_id=get_str(project, "team_id"),
            ),
            paths=PathsConfig(
                deploy_dir=get_str(paths, "deploy_dir") or defaults.deploy_dir,
                changelog=get_str(paths, "changelog") or defaults.changelog,
                whats_new=get_str(paths, "whats_new") or defaults.whats_new,
                export_options=get_str(paths, "export_options") or defaults.export_options,
                google_service_info=get_str(paths, "google_service_info")
                or defaults.google_service_info,
            ),
            release=ReleaseConfig(
                default_tester_groups=tuple(get_str_list(release, "default_tester_groups") or ()),
                firebase_app_id=get_str(release, "firebase_app_id"),
            ),
            notify=NotifyConfig(
                webhook_url=get_str(notify, "webhook_url"),
                channel=get_str(notify, "channel"),
            ),
            timeouts=TimeoutsConfig(
                action_seconds=get_float(timeouts, "action_seconds")
                or DEFAULT_ACTION_TIMEOUT_SECONDS,
                gh_seconds=get_float(timeouts, "gh_seconds") or DEFAULT_GH_TIMEOUT_SECONDS,
                http_seconds=get_float(timeouts, "http_seconds") or DEFAULT_HTTP_TIMEOUT_SECONDS,
            ),
        )

    def resolve(self, root: Path, rel: str) -> Path:
        """Resolve a configured path against the project root."""
        p = Path(rel).expanduser()
        return p if p.is_absolute() else root / p


# Environment variable -> (section, field)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "SLACK_URL": ("notify", "webhook_url"),
    "DEPLOY_DIR": ("paths", "deploy_dir"),
    "TEAM_ID": ("project", "team_id"),
    "BUNDLE_ID": ("project", "bundle_id"),
    "SCHEME": ("project", "scheme"),
    "TARGET": ("project", "target"),
    "TESTER_GROUPS": ("release", "default_tester_groups"),
    "CRASHLYTICS_API_TOKEN": ("credentials", "crashlytics_api_token"),
}


def apply_env(config: Config, env: Mapping[str, str]) -> Config:
    """Return a copy of ``config`` with environment overrides applied.

    Blank variables are ignored.
    """
    sections: dict[str, dict[str, object]] = {}
    for var, (section, name) in ENV_OVERRIDES.items():
        raw = env.get(var, "").strip()
        if not raw:
            continue
        value: object = tuple(split_csv(raw)) if name == "default_tester_groups" else raw
        sections.setdefault(section, {})[name] = value

    if not sections:
        return config
    changes = {
        section: replace(getattr(config, section), **values) for section, values in sections.items()
    }
    return replace(config, **changes)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    """Parse a TOML file, handling import and parse errors."""
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse ``shiplane.toml``.

    Args:
        path: Path to the config file

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config_or_default(path: Path) -> Result[Config, ConfigError]:
    """Like ``load_config`` but a missing file yields the default config.

    A present but broken file is still an error.
    """
    if not path.exists():
        return Ok(Config())
    return load_config(path)
