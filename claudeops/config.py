"""User settings stored in ``~/.claudeops/config.toml`` and the filesystem layout."""

from __future__ import annotations

import os
import tempfile
import tomllib
from dataclasses import asdict, dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

import tomli_w

_HEADER = """# claudeops configuration
# This file is managed by claudeops but safe to edit by hand.
# Any field you delete will fall back to the built-in default on next load.
# Re-run claudeops to regenerate a missing file.

"""


class ConfigError(Exception):
    """Raised when settings cannot be parsed or are inconsistent."""


@dataclass
class ClaudeOTelSettings:
    """Claude-specific OpenTelemetry export options."""

    enabled: bool = False
    include_user_prompts: bool = False
    include_tool_details: bool = False


@dataclass
class ExportSettings:
    """Telemetry export via OTLP."""

    enabled: bool = False
    user_name: str = ""
    team_name: str = ""
    endpoint: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    claude_otel: ClaudeOTelSettings = field(default_factory=ClaudeOTelSettings)

    def validate(self) -> None:
        """Raise ConfigError if the combination of fields is inconsistent."""
        if self.claude_otel.enabled and not self.enabled:
            raise ConfigError("claude_otel requires export.enabled=true")
        if not self.enabled:
            return
        if not self.endpoint:
            raise ConfigError("export: endpoint must not be empty when enabled=true")
        try:
            scheme = urlparse(self.endpoint).scheme
        except ValueError:
            scheme = ""
        if scheme not in ("http", "https"):
            raise ConfigError(
                f"export: endpoint must be a valid http/https URL, got {self.endpoint!r}"
            )


@dataclass
class UsageSettings:
    """How often the usage endpoint is polled."""

    cache_ttl_seconds: int = 300


@dataclass
class ThresholdsSettings:
    """Daily spend cutoffs in EUR used for colour-coding."""

    daily_warn_eur: float = 20.0
    daily_alert_eur: float = 50.0


@dataclass
class DashboardSettings:
    """Visibility of individual dashboard widgets."""

    show_subscription: bool = True
    show_today: bool = True
    show_top_sessions: bool = True
    show_top_projects: bool = True
    show_active_task: bool = True
    show_sparkline_14d: bool = True
    show_per_model_today: bool = True
    show_burn_rate: bool = True
    show_streak: bool = True
    show_avg_per_session: bool = True
    show_cache_hit_ratio: bool = True
    show_tokens_per_euro: bool = True
    show_max_day_30d: bool = True
    show_vs_avg_7d: bool = True
    thresholds: ThresholdsSettings = field(default_factory=ThresholdsSettings)


@dataclass
class TabSettings:
    """Which tabs are shown; the dashboard tab is always shown."""

    calendar: bool = True
    sessions: bool = True
    projects: bool = True
    models: bool = True
    tasks: bool = True
    insights: bool = True


@dataclass
class InsightsSettings:
    """Visibility of cards on the insights tab."""

    show_cache_efficiency: bool = True
    show_model_mix: bool = True
    show_cost_trend: bool = True
    show_session_efficiency: bool = True
    show_peak_hours: bool = True


@dataclass
class CalendarSettings:
    """Calendar tab configuration."""

    default_view: str = "grid"
    timezone: str = "local"
    timeline_days: int = 90


@dataclass
class KeybindingsSettings:
    """User overrides for key bindings."""

    command_palette: str = "ctrl+p"


@dataclass
class Settings:
    """All user-editable configuration."""

    dashboard: DashboardSettings = field(default_factory=DashboardSettings)
    tabs: TabSettings = field(default_factory=TabSettings)
    calendar: CalendarSettings = field(default_factory=CalendarSettings)
    keybindings: KeybindingsSettings = field(default_factory=KeybindingsSettings)
    usage: UsageSettings = field(default_factory=UsageSettings)
    insights: InsightsSettings = field(default_factory=InsightsSettings)
    export: ExportSettings = field(default_factory=ExportSettings)


def default_settings() -> Settings:
    """Return settings with every widget enabled and the built-in defaults."""
    return Settings()


def _merge(target: Any, data: dict[str, Any], where: str) -> None:
    """Overlay values from a parsed TOML table onto a settings dataclass."""
    for f in fields(target):
        if f.name not in data:
            continue
        value = data[f.name]
        current = getattr(target, f.name)
        key = f"{where}{f.name}"
        if is_dataclass(current):
            if not isinstance(value, dict):
                raise ConfigError(f"{key}: expected a table")
            _merge(current, value, key + ".")
        elif isinstance(current, bool):
            if not isinstance(value, bool):
                raise ConfigError(f"{key}: expected a boolean")
            setattr(target, f.name, value)
        elif isinstance(current, int):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigError(f"{key}: expected an integer")
            setattr(target, f.name, value)
        elif isinstance(current, float):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ConfigError(f"{key}: expected a number")
            setattr(target, f.name, float(value))
        elif isinstance(current, str):
            if not isinstance(value, str):
                raise ConfigError(f"{key}: expected a string")
            setattr(target, f.name, value)
        elif isinstance(current, dict):
            if not isinstance(value, dict) or not all(
                isinstance(v, str) for v in value.values()
            ):
                raise ConfigError(f"{key}: expected a table of strings")
            setattr(target, f.name, dict(value))


def load(path: str | os.PathLike[str]) -> Settings:
    """Read the config file and merge it onto the defaults.

    A missing file yields the defaults.
    """
    settings = default_settings()
    path = Path(path)
    try:
        with path.open("rb") as fh:
            data = tomllib.load(fh)
    except FileNotFoundError:
        return settings
    except (tomllib.TOMLDecodeError, UnicodeDecodeError) as exc:
        raise ConfigError(f"config {path}: {exc}") from exc
    try:
        _merge(settings, data, "")
    except ConfigError as exc:
        raise ConfigError(f"config {path}: {exc}") from exc
    return settings


def load_or_create(path: str | os.PathLike[str]) -> Settings:
    """Load the config; if the file is missing, write the defaults first."""
    path = Path(path)
    if not path.exists():
        settings = default_settings()
        _write_with_header(path, settings)
        return settings
    return load(path)


def save(path: str | os.PathLike[str], settings: Settings) -> None:
    """Write settings to disk atomically."""
    _write_with_header(Path(path), settings)


def _write_with_header(path: Path, settings: Settings) -> None:
    path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".config-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(_HEADER)
            fh.write(tomli_w.dumps(asdict(settings)))
        os.chmod(tmp_name, 0o600)
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)


@dataclass(frozen=True)
class Paths:
    """Every directory and file read or written."""

    home: Path
    claude_dir: Path
    claude_projects: Path
    claude_creds: Path
    claude_settings: Path
    data_dir: Path
    db_path: Path
    pricing_path: Path
    current_task_path: Path
    config_path: Path
    live_dir: Path

    def ensure_data_dir(self) -> None:
        """Create the data directory with mode 0700 if it is missing."""
        self.data_dir.mkdir(mode=0o700, parents=True, exist_ok=True)


def for_home(home: str | os.PathLike[str]) -> Paths:
    """Build the path layout rooted at the given home directory."""
    home = Path(home)
    claude = home / ".claude"
    data = home / ".claudeops"
    return Paths(
        home=home,
        claude_dir=claude,
        claude_projects=claude / "projects",
        claude_creds=claude / ".credentials.json",
        claude_settings=claude / "settings.json",
        data_dir=data,
        db_path=data / "claudeops.db",
        pricing_path=data / "pricing.toml",
        current_task_path=data / "current-task.json",
        config_path=data / "config.toml",
        live_dir=data / "live",
    )


def default_paths() -> Paths:
    """Build the path layout from the current user's home directory."""
    return for_home(Path.home())