"""Managing the OpenTelemetry env block in Claude Code's settings.json."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any

from claudeops import hooks
from claudeops.config import ExportSettings

MANAGED_OTEL_KEYS: tuple[str, ...] = (
    "CLAUDE_CODE_ENABLE_TELEMETRY",
    "OTEL_METRICS_EXPORTER",
    "OTEL_LOGS_EXPORTER",
    "OTEL_EXPORTER_OTLP_PROTOCOL",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
    "OTEL_EXPORTER_OTLP_HEADERS",
    "OTEL_RESOURCE_ATTRIBUTES",
    "OTEL_METRICS_INCLUDE_ACCOUNT_UUID",
)


@dataclass
class OTelConfigInput:
    """Values to write into the settings env block."""

    endpoint: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    user_name: str = ""
    team_name: str = ""
    include_account_uuid: bool = False


@dataclass
class OTelConfigStatus:
    """Which managed keys are currently present, and their values."""

    applied: bool = False
    values: dict[str, str] = field(default_factory=dict)


def _load_or_empty(path: str | os.PathLike[str]) -> hooks.HookSettings:
    try:
        return hooks.load(path)
    except ValueError as exc:
        raise ValueError(f"otelconfig load: {exc}") from exc


def _read_env(settings: hooks.HookSettings) -> dict[str, str]:
    raw: Any = settings.extra.get("env")
    if not isinstance(raw, dict):
        return {}
    return {key: value for key, value in raw.items() if isinstance(value, str)}


def _write_env(
    path: str | os.PathLike[str], settings: hooks.HookSettings, env: dict[str, str]
) -> None:
    settings.extra["env"] = {key: env[key] for key in sorted(env)}
    hooks.save(path, settings)


def _serialize_headers(headers: dict[str, str]) -> str:
    return ",".join(f"{key}={headers[key]}" for key in sorted(headers))


def _resource_attrs(user_name: str, team_name: str) -> str:
    parts = []
    if team_name:
        parts.append(f"team.name={team_name}")
    if user_name:
        parts.append(f"user.name={user_name}")
    return ",".join(sorted(parts))


def apply_otel_config_input(
    settings_path: str | os.PathLike[str], config: OTelConfigInput
) -> None:
    """Merge the managed OTel env vars into settings.json, keeping all other keys."""
    settings = _load_or_empty(settings_path)
    env = _read_env(settings)

    env["CLAUDE_CODE_ENABLE_TELEMETRY"] = "1"
    env["OTEL_METRICS_EXPORTER"] = "otlp"
    env["OTEL_LOGS_EXPORTER"] = "otlp"
    env["OTEL_EXPORTER_OTLP_PROTOCOL"] = "http/json"
    env["OTEL_EXPORTER_OTLP_ENDPOINT"] = config.endpoint

    if config.headers:
        env["OTEL_EXPORTER_OTLP_HEADERS"] = _serialize_headers(config.headers)
    else:
        env.pop("OTEL_EXPORTER_OTLP_HEADERS", None)

    attrs = _resource_attrs(config.user_name, config.team_name)
    if attrs:
        env["OTEL_RESOURCE_ATTRIBUTES"] = attrs
    else:
        env.pop("OTEL_RESOURCE_ATTRIBUTES", None)

    if config.include_account_uuid:
        env["OTEL_METRICS_INCLUDE_ACCOUNT_UUID"] = "true"
    else:
        env.pop("OTEL_METRICS_INCLUDE_ACCOUNT_UUID", None)

    _write_env(settings_path, settings, env)


def apply_otel_config(
    settings_path: str | os.PathLike[str], export: ExportSettings
) -> None:
    """Write the managed OTel env vars derived from the export settings."""
    apply_otel_config_input(
        settings_path,
        OTelConfigInput(
            endpoint=export.endpoint,
            headers=dict(export.headers),
            user_name=export.user_name,
            team_name=export.team_name,
            include_account_uuid=False,
        ),
    )


def remove_otel_config(settings_path: str | os.PathLike[str]) -> None:
    """Remove every managed OTel env var; nothing is written if none are present."""
    settings = _load_or_empty(settings_path)
    env = _read_env(settings)
    present = [key for key in MANAGED_OTEL_KEYS if key in env]
    if not present:
        return
    for key in present:
        del env[key]
    _write_env(settings_path, settings, env)


def status_otel_config(settings_path: str | os.PathLike[str]) -> OTelConfigStatus:
    """Report the managed OTel env vars currently set in settings.json."""
    env = _read_env(_load_or_empty(settings_path))
    values = {key: env[key] for key in MANAGED_OTEL_KEYS if key in env}
    return OTelConfigStatus(applied=bool(values), values=values)