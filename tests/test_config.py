from pathlib import Path

import pytest

from claudeops.config import (
    ClaudeOTelSettings,
    ConfigError,
    ExportSettings,
    Settings,
    default_settings,
    for_home,
    load,
    load_or_create,
    save,
)


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.toml"
    path.write_text(text, encoding="utf-8")
    return path


def test_full_export_section(tmp_path):
    path = _write(
        tmp_path,
        """
[export]
enabled = true
user_name = "alice"
team_name = "eng"
endpoint = "https://otel.example.com/v1/metrics"

[export.headers]
Authorization = "Bearer token"

[export.claude_otel]
enabled = true
include_user_prompts = true
include_tool_details = false
""",
    )
    s = load(path)
    assert s.export.enabled is True
    assert s.export.user_name == "alice"
    assert s.export.team_name == "eng"
    assert s.export.endpoint == "https://otel.example.com/v1/metrics"
    assert s.export.headers["Authorization"] == "Bearer token"
    assert s.export.claude_otel.enabled is True
    assert s.export.claude_otel.include_user_prompts is True
    assert s.export.claude_otel.include_tool_details is False


def test_no_export_section_yields_zero_defaults(tmp_path):
    path = _write(tmp_path, "[dashboard]\nshow_today = true\n")
    s = load(path)
    assert s.export.enabled is False
    assert (s.export.user_name, s.export.team_name, s.export.endpoint) == ("", "", "")
    assert s.export.claude_otel.enabled is False


def test_partial_export_section(tmp_path):
    path = _write(tmp_path, "[export]\nenabled = true\n")
    s = load(path)
    assert s.export.enabled is True
    assert s.export.endpoint == ""
    assert s.export.claude_otel.enabled is False


def test_export_settings_save_round_trip(tmp_path):
    path = tmp_path / "config.toml"
    s = default_settings()
    s.export.enabled = True
    s.export.user_name = "bob"
    s.export.team_name = "ops"
    s.export.endpoint = "https://otel.example.com/v1/metrics"
    s.export.headers = {"X-Token": "token"}
    s.export.claude_otel.enabled = True
    s.export.claude_otel.include_user_prompts = True
    s.export.claude_otel.include_tool_details = True

    save(path, s)
    s2 = load(path)
    assert s2.export.enabled == s.export.enabled
    assert s2.export.user_name == "bob"
    assert s2.export.endpoint == s.export.endpoint
    assert s2.export.headers["X-Token"] == "token"
    assert s2.export.claude_otel.enabled is True
    assert s2.export.claude_otel.include_user_prompts is True
    assert s2 == s


@pytest.mark.parametrize(
    "export",
    [
        ExportSettings(enabled=True, endpoint="https://otel.example.com/v1/metrics"),
        ExportSettings(enabled=False, endpoint=""),
    ],
)
def test_validate_ok(export):
    assert export.validate() is None


@pytest.mark.parametrize(
    "export, fragment",
    [
        (ExportSettings(enabled=True, endpoint=""), "endpoint"),
        (ExportSettings(enabled=True, endpoint="not-a-url"), "endpoint"),
        (ExportSettings(enabled=True, endpoint="ftp://example.com"), "endpoint"),
        (
            ExportSettings(enabled=False, claude_otel=ClaudeOTelSettings(enabled=True)),
            "claude_otel requires",
        ),
    ],
)
def test_validate_errors(export, fragment):
    with pytest.raises(ConfigError, match=fragment):
        export.validate()


def test_load_missing_returns_defaults(tmp_path):
    s = load(tmp_path / "missing.toml")
    assert s.dashboard.show_today is True
    assert s.tabs.sessions is True
    assert s == Settings()


def test_load_or_create_writes_defaults(tmp_path):
    path = tmp_path / "config.toml"
    s = load_or_create(path)
    assert s.dashboard.show_sparkline_14d is True
    body = path.read_text(encoding="utf-8")
    assert "[dashboard]" in body
    assert "show_sparkline_14d" in body
    assert body.startswith("# claudeops configuration")
    s2 = load(path)
    assert s2.dashboard == s.dashboard
    assert s2.tabs == s.tabs
    assert s2.calendar == s.calendar


def test_load_or_create_keeps_existing_file(tmp_path):
    path = _write(tmp_path, "[usage]\ncache_ttl_seconds = 42\n")
    s = load_or_create(path)
    assert s.usage.cache_ttl_seconds == 42
    assert path.read_text(encoding="utf-8") == "[usage]\ncache_ttl_seconds = 42\n"


def test_load_partial_overrides_defaults(tmp_path):
    path = _write(
        tmp_path,
        """
[dashboard]
show_sparkline_14d = false

[dashboard.thresholds]
daily_warn_eur = 5
""",
    )
    s = load(path)
    assert s.dashboard.show_sparkline_14d is False
    assert s.dashboard.show_today is True
    assert s.dashboard.thresholds.daily_warn_eur == 5
    assert s.dashboard.thresholds.daily_alert_eur == 50


def test_load_invalid_toml_raises(tmp_path):
    path = _write(tmp_path, "this is = not = valid")
    with pytest.raises(ConfigError):
        load(path)


def test_load_type_mismatch_raises(tmp_path):
    path = _write(tmp_path, '[dashboard]\nshow_today = "yes"\n')
    with pytest.raises(ConfigError, match="show_today"):
        load(path)


def test_load_ignores_unknown_keys(tmp_path):
    path = _write(tmp_path, "[dashboard]\nshow_nonexistent = true\n[extra]\nx = 1\n")
    assert load(path) == default_settings()


def test_default_values():
    s = default_settings()
    assert s.calendar.default_view == "grid"
    assert s.calendar.timezone == "local"
    assert s.calendar.timeline_days == 90
    assert s.keybindings.command_palette == "ctrl+p"
    assert s.usage.cache_ttl_seconds == 300
    assert s.dashboard.thresholds.daily_warn_eur == 20
    assert s.export.headers == {}


def test_for_home():
    p = for_home("/tmp/fakehome")
    assert p.claude_dir == Path("/tmp/fakehome/.claude")
    assert p.claude_projects == Path("/tmp/fakehome/.claude/projects")
    assert p.claude_creds == Path("/tmp/fakehome/.claude/.credentials.json")
    assert p.claude_settings == Path("/tmp/fakehome/.claude/settings.json")
    assert p.data_dir == Path("/tmp/fakehome/.claudeops")
    assert p.db_path == Path("/tmp/fakehome/.claudeops/claudeops.db")
    assert p.pricing_path == Path("/tmp/fakehome/.claudeops/pricing.toml")
    assert p.current_task_path == Path("/tmp/fakehome/.claudeops/current-task.json")
    assert p.config_path == Path("/tmp/fakehome/.claudeops/config.toml")
    assert p.live_dir == Path("/tmp/fakehome/.claudeops/live")


def test_ensure_data_dir(tmp_path):
    p = for_home(tmp_path)
    p.ensure_data_dir()
    assert p.data_dir.is_dir()
    p.ensure_data_dir()
    assert p.data_dir.is_dir()