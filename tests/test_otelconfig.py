import json

import pytest

from claudeops.config import ExportSettings
from claudeops.otelconfig import (
    MANAGED_OTEL_KEYS,
    OTelConfigInput,
    apply_otel_config,
    apply_otel_config_input,
    remove_otel_config,
    status_otel_config,
)


def read_env(path):
    data = json.loads(path.read_text())
    return data.get("env", {})


@pytest.fixture
def settings_path(tmp_path):
    return tmp_path / "settings.json"


def test_apply_non_existent_file(settings_path):
    cfg = OTelConfigInput(
        endpoint="http://localhost:4318", headers={"Authorization": "Bearer token"}
    )
    apply_otel_config_input(settings_path, cfg)
    assert settings_path.exists()
    env = read_env(settings_path)
    assert env["CLAUDE_CODE_ENABLE_TELEMETRY"] == "1"
    assert env["OTEL_EXPORTER_OTLP_ENDPOINT"] == "http://localhost:4318"
    assert env["OTEL_METRICS_EXPORTER"] == "otlp"
    assert env["OTEL_LOGS_EXPORTER"] == "otlp"
    assert env["OTEL_EXPORTER_OTLP_PROTOCOL"] == "http/json"
    assert env["OTEL_EXPORTER_OTLP_HEADERS"] == "Authorization=Bearer token"


def test_apply_preserves_existing_env_vars(settings_path):
    settings_path.write_text(json.dumps({"env": {"MY_VAR": "hello"}}))
    apply_otel_config_input(settings_path, OTelConfigInput(endpoint="http://localhost:4318"))
    env = read_env(settings_path)
    assert env["MY_VAR"] == "hello"
    assert env["CLAUDE_CODE_ENABLE_TELEMETRY"] == "1"


def test_apply_preserves_top_level_keys(settings_path):
    settings_path.write_text(json.dumps({"model": "claude-opus-4-5", "env": {}}))
    apply_otel_config_input(settings_path, OTelConfigInput(endpoint="http://localhost:4318"))
    top = json.loads(settings_path.read_text())
    assert top["model"] == "claude-opus-4-5"


def test_apply_idempotent(settings_path):
    cfg = OTelConfigInput(endpoint="http://localhost:4318")
    apply_otel_config_input(settings_path, cfg)
    apply_otel_config_input(settings_path, cfg)
    env = read_env(settings_path)
    assert env["CLAUDE_CODE_ENABLE_TELEMETRY"] == "1"
    assert env["OTEL_EXPORTER_OTLP_ENDPOINT"] == "http://localhost:4318"
    assert set(env) == {
        "CLAUDE_CODE_ENABLE_TELEMETRY",
        "OTEL_METRICS_EXPORTER",
        "OTEL_LOGS_EXPORTER",
        "OTEL_EXPORTER_OTLP_PROTOCOL",
        "OTEL_EXPORTER_OTLP_ENDPOINT",
    }


def test_apply_updates_endpoint(settings_path):
    apply_otel_config_input(settings_path, OTelConfigInput(endpoint="http://old:4318"))
    apply_otel_config_input(settings_path, OTelConfigInput(endpoint="http://new:4318"))
    assert read_env(settings_path)["OTEL_EXPORTER_OTLP_ENDPOINT"] == "http://new:4318"


def test_apply_headers_sorted_no_spaces(settings_path):
    cfg = OTelConfigInput(
        endpoint="http://localhost:4318",
        headers={"X-Org": "acme", "Authorization": "Bearer token"},
    )
    apply_otel_config_input(settings_path, cfg)
    got = read_env(settings_path)["OTEL_EXPORTER_OTLP_HEADERS"]
    assert got == "Authorization=Bearer token,X-Org=acme"
    assert " =" not in got and "= " not in got


def test_apply_empty_headers_key_absent(settings_path):
    apply_otel_config_input(
        settings_path, OTelConfigInput(endpoint="http://localhost:4318", headers={})
    )
    assert "OTEL_EXPORTER_OTLP_HEADERS" not in read_env(settings_path)


def test_apply_include_account_uuid(settings_path):
    apply_otel_config_input(
        settings_path,
        OTelConfigInput(endpoint="http://localhost:4318", include_account_uuid=True),
    )
    assert read_env(settings_path)["OTEL_METRICS_INCLUDE_ACCOUNT_UUID"] == "true"


def test_apply_no_include_account_uuid(settings_path):
    apply_otel_config_input(
        settings_path,
        OTelConfigInput(endpoint="http://localhost:4318", include_account_uuid=False),
    )
    assert "OTEL_METRICS_INCLUDE_ACCOUNT_UUID" not in read_env(settings_path)


def test_apply_resource_attributes(settings_path):
    apply_otel_config_input(
        settings_path,
        OTelConfigInput(endpoint="http://localhost:4318", user_name="alice", team_name="eng"),
    )
    assert read_env(settings_path)["OTEL_RESOURCE_ATTRIBUTES"] == "team.name=eng,user.name=alice"


def test_apply_empty_resource_attributes(settings_path):
    apply_otel_config_input(settings_path, OTelConfigInput(endpoint="http://localhost:4318"))
    assert "OTEL_RESOURCE_ATTRIBUTES" not in read_env(settings_path)


def test_apply_from_export_settings(settings_path):
    export = ExportSettings(
        enabled=True,
        endpoint="https://otel.example.com",
        headers={"Authorization": "Bearer token"},
        user_name="bob",
    )
    apply_otel_config(settings_path, export)
    env = read_env(settings_path)
    assert env["OTEL_EXPORTER_OTLP_ENDPOINT"] == "https://otel.example.com"
    assert env["OTEL_EXPORTER_OTLP_HEADERS"] == "Authorization=Bearer token"
    assert env["OTEL_RESOURCE_ATTRIBUTES"] == "user.name=bob"
    assert "OTEL_METRICS_INCLUDE_ACCOUNT_UUID" not in env


def test_remove_removes_managed_keys(settings_path):
    apply_otel_config_input(settings_path, OTelConfigInput(endpoint="http://localhost:4318"))
    data = json.loads(settings_path.read_text())
    data["env"]["KEEP_ME"] = "yes"
    settings_path.write_text(json.dumps(data))

    remove_otel_config(settings_path)
    env = read_env(settings_path)
    for key in MANAGED_OTEL_KEYS:
        assert key not in env
    assert env["KEEP_ME"] == "yes"


def test_remove_without_managed_keys_changes_nothing(settings_path, tmp_path):
    original = json.dumps({"env": {"MY_VAR": "hello"}})
    settings_path.write_text(original)
    remove_otel_config(settings_path)
    assert settings_path.read_text() == original
    assert list(tmp_path.glob("settings.json.bak-*")) == []


def test_remove_creates_bak_file(settings_path, tmp_path):
    apply_otel_config_input(settings_path, OTelConfigInput(endpoint="http://localhost:4318"))
    assert remove_otel_config(settings_path) is None
    assert len(list(tmp_path.glob("settings.json.bak-*"))) >= 1
    status = status_otel_config(settings_path)
    assert status.applied is False
    assert status.values == {}


def test_status_not_applied(settings_path):
    settings_path.write_text(json.dumps({"env": {"MY_VAR": "hello"}}))
    status = status_otel_config(settings_path)
    assert status.applied is False
    assert status.values == {}


def test_status_applied(settings_path):
    apply_otel_config_input(settings_path, OTelConfigInput(endpoint="http://localhost:4318"))
    status = status_otel_config(settings_path)
    assert status.applied is True
    assert status.values["OTEL_EXPORTER_OTLP_ENDPOINT"] == "http://localhost:4318"


def test_status_non_existent_file(settings_path):
    status = status_otel_config(settings_path)
    assert status.applied is False


def test_invalid_json_raises(settings_path):
    settings_path.write_text("not json {{{")
    with pytest.raises(ValueError, match="otelconfig load"):
        status_otel_config(settings_path)