# claudeops

Helpers for tracking Claude Code usage locally. The package:

- reads and writes its settings in `~/.claudeops/config.toml` (`claudeops.config`);
- registers Claude Code hooks in `~/.claude/settings.json` and keeps a small
  sidecar file per live session under `~/.claudeops/live/` (`claudeops.hooks`);
- writes or removes the OpenTelemetry environment variables in the `env` block
  of Claude Code's settings (`claudeops.otelconfig`);
- derives readable insights from aggregated usage figures (`claudeops.insights`);
- builds OTLP/HTTP JSON metric payloads and posts them with retries
  (`claudeops.otlp`, `claudeops.poster`, `claudeops.exporter`).

## Installation

```
pip install .
```

This installs the `claudeops` command. The only runtime dependency is `tomli-w`.

## Command line

```
claudeops hooks install       register Claude Code hooks for live status
claudeops hooks uninstall     remove claudeops hooks from settings.json
claudeops hooks status        show which hooks are registered
claudeops hooks handle        handle one hook event read from standard input
claudeops otel-config apply   configure Claude Code OTel telemetry
claudeops otel-config status  show OTel telemetry configuration
claudeops otel-config remove  remove OTel telemetry configuration
claudeops version             print version
claudeops help                show usage
```

Run with no arguments, `claudeops` prints the usage summary. Errors are
printed to standard error and the command exits with status 1.

### Hooks

`hooks install` adds one entry for each of `SessionStart`, `UserPromptSubmit`,
`Stop` and `SessionEnd`, running `<path of claudeops> hooks handle` with a
5-second timeout. Every entry it adds is tagged `"_source": "claudeops"`;
installing again replaces those entries instead of duplicating them, and
`hooks uninstall` removes only tagged entries, dropping groups and events that
become empty. Other hooks and all other top-level keys in the settings file
are kept. Whenever an existing, non-empty settings file is rewritten, its
previous contents are first copied to `settings.json.bak-<unix time>`.

`hooks handle` is what Claude Code invokes. It reads one JSON event and writes
`~/.claudeops/live/<session_id>.json` with the session id, project path,
last event, model, an update time and a state: `working` after
`UserPromptSubmit`, `waiting` otherwise. `SessionEnd` deletes the file. Empty
input or an event without a session id is ignored, and failures are only
reported on standard error, so the calling session is never interrupted.

### OpenTelemetry settings

`otel-config apply` requires `[export.claude_otel] enabled = true` in
`config.toml`. It sets `CLAUDE_CODE_ENABLE_TELEMETRY=1`,
`OTEL_METRICS_EXPORTER=otlp`, `OTEL_LOGS_EXPORTER=otlp`,
`OTEL_EXPORTER_OTLP_PROTOCOL=http/json` and `OTEL_EXPORTER_OTLP_ENDPOINT`, plus
`OTEL_EXPORTER_OTLP_HEADERS` (`key=value` pairs sorted by key, comma-separated)
and `OTEL_RESOURCE_ATTRIBUTES` (`team.name=…,user.name=…`) when those have
values. `otel-config remove` deletes only these managed keys and leaves the
file untouched if none are present. `otel-config status` lists the managed
keys currently set.

## Configuration

`~/.claudeops/config.toml` holds dashboard widget toggles and spend
thresholds, tab toggles, calendar defaults, key bindings, the usage cache TTL,
insight card toggles and export settings. Any key you leave out takes its
built-in default; `config.load_or_create` writes a commented file of defaults
when none exists. To enable export:

```toml
[export]
enabled = true
user_name = "alice"
team_name = "eng"
endpoint = "https://otel.example.com"

[export.headers]
Authorization = "Bearer token"

[export.claude_otel]
enabled = true
```

`ExportSettings.validate()` raises `ConfigError` when `claude_otel` is enabled
without `export.enabled`, or when export is enabled without an `http`/`https`
endpoint.

## Library use

```python
from claudeops import config, insights

paths = config.default_paths()
settings = config.load(paths.config_path)
settings.export.validate()

data = insights.InsightInput(
    hourly_global=[insights.HourlyAgg(hour=9, cost_eur=5.0)],
)
for item in insights.compute(data):
    print(item.severity, item.title)
```

The insight generators (`cache_efficiency`, `model_mix`, `cost_trend`,
`session_efficiency`, `peak_hours`) each return an `Insight` or `None` when
there is not enough data.

`exporter.Pusher(store, export_settings, creds)` queries all-time
per-project totals from `store`, builds cumulative `claudeops.cost`,
`claudeops.tokens` and `claudeops.sessions` sums with
`otlp.build_payload`, and posts them to `<endpoint>/v1/metrics`. `post`
retries HTTP 429, 5xx responses and network errors up to three attempts in
total. `Pusher.push(PushOptions(dry_run=True))` writes the JSON payload to the
output stream instead of sending it. On success the push time is saved under
`export.last_pushed_at` through `store.config_set`. `credentials.FileCredReader`
can supply the e-mail address, read from the JWT access token in
`~/.claude/.credentials.json`.

## What this package does not do

There is no dashboard or other interactive screen, no reading of the session
logs under `~/.claude/projects/`, and no local database of usage events. The
package does not supply a store for `Pusher`: you pass your own object with
`config_get`, `config_set` and `aggregates_by_project_between` methods, and
there is no `push` command. Task tracking, pricing tables, polling of the
usage endpoint and self-updating are not provided either.