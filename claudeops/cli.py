"""Command-line entry point: hook management and OTel telemetry configuration."""

from __future__ import annotations

import os
import shutil
import sys
from collections.abc import Sequence

from claudeops import config, hooks, otelconfig

VERSION = "0.2.3"

_HELP = """claudeops — local tooling for Claude Code usage tracking

Usage:
  claudeops hooks install                       register Claude Code hooks for live status
  claudeops hooks uninstall                     remove claudeops hooks from settings.json
  claudeops hooks status                        show which hooks are registered
  claudeops otel-config apply                   configure Claude Code OTel telemetry
  claudeops otel-config status                  show OTel telemetry configuration
  claudeops otel-config remove                  remove OTel telemetry configuration
  claudeops version                             print version

Files:
  ~/.claudeops/config.toml         dashboard widgets, thresholds, export settings
  ~/.claudeops/live/               hook-written session sidecars
  ~/.claude/settings.json          Claude Code settings (hooks and env)
  ~/.claude/projects/              source data (read-only)"""


class CommandError(Exception):
    """A command was used incorrectly or could not complete."""


def print_help() -> None:
    """Print the usage summary."""
    print(_HELP)


def _fmt_bool(value: bool) -> str:
    return "true" if value else "false"


def _resolve_binary() -> str:
    """Return the absolute, symlink-free path of the running command."""
    candidate = sys.argv[0] if sys.argv and sys.argv[0] else "claudeops"
    if os.sep not in candidate:
        candidate = shutil.which(candidate) or candidate
    return os.path.realpath(candidate)


def cmd_hooks(args: Sequence[str]) -> None:
    """Run a ``hooks`` subcommand: install, uninstall, status or handle."""
    if not args:
        raise CommandError("hooks: missing subcommand (install|uninstall|status|handle)")
    paths = config.default_paths()
    settings_path = paths.claude_settings
    sub = args[0]
    if sub == "install":
        binary = _resolve_binary()
        hooks.install(settings_path, binary)
        print(f"installed claudeops hooks into {settings_path}")
        print(f"binary: {binary}")
    elif sub == "uninstall":
        hooks.uninstall(settings_path)
        print(f"removed claudeops hooks from {settings_path}")
    elif sub == "status":
        report = hooks.status(settings_path, _resolve_binary())
        print(f"settings: {report.settings_path}")
        print(f"binary:   {report.binary} (exists: {_fmt_bool(report.binary_exists)})")
        for event in hooks.MANAGED_EVENTS:
            mark = "✓" if report.events.get(event) else "✗"
            print(f"  {mark} {event}")
    elif sub == "handle":
        # Invoked by Claude Code: never fail the user's session.
        try:
            hooks.handle(sys.stdin, paths.live_dir)
        except (OSError, ValueError) as exc:
            print(f"claudeops: hook handle: {exc}", file=sys.stderr)
    else:
        raise CommandError(f"hooks: unknown subcommand {sub!r}")


def _print_aligned(rows: list[tuple[str, str]]) -> None:
    width = max((len(label) for label, _ in rows), default=0) + 2
    for label, value in rows:
        print(f"{label:<{width}}{value}")


def cmd_otel_config(args: Sequence[str]) -> None:
    """Run an ``otel-config`` subcommand: apply, status or remove."""
    if not args:
        raise CommandError("usage: claudeops otel-config apply|status|remove")
    paths = config.default_paths()
    try:
        settings = config.load(paths.config_path)
    except config.ConfigError as exc:
        raise CommandError(f"otel-config: load config: {exc}") from exc
    settings_json = paths.claude_settings

    sub = args[0]
    if sub == "apply":
        if not settings.export.claude_otel.enabled:
            raise CommandError(
                "claude_otel is disabled — set [export.claude_otel] enabled = true "
                "in config.toml"
            )
        otelconfig.apply_otel_config(settings_json, settings.export)
        print(f"applied OTel config to {settings_json}")
    elif sub == "status":
        state = otelconfig.status_otel_config(settings_json)
        rows = [("applied:", _fmt_bool(state.applied))]
        rows.extend(
            (f"{key}:", state.values[key])
            for key in otelconfig.MANAGED_OTEL_KEYS
            if key in state.values
        )
        _print_aligned(rows)
    elif sub == "remove":
        otelconfig.remove_otel_config(settings_json)
        print(f"removed OTel config from {settings_json}")
    else:
        raise CommandError(f"otel-config: unknown subcommand {sub!r}")


def run_args(args: Sequence[str]) -> None:
    """Dispatch a command line (without the program name)."""
    if not args:
        print_help()
        return
    command, rest = args[0], list(args[1:])
    if command in ("version", "-v", "--version"):
        print("claudeops", VERSION)
    elif command == "hooks":
        cmd_hooks(rest)
    elif command == "otel-config":
        cmd_otel_config(rest)
    elif command in ("help", "-h", "--help"):
        print_help()
    else:
        print_help()
        raise CommandError(f"unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return the process exit status."""
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        run_args(args)
    except (CommandError, config.ConfigError, ValueError, OSError) as exc:
        print(f"claudeops: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())