"""Claude Code hook registration and the live-session sidecar handler.

Every hook entry added here is tagged with ``"_source": "claudeops"`` so it
can be found and removed again without touching the user's own hooks.
Everything in settings.json outside of ``hooks`` is preserved as-is.
"""

from __future__ import annotations

import contextlib
import json
import os
import tempfile
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, Any

SOURCE_MARKER = "claudeops"

# Order only matters for deterministic output in settings.json.
MANAGED_EVENTS: tuple[str, ...] = (
    "SessionStart",
    "UserPromptSubmit",
    "Stop",
    "SessionEnd",
)


def _str_field(obj: dict[str, Any], key: str, where: str) -> str:
    value = obj.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{where}: field {key!r} must be a string")
    return value


def _write_private(path: Path, data: bytes) -> None:
    """Write bytes to path, creating it with mode 0600."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "wb") as fh:
        fh.write(data)


@dataclass
class Entry:
    """A single hook command in settings.json."""

    type: str = ""
    command: str = ""
    timeout: int = 0
    source: str = ""

    @classmethod
    def _from_json(cls, data: Any) -> Entry:
        if not isinstance(data, dict):
            raise ValueError("parse hooks: hook entry must be an object")
        timeout = data.get("timeout")
        if timeout is None:
            timeout = 0
        elif isinstance(timeout, bool) or not isinstance(timeout, int):
            raise ValueError("parse hooks: field 'timeout' must be an integer")
        return cls(
            type=_str_field(data, "type", "parse hooks"),
            command=_str_field(data, "command", "parse hooks"),
            timeout=timeout,
            source=_str_field(data, "_source", "parse hooks"),
        )

    def _to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {"type": self.type, "command": self.command}
        if self.timeout:
            out["timeout"] = self.timeout
        if self.source:
            out["_source"] = self.source
        return out


@dataclass
class Group:
    """A matcher together with the hook commands it triggers."""

    matcher: str = ""
    hooks: list[Entry] = field(default_factory=list)

    @classmethod
    def _from_json(cls, data: Any) -> Group:
        if not isinstance(data, dict):
            raise ValueError("parse hooks: hook group must be an object")
        entries = data.get("hooks")
        if entries is None:
            entries = []
        if not isinstance(entries, list):
            raise ValueError("parse hooks: field 'hooks' must be a list")
        return cls(
            matcher=_str_field(data, "matcher", "parse hooks"),
            hooks=[Entry._from_json(item) for item in entries],
        )

    def _to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.matcher:
            out["matcher"] = self.matcher
        out["hooks"] = [entry._to_json() for entry in self.hooks]
        return out


@dataclass
class HookSettings:
    """The ``hooks`` table of settings.json plus every other top-level key."""

    hooks: dict[str, list[Group]] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)


def _parse_hooks(value: Any) -> dict[str, list[Group]]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError("parse hooks: 'hooks' must be an object")
    parsed: dict[str, list[Group]] = {}
    for event, groups in value.items():
        if groups is None:
            groups = []
        if not isinstance(groups, list):
            raise ValueError(f"parse hooks: {event!r} must be a list")
        parsed[event] = [Group._from_json(item) for item in groups]
    return parsed


def load(path: str | os.PathLike[str]) -> HookSettings:
    """Read settings.json; a missing or empty file yields empty settings."""
    path = Path(path)
    try:
        data = path.read_bytes()
    except FileNotFoundError:
        return HookSettings()
    if not data:
        return HookSettings()
    try:
        raw = json.loads(data)
    except ValueError as exc:
        raise ValueError(f"parse {path}: {exc}") from exc
    if raw is None:
        return HookSettings()
    if not isinstance(raw, dict):
        raise ValueError(f"parse {path}: top level must be a JSON object")
    settings = HookSettings()
    for key, value in raw.items():
        if key == "hooks":
            settings.hooks = _parse_hooks(value)
        else:
            settings.extra[key] = value
    return settings


def save(path: str | os.PathLike[str], settings: HookSettings) -> None:
    """Write settings.json atomically, backing up any previous contents."""
    path = Path(path)
    path.parent.mkdir(mode=0o755, parents=True, exist_ok=True)
    try:
        previous = path.read_bytes()
    except OSError:
        previous = b""
    if previous:
        backup = path.with_name(f"{path.name}.bak-{int(time.time())}")
        _write_private(backup, previous)

    combined: dict[str, Any] = dict(settings.extra)
    if settings.hooks:
        combined["hooks"] = {
            event: [group._to_json() for group in settings.hooks[event]]
            for event in sorted(settings.hooks)
        }
    ordered = {key: combined[key] for key in sorted(combined)}
    text = json.dumps(ordered, indent=2, ensure_ascii=False)

    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".settings.json.")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        with contextlib.suppress(OSError):
            os.remove(tmp_name)
        raise


@dataclass
class StatusReport:
    """Which managed events carry a claudeops hook, and whether the binary exists."""

    settings_path: str
    binary: str
    binary_exists: bool = False
    events: dict[str, bool] = field(default_factory=dict)


def _strip_ours(settings: HookSettings) -> None:
    """Remove claudeops-tagged entries and prune groups and events left empty."""
    pruned: dict[str, list[Group]] = {}
    for event, groups in settings.hooks.items():
        kept = []
        for group in groups:
            entries = [e for e in group.hooks if e.source != SOURCE_MARKER]
            if entries:
                kept.append(Group(matcher=group.matcher, hooks=entries))
        if kept:
            pruned[event] = kept
    settings.hooks = pruned


def install(path: str | os.PathLike[str], binary: str) -> None:
    """Register the claudeops hook for every managed event; idempotent."""
    settings = load(path)
    _strip_ours(settings)
    for event in MANAGED_EVENTS:
        entry = Entry(
            type="command",
            command=f"{binary} hooks handle",
            timeout=5,
            source=SOURCE_MARKER,
        )
        settings.hooks.setdefault(event, []).append(Group(matcher="", hooks=[entry]))
    save(path, settings)


def uninstall(path: str | os.PathLike[str]) -> None:
    """Remove every claudeops-tagged hook entry and save the result."""
    settings = load(path)
    _strip_ours(settings)
    save(path, settings)


def status(path: str | os.PathLike[str], binary: str | None) -> StatusReport:
    """Report which managed events have a claudeops-tagged entry."""
    binary = binary or ""
    report = StatusReport(
        settings_path=str(path),
        binary=binary,
        binary_exists=bool(binary) and os.path.exists(binary),
        events={event: False for event in MANAGED_EVENTS},
    )
    settings = load(path)
    for event in MANAGED_EVENTS:
        report.events[event] = any(
            entry.source == SOURCE_MARKER
            for group in settings.hooks.get(event, [])
            for entry in group.hooks
        )
    return report


@dataclass
class Event:
    """The payload Claude Code sends to the hook command over stdin."""

    session_id: str = ""
    transcript_path: str = ""
    cwd: str = ""
    hook_event_name: str = ""
    source: str = ""
    model: str = ""

    @classmethod
    def _from_json(cls, data: dict[str, Any]) -> Event:
        return cls(
            **{
                name: _str_field(data, name, "parse event")
                for name in (
                    "session_id",
                    "transcript_path",
                    "cwd",
                    "hook_event_name",
                    "source",
                    "model",
                )
            }
        )


def _format_time(moment: datetime) -> str:
    moment = moment.astimezone(timezone.utc)
    text = moment.strftime("%Y-%m-%dT%H:%M:%S")
    fraction = f"{moment.microsecond:06d}".rstrip("0")
    if fraction:
        text += "." + fraction
    return text + "Z"


@dataclass
class Sidecar:
    """Per-session state written under the live directory."""

    session_id: str
    project_path: str
    state: str
    last_event: str
    updated_at: datetime
    model: str = ""

    def _to_json(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "session_id": self.session_id,
            "project_path": self.project_path,
            "state": self.state,
            "last_event": self.last_event,
        }
        if self.model:
            out["model"] = self.model
        out["updated_at"] = _format_time(self.updated_at)
        return out


def handle(stream: IO[Any], live_dir: str | os.PathLike[str]) -> None:
    """Read one hook event from stream and update the session's sidecar.

    SessionEnd deletes the sidecar. Empty input or an event without a
    session id is ignored.
    """
    data = stream.read()
    if not data:
        return
    try:
        raw = json.loads(data)
    except ValueError as exc:
        raise ValueError(f"parse event: {exc}") from exc
    if raw is None:
        return
    if not isinstance(raw, dict):
        raise ValueError("parse event: expected a JSON object")
    event = Event._from_json(raw)
    if not event.session_id:
        return

    live = Path(live_dir)
    live.mkdir(mode=0o700, parents=True, exist_ok=True)
    target = live / f"{event.session_id}.json"

    if event.hook_event_name == "SessionEnd":
        with contextlib.suppress(OSError):
            target.unlink()
        return

    sidecar = Sidecar(
        session_id=event.session_id,
        project_path=event.cwd,
        state="working" if event.hook_event_name == "UserPromptSubmit" else "waiting",
        last_event=event.hook_event_name,
        model=event.model,
        updated_at=datetime.now(timezone.utc),
    )
    text = json.dumps(sidecar._to_json(), indent=2, ensure_ascii=False)
    _write_private(target, text.encode("utf-8"))