"""Pushing cumulative usage metrics to an OTLP/HTTP endpoint."""

from __future__ import annotations

import json
import logging
import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import IO, Protocol

from claudeops.config import ExportSettings
from claudeops.otlp import (
    InstrumentationScope,
    PeriodData,
    ProjectPeriodAgg,
    Resource,
    str_attr,
)
from claudeops.otlp import build_payload
from claudeops.poster import HTTPStatusError, PostCancelled, post

log = logging.getLogger(__name__)

# The earliest representable time; querying from it yields all-time totals.
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
LAST_PUSHED_KEY = "export.last_pushed_at"


class ExportError(Exception):
    """Raised when a push cannot be completed."""


class Store(Protocol):
    """The storage operations a Pusher needs."""

    def config_get(self, key: str) -> str | None: ...

    def config_set(self, key: str, value: str) -> None: ...

    def aggregates_by_project_between(
        self, start: datetime, end: datetime
    ) -> list[ProjectPeriodAgg]: ...


class CredReader(Protocol):
    """Something that can report the user's e-mail address."""

    def email(self) -> str: ...


@dataclass
class PushOptions:
    """Options for a single push."""

    dry_run: bool = False
    since: datetime | None = None


@dataclass
class PushResult:
    """Outcome of a successful push."""

    period_from: datetime
    period_to: datetime
    data_points: int
    dry_run: bool = False


class Pusher:
    """Collects all-time per-project totals and sends them as OTLP metrics."""

    def __init__(
        self,
        store: Store,
        config: ExportSettings,
        creds: CredReader,
        out: IO[str] | None = None,
        *,
        timeout: float = 30.0,
        sleep: Callable[[float], object] = time.sleep,
    ) -> None:
        self.store = store
        self.config = config
        self.creds = creds
        self.out = out if out is not None else sys.stdout
        self.timeout = timeout
        self.sleep = sleep

    def _email(self) -> str:
        try:
            return self.creds.email()
        except Exception as exc:  # credentials are optional
            log.warning("export: reading credentials: %s", exc)
            return ""

    def push(self, options: PushOptions | None = None) -> PushResult:
        """Build the payload and POST it, or write it to ``out`` on a dry run."""
        options = options or PushOptions()
        if not self.config.enabled:
            raise ExportError("export is disabled")
        if not self.config.endpoint:
            raise ExportError("export.endpoint is not configured")

        email = self._email()
        end = datetime.now(timezone.utc).replace(microsecond=0)

        # Cumulative counters: always all-time totals, whatever options.since says.
        try:
            rows = self.store.aggregates_by_project_between(ZERO_TIME, end)
        except Exception as exc:
            raise ExportError(f"export: query aggregates: {exc}") from exc

        attrs = [str_attr("service.name", "claudeops")]
        if email:
            attrs.append(str_attr("user.email", email))
        if self.config.user_name:
            attrs.append(str_attr("claudeops.user_name", self.config.user_name))
        if self.config.team_name:
            attrs.append(str_attr("claudeops.team_name", self.config.team_name))

        payload = build_payload(
            Resource(attributes=attrs),
            PeriodData(
                start=EPOCH,
                end=end,
                by_project=list(rows),
                user_name=self.config.user_name,
                team_name=self.config.team_name,
            ),
            InstrumentationScope(name="claudeops", version="1"),
        )
        data_points = sum(
            len(metric.sum.data_points)
            for rm in payload.resource_metrics
            for sm in rm.scope_metrics
            for metric in sm.metrics
            if metric.sum is not None
        )

        if options.dry_run:
            self.out.write(json.dumps(payload.to_dict(), indent=2, ensure_ascii=False))
            return PushResult(
                period_from=EPOCH, period_to=end, data_points=data_points, dry_run=True
            )

        body = json.dumps(payload.to_dict(), separators=(",", ":")).encode("utf-8")
        endpoint = self.config.endpoint + "/v1/metrics"
        try:
            post(
                endpoint,
                self.config.headers,
                body,
                timeout=self.timeout,
                sleep=self.sleep,
            )
        except (HTTPStatusError, PostCancelled, OSError) as exc:
            raise ExportError(f"export: post: {exc}") from exc

        try:
            self.store.config_set(LAST_PUSHED_KEY, end.strftime("%Y-%m-%dT%H:%M:%SZ"))
        except Exception as exc:
            log.warning("export: save last_pushed_at: %s", exc)

        return PushResult(period_from=EPOCH, period_to=end, data_points=data_points)