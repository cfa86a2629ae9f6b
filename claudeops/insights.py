"""Human-readable observations derived from aggregated usage data."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum

_ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


class Severity(IntEnum):
    """How important an insight is."""

    INFO = 0
    TIP = 1
    WARN = 2

    def __str__(self) -> str:
        return self.name


@dataclass
class Insight:
    """A single observation with a recommended action."""

    id: str
    severity: Severity = Severity.INFO
    title: str = ""
    detail: str = ""
    recommendation: str = ""


@dataclass
class Aggregates:
    """Usage totals over some window."""

    events: int = 0
    cost_eur: float = 0.0
    in_tokens: int = 0
    out_tokens: int = 0
    cache_read_tokens: int = 0
    cache_create_tokens: int = 0


@dataclass
class ModelAgg:
    """Usage totals for one model."""

    model: str = ""
    cost_eur: float = 0.0
    events: int = 0


@dataclass
class DailyAgg:
    """Usage totals for one day."""

    day: str = ""
    cost_eur: float = 0.0
    events: int = 0


@dataclass
class SessionAgg:
    """Usage totals for one session."""

    session_id: str = ""
    cost_eur: float = 0.0
    in_tokens: int = 0
    out_tokens: int = 0
    cache_read_tokens: int = 0
    first_seen: datetime = _ZERO_TIME
    last_seen: datetime = _ZERO_TIME


@dataclass
class HourlyAgg:
    """Usage totals for one hour of the day."""

    hour: int = 0
    cost_eur: float = 0.0
    events: int = 0


@dataclass
class InsightInput:
    """Every data source the insight generators need."""

    last_7d: Aggregates = field(default_factory=Aggregates)
    all_time: Aggregates = field(default_factory=Aggregates)
    per_model: list[ModelAgg] = field(default_factory=list)
    daily: list[DailyAgg] = field(default_factory=list)
    sessions: list[SessionAgg] = field(default_factory=list)
    hourly_global: list[HourlyAgg] = field(default_factory=list)


def cache_efficiency(agg: Aggregates) -> Insight | None:
    """Judge how well cached context is reused; None when there are no tokens."""
    denom = float(agg.cache_read_tokens + agg.in_tokens + agg.out_tokens)
    if denom == 0:
        return None
    ratio = agg.cache_read_tokens / denom * 100
    if ratio < 20:
        return Insight(
            id="cache-efficiency",
            severity=Severity.WARN,
            title=f"Low cache efficiency ({ratio:.0f}%)",
            detail=f"Cache read tokens represent only {ratio:.0f}% of total token usage.",
            recommendation=(
                "Your sessions rebuild context frequently. "
                "Keep sessions longer or use prompt caching."
            ),
        )
    if ratio < 40:
        return Insight(
            id="cache-efficiency",
            severity=Severity.TIP,
            title=f"Moderate cache efficiency ({ratio:.0f}%)",
            detail=f"Cache read tokens represent {ratio:.0f}% of total token usage.",
            recommendation="Consider longer sessions or smaller context to improve cache reuse.",
        )
    return Insight(
        id="cache-efficiency",
        severity=Severity.INFO,
        title=f"Good cache efficiency ({ratio:.0f}%)",
        detail=f"Cache read tokens represent {ratio:.0f}% of total token usage.",
        recommendation="Your cache usage is healthy.",
    )


def model_mix(models: list[ModelAgg]) -> Insight | None:
    """Check whether spend is concentrated on one model.

    The list is expected sorted by cost, highest first. None when fewer than
    two models are present or the total cost is zero.
    """
    if len(models) < 2:
        return None
    total = sum(m.cost_eur for m in models)
    if total == 0:
        return None
    top = models[0]
    top_pct = top.cost_eur / total * 100
    if top_pct > 70:
        return Insight(
            id="model-mix",
            severity=Severity.TIP,
            title=f"{top_pct:.0f}% of spend on {top.model}",
            detail=(
                f"Model {top.model} accounts for {top_pct:.0f}% of total cost "
                f"(€{top.cost_eur:.4f} of €{total:.4f})."
            ),
            recommendation="Consider routing routine tasks to a cheaper model.",
        )
    return Insight(
        id="model-mix",
        severity=Severity.INFO,
        title="Balanced model mix",
        detail=f"Top model: {top.model} at {top_pct:.0f}% of spend.",
        recommendation="",
    )


def cost_trend(daily: list[DailyAgg]) -> Insight | None:
    """Compare average daily spend this week with last week.

    ``daily[0]`` is the most recent day. None with fewer than 14 days or when
    last week's average is zero.
    """
    if len(daily) < 14:
        return None
    this_week_avg = sum(d.cost_eur for d in daily[:7]) / 7
    last_week_avg = sum(d.cost_eur for d in daily[7:14]) / 7
    if last_week_avg == 0:
        return None
    change = (this_week_avg - last_week_avg) / last_week_avg * 100
    detail = f"Daily avg: €{this_week_avg:.4f} this week vs €{last_week_avg:.4f} last week."
    if change > 50:
        return Insight(
            id="cost-trend",
            severity=Severity.WARN,
            title=f"Cost up {change:.0f}% vs last week",
            detail=detail,
            recommendation="Review recent sessions for unexpected cost spikes.",
        )
    if change > 0:
        return Insight(
            id="cost-trend",
            severity=Severity.INFO,
            title=f"Cost up {change:.0f}% vs last week",
            detail=detail,
        )
    return Insight(
        id="cost-trend",
        severity=Severity.INFO,
        title=f"Cost down {-change:.0f}% vs last week",
        detail=detail,
    )


@dataclass
class _Bin:
    total_cost: float = 0.0
    total_tokens: int = 0
    count: int = 0

    def add(self, session: SessionAgg, tokens: int) -> None:
        self.total_cost += session.cost_eur
        self.total_tokens += tokens
        self.count += 1


def session_efficiency(sessions: list[SessionAgg]) -> Insight | None:
    """Compare cost per token of short sessions against long ones.

    None with fewer than 5 sessions or when no significant difference exists.
    """
    if len(sessions) < 5:
        return None
    short_bin, long_bin = _Bin(), _Bin()
    for session in sessions:
        seconds = (session.last_seen - session.first_seen).total_seconds()
        tokens = session.in_tokens + session.out_tokens + session.cache_read_tokens
        if tokens == 0 or seconds == 0:
            continue
        if seconds / 60 < 10:
            short_bin.add(session, tokens)
        elif seconds / 3600 > 1:
            long_bin.add(session, tokens)

    if short_bin.count < 2 or long_bin.total_tokens == 0 or short_bin.total_tokens == 0:
        return None

    short_per_mtok = short_bin.total_cost / short_bin.total_tokens * 1_000_000
    long_per_mtok = long_bin.total_cost / long_bin.total_tokens * 1_000_000
    if long_per_mtok == 0 or short_per_mtok <= 2 * long_per_mtok:
        return None

    ratio = short_per_mtok / long_per_mtok
    return Insight(
        id="session-efficiency",
        severity=Severity.TIP,
        title=f"Short sessions cost {ratio:.1f}x more per token",
        detail=(
            f"Short sessions: €{short_per_mtok:.4f}/Mtok | "
            f"Long sessions: €{long_per_mtok:.4f}/Mtok."
        ),
        recommendation="Longer sessions reuse cached context. Try batching related tasks.",
    )


def peak_hours(hourly: list[HourlyAgg]) -> Insight | None:
    """Name the (up to three) hours with the highest spend; None without data."""
    if not hourly:
        return None
    top = sorted(hourly, key=lambda h: h.cost_eur, reverse=True)[:3]
    total_cost = sum(h.cost_eur for h in hourly)
    top_cost = sum(h.cost_eur for h in top)
    title = "Peak hours: " + ", ".join(f"{h.hour:02d}:00" for h in top)
    pct = top_cost / total_cost * 100 if total_cost > 0 else 0.0
    return Insight(
        id="peak-hours",
        severity=Severity.INFO,
        title=title,
        detail=f"{pct:.0f}% of total cost happens in these hours.",
    )


def compute(data: InsightInput) -> list[Insight]:
    """Run every insight generator and return those that produced a result."""
    candidates = (
        cache_efficiency(data.last_7d),
        model_mix(data.per_model),
        cost_trend(data.daily),
        session_efficiency(data.sessions),
        peak_hours(data.hourly_global),
    )
    return [insight for insight in candidates if insight is not None]