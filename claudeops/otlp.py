"""OTLP/HTTP JSON metric structures and the payload builder."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

# OTLP proto3 enum values for sum temporality.
AGGREGATION_TEMPORALITY_CUMULATIVE = 1
AGGREGATION_TEMPORALITY_DELTA = 2

TOKEN_TYPES: tuple[str, ...] = ("input", "output", "cache_read", "cache_creation")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class AnyValue:
    """One of several primitive attribute values."""

    string_value: str | None = None
    int_value: int | None = None
    double_value: float | None = None
    bool_value: bool | None = None


@dataclass(frozen=True)
class KeyValue:
    """An attribute key-value pair."""

    key: str
    value: AnyValue


@dataclass
class Resource:
    """The entity producing telemetry."""

    attributes: list[KeyValue] = field(default_factory=list)


@dataclass
class InstrumentationScope:
    """The library emitting metrics."""

    name: str
    version: str = ""


@dataclass
class NumberDataPoint:
    """A single numeric observation; timestamps are decimal nanosecond strings."""

    start_time_unix_nano: str
    time_unix_nano: str
    attributes: list[KeyValue] = field(default_factory=list)
    as_double: float | None = None
    as_int: int | None = None


@dataclass
class Sum:
    """Data points of a sum metric."""

    data_points: list[NumberDataPoint] = field(default_factory=list)
    aggregation_temporality: int = AGGREGATION_TEMPORALITY_CUMULATIVE
    is_monotonic: bool = False


@dataclass
class Metric:
    """A named metric with its data points."""

    name: str
    description: str = ""
    unit: str = ""
    sum: Sum | None = None


@dataclass
class ScopeMetric:
    """Metrics grouped by instrumentation scope."""

    scope: InstrumentationScope
    metrics: list[Metric] = field(default_factory=list)


@dataclass
class ResourceMetric:
    """Scope metrics belonging to one resource."""

    resource: Resource
    scope_metrics: list[ScopeMetric] = field(default_factory=list)


def _any_value_json(value: AnyValue) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if value.string_value is not None:
        out["stringValue"] = value.string_value
    if value.int_value is not None:
        out["intValue"] = value.int_value
    if value.double_value is not None:
        out["doubleValue"] = value.double_value
    if value.bool_value is not None:
        out["boolValue"] = value.bool_value
    return out


def _attrs_json(attrs: list[KeyValue]) -> list[dict[str, Any]]:
    return [{"key": kv.key, "value": _any_value_json(kv.value)} for kv in attrs]


def _point_json(point: NumberDataPoint) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if point.attributes:
        out["attributes"] = _attrs_json(point.attributes)
    out["startTimeUnixNano"] = point.start_time_unix_nano
    out["timeUnixNano"] = point.time_unix_nano
    if point.as_double is not None:
        out["asDouble"] = point.as_double
    if point.as_int is not None:
        out["asInt"] = point.as_int
    return out


def _metric_json(metric: Metric) -> dict[str, Any]:
    out: dict[str, Any] = {"name": metric.name}
    if metric.description:
        out["description"] = metric.description
    if metric.unit:
        out["unit"] = metric.unit
    if metric.sum is not None:
        out["sum"] = {
            "dataPoints": [_point_json(p) for p in metric.sum.data_points],
            "aggregationTemporality": metric.sum.aggregation_temporality,
            "isMonotonic": metric.sum.is_monotonic,
        }
    return out


def _scope_json(scope: InstrumentationScope) -> dict[str, Any]:
    out: dict[str, Any] = {"name": scope.name}
    if scope.version:
        out["version"] = scope.version
    return out


@dataclass
class ExportRequest:
    """The body of an OTLP metrics export request."""

    resource_metrics: list[ResourceMetric] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the OTLP/HTTP JSON representation."""
        return {
            "resourceMetrics": [
                {
                    "resource": {"attributes": _attrs_json(rm.resource.attributes)},
                    "scopeMetrics": [
                        {
                            "scope": _scope_json(sm.scope),
                            "metrics": [_metric_json(m) for m in sm.metrics],
                        }
                        for sm in rm.scope_metrics
                    ],
                }
                for rm in self.resource_metrics
            ]
        }


@dataclass
class ProjectPeriodAgg:
    """Usage totals for one project over a period."""

    project_name: str
    cost_eur: float = 0.0
    in_tokens: int = 0
    out_tokens: int = 0
    cache_read_tokens: int = 0
    cache_create_tokens: int = 0
    sessions: int = 0


@dataclass
class PeriodData:
    """Aggregated data for one push window.

    User and team names become data-point attributes so they surface as
    native labels downstream.
    """

    start: datetime
    end: datetime
    by_project: list[ProjectPeriodAgg] = field(default_factory=list)
    user_name: str = ""
    team_name: str = ""


def str_attr(key: str, value: str) -> KeyValue:
    """Build a string-valued attribute."""
    return KeyValue(key=key, value=AnyValue(string_value=value))


def _unix_nanos(moment: datetime) -> int:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    delta = moment - _EPOCH
    return (delta.days * 86_400 + delta.seconds) * 1_000_000_000 + delta.microseconds * 1_000


def build_payload(
    resource: Resource, data: PeriodData, scope: InstrumentationScope
) -> ExportRequest:
    """Build the cost, token and session sums for every project in the period."""
    start_ns = str(_unix_nanos(data.start))
    end_ns = str(_unix_nanos(data.end))

    base_attrs: list[KeyValue] = []
    if data.user_name:
        base_attrs.append(str_attr("user_name", data.user_name))
    if data.team_name:
        base_attrs.append(str_attr("team_name", data.team_name))

    cost_points: list[NumberDataPoint] = []
    session_points: list[NumberDataPoint] = []
    token_points: dict[str, list[NumberDataPoint]] = {t: [] for t in TOKEN_TYPES}

    for project in data.by_project:
        attrs = [*base_attrs, str_attr("project", project.project_name)]
        cost_points.append(
            NumberDataPoint(
                start_time_unix_nano=start_ns,
                time_unix_nano=end_ns,
                attributes=list(attrs),
                as_double=float(project.cost_eur),
            )
        )
        session_points.append(
            NumberDataPoint(
                start_time_unix_nano=start_ns,
                time_unix_nano=end_ns,
                attributes=list(attrs),
                as_int=project.sessions,
            )
        )
        values = {
            "input": project.in_tokens,
            "output": project.out_tokens,
            "cache_read": project.cache_read_tokens,
            "cache_creation": project.cache_create_tokens,
        }
        for token_type in TOKEN_TYPES:
            token_points[token_type].append(
                NumberDataPoint(
                    start_time_unix_nano=start_ns,
                    time_unix_nano=end_ns,
                    attributes=[*attrs, str_attr("token_type", token_type)],
                    as_int=values[token_type],
                )
            )

    all_token_points = [p for t in TOKEN_TYPES for p in token_points[t]]

    def cumulative(points: list[NumberDataPoint]) -> Sum:
        return Sum(
            data_points=points,
            aggregation_temporality=AGGREGATION_TEMPORALITY_CUMULATIVE,
            is_monotonic=True,
        )

    metrics = [
        Metric(name="claudeops.cost", unit="{EUR}", sum=cumulative(cost_points)),
        Metric(name="claudeops.tokens", unit="{token}", sum=cumulative(all_token_points)),
        Metric(name="claudeops.sessions", unit="{session}", sum=cumulative(session_points)),
    ]
    return ExportRequest(
        resource_metrics=[
            ResourceMetric(
                resource=resource,
                scope_metrics=[ScopeMetric(scope=scope, metrics=metrics)],
            )
        ]
    )