from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from loguru import logger

from telemetry_ledger.models import MetricPoint
from telemetry_ledger.parsers.attributes import AttributeBag, attributes_of, children, get_string, to_finite_float
from telemetry_ledger.parsers.logs import ns_to_ms

# Attributes lifted into dedicated columns; everything else goes to attributes_json.
_LIFTED_KEYS = frozenset({"type", "model", "session.id"})


def parse_metrics_payload(payload: Mapping[str, Any] | None) -> list[MetricPoint]:
    points: list[MetricPoint] = []

    for resource_metrics in children(payload, "resourceMetrics"):
        resource_attrs = attributes_of(resource_metrics.get("resource") or {})
        for scope_metrics in children(resource_metrics, "scopeMetrics"):
            for metric in children(scope_metrics, "metrics"):
                name = metric.get("name") or "unknown"
                for data_point in _data_points(metric):
                    parsed = parse_data_point(data_point, str(name), resource_attrs)
                    if parsed is not None:
                        points.append(parsed)

    return points


def parse_data_point(data_point: Mapping[str, Any], metric_name: str, resource_attrs: AttributeBag) -> MetricPoint | None:
    value = _point_value(data_point)
    if value is None:
        return None

    attrs = attributes_of(data_point)
    timestamp_ns, timestamp_ms = ns_to_ms(data_point.get("timeUnixNano"))
    session_id = get_string(attrs, "session.id")
    if session_id is None:
        session_id = get_string(resource_attrs, "session.id")

    extra = [entry for entry in attrs if not (isinstance(entry, Mapping) and entry.get("key") in _LIFTED_KEYS)]
    attributes_json = json.dumps(extra, ensure_ascii=True, separators=(",", ":")) if extra else None

    return MetricPoint(
        session_id=session_id,
        metric_name=metric_name,
        value=value,
        timestamp_ns=timestamp_ns,
        timestamp_ms=timestamp_ms,
        attr_type=get_string(attrs, "type"),
        attr_model=get_string(attrs, "model"),
        attributes_json=attributes_json,
    )


def _data_points(metric: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    for kind in ("sum", "gauge"):
        section = metric.get(kind)
        if isinstance(section, Mapping) and section.get("dataPoints") is not None:
            return children(section, "dataPoints")
    return []


def _point_value(data_point: Mapping[str, Any]) -> float | None:
    as_double = data_point.get("asDouble")
    if isinstance(as_double, (int, float)) and not isinstance(as_double, bool):
        return _finite_or_warn(as_double)

    as_int = data_point.get("asInt")
    if as_int is None:
        return None
    if isinstance(as_int, (int, float)) and not isinstance(as_int, bool):
        return _finite_or_warn(as_int)
    try:
        return _finite_or_warn(int(str(as_int).strip(), 10))
    except ValueError:
        logger.warning(f"Dropping data point with non-numeric asInt {str(as_int)[:40]!r}")
        return None


def _finite_or_warn(number: int | float) -> float | None:
    value = to_finite_float(number)
    if value is None:
        logger.warning(f"Dropping data point with non-finite value {number!r:.40}")
    return value
