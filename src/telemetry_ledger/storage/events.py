from __future__ import annotations

from collections.abc import Sequence

from telemetry_ledger.models import ApiError, ApiRequest, MetricPoint, ToolDecision, ToolResult, UserPrompt
from telemetry_ledger.storage.store import TelemetryStore


def insert_api_requests(store: TelemetryStore, requests: Sequence[ApiRequest]) -> int:
    if not requests:
        return 0
    store.executemany(
        """
        INSERT INTO api_requests
            (session_id, event_sequence, timestamp_ns, timestamp_ms, model, cost_usd, duration_ms,
             input_tokens, output_tokens, cache_read_tokens, cache_creation_tokens)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                r.session_id,
                r.event_sequence,
                r.timestamp_ns,
                r.timestamp_ms,
                r.model,
                r.cost_usd,
                r.duration_ms,
                r.input_tokens,
                r.output_tokens,
                r.cache_read_tokens,
                r.cache_creation_tokens,
            )
            for r in requests
        ],
    )
    return len(requests)


def insert_tool_results(store: TelemetryStore, results: Sequence[ToolResult]) -> int:
    if not results:
        return 0
    store.executemany(
        """
        INSERT INTO tool_results
            (session_id, event_sequence, timestamp_ns, timestamp_ms, tool_name, success, duration_ms,
             error, tool_parameters, mcp_server_name, mcp_tool_name, skill_name)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                r.session_id,
                r.event_sequence,
                r.timestamp_ns,
                r.timestamp_ms,
                r.tool_name,
                1 if r.success else 0,
                r.duration_ms,
                r.error,
                r.tool_parameters,
                r.mcp_server_name,
                r.mcp_tool_name,
                r.skill_name,
            )
            for r in results
        ],
    )
    return len(results)


def insert_api_errors(store: TelemetryStore, errors: Sequence[ApiError]) -> int:
    if not errors:
        return 0
    store.executemany(
        """
        INSERT INTO api_errors
            (session_id, event_sequence, timestamp_ns, timestamp_ms, model, error, status_code,
             duration_ms, attempt)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                e.session_id,
                e.event_sequence,
                e.timestamp_ns,
                e.timestamp_ms,
                e.model,
                e.error,
                e.status_code,
                e.duration_ms,
                e.attempt,
            )
            for e in errors
        ],
    )
    return len(errors)


def insert_user_prompts(store: TelemetryStore, prompts: Sequence[UserPrompt]) -> int:
    if not prompts:
        return 0
    store.executemany(
        """
        INSERT INTO user_prompts
            (session_id, event_sequence, timestamp_ns, timestamp_ms, prompt_length, prompt)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        [(p.session_id, p.event_sequence, p.timestamp_ns, p.timestamp_ms, p.prompt_length, p.prompt) for p in prompts],
    )
    return len(prompts)


def insert_tool_decisions(store: TelemetryStore, decisions: Sequence[ToolDecision]) -> int:
    if not decisions:
        return 0
    store.executemany(
        """
        INSERT INTO tool_decisions
            (session_id, event_sequence, timestamp_ns, timestamp_ms, tool_name, decision, source)
        VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (d.session_id, d.event_sequence, d.timestamp_ns, d.timestamp_ms, d.tool_name, d.decision, d.source)
            for d in decisions
        ],
    )
    return len(decisions)


def insert_metric_points(store: TelemetryStore, points: Sequence[MetricPoint]) -> int:
    if not points:
        return 0
    store.executemany(
        """
        INSERT INTO metric_data_points
            (session_id, metric_name, value, timestamp_ns, timestamp_ms, attr_type, attr_model, attributes_json)
        VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """,
        [
            (
                p.session_id,
                p.metric_name,
                p.value,
                p.timestamp_ns,
                p.timestamp_ms,
                p.attr_type,
                p.attr_model,
                p.attributes_json,
            )
            for p in points
        ],
    )
    return len(points)
