from __future__ import annotations

import math

from telemetry_ledger.models import (
    ApiError,
    ApiRequest,
    SessionEvent,
    SessionInfo,
    ToolDecision,
    ToolResult,
    UserPrompt,
)
from telemetry_ledger.storage.sessions import SessionRepository
from telemetry_ledger.storage.store import TelemetryStore


def get_session_info(store: TelemetryStore, session_id: str) -> SessionInfo | None:
    return SessionRepository(store).get(session_id)


def get_session_timeline(store: TelemetryStore, session_id: str) -> list[SessionEvent]:
    """All stored events of one session in causal order.

    Events with an ``event_sequence`` come first, by sequence; events without
    one follow. Ties break on ``timestamp_ms``.
    """
    events: list[SessionEvent] = []
    events.extend(_load_api_requests(store, session_id))
    events.extend(_load_tool_results(store, session_id))
    events.extend(_load_user_prompts(store, session_id))
    events.extend(_load_tool_decisions(store, session_id))
    events.extend(_load_api_errors(store, session_id))
    events.sort(key=timeline_sort_key)
    return events


def timeline_sort_key(event: SessionEvent) -> tuple[float, int]:
    sequence = math.inf if event.event_sequence is None else event.event_sequence
    return sequence, event.timestamp_ms


def _load_api_requests(store: TelemetryStore, session_id: str) -> list[ApiRequest]:
    rows = store.execute(
        """
        SELECT session_id, event_sequence, timestamp_ns, timestamp_ms, model, cost_usd, duration_ms,
               input_tokens, output_tokens, cache_read_tokens, cache_creation_tokens
        FROM api_requests
        WHERE session_id = ?
        ORDER BY id ASC
        """,
        (session_id,),
    ).fetchall()
    return [ApiRequest(**dict(row)) for row in rows]


def _load_tool_results(store: TelemetryStore, session_id: str) -> list[ToolResult]:
    rows = store.execute(
        """
        SELECT session_id, event_sequence, timestamp_ns, timestamp_ms, tool_name, success, duration_ms,
               error, tool_parameters, mcp_server_name, mcp_tool_name, skill_name
        FROM tool_results
        WHERE session_id = ?
        ORDER BY id ASC
        """,
        (session_id,),
    ).fetchall()
    results: list[ToolResult] = []
    for row in rows:
        data = dict(row)
        data["success"] = data["success"] == 1
        results.append(ToolResult(**data))
    return results


def _load_user_prompts(store: TelemetryStore, session_id: str) -> list[UserPrompt]:
    rows = store.execute(
        """
        SELECT session_id, event_sequence, timestamp_ns, timestamp_ms, prompt_length, prompt
        FROM user_prompts
        WHERE session_id = ?
        ORDER BY id ASC
        """,
        (session_id,),
    ).fetchall()
    return [UserPrompt(**dict(row)) for row in rows]


def _load_tool_decisions(store: TelemetryStore, session_id: str) -> list[ToolDecision]:
    rows = store.execute(
        """
        SELECT session_id, event_sequence, timestamp_ns, timestamp_ms, tool_name, decision, source
        FROM tool_decisions
        WHERE session_id = ?
        ORDER BY id ASC
        """,
        (session_id,),
    ).fetchall()
    return [ToolDecision(**dict(row)) for row in rows]


def _load_api_errors(store: TelemetryStore, session_id: str) -> list[ApiError]:
    rows = store.execute(
        """
        SELECT session_id, event_sequence, timestamp_ns, timestamp_ms, model, error, status_code,
               duration_ms, attempt
        FROM api_errors
        WHERE session_id = ?
        ORDER BY id ASC
        """,
        (session_id,),
    ).fetchall()
    return [ApiError(**dict(row)) for row in rows]
