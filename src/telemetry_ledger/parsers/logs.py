from __future__ import annotations

import json
from collections.abc import Callable, Mapping
from typing import Any

from loguru import logger

from telemetry_ledger.models import (
    ApiError,
    ApiRequest,
    LogEvent,
    ParseLogsResult,
    ResourceContext,
    ToolDecision,
    ToolResult,
    UnknownEvent,
    UserPrompt,
)
from telemetry_ledger.parsers.attributes import (
    INT64_MAX,
    INT64_MIN,
    AttributeBag,
    attributes_of,
    children,
    get_double,
    get_int,
    get_string,
)

UNKNOWN_SESSION_ID = "unknown"


def parse_logs_payload(payload: Mapping[str, Any] | None) -> ParseLogsResult:
    """Decode an ExportLogsServiceRequest into typed events.

    Records without ``event.name`` are skipped. Unrecognized event names come
    back as ``UnknownEvent`` and get no resource context.
    """
    result = ParseLogsResult()

    for resource_logs in children(payload, "resourceLogs"):
        resource = resource_logs.get("resource") or {}
        resource_attrs = attributes_of(resource)
        repository = get_string(resource_attrs, "repository")

        for scope_logs in children(resource_logs, "scopeLogs"):
            for record in children(scope_logs, "logRecords"):
                event = parse_log_record(record, resource_attrs)
                if event is None:
                    continue
                result.events.append(event)
                if isinstance(event, UnknownEvent):
                    logger.debug(f"Unrecognized log event: {event.event_name!r}")
                    continue
                result.resource_contexts.append(ResourceContext(session_id=event.session_id, repository=repository))

    return result


def parse_log_record(record: Mapping[str, Any], resource_attrs: AttributeBag) -> LogEvent | None:
    attrs = attributes_of(record)
    event_name = get_string(attrs, "event.name")
    if not event_name:
        return None

    session_id = get_string(attrs, "session.id") or get_string(resource_attrs, "session.id") or UNKNOWN_SESSION_ID
    timestamp_ns, timestamp_ms = ns_to_ms(record.get("timeUnixNano"))
    common = {
        "session_id": session_id,
        "event_sequence": get_int(attrs, "event.sequence"),
        "timestamp_ns": timestamp_ns,
        "timestamp_ms": timestamp_ms,
    }

    decoder = _DECODERS.get(event_name)
    if decoder is None:
        return UnknownEvent(event_name=event_name)
    return decoder(attrs, common)


def ns_to_ms(raw: object) -> tuple[str, int]:
    """Normalize a ``timeUnixNano`` value and project it to milliseconds.

    Integer floor division keeps nanosecond values beyond 2**53 exact.
    """
    if raw is None:
        return "0", 0
    text = str(raw).strip()
    try:
        nanos = int(text, 10)
    except ValueError:
        logger.warning(f"Unparseable timeUnixNano {text[:40]!r}; using 0")
        return "0", 0
    millis = nanos // 1_000_000
    if not INT64_MIN <= millis <= INT64_MAX:
        logger.warning(f"Out-of-range timeUnixNano {text[:40]!r}; using 0")
        return "0", 0
    return text, millis


def extract_tool_details(tool_parameters: str | None) -> tuple[str | None, str | None, str | None]:
    """Return ``(mcp_server_name, mcp_tool_name, skill_name)`` from the raw JSON.

    Any decode problem yields the all-None triple.
    """
    if not tool_parameters:
        return None, None, None
    try:
        parsed = json.loads(tool_parameters)
    except (json.JSONDecodeError, TypeError, ValueError):
        return None, None, None
    if not isinstance(parsed, dict):
        return None, None, None
    return (
        _string_or_none(parsed.get("mcp_server_name")),
        _string_or_none(parsed.get("mcp_tool_name")),
        _string_or_none(parsed.get("skill_name")),
    )


def _decode_api_request(attrs: AttributeBag, common: dict) -> ApiRequest:
    return ApiRequest(
        **common,
        model=_or_default(get_string(attrs, "model"), "unknown"),
        cost_usd=_or_default(get_double(attrs, "cost_usd"), 0.0),
        duration_ms=_or_default(get_int(attrs, "duration_ms"), 0),
        input_tokens=_or_default(get_int(attrs, "input_tokens"), 0),
        output_tokens=_or_default(get_int(attrs, "output_tokens"), 0),
        cache_read_tokens=_or_default(get_int(attrs, "cache_read_tokens"), 0),
        cache_creation_tokens=_or_default(get_int(attrs, "cache_creation_tokens"), 0),
    )


def _decode_tool_result(attrs: AttributeBag, common: dict) -> ToolResult:
    tool_parameters = get_string(attrs, "tool_parameters")
    mcp_server_name, mcp_tool_name, skill_name = extract_tool_details(tool_parameters)
    return ToolResult(
        **common,
        tool_name=_or_default(get_string(attrs, "tool_name"), "unknown"),
        success=get_string(attrs, "success") != "false",
        duration_ms=_or_default(get_int(attrs, "duration_ms"), 0),
        error=get_string(attrs, "error"),
        tool_parameters=tool_parameters,
        mcp_server_name=mcp_server_name,
        mcp_tool_name=mcp_tool_name,
        skill_name=skill_name,
    )


def _decode_api_error(attrs: AttributeBag, common: dict) -> ApiError:
    return ApiError(
        **common,
        model=get_string(attrs, "model"),
        error=_or_default(get_string(attrs, "error"), "unknown error"),
        status_code=get_int(attrs, "status_code"),
        duration_ms=_or_default(get_int(attrs, "duration_ms"), 0),
        attempt=_or_default(get_int(attrs, "attempt"), 1),
    )


def _decode_user_prompt(attrs: AttributeBag, common: dict) -> UserPrompt:
    return UserPrompt(
        **common,
        prompt_length=_or_default(get_int(attrs, "prompt_length"), 0),
        prompt=get_string(attrs, "prompt"),
    )


def _decode_tool_decision(attrs: AttributeBag, common: dict) -> ToolDecision:
    return ToolDecision(
        **common,
        tool_name=_or_default(get_string(attrs, "tool_name"), "unknown"),
        decision=_or_default(get_string(attrs, "decision"), "unknown"),
        source=get_string(attrs, "source"),
    )


_DECODERS: dict[str, Callable[[AttributeBag, dict], LogEvent]] = {
    ApiRequest.event_type: _decode_api_request,
    ToolResult.event_type: _decode_tool_result,
    ApiError.event_type: _decode_api_error,
    UserPrompt.event_type: _decode_user_prompt,
    ToolDecision.event_type: _decode_tool_decision,
}


def _or_default(value, default):
    return default if value is None else value


def _string_or_none(value: object) -> str | None:
    return value if isinstance(value, str) else None

