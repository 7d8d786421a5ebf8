from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, TypeAlias


@dataclass(frozen=True)
class ApiRequest:
    event_type: ClassVar[str] = "api_request"

    session_id: str
    event_sequence: int | None
    timestamp_ns: str
    timestamp_ms: int
    model: str
    cost_usd: float
    duration_ms: int
    input_tokens: int
    output_tokens: int
    cache_read_tokens: int
    cache_creation_tokens: int


@dataclass(frozen=True)
class ToolResult:
    event_type: ClassVar[str] = "tool_result"

    session_id: str
    event_sequence: int | None
    timestamp_ns: str
    timestamp_ms: int
    tool_name: str
    success: bool
    duration_ms: int
    error: str | None
    tool_parameters: str | None
    mcp_server_name: str | None
    mcp_tool_name: str | None
    skill_name: str | None


@dataclass(frozen=True)
class ApiError:
    event_type: ClassVar[str] = "api_error"

    session_id: str
    event_sequence: int | None
    timestamp_ns: str
    timestamp_ms: int
    model: str | None
    error: str
    status_code: int | None
    duration_ms: int
    attempt: int


@dataclass(frozen=True)
class UserPrompt:
    event_type: ClassVar[str] = "user_prompt"

    session_id: str
    event_sequence: int | None
    timestamp_ns: str
    timestamp_ms: int
    prompt_length: int
    prompt: str | None


@dataclass(frozen=True)
class ToolDecision:
    event_type: ClassVar[str] = "tool_decision"

    session_id: str
    event_sequence: int | None
    timestamp_ns: str
    timestamp_ms: int
    tool_name: str
    decision: str
    source: str | None


@dataclass(frozen=True)
class UnknownEvent:
    """An ``event.name`` the parser has no decoder for. Kept so callers can count it."""

    event_type: ClassVar[str] = "unknown"

    event_name: str


SessionEvent: TypeAlias = ApiRequest | ToolResult | ApiError | UserPrompt | ToolDecision
LogEvent: TypeAlias = SessionEvent | UnknownEvent


@dataclass(frozen=True)
class ResourceContext:
    session_id: str
    repository: str | None


@dataclass
class ParseLogsResult:
    events: list[LogEvent] = field(default_factory=list)
    resource_contexts: list[ResourceContext] = field(default_factory=list)


@dataclass(frozen=True)
class MetricPoint:
    session_id: str | None
    metric_name: str
    value: float
    timestamp_ns: str
    timestamp_ms: int
    attr_type: str | None
    attr_model: str | None
    attributes_json: str | None


@dataclass(frozen=True)
class SessionUpsert:
    session_id: str
    repository: str | None
    timestamp_ms: int


@dataclass(frozen=True)
class SessionInfo:
    session_id: str
    repository: str | None
    first_event_at: int
    last_event_at: int
