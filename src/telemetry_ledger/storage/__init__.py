from telemetry_ledger.storage.events import (
    insert_api_errors,
    insert_api_requests,
    insert_metric_points,
    insert_tool_decisions,
    insert_tool_results,
    insert_user_prompts,
)
from telemetry_ledger.storage.sessions import SessionRepository, resolve_session_upserts
from telemetry_ledger.storage.store import TelemetryStore

__all__ = [
    "SessionRepository",
    "TelemetryStore",
    "insert_api_errors",
    "insert_api_requests",
    "insert_metric_points",
    "insert_tool_decisions",
    "insert_tool_results",
    "insert_user_prompts",
    "resolve_session_upserts",
]
