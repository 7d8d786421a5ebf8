from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from loguru import logger

from telemetry_ledger.models import ApiError, ApiRequest, ToolDecision, ToolResult, UnknownEvent, UserPrompt
from telemetry_ledger.parsers import parse_logs_payload, parse_metrics_payload
from telemetry_ledger.storage import (
    SessionRepository,
    TelemetryStore,
    insert_api_errors,
    insert_api_requests,
    insert_metric_points,
    insert_tool_decisions,
    insert_tool_results,
    insert_user_prompts,
    resolve_session_upserts,
)


@dataclass(frozen=True)
class IngestResult:
    api_requests: int = 0
    tool_results: int = 0
    api_errors: int = 0
    user_prompts: int = 0
    tool_decisions: int = 0
    unknown_events: int = 0
    metric_points: int = 0
    session_upserts: int = 0

    @property
    def stored_events(self) -> int:
        return self.api_requests + self.tool_results + self.api_errors + self.user_prompts + self.tool_decisions


class IngestService:
    """One ingest call parses the whole payload, then writes it in one transaction.

    Store errors roll the transaction back and propagate to the caller.
    """

    def __init__(self, store: TelemetryStore):
        self._store = store
        self._sessions = SessionRepository(store)

    def ingest_logs(self, payload: Mapping[str, Any] | None) -> IngestResult:
        parsed = parse_logs_payload(payload)
        events = parsed.events

        api_requests = [e for e in events if isinstance(e, ApiRequest)]
        tool_results = [e for e in events if isinstance(e, ToolResult)]
        api_errors = [e for e in events if isinstance(e, ApiError)]
        user_prompts = [e for e in events if isinstance(e, UserPrompt)]
        tool_decisions = [e for e in events if isinstance(e, ToolDecision)]
        unknown_count = sum(1 for e in events if isinstance(e, UnknownEvent))
        upserts = resolve_session_upserts(events, parsed.resource_contexts)

        with self._store.transaction():
            result = IngestResult(
                api_requests=insert_api_requests(self._store, api_requests),
                tool_results=insert_tool_results(self._store, tool_results),
                api_errors=insert_api_errors(self._store, api_errors),
                user_prompts=insert_user_prompts(self._store, user_prompts),
                tool_decisions=insert_tool_decisions(self._store, tool_decisions),
                unknown_events=unknown_count,
                session_upserts=self._sessions.upsert(upserts),
            )

        logger.info(
            f"Ingested logs: events={result.stored_events}, unknown={result.unknown_events}, "
            f"sessions={result.session_upserts}"
        )
        return result

    def ingest_metrics(self, payload: Mapping[str, Any] | None) -> IngestResult:
        points = parse_metrics_payload(payload)
        with self._store.transaction():
            stored = insert_metric_points(self._store, points)
        logger.info(f"Ingested metrics: points={stored}")
        return IngestResult(metric_points=stored)
