from __future__ import annotations

from collections.abc import Iterable, Sequence

from telemetry_ledger.models import LogEvent, ResourceContext, SessionInfo, SessionUpsert, UnknownEvent
from telemetry_ledger.storage.store import TelemetryStore


def resolve_session_upserts(
    events: Iterable[LogEvent],
    resource_contexts: Iterable[ResourceContext],
) -> list[SessionUpsert]:
    """Fold one batch into a single upsert per session id.

    The repository is the last non-null label seen for the session, in arrival
    order. The timestamp is the earliest event of the session in this batch.
    The store widens first/last bounds from it on every call.
    """
    repositories: dict[str, str | None] = {}
    for context in resource_contexts:
        if context.repository is not None:
            repositories[context.session_id] = context.repository
        else:
            repositories.setdefault(context.session_id, None)

    earliest: dict[str, int] = {}
    for event in events:
        if isinstance(event, UnknownEvent):
            continue
        current = earliest.get(event.session_id)
        if current is None or event.timestamp_ms < current:
            earliest[event.session_id] = event.timestamp_ms

    return [
        SessionUpsert(session_id=session_id, repository=repositories.get(session_id), timestamp_ms=timestamp_ms)
        for session_id, timestamp_ms in earliest.items()
    ]


class SessionRepository:
    def __init__(self, store: TelemetryStore):
        self._store = store

    def upsert(self, upserts: Sequence[SessionUpsert]) -> int:
        if not upserts:
            return 0
        self._store.executemany(
            """
            INSERT INTO sessions (session_id, repository, first_event_at, last_event_at)
            VALUES (?, ?, ?, ?)
            ON CONFLICT(session_id) DO UPDATE SET
                repository = COALESCE(excluded.repository, sessions.repository),
                first_event_at = MIN(sessions.first_event_at, excluded.first_event_at),
                last_event_at = MAX(sessions.last_event_at, excluded.last_event_at)
            """,
            [(u.session_id, u.repository, u.timestamp_ms, u.timestamp_ms) for u in upserts],
        )
        return len(upserts)

    def get(self, session_id: str) -> SessionInfo | None:
        row = self._store.execute(
            """
            SELECT session_id, repository, first_event_at, last_event_at
            FROM sessions
            WHERE session_id = ?
            LIMIT 1
            """,
            (session_id,),
        ).fetchone()
        if row is None:
            return None
        return SessionInfo(
            session_id=row["session_id"],
            repository=row["repository"],
            first_event_at=int(row["first_event_at"]),
            last_event_at=int(row["last_event_at"]),
        )
