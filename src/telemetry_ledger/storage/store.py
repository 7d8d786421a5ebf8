from __future__ import annotations

import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from loguru import logger


class TelemetryStore:
    def __init__(self, db_path: str):
        self._db_path = db_path
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(db_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._in_transaction = False
        self._initialize_schema()

    @property
    def db_path(self) -> str:
        return self._db_path

    def close(self) -> None:
        self._conn.close()

    def execute(self, query: str, params: tuple[Any, ...] = ()) -> sqlite3.Cursor:
        return self._conn.execute(query, params)

    def executemany(self, query: str, seq_of_params: list[tuple[Any, ...]]) -> sqlite3.Cursor:
        return self._conn.executemany(query, seq_of_params)

    def commit(self) -> None:
        self._conn.commit()

    def rollback(self) -> None:
        self._conn.rollback()

    @contextmanager
    def transaction(self) -> Iterator[TelemetryStore]:
        """Commit every statement issued inside the block, or none of them.

        Nested scopes join the outermost one.
        """
        if self._in_transaction:
            yield self
            return
        self._in_transaction = True
        try:
            yield self
        except BaseException:
            self._conn.rollback()
            logger.debug(f"Rolled back transaction on {self._db_path}")
            raise
        else:
            self._conn.commit()
        finally:
            self._in_transaction = False

    def _initialize_schema(self) -> None:
        self._conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS sessions (
                session_id TEXT PRIMARY KEY,
                repository TEXT NULL,
                first_event_at INTEGER NOT NULL,
                last_event_at INTEGER NOT NULL,
                CHECK (first_event_at <= last_event_at)
            );

            CREATE TABLE IF NOT EXISTS api_requests (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL,
                event_sequence INTEGER NULL,
                timestamp_ns TEXT NOT NULL,
                timestamp_ms INTEGER NOT NULL,
                model TEXT NOT NULL,
                cost_usd REAL NOT NULL DEFAULT 0,
                duration_ms INTEGER NOT NULL DEFAULT 0,
                input_tokens INTEGER NOT NULL DEFAULT 0,
                output_tokens INTEGER NOT NULL DEFAULT 0,
                cache_read_tokens INTEGER NOT NULL DEFAULT 0,
                cache_creation_tokens INTEGER NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS tool_results (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL,
                event_sequence INTEGER NULL,
                timestamp_ns TEXT NOT NULL,
                timestamp_ms INTEGER NOT NULL,
                tool_name TEXT NOT NULL,
                success INTEGER NOT NULL CHECK (success IN (0, 1)),
                duration_ms INTEGER NOT NULL DEFAULT 0,
                error TEXT NULL,
                tool_parameters TEXT NULL,
                mcp_server_name TEXT NULL,
                mcp_tool_name TEXT NULL,
                skill_name TEXT NULL
            );

            CREATE TABLE IF NOT EXISTS api_errors (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL,
                event_sequence INTEGER NULL,
                timestamp_ns TEXT NOT NULL,
                timestamp_ms INTEGER NOT NULL,
                model TEXT NULL,
                error TEXT NOT NULL,
                status_code INTEGER NULL,
                duration_ms INTEGER NOT NULL DEFAULT 0,
                attempt INTEGER NOT NULL DEFAULT 1
            );

            CREATE TABLE IF NOT EXISTS user_prompts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL,
                event_sequence INTEGER NULL,
                timestamp_ns TEXT NOT NULL,
                timestamp_ms INTEGER NOT NULL,
                prompt_length INTEGER NOT NULL DEFAULT 0,
                prompt TEXT NULL
            );

            CREATE TABLE IF NOT EXISTS tool_decisions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NOT NULL,
                event_sequence INTEGER NULL,
                timestamp_ns TEXT NOT NULL,
                timestamp_ms INTEGER NOT NULL,
                tool_name TEXT NOT NULL,
                decision TEXT NOT NULL,
                source TEXT NULL
            );

            CREATE TABLE IF NOT EXISTS metric_data_points (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                session_id TEXT NULL,
                metric_name TEXT NOT NULL,
                value REAL NOT NULL,
                timestamp_ns TEXT NOT NULL,
                timestamp_ms INTEGER NOT NULL,
                attr_type TEXT NULL,
                attr_model TEXT NULL,
                attributes_json TEXT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_sessions_repository
                ON sessions(repository);
            CREATE INDEX IF NOT EXISTS idx_api_requests_session
                ON api_requests(session_id);
            CREATE INDEX IF NOT EXISTS idx_api_requests_timestamp
                ON api_requests(timestamp_ms);
            CREATE INDEX IF NOT EXISTS idx_tool_results_session
                ON tool_results(session_id);
            CREATE INDEX IF NOT EXISTS idx_api_errors_session
                ON api_errors(session_id);
            CREATE INDEX IF NOT EXISTS idx_user_prompts_session
                ON user_prompts(session_id);
            CREATE INDEX IF NOT EXISTS idx_tool_decisions_session
                ON tool_decisions(session_id);
            CREATE INDEX IF NOT EXISTS idx_metric_data_points_session
                ON metric_data_points(session_id);
            CREATE INDEX IF NOT EXISTS idx_metric_data_points_name_type
                ON metric_data_points(metric_name, attr_type);
            """
        )
        self._conn.commit()
