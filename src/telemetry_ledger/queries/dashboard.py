"""Repository-scoped roll-ups over the ingested event tables.

Every query accepts a ``RepoFilter``; see ``telemetry_ledger.queries.filters``.
Dates are calendar days after shifting UTC by ``tz_offset_hours``.
"""

from __future__ import annotations

import time
from dataclasses import dataclass

from telemetry_ledger.queries.filters import ALL_REPOSITORIES, RepoFilter, build_repo_join, is_filtered
from telemetry_ledger.storage.store import TelemetryStore

UNCATEGORIZED_LABEL = "(uncategorized)"
DEFAULT_TZ_OFFSET_HOURS = 9

# Relative per-token price weights: input 1x, output 5x, cache write 1.25x, cache read 0.1x.
_WEIGHTED_TOKENS_SQL = (
    "(a.input_tokens + 0.1 * a.cache_read_tokens + 1.25 * a.cache_creation_tokens + 5 * a.output_tokens)"
)
_CACHE_SAVINGS_SQL = f"""
    CASE WHEN {_WEIGHTED_TOKENS_SQL} = 0 THEN 0
    ELSE a.cost_usd * (0.9 * a.cache_read_tokens - 0.25 * a.cache_creation_tokens) / {_WEIGHTED_TOKENS_SQL}
    END
"""


@dataclass(frozen=True)
class OverviewStats:
    total_cost: float
    total_input_tokens: int
    total_output_tokens: int
    total_cache_read_tokens: int
    total_cache_creation_tokens: int
    session_count: int
    api_call_count: int
    error_count: int
    estimated_cache_savings: float


@dataclass(frozen=True)
class DailyCostRow:
    date: str
    model: str
    cost: float
    calls: int


@dataclass(frozen=True)
class DailyTokenRow:
    date: str
    input_tokens: int
    output_tokens: int
    cache_read_tokens: int
    cache_creation_tokens: int


@dataclass(frozen=True)
class CostEfficiencyRow:
    model: str
    total_cost: float
    total_output_tokens: int
    cost_per_output_token: float
    api_call_count: int


@dataclass(frozen=True)
class ToolUsageRow:
    tool_name: str
    mcp_server_name: str | None
    mcp_tool_name: str | None
    skill_name: str | None
    call_count: int
    success_count: int
    success_rate: float
    avg_duration_ms: int


@dataclass(frozen=True)
class SessionRow:
    session_id: str
    repository: str | None
    total_cost: float
    total_tokens: int
    tool_calls: int
    api_calls: int
    first_seen: int
    last_seen: int


@dataclass(frozen=True)
class RepositoryCostRow:
    repository: str
    total_cost: float
    session_count: int
    api_call_count: int


@dataclass(frozen=True)
class LinesOfCodeStats:
    added: int
    removed: int


def estimate_cache_savings(
    cost_usd: float,
    input_tokens: int,
    output_tokens: int,
    cache_read_tokens: int,
    cache_creation_tokens: int,
) -> float:
    """Currency saved by cache reads, net of the cache-write premium, for one request.

    The observed cost divided by weighted tokens gives the blended price of a
    weighted token; the numerator is the weighted-token delta versus paying
    full input price for every cached token.
    """
    weighted = input_tokens + 0.1 * cache_read_tokens + 1.25 * cache_creation_tokens + 5 * output_tokens
    if weighted == 0:
        return 0.0
    return cost_usd * (0.9 * cache_read_tokens - 0.25 * cache_creation_tokens) / weighted


def get_overview_stats(store: TelemetryStore, repo: RepoFilter = ALL_REPOSITORIES) -> OverviewStats:
    repo_join = build_repo_join(repo, "a")
    totals = store.execute(
        f"""
        SELECT
            COALESCE(SUM(a.cost_usd), 0) AS total_cost,
            COALESCE(SUM(a.input_tokens), 0) AS total_input_tokens,
            COALESCE(SUM(a.output_tokens), 0) AS total_output_tokens,
            COALESCE(SUM(a.cache_read_tokens), 0) AS total_cache_read_tokens,
            COALESCE(SUM(a.cache_creation_tokens), 0) AS total_cache_creation_tokens,
            COUNT(*) AS api_call_count,
            COUNT(DISTINCT a.session_id) AS session_count,
            COALESCE(SUM({_CACHE_SAVINGS_SQL}), 0) AS estimated_cache_savings
        FROM api_requests a
        {repo_join.join}
        WHERE 1=1 {repo_join.where}
        """,
        repo_join.params,
    ).fetchone()
    # Errors are counted across all repositories regardless of the filter.
    errors = store.execute("SELECT COUNT(*) AS error_count FROM api_errors").fetchone()

    return OverviewStats(
        total_cost=float(totals["total_cost"]),
        total_input_tokens=int(totals["total_input_tokens"]),
        total_output_tokens=int(totals["total_output_tokens"]),
        total_cache_read_tokens=int(totals["total_cache_read_tokens"]),
        total_cache_creation_tokens=int(totals["total_cache_creation_tokens"]),
        session_count=int(totals["session_count"]),
        api_call_count=int(totals["api_call_count"]),
        error_count=int(errors["error_count"]),
        estimated_cache_savings=float(totals["estimated_cache_savings"]),
    )


def get_daily_costs(
    store: TelemetryStore,
    days: int = 30,
    repo: RepoFilter = ALL_REPOSITORIES,
    *,
    now_ms: int | None = None,
    tz_offset_hours: int = DEFAULT_TZ_OFFSET_HOURS,
) -> list[DailyCostRow]:
    repo_join = build_repo_join(repo, "a")
    rows = store.execute(
        f"""
        SELECT
            date(a.timestamp_ms / 1000, 'unixepoch', ?) AS day,
            a.model AS model,
            SUM(a.cost_usd) AS cost,
            COUNT(*) AS calls
        FROM api_requests a
        {repo_join.join}
        WHERE a.timestamp_ms >= ? {repo_join.where}
        GROUP BY day, a.model
        ORDER BY day DESC, cost DESC
        """,
        (_offset_modifier(tz_offset_hours), _cutoff_ms(days, now_ms), *repo_join.params),
    ).fetchall()
    return [DailyCostRow(date=row["day"], model=row["model"], cost=float(row["cost"]), calls=int(row["calls"])) for row in rows]


def get_daily_tokens(
    store: TelemetryStore,
    days: int = 30,
    repo: RepoFilter = ALL_REPOSITORIES,
    *,
    now_ms: int | None = None,
    tz_offset_hours: int = DEFAULT_TZ_OFFSET_HOURS,
) -> list[DailyTokenRow]:
    repo_join = build_repo_join(repo, "a")
    rows = store.execute(
        f"""
        SELECT
            date(a.timestamp_ms / 1000, 'unixepoch', ?) AS day,
            SUM(a.input_tokens) AS input_tokens,
            SUM(a.output_tokens) AS output_tokens,
            SUM(a.cache_read_tokens) AS cache_read_tokens,
            SUM(a.cache_creation_tokens) AS cache_creation_tokens
        FROM api_requests a
        {repo_join.join}
        WHERE a.timestamp_ms >= ? {repo_join.where}
        GROUP BY day
        ORDER BY day DESC
        """,
        (_offset_modifier(tz_offset_hours), _cutoff_ms(days, now_ms), *repo_join.params),
    ).fetchall()
    return [
        DailyTokenRow(
            date=row["day"],
            input_tokens=int(row["input_tokens"]),
            output_tokens=int(row["output_tokens"]),
            cache_read_tokens=int(row["cache_read_tokens"]),
            cache_creation_tokens=int(row["cache_creation_tokens"]),
        )
        for row in rows
    ]


def get_cost_efficiency(store: TelemetryStore, repo: RepoFilter = ALL_REPOSITORIES) -> list[CostEfficiencyRow]:
    repo_join = build_repo_join(repo, "a")
    rows = store.execute(
        f"""
        SELECT
            a.model AS model,
            COALESCE(SUM(a.cost_usd), 0) AS total_cost,
            COALESCE(SUM(a.output_tokens), 0) AS total_output_tokens,
            COUNT(*) AS api_call_count
        FROM api_requests a
        {repo_join.join}
        WHERE 1=1 {repo_join.where}
        GROUP BY a.model
        ORDER BY total_cost DESC
        """,
        repo_join.params,
    ).fetchall()

    results: list[CostEfficiencyRow] = []
    for row in rows:
        total_cost = float(row["total_cost"])
        output_tokens = int(row["total_output_tokens"])
        results.append(
            CostEfficiencyRow(
                model=row["model"],
                total_cost=total_cost,
                total_output_tokens=output_tokens,
                cost_per_output_token=total_cost / output_tokens if output_tokens > 0 else 0.0,
                api_call_count=int(row["api_call_count"]),
            )
        )
    return results


def get_tool_usage(store: TelemetryStore, repo: RepoFilter = ALL_REPOSITORIES) -> list[ToolUsageRow]:
    repo_join = build_repo_join(repo, "tr")
    rows = store.execute(
        f"""
        SELECT
            tr.tool_name AS tool_name,
            tr.mcp_server_name AS mcp_server_name,
            tr.mcp_tool_name AS mcp_tool_name,
            tr.skill_name AS skill_name,
            COUNT(*) AS call_count,
            SUM(tr.success) AS success_count,
            ROUND(AVG(tr.success) * 100, 1) AS success_rate,
            ROUND(AVG(tr.duration_ms), 0) AS avg_duration_ms
        FROM tool_results tr
        {repo_join.join}
        WHERE 1=1 {repo_join.where}
        GROUP BY tr.tool_name, tr.mcp_server_name, tr.mcp_tool_name, tr.skill_name
        ORDER BY call_count DESC, tr.tool_name ASC
        """,
        repo_join.params,
    ).fetchall()
    return [
        ToolUsageRow(
            tool_name=row["tool_name"],
            mcp_server_name=row["mcp_server_name"],
            mcp_tool_name=row["mcp_tool_name"],
            skill_name=row["skill_name"],
            call_count=int(row["call_count"]),
            success_count=int(row["success_count"]),
            success_rate=float(row["success_rate"]),
            avg_duration_ms=int(row["avg_duration_ms"]),
        )
        for row in rows
    ]


def get_recent_sessions(
    store: TelemetryStore,
    limit: int = 20,
    repo: RepoFilter = ALL_REPOSITORIES,
) -> list[SessionRow]:
    # The sessions join always runs so unfiltered rows still carry their repository.
    join_type = "JOIN" if is_filtered(repo) else "LEFT JOIN"
    repo_join = build_repo_join(repo, "a")
    rows = store.execute(
        f"""
        SELECT
            a.session_id AS session_id,
            s.repository AS repository,
            COALESCE(SUM(a.cost_usd), 0) AS total_cost,
            COALESCE(SUM(a.input_tokens + a.output_tokens + a.cache_read_tokens + a.cache_creation_tokens), 0)
                AS total_tokens,
            COALESCE(t.tool_calls, 0) AS tool_calls,
            COUNT(*) AS api_calls,
            MIN(a.timestamp_ms) AS first_seen,
            MAX(a.timestamp_ms) AS last_seen
        FROM api_requests a
        {join_type} sessions s ON a.session_id = s.session_id
        LEFT JOIN (
            SELECT session_id, COUNT(*) AS tool_calls
            FROM tool_results
            GROUP BY session_id
        ) t ON a.session_id = t.session_id
        WHERE 1=1 {repo_join.where}
        GROUP BY a.session_id
        ORDER BY last_seen DESC
        LIMIT ?
        """,
        (*repo_join.params, max(0, limit)),
    ).fetchall()
    return [
        SessionRow(
            session_id=row["session_id"],
            repository=row["repository"],
            total_cost=float(row["total_cost"]),
            total_tokens=int(row["total_tokens"]),
            tool_calls=int(row["tool_calls"]),
            api_calls=int(row["api_calls"]),
            first_seen=int(row["first_seen"]),
            last_seen=int(row["last_seen"]),
        )
        for row in rows
    ]


def get_repository_costs(store: TelemetryStore) -> list[RepositoryCostRow]:
    rows = store.execute(
        """
        SELECT
            COALESCE(s.repository, ?) AS repository,
            SUM(a.cost_usd) AS total_cost,
            COUNT(DISTINCT a.session_id) AS session_count,
            COUNT(*) AS api_call_count
        FROM api_requests a
        JOIN sessions s ON a.session_id = s.session_id
        GROUP BY COALESCE(s.repository, ?)
        ORDER BY total_cost DESC
        """,
        (UNCATEGORIZED_LABEL, UNCATEGORIZED_LABEL),
    ).fetchall()
    return [
        RepositoryCostRow(
            repository=row["repository"],
            total_cost=float(row["total_cost"]),
            session_count=int(row["session_count"]),
            api_call_count=int(row["api_call_count"]),
        )
        for row in rows
    ]


def get_distinct_repositories(store: TelemetryStore) -> list[str]:
    rows = store.execute(
        """
        SELECT DISTINCT repository
        FROM sessions
        WHERE repository IS NOT NULL
        ORDER BY repository
        """
    ).fetchall()
    return [str(row["repository"]) for row in rows]


def get_lines_of_code_stats(store: TelemetryStore, repo: RepoFilter = ALL_REPOSITORIES) -> LinesOfCodeStats:
    repo_join = build_repo_join(repo, "m")
    row = store.execute(
        f"""
        SELECT
            COALESCE(SUM(CASE WHEN m.attr_type = 'added' THEN m.value ELSE 0 END), 0) AS added,
            COALESCE(SUM(CASE WHEN m.attr_type = 'removed' THEN m.value ELSE 0 END), 0) AS removed
        FROM metric_data_points m
        {repo_join.join}
        WHERE m.attr_type IN ('added', 'removed') {repo_join.where}
        """,
        repo_join.params,
    ).fetchone()
    return LinesOfCodeStats(added=int(round(row["added"])), removed=int(round(row["removed"])))


def _cutoff_ms(days: int, now_ms: int | None) -> int:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return now_ms - days * 24 * 60 * 60 * 1000


def _offset_modifier(hours: int) -> str:
    return f"{hours:+d} hours"
