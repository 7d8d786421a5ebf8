from telemetry_ledger.queries.dashboard import (
    UNCATEGORIZED_LABEL,
    get_cost_efficiency,
    get_daily_costs,
    get_daily_tokens,
    get_distinct_repositories,
    get_lines_of_code_stats,
    get_overview_stats,
    get_recent_sessions,
    get_repository_costs,
    get_tool_usage,
)
from telemetry_ledger.queries.filters import ALL_REPOSITORIES, RepoFilter, build_repo_join, parse_repo_filter
from telemetry_ledger.queries.session import get_session_info, get_session_timeline

__all__ = [
    "ALL_REPOSITORIES",
    "UNCATEGORIZED_LABEL",
    "RepoFilter",
    "build_repo_join",
    "get_cost_efficiency",
    "get_daily_costs",
    "get_daily_tokens",
    "get_distinct_repositories",
    "get_lines_of_code_stats",
    "get_overview_stats",
    "get_recent_sessions",
    "get_repository_costs",
    "get_session_info",
    "get_session_timeline",
    "get_tool_usage",
    "parse_repo_filter",
]
