from __future__ import annotations

from telemetry_ledger.formatting import (
    format_cost,
    format_cost_per_token,
    format_duration,
    format_duration_ms,
    format_time,
    format_tokens,
)
from telemetry_ledger.models import ApiError, ApiRequest, SessionEvent, SessionInfo, ToolDecision, ToolResult, UserPrompt
from telemetry_ledger.queries import (
    ALL_REPOSITORIES,
    RepoFilter,
    get_cost_efficiency,
    get_daily_costs,
    get_daily_tokens,
    get_lines_of_code_stats,
    get_overview_stats,
    get_recent_sessions,
    get_repository_costs,
    get_tool_usage,
)
from telemetry_ledger.queries.dashboard import estimate_cache_savings
from telemetry_ledger.storage.store import TelemetryStore
from telemetry_ledger.tool_display import get_tool_display_info


def describe_repo_filter(repo: RepoFilter) -> str:
    if repo is ALL_REPOSITORIES:
        return "all repositories"
    if repo is None:
        return "uncategorized sessions"
    return f"repository {repo}"


def build_dashboard_report(
    store: TelemetryStore,
    repo: RepoFilter = ALL_REPOSITORIES,
    *,
    days: int = 30,
    limit: int = 20,
    tz_offset_hours: int = 9,
    now_ms: int | None = None,
) -> str:
    lines: list[str] = [f"Dashboard ({describe_repo_filter(repo)})", ""]

    stats = get_overview_stats(store, repo)
    total_tokens = (
        stats.total_input_tokens
        + stats.total_output_tokens
        + stats.total_cache_read_tokens
        + stats.total_cache_creation_tokens
    )
    lines.append("Overview")
    lines.append(f"  Total cost:      {format_cost(stats.total_cost)}")
    lines.append(
        f"  Total tokens:    {format_tokens(total_tokens)} "
        f"(in {format_tokens(stats.total_input_tokens)} / out {format_tokens(stats.total_output_tokens)})"
    )
    lines.append(f"  Cache savings:   {format_cost(stats.estimated_cache_savings)}")
    lines.append(f"  Sessions:        {stats.session_count}")
    errors = f" ({stats.error_count} errors)" if stats.error_count > 0 else ""
    lines.append(f"  API calls:       {stats.api_call_count}{errors}")

    loc = get_lines_of_code_stats(store, repo)
    lines.append(f"  Lines of code:   +{loc.added} / -{loc.removed}")
    lines.append("")

    lines.append(f"Daily costs (last {days} days)")
    daily_costs = get_daily_costs(store, days, repo, now_ms=now_ms, tz_offset_hours=tz_offset_hours)
    if not daily_costs:
        lines.append("  (no data)")
    for row in daily_costs:
        lines.append(f"  {row.date}  {row.model:<40} {format_cost(row.cost):>10}  {row.calls:>5} calls")
    lines.append("")

    lines.append(f"Daily tokens (last {days} days)")
    daily_tokens = get_daily_tokens(store, days, repo, now_ms=now_ms, tz_offset_hours=tz_offset_hours)
    if not daily_tokens:
        lines.append("  (no data)")
    for row in daily_tokens:
        lines.append(
            f"  {row.date}  in {format_tokens(row.input_tokens):>7}  out {format_tokens(row.output_tokens):>7}  "
            f"cache read {format_tokens(row.cache_read_tokens):>7}  cache write {format_tokens(row.cache_creation_tokens):>7}"
        )
    lines.append("")

    lines.append("Cost efficiency by model")
    efficiency = get_cost_efficiency(store, repo)
    if not efficiency:
        lines.append("  (no data)")
    for row in efficiency:
        lines.append(
            f"  {row.model:<40} {format_cost(row.total_cost):>10}  out {format_tokens(row.total_output_tokens):>7}  "
            f"{format_cost_per_token(row.cost_per_output_token)}/1K  {row.api_call_count:>5} calls"
        )
    lines.append("")

    lines.append("Tool usage")
    tools = get_tool_usage(store, repo)
    if not tools:
        lines.append("  (no data)")
    for row in tools:
        info = get_tool_display_info(row)
        label = f"{info.server_name}/{info.display_name}" if info.server_name else info.display_name
        lines.append(
            f"  [{info.category:<7}] {label:<40} {row.call_count:>5} calls  {row.success_rate:>5.1f}% ok  "
            f"avg {format_duration_ms(row.avg_duration_ms)}"
        )
    lines.append("")

    lines.append("Recent sessions")
    sessions = get_recent_sessions(store, limit, repo)
    if not sessions:
        lines.append("  (no data)")
    for row in sessions:
        lines.append(
            f"  {row.session_id}  {row.repository or '-'}  {format_time(row.last_seen, tz_offset_hours)}  "
            f"{format_duration(row.first_seen, row.last_seen):>6}  {format_cost(row.total_cost)}  "
            f"{format_tokens(row.total_tokens)} tokens  {row.api_calls} api / {row.tool_calls} tools"
        )

    if repo is ALL_REPOSITORIES:
        lines.append("")
        lines.append("Repository costs")
        repositories = get_repository_costs(store)
        if not repositories:
            lines.append("  (no data)")
        for row in repositories:
            lines.append(
                f"  {row.repository:<40} {format_cost(row.total_cost):>10}  "
                f"{row.session_count} sessions  {row.api_call_count} calls"
            )

    return "\n".join(lines)


def build_timeline_report(info: SessionInfo, events: list[SessionEvent], *, tz_offset_hours: int = 9) -> str:
    lines = [
        f"Session {info.session_id}",
        f"  Repository: {info.repository or '-'}",
        f"  First event: {format_time(info.first_event_at, tz_offset_hours)}",
        f"  Last event:  {format_time(info.last_event_at, tz_offset_hours)}",
        f"  Duration:    {format_duration(info.first_event_at, info.last_event_at)}",
        "",
    ]
    if not events:
        lines.append("  (no events)")
    for event in events:
        sequence = "-" if event.event_sequence is None else str(event.event_sequence)
        prefix = f"  #{sequence:>4}  {format_time(event.timestamp_ms, tz_offset_hours)}  {event.event_type:<13}"
        lines.append(f"{prefix}  {_describe_event(event)}")
    return "\n".join(lines)


def _describe_event(event: SessionEvent) -> str:
    if isinstance(event, ApiRequest):
        savings = estimate_cache_savings(
            event.cost_usd,
            event.input_tokens,
            event.output_tokens,
            event.cache_read_tokens,
            event.cache_creation_tokens,
        )
        return (
            f"{event.model} {format_cost(event.cost_usd)} in {format_tokens(event.input_tokens)} "
            f"out {format_tokens(event.output_tokens)} cache saved {format_cost(savings)} "
            f"({format_duration_ms(event.duration_ms)})"
        )
    if isinstance(event, ToolResult):
        status = "ok" if event.success else f"failed: {event.error or 'error'}"
        return f"{event.tool_name} {status} ({format_duration_ms(event.duration_ms)})"
    if isinstance(event, UserPrompt):
        return f"{event.prompt_length} chars" + (f": {event.prompt[:80]}" if event.prompt else "")
    if isinstance(event, ToolDecision):
        return f"{event.tool_name} {event.decision}" + (f" ({event.source})" if event.source else "")
    if isinstance(event, ApiError):
        status = f" [{event.status_code}]" if event.status_code is not None else ""
        return f"{event.model or '-'}{status} {event.error} (attempt {event.attempt})"
    return ""
