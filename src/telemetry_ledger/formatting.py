from __future__ import annotations

from datetime import UTC, datetime, timedelta


def format_cost(usd: float) -> str:
    return f"${usd:.4f}"


def format_cost_per_token(cost_per_token: float) -> str:
    """Cost per 1K tokens."""
    return f"${cost_per_token * 1000:.4f}"


def format_tokens(n: int) -> str:
    if n >= 1_000_000:
        return f"{n / 1_000_000:.1f}M"
    if n >= 1_000:
        return f"{n / 1_000:.1f}K"
    return str(n)


def format_time(ms: int, offset_hours: int = 9) -> str:
    shifted = datetime.fromtimestamp(ms / 1000, UTC) + timedelta(hours=offset_hours)
    return shifted.strftime("%Y-%m-%d %H:%M:%S")


def format_duration(first_ms: int, last_ms: int) -> str:
    diff = last_ms - first_ms
    if diff < 60_000:
        return f"{round(diff / 1000)}s"
    if diff < 3_600_000:
        return f"{round(diff / 60_000)}m"
    return f"{diff / 3_600_000:.1f}h"


def format_duration_ms(ms: float) -> str:
    if ms >= 1000:
        return f"{ms / 1000:.1f}s"
    return f"{round(ms)}ms"
