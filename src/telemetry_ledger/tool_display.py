from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from telemetry_ledger.queries.dashboard import ToolUsageRow

ToolCategory = Literal["builtin", "mcp", "skill"]

MCP_PREFIX = "mcp__"


@dataclass(frozen=True)
class ToolDisplayInfo:
    display_name: str
    category: ToolCategory
    server_name: str | None


def get_tool_display_info(row: ToolUsageRow) -> ToolDisplayInfo:
    if row.mcp_server_name:
        return ToolDisplayInfo(
            display_name=row.mcp_tool_name or row.tool_name,
            category="mcp",
            server_name=row.mcp_server_name,
        )

    # Older clients only encode the MCP identity in the tool name: mcp__<server>__<tool>.
    if row.tool_name.startswith(MCP_PREFIX):
        parts = row.tool_name[len(MCP_PREFIX) :].split("__")
        if len(parts) >= 2:
            return ToolDisplayInfo(display_name="__".join(parts[1:]), category="mcp", server_name=parts[0])

    if row.skill_name:
        return ToolDisplayInfo(display_name=row.skill_name, category="skill", server_name=None)

    if row.tool_name == "Skill":
        return ToolDisplayInfo(display_name="Skill", category="skill", server_name=None)

    return ToolDisplayInfo(display_name=row.tool_name, category="builtin", server_name=None)
