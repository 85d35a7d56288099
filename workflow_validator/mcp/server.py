"""MCP server exposing ``WorkflowValidatorTools``.

Uses the low-level ``mcp.server.Server`` with a single ``call_tool`` dispatcher
driven by ``TOOL_CATALOG``.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from mcp import types
from mcp.server import Server

from workflow_validator.mcp.models import ToolResult
from workflow_validator.mcp.registry import TOOL_CATALOG
from workflow_validator.mcp.tools import WorkflowValidatorTools

logger = logging.getLogger(__name__)

# name -> method_name
_DISPATCH: dict[str, str] = {td.name: method_name for method_name, td in TOOL_CATALOG}


def create_server(tools: WorkflowValidatorTools) -> Server:
    """Create an MCP Server wired to the given *tools* instance."""
    server = Server("workflow-validator")

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [
            types.Tool(
                name=td.name,
                description=td.description or "",
                inputSchema=td.parameters,
            )
            for _method_name, td in TOOL_CATALOG
        ]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any] | None = None) -> list[types.TextContent]:
        method_name = _DISPATCH.get(name)
        if method_name is None:
            payload = json.dumps({"ok": False, "error": f"Unknown tool: {name}"})
            return [types.TextContent(type="text", text=payload)]

        method = getattr(tools, method_name)
        try:
            result: ToolResult = await method(**(arguments or {}))
        except TypeError as exc:
            logger.warning("[MCPServer] Bad arguments for %s: %s", name, exc)
            payload = json.dumps({"ok": False, "error": f"Invalid arguments for {name}: {exc}"})
            return [types.TextContent(type="text", text=payload)]
        return [types.TextContent(type="text", text=_serialize(result))]

    return server


def _serialize(r: ToolResult) -> str:
    """Serialize a ToolResult to JSON for MCP transport."""
    return json.dumps(
        {"ok": r.ok, "summary": r.summary, "data": r.data, "error": r.error},
        default=str,
    )
