"""MCP server: catalog integrity, dispatch, tool envelopes and serialization."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import http_node, link, trigger_node
from mcp import types

from workflow_validator.config import Settings
from workflow_validator.engine import ValidationEngine
from workflow_validator.mcp.models import ToolResult
from workflow_validator.mcp.registry import TOOL_CATALOG
from workflow_validator.mcp.server import _serialize, create_server
from workflow_validator.mcp.tools import WorkflowValidatorTools


@pytest.fixture
def engine(store) -> ValidationEngine:
    return ValidationEngine.from_settings(Settings(), store=store)


@pytest.fixture
def tools(engine) -> WorkflowValidatorTools:
    return WorkflowValidatorTools(engine)


def _workflow(type_version: float = 4) -> dict:
    return {
        "nodes": [trigger_node(), http_node(type_version=type_version)],
        "connections": link("Manual Trigger", "HTTP Request"),
    }


async def _call(server, name: str, arguments: dict) -> dict:
    handler = server.request_handlers[types.CallToolRequest]
    server_result = await handler(types.CallToolRequest(
        method="tools/call",
        params=types.CallToolRequestParams(name=name, arguments=arguments),
    ))
    content = server_result.root.content
    assert len(content) == 1
    return json.loads(content[0].text)


# ---------------------------------------------------------------------------
# Catalog integrity
# ---------------------------------------------------------------------------


class TestCatalog:
    """TOOL_CATALOG matches WorkflowValidatorTools."""

    def test_catalog_has_5_tools(self):
        assert len(TOOL_CATALOG) == 5

    def test_catalog_method_names_match_tools_class(self):
        for method_name, _td in TOOL_CATALOG:
            assert hasattr(WorkflowValidatorTools, method_name), (
                f"TOOL_CATALOG references '{method_name}' but WorkflowValidatorTools has no such method"
            )

    def test_catalog_entries_have_required_fields(self):
        for method_name, td in TOOL_CATALOG:
            assert td.name, f"{method_name}: ToolDef.name is empty"
            assert td.description, f"{method_name}: ToolDef.description is empty"
            assert td.parameters["type"] == "object"


# ---------------------------------------------------------------------------
# list_tools / call_tool handlers
# ---------------------------------------------------------------------------


class TestServerHandlers:
    """list_tools and call_tool through the MCP server."""

    @pytest.mark.asyncio
    async def test_list_tools_returns_mcp_types(self):
        server = create_server(MagicMock(spec=WorkflowValidatorTools))

        handler = server.request_handlers[types.ListToolsRequest]
        server_result = await handler(types.ListToolsRequest(method="tools/list"))
        tool_list = server_result.root.tools

        assert len(tool_list) == 5
        assert all(isinstance(t, types.Tool) for t in tool_list)
        assert tool_list[0].name == "validate_workflow"
        assert tool_list[0].inputSchema["required"] == ["workflow"]

    @pytest.mark.asyncio
    async def test_call_tool_dispatches_by_name(self):
        mock_tools = MagicMock(spec=WorkflowValidatorTools)
        mock_tools.suggest_node_types = AsyncMock(return_value=ToolResult(
            ok=True, summary="Found 0 suggestion(s) for 'x'", data=[],
        ))
        server = create_server(mock_tools)

        parsed = await _call(server, "suggest_node_types", {"node_type": "x"})

        mock_tools.suggest_node_types.assert_awaited_once_with(node_type="x")
        assert parsed["ok"] is True
        assert parsed["data"] == []

    @pytest.mark.asyncio
    async def test_call_tool_unknown_name(self):
        server = create_server(MagicMock(spec=WorkflowValidatorTools))
        parsed = await _call(server, "nonexistent_tool", {})
        assert parsed["ok"] is False
        assert parsed["error"] == "Unknown tool: nonexistent_tool"

    @pytest.mark.asyncio
    async def test_call_tool_with_unexpected_argument(self, tools):
        server = create_server(tools)
        parsed = await _call(server, "validate_workflow", {"workflow": _workflow(), "verbose": True})
        assert parsed["ok"] is False
        assert parsed["error"].startswith("Invalid arguments for validate_workflow")

    @pytest.mark.asyncio
    async def test_validate_workflow_through_server(self, tools):
        server = create_server(tools)
        parsed = await _call(server, "validate_workflow", {"workflow": _workflow(999)})

        assert parsed["ok"] is True
        assert parsed["summary"].startswith("Workflow is invalid: 1 error(s)")
        assert parsed["data"]["errors"][0]["code"] == "typeversion-exceeded"


# ---------------------------------------------------------------------------
# Tool methods
# ---------------------------------------------------------------------------


class TestToolMethods:
    """WorkflowValidatorTools envelopes."""

    @pytest.mark.asyncio
    async def test_validate_workflow_rejects_unknown_profile(self, tools):
        result = await tools.validate_workflow(_workflow(), profile="lenient")
        assert not result.ok
        assert result.error["type"] == "ValueError"

    @pytest.mark.asyncio
    async def test_autofix_workflow_returns_patched_workflow(self, tools):
        result = await tools.autofix_workflow(_workflow(999), apply_fixes=True)

        assert result.ok
        assert result.summary == "Fixed 1 version issue"
        assert result.facts == {"fix_count": 1}
        patched = result.data["workflow"]["nodes"][1]
        assert patched["typeVersion"] == 4

    @pytest.mark.asyncio
    async def test_autofix_workflow_rejects_unknown_fix_type(self, tools):
        result = await tools.autofix_workflow(_workflow(), fix_types=["rename-everything"])
        assert not result.ok

    @pytest.mark.asyncio
    async def test_validate_node(self, tools):
        result = await tools.validate_node("n8n-nodes-base.httpRequest", {}, profile="runtime")
        assert result.ok
        assert result.facts["valid"] is False
        assert any(e["property"] == "url" for e in result.data["errors"])

    @pytest.mark.asyncio
    async def test_validate_node_unknown_type(self, tools):
        result = await tools.validate_node("n8n-nodes-base.nope", {})
        assert not result.ok
        assert result.error["type"] == "LookupError"

    @pytest.mark.asyncio
    async def test_suggest_node_types(self, tools):
        result = await tools.suggest_node_types("HttpRequest", limit=3)
        assert result.ok
        assert result.data[0]["value"] == "n8n-nodes-base.httpRequest"
        assert result.facts["count"] == len(result.data)

    @pytest.mark.asyncio
    async def test_refresh_node_cache(self, tools, store):
        result = await tools.refresh_node_cache()
        assert result.ok
        assert result.facts["node_count"] == len(store)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


class TestSerialize:
    """_serialize JSON envelope."""

    def test_serialize_ok_result(self):
        r = ToolResult(ok=True, summary="Workflow is valid", facts={"valid": True}, data={"errors": []})
        parsed = json.loads(_serialize(r))
        assert parsed == {"ok": True, "summary": "Workflow is valid", "data": {"errors": []}, "error": None}

    def test_serialize_error_result(self):
        r = ToolResult(ok=False, summary="Failed", data=None, error={"type": "ValueError", "message": "bad"})
        parsed = json.loads(_serialize(r))
        assert parsed["ok"] is False
        assert parsed["error"]["type"] == "ValueError"


# ---------------------------------------------------------------------------
# Entry point importable
# ---------------------------------------------------------------------------


class TestEntrypoint:
    """python -m workflow_validator.mcp."""

    def test_entrypoint_importable(self):
        import workflow_validator.mcp.__main__ as entry

        assert callable(entry.main)

    def test_mcp_dependency_stays_on_v1(self):
        from importlib.metadata import requires

        declared = [r.replace(" ", "") for r in requires("workflow-validator") or []]
        [mcp_requirement] = [r for r in declared if r.startswith("mcp")]
        assert "<2" in mcp_requirement
