"""Tool catalog for the MCP server.

``TOOL_CATALOG`` is the single source of truth for tool metadata (name,
description, JSON schema).  Adding a tool: append to ``TOOL_CATALOG`` and add
the method to ``WorkflowValidatorTools``.
"""

from __future__ import annotations

from typing import Any

from workflow_validator.mcp.models import ToolDef
from workflow_validator.properties.models import VALIDATION_MODES, VALIDATION_PROFILES
from workflow_validator.workflow.autofix import CONFIDENCE_LEVELS, FIX_TYPES


def _td(name: str, desc: str, props: dict[str, Any] | None = None, req: list[str] | None = None) -> ToolDef:
    return ToolDef(
        name=name,
        description=desc,
        parameters={"type": "object", "properties": props or {}, "required": req or []},
    )


def _str(description: str) -> dict:
    return {"type": "string", "description": description}


def _bool(description: str) -> dict:
    return {"type": "boolean", "description": description}


def _int(description: str) -> dict:
    return {"type": "integer", "description": description}


def _obj(description: str) -> dict:
    return {"type": "object", "description": description}


def _enum(description: str, values: Any) -> dict:
    return {"type": "string", "description": description, "enum": sorted(values)}


# Each entry: (method_name_on_WorkflowValidatorTools, ToolDef)
TOOL_CATALOG: list[tuple[str, ToolDef]] = [
    # ── WORKFLOWS ─────────────────────────────────────────────────
    ("validate_workflow", _td(
        "validate_workflow",
        "Validate an n8n workflow: structure, node types, typeVersions, configuration, connections and expressions",
        {
            "workflow": _obj("Workflow JSON with 'nodes' and 'connections'"),
            "profile": _enum("Validation profile", VALIDATION_PROFILES),
            "validate_nodes": _bool("Validate node types and configuration (default true)"),
            "validate_connections": _bool("Validate connections and graph shape (default true)"),
            "validate_expressions": _bool("Validate expressions (default true)"),
        },
        ["workflow"],
    )),
    ("autofix_workflow", _td(
        "autofix_workflow",
        "Validate a workflow and propose fix operations (optionally returning the patched workflow)",
        {
            "workflow": _obj("Workflow JSON with 'nodes' and 'connections'"),
            "apply_fixes": _bool("Return the patched workflow as well (default false)"),
            "fix_types": {"type": "array", "items": {"type": "string", "enum": list(FIX_TYPES)},
                          "description": "Restrict to these fix types"},
            "confidence_threshold": _enum("Lowest confidence to include", CONFIDENCE_LEVELS),
            "max_fixes": _int("Maximum number of fixes"),
            "profile": _enum("Validation profile", VALIDATION_PROFILES),
        },
        ["workflow"],
    )),

    # ── NODES ─────────────────────────────────────────────────────
    ("validate_node", _td(
        "validate_node",
        "Validate one node's parameters against its schema",
        {
            "node_type": _str("Node type (e.g. 'n8n-nodes-base.slack')"),
            "config": _obj("The node's parameters"),
            "mode": _enum("Which properties participate", VALIDATION_MODES),
            "profile": _enum("Validation profile", VALIDATION_PROFILES),
        },
        ["node_type", "config"],
    )),
    ("suggest_node_types", _td(
        "suggest_node_types",
        "Suggest valid node types for an unknown or misspelled one",
        {"node_type": _str("The invalid node type"), "limit": _int("Maximum suggestions (default 5)")},
        ["node_type"],
    )),

    # ── STORE ─────────────────────────────────────────────────────
    ("refresh_node_cache", _td("refresh_node_cache", "Reload node metadata and drop suggestion caches")),
]
