"""Tool metadata and the result envelope returned by every MCP tool."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ToolDef:
    """Definition of an exposed tool.

    parameters follows JSON Schema format:
        {"type": "object", "properties": {...}, "required": [...]}
    """

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass
class ToolResult:
    """Normalized envelope for every tool execution result.

    ok:      True if the tool completed without error.  A workflow that fails
             validation is still ``ok``; the verdict lives in ``data``.
    summary: One-line human-readable outcome.
    facts:   Small structured key/value facts (counts, verdicts).
    data:    Full JSON-serialisable payload.
    error:   Present when ok=False: ``{type, message}``.
    """

    ok: bool
    summary: str
    facts: dict[str, Any] = field(default_factory=dict)
    data: Any = None
    error: dict[str, Any] | None = None
