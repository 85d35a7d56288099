"""MCP tool surface over a ``ValidationEngine``.

Each method unpacks JSON arguments, calls the engine and returns a
``ToolResult`` envelope.  No validation logic lives here.
"""

from __future__ import annotations

import logging
from typing import Any

from workflow_validator.engine import ValidationEngine
from workflow_validator.knowledge.store import NodeRepository
from workflow_validator.mcp.models import ToolResult
from workflow_validator.workflow.autofix import AutoFixConfig
from workflow_validator.workflow.models import ValidationOptions

logger = logging.getLogger(__name__)


def _ok(summary: str, data: Any, **facts: Any) -> ToolResult:
    return ToolResult(ok=True, summary=summary, facts=facts, data=data, error=None)


def _fail(exc: Exception) -> ToolResult:
    return ToolResult(
        ok=False,
        summary=f"Failed: {exc}",
        facts={},
        data=None,
        error={"type": type(exc).__name__, "message": str(exc)},
    )


class WorkflowValidatorTools:
    """Validation, auto-fix and suggestion tools returning ``ToolResult`` envelopes."""

    def __init__(self, engine: ValidationEngine) -> None:
        self._engine = engine

    # ==================================================================
    # WORKFLOWS
    # ==================================================================

    async def validate_workflow(
        self,
        workflow: dict[str, Any],
        profile: str | None = None,
        validate_nodes: bool = True,
        validate_connections: bool = True,
        validate_expressions: bool = True,
    ) -> ToolResult:
        try:
            options = ValidationOptions(
                validate_nodes=validate_nodes,
                validate_connections=validate_connections,
                validate_expressions=validate_expressions,
                profile=profile or self._engine.settings.profile,
            )
        except ValueError as exc:
            return _fail(exc)

        result = await self._engine.validator.validate_workflow(workflow, options)
        verdict = "valid" if result.valid else "invalid"
        return _ok(
            f"Workflow is {verdict}: {len(result.errors)} error(s), {len(result.warnings)} warning(s)",
            result.to_dict(),
            valid=result.valid,
            error_count=len(result.errors),
            warning_count=len(result.warnings),
        )

    async def autofix_workflow(
        self,
        workflow: dict[str, Any],
        apply_fixes: bool = False,
        fix_types: list[str] | None = None,
        confidence_threshold: str = "medium",
        max_fixes: int | None = None,
        profile: str | None = None,
    ) -> ToolResult:
        try:
            config = AutoFixConfig(
                apply_fixes=apply_fixes,
                fix_types=tuple(fix_types) if fix_types else None,
                confidence_threshold=confidence_threshold,
                max_fixes=max_fixes if max_fixes is not None else self._engine.settings.max_fixes,
            )
            options = ValidationOptions(profile=profile or self._engine.settings.profile)
        except ValueError as exc:
            return _fail(exc)

        result = await self._engine.validator.validate_workflow(workflow, options)
        fixed = self._engine.fixer.generate_fixes(workflow, result, config=config)
        return _ok(fixed.summary, fixed.to_dict(), fix_count=len(fixed.fixes))

    # ==================================================================
    # NODES
    # ==================================================================

    async def validate_node(
        self,
        node_type: str,
        config: dict[str, Any],
        mode: str = "operation",
        profile: str = "ai-friendly",
    ) -> ToolResult:
        descriptor = await self._engine.store.get_node(node_type)
        if descriptor is None:
            return _fail(LookupError(f"Unknown node type: {node_type}"))
        try:
            result = await self._engine.config_validator.validate_with_mode(
                node_type, config, descriptor.properties, mode=mode, profile=profile,
            )
        except (TypeError, ValueError) as exc:
            return _fail(exc)
        verdict = "valid" if result.valid else "invalid"
        return _ok(
            f"{node_type} configuration is {verdict}: {len(result.errors)} error(s)",
            result.to_dict(),
            valid=result.valid,
        )

    async def suggest_node_types(self, node_type: str, limit: int = 5) -> ToolResult:
        suggestions = await self._engine.node_similarity.find_similar_nodes(node_type, limit=limit)
        return _ok(
            f"Found {len(suggestions)} suggestion(s) for '{node_type}'",
            [s.to_dict() for s in suggestions],
            count=len(suggestions),
        )

    # ==================================================================
    # STORE
    # ==================================================================

    async def refresh_node_cache(self) -> ToolResult:
        store = self._engine.store
        if isinstance(store, NodeRepository):
            store.reload()
        self._engine.invalidate_caches()
        nodes = await self._engine.node_similarity.refresh()
        return _ok(f"Reloaded {len(nodes)} node types", None, node_count=len(nodes))
