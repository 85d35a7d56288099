"""Turn validation findings into node update operations.

``WorkflowAutoFixer.generate_fixes`` reads a ``ValidationResult`` (and the
expression-format issues, when the caller has them separately) and proposes
one ``FixOperation`` per corrected field.  Fixes are filtered by confidence
and capped, then folded into a single ``NodeUpdateOperation`` per node so two
fix families never race on the same node.

Node-type corrections are only proposed from suggestions at or above
``AUTO_FIX_CONFIDENCE``; anything weaker stays a suggestion for a human.
"""

from __future__ import annotations

import copy
import logging
import re
from dataclasses import dataclass, field
from typing import Any

from workflow_validator.knowledge.models import to_workflow_type
from workflow_validator.similarity.models import AUTO_FIX_CONFIDENCE
from workflow_validator.workflow.expressions import MISSING_PREFIX, ExpressionFormatIssue
from workflow_validator.workflow.models import (
    ERROR_OUTPUT_MISSING,
    EXPRESSION_FORMAT,
    FIXED_COLLECTION,
    SHORT_NODE_TYPE,
    TYPE_VERSION_EXCEEDED,
    UNKNOWN_NODE_TYPE,
    ValidationIssue,
    ValidationResult,
)

logger = logging.getLogger(__name__)

FIX_EXPRESSION_FORMAT = "expression-format"
FIX_TYPE_VERSION = "typeversion-correction"
FIX_ERROR_OUTPUT = "error-output-config"
FIX_NODE_TYPE = "node-type-correction"
FIX_FIXED_COLLECTION = "fixed-collection-structure"

FIX_TYPES: tuple[str, ...] = (
    FIX_EXPRESSION_FORMAT,
    FIX_TYPE_VERSION,
    FIX_ERROR_OUTPUT,
    FIX_NODE_TYPE,
    FIX_FIXED_COLLECTION,
)

# Ordered from most to least certain.
CONFIDENCE_LEVELS: tuple[str, ...] = ("high", "medium", "low")

_TYPE_VERSION_MESSAGE = re.compile(
    r"typeVersion (\d+(?:\.\d+)?) exceeds maximum supported version (\d+(?:\.\d+)?)"
)
_PATH_TOKEN = re.compile(r"([^.\[\]]+)|\[(\d+)\]")

_SUMMARY_PARTS: tuple[tuple[str, str, str], ...] = (
    (FIX_EXPRESSION_FORMAT, "expression format error", "expression format errors"),
    (FIX_TYPE_VERSION, "version issue", "version issues"),
    (FIX_ERROR_OUTPUT, "error output configuration", "error output configurations"),
    (FIX_NODE_TYPE, "node type", "node types"),
    (FIX_FIXED_COLLECTION, "collection structure", "collection structures"),
)


@dataclass(frozen=True)
class AutoFixConfig:
    apply_fixes: bool = False
    fix_types: tuple[str, ...] | None = None
    confidence_threshold: str = "medium"
    max_fixes: int = 50

    def __post_init__(self) -> None:
        if self.confidence_threshold not in CONFIDENCE_LEVELS:
            raise ValueError(
                f"Unknown confidence threshold {self.confidence_threshold!r}; expected one of {CONFIDENCE_LEVELS}"
            )
        unknown = set(self.fix_types or ()) - set(FIX_TYPES)
        if unknown:
            raise ValueError(f"Unknown fix type(s): {sorted(unknown)}")
        if self.max_fixes < 0:
            raise ValueError("max_fixes must be non-negative")

    def wants(self, fix_type: str) -> bool:
        return self.fix_types is None or fix_type in self.fix_types


@dataclass
class FixOperation:
    node: str
    field: str
    type: str
    before: Any
    after: Any
    confidence: str
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "node": self.node,
            "field": self.field,
            "type": self.type,
            "before": self.before,
            "after": self.after,
            "confidence": self.confidence,
            "description": self.description,
        }


@dataclass
class NodeUpdateOperation:
    """All updates for one node.  Keys are dotted paths; ``None`` removes the key."""

    node_name: str
    updates: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"type": "updateNode", "nodeName": self.node_name, "updates": dict(self.updates)}


@dataclass
class AutoFixResult:
    operations: list[NodeUpdateOperation] = field(default_factory=list)
    fixes: list[FixOperation] = field(default_factory=list)
    summary: str = "No fixes available"
    stats: dict[str, Any] = field(default_factory=dict)
    workflow: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "operations": [op.to_dict() for op in self.operations],
            "fixes": [f.to_dict() for f in self.fixes],
            "summary": self.summary,
            "stats": self.stats,
        }
        if self.workflow is not None:
            d["workflow"] = self.workflow
        return d


class WorkflowAutoFixer:
    """Derives fix operations from validation output."""

    def generate_fixes(
        self,
        workflow: dict[str, Any],
        result: ValidationResult,
        format_issues: list[ExpressionFormatIssue] | None = None,
        config: AutoFixConfig | None = None,
    ) -> AutoFixResult:
        config = config or AutoFixConfig()
        nodes = {n.get("name"): n for n in workflow.get("nodes", []) if isinstance(n, dict)}
        by_id = {str(n["id"]): n for n in nodes.values() if n.get("id") is not None}

        if format_issues is None:
            format_issues = [
                ExpressionFormatIssue.from_dict(issue.details)
                for issue in [*result.errors, *result.warnings]
                if issue.code == EXPRESSION_FORMAT and issue.details
            ]

        # (fix, dotted update key, value)
        candidates: list[tuple[FixOperation, str, Any]] = []
        if config.wants(FIX_EXPRESSION_FORMAT):
            candidates += self._expression_fixes(format_issues, nodes, by_id)
        if config.wants(FIX_TYPE_VERSION):
            candidates += self._type_version_fixes(result.errors, nodes, by_id)
        if config.wants(FIX_ERROR_OUTPUT):
            candidates += self._error_output_fixes(result.errors, nodes, by_id)
        if config.wants(FIX_NODE_TYPE):
            candidates += self._node_type_fixes(result.errors, nodes, by_id)
        if config.wants(FIX_FIXED_COLLECTION):
            candidates += self._fixed_collection_fixes(result.errors, nodes, by_id)

        limit = CONFIDENCE_LEVELS.index(config.confidence_threshold)
        kept = [c for c in candidates if CONFIDENCE_LEVELS.index(c[0].confidence) <= limit]
        kept = kept[: config.max_fixes]

        operations: dict[str, NodeUpdateOperation] = {}
        for fix, key, value in kept:
            operations.setdefault(fix.node, NodeUpdateOperation(fix.node)).updates[key] = value

        fixes = [fix for fix, _, _ in kept]
        stats = _stats(fixes)
        fixed = AutoFixResult(
            operations=list(operations.values()),
            fixes=fixes,
            summary=_summary(stats),
            stats=stats,
        )
        if config.apply_fixes:
            fixed.workflow = apply_operations(workflow, fixed.operations)
        logger.debug("[WorkflowAutoFixer] %s", fixed.summary)
        return fixed

    # ------------------------------------------------------------------
    # Fix families
    # ------------------------------------------------------------------

    @staticmethod
    def _expression_fixes(
        issues: list[ExpressionFormatIssue],
        nodes: dict[Any, dict[str, Any]],
        by_id: dict[str, dict[str, Any]],
    ) -> list[tuple[FixOperation, str, Any]]:
        out: list[tuple[FixOperation, str, Any]] = []
        for issue in issues:
            if issue.issue_type != MISSING_PREFIX:
                continue
            node = _find_node(issue.node_name, issue.node_id, nodes, by_id)
            if node is None:
                continue
            fix = FixOperation(
                node=node["name"],
                field=issue.field_path,
                type=FIX_EXPRESSION_FORMAT,
                before=issue.current_value,
                after=issue.corrected_value,
                confidence="high",
                description=issue.explanation,
            )
            out.append((fix, f"parameters.{issue.field_path}", issue.corrected_value))
        return out

    @staticmethod
    def _type_version_fixes(
        errors: list[ValidationIssue],
        nodes: dict[Any, dict[str, Any]],
        by_id: dict[str, dict[str, Any]],
    ) -> list[tuple[FixOperation, str, Any]]:
        out: list[tuple[FixOperation, str, Any]] = []
        for error in errors:
            details = error.details or {}
            if error.code == TYPE_VERSION_EXCEEDED and "maxVersion" in details:
                current, maximum = details.get("currentVersion"), details["maxVersion"]
            else:
                match = _TYPE_VERSION_MESSAGE.search(error.message)
                if match is None:
                    continue
                current, maximum = _number(match.group(1)), _number(match.group(2))
            node = _find_node(error.node_name, error.node_id, nodes, by_id)
            if node is None:
                continue
            fix = FixOperation(
                node=node["name"],
                field="typeVersion",
                type=FIX_TYPE_VERSION,
                before=current,
                after=maximum,
                confidence="medium",
                description=f"Corrected typeVersion from {current} to maximum supported {maximum}",
            )
            out.append((fix, "typeVersion", maximum))
        return out

    @staticmethod
    def _error_output_fixes(
        errors: list[ValidationIssue],
        nodes: dict[Any, dict[str, Any]],
        by_id: dict[str, dict[str, Any]],
    ) -> list[tuple[FixOperation, str, Any]]:
        out: list[tuple[FixOperation, str, Any]] = []
        for error in errors:
            matches = error.code == ERROR_OUTPUT_MISSING or (
                "onError: 'continueErrorOutput'" in error.message and "no error output connections" in error.message
            )
            if not matches:
                continue
            node = _find_node(error.node_name, error.node_id, nodes, by_id)
            if node is None:
                continue
            fix = FixOperation(
                node=node["name"],
                field="onError",
                type=FIX_ERROR_OUTPUT,
                before="continueErrorOutput",
                after=None,
                confidence="medium",
                description="Removed onError setting due to missing error output connections",
            )
            out.append((fix, "onError", None))
        return out

    @staticmethod
    def _node_type_fixes(
        errors: list[ValidationIssue],
        nodes: dict[Any, dict[str, Any]],
        by_id: dict[str, dict[str, Any]],
    ) -> list[tuple[FixOperation, str, Any]]:
        out: list[tuple[FixOperation, str, Any]] = []
        for error in errors:
            details = error.details or {}
            if error.code == SHORT_NODE_TYPE and details.get("suggestedType"):
                target, reason = details["suggestedType"], "Full package name required in workflows"
            elif error.code == UNKNOWN_NODE_TYPE:
                best = next(
                    (s for s in details.get("suggestions", []) if s.get("confidence", 0) >= AUTO_FIX_CONFIDENCE),
                    None,
                )
                if best is None:
                    continue
                target, reason = to_workflow_type(best["value"]), best.get("reason", "")
            else:
                continue
            node = _find_node(error.node_name, error.node_id, nodes, by_id)
            if node is None:
                continue
            fix = FixOperation(
                node=node["name"],
                field="type",
                type=FIX_NODE_TYPE,
                before=node.get("type"),
                after=target,
                confidence="high",
                description=f'Fix node type: "{node.get("type")}" -> "{target}" ({reason})',
            )
            out.append((fix, "type", target))
        return out

    @staticmethod
    def _fixed_collection_fixes(
        errors: list[ValidationIssue],
        nodes: dict[Any, dict[str, Any]],
        by_id: dict[str, dict[str, Any]],
    ) -> list[tuple[FixOperation, str, Any]]:
        out: list[tuple[FixOperation, str, Any]] = []
        for error in errors:
            if error.code != FIXED_COLLECTION or not error.details:
                continue
            node = _find_node(error.node_name, error.node_id, nodes, by_id)
            if node is None:
                continue
            parameters = node.get("parameters") or {}
            for prop, corrected in (error.details.get("autofix") or {}).items():
                fix = FixOperation(
                    node=node["name"],
                    field=prop,
                    type=FIX_FIXED_COLLECTION,
                    before=parameters.get(prop),
                    after=corrected,
                    confidence="medium",
                    description=f"Flattened nested fixedCollection structure of '{prop}'",
                )
                out.append((fix, f"parameters.{prop}", corrected))
        return out


# ---------------------------------------------------------------------------
# Applying operations
# ---------------------------------------------------------------------------

def apply_operations(workflow: dict[str, Any], operations: list[NodeUpdateOperation]) -> dict[str, Any]:
    """Return a patched deep copy of *workflow*; the input is left untouched."""
    patched = copy.deepcopy(workflow)
    nodes = [n for n in patched.get("nodes", []) if isinstance(n, dict)]
    for operation in operations:
        node = next((n for n in nodes if n.get("name") == operation.node_name), None)
        if node is None:
            node = next((n for n in nodes if str(n.get("id")) == operation.node_name), None)
        if node is None:
            logger.warning("[WorkflowAutoFixer] Node %r not found; skipping update", operation.node_name)
            continue
        for key, value in operation.updates.items():
            _set_path(node, parse_path(key), copy.deepcopy(value))
    return patched


def parse_path(path: str) -> list[str | int]:
    """'parameters.rules[0].value' -> ['parameters', 'rules', 0, 'value']."""
    return [int(index) if index else name for name, index in _PATH_TOKEN.findall(path)]


def _set_path(target: Any, path: list[str | int], value: Any) -> None:
    if not path:
        return
    current = target
    for step, following in zip(path, path[1:]):
        if isinstance(step, int):
            while len(current) <= step:
                current.append({})
            if not isinstance(current[step], (dict, list)):
                current[step] = [] if isinstance(following, int) else {}
            current = current[step]
        else:
            if not isinstance(current.get(step), (dict, list)):
                current[step] = [] if isinstance(following, int) else {}
            current = current[step]

    last = path[-1]
    if isinstance(last, int):
        while len(current) <= last:
            current.append(None)
        current[last] = value
    elif value is None:
        current.pop(last, None)
    else:
        current[last] = value


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _find_node(
    name: str | None,
    node_id: str | None,
    nodes: dict[Any, dict[str, Any]],
    by_id: dict[str, dict[str, Any]],
) -> dict[str, Any] | None:
    if name is not None and name in nodes:
        return nodes[name]
    if node_id is not None:
        return by_id.get(str(node_id))
    return None


def _number(text: str) -> int | float:
    value = float(text)
    return int(value) if value.is_integer() else value


def _stats(fixes: list[FixOperation]) -> dict[str, Any]:
    by_type = dict.fromkeys(FIX_TYPES, 0)
    by_confidence = dict.fromkeys(CONFIDENCE_LEVELS, 0)
    for fix in fixes:
        by_type[fix.type] += 1
        by_confidence[fix.confidence] += 1
    return {"total": len(fixes), "byType": by_type, "byConfidence": by_confidence}


def _summary(stats: dict[str, Any]) -> str:
    total = stats["total"]
    if total == 0:
        return "No fixes available"
    parts = [
        f"{stats['byType'][fix_type]} {singular if stats['byType'][fix_type] == 1 else plural}"
        for fix_type, singular, plural in _SUMMARY_PARTS
        if stats["byType"][fix_type]
    ]
    if not parts:
        return f"Fixed {total} {'issue' if total == 1 else 'issues'}"
    return f"Fixed {', '.join(parts)}"
