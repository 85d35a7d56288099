"""Workflow-level validation results.

Issues are attributed to nodes by name (and id when known).  ``code`` is a
stable machine-readable tag that the auto-fixer keys on; ``details`` carries
structured payloads such as node-type suggestions or a corrective example.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

from workflow_validator.properties.models import VALIDATION_PROFILES

Severity = Literal["error", "warning"]

# Issue codes consumed by WorkflowAutoFixer
UNKNOWN_NODE_TYPE = "unknown-node-type"
SHORT_NODE_TYPE = "short-node-type"
TYPE_VERSION_EXCEEDED = "typeversion-exceeded"
ERROR_OUTPUT_MISSING = "error-output-missing"
EXPRESSION_FORMAT = "expression-format"
FIXED_COLLECTION = "fixed-collection"


@dataclass
class ValidationIssue:
    severity: Severity
    message: str
    node_id: str | None = None
    node_name: str | None = None
    details: dict[str, Any] | None = None
    code: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"severity": self.severity, "message": self.message}
        if self.node_id is not None:
            d["nodeId"] = self.node_id
        if self.node_name is not None:
            d["nodeName"] = self.node_name
        if self.code:
            d["code"] = self.code
        if self.details:
            d["details"] = self.details
        return d


@dataclass
class ValidationStatistics:
    total_nodes: int = 0
    enabled_nodes: int = 0
    trigger_nodes: int = 0
    valid_connections: int = 0
    invalid_connections: int = 0
    expressions_validated: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalNodes": self.total_nodes,
            "enabledNodes": self.enabled_nodes,
            "triggerNodes": self.trigger_nodes,
            "validConnections": self.valid_connections,
            "invalidConnections": self.invalid_connections,
            "expressionsValidated": self.expressions_validated,
        }


@dataclass
class ValidationResult:
    """Outcome of one ``WorkflowValidator.validate_workflow`` call.

    ``valid`` is derived from ``errors`` on every read, so no pass can leave
    it out of date.
    """

    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    statistics: ValidationStatistics = field(default_factory=ValidationStatistics)

    @property
    def valid(self) -> bool:
        return not self.errors

    def add_error(self, message: str, node: dict[str, Any] | None = None, **kwargs: Any) -> ValidationIssue:
        issue = ValidationIssue("error", message, **_node_ref(node), **kwargs)
        self.errors.append(issue)
        return issue

    def add_warning(self, message: str, node: dict[str, Any] | None = None, **kwargs: Any) -> ValidationIssue:
        issue = ValidationIssue("warning", message, **_node_ref(node), **kwargs)
        self.warnings.append(issue)
        return issue

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "suggestions": list(self.suggestions),
            "statistics": self.statistics.to_dict(),
        }


def _node_ref(node: dict[str, Any] | None) -> dict[str, Any]:
    if not node:
        return {}
    node_id = node.get("id")
    return {
        "node_id": str(node_id) if node_id is not None else None,
        "node_name": node.get("name"),
    }


@dataclass(frozen=True)
class ValidationOptions:
    validate_nodes: bool = True
    validate_connections: bool = True
    validate_expressions: bool = True
    profile: str = "runtime"

    def __post_init__(self) -> None:
        if self.profile not in VALIDATION_PROFILES:
            raise ValueError(
                f"Unknown validation profile {self.profile!r}; expected one of {sorted(VALIDATION_PROFILES)}"
            )
