"""Result types for node-configuration validation.

Config-level findings are keyed by property and typed, unlike the
workflow-level ``ValidationIssue`` which is keyed by node.  The workflow
validator converts one into the other.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal

ValidationMode = Literal["minimal", "operation", "full"]
ValidationProfile = Literal["minimal", "runtime", "ai-friendly", "strict"]

VALIDATION_MODES: frozenset[str] = frozenset({"minimal", "operation", "full"})
VALIDATION_PROFILES: frozenset[str] = frozenset({"minimal", "runtime", "ai-friendly", "strict"})

# Error types
MISSING_REQUIRED = "missing_required"
INVALID_TYPE = "invalid_type"
INVALID_VALUE = "invalid_value"
INCOMPATIBLE = "incompatible"
INVALID_CONFIGURATION = "invalid_configuration"
SYNTAX_ERROR = "syntax_error"

# Warning types
MISSING_COMMON = "missing_common"
DEPRECATED = "deprecated"
INEFFICIENT = "inefficient"
SECURITY = "security"
BEST_PRACTICE = "best_practice"


@dataclass
class ConfigError:
    type: str
    property: str
    message: str
    fix: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"type": self.type, "property": self.property, "message": self.message}
        if self.fix:
            d["fix"] = self.fix
        return d


@dataclass
class ConfigWarning:
    type: str
    message: str
    property: str | None = None
    suggestion: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"type": self.type, "message": self.message}
        if self.property:
            d["property"] = self.property
        if self.suggestion:
            d["suggestion"] = self.suggestion
        return d


@dataclass
class OperationContext:
    resource: Any = None
    operation: Any = None
    action: Any = None
    mode: Any = None

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> OperationContext:
        return cls(
            resource=config.get("resource"),
            operation=config.get("operation"),
            action=config.get("action"),
            mode=config.get("mode"),
        )

    @property
    def is_empty(self) -> bool:
        return not (self.resource or self.operation or self.action)

    def to_dict(self) -> dict[str, Any]:
        return {k: v for k, v in vars(self).items() if v is not None}


@dataclass
class ConfigValidationResult:
    """Outcome of validating one node's parameters against its schema."""

    errors: list[ConfigError] = field(default_factory=list)
    warnings: list[ConfigWarning] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    visible_properties: list[str] = field(default_factory=list)
    hidden_properties: list[str] = field(default_factory=list)
    autofix: dict[str, Any] = field(default_factory=dict)
    mode: str = "operation"
    profile: str = "ai-friendly"
    operation: OperationContext = field(default_factory=OperationContext)
    next_steps: list[str] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "valid": self.valid,
            "errors": [e.to_dict() for e in self.errors],
            "warnings": [w.to_dict() for w in self.warnings],
            "suggestions": list(self.suggestions),
            "visibleProperties": list(self.visible_properties),
            "hiddenProperties": list(self.hidden_properties),
            "mode": self.mode,
            "profile": self.profile,
            "operation": self.operation.to_dict(),
            "nextSteps": list(self.next_steps),
        }
        if self.autofix:
            d["autofix"] = self.autofix
        return d
