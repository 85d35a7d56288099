"""Whole-workflow validation and auto-fixing."""

from workflow_validator.workflow.autofix import (
    AutoFixConfig,
    AutoFixResult,
    FixOperation,
    NodeUpdateOperation,
    WorkflowAutoFixer,
    apply_operations,
)
from workflow_validator.workflow.expressions import (
    BasicExpressionChecker,
    ExpressionChecker,
    ExpressionContext,
    ExpressionFormatIssue,
    find_expression_format_issues,
)
from workflow_validator.workflow.models import (
    ValidationIssue,
    ValidationOptions,
    ValidationResult,
    ValidationStatistics,
)
from workflow_validator.workflow.validator import WorkflowValidator

__all__ = [
    "AutoFixConfig",
    "AutoFixResult",
    "BasicExpressionChecker",
    "ExpressionChecker",
    "ExpressionContext",
    "ExpressionFormatIssue",
    "FixOperation",
    "NodeUpdateOperation",
    "ValidationIssue",
    "ValidationOptions",
    "ValidationResult",
    "ValidationStatistics",
    "WorkflowAutoFixer",
    "WorkflowValidator",
    "apply_operations",
    "find_expression_format_issues",
]
