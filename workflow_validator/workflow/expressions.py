"""n8n expression handling for workflow validation.

Two independent concerns live here:

* ``ExpressionChecker``: pluggable per-node check of ``{{ ... }}`` syntax and
  variable usage.  ``BasicExpressionChecker`` is the bundled implementation.
* Expression *format*: a string holding ``{{ ... }}`` is only evaluated when
  it starts with ``=``.  ``find_expression_format_issues`` reports values
  missing the prefix (and fields that should be resource locators) together
  with a corrected value the auto-fixer can apply.
"""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from workflow_validator.knowledge.models import local_name

EXPRESSION_PREFIX = "="
MAX_RECURSION_DEPTH = 100

_EXPRESSION = re.compile(r"\{\{([\s\S]+?)\}\}")


def count_expressions(value: Any) -> int:
    """Count ``{{`` openings in *value*, recursing through dicts and lists."""
    if isinstance(value, str):
        return value.count("{{")
    if isinstance(value, list):
        return sum(count_expressions(item) for item in value)
    if isinstance(value, dict):
        return sum(count_expressions(item) for item in value.values())
    return 0


# ---------------------------------------------------------------------------
# Expression checker
# ---------------------------------------------------------------------------

@dataclass
class ExpressionContext:
    available_node_names: list[str] = field(default_factory=list)
    current_node_name: str | None = None
    has_input_data: bool = False
    is_in_loop: bool = False


@dataclass
class ExpressionCheckResult:
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    used_variables: set[str] = field(default_factory=set)
    used_nodes: set[str] = field(default_factory=set)

    @property
    def valid(self) -> bool:
        return not self.errors


@runtime_checkable
class ExpressionChecker(Protocol):
    def check(self, parameters: Any, context: ExpressionContext) -> ExpressionCheckResult: ...


_VARIABLE_PATTERNS: dict[str, re.Pattern[str]] = {
    "$parameter": re.compile(r"\$parameter\[\"([^\"]+)\"\]"),
    "$env": re.compile(r"\$env\.([a-zA-Z_]\w*)"),
    "$workflow": re.compile(r"\$workflow\.(id|name|active)"),
    "$execution": re.compile(r"\$execution\.(id|mode|resumeUrl)"),
    "$prevNode": re.compile(r"\$prevNode\.(name|outputIndex|runIndex)"),
    "$itemIndex": re.compile(r"\$itemIndex"),
    "$runIndex": re.compile(r"\$runIndex"),
    "$now": re.compile(r"\$now"),
    "$today": re.compile(r"\$today"),
}
_JSON_VAR = re.compile(r"\$json(\.[a-zA-Z_]\w*|\[\"[^\"]+\"\]|\['[^']+'\]|\[\d+\])*")
_NODE_REF = re.compile(r"\$node\[[\"']([^\"']+)[\"']\]")
_FUNC_NODE_REF = re.compile(r"\$\([\"']([^\"']+)[\"']\)")
_INPUT_VAR = re.compile(r"\$input\.item")
_ITEMS_REF = re.compile(r"\$items\(\"([^\"]+)\"(?:,\s*(\d+))?\)")
_MISSING_DOLLAR = re.compile(r"(?<![$\w.])\b(json|node|input|items|workflow|execution)\b(?!\s*[:(])")


class BasicExpressionChecker:
    """Bracket balance, empty/nested expressions, variable and node references."""

    def check(self, parameters: Any, context: ExpressionContext) -> ExpressionCheckResult:
        result = ExpressionCheckResult()
        self._walk(parameters, context, result, "")
        return result

    def _walk(self, value: Any, context: ExpressionContext, result: ExpressionCheckResult, path: str) -> None:
        if isinstance(value, str):
            if "{{" in value or "}}" in value:
                single = self.check_string(value, context)
                result.errors.extend(f"{path}: {e}" for e in single.errors)
                result.warnings.extend(f"{path}: {w}" for w in single.warnings)
                result.used_variables |= single.used_variables
                result.used_nodes |= single.used_nodes
        elif isinstance(value, list):
            for i, item in enumerate(value):
                self._walk(item, context, result, f"{path}[{i}]")
        elif isinstance(value, dict):
            for key, item in value.items():
                self._walk(item, context, result, f"{path}.{key}" if path else str(key))

    def check_string(self, text: str, context: ExpressionContext) -> ExpressionCheckResult:
        result = ExpressionCheckResult()

        opening, closing = text.count("{{"), text.count("}}")
        if opening != closing:
            result.errors.append("Unmatched expression brackets {{ }}")
        if re.search(r"\{\{[^}]*\{\{", text):
            result.errors.append("Nested expressions are not supported")
        if re.search(r"\{\{\s*\}\}", text):
            result.errors.append("Empty expression found")

        for match in _EXPRESSION.finditer(text):
            self._check_expression(match.group(1).strip(), context, result)

        for node_name in sorted(result.used_nodes):
            if node_name not in context.available_node_names:
                result.errors.append(f'Referenced node "{node_name}" not found in workflow')
        return result

    @staticmethod
    def _check_expression(expr: str, context: ExpressionContext, result: ExpressionCheckResult) -> None:
        if _JSON_VAR.search(expr):
            result.used_variables.add("$json")
            if not context.has_input_data and not context.is_in_loop:
                result.warnings.append("Using $json but node might not have input data")

        for pattern in (_NODE_REF, _FUNC_NODE_REF, _ITEMS_REF):
            for match in pattern.finditer(expr):
                result.used_nodes.add(match.group(1))
                result.used_variables.add("$node")

        if _INPUT_VAR.search(expr):
            result.used_variables.add("$input")
            if not context.has_input_data:
                result.errors.append("$input is only available when the node has input data")

        for name, pattern in _VARIABLE_PATTERNS.items():
            if pattern.search(expr):
                result.used_variables.add(name)

        if _MISSING_DOLLAR.search(expr):
            result.warnings.append("Possible missing $ prefix for variable (e.g., use $json instead of json)")
        if re.search(r"\$json\['[^']+'\]", expr):
            result.warnings.append("Consider using dot notation: $json.property instead of $json['property']")
        if "?." in expr:
            result.warnings.append("Optional chaining (?.) is not supported in n8n expressions")
        if "${" in expr:
            result.errors.append("Template literals ${} are not supported. Use string concatenation instead")


# ---------------------------------------------------------------------------
# Expression format
# ---------------------------------------------------------------------------

MISSING_PREFIX = "missing-prefix"
NEEDS_RESOURCE_LOCATOR = "needs-resource-locator"
MIXED_FORMAT = "mixed-format"

VALID_RESOURCE_LOCATOR_MODES: frozenset[str] = frozenset({"id", "url", "expression", "name", "list"})

# local node name -> fields that take a resource locator
RESOURCE_LOCATOR_FIELDS: dict[str, tuple[str, ...]] = {
    "github": ("owner", "repository", "user", "organization"),
    "googlesheets": ("sheetId", "documentId", "spreadsheetId", "rangeDefinition"),
    "googledrive": ("fileId", "folderId", "driveId"),
    "slack": ("channel", "user", "channelId", "userId", "teamId"),
    "notion": ("databaseId", "pageId", "blockId"),
    "airtable": ("baseId", "tableId", "viewId"),
    "monday": ("boardId", "itemId", "groupId"),
    "hubspot": ("contactId", "companyId", "dealId"),
    "salesforce": ("recordId", "objectName"),
    "jira": ("projectKey", "issueKey", "boardId"),
    "gitlab": ("projectId", "mergeRequestId", "issueId"),
    "mysql": ("table", "database", "schema"),
    "postgres": ("table", "database", "schema"),
    "mongodb": ("collection", "database"),
    "s3": ("bucketName", "key", "fileName"),
    "ftp": ("path", "fileName"),
    "ssh": ("path", "fileName"),
    "redis": ("key",),
}

RESOURCE_HEAVY_NODES: frozenset[str] = frozenset({
    "github", "gitlab", "bitbucket", "googlesheets", "googledrive", "dropbox",
    "slack", "discord", "telegram", "notion", "airtable", "baserow",
    "jira", "asana", "trello", "monday", "salesforce", "hubspot", "pipedrive",
    "stripe", "paypal", "square", "aws", "gcp", "azure",
    "mysql", "postgres", "mongodb", "redis",
})

_LOCATOR_FIELD_NAME = re.compile(
    r"^(.*(Id|Ids|Key|Name|Path|Url|Uri)|table|database|collection|bucket|folder|file|document|sheet"
    r"|board|project|issue|user|channel|team|organization|repository|owner)$",
    re.IGNORECASE,
)
_LOCATOR_VALUE = re.compile(r"\{\{.*(id|key|name|path|url|uri).*\}\}", re.IGNORECASE)

# Evidence weights for resource_locator_confidence; they sum to 1.0
_RL_WEIGHTS = {"exact": 0.5, "field": 0.3, "value": 0.1, "node": 0.1}
RL_ERROR_CONFIDENCE = 0.8
RL_WARNING_CONFIDENCE = 0.5


@dataclass
class ExpressionFormatIssue:
    field_path: str
    current_value: Any
    corrected_value: Any
    issue_type: str
    explanation: str
    severity: str = "error"
    confidence: float | None = None
    node_name: str | None = None
    node_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "fieldPath": self.field_path,
            "currentValue": self.current_value,
            "correctedValue": self.corrected_value,
            "issueType": self.issue_type,
            "explanation": self.explanation,
            "severity": self.severity,
        }
        if self.confidence is not None:
            d["confidence"] = self.confidence
        if self.node_name is not None:
            d["nodeName"] = self.node_name
        if self.node_id is not None:
            d["nodeId"] = self.node_id
        return d

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> ExpressionFormatIssue:
        return cls(
            field_path=raw["fieldPath"],
            current_value=raw.get("currentValue"),
            corrected_value=raw.get("correctedValue"),
            issue_type=raw.get("issueType", MISSING_PREFIX),
            explanation=raw.get("explanation", ""),
            severity=raw.get("severity", "error"),
            confidence=raw.get("confidence"),
            node_name=raw.get("nodeName"),
            node_id=raw.get("nodeId"),
        )

    def format_message(self) -> str:
        def _render(value: Any) -> str:
            return f'"{value}"' if isinstance(value, str) else json.dumps(value, indent=2)

        return (
            f"Expression format {self.severity} in node '{self.node_name}':\n"
            f"Field '{self.field_path}' {self.explanation}\n\n"
            f"Current (incorrect):\n\"{self.field_path}\": {_render(self.current_value)}\n\n"
            f"Fixed (correct):\n\"{self.field_path}\": {_render(self.corrected_value)}"
        )


def is_resource_locator(value: Any) -> bool:
    return (
        isinstance(value, dict)
        and value.get("__rl") is True
        and "value" in value
        and value.get("mode") in VALID_RESOURCE_LOCATOR_MODES
    )


def resource_locator_confidence(field_name: str, node_type: str, value: str) -> float:
    """Weighted evidence that *field_name* on *node_type* expects a resource locator."""
    base = local_name(node_type).lower()
    score = 0.0
    for pattern, fields in RESOURCE_LOCATOR_FIELDS.items():
        if (base == pattern or base.startswith(f"{pattern}-")) and field_name in fields:
            score += _RL_WEIGHTS["exact"]
            break
    if _LOCATOR_FIELD_NAME.match(field_name):
        score += _RL_WEIGHTS["field"]
    content = value[1:] if value.startswith(EXPRESSION_PREFIX) else value
    if _LOCATOR_VALUE.search(content):
        score += _RL_WEIGHTS["value"]
    if base in RESOURCE_HEAVY_NODES:
        score += _RL_WEIGHTS["node"]
    return round(score, 4)


def _prefix_explanation(value: str) -> str:
    remainder = _EXPRESSION.sub("", value)
    if remainder.strip():
        return "Mixed literal text and expression requires = prefix for expression evaluation"
    return "Expression requires = prefix to be evaluated"


def _needs_prefix(value: str) -> bool:
    return bool(_EXPRESSION.search(value)) and not value.startswith(EXPRESSION_PREFIX)


def _syntax_problem(value: str) -> str | None:
    opening, closing = value.count("{{"), value.count("}}")
    if opening != closing:
        return f"Unmatched expression brackets: {opening} opening, {closing} closing"
    for match in _EXPRESSION.finditer(value):
        content = match.group(1).strip()
        if content.startswith("="):
            return f"Double prefix detected in expression: {match.group(0)}"
    return None


def check_value_format(value: Any, field_path: str, node_type: str) -> ExpressionFormatIssue | None:
    if is_resource_locator(value):
        inner = value["value"]
        if isinstance(inner, str) and _needs_prefix(inner):
            return ExpressionFormatIssue(
                field_path=field_path,
                current_value=value,
                corrected_value={**value, "value": EXPRESSION_PREFIX + inner},
                issue_type=MISSING_PREFIX,
                explanation=f"Resource locator value: {_prefix_explanation(inner)}",
            )
        return None
    if not isinstance(value, str):
        return None

    field_name = field_path.rsplit(".", 1)[-1]
    if _needs_prefix(value):
        confidence = resource_locator_confidence(field_name, node_type, value)
        if confidence >= RL_ERROR_CONFIDENCE:
            return ExpressionFormatIssue(
                field_path=field_path,
                current_value=value,
                corrected_value={"__rl": True, "value": EXPRESSION_PREFIX + value, "mode": "expression"},
                issue_type=NEEDS_RESOURCE_LOCATOR,
                explanation=(
                    f"Field '{field_name}' contains expression but needs resource locator format "
                    "with '=' prefix for evaluation."
                ),
                confidence=confidence,
            )
        return ExpressionFormatIssue(
            field_path=field_path,
            current_value=value,
            corrected_value=EXPRESSION_PREFIX + value,
            issue_type=MISSING_PREFIX,
            explanation=_prefix_explanation(value),
        )

    problem = _syntax_problem(value)
    if problem is not None:
        return ExpressionFormatIssue(
            field_path=field_path,
            current_value=value,
            corrected_value=value,
            issue_type=MIXED_FORMAT,
            explanation=problem,
        )

    if _EXPRESSION.search(value):
        confidence = resource_locator_confidence(field_name, node_type, value)
        if confidence >= RL_WARNING_CONFIDENCE:
            return ExpressionFormatIssue(
                field_path=field_path,
                current_value=value,
                corrected_value={"__rl": True, "value": value, "mode": "expression"},
                issue_type=NEEDS_RESOURCE_LOCATOR,
                explanation=(
                    f"Field '{field_name}' should use resource locator format for better compatibility. "
                    f"(Confidence: {round(confidence * 100)}%)"
                ),
                severity="warning",
                confidence=confidence,
            )
    return None


def find_expression_format_issues(
    parameters: Any,
    node_type: str,
    node_name: str | None = None,
    node_id: str | None = None,
) -> list[ExpressionFormatIssue]:
    """Scan *parameters* recursively; field paths use ``a.b[0].c`` notation."""
    issues: list[ExpressionFormatIssue] = []
    seen: set[int] = set()

    def _walk(value: Any, path: str, depth: int) -> None:
        if depth > MAX_RECURSION_DEPTH:
            issues.append(ExpressionFormatIssue(
                field_path=path,
                current_value=None,
                corrected_value=None,
                issue_type=MIXED_FORMAT,
                explanation=f"Maximum recursion depth ({MAX_RECURSION_DEPTH}) exceeded.",
                severity="warning",
            ))
            return
        if isinstance(value, (dict, list)):
            if id(value) in seen:
                return
            seen.add(id(value))

        if path:
            issue = check_value_format(value, path, node_type)
            if issue is not None:
                issue.node_name, issue.node_id = node_name, node_id
                issues.append(issue)

        if isinstance(value, list):
            for i, item in enumerate(value):
                _walk(item, f"{path}[{i}]", depth + 1)
        elif isinstance(value, dict) and not is_resource_locator(value):
            for key, item in value.items():
                if str(key).startswith("__"):
                    continue
                _walk(item, f"{path}.{key}" if path else str(key), depth + 1)

    _walk(parameters, "", 0)
    return issues
