"""Schema-driven validation of one node's ``parameters``.

``ConfigValidator`` checks a config against the property list it is given:

  1. required properties that are visible but absent
  2. type compatibility (string / number / boolean) and option membership
  3. built-in rules for a few node types (HTTP request, webhook, SQL
     databases, Code)
  4. common issues: declared properties that are configured but hidden by
     the current settings
  5. hardcoded secrets

Expression values (``"={{ ... }}"``) are opaque here: they are neither type-
nor option-checked because they only resolve at runtime.

``EnhancedConfigValidator`` (enhanced.py) layers modes, profiles and
family-specific rules on top.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from workflow_validator.knowledge.models import PropertyDescriptor, local_name, to_store_type
from workflow_validator.properties.models import (
    INEFFICIENT,
    INVALID_TYPE,
    INVALID_VALUE,
    MISSING_COMMON,
    MISSING_REQUIRED,
    SECURITY,
    SYNTAX_ERROR,
    ConfigError,
    ConfigValidationResult,
    ConfigWarning,
)
from workflow_validator.properties.visibility import is_property_visible, split_visibility

logger = logging.getLogger(__name__)

_SENSITIVE_KEYS: tuple[re.Pattern[str], ...] = (
    re.compile(r"api[_-]?key", re.IGNORECASE),
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"secret", re.IGNORECASE),
    re.compile(r"token", re.IGNORECASE),
    re.compile(r"credential", re.IGNORECASE),
)

_COMMONLY_SET: tuple[str, ...] = ("authentication", "errorHandling", "timeout")

_BODY_METHODS: frozenset[str] = frozenset({"POST", "PUT", "PATCH"})

_SQL_NODES: frozenset[str] = frozenset({"postgres", "mysql"})


def is_expression(value: Any) -> bool:
    return isinstance(value, str) and (value.startswith("=") or "{{" in value)


def json_type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        return "array"
    return "object"


class ConfigValidator:
    """Presence, type, value and node-rule checks for a node configuration."""

    def validate(
        self,
        node_type: str,
        config: dict[str, Any],
        properties: list[PropertyDescriptor],
        all_properties: list[PropertyDescriptor] | None = None,
    ) -> ConfigValidationResult:
        """Validate *config* against *properties*.

        ``all_properties`` is the unfiltered schema, used for visibility
        reporting and the configured-but-hidden check.  Defaults to
        *properties*.
        """
        schema = all_properties if all_properties is not None else properties
        result = ConfigValidationResult()

        self._check_required(properties, config, result)
        result.visible_properties, result.hidden_properties = split_visibility(schema, config)
        self._check_types(properties, config, result)
        self._check_node_rules(node_type, config, result)
        self._check_common_issues(schema, config, result)
        self._check_security(config, result)
        return result

    # ------------------------------------------------------------------
    # Schema checks
    # ------------------------------------------------------------------

    def _check_required(
        self,
        properties: list[PropertyDescriptor],
        config: dict[str, Any],
        result: ConfigValidationResult,
    ) -> None:
        reported: set[str] = set()
        for prop in properties:
            if not prop.required or prop.name in reported:
                continue
            if not is_property_visible(prop, config):
                continue
            if config.get(prop.name) is None:
                reported.add(prop.name)
                result.errors.append(ConfigError(
                    type=MISSING_REQUIRED,
                    property=prop.name,
                    message=f"Required property '{prop.display_name or prop.name}' is missing",
                    fix=f"Add {prop.name} to your configuration",
                ))

    def _check_types(
        self,
        properties: list[PropertyDescriptor],
        config: dict[str, Any],
        result: ConfigValidationResult,
    ) -> None:
        for key, value in config.items():
            candidates = [p for p in properties if p.name == key]
            visible = [p for p in candidates if is_property_visible(p, config)]
            if visible:
                candidates = visible
            if not candidates or value is None or is_expression(value):
                continue
            prop = candidates[0]

            expected = {"string": str, "number": (int, float), "boolean": bool}.get(prop.type)
            if expected is not None:
                mismatched = not isinstance(value, expected) or (
                    prop.type == "number" and isinstance(value, bool)
                )
                if mismatched:
                    fix = {
                        "string": f"Change {key} to a string value",
                        "number": f"Change {key} to a number",
                        "boolean": f"Change {key} to true or false",
                    }[prop.type]
                    result.errors.append(ConfigError(
                        type=INVALID_TYPE,
                        property=key,
                        message=f"Property '{key}' must be a {prop.type}, got {json_type_name(value)}",
                        fix=fix,
                    ))

            if prop.type == "options":
                valid_values: list[Any] = []
                for candidate in candidates:
                    for option_value in candidate.option_values:
                        if option_value not in valid_values:
                            valid_values.append(option_value)
                if valid_values and value not in valid_values:
                    result.errors.append(ConfigError(
                        type=INVALID_VALUE,
                        property=key,
                        message=(
                            f"Invalid value for '{key}'. Must be one of: "
                            + ", ".join(str(v) for v in valid_values)
                        ),
                        fix=f"Change {key} to one of the valid options",
                    ))

    # ------------------------------------------------------------------
    # Built-in node rules
    # ------------------------------------------------------------------

    def _check_node_rules(self, node_type: str, config: dict[str, Any], result: ConfigValidationResult) -> None:
        name = local_name(to_store_type(node_type)).lower()
        if name == "httprequest":
            self._check_http_request(config, result)
        elif name == "webhook":
            if config.get("responseMode") == "responseNode" and not config.get("responseData"):
                result.suggestions.append(
                    'When using responseMode=responseNode, add a "Respond to Webhook" node to send custom responses'
                )
        elif name in _SQL_NODES:
            self._check_database_query(config, result)
        elif name == "code":
            self._check_code(config, result)

    def _check_http_request(self, config: dict[str, Any], result: ConfigValidationResult) -> None:
        url = config.get("url")
        if isinstance(url, str) and url and not is_expression(url):
            if not url.startswith(("http://", "https://")):
                result.errors.append(ConfigError(
                    type=INVALID_VALUE,
                    property="url",
                    message="URL must start with http:// or https://",
                    fix="Add https:// to the beginning of your URL",
                ))

        method = config.get("method")
        if method in _BODY_METHODS and not config.get("sendBody"):
            result.warnings.append(ConfigWarning(
                type=MISSING_COMMON,
                property="sendBody",
                message=f"{method} requests typically send a body",
                suggestion="Set sendBody=true and configure the body content",
            ))
            result.autofix["sendBody"] = True
            result.autofix["contentType"] = "json"

        authentication = config.get("authentication")
        if (not authentication or authentication == "none") and isinstance(url, str):
            if "api." in url or "/api/" in url:
                result.warnings.append(ConfigWarning(
                    type=SECURITY,
                    message="API endpoints typically require authentication",
                    suggestion="Consider setting authentication if the API requires it",
                ))

        body = config.get("jsonBody")
        if config.get("sendBody") and config.get("contentType", "json") == "json" and isinstance(body, str):
            if body and not is_expression(body):
                try:
                    json.loads(body)
                except ValueError:
                    result.errors.append(ConfigError(
                        type=INVALID_VALUE,
                        property="jsonBody",
                        message="jsonBody contains invalid JSON",
                        fix="Ensure jsonBody contains valid JSON syntax",
                    ))

    def _check_database_query(self, config: dict[str, Any], result: ConfigValidationResult) -> None:
        query = config.get("query")
        if not isinstance(query, str) or not query:
            return
        lowered = query.lower()
        if "${" in lowered or "{{" in lowered:
            result.warnings.append(ConfigWarning(
                type=SECURITY,
                property="query",
                message="Query contains template expressions that might be vulnerable to SQL injection",
                suggestion="Use parameterized queries with additionalFields.queryParams instead",
            ))
        if "delete" in lowered and "where" not in lowered:
            result.warnings.append(ConfigWarning(
                type=SECURITY,
                property="query",
                message="DELETE query without WHERE clause will delete all records",
                suggestion="Add a WHERE clause to limit the deletion",
            ))
        if "select *" in lowered:
            result.suggestions.append(
                "Consider selecting specific columns instead of * for better performance"
            )

    def _check_code(self, config: dict[str, Any], result: ConfigValidationResult) -> None:
        language = config.get("language", "javaScript")
        field_name = "pythonCode" if language == "python" else "jsCode"
        code = config.get(field_name)
        if not isinstance(code, str) or not code.strip():
            result.errors.append(ConfigError(
                type=MISSING_REQUIRED,
                property=field_name,
                message="Code cannot be empty",
                fix="Add your code logic",
            ))
            return

        if "eval(" in code or "exec(" in code:
            result.warnings.append(ConfigWarning(
                type=SECURITY,
                property=field_name,
                message="Code contains eval/exec which can be a security risk",
                suggestion="Avoid using eval/exec with untrusted input",
            ))

        if language == "python":
            self._check_python_syntax(code, result)
        else:
            self._check_javascript_syntax(code, result)

    @staticmethod
    def _check_javascript_syntax(code: str, result: ConfigValidationResult) -> None:
        if code.count("{") != code.count("}"):
            result.errors.append(ConfigError(
                type=SYNTAX_ERROR,
                property="jsCode",
                message="Unbalanced braces detected",
                fix="Check that all { have matching }",
            ))
        if code.count("(") != code.count(")"):
            result.errors.append(ConfigError(
                type=SYNTAX_ERROR,
                property="jsCode",
                message="Unbalanced parentheses detected",
                fix="Check that all ( have matching )",
            ))

    @staticmethod
    def _check_python_syntax(code: str, result: ConfigValidationResult) -> None:
        indent_kinds: set[str] = set()
        for line in code.splitlines():
            indent = line[: len(line) - len(line.lstrip())]
            if "\t" in indent:
                indent_kinds.add("tabs")
            if " " in indent:
                indent_kinds.add("spaces")
        if len(indent_kinds) > 1:
            result.errors.append(ConfigError(
                type=SYNTAX_ERROR,
                property="pythonCode",
                message="Mixed tabs and spaces in indentation",
                fix="Use either tabs or spaces consistently, not both",
            ))
        if re.search(r"^\s*(if|elif|for|while|def|class|with)\s+.*[^:\s]\s*$", code, re.MULTILINE):
            result.warnings.append(ConfigWarning(
                type=INEFFICIENT,
                property="pythonCode",
                message="Missing colon after control structure",
                suggestion="Add : at the end of if/for/def/class statements",
            ))

    # ------------------------------------------------------------------
    # Common issues and security
    # ------------------------------------------------------------------

    def _check_common_issues(
        self,
        schema: list[PropertyDescriptor],
        config: dict[str, Any],
        result: ConfigValidationResult,
    ) -> None:
        visible_names = {p.name for p in schema if is_property_visible(p, config)}
        declared_names = {p.name for p in schema}

        for key in config:
            if key == "@version" or key.startswith("_"):
                continue
            if key in declared_names and key not in visible_names:
                result.warnings.append(ConfigWarning(
                    type=INEFFICIENT,
                    property=key,
                    message=f"Property '{key}' is configured but won't be used due to current settings",
                    suggestion="Remove this property or adjust other settings to make it visible",
                ))

        for name in _COMMONLY_SET:
            if name in visible_names and name not in config:
                result.suggestions.append(f"Consider setting '{name}' for better control")

    def _check_security(self, config: dict[str, Any], result: ConfigValidationResult) -> None:
        for key, value in config.items():
            if not isinstance(value, str) or not value or "{{" in value:
                continue
            if any(pattern.search(key) for pattern in _SENSITIVE_KEYS):
                result.warnings.append(ConfigWarning(
                    type=SECURITY,
                    property=key,
                    message=f"Hardcoded {key} detected",
                    suggestion="Use n8n credentials or expressions instead of hardcoding sensitive values",
                ))
