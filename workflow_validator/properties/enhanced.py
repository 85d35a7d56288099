"""Operation-aware configuration validation.

``EnhancedConfigValidator.validate_with_mode`` runs these passes in order:

  1. narrow the schema by mode (minimal / operation / full)
  2. base checks (``ConfigValidator``) on the narrowed schema
  3. fixed-collection structure check, merged into ``autofix``
  4. family rules (Slack, Google Sheets, SQL, Code, ...)
  5. resource / operation membership, enriched with suggestions
  6. profile policy (trim or escalate findings)
  7. error de-duplication by (property, type)
  8. next steps

``valid`` is a property of the result, so it always reflects the final error
list.
"""

from __future__ import annotations

import logging
from typing import Any

from workflow_validator.knowledge.models import PropertyDescriptor, local_name, to_store_type
from workflow_validator.properties.base import ConfigValidator, is_expression
from workflow_validator.properties.families import FamilyContext, family_validator_for
from workflow_validator.properties.fixed_collections import check_fixed_collections
from workflow_validator.properties.models import (
    BEST_PRACTICE,
    INEFFICIENT,
    INVALID_TYPE,
    INVALID_VALUE,
    MISSING_REQUIRED,
    SECURITY,
    VALIDATION_MODES,
    VALIDATION_PROFILES,
    ConfigError,
    ConfigValidationResult,
    ConfigWarning,
    OperationContext,
)
from workflow_validator.properties.visibility import filter_properties, is_property_visible
from workflow_validator.similarity.operations import OperationSimilarityService
from workflow_validator.similarity.resources import ResourceSimilarityService

logger = logging.getLogger(__name__)

# Local-name keywords of nodes that call external services.
ERROR_PRONE_KEYWORDS: tuple[str, ...] = (
    "httprequest", "webhook", "postgres", "mysql", "mongodb", "slack", "email", "openai", "api",
)

_RUNTIME_ERROR_TYPES: frozenset[str] = frozenset({MISSING_REQUIRED, INVALID_VALUE})


def _is_runtime_error(error: ConfigError) -> bool:
    # Type errors on undefined values fail at execution time too.
    if error.type == INVALID_TYPE:
        return "undefined" in error.message
    return error.type in _RUNTIME_ERROR_TYPES


class EnhancedConfigValidator(ConfigValidator):
    """Mode- and profile-aware validator for one node's ``parameters``.

    The similarity services are optional; without them an invalid
    resource/operation is still reported, just without a suggested fix.
    """

    def __init__(
        self,
        resource_service: ResourceSimilarityService | None = None,
        operation_service: OperationSimilarityService | None = None,
    ) -> None:
        self._resources = resource_service
        self._operations = operation_service

    async def validate_with_mode(
        self,
        node_type: str,
        config: dict[str, Any],
        properties: list[PropertyDescriptor],
        mode: str = "operation",
        profile: str = "ai-friendly",
        settings: dict[str, Any] | None = None,
    ) -> ConfigValidationResult:
        """Validate *config* for *node_type*.

        ``settings`` carries the node-level fields that sit beside
        ``parameters`` in a workflow (``onError``, ``retryOnFail``, ...).

        Raises ``TypeError`` for malformed arguments and ``ValueError`` for an
        unknown mode or profile.
        """
        if not isinstance(node_type, str):
            raise TypeError(f"Invalid node_type: expected str, got {type(node_type).__name__}")
        if not isinstance(config, dict):
            raise TypeError(f"Invalid config: expected dict, got {type(config).__name__}")
        if not isinstance(properties, list):
            raise TypeError(f"Invalid properties: expected list, got {type(properties).__name__}")
        if mode not in VALIDATION_MODES:
            raise ValueError(f"Unknown validation mode {mode!r}; expected one of {sorted(VALIDATION_MODES)}")
        if profile not in VALIDATION_PROFILES:
            raise ValueError(f"Unknown validation profile {profile!r}; expected one of {sorted(VALIDATION_PROFILES)}")

        settings = settings or {}
        context = OperationContext.from_config(config)
        participating = filter_properties(properties, config, mode, context)

        result = self.validate(node_type, config, participating, all_properties=properties)
        result.mode = mode
        result.profile = profile
        result.operation = context

        fixed = check_fixed_collections(node_type, config)
        if fixed.errors:
            result.errors.extend(fixed.errors)
            result.autofix.update(fixed.autofix)

        family = family_validator_for(node_type)
        if family is not None:
            ctx = FamilyContext(
                config=config,
                settings=settings,
                errors=result.errors,
                warnings=result.warnings,
                suggestions=result.suggestions,
                autofix=result.autofix,
            )
            family(ctx)

        await self._check_resource_and_operation(node_type, config, properties, result)

        self._apply_profile(node_type, result, profile, settings)
        result.errors = deduplicate_errors(result.errors)
        result.warnings = _dedupe_warnings(result.warnings)
        result.suggestions = list(dict.fromkeys(result.suggestions))
        result.next_steps = generate_next_steps(result)
        return result

    # ------------------------------------------------------------------
    # Resource / operation membership
    # ------------------------------------------------------------------

    async def _check_resource_and_operation(
        self,
        node_type: str,
        config: dict[str, Any],
        properties: list[PropertyDescriptor],
        result: ConfigValidationResult,
    ) -> None:
        for selector in ("resource", "operation"):
            value = config.get(selector)
            if not isinstance(value, str) or not value or is_expression(value):
                continue
            valid_values = _selector_values(properties, config, selector)
            if not valid_values or value in valid_values:
                continue

            fix = f"Valid {selector}s: {', '.join(str(v) for v in valid_values[:10])}"
            try:
                top = await self._top_suggestion(node_type, selector, value, config.get("resource"))
            except Exception as exc:
                logger.warning("[EnhancedConfigValidator] %s suggestions failed for %s: %s", selector, node_type, exc)
                top = None
            if top is not None:
                fix = (
                    f'Did you mean "{top.value}"? '
                    f"({round(top.confidence * 100)}% confidence: {top.reason}). {fix}"
                )

            result.errors = [
                e for e in result.errors if not (e.property == selector and e.type == INVALID_VALUE)
            ]
            result.errors.append(ConfigError(
                type=INVALID_VALUE,
                property=selector,
                message=f'Invalid {selector} "{value}" for node {node_type}',
                fix=fix,
            ))

    async def _top_suggestion(self, node_type: str, selector: str, value: str, resource: Any) -> Any:
        if selector == "resource":
            if self._resources is None:
                return None
            suggestions = await self._resources.find_similar_resources(node_type, value, max_suggestions=1)
        else:
            if self._operations is None:
                return None
            current = resource if isinstance(resource, str) else None
            suggestions = await self._operations.find_similar_operations(
                node_type, value, resource=current, max_suggestions=1,
            )
        return suggestions[0] if suggestions else None

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def _apply_profile(
        self,
        node_type: str,
        result: ConfigValidationResult,
        profile: str,
        settings: dict[str, Any],
    ) -> None:
        name = local_name(to_store_type(node_type)).lower()
        has_handling = any(settings.get(k) for k in ("onError", "retryOnFail", "continueOnFail"))

        if profile == "minimal":
            result.errors = [e for e in result.errors if e.type == MISSING_REQUIRED]
            result.warnings = []
            result.suggestions = []
        elif profile == "runtime":
            result.errors = [e for e in result.errors if _is_runtime_error(e)]
            result.warnings = [w for w in result.warnings if w.type == SECURITY]
            result.suggestions = []
        elif profile == "strict":
            if not result.errors and not result.warnings:
                result.suggestions.append(
                    "Consider adding error handling with onError property and timeout configuration"
                )
                result.suggestions.append("Add authentication if connecting to external services")
            if not has_handling and any(keyword in name for keyword in ERROR_PRONE_KEYWORDS):
                result.warnings.append(ConfigWarning(
                    type=BEST_PRACTICE,
                    message="External service nodes should have error handling configured",
                    property="errorHandling",
                    suggestion='Add onError: "continueRegularOutput" or "stopWorkflow" with retryOnFail: true for resilience',
                ))
        else:
            hidden = set(result.hidden_properties) - set(result.visible_properties)
            result.warnings = [
                w for w in result.warnings
                if not (w.type == INEFFICIENT and w.property and (w.property in hidden or w.property.startswith("_")))
            ]
            network_errors = any("url" in e.message.lower() or "api" in e.message.lower() for e in result.errors)
            if not has_handling and (name == "httprequest" or network_errors):
                result.suggestions.append(
                    'For API calls, consider adding onError: "continueRegularOutput" with retryOnFail: true and maxTries: 3'
                )
            if not has_handling and name == "webhook":
                result.suggestions.append(
                    'Webhooks should use onError: "continueRegularOutput" to ensure responses are always sent'
                )


def _selector_values(properties: list[PropertyDescriptor], config: dict[str, Any], selector: str) -> list[Any]:
    candidates = [p for p in properties if p.name == selector]
    visible = [p for p in candidates if is_property_visible(p, config)]
    values: list[Any] = []
    for prop in visible or candidates:
        for value in prop.option_values:
            if value not in values:
                values.append(value)
    return values


def deduplicate_errors(errors: list[ConfigError]) -> list[ConfigError]:
    """Keep one error per (property, type), preferring the more detailed one."""
    seen: dict[tuple[str, str], ConfigError] = {}
    for error in errors:
        key = (error.property, error.type)
        existing = seen.get(key)
        if existing is None:
            seen[key] = error
            continue
        if len(error.message) + len(error.fix or "") > len(existing.message) + len(existing.fix or ""):
            seen[key] = error
    return list(seen.values())


def _dedupe_warnings(warnings: list[ConfigWarning]) -> list[ConfigWarning]:
    seen: set[tuple[str, str | None, str]] = set()
    unique: list[ConfigWarning] = []
    for warning in warnings:
        key = (warning.type, warning.property, warning.message)
        if key not in seen:
            seen.add(key)
            unique.append(warning)
    return unique


def generate_next_steps(result: ConfigValidationResult) -> list[str]:
    steps: list[str] = []
    by_type: dict[str, list[str]] = {}
    for error in result.errors:
        by_type.setdefault(error.type, []).append(error.property)

    if by_type.get(MISSING_REQUIRED):
        steps.append(f"Add required fields: {', '.join(by_type[MISSING_REQUIRED])}")
    if by_type.get(INVALID_TYPE):
        steps.append(f"Fix type mismatches: {', '.join(by_type[INVALID_TYPE])}")
    if by_type.get(INVALID_VALUE):
        steps.append(f"Correct invalid values: {', '.join(by_type[INVALID_VALUE])}")
    if result.warnings and not result.errors:
        steps.append("Consider addressing warnings for better reliability")
    if result.errors:
        steps.append("Fix the errors above following the provided suggestions")
    return steps
