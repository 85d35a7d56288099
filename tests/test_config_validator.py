"""ConfigValidator / EnhancedConfigValidator: schema checks, modes and profiles."""

from __future__ import annotations

import pytest

from workflow_validator.properties.base import ConfigValidator, is_expression
from workflow_validator.properties.enhanced import EnhancedConfigValidator, deduplicate_errors
from workflow_validator.properties.models import (
    BEST_PRACTICE,
    INVALID_TYPE,
    INVALID_VALUE,
    MISSING_REQUIRED,
    SECURITY,
    ConfigError,
    ConfigValidationResult,
)
from workflow_validator.similarity.operations import OperationSimilarityService
from workflow_validator.similarity.resources import ResourceSimilarityService

HTTP = "n8n-nodes-base.httpRequest"
SLACK = "n8n-nodes-base.slack"


@pytest.fixture
def validator(store) -> EnhancedConfigValidator:
    return EnhancedConfigValidator(
        resource_service=ResourceSimilarityService(store),
        operation_service=OperationSimilarityService(store),
    )


# ---------------------------------------------------------------------------
# Base checks
# ---------------------------------------------------------------------------


class TestBaseChecks:
    """Presence, type and option checks."""

    def test_is_expression(self):
        assert is_expression("={{ $json.a }}")
        assert is_expression("Hello {{ $json.a }}")
        assert not is_expression("plain")
        assert not is_expression(42)

    def test_missing_required_property(self, http_properties):
        result = ConfigValidator().validate(HTTP, {}, http_properties)
        assert [e.property for e in result.errors] == ["url"]
        assert result.errors[0].type == MISSING_REQUIRED
        assert result.errors[0].message == "Required property 'URL' is missing"

    def test_type_mismatch(self, http_properties):
        result = ConfigValidator().validate(HTTP, {"url": "https://x.io", "sendBody": "yes"}, http_properties)
        error = next(e for e in result.errors if e.property == "sendBody")
        assert error.type == INVALID_TYPE
        assert error.message == "Property 'sendBody' must be a boolean, got string"

    def test_option_membership(self, http_properties):
        result = ConfigValidator().validate(HTTP, {"url": "https://x.io", "method": "FETCH"}, http_properties)
        error = next(e for e in result.errors if e.property == "method")
        assert error.type == INVALID_VALUE
        assert "Must be one of: GET, POST, PUT, DELETE" in error.message

    def test_expression_values_are_not_type_checked(self, http_properties):
        result = ConfigValidator().validate(HTTP, {"url": "={{ $json.url }}", "sendBody": "={{ true }}"}, http_properties)
        assert result.valid

    def test_url_without_protocol(self, http_properties):
        result = ConfigValidator().validate(HTTP, {"url": "example.com"}, http_properties)
        assert any(e.message == "URL must start with http:// or https://" for e in result.errors)

    def test_hardcoded_secret_is_flagged(self, http_properties):
        result = ConfigValidator().validate(HTTP, {"url": "https://x.io", "apiKey": "sk-123"}, http_properties)
        assert any(w.type == SECURITY and w.message == "Hardcoded apiKey detected" for w in result.warnings)

    def test_code_node_empty_code(self):
        result = ConfigValidator().validate("n8n-nodes-base.code", {"jsCode": "  "}, [])
        assert result.errors[0].message == "Code cannot be empty"

    def test_code_node_unbalanced_braces(self):
        result = ConfigValidator().validate("n8n-nodes-base.code", {"jsCode": "if (x) { return items;"}, [])
        assert any(e.message == "Unbalanced braces detected" for e in result.errors)

    def test_hidden_property_is_reported(self, slack_properties):
        config = {"resource": "channel", "operation": "create", "text": "hello"}
        result = ConfigValidator().validate(SLACK, config, slack_properties)
        assert "text" in result.hidden_properties
        assert any("won't be used" in w.message for w in result.warnings)


# ---------------------------------------------------------------------------
# Argument checks
# ---------------------------------------------------------------------------


class TestArgumentChecks:
    """Library API misuse raises."""

    @pytest.mark.asyncio
    async def test_unknown_mode_raises(self, validator):
        with pytest.raises(ValueError):
            await validator.validate_with_mode(HTTP, {}, [], mode="everything")

    @pytest.mark.asyncio
    async def test_unknown_profile_raises(self, validator):
        with pytest.raises(ValueError):
            await validator.validate_with_mode(HTTP, {}, [], profile="lenient")

    @pytest.mark.asyncio
    async def test_non_dict_config_raises(self, validator):
        with pytest.raises(TypeError):
            await validator.validate_with_mode(HTTP, "url=x", [])


# ---------------------------------------------------------------------------
# Resource / operation
# ---------------------------------------------------------------------------


class TestResourceOperation:
    """Resource and operation membership with suggestions."""

    @pytest.mark.asyncio
    async def test_invalid_operation_gets_suggestion(self, validator, slack_properties):
        config = {"resource": "message", "operation": "sendMessage", "channel": "#general"}
        result = await validator.validate_with_mode(SLACK, config, slack_properties, profile="ai-friendly")

        operation_errors = [e for e in result.errors if e.property == "operation"]
        assert len(operation_errors) == 1
        error = operation_errors[0]
        assert error.message == f'Invalid operation "sendMessage" for node {SLACK}'
        assert error.fix.startswith('Did you mean "post"?')
        assert "Valid operations: post, update, delete" in error.fix
        assert not result.valid

    @pytest.mark.asyncio
    async def test_invalid_resource_without_services_still_reported(self, slack_properties):
        result = await EnhancedConfigValidator().validate_with_mode(
            SLACK, {"resource": "messages"}, slack_properties, profile="runtime",
        )
        error = next(e for e in result.errors if e.property == "resource")
        assert error.fix == "Valid resources: message, channel, user"

    @pytest.mark.asyncio
    async def test_operation_mode_scopes_to_selected_resource(self, validator, slack_properties):
        config = {"resource": "channel", "operation": "create", "name": "alerts"}
        result = await validator.validate_with_mode(SLACK, config, slack_properties, profile="runtime")
        assert result.valid
        assert result.operation.resource == "channel"


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


class TestProfiles:
    """Profile filtering of errors, warnings and suggestions."""

    @pytest.mark.asyncio
    async def test_minimal_profile_keeps_only_missing_required(self, validator, http_properties):
        result = await validator.validate_with_mode(HTTP, {"url": "example.com"}, http_properties, profile="minimal")
        assert result.errors == []
        assert result.warnings == []
        assert result.suggestions == []

    @pytest.mark.asyncio
    async def test_runtime_profile_keeps_runtime_errors_and_security(self, validator, http_properties):
        config = {"url": "example.com", "apiKey": "sk-123"}
        result = await validator.validate_with_mode(HTTP, config, http_properties, profile="runtime")
        assert any(e.property == "url" and e.type == INVALID_VALUE for e in result.errors)
        assert [w.type for w in result.warnings] == [SECURITY]
        assert result.suggestions == []

    def test_runtime_profile_keeps_type_errors_on_undefined_values(self, validator):
        undefined = ConfigError(type=INVALID_TYPE, property="body", message="Property 'body' is undefined")
        mismatch = ConfigError(type=INVALID_TYPE, property="timeout", message="Property 'timeout' must be a number")
        result = ConfigValidationResult(errors=[undefined, mismatch])

        validator._apply_profile(HTTP, result, "runtime", {})

        assert result.errors == [undefined]

    @pytest.mark.asyncio
    async def test_ai_friendly_post_without_body(self, validator, http_properties):
        config = {"url": "https://example.com", "method": "POST"}
        result = await validator.validate_with_mode(HTTP, config, http_properties, profile="ai-friendly")
        assert any(w.property == "sendBody" for w in result.warnings)
        assert result.autofix["sendBody"] is True
        assert any("retryOnFail" in s for s in result.suggestions)

    @pytest.mark.asyncio
    async def test_strict_profile_requires_error_handling(self, validator, http_properties):
        config = {"url": "https://example.com"}
        result = await validator.validate_with_mode(HTTP, config, http_properties, profile="strict")
        assert any(w.type == BEST_PRACTICE and w.property == "errorHandling" for w in result.warnings)

    @pytest.mark.asyncio
    async def test_strict_profile_accepts_configured_error_handling(self, validator, http_properties):
        config = {"url": "https://example.com"}
        result = await validator.validate_with_mode(
            HTTP, config, http_properties, profile="strict", settings={"onError": "continueRegularOutput"},
        )
        assert not any(w.property == "errorHandling" for w in result.warnings)

    @pytest.mark.asyncio
    async def test_missing_url_reported_once(self, validator, http_properties):
        result = await validator.validate_with_mode(HTTP, {}, http_properties, profile="runtime")
        url_errors = [e for e in result.errors if e.property == "url"]
        assert len(url_errors) == 1
        assert url_errors[0].message == "URL is required for HTTP requests"
        assert result.next_steps[0] == "Add required fields: url"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestHelpers:
    """Deduplication, next steps and serialisation."""

    def test_deduplicate_prefers_more_detailed_error(self):
        errors = [
            ConfigError(MISSING_REQUIRED, "url", "URL missing"),
            ConfigError(MISSING_REQUIRED, "url", "URL is required for HTTP requests", "Provide the full URL"),
            ConfigError(INVALID_TYPE, "url", "URL must be a string"),
        ]
        deduped = deduplicate_errors(errors)
        assert len(deduped) == 2
        assert deduped[0].message == "URL is required for HTTP requests"

    @pytest.mark.asyncio
    async def test_result_to_dict_shape(self, validator, http_properties):
        result = await validator.validate_with_mode(HTTP, {}, http_properties, profile="runtime")
        payload = result.to_dict()
        assert payload["valid"] is False
        assert payload["profile"] == "runtime"
        assert payload["mode"] == "operation"
        assert payload["errors"][0]["property"] == "url"
