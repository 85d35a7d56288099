"""Family-specific configuration rules."""

from __future__ import annotations

from typing import Any

from workflow_validator.properties.families import (
    FamilyContext,
    family_validator_for,
    validate_code,
    validate_http_request,
    validate_postgres,
    validate_slack,
    validate_webhook,
)
from workflow_validator.properties.models import (
    DEPRECATED,
    INVALID_CONFIGURATION,
    MISSING_COMMON,
    SECURITY,
)


def _run(validator, config: dict[str, Any], settings: dict[str, Any] | None = None) -> FamilyContext:
    ctx = FamilyContext(config=config, settings=settings or {})
    validator(ctx)
    return ctx


def _error_props(ctx: FamilyContext) -> list[str]:
    return [e.property for e in ctx.errors]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestRegistry:
    """Family lookup by node type."""

    def test_registry_accepts_both_identifier_forms(self):
        assert family_validator_for("n8n-nodes-base.slack") is validate_slack
        assert family_validator_for("nodes-base.slack") is validate_slack
        assert family_validator_for("n8n-nodes-base.httpRequest") is validate_http_request

    def test_registry_returns_none_for_unknown_family(self):
        assert family_validator_for("n8n-nodes-base.set") is None


# ---------------------------------------------------------------------------
# Slack
# ---------------------------------------------------------------------------


class TestSlack:
    def test_post_needs_channel_and_content(self):
        ctx = _run(validate_slack, {"resource": "message", "operation": "post"})
        assert _error_props(ctx) == ["channel", "text"]

    def test_post_with_mention_suggests_link_names(self):
        ctx = _run(validate_slack, {
            "resource": "message", "operation": "post", "channel": "#general", "text": "hi @team",
        })
        assert ctx.errors == []
        assert ctx.autofix["linkNames"] is True

    def test_delete_is_flagged_as_permanent(self):
        ctx = _run(validate_slack, {
            "resource": "message", "operation": "delete", "channel": "C1", "ts": "1.2",
        })
        assert ctx.errors == []
        assert [w.type for w in ctx.warnings] == [SECURITY]

    def test_channel_name_rules(self):
        ctx = _run(validate_slack, {"resource": "channel", "operation": "create", "name": "My Channel"})
        messages = [e.message for e in ctx.errors]
        assert "Channel names cannot contain spaces" in messages
        assert "Channel names must be lowercase" in messages

    def test_continue_on_fail_is_deprecated(self):
        ctx = _run(validate_slack, {"resource": "user", "operation": "get", "user": "U1"}, {"continueOnFail": True})
        assert any(w.type == DEPRECATED for w in ctx.warnings)


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------


class TestWebhook:
    def test_empty_path_is_a_warning_not_an_error(self):
        ctx = _run(validate_webhook, {})
        assert ctx.errors == []
        assert ctx.warnings[0].type == MISSING_COMMON
        assert ctx.warnings[0].property == "path"

    def test_leading_slash(self):
        ctx = _run(validate_webhook, {"path": "/incoming"})
        assert ctx.warnings[0].message == "Webhook path should not start with /"

    def test_response_node_requires_on_error(self):
        ctx = _run(validate_webhook, {"path": "incoming", "responseMode": "responseNode"})
        assert ctx.errors[0].type == INVALID_CONFIGURATION
        assert ctx.autofix["onError"] == "continueRegularOutput"

    def test_response_node_with_on_error_is_fine(self):
        ctx = _run(
            validate_webhook,
            {"path": "incoming", "responseMode": "responseNode"},
            {"onError": "continueRegularOutput", "alwaysOutputData": True},
        )
        assert ctx.errors == []


# ---------------------------------------------------------------------------
# HTTP Request
# ---------------------------------------------------------------------------


class TestHttpRequest:
    def test_missing_url(self):
        ctx = _run(validate_http_request, {})
        assert _error_props(ctx) == ["url"]

    def test_non_idempotent_retries(self):
        ctx = _run(
            validate_http_request,
            {"url": "https://x.io", "method": "POST"},
            {"retryOnFail": True, "maxTries": 5},
        )
        assert ctx.warnings[0].message == "POST requests might not be idempotent. Use fewer retries."
        assert ctx.autofix["alwaysOutputData"] is True

    def test_continue_on_fail_autofix(self):
        ctx = _run(validate_http_request, {"url": "https://x.io"}, {"continueOnFail": False})
        assert ctx.autofix["onError"] == "stopWorkflow"


# ---------------------------------------------------------------------------
# SQL
# ---------------------------------------------------------------------------


class TestPostgres:
    def test_delete_without_where(self):
        ctx = _run(validate_postgres, {"operation": "executeQuery", "query": "DELETE FROM users"})
        assert ctx.errors[0].message == "DELETE query without WHERE clause will delete all records"

    def test_drop_is_an_error(self):
        ctx = _run(validate_postgres, {"operation": "executeQuery", "query": "DROP TABLE users"})
        assert any("DROP operations" in e.message for e in ctx.errors)

    def test_update_without_where_is_a_warning(self):
        ctx = _run(validate_postgres, {"operation": "executeQuery", "query": "UPDATE users SET a = 1"})
        assert ctx.errors == []
        assert ctx.warnings[0].type == SECURITY

    def test_insert_needs_table(self):
        ctx = _run(validate_postgres, {"operation": "insert", "columns": "a"})
        assert _error_props(ctx) == ["table"]

    def test_missing_query(self):
        ctx = _run(validate_postgres, {"operation": "executeQuery"})
        assert _error_props(ctx) == ["query"]


# ---------------------------------------------------------------------------
# Code
# ---------------------------------------------------------------------------


class TestCode:
    def test_missing_return(self):
        ctx = _run(validate_code, {"jsCode": "const a = $input.all();"})
        assert ctx.errors[0].message == "Code must return data for the next node"

    def test_primitive_return(self):
        ctx = _run(validate_code, {"jsCode": "return 5;"})
        assert ctx.errors[0].message == "Cannot return primitive values directly"

    def test_unavailable_python_module(self):
        ctx = _run(validate_code, {
            "language": "python",
            "pythonCode": "import requests\nreturn [{'json': {'a': _input.all()}}]",
        })
        assert any(e.message == "Module 'requests' is not available in Code nodes" for e in ctx.errors)

    def test_expression_syntax_inside_code(self):
        ctx = _run(validate_code, {"jsCode": "return [{json: {a: '{{ $json.a }}'}}];"})
        assert any("Expression syntax" in e.message for e in ctx.errors)

    def test_empty_code_is_left_to_base_validator(self):
        ctx = _run(validate_code, {"jsCode": ""})
        assert ctx.errors == []
        assert ctx.warnings == []
