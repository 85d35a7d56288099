"""Expression syntax checks and the = prefix / resource-locator format scan."""

from __future__ import annotations

import pytest

from workflow_validator.workflow.expressions import (
    MISSING_PREFIX,
    MIXED_FORMAT,
    NEEDS_RESOURCE_LOCATOR,
    BasicExpressionChecker,
    ExpressionContext,
    ExpressionFormatIssue,
    count_expressions,
    find_expression_format_issues,
    is_resource_locator,
    resource_locator_confidence,
)


@pytest.fixture
def checker() -> BasicExpressionChecker:
    return BasicExpressionChecker()


@pytest.fixture
def with_input() -> ExpressionContext:
    return ExpressionContext(available_node_names=["Webhook"], current_node_name="Set", has_input_data=True)


# ---------------------------------------------------------------------------
# Syntax checker
# ---------------------------------------------------------------------------


class TestBasicExpressionChecker:
    """Bracket, reference and context checks."""

    def test_count_expressions(self):
        assert count_expressions({"a": "{{ x }} and {{ y }}", "b": ["{{ z }}"], "c": 3}) == 3

    def test_unmatched_brackets(self, checker, with_input):
        result = checker.check_string("{{ $json.a ", with_input)
        assert "Unmatched expression brackets {{ }}" in result.errors

    def test_empty_expression(self, checker, with_input):
        assert "Empty expression found" in checker.check_string("{{ }}", with_input).errors

    def test_unknown_node_reference(self, checker, with_input):
        result = checker.check_string('{{ $node["Missing"].json.id }}', with_input)
        assert 'Referenced node "Missing" not found in workflow' in result.errors

    def test_known_node_reference(self, checker, with_input):
        result = checker.check_string("{{ $('Webhook').item.json.id }}", with_input)
        assert result.valid
        assert result.used_nodes == {"Webhook"}

    def test_json_without_input_warns(self, checker):
        context = ExpressionContext(has_input_data=False)
        result = checker.check_string("{{ $json.a }}", context)
        assert "Using $json but node might not have input data" in result.warnings

    def test_json_inside_loop_does_not_warn(self, checker):
        context = ExpressionContext(has_input_data=False, is_in_loop=True)
        assert checker.check_string("{{ $json.a }}", context).warnings == []

    def test_input_item_without_input_is_an_error(self, checker):
        result = checker.check_string("{{ $input.item.json.a }}", ExpressionContext())
        assert "$input is only available when the node has input data" in result.errors

    def test_template_literal_is_an_error(self, checker, with_input):
        result = checker.check_string("{{ `id-${$json.id}` }}", with_input)
        assert any("Template literals" in e for e in result.errors)

    def test_check_walks_nested_parameters(self, checker, with_input):
        result = checker.check({"options": {"headers": ["ok", "{{ }}"]}}, with_input)
        assert result.errors == ["options.headers[1]: Empty expression found"]

    def test_plain_strings_are_ignored(self, checker, with_input):
        assert checker.check({"text": "hello", "n": 3}, with_input).valid


# ---------------------------------------------------------------------------
# Format: = prefix
# ---------------------------------------------------------------------------


class TestPrefixFormat:
    """Missing '=' prefix detection."""

    def test_missing_prefix_mixed_text(self):
        issues = find_expression_format_issues(
            {"text": "Hello {{ $json.name }}"}, "n8n-nodes-base.set", "Set", "set-1",
        )
        assert len(issues) == 1
        issue = issues[0]
        assert issue.issue_type == MISSING_PREFIX
        assert issue.field_path == "text"
        assert issue.corrected_value == "=Hello {{ $json.name }}"
        assert issue.explanation == "Mixed literal text and expression requires = prefix for expression evaluation"
        assert (issue.node_name, issue.node_id) == ("Set", "set-1")

    def test_prefixed_expression_is_fine(self):
        assert find_expression_format_issues({"value": "={{ $json.x }}"}, "n8n-nodes-base.set") == []

    def test_nested_field_paths(self):
        issues = find_expression_format_issues(
            {"assignments": {"items": [{"value": "{{ $json.a }}"}]}}, "n8n-nodes-base.set",
        )
        assert [i.field_path for i in issues] == ["assignments.items[0].value"]

    def test_double_prefix_is_mixed_format(self):
        issues = find_expression_format_issues({"value": "={{ =$json.a }}"}, "n8n-nodes-base.set")
        assert issues[0].issue_type == MIXED_FORMAT
        assert issues[0].explanation.startswith("Double prefix detected")

    def test_format_message_lists_both_values(self):
        issue = find_expression_format_issues({"value": "{{ $json.a }}"}, "n8n-nodes-base.set", "Set")[0]
        message = issue.format_message()
        assert message.startswith("Expression format error in node 'Set':")
        assert '"value": "{{ $json.a }}"' in message
        assert '"value": "={{ $json.a }}"' in message


# ---------------------------------------------------------------------------
# Format: resource locators
# ---------------------------------------------------------------------------


class TestResourceLocatorFormat:
    """Resource-locator recommendations and confidence."""

    def test_resource_locator_field_without_prefix(self):
        issues = find_expression_format_issues({"owner": "{{ $json.owner }}"}, "n8n-nodes-base.github")
        issue = issues[0]
        assert issue.issue_type == NEEDS_RESOURCE_LOCATOR
        assert issue.severity == "error"
        assert issue.corrected_value == {"__rl": True, "value": "={{ $json.owner }}", "mode": "expression"}
        assert issue.confidence >= 0.8

    def test_resource_locator_value_missing_prefix(self):
        locator = {"__rl": True, "value": "{{ $json.channel }}", "mode": "expression"}
        issues = find_expression_format_issues({"channel": locator}, "n8n-nodes-base.slack")
        assert len(issues) == 1
        assert issues[0].issue_type == MISSING_PREFIX
        assert issues[0].corrected_value["value"] == "={{ $json.channel }}"

    def test_well_formed_resource_locator(self):
        locator = {"__rl": True, "value": "={{ $json.channel }}", "mode": "expression"}
        assert is_resource_locator(locator)
        assert find_expression_format_issues({"channel": locator}, "n8n-nodes-base.slack") == []

    def test_resource_locator_confidence_weights(self):
        assert resource_locator_confidence("owner", "n8n-nodes-base.github", "{{ $json.owner }}") == pytest.approx(0.9)
        assert resource_locator_confidence("text", "n8n-nodes-base.set", "{{ $json.text }}") == 0.0

    def test_issue_from_dict_restores_node_reference(self):
        issue = find_expression_format_issues({"value": "{{ $json.a }}"}, "n8n-nodes-base.set", "Set", "s1")[0]
        restored = ExpressionFormatIssue.from_dict(issue.to_dict())
        assert restored == issue
