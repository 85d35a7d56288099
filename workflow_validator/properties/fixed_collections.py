"""Detection and repair of over-nested fixedCollection parameters.

Several nodes store repeated groups as ``{"<collection>": {"<group>": [...]}}``.
Authors (human or model) often add one extra level, e.g.
``rules.conditions.values`` on a Switch node, which n8n rejects at runtime
with "propertyValues[itemName] is not iterable".

``check_fixed_collections`` reports each nested path it finds and returns an
autofix overlay: a dict holding only the corrected root properties, ready to
be merged over the node's ``parameters``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from workflow_validator.knowledge.models import local_name, to_store_type
from workflow_validator.properties.models import INVALID_VALUE, ConfigError


@dataclass(frozen=True)
class FixedCollectionPattern:
    node: str
    property: str
    expected_structure: str
    invalid_paths: tuple[str, ...]
    fix: str
    sub_property: str | None = None


FIXED_COLLECTION_PATTERNS: tuple[FixedCollectionPattern, ...] = (
    FixedCollectionPattern(
        node="switch",
        property="rules",
        expected_structure="rules.values array",
        invalid_paths=("rules.conditions", "rules.conditions.values"),
        fix='Use: { "rules": { "values": [{ "conditions": {...}, "outputKey": "output1" }] } }',
    ),
    FixedCollectionPattern(
        node="if",
        property="conditions",
        expected_structure="conditions array/object",
        invalid_paths=("conditions.values",),
        fix='Use: { "conditions": {...} } or { "conditions": [...] } directly, not nested under "values"',
    ),
    FixedCollectionPattern(
        node="filter",
        property="conditions",
        expected_structure="conditions array/object",
        invalid_paths=("conditions.values",),
        fix='Use: { "conditions": {...} } or { "conditions": [...] } directly, not nested under "values"',
    ),
    FixedCollectionPattern(
        node="summarize",
        property="fieldsToSummarize",
        sub_property="values",
        expected_structure="fieldsToSummarize.values array",
        invalid_paths=("fieldsToSummarize.values.values",),
        fix='Use: { "fieldsToSummarize": { "values": [...] } } not nested values.values',
    ),
    FixedCollectionPattern(
        node="comparedatasets",
        property="mergeByFields",
        sub_property="values",
        expected_structure="mergeByFields.values array",
        invalid_paths=("mergeByFields.values.values",),
        fix='Use: { "mergeByFields": { "values": [...] } } not nested values.values',
    ),
    FixedCollectionPattern(
        node="sort",
        property="sortFieldsUi",
        sub_property="sortField",
        expected_structure="sortFieldsUi.sortField array",
        invalid_paths=("sortFieldsUi.sortField.values",),
        fix='Use: { "sortFieldsUi": { "sortField": [...] } } not sortField.values',
    ),
    FixedCollectionPattern(
        node="aggregate",
        property="fieldsToAggregate",
        sub_property="fieldToAggregate",
        expected_structure="fieldsToAggregate.fieldToAggregate array",
        invalid_paths=("fieldsToAggregate.fieldToAggregate.values",),
        fix='Use: { "fieldsToAggregate": { "fieldToAggregate": [...] } } not fieldToAggregate.values',
    ),
    FixedCollectionPattern(
        node="set",
        property="fields",
        sub_property="values",
        expected_structure="fields.values array",
        invalid_paths=("fields.values.values",),
        fix='Use: { "fields": { "values": [...] } } not nested values.values',
    ),
    FixedCollectionPattern(
        node="html",
        property="extractionValues",
        sub_property="values",
        expected_structure="extractionValues.values array",
        invalid_paths=("extractionValues.values.values",),
        fix='Use: { "extractionValues": { "values": [...] } } not nested values.values',
    ),
    FixedCollectionPattern(
        node="httprequest",
        property="body",
        sub_property="parameters",
        expected_structure="body.parameters array",
        invalid_paths=("body.parameters.values",),
        fix='Use: { "body": { "parameters": [...] } } not parameters.values',
    ),
    FixedCollectionPattern(
        node="airtable",
        property="sort",
        sub_property="sortField",
        expected_structure="sort.sortField array",
        invalid_paths=("sort.sortField.values",),
        fix='Use: { "sort": { "sortField": [...] } } not sortField.values',
    ),
)

_BY_NODE: dict[str, FixedCollectionPattern] = {p.node: p for p in FIXED_COLLECTION_PATTERNS}


@dataclass
class FixedCollectionResult:
    errors: list[ConfigError] = field(default_factory=list)
    autofix: dict[str, Any] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors


def pattern_for(node_type: str) -> FixedCollectionPattern | None:
    return _BY_NODE.get(local_name(to_store_type(node_type)).lower())


def is_susceptible(node_type: str) -> bool:
    return pattern_for(node_type) is not None


def _resolve(config: dict[str, Any], path: str) -> Any:
    current: Any = config
    for part in path.split("."):
        if not isinstance(current, dict) or not current.get(part):
            return None
        current = current[part]
    return current


def check_fixed_collections(node_type: str, config: dict[str, Any]) -> FixedCollectionResult:
    result = FixedCollectionResult()
    pattern = pattern_for(node_type)
    if pattern is None:
        return result

    for path in pattern.invalid_paths:
        if _resolve(config, path) is None:
            continue
        result.errors.append(ConfigError(
            type=INVALID_VALUE,
            property=pattern.property,
            message=(
                f'Invalid structure for nodes-base.{pattern.node} node: found nested "{path}" '
                f'but expected "{pattern.expected_structure}". '
                'This causes "propertyValues[itemName] is not iterable" error in n8n.'
            ),
            fix=pattern.fix,
        ))

    if result.errors:
        result.autofix = build_autofix(pattern, config)
    return result


def build_autofix(pattern: FixedCollectionPattern, config: dict[str, Any]) -> dict[str, Any]:
    """Return ``{root_property: corrected_value}`` for *config*."""
    root = config.get(pattern.property)
    if not isinstance(root, dict):
        return {}

    if pattern.node == "switch":
        conditions = root.get("conditions")
        if isinstance(conditions, dict) and conditions.get("values"):
            nested = conditions["values"]
            groups = nested if isinstance(nested, list) else [nested]
        elif conditions:
            groups = [conditions]
        else:
            return {}
        return {"rules": {"values": [
            {"conditions": group, "outputKey": f"output{i + 1}"} for i, group in enumerate(groups)
        ]}}

    if pattern.sub_property is None:
        # if / filter: lift conditions.values up one level
        return {pattern.property: root["values"]} if root.get("values") else {}

    inner = root.get(pattern.sub_property)
    if isinstance(inner, dict) and inner.get("values"):
        return {pattern.property: {**root, pattern.sub_property: inner["values"]}}
    return {}
