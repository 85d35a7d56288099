"""Suggestions for an invalid ``resource`` value on a recognised node type.

Valid resources come from the node's ``resource`` property options (with the
operations each one unlocks).  Nodes without an explicit resource property
get one inferred from operation keywords (``IMPLICIT_RESOURCE_KEYWORDS``).

Candidates, in order of precedence:
  - curated family patterns ('files' -> 'file' on file-storage nodes, ...)
  - singular/plural variants of the input (0.9)
  - edit-distance similarity >= 0.3

An input that matches a valid value case-insensitively yields no suggestions.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from workflow_validator.knowledge.cache import SuggestionResultCache, TTLCache
from workflow_validator.knowledge.models import NodeTypeDescriptor, to_store_type
from workflow_validator.knowledge.store import NodeMetadataStore
from workflow_validator.similarity import patterns
from workflow_validator.similarity.models import ResourceSuggestion
from workflow_validator.similarity.scorer import similarity_ratio, to_plural, to_singular

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.3
MAX_SUGGESTIONS = 5
VERY_HIGH = 0.95
HIGH = 0.8
MEDIUM = 0.6
PLURAL_VARIANT_CONFIDENCE = 0.9


@dataclass
class ResourceOption:
    value: str
    name: str = ""
    operations: list[str] = field(default_factory=list)


def extract_resources(node: NodeTypeDescriptor) -> list[ResourceOption]:
    """Resource options declared by *node*, each with the operations it unlocks."""
    resources: list[ResourceOption] = []
    by_value: dict[str, ResourceOption] = {}

    for prop in node.properties:
        if prop.name == "resource":
            for opt in prop.options:
                if isinstance(opt, dict) and "value" in opt:
                    option = ResourceOption(value=str(opt["value"]), name=opt.get("name", ""))
                    resources.append(option)
                    by_value[option.value] = option

    for prop in node.properties:
        if prop.name != "operation":
            continue
        shown_for = ((prop.display_options or {}).get("show") or {}).get("resource")
        if shown_for is None:
            continue
        if not isinstance(shown_for, list):
            shown_for = [shown_for]
        for resource_value in shown_for:
            if resource_value in by_value:
                by_value[resource_value].operations.extend(str(v) for v in prop.option_values)

    if not resources:
        resources.extend(_implicit_resources(node))
    return resources


def _implicit_resources(node: NodeTypeDescriptor) -> list[ResourceOption]:
    found: list[ResourceOption] = []
    for prop in node.properties:
        if prop.name != "operation" or not prop.options:
            continue
        op_values = [str(v) for v in prop.option_values]
        inferred = _infer_resource(op_values)
        if inferred:
            found.append(ResourceOption(value=inferred, name=inferred.capitalize(), operations=op_values))
    return found


def _infer_resource(operation_values: list[str]) -> str | None:
    for keywords, resource in patterns.IMPLICIT_RESOURCE_KEYWORDS:
        for op in operation_values:
            if any(keyword in op.lower() for keyword in keywords):
                return resource
    return None


class ResourceSimilarityService:
    """Proposes valid ``resource`` values for a node type."""

    def __init__(
        self,
        store: NodeMetadataStore,
        cache: TTLCache | None = None,
        result_cache: SuggestionResultCache | None = None,
    ) -> None:
        self._store = store
        self._cache = cache if cache is not None else TTLCache()
        self._results = result_cache if result_cache is not None else SuggestionResultCache()

    def invalidate(self, node_type: str | None = None) -> None:
        self._cache.invalidate(to_store_type(node_type) if node_type else None)
        self._results.invalidate()

    async def refresh(self, node_type: str) -> list[ResourceOption]:
        self._results.invalidate()
        return await self.get_resources(node_type, force=True)

    async def get_resources(self, node_type: str, force: bool = False) -> list[ResourceOption]:
        key = to_store_type(node_type)
        if not force:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        try:
            node = await self._store.get_node(node_type)
        except Exception:
            stale = self._cache.get_stale(key)
            if stale is not None:
                logger.warning("[ResourceSimilarityService] Lookup failed for %s; using stale resources", node_type)
                return stale
            logger.exception("[ResourceSimilarityService] Lookup failed for %s", node_type)
            return []
        if node is None:
            return []

        resources = extract_resources(node)
        self._cache.set(key, resources)
        return resources

    async def find_similar_resources(
        self,
        node_type: str,
        invalid_resource: str,
        max_suggestions: int = MAX_SUGGESTIONS,
    ) -> list[ResourceSuggestion]:
        cache_key = (to_store_type(node_type), invalid_resource, max_suggestions)
        cached = self._results.get(cache_key)
        if cached is not None:
            return list(cached)

        resources = await self.get_resources(node_type)
        lowered = invalid_resource.lower()
        if any(r.value.lower() == lowered for r in resources):
            return []

        by_value = {r.value: r for r in resources}
        suggestions: list[ResourceSuggestion] = []

        def _add(value: str, confidence: float, reason: str) -> None:
            if any(s.value == value for s in suggestions):
                return
            suggestions.append(ResourceSuggestion(
                value=value,
                confidence=confidence,
                reason=reason,
                available_operations=list(by_value[value].operations),
            ))

        family = patterns.patterns_for(node_type, patterns.RESOURCE_FAMILIES, patterns.RESOURCE_PATTERNS)
        for p in family:
            if p.pattern.lower() == lowered and p.suggestion in by_value:
                _add(p.suggestion, p.confidence, p.reason)

        singular, plural = to_singular(invalid_resource), to_plural(invalid_resource)
        for resource in resources:
            if resource.value in (singular, plural):
                reason = (
                    "Use singular form for resources"
                    if invalid_resource.endswith("s")
                    else "Incorrect plural/singular form"
                )
                _add(resource.value, PLURAL_VARIANT_CONFIDENCE, reason)

            similarity = similarity_ratio(invalid_resource, resource.value)
            if similarity >= MIN_CONFIDENCE:
                _add(resource.value, similarity, _reason(similarity, invalid_resource, resource.value))

        suggestions.sort(key=lambda s: s.confidence, reverse=True)
        top = suggestions[:max_suggestions]
        self._results.set(cache_key, list(top))
        return top


def _reason(confidence: float, invalid: str, valid: str) -> str:
    if confidence >= VERY_HIGH:
        return "Almost exact match - likely a typo"
    if confidence >= HIGH:
        return "Very similar - common variation"
    if confidence >= MEDIUM:
        return "Similar resource name"
    if invalid.lower() in valid.lower() or valid.lower() in invalid.lower():
        return "Partial match"
    return "Possibly related resource"
