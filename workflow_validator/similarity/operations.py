"""Suggestions for an invalid ``operation`` value, optionally scoped to a resource.

Operations are read from every ``operation`` property whose
``displayOptions.show.resource`` admits the current resource (properties with
no resource condition always apply).  Scoring mirrors the resource service
with one addition: names that differ only by a common verb prefix or noun
suffix ('getData' vs 'get', 'uploadFile' vs 'upload') get +0.2.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from workflow_validator.knowledge.cache import SuggestionResultCache, TTLCache
from workflow_validator.knowledge.models import NodeTypeDescriptor, to_store_type
from workflow_validator.knowledge.store import NodeMetadataStore
from workflow_validator.similarity import patterns
from workflow_validator.similarity.models import OperationSuggestion
from workflow_validator.similarity.scorer import (
    DOUBLE_EDIT_FLOOR,
    MIN_SUBSTRING_SIMILARITY,
    SHORT_WORD_LENGTH,
    SINGLE_EDIT_FLOOR,
    edit_distance,
)

logger = logging.getLogger(__name__)

MIN_CONFIDENCE = 0.3
MAX_SUGGESTIONS = 5
VERY_HIGH = 0.95
HIGH = 0.8
MEDIUM = 0.6
VARIATION_BOOST = 0.2
OTHER_RESOURCE_CONFIDENCE = 0.7


@dataclass
class OperationOption:
    value: str
    name: str = ""
    description: str = ""
    resource: str | None = None


def extract_operations(node: NodeTypeDescriptor, resource: str | None = None) -> list[OperationOption]:
    """Operation options of *node*, filtered to *resource* when given."""
    operations: list[OperationOption] = []
    for prop in node.properties:
        if prop.name != "operation" or not prop.options:
            continue
        shown_for = ((prop.display_options or {}).get("show") or {}).get("resource")
        if shown_for is not None and not isinstance(shown_for, list):
            shown_for = [shown_for]
        if resource and shown_for is not None and resource not in shown_for:
            continue
        owner = resource or (shown_for[0] if shown_for and len(shown_for) == 1 else None)
        for opt in prop.options:
            if isinstance(opt, dict) and "value" in opt:
                operations.append(OperationOption(
                    value=str(opt["value"]),
                    name=opt.get("name", ""),
                    description=opt.get("description", ""),
                    resource=owner,
                ))
    return operations


def operation_similarity(str1: str, str2: str) -> float:
    s1, s2 = str1.lower(), str2.lower()
    if s1 == s2:
        return 1.0
    if not s1 or not s2:
        return 0.0
    if s1 in s2 or s2 in s1:
        ratio = min(len(s1), len(s2)) / max(len(s1), len(s2))
        return max(MIN_SUBSTRING_SIMILARITY, ratio)

    max_len = max(len(s1), len(s2))
    distance = edit_distance(s1, s2, max_distance=max_len)
    similarity = 1 - distance / max_len
    if max_len <= SHORT_WORD_LENGTH:
        if distance == 1:
            similarity = max(similarity, SINGLE_EDIT_FLOOR)
        elif distance == 2:
            similarity = max(similarity, DOUBLE_EDIT_FLOOR)

    if _are_common_variations(s1, s2):
        return min(1.0, similarity + VARIATION_BOOST)
    return similarity


def _are_common_variations(s1: str, s2: str) -> bool:
    for prefix in patterns.OPERATION_VERB_PREFIXES:
        if s1.startswith(prefix) != s2.startswith(prefix):
            c1 = s1[len(prefix):] if s1.startswith(prefix) else s1
            c2 = s2[len(prefix):] if s2.startswith(prefix) else s2
            if c1 == c2 or edit_distance(c1, c2, max_distance=2) <= 2:
                return True
    for suffix in patterns.OPERATION_NOUN_SUFFIXES:
        if s1.endswith(suffix) != s2.endswith(suffix):
            c1 = s1[: -len(suffix)] if s1.endswith(suffix) else s1
            c2 = s2[: -len(suffix)] if s2.endswith(suffix) else s2
            if c1 == c2 or edit_distance(c1, c2, max_distance=2) <= 2:
                return True
    return False


class OperationSimilarityService:
    """Proposes valid ``operation`` values for a node type (and resource)."""

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
        if node_type is None:
            self._cache.invalidate()
        else:
            key = to_store_type(node_type)
            for resource_key in [k for k in self._cache.keys() if k[0] == key]:
                self._cache.invalidate(resource_key)
        self._results.invalidate()

    async def refresh(self, node_type: str, resource: str | None = None) -> list[OperationOption]:
        self._results.invalidate()
        return await self.get_operations(node_type, resource, force=True)

    async def get_operations(
        self,
        node_type: str,
        resource: str | None = None,
        force: bool = False,
    ) -> list[OperationOption]:
        key = (to_store_type(node_type), resource or "")
        if not force:
            cached = self._cache.get(key)
            if cached is not None:
                return cached

        try:
            node = await self._store.get_node(node_type)
        except Exception:
            stale = self._cache.get_stale(key)
            if stale is not None:
                logger.warning("[OperationSimilarityService] Lookup failed for %s; using stale operations", node_type)
                return stale
            logger.exception("[OperationSimilarityService] Lookup failed for %s", node_type)
            return []
        if node is None:
            return []

        operations = extract_operations(node, resource)
        self._cache.set(key, operations)
        return operations

    async def find_similar_operations(
        self,
        node_type: str,
        invalid_operation: str,
        resource: str | None = None,
        max_suggestions: int = MAX_SUGGESTIONS,
    ) -> list[OperationSuggestion]:
        cache_key = (to_store_type(node_type), invalid_operation, resource or "", max_suggestions)
        cached = self._results.get(cache_key)
        if cached is not None:
            return list(cached)

        operations = await self.get_operations(node_type, resource)
        lowered = invalid_operation.lower()
        if any(op.value.lower() == lowered for op in operations):
            return []

        valid_values = {op.value for op in operations}
        suggestions: list[OperationSuggestion] = []

        def _add(suggestion: OperationSuggestion) -> None:
            if not any(s.value == suggestion.value for s in suggestions):
                suggestions.append(suggestion)

        family = patterns.patterns_for(node_type, patterns.OPERATION_FAMILIES, patterns.OPERATION_PATTERNS)
        for p in family:
            if p.pattern.lower() == lowered and p.suggestion in valid_values:
                _add(OperationSuggestion(
                    value=p.suggestion, confidence=p.confidence, reason=p.reason, resource=resource,
                ))

        for op in operations:
            similarity = operation_similarity(invalid_operation, op.value)
            if similarity >= MIN_CONFIDENCE:
                _add(OperationSuggestion(
                    value=op.value,
                    confidence=similarity,
                    reason=_reason(similarity, invalid_operation, op.value),
                    resource=op.resource,
                    description=op.description or op.name or None,
                ))

        # The value may be valid, just not under the selected resource.
        if resource:
            for op in await self.get_operations(node_type):
                if op.value.lower() == lowered and op.resource and op.resource != resource:
                    _add(OperationSuggestion(
                        value=op.value,
                        confidence=OTHER_RESOURCE_CONFIDENCE,
                        reason=f"Valid for resource '{op.resource}'",
                        resource=op.resource,
                        description=op.description or op.name or None,
                    ))

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
        return "Similar operation"
    if invalid.lower() in valid.lower() or valid.lower() in invalid.lower():
        return "Partial match"
    return "Possibly related operation"
