"""Node-type suggestions for identifiers the metadata store does not recognise.

Two stages:

  1. Curated mistakes (capitalisation, missing or short package prefix, typos,
     AI nodes routed to the wrong package).  A hit that resolves in the store
     is returned immediately as the only suggestion.
  2. Weighted scoring of every known node type:

        name similarity   40   best of type id / local name / display name
        category overlap  20
        package segment   15
        pattern match     25+  substring or small edit distance, boosted for
                               short queries and prefix matches

     Entries scoring >= 50 are returned, best first.

The list of all node types is held in an injectable ``TTLCache``; a failed
refresh serves the last good list instead of an empty one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from workflow_validator.knowledge.cache import TTLCache
from workflow_validator.knowledge.models import (
    NodeTypeDescriptor,
    is_short_form,
    local_name,
    package_of,
    to_workflow_type,
)
from workflow_validator.knowledge.store import NodeMetadataStore
from workflow_validator.similarity import patterns
from workflow_validator.similarity.models import AUTO_FIX_CONFIDENCE, NodeSuggestion
from workflow_validator.similarity.scorer import edit_distance, normalize, plain_similarity

logger = logging.getLogger(__name__)

SCORING_THRESHOLD = 50
TYPO_EDIT_DISTANCE = 2
SHORT_SEARCH_LENGTH = 5

_ALL_NODES_KEY = "all_node_types"


@dataclass
class SimilarityScore:
    name_similarity: float = 0.0
    category_match: float = 0.0
    package_match: float = 0.0
    pattern_match: float = 0.0

    @property
    def total(self) -> float:
        return self.name_similarity + self.category_match + self.package_match + self.pattern_match


class NodeSimilarityService:
    """Proposes likely intended node types for an unknown identifier."""

    def __init__(self, store: NodeMetadataStore, cache: TTLCache | None = None) -> None:
        self._store = store
        self._cache = cache if cache is not None else TTLCache()

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def invalidate(self) -> None:
        """Drop the cached node-type list (e.g. after the store changed)."""
        self._cache.invalidate(_ALL_NODES_KEY)
        logger.debug("[NodeSimilarityService] Node cache invalidated")

    async def refresh(self) -> list[NodeTypeDescriptor]:
        """Reload the node-type list now, keeping the old list if the store fails."""
        return await self._load_nodes(force=True)

    async def _load_nodes(self, force: bool = False) -> list[NodeTypeDescriptor]:
        if not force:
            cached = self._cache.get(_ALL_NODES_KEY)
            if cached is not None:
                return cached

        stale = self._cache.get_stale(_ALL_NODES_KEY)
        try:
            nodes = await self._store.get_all_node_types()
        except Exception:
            if stale is not None:
                logger.warning(
                    "[NodeSimilarityService] Node fetch failed; serving %d cached node types",
                    len(stale),
                )
                return stale
            logger.exception("[NodeSimilarityService] Node fetch failed with no cache to fall back on")
            return []

        if not nodes and stale:
            logger.warning("[NodeSimilarityService] Node fetch returned empty; keeping stale cache")
            return stale

        self._cache.set(_ALL_NODES_KEY, nodes)
        logger.debug("[NodeSimilarityService] Node cache refreshed (%d types)", len(nodes))
        return nodes

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def find_similar_nodes(self, invalid_type: str, limit: int = 5) -> list[NodeSuggestion]:
        if not invalid_type or not invalid_type.strip():
            return []

        # A package-qualified identifier that resolves needs no suggestion.
        if not is_short_form(invalid_type) and await self._store.get_node(invalid_type) is not None:
            return []

        mistake = await self._check_common_mistakes(invalid_type.strip())
        if mistake is not None:
            return [mistake]

        nodes = await self._load_nodes()
        scored = [(node, self._score(invalid_type, node)) for node in nodes]
        scored.sort(key=lambda pair: pair[1].total, reverse=True)

        suggestions: list[NodeSuggestion] = []
        for node, score in scored:
            if len(suggestions) >= limit or score.total < SCORING_THRESHOLD:
                break
            suggestions.append(self._make_suggestion(node, score))
        return suggestions

    def format_suggestion_message(self, suggestions: list[NodeSuggestion], invalid_type: str) -> str:
        if not suggestions:
            return f'Unknown node type: "{invalid_type}". No similar nodes found.'

        lines = [f'Unknown node type: "{invalid_type}"', "", "Did you mean one of these?"]
        for s in suggestions:
            line = f"• {s.value} ({round(s.confidence * 100)}% match)"
            if s.display_name:
                line += f" - {s.display_name}"
            line += f"\n  → {s.reason}"
            if self.is_auto_fixable(s):
                line += " (can be auto-fixed)"
            lines.append(line)
        return "\n".join(lines) + "\n"

    @staticmethod
    def is_auto_fixable(suggestion: NodeSuggestion) -> bool:
        return suggestion.confidence >= AUTO_FIX_CONFIDENCE

    # ------------------------------------------------------------------
    # Stage 1: curated mistakes
    # ------------------------------------------------------------------

    async def _check_common_mistakes(self, invalid_type: str) -> NodeSuggestion | None:
        lowered = invalid_type.lower()

        candidates: list[tuple[str, float, str]] = []

        for short in patterns.NODE_SHORT_PREFIXES:
            if invalid_type.startswith(short.pattern):
                fixed = short.suggestion + invalid_type[len(short.pattern):]
                candidates.append((fixed, short.confidence, short.reason))

        for p in patterns.NODE_SPECIFIC_VARIATIONS:
            if invalid_type == p.pattern:
                candidates.append((p.suggestion, p.confidence, p.reason))

        common = patterns.NODE_COMMON_WITHOUT_PREFIX.get(lowered)
        if common is not None:
            candidates.append((common, 0.9, "Missing package prefix"))

        for table in (patterns.NODE_CASE_VARIATIONS, patterns.NODE_TYPOS, patterns.NODE_AI_MISROUTING):
            for p in table:
                if lowered == p.pattern.lower():
                    candidates.append((p.suggestion, p.confidence, p.reason))

        for suggested_type, confidence, reason in candidates:
            node = await self._store.get_node(suggested_type)
            if node is not None:
                return NodeSuggestion(
                    value=to_workflow_type(node.node_type),
                    confidence=confidence,
                    reason=reason,
                    display_name=node.display_name,
                    category=node.category or None,
                    description=node.description or None,
                )
        return None

    # ------------------------------------------------------------------
    # Stage 2: weighted scoring
    # ------------------------------------------------------------------

    def _score(self, invalid_type: str, node: NodeTypeDescriptor) -> SimilarityScore:
        clean_invalid = normalize(local_name(invalid_type) if "." in invalid_type else invalid_type)
        clean_type = normalize(node.node_type)
        clean_local = normalize(local_name(node.node_type))
        clean_display = normalize(node.display_name)
        is_short = len(invalid_type) <= SHORT_SEARCH_LENGTH
        score = SimilarityScore()

        if not clean_invalid:
            return score

        score.name_similarity = max(
            plain_similarity(clean_invalid, clean_type),
            plain_similarity(clean_invalid, clean_local),
            plain_similarity(clean_invalid, clean_display),
        ) * 40
        contains = clean_invalid in clean_type or clean_invalid in clean_display
        if is_short and contains:
            score.name_similarity = max(score.name_similarity, 10)

        if node.category:
            clean_category = normalize(node.category)
            if clean_category and (clean_category in clean_invalid or clean_invalid in clean_category):
                score.category_match = 20

        invalid_package = package_of(invalid_type)
        if invalid_package and invalid_package == package_of(node.node_type):
            score.package_match = 15

        if contains:
            score.pattern_match = 45 if is_short else 25
        elif edit_distance(clean_invalid, clean_local) <= TYPO_EDIT_DISTANCE:
            score.pattern_match = 20
        elif edit_distance(clean_invalid, clean_display) <= TYPO_EDIT_DISTANCE:
            score.pattern_match = 18

        if is_short and (clean_local.startswith(clean_invalid) or clean_display.startswith(clean_invalid)):
            score.pattern_match = max(score.pattern_match, 40)

        return score

    @staticmethod
    def _make_suggestion(node: NodeTypeDescriptor, score: SimilarityScore) -> NodeSuggestion:
        if score.pattern_match >= 20:
            reason = "Name similarity"
        elif score.category_match >= 15:
            reason = "Same category"
        elif score.package_match >= 10:
            reason = "Same package"
        else:
            reason = "Similar node"
        return NodeSuggestion(
            value=to_workflow_type(node.node_type),
            confidence=min(score.total / 100, 1.0),
            reason=reason,
            display_name=node.display_name,
            category=node.category or None,
            description=node.description or None,
        )
