"""Node-type suggestions: curated mistakes, weighted scoring, cache fallback."""

from __future__ import annotations

import pytest

from workflow_validator.knowledge.cache import TTLCache
from workflow_validator.similarity.models import NodeSuggestion
from workflow_validator.similarity.node_types import NodeSimilarityService


class FlakyStore:
    """Delegates to a real repository; ``get_all_node_types`` fails on demand."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.fail = False
        self.list_calls = 0

    async def get_node(self, node_type):
        return await self.inner.get_node(node_type)

    async def get_all_node_types(self):
        self.list_calls += 1
        if self.fail:
            raise RuntimeError("store offline")
        return await self.inner.get_all_node_types()


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def service(store) -> NodeSimilarityService:
    return NodeSimilarityService(store)


# ---------------------------------------------------------------------------
# Curated mistakes
# ---------------------------------------------------------------------------


class TestCuratedMistakes:
    """Known misspellings resolve first."""

    @pytest.mark.asyncio
    async def test_capitalisation_mistake_is_auto_fixable(self, service):
        suggestions = await service.find_similar_nodes("HttpRequest")
        assert len(suggestions) == 1
        top = suggestions[0]
        assert top.value == "n8n-nodes-base.httpRequest"
        assert top.confidence >= 0.9
        assert top.auto_fixable
        assert top.display_name == "HTTP Request"

    @pytest.mark.asyncio
    async def test_bare_local_name_gets_package_prefix(self, service):
        suggestions = await service.find_similar_nodes("webhook")
        assert suggestions[0].value == "n8n-nodes-base.webhook"

    @pytest.mark.asyncio
    async def test_short_form_is_rewritten_to_full_form(self, service):
        suggestions = await service.find_similar_nodes("nodes-base.slack")
        assert suggestions[0].value == "n8n-nodes-base.slack"
        assert suggestions[0].reason == "Short package name used instead of full form"

    @pytest.mark.asyncio
    async def test_typo_pattern_is_below_auto_fix(self, service):
        suggestions = await service.find_similar_nodes("slak")
        assert suggestions[0].value == "n8n-nodes-base.slack"
        assert suggestions[0].confidence == pytest.approx(0.8)
        assert not NodeSimilarityService.is_auto_fixable(suggestions[0])

    @pytest.mark.asyncio
    async def test_ai_node_routed_to_langchain_package(self, service):
        suggestions = await service.find_similar_nodes("openai")
        assert suggestions[0].value == "@n8n/n8n-nodes-langchain.openAi"

    @pytest.mark.asyncio
    async def test_mistake_target_missing_from_store_is_skipped(self, service):
        # "gmail" is a curated mistake, but the fixture store has no Gmail node
        suggestions = await service.find_similar_nodes("gmail")
        assert all(s.value != "n8n-nodes-base.gmail" for s in suggestions)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


class TestScoring:
    """Weighted scoring against the node list."""

    @pytest.mark.asyncio
    async def test_valid_type_needs_no_suggestion(self, service):
        assert await service.find_similar_nodes("n8n-nodes-base.httpRequest") == []

    @pytest.mark.asyncio
    async def test_blank_input_returns_empty(self, service):
        assert await service.find_similar_nodes("") == []
        assert await service.find_similar_nodes("   ") == []

    @pytest.mark.asyncio
    async def test_near_miss_is_scored(self, service):
        suggestions = await service.find_similar_nodes("slackk")
        assert suggestions
        assert suggestions[0].value == "n8n-nodes-base.slack"
        assert suggestions[0].reason == "Name similarity"
        assert suggestions[0].confidence < 0.9

    @pytest.mark.asyncio
    async def test_suggestions_are_sorted_and_limited(self, service):
        suggestions = await service.find_similar_nodes("n8n-nodes-base.set2", limit=2)
        assert len(suggestions) <= 2
        confidences = [s.confidence for s in suggestions]
        assert confidences == sorted(confidences, reverse=True)

    @pytest.mark.asyncio
    async def test_nonsense_input_yields_nothing(self, service):
        assert await service.find_similar_nodes("qqqqqqqqqqqqqqqq") == []


# ---------------------------------------------------------------------------
# Caching
# ---------------------------------------------------------------------------


class TestCaching:
    """Node-list caching and stale fallback."""

    @pytest.mark.asyncio
    async def test_node_list_is_cached(self, store):
        flaky = FlakyStore(store)
        service = NodeSimilarityService(flaky)
        await service.find_similar_nodes("slackk")
        await service.find_similar_nodes("sett")
        assert flaky.list_calls == 1

    @pytest.mark.asyncio
    async def test_failed_refresh_serves_stale_list(self, store):
        clock = FakeClock()
        flaky = FlakyStore(store)
        service = NodeSimilarityService(flaky, cache=TTLCache(ttl_seconds=10, clock=clock))

        first = await service.find_similar_nodes("slackk")
        clock.now = 60
        flaky.fail = True
        second = await service.find_similar_nodes("slackk")

        assert flaky.list_calls == 2
        assert [s.value for s in second] == [s.value for s in first]

    @pytest.mark.asyncio
    async def test_failure_without_cache_returns_empty(self, store):
        flaky = FlakyStore(store)
        flaky.fail = True
        service = NodeSimilarityService(flaky)
        assert await service.find_similar_nodes("slackk") == []

    @pytest.mark.asyncio
    async def test_invalidate_forces_reload(self, store):
        flaky = FlakyStore(store)
        service = NodeSimilarityService(flaky)
        await service.find_similar_nodes("slackk")
        service.invalidate()
        await service.find_similar_nodes("slackk")
        assert flaky.list_calls == 2


# ---------------------------------------------------------------------------
# Formatting
# ---------------------------------------------------------------------------


class TestFormatting:
    """Suggestion messages and auto-fix eligibility."""

    def test_format_message_without_suggestions(self, service):
        message = service.format_suggestion_message([], "foo")
        assert message == 'Unknown node type: "foo". No similar nodes found.'

    def test_format_message_marks_auto_fixable(self, service):
        suggestion = NodeSuggestion(
            value="n8n-nodes-base.httpRequest",
            confidence=0.95,
            reason="Incorrect capitalization",
            display_name="HTTP Request",
        )
        message = service.format_suggestion_message([suggestion], "HttpRequest")
        assert "n8n-nodes-base.httpRequest (95% match) - HTTP Request" in message
        assert "(can be auto-fixed)" in message

    def test_suggestion_to_dict_drops_empty_fields(self):
        suggestion = NodeSuggestion(value="n8n-nodes-base.set", confidence=0.6, reason="Similar node")
        assert suggestion.to_dict() == {"value": "n8n-nodes-base.set", "confidence": 0.6, "reason": "Similar node"}
