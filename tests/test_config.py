"""Settings loading and ValidationEngine wiring."""

from __future__ import annotations

from pathlib import Path

import pytest

from workflow_validator.config import Settings
from workflow_validator.engine import ValidationEngine
from workflow_validator.knowledge.store import DEFAULT_SNAPSHOT, NodeRepository

_ENV_VARS = (
    "WORKFLOW_VALIDATOR_NODES_SNAPSHOT",
    "WORKFLOW_VALIDATOR_PROFILE",
    "WORKFLOW_VALIDATOR_CACHE_TTL",
    "WORKFLOW_VALIDATOR_MAX_FIXES",
    "WORKFLOW_VALIDATOR_LOG_LEVEL",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:
    """Settings.from_env()."""

    def test_defaults(self, clean_env):
        settings = Settings.from_env()
        assert settings == Settings()
        assert settings.nodes_snapshot == DEFAULT_SNAPSHOT
        assert settings.profile == "runtime"
        assert settings.cache_ttl == 300.0
        assert settings.max_fixes == 50
        assert settings.log_level == "WARNING"

    def test_from_env_overrides(self, clean_env, tmp_path):
        snapshot = tmp_path / "nodes.json"
        clean_env.setenv("WORKFLOW_VALIDATOR_NODES_SNAPSHOT", str(snapshot))
        clean_env.setenv("WORKFLOW_VALIDATOR_PROFILE", "strict")
        clean_env.setenv("WORKFLOW_VALIDATOR_CACHE_TTL", "30")
        clean_env.setenv("WORKFLOW_VALIDATOR_MAX_FIXES", "5")
        clean_env.setenv("WORKFLOW_VALIDATOR_LOG_LEVEL", "debug")

        settings = Settings.from_env()

        assert settings.nodes_snapshot == Path(snapshot)
        assert settings.profile == "strict"
        assert settings.cache_ttl == 30.0
        assert settings.max_fixes == 5
        assert settings.log_level == "DEBUG"

    def test_unknown_profile_is_rejected(self, clean_env):
        clean_env.setenv("WORKFLOW_VALIDATOR_PROFILE", "lenient")
        with pytest.raises(ValueError, match="lenient"):
            Settings.from_env()

    def test_settings_are_frozen(self):
        settings = Settings()
        with pytest.raises(AttributeError):
            settings.profile = "strict"  # type: ignore[misc]


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class TestValidationEngine:
    """ValidationEngine wiring and cache invalidation."""

    def test_engine_uses_injected_store(self, store):
        engine = ValidationEngine.from_settings(Settings(), store=store)
        assert engine.store is store
        assert engine.settings.profile == "runtime"

    def test_engine_defaults_to_bundled_snapshot(self, clean_env):
        engine = ValidationEngine.from_settings(Settings())
        assert isinstance(engine.store, NodeRepository)
        assert engine.store.get("n8n-nodes-base.httpRequest") is not None

    @pytest.mark.asyncio
    async def test_invalidate_caches_forces_reload(self, store):
        calls = []

        class CountingStore:
            async def get_node(self, node_type):
                return await store.get_node(node_type)

            async def get_all_node_types(self):
                calls.append(1)
                return await store.get_all_node_types()

        engine = ValidationEngine.from_settings(Settings(), store=CountingStore())
        await engine.node_similarity.find_similar_nodes("slackk")
        await engine.node_similarity.find_similar_nodes("slackk")
        assert len(calls) == 1

        engine.invalidate_caches()
        await engine.node_similarity.find_similar_nodes("slackk")
        assert len(calls) == 2
