"""Wiring of the store, suggestion services, validators and auto-fixer.

``ValidationEngine.from_settings`` is what the CLI and MCP server use; tests
and embedders can pass their own ``NodeMetadataStore`` instead of the bundled
snapshot.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from workflow_validator.config import Settings
from workflow_validator.knowledge.cache import TTLCache
from workflow_validator.knowledge.store import NodeMetadataStore, NodeRepository
from workflow_validator.properties.enhanced import EnhancedConfigValidator
from workflow_validator.similarity.node_types import NodeSimilarityService
from workflow_validator.similarity.operations import OperationSimilarityService
from workflow_validator.similarity.resources import ResourceSimilarityService
from workflow_validator.workflow.autofix import WorkflowAutoFixer
from workflow_validator.workflow.validator import WorkflowValidator

logger = logging.getLogger(__name__)


@dataclass
class ValidationEngine:
    settings: Settings
    store: NodeMetadataStore
    node_similarity: NodeSimilarityService
    resource_similarity: ResourceSimilarityService
    operation_similarity: OperationSimilarityService
    config_validator: EnhancedConfigValidator
    validator: WorkflowValidator
    fixer: WorkflowAutoFixer

    @classmethod
    def from_settings(cls, settings: Settings | None = None, store: NodeMetadataStore | None = None) -> ValidationEngine:
        settings = settings or Settings.from_env()
        if store is None:
            store = NodeRepository(snapshot_path=settings.nodes_snapshot)

        node_similarity = NodeSimilarityService(store, cache=TTLCache(settings.cache_ttl))
        resources = ResourceSimilarityService(store, cache=TTLCache(settings.cache_ttl))
        operations = OperationSimilarityService(store, cache=TTLCache(settings.cache_ttl))
        config_validator = EnhancedConfigValidator(resource_service=resources, operation_service=operations)
        validator = WorkflowValidator(store, config_validator=config_validator, similarity=node_similarity)
        logger.debug("[ValidationEngine] Built engine (profile=%s)", settings.profile)
        return cls(
            settings=settings,
            store=store,
            node_similarity=node_similarity,
            resource_similarity=resources,
            operation_similarity=operations,
            config_validator=config_validator,
            validator=validator,
            fixer=WorkflowAutoFixer(),
        )

    def invalidate_caches(self) -> None:
        """Drop cached node lists after the store changed out-of-band."""
        self.node_similarity.invalidate()
        self.resource_similarity.invalidate()
        self.operation_similarity.invalidate()
