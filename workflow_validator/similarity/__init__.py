"""Fuzzy-matching suggestion services for node types, resources and operations."""

from workflow_validator.similarity.models import (
    NodeSuggestion,
    OperationSuggestion,
    ResourceSuggestion,
    Suggestion,
)
from workflow_validator.similarity.node_types import NodeSimilarityService
from workflow_validator.similarity.operations import OperationSimilarityService
from workflow_validator.similarity.resources import ResourceSimilarityService

__all__ = [
    "NodeSimilarityService",
    "NodeSuggestion",
    "OperationSimilarityService",
    "OperationSuggestion",
    "ResourceSimilarityService",
    "ResourceSuggestion",
    "Suggestion",
]
