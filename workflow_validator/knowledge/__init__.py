"""Node metadata layer: descriptors, the store interface, and injectable caches.

Public surface:
    NodeMetadataStore     protocol the engine awaits (get_node, get_all_node_types).
    NodeRepository        local store backed by knowledge/data/nodes.snapshot.json
                          or an in-memory descriptor list.
    NodeTypeDescriptor    schema + identity of one node type (store form key).
    PropertyDescriptor    one declared parameter (required, options, displayOptions).
    TTLCache              keyed cache with TTL expiry and stale fallback reads.
    SuggestionResultCache bounded memo (100 entries, evicts to most recent 50).
"""

from workflow_validator.knowledge.cache import SuggestionResultCache, TTLCache
from workflow_validator.knowledge.models import (
    NodeTypeDescriptor,
    PropertyDescriptor,
    coerce_properties,
    is_short_form,
    local_name,
    to_store_type,
    to_workflow_type,
)
from workflow_validator.knowledge.store import NodeMetadataStore, NodeRepository

__all__ = [
    "NodeMetadataStore",
    "NodeRepository",
    "NodeTypeDescriptor",
    "PropertyDescriptor",
    "SuggestionResultCache",
    "TTLCache",
    "coerce_properties",
    "is_short_form",
    "local_name",
    "to_store_type",
    "to_workflow_type",
]
