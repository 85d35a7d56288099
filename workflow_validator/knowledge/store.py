"""Node metadata store: the interface the engine consumes and a local implementation.

The engine never reaches into a database.  It awaits two coroutines on
whatever object the caller passes in (``NodeMetadataStore``).  The bundled
``NodeRepository`` satisfies that protocol from either an in-memory list of
descriptors or a JSON snapshot on disk (default: the snapshot shipped in
``knowledge/data``).

Lifecycle of a snapshot-backed repository:
  - The snapshot is loaded lazily on the first lookup.
  - A missing or malformed snapshot is logged and leaves the store empty; it
    never raises into a validation call.
  - ``reload()`` drops the index so the next lookup re-reads the file.  Callers
    that mutate the snapshot out-of-band should also invalidate the similarity
    service caches.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable, Protocol, runtime_checkable

from workflow_validator.knowledge.models import NodeTypeDescriptor, to_store_type

logger = logging.getLogger(__name__)

DEFAULT_SNAPSHOT: Path = Path(__file__).parent / "data" / "nodes.snapshot.json"


@runtime_checkable
class NodeMetadataStore(Protocol):
    """Read-only view of node-type schemas.

    Both methods must accept the package-qualified form used inside workflows
    (``n8n-nodes-base.webhook``) as well as the short store form.
    """

    async def get_node(self, node_type: str) -> NodeTypeDescriptor | None: ...

    async def get_all_node_types(self) -> list[NodeTypeDescriptor]: ...


class NodeRepository:
    """Local-first node metadata backed by a snapshot file or a descriptor list."""

    def __init__(
        self,
        descriptors: Iterable[NodeTypeDescriptor] | None = None,
        snapshot_path: Path | None = None,
    ) -> None:
        self._snapshot_path = snapshot_path or DEFAULT_SNAPSHOT
        # store-form node_type -> descriptor
        self._index: dict[str, NodeTypeDescriptor] = {}
        self._loaded = False
        self._from_snapshot = descriptors is None
        if descriptors is not None:
            for descriptor in descriptors:
                self._index[to_store_type(descriptor.node_type)] = descriptor
            self._loaded = True

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _load(self) -> None:
        """Load snapshot into the memory index. Idempotent; called lazily."""
        if self._loaded:
            return
        self._loaded = True

        if not self._snapshot_path.exists():
            logger.warning(
                "[NodeRepository] Snapshot not found at %s; store is empty",
                self._snapshot_path,
            )
            return

        try:
            raw = json.loads(self._snapshot_path.read_text(encoding="utf-8"))
            entries = raw.get("nodes", []) if isinstance(raw, dict) else raw
            for entry in entries:
                descriptor = NodeTypeDescriptor.from_dict(entry)
                if descriptor.node_type:
                    self._index[descriptor.node_type] = descriptor
            logger.info(
                "[NodeRepository] Loaded %d node types from %s",
                len(self._index), self._snapshot_path,
            )
        except (OSError, ValueError, TypeError, AttributeError):
            logger.exception("[NodeRepository] Failed to load snapshot %s", self._snapshot_path)

    def reload(self) -> None:
        """Forget the loaded index; the next lookup re-reads the snapshot."""
        if not self._from_snapshot:
            return
        self._index.clear()
        self._loaded = False

    # ------------------------------------------------------------------
    # NodeMetadataStore
    # ------------------------------------------------------------------

    async def get_node(self, node_type: str) -> NodeTypeDescriptor | None:
        return self.get(node_type)

    async def get_all_node_types(self) -> list[NodeTypeDescriptor]:
        self._load()
        return list(self._index.values())

    # ------------------------------------------------------------------
    # Synchronous helpers
    # ------------------------------------------------------------------

    def get(self, node_type: str) -> NodeTypeDescriptor | None:
        """Synchronous lookup; exact match on the store-form identifier."""
        if not node_type:
            return None
        self._load()
        return self._index.get(to_store_type(node_type))

    def add(self, descriptor: NodeTypeDescriptor) -> None:
        self._load()
        self._index[to_store_type(descriptor.node_type)] = descriptor

    def __len__(self) -> int:
        self._load()
        return len(self._index)
