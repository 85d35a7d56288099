"""Node-type metadata as seen by the validation engine.

The metadata store owns these records; the engine only reads them.  Two
identifier forms exist for every node type:

  workflow form   n8n-nodes-base.httpRequest, @n8n/n8n-nodes-langchain.agent
                  (what a workflow JSON must contain)
  store form      nodes-base.httpRequest, nodes-langchain.agent
                  (how the store keys its records)

``to_store_type`` / ``to_workflow_type`` translate between the two.  The short
store form is a lookup key only; inside a workflow it is always an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# (workflow prefix, store prefix)
_PACKAGE_PREFIXES: tuple[tuple[str, str], ...] = (
    ("n8n-nodes-base.", "nodes-base."),
    ("@n8n/n8n-nodes-langchain.", "nodes-langchain."),
)

BASE_PACKAGE = "n8n-nodes-base"
LANGCHAIN_PACKAGE = "@n8n/n8n-nodes-langchain"


def to_store_type(node_type: str) -> str:
    """Normalise any identifier form to the short store form."""
    if not node_type:
        return node_type
    for full, short in _PACKAGE_PREFIXES:
        if node_type.startswith(full):
            return short + node_type[len(full):]
    if node_type.startswith("n8n-nodes-langchain."):
        return "nodes-langchain." + node_type[len("n8n-nodes-langchain."):]
    return node_type


def to_workflow_type(node_type: str) -> str:
    """Expand a short store-form identifier to the package-qualified form."""
    if not node_type:
        return node_type
    for full, short in _PACKAGE_PREFIXES:
        if node_type.startswith(short):
            return full + node_type[len(short):]
    return node_type


def is_short_form(node_type: str) -> bool:
    return any(node_type.startswith(short) for _, short in _PACKAGE_PREFIXES)


def local_name(node_type: str) -> str:
    """'n8n-nodes-base.httpRequest' -> 'httpRequest'."""
    if not node_type:
        return ""
    return node_type.rsplit(".", 1)[-1]


def package_of(node_type: str) -> str:
    """Return the package segment in store form ('nodes-base'), or ''."""
    normalized = to_store_type(node_type)
    if "." not in normalized:
        return ""
    return normalized.rsplit(".", 1)[0]


@dataclass
class PropertyDescriptor:
    """One entry of a node type's declared parameter schema."""

    name: str
    display_name: str = ""
    type: str = "string"
    required: bool = False
    default: Any = None
    options: list[Any] = field(default_factory=list)
    display_options: dict[str, Any] | None = None
    description: str = ""

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> PropertyDescriptor:
        return cls(
            name=raw.get("name", ""),
            display_name=raw.get("displayName") or raw.get("display_name") or "",
            type=raw.get("type", "string"),
            required=bool(raw.get("required", False)),
            default=raw.get("default"),
            options=list(raw.get("options") or []),
            display_options=raw.get("displayOptions") or raw.get("display_options"),
            description=raw.get("description", ""),
        )

    @property
    def option_values(self) -> list[Any]:
        """Enumerated values for options-type properties.

        Collection-style properties also carry ``options`` (nested property
        definitions); those have no ``value`` key and are skipped.
        """
        values: list[Any] = []
        for opt in self.options:
            if isinstance(opt, dict) and "value" in opt:
                values.append(opt["value"])
            elif isinstance(opt, (str, int, float)) and not isinstance(opt, bool):
                values.append(opt)
        return values


def coerce_properties(properties: list[Any]) -> list[PropertyDescriptor]:
    """Accept descriptors or raw camelCase dicts and return descriptors."""
    return [
        p if isinstance(p, PropertyDescriptor) else PropertyDescriptor.from_dict(p)
        for p in properties
    ]


@dataclass
class NodeTypeDescriptor:
    """Schema and identity of one node type, keyed by its store-form id."""

    node_type: str
    display_name: str = ""
    description: str = ""
    category: str = ""
    package: str = BASE_PACKAGE
    version: float = 1
    is_versioned: bool = False
    is_ai_tool: bool = False
    is_trigger: bool = False
    is_webhook: bool = False
    outputs: int = 1
    properties: list[PropertyDescriptor] = field(default_factory=list)

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> NodeTypeDescriptor:
        node_type = to_store_type(raw.get("nodeType") or raw.get("node_type") or "")
        default_package = (
            LANGCHAIN_PACKAGE if node_type.startswith("nodes-langchain.") else BASE_PACKAGE
        )
        version = raw.get("version", 1)
        if isinstance(version, list):
            version = max(version) if version else 1
        return cls(
            node_type=node_type,
            display_name=raw.get("displayName") or raw.get("display_name") or "",
            description=raw.get("description", ""),
            category=raw.get("category", ""),
            package=raw.get("package") or raw.get("packageName") or default_package,
            version=_as_number(version),
            is_versioned=bool(raw.get("isVersioned", raw.get("is_versioned", False))),
            is_ai_tool=bool(raw.get("isAITool", raw.get("is_ai_tool", False))),
            is_trigger=bool(raw.get("isTrigger", raw.get("is_trigger", False))),
            is_webhook=bool(raw.get("isWebhook", raw.get("is_webhook", False))),
            outputs=_output_count(raw.get("outputs", 1)),
            properties=coerce_properties(raw.get("properties") or []),
        )

    @property
    def workflow_type(self) -> str:
        return to_workflow_type(self.node_type)


def _as_number(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 1
    return int(number) if number.is_integer() else number


def _output_count(value: Any) -> int:
    # Snapshots list output names or give a plain count.
    if isinstance(value, list):
        return max(len(value), 1)
    if isinstance(value, int) and not isinstance(value, bool) and value > 0:
        return value
    return 1
