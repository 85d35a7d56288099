"""Shared fixtures: a small in-memory node store and workflow builders."""

from __future__ import annotations

from typing import Any

import pytest

from workflow_validator.knowledge.models import LANGCHAIN_PACKAGE, NodeTypeDescriptor, PropertyDescriptor
from workflow_validator.knowledge.store import NodeRepository


# ---------------------------------------------------------------------------
# Node descriptors
# ---------------------------------------------------------------------------


def _options(*values: str) -> list[dict[str, str]]:
    return [{"name": v, "value": v} for v in values]


def fixture_descriptors() -> list[NodeTypeDescriptor]:
    return [
        NodeTypeDescriptor(
            node_type="nodes-base.webhook",
            display_name="Webhook",
            category="trigger",
            version=2,
            is_versioned=True,
            is_trigger=True,
            is_webhook=True,
            properties=[
                PropertyDescriptor(name="path", display_name="Path", type="string", default=""),
                PropertyDescriptor(
                    name="httpMethod", display_name="HTTP Method", type="options",
                    options=_options("GET", "POST", "PUT", "DELETE"),
                ),
                PropertyDescriptor(
                    name="responseMode", display_name="Respond", type="options",
                    options=_options("onReceived", "lastNode", "responseNode"),
                ),
            ],
        ),
        NodeTypeDescriptor(
            node_type="nodes-base.manualTrigger",
            display_name="Manual Trigger",
            category="trigger",
            is_trigger=True,
        ),
        NodeTypeDescriptor(
            node_type="nodes-base.set",
            display_name="Edit Fields (Set)",
            category="transform",
            version=3,
            is_versioned=True,
            properties=[PropertyDescriptor(name="fields", display_name="Fields", type="fixedCollection")],
        ),
        NodeTypeDescriptor(
            node_type="nodes-base.httpRequest",
            display_name="HTTP Request",
            category="output",
            version=4,
            is_versioned=True,
            properties=[
                PropertyDescriptor(name="url", display_name="URL", type="string", required=True),
                PropertyDescriptor(
                    name="method", display_name="Method", type="options",
                    options=_options("GET", "POST", "PUT", "DELETE"),
                ),
                PropertyDescriptor(name="sendBody", display_name="Send Body", type="boolean", default=False),
            ],
        ),
        NodeTypeDescriptor(
            node_type="nodes-base.splitInBatches",
            display_name="Loop Over Items",
            category="core",
            version=3,
            is_versioned=True,
            outputs=2,
            properties=[PropertyDescriptor(name="batchSize", display_name="Batch Size", type="number", default=10)],
        ),
        NodeTypeDescriptor(
            node_type="nodes-base.slack",
            display_name="Slack",
            category="communication",
            version=2,
            is_versioned=True,
            properties=[
                PropertyDescriptor(
                    name="resource", display_name="Resource", type="options",
                    options=_options("message", "channel", "user"),
                ),
                PropertyDescriptor(
                    name="operation", display_name="Operation", type="options",
                    options=_options("post", "update", "delete"),
                    display_options={"show": {"resource": ["message"]}},
                ),
                PropertyDescriptor(
                    name="operation", display_name="Operation", type="options",
                    options=_options("create", "archive"),
                    display_options={"show": {"resource": ["channel"]}},
                ),
                PropertyDescriptor(
                    name="text", display_name="Text", type="string",
                    display_options={"show": {"resource": ["message"], "operation": ["post"]}},
                ),
            ],
        ),
        NodeTypeDescriptor(
            node_type="nodes-base.code",
            display_name="Code",
            category="transform",
            version=2,
            is_versioned=True,
            properties=[PropertyDescriptor(name="jsCode", display_name="JavaScript", type="string")],
        ),
        NodeTypeDescriptor(
            node_type="nodes-base.switch",
            display_name="Switch",
            category="transform",
            version=3,
            is_versioned=True,
            properties=[PropertyDescriptor(name="rules", display_name="Routing Rules", type="fixedCollection")],
        ),
        NodeTypeDescriptor(
            node_type="nodes-base.github",
            display_name="GitHub",
            category="development",
            properties=[PropertyDescriptor(name="owner", display_name="Repository Owner", type="string")],
        ),
        NodeTypeDescriptor(
            node_type="nodes-langchain.agent",
            display_name="AI Agent",
            category="AI",
            package=LANGCHAIN_PACKAGE,
            version=1.7,
            is_versioned=True,
        ),
        NodeTypeDescriptor(
            node_type="nodes-langchain.openAi",
            display_name="OpenAI",
            category="AI",
            package=LANGCHAIN_PACKAGE,
        ),
        NodeTypeDescriptor(
            node_type="nodes-langchain.toolCalculator",
            display_name="Calculator",
            category="AI",
            package=LANGCHAIN_PACKAGE,
            is_ai_tool=True,
        ),
        NodeTypeDescriptor(
            node_type="n8n-nodes-weather.weatherTool",
            display_name="Weather",
            category="community",
            package="n8n-nodes-weather",
        ),
    ]


@pytest.fixture
def store() -> NodeRepository:
    return NodeRepository(fixture_descriptors())


@pytest.fixture
def slack_properties(store) -> list[PropertyDescriptor]:
    return store.get("nodes-base.slack").properties


@pytest.fixture
def http_properties(store) -> list[PropertyDescriptor]:
    return store.get("nodes-base.httpRequest").properties


# ---------------------------------------------------------------------------
# Workflow builders
# ---------------------------------------------------------------------------


def make_node(name: str, node_type: str, type_version: float | None = None, **extra: Any) -> dict[str, Any]:
    node: dict[str, Any] = {
        "id": name.lower().replace(" ", "-"),
        "name": name,
        "type": node_type,
        "position": [0, 0],
        "parameters": extra.pop("parameters", {}),
    }
    if type_version is not None:
        node["typeVersion"] = type_version
    node.update(extra)
    return node


def link(*names: str, port: str = "main") -> dict[str, Any]:
    """Connections for a straight chain ``names[0] -> names[1] -> ...``."""
    connections: dict[str, Any] = {}
    for source, target in zip(names, names[1:]):
        connections.setdefault(source, {}).setdefault(port, [[]])[0].append(
            {"node": target, "type": port, "index": 0}
        )
    return connections


def trigger_node(name: str = "Manual Trigger") -> dict[str, Any]:
    return make_node(name, "n8n-nodes-base.manualTrigger", 1)


def set_node(name: str = "Set", **extra: Any) -> dict[str, Any]:
    return make_node(name, "n8n-nodes-base.set", 3, **extra)


def http_node(name: str = "HTTP Request", type_version: float = 4, **extra: Any) -> dict[str, Any]:
    extra.setdefault("parameters", {"url": "https://example.com"})
    return make_node(name, "n8n-nodes-base.httpRequest", type_version, **extra)
