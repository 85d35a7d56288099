"""Structural, graph and configuration validation of a whole n8n workflow.

``WorkflowValidator.validate_workflow`` runs these passes in order:

  1. shape: ``nodes`` list and ``connections`` object (terminal on failure),
     node-count rules, duplicate names/ids, trigger count
  2. nodes: type resolution (with suggestions), typeVersion range,
     operation-mode configuration validation under the chosen profile
  3. connections: names vs ids, dangling targets, negative indices,
     disabled targets, loop wiring, AI tool usage, orphans, cycles
  4. expressions: syntax via the injected ``ExpressionChecker`` and the
     ``=`` prefix / resource-locator format scan
  5. patterns: node-level settings, error handling, long chains, credentials,
     AI agents
  6. suggestions

The input workflow is never mutated.  Any unexpected exception inside one
node's checks becomes a single error on that node; anything escaping the
passes becomes one generic error.  ``validate_workflow`` itself never raises.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from workflow_validator.knowledge.models import (
    BASE_PACKAGE,
    LANGCHAIN_PACKAGE,
    NodeTypeDescriptor,
    is_short_form,
    local_name,
    package_of,
    to_store_type,
    to_workflow_type,
)
from workflow_validator.knowledge.store import NodeMetadataStore
from workflow_validator.properties.enhanced import EnhancedConfigValidator
from workflow_validator.properties.models import INVALID_VALUE
from workflow_validator.similarity.node_types import NodeSimilarityService
from workflow_validator.similarity.operations import OperationSimilarityService
from workflow_validator.similarity.resources import ResourceSimilarityService
from workflow_validator.workflow import graph
from workflow_validator.workflow.expressions import (
    MIXED_FORMAT,
    BasicExpressionChecker,
    ExpressionChecker,
    ExpressionContext,
    count_expressions,
    find_expression_format_issues,
)
from workflow_validator.workflow.models import (
    ERROR_OUTPUT_MISSING,
    EXPRESSION_FORMAT,
    FIXED_COLLECTION,
    SHORT_NODE_TYPE,
    TYPE_VERSION_EXCEEDED,
    UNKNOWN_NODE_TYPE,
    ValidationOptions,
    ValidationResult,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Lookup tables
# ---------------------------------------------------------------------------

# Store-form types allowed to stand alone as a one-node workflow.
WEBHOOK_TRIGGER_TYPES: frozenset[str] = frozenset({"nodes-base.webhook", "nodes-base.webhookTrigger"})

# Lowercased local names whose graph cycles are legitimate iteration.
LOOP_CONSTRUCT_TYPES: frozenset[str] = frozenset({"splitinbatches", "loopoveritems", "loop"})

ANNOTATION_TYPES: frozenset[str] = frozenset({"stickynote"})

# Lowercased substrings of node types that call external services.
ERROR_PRONE_NODE_TYPES: tuple[str, ...] = (
    "httprequest", "webhook", "emailsend", "slack", "discord", "telegram",
    "postgres", "mysql", "mongodb", "redis", "github", "gitlab", "jira",
    "salesforce", "hubspot", "airtable", "googlesheets", "googledrive",
    "dropbox", "s3", "ftp", "ssh", "mqtt", "kafka", "rabbitmq", "graphql",
    "openai", "anthropic",
)
DATABASE_NODE_TYPES: tuple[str, ...] = ("postgres", "mysql", "mongodb")

# Profiles that surface advisory error-handling warnings.
ADVISORY_PROFILES: frozenset[str] = frozenset({"ai-friendly", "strict"})

NODE_LEVEL_PROPERTIES: tuple[str, ...] = (
    "onError", "continueOnFail", "retryOnFail", "maxTries", "waitBetweenTries", "alwaysOutputData",
    "executeOnce", "disabled", "notes", "notesInFlow", "credentials",
)
SETTINGS_KEYS: tuple[str, ...] = (
    "onError", "continueOnFail", "retryOnFail", "maxTries", "waitBetweenTries", "alwaysOutputData", "executeOnce",
)
ON_ERROR_VALUES: tuple[str, ...] = ("continueRegularOutput", "continueErrorOutput", "stopWorkflow")

BUILT_IN_PACKAGES: frozenset[str] = frozenset({BASE_PACKAGE, LANGCHAIN_PACKAGE})

# Name/type keywords used by the split-in-batches wiring heuristic.
LOOP_BODY_KEYWORDS: tuple[str, ...] = (
    "process", "transform", "http", "request", "api", "fetch", "update", "insert",
    "create", "send", "code", "function", "set", "edit",
)
SUMMARY_KEYWORDS: tuple[str, ...] = ("summary", "summarize", "aggregate", "report", "final", "result", "merge", "total")

LONG_CHAIN_THRESHOLD = 10
LARGE_WORKFLOW_NODES = 20
COMPLEX_EXPRESSION_COUNT = 5
MAX_SUGGESTED_TYPES = 3

_MULTI_NODE_NO_CONNECTIONS = (
    "Multi-node workflow has no connections. Nodes must be connected to create a workflow. "
    'Use connections: { "Source Node Name": { "main": [[{ "node": "Target Node Name", "type": "main", "index": 0 }]] } }'
)

_MISPLACED_FIX_TEMPLATE = (
    "Move these properties from node.parameters to the node level. Example:\n"
    "{{\n"
    '  "name": "{name}",\n'
    '  "type": "{type}",\n'
    '  "parameters": {{ /* operation-specific params */ }},\n'
    '  "onError": "continueErrorOutput",\n'
    '  "retryOnFail": true,\n'
    '  "executeOnce": true,\n'
    '  "disabled": false,\n'
    '  "credentials": {{ /* ... */ }}\n'
    "}}"
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _type_of(node: dict[str, Any]) -> str:
    node_type = node.get("type")
    return node_type if isinstance(node_type, str) else ""


def _local(node: dict[str, Any]) -> str:
    return local_name(_type_of(node)).lower()


def is_trigger_type(node_type: str) -> bool:
    lowered = to_store_type(node_type).lower()
    if "trigger" in lowered:
        return True
    if "webhook" in lowered and "respond" not in lowered:
        return True
    return lowered in ("nodes-base.start", "nodes-base.manualtrigger", "nodes-base.formtrigger")


def is_annotation(node: dict[str, Any]) -> bool:
    return _local(node) in ANNOTATION_TYPES


def is_loop_construct(node: dict[str, Any]) -> bool:
    return _local(node) in LOOP_CONSTRUCT_TYPES


def _is_active(node: dict[str, Any]) -> bool:
    return not node.get("disabled") and not is_annotation(node)


class WorkflowValidator:
    """Validates workflow JSON against node metadata from a ``NodeMetadataStore``.

    Collaborators are injectable; by default the validator builds its own
    similarity services and an ``EnhancedConfigValidator`` over *store*.
    """

    def __init__(
        self,
        store: NodeMetadataStore,
        config_validator: EnhancedConfigValidator | None = None,
        similarity: NodeSimilarityService | None = None,
        expression_checker: ExpressionChecker | None = None,
    ) -> None:
        self._store = store
        self._config_validator = config_validator or EnhancedConfigValidator(
            resource_service=ResourceSimilarityService(store),
            operation_service=OperationSimilarityService(store),
        )
        self._similarity = similarity or NodeSimilarityService(store)
        self._expressions = expression_checker or BasicExpressionChecker()

    async def validate_workflow(
        self,
        workflow: dict[str, Any],
        options: ValidationOptions | None = None,
    ) -> ValidationResult:
        options = options or ValidationOptions()
        result = ValidationResult()

        try:
            if not self._check_structure(workflow, result):
                return result

            nodes: list[dict[str, Any]] = [n for n in workflow["nodes"] if isinstance(n, dict)]
            connections: dict[str, Any] = workflow["connections"]

            if options.validate_nodes:
                await self._validate_nodes(nodes, connections, result, options.profile)
            if options.validate_connections:
                await self._validate_connections(nodes, connections, result)
            if options.validate_expressions:
                self._validate_expressions(nodes, connections, result)

            self._check_patterns(nodes, connections, result, options.profile)
            self._generate_suggestions(nodes, connections, result)
        except Exception as exc:
            logger.exception("[WorkflowValidator] Workflow validation failed")
            result.add_error(f"Workflow validation failed: {exc}")

        logger.debug(
            "[WorkflowValidator] %d error(s), %d warning(s) over %d node(s)",
            len(result.errors), len(result.warnings), result.statistics.total_nodes,
        )
        return result

    # ------------------------------------------------------------------
    # 1. Structure
    # ------------------------------------------------------------------

    def _check_structure(self, workflow: Any, result: ValidationResult) -> bool:
        """Return False when the shape is too broken for any further pass."""
        if not isinstance(workflow, dict) or not isinstance(workflow.get("nodes"), list):
            result.add_error("Workflow must have a nodes array")
            return False
        connections = workflow.get("connections")
        if not isinstance(connections, dict):
            result.add_error("Workflow must have a connections object")
            return False

        raw_nodes: list[Any] = workflow["nodes"]
        for index, node in enumerate(raw_nodes):
            if not isinstance(node, dict):
                result.add_error(f"Node at index {index} must be an object")
        nodes = [n for n in raw_nodes if isinstance(n, dict)]

        stats = result.statistics
        stats.total_nodes = len(nodes)
        stats.enabled_nodes = sum(1 for n in nodes if not n.get("disabled"))

        if not nodes:
            result.add_warning("Workflow is empty - no nodes defined")
            return True

        if len(nodes) == 1:
            single = nodes[0]
            if to_store_type(_type_of(single)) not in WEBHOOK_TRIGGER_TYPES:
                result.add_error(
                    "Single-node workflows are only valid for webhook endpoints. "
                    "Add at least one more connected node to create a functional workflow."
                )
            elif not connections:
                result.add_warning(
                    "Webhook node has no connections. Consider adding nodes to process the webhook data.",
                    single,
                )
        elif stats.enabled_nodes > 0 and not connections:
            result.add_error(_MULTI_NODE_NO_CONNECTIONS)

        seen_names: set[Any] = set()
        seen_ids: set[Any] = set()
        for node in nodes:
            name, node_id = node.get("name"), node.get("id")
            if name in seen_names:
                result.add_error(f'Duplicate node name: "{name}"', node)
            seen_names.add(name)
            if node_id is not None:
                if node_id in seen_ids:
                    result.add_error(f'Duplicate node ID: "{node_id}"', {"id": node_id})
                seen_ids.add(node_id)

        stats.trigger_nodes = sum(
            1 for n in nodes if not is_annotation(n) and is_trigger_type(_type_of(n))
        )
        if stats.trigger_nodes == 0 and stats.enabled_nodes > 0:
            result.add_warning("Workflow has no trigger nodes. It can only be executed manually.")
        return True

    # ------------------------------------------------------------------
    # 2. Nodes
    # ------------------------------------------------------------------

    async def _validate_nodes(
        self,
        nodes: list[dict[str, Any]],
        connections: dict[str, Any],
        result: ValidationResult,
        profile: str,
    ) -> None:
        for node in nodes:
            if not _is_active(node):
                continue
            try:
                await self._validate_node(node, connections, result, profile)
            except Exception as exc:
                logger.warning(
                    "[WorkflowValidator] Node %r failed validation: %s", node.get("name"), exc,
                )
                result.add_error(f"Failed to validate node: {exc}", node)

    async def _validate_node(
        self,
        node: dict[str, Any],
        connections: dict[str, Any],
        result: ValidationResult,
        profile: str,
    ) -> None:
        node_type = node.get("type")
        if not isinstance(node_type, str) or not node_type:
            result.add_error("Node is missing a valid 'type'", node)
            return

        # The short store form is a lookup key only, never a workflow type.
        if is_short_form(node_type):
            corrected = to_workflow_type(node_type)
            result.add_error(
                f'Invalid node type: "{node_type}". Use "{corrected}" instead. '
                "Node types in workflows must use the full package name.",
                node,
                code=SHORT_NODE_TYPE,
                details={"suggestedType": corrected},
            )
            return

        descriptor = await self._resolve(node_type)
        if descriptor is None:
            await self._report_unknown_type(node, node_type, result)
            return

        if descriptor.is_versioned:
            self._check_type_version(node, descriptor, result)

        parameters = node.get("parameters")
        if parameters is None:
            parameters = {}
        settings = {key: node[key] for key in SETTINGS_KEYS if key in node}
        config_result = await self._config_validator.validate_with_mode(
            node_type, parameters, descriptor.properties,
            mode="operation", profile=profile, settings=settings,
        )

        for error in config_result.errors:
            fixed_overlay = config_result.autofix.get(error.property)
            if error.type == INVALID_VALUE and error.message.startswith("Invalid structure for") and fixed_overlay:
                result.add_error(
                    error.message, node,
                    code=FIXED_COLLECTION,
                    details={"property": error.property, "autofix": {error.property: fixed_overlay}},
                )
            else:
                result.add_error(error.message, node, details={"property": error.property, "fix": error.fix})
        for warning in config_result.warnings:
            result.add_warning(warning.message, node)

        if node.get("onError") == "continueErrorOutput" and not _has_error_output(
            connections, node.get("name"), _regular_output_count(node, descriptor),
        ):
            result.add_error(
                "Node has onError: 'continueErrorOutput' but no error output connections. "
                'Connect the error output or change onError to "continueRegularOutput" or "stopWorkflow".',
                node,
                code=ERROR_OUTPUT_MISSING,
            )

    async def _resolve(self, node_type: str) -> NodeTypeDescriptor | None:
        descriptor = await self._store.get_node(node_type)
        if descriptor is None:
            normalized = to_store_type(node_type)
            if normalized != node_type:
                descriptor = await self._store.get_node(normalized)
        return descriptor

    async def _report_unknown_type(self, node: dict[str, Any], node_type: str, result: ValidationResult) -> None:
        suggestions = await self._similarity.find_similar_nodes(node_type, limit=MAX_SUGGESTED_TYPES)
        hint = ""
        if suggestions:
            hint = " Did you mean: " + ", ".join(f'"{s.value}"' for s in suggestions) + "?"
        result.add_error(
            f'Unknown node type: "{node_type}".{hint} Node types must include the package prefix '
            '(e.g., "n8n-nodes-base.webhook", not "webhook" or "nodes-base.webhook").',
            node,
            code=UNKNOWN_NODE_TYPE,
            details={"suggestions": [s.to_dict() for s in suggestions]},
        )

    @staticmethod
    def _check_type_version(node: dict[str, Any], descriptor: NodeTypeDescriptor, result: ValidationResult) -> None:
        version = node.get("typeVersion")
        latest = descriptor.version or 1
        if version is None:
            result.add_error(f"Missing required property 'typeVersion'. Add typeVersion: {latest}", node)
        elif not _is_number(version) or version < 1:
            result.add_error(f"Invalid typeVersion: {version}. Must be a positive number", node)
        elif version < latest:
            result.add_warning(f"Outdated typeVersion: {version}. Latest is {latest}", node)
        elif version > latest:
            result.add_error(
                f"typeVersion {version} exceeds maximum supported version {latest}",
                node,
                code=TYPE_VERSION_EXCEEDED,
                details={"currentVersion": version, "maxVersion": latest},
            )

    # ------------------------------------------------------------------
    # 3. Connections
    # ------------------------------------------------------------------

    async def _validate_connections(
        self,
        nodes: list[dict[str, Any]],
        connections: dict[str, Any],
        result: ValidationResult,
    ) -> None:
        by_name = {n.get("name"): n for n in nodes}
        by_id = {str(n["id"]): n for n in nodes if n.get("id") is not None}
        stats = result.statistics

        for source, outputs in connections.items():
            if source not in by_name:
                alias = by_id.get(source)
                if alias is not None:
                    result.add_error(
                        f"Connection uses node ID '{source}' instead of node name '{alias.get('name')}'. "
                        "In n8n, connections must use node names, not IDs.",
                        alias,
                    )
                else:
                    result.add_error(f'Connection from non-existent node: "{source}"')
                stats.invalid_connections += 1
                continue
            if not isinstance(outputs, dict):
                result.add_error(f'Connections of "{source}" must be an object keyed by output type', by_name[source])
                continue

            for port, slots in outputs.items():
                if not isinstance(slots, list):
                    continue
                for slot in slots:
                    if not isinstance(slot, list):
                        continue
                    for target in slot:
                        if isinstance(target, dict):
                            await self._check_edge(source, port, target, by_name, by_id, result)

        for node in nodes:
            if _is_active(node) and is_loop_construct(node):
                self._check_loop_wiring(node, by_name, connections, result)

        connected = graph.connected_names(connections)
        for node in nodes:
            if not _is_active(node) or is_trigger_type(_type_of(node)):
                continue
            if node.get("name") not in connected:
                result.add_warning("Node is not connected to any other nodes", node)

        names = [n["name"] for n in nodes if isinstance(n.get("name"), str)]
        loop_names = {n.get("name") for n in nodes if is_loop_construct(n)}
        cycle = graph.find_illegal_cycle(names, connections, lambda name: name in loop_names)
        if cycle is not None:
            result.add_error(
                "Workflow contains a cycle (infinite loop): " + " -> ".join(cycle),
                details={"cycle": cycle},
            )

    async def _check_edge(
        self,
        source: str,
        port: str,
        target: dict[str, Any],
        by_name: dict[Any, dict[str, Any]],
        by_id: dict[str, dict[str, Any]],
        result: ValidationResult,
    ) -> None:
        stats = result.statistics
        target_name = target.get("node")
        index = target.get("index", 0)
        if _is_number(index) and index < 0:
            result.add_error(
                f'Invalid connection index {index} from "{source}" to "{target_name}". '
                "Connection indices must be non-negative.",
                by_name.get(source),
            )
            stats.invalid_connections += 1
            return

        node = by_name.get(target_name)
        if node is None:
            alias = by_id.get(str(target_name))
            if alias is not None:
                result.add_error(
                    f"Connection target uses node ID '{target_name}' instead of node name "
                    f"'{alias.get('name')}' (from {source}). In n8n, connections must use node names, not IDs.",
                    alias,
                )
            else:
                result.add_error(f'Connection to non-existent node: "{target_name}" from "{source}"')
            stats.invalid_connections += 1
            return
        if node.get("disabled"):
            result.add_warning(f'Connection to disabled node: "{target_name}" from "{source}"')
            return

        stats.valid_connections += 1
        if port == "ai_tool":
            # n8n draws ai_tool edges from the tool into the agent; both ends are checked.
            for name in dict.fromkeys((source, target_name)):
                endpoint = by_name.get(name)
                if endpoint is not None:
                    await self._check_ai_tool(endpoint, result)

    async def _check_ai_tool(self, tool: dict[str, Any], result: ValidationResult) -> None:
        descriptor = await self._resolve(_type_of(tool)) if _type_of(tool) else None
        if descriptor is None:
            return
        if not descriptor.is_ai_tool and descriptor.package not in BUILT_IN_PACKAGES:
            result.add_warning(
                f'Community node "{tool.get("name")}" is being used as an AI tool. '
                "Ensure N8N_COMMUNITY_PACKAGES_ALLOW_TOOL_USAGE=true is set.",
                tool,
            )

    @staticmethod
    def _check_loop_wiring(
        node: dict[str, Any],
        by_name: dict[Any, dict[str, Any]],
        connections: dict[str, Any],
        result: ValidationResult,
    ) -> None:
        """Output 0 is "done", output 1 is "loop"; flag wiring that looks swapped."""
        name = node.get("name")
        for target_name in graph.output_targets(connections, name, "main", 0):
            target = by_name.get(target_name)
            if target is None:
                continue
            label = f"{target_name} {_type_of(target)}".lower()
            if any(k in label for k in LOOP_BODY_KEYWORDS) and graph.can_reach(connections, target_name, name):
                result.add_warning(
                    f'Node "{target_name}" is connected to the "done" output (index 0) of "{name}" '
                    "but loops back to it. The outputs are likely reversed: "
                    "connect per-batch processing to the loop output (index 1).",
                    node,
                )
        for target_name in graph.output_targets(connections, name, "main", 1):
            target = by_name.get(target_name)
            if target is None:
                continue
            label = f"{target_name} {_type_of(target)}".lower()
            if any(k in label for k in SUMMARY_KEYWORDS):
                result.add_warning(
                    f'Node "{target_name}" looks like a final step but is connected to the "loop" output '
                    f'(index 1) of "{name}". Use the "done" output (index 0) for post-loop processing.',
                    node,
                )

    # ------------------------------------------------------------------
    # 4. Expressions
    # ------------------------------------------------------------------

    def _validate_expressions(
        self,
        nodes: list[dict[str, Any]],
        connections: dict[str, Any],
        result: ValidationResult,
    ) -> None:
        names = [n.get("name") for n in nodes if isinstance(n.get("name"), str)]
        in_loop: set[str] = set()
        for node in nodes:
            if is_loop_construct(node):
                in_loop |= graph.loop_body(connections, node.get("name"))

        for node in nodes:
            if not _is_active(node):
                continue
            name = node.get("name")
            parameters = node.get("parameters") or {}
            context = ExpressionContext(
                available_node_names=[n for n in names if n != name],
                current_node_name=name,
                has_input_data=graph.has_main_input(connections, name),
                is_in_loop=name in in_loop,
            )
            checked = self._expressions.check(parameters, context)
            result.statistics.expressions_validated += count_expressions(parameters)
            for message in checked.errors:
                result.add_error(f"Expression error: {message}", node)
            for message in checked.warnings:
                result.add_warning(f"Expression warning: {message}", node)

            node_type = _type_of(node)
            if not node_type or package_of(node_type) == "nodes-langchain":
                continue
            node_id = node.get("id")
            for issue in find_expression_format_issues(
                parameters, node_type, name, str(node_id) if node_id is not None else None,
            ):
                if issue.severity == "error" and issue.issue_type != MIXED_FORMAT:
                    result.add_error(issue.format_message(), node, code=EXPRESSION_FORMAT, details=issue.to_dict())
                else:
                    result.add_warning(issue.format_message(), node, code=EXPRESSION_FORMAT, details=issue.to_dict())

    # ------------------------------------------------------------------
    # 5. Patterns
    # ------------------------------------------------------------------

    def _check_patterns(
        self,
        nodes: list[dict[str, Any]],
        connections: dict[str, Any],
        result: ValidationResult,
        profile: str,
    ) -> None:
        has_error_connections = any(
            isinstance(outputs, dict) and outputs.get("error") for outputs in connections.values()
        )
        if not has_error_connections and len(nodes) > 3:
            result.add_warning("Consider adding error handling to your workflow")

        for node in nodes:
            if not _is_active(node):
                continue
            self._check_node_settings(node, result, advisory=profile in ADVISORY_PROFILES)
            self._check_credentials(node, result)

        chain = graph.longest_linear_chain([n.get("name") for n in nodes if isinstance(n.get("name"), str)], connections)
        if chain > LONG_CHAIN_THRESHOLD:
            result.add_warning(
                f"Long linear chain detected ({chain} nodes). Consider breaking into sub-workflows."
            )

        agents = [n for n in nodes if _is_active(n) and "agent" in _type_of(n).lower()]
        if agents:
            tool_edges = [
                (source, target.get("node"))
                for source, port, _, target in graph.iter_edges(connections)
                if port == "ai_tool"
            ]
            for agent in agents:
                name = agent.get("name")
                if not any(name in edge for edge in tool_edges):
                    result.add_warning(
                        "AI Agent has no tools connected. Consider adding tools to enhance agent capabilities.",
                        agent,
                    )
            if tool_edges:
                result.suggestions.append(
                    "For community nodes used as AI tools, ensure N8N_COMMUNITY_PACKAGES_ALLOW_TOOL_USAGE=true is set"
                )

        unhandled = sum(
            1 for n in nodes
            if not n.get("disabled") and not (n.get("onError") or n.get("continueOnFail") or n.get("retryOnFail"))
        )
        if unhandled > 5 and len(nodes) > 5:
            result.suggestions.append(
                'Most nodes lack error handling. Use "onError" property for modern error handling: '
                '"continueRegularOutput" (continue on error), "continueErrorOutput" (use error output), '
                'or "stopWorkflow" (stop execution).'
            )
        if any(not n.get("disabled") and n.get("continueOnFail") is True for n in nodes):
            result.suggestions.append(
                "Replace \"continueOnFail: true\" with \"onError: 'continueRegularOutput'\" "
                "for better UI compatibility and control."
            )

    @staticmethod
    def _check_node_settings(node: dict[str, Any], result: ValidationResult, advisory: bool) -> None:
        parameters = node.get("parameters")
        if isinstance(parameters, dict):
            misplaced = [p for p in NODE_LEVEL_PROPERTIES if p in parameters]
            if misplaced:
                result.add_error(
                    f"Node-level properties {', '.join(misplaced)} are in the wrong location. "
                    "They must be at the node level, not inside parameters.",
                    node,
                    details={"fix": _MISPLACED_FIX_TEMPLATE.format(name=node.get("name"), type=_type_of(node))},
                )

        on_error = node.get("onError")
        if on_error is not None and on_error not in ON_ERROR_VALUES:
            result.add_error(
                f'Invalid onError value: "{on_error}". Must be one of: {", ".join(ON_ERROR_VALUES)}', node,
            )

        continue_on_fail = node.get("continueOnFail")
        if continue_on_fail is not None:
            if not isinstance(continue_on_fail, bool):
                result.add_error("continueOnFail must be a boolean value", node)
            elif continue_on_fail:
                result.add_warning(
                    "Using deprecated \"continueOnFail: true\". Use \"onError: 'continueRegularOutput'\" "
                    "instead for better control and UI compatibility.",
                    node,
                )
        if continue_on_fail is not None and on_error is not None:
            result.add_error(
                'Cannot use both "continueOnFail" and "onError" properties. Use only "onError" for modern workflows.',
                node,
            )

        retry = node.get("retryOnFail")
        if retry is not None and not isinstance(retry, bool):
            result.add_error("retryOnFail must be a boolean value", node)
        if retry is True:
            max_tries = node.get("maxTries")
            if max_tries is None:
                result.add_warning("retryOnFail is enabled but maxTries is not specified. Default is 3 attempts.", node)
            elif not _is_number(max_tries) or max_tries < 1:
                result.add_error("maxTries must be a positive number when retryOnFail is enabled", node)
            elif max_tries > 10:
                result.add_warning(
                    f"maxTries is set to {max_tries}. Consider if this many retries is necessary.", node,
                )

            wait = node.get("waitBetweenTries")
            if wait is not None:
                if not _is_number(wait) or wait < 0:
                    result.add_error("waitBetweenTries must be a non-negative number (milliseconds)", node)
                elif wait > 300_000:
                    result.add_warning(
                        f"waitBetweenTries is set to {wait}ms ({wait / 1000:.1f}s). This seems excessive.", node,
                    )

        for key in ("alwaysOutputData", "executeOnce", "disabled", "notesInFlow"):
            if node.get(key) is not None and not isinstance(node[key], bool):
                result.add_error(f"{key} must be a boolean value", node)
        if node.get("notes") is not None and not isinstance(node["notes"], str):
            result.add_error("notes must be a string value", node)

        if node.get("executeOnce") is True:
            result.add_warning(
                "executeOnce is enabled. This node will execute only once regardless of input items.", node,
            )
        if continue_on_fail is True and retry is True:
            result.add_warning(
                "Both continueOnFail and retryOnFail are enabled. The node will retry first, then continue on failure.",
                node,
            )

        lowered = _type_of(node).lower()
        has_handling = bool(on_error or continue_on_fail or retry)
        if advisory and not has_handling and any(k in lowered for k in ERROR_PRONE_NODE_TYPES):
            result.add_warning(_error_handling_advice(lowered), node)

        if (continue_on_fail or retry) and not node.get("alwaysOutputData"):
            if "httprequest" in lowered or "webhook" in lowered:
                result.suggestions.append(
                    f'Consider enabling alwaysOutputData on "{node.get("name")}" to capture error responses for debugging'
                )

    @staticmethod
    def _check_credentials(node: dict[str, Any], result: ValidationResult) -> None:
        credentials = node.get("credentials")
        if not isinstance(credentials, dict):
            return
        for cred_type, cred in credentials.items():
            if not cred or (isinstance(cred, dict) and "id" not in cred):
                result.add_warning(f"Missing credentials configuration for {cred_type}", node)

    # ------------------------------------------------------------------
    # 6. Suggestions
    # ------------------------------------------------------------------

    def _generate_suggestions(
        self,
        nodes: list[dict[str, Any]],
        connections: dict[str, Any],
        result: ValidationResult,
    ) -> None:
        if result.statistics.trigger_nodes == 0:
            result.suggestions.append(
                "Add a trigger node (e.g., Webhook, Schedule Trigger) to automate workflow execution"
            )

        if any("connection" in e.message.lower() for e in result.errors):
            result.suggestions.append(f"Example connection structure: connections: {_example_connection(nodes)}")
            result.suggestions.append(
                "Remember: Use node NAMES (not IDs) in connections. "
                "The name is what you see in the UI, not the node type."
            )

        if not any(isinstance(o, dict) and "error" in o for o in connections.values()):
            result.suggestions.append("Add error handling using the error output of nodes or an Error Trigger node")

        if len(nodes) > LARGE_WORKFLOW_NODES:
            result.suggestions.append(
                "Consider breaking this workflow into smaller sub-workflows for better maintainability"
            )

        if any(count_expressions(n.get("parameters") or {}) > COMPLEX_EXPRESSION_COUNT for n in nodes):
            result.suggestions.append(
                "Consider using a Code node for complex data transformations instead of multiple expressions"
            )

        if len(nodes) == 1 and not connections:
            result.suggestions.append(
                "A minimal workflow needs: 1) A trigger node (e.g., Manual Trigger), "
                "2) An action node (e.g., Set, HTTP Request), 3) A connection between them"
            )

        if len(result.errors) > 3:
            result.suggestions.append(_remediation_checklist(result))

        result.suggestions = list(dict.fromkeys(result.suggestions))


def _regular_output_count(node: dict[str, Any], descriptor: NodeTypeDescriptor) -> int:
    # Switch grows one output per routing rule.
    if descriptor.node_type == "nodes-base.switch":
        parameters = node.get("parameters")
        rules = parameters.get("rules") if isinstance(parameters, dict) else None
        values = rules.get("values") if isinstance(rules, dict) else None
        if isinstance(values, list) and values:
            return len(values)
    return descriptor.outputs


def _has_error_output(connections: dict[str, Any], name: Any, regular_outputs: int = 1) -> bool:
    outputs = connections.get(name)
    if not isinstance(outputs, dict):
        return False
    if graph.successors(connections, name, ("error",)):
        return True
    # continueErrorOutput appends the error branch after the regular main outputs.
    return bool(graph.output_targets(connections, name, "main", regular_outputs))


def _error_handling_advice(lowered_type: str) -> str:
    if "httprequest" in lowered_type:
        return (
            "HTTP Request node without error handling. Consider adding \"onError: 'continueRegularOutput'\" "
            'for non-critical requests or "retryOnFail: true" for transient failures.'
        )
    if "webhook" in lowered_type:
        return (
            "Webhook node without error handling. Consider adding \"onError: 'continueRegularOutput'\" "
            "to prevent workflow failures from blocking webhook responses."
        )
    if any(db in lowered_type for db in DATABASE_NODE_TYPES):
        return (
            'Database operation without error handling. Consider adding "retryOnFail: true" for connection '
            "issues or \"onError: 'continueRegularOutput'\" for non-critical queries."
        )
    simple = lowered_type.rsplit(".", 1)[-1]
    return (
        f"{simple} node interacts with external services but has no error handling configured. "
        'Consider using "onError" property.'
    )


def _example_connection(nodes: list[dict[str, Any]]) -> str:
    names = [n.get("name") for n in nodes if _is_active(n) and isinstance(n.get("name"), str)]
    source = names[0] if names else "Manual Trigger"
    target = names[1] if len(names) > 1 else "Set"
    example = {source: {"main": [[{"node": target, "type": "main", "index": 0}]]}}
    return json.dumps(example)


def _remediation_checklist(result: ValidationResult) -> str:
    messages = [e.message for e in result.errors]
    steps: list[str] = []
    if any(m.startswith(("Workflow must", "Single-node", "Multi-node", "Duplicate")) for m in messages):
        steps.append("fix the workflow structure (nodes, connections, unique names)")
    if any("node type" in m or "typeVersion" in m for m in messages):
        steps.append("correct node types and typeVersions")
    if any("onnection" in m or "cycle" in m for m in messages):
        steps.append("repair connections using node names")
    if any(e.node_name and "xpression" not in e.message for e in result.errors):
        steps.append("fix node configuration errors")
    if any(e.code == EXPRESSION_FORMAT or e.message.startswith("Expression error") for e in result.errors):
        steps.append("fix expressions (add the = prefix)")
    steps.append("re-validate the workflow")
    numbered = ", ".join(f"{i}) {step}" for i, step in enumerate(steps, start=1))
    return f"Found {len(result.errors)} errors. Fix them in this order: {numbered}"
