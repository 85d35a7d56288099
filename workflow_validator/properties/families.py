"""Per-family configuration rules.

Each validator receives a ``FamilyContext`` and appends to its error, warning
and suggestion lists.  ``config`` is the node's ``parameters``; ``settings``
holds the node-level fields (``onError``, ``retryOnFail``, ``continueOnFail``,
``maxTries``, ``alwaysOutputData``) which live beside ``parameters`` in a
workflow, never inside it.

Validators are registered in ``FAMILY_VALIDATORS`` keyed by the lowercased
local node name, so adding a family means adding one function and one table
entry.  Error-handling coverage in general is a workflow-level concern
(``WorkflowValidator``); the rules here only cover family-specific
interactions with those settings.
"""

from __future__ import annotations

import json
import re
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from workflow_validator.knowledge.models import local_name, to_store_type
from workflow_validator.properties.models import (
    BEST_PRACTICE,
    DEPRECATED,
    INEFFICIENT,
    INVALID_CONFIGURATION,
    INVALID_VALUE,
    MISSING_COMMON,
    MISSING_REQUIRED,
    SECURITY,
    ConfigError,
    ConfigWarning,
)


@dataclass
class FamilyContext:
    config: dict[str, Any]
    settings: dict[str, Any] = field(default_factory=dict)
    errors: list[ConfigError] = field(default_factory=list)
    warnings: list[ConfigWarning] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    autofix: dict[str, Any] = field(default_factory=dict)

    def error(self, type: str, property: str, message: str, fix: str | None = None) -> None:
        self.errors.append(ConfigError(type=type, property=property, message=message, fix=fix))

    def warn(self, type: str, message: str, property: str | None = None, suggestion: str | None = None) -> None:
        self.warnings.append(ConfigWarning(type=type, message=message, property=property, suggestion=suggestion))

    @property
    def has_error_handling(self) -> bool:
        s = self.settings
        return bool(s.get("onError") or s.get("retryOnFail") or s.get("continueOnFail"))


def _check_deprecated_continue_on_fail(ctx: FamilyContext, replacement: str = "continueRegularOutput") -> None:
    if "continueOnFail" in ctx.settings:
        ctx.warn(
            DEPRECATED,
            "continueOnFail is deprecated. Use onError instead",
            property="continueOnFail",
            suggestion=f'Replace with onError: "{replacement}"',
        )


# ---------------------------------------------------------------------------
# Slack
# ---------------------------------------------------------------------------

_SLACK_TEXT_LIMIT = 40_000


def _has_channel(config: dict[str, Any]) -> bool:
    return bool(config.get("channel") or config.get("channelId"))


def validate_slack(ctx: FamilyContext) -> None:
    config = ctx.config
    resource = config.get("resource")
    operation = config.get("operation")

    if resource == "message":
        if operation in ("post", "send"):
            _slack_send_message(ctx)
        elif operation in ("update", "delete"):
            verb = operation
            if not config.get("ts"):
                ctx.error(
                    MISSING_REQUIRED, "ts",
                    f"Message timestamp (ts) is required to {verb} a message",
                    f"Provide the timestamp of the message to {verb}",
                )
            if not _has_channel(config):
                ctx.error(
                    MISSING_REQUIRED, "channel",
                    f"Channel is required to {verb} a message",
                    "Provide the channel where the message exists",
                )
            if operation == "delete":
                ctx.warn(
                    SECURITY,
                    "Message deletion is permanent and cannot be undone",
                    suggestion="Consider archiving or updating the message instead if you need to preserve history",
                )
    elif resource == "channel" and operation == "create":
        _slack_create_channel(ctx)
    elif resource == "user" and operation in ("get", "info") and not config.get("user"):
        ctx.error(
            MISSING_REQUIRED, "user",
            "User identifier required - use email, user ID, or username",
            'Set user to an email like "john@example.com" or user ID like "U1234567890"',
        )

    _check_deprecated_continue_on_fail(ctx)


def _slack_send_message(ctx: FamilyContext) -> None:
    config = ctx.config
    if not _has_channel(config):
        ctx.error(
            MISSING_REQUIRED, "channel",
            "Channel is required to send a message",
            'Set channel to a channel name (e.g., "#general") or ID (e.g., "C1234567890")',
        )
    if not (config.get("text") or config.get("blocks") or config.get("attachments")):
        ctx.error(
            MISSING_REQUIRED, "text",
            "Message content is required - provide text, blocks, or attachments",
            "Add text field with your message content",
        )

    text = config.get("text")
    if isinstance(text, str) and len(text) > _SLACK_TEXT_LIMIT:
        ctx.warn(
            INEFFICIENT,
            "Message text exceeds Slack's 40,000 character limit",
            property="text",
            suggestion="Split into multiple messages or use a file upload",
        )
    if config.get("replyToThread") and not config.get("threadTs"):
        ctx.warn(
            MISSING_COMMON,
            "Thread timestamp required when replying to thread",
            property="threadTs",
            suggestion="Set threadTs to the timestamp of the thread parent message",
        )
    if isinstance(text, str) and "@" in text and not config.get("linkNames"):
        ctx.suggestions.append("Set linkNames=true to convert @mentions to user links")
        ctx.autofix["linkNames"] = True


def _slack_create_channel(ctx: FamilyContext) -> None:
    name = ctx.config.get("name")
    if not name:
        ctx.error(
            MISSING_REQUIRED, "name",
            "Channel name is required",
            "Provide a channel name (lowercase, no spaces, 1-80 characters)",
        )
        return
    if not isinstance(name, str):
        return
    if " " in name:
        ctx.error(INVALID_VALUE, "name", "Channel names cannot contain spaces",
                  "Use hyphens or underscores instead of spaces")
    if name != name.lower():
        ctx.error(INVALID_VALUE, "name", "Channel names must be lowercase",
                  "Convert the channel name to lowercase")
    if len(name) > 80:
        ctx.error(INVALID_VALUE, "name", "Channel name exceeds 80 character limit",
                  "Shorten the channel name")


# ---------------------------------------------------------------------------
# Google Sheets
# ---------------------------------------------------------------------------

_A1_RANGE = re.compile(r"^('[^']+'|[^!]+)!([A-Z]+\d*:?[A-Z]*\d*|[A-Z]+:[A-Z]+|\d+:\d+)$", re.IGNORECASE)
_QUOTED_SHEET = re.compile(r"^'[^']+'")


def validate_google_sheets(ctx: FamilyContext) -> None:
    config = ctx.config
    operation = config.get("operation")

    if not (config.get("sheetId") or config.get("documentId")):
        ctx.error(
            MISSING_REQUIRED, "sheetId",
            "Spreadsheet ID is required",
            "Provide the Google Sheets document ID from the URL",
        )

    if operation in ("append", "read", "update") and not config.get("range"):
        example = "Sheet1!A1:B10" if operation == "update" else 'Sheet1!A:B" or "Sheet1!A1:B10'
        ctx.error(
            MISSING_REQUIRED, "range",
            f"Range is required for {operation} operation",
            f'Specify range like "{example}"',
        )

    options = config.get("options") if isinstance(config.get("options"), dict) else {}
    if operation == "append" and not options.get("valueInputMode"):
        ctx.warn(
            MISSING_COMMON,
            "Consider setting valueInputMode for proper data formatting",
            property="options.valueInputMode",
            suggestion='Use "USER_ENTERED" to parse formulas and dates, or "RAW" for literal values',
        )
        ctx.autofix["options"] = {**options, "valueInputMode": "USER_ENTERED"}
    elif operation == "read" and not options.get("dataStructure"):
        ctx.suggestions.append(
            'Consider setting options.dataStructure to "object" for easier data manipulation'
        )
    elif operation == "update" and not (config.get("values") or config.get("rawData")):
        ctx.error(
            MISSING_REQUIRED, "values",
            "Values are required for update operation",
            "Provide the data to write to the spreadsheet",
        )
    elif operation == "delete":
        _google_sheets_delete(ctx)

    range_value = config.get("range")
    if isinstance(range_value, str) and range_value:
        _google_sheets_range(ctx, range_value)


def _google_sheets_delete(ctx: FamilyContext) -> None:
    config = ctx.config
    if not config.get("toDelete"):
        ctx.error(MISSING_REQUIRED, "toDelete", "Specify what to delete (rows or columns)",
                  'Set toDelete to "rows" or "columns"')
    if config.get("toDelete") == "rows" and config.get("startIndex") is None:
        ctx.error(MISSING_REQUIRED, "startIndex", "Start index is required when deleting rows",
                  "Specify the starting row index (0-based)")
    ctx.warn(
        SECURITY,
        "Deletion is permanent. Consider backing up data first",
        suggestion="Read the data before deletion to create a backup",
    )


def _google_sheets_range(ctx: FamilyContext, range_value: str) -> None:
    if "!" not in range_value:
        ctx.warn(
            INEFFICIENT,
            "Range should include sheet name for clarity",
            property="range",
            suggestion='Format: "SheetName!A1:B10" or "SheetName!A:B"',
        )
    if " " in range_value and not _QUOTED_SHEET.match(range_value):
        ctx.error(INVALID_VALUE, "range", "Sheet names with spaces must be quoted",
                  "Use single quotes around sheet name: 'Sheet Name'!A1:B10")
    if not _A1_RANGE.match(range_value):
        ctx.warn(
            INEFFICIENT,
            "Range may not be in valid A1 notation",
            property="range",
            suggestion='Examples: "Sheet1!A1:B10", "Sheet1!A:B", "Sheet1!1:10"',
        )


# ---------------------------------------------------------------------------
# OpenAI
# ---------------------------------------------------------------------------

_DEPRECATED_OPENAI_MODELS: frozenset[str] = frozenset({"text-davinci-003", "text-davinci-002"})


def validate_openai(ctx: FamilyContext) -> None:
    config = ctx.config
    if config.get("resource") == "chat" and config.get("operation") in ("create", "complete", "message"):
        model = config.get("model")
        if not model:
            ctx.error(MISSING_REQUIRED, "model", "Model selection is required",
                      'Choose a model like "gpt-4", "gpt-3.5-turbo", etc.')
        elif model in _DEPRECATED_OPENAI_MODELS:
            ctx.warn(
                DEPRECATED,
                f"Model {model} is deprecated",
                property="model",
                suggestion='Use "gpt-3.5-turbo" or "gpt-4" instead',
            )

        if not (config.get("messages") or config.get("prompt")):
            ctx.error(MISSING_REQUIRED, "messages", "Messages or prompt required for chat completion",
                      "Add messages array or use the prompt field")

        max_tokens = config.get("maxTokens")
        if isinstance(max_tokens, (int, float)) and max_tokens > 4000:
            ctx.warn(
                INEFFICIENT,
                "High token limit may increase costs significantly",
                property="maxTokens",
                suggestion="Consider if you really need more than 4000 tokens",
            )

        temperature = config.get("temperature")
        if isinstance(temperature, (int, float)) and not 0 <= temperature <= 2:
            ctx.error(INVALID_VALUE, "temperature", "Temperature must be between 0 and 2",
                      "Set temperature between 0 (deterministic) and 2 (creative)")

    _check_deprecated_continue_on_fail(ctx)


# ---------------------------------------------------------------------------
# MongoDB
# ---------------------------------------------------------------------------

def validate_mongodb(ctx: FamilyContext) -> None:
    config = ctx.config
    operation = config.get("operation")

    if not config.get("collection"):
        ctx.error(MISSING_REQUIRED, "collection", "Collection name is required",
                  "Specify the MongoDB collection to work with")

    query = config.get("query")
    if operation == "find" and isinstance(query, str) and query and not query.startswith("="):
        try:
            json.loads(query)
        except ValueError:
            ctx.error(INVALID_VALUE, "query", "Query must be valid JSON",
                      'Ensure query is valid JSON like: {"name": "John"}')
    elif operation == "insert" and not (config.get("fields") or config.get("documents")):
        ctx.error(MISSING_REQUIRED, "fields", "Document data is required for insert",
                  "Provide the data to insert")
    elif operation == "update" and not query:
        ctx.warn(
            SECURITY,
            "Update without query will affect all documents",
            suggestion="Add a query to target specific documents",
        )
    elif operation == "delete" and (not query or query == "{}"):
        ctx.error(
            INVALID_VALUE, "query",
            "Delete without query would remove all documents - this is a critical security issue",
            "Add a query to specify which documents to delete",
        )

    _check_deprecated_continue_on_fail(ctx, "continueRegularOutput\" or \"continueErrorOutput")


# ---------------------------------------------------------------------------
# Relational databases
# ---------------------------------------------------------------------------

def validate_sql_query(ctx: FamilyContext, dialect: str = "generic") -> None:
    """Injection and destructive-statement checks shared by SQL nodes."""
    config = ctx.config
    query = config.get("query") or config.get("deleteQuery") or config.get("updateQuery") or ""
    if not isinstance(query, str) or not query:
        return
    lowered = query.lower()

    if "${" in query or "{{" in query:
        ctx.suggestions.append('Example: Use "SELECT * FROM users WHERE id = $1" with queryParams: [userId]')
    if "delete" in lowered and "where" not in lowered:
        ctx.error(INVALID_VALUE, "query", "DELETE query without WHERE clause will delete all records",
                  "Add a WHERE clause to specify which records to delete")
    if "update" in lowered and "where" not in lowered:
        ctx.warn(
            SECURITY,
            "UPDATE query without WHERE clause will update all records",
            property="query",
            suggestion="Add a WHERE clause to specify which records to update",
        )
    if "truncate" in lowered:
        ctx.warn(
            SECURITY,
            "TRUNCATE will remove all data from the table",
            property="query",
            suggestion="Consider using DELETE with WHERE clause if you need to keep some data",
        )
    if re.search(r"\bdrop\b", lowered):
        ctx.error(
            INVALID_VALUE, "query",
            "DROP operations are extremely dangerous and will permanently delete database objects",
            "Use this only if you really intend to delete tables/databases permanently",
        )

    if dialect == "postgres" and "$$" in query:
        ctx.suggestions.append("Dollar-quoted strings detected - ensure they are properly closed")
    elif dialect == "mysql" and "`" in query and query.count("`") % 2:
        ctx.suggestions.append("Using backticks for identifiers - ensure they are properly paired")


_SQL_QUERY_OPERATIONS: frozenset[str] = frozenset({"executeQuery", "execute", "select", "insert", "update", "delete"})


def _validate_relational(ctx: FamilyContext, dialect: str) -> None:
    config = ctx.config
    operation = config.get("operation")

    if operation in _SQL_QUERY_OPERATIONS:
        validate_sql_query(ctx, dialect)

    if operation in ("insert", "update", "delete") and not config.get("table"):
        target = {"insert": "to insert data into", "update": "to update", "delete": "to delete from"}[operation]
        ctx.error(MISSING_REQUIRED, "table", f"Table name is required for {operation} operation",
                  f"Specify the table {target}")

    if operation == "update" and not config.get("updateKey"):
        ctx.warn(
            MISSING_COMMON,
            "No update key specified",
            property="updateKey",
            suggestion='Set updateKey to identify which rows to update (e.g., "id")',
        )
    if operation in ("executeQuery", "execute") and not config.get("query"):
        ctx.error(MISSING_REQUIRED, "query", "SQL query is required", "Provide the SQL query to execute")

    _check_deprecated_continue_on_fail(ctx, "continueRegularOutput\" or \"stopWorkflow")


def validate_postgres(ctx: FamilyContext) -> None:
    _validate_relational(ctx, "postgres")
    if ctx.config.get("operation") == "insert" and not (ctx.config.get("columns") or ctx.config.get("dataMode")):
        ctx.warn(
            MISSING_COMMON,
            "No columns specified for insert",
            property="columns",
            suggestion="Define which columns to insert data into",
        )
    if ctx.config.get("connectionTimeout") is None:
        ctx.suggestions.append("Consider setting connectionTimeout to handle slow connections")


def validate_mysql(ctx: FamilyContext) -> None:
    _validate_relational(ctx, "mysql")
    if ctx.config.get("timezone") is None:
        ctx.suggestions.append("Consider setting timezone to ensure consistent date/time handling")


# ---------------------------------------------------------------------------
# HTTP Request
# ---------------------------------------------------------------------------

_IDEMPOTENT_METHODS: frozenset[str] = frozenset({"GET", "HEAD", "OPTIONS"})


def validate_http_request(ctx: FamilyContext) -> None:
    config, settings = ctx.config, ctx.settings
    method = config.get("method") or "GET"

    if not config.get("url"):
        ctx.error(MISSING_REQUIRED, "url", "URL is required for HTTP requests",
                  "Provide the full URL including protocol (https://...)")

    if settings.get("retryOnFail"):
        max_tries = settings.get("maxTries")
        if method not in _IDEMPOTENT_METHODS and (not max_tries or max_tries > 3):
            ctx.warn(
                BEST_PRACTICE,
                f"{method} requests might not be idempotent. Use fewer retries.",
                property="maxTries",
                suggestion="Set maxTries: 2 for non-idempotent operations",
            )
        if not settings.get("alwaysOutputData"):
            ctx.suggestions.append("Enable alwaysOutputData to capture error responses for debugging")
            ctx.autofix["alwaysOutputData"] = True

    if "continueOnFail" in settings:
        _check_deprecated_continue_on_fail(ctx)
        ctx.autofix["onError"] = "continueRegularOutput" if settings["continueOnFail"] else "stopWorkflow"

    if not config.get("timeout") and not (config.get("options") or {}).get("timeout"):
        ctx.suggestions.append("Consider setting a timeout to prevent hanging requests")


# ---------------------------------------------------------------------------
# Webhook
# ---------------------------------------------------------------------------

def validate_webhook(ctx: FamilyContext) -> None:
    config, settings = ctx.config, ctx.settings
    path = config.get("path")

    # An empty path falls back to the webhook ID, so it is not a runtime error.
    if not path:
        ctx.warn(
            MISSING_COMMON,
            "Webhook path is empty; n8n will use the webhook ID as the URL path",
            property="path",
            suggestion='Provide a unique path like "my-webhook" or "github-events"',
        )
    elif isinstance(path, str) and path.startswith("/"):
        ctx.warn(
            INVALID_VALUE,
            "Webhook path should not start with /",
            property="path",
            suggestion='Use "webhook-name" instead of "/webhook-name"',
        )

    if "continueOnFail" in settings:
        _check_deprecated_continue_on_fail(ctx)
        ctx.autofix["onError"] = "continueRegularOutput"

    if config.get("responseMode") == "responseNode" and not (
        settings.get("onError") or settings.get("continueOnFail")
    ):
        ctx.error(
            INVALID_CONFIGURATION, "responseMode",
            'responseNode mode requires onError: "continueRegularOutput"',
            "Set onError to ensure response is always sent",
        )
        ctx.autofix["onError"] = "continueRegularOutput"

    if not settings.get("alwaysOutputData"):
        ctx.suggestions.append("Enable alwaysOutputData to debug webhook payloads")
    ctx.suggestions.append("Consider adding webhook validation (HMAC signature verification)")


# ---------------------------------------------------------------------------
# Code
# ---------------------------------------------------------------------------

_UNAVAILABLE_PYTHON_MODULES: tuple[tuple[str, str], ...] = (
    ("requests", "Use JavaScript Code node with $helpers.httpRequest for HTTP requests"),
    ("pandas", "Use built-in list/dict operations or JavaScript for data manipulation"),
    ("numpy", "Use standard Python math operations"),
    ("pip", "External packages cannot be installed in Code nodes"),
)

_EXPRESSION_ONLY_FUNCTIONS: tuple[str, ...] = ("$now()", "$today()", "$tomorrow()", ".unique()", ".pluck(", ".hash(")

_JS_INPUT_MARKERS: tuple[str, ...] = ("items", "$input", "$json", "$node", "$prevNode", "$(")
_PY_INPUT_MARKERS: tuple[str, ...] = ("items", "_input", "_json")


def validate_code(ctx: FamilyContext) -> None:
    config = ctx.config
    language = config.get("language") or "javaScript"
    field_name = "pythonCode" if language == "python" else "jsCode"
    code = config.get(field_name)
    if not isinstance(code, str) or not code.strip():
        # Emptiness is reported by the base validator.
        return

    if not re.search(r"\breturn\b", code):
        fix = (
            'Add: return [{"json": {"result": "success"}}]'
            if language == "python"
            else 'Add: return [{json: {result: "success"}}]'
        )
        ctx.error(MISSING_REQUIRED, field_name, "Code must return data for the next node", fix)
    elif re.search(r"return\s+(true|false|null|undefined|True|False|None|\d+|['\"`])", code):
        ctx.error(INVALID_VALUE, field_name, "Cannot return primitive values directly",
                  "Return an array of objects: return [{json: {value: yourData}}]")

    if language == "python":
        for module, suggestion in _UNAVAILABLE_PYTHON_MODULES:
            if re.search(rf"^\s*(import|from)\s+{module}\b", code, re.MULTILINE):
                ctx.error(INVALID_VALUE, field_name, f"Module '{module}' is not available in Code nodes", suggestion)
        if "__name__" in code and "__main__" in code:
            ctx.warn(
                INEFFICIENT,
                'if __name__ == "__main__" is not needed in Code nodes',
                property=field_name,
                suggestion="Code node Python runs directly - remove the main check",
            )

    markers = _PY_INPUT_MARKERS if language == "python" else _JS_INPUT_MARKERS
    if len(code) > 50 and not any(marker in code for marker in markers):
        ctx.warn(
            MISSING_COMMON,
            "Code doesn't reference input data",
            property=field_name,
            suggestion="Access input with: items, $input.all(), or $json (single-item mode)",
        )

    if "{{" in code and "}}" in code:
        ctx.error(INVALID_VALUE, field_name, "Expression syntax {{...}} is not valid in Code nodes",
                  "Use regular JavaScript/Python syntax without double curly braces")
    if "$node[" in code:
        ctx.warn(
            INVALID_VALUE,
            "Use $('Node Name') instead of $node['Node Name'] in Code nodes",
            property=field_name,
            suggestion="Replace $node['NodeName'] with $('NodeName')",
        )
    for func in _EXPRESSION_ONLY_FUNCTIONS:
        if func in code:
            ctx.warn(
                INVALID_VALUE,
                f"{func} is an expression-only function not available in Code nodes",
                property=field_name,
                suggestion="See Code node documentation for alternatives",
            )

    mode = config.get("mode")
    if mode == "runOnceForEachItem" and re.search(r"\bitems\b", code):
        ctx.warn(
            BEST_PRACTICE,
            'In "Run Once for Each Item" mode, use $json instead of items array',
            suggestion="Access current item data with $json.fieldName",
        )
    if not mode and "$json" in code:
        ctx.warn(
            BEST_PRACTICE,
            '$json only works in "Run Once for Each Item" mode',
            suggestion='Either set mode: "runOnceForEachItem" or use items[0].json',
        )


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

FamilyValidator = Callable[[FamilyContext], None]

FAMILY_VALIDATORS: dict[str, FamilyValidator] = {
    "slack": validate_slack,
    "googlesheets": validate_google_sheets,
    "openai": validate_openai,
    "mongodb": validate_mongodb,
    "postgres": validate_postgres,
    "mysql": validate_mysql,
    "httprequest": validate_http_request,
    "webhook": validate_webhook,
    "code": validate_code,
}


def family_validator_for(node_type: str) -> FamilyValidator | None:
    """Return the family validator for *node_type* (either identifier form)."""
    return FAMILY_VALIDATORS.get(local_name(to_store_type(node_type)).lower())
