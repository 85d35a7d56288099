"""Editable lookup tables behind the suggestion services.

Each table is plain data (keyword -> rule) so the rule set can be extended
without touching the scoring code.  Node-type suggestions are expressed in
the package-qualified workflow form; resource and operation suggestions are
raw option values and only surface when the node actually declares them.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class MistakePattern:
    pattern: str
    suggestion: str
    confidence: float
    reason: str


# ---------------------------------------------------------------------------
# Node types
# ---------------------------------------------------------------------------

# Matched case-insensitively.
NODE_CASE_VARIATIONS: tuple[MistakePattern, ...] = (
    MistakePattern("httprequest", "n8n-nodes-base.httpRequest", 0.95, "Incorrect capitalization"),
    MistakePattern("webhook", "n8n-nodes-base.webhook", 0.95, "Incorrect capitalization"),
    MistakePattern("slack", "n8n-nodes-base.slack", 0.9, "Missing package prefix"),
    MistakePattern("gmail", "n8n-nodes-base.gmail", 0.9, "Missing package prefix"),
    MistakePattern("googlesheets", "n8n-nodes-base.googleSheets", 0.9, "Missing package prefix"),
    MistakePattern("telegram", "n8n-nodes-base.telegram", 0.9, "Missing package prefix"),
)

# Matched case-sensitively.
NODE_SPECIFIC_VARIATIONS: tuple[MistakePattern, ...] = (
    MistakePattern("HttpRequest", "n8n-nodes-base.httpRequest", 0.95, "Incorrect capitalization"),
    MistakePattern("HTTPRequest", "n8n-nodes-base.httpRequest", 0.95, "Common capitalization mistake"),
    MistakePattern("Webhook", "n8n-nodes-base.webhook", 0.95, "Incorrect capitalization"),
    MistakePattern("WebHook", "n8n-nodes-base.webhook", 0.95, "Common capitalization mistake"),
)

# Bare local names; matched case-insensitively.
NODE_COMMON_WITHOUT_PREFIX: dict[str, str] = {
    "httprequest": "n8n-nodes-base.httpRequest",
    "webhook": "n8n-nodes-base.webhook",
    "slack": "n8n-nodes-base.slack",
    "gmail": "n8n-nodes-base.gmail",
    "googlesheets": "n8n-nodes-base.googleSheets",
    "telegram": "n8n-nodes-base.telegram",
    "discord": "n8n-nodes-base.discord",
    "notion": "n8n-nodes-base.notion",
    "airtable": "n8n-nodes-base.airtable",
    "postgres": "n8n-nodes-base.postgres",
    "mysql": "n8n-nodes-base.mySql",
    "mongodb": "n8n-nodes-base.mongoDb",
}

# Store-form prefixes written inside a workflow; rewritten to the full form.
NODE_SHORT_PREFIXES: tuple[MistakePattern, ...] = (
    MistakePattern("nodes-base.", "n8n-nodes-base.", 0.95, "Short package name used instead of full form"),
    MistakePattern("nodes-langchain.", "@n8n/n8n-nodes-langchain.", 0.95, "Short package name used instead of full form"),
)

# Matched case-insensitively.
NODE_TYPOS: tuple[MistakePattern, ...] = (
    MistakePattern("htprequest", "n8n-nodes-base.httpRequest", 0.8, "Likely typo"),
    MistakePattern("httpreqest", "n8n-nodes-base.httpRequest", 0.8, "Likely typo"),
    MistakePattern("webook", "n8n-nodes-base.webhook", 0.8, "Likely typo"),
    MistakePattern("slak", "n8n-nodes-base.slack", 0.8, "Likely typo"),
)

NODE_AI_MISROUTING: tuple[MistakePattern, ...] = (
    MistakePattern("openai", "@n8n/n8n-nodes-langchain.openAi", 0.85, "AI node - incorrect package"),
    MistakePattern("n8n-nodes-base.openai", "@n8n/n8n-nodes-langchain.openAi", 0.9,
                   "Wrong package - OpenAI is in LangChain package"),
    MistakePattern("nodes-base.openai", "@n8n/n8n-nodes-langchain.openAi", 0.9,
                   "Wrong package - OpenAI is in LangChain package"),
    MistakePattern("chatopenai", "@n8n/n8n-nodes-langchain.lmChatOpenAi", 0.85, "LangChain node naming convention"),
    MistakePattern("vectorstore", "@n8n/n8n-nodes-langchain.vectorStoreInMemory", 0.7,
                   "Generic vector store reference"),
)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------

# node-type substring(s) -> family key; first match wins, generic always appended.
RESOURCE_FAMILIES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("googleDrive",), "file_storage"),
    (("slack",), "messaging"),
    (("postgres", "mySql", "mysql", "mongoDb", "mongodb"), "database"),
    (("googleSheets",), "spreadsheet"),
    (("gmail", "email"), "email"),
)

RESOURCE_PATTERNS: dict[str, tuple[MistakePattern, ...]] = {
    "file_storage": (
        MistakePattern("files", "file", 0.95, 'Use singular "file" not plural'),
        MistakePattern("folders", "folder", 0.95, 'Use singular "folder" not plural'),
        MistakePattern("permissions", "permission", 0.9, "Use singular form"),
        MistakePattern("fileAndFolder", "fileFolder", 0.9, 'Use "fileFolder" for combined operations'),
        MistakePattern("driveFiles", "file", 0.8, 'Use "file" for file operations'),
        MistakePattern("sharedDrives", "drive", 0.85, 'Use "drive" for shared drive operations'),
    ),
    "messaging": (
        MistakePattern("messages", "message", 0.95, 'Use singular "message" not plural'),
        MistakePattern("channels", "channel", 0.95, 'Use singular "channel" not plural'),
        MistakePattern("users", "user", 0.95, 'Use singular "user" not plural'),
        MistakePattern("msg", "message", 0.85, 'Use full "message" not abbreviation'),
        MistakePattern("dm", "message", 0.7, 'Use "message" for direct messages'),
        MistakePattern("conversation", "channel", 0.7, 'Use "channel" for conversations'),
    ),
    "database": (
        MistakePattern("tables", "table", 0.95, 'Use singular "table" not plural'),
        MistakePattern("queries", "query", 0.95, 'Use singular "query" not plural'),
        MistakePattern("collections", "collection", 0.95, 'Use singular "collection" not plural'),
        MistakePattern("documents", "document", 0.95, 'Use singular "document" not plural'),
        MistakePattern("records", "record", 0.85, 'Use "record" or "document"'),
        MistakePattern("rows", "row", 0.9, 'Use singular "row"'),
    ),
    "spreadsheet": (
        MistakePattern("sheets", "sheet", 0.95, 'Use singular "sheet" not plural'),
        MistakePattern("spreadsheets", "spreadsheet", 0.95, 'Use singular "spreadsheet"'),
        MistakePattern("cells", "cell", 0.9, 'Use singular "cell"'),
        MistakePattern("ranges", "range", 0.9, 'Use singular "range"'),
        MistakePattern("worksheets", "sheet", 0.8, 'Use "sheet" for worksheet operations'),
        MistakePattern("worksheet", "sheet", 0.8, 'Use "sheet" for worksheet operations'),
    ),
    "email": (
        MistakePattern("emails", "email", 0.95, 'Use singular "email" not plural'),
        MistakePattern("messages", "message", 0.9, 'Use "message" for email operations'),
        MistakePattern("mails", "email", 0.9, 'Use "email" not "mail"'),
        MistakePattern("attachments", "attachment", 0.95, 'Use singular "attachment"'),
    ),
    "generic": (
        MistakePattern("items", "item", 0.9, "Use singular form"),
        MistakePattern("objects", "object", 0.9, "Use singular form"),
        MistakePattern("entities", "entity", 0.9, "Use singular form"),
        MistakePattern("resources", "resource", 0.9, "Use singular form"),
        MistakePattern("elements", "element", 0.9, "Use singular form"),
    ),
}

# Used when a node declares operations but no explicit resource property.
IMPLICIT_RESOURCE_KEYWORDS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("file", "upload", "download"), "file"),
    (("folder", "directory"), "folder"),
    (("message", "send", "reply"), "message"),
    (("channel", "broadcast"), "channel"),
    (("user", "member"), "user"),
    (("table", "row", "column"), "table"),
    (("document", "doc"), "document"),
)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

OPERATION_FAMILIES: tuple[tuple[tuple[str, ...], str], ...] = (
    (("googleDrive",), "file_storage"),
    (("slack",), "messaging"),
    (("postgres", "mySql", "mysql", "mongoDb", "mongodb"), "database"),
    (("httpRequest",), "http"),
)

OPERATION_PATTERNS: dict[str, tuple[MistakePattern, ...]] = {
    "file_storage": (
        MistakePattern("listFiles", "search", 0.85, 'Use "search" with resource: "fileFolder" to list files'),
        MistakePattern("uploadFile", "upload", 0.95, 'Use "upload" instead of "uploadFile"'),
        MistakePattern("downloadFile", "download", 0.95, 'Use "download" instead of "downloadFile"'),
        MistakePattern("getFile", "download", 0.8, 'Use "download" to retrieve file content'),
        MistakePattern("listFolders", "search", 0.85, 'Use "search" with resource: "fileFolder"'),
    ),
    "messaging": (
        MistakePattern("sendMessage", "post", 0.95, 'Use "post" to send a message'),
        MistakePattern("sendMessage", "send", 0.95, 'Use "send" instead of "sendMessage"'),
        MistakePattern("postMessage", "post", 0.95, 'Use "post" instead of "postMessage"'),
        MistakePattern("postMessage", "send", 0.9, 'Use "send" to post messages'),
        MistakePattern("getMessage", "get", 0.9, 'Use "get" to retrieve messages'),
        MistakePattern("deleteMessage", "delete", 0.95, 'Use "delete" instead of "deleteMessage"'),
        MistakePattern("updateMessage", "update", 0.95, 'Use "update" instead of "updateMessage"'),
        MistakePattern("createChannel", "create", 0.9, 'Use "create" with resource: "channel"'),
    ),
    "database": (
        MistakePattern("selectData", "select", 0.95, 'Use "select" instead of "selectData"'),
        MistakePattern("insertData", "insert", 0.95, 'Use "insert" instead of "insertData"'),
        MistakePattern("updateData", "update", 0.95, 'Use "update" instead of "updateData"'),
        MistakePattern("deleteData", "delete", 0.95, 'Use "delete" instead of "deleteData"'),
        MistakePattern("query", "executeQuery", 0.8, 'Use "executeQuery" to run raw SQL'),
        MistakePattern("query", "select", 0.7, 'Use "select" for queries'),
        MistakePattern("fetch", "select", 0.7, 'Use "select" to fetch data'),
    ),
    "http": (
        MistakePattern("fetch", "GET", 0.8, 'Use "GET" method for fetching data'),
        MistakePattern("send", "POST", 0.7, 'Use "POST" method for sending data'),
        MistakePattern("create", "POST", 0.8, 'Use "POST" method for creating resources'),
        MistakePattern("update", "PUT", 0.8, 'Use "PUT" method for updating resources'),
        MistakePattern("delete", "DELETE", 0.9, 'Use "DELETE" method'),
    ),
    "generic": (
        MistakePattern("list", "getAll", 0.7, 'Use "getAll" to list items'),
        MistakePattern("list", "get", 0.6, 'Consider using "get" or "search"'),
        MistakePattern("retrieve", "get", 0.8, 'Use "get" to retrieve data'),
        MistakePattern("fetch", "get", 0.8, 'Use "get" to fetch data'),
        MistakePattern("remove", "delete", 0.85, 'Use "delete" to remove items'),
        MistakePattern("add", "create", 0.7, 'Use "create" to add new items'),
    ),
}

OPERATION_VERB_PREFIXES: tuple[str, ...] = ("get", "set", "create", "delete", "update", "send", "fetch")
OPERATION_NOUN_SUFFIXES: tuple[str, ...] = ("data", "item", "record", "message", "file", "folder")


def patterns_for(
    node_type: str,
    families: tuple[tuple[tuple[str, ...], str], ...],
    tables: dict[str, tuple[MistakePattern, ...]],
) -> list[MistakePattern]:
    """Family table (first keyword hit) followed by the generic table."""
    selected: list[MistakePattern] = []
    for keywords, family in families:
        if any(keyword in node_type for keyword in keywords):
            selected.extend(tables.get(family, ()))
            break
    selected.extend(tables.get("generic", ()))
    return selected
