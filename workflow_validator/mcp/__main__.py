"""Entry point: ``python -m workflow_validator.mcp``

Serves the validator tools over stdio.

Environment variables
---------------------
WORKFLOW_VALIDATOR_NODES_SNAPSHOT  Node metadata snapshot (default: bundled).
WORKFLOW_VALIDATOR_PROFILE         Default validation profile (``runtime``).
WORKFLOW_VALIDATOR_CACHE_TTL       Suggestion cache TTL in seconds (``300``).
WORKFLOW_VALIDATOR_MAX_FIXES       Default auto-fix cap (``50``).
WORKFLOW_VALIDATOR_LOG_LEVEL       Python log level (``WARNING``).
"""

from __future__ import annotations

import asyncio
import logging

from dotenv import load_dotenv
from mcp.server.stdio import stdio_server

from workflow_validator.config import Settings
from workflow_validator.engine import ValidationEngine
from workflow_validator.mcp.server import create_server
from workflow_validator.mcp.tools import WorkflowValidatorTools


async def main() -> None:
    load_dotenv()
    settings = Settings.from_env()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    engine = ValidationEngine.from_settings(settings)
    server = create_server(WorkflowValidatorTools(engine))

    async with stdio_server() as (read_stream, write_stream):
        init_options = server.create_initialization_options()
        await server.run(read_stream, write_stream, init_options)


if __name__ == "__main__":
    asyncio.run(main())
