"""MCP tool surface and stdio server for the workflow validator."""

from workflow_validator.mcp.server import create_server
from workflow_validator.mcp.tools import WorkflowValidatorTools

__all__ = ["WorkflowValidatorTools", "create_server"]
