"""n8n workflow validation and auto-correction engine."""

from workflow_validator.config import Settings
from workflow_validator.engine import ValidationEngine
from workflow_validator.knowledge import NodeMetadataStore, NodeRepository
from workflow_validator.workflow import (
    AutoFixConfig,
    ValidationOptions,
    ValidationResult,
    WorkflowAutoFixer,
    WorkflowValidator,
)

__version__ = "0.1.0"

__all__ = [
    "AutoFixConfig",
    "NodeMetadataStore",
    "NodeRepository",
    "Settings",
    "ValidationEngine",
    "ValidationOptions",
    "ValidationResult",
    "WorkflowAutoFixer",
    "WorkflowValidator",
]
