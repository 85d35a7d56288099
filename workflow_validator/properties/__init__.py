"""Node configuration validation: schema checks, family rules, profiles."""

from workflow_validator.properties.base import ConfigValidator
from workflow_validator.properties.enhanced import EnhancedConfigValidator
from workflow_validator.properties.fixed_collections import check_fixed_collections
from workflow_validator.properties.models import (
    VALIDATION_MODES,
    VALIDATION_PROFILES,
    ConfigError,
    ConfigValidationResult,
    ConfigWarning,
    OperationContext,
)

__all__ = [
    "VALIDATION_MODES",
    "VALIDATION_PROFILES",
    "ConfigError",
    "ConfigValidationResult",
    "ConfigValidator",
    "ConfigWarning",
    "EnhancedConfigValidator",
    "OperationContext",
    "check_fixed_collections",
]
