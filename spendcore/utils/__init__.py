"""Utility modules"""

from .config_loader import load_config, save_config, get_detection_settings
from .errors import (
    SpendCoreError,
    ValidationError,
    ProtectedRuleError,
    NotFoundError,
    AlreadyResolvedError,
    ConfigurationError,
    IngestionError
)

__all__ = [
    "load_config",
    "save_config",
    "get_detection_settings",
    "SpendCoreError",
    "ValidationError",
    "ProtectedRuleError",
    "NotFoundError",
    "AlreadyResolvedError",
    "ConfigurationError",
    "IngestionError"
]
