"""
Configuration module: Settings, logging, constants.
"""

from shared.config.settings import settings, get_settings, Settings
from shared.config.logging import get_logger, setup_logging, mask_account
from shared.config.constants import (
    MandateType,
    ExternalApi,
    ApiStatus,
    SecretKeys,
    CircuitThresholds,
    EXTERNAL_API_VALUES,
)

__all__ = [
    # settings
    "settings",
    "get_settings",
    "Settings",
    # logging
    "get_logger",
    "setup_logging",
    "mask_account",
    # constants
    "MandateType",
    "ExternalApi",
    "ApiStatus",
    "SecretKeys",
    "CircuitThresholds",
    "EXTERNAL_API_VALUES",
]
