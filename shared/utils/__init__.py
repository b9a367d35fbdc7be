"""
Utilities module: Exceptions.
"""

from shared.utils.exceptions import (
    GatewayError,
    ValidationError,
    ConfigurationError,
    ProviderError,
    TransientProviderError,
    PermanentProviderError,
    CircuitOpenError,
)

__all__ = [
    "GatewayError",
    "ValidationError",
    "ConfigurationError",
    "ProviderError",
    "TransientProviderError",
    "PermanentProviderError",
    "CircuitOpenError",
]
