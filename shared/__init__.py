"""
Shared module for common utilities across the payment gateway.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging, PII masking
  - constants.py: MandateType, external API registry, status values

- shared.infrastructure: Redis, secrets, correlation
  - redis_pool.py: Async Redis connection pool
  - secrets.py: Secret store protocol and settings-backed implementation
  - correlation.py: Correlation IDs for log records

- shared.utils: Utilities
  - exceptions.py: Gateway exceptions with auto-logging

IMPORT EXAMPLES:
    from shared.config.settings import settings
    from shared.config.constants import MandateType, ExternalApi
    from shared.infrastructure.redis_pool import get_redis_pool
    from shared.utils.exceptions import ValidationError, CircuitOpenError
"""

# This module does not provide re-exports.
# All imports should use the canonical paths as documented above.
