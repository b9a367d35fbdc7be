"""
Centralized structured logging for the payment gateway.
Uses Python's standard logging; JSON lines in production, colored lines in
development.

Keyword fields passed to a logger call become structured data:

    logger.warning("Circuit breaker OPEN", api_name="razorpay_upi", failure_count=3)

Every record carries the correlation ID of the call that produced it, so all
retry attempts of one gateway operation can be grouped in the log aggregator.
Fields that may hold credentials are redacted before they reach a handler.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Final

from shared.config.settings import settings

SERVICE_NAME: Final[str] = "payment-gateway"

# Field names whose values must never be written to logs
REDACTED_FIELDS: Final[frozenset[str]] = frozenset({
    "key_secret",
    "webhook_secret",
    "secret",
    "signature",
    "authorization",
})
REDACTED: Final[str] = "[REDACTED]"


def _redact(fields: dict[str, Any]) -> dict[str, Any]:
    return {
        name: REDACTED if name.lower() in REDACTED_FIELDS else value
        for name, value in fields.items()
    }


class StructuredFormatter(logging.Formatter):
    """
    One JSON object per line, for log aggregation.

    Example:
        {"timestamp": "...", "level": "ERROR", "service": "payment-gateway",
         "logger": "payment_gateway.razorpay.retry", "message": "Failed to fetch customer",
         "request_id": "6f1c...", "data": {"api_name": "razorpay_upi", "attempts": 4}}
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "environment": settings.environment,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = getattr(record, "request_id", None)
        if request_id and request_id != "-":
            entry["request_id"] = request_id

        data = getattr(record, "extra_data", None)
        if data:
            entry["data"] = data

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        if settings.debug:
            entry["source"] = f"{record.filename}:{record.lineno} ({record.funcName})"

        return json.dumps(entry, default=str)


class DevelopmentFormatter(logging.Formatter):
    """Colored single-line output for local runs."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"
    DIM = "\033[2m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, self.RESET)
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")

        parts = [f"{color}{clock} {record.levelname:<8}{self.RESET}"]

        request_id = getattr(record, "request_id", None)
        if request_id and request_id != "-":
            parts.append(f"{self.DIM}{request_id[:8]}{self.RESET}")

        parts.append(f"{record.name}: {record.getMessage()}")

        data = getattr(record, "extra_data", None)
        if data:
            parts.append(" ".join(f"{key}={value}" for key, value in data.items()))

        line = " ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class StructuredLogger(logging.Logger):
    """
    Logger whose keyword arguments become record.extra_data.

    exc_info and extra keep their stdlib meaning.
    """

    def _log_with_data(
        self,
        level: int,
        msg: str,
        args: tuple,
        exc_info: Any = None,
        extra: dict | None = None,
        **fields: Any,
    ) -> None:
        if not self.isEnabledFor(level):
            return
        extra = dict(extra or {})
        extra["extra_data"] = _redact(fields) if fields else None
        super()._log(level, msg, args, exc_info=exc_info, extra=extra)

    def debug(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.DEBUG, msg, args, **kwargs)

    def info(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.INFO, msg, args, **kwargs)

    def warning(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.WARNING, msg, args, **kwargs)

    def error(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.ERROR, msg, args, **kwargs)

    def critical(self, msg: str, *args: Any, **kwargs: Any) -> None:
        self._log_with_data(logging.CRITICAL, msg, args, **kwargs)


logging.setLoggerClass(StructuredLogger)


def setup_logging(level: int | None = None) -> None:
    """
    Configure the root logger. Call once at process startup.

    Production gets JSON lines; every other environment gets the colored
    development format.
    """
    from shared.infrastructure.correlation import CorrelationIdFilter

    if level is None:
        level = logging.DEBUG if settings.debug else logging.INFO

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(
        StructuredFormatter() if settings.environment == "production" else DevelopmentFormatter()
    )

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # Per-request transport chatter from the HTTP and Redis clients
    for noisy in ("httpx", "httpcore", "redis"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str) -> StructuredLogger:
    """
    Get a structured logger.

    Usage:
        from shared.config.logging import get_logger, mask_account
        logger = get_logger(__name__)

        logger.info("Razorpay customer created", account=mask_account("asha@example.com"))
        logger.error("Failed to create order", mandate_type="UPI", exc_info=True)
    """
    return logging.getLogger(name)  # type: ignore[return-value]


def mask_account(identifier: str | None) -> str:
    """
    Mask a customer account identifier for gateway call logs.

    Keeps only the first character and, for emails, the domain:
        "asha@example.com" -> "a***@example.com"
        "cust_Jx81"        -> "c***"
    """
    if not identifier:
        return "<no-account>"

    if "@" in identifier:
        local, domain = identifier.split("@", 1)
        first = local[:1] or "*"
        return f"{first}***@{domain}"

    return f"{identifier[:1]}***"
