"""
Structured Logging with Correlation IDs

Provides logging utilities that automatically include:
- run_id: Links logs to a single batch invocation
- transaction_kind: purchase_order, vendor_bill or expense_report
- scope: sandbox or production
- source_row_key: The sheet row (PR/EPR ID) being processed
- transaction_number: The ERP transaction number once known

Usage:
    from core.observability.logging import get_logger, with_correlation

    logger = get_logger(__name__)

    with with_correlation(run_id="run-123", source_row_key="EPR-0042"):
        logger.info("Resolving vendor")  # Automatically includes correlation IDs
"""

import json
import logging
import sys
from contextvars import ContextVar
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Optional, Dict, Any
from contextlib import contextmanager


# =============================================================================
# Correlation Context
# =============================================================================

@dataclass
class CorrelationContext:
    """Context for correlating logs across a batch run."""
    run_id: Optional[str] = None
    transaction_kind: Optional[str] = None
    scope: Optional[str] = None
    source_row_key: Optional[str] = None
    transaction_number: Optional[str] = None
    stage: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def merge(self, **kwargs) -> "CorrelationContext":
        """Create a new context with merged values."""
        data = self.to_dict()
        data.update({k: v for k, v in kwargs.items() if v is not None})
        return CorrelationContext(**data)


_correlation_context: ContextVar[CorrelationContext] = ContextVar(
    "correlation_context",
    default=CorrelationContext()
)


def get_correlation_context() -> CorrelationContext:
    """Get the current correlation context."""
    return _correlation_context.get()


@contextmanager
def with_correlation(**kwargs):
    """
    Context manager to set correlation IDs for logging.

    Usage:
        with with_correlation(source_row_key="EPR-0042", stage="build"):
            logger.info("Building draft")
    """
    old_ctx = get_correlation_context()
    new_ctx = old_ctx.merge(**kwargs)
    token = _correlation_context.set(new_ctx)
    try:
        yield new_ctx
    finally:
        _correlation_context.reset(token)


# =============================================================================
# Formatters
# =============================================================================

def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter that includes correlation context.

    Output format:
    {
        "timestamp": "2024-01-09T12:00:00.000000Z",
        "level": "INFO",
        "logger": "workflows.sheet_sync",
        "message": "Created purchase order",
        "run_id": "run-123",
        "source_row_key": "EPR-0042"
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": _utcnow().strftime("%Y-%m-%dT%H:%M:%S.%f") + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        ctx = get_correlation_context()
        log_data.update(ctx.to_dict())

        if hasattr(record, "extra_fields"):
            log_data.update(record.extra_fields)

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """
    Human-readable formatter that includes key correlation IDs.

    Output format:
    2024-01-09 12:00:00 [INFO ] workflows.sheet_sync [sandbox/EPR-0042]: Created purchase order
    """

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_correlation_context()

        correlation_parts = []
        if ctx.scope:
            correlation_parts.append(ctx.scope)
        if ctx.source_row_key:
            correlation_parts.append(ctx.source_row_key)
        if ctx.transaction_number:
            correlation_parts.append(f"txn:{ctx.transaction_number}")

        correlation = "/".join(correlation_parts) if correlation_parts else "-"
        timestamp = _utcnow().strftime("%Y-%m-%d %H:%M:%S")

        msg = f"{timestamp} [{record.levelname:5}] {record.name} [{correlation}]: {record.getMessage()}"

        extra_fields = getattr(record, "extra_fields", None)
        if extra_fields:
            details = " ".join(f"{k}={v}" for k, v in extra_fields.items())
            msg += f" ({details})"

        if record.exc_info:
            msg += "\n" + self.formatException(record.exc_info)

        return msg


# =============================================================================
# Logger with Correlation Support
# =============================================================================

class CorrelatedLogger:
    """
    Thin wrapper over a stdlib logger.

    Accepts an `extra_fields` dict on every call; the formatters above merge
    it with the correlation context. Caller file/line are preserved.
    """

    def __init__(self, logger: logging.Logger):
        self._logger = logger

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, msg: str, *args, extra_fields: Optional[Dict[str, Any]] = None, exc_info=None):
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(
            level,
            msg,
            *args,
            exc_info=exc_info,
            extra={"extra_fields": extra_fields or {}},
            stacklevel=3,
        )

    def debug(self, msg: str, *args, **kwargs):
        self._log(logging.DEBUG, msg, *args, **kwargs)

    def info(self, msg: str, *args, **kwargs):
        self._log(logging.INFO, msg, *args, **kwargs)

    def warning(self, msg: str, *args, **kwargs):
        self._log(logging.WARNING, msg, *args, **kwargs)

    def error(self, msg: str, *args, **kwargs):
        self._log(logging.ERROR, msg, *args, **kwargs)

    def exception(self, msg: str, *args, **kwargs):
        kwargs.setdefault("exc_info", True)
        self._log(logging.ERROR, msg, *args, **kwargs)

    def setLevel(self, level):
        self._logger.setLevel(level)

    def isEnabledFor(self, level) -> bool:
        return self._logger.isEnabledFor(level)


# =============================================================================
# Setup
# =============================================================================

# Top-level packages whose loggers follow the configured level
PACKAGE_LOGGERS = (
    "workflows",
    "reference_resolver",
    "line_matcher",
    "transaction_builder",
    "sync_state",
    "reconciliation",
    "connectors",
    "intake",
    "core",
)

_loggers: Dict[str, CorrelatedLogger] = {}
_handler: Optional[logging.Handler] = None


def configure_logging(level=logging.INFO, json_format: bool = False) -> logging.Handler:
    """
    Install the stderr handler on the root logger.

    Calling again replaces the handler installed by the previous call, so a
    script can switch format or level without duplicating output.

    Args:
        level: Logging level (int or name such as "DEBUG")
        json_format: JSON lines when True, otherwise human-readable
    """
    global _handler

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()
    if _handler is not None:
        root.removeHandler(_handler)

    _handler = logging.StreamHandler(sys.stderr)
    _handler.setLevel(level)
    _handler.setFormatter(StructuredFormatter() if json_format else HumanReadableFormatter())

    root.setLevel(level)
    root.addHandler(_handler)
    for name in PACKAGE_LOGGERS:
        logging.getLogger(name).setLevel(level)

    return _handler


def get_logger(name: str) -> CorrelatedLogger:
    """Correlated logger for a module (pass __name__). Cached per name."""
    logger = _loggers.get(name)
    if logger is None:
        logger = _loggers[name] = CorrelatedLogger(logging.getLogger(name))
    return logger


def log_run_event(event: str, **fields):
    """Log a batch-run milestone (start, finish, counts) on the workflows logger."""
    get_logger("workflows").info(event, extra_fields=fields)
