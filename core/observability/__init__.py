"""
Observability for the reconciler.

Provides structured logging with correlation IDs (run, scope, source row).
"""

from core.observability.logging import (
    get_logger,
    configure_logging,
    CorrelationContext,
    with_correlation,
    log_run_event,
)

__all__ = [
    "get_logger",
    "configure_logging",
    "CorrelationContext",
    "with_correlation",
    "log_run_event",
]
