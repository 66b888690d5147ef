"""Error taxonomy for the reconciler.

Row-level failures (resolution, validation, transport) are caught at the
row-processing boundary and recorded as failed SyncRecords. SetupFailure is
raised before any row is processed and aborts the whole run.
"""

from typing import Any, Optional


class ReconcilerError(Exception):
    """Base class for all reconciler errors."""


class ResolutionFailure(ReconcilerError):
    """A reference could not be resolved after the full matching cascade."""

    def __init__(self, kind: str, query: str, message: Optional[str] = None):
        self.kind = kind
        self.query = query
        super().__init__(message or f"{kind.replace('_', ' ').title()} '{query}' not found")


class ValidationFailure(ReconcilerError):
    """A required field is missing or a draft invariant does not hold."""


class TransportFailure(ReconcilerError):
    """The ERP transport rejected a call or could not be reached.

    The raw response is preserved verbatim for operator triage.
    """

    def __init__(self, message: str, raw_response: Any = None):
        self.raw_response = raw_response
        super().__init__(message)


class SetupFailure(ReconcilerError):
    """Batch-level setup failed (mapping file unreadable, table missing, ...)."""
