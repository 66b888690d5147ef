"""Sync State Tracker - idempotent re-sync and deferred workbook writes."""

from sync_state.tracker import (
    ERROR_HEADERS,
    ExistingRef,
    FlushResult,
    FoundBy,
    SyncStateTracker,
    build_error_row,
)

__all__ = [
    "ERROR_HEADERS",
    "ExistingRef",
    "FlushResult",
    "FoundBy",
    "SyncStateTracker",
    "build_error_row",
]
