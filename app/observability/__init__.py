"""
============================================================================
IG Sentiment Sync
Observability Module - Prometheus Metrics
============================================================================

Reliability Level: L6 Critical
Input Constraints: None
Side Effects: Exposes Prometheus metrics

============================================================================
"""

from app.observability.metrics import (
    SYNC_RUNS,
    SYNC_INSTRUMENTS,
    SYNC_RUN_DURATION,
    record_instrument_outcome,
    record_run,
)

__all__ = [
    "SYNC_RUNS",
    "SYNC_INSTRUMENTS",
    "SYNC_RUN_DURATION",
    "record_instrument_outcome",
    "record_run",
]
