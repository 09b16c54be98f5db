"""
IG Sentiment Sync - Jobs Module

This module contains the scheduled jobs:
- sentiment_sync: IG market/price/sentiment enrichment into Airtable
- scheduler: wall-clock aligned interval trigger

Reliability Level: Scheduled Job
"""

from jobs.sentiment_sync import (
    SentimentSyncPipeline,
    SyncRunResult,
    SyncStatus,
    InstrumentOutcome,
    InstrumentStatus,
    create_pipeline,
    run_job,
)
from jobs.scheduler import run_forever, seconds_until_next_run

__all__ = [
    # Pipeline
    "SentimentSyncPipeline",
    "SyncRunResult",
    "SyncStatus",
    "InstrumentOutcome",
    "InstrumentStatus",
    "create_pipeline",
    "run_job",
    # Scheduler
    "run_forever",
    "seconds_until_next_run",
]
