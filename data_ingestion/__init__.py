"""
============================================================================
IG Sentiment Sync
Data Ingestion Package - IG Markets Feed
============================================================================

Reliability Level: L6 Critical
Decimal Integrity: All prices and percentages use decimal.Decimal
Traceability: All operations include correlation_id for audit

IG MARKETS FEED:
    Per epic, three pieces of remote data are fetched from the IG REST API
    and normalized into immutable schema objects:

    1. MarketSnapshot - market id and trading status
    2. PriceQuote     - current bid/offer
    3. Sentiment      - client long/short percentages (keyed by market id)

PRIVACY GUARDRAIL:
    - No API keys hardcoded
    - All credentials arrive through SyncConfig

============================================================================
"""

from data_ingestion.schemas import (
    AccessToken,
    IGCredentials,
    MarketSnapshot,
    MarketStatus,
    PriceQuote,
    PublishAck,
    PublishedRecord,
    Sentiment,
    compose_record,
)

__all__ = [
    "AccessToken",
    "IGCredentials",
    "MarketSnapshot",
    "MarketStatus",
    "PriceQuote",
    "PublishAck",
    "PublishedRecord",
    "Sentiment",
    "compose_record",
]
