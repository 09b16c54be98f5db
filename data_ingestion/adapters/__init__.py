"""
============================================================================
Data Ingestion Adapters Package
============================================================================

Reliability Level: L6 Critical
Decimal Integrity: All adapters output Decimal-based data

ADAPTER HIERARCHY:
    BaseAdapter
    └── IGAdapter
        ├── IGAuthenticator     - POST /session
        ├── IGMarketDataFetcher - GET /markets/{epic}
        ├── IGPriceFetcher      - GET /markets/{epic}
        └── IGSentimentFetcher  - GET /clientsentiment

The Airtable adapters live in services.airtable_store.
============================================================================
"""

from data_ingestion.adapters.base_adapter import (
    BaseAdapter,
    AdapterErrorCode,
    SyncError,
    AuthError,
    ListError,
    FetchError,
    PublishError,
)
from data_ingestion.adapters.ig_adapter import (
    IGAuthenticator,
    IGMarketDataFetcher,
    IGPriceFetcher,
    IGSentimentFetcher,
)

__all__ = [
    "BaseAdapter",
    "AdapterErrorCode",
    "SyncError",
    "AuthError",
    "ListError",
    "FetchError",
    "PublishError",
    "IGAuthenticator",
    "IGMarketDataFetcher",
    "IGPriceFetcher",
    "IGSentimentFetcher",
]
