"""
============================================================================
IG Sentiment Sync - Services Layer
============================================================================

Configuration (sync_config) and the Airtable store (airtable_store) used
by the sentiment sync job.

Reliability Level: L6 Critical
============================================================================
"""
