#!/usr/bin/env python3
"""
============================================================================
IG Sentiment Sync v1.0.0
Scheduler Entry Point - Hourly IG to Airtable Job
============================================================================

Reliability Level: L6 Critical
Traceability: Every run logs its own correlation_id

MAIN LOOP:
    while running:
        wait for the next interval boundary (top of the hour by default)
        run_job()  # Airtable epics -> IG market/price/sentiment -> Airtable

PROCESS SUPERVISION:
    A failing run is logged and the schedule continues. Missing
    configuration fails startup (CFG-001).

USAGE:
    python main.py            # hourly schedule
    python main.py --once     # single run, then exit

============================================================================
"""

import sys
import signal
import asyncio
import logging
from datetime import datetime, timezone

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s | %(levelname)s | %(name)s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
logger = logging.getLogger("SCHEDULER")

from jobs.scheduler import run_forever  # noqa: E402
from jobs.sentiment_sync import run_job  # noqa: E402
from services.sync_config import SyncConfigurationError, get_sync_config  # noqa: E402


# =============================================================================
# Constants
# =============================================================================

VERSION = "1.0.0"


# =============================================================================
# System State
# =============================================================================

class SystemState:
    """Process-level run flag."""
    running = True


# =============================================================================
# Signal Handlers
# =============================================================================

def signal_handler(signum, frame):
    """Handle shutdown signals gracefully."""
    logger.warning(f"Received signal {signum} - initiating graceful shutdown")
    SystemState.running = False


# =============================================================================
# Main Entry Point
# =============================================================================

def main() -> int:
    """
    Main entry point.

    USAGE: python main.py [--once]
    """
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        config = get_sync_config()
    except SyncConfigurationError as e:
        logger.critical(f"Startup aborted: {e}")
        return 1

    logger.info(
        f"IG Sentiment Sync v{VERSION} starting | "
        f"started={datetime.now(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')} | "
        f"interval={config.interval_seconds}s"
    )

    if "--once" in sys.argv[1:]:
        asyncio.run(run_job())
        return 0

    asyncio.run(
        run_forever(
            run_job,
            config.interval_seconds,
            should_continue=lambda: SystemState.running,
        )
    )

    logger.info("IG Sentiment Sync shutdown complete")
    return 0


if __name__ == "__main__":
    sys.exit(main())
