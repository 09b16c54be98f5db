"""
Interval Scheduler - Wall-Clock Aligned Job Trigger

Runs a job on fixed interval boundaries (hourly by default, i.e. at the top
of every hour). Job failures are logged and the schedule continues.

Reliability Level: L6 Critical
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Callable, Awaitable, Optional

# Configure module logger
logger = logging.getLogger(__name__)


JobFunc = Callable[[], Awaitable[None]]
SleepFunc = Callable[[float], Awaitable[None]]
ClockFunc = Callable[[], datetime]

# Upper bound on a single wait so shutdown requests are noticed promptly
MAX_WAIT_SLICE_SECONDS = 5.0


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def seconds_until_next_run(now: datetime, interval_seconds: int) -> float:
    """
    Seconds from `now` until the next multiple of `interval_seconds`
    since the epoch.

    A time exactly on a boundary waits a full interval.

    Raises:
        ValueError: If interval_seconds is not positive
    """
    if interval_seconds <= 0:
        raise ValueError(f"interval_seconds must be positive, got: {interval_seconds}")

    elapsed = now.timestamp() % interval_seconds
    return float(interval_seconds - elapsed)


async def run_forever(
    job: JobFunc,
    interval_seconds: int,
    should_continue: Callable[[], bool],
    sleep: Optional[SleepFunc] = None,
    clock: Optional[ClockFunc] = None,
) -> int:
    """
    Run `job` at every interval boundary until `should_continue()` is False.

    Args:
        job: Coroutine function to run
        interval_seconds: Schedule interval
        should_continue: Checked between wait slices and after every run
        sleep: Awaitable pause (defaults to asyncio.sleep)
        clock: UTC clock (defaults to datetime.now(timezone.utc))

    Returns:
        Number of job runs started
    """
    sleep = sleep or asyncio.sleep
    clock = clock or utc_now
    runs = 0

    while should_continue():
        remaining = seconds_until_next_run(clock(), interval_seconds)
        logger.info(f"[SCHEDULER] Next run in {remaining:.0f}s")

        while remaining > 0 and should_continue():
            step = min(remaining, MAX_WAIT_SLICE_SECONDS)
            await sleep(step)
            remaining -= step

        if not should_continue():
            break

        runs += 1
        try:
            await job()
        except Exception as e:
            logger.error(
                f"[SCHEDULER] Job run {runs} failed | "
                f"error_type={type(e).__name__} | error={e}"
            )

    logger.info(f"[SCHEDULER] Stopped | runs={runs}")
    return runs
