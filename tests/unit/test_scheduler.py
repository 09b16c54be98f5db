"""
Unit Tests for the Interval Scheduler

Reliability Level: L6 Critical
Python 3.8 Compatible

Tests:
- Next-run computation aligned to interval boundaries
- Waits are sliced so shutdown is noticed promptly
- A failing job never stops the schedule
"""

import pytest
from datetime import datetime, timezone
from typing import List
from unittest.mock import AsyncMock

from jobs.scheduler import (
    MAX_WAIT_SLICE_SECONDS,
    run_forever,
    seconds_until_next_run,
)


def at(hour: int, minute: int, second: int = 0) -> datetime:
    return datetime(2024, 1, 1, hour, minute, second, tzinfo=timezone.utc)


# =============================================================================
# seconds_until_next_run
# =============================================================================

class TestSecondsUntilNextRun:

    def test_mid_hour(self) -> None:
        assert seconds_until_next_run(at(10, 15), 3600) == 2700.0

    def test_just_before_hour(self) -> None:
        assert seconds_until_next_run(at(10, 59, 59), 3600) == 1.0

    def test_on_boundary_waits_full_interval(self) -> None:
        assert seconds_until_next_run(at(10, 0), 3600) == 3600.0

    def test_short_interval(self) -> None:
        assert seconds_until_next_run(at(10, 7, 30), 300) == 150.0

    @pytest.mark.parametrize("interval", [0, -60])
    def test_invalid_interval(self, interval) -> None:
        with pytest.raises(ValueError):
            seconds_until_next_run(at(10, 0), interval)


# =============================================================================
# run_forever
# =============================================================================

class StopAfter:
    """should_continue that turns False once `runs` job calls happened."""

    def __init__(self, job: AsyncMock, runs: int) -> None:
        self.job = job
        self.runs = runs

    def __call__(self) -> bool:
        return self.job.await_count < self.runs


class TestRunForever:

    @pytest.mark.asyncio
    async def test_runs_at_boundary(self) -> None:
        sleeps: List[float] = []

        async def sleep(seconds: float) -> None:
            sleeps.append(seconds)

        job = AsyncMock()
        runs = await run_forever(
            job,
            3600,
            should_continue=StopAfter(job, 1),
            sleep=sleep,
            clock=lambda: at(10, 59, 48),
        )

        assert runs == 1
        job.assert_awaited_once()
        assert sum(sleeps) == 12.0
        assert max(sleeps) <= MAX_WAIT_SLICE_SECONDS

    @pytest.mark.asyncio
    async def test_multiple_runs(self) -> None:
        async def sleep(seconds: float) -> None:
            return None

        job = AsyncMock()
        runs = await run_forever(
            job,
            60,
            should_continue=StopAfter(job, 3),
            sleep=sleep,
            clock=lambda: at(10, 0, 50),
        )

        assert runs == 3
        assert job.await_count == 3

    @pytest.mark.asyncio
    async def test_failing_job_does_not_stop_schedule(self) -> None:
        async def sleep(seconds: float) -> None:
            return None

        job = AsyncMock(side_effect=[RuntimeError("boom"), None])
        runs = await run_forever(
            job,
            60,
            should_continue=StopAfter(job, 2),
            sleep=sleep,
            clock=lambda: at(10, 0, 59),
        )

        assert runs == 2
        assert job.await_count == 2

    @pytest.mark.asyncio
    async def test_stop_during_wait(self) -> None:
        state = {"running": True}
        sleeps: List[float] = []

        async def sleep(seconds: float) -> None:
            sleeps.append(seconds)
            state["running"] = False

        job = AsyncMock()
        runs = await run_forever(
            job,
            3600,
            should_continue=lambda: state["running"],
            sleep=sleep,
            clock=lambda: at(10, 30),
        )

        assert runs == 0
        job.assert_not_awaited()
        assert sleeps == [MAX_WAIT_SLICE_SECONDS]

    @pytest.mark.asyncio
    async def test_not_started_when_stopped(self) -> None:
        job = AsyncMock()

        runs = await run_forever(job, 3600, should_continue=lambda: False)

        assert runs == 0
        job.assert_not_awaited()
