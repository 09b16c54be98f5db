"""
Property-Based Tests for the Sentiment Sync Pipeline

Reliability Level: L6 Critical
Python 3.8 Compatible

Tests the orchestrator and the instrument lister using Hypothesis.
Minimum 100 iterations per property.
"""

import asyncio
from decimal import Decimal
from typing import Dict, List, Optional

import httpx
from hypothesis import given, settings
from hypothesis import strategies as st

# Import modules under test
import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))

from data_ingestion.adapters.base_adapter import AdapterErrorCode, FetchError
from data_ingestion.schemas import (
    AccessToken,
    MarketSnapshot,
    MarketStatus,
    PriceQuote,
    PublishAck,
    Sentiment,
)
from jobs.sentiment_sync import InstrumentStatus, SentimentSyncPipeline, SyncStatus
from services.airtable_store import AirtableInstrumentLister
from services.sync_config import SyncConfig


# =============================================================================
# HYPOTHESIS STRATEGIES
# =============================================================================

price_strategy = st.one_of(
    st.none(),
    st.decimals(
        min_value=Decimal("0.0001"),
        max_value=Decimal("100000"),
        places=4,
        allow_nan=False,
        allow_infinity=False
    ),
)

percent_strategy = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100"),
    places=2,
    allow_nan=False,
    allow_infinity=False
)

instrument_strategy = st.fixed_dictionaries({
    "status": st.sampled_from([s.value for s in MarketStatus] + ["HALTED"]),
    "bid": price_strategy,
    "offer": price_strategy,
    "long": percent_strategy,
    "short": percent_strategy,
    "fail": st.sampled_from([None, "market", "price", "sentiment"]),
})

plan_strategy = st.lists(instrument_strategy, min_size=0, max_size=8)

# Simulated duration of one upstream request on the fake clock
REQUEST_LATENCY = 0.25


# =============================================================================
# FAKE COLLABORATORS
# =============================================================================

class PlannedUpstream:
    """IG / Airtable stand-in driven by a per-epic plan."""

    def __init__(self, plan: Dict[str, dict]) -> None:
        self.plan = plan
        self.published: List = []
        self.sleeps: List[float] = []
        self.market_calls: List[str] = []
        self.market_starts: List[float] = []
        # Fake clock: advanced by sleep and by simulated request latency
        self.now = 0.0

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    async def obtain_token(self, correlation_id: Optional[str] = None) -> AccessToken:
        return AccessToken(access_token="tok")

    def _maybe_fail(self, epic: str, step: str) -> None:
        if self.plan[epic]["fail"] == step:
            raise FetchError(
                error_code=AdapterErrorCode.HTTP_STATUS,
                message=f"{step} failed",
                correlation_id="CID",
                identifier=epic,
            )

    async def fetch_market(self, token, epic, correlation_id=None) -> MarketSnapshot:
        self.market_calls.append(epic)
        self.market_starts.append(self.now)
        self.now += REQUEST_LATENCY
        self._maybe_fail(epic, "market")
        return MarketSnapshot(
            epic=epic,
            market_id=f"M-{epic}",
            market_status=MarketStatus.parse(self.plan[epic]["status"]),
        )

    async def fetch_price(self, token, epic, correlation_id=None) -> PriceQuote:
        self.now += REQUEST_LATENCY
        self._maybe_fail(epic, "price")
        return PriceQuote(epic=epic, bid=self.plan[epic]["bid"], offer=self.plan[epic]["offer"])

    async def fetch_sentiment(self, token, market_id, correlation_id=None) -> Sentiment:
        epic = market_id[2:]
        self.now += REQUEST_LATENCY
        self._maybe_fail(epic, "sentiment")
        return Sentiment(
            market_id=market_id,
            long_pct=self.plan[epic]["long"],
            short_pct=self.plan[epic]["short"],
        )

    async def publish(self, record, correlation_id=None) -> PublishAck:
        self.published.append(record)
        return PublishAck(record_id=f"rec-{len(self.published)}")


def make_config(delay: float = 0.0) -> SyncConfig:
    return SyncConfig(
        ig_username="demo-user",
        ig_password="demo-password",
        ig_api_key="demo-api-key",
        ig_account_id="ABC123",
        airtable_api_key="key-airtable",
        airtable_base_id="appBase",
        request_delay_seconds=delay,
    )


def run_plan(
    entries: List[dict],
    delay: float = 0.0,
    order: Optional[List[int]] = None
):
    plan = {f"E{i}": entry for i, entry in enumerate(entries)}
    epics = list(plan) if order is None else [f"E{i}" for i in order]
    upstream = PlannedUpstream(plan)
    pipeline = SentimentSyncPipeline(
        make_config(delay),
        authenticator=upstream,
        market_fetcher=upstream,
        price_fetcher=upstream,
        sentiment_fetcher=upstream,
        publisher=upstream,
        sleep=upstream.sleep,
    )
    result = asyncio.run(pipeline.process(epics))
    return plan, upstream, result


# =============================================================================
# PROPERTY: TRADEABLE GATE
# =============================================================================

class TestTradeableGate:
    """
    A record is published for an epic if and only if its market is
    TRADEABLE and every fetch for it succeeded.
    """

    @settings(max_examples=100, deadline=None)
    @given(entries=plan_strategy)
    def test_publish_iff_tradeable(self, entries: List[dict]) -> None:
        plan, upstream, result = run_plan(entries)

        expected = [
            f"M-{epic}" for epic, entry in plan.items()
            if entry["status"] == "TRADEABLE" and entry["fail"] is None
        ]
        assert [r.instrument for r in upstream.published] == expected

    @settings(max_examples=100, deadline=None)
    @given(data=st.data())
    def test_at_most_one_record_per_epic(self, data) -> None:
        entries = data.draw(st.lists(instrument_strategy, min_size=1, max_size=6))
        order = data.draw(st.lists(
            st.integers(min_value=0, max_value=len(entries) - 1), max_size=12
        ))

        plan, upstream, result = run_plan(entries, order=order)

        instruments = [r.instrument for r in upstream.published]
        first_seen = list(dict.fromkeys(f"E{i}" for i in order))
        assert len(instruments) == len(set(instruments))
        assert upstream.market_calls == first_seen
        assert [o.epic for o in result.outcomes] == first_seen

    @settings(max_examples=100, deadline=None)
    @given(entries=plan_strategy)
    def test_values_copied_verbatim(self, entries: List[dict]) -> None:
        plan, upstream, result = run_plan(entries)

        for record in upstream.published:
            entry = plan[record.instrument[2:]]
            assert record.bid == entry["bid"]
            assert record.offer == entry["offer"]
            assert record.long == entry["long"]
            assert record.short == entry["short"]


# =============================================================================
# PROPERTY: FAILURE ISOLATION AND STATUS
# =============================================================================

class TestFailureIsolation:
    """Every epic is attempted regardless of earlier failures."""

    @settings(max_examples=100, deadline=None)
    @given(entries=plan_strategy)
    def test_every_epic_attempted(self, entries: List[dict]) -> None:
        plan, upstream, result = run_plan(entries)

        assert upstream.market_calls == list(plan)

    @settings(max_examples=100, deadline=None)
    @given(entries=plan_strategy)
    def test_status_reflects_failures(self, entries: List[dict]) -> None:
        plan, upstream, result = run_plan(entries)

        failures = [e for e, entry in plan.items() if entry["fail"] is not None]
        assert [o.epic for o in result.failed] == failures
        if failures:
            assert result.status == SyncStatus.PARTIAL
        else:
            assert result.status == SyncStatus.SUCCESS

    @settings(max_examples=100, deadline=None)
    @given(entries=plan_strategy)
    def test_outcomes_partition(self, entries: List[dict]) -> None:
        plan, upstream, result = run_plan(entries)

        for outcome in result.outcomes:
            if outcome.status == InstrumentStatus.PUBLISHED:
                assert outcome.record is not None and outcome.error is None
            elif outcome.status == InstrumentStatus.SKIPPED:
                assert outcome.market_status != MarketStatus.TRADEABLE
            else:
                assert outcome.error is not None


# =============================================================================
# PROPERTY: RATE LIMITING
# =============================================================================

class TestDelay:
    """The configured delay is awaited exactly once per epic."""

    @settings(max_examples=100, deadline=None)
    @given(
        entries=plan_strategy,
        delay=st.floats(min_value=0.0, max_value=10.0, allow_nan=False, allow_infinity=False),
    )
    def test_delay_per_epic(self, entries: List[dict], delay: float) -> None:
        plan, upstream, result = run_plan(entries, delay=delay)

        assert upstream.sleeps == [delay] * len(plan)

    @settings(max_examples=100, deadline=None)
    @given(
        entries=plan_strategy,
        delay=st.floats(min_value=0.0, max_value=10.0, allow_nan=False, allow_infinity=False),
    )
    def test_work_starts_one_delay_apart(self, entries: List[dict], delay: float) -> None:
        """
        On a fake clock, each epic's first request starts no sooner than
        the delay after the previous epic's first request.
        """
        plan, upstream, result = run_plan(entries, delay=delay)

        starts = upstream.market_starts
        assert len(starts) == len(plan)
        if starts:
            assert starts[0] >= delay
        for previous, current in zip(starts, starts[1:]):
            assert current - previous >= delay


# =============================================================================
# PROPERTY: INSTRUMENT LISTER FILTER
# =============================================================================

row_strategy = st.fixed_dictionaries({
    "epic": st.text(alphabet="ABCDEFGHIJKLMNOPQRSTUVWXYZ.", min_size=1, max_size=20),
    "flag": st.sampled_from(["TRUE", "FALSE", "true", "", None]),
})


class TestInstrumentFilter:
    """The lister returns exactly the enabled epics, in store order."""

    @settings(max_examples=100, deadline=None)
    @given(rows=st.lists(row_strategy, max_size=15))
    def test_enabled_rows_in_order(self, rows: List[dict]) -> None:
        records = []
        for i, row in enumerate(rows):
            fields = {"EPIC": row["epic"]}
            if row["flag"] is not None:
                fields["Pull_Data"] = row["flag"]
            records.append({"id": f"rec{i}", "fields": fields})

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"records": records})

        async def run_test() -> List[str]:
            transport = httpx.MockTransport(handler)
            async with httpx.AsyncClient(transport=transport) as client:
                lister = AirtableInstrumentLister(make_config(), client=client)
                return await lister.list_enabled_instruments("CID")

        epics = asyncio.run(run_test())

        assert epics == [row["epic"] for row in rows if row["flag"] == "TRUE"]
