"""Tests for session diffing and the incremental ledger."""

import pytest

from carbon_tracker.schemas.schemas import Snapshot
from carbon_tracker.services.ledger import IncrementalLedger
from carbon_tracker.services.session import SessionState
from carbon_tracker.services.storage import (
    CHAT_GLOBAL_STATS,
    CHAT_PERIOD_STATS,
    SESSION_STATS,
)

from tests.conftest import measurement


def _ledger(store, clock):
    session = SessionState()
    return session, IncrementalLedger(store, session, clock=clock)


async def _save(session, ledger, m):
    session.apply_scan(m)
    return await ledger.save()


class TestComputeDelta:

    def test_no_baseline_credits_everything(self):
        session = SessionState(measurement(30, 70))
        delta = session.compute_delta()
        assert (delta.input_tokens, delta.output_tokens) == (30, 70)
        assert delta.carbon_emissions == session.measurement.carbon_emissions

    def test_difference_from_baseline(self):
        session = SessionState(measurement(30, 70))
        session.baseline = Snapshot(user_tokens=10, assistant_tokens=20, carbon_emissions=0.01)
        delta = session.compute_delta()
        assert (delta.input_tokens, delta.output_tokens) == (20, 50)

    def test_any_negative_component_zeroes_delta(self):
        session = SessionState(measurement(50, 10))
        session.baseline = Snapshot(user_tokens=10, assistant_tokens=20, carbon_emissions=0.0)
        assert session.compute_delta().is_zero


class TestIncrementalLedger:

    async def test_first_save_credits_full_session(self, store, clock):
        session, ledger = _ledger(store, clock)
        m = measurement(40, 60)
        await _save(session, ledger, m)

        stats = await store.get(CHAT_GLOBAL_STATS)
        assert stats["totalInputTokens"] == 40
        assert stats["totalOutputTokens"] == 60
        assert stats["totalCarbonEmissions"] == pytest.approx(m.carbon_emissions)
        assert (await store.get(SESSION_STATS))["totalTokens"] == 100
        assert session.baseline == Snapshot.of(m)

    async def test_growing_session_never_double_counts(self, store, clock):
        session, ledger = _ledger(store, clock)
        for user, assistant in [(10, 0), (10, 25), (22, 25), (22, 80)]:
            await _save(session, ledger, measurement(user, assistant))

        final = measurement(22, 80)
        stats = await store.get(CHAT_GLOBAL_STATS)
        assert stats["totalInputTokens"] == 22
        assert stats["totalOutputTokens"] == 80
        assert stats["totalCarbonEmissions"] == pytest.approx(final.carbon_emissions)

    async def test_delta_applied_to_every_period(self, store, clock):
        session, ledger = _ledger(store, clock)
        m = measurement(12, 30)
        await _save(session, ledger, m)

        expected_keys = {"daily": "2024-03-15", "weekly": "2024-W11", "monthly": "2024-03"}
        for period, key in expected_keys.items():
            buckets = await store.get(CHAT_PERIOD_STATS[period])
            assert list(buckets) == [key]
            assert buckets[key]["inputTokens"] == 12
            assert buckets[key]["outputTokens"] == 30
            assert buckets[key]["carbonEmissions"] == pytest.approx(m.carbon_emissions)

    async def test_shrinking_session_credits_nothing(self, store, clock):
        session, ledger = _ledger(store, clock)
        await _save(session, ledger, measurement(40, 60))
        before = await store.get(CHAT_GLOBAL_STATS)

        delta = await _save(session, ledger, measurement(40, 20))

        assert delta.is_zero
        assert await store.get(CHAT_GLOBAL_STATS) == before
        assert (await store.get(SESSION_STATS))["assistantTokens"] == 20
        assert session.baseline.assistant_tokens == 20

    async def test_unchanged_session_leaves_aggregates_untouched(self, store, clock):
        session, ledger = _ledger(store, clock)
        await _save(session, ledger, measurement(40, 60))
        before = await store.get(CHAT_GLOBAL_STATS)

        delta = await _save(session, ledger, measurement(40, 60))
        assert delta.is_zero
        assert await store.get(CHAT_GLOBAL_STATS) == before

    async def test_failed_write_keeps_baseline(self, flaky_store, clock):
        session, ledger = _ledger(flaky_store, clock)
        flaky_store.failing = True
        assert await _save(session, ledger, measurement(10, 10)) is None
        assert session.baseline is None
        assert await flaky_store.get(CHAT_GLOBAL_STATS) is None

        flaky_store.failing = False
        await _save(session, ledger, measurement(10, 15))
        stats = await flaky_store.get(CHAT_GLOBAL_STATS)
        assert stats["totalInputTokens"] == 10
        assert stats["totalOutputTokens"] == 15

    async def test_reset_flushes_then_rebaselines(self, store, clock):
        session, ledger = _ledger(store, clock)
        await _save(session, ledger, measurement(10, 20))
        session.apply_scan(measurement(15, 40))

        assert await ledger.reset()

        stats = await store.get(CHAT_GLOBAL_STATS)
        assert (stats["totalInputTokens"], stats["totalOutputTokens"]) == (15, 40)
        assert session.measurement.total_tokens == 0
        assert session.baseline == Snapshot()
        assert (await store.get(SESSION_STATS))["totalTokens"] == 0

    async def test_next_session_after_reset_credited_once(self, store, clock):
        session, ledger = _ledger(store, clock)
        first = measurement(10, 20)
        await _save(session, ledger, first)
        await ledger.reset()

        second = measurement(5, 8)
        await _save(session, ledger, second)
        await _save(session, ledger, second)

        stats = await store.get(CHAT_GLOBAL_STATS)
        assert stats["totalInputTokens"] == 15
        assert stats["totalOutputTokens"] == 28
        assert stats["totalCarbonEmissions"] == pytest.approx(first.carbon_emissions + second.carbon_emissions)

    async def test_reset_of_empty_session_writes_nothing_to_aggregates(self, store, clock):
        session, ledger = _ledger(store, clock)
        assert await ledger.reset()
        assert await store.get(CHAT_GLOBAL_STATS) is None
        assert (await store.get(SESSION_STATS))["userTokens"] == 0
