"""
Unit tests for tick cadence statistics.
"""

import threading
from unittest.mock import MagicMock

import pytest


def _report(tick_count, last_interval_start_ns):
    from interval_ticker.interfaces.tick_report import TickReport, TimeSince

    return TickReport(
        tick_count=tick_count,
        time_since=TimeSince(start=0, last_interval_start=last_interval_start_ns),
    )


class TestRingBuffer:
    """Test the bounded sample buffer."""

    def test_wraps_at_capacity(self):
        from interval_ticker.stats import _RingBuffer

        buf = _RingBuffer(3)
        for value in [1.0, 2.0, 3.0, 4.0]:
            buf.append(value)

        assert len(buf) == 3
        assert sorted(buf.values().tolist()) == [2.0, 3.0, 4.0]

        buf.clear()
        assert len(buf) == 0


class TestTickStats:
    """Test statistics driven by synthetic notifications."""

    def test_empty_summary(self):
        from interval_ticker.stats import TickStats

        summary = TickStats().summary()
        assert summary['ticks_observed'] == 0
        assert summary['interval_mean_ms'] is None
        assert summary['duration_mean_ms'] is None

    def test_invalid_capacity(self):
        from interval_ticker.stats import TickStats

        with pytest.raises(ValueError):
            TickStats(capacity=0)

    def test_first_tick_interval_skipped(self):
        from interval_ticker.stats import TickStats

        stats = TickStats()
        stats._on_updating(_report(0, 0))
        stats._on_updated(_report(1, 0))
        stats._on_updating(_report(1, 100_000_000))
        stats._on_updated(_report(2, 0))

        assert len(stats.intervals) == 1
        assert stats.ticks_observed == 2
        summary = stats.summary()
        assert summary['interval_mean_ms'] == pytest.approx(100.0)
        assert summary['interval_std_ms'] == pytest.approx(0.0)
        assert summary['duration_max_ms'] >= 0.0

    def test_jitter_relative_to_period(self):
        from interval_ticker.stats import TickStats

        ticker = MagicMock()
        ticker.active_period = 100
        stats = TickStats().attach(ticker)
        for interval_ms in [90, 110, 100, 100]:
            stats._on_updating(_report(1, interval_ms * 1_000_000))

        summary = stats.summary()
        assert summary['interval_mean_ms'] == pytest.approx(100.0)
        assert summary['jitter_ms'] == pytest.approx(5.0)
        assert summary['interval_p95_ms'] == pytest.approx(108.5)

    def test_live_ticker(self, wait_for):
        from interval_ticker import Ticker
        from interval_ticker.stats import TickStats

        t = Ticker(20)
        stats = TickStats().attach(t)
        t.start()
        try:
            assert wait_for(lambda: stats.ticks_observed >= 4)
            summary = stats.summary()
        finally:
            t.stop()

        assert summary['interval_mean_ms'] >= 15.0
        assert summary['jitter_ms'] is not None
        # Cleared when the run stops
        assert stats.ticks_observed == 0

    def test_detach(self):
        from interval_ticker import Ticker, TickerEvent
        from interval_ticker.stats import TickStats

        t = Ticker(1000)
        stats = TickStats().attach(t)
        assert t._events.listener_count(TickerEvent.UPDATED) == 1

        stats.detach()
        assert t._events.listener_count(TickerEvent.UPDATED) == 0
        assert stats.ticker is None

        t.start()
        t.stop()
        assert stats.ticks_observed == 0

    def test_jitter_uses_running_period_after_set_period(self, wait_for):
        """A pending period change does not skew jitter for the current run."""
        from interval_ticker import Ticker
        from interval_ticker.stats import TickStats

        t = Ticker(50)
        stats = TickStats().attach(t)
        t.start()
        try:
            assert wait_for(lambda: stats.ticks_observed >= 5)
            before = stats.summary()['jitter_ms']

            t.set_period(1000)
            assert t.active_period == 50
            assert wait_for(lambda: stats.ticks_observed >= 7)
            after = stats.summary()['jitter_ms']
        finally:
            t.stop()

        assert before < 25.0
        assert after < 25.0
        assert t.active_period is None

    def test_jitter_none_without_active_run(self):
        from interval_ticker import Ticker
        from interval_ticker.stats import TickStats

        stats = TickStats().attach(Ticker(100))
        stats._on_updating(_report(1, 100_000_000))

        summary = stats.summary()
        assert summary['interval_mean_ms'] == pytest.approx(100.0)
        assert summary['jitter_ms'] is None

    def test_summary_consistent_under_concurrent_ticks(self):
        """summary() on another thread sees a consistent snapshot."""
        from interval_ticker.stats import TickStats

        ticker = MagicMock()
        ticker.active_period = 1
        stats = TickStats(capacity=10_000)
        stats.attach(ticker)
        done = threading.Event()

        def writer():
            for _ in range(5000):
                stats._on_updating(_report(1, 1_000_000))
                stats._on_updated(_report(2, 0))
            done.set()

        thread = threading.Thread(target=writer)
        thread.start()
        summaries = []
        while not done.is_set():
            summaries.append(stats.summary())
        thread.join(timeout=5.0)
        summaries.append(stats.summary())

        for summary in summaries:
            if summary['interval_mean_ms'] is not None:
                assert summary['interval_mean_ms'] == pytest.approx(1.0)
                assert summary['jitter_ms'] == pytest.approx(0.0)
        assert summaries[-1]['ticks_observed'] == 5000
