"""Tests for session counters and retry policy."""

import pytest

from core.retry import RetryPolicy
from core.stats import RateCounter, SessionStats
from models.blocks import BlockRef, Cursor


class ManualClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestRateCounter:
    """Tests for RateCounter."""

    def setup_method(self):
        self.clock = ManualClock()
        self.counter = RateCounter("block", "s", window=1.0, clock=self.clock)

    def test_ignores_non_positive(self):
        self.counter.inc(0)
        self.counter.inc(-5)
        assert self.counter.total == 0

    def test_rate_over_window(self):
        self.counter.inc(3)
        self.clock.now = 0.5
        self.counter.inc(2)
        assert self.counter.rate() == 5

        self.clock.now = 1.2
        assert self.counter.rate() == 2
        assert self.counter.total == 5

    def test_string_form(self):
        self.counter.inc(4)
        assert str(self.counter) == "4 block/s (4 total)"

    def test_overall_under_a_minute_is_total(self):
        self.counter.inc(30)
        assert self.counter.overall(30.0) == "30 block/min (30 block total)"

    def test_overall_per_minute(self):
        self.counter.inc(600)
        assert self.counter.overall(120.0) == "300 block/min (600 block total)"


class TestSessionStats:
    """Tests for SessionStats."""

    def test_time_to_first_block_set_once(self):
        clock = ManualClock(100.0)
        stats = SessionStats(clock=clock)

        clock.now = 102.5
        stats.record_block(10)
        clock.now = 110.0
        stats.record_block(20)

        assert stats.time_to_first_block == 2.5
        assert stats.blocks_received.total == 2
        assert stats.bytes_received.total == 30

    def test_time_to_first_block_can_be_zero(self):
        clock = ManualClock(5.0)
        stats = SessionStats(clock=clock)
        stats.record_block(1)
        clock.now = 9.0
        stats.record_block(1)
        assert stats.time_to_first_block == 0.0

    def test_summary(self):
        clock = ManualClock(0.0)
        stats = SessionStats(clock=clock)
        stats.record_block(100)
        stats.record_restart()
        clock.now = 12.0

        summary = stats.summary(Cursor(token="c", block=BlockRef(7, "abc")))

        assert summary.elapsed == 12.0
        assert summary.blocks_received == 1
        assert summary.bytes_received == 100
        assert summary.restart_count == 1
        assert summary.last_block.num == 7
        assert summary.completed

        lines = summary.format_lines()
        assert "Completed streaming" in lines
        assert any(line.startswith("Restart count:") for line in lines)
        assert "Block received: 1 block/min (1 block total)" in lines

    def test_summary_without_restarts_hides_restart_line(self):
        stats = SessionStats(clock=ManualClock())
        lines = stats.summary(Cursor.EMPTY, cancelled=True).format_lines()
        assert "Streaming cancelled" in lines
        assert not any(line.startswith("Restart count:") for line in lines)


class TestRetryPolicy:
    """Tests for RetryPolicy."""

    def test_default_is_fixed_and_unlimited(self):
        policy = RetryPolicy()
        assert policy.delay_for(1) == 5.0
        assert policy.delay_for(50) == 5.0
        assert not policy.exhausted(10_000)

    def test_backoff_is_capped(self):
        policy = RetryPolicy(delay=1.0, backoff_multiplier=2.0, max_delay=5.0)
        assert [policy.delay_for(n) for n in range(1, 6)] == [1.0, 2.0, 4.0, 5.0, 5.0]

    def test_max_attempts(self):
        policy = RetryPolicy(max_attempts=3)
        assert not policy.exhausted(2)
        assert policy.exhausted(3)

    @pytest.mark.parametrize("kwargs", [
        {"delay": -1.0},
        {"max_attempts": 0},
        {"backoff_multiplier": 0.5},
    ])
    def test_invalid(self, kwargs):
        with pytest.raises(ValueError):
            RetryPolicy(**kwargs)
