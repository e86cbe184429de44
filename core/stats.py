"""Session counters and throughput statistics."""

import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional, Tuple

from models.blocks import BlockRef, Cursor


class RateCounter:
    """
    Monotonic total with a short sliding-window rate.

    ``rate()`` is the sum of increments within the last ``window`` seconds.
    """

    def __init__(
        self,
        unit: str,
        time_unit: str,
        window: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.unit = unit
        self.time_unit = time_unit
        self.window = window
        self._clock = clock
        self._total = 0
        self._events: Deque[Tuple[float, int]] = deque()

    @property
    def total(self) -> int:
        return self._total

    def inc(self, value: int = 1):
        """Add ``value``; non-positive values are ignored."""
        if value <= 0:
            return

        now = self._clock()
        self._events.append((now, value))
        self._total += value
        self._evict(now)

    def _evict(self, now: float):
        cutoff = now - self.window
        while self._events and self._events[0][0] <= cutoff:
            self._events.popleft()

    def rate(self) -> int:
        self._evict(self._clock())
        return sum(value for _, value in self._events)

    def overall(self, elapsed: float) -> str:
        """Average per minute over ``elapsed`` seconds (raw total under a minute)."""
        rate = float(self._total)
        minutes = elapsed / 60
        if minutes > 1:
            rate = rate / minutes
        return f"{int(rate)} {self.unit}/min ({self._total} {self.unit} total)"

    def __str__(self) -> str:
        return f"{self.rate()} {self.unit}/{self.time_unit} ({self._total} total)"


@dataclass
class Summary:
    """End-of-run report."""
    elapsed: float
    time_to_first_block: Optional[float]
    blocks_received: int
    bytes_received: int
    restart_count: int
    blocks_overall: str
    bytes_overall: str
    restarts_overall: str
    last_block: BlockRef
    cursor: str
    cancelled: bool = False

    @property
    def completed(self) -> bool:
        return not self.cancelled

    def format_lines(self) -> list:
        """Human readable report lines."""
        lines = [
            "",
            "Completed streaming" if self.completed else "Streaming cancelled",
            f"Duration: {_format_duration(self.elapsed)}",
        ]
        if self.time_to_first_block is not None:
            lines.append(f"Time to first block: {_format_duration(self.time_to_first_block)}")
        else:
            lines.append("Time to first block: <none received>")
        if self.restart_count > 0:
            lines.append(f"Restart count: {self.restarts_overall}")

        lines.append("")
        lines.append(f"Block received: {self.blocks_overall}")
        lines.append(f"Bytes received: {self.bytes_overall}")
        if not self.last_block.is_empty:
            lines.append(f"Last block: {self.last_block}")
        return lines


def _format_duration(seconds: float) -> str:
    if seconds < 1:
        return f"{seconds * 1000:.0f}ms"
    if seconds < 60:
        return f"{seconds:.3f}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes:.0f}m{secs:.0f}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours:.0f}h{minutes:.0f}m{secs:.0f}s"


class SessionStats:
    """
    Counters for one consumer run.

    Owned by the consumer loop; restarts do not reset anything.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self.start_time = clock()
        self.time_to_first_block: Optional[float] = None
        self.blocks_received = RateCounter("block", "s", window=1.0, clock=clock)
        self.bytes_received = RateCounter("byte", "s", window=1.0, clock=clock)
        self.restarts = RateCounter("restart", "m", window=60.0, clock=clock)

    def duration(self) -> float:
        return self._clock() - self.start_time

    def record_block(self, payload_size: int):
        if self.time_to_first_block is None:
            self.time_to_first_block = self._clock() - self.start_time

        self.blocks_received.inc(1)
        self.bytes_received.inc(payload_size)

    def record_restart(self):
        self.restarts.inc(1)

    def progress(self) -> str:
        """Compact status used by the periodic progress log."""
        return f"block={self.blocks_received} bytes={self.bytes_received}"

    def summary(self, cursor: Cursor, cancelled: bool = False) -> Summary:
        elapsed = self.duration()
        return Summary(
            elapsed=elapsed,
            time_to_first_block=self.time_to_first_block,
            blocks_received=self.blocks_received.total,
            bytes_received=self.bytes_received.total,
            restart_count=self.restarts.total,
            blocks_overall=self.blocks_received.overall(elapsed),
            bytes_overall=self.bytes_received.overall(elapsed),
            restarts_overall=self.restarts.overall(elapsed),
            last_block=cursor.block,
            cursor=cursor.token,
            cancelled=cancelled,
        )
