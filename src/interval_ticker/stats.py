"""
Tick cadence statistics.

TickStats subscribes to a Ticker's notifications and keeps bounded ring
buffers of:
    - the interval between consecutive tick starts (observed cadence)
    - the duration of each tick (updating -> updated)

Statistics are computed on demand with numpy and reported in milliseconds.
"""

import logging
import threading
import time
from typing import Any, Dict, Optional

import numpy as np

from .events import TickerEvent
from .interfaces.tick_report import TickReport

logger = logging.getLogger(__name__)

NS_PER_MS = 1_000_000


class _RingBuffer:
    """Fixed-capacity float64 ring buffer."""

    def __init__(self, capacity: int):
        self.capacity = capacity
        self.data = np.zeros(capacity, dtype=np.float64)
        self.write_pos = 0

    def __len__(self) -> int:
        return min(self.write_pos, self.capacity)

    def append(self, value: float):
        self.data[self.write_pos % self.capacity] = value
        self.write_pos += 1

    def values(self) -> np.ndarray:
        return self.data[:len(self)]

    def clear(self):
        self.write_pos = 0


class TickStats:
    """
    Rolling cadence and duration statistics for one Ticker.
    """

    def __init__(self, capacity: int = 1000):
        """
        Args:
            capacity: Number of most recent ticks kept for statistics
        """
        if capacity < 1:
            raise ValueError("capacity must be >= 1")

        self.intervals = _RingBuffer(capacity)
        self.durations = _RingBuffer(capacity)
        self.ticker = None
        self._tick_started_ns: Optional[int] = None
        # Cadence the current run was started with, for jitter
        self._run_period_ms: Optional[int] = None
        self._lock = threading.Lock()

    def attach(self, ticker) -> "TickStats":
        """Start collecting from ``ticker``; detaches from any previous one."""
        self.detach()
        self.ticker = ticker
        ticker.on(TickerEvent.UPDATING, self._on_updating)
        ticker.on(TickerEvent.UPDATED, self._on_updated)
        ticker.on(TickerEvent.STOPPED, self._on_stopped)
        return self

    def detach(self):
        if self.ticker is None:
            return
        self.ticker.off(TickerEvent.UPDATING, self._on_updating)
        self.ticker.off(TickerEvent.UPDATED, self._on_updated)
        self.ticker.off(TickerEvent.STOPPED, self._on_stopped)
        self.ticker = None

    def reset(self):
        with self._lock:
            self.intervals.clear()
            self.durations.clear()
            self._tick_started_ns = None
            self._run_period_ms = None

    @property
    def ticks_observed(self) -> int:
        return self.durations.write_pos

    def _on_updating(self, report: TickReport):
        active_period = self.ticker.active_period if self.ticker is not None else None
        with self._lock:
            self._tick_started_ns = time.monotonic_ns()
            if active_period is not None:
                self._run_period_ms = active_period
            # Zero on the first tick of a run: no previous tick to measure from
            if report.time_since.last_interval_start > 0:
                self.intervals.append(report.time_since.last_interval_start / NS_PER_MS)

    def _on_updated(self, report: TickReport):
        with self._lock:
            if self._tick_started_ns is None:
                return
            self.durations.append((time.monotonic_ns() - self._tick_started_ns) / NS_PER_MS)
            self._tick_started_ns = None

    def _on_stopped(self, report):
        logger.debug(f"Run finished, clearing stats after {self.ticks_observed} ticks")
        self.reset()

    def summary(self) -> Dict[str, Any]:
        """
        Summarize the buffered ticks.

        Returns:
            Dict of statistics in milliseconds; entries are None until
            enough ticks have been observed.
        """
        with self._lock:
            intervals = self.intervals.values().copy()
            durations = self.durations.values().copy()
            ticks_observed = self.durations.write_pos
            run_period_ms = self._run_period_ms

        result: Dict[str, Any] = {
            'ticks_observed': ticks_observed,
            'interval_mean_ms': None,
            'interval_std_ms': None,
            'interval_p95_ms': None,
            'duration_mean_ms': None,
            'duration_max_ms': None,
            'jitter_ms': None,
        }

        if len(intervals):
            result['interval_mean_ms'] = float(np.mean(intervals))
            result['interval_std_ms'] = float(np.std(intervals))
            result['interval_p95_ms'] = float(np.percentile(intervals, 95))
            if run_period_ms is not None:
                result['jitter_ms'] = float(np.mean(np.abs(intervals - run_period_ms)))

        if len(durations):
            result['duration_mean_ms'] = float(np.mean(durations))
            result['duration_max_ms'] = float(np.max(durations))

        return result
