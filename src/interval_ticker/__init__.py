"""
interval-ticker: Periodic Action Runner

This package provides a Ticker: a repeating timer that runs a mutable,
ordered set of zero-argument callbacks ("actions") on a fixed period and
reports lifecycle and timing notifications around every tick.

Components:
    1. Ticker - timer, action table, start/stop lifecycle
    2. EventDispatcher - synchronous notification delivery
    3. TickStats - cadence and duration statistics (numpy)
    4. HealthServer - HTTP status and Prometheus metrics

Version: 1.0.0
"""

__version__ = "1.0.0"

from .errors import (
    TickerError,
    InvalidActionError,
    DuplicateActionIDError,
    UnknownActionIDError,
)
from .events import EventDispatcher, TickerEvent
from .interfaces.tick_report import TimeSince, TickReport, StopReport
from .stats import TickStats
from .ticker import Ticker, create_id, DEFAULT_PERIOD_MS

__all__ = [
    "Ticker",
    "TickerEvent",
    "EventDispatcher",
    "TimeSince",
    "TickReport",
    "StopReport",
    "TickStats",
    "TickerError",
    "InvalidActionError",
    "DuplicateActionIDError",
    "UnknownActionIDError",
    "create_id",
    "DEFAULT_PERIOD_MS",
    "__version__",
]
