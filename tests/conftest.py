"""
Pytest configuration and fixtures for interval-ticker tests.
"""

import pytest
import sys
import threading
from pathlib import Path

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))


@pytest.fixture
def ticker():
    """A fast ticker that is always stopped after the test."""
    from interval_ticker import Ticker

    t = Ticker(period_ms=20)
    yield t
    t.stop()


@pytest.fixture
def recorder():
    """Collects (event, payload) tuples from a ticker's notifications."""
    from interval_ticker import TickerEvent

    class Recorder:
        def __init__(self):
            self.events = []
            self.lock = threading.Lock()

        def attach(self, ticker):
            for event in TickerEvent:
                ticker.on(event, self._handler(event))
            return self

        def _handler(self, event):
            def handle(*args):
                with self.lock:
                    self.events.append((event, args[0] if args else None))
            return handle

        def names(self):
            with self.lock:
                return [event for event, _ in self.events]

        def payloads(self, event):
            with self.lock:
                return [payload for name, payload in self.events if name == event]

    return Recorder()


@pytest.fixture
def wait_for():
    """Poll a predicate until true or a timeout (seconds) passes."""
    import time

    def _wait_for(predicate, timeout=2.0, interval=0.005):
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    return _wait_for
