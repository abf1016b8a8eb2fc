"""
Ticker - a repeating timer that runs registered actions.

A Ticker owns one repeating timer and an ordered table of named actions.
Every tick runs each action once, in insertion order, on the timer thread,
surrounded by ``updating`` / ``updated`` notifications that carry elapsed
time since the run started and since the previous tick.

Usage:
    from interval_ticker import Ticker, TickerEvent

    ticker = Ticker(period_ms=500)
    ticker.add_action(poll_sensors, "poll")
    ticker.on(TickerEvent.UPDATED, lambda report: print(report.tick_count))
    ticker.start()     # first tick runs immediately
    ...
    report = ticker.stop()

Threading:
    The first tick of a run executes on the thread calling ``start()``;
    every later tick executes on a dedicated daemon thread. Ticks, ``start``,
    ``stop`` and action table changes are serialised by one re-entrant lock,
    so ticks never overlap and actions may safely call back into the ticker.
"""

import logging
import math
import numbers
import secrets
import string
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Container, Dict, Optional, Tuple

from .errors import DuplicateActionIDError, InvalidActionError, UnknownActionIDError
from .events import EventDispatcher, EventName, TickerEvent
from .interfaces.tick_report import StopReport, TickReport, TimeSince

logger = logging.getLogger(__name__)

DEFAULT_PERIOD_MS = 1000

# URL-safe alphabet, 64 symbols
ID_ALPHABET = string.ascii_letters + string.digits + "_-"
ID_LENGTH = 8

Action = Callable[[], Any]


def create_id(existing: Container[str] = ()) -> str:
    """
    Generate a random action ID not present in ``existing``.

    Args:
        existing: IDs already in use

    Returns:
        An 8-character ID drawn uniformly from ``ID_ALPHABET``
    """
    action_id = _random_id()
    while action_id in existing:
        action_id = _random_id()
    return action_id


def _random_id() -> str:
    return ''.join(secrets.choice(ID_ALPHABET) for _ in range(ID_LENGTH))


def _coerce_period(value: Any) -> Optional[int]:
    """Floor a numeric period to whole milliseconds; None if unusable."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return None
    if not math.isfinite(value):
        return None
    period = math.floor(value)
    return period if period >= 1 else None


class _RepeatingTimer:
    """
    Fixed-rate repeating timer on a daemon thread.

    The n-th firing is due ``n * interval`` after the timer starts. If a
    callback overruns, the schedule re-anchors to the current time instead of
    firing a burst of catch-up calls.
    """

    def __init__(self, period_ms: int, callback: Callable[[], None], name: str = "Ticker"):
        self.period_ms = period_ms
        self.interval = period_ms / 1000.0
        self._callback = callback
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    @property
    def cancelled(self) -> bool:
        return self._stop_event.is_set()

    def start(self):
        self._thread.start()

    def cancel(self):
        """Stop scheduling further firings. Does not wait for the thread."""
        self._stop_event.set()

    def join(self, timeout: Optional[float] = None):
        if self._thread is threading.current_thread() or not self._thread.is_alive():
            return
        self._thread.join(timeout)

    def _run(self):
        next_fire = time.monotonic() + self.interval
        while not self._stop_event.wait(max(0.0, next_fire - time.monotonic())):
            try:
                self._callback()
            except Exception:
                # The failed tick is abandoned; later firings stay scheduled
                logger.exception("Tick raised, continuing with next firing")

            next_fire += self.interval
            now = time.monotonic()
            if next_fire < now:
                logger.debug(f"Tick overran period by {(now - next_fire) * 1000:.1f}ms")
                next_fire = now


@dataclass
class _RunState:
    """Timing state of the current run; a fresh instance means 'not running'."""
    tick_count: int = 0
    run_start_time: Optional[int] = None
    last_tick_start_time: Optional[int] = None
    last_tick_finish_time: Optional[int] = None
    timer: Optional[_RepeatingTimer] = None


class Ticker:
    """
    Periodic executor for a mutable, ordered set of actions.

    Notifications (see ``TickerEvent``):
        start          - start() accepted, before the first tick
        updating       - TickReport, before the tick's actions run
        updated        - TickReport, after the actions, tick_count incremented
        actionAdded    - an action was registered
        actionRemoved  - an action was removed
        stopping       - TickReport, stop() accepted
        stopped        - StopReport, run state cleared
    """

    STOP_JOIN_TIMEOUT = 2.0

    def __init__(self, period_ms: Any = DEFAULT_PERIOD_MS):
        """
        Initialize the ticker.

        Args:
            period_ms: Milliseconds between ticks. Floored to an integer;
                unusable values fall back to DEFAULT_PERIOD_MS.
        """
        period = _coerce_period(period_ms)
        if period is None:
            if period_ms is not None:
                logger.warning(
                    f"Invalid period {period_ms!r}, using default {DEFAULT_PERIOD_MS}ms"
                )
            period = DEFAULT_PERIOD_MS

        self._period_ms = period
        self._actions: Dict[str, Action] = {}
        self._state = _RunState()
        self._run_id = 0
        self._lock = threading.RLock()
        self._events = EventDispatcher()

    def __repr__(self) -> str:
        return (
            f"<Ticker period={self._period_ms}ms actions={len(self._actions)} "
            f"running={self.is_running} ticks={self._state.tick_count}>"
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    @property
    def is_running(self) -> bool:
        """True while a repeating timer is held."""
        return self._state.timer is not None

    @property
    def period(self) -> int:
        """Configured period in milliseconds (applies to the next start)."""
        return self._period_ms

    @property
    def active_period(self) -> Optional[int]:
        """Period in milliseconds the current run ticks at; None when stopped."""
        timer = self._state.timer
        return timer.period_ms if timer is not None else None

    @property
    def tick_count(self) -> int:
        """Ticks completed in the current run; 0 when stopped."""
        return self._state.tick_count

    @property
    def action_ids(self) -> Tuple[str, ...]:
        """Registered action IDs in execution order."""
        with self._lock:
            return tuple(self._actions)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def on(self, event: EventName, handler: Callable[..., Any]) -> Callable[..., Any]:
        return self._events.on(event, handler)

    def once(self, event: EventName, handler: Callable[..., Any]) -> Callable[..., Any]:
        return self._events.once(event, handler)

    def off(self, event: EventName, handler: Callable[..., Any]) -> None:
        self._events.off(event, handler)

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------
    def add_action(self, action: Action, action_id: Optional[str] = None) -> str:
        """
        Register an action to run on every tick after this call.

        Args:
            action: Zero-argument callable
            action_id: Custom ID; a random one is generated when omitted,
                empty or not a string

        Returns:
            The action ID to pass to remove_action()

        Raises:
            InvalidActionError: action is not callable
            DuplicateActionIDError: action_id is already registered
        """
        if not callable(action):
            raise InvalidActionError(
                f"Expected action to be callable, got {type(action).__name__}"
            )

        with self._lock:
            if not action_id or not isinstance(action_id, str):
                action_id = create_id(self._actions)
            if action_id in self._actions:
                raise DuplicateActionIDError(action_id)

            self._actions[action_id] = action
            logger.debug(f"Action added: {action_id} ({len(self._actions)} registered)")
            self._events.emit(TickerEvent.ACTION_ADDED)

        return action_id

    def remove_action(self, action_id: str) -> None:
        """
        Remove a registered action.

        Raises:
            UnknownActionIDError: action_id is not registered
        """
        with self._lock:
            if action_id not in self._actions:
                raise UnknownActionIDError(action_id)

            del self._actions[action_id]
            logger.debug(f"Action removed: {action_id} ({len(self._actions)} registered)")
            self._events.emit(TickerEvent.ACTION_REMOVED)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        """
        Start ticking. No-op if already running.

        The first tick runs synchronously before this returns; repeating
        ticks follow every ``period`` ms. If an action raises during the
        first tick, the exception propagates and the ticker is left stopped.
        """
        with self._lock:
            if self.is_running:
                return

            self._events.emit(TickerEvent.START)

            self._run_id += 1
            run_id = self._run_id
            timer = _RepeatingTimer(self._period_ms, lambda: self._on_timer(timer))
            self._state = _RunState(run_start_time=time.monotonic_ns(), timer=timer)
            logger.info(f"Ticker started (period={self._period_ms}ms, actions={len(self._actions)})")

            try:
                self._tick()
            except Exception:
                if self._run_id == run_id:
                    self._run_id += 1
                    self._state = _RunState()
                raise

            # An action may have stopped (or restarted) the ticker
            if self._state.timer is timer:
                timer.start()

    def stop(self) -> Optional[StopReport]:
        """
        Stop ticking and reset run state.

        Returns:
            StopReport for the finished run, or None if not running
        """
        with self._lock:
            if not self.is_running:
                return None

            stop_init_time = time.monotonic_ns()
            self._events.emit(
                TickerEvent.STOPPING,
                TickReport(self._state.tick_count, self._deltas(stop_init_time)),
            )

            state = self._state
            if state.timer is not None:
                state.timer.cancel()
            self._run_id += 1
            self._state = _RunState()

            stop_finish_time = time.monotonic_ns()
            report = StopReport(
                tick_count=state.tick_count,
                time_started=state.run_start_time,
                time_stopped=stop_finish_time,
                time_elapsed=stop_finish_time - state.run_start_time,
            )
            logger.info(
                f"Ticker stopped after {report.tick_count} ticks "
                f"({report.elapsed_seconds:.3f}s)"
            )
            self._events.emit(TickerEvent.STOPPED, report)

        if state.timer is not None:
            state.timer.join(self.STOP_JOIN_TIMEOUT)

        return report

    def set_period(self, value: Any) -> None:
        """
        Set the period in milliseconds for timers started after this call.

        Non-numeric values and values below 1ms are ignored. Values are
        floored to whole milliseconds, so a positive value under 1 (e.g. 0.5)
        counts as invalid.
        """
        period = _coerce_period(value)
        if period is None:
            logger.debug(f"Ignoring invalid period {value!r}")
            return
        self._period_ms = period

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------
    def _on_timer(self, timer: _RepeatingTimer):
        with self._lock:
            # A firing that lost the race with stop() must not tick
            if self._state.timer is not timer or timer.cancelled:
                return
            self._tick()

    def _tick(self):
        run_id = self._run_id
        tick_start = time.monotonic_ns()
        self._events.emit(
            TickerEvent.UPDATING,
            TickReport(self._state.tick_count, self._deltas(tick_start)),
        )

        # Table changes made by actions apply from the next tick
        for action in list(self._actions.values()):
            action()

        if self._run_id != run_id:
            logger.debug("Run ended during tick, skipping tick bookkeeping")
            return

        tick_finish = time.monotonic_ns()
        self._state.tick_count += 1
        self._events.emit(
            TickerEvent.UPDATED,
            TickReport(self._state.tick_count, self._deltas(tick_finish)),
        )

        if self._run_id == run_id:
            self._state.last_tick_start_time = tick_start
            self._state.last_tick_finish_time = tick_finish

    def _deltas(self, comparator: int) -> TimeSince:
        state = self._state
        return TimeSince(
            start=comparator - state.run_start_time,
            last_interval_start=(
                comparator - state.last_tick_start_time
                if state.last_tick_start_time is not None else 0
            ),
            last_interval_finish=(
                comparator - state.last_tick_finish_time
                if state.last_tick_finish_time is not None else 0
            ),
        )
