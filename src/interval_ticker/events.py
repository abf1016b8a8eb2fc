"""
Synchronous event dispatch for ticker notifications.

Subscribers are called on the emitting thread, in subscription order, before
``emit`` returns. There is no queueing: a slow handler delays the emitter and
an exception raised by a handler propagates to it.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Tuple, Union


class TickerEvent(str, Enum):
    """Notifications emitted by a Ticker."""
    START = "start"                    # no payload
    UPDATING = "updating"              # TickReport, before actions run
    UPDATED = "updated"                # TickReport, tick_count already incremented
    ACTION_ADDED = "actionAdded"       # no payload
    ACTION_REMOVED = "actionRemoved"   # no payload
    STOPPING = "stopping"              # TickReport
    STOPPED = "stopped"                # StopReport


# Handlers for these events take no arguments
NO_PAYLOAD_EVENTS = frozenset({
    TickerEvent.START,
    TickerEvent.ACTION_ADDED,
    TickerEvent.ACTION_REMOVED,
})

EventName = Union[TickerEvent, str]


def _coerce_event(event: EventName) -> TickerEvent:
    try:
        return TickerEvent(event)
    except ValueError:
        raise ValueError(f"Unknown ticker event: {event!r}") from None


class EventDispatcher:
    """
    Subscribe/unsubscribe by event name and deliver notifications in-process.
    """

    def __init__(self):
        # event -> [(handler, once)]
        self._handlers: Dict[TickerEvent, List[Tuple[Callable[..., Any], bool]]] = {}

    def on(self, event: EventName, handler: Callable[..., Any]) -> Callable[..., Any]:
        """
        Subscribe ``handler`` to ``event``.

        Returns the handler so this can be used as a decorator.
        """
        return self._subscribe(event, handler, once=False)

    def once(self, event: EventName, handler: Callable[..., Any]) -> Callable[..., Any]:
        """Subscribe ``handler`` for the next delivery of ``event`` only."""
        return self._subscribe(event, handler, once=True)

    def off(self, event: EventName, handler: Callable[..., Any]) -> None:
        """Unsubscribe the first registration of ``handler``; unknown handlers are ignored."""
        handlers = self._handlers.get(_coerce_event(event), [])
        for i, (registered, _) in enumerate(handlers):
            if registered == handler:
                del handlers[i]
                return

    def listener_count(self, event: EventName) -> int:
        return len(self._handlers.get(_coerce_event(event), []))

    def emit(self, event: EventName, payload: Any = None) -> None:
        """Deliver ``event`` to every current subscriber."""
        event = _coerce_event(event)
        handlers = self._handlers.get(event)
        if not handlers:
            return

        # Subscribers added or removed during delivery apply to the next emit
        for entry in list(handlers):
            handler, once = entry
            if once and entry in handlers:
                handlers.remove(entry)
            if event in NO_PAYLOAD_EVENTS:
                handler()
            else:
                handler(payload)

    def _subscribe(self, event: EventName, handler: Callable[..., Any], once: bool):
        if not callable(handler):
            raise TypeError(f"Expected handler to be callable, got {type(handler).__name__}")
        self._handlers.setdefault(_coerce_event(event), []).append((handler, once))
        return handler
