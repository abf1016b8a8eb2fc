"""
Exceptions raised by the ticker.

Each error also derives from the builtin category it belongs to, so callers
can catch either ``TickerError`` or e.g. ``TypeError``.
"""


class TickerError(Exception):
    """Base class for all ticker errors."""


class InvalidActionError(TickerError, TypeError):
    """Raised when a non-callable is registered as an action."""


class DuplicateActionIDError(TickerError, ValueError):
    """Raised when an action ID is already bound to an action."""

    def __init__(self, action_id: str):
        self.action_id = action_id
        super().__init__(f"The action ID '{action_id}' is already bound to an action")


class UnknownActionIDError(TickerError, LookupError):
    """Raised when removing an action ID that is not registered."""

    def __init__(self, action_id: str):
        self.action_id = action_id
        super().__init__(f"The action ID '{action_id}' doesn't exist")
