"""Notification payloads published by the ticker."""

from .tick_report import TimeSince, TickReport, StopReport

__all__ = ['TimeSince', 'TickReport', 'StopReport']
