"""
Tick Report Data Models

These dataclasses are the payloads delivered to ticker subscribers. All
timestamps come from ``time.monotonic_ns()`` and all durations are signed
integer nanoseconds.

``to_dict()`` uses the camelCase keys of the published notification contract
(``tickCount``, ``timeSince``, ...) so reports can be handed straight to JSON
consumers.
"""

from dataclasses import dataclass
from typing import Any, Dict
import json


@dataclass(frozen=True)
class TimeSince:
    """
    Durations from a comparator instant back to the run's reference points.

    On the first tick of a run there is no previous tick, so both interval
    fields are 0.
    """
    start: int                    # comparator - run start
    last_interval_start: int = 0  # comparator - previous tick start
    last_interval_finish: int = 0  # comparator - previous tick finish

    def to_dict(self) -> Dict[str, int]:
        return {
            "start": self.start,
            "lastIntervalStart": self.last_interval_start,
            "lastIntervalFinish": self.last_interval_finish,
        }


@dataclass(frozen=True)
class TickReport:
    """Payload of the ``updating``, ``updated`` and ``stopping`` notifications."""
    tick_count: int
    time_since: TimeSince

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tickCount": self.tick_count,
            "timeSince": self.time_since.to_dict(),
        }


@dataclass(frozen=True)
class StopReport:
    """
    Summary of a finished run.

    Returned by ``Ticker.stop()`` and delivered with the ``stopped``
    notification.
    """
    tick_count: int
    time_started: int   # monotonic ns at start()
    time_stopped: int   # monotonic ns when stop() finished clearing state
    time_elapsed: int   # time_stopped - time_started

    @property
    def elapsed_seconds(self) -> float:
        return self.time_elapsed / 1e9

    def to_dict(self) -> Dict[str, int]:
        return {
            "tickCount": self.tick_count,
            "timeStarted": self.time_started,
            "timeStopped": self.time_stopped,
            "timeElapsed": self.time_elapsed,
        }

    def to_json(self) -> str:
        """Serialize to JSON."""
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_json(cls, json_str: str) -> "StopReport":
        """Deserialize from JSON."""
        data = json.loads(json_str)
        return cls(
            tick_count=data.get("tickCount", 0),
            time_started=data.get("timeStarted", 0),
            time_stopped=data.get("timeStopped", 0),
            time_elapsed=data.get("timeElapsed", 0),
        )
