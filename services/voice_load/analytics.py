"""
Voice Session Analytics

Append-only event log for a loading session, with a summary derived from the
log alone (no running counters).
"""

import json
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple


@dataclass(frozen=True)
class SessionEvent:
    type: str
    timestamp: float
    details: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {'type': self.type, 'timestamp': self.timestamp, 'details': dict(self.details)}


@dataclass(frozen=True)
class SessionSummary:
    loaded: int
    failed: int
    undo: int
    cancelled: int
    avg_confidence: float
    duration: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'loaded': self.loaded,
            'failed': self.failed,
            'undo': self.undo,
            'cancelled': self.cancelled,
            'avg_confidence': self.avg_confidence,
            'duration': self.duration,
        }

    def spoken(self) -> str:
        return (
            f"You have loaded {self.loaded} packages. {self.failed} failed. "
            f"Average confidence {round(self.avg_confidence * 100)} percent."
        )


class VoiceSessionAnalytics:
    """
    Passive session log.

    Event types used by the voice session: transcript, match, confirm,
    cancel, undo, error, learn.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._events: List[SessionEvent] = []
        self.start_time = clock()
        self.end_time: Optional[float] = None

    @property
    def events(self) -> Tuple[SessionEvent, ...]:
        return tuple(self._events)

    def log(self, type: str, details: Optional[Dict[str, Any]] = None) -> SessionEvent:
        event = SessionEvent(type=type, timestamp=self._clock(), details=MappingProxyType(dict(details or {})))
        self._events.append(event)
        return event

    def end(self) -> None:
        if self.end_time is None:
            self.end_time = self._clock()

    def count(self, type: str) -> int:
        return sum(1 for e in self._events if e.type == type)

    def get_summary(self) -> SessionSummary:
        matches = [e for e in self._events if e.type == 'match']
        avg_confidence = (
            sum(float(e.details.get('confidence', 0.0)) for e in matches) / len(matches)
            if matches else 0.0
        )
        end = self.end_time if self.end_time is not None else self._clock()
        return SessionSummary(
            loaded=self.count('confirm'),
            failed=self.count('error'),
            undo=self.count('undo'),
            cancelled=self.count('cancel'),
            avg_confidence=avg_confidence,
            duration=end - self.start_time,
        )

    def export(self) -> str:
        """Session log and summary as a JSON document."""
        return json.dumps({
            'events': [e.to_dict() for e in self._events],
            'summary': self.get_summary().to_dict(),
            'started': self.start_time,
            'ended': self.end_time if self.end_time is not None else self._clock(),
        }, indent=2, default=str)
