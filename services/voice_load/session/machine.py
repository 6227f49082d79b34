"""
Voice Load State Machine

Explicit tagged-union states and events for a hands-free loading session,
plus a pure ``transition`` function. Side effects (timers, speech, package
commits) belong to VoiceSession; this module only decides the next state.

    booting -> listening <-> processing -> confirming -> success -> listening
                                       +-> suggesting
                                       +-> error -> listening
    any non-terminal -> paused -> listening
    any non-terminal -> summary (terminal)
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Dict, Any, List, Optional, Union

from core.models import PackageSize
from services.voice_load.analytics import SessionSummary
from services.voice_load.extraction import ExtractedEntities
from utils.logging import get_logger

logger = get_logger(__name__)


class Mode(str, Enum):
    """Session state tags."""
    BOOTING = "booting"
    LISTENING = "listening"
    PROCESSING = "processing"
    CONFIRMING = "confirming"
    SUGGESTING = "suggesting"
    SUCCESS = "success"
    ERROR = "error"
    PAUSED = "paused"
    SUMMARY = "summary"


@dataclass(frozen=True)
class MatchResult:
    """A stop chosen for a transcript, carried through confirm and commit."""
    stop_id: str
    address: str
    confidence: float
    transcript: str = ""
    stop_number: Optional[int] = None      # display cache only
    source: str = "none"
    extracted: ExtractedEntities = field(default_factory=ExtractedEntities)
    combined_notes: tuple = ()

    @property
    def size(self) -> PackageSize:
        return self.extracted.size

    def to_dict(self) -> Dict[str, Any]:
        return {
            'stop_id': self.stop_id,
            'address': self.address,
            'confidence': self.confidence,
            'transcript': self.transcript,
            'stop_number': self.stop_number,
            'source': self.source,
            'extracted': self.extracted.to_dict(),
            'combined_notes': list(self.combined_notes),
        }


# =============================================================================
# STATES
# =============================================================================

@dataclass(frozen=True)
class Booting:
    mode: ClassVar[Mode] = Mode.BOOTING


@dataclass(frozen=True)
class Listening:
    mode: ClassVar[Mode] = Mode.LISTENING
    transcript: str = ""


@dataclass(frozen=True)
class Processing:
    mode: ClassVar[Mode] = Mode.PROCESSING
    transcript: str = ""


@dataclass(frozen=True)
class Confirming:
    mode: ClassVar[Mode] = Mode.CONFIRMING
    match: Optional[MatchResult] = None


@dataclass(frozen=True)
class Suggesting:
    mode: ClassVar[Mode] = Mode.SUGGESTING
    candidates: tuple = ()
    transcript: str = ""


@dataclass(frozen=True)
class Success:
    mode: ClassVar[Mode] = Mode.SUCCESS
    match: Optional[MatchResult] = None


@dataclass(frozen=True)
class Error:
    mode: ClassVar[Mode] = Mode.ERROR
    error: str = ""


@dataclass(frozen=True)
class Paused:
    mode: ClassVar[Mode] = Mode.PAUSED


@dataclass(frozen=True)
class Summary:
    mode: ClassVar[Mode] = Mode.SUMMARY
    summary: Optional[SessionSummary] = None


VoiceLoadState = Union[
    Booting, Listening, Processing, Confirming, Suggesting,
    Success, Error, Paused, Summary,
]


# =============================================================================
# EVENTS
# =============================================================================

@dataclass(frozen=True)
class Boot:
    pass


@dataclass(frozen=True)
class Transcript:
    transcript: str


@dataclass(frozen=True)
class Match:
    match: MatchResult


@dataclass(frozen=True)
class Candidates:
    candidates: tuple
    transcript: str = ""


@dataclass(frozen=True)
class Confirm:
    pass


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class Undo:
    pass


@dataclass(frozen=True)
class Fail:
    error: str


@dataclass(frozen=True)
class Reset:
    pass


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class Resume:
    pass


@dataclass(frozen=True)
class Finish:
    summary: Optional[SessionSummary] = None


VoiceLoadEvent = Union[
    Boot, Transcript, Match, Candidates, Confirm, Cancel, Undo,
    Fail, Reset, Pause, Resume, Finish,
]


# =============================================================================
# TRANSITIONS
# =============================================================================

_TRANSCRIPT_FROM = {Mode.LISTENING, Mode.CONFIRMING, Mode.SUGGESTING}
_RESET_FROM = {Mode.PROCESSING, Mode.SUCCESS, Mode.ERROR, Mode.SUGGESTING}


def is_terminal(state: VoiceLoadState) -> bool:
    return state.mode == Mode.SUMMARY


def transition(state: VoiceLoadState, event: VoiceLoadEvent) -> VoiceLoadState:
    """
    Compute the next state.

    Events that are not valid in the current state return ``state``
    unchanged (the same object), so callers can detect a no-op with ``is``.
    """
    mode = state.mode

    if is_terminal(state):
        return state

    if isinstance(event, Pause):
        return state if mode == Mode.PAUSED else Paused()

    if isinstance(event, Finish):
        return Summary(summary=event.summary)

    if isinstance(event, (Boot, Resume)):
        if mode in (Mode.BOOTING, Mode.PAUSED):
            return Listening()
        return state

    if mode == Mode.PAUSED:
        return state

    if isinstance(event, Fail):
        # No recognizer runs before boot
        if mode == Mode.BOOTING:
            return state
        return Error(error=event.error)

    if isinstance(event, Transcript):
        if mode in _TRANSCRIPT_FROM:
            return Processing(transcript=event.transcript)
        return state

    if isinstance(event, Match):
        if mode in (Mode.PROCESSING, Mode.SUGGESTING):
            return Confirming(match=event.match)
        return state

    if isinstance(event, Candidates):
        if mode == Mode.PROCESSING:
            return Suggesting(candidates=tuple(event.candidates), transcript=event.transcript)
        return state

    if isinstance(event, Confirm):
        if mode == Mode.CONFIRMING:
            return Success(match=state.match)
        return state

    if isinstance(event, Cancel):
        if mode in (Mode.CONFIRMING, Mode.SUGGESTING):
            return Listening()
        return state

    if isinstance(event, Undo):
        if mode == Mode.PROCESSING:
            return Listening()
        return state

    if isinstance(event, Reset):
        if mode in _RESET_FROM:
            return Listening()
        return state

    logger.debug(f"Unhandled event {type(event).__name__} in {mode.value}")
    return state


def candidates_of(state: VoiceLoadState) -> List[MatchResult]:
    if isinstance(state, Suggesting):
        return list(state.candidates)
    return []
