"""
Speech Boundaries

Interfaces the voice session uses to reach the speech recognizer, speech
synthesizer and tone player, plus null implementations for headless use.

Recognizers deliver results by calling ``VoiceSession.handle_speech_result``
and ``VoiceSession.handle_speech_error``; the session only starts and stops
them.
"""

from typing import Callable, Optional, Protocol

from utils.logging import get_logger

logger = get_logger(__name__)


class SpeechInput(Protocol):
    """Speech recognizer control. Both calls must be idempotent."""

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...


class SpeechOutput(Protocol):
    """
    Speech synthesizer.

    ``on_complete`` must be called exactly once when playback ends, including
    when synthesis fails, so callers never wait forever.
    """

    def speak(self, text: str, on_complete: Optional[Callable[[], None]] = None) -> None:
        ...


class TonePlayer(Protocol):
    """Fire-and-forget non-verbal feedback. Must never raise."""

    def play_tone(self, kind: str) -> None:
        ...


class NullSpeechInput:
    """Recognizer stand-in that only tracks whether it is running."""

    def __init__(self):
        self.running = False

    def start(self) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False


class NullSpeechOutput:
    """Synthesizer stand-in that logs the text and completes immediately."""

    def speak(self, text: str, on_complete: Optional[Callable[[], None]] = None) -> None:
        logger.info(f"🔊 {text}")
        if on_complete is not None:
            on_complete()


class NullTonePlayer:
    def play_tone(self, kind: str) -> None:
        logger.debug(f"tone: {kind}")
