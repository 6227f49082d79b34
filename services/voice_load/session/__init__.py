"""
Session Package

Voice loading state machine, command detection and the session controller.
"""

from services.voice_load.session.boundaries import (
    SpeechInput,
    SpeechOutput,
    TonePlayer,
    NullSpeechInput,
    NullSpeechOutput,
    NullTonePlayer,
)
from services.voice_load.session.commands import (
    CommandDetector,
    VoiceCommand,
    get_command_detector,
)
from services.voice_load.session.machine import (
    Mode,
    MatchResult,
    VoiceLoadState,
    VoiceLoadEvent,
    transition,
    is_terminal,
    candidates_of,
)
from services.voice_load.session.voice_session import (
    VoiceSession,
    VoiceSessionConfig,
)

__all__ = [
    # Boundaries
    'SpeechInput',
    'SpeechOutput',
    'TonePlayer',
    'NullSpeechInput',
    'NullSpeechOutput',
    'NullTonePlayer',
    # Commands
    'CommandDetector',
    'VoiceCommand',
    'get_command_detector',
    # Machine
    'Mode',
    'MatchResult',
    'VoiceLoadState',
    'VoiceLoadEvent',
    'transition',
    'is_terminal',
    'candidates_of',
    # Controller
    'VoiceSession',
    'VoiceSessionConfig',
]
