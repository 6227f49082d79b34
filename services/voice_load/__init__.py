"""
Voice Load Package

Hands-free package loading: entity extraction, stop matching, alias
learning, session analytics and the voice session controller.
"""

# Extraction
from services.voice_load.extraction import (
    EntityExtractor,
    ExtractedEntities,
    ExtractionResult,
    get_entity_extractor,
)

# Matching
from services.voice_load.matching import (
    PhoneticMatcher,
    StopIndex,
    StopMatch,
)

# Learning
from services.voice_load.learning import AliasStore

# Prediction
from services.voice_load.route_brain import (
    RouteBrain,
    Prediction,
    PredictionSource,
)

# Analytics
from services.voice_load.analytics import (
    VoiceSessionAnalytics,
    SessionEvent,
    SessionSummary,
)

# Session
from services.voice_load.session import (
    VoiceSession,
    VoiceSessionConfig,
    Mode,
    MatchResult,
)

__all__ = [
    'EntityExtractor',
    'ExtractedEntities',
    'ExtractionResult',
    'get_entity_extractor',
    'PhoneticMatcher',
    'StopIndex',
    'StopMatch',
    'AliasStore',
    'RouteBrain',
    'Prediction',
    'PredictionSource',
    'VoiceSessionAnalytics',
    'SessionEvent',
    'SessionSummary',
    'VoiceSession',
    'VoiceSessionConfig',
    'Mode',
    'MatchResult',
]
