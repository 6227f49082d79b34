"""
Voice Load Config Package

Keyword classes and word lists for voice package loading.
"""

from services.voice_load.config.keywords import (
    SIZE_KEYWORDS,
    PRIORITY_KEYWORDS,
    NOTE_KEYWORDS,
    PRIORITY_NOTE,
    FILLER_WORDS,
    NUMBER_WORDS,
    all_entity_keywords,
)

__all__ = [
    'SIZE_KEYWORDS',
    'PRIORITY_KEYWORDS',
    'NOTE_KEYWORDS',
    'PRIORITY_NOTE',
    'FILLER_WORDS',
    'NUMBER_WORDS',
    'all_entity_keywords',
]
