"""
Matching Package

Phonetic token matching and the fuzzy stop index.
"""

from services.voice_load.matching.phonetic_matcher import PhoneticMatcher
from services.voice_load.matching.stop_index import StopIndex, StopMatch, tokenize

__all__ = ['PhoneticMatcher', 'StopIndex', 'StopMatch', 'tokenize']
