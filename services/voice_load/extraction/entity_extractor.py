"""
Entity Extractor

Pulls package attributes out of a spoken loading command and returns the
leftover text as a search query for stop matching.

    "large priority fleming road" -> size=large, priority, query "fleming road"

Features:
- Ordered, mutually exclusive size classes (large checked before small)
- Priority and note keywords
- Filler word removal and number-word -> digit normalization
- Single pass: re-extracting the query changes nothing
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional, Pattern, Tuple

from core.models import PackageSize
from services.voice_load.config import (
    SIZE_KEYWORDS,
    PRIORITY_KEYWORDS,
    NOTE_KEYWORDS,
    PRIORITY_NOTE,
    FILLER_WORDS,
    NUMBER_WORDS,
    all_entity_keywords,
)


@dataclass
class ExtractedEntities:
    """Package attributes spoken alongside the address."""
    size: PackageSize = PackageSize.MEDIUM
    notes: List[str] = field(default_factory=list)
    priority: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'size': self.size.value,
            'notes': list(self.notes),
            'priority': self.priority,
        }


@dataclass
class ExtractionResult:
    """Result of entity extraction."""
    clean_search_query: str
    extracted: ExtractedEntities


def _word_pattern(words) -> Pattern:
    return re.compile(r'\b(?:' + '|'.join(re.escape(w) for w in words) + r')\b')


class EntityExtractor:
    """
    Strip size, priority and note keywords from a transcript.

    Stateless after construction; ``extract`` has no side effects.
    """

    def __init__(self):
        """Initialize with compiled patterns."""
        self._compile_patterns()

    def _compile_patterns(self):
        """Pre-compile all regex patterns for performance."""
        self._size_patterns: List[Tuple[PackageSize, Pattern]] = [
            (size, _word_pattern(words)) for size, words in SIZE_KEYWORDS
        ]
        self._priority_pattern = _word_pattern(PRIORITY_KEYWORDS)
        self._note_patterns: List[Tuple[Pattern, str]] = [
            (_word_pattern([word]), note) for word, note in NOTE_KEYWORDS.items()
        ]
        self._keyword_pattern = _word_pattern(all_entity_keywords())
        self._filler_pattern = _word_pattern(FILLER_WORDS)
        self._number_pattern = _word_pattern(NUMBER_WORDS)

    def extract(self, text: Optional[str]) -> ExtractionResult:
        """
        Extract entities from a transcript.

        Args:
            text: Raw transcript (any case, may be empty)

        Returns:
            ExtractionResult with the cleaned query and extracted attributes.
            Pure keyword input ("large urgent") yields an empty query.
        """
        extracted = ExtractedEntities()
        working = self._strip_punctuation((text or '').lower())

        # Size classes are mutually exclusive; first class checked wins
        for size, pattern in self._size_patterns:
            if pattern.search(working):
                extracted.size = size
                break

        if self._priority_pattern.search(working):
            extracted.priority = True
            extracted.notes.append(PRIORITY_NOTE)

        for pattern, note in self._note_patterns:
            if pattern.search(working) and note not in extracted.notes:
                extracted.notes.append(note)

        working = self._keyword_pattern.sub(' ', working)

        return ExtractionResult(
            clean_search_query=self.normalize_query(working),
            extracted=extracted,
        )

    def normalize_query(self, text: str) -> str:
        """
        Normalize search text: drop filler words, convert number words,
        strip punctuation and collapse whitespace.
        """
        clean = self._strip_punctuation(text.lower())
        clean = self._filler_pattern.sub(' ', clean)
        clean = self._number_pattern.sub(lambda m: NUMBER_WORDS[m.group(0)], clean)
        return re.sub(r'\s+', ' ', clean).strip()

    @staticmethod
    def _strip_punctuation(text: str) -> str:
        text = text.replace("'", "")
        return re.sub(r'[^\w\s]', ' ', text)


# Singleton instance
_extractor_instance: Optional[EntityExtractor] = None


def get_entity_extractor() -> EntityExtractor:
    """Get or create the entity extractor singleton."""
    global _extractor_instance
    if _extractor_instance is None:
        _extractor_instance = EntityExtractor()
    return _extractor_instance


def extract(text: Optional[str]) -> ExtractionResult:
    """Module-level shortcut for ``get_entity_extractor().extract(text)``."""
    return get_entity_extractor().extract(text)
