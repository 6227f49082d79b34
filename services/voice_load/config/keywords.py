"""
Keyword Configuration

Spoken keyword classes recognised while loading packages, plus the filler
and number words stripped from search queries.
"""

from typing import Dict, List, Tuple

from core.models import PackageSize


# Size classes in priority order - the first class that matches wins
SIZE_KEYWORDS: List[Tuple[PackageSize, Tuple[str, ...]]] = [
    (PackageSize.LARGE, ('large', 'big', 'heavy', 'huge', 'oversize', 'box')),
    (PackageSize.SMALL, ('small', 'tiny', 'letter', 'spur')),
]

PRIORITY_KEYWORDS: Tuple[str, ...] = ('priority', 'rush', 'express', 'urgent')

# Note keywords: spoken word -> note text attached to the package
NOTE_KEYWORDS: Dict[str, str] = {
    'fragile': 'Fragile',
}

PRIORITY_NOTE = 'Priority'

# Words that carry no address information
FILLER_WORDS: Tuple[str, ...] = ('the', 'to', 'at', 'on', 'for', 'package', 'please', 'add')

# Single number words -> digits ("stop three" -> "stop 3")
NUMBER_WORDS: Dict[str, str] = {
    'one': '1',
    'two': '2',
    'three': '3',
    'four': '4',
    'five': '5',
    'six': '6',
    'seven': '7',
    'eight': '8',
    'nine': '9',
    'ten': '10',
}


def all_entity_keywords() -> List[str]:
    """Every keyword removed from the search text, in match order."""
    words: List[str] = []
    for _, keywords in SIZE_KEYWORDS:
        words.extend(keywords)
    words.extend(PRIORITY_KEYWORDS)
    words.extend(NOTE_KEYWORDS)
    return words
