"""
Stop Index

Immutable fuzzy-search index over the current route's stops.

Each stop is indexed on three weighted fields:
- address_line1 (highest weight, most discriminative)
- full_address
- notes (low weight, catches landmarks like "the blue house")

A field contributes only when its similarity clears the cutoff; a stop with
no contributing field is not a match at all. Confidence is the weighted mean
of the contributing fields, and ``score`` is the matching distance
(``confidence == 1 - score``).

Known limitation: spoken numbers are not reconciled with house numbers
("three thirty three" does not match "333").
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from rapidfuzz.utils import default_process

from config.constants import STOP_INDEX_WEIGHTS
from config.settings import settings
from core.models import Stop
from services.voice_load.matching.phonetic_matcher import PhoneticMatcher
from utils.logging import get_logger

logger = get_logger(__name__)


def tokenize(text: Optional[str]) -> Tuple[str, ...]:
    """Lowercase, strip punctuation and split into tokens."""
    if not text:
        return ()
    return tuple(default_process(text).split())


@dataclass(frozen=True)
class StopMatch:
    """One ranked search result."""
    stop: Stop
    index: int                      # 0-based position in the route
    score: float                    # distance, 0.0 is a perfect match
    field_scores: Dict[str, float] = field(default_factory=dict)

    @property
    def confidence(self) -> float:
        return 1.0 - self.score

    @property
    def stop_number(self) -> int:
        return self.index + 1


@dataclass(frozen=True)
class _IndexedStop:
    index: int
    stop: Stop
    fields: Dict[str, Tuple[str, ...]]


class StopIndex:
    """
    Fuzzy matcher built once from an ordered stop list.

    The index snapshots the stops and their tokens at construction; build a new
    index whenever the route changes.

    Usage:
        index = StopIndex(route)
        matches = index.search("fleming road")
        best = matches[0].stop if matches else None
    """

    def __init__(
        self,
        stops: Sequence[Stop],
        cutoff: Optional[float] = None,
        weights: Optional[Dict[str, float]] = None
    ):
        """
        Args:
            stops: Ordered route stops
            cutoff: Minimum similarity for a field (and a stop) to match.
                    Defaults to settings.FUZZY_MATCH_CUTOFF.
            weights: Field weights, defaults to STOP_INDEX_WEIGHTS
        """
        self.cutoff = settings.FUZZY_MATCH_CUTOFF if cutoff is None else cutoff
        self.weights = dict(weights or STOP_INDEX_WEIGHTS)
        self._entries: Tuple[_IndexedStop, ...] = tuple(
            _IndexedStop(
                index=i,
                stop=stop,
                fields={
                    'address_line1': tokenize(stop.address_line1),
                    'full_address': tokenize(stop.full_address),
                    'notes': tokenize(stop.notes),
                },
            )
            for i, stop in enumerate(stops)
        )
        logger.debug(f"Built stop index over {len(self._entries)} stops")

    def __len__(self) -> int:
        return len(self._entries)

    def search(self, query: str, limit: Optional[int] = None) -> List[StopMatch]:
        """
        Search the index.

        Args:
            query: Search text
            limit: Maximum number of results

        Returns:
            Matches ordered best first (ties keep route order); empty when
            nothing clears the cutoff.
        """
        query_tokens = tokenize(query)
        if not query_tokens:
            return []

        matches: List[StopMatch] = []
        for entry in self._entries:
            match = self._score_entry(entry, query_tokens)
            if match is not None:
                matches.append(match)

        matches.sort(key=lambda m: (m.score, m.index))
        return matches[:limit] if limit else matches

    def _score_entry(
        self,
        entry: _IndexedStop,
        query_tokens: Tuple[str, ...]
    ) -> Optional[StopMatch]:
        field_scores: Dict[str, float] = {}
        for name, tokens in entry.fields.items():
            if not tokens or self.weights.get(name, 0) <= 0:
                continue
            similarity = self._field_similarity(query_tokens, tokens)
            if similarity >= self.cutoff:
                field_scores[name] = similarity

        if not field_scores:
            return None

        total_weight = sum(self.weights[name] for name in field_scores)
        confidence = sum(self.weights[name] * s for name, s in field_scores.items()) / total_weight
        confidence = max(0.0, min(1.0, confidence))

        return StopMatch(
            stop=entry.stop,
            index=entry.index,
            score=1.0 - confidence,
            field_scores=field_scores,
        )

    @staticmethod
    def _field_similarity(query_tokens: Tuple[str, ...], target_tokens: Tuple[str, ...]) -> float:
        """Mean of each query token's best match among the field's tokens."""
        total = 0.0
        for token in query_tokens:
            _, best = PhoneticMatcher.find_best_match(token, target_tokens)
            total += best
        return total / len(query_tokens)
