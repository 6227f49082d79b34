"""
Route Brain

Interprets a spoken loading command and predicts which stop it refers to.

Resolution order (first match wins):
1. Stop number   - "stop 3" -> third stop on the route
2. Learned alias - exact cleaned phrase taught by an earlier correction
3. Fuzzy search  - StopIndex over address line, full address and notes
4. No match

The brain is bound to one stop list and never mutates it; build a new brain
whenever the route changes. Aliases live in a shared AliasStore.

Usage:
    brain = await RouteBrain.create(route, alias_store)
    prediction = brain.predict("large fleming road")
    if prediction.stop:
        ...
    await brain.learn("smith farm", stop_id)
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional, Sequence

from config.constants import MAX_CANDIDATES, MIN_ALIAS_KEY_LENGTH
from core.models import Stop
from services.voice_load.extraction import EntityExtractor, ExtractedEntities, get_entity_extractor
from services.voice_load.learning import AliasStore
from services.voice_load.matching import StopIndex
from utils.logging import get_logger

logger = get_logger(__name__)


class PredictionSource(str, Enum):
    """Where a prediction came from."""
    EXACT = "exact"
    ALIAS = "alias"
    FUZZY = "fuzzy"
    STOP_NUMBER = "stop_number"
    NONE = "none"


@dataclass
class Prediction:
    """
    Output of one ``RouteBrain.predict`` call.

    ``stop`` is None exactly when ``confidence`` is 0 and ``source`` is NONE.
    ``stop`` and ``candidates`` reference the brain's route list; they are not
    copies.
    """
    original_transcript: str
    extracted: ExtractedEntities
    search_query: str = ""
    stop: Optional[Stop] = None
    candidates: List[Stop] = field(default_factory=list)
    candidate_confidences: List[float] = field(default_factory=list)
    confidence: float = 0.0
    source: PredictionSource = PredictionSource.NONE

    @property
    def matched(self) -> bool:
        return self.stop is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'stop_id': self.stop.id if self.stop else None,
            'candidate_ids': [c.id for c in self.candidates],
            'candidate_confidences': list(self.candidate_confidences),
            'confidence': self.confidence,
            'source': self.source.value,
            'original_transcript': self.original_transcript,
            'search_query': self.search_query,
            'extracted': self.extracted.to_dict(),
        }


class RouteBrain:
    """
    Predict stops from transcripts and learn from corrections.

    Holds no session state; safe to rebuild on every route change.
    """

    STOP_NUMBER_PATTERN = re.compile(r'\bstop\s?(\d+)\b')

    def __init__(
        self,
        stops: Sequence[Stop],
        alias_store: Optional[AliasStore] = None,
        extractor: Optional[EntityExtractor] = None,
        fuzzy_cutoff: Optional[float] = None
    ):
        """
        Args:
            stops: Ordered route stops (treated as read-only)
            alias_store: Learned aliases; a private in-memory store if omitted
            extractor: Entity extractor, defaults to the shared instance
            fuzzy_cutoff: Override for the stop index similarity cutoff
        """
        self._stops: tuple = tuple(stops)
        self.alias_store = alias_store if alias_store is not None else AliasStore()
        self.extractor = extractor or get_entity_extractor()
        self.index = StopIndex(self._stops, cutoff=fuzzy_cutoff)

    @classmethod
    async def create(
        cls,
        stops: Sequence[Stop],
        alias_store: AliasStore,
        **kwargs
    ) -> "RouteBrain":
        """Build a brain, loading the alias store first if needed."""
        if not alias_store.loaded:
            await alias_store.load()
        return cls(stops, alias_store, **kwargs)

    @property
    def stops(self) -> tuple:
        return self._stops

    def find_stop(self, stop_id: str) -> Optional[Stop]:
        for stop in self._stops:
            if stop.id == stop_id:
                return stop
        return None

    def stop_number_for(self, stop_id: str) -> Optional[int]:
        """1-based position of a stop on this brain's route."""
        for i, stop in enumerate(self._stops):
            if stop.id == stop_id:
                return i + 1
        return None

    # =========================================================================
    # PREDICTION
    # =========================================================================

    def predict(self, transcript: str) -> Prediction:
        """
        Predict the stop a transcript refers to.

        Args:
            transcript: Final transcript text

        Returns:
            Prediction (source NONE with confidence 0 when nothing matched)
        """
        extraction = self.extractor.extract(transcript)
        query = extraction.clean_search_query
        result = Prediction(
            original_transcript=transcript,
            extracted=extraction.extracted,
            search_query=query,
        )

        # Pure keyword utterance ("large") - nothing to search for
        if not query:
            return result

        # 1. Stop number
        stop_num = self.STOP_NUMBER_PATTERN.search(query)
        if stop_num:
            index = int(stop_num.group(1)) - 1
            if 0 <= index < len(self._stops):
                return self._resolved(result, self._stops[index], 1.0, PredictionSource.STOP_NUMBER)

        # 2. Learned alias
        alias_target = self.alias_store.get(query)
        if alias_target is not None:
            stop = self.find_stop(alias_target)
            if stop is not None:
                return self._resolved(result, stop, 1.0, PredictionSource.ALIAS)
            logger.debug(f"Alias '{query}' points at missing stop {alias_target}, falling back to fuzzy")

        # 3. Fuzzy search
        matches = self.index.search(query, limit=MAX_CANDIDATES)
        if matches and matches[0].confidence > 0:
            result.candidates = [m.stop for m in matches]
            result.candidate_confidences = [m.confidence for m in matches]
            return self._resolved(result, matches[0].stop, matches[0].confidence, PredictionSource.FUZZY)

        # 4. No match
        return result

    @staticmethod
    def _resolved(
        result: Prediction,
        stop: Stop,
        confidence: float,
        source: PredictionSource
    ) -> Prediction:
        result.stop = stop
        result.confidence = confidence
        result.source = source
        if not result.candidates:
            result.candidates = [stop]
            result.candidate_confidences = [confidence]
        return result

    # =========================================================================
    # LEARNING
    # =========================================================================

    async def learn(self, transcript: str, stop_id: str) -> bool:
        """
        Teach the brain that ``transcript`` means ``stop_id``.

        Short phrases (cleaned length <= 3) are ignored. Persistence failures
        are logged, never raised.

        Returns:
            True if an alias was recorded and persisted
        """
        query = self.extractor.extract(transcript).clean_search_query
        if len(query) <= MIN_ALIAS_KEY_LENGTH:
            logger.debug(f"Not learning short phrase '{query}'")
            return False

        persisted = await self.alias_store.set(query, stop_id)
        logger.info(f"Learned: '{query}' → {stop_id}")
        return persisted
