"""
Phonetic Matcher

Token-level similarity for address words heard through speech recognition.
"""

import re
from typing import Iterable, Optional, Tuple

from rapidfuzz.distance import Levenshtein

from config.constants import PHONETIC_BONUS, PARTIAL_WORD_SCORE, PARTIAL_WORD_MIN_LENGTH


class PhoneticMatcher:
    """
    Compare single address tokens ("flemming" vs "fleming").

    Combines normalized edit distance, a partial-word rule for clipped
    transcripts, and a Soundex-like key so sound-alike spellings score higher.
    """

    # Sound mappings for Soundex-like algorithm
    SOUND_MAP = {
        'b': '1', 'f': '1', 'p': '1', 'v': '1',
        'c': '2', 'g': '2', 'j': '2', 'k': '2', 'q': '2', 's': '2', 'x': '2', 'z': '2',
        'd': '3', 't': '3',
        'l': '4',
        'm': '5', 'n': '5',
        'r': '6',
    }

    @classmethod
    def get_phonetic_key(cls, word: str) -> str:
        """
        Generate phonetic key for a word.

        Similar to Soundex but simplified. Digits and punctuation are ignored,
        so purely numeric tokens have an empty key.

        Args:
            word: Input word

        Returns:
            4-character phonetic key, or "" when the word has no letters
        """
        if not word:
            return ""

        word = re.sub(r'[^A-Z]', '', word.upper())

        if not word:
            return ""

        # Keep first letter
        result = word[0]

        prev_code = cls.SOUND_MAP.get(word[0].lower(), '0')

        for char in word[1:]:
            code = cls.SOUND_MAP.get(char.lower(), '0')
            if code != '0' and code != prev_code:
                result += code
            prev_code = code

        # Pad or truncate to 4 characters
        result = (result + '000')[:4]

        return result.lower()

    @classmethod
    def token_similarity(cls, heard: str, target: str) -> float:
        """
        Similarity between a heard token and a target token.

        Args:
            heard: Token from the transcript
            target: Token from a stop field

        Returns:
            Similarity in [0, 1]
        """
        heard = heard.lower()
        target = target.lower()

        if heard == target:
            return 1.0
        if not heard or not target:
            return 0.0

        score = Levenshtein.normalized_similarity(heard, target)

        # Clipped word: "flem" for "fleming"
        if len(heard) >= PARTIAL_WORD_MIN_LENGTH and target.startswith(heard):
            score = max(score, PARTIAL_WORD_SCORE)

        # Bonus for phonetic match (letters only; numbers must match by text)
        if heard.isalpha() and target.isalpha():
            if cls.get_phonetic_key(heard) == cls.get_phonetic_key(target):
                score = min(score + PHONETIC_BONUS, 1.0)

        return score

    @classmethod
    def find_best_match(
        cls,
        token: str,
        candidates: Iterable[str]
    ) -> Tuple[Optional[str], float]:
        """
        Find the best matching token from candidates.

        Args:
            token: Heard token
            candidates: Tokens of the target field

        Returns:
            (best candidate, score), or (None, 0.0) with no candidates
        """
        best_match = None
        best_score = 0.0

        for candidate in candidates:
            score = cls.token_similarity(token, candidate)
            if score > best_score:
                best_score = score
                best_match = candidate
                if best_score == 1.0:
                    break

        return best_match, best_score
