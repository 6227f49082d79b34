"""
Voice Command Detection

Recognises control utterances spoken during a loading session, as opposed to
addresses. Patterns are anchored at the start of the utterance so an address
that merely contains "stop" or "delete" elsewhere is not mistaken for a
command.
"""

import re
from enum import Enum
from typing import List, Optional, Pattern, Tuple

from utils.logging import get_logger

logger = get_logger(__name__)


class VoiceCommand(str, Enum):
    """Control commands understood while processing a transcript."""
    NONE = "none"
    UNDO = "undo"
    HELP = "help"
    SUMMARY = "summary"
    REPEAT = "repeat"
    FINISH = "finish"


_ORDINALS = {
    'one': 1, 'first': 1,
    'two': 2, 'second': 2,
    'three': 3, 'third': 3,
}


class CommandDetector:
    """
    Detect control commands in final transcripts.

    Command groups are checked in priority order; undo first so "undo" is
    never treated as an address.
    """

    # Spoken during the confirm countdown to abort it
    CANCEL_PATTERN = r'^(?:stop|no|wrong|wait|cancel)\b'

    # Spoken while choosing between candidates; "stop 2" there is a pick, not a cancel
    DISMISS_PATTERN = r'^(?:no|wrong|wait|cancel|never ?mind)\b'

    COMMAND_PATTERNS = [
        (r'^(?:undo|delete|revert|remove last|oops)\b', VoiceCommand.UNDO),
        (r'^(?:help|what can i say|options|commands)$', VoiceCommand.HELP),
        (r'^(?:summary|how many|whats loaded|packages loaded)$', VoiceCommand.SUMMARY),
        (r'^(?:repeat|say again|last address)$', VoiceCommand.REPEAT),
        (r'^(?:finish|done|stop load|complete|finish load)$', VoiceCommand.FINISH),
    ]

    # "2", "number two", "option 2", "the second one"
    CANDIDATE_PATTERN = (
        r'^(?:the\s+)?(?:number|option|choice)?\s*'
        r'(\d+|one|two|three|first|second|third)(?:\s+one)?$'
    )

    def __init__(self):
        """Initialize with compiled patterns."""
        self._compile_patterns()

    def _compile_patterns(self):
        """Pre-compile all regex patterns for performance."""
        self._cancel = re.compile(self.CANCEL_PATTERN, re.IGNORECASE)
        self._dismiss = re.compile(self.DISMISS_PATTERN, re.IGNORECASE)
        self._commands: List[Tuple[Pattern, VoiceCommand]] = [
            (re.compile(p, re.IGNORECASE), cmd) for p, cmd in self.COMMAND_PATTERNS
        ]
        self._candidate = re.compile(self.CANDIDATE_PATTERN, re.IGNORECASE)

    @staticmethod
    def _normalize(text: str) -> str:
        text = (text or '').lower().replace("'", "")
        text = re.sub(r'[^\w\s]', ' ', text)
        return re.sub(r'\s+', ' ', text).strip()

    def is_cancel(self, text: str) -> bool:
        return bool(self._cancel.search(self._normalize(text)))

    def dismisses_suggestions(self, text: str) -> bool:
        return bool(self._dismiss.search(self._normalize(text)))

    def detect(self, text: str) -> VoiceCommand:
        """
        Detect a control command.

        Args:
            text: Final transcript

        Returns:
            The matched command or VoiceCommand.NONE
        """
        normalized = self._normalize(text)
        for pattern, command in self._commands:
            if pattern.search(normalized):
                logger.debug(f"Command {command.value} matched: '{normalized}'")
                return command
        return VoiceCommand.NONE

    def candidate_choice(self, text: str) -> Optional[int]:
        """
        Parse a spoken candidate pick.

        Returns:
            0-based candidate index, or None if the text is not a pick
        """
        match = self._candidate.search(self._normalize(text))
        if not match:
            return None
        token = match.group(1)
        number = int(token) if token.isdigit() else _ORDINALS[token]
        return number - 1 if number >= 1 else None


# Singleton instance
_detector_instance: Optional[CommandDetector] = None


def get_command_detector() -> CommandDetector:
    """Get or create the command detector singleton."""
    global _detector_instance
    if _detector_instance is None:
        _detector_instance = CommandDetector()
    return _detector_instance
