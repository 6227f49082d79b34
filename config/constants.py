"""
Application Constants

Centralizes fixed values for the voice load engine that are not meant to be
tuned per deployment. Tunable values live in config.settings.

Usage:
    from config.constants import MAX_CANDIDATES, MIN_ALIAS_KEY_LENGTH
"""

# =============================================================================
# Matching
# =============================================================================

# Runner-up stops offered for disambiguation
MAX_CANDIDATES = 3

# Learned aliases must be longer than this (guards "yes", "no", "ok")
MIN_ALIAS_KEY_LENGTH = 3

# Field weights for the stop index (address line 1 is the most discriminative)
STOP_INDEX_WEIGHTS = {
    "address_line1": 0.6,
    "full_address": 0.3,
    "notes": 0.1,
}

# Bonus for tokens that share a phonetic key
PHONETIC_BONUS = 0.15

# Prefix matches ("flem" -> "fleming") score at least this much
PARTIAL_WORD_SCORE = 0.9

# Shortest token treated as a partial word
PARTIAL_WORD_MIN_LENGTH = 3


# =============================================================================
# Speech Feedback
# =============================================================================

TONE_START = "start"
TONE_SUCCESS = "success"
TONE_ERROR = "error"
TONE_ALERT = "alert"

# Recognizer error codes that are expected and not surfaced
BENIGN_SPEECH_ERRORS = frozenset({"no-speech"})

MSG_NO_MATCH = "No address match found."
MSG_UNDO = "Last package removed."
MSG_NOTHING_TO_UNDO = "Nothing to undo."
MSG_MULTIPLE_MATCHES = "Multiple matches found. Please say the number or clarify."
MSG_HELP = (
    "You can say an address, say undo to remove the last package, "
    "say summary for a session summary, or say repeat to hear the last address."
)
MSG_NOTHING_TO_REPEAT = "No address loaded yet."
MSG_STALE_STOP = "That stop is no longer on the route."
