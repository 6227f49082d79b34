"""
Logging Configuration Module

Console logging for the voice loading engine. Human-readable colored lines
while developing, one JSON object per line when the host ships logs to an
aggregator (set LOG_JSON=true).

Usage:
    from utils.logging import get_logger, log_voice_event

    logger = get_logger(__name__)
    logger.debug("Rebuilt stop index over 42 stops")
    log_voice_event("confirm", True, "large fleming road", {"stop": "s1"})
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional, TextIO

from config.settings import settings

# Attribute set on records emitted by log_voice_event
VOICE_FIELDS_ATTR = "voice"

# Libraries whose INFO chatter drowns out session events
_QUIET_LOGGERS = ("asyncio", "redis", "aiofiles")


# =============================================================================
# Custom Formatters
# =============================================================================

class ColoredFormatter(logging.Formatter):
    """Console formatter that tints the level name by severity."""

    PALETTE = {
        "DEBUG": "\033[2;36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[1;41m",
    }
    RESET = "\033[0m"

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )

    def formatMessage(self, record: logging.LogRecord) -> str:
        # Tint a copy of the fields so other handlers see the plain level name
        fields = dict(record.__dict__)
        tint = self.PALETTE.get(record.levelname, "")
        fields["levelname"] = f"{tint}{record.levelname:<7}{self.RESET}"
        return self._style._fmt % fields


class JSONFormatter(logging.Formatter):
    """
    One JSON object per record.

    Voice events carry their structured fields (event, success, transcript
    and details) under a "voice" key so aggregators can filter on them
    without parsing the message text.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "where": f"{record.module}:{record.lineno}",
        }

        voice = getattr(record, VOICE_FIELDS_ATTR, None)
        if voice:
            entry["voice"] = voice

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


# =============================================================================
# Logger Configuration
# =============================================================================

def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
    stream: Optional[TextIO] = None,
) -> None:
    """
    Install a single console handler on the root logger.

    Args:
        level: Level name. Falls back to settings.LOG_LEVEL, then to DEBUG or
               INFO depending on settings.DEBUG.
        json_format: Emit JSON lines. Falls back to settings.LOG_JSON.
        stream: Destination, stdout by default.

    Calling it again replaces the previous handler.
    """
    level_name = (level or settings.LOG_LEVEL or ("DEBUG" if settings.DEBUG else "INFO")).upper()
    use_json = settings.LOG_JSON if json_format is None else json_format
    numeric_level = logging.getLevelName(level_name)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(JSONFormatter() if use_json else ColoredFormatter())

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    get_logger(__name__).debug(f"{settings.APP_NAME} {settings.APP_VERSION} logging at {level_name}")


def get_logger(name: str) -> logging.Logger:
    """Module logger; pass __name__."""
    return logging.getLogger(name)


# =============================================================================
# Convenience Functions
# =============================================================================

def log_voice_event(
    event: str,
    success: bool,
    transcript: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log one step of a loading session on the "voice" logger.

    Successful steps log at INFO, failed ones at WARNING. The message reads
    like "CONFIRM ok | 'large fleming road' | stop=s1"; the same fields are
    attached to the record for JSONFormatter.

    Args:
        event: Step name such as "match", "confirm" or "undo".
        success: Whether the step went the way the driver wanted.
        transcript: Utterance behind the step, truncated in the message.
        details: Extra key/value context.
    """
    parts = [f"{event.upper()} {'ok' if success else 'failed'}"]
    if transcript:
        parts.append(repr(transcript[:60]))
    if details:
        parts.append(", ".join(f"{key}={value}" for key, value in details.items()))

    fields = {
        "event": event,
        "success": success,
        "transcript": transcript,
        "details": details or {},
    }
    get_logger("voice").log(
        logging.INFO if success else logging.WARNING,
        " | ".join(parts),
        extra={VOICE_FIELDS_ATTR: fields},
    )
