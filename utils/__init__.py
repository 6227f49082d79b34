"""
Utilities Module

Provides shared utilities across the application:
- Logging configuration
- Custom exceptions
- Redis connection
- Address display formatting
"""

from .logging import get_logger, setup_logging, log_voice_event
from .exceptions import (
    RuralMailError,
    StaleStopReferenceError,
    PackageStoreError,
    AliasStoreError,
    SpeechInputError,
)
from .address import AddressDisplay, format_address_for_display

__all__ = [
    # Logging
    "get_logger",
    "setup_logging",
    "log_voice_event",
    # Exceptions
    "RuralMailError",
    "StaleStopReferenceError",
    "PackageStoreError",
    "AliasStoreError",
    "SpeechInputError",
    # Address
    "AddressDisplay",
    "format_address_for_display",
]
