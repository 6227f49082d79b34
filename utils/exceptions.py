"""
Custom Exceptions Module

Defines application-specific exceptions for clearer error handling.
All exceptions inherit from a base RuralMailError for easy catching.

Usage:
    from utils.exceptions import StaleStopReferenceError

    try:
        session.commit(match)
    except StaleStopReferenceError as e:
        logger.error(f"Commit aborted: {e}")
"""

from typing import Optional, Dict, Any


class RuralMailError(Exception):
    """
    Base exception for all RuralMail application errors.

    Attributes:
        message: Human-readable error message
        details: Additional error details (optional)
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logs and reports."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


# =============================================================================
# Route / Package Exceptions
# =============================================================================

class StaleStopReferenceError(RuralMailError):
    """
    Raised when a commit references a stop that is no longer on the route.

    Common causes:
        - Stop deleted while a prediction was awaiting confirmation
        - Route cleared or re-imported mid-session
    """

    def __init__(
        self,
        message: str = "Stop no longer exists on the route",
        stop_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details={"stop_id": stop_id, **(details or {})}
        )


class PackageStoreError(RuralMailError):
    """
    Raised when a package store operation cannot be applied.

    Common causes:
        - Updating a package id that does not exist
        - Restoring after the undo window has passed
    """

    def __init__(
        self,
        message: str = "Package store operation failed",
        package_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details={"package_id": package_id, **(details or {})}
        )


# =============================================================================
# Persistence Exceptions
# =============================================================================

class AliasStoreError(RuralMailError):
    """
    Raised by key-value backends when alias data cannot be read or written.

    AliasStore catches this and degrades to "no learned aliases".
    """

    def __init__(
        self,
        message: str = "Alias storage failed",
        key: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            details={"key": key, **(details or {})}
        )


# =============================================================================
# Voice/Speech Exceptions
# =============================================================================

class SpeechInputError(RuralMailError):
    """
    Raised for speech recognizer failures that should be surfaced.

    Common causes:
        - Microphone permission denied
        - Speech recognition not supported
        - Network error in the recognizer
    """

    def __init__(
        self,
        message: str = "Speech recognition failed",
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        super().__init__(
            message=message,
            details={"code": code, **(details or {})}
        )
