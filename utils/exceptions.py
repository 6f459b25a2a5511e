"""
Custom Exception Classes for the Bluesky Poster

This module defines custom exceptions for better error handling and
categorization of failures across the application.
"""

from typing import Optional


class BskyPosterError(Exception):
    """Base exception for all recoverable Bluesky Poster errors."""
    pass


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(BskyPosterError):
    """Raised when configuration validation fails or required settings are missing."""
    pass


# =============================================================================
# Session Errors
# =============================================================================

class SessionError(BskyPosterError):
    """Base exception for session-related errors."""
    pass


class TokenDecodeError(SessionError):
    """Raised when a bearer token's payload cannot be decoded."""
    pass


# =============================================================================
# Record Errors
# =============================================================================

class RecordError(BskyPosterError):
    """Base exception for post record errors."""
    pass


class InvalidPostError(RecordError):
    """Raised when a post record cannot be built from the given input."""
    pass


class RecordFormatError(RecordError):
    """Raised when a serialized record or facet has an unexpected shape."""
    pass


# =============================================================================
# Social Media Errors
# =============================================================================

class SocialMediaError(BskyPosterError):
    """Base exception for social media platform errors."""
    pass


class AuthenticationError(SocialMediaError):
    """Raised when authentication or session renewal fails."""
    pass


class PostingError(SocialMediaError):
    """Raised when posting to the platform fails."""
    pass


class XrpcError(SocialMediaError):
    """Raised by a transport when an XRPC call does not return a payload."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class XrpcHttpError(XrpcError):
    """Raised when the server answered with a non-success HTTP status."""

    def __init__(self, status_code: int, message: str):
        super().__init__(message, status_code=status_code)

    @property
    def retryable(self) -> bool:
        """Server errors and rate limiting may succeed on a later attempt; other 4xx will not."""
        return self.status_code >= 500 or self.status_code == 429


# =============================================================================
# Fatal Errors
# =============================================================================

class FatalError(Exception):
    """
    Base exception for unrecoverable conditions.

    Deliberately not a BskyPosterError: handlers that catch ordinary
    failures must not catch these.
    """
    pass


class IdentityMismatchError(FatalError):
    """Raised when a session renewal describes a different account."""

    def __init__(self, expected_did: str, actual_did: str):
        super().__init__(
            f"DID mismatch during session refresh: session is {expected_did}, "
            f"renewal reported {actual_did}"
        )
        self.expected_did = expected_did
        self.actual_did = actual_did
