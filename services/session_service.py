"""
Session Service Module

This module tracks the lifecycle of an AT Protocol session: decoding the
bearer tokens, deciding when the access token needs renewing, and merging
a refreshSession response back into the live session.
"""

import json
import time
from typing import Any, Callable, Dict, List, Optional

from config import settings
from data.models import Session, SessionDescription, SessionRenewal, TokenInfo
from utils.exceptions import IdentityMismatchError, TokenDecodeError
from utils.helpers import base64url_decode
from utils.logger import get_logger

logger = get_logger(__name__)


def decode_token_payload(token: str) -> Dict[str, Any]:
    """
    Decode the JSON payload (middle segment) of a JWT-shaped token.

    Args:
        token: A token of the form header.payload.signature

    Returns:
        Dict: The decoded payload

    Raises:
        TokenDecodeError: If the token is not three segments, or the payload
            is not base64url-encoded UTF-8 JSON object.
    """
    parts = token.split(".")
    if len(parts) != 3:
        raise TokenDecodeError(f"Invalid token format: expected 3 segments, got {len(parts)}")

    try:
        raw = base64url_decode(parts[1])
    except ValueError as e:
        raise TokenDecodeError(f"Invalid token payload encoding: {e}") from e

    try:
        payload = json.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise TokenDecodeError(f"Token payload is not UTF-8: {e}") from e
    except json.JSONDecodeError as e:
        raise TokenDecodeError(f"Token payload is not JSON: {e}") from e

    if not isinstance(payload, dict):
        raise TokenDecodeError("Token payload is not a JSON object")
    return payload


def _describe_token(token: str) -> TokenInfo:
    try:
        return TokenInfo(payload=decode_token_payload(token))
    except TokenDecodeError as e:
        return TokenInfo(error=str(e))


class SessionLifecycle:
    """Staleness checks, renewal merges and diagnostics for sessions."""

    def __init__(self, clock: Callable[[], float] = time.time, buffer_seconds: Optional[int] = None):
        """
        Initialize the lifecycle.

        Args:
            clock: Returns the current time in seconds since the epoch.
            buffer_seconds: Renew tokens expiring within this many seconds,
                defaults to settings.SESSION_REFRESH_BUFFER_SECONDS.
        """
        self.clock = clock
        self.buffer_seconds = (
            settings.SESSION_REFRESH_BUFFER_SECONDS if buffer_seconds is None else buffer_seconds
        )

    def needs_refresh(self, session: Session, now: Optional[float] = None,
                      buffer_seconds: Optional[int] = None) -> bool:
        """
        Check whether the session's access token is stale.

        A token is stale when it expires within the buffer. A token that
        cannot be decoded, or carries no integer exp, is not considered stale.

        Args:
            session: The session to check
            now: Current time in epoch seconds, defaults to the clock
            buffer_seconds: Overrides the lifecycle's buffer for this check

        Returns:
            bool: True if the access token should be renewed before use.
        """
        if buffer_seconds is None:
            buffer_seconds = self.buffer_seconds

        with session.lock:
            access_jwt = session.access_jwt

        try:
            payload = decode_token_payload(access_jwt)
        except TokenDecodeError as e:
            logger.debug(f"Access token not inspectable, skipping refresh: {e}")
            return False

        exp = payload.get("exp")
        if not isinstance(exp, int) or isinstance(exp, bool):
            return False

        if now is None:
            now = self.clock()
        return exp - now <= buffer_seconds

    def refresh_from(self, session: Session, renewal: SessionRenewal) -> List[str]:
        """
        Merge a renewal into the live session.

        The DID is compared but never assigned. Other fields are only
        written when they differ.

        Args:
            session: The session to update in place
            renewal: The refreshSession response

        Returns:
            List[str]: Names of the fields that changed, empty when none did.

        Raises:
            IdentityMismatchError: If the renewal is for a different DID. The
                session is left untouched.
        """
        with session.lock:
            if renewal.did != session.did:
                logger.critical(f"Refusing session renewal for {renewal.did}, session belongs to {session.did}")
                raise IdentityMismatchError(session.did, renewal.did)

            updated = []
            if session.access_jwt != renewal.access_jwt:
                session.access_jwt = renewal.access_jwt
                updated.append("access_jwt")
                logger.info("Session access token updated")

            if session.refresh_jwt != renewal.refresh_jwt:
                session.refresh_jwt = renewal.refresh_jwt
                updated.append("refresh_jwt")
                logger.info("Session refresh token updated")

            if session.handle != renewal.handle:
                logger.info(f"Session handle updated: {session.handle} -> {renewal.handle}")
                session.handle = renewal.handle
                updated.append("handle")

        if updated:
            logger.info(f"Session for {session.did} successfully refreshed")
        else:
            logger.debug("No updates detected during session refresh")
        return updated

    def describe(self, session: Session) -> SessionDescription:
        """
        Decode both tokens of a session for inspection.

        Each token is decoded on its own; a failure on one is reported in its
        TokenInfo and does not affect the other.
        """
        with session.lock:
            access_jwt, refresh_jwt = session.access_jwt, session.refresh_jwt

        description = SessionDescription(
            access=_describe_token(access_jwt),
            refresh=_describe_token(refresh_jwt),
        )
        for name, info in (("Access", description.access), ("Refresh", description.refresh)):
            if info.ok:
                logger.debug(f"{name} token expiration: {info.exp}")
            else:
                logger.debug(f"Failed to decode {name.lower()} token payload: {info.error}")
        return description
