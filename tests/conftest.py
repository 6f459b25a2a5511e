"""
Shared Test Fixtures for the Bluesky Poster

This module provides common fixtures used across all test modules.
Fixtures include a fixed clock, bearer token and session factories,
and a mock XRPC transport.
"""

import pytest
from unittest.mock import MagicMock
import base64
import json
import logging
import sys
import os

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from data.models import Session
from services.session_service import SessionLifecycle
from utils.logger import ROOT_LOGGER_NAME

NOW = 1_700_000_000


# =============================================================================
# Token Fixtures
# =============================================================================

def encode_segment(data: bytes) -> str:
    """Base64url-encode bytes without padding, as JWT segments are."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


@pytest.fixture
def make_token():
    """
    Factory fixture for JWT-shaped tokens.

    Usage:
        def test_token(make_token):
            token = make_token(exp=NOW + 60)
            raw = make_token(payload_segment="not-json")

    Returns:
        callable: A factory building header.payload.signature strings.
    """
    def _create_token(exp=None, payload_segment=None, **claims):
        if payload_segment is None:
            if exp is not None:
                claims["exp"] = exp
            payload_segment = encode_segment(json.dumps(claims).encode("utf-8"))
        header = encode_segment(b'{"alg":"ES256K","typ":"at+jwt"}')
        return f"{header}.{payload_segment}.c2lnbmF0dXJl"

    return _create_token


# =============================================================================
# Session Fixtures
# =============================================================================

@pytest.fixture
def clock():
    """A clock frozen at NOW."""
    return lambda: NOW


@pytest.fixture
def lifecycle(clock):
    """A SessionLifecycle on the frozen clock with the default 300s buffer."""
    return SessionLifecycle(clock=clock, buffer_seconds=300)


@pytest.fixture
def session_factory(make_token):
    """
    Factory fixture for Session objects.

    By default the access token expires in an hour and the refresh token
    in a week, both relative to NOW.

    Returns:
        callable: A factory function for creating Session objects.
    """
    def _create_session(
        did: str = "did:plc:testuser123",
        handle: str = "testuser.bsky.social",
        access_exp: int = NOW + 3600,
        refresh_exp: int = NOW + 7 * 24 * 3600,
        access_jwt: str = None,
        refresh_jwt: str = None,
        email: str = "test@example.com",
        email_confirmed: bool = True,
    ) -> Session:
        return Session(
            did=did,
            handle=handle,
            access_jwt=access_jwt or make_token(exp=access_exp, scope="com.atproto.access", sub=did),
            refresh_jwt=refresh_jwt or make_token(exp=refresh_exp, scope="com.atproto.refresh", sub=did),
            email=email,
            email_confirmed=email_confirmed,
        )

    return _create_session


@pytest.fixture
def renewal_payload(make_token):
    """Factory for refreshSession response payloads."""
    def _create_payload(did="did:plc:testuser123", handle="testuser.bsky.social",
                        access_exp=NOW + 7200, refresh_exp=NOW + 14 * 24 * 3600):
        return {
            "did": did,
            "handle": handle,
            "accessJwt": make_token(exp=access_exp, scope="com.atproto.access", sub=did),
            "refreshJwt": make_token(exp=refresh_exp, scope="com.atproto.refresh", sub=did),
        }

    return _create_payload


# =============================================================================
# Transport Fixtures
# =============================================================================

@pytest.fixture
def mock_transport():
    """A MagicMock standing in for an XrpcTransport."""
    transport = MagicMock()
    transport.create_record.return_value = {
        "uri": "at://did:plc:testuser123/app.bsky.feed.post/abc123",
        "cid": "bafyreiabc123",
    }
    return transport


# =============================================================================
# Logging Fixtures
# =============================================================================

@pytest.fixture
def app_logs(caplog):
    """
    Capture application log records down to DEBUG.

    Returns:
        pytest.LogCaptureFixture: The caplog fixture, scoped to the app logger.
    """
    caplog.set_level(logging.DEBUG, logger=ROOT_LOGGER_NAME)
    return caplog
