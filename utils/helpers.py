"""
Helper Utility Module

This module provides various helper functions used throughout the Bluesky Poster.
"""

import base64
import binascii
import time
from datetime import datetime, timezone
from typing import Callable, Optional, Tuple
from urllib.parse import urlparse


def is_valid_url(url: str) -> bool:
    """
    Check if a URL is valid.

    Args:
        url: The URL to validate

    Returns:
        bool: True if the URL is valid, False otherwise
    """
    try:
        result = urlparse(url)
        return all([result.scheme, result.netloc])
    except Exception:
        return False


def retry(func, max_attempts: int = 3, delay: float = 2,
          exceptions: Tuple = (Exception,), backoff: float = 2,
          retry_if: Optional[Callable[[Exception], bool]] = None):
    """
    Retry a function multiple times if it fails.

    Args:
        func: The function to retry
        max_attempts: Maximum number of attempts
        delay: Initial delay between attempts in seconds
        exceptions: Tuple of exceptions to catch
        backoff: Multiplier for the delay between attempts
        retry_if: Further filter on caught exceptions; those it rejects are
            raised at once (optional)

    Returns:
        The result of the function call

    Raises:
        The last exception raised by the function
    """
    attempt = 0
    while attempt < max_attempts:
        try:
            return func()
        except exceptions as e:
            attempt += 1
            if attempt >= max_attempts or (retry_if is not None and not retry_if(e)):
                raise

            wait_time = delay * (backoff ** (attempt - 1))
            time.sleep(wait_time)


def base64url_decode(segment: str) -> bytes:
    """
    Decode a base64url string, padded or not.

    Args:
        segment: The encoded text

    Returns:
        bytes: The decoded bytes

    Raises:
        ValueError: If the length or alphabet is invalid
    """
    if "+" in segment or "/" in segment:
        raise ValueError("Invalid base64url alphabet")
    remainder = len(segment) % 4
    if remainder == 1:
        raise ValueError("Invalid base64 length")
    if remainder:
        segment += "=" * (4 - remainder)
    try:
        return base64.b64decode(segment, altchars=b"-_", validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64: {e}") from e


def format_timestamp(moment: datetime) -> str:
    """
    Render a datetime as RFC3339 in UTC with millisecond precision and a trailing Z.

    Naive datetimes are taken to be UTC already.
    """
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def parse_timestamp(value: str) -> datetime:
    """Parse an RFC3339 timestamp into an aware UTC datetime."""
    moment = datetime.fromisoformat(value.replace('Z', '+00:00'))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)
