"""
Configuration Validation for the Bluesky Poster

This module contains configuration validation logic.
Kept apart from settings.py so settings stay a plain list of values.
"""

from utils.logger import get_logger

from utils.exceptions import ConfigurationError
from utils.helpers import is_valid_url

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def validate_settings():
    """
    Validate that all settings are properly configured.

    Raises:
        ConfigurationError: If settings are missing or invalid.
    """
    # Import settings here to avoid circular imports
    from config import settings

    errors = []

    if not settings.XRPC_HOST or not is_valid_url(settings.XRPC_HOST):
        errors.append(f"BLUESKY_HOST must be an absolute URL, got {settings.XRPC_HOST!r}")
    elif settings.XRPC_HOST.endswith("/"):
        errors.append("BLUESKY_HOST must not end with a slash")

    # Validate numeric settings are within reasonable bounds
    numeric_validations = [
        ("SESSION_REFRESH_BUFFER_SECONDS", settings.SESSION_REFRESH_BUFFER_SECONDS, 0, 3600),
        ("XRPC_MAX_ATTEMPTS", settings.XRPC_MAX_ATTEMPTS, 1, 20),
        ("XRPC_RETRY_DELAY", settings.XRPC_RETRY_DELAY, 0, 60),
    ]

    for name, value, min_val, max_val in numeric_validations:
        if value < min_val or value > max_val:
            errors.append(f"{name} must be between {min_val} and {max_val}, got {value}")

    if settings.LOG_LEVEL not in VALID_LOG_LEVELS:
        errors.append(f"LOG_LEVEL must be one of {', '.join(VALID_LOG_LEVELS)}, got {settings.LOG_LEVEL}")

    for lang in settings.DEFAULT_POST_LANGS:
        if not lang.replace("-", "").isalnum():
            errors.append(f"POST_LANGS contains an invalid language tag: {lang!r}")

    if not settings.DEFAULT_POST_LANGS:
        get_logger(__name__).warning("POST_LANGS is empty, posts will carry no language tags")

    # Raise all errors at once
    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)

    return True


def get_config_summary() -> dict:
    """
    Returns a summary of current configuration (without sensitive values).
    Useful for logging startup state.
    """
    # Import settings here to avoid circular imports
    from config import settings

    return {
        "xrpc": {
            "host": settings.XRPC_HOST,
            "max_attempts": settings.XRPC_MAX_ATTEMPTS,
            "retry_delay": settings.XRPC_RETRY_DELAY,
        },
        "session": {
            "refresh_buffer_seconds": settings.SESSION_REFRESH_BUFFER_SECONDS,
        },
        "posts": {
            "collection": settings.POST_COLLECTION,
            "default_langs": list(settings.DEFAULT_POST_LANGS),
        },
        "log_level": settings.LOG_LEVEL,
    }
