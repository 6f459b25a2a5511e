"""
Configuration Settings for the Bluesky Poster

This module centralizes all configuration settings for the application,
including environment variables and protocol constants.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Determine the application root directory
APP_ROOT = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
load_dotenv(dotenv_path=os.path.join(APP_ROOT, '.env'))

# =============================================================================
# XRPC Settings
# =============================================================================

XRPC_HOST = os.getenv("BLUESKY_HOST", "https://bsky.social")
XRPC_MAX_ATTEMPTS = int(os.getenv("XRPC_MAX_ATTEMPTS", "5"))       # Attempts for retryable HTTP failures
XRPC_RETRY_DELAY = float(os.getenv("XRPC_RETRY_DELAY", "1"))       # Seconds between attempts

# =============================================================================
# Session Settings
# =============================================================================

# Access tokens expiring within this many seconds are renewed before use
SESSION_REFRESH_BUFFER_SECONDS = int(os.getenv("SESSION_REFRESH_BUFFER_SECONDS", "300"))

# =============================================================================
# Record Settings
# =============================================================================

POST_COLLECTION = "app.bsky.feed.post"
POST_RECORD_TYPE = "app.bsky.feed.post"

# Languages attached to posts when the caller gives none, e.g. "en,de"
DEFAULT_POST_LANGS = [
    lang.strip() for lang in os.getenv("POST_LANGS", "").split(",") if lang.strip()
]

# =============================================================================
# Logging Settings
# =============================================================================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
