"""
Central constants for the BITSA portal.
"""
from __future__ import annotations

# Images (avatars, discussion attachments) are stored inline as data: URLs.
MAX_IMAGE_BYTES = 5 * 1024 * 1024
IMAGE_DATA_URL_PREFIX = "data:image/"

PASSWORD_MIN_LENGTH = 6

# 32 random bytes -> 64 hex chars
RESET_TOKEN_BYTES = 32

RESET_REQUESTED_MESSAGE = "If an account exists with this email, a password reset link has been sent."

# Session cookie key holding the server-side session id
SESSION_SID_KEY = "sid"

LOGIN_RATE_LIMIT = 5
LOGIN_RATE_WINDOW = 300  # seconds
