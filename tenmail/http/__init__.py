"""HTTP module for the 10MinuteMail client.

This module provides request construction, response classification and
session cookie handling on top of the spoofing transport.
"""

from .client import (
    RequestDispatcher,
    PreparedRequest,
    browser_headers,
    decode_payload,
    join_url,
    DEFAULT_BASE_URL,
    ENDPOINT_ADDRESS,
    ENDPOINT_RESET,
    ENDPOINT_MESSAGES_AFTER,
    ENDPOINT_MESSAGE_REPLY,
    ENDPOINT_MESSAGE_FORWARD,
)

from .response import (
    Outcome,
    OutcomeKind,
    BLOCKED_STATUS,
    SUCCESS_STATUS,
)

from .cookies import (
    Cookie,
    session_cookie,
    extract_session_token,
    SESSION_COOKIE_NAME,
    SESSION_COOKIE_MAX_AGE,
)

# Export public API
__all__ = [
    # Classes
    "RequestDispatcher",
    "PreparedRequest",
    "Outcome",
    "OutcomeKind",
    "Cookie",

    # Functions
    "browser_headers",
    "decode_payload",
    "join_url",
    "session_cookie",
    "extract_session_token",

    # Constants
    "DEFAULT_BASE_URL",
    "ENDPOINT_ADDRESS",
    "ENDPOINT_RESET",
    "ENDPOINT_MESSAGES_AFTER",
    "ENDPOINT_MESSAGE_REPLY",
    "ENDPOINT_MESSAGE_FORWARD",
    "BLOCKED_STATUS",
    "SUCCESS_STATUS",
    "SESSION_COOKIE_NAME",
    "SESSION_COOKIE_MAX_AGE",
]
