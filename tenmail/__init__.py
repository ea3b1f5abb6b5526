"""Client for the 10MinuteMail disposable mailbox service.

10MinuteMail hands out an anonymous address that lives for ten minutes and
can be renewed. Its edge blocks automated clients by their TLS handshake, so
every request goes over a transport that reproduces one browser's
ClientHello exactly.

Key Features:
- Fixed, test-asserted ClientHello profile (cipher suites, extensions, versions)
- curl_cffi transport with fresh handshakes and phase-specific errors
- Session state machine: address, token, expiry clock and read cursor
- Async API (MailSession) and blocking API (TempMailbox)
- ``tenmail`` command-line tool
"""

import logging

from .errors import (
    MailError,
    ConnectError,
    HandshakeError,
    RequestConstructionError,
    TransportError,
    BlockedError,
    DecodeError,
    MissingSessionError,
    SessionStateError,
)

from .config import ClientConfig

from .models import Message

from .session import (
    MailSession,
    SessionState,
    SESSION_LIFETIME,
)

from .mailbox import (
    TempMailbox,
    create_mailbox,
)

from .http import (
    RequestDispatcher,
    Outcome,
    OutcomeKind,
)

from .tls import (
    FingerprintProfile,
    SpoofingTransport,
    SecureChannel,
    TLSResponse,
    build_profile,
    encode_client_hello,
)

__version__ = "1.0.0"

__all__ = [
    # Sessions
    "MailSession",
    "SessionState",
    "TempMailbox",
    "create_mailbox",
    "ClientConfig",
    "Message",

    # Transport and dispatch
    "FingerprintProfile",
    "SpoofingTransport",
    "SecureChannel",
    "TLSResponse",
    "RequestDispatcher",
    "Outcome",
    "OutcomeKind",
    "build_profile",
    "encode_client_hello",

    # Exceptions
    "MailError",
    "ConnectError",
    "HandshakeError",
    "RequestConstructionError",
    "TransportError",
    "BlockedError",
    "DecodeError",
    "MissingSessionError",
    "SessionStateError",

    # Constants
    "SESSION_LIFETIME",
    "__version__",
]


def _initialize_logging():
    """Initialize default logging configuration."""
    logger = logging.getLogger(__name__)
    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)
        logger.setLevel(logging.WARNING)


# Initialize logging on import
_initialize_logging()
