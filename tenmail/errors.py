"""Exception hierarchy for the 10MinuteMail client.

Every hard failure raised by this package derives from ``MailError`` and
records the phase it happened in, so callers can tell a failed dial apart
from a rejected handshake or an undecodable payload. Soft failures (a
declined renew, reply or forward) are never raised; they come back as
``False``.
"""

from typing import Optional


class MailError(Exception):
    """Base exception for all client errors."""

    def __init__(self, message: str, phase: Optional[str] = None):
        super().__init__(message)
        self.phase = phase

    def __str__(self) -> str:
        message = super().__str__()
        if self.phase:
            return f"[{self.phase}] {message}"
        return message


class ConnectError(MailError):
    """The TCP dial (or name resolution) failed."""


class HandshakeError(MailError):
    """The TLS handshake failed, including rejection of the fingerprint."""


class RequestConstructionError(MailError):
    """A request could not be built or handed to the transport."""


class TransportError(MailError):
    """The request was sent but no usable response came back."""


class BlockedError(MailError):
    """The edge answered with its anti-bot status.

    Treat as terminal for the session: retrying from the same host with the
    same fingerprint will not help.
    """

    def __init__(self, message: str = "server is blocking requests from this host",
                 phase: Optional[str] = None, status_code: int = 403):
        super().__init__(message, phase)
        self.status_code = status_code


class DecodeError(MailError):
    """A response payload did not have the expected shape."""


class MissingSessionError(MailError):
    """No session cookie was issued on init."""


class SessionStateError(MailError):
    """An operation was attempted in the wrong session state."""
