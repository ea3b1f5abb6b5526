"""Session state machine for one 10MinuteMail mailbox.

A session is created by the address exchange, which assigns the mailbox
address and the ``JSESSIONID`` token. From then on it tracks two clocks of
its own: when the current ten-minute validity window started, and how many
messages have already been read. The server is authoritative for both; the
session only keeps a pessimistic local view.

States::

    UNINITIALIZED --init()--> ACTIVE <--renew()--> RENEWING

Expiry is derived from the clock and never stored. Local state transitions
are guarded by a lock that is never held across a network round trip.
"""

import logging
import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from .config import ClientConfig
from .errors import MissingSessionError, SessionStateError, TransportError
from .http import (
    ENDPOINT_ADDRESS,
    ENDPOINT_MESSAGE_FORWARD,
    ENDPOINT_MESSAGE_REPLY,
    ENDPOINT_MESSAGES_AFTER,
    ENDPOINT_RESET,
    Outcome,
    RequestDispatcher,
    decode_payload,
    extract_session_token,
)
from .models import (
    RESET_SUCCESS,
    Message,
    decode_address,
    decode_messages,
    decode_reset,
    forward_request,
    reply_request,
)
from .tls import SpoofingTransport

logger = logging.getLogger(__name__)

SESSION_LIFETIME = timedelta(minutes=10)


class SessionState(Enum):
    UNINITIALIZED = "uninitialized"
    ACTIVE = "active"
    RENEWING = "renewing"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MailSession:
    """
    An ephemeral mailbox: address, auth token, expiry clock and read cursor.

    Use ``MailSession.create()`` to build a session with its own spoofing
    transport and initialise it, or construct one around an existing
    ``RequestDispatcher`` (tests inject a fake transport this way).
    """

    def __init__(self, dispatcher: RequestDispatcher,
                 clock: Optional[Callable[[], datetime]] = None):
        self._dispatcher = dispatcher
        self._clock = clock or _utcnow
        self._lock = threading.Lock()

        self._address: Optional[str] = None
        self._token: Optional[str] = None
        self._reset_at: Optional[datetime] = None
        self._fetch_cursor = 0
        self._renewals_in_flight = 0

    @classmethod
    def from_config(cls, config: Optional[ClientConfig] = None,
                    transport: Optional[Any] = None,
                    clock: Optional[Callable[[], datetime]] = None) -> "MailSession":
        """Build an uninitialised session that owns ``transport``."""
        config = config or ClientConfig()
        if transport is None:
            transport = SpoofingTransport(config.tls_config())
        return cls(RequestDispatcher(transport, base_url=config.base_url), clock=clock)

    @classmethod
    async def create(cls, config: Optional[ClientConfig] = None,
                     transport: Optional[Any] = None,
                     clock: Optional[Callable[[], datetime]] = None) -> "MailSession":
        """Create a session with a fresh random address."""
        session = cls.from_config(config, transport, clock)
        try:
            await session.init()
        except Exception:
            await session.close()
            raise
        return session

    async def __aenter__(self):
        if self.state is SessionState.UNINITIALIZED:
            try:
                await self.init()
            except Exception:
                await self.close()
                raise
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    @property
    def state(self) -> SessionState:
        with self._lock:
            if self._token is None:
                return SessionState.UNINITIALIZED
            if self._renewals_in_flight:
                return SessionState.RENEWING
            return SessionState.ACTIVE

    @property
    def address(self) -> Optional[str]:
        """The mailbox address, or None before ``init()``."""
        return self._address

    @property
    def fetch_cursor(self) -> int:
        """Number of messages already read from the server log."""
        with self._lock:
            return self._fetch_cursor

    @property
    def reset_at(self) -> Optional[datetime]:
        return self._reset_at

    def _require_token(self, phase: str) -> str:
        with self._lock:
            if self._token is None:
                raise SessionStateError("Session has not been initialised", phase=phase)
            return self._token

    @staticmethod
    def _unwrap(outcome: Outcome, phase: str) -> Any:
        outcome.raise_for_error()
        if outcome.is_declined:
            raise TransportError(f"Unexpected status {outcome.status_code}", phase=phase)
        return outcome.value

    async def init(self) -> str:
        """Request a mailbox and bind this session to it.

        Raises ``BlockedError`` if the edge flags us, ``MissingSessionError``
        if no session cookie comes back and ``DecodeError`` if the address
        payload is malformed. Nothing is recorded unless all checks pass.
        """
        with self._lock:
            if self._token is not None:
                raise SessionStateError("Session is already initialised", phase="init")

        # Anchor the window before the round trip so it is never overstated.
        reset_at = self._clock()

        request = self._dispatcher.build("GET", ENDPOINT_ADDRESS, phase="init")
        response = await self._dispatcher.send(request)
        self._unwrap(self._dispatcher.classify(response, phase="init"), "init")

        token = extract_session_token(response.cookies)
        if token is None:
            raise MissingSessionError("missing session cookie in response", phase="init")
        address = decode_payload(response, decode_address, phase="init")

        with self._lock:
            if self._token is not None:
                raise SessionStateError("Session was initialised concurrently", phase="init")
            self._token = token
            self._address = address
            self._reset_at = reset_at

        logger.info("Session initialised for %s, expires at %s",
                    address, (reset_at + SESSION_LIFETIME).isoformat())
        return address

    async def fetch_messages(self, offset: int) -> List[Message]:
        """Return the messages after ``offset`` and advance the cursor past them."""
        if offset < 0:
            raise ValueError("offset must be non-negative")
        token = self._require_token("fetch")

        request = self._dispatcher.build("GET", ENDPOINT_MESSAGES_AFTER, str(offset),
                                         token=token, phase="fetch")
        outcome = await self._dispatcher.dispatch(request, decode_messages)
        messages = self._unwrap(outcome, "fetch")

        with self._lock:
            # Concurrent fetches may finish out of order; keep the furthest.
            self._fetch_cursor = max(self._fetch_cursor, offset + len(messages))
            cursor = self._fetch_cursor

        logger.debug("Fetched %d message(s) after %d, cursor now %d",
                     len(messages), offset, cursor)
        return messages

    async def messages(self) -> List[Message]:
        """Return every message received so far.

        Also moves the cursor used by ``latest()`` to the end of the log.
        """
        return await self.fetch_messages(0)

    async def latest(self) -> List[Message]:
        """Return only the messages not yet read by this session."""
        return await self.fetch_messages(self.fetch_cursor)

    async def renew(self) -> bool:
        """Ask the server to extend the mailbox by another ten minutes.

        Returns False, leaving the expiry untouched, when the server does not
        confirm the reset. Blocks and transport or decode failures raise.
        """
        token = self._require_token("renew")
        reset_at = self._clock()

        with self._lock:
            self._renewals_in_flight += 1
        try:
            request = self._dispatcher.build("GET", ENDPOINT_RESET, token=token, phase="renew")
            outcome = await self._dispatcher.dispatch(request, decode_reset)
            outcome.raise_for_error()

            if outcome.is_declined:
                logger.info("Renew declined with status %d", outcome.status_code)
                return False
            if outcome.value != RESET_SUCCESS:
                logger.info("Renew not confirmed, server said %r", outcome.value)
                return False

            with self._lock:
                if self._reset_at is None or reset_at > self._reset_at:
                    self._reset_at = reset_at
            logger.info("Session renewed, expires at %s", self.expires_at().isoformat())
            return True
        finally:
            with self._lock:
                self._renewals_in_flight -= 1

    def expires_at(self) -> datetime:
        """The instant the mailbox is due to expire."""
        reset_at = self._reset_at
        if reset_at is None:
            raise SessionStateError("Session has not been initialised", phase="expiry")
        return reset_at + SESSION_LIFETIME

    def expired(self) -> bool:
        """Whether the mailbox is due to have expired. No network access."""
        if self._reset_at is None:
            return True
        return self._clock() >= self.expires_at()

    def seconds_left(self) -> int:
        """Whole seconds until expiry, never negative."""
        if self._reset_at is None:
            return 0
        remaining = (self.expires_at() - self._clock()).total_seconds()
        return max(0, int(remaining))

    async def _post_action(self, phase: str, endpoint: str, payload: Dict[str, Any]) -> bool:
        token = self._require_token(phase)
        request = self._dispatcher.build("POST", endpoint, token=token,
                                         payload=payload, phase=phase)
        outcome = await self._dispatcher.dispatch(request)
        outcome.raise_for_error()
        if outcome.is_declined:
            logger.info("%s declined with status %d", phase.capitalize(), outcome.status_code)
        return outcome.is_ok

    async def reply(self, message_id: str, body: str) -> bool:
        """Send ``body`` as a reply to the sender of message ``message_id``.

        Returns False when the server refuses, usually because the message is
        too old; it gives no further reason.
        """
        return await self._post_action("reply", ENDPOINT_MESSAGE_REPLY,
                                       reply_request(message_id, body))

    async def forward(self, message_id: str, recipient: str) -> bool:
        """Forward message ``message_id`` to ``recipient``.

        The server reports success even when the recipient is invalid or the
        mail bounces later.
        """
        return await self._post_action("forward", ENDPOINT_MESSAGE_FORWARD,
                                       forward_request(message_id, recipient))

    async def close(self) -> None:
        """Release the transport. The remote mailbox lives on until it expires."""
        close = getattr(self._dispatcher.transport, "close", None)
        if close is not None:
            await close()

    def __repr__(self) -> str:
        return f"<MailSession {self.state.value} {self._address or '-'}>"
