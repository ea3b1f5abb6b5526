"""Request construction and response classification.

The dispatcher builds every request the same way (fixed browser header set,
session cookie when a token exists, JSON content type only for JSON bodies)
and sorts every response into the same outcomes. It never retries.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, TypeVar
from urllib.parse import quote

from ..errors import DecodeError, MailError, RequestConstructionError
from ..tls import FingerprintProfile, TLSResponse, build_profile
from .cookies import session_cookie
from .response import BLOCKED_STATUS, SUCCESS_STATUS, Outcome

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BASE_URL = "https://10minutemail.com"

ENDPOINT_ADDRESS = "session/address"
ENDPOINT_RESET = "session/reset"
ENDPOINT_MESSAGES_AFTER = "messages/messagesAfter"
ENDPOINT_MESSAGE_REPLY = "messages/reply"
ENDPOINT_MESSAGE_FORWARD = "messages/forward"


def join_url(base: str, *segments: str) -> str:
    """Join URL path segments onto ``base`` with single slashes."""
    parts = [base.rstrip("/")]
    for segment in segments:
        segment = str(segment).strip("/")
        if segment:
            parts.append(quote(segment, safe="/"))
    return "/".join(parts)


def browser_headers(profile: FingerprintProfile) -> Dict[str, str]:
    """Headers sent on every request.

    The user agent comes from the profile so the HTTP layer never claims a
    different browser than the handshake does.
    """
    return {
        "User-Agent": profile.user_agent,
        "Accept": "application/json, text/javascript, */*; q=0.01",
        "Accept-Language": "en-US,en;q=0.9",
    }


def decode_payload(response: TLSResponse, decoder: Callable[[Any], T],
                   phase: Optional[str] = None) -> T:
    """Parse a JSON body and hand it to ``decoder``.

    Raises ``DecodeError`` if the body is not JSON or the decoder rejects
    its shape.
    """
    try:
        payload = json.loads(response.content)
    except ValueError as e:
        raise DecodeError(f"Response body is not JSON: {e}", phase=phase) from e
    try:
        return decoder(payload)
    except DecodeError as e:
        if e.phase is None:
            e.phase = phase
        raise


@dataclass(frozen=True)
class PreparedRequest:
    """A request ready to hand to the transport."""
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[bytes] = None
    phase: Optional[str] = None


class RequestDispatcher:
    """
    Builds requests against one origin and classifies their responses.

    The transport is injected; anything with an async
    ``request(method, url, headers=, body=, phase=)`` returning a
    ``TLSResponse`` will do.
    """

    def __init__(self, transport: Any, base_url: str = DEFAULT_BASE_URL,
                 profile: Optional[FingerprintProfile] = None):
        self.transport = transport
        self.base_url = base_url
        profile = profile or getattr(transport, "profile", None) or build_profile()
        self._headers = browser_headers(profile)

    @property
    def headers(self) -> Dict[str, str]:
        return dict(self._headers)

    def build(self, method: str, *path: str, token: Optional[str] = None,
              payload: Optional[Any] = None, phase: Optional[str] = None) -> PreparedRequest:
        """Build a request for the endpoint at ``path``."""
        headers = dict(self._headers)
        if token:
            headers["Cookie"] = session_cookie(token).to_header_value()

        body = None
        if payload is not None:
            try:
                body = json.dumps(payload).encode("utf-8")
            except (TypeError, ValueError) as e:
                raise RequestConstructionError(f"Could not encode request body: {e}", phase=phase) from e
            headers["Content-Type"] = "application/json"

        return PreparedRequest(
            method=method,
            url=join_url(self.base_url, *path),
            headers=headers,
            body=body,
            phase=phase,
        )

    async def send(self, request: PreparedRequest) -> TLSResponse:
        """Hand a prepared request to the transport."""
        return await self.transport.request(
            request.method,
            request.url,
            headers=request.headers,
            body=request.body,
            phase=request.phase,
        )

    def classify(self, response: TLSResponse,
                 decoder: Optional[Callable[[Any], T]] = None,
                 phase: Optional[str] = None) -> Outcome[T]:
        """Sort a response into BLOCKED, DECLINED, OK or FAILED (decode)."""
        if response.status_code == BLOCKED_STATUS:
            logger.warning("Blocked by server during %s", phase or "request")
            return Outcome.blocked(phase=phase, status_code=response.status_code)

        if response.status_code != SUCCESS_STATUS:
            logger.info("Server declined %s with status %d", phase or "request", response.status_code)
            return Outcome.declined(response.status_code)

        if decoder is None:
            return Outcome.ok(None, status_code=response.status_code)

        try:
            value = decode_payload(response, decoder, phase)
        except DecodeError as e:
            return Outcome.failed(e)
        return Outcome.ok(value, status_code=response.status_code)

    async def dispatch(self, request: PreparedRequest,
                       decoder: Optional[Callable[[Any], T]] = None) -> Outcome[T]:
        """Send a request and classify the response.

        Transport failures come back as FAILED outcomes rather than raising.
        """
        try:
            response = await self.send(request)
        except MailError as e:
            logger.debug("%s %s failed: %s", request.method, request.url, e)
            return Outcome.failed(e)
        return self.classify(response, decoder, request.phase)
