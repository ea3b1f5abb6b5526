"""curl_cffi transport that handshakes from a fixed ClientHello profile.

curl_cffi drives libcurl built against BoringSSL, which can be told the
exact cipher suites, extension order, curves, signature algorithms and
version bounds to offer. The transport feeds it the values from a
``FingerprintProfile`` instead of letting the TLS library negotiate its own
defaults, so the ClientHello the edge sees is the profile's.

Every exchange dials and handshakes afresh: connection reuse and session
resumption are disabled, and nothing is retried.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional
from urllib.parse import urlsplit

from curl_cffi.const import CurlHttpVersion, CurlOpt, CurlSslVersion
from curl_cffi.curl import CurlError
from curl_cffi.requests import AsyncSession
from curl_cffi.requests.exceptions import ImpersonateError

from ..errors import (
    ConnectError,
    HandshakeError,
    MailError,
    RequestConstructionError,
    TransportError,
)
from .fingerprint import FingerprintProfile, TLSVersion, build_profile

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0

# libcurl error codes grouped by the phase that produced them.
# 5 resolve proxy, 6 resolve host, 7 connect, 45 interface.
_CONNECT_CODES = frozenset({5, 6, 7, 45})
# 35 SSL connect, 51/60 peer verification, 53/54 engine, 58/59 cert/cipher,
# 64/66/77/80/82/83 SSL setup, 90/91 pinning and status, 98 SSL client cert.
_HANDSHAKE_CODES = frozenset({35, 51, 53, 54, 58, 59, 60, 64, 66, 77, 80, 82, 83, 90, 91, 98})
# 1 unsupported protocol, 2 init, 3 bad URL, 4 not built in, 43 bad argument, 48 unknown option.
_CONSTRUCTION_CODES = frozenset({1, 2, 3, 4, 43, 48})

_CURL_SSL_VERSIONS = {
    TLSVersion.TLS_1_0: CurlSslVersion.TLSv1_0,
    TLSVersion.TLS_1_1: CurlSslVersion.TLSv1_1,
    TLSVersion.TLS_1_2: CurlSslVersion.TLSv1_2,
    TLSVersion.TLS_1_3: CurlSslVersion.TLSv1_3,
}


@dataclass
class TLSClientConfig:
    """Configuration for the spoofing transport."""
    timeout: float = DEFAULT_TIMEOUT
    verify_ssl: bool = True
    proxy_url: Optional[str] = None


@dataclass(frozen=True)
class TLSResponse:
    """Status, headers, cookies and body of one completed exchange."""
    status_code: int
    content: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)
    cookies: Dict[str, str] = field(default_factory=dict)
    url: str = ""
    elapsed: float = 0.0

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def __repr__(self) -> str:
        return f"<TLSResponse [{self.status_code}] {self.url}>"


@dataclass(frozen=True)
class SecureChannel:
    """A completed dial and handshake against one origin."""
    host: str
    port: int
    profile_name: str
    ja3: str
    elapsed: float


def map_curl_error(error: CurlError, phase: Optional[str] = None) -> MailError:
    """Translate a curl failure into the phase-specific error it represents."""
    code = int(getattr(error, "code", 0) or 0)
    detail = f"{error} (curl code {code})"
    if isinstance(error, ImpersonateError):
        # Raised before any transfer when curl cannot express a profile value.
        return RequestConstructionError(f"Profile rejected by curl: {error}", phase=phase)
    if code in _CONNECT_CODES:
        return ConnectError(detail, phase="connect")
    if code in _HANDSHAKE_CODES:
        return HandshakeError(detail, phase="handshake")
    if code in _CONSTRUCTION_CODES:
        return RequestConstructionError(detail, phase=phase)
    return TransportError(detail, phase=phase)


class SpoofingTransport:
    """
    HTTPS transport whose ClientHello is built from a ``FingerprintProfile``.

    One instance belongs to one mail session. ``session_factory`` exists so
    tests can substitute curl_cffi's ``AsyncSession``.
    """

    def __init__(self, config: Optional[TLSClientConfig] = None,
                 profile: Optional[FingerprintProfile] = None,
                 session_factory: Callable[..., Any] = AsyncSession):
        self.config = config or TLSClientConfig()
        self.profile = profile or build_profile()
        self._session_factory = session_factory
        self._session: Optional[Any] = None
        self._closed = False

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def _version_option(self) -> int:
        # Lower bound in the low bits, upper bound shifted into the MAX_* range.
        min_version = _CURL_SSL_VERSIONS[self.profile.min_version]
        max_version = _CURL_SSL_VERSIONS[self.profile.max_version]
        return int(min_version) | (int(max_version) << 16)

    def _curl_options(self, connect_only: bool = False) -> Dict[Any, Any]:
        options = {
            CurlOpt.FRESH_CONNECT: 1,
            CurlOpt.FORBID_REUSE: 1,
            CurlOpt.SSLVERSION: self._version_option(),
        }
        if connect_only:
            options[CurlOpt.CONNECT_ONLY] = 1
        return options

    def _new_session(self, connect_only: bool = False) -> Any:
        kwargs: Dict[str, Any] = {
            "timeout": self.config.timeout,
            "verify": self.config.verify_ssl,
            "curl_options": self._curl_options(connect_only),
        }
        if self.config.proxy_url:
            kwargs["proxy"] = self.config.proxy_url
        return self._session_factory(**kwargs)

    def fingerprint_options(self) -> Dict[str, Any]:
        """Per-request keyword arguments that pin the handshake to the profile."""
        return {
            "ja3": self.profile.ja3_string(),
            "extra_fp": {
                "tls_min_version": _CURL_SSL_VERSIONS[self.profile.min_version],
                "tls_grease": False,
                "tls_permute_extensions": False,
                "tls_signature_algorithms": self.profile.signature_algorithm_names(),
                # Empty disables compress_certificate, which the profile omits.
                "tls_cert_compression": "",
            },
            "http_version": CurlHttpVersion.V1_1,
        }

    def _ensure_session(self) -> Any:
        if self._closed:
            raise RequestConstructionError("Transport has been closed")
        if self._session is None:
            self._session = self._new_session()
        return self._session

    async def connect(self, host: str, port: int = 443) -> SecureChannel:
        """Dial ``host:port`` and complete a handshake from the profile.

        Raises ``ConnectError`` when the dial fails and ``HandshakeError``
        when the handshake does, including when the edge rejects the
        fingerprint.
        """
        if self._closed:
            raise RequestConstructionError("Transport has been closed", phase="connect")

        probe = self._new_session(connect_only=True)
        start = time.perf_counter()
        try:
            await probe.request("GET", f"https://{host}:{port}/", **self.fingerprint_options())
        except CurlError as e:
            raise map_curl_error(e, phase="connect") from e
        except (KeyError, ValueError, AssertionError, TypeError) as e:
            raise RequestConstructionError(f"Profile rejected by curl: {e}", phase="connect") from e
        finally:
            await probe.close()

        elapsed = time.perf_counter() - start
        logger.debug("Handshake with %s:%d completed in %.3fs", host, port, elapsed)
        return SecureChannel(
            host=host,
            port=port,
            profile_name=self.profile.name,
            ja3=self.profile.ja3_string(),
            elapsed=elapsed,
        )

    async def request(self, method: str, url: str,
                      headers: Optional[Dict[str, str]] = None,
                      body: Optional[bytes] = None,
                      phase: Optional[str] = None) -> TLSResponse:
        """Perform one exchange over a fresh dial and handshake."""
        parts = urlsplit(url)
        if parts.scheme != "https" or not parts.hostname:
            raise RequestConstructionError(f"Not an https URL: {url!r}", phase=phase)

        session = self._ensure_session()
        start = time.perf_counter()
        try:
            response = await session.request(
                method=method,
                url=url,
                headers=headers or {},
                data=body,
                **self.fingerprint_options(),
            )
        except CurlError as e:
            raise map_curl_error(e, phase=phase) from e
        except (KeyError, ValueError, AssertionError, TypeError) as e:
            raise RequestConstructionError(f"Request rejected by curl: {e}", phase=phase) from e

        elapsed = time.perf_counter() - start
        cookies = {cookie.name: cookie.value for cookie in response.cookies.jar}
        # The dispatcher sends the session cookie explicitly; keep the jar empty.
        session.cookies.clear()

        logger.debug("%s %s -> %d in %.3fs", method, parts.path or "/",
                     response.status_code, elapsed)
        return TLSResponse(
            status_code=response.status_code,
            content=response.content,
            headers=dict(response.headers),
            cookies=cookies,
            url=str(response.url),
            elapsed=elapsed,
        )

    async def close(self) -> None:
        """Release the underlying curl session."""
        if self._session is not None and not self._closed:
            await self._session.close()
        self._session = None
        self._closed = True
