"""
Unit tests for the spoofing transport.

curl_cffi's AsyncSession is replaced by a recorder so the tests can check
which fingerprint options reach curl and how curl failures are mapped.
"""

from types import SimpleNamespace
from unittest.mock import Mock

import pytest
from curl_cffi.const import CurlHttpVersion, CurlOpt, CurlSslVersion
from curl_cffi.curl import CurlError
from curl_cffi.requests.exceptions import ImpersonateError

from tenmail.errors import (
    ConnectError,
    HandshakeError,
    RequestConstructionError,
    TransportError,
)
from tenmail.tls import SpoofingTransport, TLSClientConfig, build_profile, map_curl_error


class RecordingSession:
    """Stand-in for curl_cffi.requests.AsyncSession."""

    def __init__(self, outcome, **kwargs):
        self.kwargs = kwargs
        self.outcome = outcome
        self.requests = []
        self.cookies = Mock()
        self.closed = False

    async def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome

    async def close(self):
        self.closed = True


def curl_response(status=200, content=b"{}", cookies=None):
    jar = [SimpleNamespace(name=k, value=v) for k, v in (cookies or {}).items()]
    return SimpleNamespace(
        status_code=status,
        content=content,
        headers={"Content-Type": "application/json"},
        cookies=SimpleNamespace(jar=jar),
        url="https://10minutemail.com/session/address",
    )


@pytest.fixture
def sessions():
    return []


@pytest.fixture
def make_transport(sessions):
    def factory(outcome=None, config=None):
        def session_factory(**kwargs):
            session = RecordingSession(outcome if outcome is not None else curl_response(), **kwargs)
            sessions.append(session)
            return session
        return SpoofingTransport(config or TLSClientConfig(), session_factory=session_factory)
    return factory


class TestFingerprintOptions:
    def test_ja3_and_extra_fp_come_from_profile(self, make_transport):
        transport = make_transport()
        options = transport.fingerprint_options()

        assert options["ja3"] == build_profile().ja3_string()
        assert options["http_version"] == CurlHttpVersion.V1_1
        extra = options["extra_fp"]
        assert extra["tls_min_version"] == CurlSslVersion.TLSv1_0
        assert extra["tls_signature_algorithms"] == ["ecdsa_secp256r1_sha256", "rsa_pkcs1_sha256"]
        assert extra["tls_grease"] is False
        assert extra["tls_permute_extensions"] is False

    def test_session_disables_reuse_and_caps_version(self, make_transport, sessions):
        transport = make_transport(config=TLSClientConfig(timeout=7.5, proxy_url="http://proxy:8080"))
        transport._ensure_session()

        kwargs = sessions[0].kwargs
        assert kwargs["timeout"] == 7.5
        assert kwargs["proxy"] == "http://proxy:8080"
        options = kwargs["curl_options"]
        assert options[CurlOpt.FRESH_CONNECT] == 1
        assert options[CurlOpt.FORBID_REUSE] == 1
        assert options[CurlOpt.SSLVERSION] == int(CurlSslVersion.TLSv1_0) | (int(CurlSslVersion.TLSv1_2) << 16)
        assert CurlOpt.CONNECT_ONLY not in options

    def test_default_timeout_is_ten_seconds(self, make_transport, sessions):
        make_transport()._ensure_session()
        assert sessions[0].kwargs["timeout"] == 10.0
        assert "proxy" not in sessions[0].kwargs


class TestRequest:
    @pytest.mark.asyncio
    async def test_request_passes_fingerprint_and_body(self, make_transport, sessions):
        transport = make_transport(curl_response(cookies={"JSESSIONID": "abc"}))

        response = await transport.request(
            "POST", "https://10minutemail.com/messages/reply",
            headers={"Content-Type": "application/json"}, body=b'{"a": 1}',
        )

        method, url, kwargs = sessions[0].requests[0]
        assert method == "POST"
        assert url == "https://10minutemail.com/messages/reply"
        assert kwargs["data"] == b'{"a": 1}'
        assert kwargs["headers"] == {"Content-Type": "application/json"}
        assert kwargs["ja3"] == build_profile().ja3_string()
        assert response.status_code == 200
        assert response.cookies == {"JSESSIONID": "abc"}

    @pytest.mark.asyncio
    async def test_cookie_jar_cleared_after_each_exchange(self, make_transport, sessions):
        transport = make_transport()
        await transport.request("GET", "https://10minutemail.com/session/address")
        sessions[0].cookies.clear.assert_called_once()

    @pytest.mark.asyncio
    async def test_rejects_non_https(self, make_transport):
        transport = make_transport()
        with pytest.raises(RequestConstructionError):
            await transport.request("GET", "http://10minutemail.com/")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("code,expected", [
        (6, ConnectError),
        (7, ConnectError),
        (35, HandshakeError),
        (60, HandshakeError),
        (28, TransportError),
        (56, TransportError),
        (3, RequestConstructionError),
    ])
    async def test_curl_errors_map_to_phase(self, make_transport, code, expected):
        transport = make_transport(CurlError("boom", code))
        with pytest.raises(expected) as info:
            await transport.request("GET", "https://10minutemail.com/session/address", phase="init")
        assert isinstance(info.value.__cause__, CurlError)

    @pytest.mark.asyncio
    async def test_closed_transport_refuses_requests(self, make_transport, sessions):
        transport = make_transport()
        await transport.request("GET", "https://10minutemail.com/session/address")
        await transport.close()

        assert sessions[0].closed
        with pytest.raises(RequestConstructionError):
            await transport.request("GET", "https://10minutemail.com/session/address")


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_performs_handshake_only(self, make_transport, sessions):
        transport = make_transport()

        channel = await transport.connect("10minutemail.com", 443)

        probe = sessions[0]
        assert probe.kwargs["curl_options"][CurlOpt.CONNECT_ONLY] == 1
        assert probe.requests[0][1] == "https://10minutemail.com:443/"
        assert probe.closed
        assert channel.host == "10minutemail.com"
        assert channel.port == 443
        assert channel.ja3 == build_profile().ja3_string()
        assert channel.profile_name == "chrome97_linux"

    @pytest.mark.asyncio
    async def test_each_connect_is_a_fresh_session(self, make_transport, sessions):
        transport = make_transport()
        await transport.connect("10minutemail.com")
        await transport.connect("10minutemail.com")
        assert len(sessions) == 2

    @pytest.mark.asyncio
    async def test_dial_failure(self, make_transport, sessions):
        transport = make_transport(CurlError("could not connect", 7))
        with pytest.raises(ConnectError) as info:
            await transport.connect("10minutemail.com")
        assert info.value.phase == "connect"
        assert sessions[0].closed

    @pytest.mark.asyncio
    async def test_fingerprint_rejected(self, make_transport):
        transport = make_transport(CurlError("handshake failure", 35))
        with pytest.raises(HandshakeError) as info:
            await transport.connect("10minutemail.com")
        assert info.value.phase == "handshake"


def test_unmappable_profile_value_is_construction_error():
    error = map_curl_error(ImpersonateError("Cipher 0xfefe is not found"), phase="init")
    assert isinstance(error, RequestConstructionError)
    assert error.phase == "init"


def test_map_curl_error_without_code():
    error = map_curl_error(CurlError("mystery"), phase="fetch")
    assert isinstance(error, TransportError)
    assert error.phase == "fetch"
