"""TLS ClientHello profile for browser emulation.

The 10MinuteMail edge blocks clients whose ClientHello does not look like a
browser. This module holds the one profile that is known to pass: the exact
cipher suites, extensions and version bounds, in order, together with the
user agent it must be paired with. The profile is a frozen value; nothing in
the package mutates it.

The profile can be rendered two ways: as the literal ClientHello record the
handshake sends (``encode_client_hello``) and as the JA3 text that drives
curl's handshake engine (``FingerprintProfile.ja3_string``).
"""

import os
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, ClassVar, Dict, List, Optional, Tuple


class TLSVersion(IntEnum):
    """TLS protocol versions as they appear on the wire."""
    TLS_1_0 = 0x0301
    TLS_1_1 = 0x0302
    TLS_1_2 = 0x0303
    TLS_1_3 = 0x0304


class ExtensionType(IntEnum):
    """IANA numbers of the extensions the profile uses."""
    SERVER_NAME = 0
    SUPPORTED_GROUPS = 10
    EC_POINT_FORMATS = 11
    SIGNATURE_ALGORITHMS = 13
    APPLICATION_LAYER_PROTOCOL_NEGOTIATION = 16
    EXTENDED_MASTER_SECRET = 23
    SESSION_TICKET = 35
    RENEGOTIATION_INFO = 65281


# IANA cipher suite names, used for display only.
CIPHER_SUITE_NAMES: Dict[int, str] = {
    0x002f: "TLS_RSA_WITH_AES_128_CBC_SHA",
    0x0033: "TLS_DHE_RSA_WITH_AES_128_CBC_SHA",
    0x0035: "TLS_RSA_WITH_AES_256_CBC_SHA",
    0x0039: "TLS_DHE_RSA_WITH_AES_256_CBC_SHA",
    0x009c: "TLS_RSA_WITH_AES_128_GCM_SHA256",
    0x009d: "TLS_RSA_WITH_AES_256_GCM_SHA384",
    0x009e: "TLS_DHE_RSA_WITH_AES_128_GCM_SHA256",
    0x009f: "TLS_DHE_RSA_WITH_AES_256_GCM_SHA384",
    0xc009: "TLS_ECDHE_ECDSA_WITH_AES_128_CBC_SHA",
    0xc00a: "TLS_ECDHE_ECDSA_WITH_AES_256_CBC_SHA",
    0xc013: "TLS_ECDHE_RSA_WITH_AES_128_CBC_SHA",
    0xc014: "TLS_ECDHE_RSA_WITH_AES_256_CBC_SHA",
    0xc02b: "TLS_ECDHE_ECDSA_WITH_AES_128_GCM_SHA256",
    0xc02c: "TLS_ECDHE_ECDSA_WITH_AES_256_GCM_SHA384",
    0xc02f: "TLS_ECDHE_RSA_WITH_AES_128_GCM_SHA256",
    0xc030: "TLS_ECDHE_RSA_WITH_AES_256_GCM_SHA384",
    0xcca8: "TLS_ECDHE_RSA_WITH_CHACHA20_POLY1305_SHA256",
    0xcca9: "TLS_ECDHE_ECDSA_WITH_CHACHA20_POLY1305_SHA256",
}

# Signature scheme names understood by curl's BoringSSL build.
SIGNATURE_SCHEME_NAMES: Dict[int, str] = {
    0x0401: "rsa_pkcs1_sha256",
    0x0501: "rsa_pkcs1_sha384",
    0x0601: "rsa_pkcs1_sha512",
    0x0403: "ecdsa_secp256r1_sha256",
    0x0503: "ecdsa_secp384r1_sha384",
    0x0804: "rsa_pss_rsae_sha256",
    0x0805: "rsa_pss_rsae_sha384",
}

CURVE_NAMES: Dict[int, str] = {
    23: "P-256",
    24: "P-384",
    29: "X25519",
}

_HANDSHAKE_RECORD = 0x16
_CLIENT_HELLO = 0x01


def _u8(value: int) -> bytes:
    return value.to_bytes(1, "big")


def _u16(value: int) -> bytes:
    return value.to_bytes(2, "big")


def _u24(value: int) -> bytes:
    return value.to_bytes(3, "big")


class TLSExtension:
    """Base class for ClientHello extensions.

    Subclasses set ``extension_id`` and implement ``encode_data``. The
    ``server_name`` argument is only consulted by the SNI extension, which
    is a placeholder until a host is dialed.
    """

    extension_id: int

    def encode_data(self, server_name: str = "") -> bytes:
        raise NotImplementedError

    def to_wire_format(self, server_name: str = "") -> bytes:
        """Encode as type, length and body."""
        data = self.encode_data(server_name)
        return _u16(self.extension_id) + _u16(len(data)) + data


@dataclass(frozen=True)
class RenegotiationInfoExtension(TLSExtension):
    renegotiation: int = 0
    extension_id: ClassVar[int] = ExtensionType.RENEGOTIATION_INFO

    def encode_data(self, server_name: str = "") -> bytes:
        # Initial handshake: empty renegotiated_connection.
        return b"\x00"


@dataclass(frozen=True)
class SNIExtension(TLSExtension):
    server_name: str = ""
    extension_id: ClassVar[int] = ExtensionType.SERVER_NAME

    def encode_data(self, server_name: str = "") -> bytes:
        name = (server_name or self.server_name).encode("idna")
        if not name:
            return b""
        entry = _u8(0) + _u16(len(name)) + name
        return _u16(len(entry)) + entry


@dataclass(frozen=True)
class ExtendedMasterSecretExtension(TLSExtension):
    extension_id: ClassVar[int] = ExtensionType.EXTENDED_MASTER_SECRET

    def encode_data(self, server_name: str = "") -> bytes:
        return b""


@dataclass(frozen=True)
class OpaqueExtension(TLSExtension):
    """Extension sent as raw bytes under a fixed id."""
    extension_id: int
    data: bytes = b""

    def encode_data(self, server_name: str = "") -> bytes:
        return self.data


@dataclass(frozen=True)
class SignatureAlgorithmsExtension(TLSExtension):
    algorithms: Tuple[int, ...] = ()
    extension_id: ClassVar[int] = ExtensionType.SIGNATURE_ALGORITHMS

    def encode_data(self, server_name: str = "") -> bytes:
        body = b"".join(_u16(alg) for alg in self.algorithms)
        return _u16(len(body)) + body


@dataclass(frozen=True)
class ALPNExtension(TLSExtension):
    protocols: Tuple[str, ...] = ()
    extension_id: ClassVar[int] = ExtensionType.APPLICATION_LAYER_PROTOCOL_NEGOTIATION

    def encode_data(self, server_name: str = "") -> bytes:
        body = b""
        for protocol in self.protocols:
            protocol_bytes = protocol.encode("ascii")
            body += _u8(len(protocol_bytes)) + protocol_bytes
        return _u16(len(body)) + body


@dataclass(frozen=True)
class SupportedPointsExtension(TLSExtension):
    formats: Tuple[int, ...] = ()
    extension_id: ClassVar[int] = ExtensionType.EC_POINT_FORMATS

    def encode_data(self, server_name: str = "") -> bytes:
        return _u8(len(self.formats)) + bytes(self.formats)


@dataclass(frozen=True)
class SupportedCurvesExtension(TLSExtension):
    curves: Tuple[int, ...] = ()
    extension_id: ClassVar[int] = ExtensionType.SUPPORTED_GROUPS

    def encode_data(self, server_name: str = "") -> bytes:
        body = b"".join(_u16(curve) for curve in self.curves)
        return _u16(len(body)) + body


@dataclass(frozen=True)
class FingerprintProfile:
    """
    Complete ClientHello description for one browser build.

    Any change to the values or their order changes the fingerprint the
    edge observes.
    """

    name: str
    user_agent: str
    cipher_suites: Tuple[int, ...]
    extensions: Tuple[TLSExtension, ...]
    min_version: TLSVersion
    max_version: TLSVersion

    def extension_ids(self) -> List[int]:
        return [int(ext.extension_id) for ext in self.extensions]

    def _find(self, kind: type) -> Optional[TLSExtension]:
        for ext in self.extensions:
            if isinstance(ext, kind):
                return ext
        return None

    @property
    def signature_algorithms(self) -> Tuple[int, ...]:
        ext = self._find(SignatureAlgorithmsExtension)
        return ext.algorithms if ext else ()

    @property
    def alpn_protocols(self) -> Tuple[str, ...]:
        ext = self._find(ALPNExtension)
        return ext.protocols if ext else ()

    @property
    def curves(self) -> Tuple[int, ...]:
        ext = self._find(SupportedCurvesExtension)
        return ext.curves if ext else ()

    @property
    def point_formats(self) -> Tuple[int, ...]:
        ext = self._find(SupportedPointsExtension)
        return ext.formats if ext else ()

    def signature_algorithm_names(self) -> List[str]:
        """Signature schemes by name, in profile order."""
        try:
            return [SIGNATURE_SCHEME_NAMES[alg] for alg in self.signature_algorithms]
        except KeyError as e:
            raise ValueError(f"No name for signature scheme {e.args[0]:#06x}") from e

    def ja3_string(self) -> str:
        """JA3 text: version,ciphers,extensions,curves,point formats."""
        # JA3 records the ClientHello's client_version, i.e. the max bound.
        return ",".join([
            str(int(self.max_version)),
            "-".join(str(cs) for cs in self.cipher_suites),
            "-".join(str(ext_id) for ext_id in self.extension_ids()),
            "-".join(str(curve) for curve in self.curves),
            "-".join(str(fmt) for fmt in self.point_formats),
        ])

    def describe(self) -> Dict[str, Any]:
        """Human-readable summary of the profile."""
        return {
            "name": self.name,
            "user_agent": self.user_agent,
            "tls_versions": f"{self.min_version.name} - {self.max_version.name}",
            "cipher_suites": [CIPHER_SUITE_NAMES.get(cs, str(cs)) for cs in self.cipher_suites],
            "extensions": self.extension_ids(),
            "signature_algorithms": self.signature_algorithm_names(),
            "alpn_protocols": list(self.alpn_protocols),
            "curves": [CURVE_NAMES.get(c, str(c)) for c in self.curves],
            "ja3": self.ja3_string(),
        }


CHROME_97_LINUX_USER_AGENT = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/97.0.4692.99 Safari/537.36"
)

_PROFILE = FingerprintProfile(
    name="chrome97_linux",
    user_agent=CHROME_97_LINUX_USER_AGENT,
    cipher_suites=(
        49195,
        49196,
        52393,
        49199,
        49200,
        52392,
        158,
        159,
        49161,
        49162,
        49171,
        49172,
        51,
        57,
        156,
        157,
        47,
        53,
    ),
    extensions=(
        RenegotiationInfoExtension(renegotiation=0),
        SNIExtension(server_name=""),
        ExtendedMasterSecretExtension(),
        OpaqueExtension(extension_id=ExtensionType.SESSION_TICKET, data=b""),
        SignatureAlgorithmsExtension(algorithms=(1027, 1025)),
        ALPNExtension(protocols=("http/1.1",)),
        SupportedPointsExtension(formats=(0,)),
        SupportedCurvesExtension(curves=(23,)),
    ),
    min_version=TLSVersion.TLS_1_0,
    max_version=TLSVersion.TLS_1_2,
)


def build_profile() -> FingerprintProfile:
    """Return the profile the 10MinuteMail edge accepts."""
    return _PROFILE


def encode_client_hello(profile: FingerprintProfile, server_name: str,
                        random: Optional[bytes] = None,
                        session_id: bytes = b"") -> bytes:
    """Render the ClientHello record the profile produces for ``server_name``.

    ``random`` defaults to 32 fresh bytes. The record layer advertises the
    profile's minimum version; the hello body carries the maximum.
    """
    if random is None:
        random = os.urandom(32)
    if len(random) != 32:
        raise ValueError("ClientHello random must be 32 bytes")
    if len(session_id) > 32:
        raise ValueError("Session id must be at most 32 bytes")

    ciphers = b"".join(_u16(cs) for cs in profile.cipher_suites)
    extensions = b"".join(ext.to_wire_format(server_name) for ext in profile.extensions)

    body = (
        _u16(profile.max_version)
        + random
        + _u8(len(session_id)) + session_id
        + _u16(len(ciphers)) + ciphers
        + b"\x01\x00"  # one compression method: null
        + _u16(len(extensions)) + extensions
    )
    handshake = _u8(_CLIENT_HELLO) + _u24(len(body)) + body
    return _u8(_HANDSHAKE_RECORD) + _u16(profile.min_version) + _u16(len(handshake)) + handshake
