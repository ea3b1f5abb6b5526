"""TLS module for browser fingerprint emulation.

This module provides the fixed ClientHello profile the 10MinuteMail edge
accepts and the curl_cffi transport that handshakes from it.
"""

from .fingerprint import (
    FingerprintProfile,
    TLSVersion,
    ExtensionType,
    TLSExtension,
    RenegotiationInfoExtension,
    SNIExtension,
    ExtendedMasterSecretExtension,
    OpaqueExtension,
    SignatureAlgorithmsExtension,
    ALPNExtension,
    SupportedPointsExtension,
    SupportedCurvesExtension,
    build_profile,
    encode_client_hello,
    CHROME_97_LINUX_USER_AGENT,
)

from .client import (
    SpoofingTransport,
    TLSClientConfig,
    TLSResponse,
    SecureChannel,
    map_curl_error,
    DEFAULT_TIMEOUT,
)

__all__ = [
    # Classes
    "FingerprintProfile",
    "SpoofingTransport",
    "TLSClientConfig",
    "TLSResponse",
    "SecureChannel",

    # Enums
    "TLSVersion",
    "ExtensionType",

    # Extensions
    "TLSExtension",
    "RenegotiationInfoExtension",
    "SNIExtension",
    "ExtendedMasterSecretExtension",
    "OpaqueExtension",
    "SignatureAlgorithmsExtension",
    "ALPNExtension",
    "SupportedPointsExtension",
    "SupportedCurvesExtension",

    # Functions
    "build_profile",
    "encode_client_hello",
    "map_curl_error",

    # Constants
    "CHROME_97_LINUX_USER_AGENT",
    "DEFAULT_TIMEOUT",
]
