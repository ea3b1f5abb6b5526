"""Client configuration.

Settings can be built in code, from a dictionary, or from a JSON file (the
CLI's ``--config`` option).
"""

import json
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .http.client import DEFAULT_BASE_URL
from .tls.client import DEFAULT_TIMEOUT, TLSClientConfig


@dataclass
class ClientConfig:
    """Configuration for a mail session and its transport."""
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    proxy_url: Optional[str] = None
    verify_ssl: bool = True

    def __post_init__(self):
        if not isinstance(self.base_url, str):
            raise ValueError("base_url must be a string")
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)):
            raise ValueError(f"timeout must be a number, got {self.timeout!r}")
        if self.proxy_url is not None and not isinstance(self.proxy_url, str):
            raise ValueError("proxy_url must be a string")
        if not isinstance(self.verify_ssl, bool):
            raise ValueError("verify_ssl must be true or false")
        if not self.base_url.startswith("https://"):
            raise ValueError(f"base_url must be an https URL, got {self.base_url!r}")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")

    def tls_config(self) -> TLSClientConfig:
        """Transport settings derived from this configuration."""
        return TLSClientConfig(
            timeout=self.timeout,
            verify_ssl=self.verify_ssl,
            proxy_url=self.proxy_url,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        """Create from a dictionary. Unknown keys are rejected, None values skipped."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        return cls(**{k: v for k, v in data.items() if v is not None})

    @classmethod
    def load(cls, path: Union[str, Path]) -> "ClientConfig":
        """Load from a JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Configuration file {path} must contain a JSON object")
        return cls.from_dict(data)

    def merged(self, **overrides: Any) -> "ClientConfig":
        """Copy with the non-None overrides applied."""
        data = self.to_dict()
        data.update({k: v for k, v in overrides.items() if v is not None})
        return ClientConfig.from_dict(data)
