"""Message model for mail received by a temporary address.

Decoding is two-phase: the raw JSON object is first checked for its string
fields, then ``sentDate`` is parsed by a strict parser for the one layout the
service uses. Anything else is a ``DecodeError``.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List

from ..errors import DecodeError

# Example: 2022-01-30T12:34:56.789+00:00
SENT_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S.%f+00:00"
_SENT_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}\+00:00")

# Wire key -> attribute name.
_FIELD_MAP = {
    "id": "id",
    "sentDate": "sent_date",
    "sender": "sender",
    "subject": "subject",
    "bodyPlainText": "plaintext",
    "bodyHtmlContent": "html",
    "bodyPreview": "preview",
}


def parse_sent_date(raw: str) -> datetime:
    """Parse a ``sentDate`` value into an aware UTC datetime."""
    if not isinstance(raw, str) or not _SENT_DATE_PATTERN.fullmatch(raw):
        raise DecodeError(f"Unexpected sentDate format: {raw!r}")
    try:
        parsed = datetime.strptime(raw, SENT_DATE_FORMAT)
    except ValueError as e:
        raise DecodeError(f"Invalid sentDate: {raw!r}") from e
    return parsed.replace(tzinfo=timezone.utc)


def format_sent_date(value: datetime) -> str:
    """Inverse of ``parse_sent_date``."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}+00:00"


@dataclass(frozen=True)
class Message:
    """A single email received by the temporary address.

    The id is assigned by 10MinuteMail and is only meaningful while the
    mailbox exists.
    """
    id: str
    sent_date: datetime
    sender: str
    subject: str
    plaintext: str
    html: str
    preview: str

    @classmethod
    def from_payload(cls, payload: Any) -> "Message":
        """Build a message from one element of a messages response."""
        if not isinstance(payload, dict):
            raise DecodeError(f"Message must be an object, got {type(payload).__name__}")

        raw: Dict[str, str] = {}
        for wire_key, attr in _FIELD_MAP.items():
            value = payload.get(wire_key)
            if not isinstance(value, str):
                raise DecodeError(f"Message field {wire_key!r} missing or not a string")
            raw[attr] = value

        raw_date = raw.pop("sent_date")
        return cls(sent_date=parse_sent_date(raw_date), **raw)

    def to_dict(self) -> Dict[str, str]:
        """Convert back to the wire representation."""
        return {
            "id": self.id,
            "sentDate": format_sent_date(self.sent_date),
            "sender": self.sender,
            "subject": self.subject,
            "bodyPlainText": self.plaintext,
            "bodyHtmlContent": self.html,
            "bodyPreview": self.preview,
        }


def decode_messages(payload: Any) -> List[Message]:
    """Decode a messages-after response, preserving server order."""
    if not isinstance(payload, list):
        raise DecodeError(f"Messages response must be an array, got {type(payload).__name__}")
    return [Message.from_payload(item) for item in payload]
