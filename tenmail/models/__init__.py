"""Data models for 10MinuteMail payloads."""

from .message import (
    Message,
    decode_messages,
    parse_sent_date,
    format_sent_date,
    SENT_DATE_FORMAT,
)

from .payloads import (
    decode_address,
    decode_reset,
    reply_request,
    forward_request,
    RESET_SUCCESS,
)

__all__ = [
    "Message",
    "decode_messages",
    "parse_sent_date",
    "format_sent_date",
    "decode_address",
    "decode_reset",
    "reply_request",
    "forward_request",
    "SENT_DATE_FORMAT",
    "RESET_SUCCESS",
]
