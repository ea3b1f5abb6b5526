"""Request and response payload shapes for the session endpoints."""

from typing import Any, Dict

from ..errors import DecodeError

RESET_SUCCESS = "reset"


def decode_address(payload: Any) -> str:
    """``{"address": "..."}`` -> address."""
    if not isinstance(payload, dict) or not isinstance(payload.get("address"), str):
        raise DecodeError("Address response must be an object with a string 'address'")
    return payload["address"]


def decode_reset(payload: Any) -> str:
    """``{"response": "..."}`` -> response literal."""
    if not isinstance(payload, dict) or not isinstance(payload.get("response"), str):
        raise DecodeError("Reset response must be an object with a string 'response'")
    return payload["response"]


def reply_request(message_id: str, body: str) -> Dict[str, Dict[str, str]]:
    return {"reply": {"messageId": message_id, "replyBody": body}}


def forward_request(message_id: str, recipient: str) -> Dict[str, Dict[str, str]]:
    return {"forward": {"messageId": message_id, "forwardAddress": recipient}}
