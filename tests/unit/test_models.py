"""
Unit tests for message and payload decoding.
"""

from datetime import datetime, timezone

import pytest

from tenmail.errors import DecodeError
from tenmail.models import (
    Message,
    decode_address,
    decode_messages,
    decode_reset,
    format_sent_date,
    forward_request,
    parse_sent_date,
    reply_request,
)

WIRE_MESSAGE = {
    "id": "42",
    "sentDate": "2022-01-30T12:34:56.789+00:00",
    "sender": "alice@example.com",
    "subject": "Hello",
    "bodyPlainText": "Hi there",
    "bodyHtmlContent": "<p>Hi there</p>",
    "bodyPreview": "Hi there",
}


class TestSentDate:
    """The one date layout the service emits."""

    def test_parses_to_aware_utc(self):
        parsed = parse_sent_date("2022-01-30T12:34:56.789+00:00")
        assert parsed == datetime(2022, 1, 30, 12, 34, 56, 789000, tzinfo=timezone.utc)
        assert parsed.tzinfo is timezone.utc

    @pytest.mark.parametrize("raw", [
        "2022-01-30T12:34:56+00:00",
        "2022-01-30T12:34:56.789Z",
        "2022-01-30T12:34:56.789+01:00",
        "2022-01-30 12:34:56.789+00:00",
        "2022-01-30T12:34:56.789123+00:00",
        "2022-13-30T12:34:56.789+00:00",
        "",
        None,
    ])
    def test_rejects_other_layouts(self, raw):
        with pytest.raises(DecodeError):
            parse_sent_date(raw)

    def test_format_inverts_parse(self):
        raw = "2022-01-30T12:34:56.789+00:00"
        assert format_sent_date(parse_sent_date(raw)) == raw


class TestMessage:
    def test_from_payload(self):
        message = Message.from_payload(WIRE_MESSAGE)
        assert message.id == "42"
        assert message.sender == "alice@example.com"
        assert message.subject == "Hello"
        assert message.plaintext == "Hi there"
        assert message.html == "<p>Hi there</p>"
        assert message.preview == "Hi there"
        assert message.sent_date.minute == 34

    def test_to_dict_restores_wire_keys(self):
        assert Message.from_payload(WIRE_MESSAGE).to_dict() == WIRE_MESSAGE

    def test_extra_keys_ignored(self):
        payload = dict(WIRE_MESSAGE, read=True, attachments=[])
        assert Message.from_payload(payload).id == "42"

    @pytest.mark.parametrize("key", sorted(WIRE_MESSAGE))
    def test_missing_field(self, key):
        payload = {k: v for k, v in WIRE_MESSAGE.items() if k != key}
        with pytest.raises(DecodeError):
            Message.from_payload(payload)

    def test_non_string_field(self):
        with pytest.raises(DecodeError):
            Message.from_payload(dict(WIRE_MESSAGE, id=42))

    def test_not_an_object(self):
        with pytest.raises(DecodeError):
            Message.from_payload(["42"])

    def test_decode_messages_keeps_order(self):
        second = dict(WIRE_MESSAGE, id="43")
        assert [m.id for m in decode_messages([WIRE_MESSAGE, second])] == ["42", "43"]
        assert decode_messages([]) == []

    def test_decode_messages_requires_array(self):
        with pytest.raises(DecodeError):
            decode_messages({"messages": []})

    def test_one_bad_message_fails_the_batch(self):
        with pytest.raises(DecodeError):
            decode_messages([WIRE_MESSAGE, dict(WIRE_MESSAGE, sentDate="yesterday")])


class TestPayloads:
    def test_address(self):
        assert decode_address({"address": "abc@x"}) == "abc@x"
        for bad in ({}, {"address": None}, [], "abc@x"):
            with pytest.raises(DecodeError):
                decode_address(bad)

    def test_reset(self):
        assert decode_reset({"response": "reset"}) == "reset"
        assert decode_reset({"response": "nope"}) == "nope"
        with pytest.raises(DecodeError):
            decode_reset({"status": "reset"})

    def test_reply_and_forward_bodies(self):
        assert reply_request("7", "thanks") == {"reply": {"messageId": "7", "replyBody": "thanks"}}
        assert forward_request("7", "bob@example.com") == {
            "forward": {"messageId": "7", "forwardAddress": "bob@example.com"}
        }
