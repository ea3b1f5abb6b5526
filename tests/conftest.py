"""Shared fixtures: an in-memory transport, a controllable clock and payload builders."""

import json
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import pytest

from tenmail.http import RequestDispatcher, SESSION_COOKIE_NAME
from tenmail.session import MailSession
from tenmail.tls import TLSResponse, build_profile

START = datetime(2022, 1, 30, 12, 0, 0, tzinfo=timezone.utc)


@dataclass
class RecordedCall:
    method: str
    url: str
    headers: Dict[str, str]
    body: Optional[bytes]
    phase: Optional[str]

    def json(self) -> Any:
        return json.loads(self.body)


class FakeTransport:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self):
        self.profile = build_profile()
        self.responses: List[Any] = []
        self.calls: List[RecordedCall] = []
        self.closed = False

    def queue(self, *items: Any) -> None:
        self.responses.extend(items)

    async def request(self, method, url, headers=None, body=None, phase=None):
        self.calls.append(RecordedCall(method, url, dict(headers or {}), body, phase))
        if not self.responses:
            raise AssertionError(f"Unexpected request {method} {url}")
        item = self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def close(self):
        self.closed = True


class FakeClock:
    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


def make_response(payload: Any = None, status: int = 200,
                  cookies: Optional[Dict[str, str]] = None,
                  raw: Optional[bytes] = None) -> TLSResponse:
    content = raw if raw is not None else json.dumps(payload).encode("utf-8")
    return TLSResponse(status_code=status, content=content, cookies=cookies or {})


def message_payload(index: int, sent: str = "2022-01-30T12:01:02.345+00:00") -> Dict[str, str]:
    return {
        "id": f"msg-{index}",
        "sentDate": sent,
        "sender": f"sender{index}@example.com",
        "subject": f"Subject {index}",
        "bodyPlainText": f"Body {index}",
        "bodyHtmlContent": f"<p>Body {index}</p>",
        "bodyPreview": f"Body {index}",
    }


def address_response(address: str = "abc@x", token: str = "token-1") -> TLSResponse:
    return make_response({"address": address}, cookies={SESSION_COOKIE_NAME: token})


def messages_response(*indexes: int) -> TLSResponse:
    return make_response([message_payload(i) for i in indexes])


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def dispatcher(transport):
    return RequestDispatcher(transport)


@pytest.fixture
def session(dispatcher, clock):
    """Uninitialised session over the fake transport."""
    return MailSession(dispatcher, clock=clock)


@pytest.fixture
def responses():
    """Builders for canned server responses."""
    class Responses:
        make = staticmethod(make_response)
        address = staticmethod(address_response)
        messages = staticmethod(messages_response)
        message_payload = staticmethod(message_payload)

        @staticmethod
        def reset(value: str = "reset") -> TLSResponse:
            return make_response({"response": value})

        @staticmethod
        def status(code: int) -> TLSResponse:
            return make_response(raw=b"", status=code)

    return Responses
