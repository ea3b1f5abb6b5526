"""Session cookie handling.

10MinuteMail identifies a mailbox by a single ``JSESSIONID`` cookie issued
on first contact. The client echoes it on every later call.
"""

from dataclasses import dataclass
from typing import Mapping, Optional

SESSION_COOKIE_NAME = "JSESSIONID"
SESSION_COOKIE_MAX_AGE = 300


@dataclass(frozen=True)
class Cookie:
    """Represents an HTTP cookie."""
    name: str
    value: str
    max_age: Optional[int] = None

    def to_header_value(self) -> str:
        """Convert cookie to header value format."""
        return f"{self.name}={self.value}"


def session_cookie(token: str) -> Cookie:
    """The cookie sent on authenticated calls."""
    return Cookie(SESSION_COOKIE_NAME, token, max_age=SESSION_COOKIE_MAX_AGE)


def extract_session_token(cookies: Mapping[str, str]) -> Optional[str]:
    """Return the session token from response cookies, if one was issued."""
    token = cookies.get(SESSION_COOKIE_NAME)
    if not token:
        return None
    return token
