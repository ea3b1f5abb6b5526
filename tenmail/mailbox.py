"""
TempMailbox - blocking interface to a 10MinuteMail session

Runs a ``MailSession`` on a private event loop in a background thread so
scripts that are not async can use it directly.

Example usage:
    import tenmail

    with tenmail.create_mailbox() as box:
        print(box.address)
        for message in box.latest():
            print(message.subject)
"""

import asyncio
import logging
import threading
from datetime import datetime
from typing import Any, Awaitable, Callable, List, Optional, TypeVar

from .config import ClientConfig
from .models import Message
from .session import MailSession, SessionState

logger = logging.getLogger(__name__)

T = TypeVar("T")


class TempMailbox:
    """Synchronous wrapper around ``MailSession``."""

    def __init__(self, config: Optional[ClientConfig] = None,
                 transport: Optional[Any] = None,
                 clock: Optional[Callable[[], datetime]] = None):
        """Create the mailbox. The address is requested on first use or ``open()``."""
        self.config = config or ClientConfig()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._is_closed = False

        # Start event loop in background thread
        self._start_event_loop()
        self._session = MailSession.from_config(self.config, transport, clock)

    def _start_event_loop(self):
        """Start the async event loop in a background thread."""
        ready = threading.Event()

        def run_loop():
            self._loop = asyncio.new_event_loop()
            asyncio.set_event_loop(self._loop)
            self._loop.call_soon(ready.set)
            self._loop.run_forever()
            self._loop.close()

        self._thread = threading.Thread(target=run_loop, name="tenmail-loop", daemon=True)
        self._thread.start()
        ready.wait()

    def _run(self, call: Callable[[], Awaitable[T]]) -> T:
        if self._is_closed:
            raise RuntimeError("Mailbox has been closed")
        future = asyncio.run_coroutine_threadsafe(call(), self._loop)
        # The transport enforces its own deadline; add slack for the loop hop.
        return future.result(timeout=self.config.timeout * 2 + 5)

    def open(self) -> str:
        """Request the mailbox address if not done yet."""
        if self._session.state is SessionState.UNINITIALIZED:
            return self._run(self._session.init)
        return self._session.address

    @property
    def session(self) -> MailSession:
        return self._session

    @property
    def address(self) -> str:
        return self.open()

    @property
    def fetch_cursor(self) -> int:
        return self._session.fetch_cursor

    def messages(self) -> List[Message]:
        self.open()
        return self._run(self._session.messages)

    def latest(self) -> List[Message]:
        self.open()
        return self._run(self._session.latest)

    def renew(self) -> bool:
        self.open()
        return self._run(self._session.renew)

    def reply(self, message_id: str, body: str) -> bool:
        self.open()
        return self._run(lambda: self._session.reply(message_id, body))

    def forward(self, message_id: str, recipient: str) -> bool:
        self.open()
        return self._run(lambda: self._session.forward(message_id, recipient))

    def expired(self) -> bool:
        return self._session.expired()

    def expires_at(self) -> datetime:
        return self._session.expires_at()

    def seconds_left(self) -> int:
        return self._session.seconds_left()

    def close(self):
        """Release the transport and stop the background loop."""
        if self._is_closed:
            return

        try:
            future = asyncio.run_coroutine_threadsafe(self._session.close(), self._loop)
            future.result(timeout=5)
        except Exception as e:
            logger.warning("Error while closing mailbox transport: %s", e)
        finally:
            self._is_closed = True
            if self._loop:
                self._loop.call_soon_threadsafe(self._loop.stop)
            if self._thread and self._thread.is_alive():
                self._thread.join(timeout=2)

    def __enter__(self):
        """Support context manager protocol."""
        try:
            self.open()
        except Exception:
            self.close()
            raise
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Support context manager protocol."""
        self.close()

    def __repr__(self):
        return f"<TempMailbox {self._session.address or '-'}>"


def create_mailbox(config: Optional[ClientConfig] = None, **kwargs) -> TempMailbox:
    """
    Create a TempMailbox instance.

    Args:
        config: Optional ClientConfig for advanced configuration
        **kwargs: ClientConfig fields, used when ``config`` is not given

    Returns:
        TempMailbox, not yet bound to an address

    Example:
        >>> import tenmail
        >>> box = tenmail.create_mailbox(timeout=15)
        >>> print(box.address)
    """
    if config is None:
        config = ClientConfig(**kwargs)

    return TempMailbox(config)
