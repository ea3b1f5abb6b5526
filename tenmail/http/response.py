"""Discriminated result of a dispatched request.

Every call site classifies its response the same way: the edge either
blocked us, the call succeeded (and its payload decoded), the server
declined without saying why, or the exchange failed outright. Callers match
on ``Outcome.kind`` rather than on exception messages.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

from ..errors import BlockedError, MailError

T = TypeVar("T")

BLOCKED_STATUS = 403
SUCCESS_STATUS = 200


class OutcomeKind(Enum):
    OK = "ok"
    BLOCKED = "blocked"
    DECLINED = "declined"
    FAILED = "failed"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of one request: OK(value), BLOCKED, DECLINED(status) or FAILED(error)."""

    kind: OutcomeKind
    value: Optional[T] = None
    status_code: Optional[int] = None
    error: Optional[MailError] = None

    @classmethod
    def ok(cls, value: Optional[T] = None, status_code: int = SUCCESS_STATUS) -> "Outcome[T]":
        return cls(OutcomeKind.OK, value=value, status_code=status_code)

    @classmethod
    def blocked(cls, phase: Optional[str] = None, status_code: int = BLOCKED_STATUS) -> "Outcome[T]":
        return cls(
            OutcomeKind.BLOCKED,
            status_code=status_code,
            error=BlockedError(phase=phase, status_code=status_code),
        )

    @classmethod
    def declined(cls, status_code: int) -> "Outcome[T]":
        return cls(OutcomeKind.DECLINED, status_code=status_code)

    @classmethod
    def failed(cls, error: MailError) -> "Outcome[T]":
        return cls(OutcomeKind.FAILED, error=error)

    @property
    def is_ok(self) -> bool:
        return self.kind is OutcomeKind.OK

    @property
    def is_blocked(self) -> bool:
        return self.kind is OutcomeKind.BLOCKED

    @property
    def is_declined(self) -> bool:
        return self.kind is OutcomeKind.DECLINED

    @property
    def is_failed(self) -> bool:
        return self.kind is OutcomeKind.FAILED

    def raise_for_error(self) -> None:
        """Raise the carried error for BLOCKED and FAILED outcomes."""
        if self.error is not None and self.kind in (OutcomeKind.BLOCKED, OutcomeKind.FAILED):
            raise self.error

    def __repr__(self) -> str:
        if self.kind is OutcomeKind.OK:
            return f"<Outcome OK {self.value!r}>"
        if self.kind is OutcomeKind.FAILED:
            return f"<Outcome FAILED {self.error!r}>"
        return f"<Outcome {self.kind.name} [{self.status_code}]>"
