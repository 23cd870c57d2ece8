"""Tagged result values for remote operations.

This module provides:
- ErrorKind: Classification of failures
- BillingInfo: Credits charged/remaining reported by the server
- Ok, Err: Result variants returned by the API client and sync coordinator

Remote calls never raise to the caller; they return Ok or Err and the
caller inspects `.ok` (or matches on the type).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")

CREDITS_CHARGED_HEADER = "X-Credits-Charged"
CREDITS_REMAINING_HEADER = "X-Credits-Remaining"


class ErrorKind(str, Enum):
    """Kind of failure carried by an Err."""

    NETWORK = "network"
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    INSUFFICIENT_CREDITS = "insufficient_credits"
    REMOTE = "remote"
    INVALID_RESPONSE = "invalid_response"
    STORAGE = "storage"


def _parse_int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None


@dataclass(frozen=True)
class BillingInfo:
    """Out-of-band billing metadata from response headers."""

    credits_charged: int | None = None
    credits_remaining: int | None = None

    @classmethod
    def from_headers(cls, headers: Mapping[str, str]) -> BillingInfo:
        """Parse billing headers (missing or malformed values become None)."""
        return cls(
            credits_charged=_parse_int(headers.get(CREDITS_CHARGED_HEADER)),
            credits_remaining=_parse_int(headers.get(CREDITS_REMAINING_HEADER)),
        )


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful result."""

    value: T
    billing: BillingInfo = field(default_factory=BillingInfo)

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed result.

    Attributes:
        kind: Failure classification.
        message: Human-readable description.
        code: Error code string (server-provided or NETWORK_ERROR, etc.).
        status_code: HTTP status code, when a response was received.
        details: Extra fields from the server's error object.
        billing: Billing headers, when a response was received.
    """

    kind: ErrorKind
    message: str
    code: str | None = None
    status_code: int | None = None
    details: dict[str, Any] = field(default_factory=dict)
    billing: BillingInfo = field(default_factory=BillingInfo)

    @property
    def ok(self) -> bool:
        return False

    def __str__(self) -> str:
        if self.code:
            return f"{self.code}: {self.message}"
        return self.message


Result = Union[Ok[T], Err]
