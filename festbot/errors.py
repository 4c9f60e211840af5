"""
Error taxonomy shared by the registration and payment services.

Two channels, depending on how the caller is expected to react:

* ``Failure`` — a structured, expected outcome (state conflict, missing
  entity, authorisation).  Services return it as the second element of an
  ``(entity, failure)`` tuple and the handler decides how to present it.
* ``RegistrationError`` subclasses — hard faults that are raised:
  malformed codes, forged payment callbacks and an unreachable store or
  provider.
"""
from __future__ import annotations

import functools
import logging
from typing import Any, Awaitable, Callable, TypeVar

from pydantic import BaseModel
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorKind:
    INVALID_FORMAT     = "invalid_format"
    NOT_FOUND          = "not_found"
    ALREADY_REGISTERED = "already_registered"
    ALREADY_IN_TEAM    = "already_in_team"
    ALREADY_CONFIRMED  = "already_confirmed"
    FORBIDDEN          = "forbidden"
    TEAM_FULL          = "team_full"
    INVALID_SIGNATURE  = "invalid_signature"
    UNAVAILABLE        = "unavailable"

    MESSAGES = {
        INVALID_FORMAT:     "That code doesn't look right. Expected something like T23-00001.",
        NOT_FOUND:          "Nothing matches that code.",
        ALREADY_REGISTERED: "You are already registered for this event.",
        ALREADY_IN_TEAM:    "You are already in a team for this event.",
        ALREADY_CONFIRMED:  "This registration is already confirmed.",
        FORBIDDEN:          "Only the team leader can do that.",
        TEAM_FULL:          "This team is full.",
        INVALID_SIGNATURE:  "Payment confirmation could not be verified.",
        UNAVAILABLE:        "Service temporarily unavailable. Please try again.",
    }


class Failure(BaseModel):
    """Structured, recoverable outcome of an operation."""

    kind: str
    message: str

    @classmethod
    def of(cls, kind: str, message: str | None = None) -> "Failure":
        return cls(kind=kind, message=message or ErrorKind.MESSAGES.get(kind, kind))


# ── Raised errors ─────────────────────────────────────────────────────────────

class RegistrationError(Exception):
    kind: str = ""

    def to_failure(self) -> Failure:
        return Failure.of(self.kind, str(self) or None)


class InvalidFormat(RegistrationError, ValueError):
    kind = ErrorKind.INVALID_FORMAT


class InvalidSignature(RegistrationError):
    kind = ErrorKind.INVALID_SIGNATURE


class Unavailable(RegistrationError):
    kind = ErrorKind.UNAVAILABLE


# ── Store boundary ────────────────────────────────────────────────────────────

def store_operation(
    func: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    """
    Wrap a service coroutine whose first argument is an AsyncSession.

    Connectivity errors roll the session back and surface as ``Unavailable``
    so callers can retry; every mutating operation is idempotent.
    """

    @functools.wraps(func)
    async def wrapper(session: AsyncSession, *args: Any, **kwargs: Any) -> T:
        try:
            return await func(session, *args, **kwargs)
        except (OperationalError, InterfaceError) as exc:
            await session.rollback()
            logger.error("Store unavailable during %s: %s", func.__name__, exc)
            raise Unavailable(ErrorKind.MESSAGES[ErrorKind.UNAVAILABLE]) from exc

    return wrapper
