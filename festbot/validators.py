"""
Input validation — Pydantic v2 models.

Used to validate user-supplied text and external payloads before they reach
the services.  Unknown fields are rejected rather than ignored.
"""
from __future__ import annotations

import re
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Letters (any script), digits, spaces and a few separators; 2–40 chars
_TEAM_NAME_RE = re.compile(r"^[\w][\w\s\-'.&]*[\w.]$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")


def _clean_team_name(v: str) -> str:
    v = " ".join(v.split())
    if len(v) < 2 or len(v) > 40:
        raise ValueError("Team name must be 2 to 40 characters long")
    if not _TEAM_NAME_RE.match(v):
        raise ValueError("Team name may contain letters, digits, spaces and - ' . &")
    return v


class TeamNameData(BaseModel):
    """Team name entered when creating a team."""

    model_config = ConfigDict(extra="forbid")

    name: str

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _clean_team_name(v)


class TeamChanges(BaseModel):
    """
    Fields a leader may change on an unconfirmed team.
    Omitted fields are left untouched.
    """

    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else _clean_team_name(v)


class EmailData(BaseModel):
    model_config = ConfigDict(extra="forbid")

    email: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        v = v.strip().lower()
        if len(v) > 254 or not _EMAIL_RE.match(v):
            raise ValueError("That doesn't look like an email address")
        return v


class EventData(BaseModel):
    """
    Admin event form, parsed from
    ``/newevent <TYPE> <fees> <max_team_size|-> <name>``.
    """

    model_config = ConfigDict(extra="forbid")

    event_type: Literal["SOLO_SINGLE", "SOLO_MULTI", "TEAM"]
    fees: int
    max_team_size: Optional[int] = None
    name: str

    @field_validator("event_type", mode="before")
    @classmethod
    def normalize_type(cls, v: str) -> str:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("fees")
    @classmethod
    def validate_fees(cls, v: int) -> int:
        if v < 0 or v > 100_000:
            raise ValueError("Fees must be between 0 and 100000")
        return v

    @field_validator("max_team_size")
    @classmethod
    def validate_team_size(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and (v < 1 or v > 50):
            raise ValueError("Team size must be between 1 and 50")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2 or len(v) > 255:
            raise ValueError("Event name must be 2 to 255 characters long")
        return v

    @classmethod
    def from_command(cls, args: str) -> "EventData":
        parts = args.split(maxsplit=3)
        if len(parts) < 4:
            raise ValueError("Usage: /newevent <TYPE> <fees> <max_team_size|-> <name>")
        event_type, fees, size, name = parts
        return cls(
            event_type=event_type,
            fees=fees,
            max_team_size=None if size == "-" else size,
            name=name,
        )


class PaymentCallback(BaseModel):
    """Body of the payment provider's asynchronous callback."""

    model_config = ConfigDict(extra="forbid")

    order_id: int = Field(ge=1, le=2**31 - 1)
    outcome: Literal["SUCCESS", "FAILURE"]
    signature: str
