"""
ORM models for the fest registration bot.

Domain overview
---------------
Event  — a competition at the fest (type: SOLO_SINGLE / SOLO_MULTI / TEAM)
  ├─ Registration — a solo entry (one per user for SOLO_SINGLE, many for SOLO_MULTI)
  └─ Team         — a group entry for TEAM events
       └─ TeamMember — membership row, unique per (event, user)
PaymentOrder — one fee-collection attempt against a Team or a Registration
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from festbot.models.base import Base

# ─────────────────────────── Constants ────────────────────────────────────────

class EventType:
    SOLO_SINGLE = "SOLO_SINGLE"   # one entry per participant
    SOLO_MULTI  = "SOLO_MULTI"    # re-entry allowed, each entry tracked on its own
    TEAM        = "TEAM"

    ALL = (SOLO_SINGLE, SOLO_MULTI, TEAM)
    SOLO = (SOLO_SINGLE, SOLO_MULTI)

    LABELS = {
        SOLO_SINGLE: "Solo",
        SOLO_MULTI:  "Solo (multiple entries)",
        TEAM:        "Team",
    }


class OrderStatus:
    CREATED   = "CREATED"     # order exists, provider order requested
    PENDING   = "PENDING"     # participant handed off to checkout
    SUCCEEDED = "SUCCEEDED"
    FAILED    = "FAILED"

    OPEN     = (CREATED, PENDING)
    TERMINAL = (SUCCEEDED, FAILED)


class SubjectType:
    TEAM         = "team"
    REGISTRATION = "registration"

    ALL = (TEAM, REGISTRATION)


# ─────────────────────────── Models ───────────────────────────────────────────

class User(Base):
    """Telegram user / potential participant."""
    __tablename__ = "users"

    id:          Mapped[int]           = mapped_column(Integer, primary_key=True, autoincrement=True)
    telegram_id: Mapped[int]           = mapped_column(BigInteger, unique=True, index=True)
    name:        Mapped[str]           = mapped_column(String(255))
    email:       Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at:  Mapped[datetime]      = mapped_column(DateTime, default=func.now())


class Event(Base):
    __tablename__ = "events"

    id:            Mapped[int]           = mapped_column(Integer, primary_key=True, autoincrement=True)
    name:          Mapped[str]           = mapped_column(String(255))
    event_type:    Mapped[str]           = mapped_column(String(20))   # EventType.*
    fees:          Mapped[int]           = mapped_column(Integer, default=0)
    max_team_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    description:   Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    created_at:    Mapped[datetime]      = mapped_column(DateTime, default=func.now())

    teams: Mapped[List["Team"]] = relationship(back_populates="event")

    @property
    def is_team(self) -> bool:
        return self.event_type == EventType.TEAM

    @property
    def type_label(self) -> str:
        return EventType.LABELS.get(self.event_type, self.event_type)


class Team(Base):
    """
    A team entry. ``member_count`` mirrors the number of TeamMember rows and
    is only ever changed through a conditional UPDATE, which is what makes
    the capacity check atomic.
    """
    __tablename__ = "teams"

    id:           Mapped[int]      = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id:     Mapped[int]      = mapped_column(ForeignKey("events.id"), index=True)
    name:         Mapped[str]      = mapped_column(String(255))
    leader_id:    Mapped[int]      = mapped_column(ForeignKey("users.id"))
    confirmed:    Mapped[bool]     = mapped_column(Boolean, default=False)
    fee:          Mapped[int]      = mapped_column(Integer, default=0)    # snapshot of Event.fees
    member_count: Mapped[int]      = mapped_column(Integer, default=1)
    created_at:   Mapped[datetime] = mapped_column(DateTime, default=func.now())

    event:   Mapped["Event"]            = relationship(back_populates="teams")
    leader:  Mapped["User"]             = relationship()
    members: Mapped[List["TeamMember"]] = relationship(
        back_populates="team", cascade="all, delete-orphan", order_by="TeamMember.id"
    )


class TeamMember(Base):
    __tablename__ = "team_members"
    __table_args__ = (
        # One team per (participant, event)
        UniqueConstraint("event_id", "user_id", name="uq_team_members_event_user"),
    )

    id:        Mapped[int]      = mapped_column(Integer, primary_key=True, autoincrement=True)
    team_id:   Mapped[int]      = mapped_column(ForeignKey("teams.id"), index=True)
    event_id:  Mapped[int]      = mapped_column(ForeignKey("events.id"))
    user_id:   Mapped[int]      = mapped_column(ForeignKey("users.id"))
    joined_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    team: Mapped["Team"] = relationship(back_populates="members")
    user: Mapped["User"] = relationship()


class Registration(Base):
    """
    A solo entry. ``exclusive`` is True for SOLO_SINGLE events and NULL for
    SOLO_MULTI ones: NULLs never collide in a unique constraint, so the
    constraint below only limits single-entry events.
    """
    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("event_id", "user_id", "exclusive", name="uq_registrations_single_entry"),
    )

    id:         Mapped[int]            = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id:   Mapped[int]            = mapped_column(ForeignKey("events.id"), index=True)
    user_id:    Mapped[int]            = mapped_column(ForeignKey("users.id"), index=True)
    confirmed:  Mapped[bool]           = mapped_column(Boolean, default=False)
    fee:        Mapped[int]            = mapped_column(Integer, default=0)  # snapshot of Event.fees
    exclusive:  Mapped[Optional[bool]] = mapped_column(Boolean, nullable=True)
    created_at: Mapped[datetime]       = mapped_column(DateTime, default=func.now())

    event: Mapped["Event"] = relationship()
    user:  Mapped["User"]  = relationship()


class PaymentOrder(Base):
    """One attempt to collect the fee for a subject; never reused across subjects."""
    __tablename__ = "payment_orders"
    __table_args__ = (
        Index("ix_payment_orders_subject", "subject_type", "subject_id"),
    )

    id:           Mapped[int]                = mapped_column(Integer, primary_key=True, autoincrement=True)
    subject_type: Mapped[str]                = mapped_column(String(20))   # SubjectType.*
    subject_id:   Mapped[int]                = mapped_column(Integer)
    amount:       Mapped[int]                = mapped_column(Integer)
    status:       Mapped[str]                = mapped_column(String(20), default=OrderStatus.CREATED)
    provider_ref: Mapped[Optional[str]]      = mapped_column(String(100), nullable=True)
    checkout_url: Mapped[Optional[str]]      = mapped_column(String(500), nullable=True)
    created_at:   Mapped[datetime]           = mapped_column(DateTime, default=func.now())
    settled_at:   Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    @property
    def is_open(self) -> bool:
        return self.status in OrderStatus.OPEN
