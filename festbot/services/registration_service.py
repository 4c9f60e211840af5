"""
Registration service — users, events and the registration operations
(register solo, create/join/edit/confirm team).

All functions receive an AsyncSession parameter and are plain async
functions, like the rest of the service layer.

Each mutating operation is one transaction: it commits on success and rolls
back on any conflict, so a client retry after a timeout can never leave a
half-applied change behind.  Conflicts are detected by the store itself
(unique constraints, conditional UPDATEs), never by a read followed by a
write.
"""
from __future__ import annotations

import logging
from typing import List, Optional, Tuple, Union

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from festbot.config import settings
from festbot.errors import ErrorKind, Failure, InvalidFormat, store_operation
from festbot.models.models import (
    Event,
    EventType,
    Registration,
    SubjectType,
    Team,
    TeamMember,
    User,
)
from festbot.services.code_service import CodeKind, decode
from festbot.validators import TeamChanges

logger = logging.getLogger(__name__)

Subject = Union[Team, Registration]


# ── User ──────────────────────────────────────────────────────────────────────

async def upsert_user(
    session: AsyncSession,
    telegram_id: int,
    name: str,
) -> User:
    """Create or update a Telegram user record."""
    result = await session.execute(
        select(User).where(User.telegram_id == telegram_id)
    )
    user = result.scalar_one_or_none()
    if user is None:
        user = User(telegram_id=telegram_id, name=name)
        session.add(user)
        await session.flush()
    else:
        user.name = name
    return user


async def get_user(session: AsyncSession, telegram_id: int) -> Optional[User]:
    result = await session.execute(
        select(User).where(User.telegram_id == telegram_id)
    )
    return result.scalar_one_or_none()


async def set_user_email(session: AsyncSession, user_id: int, email: str) -> None:
    await session.execute(
        update(User).where(User.id == user_id).values(email=email)
    )


# ── Event ─────────────────────────────────────────────────────────────────────

async def create_event(
    session: AsyncSession,
    name: str,
    event_type: str,
    fees: int = 0,
    max_team_size: Optional[int] = None,
    description: Optional[str] = None,
) -> Event:
    if event_type not in EventType.ALL:
        raise ValueError(f"Unknown event type: {event_type!r}")
    if fees < 0:
        raise ValueError("Fees cannot be negative")
    event = Event(
        name=name,
        event_type=event_type,
        fees=fees,
        max_team_size=max_team_size,
        description=description,
    )
    session.add(event)
    await session.flush()
    return event


async def get_event(session: AsyncSession, event_id: int) -> Optional[Event]:
    return await session.get(Event, event_id)


async def list_events(session: AsyncSession) -> List[Event]:
    result = await session.execute(select(Event).order_by(Event.name))
    return list(result.scalars().all())


def team_capacity(event: Event) -> Optional[int]:
    """Maximum team size for the event; None means unlimited."""
    return event.max_team_size or settings.DEFAULT_MAX_TEAM_SIZE


async def event_entry_counts(session: AsyncSession, event: Event) -> Tuple[int, int]:
    """(entries, confirmed entries): teams for team events, registrations otherwise."""
    model = Team if event.is_team else Registration
    result = await session.execute(
        select(
            func.count(model.id),
            func.count(model.id).filter(model.confirmed.is_(True)),
        ).where(model.event_id == event.id)
    )
    total, confirmed = result.one()
    return total, confirmed


# ── Reads ─────────────────────────────────────────────────────────────────────

async def get_team(session: AsyncSession, team_id: int) -> Optional[Team]:
    """Fresh read of a team with members and event loaded."""
    result = await session.execute(
        select(Team)
        .where(Team.id == team_id)
        .options(
            selectinload(Team.members).selectinload(TeamMember.user),
            selectinload(Team.event),
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_my_team(
    session: AsyncSession,
    user_id: int,
    event_id: int,
) -> Optional[Team]:
    team_id = await session.scalar(
        select(TeamMember.team_id).where(
            TeamMember.event_id == event_id,
            TeamMember.user_id == user_id,
        )
    )
    if team_id is None:
        return None
    return await get_team(session, team_id)


async def get_my_registrations(
    session: AsyncSession,
    user_id: int,
    event_id: int,
) -> List[Registration]:
    """Newest first."""
    result = await session.execute(
        select(Registration)
        .where(Registration.event_id == event_id, Registration.user_id == user_id)
        .order_by(Registration.id.desc())
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def get_registration(session: AsyncSession, registration_id: int) -> Optional[Registration]:
    result = await session.execute(
        select(Registration)
        .where(Registration.id == registration_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_subject(
    session: AsyncSession,
    user_id: int,
    event: Event,
) -> Optional[Subject]:
    """
    The entry a participant's status is computed from: their team for team
    events, otherwise the latest solo registration (an unpaid one first, so
    a pending payment is never hidden behind a later entry).
    """
    if event.is_team:
        return await get_my_team(session, user_id, event.id)
    registrations = await get_my_registrations(session, user_id, event.id)
    for registration in registrations:
        if not registration.confirmed and registration.fee > 0:
            return registration
    return registrations[0] if registrations else None


async def set_confirmed(
    session: AsyncSession,
    subject_type: str,
    subject_id: int,
) -> bool:
    """
    Set-if-false on the ``confirmed`` flag.
    Returns True only for the call that actually flipped it.
    """
    model = Team if subject_type == SubjectType.TEAM else Registration
    result = await session.execute(
        update(model)
        .where(model.id == subject_id, model.confirmed.is_(False))
        .values(confirmed=True)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


# ── Solo registration ─────────────────────────────────────────────────────────

@store_operation
async def register_solo(
    session: AsyncSession,
    participant_id: int,
    event_id: int,
) -> Tuple[Optional[Registration], Optional[Failure]]:
    """
    Register a participant for a solo event.

    SOLO_SINGLE allows one entry per participant (enforced by the
    ``uq_registrations_single_entry`` constraint); SOLO_MULTI always creates
    a new entry.  Free events are confirmed in the same INSERT.
    """
    event = await session.get(Event, event_id)
    if event is None:
        return None, Failure.of(ErrorKind.NOT_FOUND, "Event not found.")
    if event.event_type not in EventType.SOLO:
        raise ValueError(f"Event {event_id} is a team event")

    registration = Registration(
        event_id=event_id,
        user_id=participant_id,
        fee=event.fees,
        confirmed=event.fees == 0,
        exclusive=True if event.event_type == EventType.SOLO_SINGLE else None,
    )
    session.add(registration)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        logger.info("Duplicate solo registration: user=%d event=%d", participant_id, event_id)
        return None, Failure.of(ErrorKind.ALREADY_REGISTERED)

    await session.commit()
    logger.info(
        "Registered user=%d for event=%d (registration=%d, confirmed=%s)",
        participant_id, event_id, registration.id, registration.confirmed,
    )
    return registration, None


# ── Teams ─────────────────────────────────────────────────────────────────────

@store_operation
async def create_team(
    session: AsyncSession,
    participant_id: int,
    event_id: int,
    name: str,
) -> Tuple[Optional[Team], Optional[Failure]]:
    event = await session.get(Event, event_id)
    if event is None:
        return None, Failure.of(ErrorKind.NOT_FOUND, "Event not found.")
    if not event.is_team:
        raise ValueError(f"Event {event_id} is not a team event")

    team = Team(
        event_id=event_id,
        name=name.strip(),
        leader_id=participant_id,
        confirmed=False,
        fee=event.fees,
        member_count=1,
        members=[TeamMember(event_id=event_id, user_id=participant_id)],
    )
    session.add(team)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        logger.info("create_team rejected, user=%d already in a team for event=%d",
                    participant_id, event_id)
        return None, Failure.of(ErrorKind.ALREADY_IN_TEAM)

    await session.commit()
    logger.info("Team %d '%s' created by user=%d for event=%d",
                team.id, team.name, participant_id, event_id)
    return team, None


@store_operation
async def join_team(
    session: AsyncSession,
    participant_id: int,
    team_code: str,
) -> Tuple[Optional[Team], Optional[Failure]]:
    """
    Join a team by its public code.

    The capacity and "still open" checks are a single conditional UPDATE on
    the team row, so concurrent joins are serialised per team by the store.
    """
    try:
        team_id = decode(team_code, kind=CodeKind.TEAM)
    except InvalidFormat:
        return None, Failure.of(ErrorKind.INVALID_FORMAT)

    team = await session.get(Team, team_id)
    if team is None:
        return None, Failure.of(ErrorKind.NOT_FOUND, "No team found with that code.")
    event_id = team.event_id
    event = await session.get(Event, event_id)
    capacity = team_capacity(event)

    already = await session.scalar(
        select(TeamMember.id).where(
            TeamMember.event_id == event_id,
            TeamMember.user_id == participant_id,
        )
    )
    if already is not None:
        return None, Failure.of(ErrorKind.ALREADY_IN_TEAM)

    stmt = (
        update(Team)
        .where(Team.id == team_id, Team.confirmed.is_(False))
        .values(member_count=Team.member_count + 1)
        .execution_options(synchronize_session=False)
    )
    if capacity:
        stmt = stmt.where(Team.member_count < capacity)
    result = await session.execute(stmt)

    if result.rowcount == 0:
        await session.rollback()
        confirmed = await session.scalar(select(Team.confirmed).where(Team.id == team_id))
        if confirmed:
            return None, Failure.of(ErrorKind.ALREADY_CONFIRMED, "This team is confirmed and closed to new members.")
        return None, Failure.of(ErrorKind.TEAM_FULL)

    session.add(TeamMember(team_id=team_id, event_id=event_id, user_id=participant_id))
    try:
        await session.flush()
    except IntegrityError:
        # Lost a race against another create/join for the same event
        await session.rollback()
        return None, Failure.of(ErrorKind.ALREADY_IN_TEAM)

    await session.commit()
    logger.info("User=%d joined team=%d", participant_id, team_id)
    return await get_team(session, team_id), None


@store_operation
async def edit_team(
    session: AsyncSession,
    leader_id: int,
    team_id: int,
    changes: TeamChanges,
) -> Tuple[Optional[Team], Optional[Failure]]:
    team = await session.get(Team, team_id)
    if team is None:
        return None, Failure.of(ErrorKind.NOT_FOUND, "Team not found.")
    if team.leader_id != leader_id:
        return None, Failure.of(ErrorKind.FORBIDDEN)

    values = changes.model_dump(exclude_none=True)
    if values:
        result = await session.execute(
            update(Team)
            .where(Team.id == team_id, Team.confirmed.is_(False))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await session.rollback()
            return None, Failure.of(ErrorKind.ALREADY_CONFIRMED, "Confirmed teams can no longer be edited.")
        await session.commit()
        logger.info("Team %d edited by leader=%d: %s", team_id, leader_id, values)
    return await get_team(session, team_id), None


@store_operation
async def confirm_team(
    session: AsyncSession,
    leader_id: int,
    team_id: int,
) -> Tuple[Optional[Team], Optional[Failure]]:
    """Lock a free team's roster. Paid teams are confirmed by payment only."""
    team = await session.get(Team, team_id)
    if team is None:
        return None, Failure.of(ErrorKind.NOT_FOUND, "Team not found.")
    if team.leader_id != leader_id:
        return None, Failure.of(ErrorKind.FORBIDDEN)
    if team.fee > 0:
        raise ValueError(f"Team {team_id} has a fee and must be confirmed by payment")

    if not await set_confirmed(session, SubjectType.TEAM, team_id):
        await session.rollback()
        return None, Failure.of(ErrorKind.ALREADY_CONFIRMED)

    await session.commit()
    logger.info("Free team %d confirmed by leader=%d", team_id, leader_id)
    return await get_team(session, team_id), None
