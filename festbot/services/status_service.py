"""
Registration state machine.

Status is always derived from what the store holds (event type, fee
snapshot, membership and the ``confirmed`` flag) and is never persisted.

    UNREGISTERED ──register──▶ CONFIRMED          (fee == 0)
    UNREGISTERED ──register──▶ PENDING_PAYMENT    (fee > 0)
    AWAITING_ACTION ──create/join──▶ team exists → same fee branch, per team
    PENDING_PAYMENT ──payment success──▶ CONFIRMED
"""
from __future__ import annotations

from typing import List, Optional, Union

from festbot.models.models import Event, EventType, Registration, Team


class Status:
    UNREGISTERED    = "UNREGISTERED"
    AWAITING_ACTION = "AWAITING_ACTION"   # team event, no team yet
    PENDING_PAYMENT = "PENDING_PAYMENT"
    CONFIRMED       = "CONFIRMED"


class Action:
    REGISTER     = "register"
    CREATE_TEAM  = "create_team"
    JOIN_TEAM    = "join_team"
    PAY          = "pay"
    EDIT_TEAM    = "edit_team"
    CONFIRM_TEAM = "confirm_team"   # zero-fee teams: leader locks membership


Subject = Union[Team, Registration]


def is_leader(subject: Optional[Subject], participant_id: Optional[int]) -> bool:
    return (
        isinstance(subject, Team)
        and participant_id is not None
        and subject.leader_id == participant_id
    )


def registration_status(
    event: Event,
    subject: Optional[Subject],
    participant_id: Optional[int],
) -> str:
    if participant_id is None:
        return Status.UNREGISTERED
    if subject is None:
        return Status.AWAITING_ACTION if event.event_type == EventType.TEAM else Status.UNREGISTERED
    if subject.confirmed or subject.fee == 0:
        return Status.CONFIRMED
    return Status.PENDING_PAYMENT


def allowed_actions(
    event: Event,
    subject: Optional[Subject],
    participant_id: Optional[int],
) -> List[str]:
    status = registration_status(event, subject, participant_id)

    if status == Status.UNREGISTERED:
        return [Action.REGISTER] if participant_id is not None else []
    if status == Status.AWAITING_ACTION:
        return [Action.CREATE_TEAM, Action.JOIN_TEAM]

    actions: List[str] = []
    if isinstance(subject, Team):
        if is_leader(subject, participant_id) and not subject.confirmed:
            actions.append(Action.EDIT_TEAM)
            if status == Status.PENDING_PAYMENT:
                actions.append(Action.PAY)
            else:
                actions.append(Action.CONFIRM_TEAM)
    elif status == Status.PENDING_PAYMENT:
        actions.append(Action.PAY)
    elif event.event_type == EventType.SOLO_MULTI:
        actions.append(Action.REGISTER)
    return actions
