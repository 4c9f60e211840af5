"""
View projection: what a client should show for a participant and an event.

Read-only.  Takes the authoritative records, runs them through the status
state machine and returns a plain model the bot (or any other client)
renders without further logic.
"""
from __future__ import annotations

from typing import List, Optional

from aiogram.utils.formatting import Bold, Code, Italic, Text, as_list
from pydantic import BaseModel

from festbot.models.models import Event, Team
from festbot.services.code_service import participant_code, team_code
from festbot.services.status_service import (
    Action,
    Status,
    Subject,
    allowed_actions,
    is_leader,
    registration_status,
)


class MemberView(BaseModel):
    name: str
    is_leader: bool = False


class RegistrationView(BaseModel):
    event_id: int
    event_name: str
    event_type: str
    kind: str                      # "solo" | "team"
    fee: int
    status: str
    actions: List[str]
    subject_id: Optional[int] = None
    confirmed: bool = False
    is_leader: bool = False
    code: Optional[str] = None     # what goes on the QR ticket
    team_name: Optional[str] = None
    members: List[MemberView] = []
    headline: str
    hint: Optional[str] = None


def build_registration_view(
    event: Event,
    subject: Optional[Subject],
    participant_id: Optional[int],
) -> RegistrationView:
    """
    ``subject`` must come from a fresh read; for teams that means
    ``get_team``/``get_my_team`` so members and their users are loaded.
    """
    status = registration_status(event, subject, participant_id)
    actions = allowed_actions(event, subject, participant_id)
    team = subject if isinstance(subject, Team) else None
    kind = "team" if event.is_team else "solo"
    fee = subject.fee if subject is not None else event.fees

    code = None
    if team is not None:
        code = team_code(team.id)
    elif status == Status.CONFIRMED and participant_id is not None:
        code = participant_code(participant_id)

    members: List[MemberView] = []
    if team is not None:
        members = [
            MemberView(name=m.user.name, is_leader=m.user_id == team.leader_id)
            for m in team.members
        ]

    return RegistrationView(
        event_id=event.id,
        event_name=event.name,
        event_type=event.event_type,
        kind=kind,
        fee=fee,
        status=status,
        actions=actions,
        subject_id=subject.id if subject is not None else None,
        confirmed=bool(subject is not None and subject.confirmed),
        is_leader=is_leader(subject, participant_id),
        code=code,
        team_name=team.name if team is not None else None,
        members=members,
        headline=_headline(status, kind, fee),
        hint=_hint(status, kind, fee, actions),
    )


def _headline(status: str, kind: str, fee: int) -> str:
    entry = "team" if kind == "team" else "registration"
    if status == Status.UNREGISTERED:
        return "Register now" if fee == 0 else f"Pay ₹{fee} and register"
    if status == Status.AWAITING_ACTION:
        return "Create a team or join one with a team code"
    if status == Status.PENDING_PAYMENT:
        return f"Heads up! Your {entry} is not confirmed yet."
    if kind == "team":
        return "Your team is registered and ready to dive!"
    return "You're registered and ready to dive!"


def _hint(status: str, kind: str, fee: int, actions: List[str]) -> Optional[str]:
    if status == Status.PENDING_PAYMENT:
        entry = "team" if kind == "team" else "entry"
        if Action.PAY in actions:
            return f"Almost there! Pay ₹{fee} to confirm your {entry}."
        return "Waiting for your team leader to pay."
    if Action.CONFIRM_TEAM in actions:
        return "Confirm the team once everyone has joined. The roster is locked after that."
    return None


def render_view_text(view: RegistrationView) -> Text:
    """
    Card for the bot.

    Built as text plus entities, so names typed by users are never parsed
    as markup.  Send it with ``**card.as_kwargs()``.
    """
    fee = f" · ₹{view.fee}" if view.fee else " · free"
    lines = [
        Text("🎪 ", Bold(view.event_name)),
        Text("📌 ", view.event_type.replace("_", " ").title(), fee),
        Text(),
    ]
    if view.team_name:
        lines.append(Text("👥 Team ", Bold(view.team_name)))
    if view.code:
        lines.append(Text("🎫 Code: ", Code(view.code)))
    if view.members:
        lines.append(Text())
        for m in view.members:
            lines.append(Text("⭐️ " if m.is_leader else "• ", m.name))
    lines += [Text(), Text(view.headline)]
    if view.hint:
        lines.append(Italic(view.hint))
    return as_list(*lines)
