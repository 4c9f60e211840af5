"""
Integration tests — view projection (view_service.py) and the card keyboard.

Views are built from fresh reads exactly as the bot builds them, so these
tests go through the registration service against in-memory SQLite.
"""
from __future__ import annotations

from festbot.keyboards.event_kb import event_card_kb
from festbot.models.models import Event, EventType
from festbot.services.code_service import participant_code, team_code
from festbot.services.registration_service import (
    create_event,
    create_team,
    get_subject,
    join_team,
    register_solo,
    set_confirmed,
    upsert_user,
)
from festbot.services.status_service import Action, Status
from festbot.services.view_service import build_registration_view, render_view_text


async def _make_user(session, telegram_id: int, name: str) -> int:
    user = await upsert_user(session, telegram_id, name)
    await session.commit()
    return user.id


async def _make_event(session, event_type: str, fees: int) -> int:
    event = await create_event(session, "Robo Wars", event_type, fees=fees)
    await session.commit()
    return event.id


async def _view(session, event_id: int, participant_id):
    event = await session.get(Event, event_id)
    subject = await get_subject(session, participant_id, event) if participant_id else None
    return build_registration_view(event, subject, participant_id)


def _callbacks(markup) -> list[str]:
    return [b.callback_data for row in markup.inline_keyboard for b in row if b.callback_data]


# ─────────────────────────── Solo ────────────────────────────────────────────

class TestSoloView:
    async def test_anonymous_sees_no_actions(self, async_session) -> None:
        eid = await _make_event(async_session, EventType.SOLO_SINGLE, 100)
        view = await _view(async_session, eid, None)
        assert view.status == Status.UNREGISTERED
        assert view.actions == []
        assert view.code is None

    async def test_unregistered_paid_event(self, async_session) -> None:
        eid = await _make_event(async_session, EventType.SOLO_SINGLE, 100)
        uid = await _make_user(async_session, 1, "Asha")

        view = await _view(async_session, eid, uid)
        assert view.kind == "solo"
        assert view.actions == [Action.REGISTER]
        assert view.headline == "Pay ₹100 and register"
        assert view.subject_id is None

    async def test_unregistered_free_event(self, async_session) -> None:
        eid = await _make_event(async_session, EventType.SOLO_SINGLE, 0)
        uid = await _make_user(async_session, 1, "Asha")
        view = await _view(async_session, eid, uid)
        assert view.headline == "Register now"

    async def test_pending_entry(self, async_session) -> None:
        eid = await _make_event(async_session, EventType.SOLO_SINGLE, 100)
        uid = await _make_user(async_session, 1, "Asha")
        reg, _ = await register_solo(async_session, uid, eid)

        view = await _view(async_session, eid, uid)
        assert view.status == Status.PENDING_PAYMENT
        assert view.subject_id == reg.id
        assert view.actions == [Action.PAY]
        assert view.headline == "Heads up! Your registration is not confirmed yet."
        assert view.hint == "Almost there! Pay ₹100 to confirm your entry."
        assert view.code is None

    async def test_confirmed_entry_carries_participant_code(self, async_session) -> None:
        eid = await _make_event(async_session, EventType.SOLO_SINGLE, 0)
        uid = await _make_user(async_session, 1, "Asha")
        await register_solo(async_session, uid, eid)

        view = await _view(async_session, eid, uid)
        assert view.status == Status.CONFIRMED
        assert view.code == participant_code(uid)
        assert view.headline == "You're registered and ready to dive!"
        assert view.hint is None


# ─────────────────────────── Team ────────────────────────────────────────────

class TestTeamView:
    async def test_awaiting_team(self, async_session) -> None:
        eid = await _make_event(async_session, EventType.TEAM, 500)
        uid = await _make_user(async_session, 1, "Asha")

        view = await _view(async_session, eid, uid)
        assert view.status == Status.AWAITING_ACTION
        assert view.kind == "team"
        assert view.actions == [Action.CREATE_TEAM, Action.JOIN_TEAM]
        assert view.headline == "Create a team or join one with a team code"

    async def test_leader_of_pending_team(self, async_session) -> None:
        eid = await _make_event(async_session, EventType.TEAM, 500)
        a = await _make_user(async_session, 1, "Asha")
        b = await _make_user(async_session, 2, "Bilal")
        team, _ = await create_team(async_session, a, eid, "Sharks")
        tid = team.id
        await join_team(async_session, b, team_code(tid))

        view = await _view(async_session, eid, a)
        assert view.is_leader is True
        assert view.team_name == "Sharks"
        assert view.code == team_code(tid)
        assert [(m.name, m.is_leader) for m in view.members] == [("Asha", True), ("Bilal", False)]
        assert view.actions == [Action.EDIT_TEAM, Action.PAY]
        assert view.hint == "Almost there! Pay ₹500 to confirm your team."

    async def test_member_of_pending_team(self, async_session) -> None:
        eid = await _make_event(async_session, EventType.TEAM, 500)
        a = await _make_user(async_session, 1, "Asha")
        b = await _make_user(async_session, 2, "Bilal")
        team, _ = await create_team(async_session, a, eid, "Sharks")
        await join_team(async_session, b, team_code(team.id))

        view = await _view(async_session, eid, b)
        assert view.is_leader is False
        assert view.actions == []
        assert view.headline == "Heads up! Your team is not confirmed yet."
        assert view.hint == "Waiting for your team leader to pay."

    async def test_confirmed_team(self, async_session) -> None:
        eid = await _make_event(async_session, EventType.TEAM, 500)
        a = await _make_user(async_session, 1, "Asha")
        team, _ = await create_team(async_session, a, eid, "Sharks")
        await set_confirmed(async_session, "team", team.id)
        await async_session.commit()

        view = await _view(async_session, eid, a)
        assert view.status == Status.CONFIRMED
        assert view.confirmed is True
        assert view.actions == []
        assert view.headline == "Your team is registered and ready to dive!"

    async def test_free_team_offers_confirm(self, async_session) -> None:
        eid = await _make_event(async_session, EventType.TEAM, 0)
        a = await _make_user(async_session, 1, "Asha")
        await create_team(async_session, a, eid, "Sharks")

        view = await _view(async_session, eid, a)
        assert view.status == Status.CONFIRMED
        assert view.actions == [Action.EDIT_TEAM, Action.CONFIRM_TEAM]
        assert view.hint.startswith("Confirm the team")


# ─────────────────────────── Rendering ───────────────────────────────────────

class TestRendering:
    async def test_card_text(self, async_session) -> None:
        eid = await _make_event(async_session, EventType.TEAM, 500)
        a = await _make_user(async_session, 1, "Asha")
        team, _ = await create_team(async_session, a, eid, "Sharks")

        html = render_view_text(await _view(async_session, eid, a)).as_html()
        assert "<b>Robo Wars</b>" in html
        assert "Team <b>Sharks</b>" in html
        assert f"<code>{team_code(team.id)}</code>" in html
        assert "Asha" in html

    async def test_user_text_is_not_markup(self, async_session) -> None:
        eid = await _make_event(async_session, EventType.TEAM, 500)
        a = await _make_user(async_session, 1, "Asha")
        b = await _make_user(async_session, 2, "john_doe*")
        team, _ = await create_team(async_session, a, eid, "Tiger_Sharks")
        await join_team(async_session, b, team_code(team.id))

        card = render_view_text(await _view(async_session, eid, a))
        text, entities = card.render()
        assert "• john_doe*" in text
        assert "👥 Team Tiger_Sharks" in text
        assert {e.type for e in entities} == {"bold", "code", "italic"}

        markdown = card.as_markdown()
        assert r"john\_doe\*" in markdown
        assert r"*Tiger\_Sharks*" in markdown

    async def test_keyboard_follows_actions(self, async_session) -> None:
        eid = await _make_event(async_session, EventType.TEAM, 500)
        a = await _make_user(async_session, 1, "Asha")
        await create_team(async_session, a, eid, "Sharks")

        callbacks = _callbacks(event_card_kb(await _view(async_session, eid, a)))
        assert any(cb.startswith("tm:edit:") for cb in callbacks)
        assert any(cb.startswith("pay:start:team:") for cb in callbacks)
        # No ticket until the team is confirmed
        assert f"evt:ticket:{eid}" not in callbacks

    async def test_ticket_button_when_confirmed(self, async_session) -> None:
        eid = await _make_event(async_session, EventType.SOLO_SINGLE, 0)
        uid = await _make_user(async_session, 1, "Asha")
        await register_solo(async_session, uid, eid)

        callbacks = _callbacks(event_card_kb(await _view(async_session, eid, uid)))
        assert f"evt:ticket:{eid}" in callbacks
        assert not any(cb.startswith("evt:register:") for cb in callbacks)
