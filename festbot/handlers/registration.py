"""
Registration actions from the event card.

Flows:
  Register (solo)  → registered ✅  or  → checkout link 💳
  Create team      → enter team name → team card with code
  Join team        → enter team code (T23-00001) → team card
  Rename / Confirm → leader only, until the team is confirmed
  Pay              → order + checkout link; the card is refreshed by the user
"""
import logging
from typing import Optional

from aiogram import F, Router
from aiogram.enums import ParseMode
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from festbot.errors import ErrorKind, Unavailable
from festbot.handlers.events import build_card
from festbot.keyboards import EventCb, PayCb, TeamCb, cancel_input_kb, checkout_kb
from festbot.middlewares import Identity
from festbot.models.models import SubjectType
from festbot.services import (
    PaymentProvider,
    begin_checkout,
    confirm_team,
    create_order,
    create_team,
    edit_team,
    join_team,
    register_solo,
)
from festbot.states import RegistrationStates
from festbot.validators import TeamChanges, TeamNameData

logger = logging.getLogger(__name__)
router = Router(name="registration")


async def _require_identity(callback: CallbackQuery, identity: Optional[Identity]) -> bool:
    if identity is None:
        await callback.answer("Send /start first to sign in.", show_alert=True)
        return False
    return True


async def _send_card(message: Message, session: AsyncSession, event_id: int, identity: Identity) -> None:
    card = await build_card(session, event_id, identity)
    if card is None:
        return
    text, kb = card
    await message.answer(**text.as_kwargs(), reply_markup=kb)


async def _edit_card(callback: CallbackQuery, session: AsyncSession, event_id: int, identity: Identity) -> None:
    card = await build_card(session, event_id, identity)
    if card is None:
        return
    text, kb = card
    await callback.message.edit_text(**text.as_kwargs(), reply_markup=kb)


async def _start_checkout(
    callback: CallbackQuery,
    session: AsyncSession,
    provider: Optional[PaymentProvider],
    subject_type: str,
    subject_id: int,
    identity: Identity,
    event_id: int,
) -> None:
    if provider is None:
        await callback.answer("Payments are not available right now.", show_alert=True)
        return
    try:
        order, failure = await create_order(
            session, provider, subject_type, subject_id, identity.participant_id
        )
    except Unavailable:
        await callback.answer(ErrorKind.MESSAGES[ErrorKind.UNAVAILABLE], show_alert=True)
        return
    if failure:
        await callback.answer(failure.message, show_alert=True)
        return

    order, failure = await begin_checkout(session, order.id)
    if failure or not order.checkout_url:
        await callback.answer(failure.message if failure else "Payment link unavailable.", show_alert=True)
        return

    await callback.message.edit_text(
        f"💳 *Pay ₹{order.amount} to confirm*\n\n"
        f"Open the checkout, complete the payment and come back.\n"
        f"Confirmation can take a minute — tap refresh to check.",
        parse_mode=ParseMode.MARKDOWN,
        reply_markup=checkout_kb(order.checkout_url, event_id),
    )
    await callback.answer()


# ── Solo ──────────────────────────────────────────────────────────────────────

@router.callback_query(EventCb.filter(F.action == "register"))
async def cq_register_solo(
    callback: CallbackQuery,
    callback_data: EventCb,
    session: AsyncSession,
    identity: Optional[Identity],
    payment_provider: Optional[PaymentProvider] = None,
) -> None:
    if not await _require_identity(callback, identity):
        return

    registration, failure = await register_solo(session, identity.participant_id, callback_data.eid)
    if failure:
        await callback.answer(failure.message, show_alert=True)
        return

    if registration.confirmed:
        await _edit_card(callback, session, callback_data.eid, identity)
        await callback.answer("✅ You're registered!")
        return

    await _start_checkout(
        callback, session, payment_provider,
        SubjectType.REGISTRATION, registration.id, identity, callback_data.eid,
    )


# ── Create team ───────────────────────────────────────────────────────────────

@router.callback_query(EventCb.filter(F.action == "create_team"))
async def cq_create_team(
    callback: CallbackQuery,
    callback_data: EventCb,
    state: FSMContext,
    identity: Optional[Identity],
) -> None:
    if not await _require_identity(callback, identity):
        return
    await state.set_state(RegistrationStates.enter_team_name)
    await state.update_data(event_id=callback_data.eid)
    await callback.message.edit_text(
        "👥 Send a *name* for your team:",
        parse_mode=ParseMode.MARKDOWN,
        reply_markup=cancel_input_kb(callback_data.eid),
    )
    await callback.answer()


@router.message(RegistrationStates.enter_team_name)
async def msg_team_name(
    message: Message,
    session: AsyncSession,
    state: FSMContext,
    identity: Optional[Identity],
) -> None:
    data = await state.get_data()
    event_id = data.get("event_id")
    try:
        form = TeamNameData(name=message.text or "")
    except ValidationError as exc:
        await message.answer(
            f"⚠️ {exc.errors()[0]['msg'].removeprefix('Value error, ')}",
            reply_markup=cancel_input_kb(event_id),
        )
        return

    await state.clear()
    if identity is None:
        await message.answer("Send /start first to sign in.")
        return
    team, failure = await create_team(session, identity.participant_id, event_id, form.name)
    if failure:
        await message.answer(f"⚠️ {failure.message}")
        return
    await _send_card(message, session, event_id, identity)


# ── Join team ─────────────────────────────────────────────────────────────────

@router.callback_query(EventCb.filter(F.action == "join_team"))
async def cq_join_team(
    callback: CallbackQuery,
    callback_data: EventCb,
    state: FSMContext,
    identity: Optional[Identity],
) -> None:
    if not await _require_identity(callback, identity):
        return
    await state.set_state(RegistrationStates.enter_team_code)
    await state.update_data(event_id=callback_data.eid)
    await callback.message.edit_text(
        "🔗 Send the *team code* your leader shared (e.g. `T23-10902`):",
        parse_mode=ParseMode.MARKDOWN,
        reply_markup=cancel_input_kb(callback_data.eid),
    )
    await callback.answer()


@router.message(RegistrationStates.enter_team_code)
async def msg_team_code(
    message: Message,
    session: AsyncSession,
    state: FSMContext,
    identity: Optional[Identity],
) -> None:
    data = await state.get_data()
    event_id = data.get("event_id")
    if identity is None:
        await state.clear()
        await message.answer("Send /start first to sign in.")
        return

    team, failure = await join_team(session, identity.participant_id, message.text or "")
    if failure:
        if failure.kind in (ErrorKind.INVALID_FORMAT, ErrorKind.NOT_FOUND):
            # Likely a typo, let them try again
            await message.answer(f"⚠️ {failure.message}", reply_markup=cancel_input_kb(event_id))
            return
        await state.clear()
        await message.answer(f"⚠️ {failure.message}")
        return

    await state.clear()
    await _send_card(message, session, team.event_id, identity)


# ── Leader actions ────────────────────────────────────────────────────────────

@router.callback_query(TeamCb.filter(F.action == "edit"))
async def cq_rename_team(
    callback: CallbackQuery,
    callback_data: TeamCb,
    state: FSMContext,
    identity: Optional[Identity],
) -> None:
    if not await _require_identity(callback, identity):
        return
    await state.set_state(RegistrationStates.rename_team)
    await state.update_data(team_id=callback_data.tid, event_id=callback_data.eid)
    await callback.message.edit_text(
        "✏️ Send the new team name:",
        reply_markup=cancel_input_kb(callback_data.eid),
    )
    await callback.answer()


@router.message(RegistrationStates.rename_team)
async def msg_rename_team(
    message: Message,
    session: AsyncSession,
    state: FSMContext,
    identity: Optional[Identity],
) -> None:
    data = await state.get_data()
    event_id = data.get("event_id")
    try:
        changes = TeamChanges(name=message.text or "")
    except ValidationError as exc:
        await message.answer(
            f"⚠️ {exc.errors()[0]['msg'].removeprefix('Value error, ')}",
            reply_markup=cancel_input_kb(event_id),
        )
        return

    await state.clear()
    if identity is None:
        await message.answer("Send /start first to sign in.")
        return
    _, failure = await edit_team(session, identity.participant_id, data["team_id"], changes)
    if failure:
        await message.answer(f"⚠️ {failure.message}")
        return
    await _send_card(message, session, event_id, identity)


@router.callback_query(TeamCb.filter(F.action == "confirm"))
async def cq_confirm_team(
    callback: CallbackQuery,
    callback_data: TeamCb,
    session: AsyncSession,
    identity: Optional[Identity],
) -> None:
    if not await _require_identity(callback, identity):
        return
    _, failure = await confirm_team(session, identity.participant_id, callback_data.tid)
    if failure:
        await callback.answer(failure.message, show_alert=True)
        return
    await _edit_card(callback, session, callback_data.eid, identity)
    await callback.answer("🔒 Team confirmed!")


# ── Payment ───────────────────────────────────────────────────────────────────

@router.callback_query(PayCb.filter(F.action == "start"))
async def cq_pay(
    callback: CallbackQuery,
    callback_data: PayCb,
    session: AsyncSession,
    identity: Optional[Identity],
    payment_provider: Optional[PaymentProvider] = None,
) -> None:
    if not await _require_identity(callback, identity):
        return
    await _start_checkout(
        callback, session, payment_provider,
        callback_data.st, callback_data.sid, identity, callback_data.eid,
    )
