"""
Event list and the per-event registration card.

The card is always rebuilt from a fresh read, so "🔄 Refresh" after a
checkout shows whatever the payment callback has applied by then.
"""
import logging
from typing import Optional, Tuple

from aiogram import F, Router
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest
from aiogram.fsm.context import FSMContext
from aiogram.types import BufferedInputFile, CallbackQuery, InlineKeyboardMarkup
from aiogram.utils.formatting import Bold, Code, Text, as_list
from sqlalchemy.ext.asyncio import AsyncSession

from festbot.keyboards import EventCb, MainMenuCb, event_card_kb, event_list_kb
from festbot.middlewares import Identity
from festbot.services import (
    build_registration_view,
    generate_ticket_png,
    get_event,
    get_subject,
    list_events,
    render_view_text,
    Status,
)

logger = logging.getLogger(__name__)
router = Router(name="events")


async def build_card(
    session: AsyncSession,
    event_id: int,
    identity: Optional[Identity],
) -> Optional[Tuple[Text, InlineKeyboardMarkup]]:
    event = await get_event(session, event_id)
    if event is None:
        return None
    participant_id = identity.participant_id if identity else None
    subject = await get_subject(session, participant_id, event) if participant_id else None
    view = build_registration_view(event, subject, participant_id)
    return render_view_text(view), event_card_kb(view)


@router.callback_query(MainMenuCb.filter(F.action == "events"))
async def cq_events(callback: CallbackQuery, session: AsyncSession, state: FSMContext) -> None:
    await state.clear()
    events = await list_events(session)
    if not events:
        await callback.answer("No events yet.", show_alert=True)
        return
    await callback.message.edit_text(
        "🎪 *Events*\n\nPick one to see your registration:",
        parse_mode=ParseMode.MARKDOWN,
        reply_markup=event_list_kb(events),
    )
    await callback.answer()


@router.callback_query(EventCb.filter(F.action == "view"))
async def cq_event_card(
    callback: CallbackQuery,
    callback_data: EventCb,
    session: AsyncSession,
    state: FSMContext,
    identity: Optional[Identity],
) -> None:
    await state.clear()
    card = await build_card(session, callback_data.eid, identity)
    if card is None:
        await callback.answer("Event not found.", show_alert=True)
        return
    text, kb = card
    try:
        await callback.message.edit_text(**text.as_kwargs(), reply_markup=kb)
    except TelegramBadRequest as exc:
        # Refresh with nothing new
        if "message is not modified" not in str(exc):
            raise
    await callback.answer()


@router.callback_query(EventCb.filter(F.action == "ticket"))
async def cq_ticket(
    callback: CallbackQuery,
    callback_data: EventCb,
    session: AsyncSession,
    identity: Optional[Identity],
) -> None:
    if identity is None:
        await callback.answer("Send /start first.", show_alert=True)
        return
    event = await get_event(session, callback_data.eid)
    if event is None:
        await callback.answer("Event not found.", show_alert=True)
        return
    subject = await get_subject(session, identity.participant_id, event)
    view = build_registration_view(event, subject, identity.participant_id)
    if not view.code or view.status != Status.CONFIRMED:
        await callback.answer("No ticket yet.", show_alert=True)
        return

    png = generate_ticket_png(view.code)
    caption = as_list(Text("🎫 ", Bold(view.event_name)), Code(view.code))
    await callback.message.answer_photo(
        photo=BufferedInputFile(png, filename="ticket.png"),
        **caption.as_kwargs(text_key="caption", entities_key="caption_entities"),
    )
    await callback.answer()
