"""
Admin panel: event overview and event creation.

    /newevent <SOLO_SINGLE|SOLO_MULTI|TEAM> <fees> <max_team_size|-> <name>
"""
import logging

from aiogram import F, Router
from aiogram.enums import ParseMode
from aiogram.filters import Command, CommandObject
from aiogram.types import CallbackQuery, Message
from aiogram.utils.formatting import Bold, Code, Italic, Text, as_list
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from festbot.keyboards import AdminPanelCb, admin_main_menu, back_to_main
from festbot.middlewares import IsAdmin
from festbot.services import create_event, event_entry_counts, list_events, team_capacity
from festbot.validators import EventData

logger = logging.getLogger(__name__)
router = Router(name="admin_panel")
router.callback_query.filter(IsAdmin())


# ── Admin home (back) ─────────────────────────────────────────────────────────

@router.callback_query(AdminPanelCb.filter(F.action == "back"))
async def cq_admin_home(callback: CallbackQuery) -> None:
    await callback.message.edit_text(
        "⚡ *Admin panel*\n\nPick a section:",
        parse_mode=ParseMode.MARKDOWN,
        reply_markup=admin_main_menu(),
    )
    await callback.answer()


# ── Events overview ───────────────────────────────────────────────────────────

@router.callback_query(AdminPanelCb.filter(F.action == "events"))
async def cq_admin_events(callback: CallbackQuery, session: AsyncSession) -> None:
    events = await list_events(session)
    lines = [Bold("🛠 Events"), Text()]
    for event in events:
        total, confirmed = await event_entry_counts(session, event)
        size = ""
        if event.is_team:
            cap = team_capacity(event)
            size = f", up to {cap}" if cap else ", any size"
        lines.append(Text(
            "• ", Bold(event.name), f" (#{event.id}): {event.type_label}, ₹{event.fees}{size}\n",
            f"   {confirmed}/{total} confirmed",
        ))
    if not events:
        lines.append(Italic("No events yet."))
    lines += [Text(), "Create one with:", Code("/newevent TEAM 200 4 Robo Wars")]

    content = as_list(*lines)
    await callback.message.edit_text(**content.as_kwargs(), reply_markup=back_to_main())
    await callback.answer()


# ── /newevent ─────────────────────────────────────────────────────────────────

@router.message(Command("newevent"), IsAdmin())
async def cmd_new_event(
    message: Message,
    command: CommandObject,
    session: AsyncSession,
) -> None:
    try:
        form = EventData.from_command(command.args or "")
    except ValidationError as exc:
        error = Text("⚠️ ", exc.errors()[0]["msg"].removeprefix("Value error, "))
        await message.answer(**error.as_kwargs())
        return
    except ValueError as exc:
        await message.answer(**Text("⚠️ ", str(exc)).as_kwargs())
        return

    event = await create_event(
        session,
        name=form.name,
        event_type=form.event_type,
        fees=form.fees,
        max_team_size=form.max_team_size,
    )
    logger.info("Admin %d created event=%d (%s)", message.from_user.id, event.id, event.event_type)
    content = as_list(
        Text("✅ Event created: ", Bold(event.name), f" (#{event.id})"),
        f"{event.type_label}, fee ₹{event.fees}",
    )
    await message.answer(**content.as_kwargs(), reply_markup=admin_main_menu())
