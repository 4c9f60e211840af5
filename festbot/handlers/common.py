"""
Common handlers: /start, main menu routing, contact email.
"""
import logging
from typing import Optional

from aiogram import F, Router
from aiogram.enums import ParseMode
from aiogram.filters import CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message
from aiogram.utils.formatting import Code, Text, as_list
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from festbot.keyboards import MainMenuCb, admin_main_menu, cancel_input_kb, participant_main_menu
from festbot.middlewares import Identity
from festbot.services import set_user_email, upsert_user
from festbot.states import RegistrationStates
from festbot.validators import EmailData

logger = logging.getLogger(__name__)
router = Router(name="common")


def _main_menu(is_admin: bool):
    return admin_main_menu() if is_admin else participant_main_menu()


# ── /start ────────────────────────────────────────────────────────────────────

@router.message(CommandStart())
async def cmd_start(
    message: Message,
    session: AsyncSession,
    state: FSMContext,
    is_admin: bool,
) -> None:
    await state.clear()
    tg = message.from_user
    await upsert_user(session, telegram_id=tg.id, name=tg.full_name)

    content = as_list(
        Text("🎪 Welcome to the fest, ", tg.first_name, "!"),
        Text(),
        "Here you can:",
        "• 📋 Register for solo events",
        "• 👥 Create a team or join one with a team code",
        "• 💳 Pay entry fees and get your QR ticket",
        Text(),
        "Pick an option:",
    )
    await message.answer(**content.as_kwargs(), reply_markup=_main_menu(is_admin))


@router.callback_query(MainMenuCb.filter(F.action == "main"))
async def cq_main_menu(callback: CallbackQuery, state: FSMContext, is_admin: bool) -> None:
    await state.clear()
    await callback.message.edit_text(
        "🎪 *Main menu*\n\nPick an option:",
        parse_mode=ParseMode.MARKDOWN,
        reply_markup=_main_menu(is_admin),
    )
    await callback.answer()


# ── Email ─────────────────────────────────────────────────────────────────────

@router.callback_query(MainMenuCb.filter(F.action == "email"))
async def cq_ask_email(
    callback: CallbackQuery,
    state: FSMContext,
    identity: Optional[Identity],
) -> None:
    if identity is None:
        await callback.answer("Send /start first.", show_alert=True)
        return
    await state.set_state(RegistrationStates.enter_email)
    content = Text("✉️ Send the email address for your receipts.")
    if identity.email:
        content = as_list(content, Text("Current: ", Code(identity.email)))
    await callback.message.edit_text(**content.as_kwargs(), reply_markup=cancel_input_kb())
    await callback.answer()


@router.message(RegistrationStates.enter_email)
async def msg_email(
    message: Message,
    session: AsyncSession,
    state: FSMContext,
    identity: Optional[Identity],
    is_admin: bool,
) -> None:
    if identity is None:
        await state.clear()
        await message.answer("Send /start first.")
        return
    try:
        data = EmailData(email=message.text or "")
    except ValidationError:
        await message.answer(
            "⚠️ That doesn't look like an email address. Try again:",
            reply_markup=cancel_input_kb(),
        )
        return

    await set_user_email(session, identity.participant_id, data.email)
    await state.clear()
    logger.info("User=%d set email", identity.participant_id)
    content = Text("✅ Email saved: ", Code(data.email))
    await message.answer(**content.as_kwargs(), reply_markup=_main_menu(is_admin))
