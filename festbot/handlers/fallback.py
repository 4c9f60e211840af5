"""
Global fallback handler, included LAST in the dispatcher.

Catches any callback query that no other router handled, so stale
keyboards (MemoryStorage is wiped on redeploy) never leave a spinner.
"""
from aiogram import Router
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramBadRequest
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery

from festbot.keyboards import admin_main_menu, participant_main_menu

router = Router(name="fallback")


@router.callback_query()
async def cq_fallback(
    callback: CallbackQuery,
    state: FSMContext,
    is_admin: bool = False,
) -> None:
    await callback.answer("⚠️ This button has expired. Start over.", show_alert=True)
    await state.clear()
    try:
        kb = admin_main_menu() if is_admin else participant_main_menu()
        await callback.message.edit_text(
            "🔄 *Session reset.* Back to the main menu:",
            parse_mode=ParseMode.MARKDOWN,
            reply_markup=kb,
        )
    except TelegramBadRequest:
        # Message too old to edit
        pass
