"""
Main menu keyboards — participant vs. admin.
"""
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from festbot.keyboards.callbacks import AdminPanelCb, MainMenuCb


def participant_main_menu() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="🎪 Events",      callback_data=MainMenuCb(action="events").pack()),
    )
    builder.row(
        InlineKeyboardButton(text="✉️ Set email",   callback_data=MainMenuCb(action="email").pack()),
    )
    return builder.as_markup()


def admin_main_menu() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="🎪 Events",      callback_data=MainMenuCb(action="events").pack()),
    )
    builder.row(
        InlineKeyboardButton(text="🛠 Manage events", callback_data=AdminPanelCb(action="events").pack()),
    )
    return builder.as_markup()


def back_to_main() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="🔙 Main menu", callback_data=MainMenuCb(action="main").pack()))
    return builder.as_markup()
