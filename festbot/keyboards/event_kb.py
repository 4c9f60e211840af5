"""
Keyboards for the event list and the registration card.
The card keyboard is built from ``RegistrationView.actions`` only.
"""
from typing import List, Optional

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from festbot.keyboards.callbacks import EventCb, MainMenuCb, PayCb, TeamCb
from festbot.models.models import Event, SubjectType
from festbot.services.status_service import Action, Status
from festbot.services.view_service import RegistrationView


def event_list_kb(events: List[Event]) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    for e in events:
        fee = f"₹{e.fees}" if e.fees else "free"
        builder.row(
            InlineKeyboardButton(
                text=f"{e.name}  ({e.type_label}, {fee})",
                callback_data=EventCb(action="view", eid=e.id).pack(),
            )
        )
    builder.row(InlineKeyboardButton(text="🔙 Back", callback_data=MainMenuCb(action="main").pack()))
    return builder.as_markup()


def event_card_kb(view: RegistrationView) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    eid = view.event_id
    for action in view.actions:
        if action == Action.REGISTER:
            text = "✅ Register now" if view.fee == 0 else f"💳 Pay ₹{view.fee} and register"
            builder.row(InlineKeyboardButton(text=text, callback_data=EventCb(action="register", eid=eid).pack()))
        elif action == Action.CREATE_TEAM:
            builder.row(InlineKeyboardButton(text="➕ Create team", callback_data=EventCb(action="create_team", eid=eid).pack()))
        elif action == Action.JOIN_TEAM:
            builder.row(InlineKeyboardButton(text="🔗 Join team", callback_data=EventCb(action="join_team", eid=eid).pack()))
        elif action == Action.PAY:
            st = SubjectType.TEAM if view.kind == "team" else SubjectType.REGISTRATION
            builder.row(InlineKeyboardButton(
                text=f"💳 Pay ₹{view.fee} to confirm",
                callback_data=PayCb(action="start", st=st, sid=view.subject_id, eid=eid).pack(),
            ))
        elif action == Action.EDIT_TEAM:
            builder.row(InlineKeyboardButton(
                text="✏️ Rename team",
                callback_data=TeamCb(action="edit", tid=view.subject_id, eid=eid).pack(),
            ))
        elif action == Action.CONFIRM_TEAM:
            builder.row(InlineKeyboardButton(
                text="🔒 Confirm team",
                callback_data=TeamCb(action="confirm", tid=view.subject_id, eid=eid).pack(),
            ))
    if view.code and view.status == Status.CONFIRMED:
        builder.row(InlineKeyboardButton(text="🎫 QR ticket", callback_data=EventCb(action="ticket", eid=eid).pack()))
    builder.row(
        InlineKeyboardButton(text="🔄 Refresh", callback_data=EventCb(action="view", eid=eid).pack()),
        InlineKeyboardButton(text="🔙 Events",  callback_data=MainMenuCb(action="events").pack()),
    )
    return builder.as_markup()


def cancel_input_kb(eid: Optional[int] = None) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    cb = EventCb(action="view", eid=eid).pack() if eid else MainMenuCb(action="main").pack()
    builder.row(InlineKeyboardButton(text="❌ Cancel", callback_data=cb))
    return builder.as_markup()


def checkout_kb(url: str, eid: int) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="💳 Open checkout", url=url))
    builder.row(InlineKeyboardButton(text="🔄 I've paid — refresh", callback_data=EventCb(action="view", eid=eid).pack()))
    return builder.as_markup()
