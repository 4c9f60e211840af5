"""
Centralized CallbackData factories.
Telegram limits callback_data to 64 bytes — all prefixes are kept short.
"""
from aiogram.filters.callback_data import CallbackData


class MainMenuCb(CallbackData, prefix="mm"):
    action: str           # main | events | email


class EventCb(CallbackData, prefix="evt"):
    action: str           # view | register | create_team | join_team | ticket
    eid: int = 0          # event id


class TeamCb(CallbackData, prefix="tm"):
    action: str           # edit | confirm
    tid: int = 0          # team id
    eid: int = 0          # event id (to return to the card)


class PayCb(CallbackData, prefix="pay"):
    action: str           # start
    st: str = ""          # subject type: team | registration
    sid: int = 0          # subject id
    eid: int = 0


class AdminPanelCb(CallbackData, prefix="adm"):
    action: str           # back | events
