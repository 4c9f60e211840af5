"""
Authorization and identity middleware.

* ``AdminMiddleware`` attaches ``is_admin: bool`` for the admin routers.
* ``IdentityMiddleware`` resolves the Telegram sender to a participant
  once per update and attaches ``identity`` (``Identity`` or None when the
  user has not run /start yet).  Nothing is cached between updates.
"""
from typing import Any, Awaitable, Callable, Dict, Optional

from aiogram import BaseMiddleware
from aiogram.filters import BaseFilter
from aiogram.types import CallbackQuery, Message, TelegramObject
from pydantic import BaseModel

from festbot.config import settings
from festbot.services.registration_service import get_user


class Identity(BaseModel):
    participant_id: int
    name: str
    email: Optional[str] = None


class AdminMiddleware(BaseMiddleware):
    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        user = data.get("event_from_user")
        data["is_admin"] = bool(user and user.id in settings.admin_ids_list)
        return await handler(event, data)


class IdentityMiddleware(BaseMiddleware):
    """Must run after DatabaseMiddleware (needs ``session``)."""

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        tg_user = data.get("event_from_user")
        identity = None
        if tg_user is not None and "session" in data:
            user = await get_user(data["session"], tg_user.id)
            if user is not None:
                identity = Identity(participant_id=user.id, name=user.name, email=user.email)
        data["identity"] = identity
        return await handler(event, data)


class IsAdmin(BaseFilter):
    """Use on individual routers/handlers to restrict access to admins."""

    async def __call__(self, event: Message | CallbackQuery, is_admin: bool = False) -> bool:
        if not is_admin:
            if isinstance(event, Message):
                await event.answer("⛔️ Admins only.")
            elif isinstance(event, CallbackQuery):
                await event.answer("⛔️ Admins only.", show_alert=True)
        return is_admin
