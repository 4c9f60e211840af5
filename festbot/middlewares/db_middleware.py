"""
Database session middleware.
Injects an AsyncSession into every handler's data dict under key "session".

Registration and payment operations commit their own unit of work; the
commit here persists the lighter writes (user upsert, email).
"""
from typing import Any, Awaitable, Callable, Dict, Optional

from aiogram import BaseMiddleware
from aiogram.types import TelegramObject
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from festbot.models.base import AsyncSessionFactory


class DatabaseMiddleware(BaseMiddleware):
    def __init__(self, session_factory: Optional[async_sessionmaker[AsyncSession]] = None) -> None:
        self._factory = session_factory or AsyncSessionFactory

    async def __call__(
        self,
        handler: Callable[[TelegramObject, Dict[str, Any]], Awaitable[Any]],
        event: TelegramObject,
        data: Dict[str, Any],
    ) -> Any:
        async with self._factory() as session:
            data["session"] = session
            try:
                result = await handler(event, data)
                await session.commit()
                return result
            except Exception:
                await session.rollback()
                raise
