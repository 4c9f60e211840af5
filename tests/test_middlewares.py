"""
Unit tests — identity and admin middlewares (auth_middleware.py).
"""
from __future__ import annotations

from typing import Any, Dict

from aiogram.types import User as TgUser

from festbot.middlewares import AdminMiddleware, Identity, IdentityMiddleware
from festbot.services.registration_service import set_user_email, upsert_user


async def _capture(event: Any, data: Dict[str, Any]) -> Dict[str, Any]:
    return data


def _tg_user(user_id: int) -> TgUser:
    return TgUser(id=user_id, is_bot=False, first_name="Asha")


class TestIdentityMiddleware:
    async def test_known_user(self, async_session) -> None:
        user = await upsert_user(async_session, 555, "Asha")
        await set_user_email(async_session, user.id, "asha@example.com")
        await async_session.commit()

        data = await IdentityMiddleware()(
            _capture, object(), {"session": async_session, "event_from_user": _tg_user(555)}
        )
        assert data["identity"] == Identity(participant_id=user.id, name="Asha", email="asha@example.com")

    async def test_unknown_user(self, async_session) -> None:
        data = await IdentityMiddleware()(
            _capture, object(), {"session": async_session, "event_from_user": _tg_user(556)}
        )
        assert data["identity"] is None

    async def test_no_sender(self, async_session) -> None:
        data = await IdentityMiddleware()(_capture, object(), {"session": async_session})
        assert data["identity"] is None


class TestAdminMiddleware:
    async def test_admin_from_settings(self) -> None:
        # ADMIN_IDS=123456789 in conftest.py
        data = await AdminMiddleware()(_capture, object(), {"event_from_user": _tg_user(123456789)})
        assert data["is_admin"] is True

    async def test_regular_user(self) -> None:
        data = await AdminMiddleware()(_capture, object(), {"event_from_user": _tg_user(1)})
        assert data["is_admin"] is False
