"""
Payment provider callback endpoint.

The provider calls ``POST <WEBHOOK_PATH>`` with
``{"order_id": ..., "outcome": "SUCCESS" | "FAILURE", "signature": ...}``
some time after checkout.  Each callback runs in its own session and is
reconciled idempotently, so provider redeliveries are harmless.

Responses: 200 applied (or duplicate), 400 malformed body or bad signature,
404 unknown order, 503 store unavailable (provider should retry).
"""
from __future__ import annotations

import logging
from typing import Optional

from aiogram import Bot
from aiohttp import web
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from festbot.config import settings
from festbot.errors import InvalidSignature, Unavailable
from festbot.models.base import AsyncSessionFactory
from festbot.services.notification_service import notify_payment_confirmed, order_recipients
from festbot.services.payment_service import reconcile
from festbot.validators import PaymentCallback

logger = logging.getLogger(__name__)

BOT_KEY = web.AppKey("bot", Optional[Bot])
SESSION_FACTORY_KEY = web.AppKey("session_factory", async_sessionmaker[AsyncSession])
SECRET_KEY = web.AppKey("secret", str)


async def handle_payment_callback(request: web.Request) -> web.Response:
    try:
        callback = PaymentCallback.model_validate(await request.json())
    except ValueError as exc:
        logger.warning("Malformed payment callback: %s", exc)
        return web.json_response({"error": "bad_request"}, status=400)

    factory = request.app[SESSION_FACTORY_KEY]
    bot = request.app[BOT_KEY]
    async with factory() as session:
        try:
            result = await reconcile(
                session,
                callback.order_id,
                callback.outcome,
                callback.signature,
                secret=request.app[SECRET_KEY],
            )
        except InvalidSignature:
            return web.json_response({"error": "invalid_signature"}, status=400)
        except Unavailable:
            return web.json_response({"error": "unavailable"}, status=503)

        if result.failure is not None:
            return web.json_response({"error": result.failure.kind}, status=404)

        if result.newly_confirmed and bot is not None:
            event_name, recipients = await order_recipients(session, result.order)
            await notify_payment_confirmed(bot, recipients, event_name)

    return web.json_response({
        "order_id": result.order.id,
        "status": result.order.status,
        "confirmed": result.newly_confirmed,
    })


def build_webhook_app(
    bot: Optional[Bot] = None,
    session_factory: async_sessionmaker[AsyncSession] = AsyncSessionFactory,
    secret: Optional[str] = None,
) -> web.Application:
    app = web.Application()
    app[BOT_KEY] = bot
    app[SESSION_FACTORY_KEY] = session_factory
    app[SECRET_KEY] = settings.PAYMENT_KEY_SECRET if secret is None else secret
    app.router.add_post(settings.WEBHOOK_PATH, handle_payment_callback)
    return app
