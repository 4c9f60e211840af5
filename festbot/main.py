"""
Fest registration bot.
Entry point: creates the bot, registers routers + middleware, starts the
payment callback server next to polling, handles graceful shutdown.
"""
import asyncio
import logging
import signal
import sys

from aiogram import Bot, Dispatcher
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode
from aiogram.exceptions import TelegramAPIError
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import ErrorEvent
from aiohttp import web
from sqlalchemy.exc import SQLAlchemyError

from festbot.config import settings
from festbot.errors import ErrorKind, Unavailable
from festbot.middlewares import AdminMiddleware, DatabaseMiddleware, IdentityMiddleware
from festbot.models.base import Base, engine
from festbot.services import HttpPaymentProvider
from festbot.webhook import build_webhook_app

# ── Handlers ──────────────────────────────────────────────────────────────────
from festbot.handlers.common import router as common_router
from festbot.handlers.events import router as events_router
from festbot.handlers.registration import router as registration_router
from festbot.handlers.admin.panel import router as admin_panel_router
from festbot.handlers.fallback import router as fallback_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    stream=sys.stdout,
)
logger = logging.getLogger(__name__)


async def create_tables() -> None:
    """Create all database tables on startup."""
    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Database tables ready.")
    except (SQLAlchemyError, OSError) as e:
        logger.critical(
            "❌ Cannot connect to database!\n"
            "   URL: %s\n"
            "   Error: %s\n\n"
            "   → Locally: start PostgreSQL or use SQLite "
            "(DATABASE_URL=sqlite+aiosqlite:///./fest.db)",
            settings.DATABASE_URL.split("@")[-1],   # hide credentials in log
            e,
        )
        sys.exit(1)


def build_payment_provider() -> HttpPaymentProvider | None:
    if not settings.payments_enabled:
        logger.warning("PAYMENT_KEY_ID / PAYMENT_KEY_SECRET not set, paid registrations are disabled.")
        return None
    return HttpPaymentProvider(
        settings.PAYMENT_API_URL,
        settings.PAYMENT_KEY_ID,
        settings.PAYMENT_KEY_SECRET,
        currency=settings.PAYMENT_CURRENCY,
        timeout=settings.PAYMENT_TIMEOUT,
    )


def build_dispatcher() -> Dispatcher:
    dp = Dispatcher(storage=MemoryStorage())

    # ── Global error handler: callbacks are always answered ───────────────────
    @dp.errors()
    async def handle_error(event: ErrorEvent) -> None:
        update = event.update
        if isinstance(event.exception, Unavailable):
            logger.error("Store unavailable: %s", event.exception)
            text = ErrorKind.MESSAGES[ErrorKind.UNAVAILABLE]
        else:
            logger.exception("Unhandled error: %s", event.exception)
            text = "⚠️ Something went wrong. Please try again."
        try:
            if update.callback_query:
                await update.callback_query.answer(text, show_alert=True)
            elif update.message:
                await update.message.answer(text)
        except TelegramAPIError:
            pass

    # ── Global middlewares (order: session → admin flag → identity) ───────────
    dp.update.middleware(DatabaseMiddleware())
    dp.update.middleware(AdminMiddleware())
    dp.update.middleware(IdentityMiddleware())

    # ── Routers: order sets handler priority ──────────────────────────────────
    dp.include_router(common_router)
    dp.include_router(events_router)
    dp.include_router(registration_router)
    dp.include_router(admin_panel_router)

    # !! Must be last: catches any callback not handled above !!
    dp.include_router(fallback_router)

    return dp


async def start_webhook_server(bot: Bot) -> web.AppRunner:
    runner = web.AppRunner(build_webhook_app(bot))
    await runner.setup()
    site = web.TCPSite(runner, settings.WEBHOOK_HOST, settings.WEBHOOK_PORT)
    await site.start()
    logger.info(
        "Payment callbacks on http://%s:%d%s",
        settings.WEBHOOK_HOST, settings.WEBHOOK_PORT, settings.WEBHOOK_PATH,
    )
    return runner


async def main() -> None:
    logger.info("Starting fest registration bot…")
    await create_tables()

    bot = Bot(
        token=settings.BOT_TOKEN,
        default=DefaultBotProperties(parse_mode=ParseMode.MARKDOWN),
    )
    dp = build_dispatcher()
    provider = build_payment_provider()
    dp["payment_provider"] = provider
    runner = await start_webhook_server(bot)

    # ── Graceful shutdown on SIGTERM (Docker) ─────────────────────────────────
    loop = asyncio.get_running_loop()

    def _handle_signal():
        logger.info("Received shutdown signal, stopping…")
        asyncio.ensure_future(dp.stop_polling())

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, _handle_signal)
        except NotImplementedError:
            # Windows does not support add_signal_handler
            pass

    try:
        logger.info("Bot is running. Press Ctrl+C to stop.")
        await dp.start_polling(
            bot,
            allowed_updates=dp.resolve_used_update_types(),
            handle_signals=False,
        )
    finally:
        logger.info("Shutting down…")
        await runner.cleanup()
        if provider is not None:
            await provider.close()
        await bot.session.close()
        await engine.dispose()
        logger.info("Shutdown complete.")


def run() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    run()
