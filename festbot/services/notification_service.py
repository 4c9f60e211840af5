"""
Participant notifications.

When a payment is reconciled, every member of the confirmed team (or the
owner of the solo entry) gets a message in their Telegram chat.
"""
from __future__ import annotations

import logging
from typing import List, Tuple

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest, TelegramForbiddenError
from aiogram.utils.formatting import Bold, Code, Text, as_list
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from festbot.models.models import (
    Event,
    PaymentOrder,
    Registration,
    SubjectType,
    Team,
    TeamMember,
    User,
)
from festbot.services.code_service import participant_code, team_code

logger = logging.getLogger(__name__)


async def order_recipients(
    session: AsyncSession,
    order: PaymentOrder,
) -> Tuple[str, List[Tuple[int, str]]]:
    """
    Event name and ``(telegram_id, ticket code)`` for everyone covered by
    the order's subject.
    """
    if order.subject_type == SubjectType.TEAM:
        team = await session.get(Team, order.subject_id)
        event = await session.get(Event, team.event_id)
        result = await session.execute(
            select(User.telegram_id)
            .join(TeamMember, TeamMember.user_id == User.id)
            .where(TeamMember.team_id == team.id)
        )
        code = team_code(team.id)
        return event.name, [(tg_id, code) for tg_id in result.scalars().all()]

    registration = await session.get(Registration, order.subject_id)
    event = await session.get(Event, registration.event_id)
    user = await session.get(User, registration.user_id)
    return event.name, [(user.telegram_id, participant_code(user.id))]


async def notify_payment_confirmed(
    bot: Bot,
    recipients: List[Tuple[int, str]],
    event_name: str,
) -> int:
    """
    Tell participants their entry is confirmed.
    Returns the number of delivered messages; blocked chats are skipped.
    """
    count = 0
    for telegram_id, code in recipients:
        content = as_list(
            Bold("🎉 Payment received, you're in!"),
            Text(),
            Text("🎪 ", Bold(event_name)),
            Text("🎫 Code: ", Code(code)),
            Text(),
            "Show this code at the venue. See you there!",
        )
        try:
            await bot.send_message(chat_id=telegram_id, **content.as_kwargs())
            count += 1
        except (TelegramForbiddenError, TelegramBadRequest) as e:
            logger.warning("Could not notify participant telegram_id=%d: %s", telegram_id, e)
    return count
