"""
Payment service — fee collection for teams and solo registrations.

Two-phase protocol:

1. ``create_order``  — record a CREATED order for the subject, obtain a
   provider order/checkout link.  ``begin_checkout`` moves it to PENDING
   when the participant is handed the link.
2. ``reconcile``     — apply the provider's signed callback.  SUCCESS marks
   the order SUCCEEDED and flips the subject's ``confirmed`` flag with a
   set-if-false UPDATE; FAILURE marks it FAILED and the participant may
   start a new order.

Orders are terminal once SUCCEEDED or FAILED; duplicate callbacks are no-ops.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import List, NamedTuple, Optional, Tuple, Union

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from festbot.config import settings
from festbot.errors import ErrorKind, Failure, InvalidSignature, store_operation
from festbot.models.models import (
    Event,
    OrderStatus,
    PaymentOrder,
    Registration,
    SubjectType,
    Team,
    User,
)
from festbot.services.payment_provider import PaymentProvider, verify_callback
from festbot.services.registration_service import set_confirmed

logger = logging.getLogger(__name__)


class Outcome:
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class ReconcileResult(NamedTuple):
    order: Optional[PaymentOrder]
    newly_confirmed: bool = False
    failure: Optional[Failure] = None


# ── Reads ─────────────────────────────────────────────────────────────────────

async def get_order(session: AsyncSession, order_id: int) -> Optional[PaymentOrder]:
    result = await session.execute(
        select(PaymentOrder)
        .where(PaymentOrder.id == order_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def list_orders(
    session: AsyncSession,
    subject_type: str,
    subject_id: int,
) -> List[PaymentOrder]:
    result = await session.execute(
        select(PaymentOrder)
        .where(PaymentOrder.subject_type == subject_type, PaymentOrder.subject_id == subject_id)
        .order_by(PaymentOrder.id)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


async def _load_subject(
    session: AsyncSession,
    subject_type: str,
    subject_id: int,
) -> Optional[Union[Team, Registration]]:
    if subject_type not in SubjectType.ALL:
        raise ValueError(f"Unknown subject type: {subject_type!r}")
    model = Team if subject_type == SubjectType.TEAM else Registration
    result = await session.execute(
        select(model)
        .where(model.id == subject_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


# ── Phase 1: order ────────────────────────────────────────────────────────────

@store_operation
async def create_order(
    session: AsyncSession,
    provider: PaymentProvider,
    subject_type: str,
    subject_id: int,
    payer_id: int,
) -> Tuple[Optional[PaymentOrder], Optional[Failure]]:
    """
    Open (or reuse) a payment order for a subject.

    The amount is the fee snapshot taken when the subject was created.  An
    order that is still CREATED/PENDING for the same amount is returned
    again, so a client retrying after a timeout does not pile up orders.
    Raises Unavailable when the provider cannot be reached; the CREATED
    order is kept and picked up by the retry.
    """
    subject = await _load_subject(session, subject_type, subject_id)
    if subject is None:
        return None, Failure.of(ErrorKind.NOT_FOUND, "Registration not found.")

    owner_id = subject.leader_id if subject_type == SubjectType.TEAM else subject.user_id
    if owner_id != payer_id:
        return None, Failure.of(ErrorKind.FORBIDDEN)
    if subject.confirmed:
        return None, Failure.of(ErrorKind.ALREADY_CONFIRMED)
    if subject.fee <= 0:
        raise ValueError(f"{subject_type} {subject_id} has no fee to pay")

    amount = subject.fee
    event_id = subject.event_id

    order = await session.scalar(
        select(PaymentOrder)
        .where(
            PaymentOrder.subject_type == subject_type,
            PaymentOrder.subject_id == subject_id,
            PaymentOrder.amount == amount,
            PaymentOrder.status.in_(OrderStatus.OPEN),
        )
        .order_by(PaymentOrder.id.desc())
        .limit(1)
    )
    if order is not None and order.provider_ref:
        logger.info("Reusing open order=%d for %s=%d", order.id, subject_type, subject_id)
        return order, None

    if order is None:
        order = PaymentOrder(
            subject_type=subject_type,
            subject_id=subject_id,
            amount=amount,
            status=OrderStatus.CREATED,
        )
        session.add(order)
        await session.flush()
    order_id = order.id

    payer = await session.get(User, payer_id)
    event = await session.get(Event, event_id)
    metadata = {
        "order_id": order_id,
        "subject_type": subject_type,
        "subject_id": subject_id,
        "description": event.name if event else "Event registration",
        "name": payer.name if payer else "",
        "email": payer.email if payer else "",
    }
    # Keep the CREATED row even if the provider call fails
    await session.commit()

    provider_order = await provider.create_order(amount, metadata)

    # First link stored wins; a concurrent retry keeps it
    result = await session.execute(
        update(PaymentOrder)
        .where(PaymentOrder.id == order_id, PaymentOrder.provider_ref.is_(None))
        .values(
            provider_ref=provider_order.provider_ref,
            checkout_url=provider_order.checkout_url,
        )
        .execution_options(synchronize_session=False)
    )
    await session.commit()
    if result.rowcount == 0:
        logger.info("Order %d already has a provider link, discarding provider_ref=%s",
                    order_id, provider_order.provider_ref)
        return await get_order(session, order_id), None
    logger.info("Order %d created for %s=%d, amount=%d, provider_ref=%s",
                order_id, subject_type, subject_id, amount, provider_order.provider_ref)
    return await get_order(session, order_id), None


@store_operation
async def begin_checkout(
    session: AsyncSession,
    order_id: int,
) -> Tuple[Optional[PaymentOrder], Optional[Failure]]:
    """CREATED → PENDING once the participant is sent to the checkout page."""
    await session.execute(
        update(PaymentOrder)
        .where(PaymentOrder.id == order_id, PaymentOrder.status == OrderStatus.CREATED)
        .values(status=OrderStatus.PENDING)
        .execution_options(synchronize_session=False)
    )
    await session.commit()

    order = await get_order(session, order_id)
    if order is None:
        return None, Failure.of(ErrorKind.NOT_FOUND, "Payment not found.")
    if order.status == OrderStatus.SUCCEEDED:
        return order, Failure.of(ErrorKind.ALREADY_CONFIRMED)
    if order.status == OrderStatus.FAILED:
        return order, Failure.of(ErrorKind.NOT_FOUND, "This payment attempt has ended. Start a new one.")
    return order, None


# ── Phase 2: reconciliation ───────────────────────────────────────────────────

async def _settle(session: AsyncSession, order_id: int, status: str) -> bool:
    result = await session.execute(
        update(PaymentOrder)
        .where(PaymentOrder.id == order_id, PaymentOrder.status.in_(OrderStatus.OPEN))
        .values(status=status, settled_at=datetime.utcnow())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


@store_operation
async def reconcile(
    session: AsyncSession,
    order_id: int,
    outcome: str,
    signature: str,
    secret: Optional[str] = None,
) -> ReconcileResult:
    """
    Apply a provider callback.  Raises InvalidSignature (no state change)
    when the signature does not match the order's parameters.
    """
    if outcome not in (Outcome.SUCCESS, Outcome.FAILURE):
        raise ValueError(f"Unknown payment outcome: {outcome!r}")
    secret = settings.PAYMENT_KEY_SECRET if secret is None else secret

    order = await get_order(session, order_id)
    if order is None:
        return ReconcileResult(None, failure=Failure.of(ErrorKind.NOT_FOUND, "Payment not found."))

    if not verify_callback(secret, signature, order.id, order.provider_ref, order.amount, outcome):
        logger.warning("Rejected payment callback for order=%d: invalid signature", order_id)
        raise InvalidSignature(f"Invalid signature for order {order_id}")

    subject_type, subject_id = order.subject_type, order.subject_id
    newly_confirmed = False

    if outcome == Outcome.SUCCESS:
        if await _settle(session, order_id, OrderStatus.SUCCEEDED):
            newly_confirmed = await set_confirmed(session, subject_type, subject_id)
            if not newly_confirmed:
                logger.warning("Order %d paid but %s=%d was already confirmed",
                               order_id, subject_type, subject_id)
        elif order.status == OrderStatus.FAILED:
            logger.warning("Success callback for failed order=%d ignored", order_id)
    else:
        await _settle(session, order_id, OrderStatus.FAILED)

    await session.commit()
    if newly_confirmed:
        logger.info("Order %d settled: %s=%d confirmed", order_id, subject_type, subject_id)
    return ReconcileResult(await get_order(session, order_id), newly_confirmed)
