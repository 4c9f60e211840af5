"""
Payment provider client.

The provider owns the checkout UI.  This module only needs two things from
it: create an order for an amount and hand back a checkout link, and (later,
asynchronously) call ``POST /payments/callback`` with the outcome signed with
the shared secret.

Callback signature::

    hex(HMAC-SHA256(secret, "<order_id>|<provider_ref>|<amount>|<outcome>"))

Every parameter we already know about the order is part of the message, so
a signature for one order/outcome cannot be replayed for another.
"""
from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
from typing import Any, Dict, Optional, Protocol

import aiohttp
from aiohttp import BasicAuth, ClientTimeout
from pydantic import BaseModel

from festbot.errors import ErrorKind, Unavailable

logger = logging.getLogger(__name__)


class ProviderOrder(BaseModel):
    provider_ref: str
    checkout_url: Optional[str] = None


class PaymentProvider(Protocol):
    async def create_order(self, amount: int, metadata: Dict[str, Any]) -> ProviderOrder:
        ...


def sign_callback(
    secret: str,
    order_id: int,
    provider_ref: Optional[str],
    amount: int,
    outcome: str,
) -> str:
    message = f"{order_id}|{provider_ref or ''}|{amount}|{outcome}"
    return hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()


def verify_callback(
    secret: str,
    signature: str,
    order_id: int,
    provider_ref: Optional[str],
    amount: int,
    outcome: str,
) -> bool:
    if not secret:
        return False
    expected = sign_callback(secret, order_id, provider_ref, amount, outcome)
    return hmac.compare_digest(expected, signature or "")


class HttpPaymentProvider:
    """
    Razorpay-style payment-links API over aiohttp.

    Amounts are passed in rupees and sent in paise.
    """

    def __init__(
        self,
        base_url: str,
        key_id: str,
        key_secret: str,
        currency: str = "INR",
        timeout: float = 15.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.currency = currency
        self.timeout = ClientTimeout(total=timeout)
        self._auth = BasicAuth(key_id, key_secret)
        self._session: Optional[aiohttp.ClientSession] = None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=self.timeout,
                auth=self._auth,
                headers={"User-Agent": "festbot/1.0"},
            )
        return self._session

    async def create_order(self, amount: int, metadata: Dict[str, Any]) -> ProviderOrder:
        url = f"{self.base_url}/payment_links"
        payload = {
            "amount": amount * 100,
            "currency": self.currency,
            "reference_id": str(metadata["order_id"]),
            "description": metadata.get("description", "Event registration"),
            "customer": {
                "name": metadata.get("name", ""),
                "email": metadata.get("email") or "",
            },
            "notes": {k: str(v) for k, v in metadata.items()},
        }
        session = await self._get_session()
        try:
            async with session.post(url, json=payload) as response:
                if response.status not in (200, 201):
                    text = await response.text()
                    logger.error("Provider error %d: %s", response.status, text[:200])
                    raise Unavailable(f"Payment provider returned {response.status}")
                data = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            logger.error("Provider request failed: %s - %s", url, exc)
            raise Unavailable(ErrorKind.MESSAGES[ErrorKind.UNAVAILABLE]) from exc

        return ProviderOrder(provider_ref=data["id"], checkout_url=data.get("short_url"))

    async def close(self) -> None:
        if self._session and not self._session.closed:
            await self._session.close()
