"""Payment gate for paid letter modes.

Per (user, mode)::

    unauthorized --request_access--> checkout-pending --verify_return--> verified
         ^                                                  |               |
         +------------- verification exhausted -------------+         consumed

Access is decided fresh on every entry; the gate never caches a verdict
beyond its own lifetime.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any
from uuid import UUID

from letter_to_you.core.config import settings
from letter_to_you.core.errors import ConflictError, NotFoundError, PaymentVerificationError
from letter_to_you.services import question_bank
from letter_to_you.workflow.api_client import LetterApiClient
from letter_to_you.workflow.auth import AuthSession
from letter_to_you.workflow.session_guard import SessionGuard

logger = logging.getLogger(__name__)

VERIFY_FAILED_MESSAGE = (
    "We couldn't verify your payment. If you were charged, please contact support."
)


class GateState(str, Enum):
    UNAUTHORIZED = "unauthorized"
    CHECKOUT_PENDING = "checkout-pending"
    VERIFIED = "verified"
    CONSUMED = "consumed"


@dataclass
class AccessDecision:
    granted: bool
    purchase: dict[str, Any] | None = None
    checkout_url: str | None = None


class PaymentGate:
    def __init__(
        self,
        api: LetterApiClient,
        guard: SessionGuard,
        *,
        user_id: str | UUID,
        mode_id: str,
        verify_attempts: int | None = None,
        verify_delay: float | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        mode = question_bank.get_mode(mode_id)
        if mode is None:
            raise NotFoundError("Mode not found")
        self.api = api
        self.guard = guard
        self.user_id = str(user_id)
        self.mode = mode
        self.verify_attempts = max(1, verify_attempts or settings.PURCHASE_VERIFY_ATTEMPTS)
        self.verify_delay = (
            settings.PURCHASE_VERIFY_DELAY_SECONDS if verify_delay is None else verify_delay
        )
        self._sleep = sleep
        self.state = GateState.UNAUTHORIZED
        self.purchase: dict[str, Any] | None = None
        self.payment_loading = False

    @property
    def purchase_id(self) -> str | None:
        return str(self.purchase["id"]) if self.purchase else None

    def _grant(self, purchase: dict[str, Any] | None) -> AccessDecision:
        self.purchase = purchase
        self.state = GateState.VERIFIED
        return AccessDecision(granted=True, purchase=purchase)

    async def request_access(self, session: AuthSession | None = None) -> AccessDecision:
        """
        Enter the mode: free modes and unconsumed purchases of this exact mode
        pass straight through; otherwise start a checkout and return its URL.

        Raises:
            ConflictError: a checkout is already being started
        """
        if not self.mode.paid:
            return self._grant(None)
        if self.payment_loading:
            raise ConflictError("Checkout already in progress")

        self.payment_loading = True
        try:
            data = await self.api.verify_purchase(user_id=self.user_id)
            for purchase in data.get("purchases") or []:
                if purchase.get("letterMode") == self.mode.id:
                    return self._grant(purchase)

            await self.guard.preserve_identity(self.user_id)
            if session is not None:
                await self.guard.preserve_session(session)
            checkout = await self.api.create_checkout_session(
                user_id=self.user_id, mode=self.mode.id, mode_name=self.mode.name
            )
        finally:
            self.payment_loading = False

        self.state = GateState.CHECKOUT_PENDING
        logger.info("Checkout pending for mode %s", self.mode.id)
        return AccessDecision(granted=False, checkout_url=checkout["url"])

    async def verify_return(self, session_id: str) -> dict[str, Any]:
        """
        Poll for the purchase behind a returning checkout session.

        The webhook may land after the browser does, so a miss is retried a
        bounded number of times before giving up.

        Raises:
            PaymentVerificationError: no completed, unused purchase appeared
        """
        for attempt in range(1, self.verify_attempts + 1):
            data = await self.api.verify_purchase(user_id=self.user_id, session_id=session_id)
            purchase = data.get("purchase") if data.get("valid") else None
            if purchase and purchase.get("letterMode") == self.mode.id:
                self._grant(purchase)
                return purchase
            if purchase:
                logger.warning("Checkout %s paid for a different mode", session_id)
                break
            if attempt < self.verify_attempts:
                await self._sleep(self.verify_delay)

        self.state = GateState.UNAUTHORIZED
        self.purchase = None
        raise PaymentVerificationError(
            VERIFY_FAILED_MESSAGE, support_email=settings.SUPPORT_EMAIL
        )

    async def handle_return(self, session_id: str) -> dict[str, Any]:
        """Back from checkout: restore the session first, then verify."""
        await self.guard.restore_session()
        return await self.verify_return(session_id)

    def mark_consumed(self) -> None:
        self.state = GateState.CONSUMED
