"""Pydantic schemas for checkout and purchases."""

from datetime import datetime
from uuid import UUID

from letter_to_you.schemas.common import CamelModel


class CreateCheckoutRequest(CamelModel):
    """Start a checkout for one letter of a paid mode."""

    user_id: str | None = None
    mode: str | None = None
    mode_name: str | None = None


class CheckoutSessionResponse(CamelModel):
    session_id: str
    url: str


class SetCheckoutCookieRequest(CamelModel):
    user_id: str | None = None


class VerifyPurchaseRequest(CamelModel):
    user_id: str | None = None
    session_id: str | None = None


class PurchaseSummary(CamelModel):
    id: UUID
    letter_mode: str
    mode_name: str | None = None
    created_at: datetime


class VerifyPurchaseResponse(CamelModel):
    """
    Either a single-session verdict (valid/message/purchase) or, when no
    sessionId was given, every unused purchase.
    """

    valid: bool | None = None
    message: str | None = None
    purchase: PurchaseSummary | None = None
    purchases: list[PurchaseSummary] | None = None


class MarkPurchaseUsedRequest(CamelModel):
    purchase_id: UUID
    user_id: str | None = None
    letter_id: UUID | None = None


class UsedPurchase(CamelModel):
    id: UUID
    used_at: datetime | None = None


class MarkPurchaseUsedResponse(CamelModel):
    success: bool = True
    purchase: UsedPurchase


class WebhookAck(CamelModel):
    received: bool = True
