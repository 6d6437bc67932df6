"""SQLAlchemy ORM models."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from letter_to_you.db.base import Base
from letter_to_you.db.enums import DeliveryStatus, EmailStatus, PurchaseStatus, Tone
from letter_to_you.db.types import EncryptedString


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


class Profile(Base):
    """
    Public profile for an auth user.

    id mirrors the auth collaborator's user id; created on first sight.
    """

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    display_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=_now_utc, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=_now_utc, server_default=func.now(), onupdate=_now_utc, nullable=False
    )


class Letter(Base):
    """
    A generated letter.

    questions holds the ordered Q/A payload the letter was written from.
    Future letters start as "scheduled" and move to "delivered" or "failed"
    when the delivery sweep processes them.
    """

    __tablename__ = "letters"
    __table_args__ = (
        Index("idx_letters_user_created", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    mode: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    tone: Mapped[str] = mapped_column(String(20), nullable=False, default=Tone.WARM.value)
    questions: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    letter_content: Mapped[str] = mapped_column(Text, nullable=False)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Delivery
    delivery_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DeliveryStatus.IMMEDIATE.value
    )
    is_future_letter: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    delivery_date: Mapped[datetime | None] = mapped_column(nullable=True)
    delivered_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=_now_utc, server_default=func.now(), nullable=False
    )

    scheduled_emails: Mapped[list["ScheduledEmail"]] = relationship(
        back_populates="letter", cascade="all, delete-orphan"
    )


class Purchase(Base):
    """
    A completed checkout for one letter mode.

    Consumed at most once: used flips false -> true through a conditional
    update and never flips back.
    """

    __tablename__ = "purchases"
    __table_args__ = (
        Index("idx_purchases_user_unused", "user_id", "used"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    letter_mode: Mapped[str] = mapped_column(String(50), nullable=False)
    mode_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    # Stripe references
    stripe_session_id: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    stripe_payment_intent: Mapped[str | None] = mapped_column(String(255), nullable=True)

    amount: Mapped[int] = mapped_column(Integer, nullable=False, default=0)  # minor units
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="NZD")
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PurchaseStatus.COMPLETED.value
    )

    used: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    used_at: Mapped[datetime | None] = mapped_column(nullable=True)
    letter_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("letters.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        default=_now_utc, server_default=func.now(), nullable=False
    )


class ScheduledEmail(Base):
    """Pending delivery of a future letter."""

    __tablename__ = "scheduled_emails"
    __table_args__ = (
        Index("idx_scheduled_emails_due", "status", "scheduled_for"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    letter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("letters.id", ondelete="CASCADE"), nullable=False
    )

    scheduled_for: Mapped[datetime] = mapped_column(nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=EmailStatus.PENDING.value
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    sent_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=_now_utc, server_default=func.now(), nullable=False
    )

    letter: Mapped[Letter] = relationship(back_populates="scheduled_emails")


class SessionBackup(Base):
    """
    Server-held copy of a user's auth credentials across the checkout redirect.

    One live backup per user; the restore token is single use.
    """

    __tablename__ = "session_backups"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, unique=True)
    restore_token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    # Encrypted at rest
    access_token: Mapped[str] = mapped_column(EncryptedString, nullable=False)
    refresh_token: Mapped[str] = mapped_column(EncryptedString, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        default=_now_utc, server_default=func.now(), nullable=False
    )
    expires_at: Mapped[datetime] = mapped_column(nullable=False)


class Checkin(Base):
    """Weekly mood/energy check-in, one per ISO week."""

    __tablename__ = "checkins"
    __table_args__ = (
        UniqueConstraint("user_id", "year", "week_number", name="uq_checkins_user_week"),
        Index("idx_checkins_user_created", "user_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)

    mood_rating: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-10
    energy_level: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-10
    wins: Mapped[str | None] = mapped_column(Text, nullable=True)
    challenges: Mapped[str | None] = mapped_column(Text, nullable=True)
    gratitude: Mapped[str | None] = mapped_column(Text, nullable=True)
    focus_next_week: Mapped[str | None] = mapped_column(Text, nullable=True)
    ai_reflection: Mapped[str | None] = mapped_column(Text, nullable=True)

    # ISO calendar week
    week_number: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        default=_now_utc, server_default=func.now(), nullable=False
    )
