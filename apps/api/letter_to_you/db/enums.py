"""Enum definitions for application constants."""

from enum import Enum


class ModeKind(str, Enum):
    """
    How a mode builds its question list.

    - GENERAL: filtered from the shared general pool (capped)
    - LIFE_EVENT: fixed authored list for one life event
    - CURATED: fixed authored list of deep questions
    """
    GENERAL = "general"
    LIFE_EVENT = "life_event"
    CURATED = "curated"


class Tone(str, Enum):
    """Letter tone chosen on the last interview page."""
    YOU_DECIDE = "you-decide"
    WARM = "warm"
    DIRECT = "direct"
    MOTIVATING = "motivating"

    @classmethod
    def has_value(cls, value: str) -> bool:
        return value in cls._value2member_map_


class DeliveryStatus(str, Enum):
    """Letter delivery lifecycle."""
    IMMEDIATE = "immediate"
    SCHEDULED = "scheduled"
    DELIVERED = "delivered"
    FAILED = "failed"


class EmailStatus(str, Enum):
    """Status of scheduled outbound letters."""

    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class PurchaseStatus(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"


class LetterSort(str, Enum):
    """Archive sort orders."""
    NEWEST = "newest"
    OLDEST = "oldest"
    MODE = "mode"
    TONE = "tone"


class DeliveryOption(str, Enum):
    """Future-letter delivery presets."""
    ONE_WEEK = "1-week"
    ONE_MONTH = "1-month"
    THREE_MONTHS = "3-months"
    SIX_MONTHS = "6-months"
    ONE_YEAR = "1-year"
    CUSTOM = "custom"


class CheckinRange(str, Enum):
    """History window for weekly check-ins."""
    ONE_MONTH = "1-month"
    THREE_MONTHS = "3-months"
    SIX_MONTHS = "6-months"
    ALL = "all"
