import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from spacematch.core.exceptions import ValidationError


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FlagType(str, Enum):
    FAKE_LISTING = "fake_listing"
    FAKE_PHOTOS = "fake_photos"
    WRONG_ADDRESS = "wrong_address"
    UNSAFE_SPACE = "unsafe_space"
    PRICE_SCAM = "price_scam"
    UNVERIFIED_OWNER = "unverified_owner"
    SPAM = "spam"
    OTHER = "other"


class FlagStatus(str, Enum):
    PENDING = "pending"
    REVIEWING = "reviewing"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"

    @property
    def is_open(self) -> bool:
        return self in (FlagStatus.PENDING, FlagStatus.REVIEWING)


# Allowed status transitions; resolved and dismissed are terminal
FLAG_TRANSITIONS: dict[FlagStatus, set[FlagStatus]] = {
    FlagStatus.PENDING: {FlagStatus.REVIEWING, FlagStatus.RESOLVED, FlagStatus.DISMISSED},
    FlagStatus.REVIEWING: {FlagStatus.RESOLVED, FlagStatus.DISMISSED},
    FlagStatus.RESOLVED: set(),
    FlagStatus.DISMISSED: set(),
}


class Flag(BaseModel):
    """Moderation record. Never deleted, only moved to a terminal status."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    listing_id: str
    flagger_user_id: str | None = None
    flag_type: FlagType
    flag_reason: str
    auto_flagged: bool = False
    confidence_score: int | None = Field(default=None, ge=0, le=100)
    status: FlagStatus = FlagStatus.PENDING
    admin_notes: str | None = None
    reviewed_by: str | None = None
    reviewed_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    def transitioned(self, status: FlagStatus, reviewer_id: str, notes: str | None, at: datetime) -> "Flag":
        return self.model_copy(
            update={
                "status": status,
                "admin_notes": notes,
                "reviewed_by": reviewer_id,
                "reviewed_at": at,
                "updated_at": at,
            }
        )


class FraudSignals(BaseModel):
    """Named boolean risk signals evaluated for a listing/owner pair."""

    missing_identity_document: bool = False
    low_document_confidence: bool = False
    abnormal_pricing: bool = False
    new_account_high_value: bool = False
    rapid_listings: bool = False

    def triggered(self) -> list[str]:
        return [name for name, value in self.model_dump().items() if value]


class TrustAssessment(BaseModel):
    listing_id: str
    owner_id: str
    score: int = Field(ge=0, le=100)
    signals: FraudSignals = Field(default_factory=FraudSignals)
    should_flag: bool = False
    flag_type: FlagType | None = None
    reason: str = ""


class OperationResult(BaseModel):
    success: bool
    error: str | None = None
    flag: Flag | None = None


def check_transition(current: FlagStatus, new: FlagStatus) -> None:
    """Raise ValidationError unless `current -> new` is an allowed lifecycle move."""
    if new not in FLAG_TRANSITIONS[current]:
        raise ValidationError(f"Cannot move flag from '{current.value}' to '{new.value}'")
