from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class Listing(BaseModel):
    """A rentable space as stored in the listing table. Read-only input to the scorers."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    space_type: str = ""
    price_per_hour: float = 0.0
    price_per_day: float | None = None
    address: str = ""
    title: str = ""
    description: str | None = ""
    owner_id: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    is_active: bool = True

    @property
    def daily_price(self) -> float:
        """Daily-equivalent price; hourly x 24 when no daily price is set."""
        if self.price_per_day:
            return self.price_per_day
        return self.price_per_hour * 24

    @property
    def search_text(self) -> str:
        return f"{self.title} {self.description or ''} {self.address}".lower()


class OwnerAccount(BaseModel):
    """Owner profile fields relevant to trust scoring."""

    model_config = ConfigDict(extra="ignore")

    user_id: str
    created_at: datetime | None = None
    identity_document_url: str | None = None
    document_verification_confidence: float | None = Field(default=None, ge=0, le=100)

    @property
    def has_identity_document(self) -> bool:
        return bool(self.identity_document_url)

    def age_days(self, now: datetime) -> float | None:
        if self.created_at is None:
            return None
        created = self.created_at
        if created.tzinfo is None:
            created = created.replace(tzinfo=timezone.utc)
        return (now - created).total_seconds() / 86400
