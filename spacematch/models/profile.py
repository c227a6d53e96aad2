from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from spacematch.core.constants import DEFAULT_PRICE_MAX, DEFAULT_PRICE_MIN, SEARCH_HISTORY_LIMIT

PatternType = Literal["price_sensitivity", "booking_timing", "search_frequency", "location_preference"]


class Preferences(BaseModel):
    space_types: list[str] = Field(default_factory=list)
    price_min: float = DEFAULT_PRICE_MIN
    price_max: float = DEFAULT_PRICE_MAX
    locations: list[str] = Field(default_factory=list)
    amenities: list[str] = Field(default_factory=list)

    @field_validator("price_min", "price_max", mode="before")
    @classmethod
    def _none_to_default(cls, value: Any, info) -> Any:
        # Stored rows may carry NULL bounds
        if value is None:
            return DEFAULT_PRICE_MIN if info.field_name == "price_min" else DEFAULT_PRICE_MAX
        return value

    def price_in_range(self, price: float) -> bool:
        return self.price_min <= price <= self.price_max

    def location_matches(self, address: str) -> bool:
        address_lower = (address or "").lower()
        return any(loc.lower() in address_lower for loc in self.locations if loc)


class SearchQuery(BaseModel):
    query: str = ""
    filters: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    results_clicked: list[str] = Field(default_factory=list)


class BookingRecord(BaseModel):
    listing_id: str
    booking_date: datetime
    duration_hours: float = 0.0
    price: float = 0.0
    rating: float | None = None


class BehaviorPattern(BaseModel):
    pattern_type: PatternType
    data: dict[str, Any] = Field(default_factory=dict)
    confidence: float = Field(ge=0.0, le=1.0)


class BehaviorProfile(BaseModel):
    """
    Derived summary of a user's preferences and activity.

    Built fresh per request and never persisted by the core. Search history keeps
    the most recent 50 entries (oldest evicted first).
    """

    user_id: str
    preferences: Preferences = Field(default_factory=Preferences)
    search_history: list[SearchQuery] = Field(default_factory=list)
    booking_history: list[BookingRecord] = Field(default_factory=list)
    behavior_patterns: list[BehaviorPattern] = Field(default_factory=list)

    @model_validator(mode="after")
    def _cap_search_history(self) -> "BehaviorProfile":
        if len(self.search_history) > SEARCH_HISTORY_LIMIT:
            self.search_history = self.search_history[-SEARCH_HISTORY_LIMIT:]
        return self

    def get_pattern(self, pattern_type: PatternType) -> BehaviorPattern | None:
        for pattern in self.behavior_patterns:
            if pattern.pattern_type == pattern_type:
                return pattern
        return None

    @property
    def average_booking_price(self) -> float | None:
        if not self.booking_history:
            return None
        return sum(b.price for b in self.booking_history) / len(self.booking_history)
