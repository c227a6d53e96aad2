from typing import Literal

from pydantic import BaseModel, Field, field_validator


def clamp_unit(value: float) -> float:
    """Clamp to [0, 1] and round so repeated runs compare equal."""
    return round(max(0.0, min(1.0, float(value))), 4)


class FactorResult(BaseModel):
    applicable: bool
    satisfied: bool = False


class FeatureBreakdown(BaseModel):
    """Equal-weighted factor breakdown for a (profile, listing) pair."""

    type: FactorResult
    price: FactorResult
    location: FactorResult
    history: FactorResult
    score: float = 0.0

    @field_validator("score")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_unit(value)

    @property
    def factors(self) -> dict[str, FactorResult]:
        return {"type": self.type, "price": self.price, "location": self.location, "history": self.history}

    @property
    def applicable_count(self) -> int:
        return sum(1 for f in self.factors.values() if f.applicable)

    @property
    def satisfied(self) -> list[str]:
        return [name for name, f in self.factors.items() if f.applicable and f.satisfied]


class ScoreResult(BaseModel):
    listing_id: str
    score: float = 0.0
    reasons: list[str] = Field(default_factory=list)
    confidence: float = 0.0

    @field_validator("score", "confidence")
    @classmethod
    def _clamp(cls, value: float) -> float:
        return clamp_unit(value)


class Match(ScoreResult):
    suggested_price: float | None = None
    alternative_times: list[str] = Field(default_factory=list)


class Recommendation(ScoreResult):
    personalized_message: str = ""
    urgency: Literal["low", "medium", "high"] = "medium"


class RankedResult(ScoreResult):
    rank: int = 0

    @property
    def ranking_factors(self) -> list[str]:
        return self.reasons


class SearchCriteria(BaseModel):
    query: str | None = None
    space_types: list[str] = Field(default_factory=list)
    price_min: float | None = None
    price_max: float | None = None
    location: str | None = None
    amenities: list[str] = Field(default_factory=list)
