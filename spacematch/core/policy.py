"""
Tunable policy values for the scorers.

Defaults come from `spacematch.core.constants`; callers may inject a modified
copy (e.g. for experiments) without touching module state.
"""

from pydantic import BaseModel, Field

from spacematch.core import constants as c


class ScoringPolicy(BaseModel):
    match_threshold: float = c.MATCH_SCORE_THRESHOLD
    recommendation_threshold: float = c.RECOMMENDATION_SCORE_THRESHOLD
    price_affinity_tolerance: float = c.PRICE_AFFINITY_TOLERANCE

    confidence_weights: dict[str, float] = Field(
        default_factory=lambda: {
            "type": c.CONFIDENCE_WEIGHT_TYPE,
            "price": c.CONFIDENCE_WEIGHT_PRICE,
            "location": c.CONFIDENCE_WEIGHT_LOCATION,
        }
    )
    recommendation_weights: dict[str, float] = Field(
        default_factory=lambda: {
            "type": c.RECOMMENDATION_WEIGHT_TYPE,
            "price": c.RECOMMENDATION_WEIGHT_PRICE,
            "location": c.RECOMMENDATION_WEIGHT_LOCATION,
            "history": c.RECOMMENDATION_WEIGHT_HISTORY,
            "criteria": c.RECOMMENDATION_WEIGHT_CRITERIA,
        }
    )
    search_weights: dict[str, float] = Field(
        default_factory=lambda: {
            "text": c.SEARCH_WEIGHT_TEXT,
            "preference": c.SEARCH_WEIGHT_PREFERENCE,
            "price": c.SEARCH_WEIGHT_PRICE,
            "location": c.SEARCH_WEIGHT_LOCATION,
        }
    )
    urgency_high_factor: float = c.URGENCY_HIGH_FACTOR
    urgency_low_factor: float = c.URGENCY_LOW_FACTOR


class TrustPolicy(BaseModel):
    start_score: int = c.TRUST_SCORE_START
    flag_threshold: int = c.TRUST_FLAG_THRESHOLD
    penalty_missing_document: int = c.PENALTY_MISSING_DOCUMENT
    penalty_low_document_confidence: int = c.PENALTY_LOW_DOCUMENT_CONFIDENCE
    penalty_new_account_high_value: int = c.PENALTY_NEW_ACCOUNT_HIGH_VALUE
    penalty_abnormal_pricing: int = c.PENALTY_ABNORMAL_PRICING
    penalty_rapid_listings: int = c.PENALTY_RAPID_LISTINGS
    document_confidence_minimum: float = c.DOCUMENT_CONFIDENCE_MINIMUM
    new_account_max_age_days: int = c.NEW_ACCOUNT_MAX_AGE_DAYS
    new_account_daily_price_limit: float = c.NEW_ACCOUNT_DAILY_PRICE_LIMIT
    abnormal_hourly_price: float = c.ABNORMAL_HOURLY_PRICE
    abnormal_daily_price: float = c.ABNORMAL_DAILY_PRICE
    rapid_listings_window_hours: int = c.RAPID_LISTINGS_WINDOW_HOURS
    rapid_listings_max: int = c.RAPID_LISTINGS_MAX
