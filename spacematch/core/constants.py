from typing import Final

# Feature scorer thresholds
MATCH_SCORE_THRESHOLD: Final[float] = 0.3
RECOMMENDATION_SCORE_THRESHOLD: Final[float] = 0.4

# Historical price affinity band (+/- 20%)
PRICE_AFFINITY_TOLERANCE: Final[float] = 0.2

# Match confidence weights (independent of the match-score weights)
CONFIDENCE_WEIGHT_TYPE: Final[float] = 0.3
CONFIDENCE_WEIGHT_PRICE: Final[float] = 0.3
CONFIDENCE_WEIGHT_LOCATION: Final[float] = 0.4

# Recommendation weights (sum to 1.0)
RECOMMENDATION_WEIGHT_TYPE: Final[float] = 0.25
RECOMMENDATION_WEIGHT_PRICE: Final[float] = 0.25
RECOMMENDATION_WEIGHT_LOCATION: Final[float] = 0.2
RECOMMENDATION_WEIGHT_HISTORY: Final[float] = 0.2
RECOMMENDATION_WEIGHT_CRITERIA: Final[float] = 0.1

# Urgency bands relative to the preferred price range
URGENCY_HIGH_FACTOR: Final[float] = 0.8  # below 0.8x min = unusually good deal
URGENCY_LOW_FACTOR: Final[float] = 1.2  # above 1.2x max = expensive

# Search relevance weights (sum to 1.0)
SEARCH_WEIGHT_TEXT: Final[float] = 0.4
SEARCH_WEIGHT_PREFERENCE: Final[float] = 0.3
SEARCH_WEIGHT_PRICE: Final[float] = 0.2
SEARCH_WEIGHT_LOCATION: Final[float] = 0.1

# Default preference price range when a user has no stored preferences
DEFAULT_PRICE_MIN: Final[float] = 0.0
DEFAULT_PRICE_MAX: Final[float] = 100.0

# Behaviour pattern confidence denominators
PRICE_SENSITIVITY_FULL_CONFIDENCE_BOOKINGS: Final[int] = 10
BOOKING_TIMING_FULL_CONFIDENCE_BOOKINGS: Final[int] = 5
SEARCH_FREQUENCY_FULL_CONFIDENCE_SEARCHES: Final[int] = 20
LOCATION_PREFERENCE_FULL_CONFIDENCE_SEARCHES: Final[int] = 10
PEAK_HOURS_LIMIT: Final[int] = 3
TOP_LOCATIONS_LIMIT: Final[int] = 3

# Profiles keep this many recent searches; stores may be configured lower, never higher
SEARCH_HISTORY_LIMIT: Final[int] = 50

# Trust scoring
TRUST_SCORE_START: Final[int] = 100
TRUST_FLAG_THRESHOLD: Final[int] = 60  # strictly below flags
PENALTY_MISSING_DOCUMENT: Final[int] = 30
PENALTY_LOW_DOCUMENT_CONFIDENCE: Final[int] = 40
PENALTY_NEW_ACCOUNT_HIGH_VALUE: Final[int] = 20
PENALTY_ABNORMAL_PRICING: Final[int] = 15
PENALTY_RAPID_LISTINGS: Final[int] = 15
DOCUMENT_CONFIDENCE_MINIMUM: Final[float] = 50.0
NEW_ACCOUNT_MAX_AGE_DAYS: Final[int] = 7
NEW_ACCOUNT_DAILY_PRICE_LIMIT: Final[float] = 200.0
ABNORMAL_HOURLY_PRICE: Final[float] = 100.0
ABNORMAL_DAILY_PRICE: Final[float] = 500.0
RAPID_LISTINGS_WINDOW_HOURS: Final[int] = 24
RAPID_LISTINGS_MAX: Final[int] = 5
