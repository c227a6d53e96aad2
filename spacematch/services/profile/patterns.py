from collections import Counter

from spacematch.core.constants import (
    BOOKING_TIMING_FULL_CONFIDENCE_BOOKINGS,
    LOCATION_PREFERENCE_FULL_CONFIDENCE_SEARCHES,
    PEAK_HOURS_LIMIT,
    PRICE_SENSITIVITY_FULL_CONFIDENCE_BOOKINGS,
    SEARCH_FREQUENCY_FULL_CONFIDENCE_SEARCHES,
    TOP_LOCATIONS_LIMIT,
)
from spacematch.models.profile import BehaviorPattern, BookingRecord, SearchQuery


class BehaviorPatternAnalyzer:
    """
    Derives behaviour patterns from booking and search history.

    Pure functions: the same history always yields the same patterns.
    """

    @staticmethod
    def analyze(bookings: list[BookingRecord], searches: list[SearchQuery]) -> list[BehaviorPattern]:
        patterns: list[BehaviorPattern] = []

        price = BehaviorPatternAnalyzer.price_sensitivity(bookings)
        if price:
            patterns.append(price)

        patterns.append(BehaviorPatternAnalyzer.booking_timing(bookings))

        frequency = BehaviorPatternAnalyzer.search_frequency(searches)
        if frequency:
            patterns.append(frequency)

        location = BehaviorPatternAnalyzer.location_preference(searches)
        if location:
            patterns.append(location)

        return patterns

    @staticmethod
    def price_sensitivity(bookings: list[BookingRecord]) -> BehaviorPattern | None:
        """Mean and population variance of booking prices."""
        if not bookings:
            return None
        prices = [b.price for b in bookings]
        mean = sum(prices) / len(prices)
        variance = sum((p - mean) ** 2 for p in prices) / len(prices)
        return BehaviorPattern(
            pattern_type="price_sensitivity",
            data={"average_price": mean, "variance": variance},
            confidence=min(len(bookings) / PRICE_SENSITIVITY_FULL_CONFIDENCE_BOOKINGS, 1.0),
        )

    @staticmethod
    def booking_timing(bookings: list[BookingRecord]) -> BehaviorPattern:
        return BehaviorPattern(
            pattern_type="booking_timing",
            data={"peak_hours": BehaviorPatternAnalyzer.peak_hours([b.booking_date.hour for b in bookings])},
            confidence=min(len(bookings) / BOOKING_TIMING_FULL_CONFIDENCE_BOOKINGS, 1.0),
        )

    @staticmethod
    def peak_hours(hours: list[int], limit: int = PEAK_HOURS_LIMIT) -> list[int]:
        """Most frequent hours first; ties go to the earlier hour."""
        counts = Counter(hours)
        ranked = sorted(counts.items(), key=lambda x: (-x[1], x[0]))
        return [hour for hour, _ in ranked[:limit]]

    @staticmethod
    def search_frequency(searches: list[SearchQuery]) -> BehaviorPattern | None:
        if not searches:
            return None
        timestamps = sorted(s.timestamp for s in searches)
        span_days = max((timestamps[-1] - timestamps[0]).total_seconds() / 86400, 1.0)
        clicked = sum(1 for s in searches if s.results_clicked)
        return BehaviorPattern(
            pattern_type="search_frequency",
            data={
                "total_searches": len(searches),
                "searches_per_day": round(len(searches) / span_days, 4),
                "click_through_rate": round(clicked / len(searches), 4),
            },
            confidence=min(len(searches) / SEARCH_FREQUENCY_FULL_CONFIDENCE_SEARCHES, 1.0),
        )

    @staticmethod
    def location_preference(searches: list[SearchQuery]) -> BehaviorPattern | None:
        locations = [
            str(s.filters["location"]).strip().lower()
            for s in searches
            if s.filters.get("location") and str(s.filters["location"]).strip()
        ]
        if not locations:
            return None
        ranked = sorted(Counter(locations).items(), key=lambda x: (-x[1], x[0]))
        return BehaviorPattern(
            pattern_type="location_preference",
            data={"top_locations": [loc for loc, _ in ranked[:TOP_LOCATIONS_LIMIT]]},
            confidence=min(len(locations) / LOCATION_PREFERENCE_FULL_CONFIDENCE_SEARCHES, 1.0),
        )
