from spacematch.core.policy import ScoringPolicy
from spacematch.models.listing import Listing
from spacematch.models.profile import BehaviorProfile, Preferences
from spacematch.models.scoring import FactorResult, FeatureBreakdown


class FeatureScorer:
    """
    Scores a listing against a profile on four equally weighted factors.

    A factor that cannot be evaluated (no preferred types, no preferred
    locations, no booking history) is left out of the denominator instead of
    counting as a miss. Price is always evaluated.
    """

    def __init__(self, policy: ScoringPolicy | None = None):
        self.policy = policy or ScoringPolicy()

    def score(self, listing: Listing, preferences: Preferences, profile: BehaviorProfile) -> FeatureBreakdown:
        type_factor = FactorResult(
            applicable=bool(preferences.space_types),
            satisfied=listing.space_type in preferences.space_types,
        )
        price_factor = FactorResult(applicable=True, satisfied=preferences.price_in_range(listing.price_per_hour))
        location_factor = FactorResult(
            applicable=bool(preferences.locations),
            satisfied=preferences.location_matches(listing.address),
        )
        history_factor = FactorResult(
            applicable=bool(profile.booking_history),
            satisfied=self.has_similar_booking(listing, profile),
        )

        factors = [type_factor, price_factor, location_factor, history_factor]
        applicable = [f for f in factors if f.applicable]
        satisfied = sum(1 for f in applicable if f.satisfied)

        return FeatureBreakdown(
            type=type_factor,
            price=price_factor,
            location=location_factor,
            history=history_factor,
            score=satisfied / len(applicable) if applicable else 0.0,
        )

    def has_similar_booking(self, listing: Listing, profile: BehaviorProfile) -> bool:
        """At least one past booking priced within the tolerance band of the listing's hourly price."""
        tolerance = self.policy.price_affinity_tolerance
        low = listing.price_per_hour * (1 - tolerance)
        high = listing.price_per_hour * (1 + tolerance)
        return any(low <= booking.price <= high for booking in profile.booking_history)

    def near_average_price(self, listing: Listing, profile: BehaviorProfile) -> bool:
        """Listing price within the tolerance of the mean historical booking price."""
        average = profile.average_booking_price
        if not average:
            return False
        return abs(listing.price_per_hour - average) / average < self.policy.price_affinity_tolerance
