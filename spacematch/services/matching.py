from loguru import logger

from spacematch.core.config import Settings
from spacematch.models.listing import Listing
from spacematch.models.profile import BehaviorProfile
from spacematch.models.scoring import FeatureBreakdown, Match
from spacematch.services.enhancement import ResultEnhancer, listing_contexts
from spacematch.services.scoring import FeatureScorer
from spacematch.services.utils import score_concurrently


class MatchEngine:
    """
    Ranks candidate listings for a renter.

    Keeps listings whose feature score is strictly above the match threshold and
    orders them by score, then listing id, so identical input always yields
    identical output.
    """

    def __init__(self, scorer: FeatureScorer, settings: Settings, enhancer: ResultEnhancer | None = None):
        self.scorer = scorer
        self.policy = scorer.policy
        self.settings = settings
        self.enhancer = enhancer

    async def find_optimal_matches(self, profile: BehaviorProfile, listings: list[Listing]) -> list[Match]:
        logger.info(f"Finding optimal matches for {profile.user_id} across {len(listings)} listings")

        scored = await score_concurrently(
            lambda listing: self.build_match(listing, profile), listings, self.settings.SCORING_CONCURRENCY
        )
        matches = self.rank([m for m in scored if m is not None])

        if self.enhancer and self.enhancer.enabled and matches:
            matches = await self.enhancer.decorate("match", matches, listing_contexts(listings))

        logger.info(f"Found {len(matches)} matches for {profile.user_id}")
        return matches

    @staticmethod
    def rank(matches: list[Match]) -> list[Match]:
        return sorted(matches, key=lambda m: (-m.score, m.listing_id))

    def passes_threshold(self, score: float) -> bool:
        return score > self.policy.match_threshold

    def build_match(self, listing: Listing, profile: BehaviorProfile) -> Match | None:
        breakdown = self.scorer.score(listing, profile.preferences, profile)
        if not self.passes_threshold(breakdown.score):
            return None

        return Match(
            listing_id=listing.id,
            score=breakdown.score,
            reasons=self.reasons(listing, breakdown),
            confidence=self.confidence(breakdown),
            suggested_price=min(listing.price_per_hour, profile.preferences.price_max),
            alternative_times=self.alternative_times(profile),
        )

    def confidence(self, breakdown: FeatureBreakdown) -> float:
        weights = self.policy.confidence_weights
        return sum(weights.get(name, 0.0) for name in breakdown.satisfied)

    @staticmethod
    def reasons(listing: Listing, breakdown: FeatureBreakdown) -> list[str]:
        reasons = []
        if breakdown.type.satisfied and breakdown.type.applicable:
            reasons.append(f"Matches your preferred space type: {listing.space_type}")
        if breakdown.price.satisfied:
            reasons.append(f"Within your price range: ${listing.price_per_hour:g}/hour")
        if breakdown.location.satisfied and breakdown.location.applicable:
            reasons.append("Located in your preferred area")
        if breakdown.history.satisfied and breakdown.history.applicable:
            reasons.append("Priced like spaces you've booked before")
        return reasons

    @staticmethod
    def alternative_times(profile: BehaviorProfile) -> list[str]:
        timing = profile.get_pattern("booking_timing")
        if not timing:
            return []
        return [f"{hour:02d}:00" for hour in timing.data.get("peak_hours", [])]
