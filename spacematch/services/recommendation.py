import asyncio
import random
from typing import Literal

from loguru import logger

from spacematch.core.config import Settings
from spacematch.core.exceptions import ExternalServiceError
from spacematch.models.listing import Listing
from spacematch.models.profile import BehaviorProfile
from spacematch.models.scoring import Recommendation, SearchCriteria
from spacematch.services.enhancement import ResultEnhancer, listing_contexts
from spacematch.services.profile.builder import ProfileBuilder
from spacematch.services.scoring import FeatureScorer
from spacematch.services.stores.base import ListingStore
from spacematch.services.utils import score_concurrently

MESSAGE_TEMPLATES: tuple[str, ...] = (
    "Based on your booking history, this {space_type} looks perfect for you!",
    "This space matches your preferences and is priced competitively.",
    "We think you'll love this {space_type} based on your past bookings.",
    "This space is similar to others you've booked and enjoyed.",
)

Urgency = Literal["low", "medium", "high"]


class RecommendationEngine:
    """
    Proactive, history-driven suggestions.

    Scores are a five-factor weighted sum; urgency is derived from price
    against the preferred range, not from the score. The personalised message
    is drawn from `MESSAGE_TEMPLATES` with the injected random source and
    never influences score or order.
    """

    def __init__(
        self,
        profile_builder: ProfileBuilder,
        listing_store: ListingStore,
        scorer: FeatureScorer,
        settings: Settings,
        enhancer: ResultEnhancer | None = None,
        rng: random.Random | None = None,
    ):
        self.profile_builder = profile_builder
        self.listing_store = listing_store
        self.scorer = scorer
        self.policy = scorer.policy
        self.settings = settings
        self.enhancer = enhancer
        self.rng = rng or random.Random()

    async def suggest_spaces_based_on_history(
        self, user_id: str, criteria: SearchCriteria | None = None
    ) -> list[Recommendation]:
        criteria = criteria or SearchCriteria()
        logger.info(f"Suggesting spaces for {user_id}")

        profile = await self.profile_builder.build_profile(user_id)
        listings = await self._active_listings()

        scored = await score_concurrently(
            lambda listing: self.score_listing(listing, profile, criteria),
            listings,
            self.settings.SCORING_CONCURRENCY,
        )
        kept = [
            (listing, score, factors)
            for listing, (score, factors) in zip(listings, scored)
            if score > self.policy.recommendation_threshold
        ]
        kept.sort(key=lambda x: (-x[1], x[0].id))
        kept = kept[: self.settings.RECOMMENDATION_LIMIT]

        # Messages are drawn after ordering is fixed
        recommendations = [
            Recommendation(
                listing_id=listing.id,
                score=score,
                reasons=self.reasons(listing, factors),
                confidence=len(factors) / len(self.policy.recommendation_weights),
                personalized_message=self.personalized_message(listing),
                urgency=self.urgency(listing, profile),
            )
            for listing, score, factors in kept
        ]

        if self.enhancer and self.enhancer.enabled and recommendations:
            recommendations = await self.enhancer.decorate(
                "recommendation", recommendations, listing_contexts([k[0] for k in kept])
            )

        logger.info(f"Generated {len(recommendations)} recommendations for {user_id}")
        return recommendations

    async def _active_listings(self) -> list[Listing]:
        try:
            return await asyncio.wait_for(
                self.listing_store.get_active_listings(), timeout=self.settings.LISTING_FETCH_TIMEOUT_SECONDS
            )
        except (asyncio.TimeoutError, ExternalServiceError) as e:
            logger.warning(f"Failed to fetch active listings: {e!r}; recommending nothing")
            return []

    def score_listing(
        self, listing: Listing, profile: BehaviorProfile, criteria: SearchCriteria
    ) -> tuple[float, list[str]]:
        """Weighted sum of satisfied factors plus the names of those factors."""
        prefs = profile.preferences
        checks = {
            "type": listing.space_type in prefs.space_types,
            "price": prefs.price_in_range(listing.price_per_hour),
            "location": prefs.location_matches(listing.address),
            "history": self.scorer.near_average_price(listing, profile),
            "criteria": listing.space_type in criteria.space_types,
        }
        weights = self.policy.recommendation_weights
        satisfied = [name for name, ok in checks.items() if ok]
        return round(sum(weights[name] for name in satisfied), 4), satisfied

    def urgency(self, listing: Listing, profile: BehaviorProfile) -> Urgency:
        prefs = profile.preferences
        if listing.price_per_hour < prefs.price_min * self.policy.urgency_high_factor:
            return "high"  # unusually good deal
        if listing.price_per_hour > prefs.price_max * self.policy.urgency_low_factor:
            return "low"
        return "medium"

    def personalized_message(self, listing: Listing) -> str:
        template = self.rng.choice(MESSAGE_TEMPLATES)
        return template.format(space_type=listing.space_type or "space")

    @staticmethod
    def reasons(listing: Listing, factors: list[str]) -> list[str]:
        lines = {
            "type": f"Similar to the {listing.space_type} spaces you prefer",
            "price": f"Within your price range: ${listing.price_per_hour:g}/hour",
            "location": "In your preferred location",
            "history": "Priced similarly to your previous bookings",
            "criteria": f"Matches the {listing.space_type} type you searched for",
        }
        return [lines[name] for name in factors]
