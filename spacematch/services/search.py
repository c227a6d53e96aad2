from loguru import logger

from spacematch.core.config import Settings
from spacematch.models.listing import Listing
from spacematch.models.profile import BehaviorProfile
from spacematch.models.scoring import RankedResult
from spacematch.services.enhancement import ResultEnhancer, listing_contexts
from spacematch.services.scoring import FeatureScorer
from spacematch.services.utils import score_concurrently, tokenize


class SearchRanker:
    """
    Re-orders free-text search results by relevance.

    Every listing is ranked (no threshold); ranks are 1-indexed and contiguous.
    """

    def __init__(self, scorer: FeatureScorer, settings: Settings, enhancer: ResultEnhancer | None = None):
        self.scorer = scorer
        self.policy = scorer.policy
        self.settings = settings
        self.enhancer = enhancer

    async def rank_search_results(
        self, query: str, listings: list[Listing], profile: BehaviorProfile
    ) -> list[RankedResult]:
        logger.info(f"Ranking {len(listings)} search results for {profile.user_id}: {query!r}")

        scored = await score_concurrently(
            lambda listing: self.score_listing(query, listing, profile), listings, self.settings.SCORING_CONCURRENCY
        )
        ordered = sorted(scored, key=lambda r: (-r.score, r.listing_id))
        ranked = [r.model_copy(update={"rank": i}) for i, r in enumerate(ordered, start=1)]

        if self.enhancer and self.enhancer.enabled and ranked:
            ranked = await self.enhancer.decorate("search", ranked, listing_contexts(listings))
        return ranked

    @staticmethod
    def text_overlap(query: str, listing: Listing) -> tuple[float, int]:
        """Fraction (and count) of query tokens found in title, description and address."""
        tokens = tokenize(query)
        if not tokens:
            return 0.0, 0
        text = listing.search_text
        found = sum(1 for token in tokens if token in text)
        return found / len(tokens), found

    def score_listing(self, query: str, listing: Listing, profile: BehaviorProfile) -> RankedResult:
        prefs = profile.preferences
        weights = self.policy.search_weights

        overlap, found = self.text_overlap(query, listing)
        breakdown = self.scorer.score(listing, prefs, profile)
        in_range = prefs.price_in_range(listing.price_per_hour)
        in_location = prefs.location_matches(listing.address)

        relevance = (
            overlap * weights["text"]
            + breakdown.score * weights["preference"]
            + (weights["price"] if in_range else 0.0)
            + (weights["location"] if in_location else 0.0)
        )

        factors = []
        if found:
            factors.append(f"Contains {found} search term{'s' if found != 1 else ''}")
        if breakdown.type.applicable and breakdown.type.satisfied:
            factors.append("Matches your space type preferences")
        if in_range:
            factors.append("Within your price range")
        if in_location:
            factors.append("In your preferred location")
        if breakdown.history.applicable and breakdown.history.satisfied:
            factors.append("Priced like spaces you've booked before")

        return RankedResult(
            listing_id=listing.id,
            score=relevance,
            reasons=factors,
            confidence=breakdown.score,
        )
