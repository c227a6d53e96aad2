import random
from dataclasses import dataclass, field

from fastapi import Header, Request
from loguru import logger

from spacematch.core.config import Settings
from spacematch.core.exceptions import ValidationError
from spacematch.core.policy import ScoringPolicy, TrustPolicy
from spacematch.services.enhancement import GeminiTextEnhancer, ResultEnhancer, TextEnhancer
from spacematch.services.matching import MatchEngine
from spacematch.services.moderation import ModerationService
from spacematch.services.profile import ProfileBuilder
from spacematch.services.recommendation import RecommendationEngine
from spacematch.services.scoring import FeatureScorer
from spacematch.services.search import SearchRanker
from spacematch.services.stores.base import ListingStore, ModerationStore, ProfileStore
from spacematch.services.stores.memory import InMemoryListingStore, InMemoryModerationStore, InMemoryProfileStore
from spacematch.services.stores.redis_store import RedisConnection, RedisModerationStore, RedisProfileStore
from spacematch.services.stores.rest import RestListingStore
from spacematch.services.trust import TrustScorer


@dataclass
class ServiceContainer:
    """Components wired once per application and shared by all requests."""

    settings: Settings
    profile_store: ProfileStore
    listing_store: ListingStore
    moderation_store: ModerationStore
    profile_builder: ProfileBuilder
    match_engine: MatchEngine
    recommendation_engine: RecommendationEngine
    search_ranker: SearchRanker
    moderation: ModerationService
    redis: RedisConnection | None = field(default=None)

    async def close(self) -> None:
        if isinstance(self.listing_store, RestListingStore):
            await self.listing_store.close()
        if self.redis is not None:
            await self.redis.close()


def build_container(
    settings: Settings,
    *,
    profile_store: ProfileStore | None = None,
    listing_store: ListingStore | None = None,
    moderation_store: ModerationStore | None = None,
    text_enhancer: TextEnhancer | None = None,
    scoring_policy: ScoringPolicy | None = None,
    trust_policy: TrustPolicy | None = None,
    rng: random.Random | None = None,
) -> ServiceContainer:
    """Wire stores and engines from settings; explicit arguments override the configured adapters."""
    redis_connection = None
    if settings.STORE_BACKEND == "redis" and (profile_store is None or moderation_store is None):
        redis_connection = RedisConnection(settings)
        profile_store = profile_store or RedisProfileStore(redis_connection)
        moderation_store = moderation_store or RedisModerationStore(redis_connection)
    profile_store = profile_store or InMemoryProfileStore()
    moderation_store = moderation_store or InMemoryModerationStore()

    if listing_store is None:
        listing_store = RestListingStore(settings) if settings.LISTING_STORE_URL else InMemoryListingStore()

    if text_enhancer is None and settings.ENABLE_AI_ENHANCEMENT:
        text_enhancer = GeminiTextEnhancer(settings)
    enhancer = ResultEnhancer(text_enhancer, timeout=settings.ENHANCEMENT_TIMEOUT_SECONDS)

    logger.info(
        f"Wiring services: stores={settings.STORE_BACKEND}, "
        f"listings={type(listing_store).__name__}, ai_enhancement={enhancer.enabled}"
    )

    scorer = FeatureScorer(scoring_policy)
    profile_builder = ProfileBuilder(profile_store, settings)
    return ServiceContainer(
        settings=settings,
        profile_store=profile_store,
        listing_store=listing_store,
        moderation_store=moderation_store,
        profile_builder=profile_builder,
        match_engine=MatchEngine(scorer, settings, enhancer),
        recommendation_engine=RecommendationEngine(
            profile_builder, listing_store, scorer, settings, enhancer=enhancer, rng=rng
        ),
        search_ranker=SearchRanker(scorer, settings, enhancer),
        moderation=ModerationService(listing_store, moderation_store, TrustScorer(trust_policy), settings),
        redis=redis_connection,
    )


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity from the `X-User-Id` header."""
    if not x_user_id or not x_user_id.strip():
        raise ValidationError("X-User-Id header is required")
    return x_user_id.strip()


def get_optional_user_id(x_user_id: str | None = Header(default=None)) -> str | None:
    return x_user_id.strip() if x_user_id and x_user_id.strip() else None
