"""
Shared fixtures.

Provides:
- settings: test Settings that never read the local .env
- stores: fresh in-memory profile, listing and moderation stores per test
- make_listing / make_profile: small builders for scoring inputs
"""

import random
from datetime import datetime, timedelta, timezone

import pytest

from spacematch.core.config import Settings
from spacematch.models.listing import Listing, OwnerAccount
from spacematch.models.profile import BehaviorProfile, BookingRecord, Preferences
from spacematch.services.profile import BehaviorPatternAnalyzer
from spacematch.services.scoring import FeatureScorer
from spacematch.services.stores.memory import InMemoryListingStore, InMemoryModerationStore, InMemoryProfileStore

NOW = datetime(2024, 6, 1, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# Configuration
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        APP_ENV="test",
        STORE_BACKEND="memory",
        LISTING_STORE_URL="",
        ENABLE_AI_ENHANCEMENT=False,
        PROFILE_FETCH_TIMEOUT_SECONDS=0.2,
        LISTING_FETCH_TIMEOUT_SECONDS=0.2,
        ENHANCEMENT_TIMEOUT_SECONDS=0.2,
        SCORING_CONCURRENCY=4,
    )


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def rng() -> random.Random:
    return random.Random(42)


# =============================================================================
# Stores
# =============================================================================


@pytest.fixture
def profile_store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
def listing_store() -> InMemoryListingStore:
    return InMemoryListingStore()


@pytest.fixture
def moderation_store() -> InMemoryModerationStore:
    return InMemoryModerationStore()


@pytest.fixture
def scorer() -> FeatureScorer:
    return FeatureScorer()


# =============================================================================
# Builders
# =============================================================================


@pytest.fixture
def make_listing():
    def _make(listing_id: str = "l1", **overrides) -> Listing:
        data = {
            "id": listing_id,
            "space_type": "garage",
            "price_per_hour": 8.0,
            "address": "123 Mission St",
            "title": "Secure garage",
            "description": "Covered garage with electric door",
            "owner_id": "owner-1",
            "created_at": NOW - timedelta(days=30),
        }
        data.update(overrides)
        return Listing(**data)

    return _make


@pytest.fixture
def make_owner():
    def _make(user_id: str = "owner-1", **overrides) -> OwnerAccount:
        data = {
            "user_id": user_id,
            "created_at": NOW - timedelta(days=365),
            "identity_document_url": "https://files.example/licence.jpg",
            "document_verification_confidence": 92,
        }
        data.update(overrides)
        return OwnerAccount(**data)

    return _make


@pytest.fixture
def make_profile():
    def _make(
        user_id: str = "renter-1",
        preferences: dict | None = None,
        bookings: list[dict] | None = None,
    ) -> BehaviorProfile:
        booking_records = [BookingRecord(**b) for b in bookings or []]
        return BehaviorProfile(
            user_id=user_id,
            preferences=Preferences(**(preferences or {})),
            booking_history=booking_records,
            behavior_patterns=BehaviorPatternAnalyzer.analyze(booking_records, []),
        )

    return _make


@pytest.fixture
def mission_garage_preferences() -> dict:
    return {"space_types": ["garage"], "price_min": 5, "price_max": 10, "locations": ["Mission"]}
