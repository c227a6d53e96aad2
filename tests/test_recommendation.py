import asyncio
import random

import pytest

from spacematch.core.exceptions import ExternalServiceError
from spacematch.models.scoring import SearchCriteria
from spacematch.services.profile import ProfileBuilder
from spacematch.services.recommendation import MESSAGE_TEMPLATES, RecommendationEngine
from spacematch.services.stores.memory import InMemoryListingStore


class BrokenListingStore(InMemoryListingStore):
    async def get_active_listings(self):
        raise ExternalServiceError("listing table unavailable")


class SlowListingStore(InMemoryListingStore):
    async def get_active_listings(self):
        await asyncio.sleep(5)
        return []


@pytest.fixture
def build_engine(profile_store, listing_store, scorer, settings):
    def _build(store=None, rng=None) -> RecommendationEngine:
        return RecommendationEngine(
            ProfileBuilder(profile_store, settings),
            store or listing_store,
            scorer,
            settings,
            rng=rng or random.Random(7),
        )

    return _build


@pytest.fixture
def renter(profile_store, mission_garage_preferences) -> str:
    profile_store.set_preferences("renter-1", mission_garage_preferences)
    return "renter-1"


async def test_weighted_score_and_confidence(build_engine, listing_store, make_listing, renter):
    listing_store.add_listing(make_listing())

    recs = await build_engine().suggest_spaces_based_on_history(renter, SearchCriteria(space_types=["garage"]))

    assert len(recs) == 1
    # type 0.25 + price 0.25 + location 0.2 + criteria 0.1; no bookings so no history factor
    assert recs[0].score == pytest.approx(0.8)
    assert recs[0].confidence == pytest.approx(0.8)
    assert recs[0].urgency == "medium"
    assert len(recs[0].reasons) == 4


async def test_threshold_excludes_weak_listings(build_engine, listing_store, make_listing, renter):
    listing_store.add_listing(make_listing(space_type="storage", address="9 Valencia St"))

    assert await build_engine().suggest_spaces_based_on_history(renter) == []


async def test_history_factor_uses_average_booking_price(build_engine, listing_store, profile_store, make_listing):
    profile_store.add_booking("u2", {"listing_id": "old", "booking_date": "2024-05-01T09:00:00+00:00", "price": 30})
    profile_store.add_booking("u2", {"listing_id": "old", "booking_date": "2024-05-02T09:00:00+00:00", "price": 50})
    profile_store.set_preferences("u2", {"space_types": ["studio"], "price_min": 0, "price_max": 100})
    listing_store.add_listing(make_listing("near", space_type="studio", price_per_hour=42))
    listing_store.add_listing(make_listing("far", space_type="studio", price_per_hour=60))

    recs = await build_engine().suggest_spaces_based_on_history("u2")

    assert [r.listing_id for r in recs] == ["near", "far"]
    assert recs[0].score == pytest.approx(0.7)
    assert recs[1].score == pytest.approx(0.5)


async def test_urgency_bands(build_engine, listing_store, make_listing, renter):
    listing_store.add_listing(make_listing("cheap", price_per_hour=3))
    listing_store.add_listing(make_listing("pricey", price_per_hour=13))
    listing_store.add_listing(make_listing("edge", price_per_hour=12))

    recs = {r.listing_id: r for r in await build_engine().suggest_spaces_based_on_history(renter)}

    assert recs["cheap"].urgency == "high"
    assert recs["pricey"].urgency == "low"
    assert recs["edge"].urgency == "medium"


async def test_top_ten_only(build_engine, listing_store, make_listing, renter):
    for i in range(12):
        listing_store.add_listing(make_listing(f"l{i:02d}"))

    recs = await build_engine().suggest_spaces_based_on_history(renter)

    assert [r.listing_id for r in recs] == [f"l{i:02d}" for i in range(10)]


async def test_inactive_listings_are_skipped(build_engine, listing_store, make_listing, renter):
    listing_store.add_listing(make_listing(is_active=False))
    assert await build_engine().suggest_spaces_based_on_history(renter) == []


@pytest.mark.parametrize("store_cls", [BrokenListingStore, SlowListingStore])
async def test_listing_store_failure_degrades_to_nothing(build_engine, make_listing, renter, store_cls):
    store = store_cls([make_listing()])
    assert await build_engine(store=store).suggest_spaces_based_on_history(renter) == []


async def test_message_randomness_never_changes_scores(build_engine, listing_store, make_listing, renter):
    for i in range(5):
        listing_store.add_listing(make_listing(f"l{i}", price_per_hour=5 + i))

    first = await build_engine(rng=random.Random(1)).suggest_spaces_based_on_history(renter)
    second = await build_engine(rng=random.Random(99)).suggest_spaces_based_on_history(renter)

    assert [(r.listing_id, r.score, r.confidence) for r in first] == [
        (r.listing_id, r.score, r.confidence) for r in second
    ]
    rendered = {t.format(space_type="garage") for t in MESSAGE_TEMPLATES}
    assert all(r.personalized_message in rendered for r in first + second)


async def test_seeded_rng_gives_repeatable_messages(build_engine, listing_store, make_listing, renter):
    listing_store.add_listing(make_listing())

    first = await build_engine(rng=random.Random(3)).suggest_spaces_based_on_history(renter)
    second = await build_engine(rng=random.Random(3)).suggest_spaces_based_on_history(renter)

    assert first == second
