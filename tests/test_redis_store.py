import json
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as redis
from redis.exceptions import WatchError

from spacematch.core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from spacematch.models.flag import Flag, FlagStatus, FlagType
from spacematch.models.profile import SearchQuery
from spacematch.services.profile import ProfileBuilder
from spacematch.services.stores.redis_store import RedisConnection, RedisModerationStore, RedisProfileStore

AT = datetime(2024, 6, 1, 12, tzinfo=timezone.utc)


@pytest.fixture
def pipe():
    """Transactional pipeline: immediate reads are awaited, queued writes are not."""
    pipe = MagicMock()
    pipe.__aenter__.return_value = pipe
    pipe.__aexit__.return_value = False
    for name in ("watch", "smembers", "mget", "get", "reset", "execute"):
        setattr(pipe, name, AsyncMock())
    return pipe


@pytest.fixture
def client(pipe):
    client = MagicMock()
    for name in ("get", "lrange", "smembers", "mget"):
        setattr(client, name, AsyncMock())
    client.pipeline.return_value = pipe
    return client


@pytest.fixture
def connection(settings, client) -> RedisConnection:
    return RedisConnection(settings, client=client)


def _flag(**overrides) -> Flag:
    data = {"listing_id": "l1", "flag_type": FlagType.SPAM, "flag_reason": "spam", "flagger_user_id": "user-a"}
    data.update(overrides)
    return Flag(**data)


# =============================================================================
# Profile store
# =============================================================================


async def test_preferences_map_hosted_column_names(connection, client):
    client.get.return_value = json.dumps(
        {"space_type_preferences": ["garage"], "price_range_min": 5, "price_range_max": None, "location_preferences": []}
    )

    prefs = await RedisProfileStore(connection).get_preferences("u1")

    client.get.assert_awaited_once_with("spacematch:prefs:u1")
    assert prefs.space_types == ["garage"]
    assert (prefs.price_min, prefs.price_max) == (5, 100)


async def test_only_confirmed_bookings_are_returned(connection, client):
    client.lrange.return_value = [
        json.dumps(
            {
                "space_id": "l1",
                "status": "confirmed",
                "start_time": "2024-05-01T09:00:00+00:00",
                "end_time": "2024-05-01T12:00:00+00:00",
                "total_price": 24,
            }
        ),
        json.dumps({"space_id": "l2", "status": "cancelled", "start_time": "2024-05-02T09:00:00+00:00"}),
        "not json",
    ]

    bookings = await RedisProfileStore(connection).get_confirmed_bookings("u1")

    assert len(bookings) == 1
    assert bookings[0].listing_id == "l1"
    assert bookings[0].duration_hours == 3
    assert bookings[0].price == 24


async def test_malformed_booking_rows_are_skipped(connection, client):
    client.lrange.return_value = [
        json.dumps({"start_time": "not-a-date"}),
        json.dumps({"status": "confirmed", "price": 10}),
        json.dumps(["not", "a", "row"]),
        json.dumps({"space_id": "l1", "start_time": "2024-05-01T09:00:00+00:00", "total_price": 8}),
    ]

    bookings = await RedisProfileStore(connection).get_confirmed_bookings("u1")

    assert [b.listing_id for b in bookings] == ["l1"]


async def test_malformed_search_rows_are_skipped(connection, client):
    client.lrange.return_value = [
        json.dumps({"query": "garage", "timestamp": "yesterday"}),
        json.dumps({"query": "storage", "timestamp": "2024-05-01T09:00:00+00:00"}),
    ]

    searches = await RedisProfileStore(connection).get_search_history("u1")

    assert [s.query for s in searches] == ["storage"]


async def test_profile_builds_from_corrupted_history(connection, client, settings):
    rows = {
        "spacematch:bookings:u1": [json.dumps({"start_time": "not-a-date"})],
        "spacematch:searches:u1": [json.dumps({"query": "garage", "timestamp": "yesterday"})],
    }
    client.get.return_value = json.dumps({"price_range_min": "cheap"})
    client.lrange.side_effect = lambda key, start, end: rows[key]

    profile = await ProfileBuilder(RedisProfileStore(connection), settings).build_profile("u1")

    assert profile.booking_history == []
    assert profile.search_history == []
    assert (profile.preferences.price_min, profile.preferences.price_max) == (0, 100)


async def test_append_search_trims_in_one_transaction(connection, client, pipe):
    await RedisProfileStore(connection).append_search("u1", SearchQuery(query="garage"), limit=50)

    client.pipeline.assert_called_once_with(transaction=True)
    pipe.rpush.assert_called_once()
    pipe.ltrim.assert_called_once_with("spacematch:searches:u1", -50, -1)
    pipe.execute.assert_awaited_once()


async def test_redis_errors_become_external_service_errors(connection, client):
    client.get.side_effect = redis.ConnectionError("connection refused")

    with pytest.raises(ExternalServiceError):
        await RedisProfileStore(connection).get_preferences("u1")


# =============================================================================
# Moderation store
# =============================================================================


async def test_insert_report_writes_flag_index_and_count(connection, pipe):
    pipe.smembers.return_value = set()
    flag = _flag()

    inserted = await RedisModerationStore(connection).insert_report(flag)

    assert inserted == flag
    pipe.watch.assert_awaited_with("spacematch:listing_flags:l1")
    pipe.multi.assert_called_once()
    pipe.sadd.assert_any_call("spacematch:status_flags:pending", flag.id)
    pipe.set.assert_any_call("spacematch:flag_count:l1", 1)
    pipe.execute.assert_awaited_once()


async def test_duplicate_pending_report_is_not_written(connection, pipe):
    existing = _flag()
    pipe.smembers.return_value = {existing.id}
    pipe.mget.return_value = [existing.model_dump_json()]

    assert await RedisModerationStore(connection).insert_report(_flag()) is None
    pipe.reset.assert_awaited_once()
    pipe.execute.assert_not_awaited()


async def test_auto_flag_dedupes_on_open_flag_of_same_type(connection, pipe):
    existing = _flag(flagger_user_id=None, auto_flagged=True, status=FlagStatus.REVIEWING)
    pipe.smembers.return_value = {existing.id}
    pipe.mget.return_value = [existing.model_dump_json()]
    store = RedisModerationStore(connection)

    assert await store.insert_auto_flag(_flag(flagger_user_id=None, auto_flagged=True)) is None
    assert await store.insert_auto_flag(_flag(flagger_user_id=None, auto_flagged=True, flag_type=FlagType.PRICE_SCAM))


async def test_insert_retries_after_watch_error(connection, pipe):
    pipe.smembers.return_value = set()
    pipe.execute.side_effect = [WatchError("listing changed"), [True]]

    assert await RedisModerationStore(connection).insert_report(_flag()) is not None
    assert pipe.execute.await_count == 2


async def test_transition_of_missing_flag_raises(connection, pipe):
    pipe.get.return_value = None

    with pytest.raises(NotFoundError):
        await RedisModerationStore(connection).transition_flag("nope", FlagStatus.RESOLVED, "admin", None, AT)


async def test_transition_out_of_terminal_status_raises(connection, pipe):
    pipe.get.return_value = _flag(status=FlagStatus.RESOLVED).model_dump_json()

    with pytest.raises(ValidationError):
        await RedisModerationStore(connection).transition_flag("f", FlagStatus.PENDING, "admin", None, AT)
    pipe.execute.assert_not_awaited()


async def test_dismiss_all_resets_count_in_same_transaction(connection, pipe):
    pending = _flag()
    reviewing = _flag(flagger_user_id="user-b", status=FlagStatus.REVIEWING)
    resolved = _flag(flagger_user_id="user-c", status=FlagStatus.RESOLVED)
    pipe.smembers.return_value = {pending.id, reviewing.id, resolved.id}
    pipe.mget.return_value = [f.model_dump_json() for f in (pending, reviewing, resolved)]

    dismissed = await RedisModerationStore(connection).dismiss_all_flags("l1", "admin", "dupes", AT)

    assert dismissed == 2
    pipe.srem.assert_any_call("spacematch:status_flags:reviewing", reviewing.id)
    pipe.set.assert_called_with("spacematch:flag_count:l1", 0)
    pipe.execute.assert_awaited_once()


async def test_flag_count_defaults_to_zero(connection, client):
    client.get.return_value = None
    assert await RedisModerationStore(connection).get_flag_count("l1") == 0
