from datetime import datetime, timedelta

from spacematch.models.flag import Flag, FlagStatus, FlagType


async def test_recent_owner_listings_are_counted_per_owner(listing_store, make_listing, now):
    listing_store.add_listing(make_listing("new", created_at=now - timedelta(hours=2)))
    listing_store.add_listing(make_listing("old", created_at=now - timedelta(days=2)))
    listing_store.add_listing(make_listing("theirs", owner_id="someone-else", created_at=now))

    assert await listing_store.count_owner_listings_since("owner-1", now - timedelta(hours=24)) == 1


async def test_naive_window_start_is_treated_as_utc(listing_store, make_listing, now):
    listing_store.add_listing(make_listing("new", created_at=now - timedelta(hours=2)))
    since = datetime(now.year, now.month, now.day, now.hour) - timedelta(hours=24)

    assert await listing_store.count_owner_listings_since("owner-1", since) == 1


async def test_flag_count_tracks_open_flags(moderation_store, now):
    flag = Flag(listing_id="l1", flag_type=FlagType.OTHER, flag_reason="odd", flagger_user_id="u1")
    await moderation_store.insert_report(flag)
    assert await moderation_store.get_flag_count("l1") == 1

    await moderation_store.transition_flag(flag.id, FlagStatus.RESOLVED, "admin", None, now)

    assert await moderation_store.get_flag_count("l1") == 0
    assert (await moderation_store.get_flag(flag.id)).reviewed_at == now


async def test_auto_flag_dedupe_ignores_closed_flags(moderation_store, now):
    first = Flag(listing_id="l1", flag_type=FlagType.SPAM, flag_reason="burst", auto_flagged=True)
    await moderation_store.insert_auto_flag(first)
    await moderation_store.transition_flag(first.id, FlagStatus.DISMISSED, "admin", None, now)

    second = Flag(listing_id="l1", flag_type=FlagType.SPAM, flag_reason="burst", auto_flagged=True)

    assert await moderation_store.insert_auto_flag(second) == second
