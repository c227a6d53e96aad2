"""
In-process store adapters.

Used for local development and tests. Mutations of the moderation store are
serialised with an asyncio lock; no await happens while the lock is held, so
each mutation becomes visible to readers in a single step.
"""

import asyncio
from datetime import datetime, timezone
from typing import Any

from loguru import logger

from spacematch.core.constants import SEARCH_HISTORY_LIMIT
from spacematch.core.exceptions import NotFoundError
from spacematch.models.flag import Flag, FlagStatus, check_transition
from spacematch.models.listing import Listing, OwnerAccount
from spacematch.models.profile import BookingRecord, Preferences, SearchQuery
from spacematch.services.stores.base import ListingStore, ModerationStore, ProfileStore


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _newest_first(flags: list[Flag]) -> list[Flag]:
    # Later inserts win ties on created_at
    return sorted(reversed(flags), key=lambda f: f.created_at, reverse=True)


class InMemoryProfileStore(ProfileStore):
    def __init__(self) -> None:
        self._preferences: dict[str, Preferences] = {}
        self._bookings: dict[str, list[BookingRecord]] = {}
        self._searches: dict[str, list[SearchQuery]] = {}

    def set_preferences(self, user_id: str, preferences: Preferences | dict[str, Any]) -> None:
        self._preferences[user_id] = Preferences.model_validate(preferences)

    def add_booking(self, user_id: str, booking: BookingRecord | dict[str, Any]) -> None:
        self._bookings.setdefault(user_id, []).append(BookingRecord.model_validate(booking))

    async def get_preferences(self, user_id: str) -> Preferences | None:
        return self._preferences.get(user_id)

    async def get_confirmed_bookings(self, user_id: str) -> list[BookingRecord]:
        return list(self._bookings.get(user_id, []))

    async def get_search_history(self, user_id: str) -> list[SearchQuery]:
        return list(self._searches.get(user_id, []))

    async def append_search(self, user_id: str, search: SearchQuery, limit: int = SEARCH_HISTORY_LIMIT) -> None:
        history = self._searches.setdefault(user_id, [])
        history.append(search)
        if len(history) > limit:
            del history[: len(history) - limit]


class InMemoryListingStore(ListingStore):
    def __init__(self, listings: list[Listing] | None = None) -> None:
        self._listings: dict[str, Listing] = {}
        self._owners: dict[str, OwnerAccount] = {}
        for listing in listings or []:
            self.add_listing(listing)

    def add_listing(self, listing: Listing | dict[str, Any]) -> Listing:
        model = Listing.model_validate(listing)
        self._listings[model.id] = model
        return model

    def add_owner(self, owner: OwnerAccount | dict[str, Any]) -> OwnerAccount:
        model = OwnerAccount.model_validate(owner)
        self._owners[model.user_id] = model
        return model

    async def get_listing(self, listing_id: str) -> Listing | None:
        return self._listings.get(listing_id)

    async def get_active_listings(self) -> list[Listing]:
        return [listing for listing in self._listings.values() if listing.is_active]

    async def count_owner_listings_since(self, owner_id: str, since: datetime) -> int:
        since = _aware(since)
        return sum(
            1
            for listing in self._listings.values()
            if listing.owner_id == owner_id and _aware(listing.created_at) >= since
        )

    async def get_owner_account(self, owner_id: str) -> OwnerAccount | None:
        return self._owners.get(owner_id)


class InMemoryModerationStore(ModerationStore):
    def __init__(self) -> None:
        self._flags: dict[str, Flag] = {}
        self._flag_counts: dict[str, int] = {}
        self._lock = asyncio.Lock()

    def _open_count(self, listing_id: str) -> int:
        return sum(1 for f in self._flags.values() if f.listing_id == listing_id and f.status.is_open)

    def _insert(self, flag: Flag) -> Flag:
        self._flags[flag.id] = flag
        self._flag_counts[flag.listing_id] = self._open_count(flag.listing_id)
        return flag

    async def insert_report(self, flag: Flag) -> Flag | None:
        async with self._lock:
            for existing in self._flags.values():
                if (
                    existing.listing_id == flag.listing_id
                    and existing.flagger_user_id == flag.flagger_user_id
                    and existing.status == FlagStatus.PENDING
                ):
                    return None
            return self._insert(flag)

    async def insert_auto_flag(self, flag: Flag, dedupe: bool = True) -> Flag | None:
        async with self._lock:
            if dedupe:
                for existing in self._flags.values():
                    if (
                        existing.listing_id == flag.listing_id
                        and existing.auto_flagged
                        and existing.flag_type == flag.flag_type
                        and existing.status.is_open
                    ):
                        logger.debug(f"Open auto-flag {existing.id} already covers listing {flag.listing_id}")
                        return None
            return self._insert(flag)

    async def get_flag(self, flag_id: str) -> Flag | None:
        return self._flags.get(flag_id)

    async def get_flags_for_listing(self, listing_id: str) -> list[Flag]:
        flags = [f for f in self._flags.values() if f.listing_id == listing_id]
        return _newest_first(flags)

    async def get_flags_by_status(self, status: FlagStatus) -> list[Flag]:
        flags = [f for f in self._flags.values() if f.status == status]
        return _newest_first(flags)

    async def transition_flag(
        self, flag_id: str, status: FlagStatus, reviewer_id: str, notes: str | None, at: datetime
    ) -> Flag:
        async with self._lock:
            current = self._flags.get(flag_id)
            if current is None:
                raise NotFoundError(f"Flag {flag_id} not found")
            check_transition(current.status, status)
            updated = current.transitioned(status, reviewer_id, notes, at)
            return self._insert(updated)

    async def dismiss_all_flags(self, listing_id: str, reviewer_id: str, notes: str | None, at: datetime) -> int:
        async with self._lock:
            updated = {
                f.id: f.transitioned(FlagStatus.DISMISSED, reviewer_id, notes, at)
                for f in self._flags.values()
                if f.listing_id == listing_id and f.status.is_open
            }
            # Single synchronous step: flags and count swap together
            self._flags.update(updated)
            self._flag_counts[listing_id] = 0
            return len(updated)

    async def get_flag_count(self, listing_id: str) -> int:
        return self._flag_counts.get(listing_id, 0)
