"""
Narrow interfaces to the external collaborators the core consumes.

Adapters map raw rows into the typed models at this boundary; nothing past
these methods sees untyped records. Adapters raise `ExternalServiceError`
when the backing service is unavailable.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from spacematch.core.constants import SEARCH_HISTORY_LIMIT
from spacematch.models.flag import Flag, FlagStatus
from spacematch.models.listing import Listing, OwnerAccount
from spacematch.models.profile import BookingRecord, Preferences, SearchQuery


class ProfileStore(ABC):
    """Preferences, booking history and search history per user."""

    @abstractmethod
    async def get_preferences(self, user_id: str) -> Preferences | None:
        """Stored preferences, or None when the user never saved any."""

    @abstractmethod
    async def get_confirmed_bookings(self, user_id: str) -> list[BookingRecord]:
        """Confirmed bookings made by the user as renter."""

    @abstractmethod
    async def get_search_history(self, user_id: str) -> list[SearchQuery]:
        """Past searches, oldest first."""

    @abstractmethod
    async def append_search(self, user_id: str, search: SearchQuery, limit: int = SEARCH_HISTORY_LIMIT) -> None:
        """Append a search, evicting the oldest entries beyond `limit`."""


class ListingStore(ABC):
    @abstractmethod
    async def get_listing(self, listing_id: str) -> Listing | None: ...

    @abstractmethod
    async def get_active_listings(self) -> list[Listing]: ...

    @abstractmethod
    async def count_owner_listings_since(self, owner_id: str, since: datetime) -> int: ...

    @abstractmethod
    async def get_owner_account(self, owner_id: str) -> OwnerAccount | None: ...


class ModerationStore(ABC):
    """
    Flag persistence.

    The per-listing flag count is the number of open (pending/reviewing) flags.
    Every mutating method is a single atomic unit: the flag rows and the count
    change together or not at all.
    """

    @abstractmethod
    async def insert_report(self, flag: Flag) -> Flag | None:
        """
        Insert a user report.

        Returns None, inserting nothing, when the same reporter already has a
        pending flag on the listing.
        """

    @abstractmethod
    async def insert_auto_flag(self, flag: Flag, dedupe: bool = True) -> Flag | None:
        """
        Insert a system flag.

        With `dedupe`, returns None when an open auto-flag of the same type exists
        for the listing.
        """

    @abstractmethod
    async def get_flag(self, flag_id: str) -> Flag | None: ...

    @abstractmethod
    async def get_flags_for_listing(self, listing_id: str) -> list[Flag]:
        """Flags of a listing, newest first."""

    @abstractmethod
    async def get_flags_by_status(self, status: FlagStatus) -> list[Flag]:
        """Flags in a given status, newest first."""

    @abstractmethod
    async def transition_flag(
        self, flag_id: str, status: FlagStatus, reviewer_id: str, notes: str | None, at: datetime
    ) -> Flag:
        """Move a flag to `status`. Raises NotFoundError / ValidationError."""

    @abstractmethod
    async def dismiss_all_flags(self, listing_id: str, reviewer_id: str, notes: str | None, at: datetime) -> int:
        """Dismiss every open flag of the listing and zero its flag count. Returns the number dismissed."""

    @abstractmethod
    async def get_flag_count(self, listing_id: str) -> int: ...
