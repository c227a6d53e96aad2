import asyncio
from datetime import datetime, timezone
from typing import Any, TypeVar

from loguru import logger

from spacematch.core.config import Settings
from spacematch.core.exceptions import ExternalServiceError
from spacematch.models.profile import BehaviorProfile, BookingRecord, Preferences, SearchQuery
from spacematch.services.profile.patterns import BehaviorPatternAnalyzer
from spacematch.services.stores.base import ProfileStore

T = TypeVar("T")


class ProfileBuilder:
    """
    Builds a BehaviorProfile from the user's stored history.

    Fails open: a missing, slow or unavailable store yields an empty profile with
    the default price range, never an error.
    """

    def __init__(self, profile_store: ProfileStore, settings: Settings):
        self.profile_store = profile_store
        self.settings = settings

    async def build_profile(self, user_id: str) -> BehaviorProfile:
        """
        Fetch preferences, bookings and searches concurrently and derive patterns.

        Args:
            user_id: Owner of the profile

        Returns:
            Freshly built BehaviorProfile (never persisted)
        """
        preferences, bookings, searches = await asyncio.gather(
            self._fetch(self.profile_store.get_preferences(user_id), None, "preferences", user_id),
            self._fetch(self.profile_store.get_confirmed_bookings(user_id), [], "bookings", user_id),
            self._fetch(self.profile_store.get_search_history(user_id), [], "search history", user_id),
        )

        return self.assemble(user_id, preferences, bookings, searches)

    @staticmethod
    def assemble(
        user_id: str,
        preferences: Preferences | None,
        bookings: list[BookingRecord],
        searches: list[SearchQuery],
    ) -> BehaviorProfile:
        """Pure assembly step; exposed so callers holding raw history can skip the store."""
        return BehaviorProfile(
            user_id=user_id,
            preferences=preferences or Preferences(),
            search_history=searches,
            booking_history=bookings,
            behavior_patterns=BehaviorPatternAnalyzer.analyze(bookings, searches),
        )

    async def _fetch(self, coro: Any, default: T, what: str, user_id: str) -> T:
        try:
            result = await asyncio.wait_for(coro, timeout=self.settings.PROFILE_FETCH_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.warning(f"Timed out fetching {what} for {user_id}; using defaults")
            return default
        except ExternalServiceError as e:
            logger.warning(f"Failed to fetch {what} for {user_id}: {e}; using defaults")
            return default
        return default if result is None else result

    async def track_search_behavior(
        self,
        user_id: str,
        query: str,
        filters: dict[str, Any] | None = None,
        results_clicked: list[str] | None = None,
    ) -> None:
        """Append a search to the user's history. Tracking failures never reach the caller."""
        search = SearchQuery(
            query=query,
            filters=filters or {},
            timestamp=datetime.now(timezone.utc),
            results_clicked=results_clicked or [],
        )
        try:
            await self.profile_store.append_search(user_id, search, limit=self.settings.SEARCH_HISTORY_LIMIT)
            logger.debug(f"Tracked search for {user_id}: {query!r}")
        except ExternalServiceError as e:
            logger.warning(f"Failed to track search behavior for {user_id}: {e}")
