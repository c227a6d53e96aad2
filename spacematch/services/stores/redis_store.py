import json
from datetime import datetime
from typing import Any

import redis.asyncio as redis
from loguru import logger
from redis.exceptions import WatchError

from spacematch.core.config import Settings
from spacematch.core.constants import SEARCH_HISTORY_LIMIT
from spacematch.core.exceptions import ExternalServiceError, NotFoundError
from spacematch.models.flag import Flag, FlagStatus, check_transition
from spacematch.models.profile import BookingRecord, Preferences, SearchQuery
from spacematch.services.stores.base import ModerationStore, ProfileStore


class RedisConnection:
    """Lazily created shared redis.asyncio client."""

    def __init__(self, settings: Settings, client: redis.Redis | None = None) -> None:
        self.settings = settings
        self._client = client
        if not settings.REDIS_URL and client is None:
            logger.warning("REDIS_URL is not set. Redis operations will fail until configured.")

    async def get_client(self) -> redis.Redis:
        if self._client is None:
            logger.info("Creating Redis client for SpaceMatch stores")
            self._client = redis.from_url(
                self.settings.REDIS_URL,
                decode_responses=True,
                encoding="utf-8",
                socket_connect_timeout=5,
                socket_timeout=5,
                max_connections=self.settings.REDIS_MAX_CONNECTIONS,
                health_check_interval=30,
                socket_keepalive=True,
            )
        return self._client

    def key(self, *parts: str) -> str:
        return self.settings.REDIS_KEY_PREFIX + ":".join(parts)

    async def close(self) -> None:
        if self._client is not None:
            try:
                await self._client.close()
                logger.info("Redis store client closed")
            except Exception as exc:
                logger.warning(f"Failed to close Redis store client: {exc}")
            finally:
                self._client = None


def _loads(raw: str | None) -> Any:
    if not raw:
        return None
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(f"Skipping undecodable Redis value: {e}")
        return None


class RedisProfileStore(ProfileStore):
    """
    Profile history in Redis.

    Keys:
        prefs:{user_id}     JSON preference row
        bookings:{user_id}  list of JSON booking rows (any status)
        searches:{user_id}  list of JSON search entries, oldest first
    """

    def __init__(self, connection: RedisConnection) -> None:
        self.connection = connection

    async def get_preferences(self, user_id: str) -> Preferences | None:
        try:
            client = await self.connection.get_client()
            raw = await client.get(self.connection.key("prefs", user_id))
        except (redis.RedisError, OSError) as exc:
            raise ExternalServiceError(f"Failed to read preferences for {user_id}: {exc}") from exc
        row = _loads(raw)
        if not row:
            return None
        try:
            return Preferences.model_validate(_preference_row(row))
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning(f"Ignoring malformed preferences for {user_id}: {e}")
            return None

    async def get_confirmed_bookings(self, user_id: str) -> list[BookingRecord]:
        try:
            client = await self.connection.get_client()
            raws = await client.lrange(self.connection.key("bookings", user_id), 0, -1)
        except (redis.RedisError, OSError) as exc:
            raise ExternalServiceError(f"Failed to read bookings for {user_id}: {exc}") from exc

        bookings = []
        for raw in raws:
            row = _loads(raw)
            if not isinstance(row, dict) or row.get("status", "confirmed") != "confirmed":
                continue
            try:
                bookings.append(BookingRecord.model_validate(_booking_row(row)))
            except (ValueError, TypeError) as e:
                logger.warning(f"Skipping malformed booking row for {user_id}: {e}")
        return bookings

    async def get_search_history(self, user_id: str) -> list[SearchQuery]:
        try:
            client = await self.connection.get_client()
            raws = await client.lrange(self.connection.key("searches", user_id), 0, -1)
        except (redis.RedisError, OSError) as exc:
            raise ExternalServiceError(f"Failed to read search history for {user_id}: {exc}") from exc

        searches = []
        for row in map(_loads, raws):
            if not isinstance(row, dict):
                continue
            try:
                searches.append(SearchQuery.model_validate(row))
            except ValueError as e:
                logger.warning(f"Skipping malformed search row for {user_id}: {e}")
        return searches

    async def append_search(self, user_id: str, search: SearchQuery, limit: int = SEARCH_HISTORY_LIMIT) -> None:
        key = self.connection.key("searches", user_id)
        try:
            client = await self.connection.get_client()
            async with client.pipeline(transaction=True) as pipe:
                pipe.rpush(key, search.model_dump_json())
                pipe.ltrim(key, -limit, -1)
                await pipe.execute()
        except (redis.RedisError, OSError) as exc:
            raise ExternalServiceError(f"Failed to append search for {user_id}: {exc}") from exc


def _preference_row(row: dict[str, Any]) -> dict[str, Any]:
    """Accept both the hosted table's column names and our field names."""
    return {
        "space_types": row.get("space_type_preferences", row.get("space_types")) or [],
        "price_min": row.get("price_range_min", row.get("price_min")),
        "price_max": row.get("price_range_max", row.get("price_max")),
        "locations": row.get("location_preferences", row.get("locations")) or [],
        "amenities": row.get("amenities_preferences", row.get("amenities")) or [],
    }


def _booking_row(row: dict[str, Any]) -> dict[str, Any]:
    if "start_time" not in row:
        return row
    start = datetime.fromisoformat(row["start_time"])
    end = datetime.fromisoformat(row["end_time"]) if row.get("end_time") else start
    return {
        "listing_id": row.get("space_id") or row.get("listing_id"),
        "booking_date": start,
        "duration_hours": (end - start).total_seconds() / 3600,
        "price": row.get("total_price") or 0.0,
        "rating": row.get("rating"),
    }


class RedisModerationStore(ModerationStore):
    """
    Flags in Redis.

    Keys:
        flag:{id}                 JSON flag
        listing_flags:{listing}   set of flag ids
        status_flags:{status}     set of flag ids
        flag_count:{listing}      open flag count

    Mutations run inside WATCH/MULTI/EXEC so a listing never shows a mix of
    old and new flag state.
    """

    def __init__(self, connection: RedisConnection) -> None:
        self.connection = connection

    def _flag_key(self, flag_id: str) -> str:
        return self.connection.key("flag", flag_id)

    def _listing_key(self, listing_id: str) -> str:
        return self.connection.key("listing_flags", listing_id)

    def _status_key(self, status: FlagStatus) -> str:
        return self.connection.key("status_flags", status.value)

    def _count_key(self, listing_id: str) -> str:
        return self.connection.key("flag_count", listing_id)

    async def _load_flags(self, client: Any, flag_ids: list[str]) -> list[Flag]:
        if not flag_ids:
            return []
        raws = await client.mget([self._flag_key(fid) for fid in flag_ids])
        return [Flag.model_validate(row) for row in map(_loads, raws) if row]

    @staticmethod
    def _newest_first(flags: list[Flag]) -> list[Flag]:
        return sorted(flags, key=lambda f: f.created_at, reverse=True)

    def _queue_write(self, pipe: Any, flag: Flag, previous: Flag | None, open_count: int) -> None:
        pipe.set(self._flag_key(flag.id), flag.model_dump_json())
        pipe.sadd(self._listing_key(flag.listing_id), flag.id)
        if previous is not None and previous.status != flag.status:
            pipe.srem(self._status_key(previous.status), flag.id)
        pipe.sadd(self._status_key(flag.status), flag.id)
        pipe.set(self._count_key(flag.listing_id), open_count)

    async def _insert_unless(self, flag: Flag, conflicts) -> Flag | None:
        listing_key = self._listing_key(flag.listing_id)
        try:
            client = await self.connection.get_client()
            async with client.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(listing_key)
                        flag_ids = list(await pipe.smembers(listing_key))
                        existing = await self._load_flags(pipe, flag_ids)
                        if any(conflicts(other) for other in existing):
                            await pipe.reset()
                            return None
                        open_count = sum(1 for f in existing if f.status.is_open) + 1
                        pipe.multi()
                        self._queue_write(pipe, flag, None, open_count)
                        await pipe.execute()
                        return flag
                    except WatchError:
                        logger.debug(f"Concurrent flag write on listing {flag.listing_id}, retrying")
                        continue
        except (redis.RedisError, OSError) as exc:
            raise ExternalServiceError(f"Failed to insert flag for listing {flag.listing_id}: {exc}") from exc

    async def insert_report(self, flag: Flag) -> Flag | None:
        return await self._insert_unless(
            flag,
            lambda other: other.flagger_user_id == flag.flagger_user_id and other.status == FlagStatus.PENDING,
        )

    async def insert_auto_flag(self, flag: Flag, dedupe: bool = True) -> Flag | None:
        if not dedupe:
            return await self._insert_unless(flag, lambda other: False)
        return await self._insert_unless(
            flag,
            lambda other: other.auto_flagged and other.flag_type == flag.flag_type and other.status.is_open,
        )

    async def get_flag(self, flag_id: str) -> Flag | None:
        try:
            client = await self.connection.get_client()
            row = _loads(await client.get(self._flag_key(flag_id)))
        except (redis.RedisError, OSError) as exc:
            raise ExternalServiceError(f"Failed to read flag {flag_id}: {exc}") from exc
        return Flag.model_validate(row) if row else None

    async def get_flags_for_listing(self, listing_id: str) -> list[Flag]:
        try:
            client = await self.connection.get_client()
            flag_ids = list(await client.smembers(self._listing_key(listing_id)))
            return self._newest_first(await self._load_flags(client, flag_ids))
        except (redis.RedisError, OSError) as exc:
            raise ExternalServiceError(f"Failed to read flags for listing {listing_id}: {exc}") from exc

    async def get_flags_by_status(self, status: FlagStatus) -> list[Flag]:
        try:
            client = await self.connection.get_client()
            flag_ids = list(await client.smembers(self._status_key(status)))
            flags = await self._load_flags(client, flag_ids)
        except (redis.RedisError, OSError) as exc:
            raise ExternalServiceError(f"Failed to read {status.value} flags: {exc}") from exc
        # Index entries can lag a concurrent transition by one read
        return self._newest_first([f for f in flags if f.status == status])

    async def transition_flag(
        self, flag_id: str, status: FlagStatus, reviewer_id: str, notes: str | None, at: datetime
    ) -> Flag:
        flag_key = self._flag_key(flag_id)
        try:
            client = await self.connection.get_client()
            async with client.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(flag_key)
                        row = _loads(await pipe.get(flag_key))
                        if not row:
                            await pipe.reset()
                            raise NotFoundError(f"Flag {flag_id} not found")
                        current = Flag.model_validate(row)
                        check_transition(current.status, status)
                        listing_key = self._listing_key(current.listing_id)
                        await pipe.watch(listing_key)
                        siblings = await self._load_flags(pipe, list(await pipe.smembers(listing_key)))
                        updated = current.transitioned(status, reviewer_id, notes, at)
                        open_count = sum(
                            1 for f in siblings if (updated if f.id == flag_id else f).status.is_open
                        )
                        pipe.multi()
                        self._queue_write(pipe, updated, current, open_count)
                        await pipe.execute()
                        return updated
                    except WatchError:
                        continue
        except (redis.RedisError, OSError) as exc:
            raise ExternalServiceError(f"Failed to update flag {flag_id}: {exc}") from exc

    async def dismiss_all_flags(self, listing_id: str, reviewer_id: str, notes: str | None, at: datetime) -> int:
        listing_key = self._listing_key(listing_id)
        try:
            client = await self.connection.get_client()
            async with client.pipeline(transaction=True) as pipe:
                while True:
                    try:
                        await pipe.watch(listing_key)
                        flags = await self._load_flags(pipe, list(await pipe.smembers(listing_key)))
                        open_flags = [f for f in flags if f.status.is_open]
                        pipe.multi()
                        for flag in open_flags:
                            updated = flag.transitioned(FlagStatus.DISMISSED, reviewer_id, notes, at)
                            self._queue_write(pipe, updated, flag, 0)
                        pipe.set(self._count_key(listing_id), 0)
                        await pipe.execute()
                        return len(open_flags)
                    except WatchError:
                        continue
        except (redis.RedisError, OSError) as exc:
            raise ExternalServiceError(f"Failed to dismiss flags for listing {listing_id}: {exc}") from exc

    async def get_flag_count(self, listing_id: str) -> int:
        try:
            client = await self.connection.get_client()
            raw = await client.get(self._count_key(listing_id))
        except (redis.RedisError, OSError) as exc:
            raise ExternalServiceError(f"Failed to read flag count for {listing_id}: {exc}") from exc
        return int(raw or 0)
