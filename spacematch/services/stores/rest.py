"""
Listing store over the hosted backend's REST interface (PostgREST filter syntax).

Tables read: `spaces` (listings) and `profiles` (owner accounts).
"""

from datetime import datetime
from typing import Any

import httpx
from loguru import logger

from spacematch.core.base_client import BaseClient
from spacematch.core.config import Settings
from spacematch.models.listing import Listing, OwnerAccount
from spacematch.services.stores.base import ListingStore


def owner_from_row(row: dict[str, Any]) -> OwnerAccount:
    return OwnerAccount(
        user_id=row["user_id"],
        created_at=row.get("created_at"),
        identity_document_url=row.get("driver_license_url") or row.get("identity_document_url"),
        document_verification_confidence=row.get(
            "driver_license_verification_confidence", row.get("document_verification_confidence")
        ),
    )


def parse_content_range_total(header: str | None) -> int:
    """`0-24/3573` -> 3573, `*/0` -> 0."""
    if not header or "/" not in header:
        return 0
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


class RestListingStore(BaseClient, ListingStore):
    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        headers = {"Accept": "application/json"}
        if settings.LISTING_STORE_API_KEY:
            headers["apikey"] = settings.LISTING_STORE_API_KEY
            headers["Authorization"] = f"Bearer {settings.LISTING_STORE_API_KEY}"
        super().__init__(
            base_url=settings.LISTING_STORE_URL,
            timeout=settings.LISTING_STORE_TIMEOUT_SECONDS,
            headers=headers,
            transport=transport,
        )

    async def _select_listings(self, params: dict[str, str]) -> list[Listing]:
        rows = await self.get("/spaces", params={"select": "*", **params})
        listings = []
        for row in rows or []:
            try:
                listings.append(Listing.model_validate(row))
            except ValueError as e:
                logger.warning(f"Skipping malformed listing row {row.get('id')}: {e}")
        return listings

    async def get_listing(self, listing_id: str) -> Listing | None:
        listings = await self._select_listings({"id": f"eq.{listing_id}", "limit": "1"})
        return listings[0] if listings else None

    async def get_active_listings(self) -> list[Listing]:
        return await self._select_listings({"is_active": "eq.true"})

    async def count_owner_listings_since(self, owner_id: str, since: datetime) -> int:
        response = await self._request(
            "HEAD",
            "/spaces",
            params={"select": "id", "owner_id": f"eq.{owner_id}", "created_at": f"gte.{since.isoformat()}"},
            headers={"Prefer": "count=exact"},
        )
        return parse_content_range_total(response.headers.get("content-range"))

    async def get_owner_account(self, owner_id: str) -> OwnerAccount | None:
        rows = await self.get("/profiles", params={"select": "*", "user_id": f"eq.{owner_id}", "limit": "1"})
        if not rows:
            return None
        return owner_from_row(rows[0])
