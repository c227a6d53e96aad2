import asyncio

from loguru import logger

from spacematch.api.dependencies import ServiceContainer
from spacematch.core.exceptions import ExternalServiceError
from spacematch.models.listing import Listing


async def resolve_listings(container: ServiceContainer, listing_ids: list[str] | None) -> list[Listing]:
    """Listings named by the request, or every active listing. Unknown ids are skipped."""
    store = container.listing_store
    try:
        if listing_ids is None:
            coro = store.get_active_listings()
        else:
            coro = asyncio.gather(*(store.get_listing(lid) for lid in dict.fromkeys(listing_ids)))
        found = await asyncio.wait_for(coro, timeout=container.settings.LISTING_FETCH_TIMEOUT_SECONDS)
    except (asyncio.TimeoutError, ExternalServiceError) as e:
        logger.warning(f"Failed to load candidate listings: {e!r}; scoring nothing")
        return []
    return [listing for listing in found if listing is not None]
