from spacematch.services.stores.base import ListingStore, ModerationStore, ProfileStore
from spacematch.services.stores.memory import InMemoryListingStore, InMemoryModerationStore, InMemoryProfileStore

__all__ = [
    "ProfileStore",
    "ListingStore",
    "ModerationStore",
    "InMemoryProfileStore",
    "InMemoryListingStore",
    "InMemoryModerationStore",
]
