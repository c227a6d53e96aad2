from datetime import datetime, timedelta, timezone

from loguru import logger

from spacematch.core.config import Settings
from spacematch.core.exceptions import NotFoundError, ValidationError
from spacematch.models.flag import Flag, FlagStatus, FlagType, OperationResult, TrustAssessment
from spacematch.models.listing import OwnerAccount
from spacematch.services.stores.base import ListingStore, ModerationStore
from spacematch.services.trust import TrustScorer


class ModerationService:
    """Auto-flagging, user reports and the admin review lifecycle."""

    def __init__(
        self,
        listing_store: ListingStore,
        moderation_store: ModerationStore,
        trust_scorer: TrustScorer,
        settings: Settings,
    ):
        self.listing_store = listing_store
        self.moderation_store = moderation_store
        self.trust_scorer = trust_scorer
        self.settings = settings

    @staticmethod
    def _now() -> datetime:
        return datetime.now(timezone.utc)

    async def check_listing_for_auto_flag(
        self, listing_id: str, owner_id: str | None = None, now: datetime | None = None
    ) -> TrustAssessment:
        """
        Score a listing and raise a system flag when its trust score is below the threshold.

        Args:
            listing_id: Listing to check
            owner_id: Owner to assess; defaults to the listing's owner
            now: Reference time for account age and the recent-listings window

        Returns:
            The trust assessment, whether or not a flag was written
        """
        now = now or self._now()
        listing = await self.listing_store.get_listing(listing_id)
        if listing is None:
            raise NotFoundError(f"Listing {listing_id} not found")

        owner_id = owner_id or listing.owner_id
        owner = await self.listing_store.get_owner_account(owner_id)
        if owner is None:
            logger.warning(f"No account found for owner {owner_id}; assessing without identity data")
            owner = OwnerAccount(user_id=owner_id)

        window = timedelta(hours=self.trust_scorer.policy.rapid_listings_window_hours)
        recent = await self.listing_store.count_owner_listings_since(owner_id, now - window)

        assessment = self.trust_scorer.assess(listing, owner, recent, now)
        logger.info(f"Trust score for listing {listing_id}: {assessment.score}")

        if assessment.should_flag:
            flag = Flag(
                listing_id=listing_id,
                flag_type=assessment.flag_type,
                flag_reason=assessment.reason,
                auto_flagged=True,
                confidence_score=assessment.score,
                status=FlagStatus.PENDING,
                created_at=now,
                updated_at=now,
            )
            inserted = await self.moderation_store.insert_auto_flag(flag, dedupe=self.settings.AUTO_FLAG_DEDUPE)
            if inserted:
                logger.info(f"Listing {listing_id} auto-flagged as {flag.flag_type.value}")
            else:
                logger.info(f"Listing {listing_id} already has an open {flag.flag_type.value} auto-flag")

        return assessment

    async def report_listing(
        self, listing_id: str, reporter_id: str | None, flag_type: FlagType, reason: str
    ) -> OperationResult:
        if not reporter_id:
            raise ValidationError("You must be logged in to report a listing")
        if await self.listing_store.get_listing(listing_id) is None:
            raise NotFoundError(f"Listing {listing_id} not found")

        logger.info(f"User {reporter_id} reporting listing {listing_id} as {flag_type.value}")
        now = self._now()
        flag = Flag(
            listing_id=listing_id,
            flagger_user_id=reporter_id,
            flag_type=flag_type,
            flag_reason=reason,
            created_at=now,
            updated_at=now,
        )
        inserted = await self.moderation_store.insert_report(flag)
        if inserted is None:
            logger.info(f"User {reporter_id} already has a pending report on listing {listing_id}")
            return OperationResult(success=False, error="You have already reported this listing")
        return OperationResult(success=True, flag=inserted)

    async def update_flag_status(
        self, flag_id: str, status: FlagStatus, reviewer_id: str | None, notes: str | None = None
    ) -> Flag:
        if not reviewer_id:
            raise ValidationError("A reviewer is required to update a flag")
        flag = await self.moderation_store.transition_flag(flag_id, status, reviewer_id, notes, self._now())
        logger.info(f"Flag {flag_id} moved to {status.value} by {reviewer_id}")
        return flag

    async def dismiss_all_flags(self, listing_id: str, reviewer_id: str | None, notes: str | None = None) -> int:
        if not reviewer_id:
            raise ValidationError("A reviewer is required to dismiss flags")
        count = await self.moderation_store.dismiss_all_flags(listing_id, reviewer_id, notes, self._now())
        logger.info(f"Dismissed {count} flags on listing {listing_id}")
        return count

    async def get_listing_flags(self, listing_id: str) -> list[Flag]:
        return await self.moderation_store.get_flags_for_listing(listing_id)

    async def get_flagged_listings(self, status: FlagStatus = FlagStatus.PENDING) -> list[Flag]:
        return await self.moderation_store.get_flags_by_status(status)

    async def get_flag_count(self, listing_id: str) -> int:
        return await self.moderation_store.get_flag_count(listing_id)
