from datetime import datetime

from spacematch.core.policy import TrustPolicy
from spacematch.models.flag import FlagType, FraudSignals, TrustAssessment
from spacematch.models.listing import Listing, OwnerAccount

REASON_PREFIX = "Automatically flagged by system:"

# Highest precedence first: (signal, flag type, description)
SIGNAL_PRECEDENCE: tuple[tuple[str, FlagType, str], ...] = (
    ("low_document_confidence", FlagType.WRONG_ADDRESS, "Address verification failed (low confidence score)."),
    ("missing_identity_document", FlagType.UNVERIFIED_OWNER, "Owner has not uploaded an identity document."),
    ("abnormal_pricing", FlagType.PRICE_SCAM, "Pricing is significantly outside normal range."),
    ("new_account_high_value", FlagType.FAKE_LISTING, "New account with high-value listing."),
    ("rapid_listings", FlagType.SPAM, "Multiple listings created in short time."),
)


class TrustScorer:
    """
    Composite 0-100 trust score for a listing and its owner.

    Pure: every input, including the current time and the owner's recent
    listing count, is passed in by the caller.
    """

    def __init__(self, policy: TrustPolicy | None = None):
        self.policy = policy or TrustPolicy()

    def signals(
        self, listing: Listing, owner: OwnerAccount, recent_listing_count: int, now: datetime
    ) -> FraudSignals:
        p = self.policy
        missing_document = not owner.has_identity_document
        confidence = owner.document_verification_confidence
        low_confidence = (
            not missing_document and bool(confidence) and confidence < p.document_confidence_minimum
        )
        age = owner.age_days(now)
        new_account = age is not None and age < p.new_account_max_age_days

        return FraudSignals(
            missing_identity_document=missing_document,
            low_document_confidence=low_confidence,
            abnormal_pricing=(
                listing.price_per_hour > p.abnormal_hourly_price or listing.daily_price > p.abnormal_daily_price
            ),
            new_account_high_value=new_account and listing.daily_price > p.new_account_daily_price_limit,
            rapid_listings=recent_listing_count > p.rapid_listings_max,
        )

    def score(self, signals: FraudSignals) -> int:
        p = self.policy
        penalties = {
            "missing_identity_document": p.penalty_missing_document,
            "low_document_confidence": p.penalty_low_document_confidence,
            "abnormal_pricing": p.penalty_abnormal_pricing,
            "new_account_high_value": p.penalty_new_account_high_value,
            "rapid_listings": p.penalty_rapid_listings,
        }
        total = sum(penalties[name] for name in signals.triggered())
        return max(0, p.start_score - total)

    def assess(
        self, listing: Listing, owner: OwnerAccount, recent_listing_count: int, now: datetime
    ) -> TrustAssessment:
        signals = self.signals(listing, owner, recent_listing_count, now)
        score = self.score(signals)
        should_flag = score < self.policy.flag_threshold

        flag_type = None
        reason = ""
        if should_flag:
            triggered = set(signals.triggered())
            matched = [(ftype, text) for name, ftype, text in SIGNAL_PRECEDENCE if name in triggered]
            flag_type = matched[0][0] if matched else FlagType.OTHER
            reason = " ".join([REASON_PREFIX, *(text for _, text in matched)])

        return TrustAssessment(
            listing_id=listing.id,
            owner_id=owner.user_id,
            score=score,
            signals=signals,
            should_flag=should_flag,
            flag_type=flag_type,
            reason=reason,
        )
