from datetime import timedelta

import pytest

from spacematch.core.policy import TrustPolicy
from spacematch.models.flag import FlagType
from spacematch.services.trust import TrustScorer


@pytest.fixture
def trust() -> TrustScorer:
    return TrustScorer()


def test_trusted_owner_scores_full_marks(trust, make_listing, make_owner, now):
    assessment = trust.assess(make_listing(), make_owner(), recent_listing_count=0, now=now)

    assert assessment.score == 100
    assert not assessment.should_flag
    assert assessment.flag_type is None
    assert assessment.signals.triggered() == []


def test_new_unverified_owner_with_high_value_listing_is_flagged(trust, make_listing, make_owner, now):
    owner = make_owner(identity_document_url=None, created_at=now - timedelta(days=2))
    listing = make_listing(price_per_hour=10, price_per_day=250)

    assessment = trust.assess(listing, owner, recent_listing_count=1, now=now)

    assert assessment.score == 50
    assert assessment.should_flag
    assert assessment.flag_type == FlagType.UNVERIFIED_OWNER
    assert assessment.signals.triggered() == ["missing_identity_document", "new_account_high_value"]
    assert assessment.reason == (
        "Automatically flagged by system: Owner has not uploaded an identity document. "
        "New account with high-value listing."
    )


def test_daily_price_at_new_account_limit_is_not_high_value(trust, make_listing, make_owner, now):
    owner = make_owner(identity_document_url=None, created_at=now - timedelta(days=2))

    assessment = trust.assess(make_listing(price_per_day=150), owner, recent_listing_count=0, now=now)

    assert assessment.score == 70
    assert not assessment.should_flag


def test_score_of_exactly_sixty_is_not_flagged(trust, make_listing, make_owner, now):
    owner = make_owner(document_verification_confidence=30)

    assessment = trust.assess(make_listing(), owner, recent_listing_count=0, now=now)

    assert assessment.score == 60
    assert not assessment.should_flag


def test_low_confidence_takes_precedence(trust, make_listing, make_owner, now):
    owner = make_owner(document_verification_confidence=30)

    assessment = trust.assess(make_listing(price_per_hour=150), owner, recent_listing_count=0, now=now)

    assert assessment.score == 45
    assert assessment.flag_type == FlagType.WRONG_ADDRESS
    assert assessment.reason.startswith("Automatically flagged by system: Address verification failed")


def test_missing_document_and_low_confidence_are_exclusive(trust, make_listing, make_owner, now):
    owner = make_owner(identity_document_url="", document_verification_confidence=10)

    signals = trust.signals(make_listing(), owner, 0, now)

    assert signals.missing_identity_document
    assert not signals.low_document_confidence


def test_unrecorded_confidence_is_not_penalised(trust, make_listing, make_owner, now):
    owner = make_owner(document_verification_confidence=None)
    assert trust.assess(make_listing(), owner, 0, now).score == 100


@pytest.mark.parametrize("count,expected", [(5, False), (6, True)])
def test_rapid_listing_boundary(trust, make_listing, make_owner, now, count, expected):
    assert trust.signals(make_listing(), make_owner(), count, now).rapid_listings is expected


@pytest.mark.parametrize(
    "hourly,daily,expected",
    [(100, None, True), (100.01, None, True), (20, None, False), (20, 501, True), (21, None, True)],
)
def test_abnormal_pricing(trust, make_listing, make_owner, now, hourly, daily, expected):
    # 21/hour with no daily price is 504/day equivalent
    listing = make_listing(price_per_hour=hourly, price_per_day=daily)
    assert trust.signals(listing, make_owner(), 0, now).abnormal_pricing is expected


def test_unknown_account_age_is_never_new(trust, make_listing, make_owner, now):
    owner = make_owner(created_at=None)
    assert not trust.signals(make_listing(price_per_day=400), owner, 0, now).new_account_high_value


def test_every_signal_with_spam_last_in_precedence(trust, make_listing, make_owner, now):
    owner = make_owner(document_verification_confidence=10, created_at=now - timedelta(hours=3))

    assessment = trust.assess(make_listing(price_per_hour=120), owner, recent_listing_count=9, now=now)

    assert assessment.score == 10
    assert assessment.flag_type == FlagType.WRONG_ADDRESS
    assert assessment.reason.endswith("Multiple listings created in short time.")


def test_score_is_floored_at_zero(make_listing, make_owner, now):
    harsh = TrustScorer(TrustPolicy(penalty_missing_document=80, penalty_rapid_listings=80))
    owner = make_owner(identity_document_url=None)

    assessment = harsh.assess(make_listing(), owner, recent_listing_count=10, now=now)

    assert assessment.score == 0
    assert assessment.should_flag


def test_zero_confidence_counts_as_unrecorded(trust, make_listing, make_owner, now):
    owner = make_owner(document_verification_confidence=0)

    assert not trust.signals(make_listing(), owner, 0, now).low_document_confidence
    assert trust.assess(make_listing(), owner, 0, now).score == 100
