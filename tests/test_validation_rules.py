from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from backend.models import BidType
from backend.validation import (
    BidDatesRule,
    BidOwnershipRule,
    BidPriceRule,
    ContextGuardRule,
    DeadlineExtensionRule,
    HttpErrorCode,
    RequiredFieldsRule,
    ReviewerAuthorizationRule,
    RuleKey,
    UserAuthorizationRule,
    ValidationContext,
    create_rule,
    normalize_financial_insurance,
)
from backend.validation.rules import RULE_REGISTRY
from conftest import NOW, OTHER_ORG_ID, fixed_clock, make_bid, make_submission


def create_context(bid, settings=None, actor=None):
    return ValidationContext.for_create(bid, settings, actor)


def update_context(bid, existing, settings=None, actor=None):
    return ValidationContext.for_update(bid, existing, settings, actor)


class TestContextGuardRule:
    def test_missing_context_fails(self):
        outcome = ContextGuardRule().evaluate(None)

        assert not outcome.is_valid
        assert outcome.error_code == "INVALID_VALIDATION_CONTEXT"
        assert outcome.failed_rule == "context_guard"

    def test_missing_bid_fails(self):
        outcome = ContextGuardRule().evaluate(ValidationContext())

        assert outcome.error_code == "INVALID_VALIDATION_CONTEXT"

    def test_well_formed_context_passes(self, submission):
        assert ContextGuardRule().evaluate(create_context(submission)).is_valid


class TestUserAuthorizationRule:
    rule = UserAuthorizationRule()

    def test_anonymous_actor_is_not_authenticated(self, submission):
        outcome = self.rule.evaluate(create_context(submission))

        assert outcome.error_code == "NOT_AUTHENTICATED"
        assert outcome.http_error == HttpErrorCode.NOT_AUTHENTICATED
        assert outcome.failed_rule == "user_authorization"

    def test_provider_cannot_manage_bids(self, submission, provider_user):
        outcome = self.rule.evaluate(create_context(submission, actor=provider_user))

        assert outcome.error_code == "NOT_AUTHORIZED"
        assert outcome.http_error == HttpErrorCode.NOT_AUTHORIZED

    def test_admin_cannot_create(self, submission, admin_user):
        outcome = self.rule.evaluate(create_context(submission, actor=admin_user))

        assert outcome.error_code == "ADMIN_CANNOT_CREATE"
        assert outcome.http_error == HttpErrorCode.NOT_AUTHORIZED

    def test_admin_with_zero_id_is_still_a_creation(self, admin_user):
        outcome = self.rule.evaluate(create_context(make_submission(id=0), actor=admin_user))

        assert outcome.error_code == "ADMIN_CANNOT_CREATE"

    def test_admin_can_edit_existing_bid(self, existing_bid, admin_user):
        bid = make_submission(id=existing_bid.id)

        assert self.rule.evaluate(update_context(bid, existing_bid, actor=admin_user)).is_valid

    def test_association_can_create(self, submission, association_user):
        assert self.rule.evaluate(create_context(submission, actor=association_user)).is_valid


class TestBidOwnershipRule:
    rule = BidOwnershipRule()

    def test_owner_can_edit(self, existing_bid, association_user):
        assert self.rule.evaluate(update_context(existing_bid, existing_bid, actor=association_user)).is_valid

    def test_other_organization_cannot_edit(self, existing_bid, association_user):
        outsider = association_user.model_copy(update={"org_id": OTHER_ORG_ID})

        outcome = self.rule.evaluate(update_context(existing_bid, existing_bid, actor=outsider))

        assert outcome.error_code == "NOT_AUTHORIZED"
        assert outcome.http_error == HttpErrorCode.NOT_AUTHORIZED
        assert outcome.failed_rule == "bid_ownership"

    def test_actor_without_organization_cannot_edit(self, existing_bid, association_user):
        orphan = association_user.model_copy(update={"org_id": None})

        assert not self.rule.evaluate(update_context(existing_bid, existing_bid, actor=orphan)).is_valid

    def test_admin_edits_any_bid(self, existing_bid, admin_user):
        assert self.rule.evaluate(update_context(existing_bid, existing_bid, actor=admin_user)).is_valid

    def test_creation_is_not_checked(self, submission, association_user):
        outsider = association_user.model_copy(update={"org_id": OTHER_ORG_ID})

        assert self.rule.evaluate(create_context(submission, actor=outsider)).is_valid


class TestReviewerAuthorizationRule:
    rule = ReviewerAuthorizationRule()

    def test_association_cannot_review(self, existing_bid, association_user):
        outcome = self.rule.evaluate(update_context(existing_bid, existing_bid, actor=association_user))

        assert outcome.error_code == "NOT_AUTHORIZED"
        assert outcome.failed_rule == "reviewer_authorization"

    def test_anonymous_cannot_review(self, existing_bid):
        outcome = self.rule.evaluate(update_context(existing_bid, existing_bid))

        assert outcome.http_error == HttpErrorCode.NOT_AUTHENTICATED

    def test_admin_can_review(self, existing_bid, admin_user):
        assert self.rule.evaluate(update_context(existing_bid, existing_bid, actor=admin_user)).is_valid


class TestRequiredFieldsRule:
    rule = RequiredFieldsRule()

    def test_draft_skips_all_checks(self):
        draft = make_submission(
            is_draft=True,
            bid_name=None,
            region_ids=[],
            last_date_receiving_enquiries=None,
            last_date_offers_submission=None,
            offers_opening_date=None,
        )

        assert self.rule.evaluate(create_context(draft)).is_valid

    @pytest.mark.parametrize("name", [None, "", "   "])
    def test_blank_name(self, name):
        outcome = self.rule.evaluate(create_context(make_submission(bid_name=name)))

        assert outcome.error_code == "BID_NAME_REQUIRED"

    @pytest.mark.parametrize(
        "field",
        ["last_date_receiving_enquiries", "last_date_offers_submission", "offers_opening_date"],
    )
    def test_missing_mandatory_date(self, field):
        outcome = self.rule.evaluate(create_context(make_submission(**{field: None})))

        assert outcome.error_code == "REQUIRED_DATES_MISSING"

    def test_anchoring_date_is_optional(self):
        bid = make_submission(expected_anchoring_date=None)

        assert self.rule.evaluate(create_context(bid)).is_valid

    def test_empty_regions(self):
        outcome = self.rule.evaluate(create_context(make_submission(region_ids=[])))

        assert outcome.error_code == "REGIONS_REQUIRED"


class TestBidDatesRule:
    rule = BidDatesRule(clock=fixed_clock)

    def test_draft_skips_date_order(self):
        draft = make_submission(
            is_draft=True,
            last_date_receiving_enquiries=NOW + timedelta(days=30),
            last_date_offers_submission=NOW + timedelta(days=1),
        )

        assert self.rule.evaluate(create_context(draft)).is_valid

    def test_valid_dates_pass(self, submission, settings):
        assert self.rule.evaluate(create_context(submission, settings)).is_valid

    def test_unchanged_past_enquiry_date_is_allowed_on_update(self, settings):
        past = NOW - timedelta(days=2)
        existing = make_bid(last_date_receiving_enquiries=past)
        # Misma fecha de calendario, otra hora
        bid = make_submission(id=existing.id, last_date_receiving_enquiries=past + timedelta(hours=3))

        assert self.rule.evaluate(update_context(bid, existing, settings)).is_valid

    def test_enquiry_date_moved_to_the_past_on_update(self, existing_bid, settings):
        bid = make_submission(id=existing_bid.id, last_date_receiving_enquiries=NOW - timedelta(days=1))

        outcome = self.rule.evaluate(update_context(bid, existing_bid, settings))

        assert outcome.error_code == "LAST_DATE_RECEIVING_ENQUIRIES_IN_PAST"
        assert outcome.failed_rule == "bid_dates"

    def test_past_enquiry_date_is_not_checked_on_creation(self, settings):
        bid = make_submission(last_date_receiving_enquiries=NOW - timedelta(days=1))

        assert self.rule.evaluate(create_context(bid, settings)).is_valid

    def test_submission_before_enquiries(self):
        bid = make_submission(
            last_date_receiving_enquiries=NOW + timedelta(days=11),
            last_date_offers_submission=NOW + timedelta(days=10),
        )

        assert self.rule.evaluate(create_context(bid)).error_code == "OFFERS_SUBMISSION_DATE_INVALID"

    def test_equal_dates_are_allowed(self):
        same_day = NOW + timedelta(days=10)
        bid = make_submission(
            last_date_receiving_enquiries=same_day,
            last_date_offers_submission=same_day,
            offers_opening_date=same_day,
            expected_anchoring_date=same_day,
        )

        assert self.rule.evaluate(create_context(bid)).is_valid

    def test_opening_before_submission(self):
        bid = make_submission(offers_opening_date=NOW + timedelta(days=9))

        assert self.rule.evaluate(create_context(bid)).error_code == "OFFERS_OPENING_DATE_INVALID"

    def test_anchoring_inside_stopping_period(self, settings):
        bid = make_submission(expected_anchoring_date=NOW + timedelta(days=15))

        outcome = self.rule.evaluate(create_context(bid, settings))

        assert outcome.error_code == "EXPECTED_ANCHORING_DATE_INVALID"
        assert "7" in outcome.first_error

    def test_anchoring_without_settings_only_needs_to_follow_opening(self):
        bid = make_submission(expected_anchoring_date=NOW + timedelta(days=12))

        assert self.rule.evaluate(create_context(bid)).is_valid

    def test_naive_dates_are_compared_as_utc(self):
        bid = make_submission(
            last_date_receiving_enquiries=datetime(2025, 6, 6, 12, 0),
            last_date_offers_submission=NOW + timedelta(days=10),
        )

        assert self.rule.evaluate(create_context(bid)).is_valid

    def test_uses_injected_clock(self, existing_bid):
        late_clock = BidDatesRule(clock=lambda: NOW + timedelta(days=60))
        bid = make_submission(id=existing_bid.id, last_date_receiving_enquiries=NOW + timedelta(days=4))

        outcome = late_clock.evaluate(update_context(bid, existing_bid))

        assert outcome.error_code == "LAST_DATE_RECEIVING_ENQUIRIES_IN_PAST"


class TestDeadlineExtensionRule:
    rule = DeadlineExtensionRule()

    def test_requires_existing_bid(self, submission):
        outcome = self.rule.evaluate(create_context(submission))

        assert outcome.error_code == "BID_NOT_FOUND"
        assert outcome.http_error == HttpErrorCode.NOT_FOUND

    def test_new_deadline_must_be_later(self, existing_bid):
        bid = existing_bid.model_copy(update={"last_date_offers_submission": NOW + timedelta(days=9)})

        outcome = self.rule.evaluate(update_context(bid, existing_bid))

        assert outcome.error_code == "NEW_DEADLINE_NOT_AFTER_CURRENT"

    def test_later_deadline_passes(self, existing_bid):
        bid = existing_bid.model_copy(update={"last_date_offers_submission": NOW + timedelta(days=11)})

        assert self.rule.evaluate(update_context(bid, existing_bid)).is_valid


class TestNormalizeFinancialInsurance:
    @pytest.mark.parametrize("bid_type", [BidType.PUBLIC, BidType.PRIVATE])
    def test_insurance_types_are_untouched(self, bid_type):
        bid = make_submission(
            bid_type_id=bid_type.value,
            is_financial_insurance_required=True,
            financial_insurance_value=Decimal("500"),
        )

        assert normalize_financial_insurance(bid) is False
        assert bid.is_financial_insurance_required is True
        assert bid.financial_insurance_value == Decimal("500")

    @pytest.mark.parametrize("bid_type_id", [BidType.HABILITATION.value, BidType.INSTANT.value, BidType.FREELANCING.value, 99])
    def test_other_types_are_cleared(self, bid_type_id):
        bid = make_submission(
            bid_type_id=bid_type_id,
            is_financial_insurance_required=True,
            financial_insurance_value=Decimal("500"),
        )

        assert normalize_financial_insurance(bid) is True
        assert bid.is_financial_insurance_required is False
        assert bid.financial_insurance_value is None

    def test_is_idempotent(self):
        bid = make_submission(
            bid_type_id=BidType.INSTANT.value,
            is_financial_insurance_required=True,
            financial_insurance_value=Decimal("500"),
        )
        normalize_financial_insurance(bid)
        first = bid.model_dump()

        assert normalize_financial_insurance(bid) is False
        assert bid.model_dump() == first

    def test_missing_type_is_untouched(self):
        bid = make_submission(bid_type_id=None, is_financial_insurance_required=True)

        assert normalize_financial_insurance(bid) is False
        assert bid.is_financial_insurance_required is True


class TestBidPriceRule:
    rule = BidPriceRule()

    def test_negative_fee(self):
        outcome = self.rule.evaluate(create_context(make_submission(association_fees=Decimal("-1"))))

        assert outcome.error_code == "ASSOCIATION_FEES_NEGATIVE"

    def test_negative_fee_fails_before_normalizing(self):
        bid = make_submission(
            association_fees=Decimal("-1"),
            bid_type_id=BidType.INSTANT.value,
            is_financial_insurance_required=True,
        )

        self.rule.evaluate(create_context(bid))

        assert bid.is_financial_insurance_required is True

    @pytest.mark.parametrize("value", [None, Decimal("0"), Decimal("-5")])
    def test_insurance_requires_positive_value(self, value):
        bid = make_submission(is_financial_insurance_required=True, financial_insurance_value=value)

        outcome = self.rule.evaluate(create_context(bid))

        assert outcome.error_code == "FINANCIAL_INSURANCE_VALUE_REQUIRED"

    def test_non_insurance_type_is_normalized_and_passes(self, settings):
        bid = make_submission(bid_type_id=BidType.INSTANT.value, is_financial_insurance_required=True)

        outcome = self.rule.evaluate(create_context(bid, settings))

        assert outcome.is_valid
        assert bid.is_financial_insurance_required is False
        assert bid.financial_insurance_value is None

    def test_fee_above_maximum(self, settings):
        settings = settings.model_copy(update={"max_bid_document_price": Decimal("1000")})
        bid = make_submission(association_fees=Decimal("10000"))

        outcome = self.rule.evaluate(create_context(bid, settings))

        assert outcome.error_code == "ASSOCIATION_FEES_EXCEED_MAXIMUM"
        assert outcome.failed_rule == "bid_price"

    def test_missing_fee_passes(self, settings):
        assert self.rule.evaluate(create_context(make_submission(association_fees=None), settings)).is_valid


class TestRuleRegistry:
    def test_every_key_has_a_factory(self):
        assert set(RULE_REGISTRY) == set(RuleKey)

    @pytest.mark.parametrize("key", list(RuleKey))
    def test_key_matches_rule_name(self, key):
        assert create_rule(key, fixed_clock).name == key.value

    def test_create_rule_accepts_plain_strings(self):
        assert isinstance(create_rule("bid_dates"), BidDatesRule)

    def test_unknown_key(self):
        with pytest.raises(ValueError):
            create_rule("no_such_rule")
