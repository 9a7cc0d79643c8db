from datetime import timedelta
from unittest.mock import Mock

import pytest

from backend.validation import (
    BidDatesRule,
    ChainBuilder,
    ContextGuardRule,
    RequiredFieldsRule,
    Rule,
    ValidationChain,
    ValidationContext,
    ValidationOutcome,
)
from conftest import NOW, fixed_clock, make_submission


class SpyRule(Rule):
    """Regla de prueba que cuenta sus ejecuciones y devuelve un resultado fijo."""

    def __init__(self, name: str, outcome: ValidationOutcome) -> None:
        self.name = name
        self._outcome = outcome
        self.calls = 0

    def check(self, context):
        self.calls += 1
        return self._outcome


def passing(name="passing"):
    return SpyRule(name, ValidationOutcome.success())


def failing(name="failing", code="SPY_FAILED"):
    return SpyRule(name, ValidationOutcome.failure(f"{name} falló", code))


@pytest.fixture
def context():
    return ValidationContext.for_create(make_submission(), None, None)


class TestValidationChain:
    def test_empty_chain_succeeds(self, context):
        assert ValidationChain([]).validate(context).is_valid

    def test_all_rules_run_when_passing(self, context):
        rules = [passing("a"), passing("b"), passing("c")]

        outcome = ValidationChain(rules).validate(context)

        assert outcome.is_valid
        assert [r.calls for r in rules] == [1, 1, 1]

    def test_stops_at_first_failure(self, context):
        first, broken, never = passing("first"), failing("broken"), passing("never")

        outcome = ValidationChain([first, broken, never]).validate(context)

        assert not outcome.is_valid
        assert outcome.failed_rule == "broken"
        assert outcome.error_code == "SPY_FAILED"
        assert never.calls == 0

    def test_failed_rule_is_annotated_by_the_chain(self, context):
        outcome = ValidationChain([RequiredFieldsRule()]).validate(
            ValidationContext.for_create(make_submission(region_ids=[]), None, None)
        )

        assert outcome.failed_rule == "required_fields"

    def test_dates_failure_stops_the_rules_after_it(self):
        bid = make_submission(
            last_date_receiving_enquiries=NOW + timedelta(days=10),
            last_date_offers_submission=NOW + timedelta(days=5),
        )
        after_dates = passing("after_dates")
        chain = ValidationChain([BidDatesRule(fixed_clock), after_dates])

        outcome = chain.validate(ValidationContext.for_create(bid, None, None))

        assert outcome.error_code == "OFFERS_SUBMISSION_DATE_INVALID"
        assert outcome.failed_rule == "bid_dates"
        assert after_dates.calls == 0

    def test_rule_exceptions_propagate(self, context):
        exploding = Mock(spec=Rule)
        exploding.evaluate.side_effect = RuntimeError("boom")

        with pytest.raises(RuntimeError):
            ValidationChain([exploding]).validate(context)

    def test_rejects_non_rules(self):
        with pytest.raises(TypeError):
            ValidationChain([ContextGuardRule(), "not a rule"])

    def test_rules_are_an_immutable_snapshot(self, context):
        source = [passing("a")]
        chain = ValidationChain(source)
        source.append(failing("added_later"))

        assert isinstance(chain.rules, tuple)
        assert chain.rule_names == ["a"]
        assert chain.validate(context).is_valid

    def test_repeated_runs_give_the_same_outcome(self):
        chain = ValidationChain([ContextGuardRule(), RequiredFieldsRule()])
        bid = make_submission(bid_name=" ")
        context = ValidationContext.for_create(bid, None, None)

        assert chain.validate(context) == chain.validate(context)


class TestChainBuilder:
    def test_builds_in_insertion_order(self):
        chain = ChainBuilder().add(passing("a")).extend(passing("b"), passing("c")).build()

        assert chain.rule_names == ["a", "b", "c"]
        assert len(chain) == 3

    def test_count_and_clear(self):
        builder = ChainBuilder().add(passing()).add(failing())

        assert builder.count == 2
        assert builder.clear().count == 0
        assert len(builder.build()) == 0

    def test_built_chain_does_not_follow_the_builder(self):
        builder = ChainBuilder().add(passing("a"))
        chain = builder.build()
        builder.add(failing("b"))

        assert chain.rule_names == ["a"]
