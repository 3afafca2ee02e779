"""Tests for the condition evaluator — proves per-type predicate semantics."""

import pytest
from decimal import Decimal

from varcommission.engine.conditions import ConditionEvaluator, unhandled_condition_types
from varcommission.models.calculation import TransactionContext
from varcommission.models.rules import (
    ChoiceValue,
    ChoicesValue,
    CommissionCondition,
    ConditionOperator,
    ConditionType,
    NumberValue,
    RangeValue,
)


@pytest.fixture
def evaluator() -> ConditionEvaluator:
    return ConditionEvaluator()


def _ctx(
    amount: str = "1000",
    plan: str = "free",
    events: int = 0,
    category: str = "entretenimento",
    user_type: str = "prestador",
) -> TransactionContext:
    return TransactionContext(
        user_type=user_type,
        service_category=category,
        transaction_amount=Decimal(amount),
        user_plan=plan,
        user_event_count=events,
    )


def _cond(ctype: ConditionType, op: ConditionOperator, value) -> CommissionCondition:
    return CommissionCondition(condition_type=ctype, operator=op, value=value)


class TestConditionLists:
    def test_empty_list_is_true(self, evaluator: ConditionEvaluator) -> None:
        """Unconditional rules: an empty condition list always holds."""
        assert evaluator.evaluate([], _ctx()) is True

    def test_all_conditions_must_hold(self, evaluator: ConditionEvaluator) -> None:
        conditions = [
            _cond(ConditionType.VOLUME, ConditionOperator.GTE, NumberValue(Decimal("500"))),
            _cond(ConditionType.PLAN, ConditionOperator.EQ, ChoiceValue("premium")),
        ]
        assert evaluator.evaluate(conditions, _ctx(plan="premium")) is True
        assert evaluator.evaluate(conditions, _ctx(plan="free")) is False

    def test_every_type_has_a_handler(self) -> None:
        assert unhandled_condition_types() == []


class TestNumericConditions:
    def test_volume_gte(self, evaluator: ConditionEvaluator) -> None:
        cond = _cond(ConditionType.VOLUME, ConditionOperator.GTE, NumberValue(Decimal("10000")))
        assert evaluator.evaluate_one(cond, _ctx(amount="10000")) is True
        assert evaluator.evaluate_one(cond, _ctx(amount="9999.99")) is False

    def test_event_count_lte(self, evaluator: ConditionEvaluator) -> None:
        cond = _cond(ConditionType.EVENT_COUNT, ConditionOperator.LTE, NumberValue(Decimal("3")))
        assert evaluator.evaluate_one(cond, _ctx(events=3)) is True
        assert evaluator.evaluate_one(cond, _ctx(events=4)) is False

    def test_event_count_eq(self, evaluator: ConditionEvaluator) -> None:
        cond = _cond(ConditionType.EVENT_COUNT, ConditionOperator.EQ, NumberValue(Decimal("0")))
        assert evaluator.evaluate_one(cond, _ctx(events=0)) is True
        assert evaluator.evaluate_one(cond, _ctx(events=1)) is False

    def test_between_is_inclusive(self, evaluator: ConditionEvaluator) -> None:
        cond = _cond(
            ConditionType.VOLUME, ConditionOperator.BETWEEN,
            RangeValue(Decimal("100"), Decimal("200")),
        )
        assert evaluator.evaluate_one(cond, _ctx(amount="100")) is True
        assert evaluator.evaluate_one(cond, _ctx(amount="200")) is True
        assert evaluator.evaluate_one(cond, _ctx(amount="200.01")) is False
        assert evaluator.evaluate_one(cond, _ctx(amount="99")) is False

    def test_in_membership(self, evaluator: ConditionEvaluator) -> None:
        cond = _cond(
            ConditionType.EVENT_COUNT, ConditionOperator.IN,
            ChoicesValue(frozenset({Decimal("1"), Decimal("5")})),
        )
        assert evaluator.evaluate_one(cond, _ctx(events=5)) is True
        assert evaluator.evaluate_one(cond, _ctx(events=2)) is False


class TestTextConditions:
    def test_plan_eq(self, evaluator: ConditionEvaluator) -> None:
        cond = _cond(ConditionType.PLAN, ConditionOperator.EQ, ChoiceValue("premium"))
        assert evaluator.evaluate_one(cond, _ctx(plan="premium")) is True
        assert evaluator.evaluate_one(cond, _ctx(plan="free")) is False

    def test_category_eq(self, evaluator: ConditionEvaluator) -> None:
        cond = _cond(ConditionType.CATEGORY, ConditionOperator.EQ, ChoiceValue("buffet"))
        assert evaluator.evaluate_one(cond, _ctx(category="buffet")) is True
        assert evaluator.evaluate_one(cond, _ctx(category="entretenimento")) is False

    def test_plan_in(self, evaluator: ConditionEvaluator) -> None:
        cond = _cond(
            ConditionType.PLAN, ConditionOperator.IN,
            ChoicesValue(frozenset({"pro", "premium"})),
        )
        assert evaluator.evaluate_one(cond, _ctx(plan="pro")) is True
        assert evaluator.evaluate_one(cond, _ctx(plan="free")) is False


class TestPermissiveDefaults:
    """Combinations outside the handled set evaluate to True."""

    def test_date_range_reserved(self, evaluator: ConditionEvaluator) -> None:
        cond = _cond(
            ConditionType.DATE_RANGE, ConditionOperator.BETWEEN,
            RangeValue(Decimal("0"), Decimal("1")),
        )
        assert evaluator.evaluate_one(cond, _ctx()) is True

    def test_performance_reserved(self, evaluator: ConditionEvaluator) -> None:
        cond = _cond(ConditionType.PERFORMANCE, ConditionOperator.GTE, NumberValue(Decimal("99")))
        assert evaluator.evaluate_one(cond, _ctx()) is True

    def test_plan_with_numeric_operator(self, evaluator: ConditionEvaluator) -> None:
        cond = _cond(ConditionType.PLAN, ConditionOperator.GTE, ChoiceValue("premium"))
        assert evaluator.evaluate_one(cond, _ctx(plan="free")) is True

    def test_mismatched_value_shape(self, evaluator: ConditionEvaluator) -> None:
        cond = _cond(ConditionType.VOLUME, ConditionOperator.BETWEEN, NumberValue(Decimal("5")))
        assert evaluator.evaluate_one(cond, _ctx(amount="1")) is True
