"""Condition evaluator — pure predicate evaluation over a transaction context.

A condition list is a logical AND. An empty list is vacuously true, which
is how unconditional rules and ungated modifiers work.

Type/operator combinations outside the handled set evaluate to True.
Rule validation rejects those combinations before they reach the store;
the permissive default only matters for conditions built by hand.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Callable, Iterable, Optional

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


def compare_number(actual: Decimal, condition: CommissionCondition) -> bool:
    """Numeric comparison of a context fact against the condition value."""
    op = condition.operator
    value = condition.value
    if isinstance(value, NumberValue):
        if op == ConditionOperator.GTE:
            return actual >= value.value
        if op == ConditionOperator.LTE:
            return actual <= value.value
        if op == ConditionOperator.EQ:
            return actual == value.value
    if op == ConditionOperator.BETWEEN and isinstance(value, RangeValue):
        return value.contains(actual)
    if op == ConditionOperator.IN and isinstance(value, ChoicesValue):
        return actual in value.values
    return True


def compare_text(actual: Optional[str], condition: CommissionCondition) -> bool:
    """Equality / membership of a context string against the condition value."""
    op = condition.operator
    value = condition.value
    if op == ConditionOperator.EQ and isinstance(value, ChoiceValue):
        return actual == value.value
    if op == ConditionOperator.IN and isinstance(value, ChoicesValue):
        return actual in value.values
    return True


def _reserved(condition: CommissionCondition, context: TransactionContext) -> bool:
    return True


_HANDLERS: dict[ConditionType, Callable[[CommissionCondition, TransactionContext], bool]] = {
    ConditionType.VOLUME: lambda c, ctx: compare_number(ctx.transaction_amount, c),
    ConditionType.EVENT_COUNT: lambda c, ctx: compare_number(Decimal(ctx.user_event_count), c),
    ConditionType.PLAN: lambda c, ctx: compare_text(ctx.user_plan, c),
    ConditionType.CATEGORY: lambda c, ctx: compare_text(ctx.service_category, c),
    ConditionType.DATE_RANGE: _reserved,
    ConditionType.PERFORMANCE: _reserved,
}


def unhandled_condition_types() -> list[ConditionType]:
    """Condition types with no handler. Must be empty."""
    return [t for t in ConditionType if t not in _HANDLERS]


class ConditionEvaluator:
    """Evaluates condition lists against a transaction context.

    Usage:
        evaluator = ConditionEvaluator()
        if evaluator.evaluate(rule.conditions, context):
            ...
    """

    def evaluate(
        self,
        conditions: Iterable[CommissionCondition],
        context: TransactionContext,
    ) -> bool:
        """True iff every condition holds."""
        return all(self.evaluate_one(c, context) for c in conditions)

    def evaluate_one(
        self,
        condition: CommissionCondition,
        context: TransactionContext,
    ) -> bool:
        handler = _HANDLERS.get(condition.condition_type)
        if handler is None:
            return True
        return handler(condition, context)
