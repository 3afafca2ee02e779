"""Rule validation — fail-closed checks run before any rule-table mutation.

The condition evaluator degrades to True for type/operator combinations it
does not handle. Validation keeps those combinations out of the store, so
a stored rule never relies on the permissive default.

Supported combinations:
    volume, event_count   gte/lte/eq NumberValue, between RangeValue, in ChoicesValue
    plan, category        eq ChoiceValue, in ChoicesValue
    performance, date_range   reserved, rejected (no context fact to compare)
"""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable

from varcommission.errors import ValidationError
from varcommission.models.rules import (
    ChoiceValue,
    ChoicesValue,
    CommissionCondition,
    CommissionModifier,
    ConditionOperator,
    ConditionType,
    ModifierType,
    NumberValue,
    RangeValue,
    RuleDraft,
    UserType,
)


_NUMERIC_OPERATORS = {
    ConditionOperator.GTE: NumberValue,
    ConditionOperator.LTE: NumberValue,
    ConditionOperator.EQ: NumberValue,
    ConditionOperator.BETWEEN: RangeValue,
    ConditionOperator.IN: ChoicesValue,
}

_TEXT_OPERATORS = {
    ConditionOperator.EQ: ChoiceValue,
    ConditionOperator.IN: ChoicesValue,
}

# Operator -> expected value variant, per condition type.
SUPPORTED_OPERATORS: dict[ConditionType, dict] = {
    ConditionType.VOLUME: _NUMERIC_OPERATORS,
    ConditionType.EVENT_COUNT: _NUMERIC_OPERATORS,
    ConditionType.PLAN: _TEXT_OPERATORS,
    ConditionType.CATEGORY: _TEXT_OPERATORS,
    ConditionType.PERFORMANCE: {},
    ConditionType.DATE_RANGE: {},
}


def _is_finite_decimal(value: object) -> bool:
    return isinstance(value, Decimal) and value.is_finite()


def _numbers_of(value: object) -> list:
    if isinstance(value, NumberValue):
        return [value.value]
    if isinstance(value, RangeValue):
        return [value.low, value.high]
    if isinstance(value, ChoicesValue):
        return [v for v in value.values if not isinstance(v, str)]
    return []


def condition_errors(condition: CommissionCondition, label: str) -> list[str]:
    """Return problems with one condition (empty = OK)."""
    ctype = condition.condition_type
    if not isinstance(ctype, ConditionType):
        return [f"{label}: unknown condition type {ctype!r}"]
    if not isinstance(condition.operator, ConditionOperator):
        return [f"{label}: unknown operator {condition.operator!r}"]

    supported = SUPPORTED_OPERATORS[ctype]
    if not supported:
        return [f"{label}: {ctype.value} conditions are reserved and not evaluated"]

    expected = supported.get(condition.operator)
    if expected is None:
        allowed = ", ".join(op.value for op in supported)
        return [
            f"{label}: operator '{condition.operator.value}' not supported for "
            f"{ctype.value} (allowed: {allowed})"
        ]
    if not isinstance(condition.value, expected):
        return [
            f"{label}: {ctype.value} '{condition.operator.value}' expects "
            f"{expected.__name__}, got {type(condition.value).__name__}"
        ]

    value = condition.value
    bad = [n for n in _numbers_of(value) if not _is_finite_decimal(n)]
    if bad:
        return [f"{label}: values must be finite numbers, got {bad[0]!r}"]
    if isinstance(value, RangeValue) and value.low > value.high:
        return [f"{label}: range low {value.low} exceeds high {value.high}"]
    if isinstance(value, ChoicesValue) and not value.values:
        return [f"{label}: 'in' needs at least one value"]
    if isinstance(value, ChoiceValue) and not value.value:
        return [f"{label}: empty {ctype.value} value"]
    return []


def conditions_errors(
    conditions: Iterable[CommissionCondition],
    label: str,
) -> list[str]:
    errors: list[str] = []
    for i, condition in enumerate(conditions):
        errors.extend(condition_errors(condition, f"{label}[{i}]"))
    return errors


def modifier_errors(modifier: CommissionModifier, label: str) -> list[str]:
    """Return problems with one modifier and its gating conditions."""
    if not isinstance(modifier.modifier_type, ModifierType):
        return [f"{label}: unknown modifier type {modifier.modifier_type!r}"]
    errors: list[str] = []
    if not isinstance(modifier.value, Decimal):
        errors.append(f"{label}: value must be a Decimal")
    elif not modifier.value.is_finite():
        errors.append(f"{label}: value must be a finite number, got {modifier.value}")
    elif modifier.modifier_type == ModifierType.MULTIPLIER and modifier.value < 0:
        errors.append(f"{label}: multiplier must be >= 0, got {modifier.value}")
    elif modifier.modifier_type == ModifierType.PERCENTAGE and modifier.value < -100:
        errors.append(f"{label}: percentage cannot reduce the rate below zero")
    errors.extend(conditions_errors(modifier.conditions, f"{label}.conditions"))
    return errors


def rule_errors(draft: RuleDraft) -> list[str]:
    """Validate a complete rule draft. Returns errors (empty = OK)."""
    errors: list[str] = []
    if not draft.name or not draft.name.strip():
        errors.append("name is required")
    if draft.base_rate is None:
        errors.append("base_rate is required")
    elif not isinstance(draft.base_rate, Decimal):
        errors.append("base_rate must be a Decimal")
    elif not draft.base_rate.is_finite():
        errors.append(f"base_rate must be a finite number, got {draft.base_rate}")
    elif draft.base_rate < 0:
        errors.append(f"base_rate must be >= 0, got {draft.base_rate}")
    if not isinstance(draft.user_type, UserType):
        errors.append(f"unknown user_type {draft.user_type!r}")
    if not isinstance(draft.active, bool):
        errors.append(f"active must be true or false, got {draft.active!r}")
    if isinstance(draft.priority, bool) or not isinstance(draft.priority, int):
        errors.append(f"priority must be an integer, got {draft.priority!r}")
    if draft.service_category is not None and not str(draft.service_category).strip():
        errors.append("service_category must be non-empty when set")

    errors.extend(conditions_errors(draft.conditions, "conditions"))
    for i, modifier in enumerate(draft.modifiers):
        errors.extend(modifier_errors(modifier, f"modifiers[{i}]"))
    return errors


def validate_rule(draft: RuleDraft) -> None:
    """Raise ValidationError listing every problem in the draft."""
    errors = rule_errors(draft)
    if errors:
        raise ValidationError(errors)
