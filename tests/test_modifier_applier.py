"""Tests for the modifier applier — proves stacking and breakdown semantics."""

import pytest
from datetime import datetime, timezone
from decimal import Decimal

from varcommission.engine.conditions import ConditionEvaluator
from varcommission.engine.modifiers import ModifierApplier
from varcommission.models.calculation import BreakdownKind, TransactionContext
from varcommission.models.rules import (
    ChoiceValue,
    CommissionCondition,
    CommissionModifier,
    CommissionRule,
    ConditionOperator,
    ConditionType,
    ModifierType,
    UserType,
)


NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def applier() -> ModifierApplier:
    return ModifierApplier(ConditionEvaluator())


def _ctx(amount: str = "1000", plan: str = "free") -> TransactionContext:
    return TransactionContext(
        user_type="prestador",
        service_category=None,
        transaction_amount=Decimal(amount),
        user_plan=plan,
    )


def _mod(kind: ModifierType, value: str, description: str = "mod", conditions=()) -> CommissionModifier:
    return CommissionModifier(
        modifier_type=kind,
        value=Decimal(value),
        description=description,
        conditions=tuple(conditions),
    )


def _rule(rule_id: str, base_rate: str, modifiers=(), priority: int = 10) -> CommissionRule:
    return CommissionRule(
        rule_id=rule_id,
        name=f"Rule {rule_id}",
        description="",
        user_type=UserType.ALL,
        service_category=None,
        active=True,
        priority=priority,
        conditions=(),
        base_rate=Decimal(base_rate),
        modifiers=tuple(modifiers),
        created_utc=NOW,
        updated_utc=NOW,
    )


class TestSingleModifiers:
    def test_percentage_adjusts_rate(self) -> None:
        step = ModifierApplier.apply_modifier(
            _mod(ModifierType.PERCENTAGE, "10"), Decimal("5"), Decimal("1000"),
        )
        assert step.rate_after == Decimal("5.5")
        assert step.amount == Decimal("5")

    def test_fixed_keeps_rate(self) -> None:
        step = ModifierApplier.apply_modifier(
            _mod(ModifierType.FIXED, "7.50"), Decimal("5"), Decimal("1000"),
        )
        assert step.rate_after == Decimal("5")
        assert step.amount == Decimal("7.50")

    def test_multiplier_amount_is_rate_change(self) -> None:
        step = ModifierApplier.apply_modifier(
            _mod(ModifierType.MULTIPLIER, "1.5"), Decimal("4"), Decimal("1000"),
        )
        assert step.rate_after == Decimal("6")
        assert step.amount == Decimal("20")


class TestStacking:
    def test_percentages_compound(self, applier: ModifierApplier) -> None:
        """Two +10% modifiers on 5% give 6.05%, not 6%."""
        rule = _rule("r1", "5", [
            _mod(ModifierType.PERCENTAGE, "10"),
            _mod(ModifierType.PERCENTAGE, "10"),
        ])
        outcome = applier.apply([rule], _ctx())
        assert outcome.final_rate == Decimal("6.05")
        assert outcome.final_rate != Decimal("6.0")

    def test_multiplier_after_percentage_uses_running_rate(
        self, applier: ModifierApplier
    ) -> None:
        rule = _rule("r1", "5", [
            _mod(ModifierType.PERCENTAGE, "-20"),
            _mod(ModifierType.MULTIPLIER, "2"),
        ])
        outcome = applier.apply([rule], _ctx())
        assert outcome.final_rate == Decimal("8")
        # 4% -> 8% on 1000 contributes 40
        assert outcome.entries[1].amount == Decimal("40")

    def test_later_rules_apply_after_base(self, applier: ModifierApplier) -> None:
        base = _rule("base", "5", [_mod(ModifierType.PERCENTAGE, "10", "base bump")])
        extra = _rule("extra", "99", [_mod(ModifierType.PERCENTAGE, "-50", "half")], priority=20)
        outcome = applier.apply([base, extra], _ctx())
        assert outcome.final_rate == Decimal("2.75")
        assert [e.description for e in outcome.entries] == ["base bump", "Rule extra: half"]
        assert [e.rule_id for e in outcome.entries] == ["base", "extra"]

    def test_gated_modifier_skipped(self, applier: ModifierApplier) -> None:
        premium_only = CommissionCondition(
            condition_type=ConditionType.PLAN,
            operator=ConditionOperator.EQ,
            value=ChoiceValue("premium"),
        )
        rule = _rule("r1", "5", [
            _mod(ModifierType.PERCENTAGE, "-20", "premium", [premium_only]),
        ])
        free = applier.apply([rule], _ctx(plan="free"))
        premium = applier.apply([rule], _ctx(plan="premium"))
        assert free.final_rate == Decimal("5")
        assert free.entries == []
        assert premium.final_rate == Decimal("4.0")

    def test_fixed_amounts_accumulate(self, applier: ModifierApplier) -> None:
        rule = _rule("r1", "5", [
            _mod(ModifierType.FIXED, "2"),
            _mod(ModifierType.FIXED, "3"),
        ])
        outcome = applier.apply([rule], _ctx())
        assert outcome.fixed_total == Decimal("5")
        assert outcome.final_rate == Decimal("5")


class TestBreakdownTags:
    def test_discount_is_penalty(self, applier: ModifierApplier) -> None:
        rule = _rule("r1", "5", [_mod(ModifierType.PERCENTAGE, "-20")])
        outcome = applier.apply([rule], _ctx())
        assert outcome.entries[0].kind == BreakdownKind.PENALTY
        assert outcome.entries[0].percentage == Decimal("-20")

    def test_reducing_multiplier_is_penalty(self, applier: ModifierApplier) -> None:
        rule = _rule("r1", "5", [_mod(ModifierType.MULTIPLIER, "0.5")])
        outcome = applier.apply([rule], _ctx())
        assert outcome.entries[0].kind == BreakdownKind.PENALTY
        assert outcome.entries[0].percentage is None

    def test_surcharge_is_bonus(self, applier: ModifierApplier) -> None:
        rule = _rule("r1", "5", [_mod(ModifierType.FIXED, "10")])
        outcome = applier.apply([rule], _ctx())
        assert outcome.entries[0].kind == BreakdownKind.BONUS


class TestAppliedRules:
    def test_base_rule_always_listed(self, applier: ModifierApplier) -> None:
        outcome = applier.apply([_rule("base", "5")], _ctx())
        assert len(outcome.applied_rules) == 1
        applied = outcome.applied_rules[0]
        assert applied.rule_id == "base"
        assert applied.base_rate == Decimal("5")
        assert applied.modifier_value == Decimal("0")
        assert applied.final_rate == Decimal("5")

    def test_rule_without_applied_modifiers_not_listed(
        self, applier: ModifierApplier
    ) -> None:
        outcome = applier.apply([_rule("base", "5"), _rule("other", "3", priority=20)], _ctx())
        assert [r.rule_id for r in outcome.applied_rules] == ["base"]

    def test_contributing_rule_snapshot(self, applier: ModifierApplier) -> None:
        extra = _rule("extra", "0", [_mod(ModifierType.PERCENTAGE, "-20")], priority=20)
        outcome = applier.apply([_rule("base", "5"), extra], _ctx())
        snapshot = outcome.applied_rules[1]
        assert snapshot.rule_id == "extra"
        assert snapshot.base_rate == Decimal("5")
        assert snapshot.modifier_value == Decimal("-1.00")
        assert snapshot.final_rate == Decimal("4.00")

    def test_no_rules_zero_rate(self, applier: ModifierApplier) -> None:
        outcome = applier.apply([], _ctx())
        assert outcome.final_rate == Decimal("0")
        assert outcome.applied_rules == []
