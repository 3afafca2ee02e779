"""Modifier applier — stacks modifiers from contributing rules onto a base rate.

Rules are processed in ascending priority; a rule's modifiers fully apply,
in array order, before the next rule's begin. Each modifier may be gated
by its own condition list, evaluated against the same context.

Per modifier (rates are whole-number percentages):
    percentage:  delta = rate * value / 100; rate += delta
                 amount = transaction_amount * delta / 100
    fixed:       amount = value; rate unchanged
    multiplier:  rate *= value
                 amount = transaction_amount * (after - before) / 100

Percentage modifiers compound: two +10% on a 5% base give 6.05%, not 6%.

Invariant: base amount + sum(modifier amounts)
           == transaction_amount * final_rate / 100 + fixed_total
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Sequence

from varcommission.engine.conditions import ConditionEvaluator
from varcommission.models.calculation import (
    AppliedRule,
    BreakdownEntry,
    BreakdownKind,
    TransactionContext,
)
from varcommission.models.rules import (
    CommissionModifier,
    CommissionRule,
    ModifierType,
)


HUNDRED = Decimal("100")


@dataclass(frozen=True)
class ModifierStep:
    """Effect of one applied modifier."""
    rate_after: Decimal
    amount: Decimal


@dataclass
class ModifierOutcome:
    """Accumulated result of running every contributing rule's modifiers."""
    final_rate: Decimal
    fixed_total: Decimal = Decimal("0")
    entries: list[BreakdownEntry] = field(default_factory=list)
    applied_rules: list[AppliedRule] = field(default_factory=list)


class ModifierApplier:
    """Composes the final rate and modifier breakdown.

    Usage:
        applier = ModifierApplier(ConditionEvaluator())
        outcome = applier.apply(contributing_rules, context)
    """

    def __init__(self, evaluator: ConditionEvaluator) -> None:
        self._evaluator = evaluator

    def apply(
        self,
        rules: Sequence[CommissionRule],
        context: TransactionContext,
    ) -> ModifierOutcome:
        """Run all contributing rules' modifiers.

        rules[0] is the base rule and seeds the rate with its base_rate.
        An applied-rule snapshot is kept for the base rule always, and for
        any other rule that applied at least one modifier.
        """
        if not rules:
            return ModifierOutcome(final_rate=Decimal("0"))

        outcome = ModifierOutcome(final_rate=rules[0].base_rate)
        for index, rule in enumerate(rules):
            is_base = index == 0
            rate_in = outcome.final_rate
            applied_any = False
            for modifier in rule.modifiers:
                if not self._evaluator.evaluate(modifier.conditions, context):
                    continue
                step = self.apply_modifier(
                    modifier, outcome.final_rate, context.transaction_amount
                )
                outcome.final_rate = step.rate_after
                if modifier.modifier_type == ModifierType.FIXED:
                    outcome.fixed_total += step.amount
                description = (
                    modifier.description if is_base
                    else f"{rule.name}: {modifier.description}"
                )
                outcome.entries.append(BreakdownEntry(
                    description=description,
                    kind=BreakdownKind.PENALTY if step.amount < 0 else BreakdownKind.BONUS,
                    amount=step.amount,
                    percentage=(
                        modifier.value
                        if modifier.modifier_type == ModifierType.PERCENTAGE
                        else None
                    ),
                    rule_id=rule.rule_id,
                ))
                applied_any = True

            if is_base or applied_any:
                outcome.applied_rules.append(AppliedRule(
                    rule_id=rule.rule_id,
                    rule_name=rule.name,
                    base_rate=rate_in,
                    modifier_value=outcome.final_rate - rate_in,
                    final_rate=outcome.final_rate,
                ))
        return outcome

    @staticmethod
    def apply_modifier(
        modifier: CommissionModifier,
        rate: Decimal,
        transaction_amount: Decimal,
    ) -> ModifierStep:
        """Apply one modifier to the running rate."""
        if modifier.modifier_type == ModifierType.PERCENTAGE:
            delta = rate * modifier.value / HUNDRED
            return ModifierStep(
                rate_after=rate + delta,
                amount=transaction_amount * delta / HUNDRED,
            )
        if modifier.modifier_type == ModifierType.FIXED:
            return ModifierStep(rate_after=rate, amount=modifier.value)
        if modifier.modifier_type == ModifierType.MULTIPLIER:
            after = rate * modifier.value
            return ModifierStep(
                rate_after=after,
                amount=transaction_amount * (after - rate) / HUNDRED,
            )
        raise ValueError(f"Unknown modifier type: {modifier.modifier_type!r}")
