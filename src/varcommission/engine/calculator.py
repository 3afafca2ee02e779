"""Commission calculator — selects contributing rules and composes the result.

Selection: a rule contributes when it is active, its user_type is "all"
or matches, its service_category is unset or matches, and its conditions
pass. Contributing rules are ordered by ascending priority.

One base, many modifiers:
    base rule = first contributing rule, supplies base_rate
    every contributing rule (base included) supplies its modifiers

    base_commission     = amount * base_rate / 100
    total_commission    = amount * final_rate / 100 + fixed modifier amounts
    modified_commission = total_commission - base_commission

No contributing rule is a normal outcome: a zero-valued calculation with
empty applied_rules and breakdown.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Callable, Optional

from varcommission.engine.conditions import ConditionEvaluator
from varcommission.engine.modifiers import HUNDRED, ModifierApplier
from varcommission.errors import ValidationError
from varcommission.models.calculation import (
    BreakdownEntry,
    BreakdownKind,
    CommissionCalculation,
    TransactionContext,
)
from varcommission.models.rules import CommissionRule, to_decimal
from varcommission.rules.store import RuleStore


def new_transaction_id() -> str:
    return f"tx-{uuid.uuid4().hex}"


class CommissionCalculator:
    """Computes the commission owed on a transaction.

    Usage:
        calculator = CommissionCalculator(store)
        calc = calculator.calculate_commission(
            transaction_amount=Decimal("1000"),
            user_id=42,
            user_type="prestador",
            service_category="entretenimento",
            user_plan="free",
            user_event_count=5,
        )
    """

    def __init__(
        self,
        store: RuleStore,
        evaluator: Optional[ConditionEvaluator] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
        id_factory: Callable[[], str] = new_transaction_id,
    ) -> None:
        self._store = store
        self._evaluator = evaluator or ConditionEvaluator()
        self._applier = ModifierApplier(self._evaluator)
        self._clock = clock
        self._id_factory = id_factory

    def calculate_commission(
        self,
        transaction_amount: Any,
        user_id: int,
        user_type: str,
        service_category: Optional[str],
        user_plan: str = "free",
        user_event_count: int = 0,
    ) -> CommissionCalculation:
        """Compute the full commission record for one transaction.

        Raises ValidationError for a negative amount or event count.
        """
        context = self._build_context(
            transaction_amount, user_type, service_category, user_plan, user_event_count,
        )
        return self.calculate_for_context(context, user_id)

    def calculate_for_context(
        self,
        context: TransactionContext,
        user_id: int,
    ) -> CommissionCalculation:
        contributing = self.select_rules(context)
        amount = context.transaction_amount

        if not contributing:
            zero = Decimal("0")
            return self._record(
                context, user_id, (), zero, zero, zero, (),
            )

        base_rule = contributing[0]
        base_commission = amount * base_rule.base_rate / HUNDRED
        outcome = self._applier.apply(contributing, context)
        total_commission = amount * outcome.final_rate / HUNDRED + outcome.fixed_total

        breakdown = [
            BreakdownEntry(
                description=base_rule.name,
                kind=BreakdownKind.BASE,
                amount=base_commission,
                percentage=base_rule.base_rate,
                rule_id=base_rule.rule_id,
            ),
            *outcome.entries,
        ]
        return self._record(
            context,
            user_id,
            tuple(outcome.applied_rules),
            base_commission,
            total_commission,
            outcome.final_rate,
            tuple(breakdown),
        )

    def select_rules(self, context: TransactionContext) -> list[CommissionRule]:
        """Contributing rules, ascending by priority. First is the base rule."""
        # The store snapshot is already priority-sorted.
        return [
            rule for rule in self._store.snapshot()
            if rule.active
            and rule.applies_to(context.user_type, context.service_category)
            and self._evaluator.evaluate(rule.conditions, context)
        ]

    def _record(
        self,
        context: TransactionContext,
        user_id: int,
        applied_rules: tuple,
        base_commission: Decimal,
        total_commission: Decimal,
        final_rate: Decimal,
        breakdown: tuple,
    ) -> CommissionCalculation:
        return CommissionCalculation(
            transaction_id=self._id_factory(),
            user_id=user_id,
            user_type=context.user_type,
            service_category=context.service_category,
            transaction_amount=context.transaction_amount,
            applied_rules=applied_rules,
            base_commission=base_commission,
            modified_commission=total_commission - base_commission,
            total_commission=total_commission,
            final_rate=final_rate,
            calculated_utc=self._clock(),
            breakdown=breakdown,
        )

    @staticmethod
    def _build_context(
        transaction_amount: Any,
        user_type: str,
        service_category: Optional[str],
        user_plan: str,
        user_event_count: int,
    ) -> TransactionContext:
        errors: list[str] = []
        try:
            amount = to_decimal(transaction_amount, "transaction_amount")
        except ValueError as exc:
            raise ValidationError([str(exc)]) from exc
        if amount < 0:
            errors.append(f"transaction_amount must be >= 0, got {amount}")
        if user_event_count < 0:
            errors.append(f"user_event_count must be >= 0, got {user_event_count}")
        if errors:
            raise ValidationError(errors)
        return TransactionContext(
            user_type=user_type,
            service_category=service_category,
            transaction_amount=amount,
            user_plan=user_plan,
            user_event_count=int(user_event_count),
        )
