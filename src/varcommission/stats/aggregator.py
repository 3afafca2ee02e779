"""Stats aggregator — reporting over past commission calculations.

Reads calculations from any history exposing calculations_between()
(the CalculationLog in-process; an external ledger in production).

Windows for a period of p days ending at now:
    current  = (now - p, now]
    previous = (now - 2p, now - p]

Rates are effective rates: total commissions / transaction volume * 100.
Rule usage attributes to each rule the breakdown amounts it produced.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterable, Optional, Protocol

from varcommission.models.calculation import (
    CommissionCalculation,
    CommissionStats,
    GroupBreakdown,
    PeriodComparison,
    RuleUsage,
    StatsPeriod,
)


ZERO = Decimal("0")
HUNDRED = Decimal("100")

DEFAULT_PERIOD_DAYS: dict[StatsPeriod, int] = {
    StatsPeriod.DAY: 1,
    StatsPeriod.WEEK: 7,
    StatsPeriod.MONTH: 30,
}


class CalculationHistory(Protocol):
    def calculations_between(
        self,
        start_utc: datetime,
        end_utc: datetime,
    ) -> list[CommissionCalculation]:
        ...


def effective_rate(commissions: Decimal, volume: Decimal) -> Decimal:
    if volume <= ZERO:
        return ZERO
    return commissions / volume * HUNDRED


class StatsAggregator:
    """Answers the commission statistics queries.

    Usage:
        aggregator = StatsAggregator(calculation_log)
        stats = aggregator.get_commission_stats("week")
    """

    def __init__(
        self,
        history: CalculationHistory,
        period_days: Optional[dict[StatsPeriod, int]] = None,
    ) -> None:
        self._history = history
        self._period_days = dict(period_days or DEFAULT_PERIOD_DAYS)

    def get_commission_stats(
        self,
        period: StatsPeriod | str = StatsPeriod.MONTH,
        now: Optional[datetime] = None,
    ) -> CommissionStats:
        if now is None:
            now = datetime.now(timezone.utc)
        period = StatsPeriod(period)
        span = timedelta(days=self._period_days[period])

        current = self._history.calculations_between(now - span, now)
        previous = self._history.calculations_between(now - 2 * span, now - span)

        total = sum((c.total_commission for c in current), ZERO)
        volume = sum((c.transaction_amount for c in current), ZERO)
        previous_total = sum((c.total_commission for c in previous), ZERO)

        if previous_total > ZERO:
            growth: Optional[Decimal] = (total - previous_total) / previous_total * HUNDRED
        else:
            growth = None

        return CommissionStats(
            period=period,
            total_commissions=total,
            average_rate=effective_rate(total, volume),
            transaction_count=len(current),
            rule_usage=self.rule_usage(current),
            user_type_breakdown=self.group_by(current, lambda c: c.user_type),
            category_breakdown=self.group_by(
                current, lambda c: c.service_category or "uncategorized"
            ),
            period_comparison=PeriodComparison(
                current=total,
                previous=previous_total,
                growth=growth,
            ),
        )

    @staticmethod
    def rule_usage(calculations: Iterable[CommissionCalculation]) -> list[RuleUsage]:
        """Per-rule usage, most applied first (ties by rule id)."""
        times: dict[str, int] = defaultdict(int)
        amounts: dict[str, Decimal] = defaultdict(lambda: ZERO)
        names: dict[str, str] = {}
        for calc in calculations:
            for applied in calc.applied_rules:
                times[applied.rule_id] += 1
                names[applied.rule_id] = applied.rule_name
            for entry in calc.breakdown:
                amounts[entry.rule_id] += entry.amount

        usage = [
            RuleUsage(
                rule_id=rule_id,
                rule_name=names[rule_id],
                times_applied=count,
                total_amount=amounts[rule_id],
            )
            for rule_id, count in times.items()
        ]
        usage.sort(key=lambda u: (-u.times_applied, u.rule_id))
        return usage

    @staticmethod
    def group_by(
        calculations: Iterable[CommissionCalculation],
        key,
    ) -> list[GroupBreakdown]:
        """Totals per group, largest total first (ties by key)."""
        totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
        volumes: dict[str, Decimal] = defaultdict(lambda: ZERO)
        counts: dict[str, int] = defaultdict(int)
        for calc in calculations:
            k = key(calc)
            totals[k] += calc.total_commission
            volumes[k] += calc.transaction_amount
            counts[k] += 1

        groups = [
            GroupBreakdown(
                key=k,
                total_commissions=totals[k],
                average_rate=effective_rate(totals[k], volumes[k]),
                transaction_count=counts[k],
            )
            for k in counts
        ]
        groups.sort(key=lambda g: (-g.total_commissions, g.key))
        return groups
