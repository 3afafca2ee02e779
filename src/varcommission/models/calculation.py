"""Calculation models — transaction context, calculation record, breakdown,
simulation results and statistics.

All monetary values use Decimal.

Invariant: sum(entry.amount for entry in breakdown) == total_commission
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional


class BreakdownKind(str, enum.Enum):
    """Tag of a breakdown line.

    BASE: the base rule's share.
    BONUS / PENALTY: an applied modifier, by the sign of its monetary
    amount, not of the modifier value. A 0.5 multiplier lowers the
    commission and is tagged PENALTY even though its value is positive.
    """
    BASE = "base"
    BONUS = "bonus"
    PENALTY = "penalty"


@dataclass(frozen=True)
class TransactionContext:
    """Resolved facts about one transaction and the user behind it.

    user_plan comes from the auth/profile subsystem, user_event_count from
    the transaction ledger. Both arrive already resolved.
    """
    user_type: str
    service_category: Optional[str]
    transaction_amount: Decimal
    user_plan: str = "free"
    user_event_count: int = 0


@dataclass(frozen=True)
class AppliedRule:
    """Rate snapshot of one contributing rule.

    base_rate is the rate entering the rule (the rule's own base_rate for
    the base rule), modifier_value the delta its modifiers added.
    """
    rule_id: str
    rule_name: str
    base_rate: Decimal
    modifier_value: Decimal
    final_rate: Decimal

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "rule_name": self.rule_name,
            "base_rate": str(self.base_rate),
            "modifier_value": str(self.modifier_value),
            "final_rate": str(self.final_rate),
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> AppliedRule:
        return AppliedRule(
            rule_id=data["rule_id"],
            rule_name=data["rule_name"],
            base_rate=Decimal(data["base_rate"]),
            modifier_value=Decimal(data["modifier_value"]),
            final_rate=Decimal(data["final_rate"]),
        )


@dataclass(frozen=True)
class BreakdownEntry:
    """One named monetary contribution to the total commission."""
    description: str
    kind: BreakdownKind
    amount: Decimal
    percentage: Optional[Decimal]
    rule_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            "kind": self.kind.value,
            "amount": str(self.amount),
            "percentage": None if self.percentage is None else str(self.percentage),
            "rule_id": self.rule_id,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> BreakdownEntry:
        pct = data.get("percentage")
        return BreakdownEntry(
            description=data["description"],
            kind=BreakdownKind(data["kind"]),
            amount=Decimal(data["amount"]),
            percentage=None if pct is None else Decimal(pct),
            rule_id=data["rule_id"],
        )


@dataclass(frozen=True)
class CommissionCalculation:
    """Full, published result of a commission calculation.

    A calculation with no applicable rule is valid: zero totals and empty
    applied_rules / breakdown.
    """
    transaction_id: str
    user_id: int
    user_type: str
    service_category: Optional[str]
    transaction_amount: Decimal
    applied_rules: tuple[AppliedRule, ...]
    base_commission: Decimal
    modified_commission: Decimal
    total_commission: Decimal
    final_rate: Decimal
    calculated_utc: datetime
    breakdown: tuple[BreakdownEntry, ...]

    @property
    def base_rule_id(self) -> Optional[str]:
        return self.applied_rules[0].rule_id if self.applied_rules else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "transaction_id": self.transaction_id,
            "user_id": self.user_id,
            "user_type": self.user_type,
            "service_category": self.service_category,
            "transaction_amount": str(self.transaction_amount),
            "applied_rules": [r.to_dict() for r in self.applied_rules],
            "base_commission": str(self.base_commission),
            "modified_commission": str(self.modified_commission),
            "total_commission": str(self.total_commission),
            "final_rate": str(self.final_rate),
            "calculated_utc": self.calculated_utc.isoformat(),
            "breakdown": [b.to_dict() for b in self.breakdown],
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> CommissionCalculation:
        return CommissionCalculation(
            transaction_id=data["transaction_id"],
            user_id=int(data["user_id"]),
            user_type=data["user_type"],
            service_category=data.get("service_category"),
            transaction_amount=Decimal(data["transaction_amount"]),
            applied_rules=tuple(AppliedRule.from_dict(r) for r in data["applied_rules"]),
            base_commission=Decimal(data["base_commission"]),
            modified_commission=Decimal(data["modified_commission"]),
            total_commission=Decimal(data["total_commission"]),
            final_rate=Decimal(data["final_rate"]),
            calculated_utc=datetime.fromisoformat(data["calculated_utc"]),
            breakdown=tuple(BreakdownEntry.from_dict(b) for b in data["breakdown"]),
        )


@dataclass(frozen=True)
class SimulationScenario:
    """A named what-if alternative."""
    scenario: str
    calculation: CommissionCalculation


@dataclass(frozen=True)
class SimulationResult:
    calculation: CommissionCalculation
    alternatives: list[SimulationScenario] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "calculation": self.calculation.to_dict(),
            "alternatives": [
                {"scenario": a.scenario, "calculation": a.calculation.to_dict()}
                for a in self.alternatives
            ],
        }


class StatsPeriod(str, enum.Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


@dataclass(frozen=True)
class RuleUsage:
    rule_id: str
    rule_name: str
    times_applied: int
    total_amount: Decimal


@dataclass(frozen=True)
class GroupBreakdown:
    """Totals for one user type or one service category."""
    key: str
    total_commissions: Decimal
    average_rate: Decimal
    transaction_count: int


@dataclass(frozen=True)
class PeriodComparison:
    """Current vs previous period totals.

    growth is a percentage; None when the previous period had no
    commissions (growth undefined).
    """
    current: Decimal
    previous: Decimal
    growth: Optional[Decimal]


@dataclass(frozen=True)
class CommissionStats:
    period: StatsPeriod
    total_commissions: Decimal
    average_rate: Decimal
    transaction_count: int
    rule_usage: list[RuleUsage]
    user_type_breakdown: list[GroupBreakdown]
    category_breakdown: list[GroupBreakdown]
    period_comparison: PeriodComparison

    def to_dict(self) -> dict[str, Any]:
        def group(g: GroupBreakdown) -> dict[str, Any]:
            return {
                "key": g.key,
                "total_commissions": str(g.total_commissions),
                "average_rate": str(g.average_rate),
                "transaction_count": g.transaction_count,
            }

        growth = self.period_comparison.growth
        return {
            "period": self.period.value,
            "total_commissions": str(self.total_commissions),
            "average_rate": str(self.average_rate),
            "transaction_count": self.transaction_count,
            "rule_usage": [
                {
                    "rule_id": u.rule_id,
                    "rule_name": u.rule_name,
                    "times_applied": u.times_applied,
                    "total_amount": str(u.total_amount),
                }
                for u in self.rule_usage
            ],
            "user_type_breakdown": [group(g) for g in self.user_type_breakdown],
            "category_breakdown": [group(g) for g in self.category_breakdown],
            "period_comparison": {
                "current": str(self.period_comparison.current),
                "previous": str(self.period_comparison.previous),
                "growth": None if growth is None else str(growth),
            },
        }
