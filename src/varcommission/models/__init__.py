"""Data models for the commission engine."""

from varcommission.models.calculation import (
    AppliedRule,
    BreakdownEntry,
    BreakdownKind,
    CommissionCalculation,
    CommissionStats,
    GroupBreakdown,
    PeriodComparison,
    RuleUsage,
    SimulationResult,
    SimulationScenario,
    StatsPeriod,
    TransactionContext,
)
from varcommission.models.rules import (
    ChoiceValue,
    ChoicesValue,
    CommissionCondition,
    CommissionModifier,
    CommissionRule,
    ConditionOperator,
    ConditionType,
    ModifierType,
    NumberValue,
    RangeValue,
    RuleDraft,
    UserType,
)

__all__ = [
    "AppliedRule",
    "BreakdownEntry",
    "BreakdownKind",
    "CommissionCalculation",
    "CommissionStats",
    "GroupBreakdown",
    "PeriodComparison",
    "RuleUsage",
    "SimulationResult",
    "SimulationScenario",
    "StatsPeriod",
    "TransactionContext",
    "ChoiceValue",
    "ChoicesValue",
    "CommissionCondition",
    "CommissionModifier",
    "CommissionRule",
    "ConditionOperator",
    "ConditionType",
    "ModifierType",
    "NumberValue",
    "RangeValue",
    "RuleDraft",
    "UserType",
]
