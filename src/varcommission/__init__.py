"""Variable marketplace commission engine.

Prioritized, conditional commission rules with stacked rate modifiers,
what-if simulation and statistics over recorded calculations.
"""

from varcommission.engine.calculator import CommissionCalculator
from varcommission.engine.simulation import SimulationEngine
from varcommission.errors import CommissionError, RuleNotFound, ValidationError
from varcommission.policy.resolver import PolicyResolver
from varcommission.rules.store import RuleStore
from varcommission.service import CommissionService, ServiceResult
from varcommission.stats.aggregator import StatsAggregator

__all__ = [
    "CommissionCalculator",
    "CommissionError",
    "CommissionService",
    "PolicyResolver",
    "RuleNotFound",
    "RuleStore",
    "ServiceResult",
    "SimulationEngine",
    "StatsAggregator",
    "ValidationError",
]
