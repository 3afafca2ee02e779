"""Calculation core: condition evaluation, modifier stacking, rule
selection and simulation."""

from varcommission.engine.calculator import CommissionCalculator
from varcommission.engine.conditions import ConditionEvaluator
from varcommission.engine.modifiers import ModifierApplier
from varcommission.engine.simulation import SimulationEngine, SimulationParams

__all__ = [
    "CommissionCalculator",
    "ConditionEvaluator",
    "ModifierApplier",
    "SimulationEngine",
    "SimulationParams",
]
