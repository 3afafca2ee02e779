"""Simulation engine — what-if commission scenarios.

Computes a baseline calculation plus named alternatives by re-invoking
the calculator with perturbed inputs. Nothing is recorded: simulations
have no side effects.

Alternatives:
- "with premium plan": only when the user is not on the premium plan.
- "as an experienced user": event count raised to the experienced
  threshold, only when the user is still within the new-user limit.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from varcommission.engine.calculator import CommissionCalculator
from varcommission.models.calculation import SimulationResult, SimulationScenario


# Simulations are not tied to a real user.
SIMULATION_USER_ID = 0


@dataclass(frozen=True)
class SimulationParams:
    premium_plan: str = "premium"
    experienced_event_count: int = 10
    new_user_event_limit: int = 3


class SimulationEngine:
    """Produces a baseline plus alternative scenarios.

    Usage:
        engine = SimulationEngine(calculator, resolver.simulation_params())
        result = engine.simulate_commission(Decimal("500"), "prestador", "entretenimento")
    """

    def __init__(
        self,
        calculator: CommissionCalculator,
        params: Optional[SimulationParams] = None,
    ) -> None:
        self._calculator = calculator
        self._params = params or SimulationParams()

    def simulate_commission(
        self,
        transaction_amount: Any,
        user_type: str,
        service_category: Optional[str],
        user_plan: str = "free",
        user_event_count: int = 0,
    ) -> SimulationResult:
        params = self._params

        def run(plan: str, events: int):
            return self._calculator.calculate_commission(
                transaction_amount,
                SIMULATION_USER_ID,
                user_type,
                service_category,
                plan,
                events,
            )

        baseline = run(user_plan, user_event_count)
        alternatives: list[SimulationScenario] = []

        if user_plan != params.premium_plan:
            alternatives.append(SimulationScenario(
                scenario="with premium plan",
                calculation=run(params.premium_plan, user_event_count),
            ))

        if (
            user_event_count <= params.new_user_event_limit
            and user_event_count < params.experienced_event_count
        ):
            alternatives.append(SimulationScenario(
                scenario=f"as an experienced user ({params.experienced_event_count}+ events)",
                calculation=run(user_plan, params.experienced_event_count),
            ))

        return SimulationResult(calculation=baseline, alternatives=alternatives)
