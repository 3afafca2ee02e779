"""Commission service — unified facade for the hosting service.

Wires every component of the commission core:
- Rule table (seeded from the policy config, CRUD)
- Calculation (rule selection, modifier stacking)
- Simulation (what-if scenarios, never recorded)
- Calculation log (append-only history of committed calculations)
- Statistics (aggregated over the calculation log)

Calculations, simulations and reads return their records directly.
Rule mutations return a ServiceResult so the hosting service can surface
validation and not-found problems as client errors.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from varcommission.engine.calculator import CommissionCalculator, new_transaction_id
from varcommission.engine.simulation import SimulationEngine
from varcommission.errors import RuleNotFound, ValidationError
from varcommission.models.calculation import (
    CommissionCalculation,
    CommissionStats,
    SimulationResult,
    StatsPeriod,
)
from varcommission.models.rules import CommissionRule, RuleDraft
from varcommission.persistence.calculation_log import CalculationLog
from varcommission.policy.resolver import PolicyResolver
from varcommission.rules.store import RuleStore, new_rule_id
from varcommission.stats.aggregator import StatsAggregator


logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ServiceResult:
    """Result of a service operation."""
    success: bool
    errors: list[str] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)


class CommissionService:
    """Commission engine facade.

    Usage:
        resolver = PolicyResolver.from_config_dir(config_dir)
        service = CommissionService(resolver)

        calc = service.calculate_commission(Decimal("1000"), 42, "prestador", "buffet")
        sim = service.simulate_commission(Decimal("1000"), "prestador", "buffet")

        result = service.add_rule(RuleDraft(name="Promo", base_rate=Decimal("3")))
        stats = service.get_commission_stats("week")

    Persistence (optional):
        service = CommissionService(resolver, calculation_log=CalculationLog(path))
    """

    def __init__(
        self,
        resolver: PolicyResolver,
        calculation_log: Optional[CalculationLog] = None,
        store: Optional[RuleStore] = None,
        clock: Callable[[], datetime] = _utc_now,
        rule_id_factory: Callable[[], str] = new_rule_id,
        transaction_id_factory: Callable[[], str] = new_transaction_id,
    ) -> None:
        self._resolver = resolver
        self._clock = clock
        if store is None:
            store = RuleStore(
                seed=resolver.default_rules(now=clock()),
                clock=clock,
                id_factory=rule_id_factory,
            )
        self._store = store
        self._calculator = CommissionCalculator(
            store, clock=clock, id_factory=transaction_id_factory,
        )
        self._simulator = SimulationEngine(self._calculator, resolver.simulation_params())
        self._log = calculation_log if calculation_log is not None else CalculationLog()
        self._stats = StatsAggregator(self._log, resolver.stats_period_days())

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def calculate_commission(
        self,
        transaction_amount: Any,
        user_id: int,
        user_type: str,
        service_category: Optional[str],
        user_plan: Optional[str] = None,
        user_event_count: int = 0,
    ) -> CommissionCalculation:
        """Calculate and record the commission for a transaction.

        Raises ValidationError for invalid transaction input.
        """
        calc = self._calculator.calculate_commission(
            transaction_amount,
            user_id,
            user_type,
            service_category,
            user_plan or self._resolver.default_user_plan(),
            user_event_count,
        )
        self._log.append(calc)
        if not calc.applied_rules:
            logger.debug(
                "No applicable rule for %s (user_type=%s, category=%s)",
                calc.transaction_id, user_type, service_category,
            )
        return calc

    def simulate_commission(
        self,
        transaction_amount: Any,
        user_type: str,
        service_category: Optional[str],
        user_plan: Optional[str] = None,
        user_event_count: int = 0,
    ) -> SimulationResult:
        """What-if calculation. Nothing is recorded."""
        return self._simulator.simulate_commission(
            transaction_amount,
            user_type,
            service_category,
            user_plan or self._resolver.default_user_plan(),
            user_event_count,
        )

    # ------------------------------------------------------------------
    # Rule management
    # ------------------------------------------------------------------

    def add_rule(self, draft: RuleDraft) -> ServiceResult:
        try:
            rule = self._store.add_rule(draft)
        except ValidationError as exc:
            return ServiceResult(success=False, errors=exc.errors)
        logger.info("Added rule %s (%s)", rule.rule_id, rule.name)
        return ServiceResult(success=True, data={"rule": rule.to_dict()})

    def update_rule(self, rule_id: str, updates: dict[str, Any]) -> ServiceResult:
        try:
            rule = self._store.update_rule(rule_id, updates)
        except ValidationError as exc:
            return ServiceResult(success=False, errors=exc.errors)
        if rule is None:
            return ServiceResult(success=False, errors=[str(RuleNotFound(rule_id))])
        logger.info("Updated rule %s", rule_id)
        return ServiceResult(success=True, data={"rule": rule.to_dict()})

    def delete_rule(self, rule_id: str) -> ServiceResult:
        if not self._store.delete_rule(rule_id):
            return ServiceResult(success=False, errors=[str(RuleNotFound(rule_id))])
        logger.info("Deleted rule %s", rule_id)
        return ServiceResult(success=True, data={"rule_id": rule_id})

    def get_all_rules(self) -> list[CommissionRule]:
        return self._store.get_all_rules()

    def get_rule_by_id(self, rule_id: str) -> Optional[CommissionRule]:
        return self._store.get_rule_by_id(rule_id)

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    def get_commission_stats(
        self,
        period: StatsPeriod | str = StatsPeriod.MONTH,
        now: Optional[datetime] = None,
    ) -> CommissionStats:
        return self._stats.get_commission_stats(period, now=now or self._clock())

    def status(self) -> dict[str, Any]:
        rules = self._store.get_all_rules()
        return {
            "policy_version": self._resolver.version,
            "rules": len(rules),
            "active_rules": sum(1 for r in rules if r.active),
            "recorded_calculations": self._log.count,
        }
