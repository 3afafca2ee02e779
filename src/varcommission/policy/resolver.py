"""Policy resolver — loads the commission policy config.

The policy file (config/commission_policy.json) holds the default rule
seed, the simulation parameters and the stats period lengths. Every
component takes its parameters from the resolver rather than from
module constants.

Default rules go through the same validation as rules added at runtime:
an invalid seed fails at load, not at the first calculation.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from varcommission.engine.simulation import SimulationParams
from varcommission.errors import ValidationError
from varcommission.models.calculation import StatsPeriod
from varcommission.models.rules import CommissionRule, RuleDraft
from varcommission.rules.validation import rule_errors


POLICY_FILENAME = "commission_policy.json"


class PolicyResolver:
    """Resolves commission policy parameters from a loaded config.

    Usage:
        resolver = PolicyResolver.from_config_dir(Path("config"))
        seed = resolver.default_rules()
        params = resolver.simulation_params()
    """

    def __init__(self, policy: dict[str, Any]) -> None:
        self._policy = policy

    @staticmethod
    def from_config_dir(config_dir: Path) -> PolicyResolver:
        path = Path(config_dir) / POLICY_FILENAME
        with path.open("r", encoding="utf-8") as handle:
            return PolicyResolver(json.load(handle))

    @property
    def version(self) -> str:
        return str(self._policy.get("version", "unversioned"))

    def default_user_plan(self) -> str:
        return self._policy.get("default_user_plan", "free")

    def simulation_params(self) -> SimulationParams:
        sim = self._policy.get("simulation", {})
        defaults = SimulationParams()
        return SimulationParams(
            premium_plan=sim.get("premium_plan", defaults.premium_plan),
            experienced_event_count=int(
                sim.get("experienced_event_count", defaults.experienced_event_count)
            ),
            new_user_event_limit=int(
                sim.get("new_user_event_limit", defaults.new_user_event_limit)
            ),
        )

    def stats_period_days(self) -> dict[StatsPeriod, int]:
        raw = self._policy.get("stats", {}).get("period_days", {})
        result = {StatsPeriod.DAY: 1, StatsPeriod.WEEK: 7, StatsPeriod.MONTH: 30}
        for key, days in raw.items():
            result[StatsPeriod(key)] = int(days)
        return result

    def default_rules(self, now: Optional[datetime] = None) -> list[CommissionRule]:
        """Build the seed rules, stamped with now.

        Raises ValueError for a missing or duplicate rule_id and
        ValidationError for an invalid rule.
        """
        if now is None:
            now = datetime.now(timezone.utc)
        rules: list[CommissionRule] = []
        seen: set[str] = set()
        for i, raw in enumerate(self._policy.get("default_rules", [])):
            rule_id = raw.get("rule_id")
            if not rule_id:
                raise ValueError(f"default_rules[{i}] missing rule_id")
            if rule_id in seen:
                raise ValueError(f"default_rules[{i}] duplicate rule_id: {rule_id}")
            seen.add(rule_id)

            draft = RuleDraft.from_dict(raw)
            errors = rule_errors(draft)
            if errors:
                raise ValidationError([f"{rule_id}: {e}" for e in errors])
            rules.append(CommissionRule.from_draft(draft, rule_id, now))
        return rules

    def check(self) -> list[str]:
        """Return every problem in the policy (empty = OK). Never raises."""
        errors: list[str] = []
        try:
            self.default_rules()
        except ValidationError as exc:
            errors.extend(exc.errors)
        except (ValueError, KeyError, TypeError) as exc:
            errors.append(f"default_rules: {exc}")

        try:
            params = self.simulation_params()
        except (ValueError, TypeError) as exc:
            errors.append(f"simulation: {exc}")
        else:
            if params.experienced_event_count <= params.new_user_event_limit:
                errors.append(
                    "simulation.experienced_event_count must exceed new_user_event_limit"
                )
            if not params.premium_plan:
                errors.append("simulation.premium_plan must be set")

        try:
            for period, days in self.stats_period_days().items():
                if days <= 0:
                    errors.append(f"stats.period_days.{period.value} must be > 0")
        except (ValueError, TypeError) as exc:
            errors.append(f"stats: {exc}")
        return errors
