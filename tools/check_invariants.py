#!/usr/bin/env python3
"""Commission invariant checks against the executable policy config."""

import sys
from decimal import Decimal
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from varcommission.engine.conditions import unhandled_condition_types  # noqa: E402
from varcommission.models.rules import ConditionType  # noqa: E402
from varcommission.policy.resolver import PolicyResolver  # noqa: E402
from varcommission.rules.validation import SUPPORTED_OPERATORS  # noqa: E402


CONFIG_DIR = ROOT / "config"


def check() -> int:
    errors: list[str] = []

    # --- Every condition type has an evaluator and a validation entry ---
    for ctype in unhandled_condition_types():
        errors.append(f"no evaluator handler for condition type: {ctype.value}")
    for ctype in ConditionType:
        if ctype not in SUPPORTED_OPERATORS:
            errors.append(f"no validation entry for condition type: {ctype.value}")

    # --- Policy config ---
    resolver = PolicyResolver.from_config_dir(CONFIG_DIR)
    errors.extend(resolver.check())

    if not errors:
        rules = resolver.default_rules()
        # A base rate is a percentage of the transaction.
        for rule in rules:
            if rule.base_rate > Decimal("100"):
                errors.append(f"{rule.rule_id}: base_rate above 100%")
        # Rule ids and priorities resolve base-rule ties deterministically,
        # but two active unconditional rules for the same target at the same
        # priority are almost certainly a config mistake.
        seen: dict[tuple, str] = {}
        for rule in rules:
            if not rule.active or rule.conditions:
                continue
            key = (rule.user_type, rule.service_category, rule.priority)
            if key in seen:
                errors.append(
                    f"{rule.rule_id} and {seen[key]} are unconditional rules "
                    f"with the same target and priority {rule.priority}"
                )
            seen[key] = rule.rule_id

    if errors:
        print("Invariant check failed:")
        for error in errors:
            print(f"  - {error}")
        return 1

    print("Commission invariant checks passed.")
    return 0


if __name__ == "__main__":
    raise SystemExit(check())
