"""Rule table and rule validation."""

from varcommission.rules.store import RuleStore
from varcommission.rules.validation import validate_rule

__all__ = [
    "RuleStore",
    "validate_rule",
]
