"""Error taxonomy for the commission engine.

No applicable rule is not an error: the calculator returns a valid
zero-commission result for it.
"""

from __future__ import annotations


class CommissionError(Exception):
    """Base class for commission engine errors."""


class RuleNotFound(CommissionError, KeyError):
    """Lookup of a rule id that is not in the store."""

    def __init__(self, rule_id: str) -> None:
        self.rule_id = rule_id
        super().__init__(f"Rule not found: {rule_id}")

    def __str__(self) -> str:
        return f"Rule not found: {self.rule_id}"


class ValidationError(CommissionError, ValueError):
    """A rule draft, rule update or transaction input is malformed.

    Carries every problem found, not just the first one.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))
