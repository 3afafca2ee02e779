"""Append-only calculation history."""

from varcommission.persistence.calculation_log import CalculationLog, CalculationRecord

__all__ = [
    "CalculationLog",
    "CalculationRecord",
]
