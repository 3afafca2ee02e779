"""Append-only calculation log — the record of every committed calculation.

Each calculation performed for a real transaction is appended as an
immutable record. The log serves as:
1. The history the stats aggregator reads.
2. The audit trail of what was charged and why (the full breakdown).

Simulations are never recorded. Rule edits are not recorded here.
"""

from __future__ import annotations

import hashlib
import json
import threading
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

from varcommission.models.calculation import CommissionCalculation


def _canonical_hash(payload: dict[str, Any]) -> str:
    canonical = json.dumps(payload, sort_keys=True, ensure_ascii=False).encode("utf-8")
    return f"sha256:{hashlib.sha256(canonical).hexdigest()}"


@dataclass(frozen=True)
class CalculationRecord:
    """A single immutable log entry.

    record_hash is computed at creation time over the canonical JSON of
    the calculation.
    """
    transaction_id: str
    calculation: CommissionCalculation
    record_hash: str

    @staticmethod
    def create(calculation: CommissionCalculation) -> CalculationRecord:
        return CalculationRecord(
            transaction_id=calculation.transaction_id,
            calculation=calculation,
            record_hash=_canonical_hash(calculation.to_dict()),
        )


class CalculationLog:
    """Append-only calculation log with optional JSONL persistence.

    Records can only be appended, never modified or deleted. Loading
    from disk is fail-closed: a tampered record (hash mismatch) or a
    duplicate transaction id raises ValueError.
    """

    def __init__(self, storage_path: Optional[Path] = None) -> None:
        self._records: list[CalculationRecord] = []
        self._ids: set[str] = set()
        self._storage_path = storage_path
        self._lock = threading.Lock()

        if storage_path and storage_path.exists():
            self._load_from_file(storage_path)

    def append(self, calculation: CommissionCalculation) -> CalculationRecord:
        """Append a calculation.

        Raises ValueError if the transaction id is a duplicate.
        """
        record = CalculationRecord.create(calculation)
        with self._lock:
            if record.transaction_id in self._ids:
                raise ValueError(f"Duplicate transaction ID: {record.transaction_id}")
            if self._storage_path:
                self._append_to_file(record)
            self._records.append(record)
            self._ids.add(record.transaction_id)
        return record

    def calculations(self) -> list[CommissionCalculation]:
        return [r.calculation for r in self._records]

    def calculations_between(
        self,
        start_utc: datetime,
        end_utc: datetime,
    ) -> list[CommissionCalculation]:
        """Calculations with start_utc < calculated_utc <= end_utc."""
        return [
            r.calculation for r in self._records
            if start_utc < r.calculation.calculated_utc <= end_utc
        ]

    @property
    def count(self) -> int:
        return len(self._records)

    def _append_to_file(self, record: CalculationRecord) -> None:
        line = {
            "transaction_id": record.transaction_id,
            "calculation": record.calculation.to_dict(),
            "record_hash": record.record_hash,
        }
        self._storage_path.parent.mkdir(parents=True, exist_ok=True)
        with self._storage_path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(line, sort_keys=True, ensure_ascii=False) + "\n")

    def _load_from_file(self, path: Path) -> None:
        with path.open("r", encoding="utf-8") as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                data = json.loads(line)
                transaction_id = data["transaction_id"]

                if transaction_id in self._ids:
                    raise ValueError(
                        f"Duplicate transaction ID on recovery (line {line_num}): "
                        f"{transaction_id}"
                    )

                expected_hash = _canonical_hash(data["calculation"])
                if data["record_hash"] != expected_hash:
                    raise ValueError(
                        f"Integrity check failed (line {line_num}): {transaction_id} "
                        f"stored hash {data['record_hash']} != computed {expected_hash}"
                    )

                record = CalculationRecord(
                    transaction_id=transaction_id,
                    calculation=CommissionCalculation.from_dict(data["calculation"]),
                    record_hash=data["record_hash"],
                )
                self._records.append(record)
                self._ids.add(transaction_id)
