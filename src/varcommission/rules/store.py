"""Rule store — in-memory commission rule table.

Readers take an immutable, priority-sorted snapshot; writers build a new
table and swap the snapshot under a single lock. A calculation running
against a snapshot never observes a partially applied mutation.

Rules live as long as the store instance. Persistence beyond process
lifetime belongs to the hosting service.
"""

from __future__ import annotations

import dataclasses
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from varcommission.errors import RuleNotFound, ValidationError
from varcommission.models.rules import (
    UPDATABLE_FIELDS,
    CommissionRule,
    RuleDraft,
)
from varcommission.rules.validation import validate_rule


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_rule_id() -> str:
    return f"rule-{uuid.uuid4().hex[:12]}"


def _sort_key(rule: CommissionRule) -> tuple[int, str]:
    return (rule.priority, rule.rule_id)


class RuleStore:
    """Holds commission rules; CRUD plus priority-sorted enumeration.

    Usage:
        store = RuleStore(seed=resolver.default_rules())
        rule = store.add_rule(draft)
        store.update_rule(rule.rule_id, {"active": False})
        store.delete_rule(rule.rule_id)

    Unknown ids are not errors: update_rule returns None and
    delete_rule returns False. Use require() for a raising lookup.
    """

    def __init__(
        self,
        seed: Iterable[CommissionRule] = (),
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = new_rule_id,
    ) -> None:
        self._clock = clock
        self._id_factory = id_factory
        self._write_lock = threading.Lock()
        table: dict[str, CommissionRule] = {}
        for rule in seed:
            if rule.rule_id in table:
                raise ValueError(f"Duplicate rule id in seed: {rule.rule_id}")
            table[rule.rule_id] = rule
        self._rules = table
        self._snapshot = tuple(sorted(table.values(), key=_sort_key))

    # ------------------------------------------------------------------
    # Reads (lock-free: snapshot reference swap is atomic)
    # ------------------------------------------------------------------

    def snapshot(self) -> tuple[CommissionRule, ...]:
        """Current rule table, ascending by priority."""
        return self._snapshot

    def get_all_rules(self) -> list[CommissionRule]:
        return list(self._snapshot)

    def get_rule_by_id(self, rule_id: str) -> Optional[CommissionRule]:
        return self._rules.get(rule_id)

    def require(self, rule_id: str) -> CommissionRule:
        """Return the rule or raise RuleNotFound."""
        rule = self._rules.get(rule_id)
        if rule is None:
            raise RuleNotFound(rule_id)
        return rule

    def __len__(self) -> int:
        return len(self._snapshot)

    # ------------------------------------------------------------------
    # Mutations (serialized)
    # ------------------------------------------------------------------

    def add_rule(self, draft: RuleDraft) -> CommissionRule:
        """Validate and store a new rule. Assigns id and timestamps.

        Raises ValidationError; the table is unchanged on failure.
        """
        validate_rule(draft)
        with self._write_lock:
            rule_id = self._id_factory()
            if rule_id in self._rules:
                raise ValueError(f"Rule id collision: {rule_id}")
            rule = CommissionRule.from_draft(draft, rule_id, self._clock())
            self._publish({**self._rules, rule_id: rule})
        return rule

    def update_rule(
        self,
        rule_id: str,
        updates: dict[str, Any],
    ) -> Optional[CommissionRule]:
        """Merge a partial update into an existing rule.

        Returns None for an unknown id. Refreshes updated_utc; rule_id and
        created_utc are never changed. Raises ValidationError if the
        merged rule is invalid, leaving the table unchanged.
        """
        unknown = sorted(set(updates) - UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError([f"field not updatable: {key}" for key in unknown])
        updates = {
            key: tuple(value or ()) if key in ("conditions", "modifiers") else value
            for key, value in updates.items()
        }

        with self._write_lock:
            existing = self._rules.get(rule_id)
            if existing is None:
                return None
            merged_draft = _draft_of(existing, updates)
            validate_rule(merged_draft)
            updated = dataclasses.replace(
                existing,
                **updates,
                updated_utc=self._clock(),
            )
            self._publish({**self._rules, rule_id: updated})
        return updated

    def delete_rule(self, rule_id: str) -> bool:
        """Remove a rule. Returns False if the id is unknown."""
        with self._write_lock:
            if rule_id not in self._rules:
                return False
            table = dict(self._rules)
            del table[rule_id]
            self._publish(table)
        return True

    def _publish(self, table: dict[str, CommissionRule]) -> None:
        self._snapshot = tuple(sorted(table.values(), key=_sort_key))
        self._rules = table


def _draft_of(rule: CommissionRule, updates: dict[str, Any]) -> RuleDraft:
    """Rebuild the draft a rule would have after applying updates."""
    fields = {
        "name": rule.name,
        "base_rate": rule.base_rate,
        "user_type": rule.user_type,
        "description": rule.description,
        "service_category": rule.service_category,
        "active": rule.active,
        "priority": rule.priority,
        "conditions": rule.conditions,
        "modifiers": rule.modifiers,
    }
    fields.update(updates)
    return RuleDraft(**fields)
