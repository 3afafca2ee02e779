"""Commission rule models — rules, conditions, modifiers and condition values.

Rates and modifier values are whole-number percentages (5.0 = 5%), held as
Decimal. No floats in finance.

Rules are frozen. The rule store replaces a rule on update rather than
mutating it, so a reader holding a snapshot never observes a partially
updated rule.

Condition values are a closed tagged variant:
    NumberValue(value)        gte / lte / eq on numeric types
    RangeValue(low, high)     between (inclusive)
    ChoiceValue(value)        eq on plan / category
    ChoicesValue(values)      in
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Union


class UserType(str, enum.Enum):
    """Marketplace roles a rule can target. ALL is the wildcard."""
    PRESTADOR = "prestador"
    CONTRATANTE = "contratante"
    ANUNCIANTE = "anunciante"
    ALL = "all"


class ConditionType(str, enum.Enum):
    """What a condition inspects in the transaction context."""
    VOLUME = "volume"
    PERFORMANCE = "performance"
    PLAN = "plan"
    CATEGORY = "category"
    DATE_RANGE = "date_range"
    EVENT_COUNT = "event_count"


class ConditionOperator(str, enum.Enum):
    GTE = "gte"
    LTE = "lte"
    EQ = "eq"
    BETWEEN = "between"
    IN = "in"


class ModifierType(str, enum.Enum):
    """How a modifier adjusts the running rate.

    PERCENTAGE: rate += rate * value / 100 (compounds)
    FIXED: flat currency amount, rate unchanged
    MULTIPLIER: rate *= value
    """
    PERCENTAGE = "percentage"
    FIXED = "fixed"
    MULTIPLIER = "multiplier"


NUMERIC_CONDITION_TYPES = frozenset({
    ConditionType.VOLUME,
    ConditionType.EVENT_COUNT,
    ConditionType.PERFORMANCE,
})

TEXT_CONDITION_TYPES = frozenset({
    ConditionType.PLAN,
    ConditionType.CATEGORY,
})


def to_decimal(raw: Any, label: str = "value") -> Decimal:
    """Convert a JSON number or numeric string to Decimal.

    Goes through str() so 0.1 becomes Decimal("0.1"), not the binary float.
    NaN and infinities are rejected.
    """
    if isinstance(raw, bool) or raw is None:
        raise ValueError(f"{label} must be a number, got {raw!r}")
    if isinstance(raw, Decimal):
        result = raw
    else:
        try:
            result = Decimal(str(raw))
        except InvalidOperation as exc:
            raise ValueError(f"{label} must be a number, got {raw!r}") from exc
    if not result.is_finite():
        raise ValueError(f"{label} must be a finite number, got {raw!r}")
    return result


def to_bool(raw: Any, label: str = "value") -> bool:
    """Accept a JSON boolean only; "false" or 0 are not coerced."""
    if not isinstance(raw, bool):
        raise ValueError(f"{label} must be true or false, got {raw!r}")
    return raw


def to_int(raw: Any, label: str = "value") -> int:
    """Accept an integral JSON number (1 or 1.0), never a bool or 1.7."""
    if isinstance(raw, bool):
        raise ValueError(f"{label} must be an integer, got {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float) and raw.is_integer():
        return int(raw)
    raise ValueError(f"{label} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class NumberValue:
    value: Decimal

    def to_json(self) -> Any:
        return str(self.value)


@dataclass(frozen=True)
class RangeValue:
    """Inclusive [low, high] range."""
    low: Decimal
    high: Decimal

    def contains(self, candidate: Decimal) -> bool:
        return self.low <= candidate <= self.high

    def to_json(self) -> Any:
        return [str(self.low), str(self.high)]


@dataclass(frozen=True)
class ChoiceValue:
    value: str

    def to_json(self) -> Any:
        return self.value


@dataclass(frozen=True)
class ChoicesValue:
    """Set membership. Members are Decimal for numeric types, str otherwise."""
    values: frozenset

    def to_json(self) -> Any:
        return sorted(str(v) for v in self.values)


ConditionValue = Union[NumberValue, RangeValue, ChoiceValue, ChoicesValue]


def condition_value_from_json(
    condition_type: ConditionType,
    operator: ConditionOperator,
    raw: Any,
) -> ConditionValue:
    """Build the tagged value from its JSON shape.

    The operator decides the variant; the condition type decides whether
    members are numbers or strings. Shape errors raise ValueError.
    """
    numeric = condition_type not in TEXT_CONDITION_TYPES

    if operator == ConditionOperator.BETWEEN:
        if not isinstance(raw, (list, tuple)) or len(raw) != 2:
            raise ValueError(
                f"'between' expects a two-element [low, high] range, got {raw!r}"
            )
        return RangeValue(
            low=to_decimal(raw[0], "range low"),
            high=to_decimal(raw[1], "range high"),
        )

    if operator == ConditionOperator.IN:
        if not isinstance(raw, (list, tuple, set, frozenset)):
            raise ValueError(f"'in' expects a list of values, got {raw!r}")
        if numeric:
            return ChoicesValue(frozenset(to_decimal(v, "set member") for v in raw))
        return ChoicesValue(frozenset(str(v) for v in raw))

    if isinstance(raw, str) and not numeric:
        return ChoiceValue(raw)
    if not numeric:
        raise ValueError(
            f"{condition_type.value} condition expects a string value, got {raw!r}"
        )
    return NumberValue(to_decimal(raw))


@dataclass(frozen=True)
class CommissionCondition:
    """A predicate over the transaction context gating a rule or modifier."""
    condition_type: ConditionType
    operator: ConditionOperator
    value: ConditionValue
    description: str = ""

    @staticmethod
    def from_dict(data: dict[str, Any]) -> CommissionCondition:
        condition_type = ConditionType(data["type"])
        operator = ConditionOperator(data["operator"])
        return CommissionCondition(
            condition_type=condition_type,
            operator=operator,
            value=condition_value_from_json(condition_type, operator, data.get("value")),
            description=data.get("description", ""),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.condition_type.value,
            "operator": self.operator.value,
            "value": self.value.to_json(),
            "description": self.description,
        }


@dataclass(frozen=True)
class CommissionModifier:
    """A secondary adjustment layered on the running rate."""
    modifier_type: ModifierType
    value: Decimal
    description: str = ""
    conditions: tuple[CommissionCondition, ...] = ()

    @staticmethod
    def from_dict(data: dict[str, Any]) -> CommissionModifier:
        return CommissionModifier(
            modifier_type=ModifierType(data["type"]),
            value=to_decimal(data.get("value"), "modifier value"),
            description=data.get("description", ""),
            conditions=tuple(
                CommissionCondition.from_dict(c) for c in data.get("conditions") or []
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": self.modifier_type.value,
            "value": str(self.value),
            "description": self.description,
        }
        if self.conditions:
            result["conditions"] = [c.to_dict() for c in self.conditions]
        return result


@dataclass(frozen=True)
class RuleDraft:
    """A rule as submitted for creation: no id, no timestamps.

    base_rate is Optional only so a missing rate reaches the validator
    and is reported rather than failing at construction.
    """
    name: str
    base_rate: Optional[Decimal]
    user_type: UserType = UserType.ALL
    description: str = ""
    service_category: Optional[str] = None
    active: bool = True
    priority: int = 10
    conditions: tuple[CommissionCondition, ...] = ()
    modifiers: tuple[CommissionModifier, ...] = ()

    @staticmethod
    def from_dict(data: dict[str, Any]) -> RuleDraft:
        """Parse a draft from JSON. Unknown enum values raise ValueError."""
        raw_rate = data.get("base_rate", data.get("baseRate"))
        return RuleDraft(
            name=data.get("name", ""),
            base_rate=None if raw_rate is None else to_decimal(raw_rate, "base_rate"),
            user_type=UserType(data.get("user_type", data.get("userType", "all"))),
            description=data.get("description", ""),
            service_category=data.get("service_category", data.get("serviceCategory")),
            active=to_bool(data.get("active", True), "active"),
            priority=to_int(data.get("priority", 10), "priority"),
            conditions=tuple(
                CommissionCondition.from_dict(c) for c in data.get("conditions") or []
            ),
            modifiers=tuple(
                CommissionModifier.from_dict(m) for m in data.get("modifiers") or []
            ),
        )


# Fields a partial update may touch, with their JSON parsers.
_UPDATE_PARSERS = {
    "name": str,
    "description": str,
    "user_type": UserType,
    "service_category": lambda v: None if v in (None, "") else str(v),
    "active": lambda v: to_bool(v, "active"),
    "priority": lambda v: to_int(v, "priority"),
    "base_rate": lambda v: to_decimal(v, "base_rate"),
    "conditions": lambda v: tuple(CommissionCondition.from_dict(c) for c in v or []),
    "modifiers": lambda v: tuple(CommissionModifier.from_dict(m) for m in v or []),
}

UPDATABLE_FIELDS = frozenset(_UPDATE_PARSERS)


def parse_rule_updates(data: dict[str, Any]) -> dict[str, Any]:
    """Parse a JSON partial update into typed field values.

    Unknown keys raise ValueError; id and timestamps are not updatable.
    """
    unknown = sorted(set(data) - UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Fields not updatable: {', '.join(unknown)}")
    return {key: _UPDATE_PARSERS[key](value) for key, value in data.items()}


@dataclass(frozen=True)
class CommissionRule:
    """A named policy assigning a base rate to matching transactions.

    Lower priority is selected first as the base rule.
    """
    rule_id: str
    name: str
    description: str
    user_type: UserType
    service_category: Optional[str]
    active: bool
    priority: int
    conditions: tuple[CommissionCondition, ...]
    base_rate: Decimal
    modifiers: tuple[CommissionModifier, ...]
    created_utc: datetime
    updated_utc: datetime

    @staticmethod
    def from_draft(draft: RuleDraft, rule_id: str, now: datetime) -> CommissionRule:
        return CommissionRule(
            rule_id=rule_id,
            name=draft.name,
            description=draft.description,
            user_type=draft.user_type,
            service_category=draft.service_category,
            active=draft.active,
            priority=draft.priority,
            conditions=tuple(draft.conditions),
            base_rate=draft.base_rate if draft.base_rate is not None else Decimal("0"),
            modifiers=tuple(draft.modifiers),
            created_utc=now,
            updated_utc=now,
        )

    def applies_to(self, user_type: str, service_category: Optional[str]) -> bool:
        """Static targeting check: role and category, not conditions."""
        if self.user_type != UserType.ALL and self.user_type.value != user_type:
            return False
        if self.service_category and self.service_category != service_category:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "rule_id": self.rule_id,
            "name": self.name,
            "description": self.description,
            "user_type": self.user_type.value,
            "service_category": self.service_category,
            "active": self.active,
            "priority": self.priority,
            "conditions": [c.to_dict() for c in self.conditions],
            "base_rate": str(self.base_rate),
            "modifiers": [m.to_dict() for m in self.modifiers],
            "created_utc": self.created_utc.isoformat(),
            "updated_utc": self.updated_utc.isoformat(),
        }
