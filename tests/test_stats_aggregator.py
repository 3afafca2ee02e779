"""Tests for the stats aggregator — proves period windows, effective rates,
rule usage and group breakdowns over recorded calculations."""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path

from varcommission.engine.calculator import CommissionCalculator
from varcommission.models.calculation import StatsPeriod
from varcommission.persistence.calculation_log import CalculationLog
from varcommission.policy.resolver import PolicyResolver
from varcommission.rules.store import RuleStore
from varcommission.stats.aggregator import StatsAggregator


CONFIG_DIR = Path(__file__).resolve().parents[1] / "config"
NOW = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class MovableClock:
    def __init__(self) -> None:
        self.now = NOW

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def log() -> CalculationLog:
    return CalculationLog()


@pytest.fixture
def populated(log: CalculationLog) -> CalculationLog:
    """Four calculations against the default policy.

    now-6h   prestador  1000  buffet          basic 5%        -> 50
    now-36h  prestador 20000  entretenimento  high volume 3.5% -> 700
    now-3d   contratante 500  (none)          new user 2%     -> 10
    now-10d  prestador  1000  buffet          basic 5%        -> 50
    """
    resolver = PolicyResolver.from_config_dir(CONFIG_DIR)
    clock = MovableClock()
    store = RuleStore(seed=resolver.default_rules(now=NOW))
    calculator = CommissionCalculator(store, clock=clock)

    def record(offset: timedelta, amount: str, user_type: str, category, events: int) -> None:
        clock.now = NOW - offset
        log.append(calculator.calculate_commission(
            Decimal(amount), 1, user_type, category, "free", events,
        ))

    record(timedelta(hours=6), "1000", "prestador", "buffet", 5)
    record(timedelta(hours=36), "20000", "prestador", "entretenimento", 5)
    record(timedelta(days=3), "500", "contratante", None, 0)
    record(timedelta(days=10), "1000", "prestador", "buffet", 5)
    return log


class TestTotals:
    def test_week_totals(self, populated: CalculationLog) -> None:
        stats = StatsAggregator(populated).get_commission_stats("week", now=NOW)
        assert stats.period == StatsPeriod.WEEK
        assert stats.total_commissions == Decimal("760")
        assert stats.transaction_count == 3
        assert stats.average_rate == Decimal("760") / Decimal("21500") * 100

    def test_month_includes_everything(self, populated: CalculationLog) -> None:
        stats = StatsAggregator(populated).get_commission_stats(StatsPeriod.MONTH, now=NOW)
        assert stats.total_commissions == Decimal("810")
        assert stats.transaction_count == 4

    def test_empty_history(self, log: CalculationLog) -> None:
        stats = StatsAggregator(log).get_commission_stats("day", now=NOW)
        assert stats.total_commissions == Decimal("0")
        assert stats.average_rate == Decimal("0")
        assert stats.rule_usage == []
        assert stats.period_comparison.growth is None

    def test_unknown_period(self, log: CalculationLog) -> None:
        with pytest.raises(ValueError):
            StatsAggregator(log).get_commission_stats("year", now=NOW)


class TestPeriodComparison:
    def test_week_growth(self, populated: CalculationLog) -> None:
        comparison = StatsAggregator(populated).get_commission_stats(
            "week", now=NOW
        ).period_comparison
        assert comparison.current == Decimal("760")
        assert comparison.previous == Decimal("50")
        assert comparison.growth == Decimal("1420")

    def test_day_decline(self, populated: CalculationLog) -> None:
        comparison = StatsAggregator(populated).get_commission_stats(
            "day", now=NOW
        ).period_comparison
        assert comparison.current == Decimal("50")
        assert comparison.previous == Decimal("700")
        assert comparison.growth < 0

    def test_no_previous_growth_undefined(self, populated: CalculationLog) -> None:
        stats = StatsAggregator(populated).get_commission_stats("month", now=NOW)
        assert stats.period_comparison.previous == Decimal("0")
        assert stats.period_comparison.growth is None

    def test_custom_period_length(self, populated: CalculationLog) -> None:
        aggregator = StatsAggregator(
            populated,
            {StatsPeriod.DAY: 1, StatsPeriod.WEEK: 2, StatsPeriod.MONTH: 30},
        )
        stats = aggregator.get_commission_stats("week", now=NOW)
        assert stats.transaction_count == 2


class TestBreakdowns:
    def test_rule_usage(self, populated: CalculationLog) -> None:
        usage = StatsAggregator(populated).get_commission_stats("week", now=NOW).rule_usage
        assert [(u.rule_id, u.times_applied, u.total_amount) for u in usage] == [
            ("basic-prestador", 1, Decimal("50")),
            ("high-volume-prestador", 1, Decimal("700")),
            ("new-user-bonus", 1, Decimal("10")),
        ]

    def test_user_type_breakdown(self, populated: CalculationLog) -> None:
        groups = StatsAggregator(populated).get_commission_stats(
            "week", now=NOW
        ).user_type_breakdown
        assert [(g.key, g.total_commissions, g.transaction_count) for g in groups] == [
            ("prestador", Decimal("750"), 2),
            ("contratante", Decimal("10"), 1),
        ]
        assert groups[1].average_rate == Decimal("2")

    def test_category_breakdown(self, populated: CalculationLog) -> None:
        groups = StatsAggregator(populated).get_commission_stats(
            "week", now=NOW
        ).category_breakdown
        assert [g.key for g in groups] == ["entretenimento", "buffet", "uncategorized"]
        assert groups[0].average_rate == Decimal("3.5")

    def test_to_dict_serializable(self, populated: CalculationLog) -> None:
        data = StatsAggregator(populated).get_commission_stats("month", now=NOW).to_dict()
        assert Decimal(data["total_commissions"]) == Decimal("810")
        assert data["period_comparison"]["growth"] is None
