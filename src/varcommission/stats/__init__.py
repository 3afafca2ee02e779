"""Commission statistics over recorded calculations."""

from varcommission.stats.aggregator import StatsAggregator

__all__ = [
    "StatsAggregator",
]
