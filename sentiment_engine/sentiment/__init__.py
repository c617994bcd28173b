"""
Sentiment aggregation module.

Provides:
- Pure aggregation, velocity, EMA, trend and regime formulas
- SentimentAggregator: Idempotent ticker slices and index snapshots
- KeywordTrendAnalyzer: Derived keyword momentum
"""

from .aggregation import (
    SentimentInput,
    AggregatedSentiment,
    TrendMetrics,
    aggregate_sentiment,
    calculate_velocity,
    calculate_acceleration,
    calculate_ema,
    calculate_trend_status,
    calculate_trend_metrics,
    calculate_performance_tier,
    calculate_breadth,
    calculate_dispersion,
    classify_regime,
    rank_contributors,
)
from .aggregator import (
    SentimentAggregator,
    TickerSlice,
    TickerAggregationResult,
    IndexSnapshot,
    IndexAggregationResult,
    BatchPlan,
    plan_batch_aggregation,
)
from .trends import KeywordTrend, KeywordTrendAnalyzer, filter_finance_trending

__all__ = [
    "SentimentInput",
    "AggregatedSentiment",
    "TrendMetrics",
    "aggregate_sentiment",
    "calculate_velocity",
    "calculate_acceleration",
    "calculate_ema",
    "calculate_trend_status",
    "calculate_trend_metrics",
    "calculate_performance_tier",
    "calculate_breadth",
    "calculate_dispersion",
    "classify_regime",
    "rank_contributors",
    "SentimentAggregator",
    "TickerSlice",
    "TickerAggregationResult",
    "IndexSnapshot",
    "IndexAggregationResult",
    "BatchPlan",
    "plan_batch_aggregation",
    "KeywordTrend",
    "KeywordTrendAnalyzer",
    "filter_finance_trending",
]
