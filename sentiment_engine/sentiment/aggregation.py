"""
Sentiment aggregation and trend formulas.

Pure functions shared by the ticker/index aggregator and the keyword
trend analyzer:
- Confidence-and-engagement weighted sentiment averaging
- Velocity, acceleration and exponential moving averages
- Trend status and performance tier classification
- Index regime classification and dispersion
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import numpy as np


REGIME_MIN_TICKERS = 5
REGIME_SENTIMENT_THRESHOLD = 0.2
REGIME_BULLISH_BREADTH = 0.6
REGIME_BEARISH_BREADTH = 0.4

TREND_MIN_EMERGE = 5

TREND_STATUSES = ('dormant', 'emerging', 'rising', 'peak', 'declining', 'stable')
REGIMES = ('bullish', 'bearish', 'uncertain', 'low-signal')

PERFORMANCE_TIERS = (
    (2.0, 'elite'),
    (1.5, 'excel'),
    (1.0, 'veryGood'),
    (0.5, 'good'),
    (0.0, 'avgPlus'),
    (-0.5, 'avg'),
    (-1.0, 'avgMinus'),
    (-1.5, 'poor'),
    (-2.0, 'veryPoor'),
)


@dataclass(frozen=True)
class SentimentInput:
    """One sentiment observation with an optional relative weight."""
    positive: float
    negative: float
    neutral: float
    mixed: float
    confidence: float
    weight: Optional[float] = None


@dataclass(frozen=True)
class AggregatedSentiment:
    """
    Weighted class averages.

    Attributes:
        positive / negative / neutral / mixed: Weight-normalized class averages.
        avg_confidence: Unweighted mean of the input confidences.
        weighted_score: positive - negative, approximately in [-1, 1].
    """
    positive: float = 0.0
    negative: float = 0.0
    neutral: float = 1.0
    mixed: float = 0.0
    avg_confidence: float = 0.0
    weighted_score: float = 0.0


def aggregate_sentiment(sentiments: Sequence[SentimentInput]) -> AggregatedSentiment:
    """
    Average sentiment snapshots weighted by ``confidence * weight``.

    A missing or zero weight counts as 1. When the total weight is zero
    (including an empty input) the result is neutral with zero confidence.

    ``avg_confidence`` is deliberately the plain mean of the input
    confidences; changing it would silently alter historical aggregates.
    """
    if not sentiments:
        return AggregatedSentiment()

    total_weight = 0.0
    weighted_positive = 0.0
    weighted_negative = 0.0
    weighted_neutral = 0.0
    weighted_mixed = 0.0
    total_confidence = 0.0

    for s in sentiments:
        weight = (s.weight or 1.0) * s.confidence
        total_weight += weight

        weighted_positive += s.positive * weight
        weighted_negative += s.negative * weight
        weighted_neutral += s.neutral * weight
        weighted_mixed += s.mixed * weight
        total_confidence += s.confidence

    if total_weight == 0:
        return AggregatedSentiment()

    positive = weighted_positive / total_weight
    negative = weighted_negative / total_weight

    return AggregatedSentiment(
        positive=positive,
        negative=negative,
        neutral=weighted_neutral / total_weight,
        mixed=weighted_mixed / total_weight,
        avg_confidence=total_confidence / len(sentiments),
        weighted_score=positive - negative,
    )


def calculate_velocity(current_count: float, previous_count: float) -> float:
    """
    Relative change in mentions between two consecutive buckets.

    1.0 when the previous bucket was empty and the current one is not,
    0.0 when both are empty.
    """
    if previous_count == 0:
        return 1.0 if current_count > 0 else 0.0
    return (current_count - previous_count) / previous_count


def calculate_acceleration(velocity: float, previous_velocity: float) -> float:
    return velocity - previous_velocity


def calculate_ema(current_value: float, previous_ema: float, periods: int) -> float:
    """Exponential moving average step with ``alpha = 2 / (periods + 1)``."""
    if periods <= 0:
        raise ValueError(f"EMA period must be positive, got {periods}")
    alpha = 2 / (periods + 1)
    return current_value * alpha + previous_ema * (1 - alpha)


def calculate_trend_status(
    total_occurrences: int,
    velocity: float,
    acceleration: float,
    existing_status: Optional[str] = None
) -> str:
    """
    Classify keyword momentum. Rules are evaluated top-down.

    Args:
        total_occurrences: Occurrences in the current bucket.
        velocity: Relative change against the previous bucket.
        acceleration: Change in velocity.
        existing_status: Status to keep when no rule applies.

    Returns:
        One of dormant, emerging, rising, peak, declining, stable.
    """
    if total_occurrences == 0:
        return 'dormant'

    if total_occurrences >= TREND_MIN_EMERGE and velocity > 0.5:
        return 'emerging'

    if velocity > 0.2 and acceleration > 0:
        return 'rising'

    if abs(velocity) <= 0.1 and total_occurrences > TREND_MIN_EMERGE * 2:
        return 'peak'

    if velocity < -0.25:
        return 'declining'

    if total_occurrences >= TREND_MIN_EMERGE:
        return 'stable'

    return existing_status or 'dormant'


@dataclass(frozen=True)
class TrendMetrics:
    velocity: float
    acceleration: float
    ema_short: float
    ema_long: float
    trend_status: str


def calculate_trend_metrics(
    current_count: float,
    previous_count: float,
    previous_velocity: float,
    previous_ema_short: float,
    previous_ema_long: float,
    short_period: int = 5,
    long_period: int = 20,
    existing_status: Optional[str] = None
) -> TrendMetrics:
    """
    Velocity, acceleration, short/long EMA and trend status for one bucket.

    Example:
        >>> m = calculate_trend_metrics(10, 5, 0.0, 5.0, 5.0)
        >>> m.velocity, m.trend_status
        (1.0, 'emerging')
    """
    velocity = calculate_velocity(current_count, previous_count)
    acceleration = calculate_acceleration(velocity, previous_velocity)

    ema_short = calculate_ema(current_count, previous_ema_short, short_period)
    ema_long = calculate_ema(current_count, previous_ema_long, long_period)

    status = calculate_trend_status(int(current_count), velocity, acceleration, existing_status)

    return TrendMetrics(
        velocity=velocity,
        acceleration=acceleration,
        ema_short=ema_short,
        ema_long=ema_long,
        trend_status=status,
    )


def calculate_performance_tier(
    engagement_score: float,
    sentiment_magnitude: float,
    velocity: float,
    unique_posts: int
) -> str:
    """
    Bucket a keyword by a composite of simplified z-scores.

    Assumed population statistics: engagement mean 50 / std 20, typical
    sentiment magnitude 0.3, typical velocity 0.5, posts mean 10 / std 5.
    """
    z_engagement = (engagement_score - 50) / 20
    z_sentiment = sentiment_magnitude / 0.3
    z_velocity = velocity / 0.5
    z_posts = (unique_posts - 10) / 5

    composite = z_engagement + z_sentiment + z_velocity + z_posts

    for threshold, tier in PERFORMANCE_TIERS:
        if composite >= threshold:
            return tier
    return 'critical'


def classify_regime(active_tickers: int, sentiment: float, breadth: float) -> str:
    """
    Index regime, evaluated in priority order.

    - fewer than 5 tickers: low-signal
    - sentiment > 0.2 and breadth > 0.6: bullish
    - sentiment < -0.2 and breadth < 0.4: bearish
    - otherwise: uncertain
    """
    if active_tickers < REGIME_MIN_TICKERS:
        return 'low-signal'
    if sentiment > REGIME_SENTIMENT_THRESHOLD and breadth > REGIME_BULLISH_BREADTH:
        return 'bullish'
    if sentiment < -REGIME_SENTIMENT_THRESHOLD and breadth < REGIME_BEARISH_BREADTH:
        return 'bearish'
    return 'uncertain'


def calculate_breadth(sentiments: Sequence[float]) -> float:
    """Fraction of values strictly above zero."""
    if len(sentiments) == 0:
        return 0.0
    return sum(1 for s in sentiments if s > 0) / len(sentiments)


def calculate_dispersion(sentiments: Iterable[float]) -> float:
    """Population standard deviation (unweighted)."""
    values = np.asarray(list(sentiments), dtype=float)
    if values.size == 0:
        return 0.0
    return float(np.std(values))


def rank_contributors(
    sentiments: Sequence[float],
    tickers: Sequence[str],
    weights: Sequence[float],
    limit: int = 5
) -> List[dict]:
    """
    Top contributors by ``|sentiment * weight|``, descending.

    Returns:
        List of {ticker, contribution, sentiment} dictionaries.
    """
    contributors = [
        {
            'ticker': ticker,
            'contribution': abs(sentiment * weight),
            'sentiment': sentiment,
        }
        for ticker, sentiment, weight in zip(tickers, sentiments, weights)
    ]
    contributors.sort(key=lambda c: c['contribution'], reverse=True)
    return contributors[:limit]
