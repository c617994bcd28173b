"""
Keyword momentum: per-keyword trend status derived from bucketed counts.

Trends are computed on demand from stored occurrences and are not
persisted.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Union

import pandas as pd
from sqlalchemy.orm import Session

from ..db.queries import get_occurrences_in_window
from ..granularity import Granularity
from ..scoring import calculate_finance_relevance
from .aggregation import (
    SentimentInput, TREND_STATUSES, aggregate_sentiment,
    calculate_performance_tier, calculate_trend_metrics
)

logger = logging.getLogger(__name__)


@dataclass
class KeywordTrend:
    """
    Momentum of one keyword over the analysed buckets.

    Attributes:
        keyword: Normalized keyword.
        tickers: Tickers the keyword mapped to in the window.
        finance_relevance: Finance relevance prior of the keyword.
        total_occurrences: Occurrences across all buckets.
        unique_posts: Distinct posts mentioning the keyword.
        engagement: Sum of engagement weights.
        sentiment: Weighted positive - negative.
        counts: Occurrences per bucket, oldest first.
        velocity / acceleration: Of the latest bucket.
        ema_short / ema_long: Smoothed bucket counts.
        status: dormant, emerging, rising, peak, declining or stable.
        performance_tier: Composite z-score tier.
    """
    keyword: str
    tickers: List[str] = field(default_factory=list)
    finance_relevance: float = 0.0
    total_occurrences: int = 0
    unique_posts: int = 0
    engagement: float = 0.0
    sentiment: float = 0.0
    counts: List[int] = field(default_factory=list)
    velocity: float = 0.0
    acceleration: float = 0.0
    ema_short: float = 0.0
    ema_long: float = 0.0
    status: str = 'dormant'
    performance_tier: str = 'critical'


class KeywordTrendAnalyzer:
    """
    Computes keyword trends over consecutive buckets ending at a given time.

    Example:
        >>> analyzer = KeywordTrendAnalyzer()
        >>> trends = analyzer.compute_trends(session, end_ms, "1h", periods=24)
        >>> [(t.keyword, t.status) for t in trends[:3]]
    """

    def __init__(self, short_period: int = 5, long_period: int = 20):
        if short_period <= 0 or long_period <= 0:
            raise ValueError("EMA periods must be positive")
        self.short_period = short_period
        self.long_period = long_period

    @classmethod
    def from_config(cls) -> "KeywordTrendAnalyzer":
        from config import Config
        return cls(Config.EMA_SHORT_PERIOD, Config.EMA_LONG_PERIOD)

    def compute_trends(
        self,
        session: Session,
        end_time: int,
        granularity: Union[str, Granularity],
        periods: int,
        keywords: Optional[Iterable[str]] = None
    ) -> List[KeywordTrend]:
        """
        Compute trends for the ``periods`` buckets ending at ``end_time``.

        Args:
            session: Database session.
            end_time: Exclusive end of the last bucket (ms).
            granularity: Bucket size.
            periods: Number of buckets.
            keywords: Restrict to these normalized keywords. Keywords with
                no occurrences are reported as dormant.

        Returns:
            Trends sorted by total occurrences descending, then keyword.
        """
        g = Granularity.parse(granularity)
        if periods <= 0:
            raise ValueError(f"periods must be positive, got {periods}")

        duration = g.duration_ms
        start_time = end_time - periods * duration

        occurrences = get_occurrences_in_window(session, start_time, end_time)
        df = pd.DataFrame([{
            'keyword': o.keyword_id,
            'post_id': o.post_id,
            'bucket': (o.occurrence_time - start_time) // duration,
            'engagement': o.engagement_weight,
            'tickers': o.mapped_tickers or [],
            'sentiment': SentimentInput(
                positive=o.sentiment_positive,
                negative=o.sentiment_negative,
                neutral=o.sentiment_neutral,
                mixed=o.sentiment_mixed,
                confidence=o.sentiment_confidence,
                weight=o.engagement_weight,
            ),
        } for o in occurrences], columns=['keyword', 'post_id', 'bucket', 'engagement', 'tickers', 'sentiment'])

        wanted = None if keywords is None else [k.lower().strip() for k in keywords]
        groups = {name: group for name, group in df.groupby('keyword')} if not df.empty else {}
        names = wanted if wanted is not None else sorted(groups)

        trends = []
        for name in names:
            group = groups.get(name)
            if group is None:
                trends.append(KeywordTrend(keyword=name, counts=[0] * periods))
                continue
            trends.append(self._trend_for(name, group, periods))

        trends.sort(key=lambda t: (-t.total_occurrences, t.keyword))
        logger.debug(f"Computed {len(trends)} keyword trends over {periods} x {g.value}")
        return trends

    def _trend_for(self, keyword: str, group: pd.DataFrame, periods: int) -> KeywordTrend:
        counts = group['bucket'].value_counts().reindex(range(periods), fill_value=0)
        counts = [int(c) for c in counts.tolist()]

        previous_count = 0
        previous_velocity = 0.0
        ema_short = ema_long = float(counts[0])
        status: Optional[str] = None
        metrics = None

        for count in counts:
            metrics = calculate_trend_metrics(
                count, previous_count, previous_velocity, ema_short, ema_long,
                self.short_period, self.long_period, status
            )
            previous_count = count
            previous_velocity = metrics.velocity
            ema_short = metrics.ema_short
            ema_long = metrics.ema_long
            status = metrics.trend_status

        tickers = sorted({t for tickers in group['tickers'] for t in tickers})
        sentiment = aggregate_sentiment(list(group['sentiment'])).weighted_score
        engagement = float(group['engagement'].sum())
        unique_posts = int(group['post_id'].nunique())

        return KeywordTrend(
            keyword=keyword,
            tickers=tickers,
            finance_relevance=calculate_finance_relevance(keyword, tickers),
            total_occurrences=len(group),
            unique_posts=unique_posts,
            engagement=engagement,
            sentiment=sentiment,
            counts=counts,
            velocity=metrics.velocity,
            acceleration=metrics.acceleration,
            ema_short=metrics.ema_short,
            ema_long=metrics.ema_long,
            status=metrics.trend_status,
            performance_tier=calculate_performance_tier(
                engagement, abs(sentiment), metrics.velocity, unique_posts
            ),
        )

    def get_finance_trending_keywords(
        self,
        session: Session,
        end_time: int,
        granularity: Union[str, Granularity],
        periods: int,
        limit: int = 30,
        min_finance_score: float = 0.5,
        min_velocity: float = 0.0,
        trend_status: Optional[str] = None
    ) -> List[KeywordTrend]:
        """Finance-relevant trends ranked by relevance x engagement."""
        trends = self.compute_trends(session, end_time, granularity, periods)
        return filter_finance_trending(trends, limit, min_finance_score, min_velocity, trend_status)


def filter_finance_trending(
    trends: Iterable[KeywordTrend],
    limit: int = 30,
    min_finance_score: float = 0.5,
    min_velocity: float = 0.0,
    trend_status: Optional[str] = None
) -> List[KeywordTrend]:
    """
    Keep trends with ``finance_relevance >= min_finance_score`` and
    ``velocity >= min_velocity`` (and the given status, if any), sorted by
    finance relevance x engagement descending.
    """
    if trend_status is not None and trend_status not in TREND_STATUSES:
        raise ValueError(f"Unknown trend status: {trend_status}")

    filtered = [
        t for t in trends
        if t.finance_relevance >= min_finance_score and t.velocity >= min_velocity
    ]
    if trend_status is not None:
        filtered = [t for t in filtered if t.status == trend_status]

    filtered.sort(key=lambda t: t.finance_relevance * t.engagement, reverse=True)
    return filtered[:limit]
