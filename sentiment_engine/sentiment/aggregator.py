"""
Time-bucketed sentiment aggregation for tickers and the index.

Every aggregation is an idempotent unit of work keyed by
(ticker, interval_start, granularity) or (index, timestamp, granularity):
an existing record is returned unchanged, empty buckets are never stored.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..clock import Clock, SystemClock
from ..db.models import IndexSentimentSnapshot, TickerSentimentSlice
from ..db.queries import (
    get_index_snapshot, get_occurrences_in_window, get_slices_at,
    get_ticker_slice, insert_index_snapshot, insert_ticker_slice
)
from ..granularity import Granularity, enumerate_intervals
from ..knowledge.knowledge_base import FinanceKnowledgeBase, get_knowledge_base
from .aggregation import (
    SentimentInput, aggregate_sentiment, calculate_acceleration, calculate_breadth,
    calculate_dispersion, calculate_velocity, classify_regime, rank_contributors
)

logger = logging.getLogger(__name__)


@dataclass
class TickerSlice:
    """Plain view of a ticker slice (persisted or synthetic)."""
    ticker: str
    interval_start: int
    granularity: str
    sentiment: float = 0.0
    confidence: float = 0.0
    raw_counts: Dict[str, int] = field(
        default_factory=lambda: {'positive': 0, 'negative': 0, 'neutral': 0, 'mixed': 0}
    )
    mentions: int = 0
    engagement: float = 0.0
    unique_posts: int = 0
    unique_sources: int = 0
    velocity: float = 0.0
    acceleration: float = 0.0

    @classmethod
    def from_record(cls, record: TickerSentimentSlice) -> "TickerSlice":
        return cls(
            ticker=record.ticker,
            interval_start=record.interval_start,
            granularity=record.granularity,
            sentiment=record.weighted_sentiment,
            confidence=record.sentiment_confidence,
            raw_counts=dict(record.raw_counts or {}),
            mentions=record.total_mentions,
            engagement=record.engagement_sum,
            unique_posts=record.unique_posts,
            unique_sources=record.unique_sources,
            velocity=record.velocity,
            acceleration=record.acceleration,
        )


@dataclass
class TickerAggregationResult:
    created: bool
    slice: TickerSlice


@dataclass
class IndexSnapshot:
    """Plain view of an index snapshot (persisted or synthetic)."""
    index_name: str
    timestamp: int
    granularity: str
    sentiment: float = 0.0
    breadth: float = 0.0
    dispersion: float = 0.0
    regime: str = 'low-signal'
    top_contributors: List[dict] = field(default_factory=list)
    mentions: int = 0
    engagement: float = 0.0
    active_tickers: int = 0

    @classmethod
    def from_record(cls, record: IndexSentimentSnapshot) -> "IndexSnapshot":
        return cls(
            index_name=record.index_name,
            timestamp=record.timestamp,
            granularity=record.granularity,
            sentiment=record.index_weighted_sentiment,
            breadth=record.breadth,
            dispersion=record.dispersion,
            regime=record.regime_tag,
            top_contributors=list(record.top_contributors or []),
            mentions=record.total_mentions,
            engagement=record.total_engagement,
            active_tickers=record.active_tickers_count,
        )


@dataclass
class IndexAggregationResult:
    created: bool
    snapshot: IndexSnapshot


@dataclass
class BatchPlan:
    """Bucket start times that need individual aggregation calls."""
    intervals: List[int]
    tickers: List[str]
    granularity: str

    @property
    def intervals_processed(self) -> int:
        return len(self.intervals)

    @property
    def message(self) -> str:
        return (
            f"Identified {len(self.intervals)} intervals to process for "
            f"{len(self.tickers)} tickers. Run ticker and index aggregation "
            f"for each interval."
        )


def plan_batch_aggregation(
    tickers: Sequence[str],
    start_ms: int,
    end_ms: int,
    granularity: Union[str, Granularity]
) -> BatchPlan:
    """
    Enumerate the buckets in ``[start_ms, end_ms)``. Does not touch the store.

    Raises:
        ValueError: On an unknown granularity or ``end_ms < start_ms``.
    """
    g = Granularity.parse(granularity)
    intervals = enumerate_intervals(start_ms, end_ms, g)
    return BatchPlan(
        intervals=intervals,
        tickers=[t.upper() for t in tickers],
        granularity=g.value,
    )


class SentimentAggregator:
    """
    Builds ticker slices and index snapshots from keyword occurrences.

    Example:
        >>> aggregator = SentimentAggregator(clock=FixedClock(now))
        >>> with db.session() as session:
        ...     result = aggregator.aggregate_ticker_sentiment(session, "AAPL", start, "1h")
        >>> result.created, result.slice.mentions
        (True, 12)
    """

    DEFAULT_INDEX_NAME = 'nasdaq100'
    TOP_CONTRIBUTORS = 5

    def __init__(
        self,
        kb: Optional[FinanceKnowledgeBase] = None,
        clock: Optional[Clock] = None,
        index_name: str = DEFAULT_INDEX_NAME
    ):
        """
        Initialize the aggregator.

        Args:
            kb: Knowledge base supplying market-cap weights.
            clock: Time source for computed/created timestamps.
            index_name: Name stored on index snapshots.
        """
        self.kb = kb or get_knowledge_base()
        self.clock = clock or SystemClock()
        self.index_name = index_name

    # -------------------------------------------------------------------------
    # Ticker slices
    # -------------------------------------------------------------------------

    def aggregate_ticker_sentiment(
        self,
        session: Session,
        ticker: str,
        interval_start: int,
        granularity: Union[str, Granularity]
    ) -> TickerAggregationResult:
        """
        Aggregate one ticker over one bucket.

        Args:
            session: Database session.
            ticker: Ticker symbol.
            interval_start: Bucket start (ms).
            granularity: Bucket size.

        Returns:
            created=True with the new slice, created=False with the existing
            slice, or created=False with a zero slice when the bucket is empty.
        """
        g = Granularity.parse(granularity)
        ticker = ticker.upper()
        duration = g.duration_ms

        existing = get_ticker_slice(session, ticker, interval_start, g.value)
        if existing is not None:
            logger.debug(f"Slice exists for {ticker} @ {interval_start} ({g.value})")
            return TickerAggregationResult(created=False, slice=TickerSlice.from_record(existing))

        occurrences = [
            o for o in get_occurrences_in_window(session, interval_start, interval_start + duration)
            if ticker in (o.mapped_tickers or [])
        ]

        if not occurrences:
            logger.debug(f"No occurrences for {ticker} @ {interval_start} ({g.value})")
            return TickerAggregationResult(
                created=False,
                slice=TickerSlice(ticker=ticker, interval_start=interval_start, granularity=g.value),
            )

        aggregated = aggregate_sentiment([
            SentimentInput(
                positive=o.sentiment_positive,
                negative=o.sentiment_negative,
                neutral=o.sentiment_neutral,
                mixed=o.sentiment_mixed,
                confidence=o.sentiment_confidence,
                weight=o.engagement_weight,
            )
            for o in occurrences
        ])

        total_mentions = len(occurrences)

        previous = get_ticker_slice(session, ticker, interval_start - duration, g.value)
        previous_mentions = previous.total_mentions if previous is not None else 0
        previous_velocity = previous.velocity if previous is not None else 0.0

        velocity = calculate_velocity(total_mentions, previous_mentions)
        acceleration = calculate_acceleration(velocity, previous_velocity)

        now = self.clock.now_ms()
        record = TickerSentimentSlice(
            ticker=ticker,
            interval_start=interval_start,
            granularity=g.value,
            weighted_sentiment=aggregated.weighted_score,
            sentiment_confidence=aggregated.avg_confidence,
            raw_counts={
                'positive': round(aggregated.positive * total_mentions),
                'negative': round(aggregated.negative * total_mentions),
                'neutral': round(aggregated.neutral * total_mentions),
                'mixed': round(aggregated.mixed * total_mentions),
            },
            total_mentions=total_mentions,
            engagement_sum=sum(o.engagement_weight for o in occurrences),
            unique_posts=len({o.post_id for o in occurrences}),
            unique_sources=len({o.subreddit for o in occurrences}),
            velocity=velocity,
            acceleration=acceleration,
            computed_at=now,
            created_at=now,
        )

        try:
            with session.begin_nested():
                insert_ticker_slice(session, record)
        except IntegrityError:
            # Lost a race for the same key; the other writer's slice wins.
            winner = get_ticker_slice(session, ticker, interval_start, g.value)
            if winner is None:
                raise
            return TickerAggregationResult(created=False, slice=TickerSlice.from_record(winner))

        logger.info(
            f"Created slice {ticker} @ {interval_start} ({g.value}): "
            f"{total_mentions} mentions, sentiment {aggregated.weighted_score:.3f}"
        )
        return TickerAggregationResult(created=True, slice=TickerSlice.from_record(record))

    # -------------------------------------------------------------------------
    # Index snapshots
    # -------------------------------------------------------------------------

    def aggregate_index_sentiment(
        self,
        session: Session,
        timestamp: int,
        granularity: Union[str, Granularity],
        tickers: Optional[Sequence[str]] = None
    ) -> IndexAggregationResult:
        """
        Aggregate all ticker slices at one bucket into an index snapshot.

        Args:
            session: Database session.
            timestamp: Bucket start (ms).
            granularity: Bucket size.
            tickers: Restrict the basket to these tickers. Default: all slices.

        Returns:
            created=True with the new snapshot, created=False with the
            existing snapshot, or created=False with a zero low-signal
            snapshot when there are no slices.
        """
        g = Granularity.parse(granularity)

        existing = get_index_snapshot(session, timestamp, g.value, self.index_name)
        if existing is not None:
            logger.debug(f"Index snapshot exists @ {timestamp} ({g.value})")
            return IndexAggregationResult(created=False, snapshot=IndexSnapshot.from_record(existing))

        slices = get_slices_at(session, timestamp, g.value, tickers)

        if not slices:
            logger.debug(f"No ticker slices @ {timestamp} ({g.value})")
            return IndexAggregationResult(
                created=False,
                snapshot=IndexSnapshot(index_name=self.index_name, timestamp=timestamp, granularity=g.value),
            )

        symbols = [s.ticker for s in slices]
        sentiments = [s.weighted_sentiment for s in slices]
        weights = [self.kb.get_market_cap_weight(symbol) for symbol in symbols]

        total_weight = sum(weights)
        index_sentiment = (
            sum(s * w for s, w in zip(sentiments, weights)) / total_weight
            if total_weight > 0 else 0.0
        )
        breadth = calculate_breadth(sentiments)
        dispersion = calculate_dispersion(sentiments)
        regime = classify_regime(len(slices), index_sentiment, breadth)
        contributors = rank_contributors(sentiments, symbols, weights, self.TOP_CONTRIBUTORS)

        record = IndexSentimentSnapshot(
            index_name=self.index_name,
            timestamp=timestamp,
            granularity=g.value,
            index_weighted_sentiment=index_sentiment,
            breadth=breadth,
            dispersion=dispersion,
            regime_tag=regime,
            top_contributors=contributors,
            total_mentions=sum(s.total_mentions for s in slices),
            total_engagement=sum(s.engagement_sum for s in slices),
            active_tickers_count=len(slices),
            created_at=self.clock.now_ms(),
        )

        try:
            with session.begin_nested():
                insert_index_snapshot(session, record)
        except IntegrityError:
            winner = get_index_snapshot(session, timestamp, g.value, self.index_name)
            if winner is None:
                raise
            return IndexAggregationResult(created=False, snapshot=IndexSnapshot.from_record(winner))

        logger.info(
            f"Created {self.index_name} snapshot @ {timestamp} ({g.value}): "
            f"{len(slices)} tickers, regime {regime}"
        )
        return IndexAggregationResult(created=True, snapshot=IndexSnapshot.from_record(record))

    # -------------------------------------------------------------------------
    # Batch
    # -------------------------------------------------------------------------

    def batch_aggregate_sentiment(
        self,
        tickers: Sequence[str],
        start_ms: int,
        end_ms: int,
        granularity: Union[str, Granularity]
    ) -> BatchPlan:
        """Plan the buckets for a batch; callers fan out the actual work."""
        return plan_batch_aggregation(tickers, start_ms, end_ms, granularity)

    def run_batch(
        self,
        session: Session,
        tickers: Sequence[str],
        start_ms: int,
        end_ms: int,
        granularity: Union[str, Granularity]
    ) -> Dict[str, int]:
        """
        Run ticker then index aggregation for every planned bucket.

        Returns:
            Counts of slices and snapshots created.
        """
        plan = plan_batch_aggregation(tickers, start_ms, end_ms, granularity)
        slices_created = 0
        snapshots_created = 0

        for interval_start in plan.intervals:
            for ticker in plan.tickers:
                if self.aggregate_ticker_sentiment(session, ticker, interval_start, plan.granularity).created:
                    slices_created += 1
            if self.aggregate_index_sentiment(session, interval_start, plan.granularity, plan.tickers).created:
                snapshots_created += 1

        logger.info(
            f"Batch over {plan.intervals_processed} intervals: "
            f"{slices_created} slices, {snapshots_created} snapshots created"
        )
        return {
            'intervals_processed': plan.intervals_processed,
            'slices_created': slices_created,
            'snapshots_created': snapshots_created,
        }
