"""
Sentiment API routes.

Provides endpoints for ticker and index aggregation, stored slices,
ticker mentions and finance-trending keywords.
"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.deps import get_clock, get_database
from api.schemas import (
    BatchAggregationRequest,
    BatchAggregationResponse,
    ContributorModel,
    IndexAggregationRequest,
    IndexAggregationResponse,
    IndexHistoryResponse,
    IndexSnapshotModel,
    KeywordTrendModel,
    TickerAggregationRequest,
    TickerAggregationResponse,
    TickerHistoryResponse,
    TickerMentionsResponse,
    TickerSliceModel,
    TrendingKeywordsResponse,
)
from config import Config
from sentiment_engine.clock import Clock
from sentiment_engine.db import DatabaseManager, get_index_snapshots_df, get_ticker_mentions, get_ticker_slices_df
from sentiment_engine.granularity import Granularity, HOUR_MS
from sentiment_engine.sentiment import KeywordTrendAnalyzer, SentimentAggregator, plan_batch_aggregation

router = APIRouter()


@router.post("/ticker", response_model=TickerAggregationResponse)
def aggregate_ticker(
    request: TickerAggregationRequest,
    db: DatabaseManager = Depends(get_database),
    clock: Clock = Depends(get_clock)
):
    """
    Aggregate one ticker over one bucket.

    Returns the existing slice unchanged if the bucket was already aggregated.
    """
    aggregator = SentimentAggregator(clock=clock)
    with db.session() as session:
        result = aggregator.aggregate_ticker_sentiment(
            session, request.ticker, request.interval_start, request.granularity
        )
    return TickerAggregationResponse(created=result.created, slice=TickerSliceModel(**asdict(result.slice)))


@router.post("/index", response_model=IndexAggregationResponse)
def aggregate_index(
    request: IndexAggregationRequest,
    db: DatabaseManager = Depends(get_database),
    clock: Clock = Depends(get_clock)
):
    """Aggregate the ticker slices of one bucket into an index snapshot."""
    aggregator = SentimentAggregator(clock=clock)
    with db.session() as session:
        result = aggregator.aggregate_index_sentiment(
            session, request.timestamp, request.granularity, request.tickers
        )
    return IndexAggregationResponse(created=result.created, snapshot=IndexSnapshotModel(**asdict(result.snapshot)))


@router.post("/batch", response_model=BatchAggregationResponse)
def plan_batch(request: BatchAggregationRequest):
    """
    Plan the buckets of a time range.

    Nothing is aggregated; callers run the ticker and index endpoints per bucket.
    """
    plan = plan_batch_aggregation(request.tickers, request.start_time, request.end_time, request.granularity)
    return BatchAggregationResponse(
        intervals_processed=plan.intervals_processed,
        intervals=plan.intervals,
        message=plan.message,
    )


@router.get("/ticker/{ticker}", response_model=TickerHistoryResponse)
def get_ticker_history(
    ticker: str,
    granularity: str = Query(default=Config.DEFAULT_GRANULARITY, description="Bucket size"),
    since: Optional[int] = Query(default=None, description="Earliest bucket start (epoch ms)"),
    db: DatabaseManager = Depends(get_database)
):
    """
    Get stored slices for a ticker.
    """
    ticker = ticker.upper()
    g = Granularity.parse(granularity)

    with db.session() as session:
        df = get_ticker_slices_df(session, ticker, g.value, since)

    if df.empty:
        raise HTTPException(
            status_code=404,
            detail=f"No sentiment slices found for ticker: {ticker}"
        )

    data_points = []
    for _, row in df.iterrows():
        data_points.append(TickerSliceModel(
            ticker=ticker,
            interval_start=int(row["timestamp"]),
            granularity=g.value,
            sentiment=float(row["sentiment"]),
            confidence=float(row["confidence"]),
            mentions=int(row["mentions"]),
            engagement=float(row["engagement"]),
            velocity=float(row["velocity"]),
            acceleration=float(row["acceleration"]),
        ))

    return TickerHistoryResponse(
        ticker=ticker,
        granularity=g.value,
        data=data_points,
        count=len(data_points),
    )


@router.get("/ticker/{ticker}/mentions", response_model=TickerMentionsResponse)
def get_mentions(
    ticker: str,
    hours_back: int = Query(default=24, ge=1, le=24 * 30, description="Lookback in hours"),
    db: DatabaseManager = Depends(get_database),
    clock: Clock = Depends(get_clock)
):
    """Mentions of a ticker over the lookback window."""
    since = clock.now_ms() - hours_back * HOUR_MS
    with db.session() as session:
        mentions = get_ticker_mentions(session, ticker, since)
    return TickerMentionsResponse(**mentions)


@router.get("/index", response_model=IndexHistoryResponse)
def get_index_history(
    granularity: str = Query(default=Config.DEFAULT_GRANULARITY, description="Bucket size"),
    since: Optional[int] = Query(default=None, description="Earliest snapshot time (epoch ms)"),
    db: DatabaseManager = Depends(get_database)
):
    """
    Get stored index snapshots.
    """
    g = Granularity.parse(granularity)

    with db.session() as session:
        df = get_index_snapshots_df(session, g.value, since)

    data_points = []
    for _, row in df.iterrows():
        data_points.append(IndexSnapshotModel(
            index_name=SentimentAggregator.DEFAULT_INDEX_NAME,
            timestamp=int(row["timestamp"]),
            granularity=g.value,
            sentiment=float(row["sentiment"]),
            breadth=float(row["breadth"]),
            dispersion=float(row["dispersion"]),
            regime=row["regime"],
            top_contributors=[ContributorModel(**c) for c in (row["top_contributors"] or [])],
            mentions=int(row["mentions"]),
            engagement=float(row["engagement"]),
            active_tickers=int(row["active_tickers"]),
        ))

    return IndexHistoryResponse(granularity=g.value, data=data_points, count=len(data_points))


@router.get("/trending", response_model=TrendingKeywordsResponse)
def get_trending_keywords(
    granularity: str = Query(default=Config.DEFAULT_GRANULARITY, description="Bucket size"),
    periods: int = Query(default=24, ge=1, le=500, description="Number of buckets"),
    end_time: Optional[int] = Query(default=None, description="End of the last bucket (epoch ms)"),
    limit: int = Query(default=30, ge=1, le=200),
    min_finance_score: float = Query(default=0.5, ge=0.0, le=1.0),
    min_velocity: float = Query(default=0.0),
    trend_status: Optional[str] = Query(default=None),
    db: DatabaseManager = Depends(get_database),
    clock: Clock = Depends(get_clock)
):
    """Finance-relevant keywords ranked by relevance x engagement."""
    analyzer = KeywordTrendAnalyzer.from_config()
    end = end_time if end_time is not None else clock.now_ms()

    with db.session() as session:
        trends = analyzer.get_finance_trending_keywords(
            session, end, granularity, periods,
            limit=limit,
            min_finance_score=min_finance_score,
            min_velocity=min_velocity,
            trend_status=trend_status,
        )

    data = [
        KeywordTrendModel(
            keyword=t.keyword,
            tickers=t.tickers,
            finance_relevance=t.finance_relevance,
            sentiment=t.sentiment,
            velocity=t.velocity,
            status=t.status,
            performance_tier=t.performance_tier,
            engagement=t.engagement,
            mentions=t.total_occurrences,
        )
        for t in trends
    ]
    return TrendingKeywordsResponse(data=data, count=len(data))
