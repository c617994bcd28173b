"""
Database CRUD operations for the sentiment engine.

Lookups by natural key back the idempotency checks of the aggregator and
graph builder; read-side queries return DataFrames.
"""

from typing import Optional, List, Iterable, Dict, Any

import pandas as pd
from sqlalchemy import and_, or_, func
from sqlalchemy.orm import Session

from .models import (
    FinanceEntity, KeywordOccurrence, TickerSentimentSlice,
    IndexSentimentSnapshot, KeywordGraphEdge
)


# =============================================================================
# Finance Entity Operations
# =============================================================================

def get_entity_by_symbol(session: Session, symbol: str) -> Optional[FinanceEntity]:
    """Get entity by canonical symbol."""
    return session.query(FinanceEntity).filter(
        FinanceEntity.canonical_symbol == symbol.upper()
    ).first()


def get_all_entities(
    session: Session,
    active_only: bool = False,
    entity_type: Optional[str] = None
) -> List[FinanceEntity]:
    """
    Get finance entities.

    Args:
        session: Database session.
        active_only: Only return active entities.
        entity_type: Filter by entity type (ticker, company, ...).

    Returns:
        List of FinanceEntity objects ordered by symbol.
    """
    query = session.query(FinanceEntity)
    if active_only:
        query = query.filter(FinanceEntity.active == True)  # noqa: E712
    if entity_type is not None:
        query = query.filter(FinanceEntity.entity_type == entity_type)
    return query.order_by(FinanceEntity.canonical_symbol).all()


# =============================================================================
# Keyword Occurrence Operations
# =============================================================================

def insert_occurrences(session: Session, occurrences: Iterable[KeywordOccurrence]) -> int:
    """
    Insert occurrence records.

    Occurrences are immutable; there is no update path.

    Returns:
        Number of records inserted.
    """
    count = 0
    for occurrence in occurrences:
        session.add(occurrence)
        count += 1
    session.flush()
    return count


def get_occurrences_in_window(
    session: Session,
    start_ms: int,
    end_ms: int
) -> List[KeywordOccurrence]:
    """Get occurrences with ``start_ms <= occurrence_time < end_ms``."""
    return session.query(KeywordOccurrence).filter(
        and_(
            KeywordOccurrence.occurrence_time >= start_ms,
            KeywordOccurrence.occurrence_time < end_ms
        )
    ).order_by(KeywordOccurrence.occurrence_time, KeywordOccurrence.id).all()


def get_ticker_mentions(
    session: Session,
    ticker: str,
    since_ms: int,
    recent_limit: int = 10
) -> Dict[str, Any]:
    """
    Summarize mentions of a ticker since a point in time.

    Args:
        session: Database session.
        ticker: Ticker symbol.
        since_ms: Lower bound on occurrence time (inclusive).
        recent_limit: Number of recent occurrences to include.

    Returns:
        Dictionary with total mentions, unique posts, average raw sentiment,
        top 5 sources and the most recent occurrences.
    """
    ticker = ticker.upper()
    candidates = session.query(KeywordOccurrence).filter(
        KeywordOccurrence.occurrence_time >= since_ms
    ).order_by(KeywordOccurrence.occurrence_time).all()
    occurrences = [o for o in candidates if ticker in (o.mapped_tickers or [])]

    if not occurrences:
        return {
            'ticker': ticker,
            'total_mentions': 0,
            'unique_posts': 0,
            'avg_sentiment': 0.0,
            'top_sources': [],
            'recent_occurrences': [],
        }

    df = pd.DataFrame([{
        'post_id': o.post_id,
        'subreddit': o.subreddit,
        'time': o.occurrence_time,
        'sentiment': o.raw_sentiment,
    } for o in occurrences])

    source_counts = df['subreddit'].value_counts().head(5)
    recent = df.tail(recent_limit).iloc[::-1]

    return {
        'ticker': ticker,
        'total_mentions': len(df),
        'unique_posts': int(df['post_id'].nunique()),
        'avg_sentiment': float(df['sentiment'].mean()),
        'top_sources': [
            {'subreddit': name, 'mentions': int(count)}
            for name, count in source_counts.items()
        ],
        'recent_occurrences': recent.to_dict(orient='records'),
    }


# =============================================================================
# Ticker Sentiment Slice Operations
# =============================================================================

def get_ticker_slice(
    session: Session,
    ticker: str,
    interval_start: int,
    granularity: str
) -> Optional[TickerSentimentSlice]:
    """Get the slice for an exact (ticker, interval_start, granularity) key."""
    return session.query(TickerSentimentSlice).filter(
        and_(
            TickerSentimentSlice.ticker == ticker,
            TickerSentimentSlice.interval_start == interval_start,
            TickerSentimentSlice.granularity == granularity
        )
    ).first()


def insert_ticker_slice(session: Session, slice_: TickerSentimentSlice) -> TickerSentimentSlice:
    """Insert a new slice. The unique constraint rejects duplicates."""
    session.add(slice_)
    session.flush()
    return slice_


def get_slices_at(
    session: Session,
    interval_start: int,
    granularity: str,
    tickers: Optional[Iterable[str]] = None
) -> List[TickerSentimentSlice]:
    """Get all ticker slices for one bucket, optionally restricted to tickers."""
    query = session.query(TickerSentimentSlice).filter(
        and_(
            TickerSentimentSlice.interval_start == interval_start,
            TickerSentimentSlice.granularity == granularity
        )
    )
    if tickers is not None:
        query = query.filter(TickerSentimentSlice.ticker.in_([t.upper() for t in tickers]))
    return query.order_by(TickerSentimentSlice.ticker).all()


def get_ticker_slices_df(
    session: Session,
    ticker: str,
    granularity: str,
    since_ms: Optional[int] = None
) -> pd.DataFrame:
    """
    Get a ticker's slices as a DataFrame ordered by time.

    Args:
        session: Database session.
        ticker: Ticker symbol.
        granularity: Bucket size.
        since_ms: Lower bound on interval start (inclusive).

    Returns:
        DataFrame with timestamp, sentiment, confidence, mentions,
        engagement, velocity and acceleration columns.
    """
    query = session.query(TickerSentimentSlice).filter(
        and_(
            TickerSentimentSlice.ticker == ticker.upper(),
            TickerSentimentSlice.granularity == granularity
        )
    )
    if since_ms is not None:
        query = query.filter(TickerSentimentSlice.interval_start >= since_ms)

    records = query.order_by(TickerSentimentSlice.interval_start).all()

    if not records:
        return pd.DataFrame(columns=[
            'timestamp', 'sentiment', 'confidence', 'mentions',
            'engagement', 'velocity', 'acceleration'
        ])

    data = [{
        'timestamp': r.interval_start,
        'sentiment': r.weighted_sentiment,
        'confidence': r.sentiment_confidence,
        'mentions': r.total_mentions,
        'engagement': r.engagement_sum,
        'velocity': r.velocity,
        'acceleration': r.acceleration
    } for r in records]

    return pd.DataFrame(data)


# =============================================================================
# Index Snapshot Operations
# =============================================================================

def get_index_snapshot(
    session: Session,
    timestamp: int,
    granularity: str,
    index_name: str = 'nasdaq100'
) -> Optional[IndexSentimentSnapshot]:
    """Get the snapshot for an exact (index, timestamp, granularity) key."""
    return session.query(IndexSentimentSnapshot).filter(
        and_(
            IndexSentimentSnapshot.index_name == index_name,
            IndexSentimentSnapshot.timestamp == timestamp,
            IndexSentimentSnapshot.granularity == granularity
        )
    ).first()


def insert_index_snapshot(
    session: Session,
    snapshot: IndexSentimentSnapshot
) -> IndexSentimentSnapshot:
    """Insert a new index snapshot."""
    session.add(snapshot)
    session.flush()
    return snapshot


def get_index_snapshots_df(
    session: Session,
    granularity: str,
    since_ms: Optional[int] = None,
    index_name: str = 'nasdaq100'
) -> pd.DataFrame:
    """Get index snapshots as a DataFrame ordered by time."""
    query = session.query(IndexSentimentSnapshot).filter(
        and_(
            IndexSentimentSnapshot.index_name == index_name,
            IndexSentimentSnapshot.granularity == granularity
        )
    )
    if since_ms is not None:
        query = query.filter(IndexSentimentSnapshot.timestamp >= since_ms)

    records = query.order_by(IndexSentimentSnapshot.timestamp).all()

    if not records:
        return pd.DataFrame(columns=[
            'timestamp', 'sentiment', 'breadth', 'dispersion', 'regime',
            'top_contributors', 'mentions', 'engagement', 'active_tickers'
        ])

    data = [{
        'timestamp': r.timestamp,
        'sentiment': r.index_weighted_sentiment,
        'breadth': r.breadth,
        'dispersion': r.dispersion,
        'regime': r.regime_tag,
        'top_contributors': r.top_contributors,
        'mentions': r.total_mentions,
        'engagement': r.total_engagement,
        'active_tickers': r.active_tickers_count
    } for r in records]

    return pd.DataFrame(data)


# =============================================================================
# Graph Edge Operations
# =============================================================================

def get_edge(
    session: Session,
    source_keyword: str,
    target_keyword: str,
    window_start: int
) -> Optional[KeywordGraphEdge]:
    """Get the edge for an exact (source, target, window_start) key."""
    return session.query(KeywordGraphEdge).filter(
        and_(
            KeywordGraphEdge.source_keyword == source_keyword,
            KeywordGraphEdge.target_keyword == target_keyword,
            KeywordGraphEdge.window_start == window_start
        )
    ).first()


def insert_edge(session: Session, edge: KeywordGraphEdge) -> KeywordGraphEdge:
    """Insert a new edge."""
    session.add(edge)
    session.flush()
    return edge


def get_weak_edges(
    session: Session,
    min_strength: float,
    min_co_occurrence: int,
    window_start_before: Optional[int] = None
) -> List[KeywordGraphEdge]:
    """
    Get edges below either threshold.

    Args:
        session: Database session.
        min_strength: Edges with strength below this are weak.
        min_co_occurrence: Edges with fewer co-occurrences are weak.
        window_start_before: Only edges whose window starts at or before this time.
    """
    query = session.query(KeywordGraphEdge).filter(
        or_(
            KeywordGraphEdge.strength < min_strength,
            KeywordGraphEdge.co_occurrence_count < min_co_occurrence
        )
    )
    if window_start_before is not None:
        query = query.filter(KeywordGraphEdge.window_start <= window_start_before)
    return query.all()


def get_finance_edges(
    session: Session,
    window_start: int,
    min_finance_relevance: float
) -> List[KeywordGraphEdge]:
    """Get edges of one window with finance relevance at or above a threshold."""
    return session.query(KeywordGraphEdge).filter(
        and_(
            KeywordGraphEdge.window_start == window_start,
            KeywordGraphEdge.finance_relevance_score.isnot(None),
            KeywordGraphEdge.finance_relevance_score >= min_finance_relevance
        )
    ).all()


def get_keyword_edges(
    session: Session,
    keyword: str,
    window_start_min: int
) -> List[KeywordGraphEdge]:
    """Get edges touching a keyword (as source or target) in recent windows."""
    return session.query(KeywordGraphEdge).filter(
        and_(
            or_(
                KeywordGraphEdge.source_keyword == keyword,
                KeywordGraphEdge.target_keyword == keyword
            ),
            KeywordGraphEdge.window_start >= window_start_min
        )
    ).all()


def get_edges_df(session: Session, window_start: int) -> pd.DataFrame:
    """Get all edges of one window as a DataFrame sorted by strength."""
    records = session.query(KeywordGraphEdge).filter(
        KeywordGraphEdge.window_start == window_start
    ).order_by(KeywordGraphEdge.strength.desc()).all()

    if not records:
        return pd.DataFrame(columns=[
            'source', 'target', 'co_occurrences', 'strength', 'pmi',
            'finance_relevance', 'shared_tickers'
        ])

    data = [{
        'source': r.source_keyword,
        'target': r.target_keyword,
        'co_occurrences': r.co_occurrence_count,
        'strength': r.strength,
        'pmi': r.pmi_score,
        'finance_relevance': r.finance_relevance_score,
        'shared_tickers': r.shared_tickers
    } for r in records]

    return pd.DataFrame(data)


def count_edges(session: Session) -> int:
    """Total number of stored edges."""
    return session.query(func.count(KeywordGraphEdge.id)).scalar() or 0
