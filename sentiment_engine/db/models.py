"""
SQLAlchemy ORM models for the sentiment & keyword graph engine.

Provides 5 core models:
- FinanceEntity: Reference table for tracked securities
- KeywordOccurrence: One keyword appearing in one post (immutable)
- TickerSentimentSlice: Per-ticker sentiment over one time bucket
- IndexSentimentSnapshot: Basket-level sentiment over one time bucket
- KeywordGraphEdge: Co-occurrence relationship between two keywords

All timestamps are epoch milliseconds stored as BIGINT.
"""

from sqlalchemy import (
    Column, Integer, BigInteger, String, Float, Boolean,
    JSON, UniqueConstraint, Index, CheckConstraint
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class FinanceEntity(Base):
    """
    Canonical record for a tradable security.

    Entities are never deleted, only deactivated.

    Attributes:
        id: Primary key
        entity_id: Stable identifier (e.g., 'ticker:AAPL')
        entity_type: ticker, company, executive, product or sector
        canonical_symbol: Ticker symbol, unique
        name: Display name
        aliases: Ordered list of informal names
        sector: Industry sector
        industry: Industry within the sector
        active: Whether the entity is resolvable
        kb_version: Knowledge-base version that last wrote the record
        created_at: Creation time (ms)
        updated_at: Last update time (ms)
    """
    __tablename__ = 'finance_entities'

    id = Column(Integer, primary_key=True, autoincrement=True)
    entity_id = Column(String(50), unique=True, nullable=False)
    entity_type = Column(String(20), nullable=False, default='ticker', index=True)
    canonical_symbol = Column(String(20), unique=True, nullable=False, index=True)
    name = Column(String(255), nullable=False)
    aliases = Column(JSON, nullable=False, default=list)
    sector = Column(String(100), nullable=True)
    industry = Column(String(100), nullable=True)
    active = Column(Boolean, default=True, nullable=False)
    kb_version = Column(String(20), nullable=False)
    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<FinanceEntity(symbol='{self.canonical_symbol}', active={self.active})>"


class KeywordOccurrence(Base):
    """
    One keyword (or ticker) appearing in one post at one instant.

    The sentiment snapshot is stored flat: the three primary class
    probabilities sum to roughly 1.

    Attributes:
        keyword: Raw keyword text as seen in the post
        keyword_id: Normalized keyword (graph node id)
        post_id: Source post id (co-occurrence unit)
        subreddit: Source community
        occurrence_time: Post's observed time (ms), not compute time
        sentiment_*: Snapshot probabilities and confidence in [0, 1]
        engagement_weight: Relative weight from the engagement scorer
        post_score / comment_count / upvote_ratio: Raw post metrics
        mapped_tickers: Ticker symbols the keyword resolved to
        in_title / in_body: Provenance flags
    """
    __tablename__ = 'keyword_occurrences'

    id = Column(Integer, primary_key=True, autoincrement=True)
    keyword = Column(String(255), nullable=False)
    keyword_id = Column(String(255), nullable=False, index=True)
    post_id = Column(String(100), nullable=False, index=True)
    subreddit = Column(String(100), nullable=False)
    occurrence_time = Column(BigInteger, nullable=False, index=True)

    sentiment_positive = Column(Float, default=0.0, nullable=False)
    sentiment_negative = Column(Float, default=0.0, nullable=False)
    sentiment_neutral = Column(Float, default=1.0, nullable=False)
    sentiment_mixed = Column(Float, default=0.0, nullable=False)
    sentiment_confidence = Column(Float, default=0.0, nullable=False)

    engagement_weight = Column(Float, default=0.0, nullable=False)
    post_score = Column(Integer, default=0)
    comment_count = Column(Integer, default=0)
    upvote_ratio = Column(Float, default=0.0)

    mapped_tickers = Column(JSON, nullable=False, default=list)
    in_title = Column(Boolean, default=False, nullable=False)
    in_body = Column(Boolean, default=False, nullable=False)
    created_at = Column(BigInteger, nullable=False)

    __table_args__ = (
        Index('ix_occurrence_keyword_post', 'keyword_id', 'post_id'),
    )

    @property
    def raw_sentiment(self) -> float:
        """Unweighted positive minus negative for this occurrence."""
        return self.sentiment_positive - self.sentiment_negative

    def __repr__(self) -> str:
        return f"<KeywordOccurrence(keyword='{self.keyword_id}', post='{self.post_id}')>"


class TickerSentimentSlice(Base):
    """
    Aggregated sentiment for one (ticker, interval_start, granularity).

    Attributes:
        weighted_sentiment: Confidence and engagement weighted score [-1, 1]
        sentiment_confidence: Unweighted mean confidence of the inputs
        raw_counts: Approximate class counts {positive, negative, neutral, mixed}
        total_mentions: Number of matching occurrences
        engagement_sum: Sum of engagement weights
        unique_posts: Distinct posts
        unique_sources: Distinct subreddits
        velocity: Relative change in mentions vs the previous bucket
        acceleration: Change in velocity vs the previous bucket
        computed_at: When the aggregation ran (ms)
    """
    __tablename__ = 'ticker_sentiment_slices'

    id = Column(Integer, primary_key=True, autoincrement=True)
    ticker = Column(String(20), nullable=False, index=True)
    interval_start = Column(BigInteger, nullable=False)
    granularity = Column(String(5), nullable=False)

    weighted_sentiment = Column(Float, nullable=False)
    sentiment_confidence = Column(Float, nullable=False)
    raw_counts = Column(JSON, nullable=False)

    total_mentions = Column(Integer, nullable=False)
    engagement_sum = Column(Float, nullable=False)
    unique_posts = Column(Integer, nullable=False)
    unique_sources = Column(Integer, nullable=False)

    velocity = Column(Float, nullable=False, default=0.0)
    acceleration = Column(Float, nullable=False, default=0.0)

    computed_at = Column(BigInteger, nullable=False)
    created_at = Column(BigInteger, nullable=False)

    __table_args__ = (
        UniqueConstraint('ticker', 'interval_start', 'granularity', name='uq_slice_ticker_interval'),
        Index('ix_slice_interval_granularity', 'interval_start', 'granularity'),
    )

    def __repr__(self) -> str:
        return (
            f"<TickerSentimentSlice(ticker='{self.ticker}', start={self.interval_start}, "
            f"granularity='{self.granularity}', sentiment={self.weighted_sentiment:.2f})>"
        )


class IndexSentimentSnapshot(Base):
    """
    Basket-level sentiment for one (timestamp, granularity).

    Attributes:
        index_name: Basket identifier (default 'nasdaq100')
        index_weighted_sentiment: Market-cap weighted mean sentiment
        breadth: Fraction of tickers with positive sentiment
        dispersion: Population std-dev of ticker sentiments
        regime_tag: bullish, bearish, uncertain or low-signal
        top_contributors: Up to 5 {ticker, contribution, sentiment}
        total_mentions / total_engagement: Sums over the ticker slices
        active_tickers_count: Number of contributing tickers
    """
    __tablename__ = 'index_sentiment_snapshots'

    id = Column(Integer, primary_key=True, autoincrement=True)
    index_name = Column(String(50), nullable=False, default='nasdaq100')
    timestamp = Column(BigInteger, nullable=False)
    granularity = Column(String(5), nullable=False)

    index_weighted_sentiment = Column(Float, nullable=False)
    breadth = Column(Float, nullable=False)
    dispersion = Column(Float, nullable=False)
    regime_tag = Column(String(20), nullable=False)
    top_contributors = Column(JSON, nullable=False, default=list)

    total_mentions = Column(Integer, nullable=False)
    total_engagement = Column(Float, nullable=False)
    active_tickers_count = Column(Integer, nullable=False)

    created_at = Column(BigInteger, nullable=False)

    __table_args__ = (
        UniqueConstraint('index_name', 'timestamp', 'granularity', name='uq_index_snapshot_time'),
        Index('ix_index_granularity_time', 'granularity', 'timestamp'),
    )

    def __repr__(self) -> str:
        return (
            f"<IndexSentimentSnapshot(ts={self.timestamp}, granularity='{self.granularity}', "
            f"regime='{self.regime_tag}')>"
        )


class KeywordGraphEdge(Base):
    """
    Undirected co-occurrence edge stored with source < target.

    Attributes:
        window_start / window_length: Scope of the edge (ms)
        co_occurrence_count: Posts containing both keywords
        source_total_count / target_total_count: Occurrences of each endpoint in-window
        strength: Jaccard similarity
        pmi_score: Pointwise mutual information (log2)
        jaccard_score: Same value as strength, kept for queries
        finance_relevance_score: 0.5 / 0.8 / 1.0 or None
        shared_tickers: Tickers common to both endpoints or None
    """
    __tablename__ = 'keyword_graph_edges'

    id = Column(Integer, primary_key=True, autoincrement=True)
    source_keyword = Column(String(255), nullable=False, index=True)
    target_keyword = Column(String(255), nullable=False, index=True)
    window_start = Column(BigInteger, nullable=False, index=True)
    window_length = Column(BigInteger, nullable=False)

    co_occurrence_count = Column(Integer, nullable=False)
    source_total_count = Column(Integer, nullable=False)
    target_total_count = Column(Integer, nullable=False)

    strength = Column(Float, nullable=False, index=True)
    pmi_score = Column(Float, nullable=False)
    jaccard_score = Column(Float, nullable=False)

    finance_relevance_score = Column(Float, nullable=True, index=True)
    shared_tickers = Column(JSON, nullable=True)

    created_at = Column(BigInteger, nullable=False)
    updated_at = Column(BigInteger, nullable=False)

    __table_args__ = (
        UniqueConstraint('source_keyword', 'target_keyword', 'window_start', name='uq_edge_pair_window'),
        CheckConstraint('source_keyword < target_keyword', name='ck_edge_canonical_order'),
    )

    def __repr__(self) -> str:
        return (
            f"<KeywordGraphEdge('{self.source_keyword}' - '{self.target_keyword}', "
            f"strength={self.strength:.2f})>"
        )
