"""
Pydantic request and response models for the API.
"""

from typing import Optional, List
from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Health check response."""
    status: str = Field(..., description="Service health status")
    version: str = Field(default="1.0.0", description="API version")


class ErrorResponse(BaseModel):
    """Error response."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")


# =============================================================================
# Finance entities
# =============================================================================

class InitializeEntitiesRequest(BaseModel):
    """Seed finance entities from the knowledge base."""
    overwrite: bool = Field(default=False, description="Refresh entities that already exist")


class InitializeEntitiesResponse(BaseModel):
    """Seeding outcome; partial success is reported through errors."""
    entities_created: int = Field(..., description="Entities inserted")
    entities_updated: int = Field(..., description="Entities refreshed (overwrite only)")
    entities_deactivated: int = Field(default=0, description="Entities no longer in the knowledge base")
    errors: List[str] = Field(default_factory=list, description="Per-entity errors as 'SYMBOL: message'")


class CountItem(BaseModel):
    """Named count."""
    name: str = Field(..., description="Group name")
    count: int = Field(..., description="Number of entities")


class EntityStatsResponse(BaseModel):
    """Finance entity summary."""
    total_entities: int = Field(..., description="All stored entities")
    active_entities: int = Field(..., description="Entities currently resolvable")
    by_sector: List[CountItem] = Field(..., description="Entities per sector, largest first")
    by_type: List[CountItem] = Field(..., description="Entities per type, largest first")


# =============================================================================
# Sentiment aggregation
# =============================================================================

class TickerAggregationRequest(BaseModel):
    """Aggregate one ticker over one bucket."""
    ticker: str = Field(..., description="Ticker symbol")
    interval_start: int = Field(..., description="Bucket start (epoch ms)")
    granularity: str = Field(..., description="Bucket size: 5m, 15m, 1h, 4h or 1d")


class TickerSliceModel(BaseModel):
    """Ticker sentiment over one bucket."""
    ticker: str = Field(..., description="Ticker symbol")
    interval_start: int = Field(..., description="Bucket start (epoch ms)")
    granularity: str = Field(..., description="Bucket size")
    sentiment: float = Field(..., description="Weighted sentiment (-1 to 1)")
    confidence: float = Field(..., description="Mean input confidence")
    raw_counts: dict = Field(default_factory=dict, description="Rounded class counts")
    mentions: int = Field(..., description="Occurrences mapped to the ticker")
    engagement: float = Field(..., description="Sum of engagement weights")
    unique_posts: int = Field(default=0, description="Distinct posts")
    unique_sources: int = Field(default=0, description="Distinct subreddits")
    velocity: float = Field(..., description="Relative change in mentions")
    acceleration: float = Field(..., description="Change in velocity")


class TickerAggregationResponse(BaseModel):
    """Result of a ticker aggregation."""
    created: bool = Field(..., description="False for existing or empty buckets")
    slice: TickerSliceModel


class IndexAggregationRequest(BaseModel):
    """Aggregate ticker slices at one bucket into the index."""
    timestamp: int = Field(..., description="Bucket start (epoch ms)")
    granularity: str = Field(..., description="Bucket size: 5m, 15m, 1h, 4h or 1d")
    tickers: Optional[List[str]] = Field(None, description="Restrict the basket to these tickers")


class ContributorModel(BaseModel):
    """Top contributor to the index."""
    ticker: str = Field(..., description="Ticker symbol")
    contribution: float = Field(..., description="|sentiment x market-cap weight|")
    sentiment: float = Field(..., description="Ticker sentiment")


class IndexSnapshotModel(BaseModel):
    """Index sentiment over one bucket."""
    index_name: str = Field(..., description="Index name")
    timestamp: int = Field(..., description="Bucket start (epoch ms)")
    granularity: str = Field(..., description="Bucket size")
    sentiment: float = Field(..., description="Market-cap weighted sentiment")
    breadth: float = Field(..., description="Fraction of tickers with positive sentiment")
    dispersion: float = Field(..., description="Std. dev. of ticker sentiments")
    regime: str = Field(..., description="bullish, bearish, uncertain or low-signal")
    top_contributors: List[ContributorModel] = Field(default_factory=list, description="Top 5 contributors")
    mentions: int = Field(..., description="Total mentions")
    engagement: float = Field(..., description="Total engagement")
    active_tickers: int = Field(..., description="Tickers with a slice in the bucket")


class IndexAggregationResponse(BaseModel):
    """Result of an index aggregation."""
    created: bool = Field(..., description="False for existing or empty buckets")
    snapshot: IndexSnapshotModel


class BatchAggregationRequest(BaseModel):
    """Plan aggregation buckets for a time range."""
    tickers: List[str] = Field(..., description="Tickers to aggregate")
    start_time: int = Field(..., description="Range start (epoch ms, inclusive)")
    end_time: int = Field(..., description="Range end (epoch ms, exclusive)")
    granularity: str = Field(..., description="Bucket size: 5m, 15m, 1h, 4h or 1d")


class BatchAggregationResponse(BaseModel):
    """Planned buckets; nothing is aggregated by this call."""
    intervals_processed: int = Field(..., description="Number of buckets")
    intervals: List[int] = Field(..., description="Bucket start times (epoch ms)")
    message: str = Field(..., description="Human-readable summary")


class TickerHistoryResponse(BaseModel):
    """Stored slices for a ticker."""
    ticker: str = Field(..., description="Ticker symbol")
    granularity: str = Field(..., description="Bucket size")
    data: List[TickerSliceModel] = Field(..., description="Slices ordered by time")
    count: int = Field(..., description="Number of slices")


class IndexHistoryResponse(BaseModel):
    """Stored index snapshots."""
    granularity: str = Field(..., description="Bucket size")
    data: List[IndexSnapshotModel] = Field(..., description="Snapshots ordered by time")
    count: int = Field(..., description="Number of snapshots")


class SourceCount(BaseModel):
    subreddit: str = Field(..., description="Subreddit")
    mentions: int = Field(..., description="Mentions from this subreddit")


class MentionModel(BaseModel):
    post_id: str = Field(..., description="Post id")
    subreddit: str = Field(..., description="Subreddit")
    time: int = Field(..., description="Occurrence time (epoch ms)")
    sentiment: float = Field(..., description="Raw sentiment (positive - negative)")


class TickerMentionsResponse(BaseModel):
    """Mentions of a ticker since a point in time."""
    ticker: str = Field(..., description="Ticker symbol")
    total_mentions: int = Field(..., description="Occurrences mapped to the ticker")
    unique_posts: int = Field(..., description="Distinct posts")
    avg_sentiment: float = Field(..., description="Mean raw sentiment")
    top_sources: List[SourceCount] = Field(..., description="Top 5 subreddits")
    recent_occurrences: List[MentionModel] = Field(..., description="Most recent occurrences")


class KeywordTrendModel(BaseModel):
    """Derived keyword momentum."""
    keyword: str = Field(..., description="Normalized keyword")
    tickers: List[str] = Field(default_factory=list, description="Mapped tickers")
    finance_relevance: float = Field(..., description="Finance relevance prior")
    sentiment: float = Field(..., description="Weighted sentiment")
    velocity: float = Field(..., description="Relative change in the latest bucket")
    status: str = Field(..., description="Trend status")
    performance_tier: str = Field(..., description="Composite performance tier")
    engagement: float = Field(..., description="Sum of engagement weights")
    mentions: int = Field(..., description="Total occurrences")


class TrendingKeywordsResponse(BaseModel):
    """Finance-trending keywords."""
    data: List[KeywordTrendModel] = Field(..., description="Trends ranked by relevance x engagement")
    count: int = Field(..., description="Number of keywords")


# =============================================================================
# Keyword graph
# =============================================================================

class GraphBuildRequest(BaseModel):
    """Build the co-occurrence graph for one window."""
    window_start: int = Field(..., description="Window start (epoch ms)")
    window_length_ms: int = Field(..., description="Window length (ms)")
    min_co_occurrence: Optional[int] = Field(None, description="Minimum shared posts per edge")
    max_edges_per_node: Optional[int] = Field(None, description="Targets kept per source keyword")


class GraphBuildResponse(BaseModel):
    edges_created: int = Field(..., description="New edges")
    edges_updated: int = Field(default=0, description="Existing edges refreshed in place")
    keywords_processed: int = Field(..., description="Distinct keywords in the window")


class PruneRequest(BaseModel):
    """Delete weak edges."""
    min_strength: float = Field(..., description="Edges with lower strength are deleted")
    min_co_occurrence: int = Field(..., description="Edges with fewer co-occurrences are deleted")
    older_than_ms: Optional[int] = Field(None, description="Only edges whose window started this long ago")


class PruneResponse(BaseModel):
    edges_deleted: int = Field(..., description="Deleted edges")


class FinanceStatsResponse(BaseModel):
    """Finance subgraph of one window."""
    finance_edges: int = Field(..., description="Edges above the relevance threshold")
    finance_keywords: int = Field(..., description="Keywords touched by those edges")


class RelationshipModel(BaseModel):
    source: str = Field(..., description="Source keyword")
    target: str = Field(..., description="Target keyword")
    strength: float = Field(..., description="Jaccard strength")
    co_occurrences: int = Field(..., description="Shared posts")
    finance_relevance: Optional[float] = Field(None, description="Edge finance relevance")
    shared_tickers: Optional[List[str]] = Field(None, description="Tickers both keywords map to")
    window_start: int = Field(..., description="Window start (epoch ms)")


class RelationshipsResponse(BaseModel):
    keyword: str = Field(..., description="Queried keyword (normalized)")
    relationships: List[RelationshipModel] = Field(..., description="Strongest edges first")
    count: int = Field(..., description="Number of relationships")


# =============================================================================
# Posts
# =============================================================================

class PostIn(BaseModel):
    """One post from the ingestion feed."""
    id: str = Field(..., description="Post id")
    title: str = Field(default="", description="Post title")
    body: str = Field(default="", description="Post body")
    subreddit: str = Field(..., description="Source subreddit")
    score: int = Field(default=0, description="Net votes")
    num_comments: int = Field(default=0, description="Comment count")
    upvote_ratio: float = Field(default=0.0, ge=0.0, le=1.0, description="Upvote ratio")
    created_ms: int = Field(..., description="Post time (epoch ms)")
    keywords: List[str] = Field(default_factory=list, description="Feed-supplied keywords")
    sentiment: Optional[str] = Field(None, description="positive, negative, neutral or mixed")
    sentiment_confidence: float = Field(default=0.0, ge=0.0, le=1.0, description="Label confidence")


class PostsIngestRequest(BaseModel):
    posts: List[PostIn] = Field(..., description="Posts to ingest")


class PostsIngestResponse(BaseModel):
    posts_processed: int = Field(..., description="Posts read")
    occurrences_created: int = Field(..., description="Keyword occurrences stored")
