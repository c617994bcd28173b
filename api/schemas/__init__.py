"""
Pydantic schemas for API request/response models.
"""

from .responses import (
    HealthResponse,
    ErrorResponse,
    InitializeEntitiesRequest,
    InitializeEntitiesResponse,
    CountItem,
    EntityStatsResponse,
    TickerAggregationRequest,
    TickerSliceModel,
    TickerAggregationResponse,
    IndexAggregationRequest,
    ContributorModel,
    IndexSnapshotModel,
    IndexAggregationResponse,
    BatchAggregationRequest,
    BatchAggregationResponse,
    TickerHistoryResponse,
    IndexHistoryResponse,
    SourceCount,
    MentionModel,
    TickerMentionsResponse,
    KeywordTrendModel,
    TrendingKeywordsResponse,
    GraphBuildRequest,
    GraphBuildResponse,
    PruneRequest,
    PruneResponse,
    FinanceStatsResponse,
    RelationshipModel,
    RelationshipsResponse,
    PostIn,
    PostsIngestRequest,
    PostsIngestResponse,
)

__all__ = [
    "HealthResponse",
    "ErrorResponse",
    "InitializeEntitiesRequest",
    "InitializeEntitiesResponse",
    "CountItem",
    "EntityStatsResponse",
    "TickerAggregationRequest",
    "TickerSliceModel",
    "TickerAggregationResponse",
    "IndexAggregationRequest",
    "ContributorModel",
    "IndexSnapshotModel",
    "IndexAggregationResponse",
    "BatchAggregationRequest",
    "BatchAggregationResponse",
    "TickerHistoryResponse",
    "IndexHistoryResponse",
    "SourceCount",
    "MentionModel",
    "TickerMentionsResponse",
    "KeywordTrendModel",
    "TrendingKeywordsResponse",
    "GraphBuildRequest",
    "GraphBuildResponse",
    "PruneRequest",
    "PruneResponse",
    "FinanceStatsResponse",
    "RelationshipModel",
    "RelationshipsResponse",
    "PostIn",
    "PostsIngestRequest",
    "PostsIngestResponse",
]
