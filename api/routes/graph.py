"""
Keyword graph API routes.

Provides endpoints for building, pruning and querying the co-occurrence graph.
"""

from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends, Query

from api.deps import get_clock, get_database
from api.schemas import (
    FinanceStatsResponse,
    GraphBuildRequest,
    GraphBuildResponse,
    PruneRequest,
    PruneResponse,
    RelationshipModel,
    RelationshipsResponse,
)
from sentiment_engine.clock import Clock
from sentiment_engine.db import DatabaseManager
from sentiment_engine.granularity import MINUTE_MS
from sentiment_engine.graph import GraphBuildOptions, KeywordGraphBuilder

router = APIRouter()


def _builder(clock: Clock) -> KeywordGraphBuilder:
    return KeywordGraphBuilder(GraphBuildOptions.from_config(), clock=clock)


@router.post("/build", response_model=GraphBuildResponse)
def build_graph(
    request: GraphBuildRequest,
    db: DatabaseManager = Depends(get_database),
    clock: Clock = Depends(get_clock)
):
    """
    Build or refresh the edges of one window.
    """
    with db.session() as session:
        result = _builder(clock).build_cooccurrence_graph(
            session,
            request.window_start,
            request.window_length_ms,
            min_co_occurrence=request.min_co_occurrence,
            max_edges_per_node=request.max_edges_per_node,
        )
    return GraphBuildResponse(**asdict(result))


@router.post("/prune", response_model=PruneResponse)
def prune_graph(
    request: PruneRequest,
    db: DatabaseManager = Depends(get_database),
    clock: Clock = Depends(get_clock)
):
    """Delete edges below either threshold."""
    with db.session() as session:
        deleted = _builder(clock).prune_graph_edges(
            session, request.min_strength, request.min_co_occurrence, request.older_than_ms
        )
    return PruneResponse(edges_deleted=deleted)


@router.get("/finance-stats", response_model=FinanceStatsResponse)
def finance_stats(
    window_start: int = Query(..., description="Window start (epoch ms)"),
    min_finance_relevance: Optional[float] = Query(default=None, ge=0.0, le=1.0),
    db: DatabaseManager = Depends(get_database),
    clock: Clock = Depends(get_clock)
):
    """Finance subgraph size for one window."""
    with db.session() as session:
        stats = _builder(clock).get_finance_subgraph_stats(session, window_start, min_finance_relevance)
    return FinanceStatsResponse(**asdict(stats))


@router.get("/relationships/{keyword}", response_model=RelationshipsResponse)
def keyword_relationships(
    keyword: str,
    window_minutes: int = Query(default=60, ge=1, description="Lookback in minutes"),
    limit: int = Query(default=20, ge=1, le=200),
    finance_only: bool = Query(default=False),
    db: DatabaseManager = Depends(get_database),
    clock: Clock = Depends(get_clock)
):
    """
    Strongest co-occurrence edges touching a keyword in recent windows.
    """
    window_start_min = clock.now_ms() - window_minutes * MINUTE_MS
    with db.session() as session:
        relationships = _builder(clock).get_keyword_relationships(
            session, keyword, window_start_min, limit=limit, finance_only=finance_only
        )

    return RelationshipsResponse(
        keyword=keyword.lower().strip(),
        relationships=[RelationshipModel(**asdict(r)) for r in relationships],
        count=len(relationships),
    )
