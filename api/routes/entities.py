"""
Finance entity API routes.

Provides endpoints for seeding and summarizing tracked securities.
"""

from fastapi import APIRouter, Depends

from api.deps import get_clock, get_database
from api.schemas import (
    EntityStatsResponse,
    InitializeEntitiesRequest,
    InitializeEntitiesResponse,
)
from sentiment_engine.clock import Clock
from sentiment_engine.db import DatabaseManager
from sentiment_engine.knowledge import get_finance_entity_stats, initialize_finance_entities

router = APIRouter()


@router.post("/initialize", response_model=InitializeEntitiesResponse)
def initialize_entities(
    request: InitializeEntitiesRequest,
    db: DatabaseManager = Depends(get_database),
    clock: Clock = Depends(get_clock)
):
    """
    Create (or with overwrite, refresh) a finance entity per tracked ticker.
    """
    with db.session() as session:
        result = initialize_finance_entities(session, overwrite=request.overwrite, clock=clock)

    return InitializeEntitiesResponse(
        entities_created=result.entities_created,
        entities_updated=result.entities_updated,
        entities_deactivated=result.entities_deactivated,
        errors=result.errors,
    )


@router.get("/stats", response_model=EntityStatsResponse)
def entity_stats(db: DatabaseManager = Depends(get_database)):
    """Counts of stored entities by sector and type."""
    with db.session() as session:
        stats = get_finance_entity_stats(session)
    return EntityStatsResponse(**stats)
