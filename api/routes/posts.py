"""
Post ingestion API routes.
"""

import logging

from fastapi import APIRouter, Depends

from api.deps import get_clock, get_database
from api.schemas import PostsIngestRequest, PostsIngestResponse
from sentiment_engine.clock import Clock
from sentiment_engine.db import DatabaseManager
from sentiment_engine.extraction import EntityResolver, ExtractionOptions, Post, SentimentSnapshot

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", response_model=PostsIngestResponse)
def ingest_posts(
    request: PostsIngestRequest,
    db: DatabaseManager = Depends(get_database),
    clock: Clock = Depends(get_clock)
):
    """
    Extract keywords and ticker mentions from posts and store the occurrences.
    """
    posts = [
        Post(
            id=p.id,
            title=p.title,
            body=p.body,
            subreddit=p.subreddit,
            score=p.score,
            num_comments=p.num_comments,
            upvote_ratio=p.upvote_ratio,
            created_ms=p.created_ms,
            keywords=list(p.keywords),
            sentiment=(
                SentimentSnapshot.from_label(p.sentiment, p.sentiment_confidence)
                if p.sentiment else None
            ),
        )
        for p in request.posts
    ]

    resolver = EntityResolver(options=ExtractionOptions.from_config(), clock=clock)
    with db.session() as session:
        count = resolver.ingest(session, posts)

    logger.info(f"Ingested {len(posts)} posts via API")
    return PostsIngestResponse(posts_processed=len(posts), occurrences_created=count)
