"""
Shared fixtures for the test suite.
"""

import pytest

from sentiment_engine.clock import FixedClock
from sentiment_engine.db import DatabaseManager, KeywordOccurrence

from tests.helpers import BASE_TIME


@pytest.fixture
def db():
    """Create an in-memory database for testing."""
    db_manager = DatabaseManager(":memory:")
    db_manager.init_db()
    return db_manager


@pytest.fixture
def session(db):
    """Create a database session."""
    with db.session() as session:
        yield session


@pytest.fixture
def clock():
    """Deterministic clock pinned to BASE_TIME."""
    return FixedClock(BASE_TIME)


@pytest.fixture
def make_occurrence():
    """Factory for KeywordOccurrence records with sensible defaults."""
    def _make(
        keyword="aapl",
        post_id="p1",
        occurrence_time=BASE_TIME,
        tickers=None,
        positive=0.0,
        negative=0.0,
        neutral=1.0,
        mixed=0.0,
        confidence=1.0,
        engagement=1.0,
        subreddit="stocks",
    ):
        return KeywordOccurrence(
            keyword=keyword,
            keyword_id=keyword,
            post_id=post_id,
            subreddit=subreddit,
            occurrence_time=occurrence_time,
            sentiment_positive=positive,
            sentiment_negative=negative,
            sentiment_neutral=neutral,
            sentiment_mixed=mixed,
            sentiment_confidence=confidence,
            engagement_weight=engagement,
            post_score=10,
            comment_count=5,
            upvote_ratio=0.9,
            mapped_tickers=list(tickers or []),
            in_title=True,
            in_body=False,
            created_at=BASE_TIME,
        )
    return _make
