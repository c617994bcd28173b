"""
Tests for the REST API.

Runs the FastAPI app against an in-memory database and a fixed clock.
"""

import pytest
from fastapi.testclient import TestClient

from api.deps import get_clock, get_database
from api.main import app
from sentiment_engine.clock import FixedClock
from sentiment_engine.db import DatabaseManager
from sentiment_engine.granularity import HOUR_MS, MINUTE_MS

from tests.helpers import BASE_TIME


POSTS = [
    {
        "id": "p1",
        "title": "AAPL earnings beat",
        "body": "Apple hit an all time high",
        "subreddit": "stocks",
        "score": 120,
        "num_comments": 30,
        "upvote_ratio": 0.9,
        "created_ms": BASE_TIME + MINUTE_MS,
        "sentiment": "positive",
        "sentiment_confidence": 0.9,
    },
    {
        "id": "p2",
        "title": "$MSFT and $AAPL both green",
        "subreddit": "investing",
        "score": 15,
        "num_comments": 4,
        "upvote_ratio": 0.8,
        "created_ms": BASE_TIME + 2 * MINUTE_MS,
    },
]


@pytest.fixture
def client():
    """Test client with the database and clock overridden."""
    db = DatabaseManager(":memory:")
    db.init_db()
    clock = FixedClock(BASE_TIME + 30 * MINUTE_MS)

    app.dependency_overrides[get_database] = lambda: db
    app.dependency_overrides[get_clock] = lambda: clock
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def ingested(client):
    """Client with the sample posts stored."""
    response = client.post("/api/posts", json={"posts": POSTS})
    assert response.status_code == 200
    return client


class TestHealth:
    """Tests for service endpoints."""

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_root(self, client):
        assert client.get("/").json()["health"] == "/api/health"


class TestEntitiesAPI:
    """Tests for entity seeding endpoints."""

    def test_initialize_and_stats(self, client):
        created = client.post("/api/entities/initialize", json={}).json()
        again = client.post("/api/entities/initialize", json={"overwrite": False}).json()
        stats = client.get("/api/entities/stats").json()

        assert created["entities_created"] == 23
        assert again["entities_created"] == 0
        assert stats["total_entities"] == 23
        assert stats["by_type"] == [{"name": "ticker", "count": 23}]


class TestPostsAPI:
    """Tests for post ingestion."""

    def test_ingest(self, client):
        response = client.post("/api/posts", json={"posts": POSTS})

        body = response.json()
        assert body["posts_processed"] == 2
        assert body["occurrences_created"] == 4

    def test_invalid_upvote_ratio(self, client):
        bad = dict(POSTS[0], upvote_ratio=1.5)
        assert client.post("/api/posts", json={"posts": [bad]}).status_code == 422


class TestSentimentAPI:
    """Tests for sentiment endpoints."""

    def test_aggregate_ticker_is_idempotent(self, ingested):
        request = {"ticker": "aapl", "interval_start": BASE_TIME, "granularity": "1h"}

        first = ingested.post("/api/sentiment/ticker", json=request).json()
        second = ingested.post("/api/sentiment/ticker", json=request).json()

        assert first["created"] is True
        assert first["slice"]["mentions"] == 2
        assert first["slice"]["unique_sources"] == 2
        assert second["created"] is False
        assert second["slice"] == first["slice"]

    def test_invalid_granularity_is_400(self, ingested):
        response = ingested.post(
            "/api/sentiment/ticker",
            json={"ticker": "AAPL", "interval_start": BASE_TIME, "granularity": "2h"},
        )

        assert response.status_code == 400
        assert "granularity" in response.json()["detail"]

    def test_ticker_history(self, ingested):
        ingested.post("/api/sentiment/ticker", json={"ticker": "AAPL", "interval_start": BASE_TIME, "granularity": "1h"})

        response = ingested.get("/api/sentiment/ticker/aapl", params={"granularity": "1h"})

        assert response.status_code == 200
        assert response.json()["count"] == 1
        assert response.json()["data"][0]["interval_start"] == BASE_TIME

    def test_ticker_history_not_found(self, ingested):
        response = ingested.get("/api/sentiment/ticker/NVDA", params={"granularity": "1h"})
        assert response.status_code == 404

    def test_index(self, ingested):
        for ticker in ("AAPL", "MSFT"):
            ingested.post("/api/sentiment/ticker", json={"ticker": ticker, "interval_start": BASE_TIME, "granularity": "1h"})

        snapshot = ingested.post("/api/sentiment/index", json={"timestamp": BASE_TIME, "granularity": "1h"}).json()
        history = ingested.get("/api/sentiment/index", params={"granularity": "1h"}).json()

        assert snapshot["created"] is True
        assert snapshot["snapshot"]["active_tickers"] == 2
        assert snapshot["snapshot"]["regime"] == "low-signal"
        assert history["count"] == 1

    def test_batch_plan(self, client):
        response = client.post("/api/sentiment/batch", json={
            "tickers": ["AAPL"], "start_time": BASE_TIME, "end_time": BASE_TIME + 4 * HOUR_MS, "granularity": "1h",
        })

        assert response.json()["intervals_processed"] == 4

    def test_mentions(self, ingested):
        body = ingested.get("/api/sentiment/ticker/AAPL/mentions", params={"hours_back": 1}).json()

        assert body["total_mentions"] == 2
        assert body["unique_posts"] == 2

    def test_trending(self, ingested):
        response = ingested.get("/api/sentiment/trending", params={
            "granularity": "1h", "periods": 1, "end_time": BASE_TIME + HOUR_MS,
        })

        keywords = {t["keyword"] for t in response.json()["data"]}
        assert keywords == {"aapl", "msft"}


class TestGraphAPI:
    """Tests for graph endpoints."""

    def test_build_and_query(self, ingested):
        build = ingested.post("/api/graph/build", json={
            "window_start": BASE_TIME, "window_length_ms": HOUR_MS, "min_co_occurrence": 1,
        }).json()
        stats = ingested.get("/api/graph/finance-stats", params={"window_start": BASE_TIME}).json()
        relationships = ingested.get("/api/graph/relationships/AAPL").json()

        assert build["edges_created"] == 2
        assert stats == {"finance_edges": 2, "finance_keywords": 3}
        assert relationships["keyword"] == "aapl"
        assert relationships["count"] == 2

    def test_zero_length_window_is_400(self, client):
        response = client.post("/api/graph/build", json={"window_start": BASE_TIME, "window_length_ms": 0})
        assert response.status_code == 400

    def test_prune(self, ingested):
        ingested.post("/api/graph/build", json={
            "window_start": BASE_TIME, "window_length_ms": HOUR_MS, "min_co_occurrence": 1,
        })

        response = ingested.post("/api/graph/prune", json={"min_strength": 0.1, "min_co_occurrence": 2})

        assert response.json()["edges_deleted"] == 2
