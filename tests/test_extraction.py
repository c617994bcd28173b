"""
Tests for keyword extraction and entity resolution.

Tests:
- Sentiment label mapping and keyword normalization
- Candidate merging, finance boost and keyword cap
- Occurrence emission (timestamps, tickers, engagement)
- Feed record parsing
"""

import numpy as np
import pandas as pd
import pytest

from sentiment_engine.db import get_occurrences_in_window
from sentiment_engine.extraction import (
    EntityResolver,
    ExtractionOptions,
    KeywordExtractor,
    Post,
    SentimentSnapshot,
    normalize_keyword,
    posts_from_dataframe,
)
from sentiment_engine.granularity import HOUR_MS
from sentiment_engine.scoring import EngagementConfig, calculate_engagement_weight

from tests.helpers import BASE_TIME


@pytest.fixture
def post():
    """A post mentioning Apple by symbol and alias."""
    return Post(
        id="abc123",
        title="AAPL earnings beat",
        body="Apple hit an all time high today",
        subreddit="stocks",
        score=250,
        num_comments=40,
        upvote_ratio=0.92,
        created_ms=BASE_TIME + 5 * 60 * 1000,
        sentiment=SentimentSnapshot.from_label("positive", 0.9),
    )


# =============================================================================
# Helper Tests
# =============================================================================

class TestSentimentSnapshot:
    """Tests for sentiment label mapping."""

    def test_positive(self):
        snapshot = SentimentSnapshot.from_label("positive", 0.8)
        assert (snapshot.positive, snapshot.negative, snapshot.neutral, snapshot.mixed) == (1.0, 0.0, 0.0, 0.0)
        assert snapshot.confidence == 0.8

    def test_negative(self):
        snapshot = SentimentSnapshot.from_label("NEGATIVE", 0.6)
        assert snapshot.negative == 1.0
        assert snapshot.neutral == 0.0

    def test_unknown_label_is_mixed(self):
        snapshot = SentimentSnapshot.from_label("sarcastic", 0.5)
        assert snapshot.mixed == 1.0
        assert snapshot.positive + snapshot.negative + snapshot.neutral == 0.0

    def test_neutral_default(self):
        snapshot = SentimentSnapshot.neutral_default()
        assert snapshot.neutral == 1.0
        assert snapshot.confidence == 0.0


class TestNormalizeKeyword:
    """Tests for keyword normalization strategies."""

    def test_lowercase(self):
        assert normalize_keyword("  Stock Market ") == "stock market"

    def test_lemma_only_trims(self):
        assert normalize_keyword("  Stock Market ", "lemma") == "Stock Market"

    def test_aggressive(self):
        assert normalize_keyword("Buy-the-dip!!  Now?", "aggressive") == "buy-the-dip now"

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValueError):
            ExtractionOptions(dedupe_strategy="stem")


# =============================================================================
# Extraction Tests
# =============================================================================

class TestKeywordExtractor:
    """Tests for keyword extraction from a post."""

    def test_extracts_entity_and_phrase(self, post):
        """Test tickers and curated phrases are extracted."""
        keywords = KeywordExtractor().extract(post)
        by_name = {k.normalized: k for k in keywords}

        assert set(by_name) == {"aapl", "all time high"}
        assert by_name["aapl"].tickers == ["AAPL"]
        assert by_name["aapl"].type == "entity"
        assert by_name["aapl"].in_title is True
        assert by_name["all time high"].tickers == []
        assert by_name["all time high"].in_body is True

    def test_finance_boost_ranks_entities_first(self, post):
        """Test ticker-mapped keywords get the boost factor."""
        keywords = KeywordExtractor().extract(post)

        assert keywords[0].normalized == "aapl"
        assert keywords[0].extraction_score == pytest.approx(0.95 * 1.5)
        assert keywords[0].finance_relevance == pytest.approx(0.7)

    def test_merges_feed_keyword_with_entity(self, post):
        """Test candidates with the same normalized text merge."""
        post.keywords = ["AAPL"]
        keywords = KeywordExtractor().extract(post)
        aapl = [k for k in keywords if k.normalized == "aapl"]

        assert len(aapl) == 1
        assert aapl[0].occurrences == 2
        assert aapl[0].tickers == ["AAPL"]

    def test_max_keywords_cap(self, post):
        """Test the per-post keyword cap."""
        keywords = KeywordExtractor(options=ExtractionOptions(max_keywords_per_post=1)).extract(post)

        assert [k.normalized for k in keywords] == ["aapl"]

    def test_stoplist_and_allowlist(self, post):
        """Test configurable phrase lists."""
        options = ExtractionOptions(allowlist=["high today"], stoplist=["all time high"])
        names = {k.normalized for k in KeywordExtractor(options=options).extract(post)}

        assert "high today" in names
        assert "all time high" not in names

    def test_low_confidence_sentiment_falls_back_to_neutral(self, post):
        """Test sentiment below the confidence floor is replaced."""
        options = ExtractionOptions(min_sentiment_confidence=0.95)
        keywords = KeywordExtractor(options=options).extract(post)

        assert all(k.sentiment.neutral == 1.0 for k in keywords)
        assert all(k.sentiment.confidence == 0.0 for k in keywords)

    def test_entities_disabled(self, post):
        """Test extraction without entity resolution."""
        options = ExtractionOptions(include_finance_entities=False)
        keywords = KeywordExtractor(options=options).extract(post)

        assert all(not k.tickers for k in keywords)


# =============================================================================
# Entity Resolver Tests
# =============================================================================

class TestEntityResolver:
    """Tests for occurrence emission."""

    def test_occurrence_time_is_post_time(self, post, clock):
        """Test occurrences carry the post's time, not compute time."""
        clock.advance(7 * 24 * HOUR_MS)
        occurrences = EntityResolver(clock=clock).process_post(post)

        assert all(o.occurrence_time == post.created_ms for o in occurrences)
        assert all(o.created_at == clock.now_ms() for o in occurrences)

    def test_occurrence_fields(self, post, clock):
        """Test one occurrence per keyword with tickers and engagement."""
        occurrences = EntityResolver(clock=clock).process_post(post)
        aapl = next(o for o in occurrences if o.keyword_id == "aapl")

        expected = calculate_engagement_weight(250, 40, 0.92, "stocks", EngagementConfig()).total
        assert len(occurrences) == 2
        assert aapl.keyword == "AAPL"
        assert aapl.mapped_tickers == ["AAPL"]
        assert aapl.post_id == "abc123"
        assert aapl.sentiment_positive == 1.0
        assert aapl.sentiment_confidence == 0.9
        assert aapl.engagement_weight == pytest.approx(expected)

    def test_ingest_persists(self, session, post, clock):
        """Test ingest stores every occurrence."""
        second = Post(
            id="def456", title="Thoughts on $NVDA and $AMD", body="", subreddit="investing",
            score=10, num_comments=2, upvote_ratio=0.8, created_ms=BASE_TIME + 10,
        )

        count = EntityResolver(clock=clock).ingest(session, [post, second])
        stored = get_occurrences_in_window(session, BASE_TIME, BASE_TIME + HOUR_MS)

        assert count == len(stored) == 4
        assert {o.keyword_id for o in stored if o.post_id == "def456"} == {"nvda", "amd"}
        assert all(o.sentiment_neutral == 1.0 for o in stored if o.post_id == "def456")


# =============================================================================
# Feed Parsing Tests
# =============================================================================

class TestPostParsing:
    """Tests for building posts from feed records."""

    def test_from_dict_reddit_fields(self):
        """Test created_utc seconds, selftext and a sentiment label."""
        post = Post.from_dict({
            "id": 42, "title": "Hi", "selftext": "body", "subreddit": "stocks",
            "score": 3, "num_comments": 1, "upvote_ratio": 0.5, "created_utc": 1_709_251_200.5,
            "sentiment": "negative", "sentiment_confidence": 0.7, "keywords": "rates|fed",
        })

        assert post.id == "42"
        assert post.body == "body"
        assert post.created_ms == 1_709_251_200_500
        assert post.sentiment.negative == 1.0
        assert post.keywords == ["rates", "fed"]

    def test_from_dict_requires_time(self):
        with pytest.raises(ValueError):
            Post.from_dict({"id": "x", "subreddit": "stocks"})

    def test_posts_from_dataframe(self):
        """Test DataFrame rows with missing values."""
        df = pd.DataFrame({
            "id": ["a", "b"],
            "title": ["TSLA delivers", "Rates"],
            "body": ["record quarter", np.nan],
            "selftext": [np.nan, "Fed holds steady"],
            "subreddit": ["stocks", "economics"],
            "score": [100, 5],
            "num_comments": [20, np.nan],
            "upvote_ratio": [0.9, 0.6],
            "created_ms": [BASE_TIME, BASE_TIME + 1],
            "keywords": ["earnings|guidance", np.nan],
        })

        posts = posts_from_dataframe(df)

        assert len(posts) == 2
        assert posts[0].body == "record quarter"
        assert posts[1].body == "Fed holds steady"
        assert posts[0].keywords == ["earnings", "guidance"]
        assert posts[1].keywords == []
        assert posts[1].num_comments == 0
        assert posts[0].sentiment is None

    def test_empty_dataframe(self):
        assert posts_from_dataframe(pd.DataFrame()) == []
