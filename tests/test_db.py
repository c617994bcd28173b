"""
Tests for database module.

Tests:
- Table creation
- Occurrence window queries
- Unique constraints on slices, snapshots and edges
- DataFrame read queries
- Ticker mention summaries
"""

import pytest
from sqlalchemy import inspect
from sqlalchemy.exc import IntegrityError

from sentiment_engine.db import (
    DatabaseManager,
    KeywordGraphEdge,
    TickerSentimentSlice,
    IndexSentimentSnapshot,
    get_occurrences_in_window,
    get_ticker_mentions,
    get_ticker_slice,
    get_ticker_slices_df,
    get_index_snapshots_df,
    get_edges_df,
    get_weak_edges,
    insert_edge,
    insert_index_snapshot,
    insert_occurrences,
    insert_ticker_slice,
    count_edges,
)
from sentiment_engine.granularity import HOUR_MS

from tests.helpers import BASE_TIME


def _slice(ticker="AAPL", interval_start=BASE_TIME, granularity="1h", mentions=3, velocity=0.0):
    return TickerSentimentSlice(
        ticker=ticker,
        interval_start=interval_start,
        granularity=granularity,
        weighted_sentiment=0.4,
        sentiment_confidence=0.8,
        raw_counts={'positive': 2, 'negative': 0, 'neutral': 1, 'mixed': 0},
        total_mentions=mentions,
        engagement_sum=2.5,
        unique_posts=mentions,
        unique_sources=1,
        velocity=velocity,
        acceleration=0.0,
        computed_at=BASE_TIME,
        created_at=BASE_TIME,
    )


def _edge(source="aapl", target="earnings", window_start=BASE_TIME, strength=0.5, co_count=3):
    return KeywordGraphEdge(
        source_keyword=source,
        target_keyword=target,
        window_start=window_start,
        window_length=HOUR_MS,
        co_occurrence_count=co_count,
        source_total_count=4,
        target_total_count=5,
        strength=strength,
        pmi_score=1.2,
        jaccard_score=strength,
        finance_relevance_score=0.5,
        shared_tickers=None,
        created_at=BASE_TIME,
        updated_at=BASE_TIME,
    )


# =============================================================================
# Table Creation Tests
# =============================================================================

class TestTableCreation:
    """Tests for database table creation."""

    def test_create_all_tables(self, db):
        """Test that all tables are created."""
        tables = inspect(db.engine).get_table_names()

        expected_tables = [
            'finance_entities', 'keyword_occurrences', 'ticker_sentiment_slices',
            'index_sentiment_snapshots', 'keyword_graph_edges'
        ]

        for table in expected_tables:
            assert table in tables, f"Table {table} not found"

    def test_drop_and_recreate(self, db):
        """Test dropping and recreating tables."""
        db.drop_all()
        assert len(inspect(db.engine).get_table_names()) == 0

        db.init_db()
        assert len(inspect(db.engine).get_table_names()) == 5

    def test_file_database_creates_parent_dirs(self, tmp_path):
        """Test that a file database creates its directory."""
        path = tmp_path / "nested" / "engine.db"
        manager = DatabaseManager(str(path))
        manager.init_db()

        assert path.parent.exists()

    def test_session_rolls_back_on_error(self, db):
        """Test that a failing unit of work leaves no partial writes."""
        with pytest.raises(RuntimeError):
            with db.session() as session:
                insert_ticker_slice(session, _slice())
                raise RuntimeError("boom")

        with db.session() as session:
            assert get_ticker_slice(session, "AAPL", BASE_TIME, "1h") is None

    def test_manual_session(self, db):
        """Test a manually managed session sees committed data."""
        with db.session() as session:
            insert_ticker_slice(session, _slice())

        session = db.get_session()
        try:
            assert get_ticker_slice(session, "AAPL", BASE_TIME, "1h") is not None
        finally:
            session.close()


# =============================================================================
# Occurrence Tests
# =============================================================================

class TestOccurrences:
    """Tests for keyword occurrence queries."""

    def test_window_is_half_open(self, session, make_occurrence):
        """Test that the window includes its start and excludes its end."""
        insert_occurrences(session, [
            make_occurrence(post_id="at-start", occurrence_time=BASE_TIME),
            make_occurrence(post_id="inside", occurrence_time=BASE_TIME + 1000),
            make_occurrence(post_id="at-end", occurrence_time=BASE_TIME + HOUR_MS),
            make_occurrence(post_id="before", occurrence_time=BASE_TIME - 1),
        ])

        found = get_occurrences_in_window(session, BASE_TIME, BASE_TIME + HOUR_MS)

        assert [o.post_id for o in found] == ["at-start", "inside"]

    def test_insert_returns_count(self, session, make_occurrence):
        """Test that insert reports the number of records."""
        count = insert_occurrences(session, [make_occurrence(post_id=str(i)) for i in range(4)])
        assert count == 4

    def test_raw_sentiment(self, make_occurrence):
        """Test raw sentiment is positive minus negative."""
        occurrence = make_occurrence(positive=0.7, negative=0.2, neutral=0.1)
        assert occurrence.raw_sentiment == pytest.approx(0.5)

    def test_ticker_mentions(self, session, make_occurrence):
        """Test the mention summary for a ticker."""
        insert_occurrences(session, [
            make_occurrence(post_id="p1", tickers=["AAPL"], positive=1.0, neutral=0.0, subreddit="stocks"),
            make_occurrence(post_id="p2", tickers=["AAPL"], negative=1.0, neutral=0.0, subreddit="stocks",
                            occurrence_time=BASE_TIME + 10),
            make_occurrence(post_id="p3", tickers=["AAPL", "MSFT"], subreddit="investing",
                            occurrence_time=BASE_TIME + 20),
            make_occurrence(post_id="p4", tickers=["MSFT"]),
        ])

        summary = get_ticker_mentions(session, "aapl", BASE_TIME)

        assert summary['ticker'] == "AAPL"
        assert summary['total_mentions'] == 3
        assert summary['unique_posts'] == 3
        assert summary['avg_sentiment'] == pytest.approx(0.0)
        assert summary['top_sources'][0] == {'subreddit': 'stocks', 'mentions': 2}
        assert summary['recent_occurrences'][0]['post_id'] == "p3"

    def test_ticker_mentions_empty(self, session):
        """Test the mention summary with no data."""
        summary = get_ticker_mentions(session, "AAPL", BASE_TIME)

        assert summary['total_mentions'] == 0
        assert summary['top_sources'] == []


# =============================================================================
# Slice and Snapshot Tests
# =============================================================================

class TestSlices:
    """Tests for ticker slices and index snapshots."""

    def test_slice_key_is_unique(self, db):
        """Test that a second slice for the same key is rejected."""
        with pytest.raises(IntegrityError):
            with db.session() as session:
                insert_ticker_slice(session, _slice())
                insert_ticker_slice(session, _slice())

    def test_same_interval_different_granularity(self, session):
        """Test that granularity is part of the key."""
        insert_ticker_slice(session, _slice(granularity="1h"))
        insert_ticker_slice(session, _slice(granularity="4h"))

        assert get_ticker_slice(session, "AAPL", BASE_TIME, "1h") is not None
        assert get_ticker_slice(session, "AAPL", BASE_TIME, "4h") is not None

    def test_ticker_slices_df(self, session):
        """Test slices come back ordered by time."""
        insert_ticker_slice(session, _slice(interval_start=BASE_TIME + HOUR_MS, mentions=5))
        insert_ticker_slice(session, _slice(interval_start=BASE_TIME, mentions=3))

        df = get_ticker_slices_df(session, "aapl", "1h")

        assert list(df['timestamp']) == [BASE_TIME, BASE_TIME + HOUR_MS]
        assert list(df['mentions']) == [3, 5]

    def test_ticker_slices_df_empty(self, session):
        """Test empty result keeps its columns."""
        df = get_ticker_slices_df(session, "AAPL", "1h")

        assert df.empty
        assert 'sentiment' in df.columns

    def test_index_snapshots_df(self, session):
        """Test index snapshots DataFrame."""
        insert_index_snapshot(session, IndexSentimentSnapshot(
            index_name='nasdaq100',
            timestamp=BASE_TIME,
            granularity='1h',
            index_weighted_sentiment=0.3,
            breadth=0.7,
            dispersion=0.1,
            regime_tag='bullish',
            top_contributors=[{'ticker': 'AAPL', 'contribution': 0.05, 'sentiment': 0.4}],
            total_mentions=20,
            total_engagement=12.0,
            active_tickers_count=6,
            created_at=BASE_TIME,
        ))

        df = get_index_snapshots_df(session, "1h")

        assert len(df) == 1
        assert df.iloc[0]['regime'] == 'bullish'
        assert df.iloc[0]['top_contributors'][0]['ticker'] == 'AAPL'


# =============================================================================
# Edge Tests
# =============================================================================

class TestEdges:
    """Tests for graph edge storage."""

    def test_edge_pair_window_is_unique(self, db):
        """Test at most one edge per (source, target, window_start)."""
        with pytest.raises(IntegrityError):
            with db.session() as session:
                insert_edge(session, _edge())
                insert_edge(session, _edge())

    def test_edge_requires_canonical_order(self, db):
        """Test that reversed pairs are rejected by the store."""
        with pytest.raises(IntegrityError):
            with db.session() as session:
                insert_edge(session, _edge(source="earnings", target="aapl"))

    def test_weak_edges_use_either_threshold(self, session):
        """Test weak edges match on strength or co-occurrence."""
        insert_edge(session, _edge(source="a", target="b", strength=0.05, co_count=5))
        insert_edge(session, _edge(source="a", target="c", strength=0.5, co_count=1))
        insert_edge(session, _edge(source="a", target="d", strength=0.5, co_count=5))

        weak = get_weak_edges(session, min_strength=0.1, min_co_occurrence=2)

        assert sorted(e.target_keyword for e in weak) == ["b", "c"]

    def test_weak_edges_cutoff(self, session):
        """Test the window cutoff is inclusive."""
        insert_edge(session, _edge(source="a", target="b", strength=0.05, window_start=BASE_TIME))
        insert_edge(session, _edge(source="a", target="c", strength=0.05, window_start=BASE_TIME + 1))

        weak = get_weak_edges(session, 0.1, 2, window_start_before=BASE_TIME)

        assert [e.target_keyword for e in weak] == ["b"]

    def test_edges_df_sorted_by_strength(self, session):
        """Test edges DataFrame ordering."""
        insert_edge(session, _edge(source="a", target="b", strength=0.2))
        insert_edge(session, _edge(source="a", target="c", strength=0.9))

        df = get_edges_df(session, BASE_TIME)

        assert list(df['target']) == ["c", "b"]
        assert count_edges(session) == 2
