"""
Database operations module.

Provides:
- SQLite database management
- ORM models for entities, occurrences, slices, snapshots and edges
- Query helpers backing the idempotency checks
"""

from .models import (
    Base,
    FinanceEntity,
    KeywordOccurrence,
    TickerSentimentSlice,
    IndexSentimentSnapshot,
    KeywordGraphEdge,
)

from .connection import (
    DatabaseManager,
)

from .queries import (
    # Entity operations
    get_entity_by_symbol,
    get_all_entities,
    # Occurrence operations
    insert_occurrences,
    get_occurrences_in_window,
    get_ticker_mentions,
    # Slice operations
    get_ticker_slice,
    insert_ticker_slice,
    get_slices_at,
    get_ticker_slices_df,
    # Index operations
    get_index_snapshot,
    insert_index_snapshot,
    get_index_snapshots_df,
    # Edge operations
    get_edge,
    insert_edge,
    get_weak_edges,
    get_finance_edges,
    get_keyword_edges,
    get_edges_df,
    count_edges,
)

__all__ = [
    # Models
    'Base',
    'FinanceEntity',
    'KeywordOccurrence',
    'TickerSentimentSlice',
    'IndexSentimentSnapshot',
    'KeywordGraphEdge',
    # Connection
    'DatabaseManager',
    # Entity operations
    'get_entity_by_symbol',
    'get_all_entities',
    # Occurrence operations
    'insert_occurrences',
    'get_occurrences_in_window',
    'get_ticker_mentions',
    # Slice operations
    'get_ticker_slice',
    'insert_ticker_slice',
    'get_slices_at',
    'get_ticker_slices_df',
    # Index operations
    'get_index_snapshot',
    'insert_index_snapshot',
    'get_index_snapshots_df',
    # Edge operations
    'get_edge',
    'insert_edge',
    'get_weak_edges',
    'get_finance_edges',
    'get_keyword_edges',
    'get_edges_df',
    'count_edges',
]
