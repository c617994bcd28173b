"""
Keyword co-occurrence graph builder.

Materializes per-window KeywordGraphEdge records from keyword
occurrences, prunes weak edges and answers finance subgraph queries.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from ..clock import Clock, SystemClock
from ..db.models import KeywordGraphEdge
from ..db.queries import (
    get_edge, get_finance_edges, get_keyword_edges, get_occurrences_in_window,
    get_weak_edges, insert_edge
)
from ..granularity import validate_window
from .cooccurrence import (
    calculate_edge_finance_relevance, calculate_jaccard, calculate_pmi, count_cooccurrences
)

logger = logging.getLogger(__name__)


@dataclass
class GraphBuildOptions:
    """
    Graph build thresholds.

    Attributes:
        min_co_occurrence: Pairs seen together in fewer posts are skipped.
        max_edges_per_node: Targets kept per source keyword, by co-occurrence.
        finance_min_relevance: Default threshold for finance subgraph queries.
    """
    min_co_occurrence: int = 2
    max_edges_per_node: int = 50
    finance_min_relevance: float = 0.5

    def __post_init__(self):
        if self.min_co_occurrence < 0:
            raise ValueError("min_co_occurrence must be non-negative")
        if self.max_edges_per_node <= 0:
            raise ValueError("max_edges_per_node must be positive")

    @classmethod
    def from_config(cls) -> "GraphBuildOptions":
        from config import Config
        return cls(
            min_co_occurrence=Config.GRAPH_MIN_CO_OCCURRENCE,
            max_edges_per_node=Config.GRAPH_MAX_EDGES_PER_NODE,
            finance_min_relevance=Config.FINANCE_MIN_RELEVANCE,
        )


@dataclass
class GraphBuildResult:
    edges_created: int
    edges_updated: int
    keywords_processed: int


@dataclass
class FinanceSubgraphStats:
    finance_edges: int
    finance_keywords: int


@dataclass
class KeywordRelationship:
    source: str
    target: str
    strength: float
    co_occurrences: int
    finance_relevance: Optional[float]
    shared_tickers: Optional[List[str]]
    window_start: int


class KeywordGraphBuilder:
    """
    Builds and maintains the keyword co-occurrence graph.

    Example:
        >>> builder = KeywordGraphBuilder(clock=FixedClock(now))
        >>> with db.session() as session:
        ...     result = builder.build_cooccurrence_graph(session, window_start, HOUR_MS)
        >>> result.edges_created
        14
    """

    RELATIONSHIP_FINANCE_THRESHOLD = 0.3

    def __init__(
        self,
        options: Optional[GraphBuildOptions] = None,
        clock: Optional[Clock] = None
    ):
        self.options = options or GraphBuildOptions()
        self.clock = clock or SystemClock()

    def build_cooccurrence_graph(
        self,
        session: Session,
        window_start: int,
        window_length_ms: int,
        min_co_occurrence: Optional[int] = None,
        max_edges_per_node: Optional[int] = None
    ) -> GraphBuildResult:
        """
        Build or refresh the edges of one window.

        Per source keyword only the top ``max_edges_per_node`` targets by
        co-occurrence count are considered, and of those only pairs with at
        least ``min_co_occurrence`` shared posts are written. Strength is
        the Jaccard index; PMI is stored alongside.

        Args:
            session: Database session.
            window_start: Window start (ms).
            window_length_ms: Window length (ms), must be positive.
            min_co_occurrence: Overrides the configured threshold.
            max_edges_per_node: Overrides the configured cap.

        Returns:
            GraphBuildResult. Re-running a window updates edges in place and
            reports them as updated, not created.

        Raises:
            ValueError: If the window length or thresholds are invalid.
        """
        window_length_ms = validate_window(window_length_ms)
        options = GraphBuildOptions(
            min_co_occurrence=self.options.min_co_occurrence if min_co_occurrence is None else min_co_occurrence,
            max_edges_per_node=self.options.max_edges_per_node if max_edges_per_node is None else max_edges_per_node,
        )

        occurrences = get_occurrences_in_window(session, window_start, window_start + window_length_ms)
        counts = count_cooccurrences(occurrences)
        total_documents = counts.total_documents
        now = self.clock.now_ms()

        edges_created = 0
        edges_updated = 0

        for source, targets in counts.targets_by_source().items():
            source_count = counts.keyword_counts.get(source, 0)
            source_tickers = counts.keyword_tickers.get(source)

            for target, co_count in targets[:options.max_edges_per_node]:
                if co_count < options.min_co_occurrence:
                    continue

                target_count = counts.keyword_counts.get(target, 0)
                pmi = calculate_pmi(co_count, source_count, target_count, total_documents)
                jaccard = calculate_jaccard(co_count, source_count, target_count)
                relevance, shared = calculate_edge_finance_relevance(
                    source_tickers, counts.keyword_tickers.get(target)
                )

                fields = dict(
                    co_occurrence_count=co_count,
                    source_total_count=source_count,
                    target_total_count=target_count,
                    strength=jaccard,
                    pmi_score=pmi,
                    jaccard_score=jaccard,
                    finance_relevance_score=relevance if relevance > 0 else None,
                    shared_tickers=shared if shared else None,
                    updated_at=now,
                )

                existing = get_edge(session, source, target, window_start)
                if existing is not None:
                    for name, value in fields.items():
                        setattr(existing, name, value)
                    edges_updated += 1
                    continue

                insert_edge(session, KeywordGraphEdge(
                    source_keyword=source,
                    target_keyword=target,
                    window_start=window_start,
                    window_length=window_length_ms,
                    created_at=now,
                    **fields
                ))
                edges_created += 1

        session.flush()

        logger.info(
            f"Graph window {window_start} (+{window_length_ms}ms): "
            f"{edges_created} edges created, {edges_updated} updated, "
            f"{len(counts.keyword_counts)} keywords"
        )
        return GraphBuildResult(
            edges_created=edges_created,
            edges_updated=edges_updated,
            keywords_processed=len(counts.keyword_counts),
        )

    def prune_graph_edges(
        self,
        session: Session,
        min_strength: float,
        min_co_occurrence: int,
        older_than_ms: Optional[int] = None
    ) -> int:
        """
        Delete edges with ``strength < min_strength`` or
        ``co_occurrence_count < min_co_occurrence``.

        Args:
            session: Database session.
            min_strength: Strength threshold.
            min_co_occurrence: Co-occurrence threshold.
            older_than_ms: Only prune edges whose window started at least this
                long before now.

        Returns:
            Number of edges deleted.
        """
        if min_strength < 0 or min_co_occurrence < 0:
            raise ValueError("Prune thresholds must be non-negative")

        cutoff = None
        if older_than_ms is not None:
            if older_than_ms <= 0:
                raise ValueError(f"older_than_ms must be positive, got {older_than_ms}")
            cutoff = self.clock.now_ms() - older_than_ms

        edges = get_weak_edges(session, min_strength, min_co_occurrence, cutoff)
        for edge in edges:
            session.delete(edge)
        session.flush()

        logger.info(f"Pruned {len(edges)} weak graph edges")
        return len(edges)

    def get_finance_subgraph_stats(
        self,
        session: Session,
        window_start: int,
        min_finance_relevance: Optional[float] = None
    ) -> FinanceSubgraphStats:
        """Count finance-relevant edges in a window and the keywords they touch."""
        if min_finance_relevance is None:
            min_finance_relevance = self.options.finance_min_relevance

        edges = get_finance_edges(session, window_start, min_finance_relevance)
        keywords = set()
        for edge in edges:
            keywords.add(edge.source_keyword)
            keywords.add(edge.target_keyword)

        return FinanceSubgraphStats(finance_edges=len(edges), finance_keywords=len(keywords))

    def get_keyword_relationships(
        self,
        session: Session,
        keyword: str,
        window_start_min: int,
        limit: int = 20,
        finance_only: bool = False
    ) -> List[KeywordRelationship]:
        """
        Strongest edges touching a keyword in windows starting at or after
        ``window_start_min``, one per (source, target) pair.
        """
        normalized = keyword.lower().strip()
        edges = get_keyword_edges(session, normalized, window_start_min)

        if finance_only:
            edges = [
                e for e in edges
                if (e.finance_relevance_score or 0) > self.RELATIONSHIP_FINANCE_THRESHOLD
            ]

        edges.sort(key=lambda e: (-e.strength, -e.window_start))

        seen = set()
        relationships = []
        for edge in edges:
            key = (edge.source_keyword, edge.target_keyword)
            if key in seen:
                continue
            seen.add(key)
            relationships.append(KeywordRelationship(
                source=edge.source_keyword,
                target=edge.target_keyword,
                strength=edge.strength,
                co_occurrences=edge.co_occurrence_count,
                finance_relevance=edge.finance_relevance_score,
                shared_tickers=edge.shared_tickers,
                window_start=edge.window_start,
            ))
            if len(relationships) >= limit:
                break

        return relationships
