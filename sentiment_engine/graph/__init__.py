"""
Keyword co-occurrence graph module.

Provides:
- Canonical pair ordering, PMI, Jaccard and edge finance relevance
- KeywordGraphBuilder: Build, prune and query windowed graph edges
"""

from .cooccurrence import (
    CoOccurrenceCounts,
    canonical_pair,
    calculate_pmi,
    calculate_jaccard,
    calculate_edge_finance_relevance,
    count_cooccurrences,
)
from .builder import (
    KeywordGraphBuilder,
    GraphBuildOptions,
    GraphBuildResult,
    FinanceSubgraphStats,
    KeywordRelationship,
)

__all__ = [
    "CoOccurrenceCounts",
    "canonical_pair",
    "calculate_pmi",
    "calculate_jaccard",
    "calculate_edge_finance_relevance",
    "count_cooccurrences",
    "KeywordGraphBuilder",
    "GraphBuildOptions",
    "GraphBuildResult",
    "FinanceSubgraphStats",
    "KeywordRelationship",
]
