"""
Co-occurrence counting and edge scoring.

The co-occurrence unit is a post: two keywords co-occur once for every
post that mentions both. Pairs are always keyed through canonical_pair
so that an undirected edge is counted and stored exactly once.
"""

import math
from dataclasses import dataclass, field
from itertools import combinations
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..db.models import KeywordOccurrence


def canonical_pair(keyword1: str, keyword2: str) -> Tuple[str, str]:
    """
    Order two keywords lexicographically as (source, target).

    Raises:
        ValueError: If both keywords are the same (no self-loops).
    """
    if keyword1 == keyword2:
        raise ValueError(f"Cannot pair keyword with itself: {keyword1!r}")
    return (keyword1, keyword2) if keyword1 < keyword2 else (keyword2, keyword1)


def calculate_pmi(
    co_occurrence_count: int,
    keyword1_count: int,
    keyword2_count: int,
    total_documents: int
) -> float:
    """
    Pointwise mutual information in bits.

    ``log2(P(x,y) / (P(x) * P(y)))`` with probabilities over documents.
    Zero when the pair never co-occurs or either marginal is zero.
    """
    if co_occurrence_count == 0:
        return 0.0

    p_xy = co_occurrence_count / total_documents
    p_x = keyword1_count / total_documents
    p_y = keyword2_count / total_documents

    if p_x == 0 or p_y == 0:
        return 0.0

    return math.log2(p_xy / (p_x * p_y))


def calculate_jaccard(co_occurrence_count: int, keyword1_count: int, keyword2_count: int) -> float:
    """Intersection over union; 0 when the union is empty."""
    union = keyword1_count + keyword2_count - co_occurrence_count
    if union == 0:
        return 0.0
    return co_occurrence_count / union


def calculate_edge_finance_relevance(
    source_tickers: Optional[Set[str]],
    target_tickers: Optional[Set[str]]
) -> Tuple[float, List[str]]:
    """
    Finance relevance of an edge from its endpoints' ticker mappings.

    Returns:
        (score, shared_tickers): 0.0 if neither endpoint maps to a ticker,
        0.5 if one does, 0.8 if both do, 1.0 if they also share a ticker.
    """
    if source_tickers and target_tickers:
        shared = sorted(source_tickers & target_tickers)
        return (1.0 if shared else 0.8), shared
    if source_tickers or target_tickers:
        return 0.5, []
    return 0.0, []


@dataclass
class CoOccurrenceCounts:
    """
    Per-window accumulation, scoped to a single build.

    Attributes:
        post_keywords: Post id -> keywords seen in that post.
        keyword_counts: Keyword -> number of distinct posts mentioning it.
        keyword_tickers: Keyword -> tickers it mapped to in the window.
        pair_counts: Canonical (source, target) -> posts containing both.
    """
    post_keywords: Dict[str, Set[str]] = field(default_factory=dict)
    keyword_counts: Dict[str, int] = field(default_factory=dict)
    keyword_tickers: Dict[str, Set[str]] = field(default_factory=dict)
    pair_counts: Dict[Tuple[str, str], int] = field(default_factory=dict)

    @property
    def total_documents(self) -> int:
        return len(self.post_keywords)

    def targets_by_source(self) -> Dict[str, List[Tuple[str, int]]]:
        """Source -> [(target, count)] sorted by count desc, then target."""
        grouped: Dict[str, List[Tuple[str, int]]] = {}
        for (source, target), count in self.pair_counts.items():
            grouped.setdefault(source, []).append((target, count))
        for targets in grouped.values():
            targets.sort(key=lambda tc: (-tc[1], tc[0]))
        return grouped


def count_cooccurrences(occurrences: Iterable[KeywordOccurrence]) -> CoOccurrenceCounts:
    """Group occurrences by post and count keyword pairs."""
    counts = CoOccurrenceCounts()

    for occ in occurrences:
        keyword = occ.keyword_id
        post_keywords = counts.post_keywords.setdefault(occ.post_id, set())
        if keyword not in post_keywords:
            post_keywords.add(keyword)
            counts.keyword_counts[keyword] = counts.keyword_counts.get(keyword, 0) + 1

        if occ.mapped_tickers:
            counts.keyword_tickers.setdefault(keyword, set()).update(occ.mapped_tickers)

    for keywords in counts.post_keywords.values():
        for k1, k2 in combinations(sorted(keywords), 2):
            pair = canonical_pair(k1, k2)
            counts.pair_counts[pair] = counts.pair_counts.get(pair, 0) + 1

    return counts
