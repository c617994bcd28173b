"""
Finance knowledge base module.

Provides:
- FinanceKnowledgeBase: Tracked securities, alias index, entity resolution
- Market-cap weights for index aggregation
- Seeding of FinanceEntity records
"""

from .knowledge_base import (
    FinanceKnowledgeBase,
    FinanceEntityMatch,
    TickerInfo,
    NASDAQ_100_TICKERS,
    TICKER_STOPLIST,
    get_knowledge_base,
)
from .seeding import (
    SeedResult,
    initialize_finance_entities,
    get_finance_entity_stats,
)

__all__ = [
    "FinanceKnowledgeBase",
    "FinanceEntityMatch",
    "TickerInfo",
    "NASDAQ_100_TICKERS",
    "TICKER_STOPLIST",
    "get_knowledge_base",
    "SeedResult",
    "initialize_finance_entities",
    "get_finance_entity_stats",
]
