"""
Social Sentiment & Keyword Graph Engine.

This package contains the core modules for:
- knowledge: Finance knowledge base, entity resolution and seeding
- scoring: Engagement and finance-relevance scoring
- extraction: Keyword extraction and occurrence emission
- sentiment: Ticker/index aggregation and keyword trends
- graph: Keyword co-occurrence graph
- db: Database operations
"""

from sentiment_engine import db, knowledge, scoring, extraction, sentiment, graph

__all__ = ["db", "knowledge", "scoring", "extraction", "sentiment", "graph"]
