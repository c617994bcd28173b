"""
API route modules.
"""

from . import entities, sentiment, graph, posts

__all__ = ["entities", "sentiment", "graph", "posts"]
