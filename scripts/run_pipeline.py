#!/usr/bin/env python3
"""
Sentiment & Keyword Graph Pipeline Script.

Runs the batch stages of the engine against the configured database:
seed finance entities, ingest posts from CSV, aggregate ticker and index
sentiment, build and prune the keyword graph.

Usage:
    python scripts/run_pipeline.py seed                          # Seed tracked tickers
    python scripts/run_pipeline.py ingest data/posts.csv         # Ingest posts
    python scripts/run_pipeline.py aggregate --start 2024-03-01 --end 2024-03-02 -g 1h
    python scripts/run_pipeline.py graph --start 2024-03-01T00:00 --length 3600000
    python scripts/run_pipeline.py prune --min-strength 0.1 --min-co-occurrence 2
    python scripts/run_pipeline.py stats

Times accept epoch milliseconds or ISO-8601 strings (UTC).
"""

import argparse
import logging
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import pandas as pd

from config import Config
from sentiment_engine.db import DatabaseManager, count_edges
from sentiment_engine.extraction import EntityResolver, ExtractionOptions, posts_from_dataframe
from sentiment_engine.granularity import floor_to_interval
from sentiment_engine.graph import GraphBuildOptions, KeywordGraphBuilder
from sentiment_engine.knowledge import get_finance_entity_stats, get_knowledge_base, initialize_finance_entities
from sentiment_engine.sentiment import SentimentAggregator


# Configure logging
logging.basicConfig(
    level=getattr(logging, Config.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def parse_time(value: str) -> int:
    """Epoch milliseconds from an integer string or an ISO-8601 timestamp."""
    if value.isdigit():
        return int(value)
    timestamp = pd.Timestamp(value)
    if timestamp.tzinfo is None:
        timestamp = timestamp.tz_localize("UTC")
    return int(timestamp.value // 1_000_000)


def open_database() -> DatabaseManager:
    Config.ensure_directories()
    db = DatabaseManager(Config.DATABASE_PATH, echo=Config.DATABASE_ECHO)
    db.init_db()
    return db


def cmd_seed(db: DatabaseManager, args) -> int:
    with db.session() as session:
        result = initialize_finance_entities(session, overwrite=args.overwrite)

    print(f"Created: {result.entities_created}  Updated: {result.entities_updated}  "
          f"Deactivated: {result.entities_deactivated}")
    for error in result.errors:
        print(f"  ERROR {error}")
    return 0


def cmd_ingest(db: DatabaseManager, args) -> int:
    csv_path = Path(args.csv)
    if not csv_path.exists():
        logger.error(f"File not found: {csv_path}")
        return 1

    df = pd.read_csv(csv_path)
    posts = posts_from_dataframe(df)
    logger.info(f"Read {len(posts)} posts from {csv_path}")

    resolver = EntityResolver(options=ExtractionOptions.from_config())
    with db.session() as session:
        count = resolver.ingest(session, posts)

    print(f"Ingested {len(posts)} posts -> {count} keyword occurrences")
    return 0


def cmd_aggregate(db: DatabaseManager, args) -> int:
    start = floor_to_interval(parse_time(args.start), args.granularity)
    end = parse_time(args.end)
    tickers = args.tickers or get_knowledge_base().symbols

    aggregator = SentimentAggregator()
    plan = aggregator.batch_aggregate_sentiment(tickers, start, end, args.granularity)
    logger.info(plan.message)

    # One transaction per bucket
    slices_created = 0
    snapshots_created = 0
    for interval_start in plan.intervals:
        with db.session() as session:
            for ticker in plan.tickers:
                if aggregator.aggregate_ticker_sentiment(session, ticker, interval_start, plan.granularity).created:
                    slices_created += 1
            if aggregator.aggregate_index_sentiment(session, interval_start, plan.granularity, plan.tickers).created:
                snapshots_created += 1

    print(f"Intervals: {plan.intervals_processed}  Slices created: {slices_created}  "
          f"Index snapshots created: {snapshots_created}")
    return 0


def cmd_graph(db: DatabaseManager, args) -> int:
    builder = KeywordGraphBuilder(GraphBuildOptions.from_config())
    with db.session() as session:
        result = builder.build_cooccurrence_graph(
            session,
            parse_time(args.start),
            args.length,
            min_co_occurrence=args.min_co_occurrence,
            max_edges_per_node=args.max_edges_per_node,
        )

    print(f"Edges created: {result.edges_created}  Updated: {result.edges_updated}  "
          f"Keywords: {result.keywords_processed}")
    return 0


def cmd_prune(db: DatabaseManager, args) -> int:
    builder = KeywordGraphBuilder()
    with db.session() as session:
        deleted = builder.prune_graph_edges(
            session, args.min_strength, args.min_co_occurrence, args.older_than
        )

    print(f"Edges deleted: {deleted}")
    return 0


def cmd_stats(db: DatabaseManager, args) -> int:
    with db.session() as session:
        stats = get_finance_entity_stats(session)
        edges = count_edges(session)

    print(f"Entities: {stats['total_entities']} ({stats['active_entities']} active)")
    for item in stats['by_sector']:
        print(f"  {item['name']:<28} {item['count']}")
    print(f"Graph edges: {edges}")
    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Run the sentiment & keyword graph pipeline",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    python scripts/run_pipeline.py seed --overwrite
    python scripts/run_pipeline.py ingest data/posts.csv
    python scripts/run_pipeline.py aggregate --start 1709251200000 --end 1709337600000 -g 1h -t AAPL MSFT
    python scripts/run_pipeline.py graph --start 1709251200000 --length 3600000
    python scripts/run_pipeline.py prune --min-strength 0.1 --min-co-occurrence 2 --older-than 604800000
        """
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    seed = subparsers.add_parser("seed", help="Seed finance entities from the knowledge base")
    seed.add_argument("--overwrite", action="store_true", help="Refresh existing entities")

    ingest = subparsers.add_parser("ingest", help="Ingest posts from a CSV file")
    ingest.add_argument("csv", type=str, help="CSV with id, title, body/selftext, subreddit, score, ...")

    aggregate = subparsers.add_parser("aggregate", help="Aggregate ticker and index sentiment")
    aggregate.add_argument("--start", required=True, help="Range start (inclusive)")
    aggregate.add_argument("--end", required=True, help="Range end (exclusive)")
    aggregate.add_argument(
        "--granularity", "-g",
        default=Config.DEFAULT_GRANULARITY,
        help="Bucket size: 5m, 15m, 1h, 4h or 1d"
    )
    aggregate.add_argument("--tickers", "-t", nargs="+", help="Tickers (default: all tracked)")

    graph = subparsers.add_parser("graph", help="Build the co-occurrence graph for a window")
    graph.add_argument("--start", required=True, help="Window start")
    graph.add_argument("--length", type=int, required=True, help="Window length in ms")
    graph.add_argument("--min-co-occurrence", type=int, default=None)
    graph.add_argument("--max-edges-per-node", type=int, default=None)

    prune = subparsers.add_parser("prune", help="Delete weak graph edges")
    prune.add_argument("--min-strength", type=float, required=True)
    prune.add_argument("--min-co-occurrence", type=int, required=True)
    prune.add_argument("--older-than", type=int, default=None, help="Only windows older than this (ms)")

    subparsers.add_parser("stats", help="Show entity and graph statistics")

    args = parser.parse_args()

    for warning in Config.validate():
        logger.warning(warning)

    commands = {
        "seed": cmd_seed,
        "ingest": cmd_ingest,
        "aggregate": cmd_aggregate,
        "graph": cmd_graph,
        "prune": cmd_prune,
        "stats": cmd_stats,
    }

    db = open_database()
    try:
        return commands[args.command](db, args)
    except ValueError as e:
        logger.error(str(e))
        return 2


if __name__ == "__main__":
    sys.exit(main())
