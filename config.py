"""
Configuration management for the social sentiment & keyword graph engine.
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_float(name: str, default: float) -> float:
    return float(os.getenv(name, str(default)))


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


class Config:
    """Main configuration class."""

    # Project paths
    PROJECT_ROOT = Path(__file__).parent.resolve()
    DATA_DIR = PROJECT_ROOT / "data"

    # Database Configuration
    DATABASE_PATH = os.getenv("DATABASE_PATH", str(DATA_DIR / "sentiment_engine.db"))
    DATABASE_ECHO = os.getenv("DATABASE_ECHO", "false").lower() == "true"

    # Logging
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Engagement weighting
    ENGAGEMENT_SCORE_WEIGHT = _env_float("ENGAGEMENT_SCORE_WEIGHT", 0.4)
    ENGAGEMENT_COMMENT_WEIGHT = _env_float("ENGAGEMENT_COMMENT_WEIGHT", 0.4)
    ENGAGEMENT_UPVOTE_RATIO_WEIGHT = _env_float("ENGAGEMENT_UPVOTE_RATIO_WEIGHT", 0.2)
    SUBREDDIT_WEIGHTING_STRATEGY = os.getenv("SUBREDDIT_WEIGHTING_STRATEGY", "domainAuthority")

    # Keyword extraction
    MAX_KEYWORDS_PER_POST = _env_int("MAX_KEYWORDS_PER_POST", 20)
    FINANCE_BOOST_FACTOR = _env_float("FINANCE_BOOST_FACTOR", 1.5)
    MIN_SENTIMENT_CONFIDENCE = _env_float("MIN_SENTIMENT_CONFIDENCE", 0.0)
    KEYWORD_DEDUPE_STRATEGY = os.getenv("KEYWORD_DEDUPE_STRATEGY", "lowercase")

    # Co-occurrence graph
    GRAPH_MIN_CO_OCCURRENCE = _env_int("GRAPH_MIN_CO_OCCURRENCE", 2)
    GRAPH_MAX_EDGES_PER_NODE = _env_int("GRAPH_MAX_EDGES_PER_NODE", 50)
    FINANCE_MIN_RELEVANCE = _env_float("FINANCE_MIN_RELEVANCE", 0.5)

    # Trend smoothing
    EMA_SHORT_PERIOD = _env_int("EMA_SHORT_PERIOD", 5)
    EMA_LONG_PERIOD = _env_int("EMA_LONG_PERIOD", 20)

    # Aggregation
    DEFAULT_GRANULARITY = os.getenv("DEFAULT_GRANULARITY", "1h")

    @classmethod
    def ensure_directories(cls):
        """Create necessary directories if they don't exist."""
        cls.DATA_DIR.mkdir(parents=True, exist_ok=True)

    @classmethod
    def validate(cls):
        """Validate critical configuration."""
        warnings = []

        weight_sum = (
            cls.ENGAGEMENT_SCORE_WEIGHT
            + cls.ENGAGEMENT_COMMENT_WEIGHT
            + cls.ENGAGEMENT_UPVOTE_RATIO_WEIGHT
        )
        if abs(weight_sum - 1.0) > 1e-6:
            warnings.append(f"Engagement weights sum to {weight_sum:.3f}, expected 1.0")

        if cls.SUBREDDIT_WEIGHTING_STRATEGY not in ("flat", "domainAuthority", "custom"):
            warnings.append(
                f"Unknown SUBREDDIT_WEIGHTING_STRATEGY '{cls.SUBREDDIT_WEIGHTING_STRATEGY}', "
                "falling back to flat weights"
            )

        if cls.EMA_SHORT_PERIOD >= cls.EMA_LONG_PERIOD:
            warnings.append("EMA_SHORT_PERIOD should be smaller than EMA_LONG_PERIOD")

        if cls.DEFAULT_GRANULARITY not in ("5m", "15m", "1h", "4h", "1d"):
            warnings.append(f"DEFAULT_GRANULARITY '{cls.DEFAULT_GRANULARITY}' is not a valid granularity")

        return warnings
