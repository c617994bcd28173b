"""
Engagement and finance-relevance scoring.

Engagement turns raw post metrics into a relative weight used by every
weighted average downstream. Finance relevance is a deterministic
additive prior for keywords; it is not a classifier.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, Iterable, Mapping, Optional, Sequence


DEFAULT_SUBREDDIT_WEIGHTS: Dict[str, float] = {
    'wallstreetbets': 1.2,
    'stocks': 1.3,
    'investing': 1.4,
    'stockmarket': 1.3,
    'securityanalysis': 1.5,
    'valueinvesting': 1.4,
    'options': 1.2,
    'finance': 1.3,
    'economics': 1.2,
    'technology': 1.1,
    'news': 1.0,
    'default': 1.0,
}

WEIGHTING_STRATEGIES = ('flat', 'domainAuthority', 'custom')

FINANCIAL_TERMS = frozenset({
    'stock', 'stocks', 'market', 'trading', 'investor', 'investment',
    'earnings', 'revenue', 'profit', 'loss', 'dividend', 'eps',
    'bull', 'bear', 'rally', 'crash', 'volatility', 'options',
    'calls', 'puts', 'hedge', 'portfolio', 'nasdaq', 'dow',
    'sp500', 's&p', 'index', 'futures', 'commodity', 'forex',
})

FINANCIAL_PHRASES = (
    'price target', 'market cap', 'stock price', 'share price',
    'q1 earnings', 'q2 earnings', 'q3 earnings', 'q4 earnings',
    'buy rating', 'sell rating', 'analyst rating', 'fair value',
    'all time high', 'ath', 'all time low', 'atl',
)


@dataclass
class EngagementConfig:
    """
    Engagement weighting configuration.

    Attributes:
        score_weight: Weight of the log-normalized post score.
        comment_weight: Weight of the log-normalized comment count.
        upvote_ratio_weight: Weight of the upvote ratio.
        subreddit_strategy: 'flat', 'domainAuthority' or 'custom'.
        subreddit_weights: Lookup table keyed by lower-cased subreddit,
            with a 'default' entry used as fallback.
    """
    score_weight: float = 0.4
    comment_weight: float = 0.4
    upvote_ratio_weight: float = 0.2
    subreddit_strategy: str = 'domainAuthority'
    subreddit_weights: Dict[str, float] = field(
        default_factory=lambda: dict(DEFAULT_SUBREDDIT_WEIGHTS)
    )

    def __post_init__(self):
        if self.subreddit_strategy not in WEIGHTING_STRATEGIES:
            raise ValueError(
                f"Unknown subreddit strategy: {self.subreddit_strategy}. "
                f"Use one of: {', '.join(WEIGHTING_STRATEGIES)}"
            )
        for name in ('score_weight', 'comment_weight', 'upvote_ratio_weight'):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative")

    @classmethod
    def from_config(cls) -> "EngagementConfig":
        """Build from the environment-backed Config class."""
        from config import Config
        strategy = Config.SUBREDDIT_WEIGHTING_STRATEGY
        if strategy not in WEIGHTING_STRATEGIES:
            strategy = 'flat'
        return cls(
            score_weight=Config.ENGAGEMENT_SCORE_WEIGHT,
            comment_weight=Config.ENGAGEMENT_COMMENT_WEIGHT,
            upvote_ratio_weight=Config.ENGAGEMENT_UPVOTE_RATIO_WEIGHT,
            subreddit_strategy=strategy,
        )


@dataclass(frozen=True)
class EngagementWeights:
    """Breakdown of one post's engagement weight."""
    total: float
    score_component: float
    comment_component: float
    upvote_ratio_component: float
    subreddit_multiplier: float


def get_subreddit_weight(
    subreddit: str,
    strategy: str = 'domainAuthority',
    weights: Optional[Mapping[str, float]] = None
) -> float:
    """
    Authority multiplier for a subreddit.

    Args:
        subreddit: Subreddit or source name (any case).
        strategy: 'flat' always returns 1.0; 'domainAuthority' and 'custom'
            look the lower-cased name up in ``weights``.
        weights: Lookup table. Default: DEFAULT_SUBREDDIT_WEIGHTS

    Returns:
        Multiplier, falling back to the table's 'default' entry (or 1.0).
    """
    if strategy == 'flat':
        return 1.0

    table = DEFAULT_SUBREDDIT_WEIGHTS if weights is None else weights
    return table.get((subreddit or '').lower(), table.get('default', 1.0))


def calculate_engagement_weight(
    score: int,
    num_comments: int,
    upvote_ratio: float,
    subreddit: str,
    config: Optional[EngagementConfig] = None
) -> EngagementWeights:
    """
    Compute the engagement weight of a post.

    Score and comments are log10-normalized over 5 and 4 decades (each
    clamped to at least 1 first), upvote ratio is used as-is, the three
    are combined by weighted sum and multiplied by the subreddit authority.

    The result is non-negative with no fixed upper bound; treat it as a
    relative weight, not a probability.
    """
    config = config or EngagementConfig()

    normalized_score = math.log10(max(1, score)) / 5
    normalized_comments = math.log10(max(1, num_comments)) / 4
    normalized_upvote_ratio = upvote_ratio

    score_component = normalized_score * config.score_weight
    comment_component = normalized_comments * config.comment_weight
    upvote_ratio_component = normalized_upvote_ratio * config.upvote_ratio_weight

    multiplier = get_subreddit_weight(subreddit, config.subreddit_strategy, config.subreddit_weights)
    total = (score_component + comment_component + upvote_ratio_component) * multiplier

    return EngagementWeights(
        total=max(0.0, total),
        score_component=score_component,
        comment_component=comment_component,
        upvote_ratio_component=upvote_ratio_component,
        subreddit_multiplier=multiplier,
    )


def calculate_finance_relevance(
    keyword: str,
    mapped_tickers: Sequence[str],
    financial_terms: Iterable[str] = FINANCIAL_TERMS,
    financial_phrases: Sequence[str] = FINANCIAL_PHRASES
) -> float:
    """
    Additive, capped finance-relevance prior for a keyword.

    - 0.7 if any ticker is mapped, else 0.0
    - +0.15 if more than one ticker is mapped
    - +0.15 if the keyword is exactly a known financial term
    - +0.10 if the keyword contains a financial phrase (first match only)
    - capped at 1.0

    Args:
        keyword: Keyword text (any case).
        mapped_tickers: Tickers the keyword resolved to.

    Returns:
        Relevance in [0, 1].
    """
    relevance = 0.7 if len(mapped_tickers) > 0 else 0.0

    if len(mapped_tickers) > 1:
        relevance += 0.15

    keyword_lower = keyword.lower()
    terms = financial_terms if isinstance(financial_terms, (set, frozenset)) else set(financial_terms)
    if keyword_lower in terms:
        relevance += 0.15

    for phrase in financial_phrases:
        if phrase in keyword_lower:
            relevance += 0.1
            break

    return min(relevance, 1.0)
