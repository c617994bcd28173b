"""
Keyword extraction and entity resolution for social posts.

Turns one post into keyword candidates (feed-supplied keywords, curated
phrases and resolved tickers), merges them, scores them and emits one
KeywordOccurrence per extracted keyword, stamped with the post's own
timestamp so that backfilled windows stay historically accurate.
"""

import logging
import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pandas as pd
from sqlalchemy.orm import Session

from .clock import Clock, SystemClock
from .db.models import KeywordOccurrence
from .db.queries import insert_occurrences
from .knowledge.knowledge_base import FinanceEntityMatch, FinanceKnowledgeBase, get_knowledge_base
from .scoring import EngagementConfig, calculate_engagement_weight, calculate_finance_relevance

logger = logging.getLogger(__name__)


PHRASE_PATTERNS = (
    # Financial phrases
    'stock market', 'bull market', 'bear market', 'market crash',
    'earnings report', 'quarterly earnings', 'revenue growth', 'profit margin',
    'market cap', 'price target', 'buy rating', 'sell rating',
    'all time high', 'all time low', 'stock split', 'dividend yield',

    # Technology phrases
    'artificial intelligence', 'machine learning', 'deep learning',
    'cloud computing', 'data science', 'software engineering',
    'web development', 'mobile app', 'neural network',
)

DEDUPE_STRATEGIES = ('lemma', 'lowercase', 'aggressive')


@dataclass(frozen=True)
class SentimentSnapshot:
    """
    Class probabilities for one post, each in [0, 1].

    positive + negative + neutral is roughly 1.
    """
    positive: float = 0.0
    negative: float = 0.0
    neutral: float = 1.0
    mixed: float = 0.0
    confidence: float = 0.0

    @classmethod
    def neutral_default(cls) -> "SentimentSnapshot":
        return cls()

    @classmethod
    def from_label(cls, label: str, confidence: float) -> "SentimentSnapshot":
        """One-hot snapshot from a label; unknown labels count as mixed."""
        label = (label or '').lower()
        if label == 'positive':
            return cls(positive=1.0, neutral=0.0, confidence=confidence)
        if label == 'negative':
            return cls(negative=1.0, neutral=0.0, confidence=confidence)
        if label == 'neutral':
            return cls(neutral=1.0, confidence=confidence)
        return cls(neutral=0.0, mixed=1.0, confidence=confidence)


@dataclass
class Post:
    """
    One post from the ingestion feed.

    Attributes:
        id: Post id.
        title: Post title.
        body: Post body text.
        subreddit: Source community.
        score: Net votes.
        num_comments: Comment count.
        upvote_ratio: Fraction of upvotes in [0, 1].
        created_ms: Observed post time (epoch ms).
        keywords: Keywords supplied by the feed, if any.
        sentiment: Post-level sentiment, if known.
    """
    id: str
    title: str
    body: str
    subreddit: str
    score: int
    num_comments: int
    upvote_ratio: float
    created_ms: int
    keywords: List[str] = field(default_factory=list)
    sentiment: Optional[SentimentSnapshot] = None

    @property
    def text(self) -> str:
        return f"{self.title or ''} {self.body or ''}"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Post":
        """
        Build a Post from a feed record.

        Accepts ``created_ms`` or Reddit-style ``created_utc`` seconds,
        ``body`` or ``selftext``, and either sentiment probabilities
        (``sentiment_positive`` ...) or a ``sentiment`` label with
        ``sentiment_confidence``.
        """
        if data.get('created_ms') is not None and not _is_missing(data.get('created_ms')):
            created_ms = int(data['created_ms'])
        elif data.get('created_utc') is not None and not _is_missing(data.get('created_utc')):
            created_ms = int(float(data['created_utc']) * 1000)
        else:
            raise ValueError(f"Post {data.get('id')} has no created_ms or created_utc")

        keywords = data.get('keywords')
        if _is_missing(keywords):
            keywords = []
        if isinstance(keywords, str):
            keywords = [k.strip() for k in keywords.split('|') if k.strip()]

        body = data.get('body')
        if _is_missing(body):
            body = data.get('selftext')

        return cls(
            id=str(data['id']),
            title=_text(data.get('title')),
            body=_text(body),
            subreddit=_text(data.get('subreddit')) or 'unknown',
            score=int(_number(data.get('score'), 0)),
            num_comments=int(_number(data.get('num_comments'), 0)),
            upvote_ratio=float(_number(data.get('upvote_ratio'), 0.0)),
            created_ms=created_ms,
            keywords=list(keywords),
            sentiment=_sentiment_from_record(data),
        )


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and pd.isna(value))


def _text(value: Any) -> str:
    return '' if _is_missing(value) else str(value)


def _number(value: Any, default: float) -> float:
    return default if _is_missing(value) else float(value)


def _sentiment_from_record(data: Mapping[str, Any]) -> Optional[SentimentSnapshot]:
    if not _is_missing(data.get('sentiment_positive')):
        return SentimentSnapshot(
            positive=float(_number(data.get('sentiment_positive'), 0.0)),
            negative=float(_number(data.get('sentiment_negative'), 0.0)),
            neutral=float(_number(data.get('sentiment_neutral'), 0.0)),
            mixed=float(_number(data.get('sentiment_mixed'), 0.0)),
            confidence=float(_number(data.get('sentiment_confidence'), 0.0)),
        )
    label = data.get('sentiment')
    if isinstance(label, str) and label:
        return SentimentSnapshot.from_label(label, float(_number(data.get('sentiment_confidence'), 0.0)))
    return None


def posts_from_dataframe(df: pd.DataFrame) -> List[Post]:
    """Convert a feed DataFrame (one row per post) into Post records."""
    if df.empty:
        return []
    return [Post.from_dict(row) for row in df.to_dict(orient='records')]


@dataclass
class ExtractedKeyword:
    """A merged keyword candidate for one post."""
    text: str
    normalized: str
    type: str
    occurrences: int = 1
    extraction_score: float = 0.7
    in_title: bool = False
    in_body: bool = False
    tickers: List[str] = field(default_factory=list)
    match_confidence: Optional[float] = None
    finance_relevance: float = 0.0
    sentiment: Optional[SentimentSnapshot] = None


@dataclass
class ExtractionOptions:
    """
    Keyword extraction options.

    Attributes:
        max_keywords_per_post: Cap on keywords kept per post.
        finance_boost_factor: Multiplier on the score of ticker-mapped keywords.
        include_finance_entities: Run entity resolution on the post text.
        min_sentiment_confidence: Below this the snapshot falls back to neutral.
        dedupe_strategy: 'lowercase', 'lemma' or 'aggressive'.
        allowlist: Extra phrases to detect.
        stoplist: Phrases never emitted.
        engagement: Engagement weighting configuration.
    """
    max_keywords_per_post: int = 20
    finance_boost_factor: float = 1.5
    include_finance_entities: bool = True
    min_sentiment_confidence: float = 0.0
    dedupe_strategy: str = 'lowercase'
    allowlist: List[str] = field(default_factory=list)
    stoplist: List[str] = field(default_factory=list)
    engagement: EngagementConfig = field(default_factory=EngagementConfig)

    def __post_init__(self):
        if self.dedupe_strategy not in DEDUPE_STRATEGIES:
            raise ValueError(
                f"Unknown dedupe strategy: {self.dedupe_strategy}. "
                f"Use one of: {', '.join(DEDUPE_STRATEGIES)}"
            )
        if self.max_keywords_per_post <= 0:
            raise ValueError("max_keywords_per_post must be positive")

    @classmethod
    def from_config(cls) -> "ExtractionOptions":
        from config import Config
        return cls(
            max_keywords_per_post=Config.MAX_KEYWORDS_PER_POST,
            finance_boost_factor=Config.FINANCE_BOOST_FACTOR,
            min_sentiment_confidence=Config.MIN_SENTIMENT_CONFIDENCE,
            dedupe_strategy=Config.KEYWORD_DEDUPE_STRATEGY,
            engagement=EngagementConfig.from_config(),
        )


def normalize_keyword(keyword: str, strategy: str = 'lowercase') -> str:
    """
    Normalize keyword text.

    'lemma' only trims (no lemmatizer is used), 'lowercase' also
    lower-cases, 'aggressive' additionally strips punctuation other than
    hyphens and collapses whitespace.
    """
    normalized = keyword.strip()

    if strategy in ('lowercase', 'aggressive'):
        normalized = normalized.lower()

    if strategy == 'aggressive':
        normalized = re.sub(r'[^\w\s-]', '', normalized)
        normalized = re.sub(r'\s+', ' ', normalized)

    return normalized


def determine_keyword_type(keyword: str) -> str:
    if re.fullmatch(r'[A-Z]{2,5}', keyword):
        return 'entity'
    if ' ' in keyword:
        return 'phrase'
    if keyword.startswith('#'):
        return 'hashtag'
    return 'topic'


def count_occurrences(text: str, pattern: str) -> int:
    """Count non-overlapping occurrences of ``pattern`` in ``text``."""
    if not pattern:
        return 0
    return text.count(pattern)


class KeywordExtractor:
    """
    Extracts and scores keyword candidates from a post.

    Example:
        >>> extractor = KeywordExtractor()
        >>> keywords = extractor.extract(post)
        >>> [(k.normalized, k.tickers) for k in keywords]
        [('aapl', ['AAPL']), ('price target', [])]
    """

    def __init__(
        self,
        kb: Optional[FinanceKnowledgeBase] = None,
        options: Optional[ExtractionOptions] = None
    ):
        self.kb = kb or get_knowledge_base()
        self.options = options or ExtractionOptions()

    def extract(
        self,
        post: Post,
        matches: Optional[List[FinanceEntityMatch]] = None
    ) -> List[ExtractedKeyword]:
        """
        Extract keywords from a post.

        Args:
            post: The post.
            matches: Pre-computed entity matches for ``post.text``. Resolved
                here when None and finance entities are enabled.

        Returns:
            Keywords sorted by extraction score, at most
            ``max_keywords_per_post`` of them.
        """
        opts = self.options
        title_lower = (post.title or '').lower()
        body_lower = (post.body or '').lower()
        text_lower = post.text.lower()

        candidates: List[ExtractedKeyword] = []

        for keyword in post.keywords:
            candidates.append(ExtractedKeyword(
                text=keyword,
                normalized=normalize_keyword(keyword, opts.dedupe_strategy),
                type=determine_keyword_type(keyword),
                extraction_score=0.7,
                in_title=keyword.lower() in title_lower,
                in_body=keyword.lower() in body_lower,
            ))

        for phrase in self._match_phrases(text_lower):
            candidates.append(ExtractedKeyword(
                text=phrase,
                normalized=normalize_keyword(phrase, opts.dedupe_strategy),
                type='phrase',
                occurrences=count_occurrences(text_lower, phrase.lower()),
                extraction_score=0.8,
                in_title=phrase.lower() in title_lower,
                in_body=phrase.lower() in body_lower,
            ))

        if opts.include_finance_entities:
            if matches is None:
                matches = self.kb.resolve_entities(post.text)
            title_length = len(post.title or '')
            for match in matches:
                candidates.append(ExtractedKeyword(
                    text=match.matched_text,
                    normalized=normalize_keyword(match.ticker, opts.dedupe_strategy),
                    type='entity',
                    extraction_score=match.confidence,
                    in_title=match.position < title_length,
                    in_body=match.position >= title_length,
                    tickers=[match.ticker],
                    match_confidence=match.confidence,
                ))

        merged = self._merge(candidates)

        for keyword in merged:
            if keyword.tickers and opts.finance_boost_factor:
                keyword.extraction_score *= opts.finance_boost_factor

        merged.sort(key=lambda k: k.extraction_score, reverse=True)
        limited = merged[:opts.max_keywords_per_post]

        snapshot = self._post_sentiment(post)
        return [replace(keyword, sentiment=snapshot) for keyword in limited]

    def _match_phrases(self, text_lower: str) -> List[str]:
        patterns = list(PHRASE_PATTERNS) + list(self.options.allowlist)
        stoplist = {s.lower() for s in self.options.stoplist}
        phrases = []
        for pattern in patterns:
            if pattern.lower() in stoplist:
                continue
            if pattern.lower() in text_lower and pattern not in phrases:
                phrases.append(pattern)
        return phrases

    @staticmethod
    def _merge(candidates: Iterable[ExtractedKeyword]) -> List[ExtractedKeyword]:
        merged: Dict[str, ExtractedKeyword] = {}

        for candidate in candidates:
            existing = merged.get(candidate.normalized)
            if existing is None:
                merged[candidate.normalized] = replace(candidate, tickers=list(candidate.tickers))
                continue

            existing.occurrences += candidate.occurrences
            existing.extraction_score = max(existing.extraction_score, candidate.extraction_score)
            for ticker in candidate.tickers:
                if ticker not in existing.tickers:
                    existing.tickers.append(ticker)
            if candidate.match_confidence is not None:
                existing.match_confidence = max(existing.match_confidence or 0.0, candidate.match_confidence)
            existing.in_title = existing.in_title or candidate.in_title
            existing.in_body = existing.in_body or candidate.in_body

        for keyword in merged.values():
            keyword.finance_relevance = calculate_finance_relevance(keyword.text, keyword.tickers)

        return list(merged.values())

    def _post_sentiment(self, post: Post) -> SentimentSnapshot:
        snapshot = post.sentiment
        if snapshot is None or snapshot.confidence < self.options.min_sentiment_confidence:
            return SentimentSnapshot.neutral_default()
        return snapshot


class EntityResolver:
    """
    Turns posts into KeywordOccurrence records.

    Example:
        >>> resolver = EntityResolver(clock=FixedClock(now))
        >>> with db.session() as session:
        ...     resolver.ingest(session, posts)
    """

    def __init__(
        self,
        kb: Optional[FinanceKnowledgeBase] = None,
        options: Optional[ExtractionOptions] = None,
        clock: Optional[Clock] = None
    ):
        self.kb = kb or get_knowledge_base()
        self.options = options or ExtractionOptions()
        self.clock = clock or SystemClock()
        self.extractor = KeywordExtractor(self.kb, self.options)

    def resolve(self, post: Post) -> List[FinanceEntityMatch]:
        """Ticker matches in the post's title and body."""
        return self.kb.resolve_entities(post.text)

    def process_post(self, post: Post) -> List[KeywordOccurrence]:
        """
        Build the occurrence records for one post (not persisted).

        ``occurrence_time`` is the post's observed time, never compute time.
        """
        matches = self.resolve(post) if self.options.include_finance_entities else []
        keywords = self.extractor.extract(post, matches=matches)
        engagement = calculate_engagement_weight(
            post.score, post.num_comments, post.upvote_ratio, post.subreddit,
            self.options.engagement
        )
        now = self.clock.now_ms()

        occurrences = []
        for keyword in keywords:
            snapshot = keyword.sentiment or SentimentSnapshot.neutral_default()
            occurrences.append(KeywordOccurrence(
                keyword=keyword.text,
                keyword_id=keyword.normalized,
                post_id=post.id,
                subreddit=post.subreddit,
                occurrence_time=post.created_ms,
                sentiment_positive=snapshot.positive,
                sentiment_negative=snapshot.negative,
                sentiment_neutral=snapshot.neutral,
                sentiment_mixed=snapshot.mixed,
                sentiment_confidence=snapshot.confidence,
                engagement_weight=engagement.total,
                post_score=post.score,
                comment_count=post.num_comments,
                upvote_ratio=post.upvote_ratio,
                mapped_tickers=list(keyword.tickers),
                in_title=keyword.in_title,
                in_body=keyword.in_body,
                created_at=now,
            ))
        return occurrences

    def process_posts(self, posts: Iterable[Post]) -> List[KeywordOccurrence]:
        """Occurrences for a batch of posts, in input order."""
        occurrences: List[KeywordOccurrence] = []
        for post in posts:
            occurrences.extend(self.process_post(post))
        return occurrences

    def ingest(self, session: Session, posts: Iterable[Post]) -> int:
        """
        Extract and persist occurrences for a batch of posts.

        Returns:
            Number of occurrences inserted.
        """
        occurrences = self.process_posts(posts)
        count = insert_occurrences(session, occurrences)
        logger.info(f"Recorded {count} keyword occurrences")
        return count
