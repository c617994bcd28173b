"""
Finance knowledge base: tracked securities and entity resolution.

Holds the static reference data (symbols, names, aliases, sectors,
market-cap weights) and the pure functions that turn free text into
ranked ticker matches. A knowledge base is an immutable value built once
and passed explicitly to the resolver, scorer and aggregator.
"""

import re
from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Tuple


KB_VERSION = "1.0.0"

SYMBOL_CONFIDENCE = 0.95
ALIAS_CONFIDENCE = 0.85
DEFAULT_MARKET_CAP_WEIGHT = 0.01
MIN_ALIAS_LENGTH = 3


@dataclass(frozen=True)
class TickerInfo:
    """
    Reference record for one tracked security.

    Attributes:
        symbol: Ticker symbol (e.g., 'AAPL').
        name: Company name.
        aliases: Informal, product and executive names, lower-case.
        sector: Industry sector.
        industry: Industry within the sector.
    """
    symbol: str
    name: str
    aliases: Tuple[str, ...] = ()
    sector: Optional[str] = None
    industry: Optional[str] = None


@dataclass(frozen=True)
class FinanceEntityMatch:
    """
    One ticker found in a piece of text.

    Attributes:
        ticker: Resolved ticker symbol.
        matched_text: Substring of the input that matched.
        match_type: 'symbol', 'company', 'alias' or 'pattern'.
        confidence: Match confidence in [0, 1].
        position: Character offset of the match in the input.
    """
    ticker: str
    matched_text: str
    match_type: str
    confidence: float
    position: int


NASDAQ_100_TICKERS: Tuple[TickerInfo, ...] = (
    # Top tech giants
    TickerInfo('AAPL', 'Apple Inc.', ('apple', 'iphone', 'tim cook'), 'Technology', 'Consumer Electronics'),
    TickerInfo('MSFT', 'Microsoft Corporation', ('microsoft', 'windows', 'satya nadella', 'azure'), 'Technology', 'Software'),
    TickerInfo('GOOGL', 'Alphabet Inc.', ('alphabet', 'google', 'sundar pichai', 'youtube'), 'Technology', 'Internet'),
    TickerInfo('AMZN', 'Amazon.com Inc.', ('amazon', 'aws', 'jeff bezos', 'andy jassy', 'prime'), 'Consumer Cyclical', 'E-commerce'),
    TickerInfo('NVDA', 'NVIDIA Corporation', ('nvidia', 'jensen huang', 'geforce', 'cuda'), 'Technology', 'Semiconductors'),
    TickerInfo('META', 'Meta Platforms Inc.', ('meta', 'facebook', 'instagram', 'whatsapp', 'mark zuckerberg'), 'Technology', 'Social Media'),
    TickerInfo('TSLA', 'Tesla Inc.', ('tesla', 'elon musk', 'model 3', 'model y', 'cybertruck'), 'Consumer Cyclical', 'Auto Manufacturers'),

    # Other major tech
    TickerInfo('AVGO', 'Broadcom Inc.', ('broadcom',), 'Technology', 'Semiconductors'),
    TickerInfo('ORCL', 'Oracle Corporation', ('oracle', 'larry ellison'), 'Technology', 'Software'),
    TickerInfo('CSCO', 'Cisco Systems Inc.', ('cisco',), 'Technology', 'Networking'),
    TickerInfo('ADBE', 'Adobe Inc.', ('adobe', 'photoshop', 'acrobat'), 'Technology', 'Software'),
    TickerInfo('NFLX', 'Netflix Inc.', ('netflix',), 'Communication Services', 'Entertainment'),
    TickerInfo('CRM', 'Salesforce Inc.', ('salesforce', 'marc benioff'), 'Technology', 'Software'),
    TickerInfo('AMD', 'Advanced Micro Devices Inc.', ('amd', 'ryzen', 'radeon', 'lisa su'), 'Technology', 'Semiconductors'),
    TickerInfo('INTC', 'Intel Corporation', ('intel', 'core', 'xeon'), 'Technology', 'Semiconductors'),
    TickerInfo('QCOM', 'QUALCOMM Inc.', ('qualcomm', 'snapdragon'), 'Technology', 'Semiconductors'),

    # Additional notable companies
    TickerInfo('COST', 'Costco Wholesale Corporation', ('costco',), 'Consumer Defensive', 'Retail'),
    TickerInfo('PEP', 'PepsiCo Inc.', ('pepsi', 'pepsico'), 'Consumer Defensive', 'Beverages'),
    TickerInfo('TMUS', 'T-Mobile US Inc.', ('t-mobile', 'tmobile'), 'Communication Services', 'Telecom'),
    TickerInfo('CMCSA', 'Comcast Corporation', ('comcast', 'xfinity'), 'Communication Services', 'Telecom'),
    TickerInfo('PYPL', 'PayPal Holdings Inc.', ('paypal',), 'Financial Services', 'Payments'),
    TickerInfo('ABNB', 'Airbnb Inc.', ('airbnb',), 'Consumer Cyclical', 'Travel'),
    TickerInfo('SBUX', 'Starbucks Corporation', ('starbucks',), 'Consumer Cyclical', 'Restaurants'),
)

# Tokens that look like tickers but aren't
TICKER_STOPLIST: FrozenSet[str] = frozenset({
    'USA', 'CEO', 'IPO', 'ETF', 'USD', 'API', 'AI', 'ML', 'UI', 'UX',
    'GPU', 'CPU', 'RAM', 'SSD', 'HDD', 'OS', 'PC', 'MAC', 'IOS',
    'THE', 'AND', 'FOR', 'ARE', 'BUT', 'NOT', 'YOU', 'ALL', 'CAN',
    'WAS', 'ONE', 'OUR', 'OUT', 'WHO', 'GET', 'HAS', 'HIM', 'HIS',
    'HOW', 'ITS', 'MAY', 'NEW', 'NOW', 'OLD', 'SEE', 'TWO', 'WAY',
    'USE', 'HER', 'SHE', 'WHY', 'LET', 'PUT', 'SAY', 'TOO',
})

# Simplified index weights; unlisted tickers get DEFAULT_MARKET_CAP_WEIGHT
DEFAULT_MARKET_CAP_WEIGHTS: Dict[str, float] = {
    'AAPL': 0.12,
    'MSFT': 0.11,
    'GOOGL': 0.08,
    'AMZN': 0.07,
    'NVDA': 0.06,
    'META': 0.04,
    'TSLA': 0.03,
}

TICKER_PATTERNS = (
    # $TICKER (cashtag)
    re.compile(r'\$([A-Z]{1,5})\b'),
    # Bare TICKER followed by whitespace, punctuation or end of text
    re.compile(r'\b([A-Z]{2,5})\b(?=\s|[.,!?]|$)'),
)

_WORD_BOUNDARY = re.compile(r'[\s.,!?;:]')


class FinanceKnowledgeBase:
    """
    Immutable reference data plus entity resolution.

    Example:
        >>> kb = FinanceKnowledgeBase()
        >>> [m.ticker for m in kb.resolve_entities("AAPL is up, $MSFT too")]
        ['AAPL', 'MSFT']
    """

    def __init__(
        self,
        tickers: Iterable[TickerInfo] = NASDAQ_100_TICKERS,
        stoplist: Iterable[str] = TICKER_STOPLIST,
        market_cap_weights: Optional[Mapping[str, float]] = None,
        default_weight: float = DEFAULT_MARKET_CAP_WEIGHT,
        version: str = KB_VERSION
    ):
        """
        Initialize the knowledge base.

        Args:
            tickers: Tracked securities.
            stoplist: Upper-case tokens never treated as symbols.
            market_cap_weights: Symbol to index weight. Default: DEFAULT_MARKET_CAP_WEIGHTS
            default_weight: Weight for symbols missing from the table.
            version: Version stamped on seeded entities.
        """
        self._tickers: Tuple[TickerInfo, ...] = tuple(tickers)
        self._by_symbol: Dict[str, TickerInfo] = {t.symbol.upper(): t for t in self._tickers}
        self._stoplist: FrozenSet[str] = frozenset(s.upper() for s in stoplist)
        self._weights: Dict[str, float] = dict(
            DEFAULT_MARKET_CAP_WEIGHTS if market_cap_weights is None else market_cap_weights
        )
        self.default_weight = default_weight
        self.version = version
        self._alias_index = self._build_alias_index()

    @property
    def tickers(self) -> Tuple[TickerInfo, ...]:
        return self._tickers

    @property
    def stoplist(self) -> FrozenSet[str]:
        return self._stoplist

    @property
    def symbols(self) -> List[str]:
        return [t.symbol for t in self._tickers]

    def _build_alias_index(self) -> Dict[str, List[str]]:
        index: Dict[str, List[str]] = {}
        for ticker in self._tickers:
            keys = [ticker.symbol.lower(), ticker.name.lower()]
            keys.extend(alias.lower() for alias in ticker.aliases)
            for key in keys:
                symbols = index.setdefault(key, [])
                if ticker.symbol not in symbols:
                    symbols.append(ticker.symbol)
        return index

    def build_alias_index(self) -> Dict[str, List[str]]:
        """
        Map every lower-cased symbol, company name and alias to its symbols.

        Several symbols may share one key; callers decide how to rank them.

        Returns:
            Fresh dictionary of normalized alias -> list of symbols.
        """
        return {key: list(symbols) for key, symbols in self._alias_index.items()}

    def resolve_entities(self, text: str) -> List[FinanceEntityMatch]:
        """
        Extract ticker mentions from free text.

        Steps:
        1. Cashtags and bare 2-5 letter upper-case tokens that are known
           symbols and not stop-listed (confidence 0.95).
        2. Alias-index substrings bounded by whitespace or punctuation on
           both sides (confidence 0.85).
        3. Keep the highest-confidence match per ticker, ordered by position.

        Args:
            text: Raw post text (title and body).

        Returns:
            At most one match per ticker, sorted by position ascending.
        """
        if not text:
            return []

        matches: List[FinanceEntityMatch] = []
        matches.extend(self._match_symbols(text))
        matches.extend(self._match_aliases(text))

        deduped: Dict[str, FinanceEntityMatch] = {}
        for match in matches:
            existing = deduped.get(match.ticker)
            if existing is None or match.confidence > existing.confidence:
                deduped[match.ticker] = match

        return sorted(deduped.values(), key=lambda m: m.position)

    def _match_symbols(self, text: str) -> List[FinanceEntityMatch]:
        matches = []
        for pattern in TICKER_PATTERNS:
            for found in pattern.finditer(text):
                candidate = found.group(1).upper()
                if candidate in self._stoplist:
                    continue
                if candidate not in self._by_symbol:
                    continue
                matches.append(FinanceEntityMatch(
                    ticker=candidate,
                    matched_text=found.group(0),
                    match_type='symbol',
                    confidence=SYMBOL_CONFIDENCE,
                    position=found.start(),
                ))
        return matches

    def _match_aliases(self, text: str) -> List[FinanceEntityMatch]:
        matches = []
        normalized = text.lower()
        for alias, symbols in self._alias_index.items():
            if len(alias) < MIN_ALIAS_LENGTH:
                continue
            index = self._find_bounded(normalized, alias)
            if index < 0:
                continue
            for symbol in symbols:
                matches.append(FinanceEntityMatch(
                    ticker=symbol,
                    matched_text=text[index:index + len(alias)],
                    match_type=self._alias_match_type(alias, symbol),
                    confidence=ALIAS_CONFIDENCE,
                    position=index,
                ))
        return matches

    @staticmethod
    def _find_bounded(haystack: str, needle: str) -> int:
        """First index of ``needle`` with a word boundary on both sides, or -1."""
        start = haystack.find(needle)
        while start != -1:
            end = start + len(needle)
            before = haystack[start - 1] if start > 0 else ' '
            after = haystack[end] if end < len(haystack) else ' '
            if _WORD_BOUNDARY.match(before) and _WORD_BOUNDARY.match(after):
                return start
            start = haystack.find(needle, start + 1)
        return -1

    def _alias_match_type(self, alias: str, symbol: str) -> str:
        if alias == symbol.lower():
            return 'symbol'
        info = self._by_symbol.get(symbol)
        if info is not None and alias == info.name.lower():
            return 'company'
        return 'alias'

    def get_ticker_info(self, symbol: str) -> Optional[TickerInfo]:
        """Get reference data for a symbol (case-insensitive)."""
        return self._by_symbol.get(symbol.upper())

    def get_ticker_sector(self, symbol: str) -> Optional[str]:
        """Get the sector for a symbol."""
        info = self.get_ticker_info(symbol)
        return info.sector if info else None

    def get_market_cap_weight(self, symbol: str) -> float:
        """
        Index weight for a symbol.

        Used only for basket-level aggregation, never for per-ticker scores.
        """
        return self._weights.get(symbol.upper(), self.default_weight)

    def with_market_cap_weights(self, weights: Mapping[str, float]) -> "FinanceKnowledgeBase":
        """Return a copy using refreshed market-cap weights."""
        return FinanceKnowledgeBase(
            tickers=self._tickers,
            stoplist=self._stoplist,
            market_cap_weights=weights,
            default_weight=self.default_weight,
            version=self.version,
        )

    def __len__(self) -> int:
        return len(self._tickers)

    def __contains__(self, symbol: str) -> bool:
        return symbol.upper() in self._by_symbol


_default_kb: Optional[FinanceKnowledgeBase] = None


def get_knowledge_base() -> FinanceKnowledgeBase:
    """Get the process-wide default knowledge base, built on first use."""
    global _default_kb
    if _default_kb is None:
        _default_kb = FinanceKnowledgeBase()
    return _default_kb
