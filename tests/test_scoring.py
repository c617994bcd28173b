"""
Tests for engagement and finance-relevance scoring.
"""

import math

import pytest

from sentiment_engine.scoring import (
    EngagementConfig,
    calculate_engagement_weight,
    calculate_finance_relevance,
    get_subreddit_weight,
)


class TestEngagementWeight:
    """Tests for engagement weighting."""

    def test_known_value(self):
        """Test the weighted log formula under flat subreddit weighting."""
        config = EngagementConfig(subreddit_strategy='flat')
        result = calculate_engagement_weight(1000, 100, 0.9, 'stocks', config)

        expected = (math.log10(1000) / 5) * 0.4 + (math.log10(100) / 4) * 0.4 + 0.9 * 0.2
        assert result.total == pytest.approx(expected)
        assert result.subreddit_multiplier == 1.0

    def test_low_counts_clamped(self):
        """Test zero and negative counts are clamped to 1 before the log."""
        config = EngagementConfig(subreddit_strategy='flat')
        result = calculate_engagement_weight(-5, 0, 0.5, 'stocks', config)

        assert result.score_component == 0.0
        assert result.comment_component == 0.0
        assert result.total == pytest.approx(0.1)

    def test_subreddit_multiplier(self):
        """Test the authority multiplier scales the weight."""
        flat = calculate_engagement_weight(100, 10, 0.8, 'investing', EngagementConfig(subreddit_strategy='flat'))
        authority = calculate_engagement_weight(100, 10, 0.8, 'Investing', EngagementConfig())

        assert authority.total == pytest.approx(flat.total * 1.4)

    def test_not_bounded_by_one(self):
        """Test the weight is relative and can exceed 1."""
        config = EngagementConfig(subreddit_weights={'default': 3.0})
        result = calculate_engagement_weight(100000, 10000, 1.0, 'anything', config)

        assert result.total > 1.0

    def test_custom_weights(self):
        """Test configurable component weights."""
        config = EngagementConfig(
            score_weight=0.0, comment_weight=0.0, upvote_ratio_weight=1.0, subreddit_strategy='flat'
        )
        assert calculate_engagement_weight(500, 50, 0.75, 'stocks', config).total == pytest.approx(0.75)

    def test_invalid_strategy(self):
        """Test unknown strategies are rejected."""
        with pytest.raises(ValueError):
            EngagementConfig(subreddit_strategy='popularity')

    def test_negative_weight_rejected(self):
        """Test negative component weights are rejected."""
        with pytest.raises(ValueError):
            EngagementConfig(score_weight=-0.1)


class TestSubredditWeight:
    """Tests for subreddit authority lookup."""

    def test_flat(self):
        assert get_subreddit_weight('securityanalysis', 'flat') == 1.0

    def test_lookup_is_case_insensitive(self):
        assert get_subreddit_weight('WallStreetBets') == pytest.approx(1.2)

    def test_default_fallback(self):
        assert get_subreddit_weight('cooking', weights={'default': 0.7}) == pytest.approx(0.7)
        assert get_subreddit_weight('cooking', weights={}) == 1.0


class TestFinanceRelevance:
    """Tests for the finance relevance prior."""

    def test_no_tickers(self):
        assert calculate_finance_relevance('sunny', []) == 0.0

    def test_single_ticker(self):
        assert calculate_finance_relevance('apple', ['AAPL']) == pytest.approx(0.7)

    def test_multiple_tickers(self):
        assert calculate_finance_relevance('chips', ['NVDA', 'AMD']) == pytest.approx(0.85)

    def test_financial_term_exact(self):
        """Test exact financial term bonus (case-insensitive)."""
        assert calculate_finance_relevance('Earnings', []) == pytest.approx(0.15)
        assert calculate_finance_relevance('earnings season', []) == 0.0

    def test_financial_phrase_counts_once(self):
        """Test phrase bonus applies once even with several phrases."""
        assert calculate_finance_relevance('price target and market cap', []) == pytest.approx(0.1)

    def test_capped_at_one(self):
        """Test the sum is capped."""
        score = calculate_finance_relevance('stocks', ['AAPL', 'MSFT'])
        assert score == pytest.approx(1.0)

    def test_deterministic(self):
        assert calculate_finance_relevance('market cap', ['AAPL']) == calculate_finance_relevance('market cap', ['AAPL'])
