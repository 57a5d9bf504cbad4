"""Tests for the weight calculator."""

from datetime import datetime

import pytest

from hotspot.core.matching.calculator import CalculatorService, WeightConfig, round_half_up
from hotspot.schemas.keyword import Appearance, NewsMatchData


def history(*ranks: int, match_count: int = None) -> NewsMatchData:
    appearances = [Appearance(rank=r, appeared_at=datetime(2024, 5, 1, i)) for i, r in enumerate(ranks)]
    return NewsMatchData(
        ranks=list(ranks),
        match_count=len(ranks) if match_count is None else match_count,
        appearances=appearances,
    )


class TestCalculatorService:
    """Tests for CalculatorService."""

    @pytest.fixture
    def calculator(self):
        return CalculatorService()

    def test_rank_score(self, calculator):
        assert calculator.calculate_rank_score([1, 3]) == 9.0
        assert calculator.calculate_rank_score([10, 50]) == 1.0
        assert calculator.calculate_rank_score([]) == 0.0

    def test_frequency_score_is_capped(self, calculator):
        assert calculator.calculate_frequency_score(3) == 30.0
        assert calculator.calculate_frequency_score(25) == 100.0

    def test_hotness_score(self, calculator):
        appearances = history(1, 5, 6, 20).appearances

        assert calculator.calculate_hotness_score(appearances, 5) == 50.0
        assert calculator.calculate_hotness_score([], 5) == 0.0

    def test_single_top_appearance(self, calculator):
        # 10 * 0.6 + 10 * 0.3 + 100 * 0.1
        assert calculator.calculate_weight(history(1)) == 19.0

    def test_mixed_history(self, calculator):
        # rank (9 + 5 + 1) / 3 = 5, frequency 30, hotness 1/3
        assert calculator.calculate_weight(history(2, 6, 12)) == 15.33

    def test_rank_threshold(self, calculator):
        assert calculator.calculate_weight(history(3), rank_threshold=2) == 7.8

    def test_empty_history(self, calculator):
        assert calculator.calculate_weight(NewsMatchData()) == 0.0

    def test_custom_weights(self):
        calculator = CalculatorService(WeightConfig(rank_weight=1.0, frequency_weight=0.0, hotness_weight=0.0))

        assert calculator.calculate_weight(history(4)) == 7.0


@pytest.mark.parametrize("value,expected", [(2.345, 2.35), (2.344, 2.34), (0.125, 0.13), (15.666666, 15.67)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected
