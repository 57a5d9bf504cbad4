"""Weight score from an item's appearance history."""

from decimal import Decimal, ROUND_HALF_UP
from dataclasses import dataclass
from typing import List, Optional

from hotspot.schemas.keyword import Appearance, NewsMatchData

MAX_COUNTED_RANK = 10
MAX_COUNTED_MATCHES = 10


@dataclass(frozen=True)
class WeightConfig:
    rank_weight: float = 0.6
    frequency_weight: float = 0.3
    hotness_weight: float = 0.1


def round_half_up(value: float, digits: int = 2) -> float:
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


class CalculatorService:
    """Stateless weight calculator.

    weight = rank_score * 0.6 + frequency_score * 0.3 + hotness_score * 0.1
    """

    def __init__(self, config: Optional[WeightConfig] = None):
        self.config = config or WeightConfig()

    def calculate_weight(self, data: NewsMatchData, rank_threshold: int = 5) -> float:
        rank_score = self.calculate_rank_score(data.ranks)
        frequency_score = self.calculate_frequency_score(data.match_count)
        hotness_score = self.calculate_hotness_score(data.appearances, rank_threshold)

        total = (
            rank_score * self.config.rank_weight
            + frequency_score * self.config.frequency_weight
            + hotness_score * self.config.hotness_weight
        )
        return round_half_up(total, 2)

    @staticmethod
    def calculate_rank_score(ranks: List[int]) -> float:
        """Mean of ``11 - min(rank, 10)``; 0 without ranks."""
        if not ranks:
            return 0.0
        return sum(MAX_COUNTED_RANK + 1 - min(rank, MAX_COUNTED_RANK) for rank in ranks) / len(ranks)

    @staticmethod
    def calculate_frequency_score(match_count: int) -> float:
        return min(match_count, MAX_COUNTED_MATCHES) * 10.0

    @staticmethod
    def calculate_hotness_score(appearances: List[Appearance], rank_threshold: int) -> float:
        """Share of appearances ranked at or above the threshold, as a percentage."""
        if not appearances:
            return 0.0
        high = sum(1 for a in appearances if a.rank <= rank_threshold)
        return high / len(appearances) * 100
