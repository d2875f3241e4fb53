"""Rank thresholds, rank lookup and the season base multiplier.

Pure functions of (coefficients, taps, prestige count). Nothing here holds
player state.
"""

from __future__ import annotations

from dataclasses import dataclass

from clicker.constants import LEVEL_NUMERALS
from clicker.core.config_types import SeasonCoefficients


@dataclass(frozen=True)
class Rank:
    """A derived rank. ``threshold`` already includes the prestige ease."""

    index: int
    tier: int
    level: int
    threshold: float

    @property
    def tier_name(self) -> str:
        return f"Tier {self.tier}"

    @property
    def level_numeral(self) -> str:
        if 1 <= self.level <= len(LEVEL_NUMERALS):
            return LEVEL_NUMERALS[self.level - 1]
        return str(self.level)

    @property
    def display_name(self) -> str:
        return f"{self.tier_name} {self.level_numeral}"

    @property
    def short_name(self) -> str:
        return f"T{self.tier}-{self.level_numeral}"


class RankCurve:
    """Threshold curve for one season's coefficients."""

    def __init__(self, coefficients: SeasonCoefficients | None = None):
        self.coefficients = coefficients or SeasonCoefficients()

    @property
    def rank_count(self) -> int:
        return self.coefficients.rank_count

    def clamp_index(self, index: int) -> int:
        return max(1, min(self.rank_count, int(index)))

    def prestige_ease(self, prestige_count: int) -> float:
        if prestige_count <= 0:
            return 1.0
        return self.coefficients.prestige_ease ** prestige_count

    def threshold(self, index: int, prestige_count: int = 0) -> float:
        """Taps needed to hold rank ``index``.

        ``base_threshold * growth^(index-1)``, eased by ``prestige_ease^prestige_count``
        so every prestige makes the climb a little shorter.
        """
        clamped = self.clamp_index(index)
        base = self.coefficients.base_threshold * self.coefficients.rank_growth_b ** (clamped - 1)
        return base * self.prestige_ease(prestige_count)

    def tier_and_level(self, index: int) -> tuple[int, int]:
        clamped = self.clamp_index(index)
        per_tier = self.coefficients.ranks_per_tier
        return (clamped - 1) // per_tier + 1, (clamped - 1) % per_tier + 1

    def rank_at(self, index: int, prestige_count: int = 0) -> Rank:
        clamped = self.clamp_index(index)
        tier, level = self.tier_and_level(clamped)
        return Rank(
            index=clamped,
            tier=tier,
            level=level,
            threshold=self.threshold(clamped, prestige_count),
        )

    def current_rank(self, taps: float, prestige_count: int = 0) -> Rank:
        """Highest rank whose threshold is at or below ``taps``; rank 1 is the floor."""
        for index in range(self.rank_count, 0, -1):
            if taps >= self.threshold(index, prestige_count):
                return self.rank_at(index, prestige_count)
        return self.rank_at(1, prestige_count)

    def span(self, current_index: int, prestige_count: int = 0) -> tuple[float, float]:
        """(lower, upper) taps bounds of the climb from ``current_index`` to the next rank."""
        clamped = self.clamp_index(current_index)
        lower = self.threshold(clamped, prestige_count)
        upper_index = clamped + 1 if clamped < self.rank_count else self.rank_count
        return lower, self.threshold(upper_index, prestige_count)

    def progress(self, taps: float, current_index: int, prestige_count: int = 0) -> float:
        """Fraction of the way to the next rank, in [0, 1]. 1.0 at the cap."""
        lower, upper = self.span(current_index, prestige_count)
        width = upper - lower
        if width <= 0:
            return 1.0
        return min(1.0, max(0.0, (taps - lower) / width))

    def season_base_multiplier(self, rank_index: int, prestige_count: int) -> float:
        rank_bonus = 1.0 + (self.clamp_index(rank_index) - 1) * self.coefficients.rank_bonus_per_level
        prestige_bonus = self.coefficients.prestige_growth_a ** prestige_count if prestige_count > 0 else 1.0
        return rank_bonus * prestige_bonus

    def projected_multiplier_after_prestige(self, prestige_count: int) -> float:
        return self.season_base_multiplier(1, prestige_count + 1)

    def all_ranks(self, prestige_count: int = 0) -> list[Rank]:
        return [self.rank_at(index, prestige_count) for index in range(1, self.rank_count + 1)]
