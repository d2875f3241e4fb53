"""Tap value, offline earnings, upgrade pricing and coin rewards.

All functions are pure. Timestamps are timezone-aware datetimes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from clicker.constants import SECONDS_PER_HOUR
from clicker.core.config_types import MilestoneConfig, ShopItemConfig
from clicker.errors import EconomyError


# ==================== TAP VALUE ====================

def level_multiplier(level: int, bonus_per_level: float) -> float:
    """``1 + bonus * (level - 1)``: the shared shape of every multiplier upgrade."""
    return 1.0 + bonus_per_level * (level - 1)


def tap_value(
    base_tap: float,
    click_level: int,
    click_bonus_per_level: float,
    season_multiplier: float,
    boost_multiplier: float,
) -> float:
    return base_tap * level_multiplier(click_level, click_bonus_per_level) * season_multiplier * boost_multiplier


# ==================== OFFLINE EARNINGS ====================

@dataclass(frozen=True)
class OfflineEarnings:
    """Coins accrued while away. Doubling is applied by the caller."""

    coins: float
    capped_elapsed_seconds: float
    was_at_cap: bool

    @property
    def can_double(self) -> bool:
        return self.coins > 0

    @property
    def doubled_coins(self) -> float:
        return self.coins * 2


def offline_earnings(
    last_active_at: datetime,
    now: datetime,
    offline_level: int,
    offline_bonus_per_level: float,
    base_rate_per_hour: float,
    cap_hours: float,
    season_multiplier: float,
) -> OfflineEarnings:
    # A clock that moved backwards earns nothing rather than a negative amount
    elapsed = max(0.0, (now - last_active_at).total_seconds())
    cap_seconds = cap_hours * SECONDS_PER_HOUR
    capped = min(elapsed, cap_seconds)

    rate = base_rate_per_hour * level_multiplier(offline_level, offline_bonus_per_level) * season_multiplier
    return OfflineEarnings(
        coins=rate * capped / SECONDS_PER_HOUR,
        capped_elapsed_seconds=capped,
        was_at_cap=elapsed >= cap_seconds,
    )


# ==================== SHOP ====================

@dataclass(frozen=True)
class PurchaseResult:
    """Outcome of a shop purchase. On failure level and coins are unchanged."""

    success: bool
    new_level: int
    remaining_coins: float
    price: float = 0.0
    reason: EconomyError | None = None

    @property
    def message(self) -> str:
        return self.reason.message if self.reason else "Upgrade successful"


def upgrade_price(item: ShopItemConfig, current_level: int) -> float:
    """Price to go from ``current_level`` to ``current_level + 1``."""
    return item.base_price * item.price_growth ** current_level


def upgrade_effect(item: ShopItemConfig, level: int) -> float:
    return level_multiplier(level, item.effect_per_level)


def can_afford(item: ShopItemConfig, current_level: int, coins: float) -> bool:
    return coins >= upgrade_price(item, current_level)


def purchase(item: ShopItemConfig, current_level: int, coins: float) -> PurchaseResult:
    """Validate and price a single level-up. The price is evaluated exactly once."""
    price = upgrade_price(item, current_level)

    if coins < price:
        return PurchaseResult(
            success=False,
            new_level=current_level,
            remaining_coins=coins,
            price=price,
            reason=EconomyError.INSUFFICIENT_FUNDS,
        )

    if current_level >= item.max_level:
        return PurchaseResult(
            success=False,
            new_level=current_level,
            remaining_coins=coins,
            price=price,
            reason=EconomyError.MAX_LEVEL_REACHED,
        )

    return PurchaseResult(
        success=True,
        new_level=current_level + 1,
        remaining_coins=coins - price,
        price=price,
    )


# ==================== REWARDS ====================

def coins_for_rank_up(new_rank_index: int, rank_up_coins_base: float) -> float:
    return rank_up_coins_base * new_rank_index


@dataclass(frozen=True)
class Milestone:
    """A point inside the climb to ``rank_index + 1`` worth a small coin reward."""

    key: str
    rank_index: int
    percent: int
    threshold: float
    coins_reward: float


def milestones_for_span(
    rank_index: int,
    lower: float,
    upper: float,
    configs: tuple[MilestoneConfig, ...] | list[MilestoneConfig],
) -> list[Milestone]:
    if upper <= lower:
        return []
    width = upper - lower
    return [
        Milestone(
            key=f"m_{rank_index}_{config.percent}",
            rank_index=rank_index,
            percent=config.percent,
            threshold=lower + width * config.fraction,
            coins_reward=config.coins,
        )
        for config in configs
    ]


def crossed_milestones(taps_before: float, taps_after: float, milestones: list[Milestone]) -> list[Milestone]:
    """Milestones whose threshold lies in ``(taps_before, taps_after]``."""
    return [m for m in milestones if taps_before < m.threshold <= taps_after]

