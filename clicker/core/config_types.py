"""
Clicker Economy - Configuration Types

JSON-driven configuration dataclasses. Defaults come from
data/clicker/economy.json; remote snapshots are merged on top by
clicker.services.config_service.

Remote configuration is untrusted: every numeric field goes through a
validator that logs and substitutes the built-in default instead of raising.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

from clicker import constants
from core.logging import get_logger

logger = get_logger("clicker.config")


class BoostType(str, Enum):
    """Boost variants. Their constants live in the boost table, not here."""
    AD_RUSH = "ad_rush"
    OVERCLOCK = "overclock"
    TAP_FRENZY = "tap_frenzy"
    OFFLINE_DOUBLER = "offline_doubler"


class BoostSource(str, Enum):
    """What gates a boost activation."""
    REWARDED_AD = "rewarded_ad"
    COINS = "coins"
    FREE = "free"


class UpgradeCategory(str, Enum):
    CLICK_MULTIPLIER = "click_multiplier"
    OFFLINE_MULTIPLIER = "offline_multiplier"
    TAPS_PER_SECOND = "taps_per_second"
    BOOST_CONSUMABLE = "boost_consumable"

    @property
    def floor_level(self) -> int:
        """Level a fresh or prestiged player starts at (1 for multipliers, 0 for counts)."""
        return 0 if self in (UpgradeCategory.TAPS_PER_SECOND, UpgradeCategory.BOOST_CONSUMABLE) else 1


# Categories that carry a level on SeasonPlayerState
LEVELED_CATEGORIES = (
    UpgradeCategory.CLICK_MULTIPLIER,
    UpgradeCategory.OFFLINE_MULTIPLIER,
    UpgradeCategory.TAPS_PER_SECOND,
)


# ==================== VALIDATORS ====================

def _number(
    data: dict[str, Any],
    key: str,
    default: float,
    section: str,
    valid: Callable[[float], bool],
) -> float:
    if key not in data or data[key] is None:
        return float(default)

    raw = data[key]
    try:
        value = float(raw)
    except (TypeError, ValueError):
        value = math.nan

    if isinstance(raw, bool) or not math.isfinite(value) or not valid(value):
        logger.warning(
            "config_value_rejected",
            section=section,
            key=key,
            value=repr(raw),
            default=default,
        )
        return float(default)
    return value


def _positive(data: dict[str, Any], key: str, default: float, section: str) -> float:
    return _number(data, key, default, section, lambda v: v > 0)


def _non_negative(data: dict[str, Any], key: str, default: float, section: str) -> float:
    return _number(data, key, default, section, lambda v: v >= 0)


def _int_at_least(data: dict[str, Any], key: str, default: int, section: str, minimum: int) -> int:
    return int(_number(data, key, default, section, lambda v: v >= minimum and v == int(v)))


# ==================== SEASON / ECONOMY ====================

@dataclass(frozen=True)
class SeasonCoefficients:
    """Per-season rank curve and offline coefficients. Immutable within a season."""

    base_threshold: float = constants.DEFAULT_BASE_THRESHOLD
    rank_growth_b: float = constants.DEFAULT_RANK_GROWTH_B
    prestige_ease: float = constants.DEFAULT_PRESTIGE_EASE
    prestige_growth_a: float = constants.DEFAULT_PRESTIGE_GROWTH_A
    rank_bonus_per_level: float = constants.DEFAULT_RANK_BONUS_PER_LEVEL
    offline_hours_cap: float = constants.DEFAULT_OFFLINE_HOURS_CAP
    base_offline_rate: float = constants.DEFAULT_BASE_OFFLINE_RATE
    rank_count: int = constants.DEFAULT_RANK_COUNT
    ranks_per_tier: int = constants.DEFAULT_RANKS_PER_TIER

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SeasonCoefficients:
        section = "coefficients"
        return cls(
            base_threshold=_positive(data, "base_threshold", constants.DEFAULT_BASE_THRESHOLD, section),
            rank_growth_b=_number(
                data, "rank_growth_b", constants.DEFAULT_RANK_GROWTH_B, section, lambda v: v > 1
            ),
            prestige_ease=_number(
                data, "prestige_ease", constants.DEFAULT_PRESTIGE_EASE, section, lambda v: 0 < v <= 1
            ),
            prestige_growth_a=_number(
                data, "prestige_growth_a", constants.DEFAULT_PRESTIGE_GROWTH_A, section, lambda v: v >= 1
            ),
            rank_bonus_per_level=_non_negative(
                data, "rank_bonus_per_level", constants.DEFAULT_RANK_BONUS_PER_LEVEL, section
            ),
            offline_hours_cap=_positive(data, "offline_hours_cap", constants.DEFAULT_OFFLINE_HOURS_CAP, section),
            base_offline_rate=_non_negative(
                data, "base_offline_rate", constants.DEFAULT_BASE_OFFLINE_RATE, section
            ),
            rank_count=_int_at_least(data, "rank_count", constants.DEFAULT_RANK_COUNT, section, 2),
            ranks_per_tier=_int_at_least(data, "ranks_per_tier", constants.DEFAULT_RANKS_PER_TIER, section, 1),
        )


@dataclass(frozen=True)
class MilestoneConfig:
    """Coin reward for crossing ``percent`` of the span to the next rank."""

    percent: int
    coins: float

    @property
    def fraction(self) -> float:
        return self.percent / 100.0


def _default_milestones() -> tuple[MilestoneConfig, ...]:
    return tuple(MilestoneConfig(percent=p, coins=c) for p, c in constants.DEFAULT_MILESTONES.items())


@dataclass(frozen=True)
class EconomyConfig:
    """Tap, offline and reward constants."""

    base_tap: float = constants.DEFAULT_BASE_TAP
    click_multiplier_per_level: float = constants.DEFAULT_CLICK_MULTIPLIER_PER_LEVEL
    offline_multiplier_per_level: float = constants.DEFAULT_OFFLINE_MULTIPLIER_PER_LEVEL
    rank_up_coins_base: float = constants.DEFAULT_RANK_UP_COINS_BASE
    minimum_prestige_rank_index: int = constants.DEFAULT_MINIMUM_PRESTIGE_RANK_INDEX
    min_offline_claim_coins: float = constants.DEFAULT_MIN_OFFLINE_CLAIM_COINS
    milestones: tuple[MilestoneConfig, ...] = field(default_factory=_default_milestones)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EconomyConfig:
        section = "economy"
        milestones = []
        for entry in data.get("milestones") or []:
            try:
                percent = int(entry["percent"])
                coins = float(entry["coins"])
            except (KeyError, TypeError, ValueError):
                logger.warning("milestone_rejected", entry=repr(entry))
                continue
            if not 0 < percent < 100 or coins < 0:
                logger.warning("milestone_rejected", entry=repr(entry))
                continue
            milestones.append(MilestoneConfig(percent=percent, coins=coins))

        return cls(
            base_tap=_positive(data, "base_tap", constants.DEFAULT_BASE_TAP, section),
            click_multiplier_per_level=_non_negative(
                data, "click_multiplier_per_level", constants.DEFAULT_CLICK_MULTIPLIER_PER_LEVEL, section
            ),
            offline_multiplier_per_level=_non_negative(
                data, "offline_multiplier_per_level", constants.DEFAULT_OFFLINE_MULTIPLIER_PER_LEVEL, section
            ),
            rank_up_coins_base=_non_negative(
                data, "rank_up_coins_base", constants.DEFAULT_RANK_UP_COINS_BASE, section
            ),
            minimum_prestige_rank_index=_int_at_least(
                data, "minimum_prestige_rank_index", constants.DEFAULT_MINIMUM_PRESTIGE_RANK_INDEX, section, 1
            ),
            min_offline_claim_coins=_non_negative(
                data, "min_offline_claim_coins", constants.DEFAULT_MIN_OFFLINE_CLAIM_COINS, section
            ),
            milestones=tuple(sorted(milestones, key=lambda m: m.percent)) if milestones else _default_milestones(),
        )


# ==================== BOOSTS ====================

@dataclass(frozen=True)
class BoostSpec:
    """Constants for one boost variant."""

    boost_type: BoostType
    name: str
    multiplier: float
    duration_seconds: float
    cooldown_seconds: float
    source: BoostSource
    # keep a last-used timestamp so the cooldown survives a restart
    persist_cooldown: bool = False

    @property
    def is_coin_gated(self) -> bool:
        return self.source == BoostSource.COINS

    @classmethod
    def from_dict(cls, boost_type: BoostType, data: dict[str, Any]) -> BoostSpec:
        section = f"boosts.{boost_type.value}"
        try:
            source = BoostSource(data.get("source", BoostSource.FREE.value))
        except ValueError:
            logger.warning("config_value_rejected", section=section, key="source", value=repr(data.get("source")))
            source = BoostSource.FREE
        return cls(
            boost_type=boost_type,
            name=str(data.get("name") or boost_type.value),
            multiplier=_positive(data, "multiplier", 1.0, section),
            duration_seconds=_non_negative(data, "duration_seconds", 0.0, section),
            cooldown_seconds=_non_negative(data, "cooldown_seconds", 0.0, section),
            source=source,
            persist_cooldown=bool(data.get("persist_cooldown", False)),
        )


# ==================== SHOP ====================

@dataclass(frozen=True)
class ShopItemConfig:
    """A purchasable upgrade or consumable pack."""

    key: str
    name: str
    category: UpgradeCategory
    base_price: float
    price_growth: float
    max_level: int
    effect_per_level: float
    boost_type: BoostType | None = None

    @property
    def is_consumable(self) -> bool:
        return self.category == UpgradeCategory.BOOST_CONSUMABLE

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ShopItemConfig | None:
        """Build an item, or return None if its identity fields are unusable."""
        try:
            key = str(data["key"])
            category = UpgradeCategory(data["category"])
            boost_type = BoostType(data["boost_type"]) if data.get("boost_type") else None
        except (KeyError, ValueError) as e:
            logger.warning("shop_item_rejected", entry=repr(data), error=str(e))
            return None

        if category == UpgradeCategory.BOOST_CONSUMABLE and boost_type is None:
            logger.warning("shop_item_rejected", key=key, error="consumable without boost_type")
            return None

        section = f"shop.{key}"
        return cls(
            key=key,
            name=str(data.get("name") or key),
            category=category,
            base_price=_positive(data, "base_price", 1.0, section),
            price_growth=_number(data, "price_growth", 1.0, section, lambda v: v >= 1),
            max_level=_int_at_least(data, "max_level", 1, section, 1),
            effect_per_level=_non_negative(data, "effect_per_level", 0.0, section),
            boost_type=boost_type,
        )


# ==================== DAILY REWARDS ====================

@dataclass(frozen=True)
class DailyRewardConfig:
    day: int
    reward_type: str  # coins, boost
    amount: float
    boost_type: BoostType | None = None
    is_milestone: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyRewardConfig | None:
        try:
            reward_type = str(data["reward_type"])
            boost_type = BoostType(data["boost_type"]) if data.get("boost_type") else None
            day = int(data["day"])
            amount = float(data.get("amount", 0))
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("daily_reward_rejected", entry=repr(data), error=str(e))
            return None

        if reward_type not in ("coins", "boost") or (reward_type == "boost" and boost_type is None) or amount < 0:
            logger.warning("daily_reward_rejected", entry=repr(data))
            return None

        return cls(
            day=day,
            reward_type=reward_type,
            amount=amount,
            boost_type=boost_type,
            is_milestone=bool(data.get("is_milestone", False)),
        )


# ==================== BUNDLE ====================

@dataclass(frozen=True)
class GameConfig:
    """Everything the progression controller needs, as one immutable snapshot."""

    coefficients: SeasonCoefficients = field(default_factory=SeasonCoefficients)
    economy: EconomyConfig = field(default_factory=EconomyConfig)
    boosts: dict[BoostType, BoostSpec] = field(default_factory=dict)
    shop: dict[str, ShopItemConfig] = field(default_factory=dict)
    daily_rewards: tuple[DailyRewardConfig, ...] = ()

    def get_shop_item(self, key: str) -> ShopItemConfig | None:
        return self.shop.get(key)

    def get_boost(self, boost_type: BoostType | str) -> BoostSpec | None:
        try:
            return self.boosts.get(BoostType(boost_type))
        except ValueError:
            return None

    def with_coefficients(self, coefficients: SeasonCoefficients) -> GameConfig:
        """Same tables, different season coefficients."""
        return GameConfig(
            coefficients=coefficients,
            economy=self.economy,
            boosts=self.boosts,
            shop=self.shop,
            daily_rewards=self.daily_rewards,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameConfig:
        """Build from the JSON layout. Absent sections take the built-in tables."""
        boost_table = data.get("boosts")
        if boost_table is None:
            boost_table = constants.DEFAULT_BOOSTS
        shop_table = data.get("shop")
        if shop_table is None:
            shop_table = constants.DEFAULT_SHOP
        reward_table = data.get("daily_rewards")
        if reward_table is None:
            reward_table = constants.DEFAULT_DAILY_REWARDS

        boosts: dict[BoostType, BoostSpec] = {}
        for key, boost_data in (boost_table or {}).items():
            try:
                boost_type = BoostType(key)
            except ValueError:
                logger.warning("boost_rejected", key=key, error="unknown boost type")
                continue
            if not isinstance(boost_data, dict):
                logger.warning("boost_rejected", key=key, error="not a mapping")
                continue
            boosts[boost_type] = BoostSpec.from_dict(boost_type, boost_data)

        shop: dict[str, ShopItemConfig] = {}
        for item_data in shop_table or []:
            item = ShopItemConfig.from_dict(item_data) if isinstance(item_data, dict) else None
            if item is not None:
                shop[item.key] = item

        rewards = []
        for reward_data in reward_table or []:
            reward = DailyRewardConfig.from_dict(reward_data) if isinstance(reward_data, dict) else None
            if reward is not None:
                rewards.append(reward)

        return cls(
            coefficients=SeasonCoefficients.from_dict(data.get("coefficients") or {}),
            economy=EconomyConfig.from_dict(data.get("economy") or {}),
            boosts=boosts,
            shop=shop,
            daily_rewards=tuple(sorted(rewards, key=lambda r: r.day)),
        )
