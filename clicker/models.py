"""Player, season and history records.

Every record round-trips through ``to_dict``/``from_dict``. Timestamps are
stored as ISO-8601 strings with microseconds so cooldown reconstruction
keeps sub-second precision.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from clicker import constants
from clicker.core.config_types import LEVELED_CATEGORIES, BoostType, SeasonCoefficients, UpgradeCategory


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _dump_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _load_time(value: Any, default: Optional[datetime] = None) -> Optional[datetime]:
    if value is None:
        return default
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value))
        except ValueError:
            return default
    # Naive timestamps from older saves are taken as UTC
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def default_levels() -> dict[UpgradeCategory, int]:
    return {category: category.floor_level for category in LEVELED_CATEGORIES}


def _load_boost_keyed(data: Any, convert) -> dict[BoostType, Any]:
    result = {}
    for key, value in (data or {}).items():
        try:
            boost_type = BoostType(key)
        except ValueError:
            continue
        converted = convert(value)
        if converted is not None:
            result[boost_type] = converted
    return result


@dataclass(frozen=True)
class SeasonPlayerState:
    """One user's progress in one season. Replaced wholesale on every transition."""

    season_id: str
    current_season_taps: float = 0.0
    coins: float = 0.0
    levels: dict[UpgradeCategory, int] = field(default_factory=default_levels)
    rank_index: int = 1
    prestige_count: int = 0
    season_base_multiplier: float = 1.0
    last_active_at: datetime = field(default_factory=utcnow)
    boost_inventory: dict[BoostType, int] = field(default_factory=dict)
    boost_last_used: dict[BoostType, datetime] = field(default_factory=dict)

    @classmethod
    def new(cls, season_id: str, now: Optional[datetime] = None) -> SeasonPlayerState:
        return cls(season_id=season_id, last_active_at=now or utcnow())

    def level(self, category: UpgradeCategory) -> int:
        return self.levels.get(category, category.floor_level)

    def with_level(self, category: UpgradeCategory, level: int) -> SeasonPlayerState:
        levels = dict(self.levels)
        levels[category] = level
        return replace(self, levels=levels)

    @property
    def click_multiplier_level(self) -> int:
        return self.level(UpgradeCategory.CLICK_MULTIPLIER)

    @property
    def offline_multiplier_level(self) -> int:
        return self.level(UpgradeCategory.OFFLINE_MULTIPLIER)

    @property
    def taps_per_second_level(self) -> int:
        return self.level(UpgradeCategory.TAPS_PER_SECOND)

    def to_dict(self) -> dict[str, Any]:
        return {
            "season_id": self.season_id,
            "current_season_taps": self.current_season_taps,
            "coins": self.coins,
            "levels": {category.value: level for category, level in self.levels.items()},
            "rank_index": self.rank_index,
            "prestige_count": self.prestige_count,
            "season_base_multiplier": self.season_base_multiplier,
            "last_active_at": _dump_time(self.last_active_at),
            "boost_inventory": {t.value: count for t, count in self.boost_inventory.items()},
            "boost_last_used": {t.value: _dump_time(at) for t, at in self.boost_last_used.items()},
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        season_id: Optional[str] = None,
        rank_count: int = constants.DEFAULT_RANK_COUNT,
    ) -> SeasonPlayerState:
        levels = default_levels()
        for key, value in (data.get("levels") or {}).items():
            try:
                category = UpgradeCategory(key)
            except ValueError:
                continue
            levels[category] = max(category.floor_level, int(value))

        return cls(
            season_id=season_id or str(data.get("season_id", "")),
            current_season_taps=max(0.0, float(data.get("current_season_taps", 0.0))),
            coins=max(0.0, float(data.get("coins", 0.0))),
            levels=levels,
            rank_index=min(rank_count, max(1, int(data.get("rank_index", 1)))),
            prestige_count=max(0, int(data.get("prestige_count", 0))),
            season_base_multiplier=float(data.get("season_base_multiplier", 1.0)),
            last_active_at=_load_time(data.get("last_active_at")) or utcnow(),
            boost_inventory=_load_boost_keyed(data.get("boost_inventory"), lambda v: max(0, int(v))),
            boost_last_used=_load_boost_keyed(data.get("boost_last_used"), _load_time),
        )


@dataclass(frozen=True)
class SeasonHistory:
    """Terminal values of a finished season."""

    season_id: str
    season_name: str
    final_taps: float
    final_coins: float
    final_rank_index: int
    final_prestige_count: int
    ended_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "season_id": self.season_id,
            "season_name": self.season_name,
            "final_taps": self.final_taps,
            "final_coins": self.final_coins,
            "final_rank_index": self.final_rank_index,
            "final_prestige_count": self.final_prestige_count,
            "ended_at": _dump_time(self.ended_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SeasonHistory:
        return cls(
            season_id=str(data["season_id"]),
            season_name=str(data.get("season_name", "")),
            final_taps=float(data.get("final_taps", 0.0)),
            final_coins=float(data.get("final_coins", 0.0)),
            final_rank_index=int(data.get("final_rank_index", 1)),
            final_prestige_count=int(data.get("final_prestige_count", 0)),
            ended_at=_load_time(data.get("ended_at")) or utcnow(),
        )


@dataclass(frozen=True)
class DailyRewardsState:
    last_claim_at: Optional[datetime] = None
    current_streak: int = 0
    total_days_claimed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "last_claim_at": _dump_time(self.last_claim_at),
            "current_streak": self.current_streak,
            "total_days_claimed": self.total_days_claimed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyRewardsState:
        return cls(
            last_claim_at=_load_time(data.get("last_claim_at")),
            current_streak=max(0, int(data.get("current_streak", 0))),
            total_days_claimed=max(0, int(data.get("total_days_claimed", 0))),
        )


@dataclass(frozen=True)
class UserRecord:
    """Cross-season record: lifetime totals, archived seasons and daily streak."""

    user_id: str
    display_name: str = ""
    created_at: datetime = field(default_factory=utcnow)
    lifetime_taps: float = 0.0
    lifetime_best_rank_index: int = 1
    season_history: tuple[SeasonHistory, ...] = ()
    daily_rewards: DailyRewardsState = field(default_factory=DailyRewardsState)

    def to_dict(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "display_name": self.display_name,
            "created_at": _dump_time(self.created_at),
            "lifetime_taps": self.lifetime_taps,
            "lifetime_best_rank_index": self.lifetime_best_rank_index,
            "season_history": [h.to_dict() for h in self.season_history],
            "daily_rewards": self.daily_rewards.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserRecord:
        return cls(
            user_id=str(data["user_id"]),
            display_name=str(data.get("display_name", "")),
            created_at=_load_time(data.get("created_at")) or utcnow(),
            lifetime_taps=max(0.0, float(data.get("lifetime_taps", 0.0))),
            lifetime_best_rank_index=max(1, int(data.get("lifetime_best_rank_index", 1))),
            season_history=tuple(SeasonHistory.from_dict(h) for h in data.get("season_history") or []),
            daily_rewards=DailyRewardsState.from_dict(data.get("daily_rewards") or {}),
        )


@dataclass(frozen=True)
class Season:
    """A bounded time window with its own coefficients."""

    season_id: str
    name: str
    start_at: datetime
    end_at: datetime
    coefficients: SeasonCoefficients = field(default_factory=SeasonCoefficients)

    def has_ended(self, now: Optional[datetime] = None) -> bool:
        return (now or utcnow()) >= self.end_at

    def time_remaining(self, now: Optional[datetime] = None) -> timedelta:
        return max(timedelta(0), self.end_at - (now or utcnow()))

    def is_active(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return self.start_at <= now < self.end_at
