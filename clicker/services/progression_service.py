"""
Progression Controller - per-session owner of a player's season state.

Applies the rank curve, economy rules and boost engine to each player
action. Every transition builds the complete next SeasonPlayerState and
swaps it in with a single assignment, so an action either lands in full or
not at all. Events are emitted only after the swap.

Actions never raise for expected failures; they return a result carrying an
EconomyError reason.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Optional, Union

from clicker.core import economy_rules
from clicker.core.boost_engine import BoostActivation, BoostEngine, BoostState
from clicker.core.config_types import (
    LEVELED_CATEGORIES,
    BoostType,
    GameConfig,
    ShopItemConfig,
    UpgradeCategory,
)
from clicker.core.economy_rules import Milestone, OfflineEarnings, PurchaseResult
from clicker.core.rank_curve import Rank, RankCurve
from clicker.errors import EconomyError
from clicker.events import EventSink, GameEvent
from clicker.models import Season, SeasonHistory, SeasonPlayerState, UserRecord, utcnow
from clicker.services import daily_rewards_service
from clicker.services.daily_rewards_service import DailyClaimResult
from core.logging import get_logger

logger = get_logger("clicker.progression")


@dataclass(frozen=True)
class TapResult:
    taps_added: float
    coins_earned: float = 0.0
    rank_up: Optional[Rank] = None
    milestones: tuple[Milestone, ...] = ()
    events: tuple[GameEvent, ...] = ()

    @property
    def did_rank_up(self) -> bool:
        return self.rank_up is not None


@dataclass(frozen=True)
class OfflineClaimResult:
    success: bool
    coins_awarded: float = 0.0
    doubled: bool = False
    reason: Optional[EconomyError] = None


@dataclass(frozen=True)
class PrestigeResult:
    success: bool
    prestige_count: int
    previous_multiplier: float = 1.0
    new_multiplier: float = 1.0
    reason: Optional[EconomyError] = None


@dataclass(frozen=True)
class RolloverResult:
    history: SeasonHistory
    user: UserRecord
    next_state: SeasonPlayerState = field(repr=False)


class ProgressionController:
    """Single writer for one user's season. Not safe to share across threads."""

    def __init__(
        self,
        config: GameConfig,
        state: Optional[SeasonPlayerState] = None,
        user: Optional[UserRecord] = None,
        season: Optional[Season] = None,
        event_sink: Optional[EventSink] = None,
    ):
        if season is not None:
            config = config.with_coefficients(season.coefficients)
        self.config = config
        self.season = season
        self.rank_curve = RankCurve(config.coefficients)

        season_id = season.season_id if season is not None else "season_1"
        self._state = state or SeasonPlayerState.new(season_id)
        self._user = user or UserRecord(user_id="local")
        self.boosts = BoostEngine(
            config.boosts,
            BoostState(inventory=dict(self._state.boost_inventory)),
        )
        self._event_sink = event_sink
        self._pending_offline: Optional[OfflineEarnings] = None

    # ==================== READ-ONLY VIEWS ====================

    @property
    def state(self) -> SeasonPlayerState:
        return self._state

    @property
    def user(self) -> UserRecord:
        return self._user

    @property
    def pending_offline_earnings(self) -> Optional[OfflineEarnings]:
        return self._pending_offline

    @property
    def current_rank(self) -> Rank:
        return self.rank_curve.rank_at(self._state.rank_index, self._state.prestige_count)

    @property
    def progress_to_next_rank(self) -> float:
        return self.rank_curve.progress(
            self._state.current_season_taps,
            self._state.rank_index,
            self._state.prestige_count,
        )

    @property
    def can_prestige(self) -> bool:
        return self._state.rank_index >= self.config.economy.minimum_prestige_rank_index

    @property
    def projected_prestige_multiplier(self) -> float:
        return self.rank_curve.projected_multiplier_after_prestige(self._state.prestige_count)

    def tap_value(self, now: Optional[datetime] = None) -> float:
        now = now or utcnow()
        economy = self.config.economy
        return economy_rules.tap_value(
            economy.base_tap,
            self._state.click_multiplier_level,
            economy.click_multiplier_per_level,
            self._state.season_base_multiplier,
            self.boosts.total_multiplier(now),
        )

    def upgrade_price(self, item_key: str) -> Optional[float]:
        item = self.config.get_shop_item(item_key)
        if item is None:
            return None
        return economy_rules.upgrade_price(item, self._current_level(item))

    # ==================== SESSION ====================

    def start_session(self, now: Optional[datetime] = None) -> Optional[OfflineEarnings]:
        """Rebuild cooldowns from last-use timestamps and compute pending offline earnings."""
        now = now or utcnow()
        self.boosts.restore_cooldowns(self._state.boost_last_used, now)

        coefficients = self.config.coefficients
        economy = self.config.economy
        earnings = economy_rules.offline_earnings(
            self._state.last_active_at,
            now,
            self._state.offline_multiplier_level,
            economy.offline_multiplier_per_level,
            coefficients.base_offline_rate,
            coefficients.offline_hours_cap,
            self._state.season_base_multiplier,
        )

        if earnings.coins >= economy.min_offline_claim_coins and earnings.coins > 0:
            self._pending_offline = earnings
            logger.info(
                "offline_earnings_pending",
                coins=round(earnings.coins, 2),
                elapsed_seconds=round(earnings.capped_elapsed_seconds, 1),
                was_at_cap=earnings.was_at_cap,
            )
        else:
            self._pending_offline = None
        return self._pending_offline

    def mark_active(self, now: Optional[datetime] = None) -> None:
        self._state = replace(self._state, last_active_at=now or utcnow())

    def snapshot(self) -> dict:
        return self._state.to_dict()

    def sweep_boosts(self, now: Optional[datetime] = None) -> int:
        return self.boosts.sweep_expired(now or utcnow())

    # ==================== TAPS ====================

    def apply_tap(self, now: Optional[datetime] = None) -> TapResult:
        now = now or utcnow()
        return self._add_taps(self.tap_value(now))

    def apply_auto_taps(self, seconds: float, now: Optional[datetime] = None) -> TapResult:
        """Credit ``seconds`` of auto-tapper output at the current tap value."""
        now = now or utcnow()
        level = self._state.taps_per_second_level
        if level <= 0 or seconds <= 0:
            return TapResult(taps_added=0.0)

        taps_per_level = 1.0
        for item in self.config.shop.values():
            if item.category == UpgradeCategory.TAPS_PER_SECOND:
                taps_per_level = item.effect_per_level
                break

        return self._add_taps(level * taps_per_level * seconds * self.tap_value(now))

    def _add_taps(self, amount: float) -> TapResult:
        state = self._state
        curve = self.rank_curve
        taps_before = state.current_season_taps
        taps_after = taps_before + amount

        rank_index = state.rank_index
        multiplier = state.season_base_multiplier
        rank_up: Optional[Rank] = None

        rank = curve.current_rank(taps_after, state.prestige_count)
        if rank.index > state.rank_index:
            rank_up = rank
            rank_index = rank.index
            multiplier = curve.season_base_multiplier(rank.index, state.prestige_count)

        # every span the tap passes through, the new rank's included; the top rank has none
        milestones: list[Milestone] = []
        for index in range(state.rank_index, min(rank_index, curve.rank_count - 1) + 1):
            lower, upper = curve.span(index, state.prestige_count)
            milestones.extend(
                economy_rules.crossed_milestones(
                    taps_before,
                    taps_after,
                    economy_rules.milestones_for_span(index, lower, upper, self.config.economy.milestones),
                )
            )

        coins_earned = sum(m.coins_reward for m in milestones)
        if rank_up is not None:
            coins_earned += economy_rules.coins_for_rank_up(rank_up.index, self.config.economy.rank_up_coins_base)

        self._state = replace(
            state,
            current_season_taps=taps_after,
            coins=state.coins + coins_earned,
            rank_index=rank_index,
            season_base_multiplier=multiplier,
        )

        events = [GameEvent.rank_up(rank_up, amount) if rank_up else GameEvent.tap(amount)]
        events.extend(GameEvent.reached_milestone(m) for m in milestones)

        if rank_up is not None:
            logger.info(
                "rank_up",
                rank_index=rank_up.index,
                rank=rank_up.short_name,
                season_base_multiplier=round(multiplier, 4),
                coins_earned=coins_earned,
            )
        self._emit(events)

        return TapResult(
            taps_added=amount,
            coins_earned=coins_earned,
            rank_up=rank_up,
            milestones=tuple(milestones),
            events=tuple(events),
        )

    # ==================== SHOP ====================

    def _current_level(self, item: ShopItemConfig) -> int:
        if item.is_consumable:
            return self.boosts.inventory_count(item.boost_type)
        return self._state.level(item.category)

    def purchase_upgrade(self, item: Union[str, ShopItemConfig]) -> PurchaseResult:
        if isinstance(item, str):
            item = self.config.get_shop_item(item)
        if item is None or (item.is_consumable and self.boosts.spec(item.boost_type) is None):
            return PurchaseResult(
                success=False,
                new_level=0,
                remaining_coins=self._state.coins,
                reason=EconomyError.UNKNOWN_ITEM,
            )

        state = self._state
        result = economy_rules.purchase(item, self._current_level(item), state.coins)
        if not result.success:
            logger.debug("purchase_rejected", item=item.key, reason=result.reason.value, price=result.price)
            return result

        if item.is_consumable:
            inventory = dict(state.boost_inventory)
            inventory[item.boost_type] = result.new_level
            self._state = replace(state, coins=result.remaining_coins, boost_inventory=inventory)
            self.boosts.state.inventory[item.boost_type] = result.new_level
        else:
            self._state = replace(state.with_level(item.category, result.new_level), coins=result.remaining_coins)

        logger.info(
            "upgrade_purchased",
            item=item.key,
            new_level=result.new_level,
            price=round(result.price, 2),
            remaining_coins=round(result.remaining_coins, 2),
        )
        return result

    # ==================== BOOSTS ====================

    def activate_boost(self, boost_type: Union[BoostType, str], now: Optional[datetime] = None) -> BoostActivation:
        now = now or utcnow()
        try:
            boost_type = BoostType(boost_type)
        except ValueError:
            return BoostActivation(success=False, reason=EconomyError.UNKNOWN_ITEM)

        activation = self.boosts.activate(boost_type, now)
        if not activation.success:
            return activation

        state = self._state
        last_used = dict(state.boost_last_used)
        if self.boosts.specs[boost_type].persist_cooldown:
            last_used[boost_type] = now
        self._state = replace(
            state,
            boost_inventory=dict(self.boosts.state.inventory),
            boost_last_used=last_used,
        )
        return activation

    # ==================== OFFLINE EARNINGS ====================

    def claim_offline_earnings(self, doubled: bool = False, now: Optional[datetime] = None) -> OfflineClaimResult:
        pending = self._pending_offline
        if pending is None:
            return OfflineClaimResult(success=False, reason=EconomyError.NO_PENDING_CLAIM)

        now = now or utcnow()
        coins = pending.doubled_coins if doubled else pending.coins
        self._state = replace(self._state, coins=self._state.coins + coins, last_active_at=now)
        self._pending_offline = None

        logger.info("offline_earnings_claimed", coins=round(coins, 2), doubled=doubled)
        return OfflineClaimResult(success=True, coins_awarded=coins, doubled=doubled)

    # ==================== PRESTIGE ====================

    def prestige(self, now: Optional[datetime] = None) -> PrestigeResult:
        now = now or utcnow()
        state = self._state
        if not self.can_prestige:
            return PrestigeResult(
                success=False,
                prestige_count=state.prestige_count,
                previous_multiplier=state.season_base_multiplier,
                new_multiplier=state.season_base_multiplier,
                reason=EconomyError.NOT_ELIGIBLE,
            )

        new_count = state.prestige_count + 1
        new_multiplier = self.rank_curve.season_base_multiplier(1, new_count)
        self._state = replace(
            state,
            current_season_taps=0.0,
            coins=0.0,
            levels={category: category.floor_level for category in LEVELED_CATEGORIES},
            rank_index=1,
            prestige_count=new_count,
            season_base_multiplier=new_multiplier,
            boost_inventory={},
            boost_last_used={},
            last_active_at=now,
        )
        self.boosts.reset()
        self._pending_offline = None

        logger.info(
            "prestige",
            prestige_count=new_count,
            previous_multiplier=round(state.season_base_multiplier, 4),
            new_multiplier=round(new_multiplier, 4),
        )
        self._emit([GameEvent.prestiged(new_count)])
        return PrestigeResult(
            success=True,
            prestige_count=new_count,
            previous_multiplier=state.season_base_multiplier,
            new_multiplier=new_multiplier,
        )

    # ==================== DAILY REWARDS ====================

    def claim_daily_reward(self, now: Optional[datetime] = None) -> DailyClaimResult:
        now = now or utcnow()
        result = daily_rewards_service.claim(self._user.daily_rewards, self.config.daily_rewards, now)
        if not result.success:
            return result

        reward = result.reward
        state = self._state
        if reward.reward_type == "coins":
            state = replace(state, coins=state.coins + reward.amount)
        else:
            self.boosts.add_inventory(reward.boost_type, int(reward.amount))
            state = replace(state, boost_inventory=dict(self.boosts.state.inventory))

        self._state = state
        self._user = replace(self._user, daily_rewards=result.state)
        logger.info(
            "daily_reward_claimed",
            day=reward.day,
            reward_type=reward.reward_type,
            amount=reward.amount,
            streak=result.state.current_streak,
        )
        return result

    # ==================== SEASON ROLLOVER ====================

    def rollover_season(self, next_season: Season, now: Optional[datetime] = None) -> RolloverResult:
        """Archive this season, fold it into lifetime totals and start ``next_season`` fresh."""
        now = now or utcnow()
        state = self._state
        history = SeasonHistory(
            season_id=state.season_id,
            season_name=self.season.name if self.season is not None else state.season_id,
            final_taps=state.current_season_taps,
            final_coins=state.coins,
            final_rank_index=state.rank_index,
            final_prestige_count=state.prestige_count,
            ended_at=now,
        )

        user = self._user
        self._user = replace(
            user,
            lifetime_taps=user.lifetime_taps + state.current_season_taps,
            lifetime_best_rank_index=max(user.lifetime_best_rank_index, state.rank_index),
            season_history=(*user.season_history, history),
        )

        self.season = next_season
        self.config = self.config.with_coefficients(next_season.coefficients)
        self.rank_curve = RankCurve(self.config.coefficients)
        self._state = SeasonPlayerState.new(next_season.season_id, now)
        self.boosts = BoostEngine(self.config.boosts)
        self._pending_offline = None

        logger.info(
            "season_rollover",
            archived_season=history.season_id,
            next_season=next_season.season_id,
            final_taps=round(history.final_taps, 2),
            final_rank_index=history.final_rank_index,
            lifetime_taps=round(self._user.lifetime_taps, 2),
        )
        return RolloverResult(history=history, user=self._user, next_state=self._state)

    # ==================== EVENTS ====================

    def _emit(self, events: list[GameEvent]) -> None:
        if self._event_sink is None:
            return
        for event in events:
            try:
                self._event_sink(event)
            except Exception:
                # state is already committed
                logger.exception("event_sink_failed", event_type=event.type.value)
