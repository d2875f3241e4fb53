"""
Game Session - asyncio runner around one ProgressionController.

Player actions are plain synchronous controller calls, so a transition never
yields to the event loop halfway through. The background loops (autosave
and boost sweep) only ever take a snapshot or call a synchronous controller
method between awaits, which keeps the controller single-writer.

Store failures are logged and swallowed; the next periodic save retries.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

from clicker.core.boost_engine import BoostActivation
from clicker.core.config_types import BoostSource, BoostType, GameConfig
from clicker.errors import EconomyError
from clicker.events import EventSink
from clicker.interfaces import AdOutcome, RewardedAdProvider, StateStore
from clicker.models import Season, SeasonPlayerState, UserRecord, utcnow
from clicker.services.config_service import load_game_config
from clicker.services.progression_service import (
    OfflineClaimResult,
    ProgressionController,
    RolloverResult,
)
from configs.settings import AUTOSAVE_INTERVAL_SECONDS, BOOST_SWEEP_INTERVAL_SECONDS
from core.logging import bind_context, clear_context, get_logger

logger = get_logger("clicker.session")


@dataclass(frozen=True)
class AdRewardResult:
    """What the ad provider said, and the controller result when it granted."""

    outcome: AdOutcome
    result: Optional[Union[BoostActivation, OfflineClaimResult]] = None
    reason: Optional[EconomyError] = None

    @property
    def granted(self) -> bool:
        return self.outcome == AdOutcome.GRANTED and self.reason is None


class GameSession:
    """Owns a controller, its persistence and its background timers."""

    def __init__(
        self,
        store: StateStore,
        controller: ProgressionController,
        user_id: str,
        ad_provider: Optional[RewardedAdProvider] = None,
        autosave_interval: float = AUTOSAVE_INTERVAL_SECONDS,
        sweep_interval: float = BOOST_SWEEP_INTERVAL_SECONDS,
    ):
        self.store = store
        self.controller = controller
        self.user_id = user_id
        self.ad_provider = ad_provider
        self.autosave_interval = autosave_interval
        self.sweep_interval = sweep_interval
        self._tasks: list[asyncio.Task] = []
        self._closed = False

    @classmethod
    async def open(
        cls,
        store: StateStore,
        user_id: str,
        season: Season,
        config: Optional[GameConfig] = None,
        ad_provider: Optional[RewardedAdProvider] = None,
        event_sink: Optional[EventSink] = None,
        now: Optional[datetime] = None,
        **kwargs: Any,
    ) -> GameSession:
        """Load (or create) the user's documents and start the session.

        Offline earnings since the last save are left pending on the
        controller for the caller to claim.
        """
        now = now or utcnow()
        config = config or load_game_config()
        bind_context(user_id=user_id, season_id=season.season_id)

        user_data = await store.load_user(user_id)
        user = UserRecord.from_dict(user_data) if user_data else UserRecord(user_id=user_id, created_at=now)

        season_data = await store.load_season(user_id, season.season_id)
        if season_data:
            state = SeasonPlayerState.from_dict(
                season_data,
                season_id=season.season_id,
                rank_count=season.coefficients.rank_count,
            )
        else:
            state = SeasonPlayerState.new(season.season_id, now)
            logger.info("season_state_created")

        controller = ProgressionController(
            config,
            state=state,
            user=user,
            season=season,
            event_sink=event_sink,
        )
        controller.start_session(now)

        session = cls(store, controller, user_id, ad_provider=ad_provider, **kwargs)
        logger.info(
            "session_opened",
            rank_index=state.rank_index,
            prestige_count=state.prestige_count,
            has_pending_offline=controller.pending_offline_earnings is not None,
        )
        return session

    # ==================== BACKGROUND LOOPS ====================

    def start_background_tasks(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self.autosave_loop(), name=f"autosave:{self.user_id}"),
            asyncio.create_task(self.sweep_loop(), name=f"boost_sweep:{self.user_id}"),
        ]
        logger.debug("session_tasks_started", autosave_interval=self.autosave_interval)

    async def autosave_loop(self) -> None:
        while True:
            await asyncio.sleep(self.autosave_interval)
            await self.save()

    async def sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            removed = self.controller.sweep_boosts()
            if removed:
                logger.debug("boosts_swept", removed=removed)

    async def _cancel_tasks(self) -> None:
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass

    # ==================== PERSISTENCE ====================

    async def save(self, now: Optional[datetime] = None) -> bool:
        """Persist both documents. Returns False (after logging) if the store failed."""
        self.controller.mark_active(now)
        season_id = self.controller.state.season_id
        season_doc = self.controller.snapshot()
        user_doc = self.controller.user.to_dict()

        try:
            await self.store.save_season(self.user_id, season_id, season_doc)
            await self.store.save_user(self.user_id, user_doc)
        except Exception as e:
            logger.warning("state_save_failed", error=str(e), error_type=type(e).__name__)
            return False
        return True

    async def close(self, now: Optional[datetime] = None) -> None:
        if self._closed:
            return
        self._closed = True
        await self._cancel_tasks()
        await self.save(now)
        logger.info("session_closed")
        clear_context()

    # ==================== REWARDED ADS ====================

    async def _show_ad(self) -> AdOutcome:
        provider = self.ad_provider
        if provider is None or not provider.can_show_rewarded_ad():
            return AdOutcome.FAILED
        try:
            return await provider.show_rewarded_ad()
        except Exception as e:
            logger.warning("rewarded_ad_failed", error=str(e))
            return AdOutcome.FAILED

    async def watch_ad_for_boost(
        self,
        boost_type: Union[BoostType, str],
        now: Optional[datetime] = None,
    ) -> AdRewardResult:
        """Show a rewarded ad, then activate the boost if the ad was watched.

        The boost is checked before the ad is shown so a player never watches
        an ad for a boost that would be rejected.
        """
        try:
            boost_type = BoostType(boost_type)
        except ValueError:
            return AdRewardResult(outcome=AdOutcome.DECLINED, reason=EconomyError.UNKNOWN_ITEM)

        spec = self.controller.boosts.spec(boost_type)
        if spec is None or spec.source != BoostSource.REWARDED_AD:
            return AdRewardResult(outcome=AdOutcome.DECLINED, reason=EconomyError.UNKNOWN_ITEM)

        reason = self.controller.boosts.check(boost_type, now or utcnow())
        if reason is not None:
            return AdRewardResult(outcome=AdOutcome.DECLINED, reason=reason)

        outcome = await self._show_ad()
        logger.info("rewarded_ad_finished", placement=boost_type.value, outcome=outcome.value)
        if outcome != AdOutcome.GRANTED:
            return AdRewardResult(outcome=outcome)

        activation = self.controller.activate_boost(boost_type, now or utcnow())
        return AdRewardResult(outcome=outcome, result=activation, reason=activation.reason)

    async def claim_offline_with_ad(self, now: Optional[datetime] = None) -> AdRewardResult:
        """Double the pending offline earnings by watching an ad.

        A declined or failed ad leaves the claim pending so the player can
        still take the undoubled amount.
        """
        pending = self.controller.pending_offline_earnings
        if pending is None or not pending.can_double:
            return AdRewardResult(outcome=AdOutcome.DECLINED, reason=EconomyError.NO_PENDING_CLAIM)

        outcome = await self._show_ad()
        logger.info("rewarded_ad_finished", placement="offline_doubler", outcome=outcome.value)
        if outcome != AdOutcome.GRANTED:
            return AdRewardResult(outcome=outcome)

        claim = self.controller.claim_offline_earnings(doubled=True, now=now)
        return AdRewardResult(outcome=outcome, result=claim, reason=claim.reason)

    # ==================== SEASONS ====================

    async def check_season(self, next_season: Season, now: Optional[datetime] = None) -> Optional[RolloverResult]:
        """Roll over to ``next_season`` if the current one has ended."""
        now = now or utcnow()
        current = self.controller.season
        if current is None or not current.has_ended(now):
            return None
        if next_season.season_id == current.season_id:
            logger.warning("season_rollover_skipped", reason="next season has the same id")
            return None

        archived_doc = self.controller.snapshot()
        archived_id = current.season_id
        result = self.controller.rollover_season(next_season, now)
        bind_context(season_id=next_season.season_id)

        try:
            await self.store.save_season(self.user_id, archived_id, archived_doc)
        except Exception as e:
            logger.warning("state_save_failed", error=str(e), error_type=type(e).__name__)
        await self.save(now)
        return result
