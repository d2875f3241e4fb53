"""Tests for progression_service.py - the per-session ProgressionController."""

import random
from datetime import timedelta

import pytest

from clicker.core.config_types import BoostType, UpgradeCategory
from clicker.errors import EconomyError
from clicker.events import GameEventType
from clicker.models import SeasonPlayerState, UserRecord
from clicker.services.progression_service import ProgressionController


def _state(now, **kwargs):
    return SeasonPlayerState(season_id="season_1", last_active_at=now, **kwargs)


# =============================================================================
# Taps and ranks
# =============================================================================

class TestTapping:
    """Tests for apply_tap and the rank/milestone bookkeeping."""

    def test_first_tap(self, controller, now, recorded_events):
        result = controller.apply_tap(now)

        assert result.taps_added == pytest.approx(1.0)
        assert controller.state.current_season_taps == pytest.approx(1.0)
        assert result.did_rank_up is False
        assert [e.type for e in recorded_events] == [GameEventType.TAP]

    def test_rank_flips_on_the_tap_crossing_610(self, make_controller, fifty_tap_config, now, recorded_events):
        """Test tapping 50 at a time reaches rank 2 on the tap that crosses 610 and not before."""
        ctrl = make_controller(config=fifty_tap_config)

        taps = 0
        while ctrl.state.rank_index == 1:
            before = ctrl.state.current_season_taps
            result = ctrl.apply_tap(now)
            taps += 1
            if result.did_rank_up:
                assert before < 610 <= ctrl.state.current_season_taps
            else:
                assert ctrl.state.current_season_taps < 610

        assert taps == 13
        assert ctrl.current_rank.index == 2
        rank_ups = [e for e in recorded_events if e.type == GameEventType.RANK_UP]
        assert len(rank_ups) == 1
        assert rank_ups[0].rank.index == 2

    def test_milestones_and_rank_up_coins(self, make_controller, fifty_tap_config, now, recorded_events):
        """Test the 25/50/75% rewards and the rank-up bonus all land once."""
        ctrl = make_controller(config=fifty_tap_config)
        for _ in range(13):
            ctrl.apply_tap(now)

        milestones = [e.milestone for e in recorded_events if e.type == GameEventType.MILESTONE]
        # the 13th tap (600 -> 650) ranks up and also passes rank 2's 25% mark at 643.55
        assert [(m.rank_index, m.percent) for m in milestones] == [(1, 25), (1, 50), (1, 75), (2, 25)]
        # 5 + 10 + 15 + 5 milestones, 50 * 2 for reaching rank 2
        assert ctrl.state.coins == pytest.approx(135)

    def test_milestone_in_new_span_paid_on_rank_up_tap(self, make_controller, fifty_tap_config, now):
        """Test every milestone is paid exactly once while climbing to rank 3."""
        ctrl = make_controller(config=fifty_tap_config)
        paid = []
        while ctrl.state.rank_index < 3:
            result = ctrl.apply_tap(now)
            paid.extend((m.rank_index, m.percent) for m in result.milestones)

        assert (2, 25) in paid
        assert paid[:6] == [(1, 25), (1, 50), (1, 75), (2, 25), (2, 50), (2, 75)]
        assert len(paid) == len(set(paid))

    def test_multi_rank_jump_pays_skipped_milestones(self, make_controller, now):
        ctrl = make_controller(state=_state(now, current_season_taps=500))
        result = ctrl._add_taps(ctrl.rank_curve.threshold(3) - 499)

        assert [(m.rank_index, m.percent) for m in result.milestones] == [
            (1, 25), (1, 50), (1, 75), (2, 25), (2, 50), (2, 75),
        ]
        assert result.coins_earned == pytest.approx(60 + 150)

    def test_rank_up_raises_season_multiplier(self, make_controller, now):
        ctrl = make_controller(state=_state(now, current_season_taps=609))
        ctrl.apply_tap(now)

        assert ctrl.state.rank_index == 2
        assert ctrl.state.season_base_multiplier == pytest.approx(1.02)
        assert ctrl.tap_value(now) == pytest.approx(1.02)

    def test_multi_rank_jump(self, make_controller, now):
        """Test a huge tap lands on the right rank and pays the final rank bonus."""
        ctrl = make_controller(state=_state(now, current_season_taps=0))
        result = ctrl._add_taps(ctrl.rank_curve.threshold(4))

        assert result.rank_up.index == 4
        assert ctrl.state.rank_index == 4
        assert result.coins_earned >= 200

    def test_boost_multiplies_tap(self, controller, now):
        controller.activate_boost(BoostType.AD_RUSH, now)
        assert controller.apply_tap(now).taps_added == pytest.approx(2.0)

    def test_progress(self, make_controller, now):
        ctrl = make_controller(state=_state(now, current_season_taps=555))
        assert ctrl.progress_to_next_rank == pytest.approx(0.5)


class TestAutoTaps:
    """Tests for apply_auto_taps."""

    def test_no_auto_tapper(self, controller, now):
        assert controller.apply_auto_taps(10, now).taps_added == 0

    def test_auto_taps_use_level_and_tap_value(self, make_controller, now):
        state = _state(now).with_level(UpgradeCategory.TAPS_PER_SECOND, 2)
        ctrl = make_controller(state=state)

        result = ctrl.apply_auto_taps(10, now)
        assert result.taps_added == pytest.approx(20)
        assert ctrl.state.current_season_taps == pytest.approx(20)


# =============================================================================
# Shop
# =============================================================================

class TestPurchaseUpgrade:
    """Tests for purchase_upgrade."""

    def test_buy_click_level(self, make_controller, now):
        ctrl = make_controller(state=_state(now, coins=150))
        result = ctrl.purchase_upgrade("click_multiplier")

        assert result.success is True
        assert result.price == 100
        assert ctrl.state.click_multiplier_level == 2
        assert ctrl.state.coins == pytest.approx(50)
        assert ctrl.tap_value(now) == pytest.approx(1.1)

    def test_rejected_purchase_is_atomic(self, make_controller, now):
        """Test a failed purchase leaves the exact same state object."""
        ctrl = make_controller(state=_state(now, coins=99))
        before = ctrl.state

        result = ctrl.purchase_upgrade("click_multiplier")
        assert result.reason == EconomyError.INSUFFICIENT_FUNDS
        assert ctrl.state is before

    def test_max_level(self, make_controller, now):
        state = _state(now, coins=1e40).with_level(UpgradeCategory.OFFLINE_MULTIPLIER, 50)
        ctrl = make_controller(state=state)

        result = ctrl.purchase_upgrade("offline_multiplier")
        assert result.reason == EconomyError.MAX_LEVEL_REACHED
        assert ctrl.state.offline_multiplier_level == 50

    def test_unknown_item(self, controller):
        result = controller.purchase_upgrade("golden_finger")
        assert result.success is False
        assert result.reason == EconomyError.UNKNOWN_ITEM

    def test_consumable_pack_adds_inventory(self, make_controller, now):
        ctrl = make_controller(state=_state(now, coins=1000))

        result = ctrl.purchase_upgrade("overclock_pack")
        assert result.success is True
        assert ctrl.state.coins == pytest.approx(500)
        assert ctrl.state.boost_inventory[BoostType.OVERCLOCK] == 1
        assert ctrl.boosts.inventory_count(BoostType.OVERCLOCK) == 1

    def test_upgrade_price_view(self, controller):
        assert controller.upgrade_price("click_multiplier") == 100
        assert controller.upgrade_price("taps_per_second") == 200
        assert controller.upgrade_price("nope") is None


# =============================================================================
# Boosts
# =============================================================================

class TestActivateBoost:
    """Tests for activate_boost through the controller."""

    def test_overclock_from_inventory(self, make_controller, now):
        ctrl = make_controller(state=_state(now, boost_inventory={BoostType.OVERCLOCK: 1}))

        result = ctrl.activate_boost(BoostType.OVERCLOCK, now)
        assert result.success is True
        assert ctrl.state.boost_inventory[BoostType.OVERCLOCK] == 0
        assert ctrl.state.boost_last_used[BoostType.OVERCLOCK] == now
        assert ctrl.tap_value(now) == pytest.approx(5.0)

    def test_string_boost_type(self, controller, now):
        assert controller.activate_boost("ad_rush", now).success is True
        assert controller.activate_boost("mega_rush", now).reason == EconomyError.UNKNOWN_ITEM

    def test_cooldown_survives_restart(self, controller, game_config, now):
        """Test a persisted cooldown is rebuilt by the next session."""
        controller.activate_boost(BoostType.AD_RUSH, now)
        saved = controller.snapshot()

        restored = ProgressionController(game_config, state=SeasonPlayerState.from_dict(saved))
        restored.start_session(now + timedelta(seconds=60))

        result = restored.activate_boost(BoostType.AD_RUSH, now + timedelta(seconds=60))
        assert result.reason == EconomyError.ON_COOLDOWN

    def test_non_persisted_cooldown_is_forgotten(self, controller, game_config, now):
        controller.activate_boost(BoostType.TAP_FRENZY, now)
        assert BoostType.TAP_FRENZY not in controller.state.boost_last_used

        restored = ProgressionController(game_config, state=SeasonPlayerState.from_dict(controller.snapshot()))
        restored.start_session(now + timedelta(seconds=120))
        assert restored.activate_boost(BoostType.TAP_FRENZY, now + timedelta(seconds=120)).success is True


# =============================================================================
# Offline earnings
# =============================================================================

class TestOfflineEarnings:
    """Tests for start_session and claim_offline_earnings."""

    def test_pending_after_absence(self, make_controller, now):
        ctrl = make_controller(state=_state(now - timedelta(hours=2)))

        pending = ctrl.pending_offline_earnings
        assert pending is not None
        assert pending.coins == pytest.approx(20)

    def test_claim_once(self, make_controller, now):
        ctrl = make_controller(state=_state(now - timedelta(hours=2)))

        first = ctrl.claim_offline_earnings(now=now)
        second = ctrl.claim_offline_earnings(now=now)

        assert first.success is True
        assert ctrl.state.coins == pytest.approx(20)
        assert second.reason == EconomyError.NO_PENDING_CLAIM
        assert ctrl.state.last_active_at == now

    def test_doubled_claim(self, make_controller, now):
        ctrl = make_controller(state=_state(now - timedelta(hours=2)))
        result = ctrl.claim_offline_earnings(doubled=True, now=now)

        assert result.doubled is True
        assert ctrl.state.coins == pytest.approx(40)

    def test_short_absence_has_nothing_to_claim(self, make_controller, now):
        """Test amounts below the minimum claim are not offered."""
        ctrl = make_controller(state=_state(now - timedelta(seconds=60)))
        assert ctrl.pending_offline_earnings is None

    def test_capped(self, make_controller, now):
        ctrl = make_controller(state=_state(now - timedelta(days=3)))
        assert ctrl.pending_offline_earnings.coins == pytest.approx(80)
        assert ctrl.pending_offline_earnings.was_at_cap is True


# =============================================================================
# Prestige
# =============================================================================

class TestPrestige:
    """Tests for prestige."""

    def test_not_eligible_below_minimum_rank(self, make_controller, now):
        ctrl = make_controller(state=_state(now, rank_index=4, coins=100))
        before = ctrl.state

        result = ctrl.prestige(now)
        assert result.success is False
        assert result.reason == EconomyError.NOT_ELIGIBLE
        assert ctrl.state is before

    def test_reset_and_reward(self, make_controller, now, recorded_events):
        state = _state(
            now,
            current_season_taps=1200,
            coins=1234,
            rank_index=5,
            season_base_multiplier=1.08,
            boost_inventory={BoostType.OVERCLOCK: 3},
            boost_last_used={BoostType.AD_RUSH: now},
        ).with_level(UpgradeCategory.CLICK_MULTIPLIER, 4).with_level(UpgradeCategory.TAPS_PER_SECOND, 2)
        ctrl = make_controller(state=state)
        expected = ctrl.projected_prestige_multiplier

        result = ctrl.prestige(now)
        after = ctrl.state

        assert result.success is True
        assert after.coins == 0
        assert after.current_season_taps == 0
        assert after.rank_index == 1
        assert after.prestige_count == 1
        assert after.click_multiplier_level == 1
        assert after.offline_multiplier_level == 1
        assert after.taps_per_second_level == 0
        assert after.boost_inventory == {}
        assert after.boost_last_used == {}
        assert after.season_base_multiplier == pytest.approx(expected)
        assert after.season_base_multiplier > 1.08
        assert ctrl.boosts.can_activate(BoostType.AD_RUSH, now)
        assert recorded_events[-1].type == GameEventType.PRESTIGE
        assert recorded_events[-1].prestige_count == 1

    def test_drops_pending_offline_claim(self, make_controller, now):
        """Test offline coins earned before the reset cannot be claimed after it."""
        ctrl = make_controller(state=_state(now - timedelta(hours=2), rank_index=5, current_season_taps=1200))
        assert ctrl.pending_offline_earnings is not None

        ctrl.prestige(now)

        assert ctrl.pending_offline_earnings is None
        assert ctrl.claim_offline_earnings(now=now).reason == EconomyError.NO_PENDING_CLAIM
        assert ctrl.state.coins == 0

    def test_next_climb_is_shorter(self, make_controller, now):
        ctrl = make_controller(state=_state(now, rank_index=5, current_season_taps=1200))
        ctrl.prestige(now)
        assert ctrl.current_rank.threshold == pytest.approx(460)


# =============================================================================
# Daily rewards and seasons
# =============================================================================

class TestDailyReward:
    """Tests for claim_daily_reward through the controller."""

    def test_coin_reward(self, controller, now):
        result = controller.claim_daily_reward(now)
        assert result.success is True
        assert controller.state.coins == 50
        assert controller.user.daily_rewards.current_streak == 1

    def test_once_per_day(self, controller, now):
        controller.claim_daily_reward(now)
        result = controller.claim_daily_reward(now + timedelta(hours=3))
        assert result.reason == EconomyError.ALREADY_CLAIMED
        assert controller.state.coins == 50

    def test_boost_reward_goes_to_inventory(self, controller, now):
        for day in range(3):
            controller.claim_daily_reward(now + timedelta(days=day))

        assert controller.state.coins == 125
        assert controller.state.boost_inventory[BoostType.OVERCLOCK] == 1
        assert controller.activate_boost(BoostType.OVERCLOCK, now + timedelta(days=2)).success is True


class TestSeasonRollover:
    """Tests for rollover_season."""

    def test_archives_and_resets(self, make_controller, season, next_season, now):
        user = UserRecord(user_id="u1", lifetime_taps=1000, lifetime_best_rank_index=3)
        ctrl = make_controller(
            state=_state(now, current_season_taps=2500, coins=300, rank_index=7, prestige_count=1),
            user=user,
            season=season,
        )

        result = ctrl.rollover_season(next_season, season.end_at)

        assert result.history.season_id == "season_1"
        assert result.history.season_name == "Season 1"
        assert result.history.final_rank_index == 7
        assert result.user.lifetime_taps == pytest.approx(3500)
        assert result.user.lifetime_best_rank_index == 7
        assert len(result.user.season_history) == 1

        assert ctrl.state.season_id == "season_2"
        assert ctrl.state.current_season_taps == 0
        assert ctrl.state.prestige_count == 0
        assert ctrl.rank_curve.threshold(1) == pytest.approx(400)
        assert ctrl.pending_offline_earnings is None


# =============================================================================
# Invariants
# =============================================================================

class TestInvariants:
    """Tests that hold across arbitrary action sequences."""

    def test_monotonic_within_season(self, make_controller, now):
        """Test taps, rank and prestige count never drop without a prestige."""
        rng = random.Random(7)
        ctrl = make_controller(state=_state(now, coins=5000))
        clock = now

        for _ in range(2000):
            before = ctrl.state
            clock += timedelta(seconds=rng.random() * 3)
            action = rng.random()
            if action < 0.85:
                ctrl.apply_tap(clock)
            elif action < 0.95:
                ctrl.purchase_upgrade(rng.choice(list(ctrl.config.shop)))
            else:
                ctrl.activate_boost(rng.choice(list(BoostType)), clock)

            after = ctrl.state
            assert after.current_season_taps >= before.current_season_taps
            assert after.rank_index >= before.rank_index
            assert after.prestige_count == before.prestige_count
            assert after.coins >= 0

    def test_failing_event_sink_does_not_undo_tap(self, game_config, now):
        def broken_sink(event):
            raise RuntimeError("ui gone")

        ctrl = ProgressionController(
            game_config,
            state=_state(now),
            event_sink=broken_sink,
        )
        ctrl.apply_tap(now)
        assert ctrl.state.current_season_taps == pytest.approx(1.0)
