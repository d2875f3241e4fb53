"""Daily login rewards on a repeating weekly cycle.

Claimable once per UTC calendar day. Missing more than one day restarts
the streak (and the cycle) at day 1.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional, Sequence

from clicker.core.config_types import DailyRewardConfig
from clicker.errors import EconomyError
from clicker.models import DailyRewardsState


@dataclass(frozen=True)
class DailyClaimResult:
    success: bool
    reward: Optional[DailyRewardConfig] = None
    state: Optional[DailyRewardsState] = None
    reason: Optional[EconomyError] = None


def _utc_date(moment: datetime):
    return moment.astimezone(timezone.utc).date()


def days_since_last_claim(state: DailyRewardsState, now: datetime) -> Optional[int]:
    if state.last_claim_at is None:
        return None
    return (_utc_date(now) - _utc_date(state.last_claim_at)).days


def can_claim(state: DailyRewardsState, now: datetime) -> bool:
    days = days_since_last_claim(state, now)
    return days is None or days >= 1


def streak_will_reset(state: DailyRewardsState, now: datetime) -> bool:
    days = days_since_last_claim(state, now)
    return days is not None and days > 1


def next_reward(
    state: DailyRewardsState,
    rewards: Sequence[DailyRewardConfig],
    now: datetime,
) -> Optional[DailyRewardConfig]:
    if not rewards:
        return None
    streak = 0 if streak_will_reset(state, now) else state.current_streak
    return rewards[streak % len(rewards)]


def claim(
    state: DailyRewardsState,
    rewards: Sequence[DailyRewardConfig],
    now: datetime,
) -> DailyClaimResult:
    """Advance the streak and pick today's reward. Does not apply the reward."""
    if not can_claim(state, now):
        return DailyClaimResult(success=False, state=state, reason=EconomyError.ALREADY_CLAIMED)

    reward = next_reward(state, rewards, now)
    if reward is None:
        return DailyClaimResult(success=False, state=state, reason=EconomyError.UNKNOWN_ITEM)

    streak = 1 if streak_will_reset(state, now) else state.current_streak + 1
    new_state = replace(
        state,
        last_claim_at=now,
        current_streak=streak,
        total_days_claimed=state.total_days_claimed + 1,
    )
    return DailyClaimResult(success=True, reward=reward, state=new_state)
