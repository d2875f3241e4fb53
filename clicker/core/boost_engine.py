"""Time-limited multiplier boosts: activation, cooldowns, stacking.

Expiry is a pure query on ``now``; ``sweep_expired`` only trims the list
for display and never changes what ``total_multiplier`` returns.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Mapping

from clicker.core.config_types import BoostSpec, BoostType
from clicker.errors import EconomyError
from core.logging import get_logger

logger = get_logger("clicker.boosts")


@dataclass(frozen=True)
class ActiveBoost:
    boost_type: BoostType
    start_time: datetime
    end_time: datetime
    multiplier: float
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def is_active(self, now: datetime) -> bool:
        return now < self.end_time

    def remaining_seconds(self, now: datetime) -> float:
        return max(0.0, (self.end_time - now).total_seconds())

    def progress(self, now: datetime) -> float:
        """Fraction of the duration still left; 0 for instantaneous boosts."""
        total = (self.end_time - self.start_time).total_seconds()
        if total <= 0:
            return 0.0
        return self.remaining_seconds(now) / total


@dataclass
class BoostState:
    active_boosts: list[ActiveBoost] = field(default_factory=list)
    cooldowns: dict[BoostType, datetime] = field(default_factory=dict)
    inventory: dict[BoostType, int] = field(default_factory=dict)


@dataclass(frozen=True)
class BoostActivation:
    success: bool
    boost: ActiveBoost | None = None
    reason: EconomyError | None = None


class BoostEngine:
    """State machine per boost type: Idle -> Active -> (Idle | Cooldown) -> Idle."""

    def __init__(self, specs: Mapping[BoostType, BoostSpec], state: BoostState | None = None):
        self.specs = dict(specs)
        self.state = state or BoostState()

    # ---------- queries ----------

    def spec(self, boost_type: BoostType) -> BoostSpec | None:
        return self.specs.get(boost_type)

    def is_on_cooldown(self, boost_type: BoostType, now: datetime) -> bool:
        expiry = self.state.cooldowns.get(boost_type)
        return expiry is not None and now < expiry

    def cooldown_remaining(self, boost_type: BoostType, now: datetime) -> float:
        expiry = self.state.cooldowns.get(boost_type)
        if expiry is None:
            return 0.0
        return max(0.0, (expiry - now).total_seconds())

    def inventory_count(self, boost_type: BoostType) -> int:
        return self.state.inventory.get(boost_type, 0)

    def has_active(self, boost_type: BoostType, now: datetime) -> bool:
        return any(b.boost_type == boost_type and b.is_active(now) for b in self.state.active_boosts)

    def active_boosts(self, now: datetime) -> list[ActiveBoost]:
        return [b for b in self.state.active_boosts if b.is_active(now)]

    def total_multiplier(self, now: datetime) -> float:
        """Product of every live boost; boosts of different types stack multiplicatively."""
        total = 1.0
        for boost in self.state.active_boosts:
            if boost.is_active(now):
                total *= boost.multiplier
        return total

    def check(self, boost_type: BoostType, now: datetime) -> EconomyError | None:
        """Why ``boost_type`` cannot be activated right now, or None if it can."""
        spec = self.spec(boost_type)
        if spec is None:
            return EconomyError.UNKNOWN_ITEM
        if self.is_on_cooldown(boost_type, now):
            return EconomyError.ON_COOLDOWN
        if spec.is_coin_gated and self.inventory_count(boost_type) <= 0:
            return EconomyError.NO_INVENTORY
        if self.has_active(boost_type, now):
            return EconomyError.ALREADY_ACTIVE
        return None

    def can_activate(self, boost_type: BoostType, now: datetime) -> bool:
        return self.check(boost_type, now) is None

    # ---------- transitions ----------

    def activate(self, boost_type: BoostType, now: datetime) -> BoostActivation:
        reason = self.check(boost_type, now)
        if reason is not None:
            logger.debug("boost_rejected", boost_type=boost_type.value, reason=reason.value)
            return BoostActivation(success=False, reason=reason)

        spec = self.specs[boost_type]
        boost = ActiveBoost(
            boost_type=boost_type,
            start_time=now,
            end_time=now + timedelta(seconds=spec.duration_seconds),
            multiplier=spec.multiplier,
        )

        inventory = dict(self.state.inventory)
        if spec.is_coin_gated:
            inventory[boost_type] = inventory[boost_type] - 1
        cooldowns = dict(self.state.cooldowns)
        if spec.cooldown_seconds > 0:
            cooldowns[boost_type] = now + timedelta(seconds=spec.cooldown_seconds)

        self.state = BoostState(
            active_boosts=[*self.state.active_boosts, boost],
            cooldowns=cooldowns,
            inventory=inventory,
        )

        logger.info(
            "boost_activated",
            boost_type=boost_type.value,
            multiplier=spec.multiplier,
            duration_seconds=spec.duration_seconds,
        )
        return BoostActivation(success=True, boost=boost)

    def add_inventory(self, boost_type: BoostType, count: int = 1) -> int:
        updated = max(0, self.inventory_count(boost_type) + count)
        self.state.inventory[boost_type] = updated
        return updated

    def sweep_expired(self, now: datetime) -> int:
        """Drop finished boosts and lapsed cooldown entries. Returns boosts removed."""
        live = [b for b in self.state.active_boosts if b.is_active(now)]
        removed = len(self.state.active_boosts) - len(live)
        self.state.active_boosts = live
        self.state.cooldowns = {t: expiry for t, expiry in self.state.cooldowns.items() if now < expiry}
        return removed

    def restore_cooldowns(self, last_used: Mapping[BoostType, datetime], now: datetime) -> None:
        """Rebuild cooldown expiries from last-use timestamps after a cold start."""
        for boost_type, used_at in last_used.items():
            spec = self.spec(boost_type)
            if spec is None or spec.cooldown_seconds <= 0:
                continue
            expiry = used_at + timedelta(seconds=spec.cooldown_seconds)
            if expiry > now:
                self.state.cooldowns[boost_type] = expiry

    def reset(self) -> None:
        self.state = BoostState()
