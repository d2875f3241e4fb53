"""Events emitted by the progression controller for UI, haptics and analytics."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from clicker.core.economy_rules import Milestone
from clicker.core.rank_curve import Rank


class GameEventType(str, Enum):
    TAP = "tap"
    RANK_UP = "rank_up"
    PRESTIGE = "prestige"
    MILESTONE = "milestone"


@dataclass(frozen=True)
class GameEvent:
    type: GameEventType
    taps_added: float = 0.0
    rank: Optional[Rank] = None
    milestone: Optional[Milestone] = None
    prestige_count: Optional[int] = None

    @classmethod
    def tap(cls, taps_added: float) -> GameEvent:
        return cls(type=GameEventType.TAP, taps_added=taps_added)

    @classmethod
    def rank_up(cls, rank: Rank, taps_added: float) -> GameEvent:
        return cls(type=GameEventType.RANK_UP, rank=rank, taps_added=taps_added)

    @classmethod
    def reached_milestone(cls, milestone: Milestone) -> GameEvent:
        return cls(type=GameEventType.MILESTONE, milestone=milestone)

    @classmethod
    def prestiged(cls, prestige_count: int) -> GameEvent:
        return cls(type=GameEventType.PRESTIGE, prestige_count=prestige_count)


EventSink = Callable[[GameEvent], None]
