"""Collaborators the core talks to but does not implement."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional, Protocol


class AdOutcome(str, Enum):
    GRANTED = "granted"
    DECLINED = "declined"
    FAILED = "failed"


class RewardedAdProvider(Protocol):
    def can_show_rewarded_ad(self) -> bool:
        ...

    async def show_rewarded_ad(self) -> AdOutcome:
        ...


class StateStore(Protocol):
    """Document store keyed by user id (and season id for season documents)."""

    async def load_season(self, user_id: str, season_id: str) -> Optional[dict[str, Any]]:
        ...

    async def save_season(self, user_id: str, season_id: str, data: dict[str, Any]) -> None:
        ...

    async def load_user(self, user_id: str) -> Optional[dict[str, Any]]:
        ...

    async def save_user(self, user_id: str, data: dict[str, Any]) -> None:
        ...
