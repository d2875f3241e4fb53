"""Outcome taxonomy for rejected player actions.

None of these are exceptional: every mutating operation returns a result
carrying one of them instead of raising.
"""

from enum import Enum


class EconomyError(str, Enum):
    """Reasons a player action was rejected."""
    INSUFFICIENT_FUNDS = "insufficient_funds"
    MAX_LEVEL_REACHED = "max_level_reached"
    ON_COOLDOWN = "on_cooldown"
    NO_INVENTORY = "no_inventory"
    ALREADY_ACTIVE = "already_active"
    NOT_ELIGIBLE = "not_eligible"
    NO_PENDING_CLAIM = "no_pending_claim"
    UNKNOWN_ITEM = "unknown_item"
    ALREADY_CLAIMED = "already_claimed"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    EconomyError.INSUFFICIENT_FUNDS: "Not enough coins",
    EconomyError.MAX_LEVEL_REACHED: "Already at max level",
    EconomyError.ON_COOLDOWN: "Boost is cooling down",
    EconomyError.NO_INVENTORY: "No charges left",
    EconomyError.ALREADY_ACTIVE: "Boost is already running",
    EconomyError.NOT_ELIGIBLE: "Rank too low to prestige",
    EconomyError.NO_PENDING_CLAIM: "Nothing to claim",
    EconomyError.UNKNOWN_ITEM: "Unknown item",
    EconomyError.ALREADY_CLAIMED: "Already claimed today",
}
