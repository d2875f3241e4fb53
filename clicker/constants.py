"""Built-in defaults for the clicker economy.

Used whenever the JSON tables or a remote snapshot are missing a value or
carry one that fails validation.
"""

# Rank curve
DEFAULT_BASE_THRESHOLD = 500.0
DEFAULT_RANK_GROWTH_B = 1.22
DEFAULT_PRESTIGE_EASE = 0.92
DEFAULT_PRESTIGE_GROWTH_A = 1.35
DEFAULT_RANK_BONUS_PER_LEVEL = 0.02
DEFAULT_RANK_COUNT = 50
DEFAULT_RANKS_PER_TIER = 5

# Offline earnings
DEFAULT_OFFLINE_HOURS_CAP = 8.0
DEFAULT_BASE_OFFLINE_RATE = 10.0
SECONDS_PER_HOUR = 3600

# Tap economy
DEFAULT_BASE_TAP = 1.0
DEFAULT_CLICK_MULTIPLIER_PER_LEVEL = 0.10
DEFAULT_OFFLINE_MULTIPLIER_PER_LEVEL = 0.20
DEFAULT_RANK_UP_COINS_BASE = 50.0
DEFAULT_MINIMUM_PRESTIGE_RANK_INDEX = 5
DEFAULT_MIN_OFFLINE_CLAIM_COINS = 1.0

# percent of the next rank's span -> coins
DEFAULT_MILESTONES = {25: 5.0, 50: 10.0, 75: 15.0}

# Roman numerals shown for the level inside a tier (level 1 is "V")
LEVEL_NUMERALS = ["V", "IV", "III", "II", "I"]

# Tables used when economy.json is missing one of its sections
DEFAULT_BOOSTS = {
    "ad_rush": {
        "name": "Ad Rush",
        "multiplier": 2.0,
        "duration_seconds": 30,
        "cooldown_seconds": 120,
        "source": "rewarded_ad",
        "persist_cooldown": True,
    },
    "overclock": {
        "name": "Overclock",
        "multiplier": 5.0,
        "duration_seconds": 15,
        "cooldown_seconds": 300,
        "source": "coins",
        "persist_cooldown": True,
    },
    "tap_frenzy": {
        "name": "Tap Frenzy",
        "multiplier": 3.0,
        "duration_seconds": 60,
        "cooldown_seconds": 600,
        "source": "rewarded_ad",
        "persist_cooldown": False,
    },
    "offline_doubler": {
        "name": "Offline Doubler",
        "multiplier": 2.0,
        "duration_seconds": 0,
        "cooldown_seconds": 0,
        "source": "rewarded_ad",
        "persist_cooldown": False,
    },
}

DEFAULT_SHOP = [
    {"key": "click_multiplier", "name": "Click Power", "category": "click_multiplier",
     "base_price": 50, "price_growth": 2.0, "max_level": 100, "effect_per_level": 0.10},
    {"key": "offline_multiplier", "name": "Offline Earnings", "category": "offline_multiplier",
     "base_price": 100, "price_growth": 2.2, "max_level": 50, "effect_per_level": 0.20},
    {"key": "taps_per_second", "name": "Auto Tapper", "category": "taps_per_second",
     "base_price": 200, "price_growth": 1.8, "max_level": 50, "effect_per_level": 1.0},
    {"key": "overclock_pack", "name": "Overclock Pack", "category": "boost_consumable",
     "base_price": 500, "price_growth": 1.0, "max_level": 99, "effect_per_level": 5.0,
     "boost_type": "overclock"},
]

DEFAULT_DAILY_REWARDS = [
    {"day": 1, "reward_type": "coins", "amount": 50},
    {"day": 2, "reward_type": "coins", "amount": 75},
    {"day": 3, "reward_type": "boost", "boost_type": "overclock", "amount": 1, "is_milestone": True},
    {"day": 4, "reward_type": "coins", "amount": 100},
    {"day": 5, "reward_type": "coins", "amount": 150},
    {"day": 6, "reward_type": "boost", "boost_type": "overclock", "amount": 2, "is_milestone": True},
    {"day": 7, "reward_type": "coins", "amount": 500, "is_milestone": True},
]
