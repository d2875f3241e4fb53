"""Economy configuration loading.

Defaults are read from data/clicker/economy.json (cached after the first
read). A remote-config snapshot may be layered on top, either as nested
sections mirroring the JSON file or as flat remote-config keys such as
``rank_growth_b`` or ``overclock_cooldown``.
"""

from __future__ import annotations

import copy
import json
import os
from typing import Any, Optional

from clicker.core.config_types import BoostType, GameConfig, SeasonCoefficients
from configs.settings import ECONOMY_CONFIG_PATH
from core.logging import get_logger

logger = get_logger("clicker.config_service")

_COEFFICIENT_KEYS = frozenset(SeasonCoefficients.__dataclass_fields__)
_ECONOMY_KEYS = frozenset({
    "base_tap",
    "click_multiplier_per_level",
    "offline_multiplier_per_level",
    "rank_up_coins_base",
    "minimum_prestige_rank_index",
    "min_offline_claim_coins",
})
# flat remote key suffix -> boost table field
_BOOST_FIELD_SUFFIXES = {
    "multiplier": "multiplier",
    "duration": "duration_seconds",
    "cooldown": "cooldown_seconds",
}
# older remote configs used rank_growth_a as the base threshold
_ALIASES = {"rank_growth_a": "base_threshold"}


class EconomyDataLoader:
    """Loads and caches the economy JSON tables."""
    _cache: dict[str, dict[str, Any]] = {}

    @classmethod
    def load(cls, path: Optional[str] = None, force_reload: bool = False) -> dict[str, Any]:
        path = path or ECONOMY_CONFIG_PATH
        if path in cls._cache and not force_reload:
            return copy.deepcopy(cls._cache[path])

        if not os.path.exists(path):
            logger.error("economy_config_missing", path=path)
            cls._cache[path] = {}
            return {}

        try:
            with open(path, 'r', encoding='utf-8') as f:
                loaded = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error("economy_config_unreadable", path=path, error=str(e))
            loaded = {}

        if not isinstance(loaded, dict):
            logger.error("economy_config_unreadable", path=path, error="top level is not an object")
            loaded = {}

        cls._cache[path] = loaded
        return copy.deepcopy(loaded)

    @classmethod
    def clear_cache(cls) -> None:
        cls._cache.clear()


def _deep_merge(base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _split_boost_key(key: str) -> Optional[tuple[str, str]]:
    for suffix, field_name in _BOOST_FIELD_SUFFIXES.items():
        if key.endswith("_" + suffix):
            boost_key = key[: -len(suffix) - 1]
            if boost_key in {t.value for t in BoostType}:
                return boost_key, field_name
    return None


def apply_remote_overrides(data: dict[str, Any], remote: dict[str, Any]) -> dict[str, Any]:
    """Merge a remote snapshot into ``data`` in place and return it.

    Unrecognised flat keys are ignored; remote config carries flags for
    other features too.
    """
    for raw_key, value in remote.items():
        if isinstance(value, (dict, list)):
            if isinstance(value, dict) and isinstance(data.get(raw_key), dict):
                _deep_merge(data[raw_key], value)
            else:
                data[raw_key] = value
            continue

        key = _ALIASES.get(raw_key, raw_key)
        if key in _COEFFICIENT_KEYS:
            data.setdefault("coefficients", {})[key] = value
        elif key in _ECONOMY_KEYS:
            data.setdefault("economy", {})[key] = value
        else:
            boost_field = _split_boost_key(key)
            if boost_field is not None:
                boost_key, field_name = boost_field
                data.setdefault("boosts", {}).setdefault(boost_key, {})[field_name] = value
    return data


def load_game_config(
    path: Optional[str] = None,
    overrides: Optional[dict[str, Any]] = None,
    force_reload: bool = False,
) -> GameConfig:
    """Build a validated GameConfig from the JSON defaults plus an optional remote snapshot."""
    data = EconomyDataLoader.load(path, force_reload=force_reload)
    if overrides:
        apply_remote_overrides(data, overrides)

    config = GameConfig.from_dict(data)
    logger.info(
        "economy_config_loaded",
        boosts=len(config.boosts),
        shop_items=len(config.shop),
        daily_rewards=len(config.daily_rewards),
        rank_count=config.coefficients.rank_count,
    )
    return config
