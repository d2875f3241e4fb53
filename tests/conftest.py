"""
Pytest configuration and fixtures for the clicker test suite.

This module provides:
- A fixed, timezone-aware clock (every operation takes an explicit ``now``)
- The default GameConfig loaded from data/clicker/economy.json
- A fresh ProgressionController with an event recorder
- Fake collaborators (rewarded ad provider)
"""
import logging
import os
import sys
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from core.logging import configure_logging  # noqa: E402

# Console only: tests must not write logs/clicker.log
configure_logging(level=logging.DEBUG, log_file=None)

from clicker.core.config_types import GameConfig  # noqa: E402
from clicker.interfaces import AdOutcome  # noqa: E402
from clicker.models import Season, SeasonPlayerState  # noqa: E402
from clicker.services.config_service import EconomyDataLoader, load_game_config  # noqa: E402
from clicker.services.progression_service import ProgressionController  # noqa: E402


# =============================================================================
# Clock
# =============================================================================

@pytest.fixture
def now() -> datetime:
    """A fixed instant, mid-day UTC so date arithmetic is unambiguous."""
    return datetime(2026, 3, 14, 12, 0, 0, tzinfo=timezone.utc)


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def game_config() -> GameConfig:
    """Default tables from data/clicker/economy.json."""
    EconomyDataLoader.clear_cache()
    return load_game_config(force_reload=True)


@pytest.fixture
def fifty_tap_config(game_config) -> GameConfig:
    """Default tables with a tap worth 50, for rank-boundary scenarios."""
    return replace(game_config, economy=replace(game_config.economy, base_tap=50))


@pytest.fixture
def season(now, game_config) -> Season:
    return Season(
        season_id="season_1",
        name="Season 1",
        start_at=now - timedelta(days=7),
        end_at=now + timedelta(days=21),
        coefficients=game_config.coefficients,
    )


@pytest.fixture
def next_season(season, game_config) -> Season:
    return Season(
        season_id="season_2",
        name="Season 2",
        start_at=season.end_at,
        end_at=season.end_at + timedelta(days=28),
        coefficients=replace(game_config.coefficients, base_threshold=400),
    )


# =============================================================================
# Controller
# =============================================================================

@pytest.fixture
def recorded_events() -> list:
    return []


@pytest.fixture
def controller(game_config, now, recorded_events) -> ProgressionController:
    """Fresh controller for a brand-new player, session already started."""
    controller = ProgressionController(
        game_config,
        state=SeasonPlayerState.new("season_1", now),
        event_sink=recorded_events.append,
    )
    controller.start_session(now)
    return controller


@pytest.fixture
def make_controller(game_config, now, recorded_events):
    """Factory fixture: controller from explicit state/config."""
    def _make(state=None, config=None, user=None, season=None):
        ctrl = ProgressionController(
            config or game_config,
            state=state or SeasonPlayerState.new("season_1", now),
            user=user,
            season=season,
            event_sink=recorded_events.append,
        )
        ctrl.start_session(now)
        return ctrl
    return _make


# =============================================================================
# Fake collaborators
# =============================================================================

class FakeAdProvider:
    """Rewarded ad provider that answers with a scripted outcome."""

    def __init__(self, outcome: AdOutcome = AdOutcome.GRANTED, available: bool = True):
        self.outcome = outcome
        self.available = available
        self.shown = 0

    def can_show_rewarded_ad(self) -> bool:
        return self.available

    async def show_rewarded_ad(self) -> AdOutcome:
        self.shown += 1
        return self.outcome


@pytest.fixture
def ad_provider() -> FakeAdProvider:
    return FakeAdProvider()
