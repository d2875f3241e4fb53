import asyncio
from datetime import timedelta

from clicker.core.rank_curve import RankCurve
from clicker.models import utcnow
from clicker.services.config_service import load_game_config
from clicker.services.progression_service import ProgressionController
from core.logging import shutdown_logging

# Rough balance check for the economy tables.
# Reads data/clicker/economy.json the same way the game does.

SAMPLE_RANKS = [1, 2, 5, 10, 15, 20, 25, 30, 40, 50]


def print_curve(curve: RankCurve, prestige_count: int = 0):
    print(f"\n--- Rank curve (prestige {prestige_count}) ---")
    previous = 0.0
    for index in SAMPLE_RANKS:
        if index > curve.rank_count:
            break
        rank = curve.rank_at(index, prestige_count)
        multiplier = curve.season_base_multiplier(index, prestige_count)
        step = rank.threshold - previous
        print(f"  {rank.display_name:<14} threshold={rank.threshold:>14.0f}  step={step:>12.0f}  mult=x{multiplier:.3f}")
        previous = rank.threshold


def simulate_tapping(config, taps_per_second: float, hours: float, buy_upgrades: bool = True):
    """Tap at a constant rate, buying the cheapest affordable upgrade each second."""
    print(f"\n--- Active play: {taps_per_second} taps/s for {hours}h (upgrades={'on' if buy_upgrades else 'off'}) ---")
    now = utcnow()
    controller = ProgressionController(config)
    controller.start_session(now)

    rank_times = {}
    seconds = int(hours * 3600)
    leveled_items = [item for item in config.shop.values() if not item.is_consumable]

    for second in range(seconds):
        now = now + timedelta(seconds=1)
        for _ in range(int(taps_per_second)):
            result = controller.apply_tap(now)
            if result.did_rank_up and result.rank_up.index not in rank_times:
                rank_times[result.rank_up.index] = second
        controller.apply_auto_taps(1, now)

        if buy_upgrades and leveled_items:
            cheapest = min(leveled_items, key=lambda item: controller.upgrade_price(item.key))
            controller.purchase_upgrade(cheapest)

    state = controller.state
    print(f"  Final rank: {controller.current_rank.display_name} ({state.rank_index})")
    print(f"  Season taps: {state.current_season_taps:,.0f}  Coins: {state.coins:,.0f}")
    print(f"  Levels: " + ", ".join(f"{c.value}={lvl}" for c, lvl in state.levels.items()))
    for index in sorted(rank_times):
        if index in SAMPLE_RANKS:
            minutes = rank_times[index] / 60
            print(f"    reached rank {index:>2} after {minutes:6.1f} min")

    if controller.can_prestige:
        print(f"  => Can prestige: x{state.season_base_multiplier:.3f} -> x{controller.projected_prestige_multiplier:.3f}")
    else:
        print(f"  => Not eligible for prestige yet (need rank {config.economy.minimum_prestige_rank_index})")


async def main():
    try:
        config = load_game_config()
        curve = RankCurve(config.coefficients)
        print_curve(curve, 0)
        print_curve(curve, 3)

        simulate_tapping(config, taps_per_second=5, hours=1, buy_upgrades=False)
        simulate_tapping(config, taps_per_second=5, hours=1)
    finally:
        # flush queued log records
        shutdown_logging()


if __name__ == "__main__":
    asyncio.run(main())
