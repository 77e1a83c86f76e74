"""Dry run the portfolio engine for one race file and print the portfolios.

The race file is JSON:
    {
      "race_id": "2026-03-01-R5",
      "entrants": [1, 2, 3, ...],
      "strengths": [5.0, 4.0, ...],            # or "scenarios" below
      "scenarios": [{"name": "slow", "strengths": [...], "weight": 0.2}, ...],
      "odds": {"win": {"1": 3.2, ...}, "place": {"1": [1.3, 1.6]}, "trio": {...}}
    }

Also builds a market-only baseline (strengths from win odds) for comparison.

Usage:
    python scripts/dry_run_portfolios.py race.json
    python scripts/dry_run_portfolios.py race.json --budget 20000 --max-bets 7 --mc 8000
"""

import argparse
import json
import logging
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from raceplan.betting.candidates import resolve_odds
from raceplan.betting.portfolio import PortfolioResult, analyze_race, market_strengths
from raceplan.config import StakeSettings, configure_logging
from raceplan.keys import WIN
from raceplan.scenarios import Scenario
from raceplan.simulator import StrengthVector, make_rng, seed_for_race

logger = logging.getLogger(__name__)


def _load_scenarios(race: dict) -> list[Scenario]:
    entrants = race["entrants"]
    if race.get("scenarios"):
        return [
            Scenario(s.get("name", f"s{i}"), StrengthVector(entrants, s["strengths"]), s.get("weight", 1.0))
            for i, s in enumerate(race["scenarios"])
        ]
    return [Scenario("typical", StrengthVector(entrants, race["strengths"]), 1.0)]


def _print_result(title: str, result: PortfolioResult) -> None:
    print(f"\n=== {title} (axis #{result.axis}) ===")
    for pf in result.portfolios:
        print(f"\n{pf.name} [{pf.risk_level}] total={pf.total_stake}")
        for t in pf.tips:
            sel = "-".join(str(s) for s in t.selection)
            tag = f" [{t.tag}]" if t.tag else ""
            print(
                f"  {t.bet_type:<9} {sel:<10} p={t.probability:.3f} "
                f"odds={t.odds:>7.1f} ev={t.ev:+.3f} stake={t.stake}{tag}"
            )
    if result.notes:
        print("\nNotes:")
        for n in result.notes:
            print(f"  - {n}")


def main():
    parser = argparse.ArgumentParser(description="Dry run race portfolios")
    parser.add_argument("race_file", type=Path)
    parser.add_argument("--budget", type=int, default=20000)
    parser.add_argument("--max-bets", type=int, default=7)
    parser.add_argument("--dream-fraction", type=float, default=0.03)
    parser.add_argument("--unit", type=int, default=100)
    parser.add_argument("--mc", type=int, default=None, help="Simulation iterations")
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args()

    configure_logging(args.log_level)

    race = json.loads(args.race_file.read_text(encoding="utf-8"))
    stake_settings = StakeSettings(
        budget=args.budget,
        max_bets=args.max_bets,
        dream_fraction=args.dream_fraction,
        min_unit=args.unit,
    )
    seed = seed_for_race(race.get("race_id", args.race_file.stem))
    odds = race.get("odds", {})

    model = analyze_race(
        _load_scenarios(race), odds, stake_settings, make_rng(seed), iterations=args.mc,
    )
    _print_result("Model", model)

    win_table = odds.get(WIN, {})
    win_odds = [resolve_odds(WIN, win_table.get(str(e))) for e in race["entrants"]]
    market = market_strengths(race["entrants"], win_odds)
    if market is None:
        logger.info("Win odds incomplete, skipping market baseline")
        return
    baseline = analyze_race(
        [Scenario("market", market, 1.0)], odds, stake_settings,
        make_rng(seed ^ 0xA5A5A5A5), iterations=args.mc,
    )
    _print_result("Market baseline", baseline)


if __name__ == "__main__":
    main()
