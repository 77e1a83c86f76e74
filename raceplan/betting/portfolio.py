"""Race-level portfolio builder (main entry point).

Runs the full decision flow for one race:
  strengths per pace scenario -> simulation -> blended outcomes
  -> priced candidates -> per-profile selection -> stakes

and returns one portfolio per risk profile. Missing inputs never raise;
they produce empty portfolios with notes explaining why.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

from raceplan.betting.candidates import OddsTables, WagerCandidate, build_candidates, find_axis
from raceplan.betting.selector import (
    BALANCED,
    CAPITAL_PRESERVATION,
    HIGH_VARIANCE,
    PROFILES,
    select_candidates,
)
from raceplan.betting.stakes import WagerAllocation, allocate_stakes
from raceplan.config import EngineSettings, StakeSettings, get_settings
from raceplan.scenarios import Scenario, simulate_scenarios
from raceplan.simulator import RaceOutcomes, Rng, StrengthVector

logger = logging.getLogger(__name__)

HEDGE_TAG = "hedge"
HIGH_VARIANCE_TAG = "high-variance"

PROFILE_LABELS = {
    CAPITAL_PRESERVATION: ("Capital preservation", "Low"),
    BALANCED: ("Balanced", "Medium"),
    HIGH_VARIANCE: ("High variance", "High"),
}


# ──────────────────────────────────────────────
# Dataclasses
# ──────────────────────────────────────────────

@dataclass
class PortfolioTip:
    """One staked wager in a portfolio."""

    bet_type: str
    selection: tuple[int, ...]
    probability: float
    odds: float
    ev: float
    stake: int
    tag: str = ""


@dataclass
class Portfolio:
    profile: str
    name: str
    risk_level: str
    tips: list[PortfolioTip] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    @property
    def total_stake(self) -> int:
        return sum(t.stake for t in self.tips)


@dataclass
class PortfolioResult:
    """Portfolios for every profile plus race-level notes."""

    portfolios: list[Portfolio]
    notes: list[str]
    axis: Optional[int] = None


# ──────────────────────────────────────────────
# Market Baseline
# ──────────────────────────────────────────────

def market_strengths(
    entrant_ids: Sequence[int],
    win_odds: Sequence[Optional[float]],
) -> Optional[StrengthVector]:
    """Normalised inverse win odds, None unless every entrant is priced."""
    if not entrant_ids or len(entrant_ids) != len(win_odds):
        return None
    if not all(o is not None and math.isfinite(o) and o > 0 for o in win_odds):
        return None
    inverse = [1.0 / o for o in win_odds]
    total = sum(inverse)
    return StrengthVector(tuple(entrant_ids), tuple(x / total for x in inverse))


# ──────────────────────────────────────────────
# Portfolio Assembly
# ──────────────────────────────────────────────

def _to_tips(allocations: Sequence[WagerAllocation]) -> list[PortfolioTip]:
    tips: list[PortfolioTip] = []
    hedge_id = next(
        (a.candidate.id for a in allocations
         if not a.candidate.includes_axis and not a.candidate.is_high_variance),
        None,
    )
    for a in allocations:
        c: WagerCandidate = a.candidate
        if c.is_high_variance:
            tag = HIGH_VARIANCE_TAG
        elif c.id == hedge_id:
            tag = HEDGE_TAG
        else:
            tag = ""
        tips.append(PortfolioTip(
            bet_type=c.bet_type,
            selection=c.selection,
            probability=c.probability,
            odds=c.odds,
            ev=c.ev,
            stake=a.stake,
            tag=tag,
        ))
    tips.sort(key=lambda t: t.ev, reverse=True)
    return tips


def _empty_portfolios() -> list[Portfolio]:
    return [
        Portfolio(profile=p, name=PROFILE_LABELS[p][0], risk_level=PROFILE_LABELS[p][1])
        for p in PROFILES
    ]


def build_portfolios(
    outcomes: RaceOutcomes,
    odds_tables: OddsTables,
    stake_settings: StakeSettings,
    settings: Optional[EngineSettings] = None,
) -> PortfolioResult:
    """Priced, selected and staked portfolios for all three profiles."""
    settings = settings or get_settings()
    notes = list(outcomes.notes)

    if not outcomes.entrant_ids or not any(p > 0 for p in outcomes.finish.win):
        notes.append("No usable win probabilities; portfolios left empty.")
        return PortfolioResult(portfolios=_empty_portfolios(), notes=notes)
    if not any(odds_tables.get(t) for t in odds_tables):
        notes.append("No odds supplied for any wager type; portfolios left empty.")
        return PortfolioResult(portfolios=_empty_portfolios(), notes=notes)

    axis = find_axis(outcomes)
    candidates = build_candidates(outcomes, odds_tables, settings, axis=axis)

    notes.append(
        f"Settings: budget={stake_settings.effective_budget}, "
        f"max_bets={stake_settings.max_bets}, "
        f"high-variance cap={stake_settings.dream_budget}, "
        f"unit={stake_settings.min_unit}, axis=#{axis}"
    )

    if not candidates:
        notes.append("No priced candidates (odds and simulated probabilities do not overlap).")
        return PortfolioResult(portfolios=_empty_portfolios(), notes=notes, axis=axis)

    portfolios: list[Portfolio] = []
    for profile in PROFILES:
        name, risk = PROFILE_LABELS[profile]
        selection = select_candidates(profile, candidates, stake_settings, settings)
        stakes = allocate_stakes(profile, selection.selected, stake_settings)
        tips = _to_tips(stakes.allocations)

        pf_notes = selection.notes + stakes.notes
        notes.extend(f"{name}: {n}" for n in pf_notes)
        portfolios.append(Portfolio(
            profile=profile, name=name, risk_level=risk, tips=tips, notes=pf_notes,
        ))
        logger.info(
            "%s portfolio: %d tips, %d staked", name, len(tips), sum(t.stake for t in tips),
        )

    return PortfolioResult(portfolios=portfolios, notes=notes, axis=axis)


def analyze_race(
    scenarios: Sequence[Scenario],
    odds_tables: OddsTables,
    stake_settings: StakeSettings,
    rng: Rng,
    iterations: Optional[int] = None,
    settings: Optional[EngineSettings] = None,
) -> PortfolioResult:
    """Simulate each scenario, blend, and build the three portfolios."""
    settings = settings or get_settings()
    if iterations is None:
        iterations = settings.mc_iterations

    usable = [s for s in scenarios if len(s.strengths) > 0]
    if not usable:
        return PortfolioResult(
            portfolios=_empty_portfolios(),
            notes=["No usable strengths supplied; portfolios left empty."],
        )

    outcomes = simulate_scenarios(usable, iterations, rng)
    return build_portfolios(outcomes, odds_tables, stake_settings, settings)
