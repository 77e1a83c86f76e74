"""Wager candidates, portfolio selection and stake allocation."""

from raceplan.betting.candidates import WagerCandidate, build_candidates
from raceplan.betting.portfolio import Portfolio, PortfolioResult, analyze_race, build_portfolios
from raceplan.betting.selector import select_candidates
from raceplan.betting.stakes import allocate_stakes

__all__ = [
    "WagerCandidate",
    "build_candidates",
    "Portfolio",
    "PortfolioResult",
    "analyze_race",
    "build_portfolios",
    "select_candidates",
    "allocate_stakes",
]
