"""Wager candidate builder.

Joins blended outcome probabilities with market odds tables into priced
candidates carrying expected value per unit staked. Candidates with no
probability or no usable price are dropped rather than given EV 0.
"""

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional

from raceplan.config import EngineSettings, get_settings
from raceplan.keys import (
    PLACE,
    TRIFECTA,
    TRIO,
    WIN,
    BET_TYPES,
    key_for,
    parse_selection,
)
from raceplan.simulator import RaceOutcomes

logger = logging.getLogger(__name__)

# odds_tables: bet type -> {raw key -> odds entry}
OddsTables = Mapping[str, Mapping[str, Any]]


@dataclass(frozen=True)
class WagerCandidate:
    """A priced selection for one bet type."""

    bet_type: str
    selection: tuple[int, ...]
    key: str
    probability: float
    odds: float
    ev: float               # probability * odds - 1
    includes_axis: bool     # selection contains the top-rated entrant
    is_high_variance: bool  # trifecta, or trio paying above the threshold

    @property
    def id(self) -> str:
        return f"{self.bet_type}:{self.key}"


def expected_value(probability: Optional[float], odds: Optional[float]) -> Optional[float]:
    """EV per unit staked, None when either input is unknown or invalid."""
    if probability is None or odds is None:
        return None
    if probability < 0 or odds <= 0:
        return None
    return probability * odds - 1


def resolve_odds(bet_type: str, entry: Any) -> Optional[float]:
    """Payout multiplier from an odds-table entry.

    Entries are a number, a [min, max] pair, or a mapping with value/min/max.
    Place prices are often quoted as a range; the lower bound is used.
    Other types need a concrete price.
    Non-finite prices (nan, inf) resolve to None.
    """
    if entry is None or isinstance(entry, bool):
        return None
    if isinstance(entry, (int, float)):
        return float(entry) if math.isfinite(entry) else None
    if isinstance(entry, Mapping):
        value = entry.get("value")
        if value is not None:
            return _as_float(value)
        if bet_type == PLACE:
            return _as_float(entry.get("min"))
        return None
    if isinstance(entry, (list, tuple)) and entry:
        if bet_type == PLACE:
            return _as_float(entry[0])
        return None
    return _as_float(entry)


def _as_float(val: Any) -> Optional[float]:
    if val is None:
        return None
    try:
        value = float(str(val).replace("$", "").strip())
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def is_high_variance(bet_type: str, odds: float, trio_threshold: float) -> bool:
    if bet_type == TRIFECTA:
        return True
    return bet_type == TRIO and odds >= trio_threshold


def find_axis(outcomes: RaceOutcomes) -> Optional[int]:
    """Entrant with the highest win probability (first listed on ties)."""
    if not outcomes.entrant_ids:
        return None
    best = 0
    for i, p in enumerate(outcomes.finish.win):
        if p > outcomes.finish.win[best]:
            best = i
    return outcomes.entrant_ids[best]


def _probability_for(
    outcomes: RaceOutcomes,
    bet_type: str,
    selection: tuple[int, ...],
    key: str,
    win_probs: dict[int, float],
    place_probs: dict[int, float],
) -> Optional[float]:
    if bet_type == WIN:
        return win_probs.get(selection[0])
    if bet_type == PLACE:
        return place_probs.get(selection[0])
    return outcomes.combo_probability(bet_type, key)


def build_candidates(
    outcomes: RaceOutcomes,
    odds_tables: OddsTables,
    settings: Optional[EngineSettings] = None,
    axis: Optional[int] = None,
) -> list[WagerCandidate]:
    """Build every priced candidate the odds tables allow."""
    settings = settings or get_settings()
    if axis is None:
        axis = find_axis(outcomes)

    win_probs = outcomes.win_by_entrant()
    place_probs = outcomes.place_by_entrant()
    candidates: list[WagerCandidate] = []
    seen: set[str] = set()
    dropped = 0

    for bet_type in BET_TYPES:
        table = odds_tables.get(bet_type)
        if not table:
            continue
        for raw_key, entry in table.items():
            selection = parse_selection(bet_type, raw_key)
            if selection is None:
                dropped += 1
                continue
            key = key_for(bet_type, selection)
            prob = _probability_for(outcomes, bet_type, selection, key, win_probs, place_probs)
            odds = resolve_odds(bet_type, entry)
            if prob is None or prob <= 0 or odds is None or odds <= 0:
                dropped += 1
                continue
            cand_id = f"{bet_type}:{key}"
            if cand_id in seen:
                continue
            seen.add(cand_id)

            prob = min(1.0, prob)
            candidates.append(WagerCandidate(
                bet_type=bet_type,
                selection=selection,
                key=key,
                probability=prob,
                odds=odds,
                ev=expected_value(prob, odds),
                includes_axis=axis in selection,
                is_high_variance=is_high_variance(bet_type, odds, settings.high_variance_trio_odds),
            ))

    logger.info(
        "Built %d candidates (%d odds entries dropped), axis=#%s",
        len(candidates), dropped, axis,
    )
    return candidates
