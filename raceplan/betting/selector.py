"""Portfolio selection by bounded beam search.

For each risk profile, picks at most max_bets candidates subject to:
  - per-type caps (e.g. 2 win, 1 exacta, 1 trifecta)
  - at most one high-variance pick, and only for the high-variance profile
    when its sub-budget covers at least one unit
  - a profile minimum EV, softened for axis-excluding hedges
  - at least one hedge (a pick without the axis entrant) whenever possible

Exhaustive subset search is out of reach with hundreds of priced
combinations, so the search keeps a fixed-width list of partial portfolios
and extends it one pick per step.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Optional, Sequence

from raceplan.betting.candidates import WagerCandidate
from raceplan.config import EngineSettings, StakeSettings, get_settings
from raceplan.keys import BET_TYPES

logger = logging.getLogger(__name__)

# Risk profiles
CAPITAL_PRESERVATION = "capital_preservation"
BALANCED = "balanced"
HIGH_VARIANCE = "high_variance"

PROFILES = (CAPITAL_PRESERVATION, BALANCED, HIGH_VARIANCE)


@dataclass
class SelectionState:
    """A partial portfolio in the beam."""

    selected: tuple[WagerCandidate, ...] = ()
    used: frozenset[str] = frozenset()
    score: float = 0.0
    has_hedge: bool = False
    dream_count: int = 0
    type_counts: dict[str, int] = field(default_factory=dict)

    def extend(self, cand: WagerCandidate, cand_score: float) -> "SelectionState":
        counts = dict(self.type_counts)
        counts[cand.bet_type] = counts.get(cand.bet_type, 0) + 1
        return SelectionState(
            selected=self.selected + (cand,),
            used=self.used | {cand.id},
            score=self.score + cand_score,
            has_hedge=self.has_hedge or not cand.includes_axis,
            dream_count=self.dream_count + (1 if cand.is_high_variance else 0),
            type_counts=counts,
        )


@dataclass
class SelectionResult:
    """Chosen candidates for one profile plus advisory notes."""

    profile: str
    selected: list[WagerCandidate]
    notes: list[str] = field(default_factory=list)


# ──────────────────────────────────────────────
# Scoring
# ──────────────────────────────────────────────

def score_candidate(
    cand: WagerCandidate,
    profile: str,
    longshot_odds: float = 50.0,
) -> float:
    """Profile utility of adding one candidate."""
    p, ev, odds = cand.probability, cand.ev, cand.odds
    if profile == CAPITAL_PRESERVATION:
        return p + 0.35 * ev - (0.10 if odds >= longshot_odds else 0.0)
    if profile == BALANCED:
        return ev + 0.20 * p
    if profile == HIGH_VARIANCE:
        return 1.15 * ev + 0.05 * p + 0.03 * math.log(max(1.01, odds))
    raise ValueError(f"Unknown profile: {profile!r}")


def dream_limit(profile: str, stake_settings: StakeSettings) -> int:
    """How many high-variance picks the profile may hold."""
    if profile == HIGH_VARIANCE and stake_settings.dream_budget >= stake_settings.min_unit:
        return 1
    return 0


# ──────────────────────────────────────────────
# Pool Construction
# ──────────────────────────────────────────────

def cap_pool_by_type(
    candidates: Sequence[WagerCandidate],
    bet_type: str,
    top_ev: int,
    top_prob: int,
    profile: str,
    longshot_odds: float = 50.0,
) -> list[WagerCandidate]:
    """Union of the top-EV, top-probability and top-score candidates of a type."""
    same = [c for c in candidates if c.bet_type == bet_type]
    if not same:
        return []
    by_ev = sorted(same, key=lambda c: c.ev, reverse=True)[:top_ev]
    by_prob = sorted(same, key=lambda c: c.probability, reverse=True)[:top_prob]
    by_score = sorted(
        same, key=lambda c: score_candidate(c, profile, longshot_odds), reverse=True,
    )[:max(top_ev, top_prob)]

    merged: dict[str, WagerCandidate] = {}
    for c in by_ev + by_prob + by_score:
        merged[c.id] = c
    return list(merged.values())


def _filter_by_ev(
    pool: list[WagerCandidate],
    min_ev: float,
    hedge_floor: float,
    notes: list[str],
) -> list[WagerCandidate]:
    filtered = [
        c for c in pool
        if c.ev >= min_ev or (not c.includes_axis and c.ev >= hedge_floor)
    ]
    if not filtered and pool:
        notes.append(
            f"EV filter removed every candidate and was disabled "
            f"(min EV {min_ev:+.2f}, hedge floor {hedge_floor:+.2f})."
        )
        logger.warning("EV filter would empty a pool of %d candidates, filter disabled", len(pool))
        return pool
    if len(filtered) != len(pool):
        notes.append(
            f"EV filter applied: {len(pool)} -> {len(filtered)} candidates "
            f"(min EV {min_ev:+.2f}, hedge floor {hedge_floor:+.2f})."
        )
    return filtered


# ──────────────────────────────────────────────
# Beam Search
# ──────────────────────────────────────────────

def _can_add(
    state: SelectionState,
    cand: WagerCandidate,
    type_caps: dict[str, int],
    max_dreams: int,
    default_cap: int,
) -> bool:
    if cand.id in state.used:
        return False
    if cand.is_high_variance and state.dream_count >= max_dreams:
        return False
    cap = type_caps.get(cand.bet_type, default_cap)
    return state.type_counts.get(cand.bet_type, 0) < cap


def beam_search(
    pool: Sequence[WagerCandidate],
    scores: dict[str, float],
    max_bets: int,
    type_caps: dict[str, int],
    max_dreams: int,
    beam_width: int = 200,
    expand_cap: int = 120,
) -> list[SelectionState]:
    """Final beam, best score first.

    Each step keeps every existing state (stopping early is always allowed)
    and adds every state extended by one admissible candidate, then truncates
    to beam_width.
    """
    beam = [SelectionState()]
    expandable = list(pool[:expand_cap])

    for step in range(max_bets):
        next_beam = list(beam)
        for state in beam:
            for cand in expandable:
                if not _can_add(state, cand, type_caps, max_dreams, max_bets):
                    continue
                next_beam.append(state.extend(cand, scores[cand.id]))
        next_beam.sort(key=lambda s: s.score, reverse=True)
        beam = next_beam[:beam_width]
        logger.debug("Beam step %d: %d states, best %.4f", step + 1, len(beam), beam[0].score)

    return beam


def _pick_final_state(
    beam: list[SelectionState],
    want_dream: bool,
    notes: list[str],
) -> SelectionState:
    for state in beam:
        if not state.selected or not state.has_hedge:
            continue
        if want_dream and state.dream_count < 1:
            continue
        # a lone high-variance pick leaves nothing to carry the main budget
        if state.dream_count >= len(state.selected):
            continue
        return state

    notes.append(
        "No portfolio met the hedge / high-variance constraints; constraints relaxed."
    )
    logger.warning("Selection constraints relaxed for beam of %d states", len(beam))
    return next((s for s in beam if s.selected), beam[0])


def _repair_hedge(
    selected: list[WagerCandidate],
    all_candidates: Sequence[WagerCandidate],
    type_caps: dict[str, int],
    max_bets: int,
    notes: list[str],
) -> list[WagerCandidate]:
    """Swap the final slot for an axis-excluding candidate when none is held."""
    if any(not c.includes_axis for c in selected):
        return selected
    if not selected:
        notes.append("Nothing was selected, so no hedge was applied.")
        logger.warning("Hedge repair skipped: empty selection")
        return selected

    kept = selected[:-1]
    counts: dict[str, int] = {}
    for c in kept:
        counts[c.bet_type] = counts.get(c.bet_type, 0) + 1

    hedges = sorted(
        (c for c in all_candidates if not c.includes_axis and not c.is_high_variance),
        key=lambda c: c.ev,
    )
    for alt in hedges:
        if counts.get(alt.bet_type, 0) >= type_caps.get(alt.bet_type, max_bets):
            continue
        notes.append(f"Hedge enforced: {alt.bet_type} {alt.key} replaces the final pick.")
        logger.warning("Hedge enforced: %s %s replaces %s", alt.bet_type, alt.key, selected[-1].id)
        return kept + [alt]

    notes.append("No axis-excluding candidate exists; hedge requirement not met.")
    logger.warning("Hedge requirement not met: no axis-excluding candidate")
    return selected


def select_candidates(
    profile: str,
    candidates: Sequence[WagerCandidate],
    stake_settings: StakeSettings,
    settings: Optional[EngineSettings] = None,
) -> SelectionResult:
    """Choose a bounded, constraint-satisfying wager set for one profile."""
    if profile not in PROFILES:
        raise ValueError(f"Unknown profile: {profile!r}")
    settings = settings or get_settings()
    notes: list[str] = []
    longshot = settings.longshot_odds

    max_bets = stake_settings.effective_max_bets
    max_dreams = dream_limit(profile, stake_settings)

    pool: list[WagerCandidate] = []
    for bet_type in BET_TYPES:
        top_ev, top_prob = settings.pool_caps.get(bet_type, (60, 10))
        pool.extend(cap_pool_by_type(candidates, bet_type, top_ev, top_prob, profile, longshot))

    scores = {c.id: score_candidate(c, profile, longshot) for c in pool}
    pool.sort(key=lambda c: scores[c.id], reverse=True)

    pool = _filter_by_ev(pool, settings.min_ev_for(profile), settings.hedge_ev_floor, notes)
    if not pool:
        notes.append("No candidates to choose from (missing odds tables or simulated probabilities).")
        return SelectionResult(profile=profile, selected=[], notes=notes)

    beam = beam_search(
        pool, scores, max_bets, settings.type_caps, max_dreams,
        beam_width=settings.beam_width, expand_cap=settings.expand_cap,
    )
    best = _pick_final_state(beam, want_dream=max_dreams > 0, notes=notes)
    selected = list(best.selected[:max_bets])
    selected = _repair_hedge(selected, candidates, settings.type_caps, max_bets, notes)

    logger.info(
        "%s: selected %d of %d pooled candidates (score %.4f)",
        profile, len(selected), len(pool), best.score,
    )
    return SelectionResult(profile=profile, selected=selected, notes=notes)
