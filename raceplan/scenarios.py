"""Pace-scenario mixture.

Race pace is unknown before the jump, so rather than simulating one strength
vector the engine simulates a small set of tempo hypotheses (slow, typical,
fast) and blends their outcome tables, weighted by how likely each tempo is
given the field's estimated pace index.
"""

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from raceplan.config import EngineSettings, get_settings
from raceplan.keys import COMBO_TYPES
from raceplan.simulator import (
    FinishProbs,
    RaceOutcomes,
    Rng,
    StrengthVector,
    estimate_outcomes,
)

logger = logging.getLogger(__name__)

SLOW = "slow"
TYPICAL = "typical"
FAST = "fast"


@dataclass(frozen=True)
class Scenario:
    """One strength hypothesis and its mixture weight."""

    name: str
    strengths: StrengthVector
    weight: float


# ──────────────────────────────────────────────
# Scenario Weights
# ──────────────────────────────────────────────

def pace_scenario_weights(
    pace_index: float,
    scale: float = 1.2,
    normal_bias: float = 0.8,
) -> tuple[float, float, float]:
    """Softmax weights for (slow, typical, fast) given a pace index in [-1, 1].

    A positive index (speed-heavy field) shifts weight to the fast tempo, a
    negative one to the slow tempo; normal_bias keeps the typical tempo
    favoured when the index is near zero.
    """
    logits = (-scale * pace_index, normal_bias, scale * pace_index)
    top = max(logits)
    exps = [math.exp(v - top) for v in logits]
    total = sum(exps)
    return exps[0] / total, exps[1] / total, exps[2] / total


def build_pace_scenarios(
    entrant_ids: Sequence[int],
    pace_index: float,
    strengths_for_pace: Callable[[float], Sequence[float]],
    settings: Optional[EngineSettings] = None,
) -> list[Scenario]:
    """Slow / typical / fast scenarios from an injected strength model.

    strengths_for_pace maps a pace override in [-1, 1] to per-entrant
    strengths (ordered like entrant_ids).
    """
    settings = settings or get_settings()
    pace = max(-1.0, min(1.0, pace_index))
    w_slow, w_typical, w_fast = pace_scenario_weights(
        pace, settings.pace_softmax_scale, settings.pace_normal_bias,
    )
    paces = (
        (SLOW, max(-1.0, pace - settings.pace_shift), w_slow),
        (TYPICAL, pace, w_typical),
        (FAST, min(1.0, pace + settings.pace_shift), w_fast),
    )
    scenarios = [
        Scenario(name, StrengthVector(tuple(entrant_ids), tuple(strengths_for_pace(p))), w)
        for name, p, w in paces
    ]
    logger.info(
        "Pace mixture at %.2f: slow=%.2f typical=%.2f fast=%.2f",
        pace, w_slow, w_typical, w_fast,
    )
    return scenarios


# ──────────────────────────────────────────────
# Blending
# ──────────────────────────────────────────────

def _normalised_weights(weights: list[float], notes: list[str]) -> list[float]:
    clean = [w if math.isfinite(w) and w > 0 else 0.0 for w in weights]
    total = sum(clean)
    if total <= 0:
        logger.warning("Scenario weights sum to zero, blending scenarios equally")
        notes.append("Scenario weights carried no mass; scenarios blended equally.")
        return [1.0 / len(weights)] * len(weights)
    return [w / total for w in clean]


def blend_outcomes(weighted: Sequence[tuple[RaceOutcomes, float]]) -> RaceOutcomes:
    """Convex, weight-normalised combination of scenario outcome tables.

    Per-entrant arrays are mixed position by position; combination tables
    are mixed over the union of keys, a key missing from one scenario
    counting as probability 0 there.
    """
    if not weighted:
        raise ValueError("blend_outcomes needs at least one scenario")

    ids = weighted[0][0].entrant_ids
    for outcomes, _ in weighted[1:]:
        if outcomes.entrant_ids != ids:
            raise ValueError(
                f"Scenario entrants differ: {list(ids)} vs {list(outcomes.entrant_ids)}"
            )

    notes: list[str] = []
    for outcomes, _ in weighted:
        for note in outcomes.notes:
            if note not in notes:
                notes.append(note)
    weights = _normalised_weights([w for _, w in weighted], notes)

    n = len(ids)
    win = [0.0] * n
    top2 = [0.0] * n
    top3 = [0.0] * n
    combos: dict[str, dict[str, float]] = {t: {} for t in COMBO_TYPES}

    for (outcomes, _), w in zip(weighted, weights):
        if w == 0:
            continue
        for i in range(n):
            win[i] += w * outcomes.finish.win[i]
            top2[i] += w * outcomes.finish.top2[i]
            top3[i] += w * outcomes.finish.top3[i]
        for bet_type, table in outcomes.combos.items():
            target = combos.setdefault(bet_type, {})
            for key, p in table.items():
                target[key] = target.get(key, 0.0) + w * p

    first = weighted[0][0]
    return RaceOutcomes(
        entrant_ids=ids,
        finish=FinishProbs(win=win, top2=top2, top3=top3),
        combos=combos,
        place_cutoff=first.place_cutoff,
        iterations=sum(o.iterations for o, _ in weighted),
        notes=notes,
    )


def simulate_scenarios(
    scenarios: Sequence[Scenario],
    iterations: int,
    rng: Rng,
) -> RaceOutcomes:
    """Simulate each scenario and blend the results by scenario weight."""
    if not scenarios:
        raise ValueError("simulate_scenarios needs at least one scenario")
    weighted = []
    for scenario in scenarios:
        outcomes = estimate_outcomes(scenario.strengths, iterations, rng)
        logger.debug("Scenario %s simulated (weight %.3f)", scenario.name, scenario.weight)
        weighted.append((outcomes, scenario.weight))
    return blend_outcomes(weighted)
