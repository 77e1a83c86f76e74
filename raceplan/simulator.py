"""Monte Carlo finish-order simulation.

Draws full finish orders from per-entrant strengths under the Plackett–Luce
model (sequential weighted draws without replacement) and tabulates:
  - per-entrant win / top-2 / top-3 probabilities
  - combination probabilities for wide, quinella, trio, exacta and trifecta

The random source is always injected as a zero-argument callable returning a
uniform float in [0, 1). Nothing here reads ambient random state, so a seeded
source reproduces a simulation exactly and separate races can be simulated
concurrently.
"""

import logging
import math
import random
from dataclasses import dataclass, field
from itertools import combinations
from typing import Callable, Optional, Sequence

from raceplan.keys import EXACTA, QUINELLA, TRIFECTA, TRIO, WIDE, COMBO_TYPES, key_for

logger = logging.getLogger(__name__)

Rng = Callable[[], float]


# ──────────────────────────────────────────────
# Data Types
# ──────────────────────────────────────────────

@dataclass(frozen=True)
class StrengthVector:
    """Non-negative win strengths paired with entrant identifiers."""

    entrant_ids: tuple[int, ...]
    strengths: tuple[float, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "entrant_ids", tuple(int(e) for e in self.entrant_ids))
        object.__setattr__(self, "strengths", tuple(float(s) for s in self.strengths))
        if len(self.entrant_ids) != len(self.strengths):
            raise ValueError(
                f"{len(self.entrant_ids)} entrant ids but {len(self.strengths)} strengths"
            )
        if len(set(self.entrant_ids)) != len(self.entrant_ids):
            raise ValueError(f"Duplicate entrant ids: {list(self.entrant_ids)}")

    def __len__(self) -> int:
        return len(self.entrant_ids)


@dataclass
class FinishProbs:
    """Per-entrant finishing probabilities, indexed like the strength vector."""

    win: list[float]
    top2: list[float]
    top3: list[float]


@dataclass
class RaceOutcomes:
    """Simulated (or blended) probability set for one race."""

    entrant_ids: tuple[int, ...]
    finish: FinishProbs
    combos: dict[str, dict[str, float]]
    place_cutoff: int
    iterations: int
    notes: list[str] = field(default_factory=list)

    def win_by_entrant(self) -> dict[int, float]:
        return dict(zip(self.entrant_ids, self.finish.win))

    def place_by_entrant(self) -> dict[int, float]:
        """Probability of finishing within the place cutoff."""
        if self.place_cutoff <= 1:
            probs = self.finish.win
        elif self.place_cutoff == 2:
            probs = self.finish.top2
        else:
            probs = self.finish.top3
        return dict(zip(self.entrant_ids, probs))

    def combo_probability(self, bet_type: str, key: str) -> Optional[float]:
        """Probability for a combination key, None if never observed."""
        return self.combos.get(bet_type, {}).get(key)


# ──────────────────────────────────────────────
# Random Sources
# ──────────────────────────────────────────────

def make_rng(seed: int | None = None) -> Rng:
    """Uniform [0, 1) source backed by a private generator."""
    return random.Random(seed).random


def seed_for_race(race_id: str) -> int:
    """Stable 32-bit seed for a race identifier (FNV-1a)."""
    h = 2166136261
    for ch in str(race_id):
        h ^= ord(ch)
        h = (h * 16777619) & 0xFFFFFFFF
    return h


# ──────────────────────────────────────────────
# Rank Sampler
# ──────────────────────────────────────────────

def _weighted_pick(weights: list[float], rng: Rng) -> int:
    """Index drawn proportionally to weights, -1 if total weight <= 0."""
    total = sum(weights)
    if total <= 0:
        return -1
    r = rng() * total
    acc = 0.0
    for i, w in enumerate(weights):
        acc += w
        if r < acc:
            return i
    # Float round-off: fall back to the last positive weight
    for i in range(len(weights) - 1, -1, -1):
        if weights[i] > 0:
            return i
    return -1


def sample_finish_order(weights: Sequence[float], rng: Rng) -> list[int]:
    """Draw one finish order (a permutation of indices) from strengths.

    Each position is drawn from the entrants still running with probability
    proportional to their clamped strength. Once only zero-strength entrants
    remain they are appended in their input order.
    """
    alive = list(range(len(weights)))
    clamped = [max(0.0, w) if math.isfinite(w) else 0.0 for w in weights]
    order: list[int] = []

    while alive:
        idx = _weighted_pick([clamped[i] for i in alive], rng)
        if idx < 0:
            break
        order.append(alive.pop(idx))

    order.extend(alive)
    return order


# ──────────────────────────────────────────────
# Outcome Estimator
# ──────────────────────────────────────────────

def place_cutoff(field_size: int) -> int:
    """Number of placings paid for a field of this size."""
    if field_size <= 4:
        return 1
    if field_size <= 7:
        return 2
    return 3


def _check_iterations(iterations: int) -> None:
    if iterations < 1:
        raise ValueError(f"iterations must be >= 1, got {iterations}")


def _sampling_weights(strengths: Sequence[float], notes: list[str]) -> list[float]:
    """Strengths to sample from, uniform when none is positive."""
    if any(math.isfinite(s) and s > 0 for s in strengths):
        return list(strengths)
    logger.warning("All %d strengths are non-positive, using uniform weights", len(strengths))
    notes.append("All strengths were zero or negative; uniform finish probabilities used.")
    return [1.0] * len(strengths)


def estimate_finish_probs(weights: Sequence[float], iterations: int, rng: Rng) -> FinishProbs:
    """Per-entrant win/top-2/top-3 frequencies over repeated draws."""
    _check_iterations(iterations)
    n = len(weights)
    win = [0.0] * n
    top2 = [0.0] * n
    top3 = [0.0] * n

    for _ in range(iterations):
        order = sample_finish_order(weights, rng)
        for pos, idx in enumerate(order[:3]):
            if pos == 0:
                win[idx] += 1
            if pos < 2:
                top2[idx] += 1
            top3[idx] += 1

    return FinishProbs(
        win=[c / iterations for c in win],
        top2=[c / iterations for c in top2],
        top3=[c / iterations for c in top3],
    )


def estimate_outcomes(strengths: StrengthVector, iterations: int, rng: Rng) -> RaceOutcomes:
    """Simulate a race and tabulate every probability table in one pass."""
    _check_iterations(iterations)
    ids = strengths.entrant_ids
    n = len(ids)
    k_place = place_cutoff(n)
    notes: list[str] = []

    if n == 0:
        notes.append("No entrants supplied; nothing to simulate.")
        return RaceOutcomes(
            entrant_ids=(),
            finish=FinishProbs(win=[], top2=[], top3=[]),
            combos={t: {} for t in COMBO_TYPES},
            place_cutoff=k_place,
            iterations=iterations,
            notes=notes,
        )

    weights = _sampling_weights(strengths.strengths, notes)

    win = [0] * n
    top2 = [0] * n
    top3 = [0] * n
    counts: dict[str, dict[str, int]] = {t: {} for t in COMBO_TYPES}
    wide, quinella, trio = counts[WIDE], counts[QUINELLA], counts[TRIO]
    exacta, trifecta = counts[EXACTA], counts[TRIFECTA]

    for _ in range(iterations):
        order = sample_finish_order(weights, rng)
        first3 = order[:3]
        for pos, idx in enumerate(first3):
            if pos == 0:
                win[idx] += 1
            if pos < 2:
                top2[idx] += 1
            top3[idx] += 1

        placed = [ids[i] for i in order[:k_place]]
        for pair in combinations(placed, 2):
            k = key_for(WIDE, pair)
            wide[k] = wide.get(k, 0) + 1

        if n >= 2:
            pair = (ids[order[0]], ids[order[1]])
            k = key_for(QUINELLA, pair)
            quinella[k] = quinella.get(k, 0) + 1
            k = key_for(EXACTA, pair)
            exacta[k] = exacta.get(k, 0) + 1

        if n >= 3:
            triple = (ids[order[0]], ids[order[1]], ids[order[2]])
            k = key_for(TRIO, triple)
            trio[k] = trio.get(k, 0) + 1
            k = key_for(TRIFECTA, triple)
            trifecta[k] = trifecta.get(k, 0) + 1

    logger.debug(
        "Simulated %d entrants x %d iterations: %d trio keys, %d trifecta keys",
        n, iterations, len(trio), len(trifecta),
    )

    return RaceOutcomes(
        entrant_ids=ids,
        finish=FinishProbs(
            win=[c / iterations for c in win],
            top2=[c / iterations for c in top2],
            top3=[c / iterations for c in top3],
        ),
        combos={
            bet_type: {k: c / iterations for k, c in table.items()}
            for bet_type, table in counts.items()
        },
        place_cutoff=k_place,
        iterations=iterations,
        notes=notes,
    )
