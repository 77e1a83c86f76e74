"""Stake allocation.

Splits the budget across a selected wager set in whole minimum units:
  - a high-variance pick gets a fixed sub-budget, reserved first
  - the rest is shared by profile weight, floored to the unit, with leftover
    units handed out largest fractional remainder first
  - whatever is left after rounding goes to the heaviest regular pick,
    so stakes always add up to the budget
  - a high-variance pick selected on its own takes the whole budget
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Sequence

from raceplan.betting.candidates import WagerCandidate
from raceplan.betting.selector import BALANCED, CAPITAL_PRESERVATION, HIGH_VARIANCE
from raceplan.config import StakeSettings

logger = logging.getLogger(__name__)


@dataclass
class WagerAllocation:
    """A candidate and the amount staked on it."""

    candidate: WagerCandidate
    stake: int


@dataclass
class StakeResult:
    allocations: list[WagerAllocation]
    budget: int
    notes: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(a.stake for a in self.allocations)


def stake_weight(cand: WagerCandidate, profile: str) -> float:
    """Relative stake weight of a regular (non-high-variance) pick."""
    ev = max(0.0, cand.ev)
    if profile == CAPITAL_PRESERVATION:
        return cand.probability + 0.2 * ev
    if profile == BALANCED:
        return ev + 0.05
    if profile == HIGH_VARIANCE:
        return (ev + 0.03) * math.log(max(1.01, cand.odds))
    raise ValueError(f"Unknown profile: {profile!r}")


def _floor_to_unit(x: float, unit: int) -> int:
    return int(x // unit) * unit


def allocate_by_weights(total: int, unit: int, weights: Sequence[float]) -> list[int]:
    """Split total into unit multiples proportionally to weights.

    The result always sums to total when total is a unit multiple. Zero
    allocations are topped up to one unit (taken from the largest stake)
    while the budget allows it.
    """
    n = len(weights)
    if n == 0:
        return []

    w = [max(0.0, x) if math.isfinite(x) else 0.0 for x in weights]
    sum_w = sum(w)

    if sum_w <= 0:
        each = _floor_to_unit(total / n, unit)
        out = [each] * n
        left = total - each * n
        i = 0
        while left >= unit:
            out[i] += unit
            left -= unit
            i = (i + 1) % n
    else:
        raw = [x * total / sum_w for x in w]
        out = [_floor_to_unit(r, unit) for r in raw]
        left = total - sum(out)
        order = sorted(range(n), key=lambda i: (-(raw[i] - out[i]), -w[i], i))
        p = 0
        while left >= unit:
            out[order[p]] += unit
            left -= unit
            p = (p + 1) % n

    # Every pick gets at least one unit when the budget covers it
    if total >= n * unit:
        for i in range(n):
            if out[i] == 0:
                donor = max(range(n), key=lambda j: out[j])
                out[donor] -= unit
                out[i] += unit

    # Sub-unit residue (only when total is not a unit multiple)
    residue = total - sum(out)
    if residue:
        heaviest = max(range(n), key=lambda i: (w[i], -i))
        out[heaviest] += residue
    return out


def allocate_stakes(
    profile: str,
    selected: Sequence[WagerCandidate],
    stake_settings: StakeSettings,
) -> StakeResult:
    """Assign a stake to every selected candidate."""
    unit = stake_settings.min_unit
    budget = stake_settings.effective_budget
    notes: list[str] = []

    dreams = [c for c in selected if c.is_high_variance]
    regular = [c for c in selected if not c.is_high_variance]

    if len(dreams) > 1:
        notes.append(f"{len(dreams)} high-variance picks selected; only the first is staked.")

    if dreams and not regular:
        # Stakes must add up to the budget, so the lone pick carries all of it
        notes.append(
            f"No regular pick to carry the main budget; high-variance cap "
            f"({stake_settings.dream_budget}) exceeded, full budget staked on {dreams[0].id}."
        )
        logger.warning("%s: lone high-variance pick %s takes the full budget", profile, dreams[0].id)
        return StakeResult(
            allocations=[WagerAllocation(dreams[0], budget)], budget=budget, notes=notes,
        )

    dream_stake = 0
    if dreams:
        dream_stake = min(stake_settings.dream_budget, budget)
        if dream_stake < unit:
            notes.append("High-variance budget is below one unit; high-variance pick dropped.")
            dream_stake = 0

    allocations: list[WagerAllocation] = []
    if regular:
        weights = [stake_weight(c, profile) for c in regular]
        stakes = allocate_by_weights(budget - dream_stake, unit, weights)
        allocations.extend(WagerAllocation(c, s) for c, s in zip(regular, stakes))

    if dream_stake:
        allocations.append(WagerAllocation(dreams[0], dream_stake))

    result = StakeResult(allocations=allocations, budget=budget, notes=notes)
    logger.debug("%s: staked %d of %d across %d picks", profile, result.total, budget, len(allocations))
    return result
