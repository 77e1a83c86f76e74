"""Bet types and canonical combination keys.

Probability tables and odds tables are joined on these keys, so every
component builds them through key_for():
  - single-entrant types: "7"
  - unordered combinations: members sorted numerically, "3-7" / "1-3-7"
  - ordered combinations: finish order preserved, "7>3" / "7>3>1"
"""

import re
from typing import Optional, Sequence

# Bet types
WIN = "win"
PLACE = "place"
WIDE = "wide"
QUINELLA = "quinella"
TRIO = "trio"
EXACTA = "exacta"
TRIFECTA = "trifecta"

BET_TYPES = (WIN, PLACE, WIDE, QUINELLA, TRIO, EXACTA, TRIFECTA)
COMBO_TYPES = (WIDE, QUINELLA, TRIO, EXACTA, TRIFECTA)

_SELECTION_SIZE = {
    WIN: 1,
    PLACE: 1,
    WIDE: 2,
    QUINELLA: 2,
    EXACTA: 2,
    TRIO: 3,
    TRIFECTA: 3,
}

_ORDERED = {EXACTA, TRIFECTA}

ORDERED_SEP = ">"
UNORDERED_SEP = "-"

# Separator variants seen in odds feeds
_ORDERED_VARIANTS = re.compile(r"\s*[>→＞]\s*")
_UNORDERED_VARIANTS = re.compile(r"\s*[-－–=]\s*")


def selection_size(bet_type: str) -> int:
    """Number of entrants a selection of this type names."""
    try:
        return _SELECTION_SIZE[bet_type]
    except KeyError:
        raise ValueError(f"Unknown bet type: {bet_type!r}") from None


def is_ordered(bet_type: str) -> bool:
    return bet_type in _ORDERED


def key_for(bet_type: str, selection: Sequence[int]) -> str:
    """Canonical key for a selection of the given bet type."""
    size = selection_size(bet_type)
    if len(selection) != size:
        raise ValueError(
            f"{bet_type} selection needs {size} entrants, got {list(selection)}"
        )
    if size == 1:
        return str(selection[0])
    if is_ordered(bet_type):
        return ORDERED_SEP.join(str(s) for s in selection)
    return UNORDERED_SEP.join(str(s) for s in sorted(selection))


def parse_selection(bet_type: str, raw_key: str) -> Optional[tuple[int, ...]]:
    """Parse an odds-table key into a selection tuple.

    Returns None when the key does not describe a valid selection for the
    type (wrong member count, non-numeric members, repeated entrants).
    """
    size = selection_size(bet_type)
    k = str(raw_key).strip()
    if not k:
        return None

    if size == 1:
        parts = [k]
    elif is_ordered(bet_type):
        parts = _ORDERED_VARIANTS.split(k)
    else:
        parts = _UNORDERED_VARIANTS.split(k)

    if len(parts) != size:
        return None
    try:
        selection = tuple(int(p) for p in parts)
    except ValueError:
        return None
    if len(set(selection)) != size:
        return None
    if not is_ordered(bet_type) and size > 1:
        selection = tuple(sorted(selection))
    return selection
