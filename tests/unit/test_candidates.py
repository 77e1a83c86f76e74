"""Tests for wager candidate construction."""

import pytest

from raceplan.betting.candidates import (
    build_candidates,
    expected_value,
    find_axis,
    resolve_odds,
)
from raceplan.config import EngineSettings
from raceplan.keys import COMBO_TYPES, EXACTA, PLACE, QUINELLA, TRIFECTA, TRIO, WIN
from raceplan.simulator import FinishProbs, RaceOutcomes


# ──────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────

def _outcomes(win: list[float] | None = None) -> RaceOutcomes:
    """Five-entrant outcome set with a handful of combination keys."""
    win = win or [0.40, 0.25, 0.15, 0.12, 0.08]
    combos = {t: {} for t in COMBO_TYPES}
    combos[QUINELLA] = {"1-2": 0.20, "2-3": 0.05}
    combos[TRIO] = {"1-2-3": 0.10, "2-3-4": 0.01}
    combos[EXACTA] = {"1>2": 0.12}
    combos[TRIFECTA] = {"1>2>3": 0.05}
    return RaceOutcomes(
        entrant_ids=(1, 2, 3, 4, 5),
        finish=FinishProbs(
            win=win,
            top2=[0.65, 0.50, 0.35, 0.30, 0.20],
            top3=[0.80, 0.70, 0.55, 0.50, 0.45],
        ),
        combos=combos,
        place_cutoff=2,
        iterations=10000,
    )


def _settings(**overrides) -> EngineSettings:
    return EngineSettings(_env_file=None, **overrides)


def _by_id(candidates) -> dict:
    return {c.id: c for c in candidates}


# ──────────────────────────────────────────────
# Expected value and odds
# ──────────────────────────────────────────────

class TestExpectedValue:
    def test_basic(self):
        assert expected_value(0.5, 3.0) == pytest.approx(0.5)
        assert expected_value(0.25, 3.0) == pytest.approx(-0.25)

    @pytest.mark.parametrize("prob,odds", [(None, 3.0), (0.5, None), (0.5, 0.0), (-0.1, 2.0)])
    def test_unknown_inputs_give_none_not_zero(self, prob, odds):
        assert expected_value(prob, odds) is None


class TestResolveOdds:
    def test_number(self):
        assert resolve_odds(WIN, 4) == 4.0

    def test_string_with_currency(self):
        assert resolve_odds(WIN, "$4.50") == 4.5

    def test_place_range_uses_lower_bound(self):
        assert resolve_odds(PLACE, [1.2, 1.8]) == 1.2
        assert resolve_odds(PLACE, {"min": 1.3, "max": 2.0}) == 1.3

    def test_range_rejected_for_other_types(self):
        assert resolve_odds(WIN, [3.0, 4.0]) is None
        assert resolve_odds(TRIO, {"min": 30, "max": 40}) is None

    def test_mapping_value(self):
        assert resolve_odds(QUINELLA, {"value": 12.5}) == 12.5

    @pytest.mark.parametrize("entry", [None, True, "n/a", []])
    def test_unusable_entries(self, entry):
        assert resolve_odds(WIN, entry) is None

    @pytest.mark.parametrize("entry", [float("nan"), float("inf"), "nan", "inf", "-inf"])
    def test_non_finite_prices_rejected(self, entry):
        assert resolve_odds(WIN, entry) is None
        assert resolve_odds(PLACE, [entry, 2.0]) is None


# ──────────────────────────────────────────────
# Axis
# ──────────────────────────────────────────────

class TestFindAxis:
    def test_highest_win_probability(self):
        assert find_axis(_outcomes([0.1, 0.5, 0.2, 0.1, 0.1])) == 2

    def test_ties_take_first_listed(self):
        assert find_axis(_outcomes([0.3, 0.3, 0.2, 0.1, 0.1])) == 1

    def test_no_entrants(self):
        empty = RaceOutcomes((), FinishProbs([], [], []), {}, 1, 1)
        assert find_axis(empty) is None


# ──────────────────────────────────────────────
# Candidate builder
# ──────────────────────────────────────────────

class TestBuildCandidates:
    def test_ev_from_probability_and_odds(self):
        cands = _by_id(build_candidates(_outcomes(), {WIN: {"1": 3.0}}, _settings()))
        assert cands["win:1"].ev == pytest.approx(0.2)
        assert cands["win:1"].probability == pytest.approx(0.4)

    def test_place_uses_cutoff_probability_and_lower_bound(self):
        odds = {PLACE: {"1": [1.2, 1.8], "2": {"min": 1.9, "max": 2.6}}}
        cands = _by_id(build_candidates(_outcomes(), odds, _settings()))
        assert cands["place:1"].odds == 1.2
        assert cands["place:1"].probability == pytest.approx(0.65)
        assert cands["place:2"].ev == pytest.approx(0.5 * 1.9 - 1)

    def test_missing_probability_or_price_dropped(self):
        odds = {
            WIN: {"1": 3.0, "2": 0, "3": None},
            QUINELLA: {"4-5": 30.0, "1-2": 6.0},
            EXACTA: {"2>1": 14.0},
        }
        cands = _by_id(build_candidates(_outcomes(), odds, _settings()))
        assert set(cands) == {"win:1", "quinella:1-2"}

    def test_keys_normalised_and_deduplicated(self):
        odds = {
            QUINELLA: {"2-1": 6.0, "1－2": 7.0},
            EXACTA: {"1→2": 11.0},
            TRIO: {"3-1-2": 12.0},
        }
        cands = build_candidates(_outcomes(), odds, _settings())
        ids = [c.id for c in cands]
        assert ids.count("quinella:1-2") == 1
        assert "exacta:1>2" in ids
        assert "trio:1-2-3" in ids

    def test_unparseable_keys_dropped(self):
        odds = {QUINELLA: {"1-2-3": 8.0, "x-y": 5.0}, TRIO: {"1-2": 9.0}}
        assert build_candidates(_outcomes(), odds, _settings()) == []

    def test_axis_flag(self):
        odds = {WIN: {"1": 3.0, "2": 5.0}, QUINELLA: {"2-3": 25.0}}
        cands = _by_id(build_candidates(_outcomes(), odds, _settings()))
        assert cands["win:1"].includes_axis
        assert not cands["win:2"].includes_axis
        assert not cands["quinella:2-3"].includes_axis

    def test_explicit_axis_overrides(self):
        cands = _by_id(build_candidates(_outcomes(), {WIN: {"1": 3.0, "2": 5.0}}, _settings(), axis=2))
        assert cands["win:2"].includes_axis
        assert not cands["win:1"].includes_axis

    def test_high_variance_classification(self):
        odds = {TRIFECTA: {"1>2>3": 18.0}, TRIO: {"1-2-3": 40.0, "2-3-4": 120.0}}
        cands = _by_id(build_candidates(_outcomes(), odds, _settings()))
        assert cands["trifecta:1>2>3"].is_high_variance
        assert not cands["trio:1-2-3"].is_high_variance
        assert cands["trio:2-3-4"].is_high_variance

    def test_trio_threshold_configurable(self):
        odds = {TRIO: {"1-2-3": 40.0}}
        cands = _by_id(build_candidates(_outcomes(), odds, _settings(high_variance_trio_odds=30)))
        assert cands["trio:1-2-3"].is_high_variance

    def test_no_odds_tables(self):
        assert build_candidates(_outcomes(), {}, _settings()) == []

    def test_non_finite_odds_dropped(self):
        odds = {
            WIN: {"1": float("nan"), "2": "inf", "3": 7.0},
            QUINELLA: {"1-2": float("inf")},
        }
        cands = build_candidates(_outcomes(), odds, _settings())
        assert [c.id for c in cands] == ["win:3"]
