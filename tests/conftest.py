"""Shared test fixtures for raceplan."""

import pytest

from raceplan.config import EngineSettings, StakeSettings
from raceplan.keys import EXACTA, PLACE, QUINELLA, TRIFECTA, TRIO, WIDE, WIN
from raceplan.simulator import StrengthVector


@pytest.fixture
def engine_settings() -> EngineSettings:
    """Default engine tunables, isolated from any local .env file."""
    return EngineSettings(_env_file=None)


@pytest.fixture
def stake_settings() -> StakeSettings:
    """Standard 20,000 budget in 100 units, 7 bets, 3% high-variance cap."""
    return StakeSettings(budget=20000, max_bets=7, dream_fraction=0.03, min_unit=100)


@pytest.fixture
def eight_runner_strengths() -> StrengthVector:
    """Eight-entrant field, total strength 19."""
    return StrengthVector(
        entrant_ids=(1, 2, 3, 4, 5, 6, 7, 8),
        strengths=(5.0, 4.0, 3.0, 2.0, 2.0, 1.0, 1.0, 1.0),
    )


@pytest.fixture
def eight_runner_odds() -> dict:
    """Odds tables for the eight-entrant field, priced roughly 30% over fair."""
    return {
        WIN: {
            "1": 5.0, "2": 6.2, "3": 8.2, "4": 12.4,
            "5": 12.4, "6": 24.7, "7": 24.7, "8": 24.7,
        },
        PLACE: {
            "1": [1.6, 2.0], "2": [1.8, 2.4], "3": [2.2, 3.0], "4": [3.0, 4.2],
            "5": {"min": 3.0, "max": 4.2}, "6": [5.0, 7.5],
        },
        WIDE: {"1-2": 2.8, "1-3": 3.4, "2-3": 4.4, "2-4": 6.5, "3-4": 8.0},
        QUINELLA: {"1-2": 10.0, "1-3": 13.0, "2-3": 17.0, "2-4": 24.0},
        EXACTA: {"1>2": 20.0, "2>1": 24.0, "2>3": 36.0},
        TRIO: {"1-2-3": 40.0, "2-3-4": 150.0},
        TRIFECTA: {"1>2>3": 150.0, "2>1>3": 180.0},
    }
