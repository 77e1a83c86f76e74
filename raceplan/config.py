"""Engine configuration using Pydantic settings."""

import logging
from functools import lru_cache

from pydantic import BaseModel, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Per-type selection caps for one portfolio
DEFAULT_TYPE_CAPS = {
    "win": 2,
    "place": 2,
    "wide": 3,
    "quinella": 2,
    "exacta": 1,
    "trio": 2,
    "trifecta": 1,
}

# Search pool caps per type: (top by EV, top by probability)
DEFAULT_POOL_CAPS = {
    "win": (25, 10),
    "place": (25, 10),
    "wide": (60, 15),
    "quinella": (60, 15),
    "trio": (120, 20),
    "trifecta": (80, 10),
    "exacta": (60, 10),
}


class EngineSettings(BaseSettings):
    """Engine tunables loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RACEPLAN_",
        extra="ignore",
    )

    log_level: str = "INFO"

    # Simulation
    mc_iterations: int = 4000

    # Pace mixture
    pace_shift: float = 0.6
    pace_softmax_scale: float = 1.2
    pace_normal_bias: float = 0.8

    # Candidate classification
    high_variance_trio_odds: float = 80.0

    # Selection
    beam_width: int = 200
    expand_cap: int = 120
    min_ev_capital_preservation: float = -0.03
    min_ev_balanced: float = 0.0
    min_ev_high_variance: float = 0.0
    hedge_ev_floor: float = -0.06  # axis-excluding picks may run slightly negative
    longshot_odds: float = 50.0
    type_caps: dict[str, int] = dict(DEFAULT_TYPE_CAPS)
    pool_caps: dict[str, tuple[int, int]] = dict(DEFAULT_POOL_CAPS)

    def min_ev_for(self, profile: str) -> float:
        """Minimum EV a candidate needs under the given risk profile."""
        thresholds = {
            "capital_preservation": self.min_ev_capital_preservation,
            "balanced": self.min_ev_balanced,
            "high_variance": self.min_ev_high_variance,
        }
        if profile not in thresholds:
            raise ValueError(f"Unknown profile: {profile!r}")
        return thresholds[profile]


class StakeSettings(BaseModel):
    """Per-call wager settings (budget in minor currency units)."""

    budget: int
    max_bets: int = 7
    dream_fraction: float = 0.03
    min_unit: int = 100

    @model_validator(mode="after")
    def _check_limits(self) -> "StakeSettings":
        if self.min_unit < 1:
            raise ValueError(f"min_unit must be >= 1, got {self.min_unit}")
        if self.budget < self.min_unit:
            raise ValueError(
                f"budget {self.budget} is smaller than min_unit {self.min_unit}"
            )
        if self.max_bets < 1:
            raise ValueError(f"max_bets must be >= 1, got {self.max_bets}")
        if not 0.0 <= self.dream_fraction <= 1.0:
            raise ValueError(
                f"dream_fraction must be within [0, 1], got {self.dream_fraction}"
            )
        return self

    @property
    def effective_budget(self) -> int:
        """Budget floored to the minimum unit."""
        return (self.budget // self.min_unit) * self.min_unit

    @property
    def dream_budget(self) -> int:
        """High-variance sub-budget, floored to the minimum unit."""
        raw = self.effective_budget * self.dream_fraction
        return min(int(raw // self.min_unit) * self.min_unit, self.effective_budget)

    @property
    def effective_max_bets(self) -> int:
        """Max bets limited by how many unit stakes the budget can fund."""
        return max(1, min(self.max_bets, self.effective_budget // self.min_unit))


@lru_cache
def get_settings() -> EngineSettings:
    """Get cached settings instance."""
    return EngineSettings()


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for scripts (the library never does this itself)."""
    level = level or get_settings().log_level
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
