from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Mapping

from .travel import RoadCategory

# Default driving speeds per category (m/s), used when a segment has no limit.
DEFAULT_DRIVING_SPEEDS_MPS: dict[RoadCategory, float] = {
    RoadCategory.MOTORWAY: 29.0,
    RoadCategory.ARTERIAL: 15.6,
    RoadCategory.RESIDENTIAL: 11.2,
    RoadCategory.SERVICE: 6.7,
    RoadCategory.CYCLEWAY: 6.7,
    RoadCategory.TRAIL: 4.5,
    RoadCategory.SIDEWALK: 1.4,
}


def _require_positive(name: str, value: float) -> None:
    if not (math.isfinite(value) and value > 0.0):
        raise ValueError(f"{name} must be positive, got {value!r}")


def _require_non_negative(name: str, value: float) -> None:
    if not (math.isfinite(value) and value >= 0.0):
        raise ValueError(f"{name} must be non-negative, got {value!r}")


@dataclass(frozen=True, slots=True)
class WalkingOptions:
    walking_speed_mps: float = 1.4
    # Walk along roads without a sidewalk (arterial/residential/service/cycleway).
    allow_shoulders: bool = True

    def __post_init__(self) -> None:
        _require_positive("walking_speed_mps", self.walking_speed_mps)


@dataclass(frozen=True, slots=True)
class CostParameters:
    """Tuning knobs for the vehicle cost model. Times are seconds."""

    bike_speed_mps: float = 4.5
    unprotected_turn_penalty_s: float = 10.0
    access_restriction_penalty_s: float = 300.0
    # Extra share of the base time per percent of uphill grade (bikes only).
    uphill_penalty_per_percent: float = 0.1
    driving_speeds_mps: Mapping[RoadCategory, float] = field(
        default_factory=lambda: dict(DEFAULT_DRIVING_SPEEDS_MPS)
    )

    def __post_init__(self) -> None:
        _require_positive("bike_speed_mps", self.bike_speed_mps)
        _require_non_negative(
            "unprotected_turn_penalty_s", self.unprotected_turn_penalty_s
        )
        _require_non_negative(
            "access_restriction_penalty_s", self.access_restriction_penalty_s
        )
        _require_non_negative(
            "uphill_penalty_per_percent", self.uphill_penalty_per_percent
        )
        for category in RoadCategory:
            speed = self.driving_speeds_mps.get(category)
            if speed is None:
                raise ValueError(f"Missing driving speed for {category.value}")
            _require_positive(f"driving speed ({category.value})", speed)
