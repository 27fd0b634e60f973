from __future__ import annotations

import os
from dataclasses import dataclass

from src.domain.models import CostParameters, GeoPoint, WalkingOptions


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_optional_float(name: str) -> float | None:
    raw = (os.getenv(name) or "").strip()
    if not raw:
        return None
    return _env_float(name, 0.0)


@dataclass(frozen=True, slots=True)
class EngineSettings:
    """Runtime configuration for the engine and its map source.

    Env vars:
      - ROADREACH_WALK_SPEED_MPS (default 1.4)
      - ROADREACH_ALLOW_SHOULDERS (default true)
      - ROADREACH_BIKE_SPEED_MPS (default 4.5)
      - ROADREACH_UNPROTECTED_TURN_PENALTY_S (default 10)
      - ROADREACH_ACCESS_PENALTY_S (default 300)
      - ROADREACH_UPHILL_PENALTY_PER_PERCENT (default 0.1)
      - ROADREACH_MAX_SNAP_DIST_M: max distance when snapping lat/lon to a node (default 500)
      - MAP_CENTER_LAT / MAP_CENTER_LON: center of the area to load
      - MAP_DIST_M: radius of the area to load (default 3000)
      - OSM_NETWORK_TYPE: OSMnx network type (default 'all')
    """

    params: CostParameters
    walking: WalkingOptions
    max_snap_dist_m: float
    map_center: GeoPoint | None
    map_dist_m: int
    network_type: str

    @staticmethod
    def from_env() -> "EngineSettings":
        params = CostParameters(
            bike_speed_mps=_env_float("ROADREACH_BIKE_SPEED_MPS", 4.5),
            unprotected_turn_penalty_s=_env_float(
                "ROADREACH_UNPROTECTED_TURN_PENALTY_S", 10.0
            ),
            access_restriction_penalty_s=_env_float(
                "ROADREACH_ACCESS_PENALTY_S", 300.0
            ),
            uphill_penalty_per_percent=_env_float(
                "ROADREACH_UPHILL_PENALTY_PER_PERCENT", 0.1
            ),
        )
        walking = WalkingOptions(
            walking_speed_mps=_env_float("ROADREACH_WALK_SPEED_MPS", 1.4),
            allow_shoulders=_env_bool("ROADREACH_ALLOW_SHOULDERS", True),
        )

        lat = _env_optional_float("MAP_CENTER_LAT")
        lon = _env_optional_float("MAP_CENTER_LON")
        center = GeoPoint(lat=lat, lon=lon) if lat is not None and lon is not None else None

        return EngineSettings(
            params=params,
            walking=walking,
            max_snap_dist_m=_env_float("ROADREACH_MAX_SNAP_DIST_M", 500.0),
            map_center=center,
            map_dist_m=int(_env_float("MAP_DIST_M", 3000.0)),
            network_type=(os.getenv("OSM_NETWORK_TYPE") or "all").strip() or "all",
        )
