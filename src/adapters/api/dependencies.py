from __future__ import annotations

from functools import lru_cache

from src.adapters.maps.osmnx_map_adapter import OSMnxMapAdapter
from src.adapters.persistence import MapGraphRepository
from src.adapters.settings import EngineSettings
from src.app.services.connectivity_service import ConnectivityService


@lru_cache(maxsize=1)
def get_connectivity_service() -> ConnectivityService:
    # One service per process so the loaded graph is shared across requests.
    settings = EngineSettings.from_env()
    repository = MapGraphRepository(
        map_provider=OSMnxMapAdapter(network_type=settings.network_type),
        center=settings.map_center,
        dist_m=settings.map_dist_m,
    )
    return ConnectivityService(
        graph_repository=repository,
        params=settings.params,
        walking_options=settings.walking,
        max_snap_dist_m=settings.max_snap_dist_m,
    )
