from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field

from src.adapters.maps.networkx_road_graph import road_graph_from_networkx
from src.app.ports.output import IGraphRepository, IMapProvider
from src.domain.models import GeoPoint, RoadGraph

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class MapGraphRepository(IGraphRepository):
    """Graph repository that builds the road graph from a map provider.

    The street graph and the buildings around it are fetched once around
    `center` and converted into a RoadGraph; later calls return the cached
    result until `reload_graph()`.
    """

    map_provider: IMapProvider
    center: GeoPoint | None = None
    dist_m: int = 3000

    _graph: RoadGraph | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock)

    def load_graph(self) -> RoadGraph:
        with self._lock:
            if self._graph is None:
                self._graph = self._build()
            return self._graph

    def reload_graph(self) -> RoadGraph:
        with self._lock:
            self._graph = self._build()
            return self._graph

    def _build(self) -> RoadGraph:
        street_graph = self.map_provider.get_street_graph(
            center=self.center, dist_m=self.dist_m
        )
        buildings = self.map_provider.get_buildings(
            center=self.center, dist_m=self.dist_m
        )
        logger.info(
            "Converting street graph with %d nodes, %d edges and %d buildings",
            street_graph.number_of_nodes(),
            street_graph.number_of_edges(),
            len(buildings),
        )
        return road_graph_from_networkx(street_graph, buildings=buildings)
