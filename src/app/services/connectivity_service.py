from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Iterable

from src.app.ports.output import IGraphRepository
from src.domain.algorithms import connectivity
from src.domain.algorithms.components import ComponentSummary
from src.domain.exceptions import InvalidSpot
from src.domain.models import (
    BuildingId,
    CostParameters,
    GeoPoint,
    NodeSpot,
    RoadGraph,
    SegmentId,
    Spot,
    TravelMode,
    WalkingOptions,
)

from .graph_session import GraphSession
from .query_helpers import spot_for_point

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ComponentReport:
    mode: TravelMode
    main: frozenset[int]
    other: frozenset[int]
    summary: ComponentSummary


@dataclass(slots=True)
class ConnectivityService:
    """Application service for connectivity diagnostics and reachability.

    Every query runs against a snapshot of the session's graph, so a reload
    in another thread never affects a query already in flight.
    """

    graph_repository: IGraphRepository
    params: CostParameters = field(default_factory=CostParameters)
    walking_options: WalkingOptions = field(default_factory=WalkingOptions)
    max_snap_dist_m: float | None = 500.0

    _session: GraphSession | None = None
    # Serialises the first load against reloads.
    _lock: threading.Lock = field(default_factory=threading.Lock)

    @property
    def session(self) -> GraphSession:
        session = self._session
        if session is not None:
            return session
        with self._lock:
            if self._session is None:
                graph = self.graph_repository.load_graph()
                self._log_loaded(graph)
                self._session = GraphSession(graph)
            return self._session

    def reload(self) -> RoadGraph:
        with self._lock:
            graph = self.graph_repository.reload_graph()
            self._log_loaded(graph)
            if self._session is None:
                self._session = GraphSession(graph)
            else:
                self._session.replace(graph)
            return graph

    def components(self, mode: TravelMode) -> ComponentReport:
        graph = self.session.current()
        main, other = connectivity.find_components(
            graph, mode, params=self.params, options=self.walking_options
        )
        summary = connectivity.summarize_components(
            graph, mode, params=self.params, options=self.walking_options
        )
        if summary.disconnected_count:
            logger.info(
                "%s network has %d components; %d of %d vertices disconnected "
                "(main ratio %.3f)",
                mode.value,
                summary.component_count,
                summary.disconnected_count,
                summary.vertex_count,
                summary.main_ratio,
            )
        return ComponentReport(
            mode=mode,
            main=frozenset(main),
            other=frozenset(other),
            summary=summary,
        )

    def spot_for_point(self, point: GeoPoint) -> NodeSpot:
        return spot_for_point(
            self.session.current(), point, max_dist_m=self.max_snap_dist_m
        )

    def vehicle_costs(
        self, *, source: Spot, mode: TravelMode, ceiling_s: float
    ) -> dict[BuildingId, float]:
        return connectivity.all_vehicle_costs_from(
            self.session.current(), source, mode, ceiling_s, params=self.params
        )

    def walking_costs(
        self, *, sources: Iterable[BuildingId], ceiling_s: float
    ) -> dict[BuildingId, float]:
        return connectivity.all_walking_costs_from(
            self.session.current(),
            sources,
            ceiling_s,
            options=self.walking_options,
        )

    def movement_cost(
        self, *, segment_id: SegmentId, to_segment_id: SegmentId, mode: TravelMode
    ) -> float | None:
        graph = self.session.current()
        segment = graph.segments.get(segment_id)
        if segment is None:
            raise InvalidSpot(f"Unknown segment: {segment_id}")

        movement = next(
            (
                m
                for m in graph.movements_from.get(segment_id, ())
                if m.to_segment == to_segment_id
            ),
            None,
        )
        if movement is None:
            # No connecting turn, so the movement is not possible for any mode.
            return None

        return connectivity.vehicle_cost(
            graph,
            segment,
            movement,
            mode,
            params=self.params,
            options=self.walking_options,
        )

    def _log_loaded(self, graph: RoadGraph) -> None:
        logger.info(
            "Loaded road graph: %d nodes, %d segments, %d movements, %d buildings",
            len(graph.nodes),
            len(graph.segments),
            len(graph.movements),
            len(graph.buildings),
        )
