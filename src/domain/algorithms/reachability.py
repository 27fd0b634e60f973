from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from src.domain.exceptions import InvalidSpot
from src.domain.models import (
    BuildingId,
    BuildingSpot,
    NodeSpot,
    RoadGraph,
    Segment,
    SegmentPosition,
    Spot,
)

from .costs import ModeProfile


@dataclass(frozen=True, slots=True)
class SearchStart:
    """Initial frontier of a search, plus where it started mid-segment."""

    seeds: dict[int, float] = field(default_factory=dict)
    positions: tuple[tuple[Segment, float], ...] = ()


def _resolve_position(
    graph: RoadGraph, spot: SegmentPosition | BuildingSpot
) -> tuple[Segment, float]:
    if isinstance(spot, SegmentPosition):
        segment = graph.segments.get(spot.segment_id)
        if segment is None:
            raise InvalidSpot(f"Unknown segment: {spot.segment_id}")
        if not (0.0 <= spot.dist_along_m <= segment.length_m):
            raise InvalidSpot(
                f"Position {spot.dist_along_m} is off segment {segment.id} "
                f"(length {segment.length_m})"
            )
        return segment, spot.dist_along_m
    if isinstance(spot, BuildingSpot):
        building = graph.buildings.get(spot.building_id)
        if building is None:
            raise InvalidSpot(f"Unknown building: {spot.building_id}")
        return graph.segments[building.segment_id], building.dist_along_m
    raise TypeError(f"Unsupported spot: {spot!r}")


def resolve_sources(
    graph: RoadGraph, profile: ModeProfile, sources: Iterable[Spot]
) -> SearchStart:
    """Turn spots into seed costs; every spot is validated before searching."""

    seeds: dict[int, float] = {}
    positions: list[tuple[Segment, float]] = []

    def _merge(more: Mapping[int, float]) -> None:
        for vertex, cost in more.items():
            if cost < seeds.get(vertex, float("inf")):
                seeds[vertex] = cost

    for spot in sources:
        if isinstance(spot, NodeSpot):
            if spot.node_id not in graph.nodes:
                raise InvalidSpot(f"Unknown node: {spot.node_id}")
            _merge(profile.node_seeds(graph, spot.node_id))
            continue

        segment, dist = _resolve_position(graph, spot)
        if not profile.allows_segment(segment):
            continue
        _merge(profile.position_seeds(graph, segment, dist))
        positions.append((segment, dist))

    return SearchStart(seeds=seeds, positions=tuple(positions))


def bounded_search(
    graph: RoadGraph,
    profile: ModeProfile,
    seeds: Mapping[int, float],
    ceiling: float,
) -> dict[int, float]:
    """Multi-source Dijkstra over the profile's legal subgraph.

    Returns the minimal cost of every vertex reachable within `ceiling`.
    A vertex is settled the first time it is popped; ties pop in vertex id
    order, so the result does not depend on hashing or insertion order.
    """

    best: dict[int, float] = {}
    frontier: list[tuple[float, int]] = []
    for vertex in sorted(seeds):
        cost = seeds[vertex]
        if cost <= ceiling:
            best[vertex] = cost
            frontier.append((cost, vertex))
    heapq.heapify(frontier)

    settled: dict[int, float] = {}
    while frontier:
        cost, vertex = heapq.heappop(frontier)
        if vertex in settled:
            continue
        settled[vertex] = cost

        for nxt, step in profile.successors(graph, vertex):
            if nxt in settled:
                continue
            total = cost + step
            if total > ceiling or total >= best.get(nxt, float("inf")):
                continue
            best[nxt] = total
            heapq.heappush(frontier, (total, nxt))

    return dict(sorted(settled.items()))


def reach(
    graph: RoadGraph,
    profile: ModeProfile,
    sources: Iterable[Spot],
    ceiling: float,
) -> dict[int, float]:
    """Vertex-level costs from the sources, omitting anything over the ceiling."""

    start = resolve_sources(graph, profile, sources)
    return bounded_search(graph, profile, start.seeds, ceiling)


def building_costs(
    graph: RoadGraph,
    profile: ModeProfile,
    sources: Iterable[Spot],
    ceiling: float,
) -> dict[BuildingId, float]:
    """Cost to every building reachable within `ceiling`.

    A building's cost is the cheapest way onto its position: through the
    settled vertices around its segment, or straight along the segment a
    source starts on.
    """

    start = resolve_sources(graph, profile, sources)
    settled = bounded_search(graph, profile, start.seeds, ceiling)

    out: dict[BuildingId, float] = {}

    def _offer(building_id: BuildingId, cost: float | None) -> None:
        if cost is None or cost > ceiling:
            return
        if cost < out.get(building_id, float("inf")):
            out[building_id] = cost

    for segment_id, buildings in graph.buildings_on.items():
        segment = graph.segments[segment_id]
        for building in buildings:
            _offer(
                building.id,
                profile.position_cost(settled, segment, building.dist_along_m),
            )

    for segment, dist in start.positions:
        for building in graph.buildings_on.get(segment.id, ()):
            _offer(
                building.id,
                profile.direct_cost(segment, dist, building.dist_along_m),
            )

    return dict(sorted(out.items()))
