from __future__ import annotations

from typing import Iterable

from src.domain.models import (
    BuildingId,
    BuildingSpot,
    CostParameters,
    Movement,
    RoadGraph,
    Segment,
    Spot,
    TravelMode,
    WalkingOptions,
)

from .components import ComponentSummary, component_summary, find_components as _split
from .costs import profile_for
from .reachability import building_costs
from .reachability import reach as _reach


def find_components(
    graph: RoadGraph,
    mode: TravelMode,
    *,
    params: CostParameters | None = None,
    options: WalkingOptions | None = None,
) -> tuple[set[int], set[int]]:
    """Strongly connected components of the part of the map usable by `mode`.

    Vehicle modes work on segment ids, walking on node ids. Returns (vertices
    in the largest "main" component, all other vertices).
    """

    return _split(graph, profile_for(mode, params=params, options=options))


def summarize_components(
    graph: RoadGraph,
    mode: TravelMode,
    *,
    params: CostParameters | None = None,
    options: WalkingOptions | None = None,
) -> ComponentSummary:
    return component_summary(graph, profile_for(mode, params=params, options=options))


def vehicle_cost(
    graph: RoadGraph,
    segment: Segment,
    movement: Movement,
    mode: TravelMode,
    *,
    params: CostParameters | None = None,
    options: WalkingOptions | None = None,
) -> float | None:
    """Cost in seconds of crossing one segment and one movement.

    Factors in the ideal time to cross, plus penalties for entering an
    access-restricted zone, taking an unprotected turn, or (biking) going up
    a hill. Walking ignores turn control. None means the movement is not
    allowed for this mode, or that the graph has no such turn.
    """

    profile = profile_for(mode, params=params, options=options)
    return profile.cost(graph, segment, movement)


def reach(
    graph: RoadGraph,
    mode: TravelMode,
    sources: Spot | Iterable[Spot],
    ceiling: float,
    *,
    params: CostParameters | None = None,
    options: WalkingOptions | None = None,
) -> dict[int, float]:
    """Cost to every legal-subgraph vertex reachable within `ceiling`."""

    if isinstance(sources, Spot):
        sources = (sources,)
    return _reach(
        graph, profile_for(mode, params=params, options=options), sources, ceiling
    )


def all_vehicle_costs_from(
    graph: RoadGraph,
    source: Spot,
    mode: TravelMode,
    ceiling: float,
    *,
    params: CostParameters | None = None,
) -> dict[BuildingId, float]:
    """Starting from a spot, the cost to every building within `ceiling`.

    Unreachable buildings are left out of the result.
    """

    if not mode.is_vehicle:
        raise ValueError("Use all_walking_costs_from for walking")
    return building_costs(graph, profile_for(mode, params=params), (source,), ceiling)


def all_walking_costs_from(
    graph: RoadGraph,
    sources: Iterable[BuildingId],
    ceiling: float,
    *,
    options: WalkingOptions | None = None,
) -> dict[BuildingId, float]:
    """Starting from some buildings, the walking cost to all others."""

    spots = [BuildingSpot(building_id=b) for b in sorted(set(sources))]
    return building_costs(
        graph, profile_for(TravelMode.WALK, options=options), spots, ceiling
    )
