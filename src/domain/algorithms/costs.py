from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Iterator, Mapping

from src.domain.models import (
    AccessRestriction,
    CostParameters,
    Movement,
    RoadCategory,
    RoadGraph,
    Segment,
    TravelMode,
    TurnControl,
    WalkingOptions,
)
from src.domain.models.travel import ZONE_RESTRICTIONS

_NOT_DRIVABLE = frozenset(
    {RoadCategory.CYCLEWAY, RoadCategory.TRAIL, RoadCategory.SIDEWALK}
)
_NOT_BIKEABLE = frozenset({RoadCategory.MOTORWAY, RoadCategory.SIDEWALK})
_FOOTPATHS = frozenset({RoadCategory.SIDEWALK, RoadCategory.TRAIL})


def _fraction(segment: Segment, dist_along_m: float) -> float:
    if segment.length_m <= 0.0:
        return 0.0
    return min(1.0, max(0.0, dist_along_m / segment.length_m))


def _is_turn(graph: RoadGraph, segment: Segment, movement: Movement) -> bool:
    # Only turns recorded in the graph connect two segments.
    if movement.from_segment != segment.id:
        return False
    return any(
        m.to_segment == movement.to_segment
        for m in graph.movements_from.get(segment.id, ())
    )


class ModeProfile(ABC):
    """Legality and cost rules of one travel mode.

    Each profile also defines the vertices of its legal subgraph, so the
    component finder and the reachability search never branch on mode.
    """

    mode: TravelMode

    @abstractmethod
    def allows_segment(self, segment: Segment) -> bool:
        """Whether the mode may travel along the segment at all."""

    @abstractmethod
    def traversal_cost(self, segment: Segment) -> float | None:
        """Seconds to cover the whole segment, or None if forbidden."""

    @abstractmethod
    def cost(
        self, graph: RoadGraph, segment: Segment, movement: Movement
    ) -> float | None:
        """Seconds to cross `segment` and then take `movement` out of it."""

    @abstractmethod
    def vertices(self, graph: RoadGraph) -> Iterator[int]:
        """Vertices of the legal subgraph, in ascending order."""

    @abstractmethod
    def successors(
        self, graph: RoadGraph, vertex: int
    ) -> Iterator[tuple[int, float]]:
        """Legal (vertex, step cost) pairs reachable in one step."""

    @abstractmethod
    def position_seeds(
        self, graph: RoadGraph, segment: Segment, dist_along_m: float
    ) -> dict[int, float]:
        """Initial frontier for a start at a position along a segment."""

    @abstractmethod
    def node_seeds(self, graph: RoadGraph, node_id: int) -> dict[int, float]:
        """Initial frontier for a start at an intersection."""

    @abstractmethod
    def position_cost(
        self, settled: Mapping[int, float], segment: Segment, dist_along_m: float
    ) -> float | None:
        """Cost of a position, read off the settled vertices."""

    @abstractmethod
    def direct_cost(
        self, segment: Segment, from_dist_m: float, to_dist_m: float
    ) -> float | None:
        """Cost of moving along a single segment without leaving it."""


@dataclass(frozen=True, slots=True)
class VehicleProfile(ModeProfile):
    """Biking and driving.

    Vertices are segment ids; the cost of a vertex is the cost of arriving at
    the start of that segment.
    """

    mode: TravelMode
    params: CostParameters = field(default_factory=CostParameters)

    def __post_init__(self) -> None:
        if not self.mode.is_vehicle:
            raise ValueError(f"Not a vehicle mode: {self.mode.value}")

    def allows_segment(self, segment: Segment) -> bool:
        if self.mode is TravelMode.DRIVE:
            return segment.category not in _NOT_DRIVABLE and not segment.has(
                AccessRestriction.NO_MOTOR_VEHICLES
            )
        return segment.category not in _NOT_BIKEABLE and not segment.has(
            AccessRestriction.NO_BIKES
        )

    def ideal_speed_mps(self, segment: Segment) -> float:
        driving = segment.speed_limit_mps or self.params.driving_speeds_mps[
            segment.category
        ]
        if self.mode is TravelMode.DRIVE:
            return driving
        return min(self.params.bike_speed_mps, driving)

    def uphill_penalty(self, segment: Segment, base_s: float) -> float:
        if self.mode is not TravelMode.BIKE:
            return 0.0
        grade_percent = segment.grade * 100.0
        if grade_percent <= 0.0:
            return 0.0
        return base_s * self.params.uphill_penalty_per_percent * grade_percent

    def traversal_cost(self, segment: Segment) -> float | None:
        if not self.allows_segment(segment):
            return None
        base = segment.length_m / self.ideal_speed_mps(segment)
        return base + self.uphill_penalty(segment, base)

    def movement_penalty(self, graph: RoadGraph, movement: Movement) -> float | None:
        """Turn and access penalties of a movement; None if it is forbidden."""

        src = graph.segments.get(movement.from_segment)
        dst = graph.segments.get(movement.to_segment)
        if src is None or dst is None or not self.allows_segment(dst):
            return None

        penalty = 0.0
        if movement.control is TurnControl.UNPROTECTED:
            penalty += self.params.unprotected_turn_penalty_s
        if dst.restrictions & ZONE_RESTRICTIONS and not (
            src.restrictions & ZONE_RESTRICTIONS
        ):
            penalty += self.params.access_restriction_penalty_s
        return penalty

    def cost(
        self, graph: RoadGraph, segment: Segment, movement: Movement
    ) -> float | None:
        if not _is_turn(graph, segment, movement):
            return None
        traverse = self.traversal_cost(segment)
        if traverse is None:
            return None
        penalty = self.movement_penalty(graph, movement)
        if penalty is None:
            return None
        return traverse + penalty

    def vertices(self, graph: RoadGraph) -> Iterator[int]:
        for segment in graph.segments.values():
            if self.allows_segment(segment):
                yield segment.id

    def successors(
        self, graph: RoadGraph, vertex: int
    ) -> Iterator[tuple[int, float]]:
        segment = graph.segments[vertex]
        for movement in graph.movements_from.get(vertex, ()):
            step = self.cost(graph, segment, movement)
            if step is not None:
                yield movement.to_segment, step

    def position_seeds(
        self, graph: RoadGraph, segment: Segment, dist_along_m: float
    ) -> dict[int, float]:
        traverse = self.traversal_cost(segment)
        if traverse is None:
            return {}
        f = _fraction(segment, dist_along_m)
        if f == 0.0:
            return {segment.id: 0.0}

        # Mid-segment: the rest of this segment plus the turn out of it.
        remaining = traverse * (1.0 - f)
        seeds: dict[int, float] = {}
        for movement in graph.movements_from.get(segment.id, ()):
            penalty = self.movement_penalty(graph, movement)
            if penalty is None:
                continue
            cost = remaining + penalty
            if cost < seeds.get(movement.to_segment, float("inf")):
                seeds[movement.to_segment] = cost
        return seeds

    def node_seeds(self, graph: RoadGraph, node_id: int) -> dict[int, float]:
        return {
            sid: 0.0
            for sid in graph.segments_leaving.get(node_id, ())
            if self.allows_segment(graph.segments[sid])
        }

    def position_cost(
        self, settled: Mapping[int, float], segment: Segment, dist_along_m: float
    ) -> float | None:
        start = settled.get(segment.id)
        traverse = self.traversal_cost(segment)
        if start is None or traverse is None:
            return None
        return start + traverse * _fraction(segment, dist_along_m)

    def direct_cost(
        self, segment: Segment, from_dist_m: float, to_dist_m: float
    ) -> float | None:
        traverse = self.traversal_cost(segment)
        if traverse is None or to_dist_m < from_dist_m:
            return None
        return traverse * (
            _fraction(segment, to_dist_m) - _fraction(segment, from_dist_m)
        )


@dataclass(frozen=True, slots=True)
class WalkingProfile(ModeProfile):
    """Walking over the pedestrian network.

    Vertices are node ids. Every walkable segment can be walked in both
    directions, and turn control is ignored: pedestrians cross wherever.
    """

    options: WalkingOptions = field(default_factory=WalkingOptions)
    mode: TravelMode = TravelMode.WALK

    def allows_segment(self, segment: Segment) -> bool:
        if segment.category is RoadCategory.MOTORWAY:
            return False
        if segment.has(AccessRestriction.NO_PEDESTRIANS):
            return False
        return self.options.allow_shoulders or segment.category in _FOOTPATHS

    def traversal_cost(self, segment: Segment) -> float | None:
        if not self.allows_segment(segment):
            return None
        return segment.length_m / self.options.walking_speed_mps

    def cost(
        self, graph: RoadGraph, segment: Segment, movement: Movement
    ) -> float | None:
        if not _is_turn(graph, segment, movement):
            return None
        nxt = graph.segments.get(movement.to_segment)
        if nxt is None or not self.allows_segment(nxt):
            return None
        return self.traversal_cost(segment)

    def vertices(self, graph: RoadGraph) -> Iterator[int]:
        for node_id in sorted(graph.segments_touching):
            touching = graph.segments_touching[node_id]
            if any(self.allows_segment(graph.segments[sid]) for sid in touching):
                yield node_id

    def successors(
        self, graph: RoadGraph, vertex: int
    ) -> Iterator[tuple[int, float]]:
        for sid in graph.segments_touching.get(vertex, ()):
            segment = graph.segments[sid]
            step = self.traversal_cost(segment)
            if step is None:
                continue
            other = segment.dst if segment.src == vertex else segment.src
            yield other, step

    def position_seeds(
        self, graph: RoadGraph, segment: Segment, dist_along_m: float
    ) -> dict[int, float]:
        traverse = self.traversal_cost(segment)
        if traverse is None:
            return {}
        f = _fraction(segment, dist_along_m)
        seeds = {segment.src: traverse * f}
        back = traverse * (1.0 - f)
        if back < seeds.get(segment.dst, float("inf")):
            seeds[segment.dst] = back
        return seeds

    def node_seeds(self, graph: RoadGraph, node_id: int) -> dict[int, float]:
        touching = graph.segments_touching.get(node_id, ())
        if any(self.allows_segment(graph.segments[sid]) for sid in touching):
            return {node_id: 0.0}
        return {}

    def position_cost(
        self, settled: Mapping[int, float], segment: Segment, dist_along_m: float
    ) -> float | None:
        traverse = self.traversal_cost(segment)
        if traverse is None:
            return None
        f = _fraction(segment, dist_along_m)
        options = []
        if segment.src in settled:
            options.append(settled[segment.src] + traverse * f)
        if segment.dst in settled:
            options.append(settled[segment.dst] + traverse * (1.0 - f))
        return min(options) if options else None

    def direct_cost(
        self, segment: Segment, from_dist_m: float, to_dist_m: float
    ) -> float | None:
        traverse = self.traversal_cost(segment)
        if traverse is None:
            return None
        return traverse * abs(
            _fraction(segment, to_dist_m) - _fraction(segment, from_dist_m)
        )


def profile_for(
    mode: TravelMode,
    *,
    params: CostParameters | None = None,
    options: WalkingOptions | None = None,
) -> ModeProfile:
    if mode is TravelMode.WALK:
        return WalkingProfile(options=options or WalkingOptions())
    return VehicleProfile(mode=mode, params=params or CostParameters())
