from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable

from src.domain.exceptions import GraphConstructionError

from .geo import GeoPoint
from .travel import AccessRestriction, RoadCategory, TurnControl

NodeId = int
SegmentId = int
BuildingId = int


@dataclass(frozen=True, slots=True)
class Node:
    id: NodeId
    location: GeoPoint | None = None


@dataclass(frozen=True, slots=True)
class Segment:
    """A directed traversable unit between two nodes.

    Two-way roads are represented as two segments, one per direction.
    """

    id: SegmentId
    src: NodeId
    dst: NodeId
    length_m: float
    category: RoadCategory
    elevation_delta_m: float = 0.0
    restrictions: frozenset[AccessRestriction] = frozenset()
    speed_limit_mps: float | None = None
    name: str | None = None

    @property
    def grade(self) -> float:
        """Rise over run; 0 for zero-length segments."""

        if self.length_m <= 0.0:
            return 0.0
        return self.elevation_delta_m / self.length_m

    def has(self, restriction: AccessRestriction) -> bool:
        return restriction in self.restrictions


@dataclass(frozen=True, slots=True)
class Movement:
    """A turn from one segment into another at their shared node."""

    from_segment: SegmentId
    to_segment: SegmentId
    control: TurnControl = TurnControl.PROTECTED


@dataclass(frozen=True, slots=True)
class Building:
    id: BuildingId
    segment_id: SegmentId
    dist_along_m: float
    name: str | None = None


@dataclass(frozen=True, slots=True)
class RoadGraph:
    """Read-only road network.

    Only built through RoadGraphBuilder, which validates references and sorts
    everything by id so iteration order is stable. Never mutated afterwards:
    edits go through RoadGraphBuilder.from_graph() and produce a new instance.
    """

    nodes: dict[NodeId, Node]
    segments: dict[SegmentId, Segment]
    movements: tuple[Movement, ...]
    buildings: dict[BuildingId, Building]

    movements_from: dict[SegmentId, tuple[Movement, ...]] = field(repr=False)
    segments_leaving: dict[NodeId, tuple[SegmentId, ...]] = field(repr=False)
    segments_touching: dict[NodeId, tuple[SegmentId, ...]] = field(repr=False)
    buildings_on: dict[SegmentId, tuple[Building, ...]] = field(repr=False)

    @staticmethod
    def empty() -> "RoadGraph":
        return RoadGraphBuilder().build()

    def __len__(self) -> int:
        return len(self.nodes)


class RoadGraphBuilder:
    """Collects map data and validates it into a RoadGraph."""

    def __init__(self) -> None:
        self._nodes: dict[NodeId, Node] = {}
        self._segments: dict[SegmentId, Segment] = {}
        self._movements: dict[tuple[SegmentId, SegmentId], Movement] = {}
        self._buildings: dict[BuildingId, Building] = {}

    @classmethod
    def from_graph(cls, graph: RoadGraph) -> "RoadGraphBuilder":
        builder = cls()
        builder._nodes = dict(graph.nodes)
        builder._segments = dict(graph.segments)
        builder._movements = {(m.from_segment, m.to_segment): m for m in graph.movements}
        builder._buildings = dict(graph.buildings)
        return builder

    def add_node(self, node_id: NodeId, location: GeoPoint | None = None) -> Node:
        if node_id in self._nodes:
            raise GraphConstructionError(f"Duplicate node id: {node_id}")
        node = Node(id=node_id, location=location)
        self._nodes[node_id] = node
        return node

    def add_segment(self, segment: Segment) -> Segment:
        if segment.id in self._segments:
            raise GraphConstructionError(f"Duplicate segment id: {segment.id}")
        self._segments[segment.id] = segment
        return segment

    def replace_segment(self, segment: Segment) -> Segment:
        if segment.id not in self._segments:
            raise GraphConstructionError(f"Unknown segment id: {segment.id}")
        self._segments[segment.id] = segment
        return segment

    def add_movement(
        self,
        from_segment: SegmentId,
        to_segment: SegmentId,
        control: TurnControl = TurnControl.PROTECTED,
    ) -> Movement:
        key = (from_segment, to_segment)
        if key in self._movements:
            raise GraphConstructionError(
                f"Duplicate movement: {from_segment} -> {to_segment}"
            )
        movement = Movement(
            from_segment=from_segment, to_segment=to_segment, control=control
        )
        self._movements[key] = movement
        return movement

    def remove_movement(self, from_segment: SegmentId, to_segment: SegmentId) -> None:
        self._movements.pop((from_segment, to_segment), None)

    def add_building(self, building: Building) -> Building:
        if building.id in self._buildings:
            raise GraphConstructionError(f"Duplicate building id: {building.id}")
        self._buildings[building.id] = building
        return building

    def add_movements(self, pairs: Iterable[tuple[SegmentId, SegmentId]]) -> None:
        for a, b in pairs:
            self.add_movement(a, b)

    def build(self) -> RoadGraph:
        for seg in self._segments.values():
            self._check_segment(seg)
        for m in self._movements.values():
            self._check_movement(m)
        for b in self._buildings.values():
            self._check_building(b)

        nodes = {nid: self._nodes[nid] for nid in sorted(self._nodes)}
        segments = {sid: self._segments[sid] for sid in sorted(self._segments)}
        movements = tuple(self._movements[k] for k in sorted(self._movements))
        buildings = {bid: self._buildings[bid] for bid in sorted(self._buildings)}

        movements_from: dict[SegmentId, list[Movement]] = {}
        for m in movements:
            movements_from.setdefault(m.from_segment, []).append(m)

        leaving: dict[NodeId, list[SegmentId]] = {}
        touching: dict[NodeId, list[SegmentId]] = {}
        for seg in segments.values():
            leaving.setdefault(seg.src, []).append(seg.id)
            touching.setdefault(seg.src, []).append(seg.id)
            if seg.dst != seg.src:
                touching.setdefault(seg.dst, []).append(seg.id)

        buildings_on: dict[SegmentId, list[Building]] = {}
        for b in buildings.values():
            buildings_on.setdefault(b.segment_id, []).append(b)

        return RoadGraph(
            nodes=nodes,
            segments=segments,
            movements=movements,
            buildings=buildings,
            movements_from={k: tuple(v) for k, v in movements_from.items()},
            segments_leaving={k: tuple(v) for k, v in leaving.items()},
            segments_touching={k: tuple(v) for k, v in touching.items()},
            buildings_on={k: tuple(v) for k, v in buildings_on.items()},
        )

    def _check_segment(self, seg: Segment) -> None:
        for end in (seg.src, seg.dst):
            if end not in self._nodes:
                raise GraphConstructionError(
                    f"Segment {seg.id} references missing node {end}"
                )
        if not math.isfinite(seg.length_m) or seg.length_m < 0.0:
            raise GraphConstructionError(
                f"Segment {seg.id} has invalid length {seg.length_m!r}"
            )
        if not math.isfinite(seg.elevation_delta_m):
            raise GraphConstructionError(
                f"Segment {seg.id} has invalid elevation delta {seg.elevation_delta_m!r}"
            )
        if seg.speed_limit_mps is not None and not seg.speed_limit_mps > 0.0:
            raise GraphConstructionError(
                f"Segment {seg.id} has invalid speed limit {seg.speed_limit_mps!r}"
            )

    def _check_movement(self, m: Movement) -> None:
        src = self._segments.get(m.from_segment)
        dst = self._segments.get(m.to_segment)
        if src is None or dst is None:
            missing = m.from_segment if src is None else m.to_segment
            raise GraphConstructionError(
                f"Movement {m.from_segment} -> {m.to_segment} references "
                f"missing segment {missing}"
            )
        if src.dst != dst.src:
            raise GraphConstructionError(
                f"Movement {m.from_segment} -> {m.to_segment} does not share a node "
                f"({src.dst} != {dst.src})"
            )

    def _check_building(self, b: Building) -> None:
        seg = self._segments.get(b.segment_id)
        if seg is None:
            raise GraphConstructionError(
                f"Building {b.id} references missing segment {b.segment_id}"
            )
        if not (0.0 <= b.dist_along_m <= seg.length_m):
            raise GraphConstructionError(
                f"Building {b.id} is off its segment "
                f"({b.dist_along_m} not in [0, {seg.length_m}])"
            )
