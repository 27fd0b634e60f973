from __future__ import annotations

from dataclasses import dataclass

from .graph import BuildingId, NodeId, SegmentId


@dataclass(frozen=True, slots=True)
class SegmentPosition:
    segment_id: SegmentId
    dist_along_m: float = 0.0


@dataclass(frozen=True, slots=True)
class BuildingSpot:
    building_id: BuildingId


@dataclass(frozen=True, slots=True)
class NodeSpot:
    """An intersection, e.g. a border where trips enter the map."""

    node_id: NodeId


Spot = SegmentPosition | BuildingSpot | NodeSpot
