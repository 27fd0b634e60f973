from .geo import GeoPoint
from .graph import (
    Building,
    BuildingId,
    Movement,
    Node,
    NodeId,
    RoadGraph,
    RoadGraphBuilder,
    Segment,
    SegmentId,
)
from .params import CostParameters, WalkingOptions
from .spot import BuildingSpot, NodeSpot, SegmentPosition, Spot
from .travel import AccessRestriction, RoadCategory, TravelMode, TurnControl

__all__ = [
    "AccessRestriction",
    "Building",
    "BuildingId",
    "BuildingSpot",
    "CostParameters",
    "GeoPoint",
    "Movement",
    "Node",
    "NodeId",
    "NodeSpot",
    "RoadCategory",
    "RoadGraph",
    "RoadGraphBuilder",
    "Segment",
    "SegmentId",
    "SegmentPosition",
    "Spot",
    "TravelMode",
    "TurnControl",
    "WalkingOptions",
]
