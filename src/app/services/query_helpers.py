from __future__ import annotations

from src.domain.algorithms.geo_utils import haversine_distance_m
from src.domain.exceptions import InvalidSpot
from src.domain.models import GeoPoint, NodeId, NodeSpot, RoadGraph


def nearest_node(
    graph: RoadGraph, point: GeoPoint, *, max_dist_m: float | None = None
) -> NodeId:
    """Closest georeferenced node to a coordinate.

    Ties keep the lowest node id, since nodes iterate in id order.
    """

    best_node: NodeId | None = None
    best_d = float("inf")

    for node in graph.nodes.values():
        if node.location is None:
            continue
        d = haversine_distance_m(point, node.location)
        if d < best_d:
            best_d = d
            best_node = node.id

    if best_node is None:
        raise InvalidSpot("Graph contains no georeferenced nodes")
    if max_dist_m is not None and best_d > max_dist_m:
        raise InvalidSpot(
            f"No node within {max_dist_m:.0f} m of ({point.lat}, {point.lon})"
        )
    return best_node


def spot_for_point(
    graph: RoadGraph, point: GeoPoint, *, max_dist_m: float | None = None
) -> NodeSpot:
    return NodeSpot(node_id=nearest_node(graph, point, max_dist_m=max_dist_m))
