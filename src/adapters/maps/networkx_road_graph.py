from __future__ import annotations

import math
import re
from typing import Any, Iterable

import networkx as nx

from src.domain.algorithms.geo_utils import haversine_distance_m
from src.domain.exceptions import GraphConstructionError
from src.domain.models import (
    AccessRestriction,
    Building,
    GeoPoint,
    RoadCategory,
    RoadGraph,
    RoadGraphBuilder,
    Segment,
    TurnControl,
)

_HIGHWAY_CATEGORIES: dict[str, RoadCategory] = {
    "motorway": RoadCategory.MOTORWAY,
    "motorway_link": RoadCategory.MOTORWAY,
    "trunk": RoadCategory.MOTORWAY,
    "trunk_link": RoadCategory.MOTORWAY,
    "primary": RoadCategory.ARTERIAL,
    "primary_link": RoadCategory.ARTERIAL,
    "secondary": RoadCategory.ARTERIAL,
    "secondary_link": RoadCategory.ARTERIAL,
    "tertiary": RoadCategory.ARTERIAL,
    "tertiary_link": RoadCategory.ARTERIAL,
    "residential": RoadCategory.RESIDENTIAL,
    "living_street": RoadCategory.RESIDENTIAL,
    "unclassified": RoadCategory.RESIDENTIAL,
    "road": RoadCategory.RESIDENTIAL,
    "service": RoadCategory.SERVICE,
    "cycleway": RoadCategory.CYCLEWAY,
    "path": RoadCategory.TRAIL,
    "track": RoadCategory.TRAIL,
    "bridleway": RoadCategory.TRAIL,
    "footway": RoadCategory.SIDEWALK,
    "pedestrian": RoadCategory.SIDEWALK,
    "steps": RoadCategory.SIDEWALK,
    "corridor": RoadCategory.SIDEWALK,
}

_MAXSPEED = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(mph)?", re.IGNORECASE)


def _first(value: Any) -> Any:
    # Simplified OSMnx graphs store merged tags as lists.
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _tag(data: dict[str, Any], key: str) -> str | None:
    value = _first(data.get(key))
    if value is None:
        return None
    text = str(value).strip().lower()
    return text or None


def _tag_text(data: dict[str, Any], key: str) -> str | None:
    value = _first(data.get(key))
    if value is None:
        return None
    return str(value).strip() or None


def _as_float(value: Any) -> float | None:
    value = _first(value)
    if value is None:
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    return out if math.isfinite(out) else None


def _location(data: dict[str, Any]) -> GeoPoint | None:
    x = _as_float(data.get("x"))
    y = _as_float(data.get("y"))
    if x is None or y is None:
        return None
    return GeoPoint(lat=y, lon=x)


def category_for(data: dict[str, Any]) -> RoadCategory:
    highway = _tag(data, "highway")
    return _HIGHWAY_CATEGORIES.get(highway or "", RoadCategory.RESIDENTIAL)


def restrictions_for(data: dict[str, Any]) -> frozenset[AccessRestriction]:
    out: set[AccessRestriction] = set()
    access = _tag(data, "access")
    if access in {"private", "no"}:
        out.add(AccessRestriction.PRIVATE)
    elif access in {"destination", "customers", "delivery"}:
        out.add(AccessRestriction.NO_THROUGH_TRAFFIC)
    if _tag(data, "motor_vehicle") == "no" or _tag(data, "motorcar") == "no":
        out.add(AccessRestriction.NO_MOTOR_VEHICLES)
    if _tag(data, "bicycle") == "no":
        out.add(AccessRestriction.NO_BIKES)
    if _tag(data, "foot") == "no":
        out.add(AccessRestriction.NO_PEDESTRIANS)
    return frozenset(out)


def speed_limit_mps(data: dict[str, Any]) -> float | None:
    kph = _as_float(data.get("speed_kph"))
    if kph is not None and kph > 0.0:
        return kph / 3.6

    raw = _first(data.get("maxspeed"))
    if raw is None:
        return None
    match = _MAXSPEED.match(str(raw))
    if not match:
        return None
    value = float(match.group(1))
    if value <= 0.0:
        return None
    if match.group(2):
        return value * 0.44704
    return value / 3.6


def _edge_length(
    data: dict[str, Any], a: GeoPoint | None, b: GeoPoint | None, label: str
) -> float:
    length = _as_float(data.get("length"))
    if length is not None:
        return length
    if a is not None and b is not None:
        return float(haversine_distance_m(a, b))
    raise GraphConstructionError(f"Edge {label} has no length and no coordinates")


def _elevation_delta(
    data: dict[str, Any], u_data: dict[str, Any], v_data: dict[str, Any], length: float
) -> float:
    grade = _as_float(data.get("grade"))
    if grade is not None:
        return grade * length
    eu = _as_float(u_data.get("elevation"))
    ev = _as_float(v_data.get("elevation"))
    if eu is None or ev is None:
        return 0.0
    return ev - eu


def _iter_edges(graph: Any) -> list[tuple[Any, Any, Any, dict[str, Any]]]:
    if graph.is_multigraph():
        edges = [(u, v, k, d) for u, v, k, d in graph.edges(keys=True, data=True)]
    else:
        edges = [(u, v, 0, d) for u, v, d in graph.edges(data=True)]
    edges.sort(key=lambda e: (int(e[0]), int(e[1]), str(e[2])))
    return edges


def road_graph_from_networkx(
    graph: nx.MultiDiGraph,
    *,
    buildings: Iterable[tuple[int, GeoPoint]] = (),
) -> RoadGraph:
    """Convert an OSMnx-style street graph into a validated RoadGraph.

    Every directed edge becomes a segment (OSMnx already splits two-way
    streets into a pair of edges). Movements are generated between every
    incoming and outgoing segment at a node, except U-turns where another
    way out exists. Turns at signalised nodes are protected; turns at other
    junctions of three or more streets are unprotected.

    Buildings given as (id, coordinate) are attached to the nearest street
    open to both cars and pedestrians, or to the nearest segment of any kind
    when the map has no such street.
    """

    if not graph.is_directed():
        graph = graph.to_directed()

    # GraphML round-trips store node ids as strings.
    node_data: dict[int, dict[str, Any]] = {
        int(n): dict(graph.nodes[n]) for n in graph.nodes
    }

    builder = RoadGraphBuilder()
    for node_id in sorted(node_data):
        builder.add_node(node_id, _location(node_data[node_id]))

    segments: list[Segment] = []
    for seg_id, (u, v, k, data) in enumerate(_iter_edges(graph)):
        u_data = node_data[int(u)]
        v_data = node_data[int(v)]
        length = _edge_length(
            data, _location(u_data), _location(v_data), f"{u}->{v} ({k})"
        )
        name = _tag_text(data, "name")
        segment = Segment(
            id=seg_id,
            src=int(u),
            dst=int(v),
            length_m=length,
            category=category_for(data),
            elevation_delta_m=_elevation_delta(data, u_data, v_data, length),
            restrictions=restrictions_for(data),
            speed_limit_mps=speed_limit_mps(data),
            name=name,
        )
        builder.add_segment(segment)
        segments.append(segment)

    _add_movements(builder, node_data, segments)
    _attach_buildings(builder, node_data, segments, buildings)
    return builder.build()


def _add_movements(
    builder: RoadGraphBuilder,
    node_data: dict[int, dict[str, Any]],
    segments: list[Segment],
) -> None:
    incoming: dict[int, list[Segment]] = {}
    outgoing: dict[int, list[Segment]] = {}
    for seg in segments:
        outgoing.setdefault(seg.src, []).append(seg)
        incoming.setdefault(seg.dst, []).append(seg)

    for node_id, ins in incoming.items():
        outs = outgoing.get(node_id, [])
        signalised = _tag(node_data[node_id], "highway") == "traffic_signals"
        neighbours = {s.src for s in ins} | {s.dst for s in outs}
        neighbours.discard(node_id)
        junction = len(neighbours) >= 3

        for a in ins:
            for b in outs:
                u_turn = b.dst == a.src
                if u_turn and len(outs) > 1:
                    continue
                control = (
                    TurnControl.UNPROTECTED
                    if junction and not signalised
                    else TurnControl.PROTECTED
                )
                builder.add_movement(a.id, b.id, control)


def _project(
    point: GeoPoint, a: GeoPoint, b: GeoPoint
) -> tuple[float, float]:
    """Planar projection of point onto a-b; returns (t in [0, 1], distance_m)."""

    # Local equirectangular frame around the point; fine at street scale.
    k = math.cos(math.radians(point.lat))
    ax, ay = (a.lon - point.lon) * k, a.lat - point.lat
    bx, by = (b.lon - point.lon) * k, b.lat - point.lat
    dx, dy = bx - ax, by - ay
    denom = dx * dx + dy * dy
    t = 0.0 if denom == 0.0 else max(0.0, min(1.0, -(ax * dx + ay * dy) / denom))
    px, py = ax + t * dx, ay + t * dy
    return t, math.hypot(px, py) * 111_320.0


_SHARED_CATEGORIES = frozenset(
    {RoadCategory.ARTERIAL, RoadCategory.RESIDENTIAL, RoadCategory.SERVICE}
)


def _shared_access(seg: Segment) -> bool:
    return seg.category in _SHARED_CATEGORIES and not (
        seg.has(AccessRestriction.NO_MOTOR_VEHICLES)
        or seg.has(AccessRestriction.NO_PEDESTRIANS)
    )


def _attach_buildings(
    builder: RoadGraphBuilder,
    node_data: dict[int, dict[str, Any]],
    segments: list[Segment],
    buildings: Iterable[tuple[int, GeoPoint]],
) -> None:
    located: list[tuple[Segment, GeoPoint, GeoPoint]] = []
    for seg in segments:
        a = _location(node_data[seg.src])
        b = _location(node_data[seg.dst])
        if a is not None and b is not None:
            located.append((seg, a, b))

    for building_id, point in buildings:
        best: tuple[bool, float, Segment, float] | None = None
        for seg, a, b in located:
            t, d = _project(point, a, b)
            # Streets usable by cars and pedestrians alike win over closer
            # footways or motorways; those only take buildings with no street.
            key = (not _shared_access(seg), d)
            if best is None or key < best[:2]:
                best = (key[0], d, seg, t)
        if best is None:
            raise GraphConstructionError(
                f"Cannot attach building {building_id}: no georeferenced segments"
            )
        _, _, seg, t = best
        builder.add_building(
            Building(
                id=int(building_id),
                segment_id=seg.id,
                dist_along_m=seg.length_m * t,
            )
        )
