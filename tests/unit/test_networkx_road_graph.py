from __future__ import annotations

import networkx as nx
import pytest

from src.adapters.maps.networkx_road_graph import (
    category_for,
    restrictions_for,
    road_graph_from_networkx,
    speed_limit_mps,
)
from src.domain.exceptions import GraphConstructionError
from src.domain.models import AccessRestriction, GeoPoint, RoadCategory, TurnControl


def _t_junction(signalised: bool = False) -> nx.MultiDiGraph:
    """Node 2 joins a two-way street to 1, a one-way arterial to 3 and a footway to 4."""

    g = nx.MultiDiGraph()
    g.add_node(1, x=-15.4010, y=28.1010, elevation=10.0)
    g.add_node(
        2,
        x=-15.4000,
        y=28.1010,
        elevation=15.0,
        highway="traffic_signals" if signalised else None,
    )
    g.add_node(3, x=-15.3990, y=28.1010)
    g.add_node(4, x=-15.4000, y=28.1000)

    street = {"highway": "residential", "length": 98.0, "speed_kph": 36.0}
    g.add_edge(1, 2, **street, name=["Calle Mayor", "Calle Triana"])
    g.add_edge(2, 1, **street)
    g.add_edge(
        2,
        3,
        highway="primary",
        length=98.0,
        maxspeed="30 mph",
        access="destination",
        bicycle="no",
    )
    g.add_edge(2, 4, highway="footway")
    g.add_edge(4, 2, highway="footway")
    return g


def test_edges_become_segments_in_sorted_order() -> None:
    graph = road_graph_from_networkx(_t_junction())

    assert list(graph.nodes) == [1, 2, 3, 4]
    assert [(s.src, s.dst) for s in graph.segments.values()] == [
        (1, 2),
        (2, 1),
        (2, 3),
        (2, 4),
        (4, 2),
    ]
    assert graph.nodes[1].location == GeoPoint(lat=28.1010, lon=-15.4010)


def test_segment_attributes_are_translated() -> None:
    graph = road_graph_from_networkx(_t_junction())
    street, _, arterial, footway, _ = graph.segments.values()

    assert street.category is RoadCategory.RESIDENTIAL
    assert street.speed_limit_mps == pytest.approx(10.0)
    assert street.elevation_delta_m == pytest.approx(5.0)
    assert street.name == "Calle Mayor"

    assert arterial.category is RoadCategory.ARTERIAL
    assert arterial.speed_limit_mps == pytest.approx(13.4112)
    assert arterial.restrictions == frozenset(
        {AccessRestriction.NO_THROUGH_TRAFFIC, AccessRestriction.NO_BIKES}
    )

    assert footway.category is RoadCategory.SIDEWALK
    # No length attribute: measured from the node coordinates (~111 m).
    assert 105.0 < footway.length_m < 115.0


def test_turns_are_generated_without_needless_u_turns() -> None:
    graph = road_graph_from_networkx(_t_junction())

    pairs = {(m.from_segment, m.to_segment) for m in graph.movements}

    assert pairs == {(0, 2), (0, 3), (4, 1), (4, 2), (1, 0), (3, 4)}


def test_junction_turns_are_unprotected_unless_signalised() -> None:
    plain = road_graph_from_networkx(_t_junction())
    signals = road_graph_from_networkx(_t_junction(signalised=True))

    at_junction = {(0, 2), (0, 3), (4, 1), (4, 2)}
    for m in plain.movements:
        expected = (
            TurnControl.UNPROTECTED
            if (m.from_segment, m.to_segment) in at_junction
            else TurnControl.PROTECTED
        )
        assert m.control is expected
    assert all(m.control is TurnControl.PROTECTED for m in signals.movements)


def test_graphml_string_node_ids_are_accepted() -> None:
    g = nx.relabel_nodes(_t_junction(), {n: str(n) for n in (1, 2, 3, 4)})
    graph = road_graph_from_networkx(g)
    assert list(graph.nodes) == [1, 2, 3, 4]


def test_buildings_attach_to_the_nearest_segment() -> None:
    graph = road_graph_from_networkx(
        _t_junction(), buildings=[(7, GeoPoint(lat=28.1011, lon=-15.3995))]
    )

    building = graph.buildings[7]
    assert building.segment_id == 2
    assert building.dist_along_m == pytest.approx(49.0, abs=1.0)
    assert graph.buildings_on[2] == (building,)


def test_edge_without_length_or_coordinates_is_rejected() -> None:
    g = nx.MultiDiGraph()
    g.add_node(1)
    g.add_node(2)
    g.add_edge(1, 2, highway="residential")
    with pytest.raises(GraphConstructionError):
        road_graph_from_networkx(g)


def test_tag_helpers() -> None:
    assert category_for({"highway": ["motorway_link", "primary"]}) is RoadCategory.MOTORWAY
    assert category_for({"highway": "busway"}) is RoadCategory.RESIDENTIAL
    assert category_for({}) is RoadCategory.RESIDENTIAL

    assert restrictions_for({"access": "private", "foot": "no"}) == frozenset(
        {AccessRestriction.PRIVATE, AccessRestriction.NO_PEDESTRIANS}
    )
    assert restrictions_for({"motor_vehicle": "no"}) == frozenset(
        {AccessRestriction.NO_MOTOR_VEHICLES}
    )

    assert speed_limit_mps({"maxspeed": "50"}) == pytest.approx(50 / 3.6)
    assert speed_limit_mps({"maxspeed": "signals"}) is None
    assert speed_limit_mps({"maxspeed": "0"}) is None
    assert speed_limit_mps({}) is None


def test_buildings_prefer_streets_open_to_every_mode() -> None:
    # Right next to the footway, but 55 m from the arterial.
    point = GeoPoint(lat=28.1005, lon=-15.3999)
    graph = road_graph_from_networkx(_t_junction(), buildings=[(8, point)])
    assert graph.buildings[8].segment_id == 2

    # With only footways around, the nearest footway still takes it.
    g = _t_junction()
    g.remove_edges_from([(1, 2), (2, 1), (2, 3)])
    graph = road_graph_from_networkx(g, buildings=[(8, point)])
    assert graph.segments[graph.buildings[8].segment_id].category is RoadCategory.SIDEWALK
