from __future__ import annotations

import math

import pytest

from src.domain.exceptions import ConnectivityError, GraphConstructionError
from src.domain.models import (
    AccessRestriction,
    Building,
    RoadCategory,
    RoadGraph,
    RoadGraphBuilder,
    Segment,
    TurnControl,
)


def _seg(seg_id: int, src: int, dst: int, length_m: float = 100.0, **kw) -> Segment:
    return Segment(
        id=seg_id,
        src=src,
        dst=dst,
        length_m=length_m,
        category=kw.pop("category", RoadCategory.RESIDENTIAL),
        **kw,
    )


def _line_builder() -> RoadGraphBuilder:
    b = RoadGraphBuilder()
    for n in (3, 1, 2):
        b.add_node(n)
    b.add_segment(_seg(20, 2, 3))
    b.add_segment(_seg(10, 1, 2))
    return b


def test_build_sorts_everything_by_id() -> None:
    b = _line_builder()
    b.add_movement(10, 20)
    graph = b.build()

    assert list(graph.nodes) == [1, 2, 3]
    assert list(graph.segments) == [10, 20]
    assert graph.segments_leaving == {1: (10,), 2: (20,)}
    assert graph.segments_touching == {1: (10,), 2: (10, 20), 3: (20,)}
    assert graph.movements_from[10][0].to_segment == 20
    assert len(graph) == 3


def test_empty_graph() -> None:
    graph = RoadGraph.empty()
    assert len(graph) == 0
    assert graph.movements == ()


def test_segment_grade() -> None:
    assert _seg(1, 1, 2, 200.0, elevation_delta_m=10.0).grade == pytest.approx(0.05)
    assert _seg(1, 1, 2, 0.0, elevation_delta_m=10.0).grade == 0.0
    seg = _seg(1, 1, 2, restrictions=frozenset({AccessRestriction.PRIVATE}))
    assert seg.has(AccessRestriction.PRIVATE)
    assert not seg.has(AccessRestriction.NO_BIKES)


def test_duplicate_ids_are_rejected() -> None:
    b = _line_builder()
    with pytest.raises(GraphConstructionError):
        b.add_node(1)
    with pytest.raises(GraphConstructionError):
        b.add_segment(_seg(10, 1, 2))
    b.add_movement(10, 20)
    with pytest.raises(GraphConstructionError):
        b.add_movement(10, 20)


def test_segment_with_missing_node_is_rejected() -> None:
    b = _line_builder()
    b.add_segment(_seg(30, 3, 99))
    with pytest.raises(GraphConstructionError, match="missing node 99"):
        b.build()


@pytest.mark.parametrize("length_m", [-1.0, math.inf, math.nan])
def test_invalid_segment_length_is_rejected(length_m: float) -> None:
    b = _line_builder()
    b.add_segment(_seg(30, 3, 1, length_m))
    with pytest.raises(GraphConstructionError):
        b.build()


def test_non_positive_speed_limit_is_rejected() -> None:
    b = _line_builder()
    b.add_segment(_seg(30, 3, 1, speed_limit_mps=0.0))
    with pytest.raises(GraphConstructionError):
        b.build()


def test_dangling_movement_is_rejected() -> None:
    b = _line_builder()
    b.add_movement(10, 99)
    with pytest.raises(GraphConstructionError, match="missing segment 99"):
        b.build()


def test_movement_must_share_a_node() -> None:
    b = _line_builder()
    b.add_movement(20, 10)
    with pytest.raises(GraphConstructionError, match="does not share a node"):
        b.build()


def test_building_must_lie_on_its_segment() -> None:
    b = _line_builder()
    b.add_building(Building(id=1, segment_id=10, dist_along_m=150.0))
    with pytest.raises(GraphConstructionError, match="off its segment"):
        b.build()

    b = _line_builder()
    b.add_building(Building(id=1, segment_id=77, dist_along_m=0.0))
    with pytest.raises(GraphConstructionError):
        b.build()


def test_construction_errors_share_the_base_class() -> None:
    assert issubclass(GraphConstructionError, ConnectivityError)


def test_from_graph_copies_without_touching_the_original() -> None:
    b = _line_builder()
    b.add_movement(10, 20, TurnControl.UNPROTECTED)
    b.add_building(Building(id=5, segment_id=20, dist_along_m=50.0))
    original = b.build()

    edit = RoadGraphBuilder.from_graph(original)
    edit.remove_movement(10, 20)
    edit.replace_segment(_seg(20, 2, 3, 300.0))
    edited = edit.build()

    assert edited.movements == ()
    assert edited.segments[20].length_m == 300.0
    assert edited.buildings[5].segment_id == 20
    assert original.movements[0].control is TurnControl.UNPROTECTED
    assert original.segments[20].length_m == 100.0


def test_replace_unknown_segment_is_rejected() -> None:
    with pytest.raises(GraphConstructionError):
        RoadGraphBuilder().replace_segment(_seg(1, 1, 2))
