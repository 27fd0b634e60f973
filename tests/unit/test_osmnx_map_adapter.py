from __future__ import annotations

import pickle
from pathlib import Path

import geopandas as gpd
import networkx as nx
import osmnx as ox
import pandas as pd
import pytest
from osmnx._errors import InsufficientResponseError
from shapely.geometry import Point, box

from src.adapters.maps.osmnx_map_adapter import OSMnxMapAdapter
from src.domain.models import GeoPoint


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (
        "OSM_GRAPH_PATH",
        "OSM_PLACE",
        "OSM_GRAPH_AUTO_BUILD",
        "OSM_BUILDINGS",
        "OSM_ELEVATION_RASTER",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("OSMNX_CACHE_FOLDER", str(tmp_path / "cache"))


def test_prebuilt_pickle_is_loaded_once(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    g = nx.MultiDiGraph()
    g.add_node(1, x=-15.4, y=28.1)
    path = tmp_path / "graph.pkl"
    with path.open("wb") as fp:
        pickle.dump(g, fp)
    monkeypatch.setenv("OSM_GRAPH_PATH", str(path))

    adapter = OSMnxMapAdapter()
    first = adapter.get_street_graph(center=None, dist_m=1000)
    path.unlink()
    second = adapter.get_street_graph(center=GeoPoint(lat=0.0, lon=0.0), dist_m=1)

    assert list(first.nodes) == [1]
    assert second is first


def test_missing_prebuilt_graph_without_auto_build(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("OSM_GRAPH_PATH", str(tmp_path / "missing.graphml"))
    monkeypatch.setenv("OSM_GRAPH_AUTO_BUILD", "0")

    with pytest.raises(RuntimeError, match="does not exist"):
        OSMnxMapAdapter().get_street_graph(center=None, dist_m=1000)


def test_missing_prebuilt_graph_needs_a_place(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("OSM_GRAPH_PATH", str(tmp_path / "missing.graphml"))

    with pytest.raises(RuntimeError, match="OSM_PLACE"):
        OSMnxMapAdapter().get_street_graph(center=None, dist_m=1000)


def test_unsupported_format_is_rejected(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    path = tmp_path / "graph.json"
    path.write_text("{}")
    monkeypatch.setenv("OSM_GRAPH_PATH", str(path))

    with pytest.raises(RuntimeError, match="Unsupported"):
        OSMnxMapAdapter().get_street_graph(center=None, dist_m=1000)


def test_download_needs_a_center() -> None:
    with pytest.raises(RuntimeError, match="MAP_CENTER_LAT"):
        OSMnxMapAdapter().get_street_graph(center=None, dist_m=1000)


def _footprints() -> gpd.GeoDataFrame:
    index = pd.MultiIndex.from_tuples(
        [("way", 20), ("node", 5)], names=["element", "id"]
    )
    return gpd.GeoDataFrame(
        {"building": ["yes", "house"]},
        geometry=[box(-15.401, 28.100, -15.399, 28.102), Point(-15.43, 28.12)],
        index=index,
        crs="EPSG:4326",
    )


def test_buildings_are_downloaded_around_the_center(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    calls = []

    def _features_from_point(center_point, tags, dist):
        calls.append((center_point, tags, dist))
        return _footprints()

    monkeypatch.setattr(ox, "features_from_point", _features_from_point)

    buildings = OSMnxMapAdapter().get_buildings(
        center=GeoPoint(lat=28.1, lon=-15.4), dist_m=750
    )

    assert calls == [((28.1, -15.4), {"building": True}, 750)]
    # Sorted by (element, id): the node comes first.
    assert buildings[0] == (0, GeoPoint(lat=28.12, lon=-15.43))
    building_id, point = buildings[1]
    assert building_id == 1
    assert 28.100 < point.lat < 28.102
    assert -15.401 < point.lon < -15.399


def test_buildings_cover_the_prebuilt_graph_extent(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    g = nx.MultiDiGraph()
    g.add_node(1, x=-15.41, y=28.09)
    g.add_node(2, x=-15.39, y=28.11)
    path = tmp_path / "graph.pkl"
    with path.open("wb") as fp:
        pickle.dump(g, fp)
    monkeypatch.setenv("OSM_GRAPH_PATH", str(path))
    areas = []

    def _features_from_polygon(polygon, tags):
        areas.append(polygon.bounds)
        return _footprints()

    monkeypatch.setattr(ox, "features_from_polygon", _features_from_polygon)

    buildings = OSMnxMapAdapter().get_buildings(center=None, dist_m=1000)

    assert areas == [(-15.41, 28.09, -15.39, 28.11)]
    assert len(buildings) == 2


def test_buildings_can_be_switched_off(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OSM_BUILDINGS", "0")
    adapter = OSMnxMapAdapter()
    assert adapter.get_buildings(center=GeoPoint(lat=0.0, lon=0.0), dist_m=10) == []


def test_area_without_buildings(monkeypatch: pytest.MonkeyPatch) -> None:
    def _nothing(center_point, tags, dist):
        raise InsufficientResponseError("No matching features")

    monkeypatch.setattr(ox, "features_from_point", _nothing)

    adapter = OSMnxMapAdapter()
    assert adapter.get_buildings(center=GeoPoint(lat=0.0, lon=0.0), dist_m=10) == []


def test_elevation_raster_adds_grades(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    g = nx.MultiDiGraph()
    g.add_node(1, x=-15.4, y=28.1)
    path = tmp_path / "graph.pkl"
    with path.open("wb") as fp:
        pickle.dump(g, fp)
    monkeypatch.setenv("OSM_GRAPH_PATH", str(path))
    monkeypatch.setenv("OSM_ELEVATION_RASTER", "dem.tif")
    steps = []

    def _elevations(graph, filepath):
        steps.append(("elevation", filepath))
        return graph

    def _grades(graph):
        steps.append(("grades", None))
        return graph

    monkeypatch.setattr(ox.elevation, "add_node_elevations_raster", _elevations)
    monkeypatch.setattr(ox.elevation, "add_edge_grades", _grades)

    OSMnxMapAdapter().get_street_graph(center=None, dist_m=1000)

    assert steps == [("elevation", "dem.tif"), ("grades", None)]
