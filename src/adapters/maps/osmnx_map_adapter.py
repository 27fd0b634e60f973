from __future__ import annotations

import logging
import os
import pickle
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import osmnx as ox
from osmnx._errors import InsufficientResponseError
from shapely.geometry import box

from src.app.ports.output import IMapProvider
from src.domain.models import GeoPoint

logger = logging.getLogger(__name__)

# Way/node tags read by road_graph_from_networkx; OSMnx drops the rest.
_WAY_TAGS = (
    "highway",
    "name",
    "oneway",
    "maxspeed",
    "access",
    "motor_vehicle",
    "motorcar",
    "bicycle",
    "foot",
)
_NODE_TAGS = ("highway", "ref")
_BUILDING_TAGS = {"building": True}


@dataclass(slots=True)
class OSMnxMapAdapter(IMapProvider):
    """OSMnx-backed map provider.

    The default network type keeps streets, paths and footways together so
    that one graph serves every travel mode.

    Env vars:
      - OSMNX_CACHE_FOLDER: Overpass response cache (default data/osm_cache)
      - OSM_GRAPH_PATH: prebuilt graph to load instead of downloading
        (.graphml or .pkl/.pickle)
      - OSM_PLACE: place to download when OSM_GRAPH_PATH does not exist yet
      - OSM_GRAPH_AUTO_BUILD: '0' disables building OSM_GRAPH_PATH from OSM_PLACE
      - OSM_BUILDINGS: '0' skips downloading building footprints
      - OSM_ELEVATION_RASTER: GeoTIFF (or list file) of terrain elevation; without
        it nodes carry no elevation and biking never pays an uphill penalty.
        Needs rasterio installed (the `elevation` extra).
    """

    network_type: str = "all"

    _prebuilt_graph: Any | None = None

    def _configure_osmnx(self) -> None:
        ox.settings.use_cache = True
        ox.settings.log_console = False
        ox.settings.cache_folder = os.getenv("OSMNX_CACHE_FOLDER") or "data/osm_cache"
        ox.settings.useful_tags_way = list(_WAY_TAGS)
        ox.settings.useful_tags_node = list(_NODE_TAGS)

    def _graph_path(self) -> Path | None:
        raw = (os.getenv("OSM_GRAPH_PATH") or "").strip()
        return Path(raw) if raw else None

    def _auto_build(self) -> bool:
        raw = (os.getenv("OSM_GRAPH_AUTO_BUILD") or "").strip().lower()
        return raw == "" or raw in {"1", "true", "yes", "on"}

    def _read(self, path: Path) -> Any:
        name = path.name.lower()
        if name.endswith(".graphml"):
            # ox.load_graphml restores numeric attribute types; nx.read_graphml
            # would leave lengths and speeds as strings.
            return ox.load_graphml(path)
        if name.endswith((".pkl", ".pickle")):
            with path.open("rb") as fp:
                return pickle.load(fp)
        raise RuntimeError(f"Unsupported OSM_GRAPH_PATH format: {path}")

    def _write(self, graph: Any, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        name = path.name.lower()
        if name.endswith(".graphml"):
            ox.save_graphml(graph, tmp)
        elif name.endswith((".pkl", ".pickle")):
            with tmp.open("wb") as fp:
                pickle.dump(graph, fp)
        else:
            raise RuntimeError(f"Unsupported OSM_GRAPH_PATH format: {path}")
        os.replace(tmp, path)

    def _with_speeds(self, graph: Any) -> Any:
        # Fills speed_kph from maxspeed, imputing per highway type where missing.
        return ox.routing.add_edge_speeds(graph)

    def _with_elevation(self, graph: Any) -> Any:
        raster = (os.getenv("OSM_ELEVATION_RASTER") or "").strip()
        if not raster:
            return graph
        logger.info("Adding node elevations from %s", raster)
        graph = ox.elevation.add_node_elevations_raster(graph, raster)
        return ox.elevation.add_edge_grades(graph)

    def _prebuilt(self) -> Any | None:
        if self._prebuilt_graph is not None:
            return self._prebuilt_graph

        path = self._graph_path()
        if path is None:
            return None

        if not path.exists():
            place = (os.getenv("OSM_PLACE") or "").strip()
            if not self._auto_build():
                raise RuntimeError(f"OSM_GRAPH_PATH does not exist: {path}")
            if not place:
                raise RuntimeError(
                    "OSM_GRAPH_PATH does not exist and OSM_PLACE is missing; set "
                    "OSM_PLACE or point OSM_GRAPH_PATH at an existing graph."
                )
            logger.info("Building street graph for %r into %s", place, path)
            graph = ox.graph_from_place(place, network_type=self.network_type)
            self._write(self._with_speeds(graph), path)

        self._prebuilt_graph = self._with_elevation(self._read(path))
        return self._prebuilt_graph

    def get_street_graph(self, *, center: GeoPoint | None, dist_m: int) -> Any:
        self._configure_osmnx()

        prebuilt = self._prebuilt()
        if prebuilt is not None:
            return prebuilt
        if center is None:
            raise RuntimeError(
                "No map area configured; set MAP_CENTER_LAT and MAP_CENTER_LON "
                "or OSM_GRAPH_PATH"
            )

        logger.info(
            "Downloading %s street graph around (%.5f, %.5f), %d m",
            self.network_type,
            center.lat,
            center.lon,
            dist_m,
        )
        # OSMnx uses (lat, lon)
        graph = ox.graph_from_point(
            (center.lat, center.lon), dist=int(dist_m), network_type=self.network_type
        )
        return self._with_elevation(self._with_speeds(graph))

    def _download_buildings(self, center: GeoPoint | None, dist_m: int) -> Any:
        prebuilt = self._prebuilt()
        if prebuilt is not None:
            # Same extent as the prebuilt street graph.
            xs = [float(x) for _, x in prebuilt.nodes(data="x") if x is not None]
            ys = [float(y) for _, y in prebuilt.nodes(data="y") if y is not None]
            if not xs or not ys:
                return None
            area = box(min(xs), min(ys), max(xs), max(ys))
            return ox.features_from_polygon(area, tags=_BUILDING_TAGS)
        if center is None:
            raise RuntimeError(
                "No map area configured; set MAP_CENTER_LAT and MAP_CENTER_LON "
                "or OSM_GRAPH_PATH"
            )
        return ox.features_from_point(
            (center.lat, center.lon), tags=_BUILDING_TAGS, dist=int(dist_m)
        )

    def get_buildings(
        self, *, center: GeoPoint | None, dist_m: int
    ) -> list[tuple[int, GeoPoint]]:
        """Building footprints as representative points.

        Ids are positions in (element type, OSM id) order, so they are stable
        for the same map data. OSM_BUILDINGS='0' skips the download.
        """

        self._configure_osmnx()
        raw = (os.getenv("OSM_BUILDINGS") or "").strip().lower()
        if raw in {"0", "false", "no", "off"}:
            return []

        try:
            features = self._download_buildings(center, dist_m)
        except InsufficientResponseError:
            features = None
        if features is None or len(features) == 0:
            logger.info("No buildings found in the map area")
            return []

        features = features.sort_index()
        points = features.geometry.representative_point()
        out: list[tuple[int, GeoPoint]] = []
        for building_id, point in enumerate(points):
            if point is None or point.is_empty:
                continue
            out.append((building_id, GeoPoint(lat=point.y, lon=point.x)))
        logger.info("Loaded %d buildings", len(out))
        return out
