from .map_graph_repository import MapGraphRepository

__all__ = [
    "MapGraphRepository",
]
