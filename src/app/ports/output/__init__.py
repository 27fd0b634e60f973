from .graph_repository import IGraphRepository
from .map_provider import IMapProvider

__all__ = [
    "IGraphRepository",
    "IMapProvider",
]
