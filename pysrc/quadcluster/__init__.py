"""quadcluster - Quadtree-backed clustering of map annotations."""

from ._annotation import Annotation
from ._cluster import AnnotationItem, Cluster, ClusterItem, ClusterOrAnnotation
from ._common import MAX_ZOOM_LEVEL, WORLD_SIZE, Bounds, Size
from ._config import ClusterManagerConfig, ClusterPosition, default_cell_size_for_zoom_level
from ._difference import Difference
from ._geometry import (
    WORLD_RECT,
    Coordinate,
    CoordinateRegion,
    CoordinateSpan,
    MapPoint,
    MapRect,
    distance_meters,
)
from ._storage import HashStorage, ListStorage, NodeStorage
from .cluster_manager import ClusterManager
from .map_scale import MapScale, zoom_level_for_scale
from .quadtree import QuadTree

__all__ = [
    "MAX_ZOOM_LEVEL",
    "WORLD_RECT",
    "WORLD_SIZE",
    "Annotation",
    "AnnotationItem",
    "Bounds",
    "Cluster",
    "ClusterItem",
    "ClusterManager",
    "ClusterManagerConfig",
    "ClusterOrAnnotation",
    "ClusterPosition",
    "Coordinate",
    "CoordinateRegion",
    "CoordinateSpan",
    "Difference",
    "HashStorage",
    "ListStorage",
    "MapPoint",
    "MapRect",
    "MapScale",
    "NodeStorage",
    "QuadTree",
    "Size",
    "default_cell_size_for_zoom_level",
    "distance_meters",
    "zoom_level_for_scale",
]
