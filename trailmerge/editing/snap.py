"""
Line snapping for new points

Decides how a new point joins the line network: as a standalone point, as
new tags on an existing vertex, or as a new vertex spliced into a line.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, Union
from loguru import logger
from shapely.geometry import LineString, Point, Polygon

from ..config import get_config, SnapConfig
from ..errors import NoNearbyLineError
from ..models import SimplePointType
from ..preprocessing.features import Feature, FeatureAttributes
from .point_types import needs_line_attachment, point_type_tags


@dataclass(frozen=True)
class CreatePoint:
    lat: float
    lon: float
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ModifyVertex:
    vertex_id: int
    tags: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class InsertVertex:
    """New vertex between previous_vertex_id and next_vertex_id, index is its cached position"""
    line_id: int
    index: int
    previous_vertex_id: int
    next_vertex_id: int
    lat: float
    lon: float
    tags: Dict[str, str] = field(default_factory=dict)


EditDecision = Union[CreatePoint, ModifyVertex, InsertVertex]


class SpatialQuery(Protocol):
    """Line lookup used for snapping, LineCache implements it"""

    def find_lines_near(self, bounding_box: Tuple[float, float, float, float]) -> List[Feature]:
        ...


@dataclass
class ClosestLineResult:
    feature: Feature
    line: LineString
    distance: float


class LineSnapInserter:
    """Decides where a new point goes relative to the cached lines"""

    def __init__(self, spatial_query: SpatialQuery, config: Optional[SnapConfig] = None):
        self.config = config or get_config().snap
        self.spatial_query = spatial_query

    @property
    def snap_threshold(self) -> float:
        """Snap threshold in degrees"""
        return self.config.snap_threshold_m / self.config.meters_per_degree

    @property
    def search_padding(self) -> float:
        """Search padding in degrees"""
        return self.config.search_padding_m / self.config.meters_per_degree

    def decide(self, lat: float, lon: float, point_type: Union[SimplePointType, str]) -> EditDecision:
        """
        Decide how to add a point of the given type

        Args:
            lat: Latitude of the new point
            lon: Longitude of the new point
            point_type: Type of the new point

        Returns:
            CreatePoint, ModifyVertex or InsertVertex

        Raises:
            UnsupportedPointType: Unknown point type
            NoNearbyLineError: The point needs a line and none is close enough
        """
        tags = point_type_tags(point_type)
        if not needs_line_attachment(point_type):
            return CreatePoint(lat=lat, lon=lon, tags=tags)

        closest = self.get_closest_line(lat, lon)
        if closest is None:
            raise NoNearbyLineError(f"There's no close enough line to add a {point_type} at ({lat}, {lon})")

        point = Point(lon, lat)
        coords = list(closest.line.coords)
        node_ids = closest.feature.attributes[FeatureAttributes.POI_OSM_NODES]
        distances = [point.distance(Point(c)) for c in coords]
        closest_index = distances.index(min(distances))

        if (distances[closest_index] < self.snap_threshold
                or closest_index == 0 or closest_index == len(coords) - 1):
            vertex_id = int(node_ids[closest_index])
            logger.info(f"Adding tags to existing vertex {vertex_id} of line {closest.feature.osm_id}")
            return ModifyVertex(vertex_id=vertex_id, tags=tags)

        # Add in between two vertices, on the side the point is closer to
        distance_before = self.perpendicular_distance(coords[closest_index - 1], coords[closest_index], (lon, lat))
        distance_after = self.perpendicular_distance(coords[closest_index], coords[closest_index + 1], (lon, lat))
        index_to_insert = closest_index if distance_before < distance_after else closest_index + 1
        logger.info(f"Inserting a new vertex into line {closest.feature.osm_id} at index {index_to_insert}")
        return InsertVertex(
            line_id=closest.feature.osm_id,
            index=index_to_insert,
            previous_vertex_id=int(node_ids[index_to_insert - 1]),
            next_vertex_id=int(node_ids[index_to_insert]),
            lat=lat,
            lon=lon,
            tags=tags
        )

    def get_closest_line(self, lat: float, lon: float) -> Optional[ClosestLineResult]:
        """Closest cached line within the snap threshold, None if there is none"""
        padding = self.search_padding
        features = self.spatial_query.find_lines_near((lon - padding, lat - padding, lon + padding, lat + padding))
        point = Point(lon, lat)

        candidates: List[ClosestLineResult] = []
        for feature in features:
            line = self._get_line(feature)
            if line is None:
                continue
            distance = line.distance(point)
            if distance < self.snap_threshold:
                candidates.append(ClosestLineResult(feature=feature, line=line, distance=distance))
        if not candidates:
            return None
        return min(candidates, key=lambda c: c.distance)

    @staticmethod
    def _get_line(feature: Feature) -> Optional[LineString]:
        geometry = feature.geometry
        if isinstance(geometry, Polygon):
            line = geometry.exterior
        elif isinstance(geometry, LineString):
            line = geometry
        else:
            return None
        node_ids = feature.attributes.get(FeatureAttributes.POI_OSM_NODES)
        if not node_ids or len(node_ids) != len(line.coords):
            logger.warning(f"Line {feature.attributes.get(FeatureAttributes.ID)} has no matching vertex ids, skipping")
            return None
        return LineString(line.coords)

    @staticmethod
    def perpendicular_distance(
        start: Sequence[float],
        end: Sequence[float],
        point: Tuple[float, float]
    ) -> float:
        """Distance from point to the infinite line through start and end"""
        dx = end[0] - start[0]
        dy = end[1] - start[1]
        length = math.hypot(dx, dy)
        if length == 0:
            return math.hypot(point[0] - start[0], point[1] - start[1])
        return abs(dx * (start[1] - point[1]) - dy * (start[0] - point[0])) / length
