"""
Geometry predicates used by feature preprocessing
"""

from dataclasses import dataclass
from typing import Optional, Protocol
from shapely.geometry import MultiPolygon, Point, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.validation import explain_validity


@dataclass
class ValidityResult:
    """OGC validity of a geometry"""
    valid: bool
    reason: Optional[str] = None


class GeometryPredicates(Protocol):
    """Geometry checks used while building features"""

    def is_container_polygon(self, geometry: BaseGeometry) -> bool:
        ...

    def centroid(self, geometry: BaseGeometry) -> Optional[Point]:
        ...

    def validate(self, geometry: BaseGeometry) -> ValidityResult:
        ...


class ShapelyGeometryPredicates:
    """Container, centroid and validity checks backed by shapely"""

    @staticmethod
    def is_container_polygon(geometry: BaseGeometry) -> bool:
        """A valid (multi)polygon can contain other features"""
        return isinstance(geometry, (Polygon, MultiPolygon)) and not geometry.is_empty and geometry.is_valid

    @staticmethod
    def centroid(geometry: BaseGeometry) -> Optional[Point]:
        if geometry is None or geometry.is_empty:
            return None
        centroid = geometry.centroid
        if centroid.is_empty:
            return None
        return centroid

    @staticmethod
    def validate(geometry: BaseGeometry) -> ValidityResult:
        if geometry.is_valid:
            return ValidityResult(valid=True)
        return ValidityResult(valid=False, reason=explain_validity(geometry))
