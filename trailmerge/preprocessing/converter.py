"""
OSM element to geometry conversion

Converts complete OSM elements into shapely geometries (lon/lat order)
"""

from typing import List, Optional
from loguru import logger
from shapely.geometry import (
    GeometryCollection, LineString, MultiLineString, MultiPolygon, Point, Polygon
)
from shapely.geometry.base import BaseGeometry
from shapely.ops import polygonize, unary_union

from ..osm.models import OSMNode, OSMWay, OSMRelation, GraphElement


AREA_RELATION_TYPES = ("multipolygon", "boundary")


class ElementGeometryConverter:
    """Builds geometries from OSM elements"""

    def to_geometry(self, element: GraphElement) -> Optional[BaseGeometry]:
        """
        Convert an element to its geometry

        Args:
            element: Complete OSM element

        Returns:
            Point, LineString, Polygon, MultiPolygon or MultiLineString,
            None when the element has no usable geometry
        """
        if isinstance(element, OSMNode):
            return Point(element.lon, element.lat)
        if isinstance(element, OSMWay):
            return self._way_to_geometry(element)
        if isinstance(element, OSMRelation):
            return self._relation_to_geometry(element)
        logger.warning(f"Unknown element type {type(element).__name__}, skipping")
        return None

    @staticmethod
    def _way_to_geometry(way: OSMWay) -> Optional[BaseGeometry]:
        coords = way.get_coordinates()
        if len(coords) < 2:
            logger.warning(f"Way {way.id} has less than 2 nodes, skipping")
            return None
        # Closed way with at least 3 distinct corners
        if way.is_closed and len(coords) >= 4:
            return Polygon(coords)
        return LineString(coords)

    def _relation_to_geometry(self, relation: OSMRelation) -> Optional[BaseGeometry]:
        ways_with_roles = [(w, r) for w, r in relation.iter_ways_with_roles() if len(w.nodes) >= 2]
        if not ways_with_roles:
            logger.warning(f"Relation {relation.id} has no ways, skipping")
            return None

        if relation.tags.get("type") in AREA_RELATION_TYPES:
            return self._area_relation_to_geometry(relation, ways_with_roles)

        lines = [LineString(w.get_coordinates()) for w, _ in ways_with_roles]
        if len(lines) == 1:
            return lines[0]
        return MultiLineString(lines)

    @staticmethod
    def _area_relation_to_geometry(relation: OSMRelation, ways_with_roles) -> BaseGeometry:
        outer_lines: List[LineString] = []
        inner_lines: List[LineString] = []
        for way, role in ways_with_roles:
            line = LineString(way.get_coordinates())
            if role == "inner":
                inner_lines.append(line)
            else:
                outer_lines.append(line)

        # polygonize needs noded linework, unary_union nodes shared vertices
        outers = list(polygonize(unary_union(outer_lines))) if outer_lines else []
        inners = list(polygonize(unary_union(inner_lines))) if inner_lines else []
        if not outers:
            # Unclosed outer ring - the validity pass reports the empty geometry
            return GeometryCollection()

        area = unary_union(outers)
        if inners:
            area = area.difference(unary_union(inners))
        if isinstance(area, (Polygon, MultiPolygon)):
            return area
        logger.warning(f"Relation {relation.id} produced {area.geom_type}, keeping polygons only")
        polygons = [g for g in getattr(area, "geoms", []) if isinstance(g, Polygon)]
        return MultiPolygon(polygons) if polygons else GeometryCollection()
