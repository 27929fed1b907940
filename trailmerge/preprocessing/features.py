"""
Feature building

Turns merged OSM elements into attribute-enriched features ready for the
search index and the local line cache
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence
from loguru import logger
from shapely.geometry import LineString, MultiLineString, mapping, shape
from shapely.geometry.base import BaseGeometry

from ..config import get_config, PreprocessConfig
from ..models import GeoJSONFeature
from ..osm.models import OSMWay, GraphElement
from .classifier import Categories, TagClassifier, TagsClassifier
from .converter import ElementGeometryConverter
from .geometry import GeometryPredicates, ShapelyGeometryPredicates
from .merger import GraphMerger


class FeatureAttributes:
    ID = "identifier"
    LAT = "lat"
    LON = "lon"
    POI_ID = "poiId"
    POI_NAMES = "poiNames"
    POI_SEARCH_FACTOR = "poiSearchFactor"
    POI_ICON = "poiIcon"
    POI_ICON_COLOR = "poiIconColor"
    POI_CATEGORY = "poiCategory"
    POI_SOURCE = "poiSource"
    POI_LANGUAGE = "poiLanguage"
    POI_CONTAINER = "poiContainer"
    POI_GEOLOCATION = "poiGeolocation"
    POI_OSM_NODES = "poiOsmNodes"


class Sources:
    OSM = "OSM"


class Languages:
    ALL = "all"


@dataclass
class Feature:
    """A geometry with its attributes"""
    geometry: BaseGeometry
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def osm_id(self) -> Optional[int]:
        """Numeric OSM id parsed from the "<kind>_<id>" identifier"""
        identifier = self.attributes.get(FeatureAttributes.ID)
        if not identifier:
            return None
        return int(str(identifier).rsplit("_", 1)[-1])

    def to_geojson(self) -> Dict[str, Any]:
        return GeoJSONFeature(geometry=mapping(self.geometry), properties=self.attributes).model_dump()

    @classmethod
    def from_geojson(cls, data: Mapping[str, Any]) -> "Feature":
        model = GeoJSONFeature.model_validate(data)
        return cls(geometry=shape(model.geometry), attributes=dict(model.properties))


def get_element_id(element: GraphElement) -> str:
    return f"{element.kind}_{element.id}"


def get_poi_id(source: str, element: GraphElement) -> str:
    return f"{source}_{get_element_id(element)}"


class FeatureBuilder:
    """Builds enriched features from same-name element groups"""

    def __init__(
        self,
        classifier: Optional[TagClassifier] = None,
        geometry: Optional[GeometryPredicates] = None,
        merger: Optional[GraphMerger] = None,
        config: Optional[PreprocessConfig] = None
    ):
        self.config = config or get_config().preprocess
        self.classifier = classifier or TagsClassifier(self.config)
        self.geometry = geometry or ShapelyGeometryPredicates()
        self.merger = merger or GraphMerger()
        self.converter = ElementGeometryConverter()

    def preprocess(self, names_dictionary: Mapping[str, Sequence[GraphElement]]) -> List[Feature]:
        """
        Merge every name group and convert it to features

        A group that fails to merge or convert is logged and skipped, the
        rest of the batch goes on.

        Args:
            names_dictionary: Name -> elements sharing that name

        Returns:
            All features of all groups
        """
        logger.info(f"Preprocessing OSM data to GeoJson, total distinct names: {len(names_dictionary)}")
        features_by_name: Dict[str, List[Feature]] = {}
        for name, elements in names_dictionary.items():
            try:
                features = self.build_group(elements)
            except Exception as e:
                logger.error(f"Failed to preprocess name group '{name}' ({len(elements)} elements): {e}")
                continue
            if features:
                features_by_name[name] = features

        all_features = [f for features in features_by_name.values() for f in features]
        self.report_invalid_geometries(all_features)
        logger.info("Finished GeoJson conversion")
        self.change_lwn_hiking_routes_to_none_category(all_features)
        return all_features

    def build_group(self, elements: Sequence[GraphElement]) -> List[Feature]:
        """Merge one name group and build its features"""
        features = []
        for element in self.merger.merge(elements):
            feature = self.to_feature(element)
            if feature is None:
                continue
            self.add_attributes(feature, element)
            features.append(feature)
        return features

    def preprocess_lines(self, ways: Iterable[OSMWay]) -> List[Feature]:
        """
        Build line cache features from ways

        Only source, ids and the vertex id list are attached, these features
        are used for snapping points onto lines.
        """
        features = []
        for way in ways:
            feature = self.to_feature(way)
            if feature is None:
                continue
            feature.attributes[FeatureAttributes.POI_SOURCE] = Sources.OSM
            feature.attributes[FeatureAttributes.ID] = get_element_id(way)
            feature.attributes[FeatureAttributes.POI_ID] = get_poi_id(Sources.OSM, way)
            feature.attributes[FeatureAttributes.POI_OSM_NODES] = way.node_ids
            features.append(feature)
        return features

    def to_feature(self, element: GraphElement) -> Optional[Feature]:
        geometry = self.converter.to_geometry(element)
        if geometry is None:
            return None
        return Feature(geometry=geometry, attributes=dict(element.tags))

    def add_attributes(self, feature: Feature, element: GraphElement):
        classification = self.classifier.classify(feature.attributes)
        feature.attributes[FeatureAttributes.POI_SEARCH_FACTOR] = classification.search_factor
        feature.attributes[FeatureAttributes.POI_ICON] = classification.icon
        feature.attributes[FeatureAttributes.POI_ICON_COLOR] = classification.color
        feature.attributes[FeatureAttributes.POI_CATEGORY] = classification.category
        feature.attributes[FeatureAttributes.POI_SOURCE] = Sources.OSM
        feature.attributes[FeatureAttributes.POI_LANGUAGE] = Languages.ALL
        feature.attributes[FeatureAttributes.POI_CONTAINER] = self.geometry.is_container_polygon(feature.geometry)
        feature.attributes[FeatureAttributes.POI_NAMES] = self.get_titles(element.tags)
        feature.attributes[FeatureAttributes.ID] = get_element_id(element)
        feature.attributes[FeatureAttributes.POI_ID] = get_poi_id(Sources.OSM, element)
        self.update_location(feature)

    def get_titles(self, tags: Mapping[str, str]) -> Dict[str, List[str]]:
        """Titles per language: name/alt_name for all languages, name:<lang> per language"""
        titles: Dict[str, List[str]] = {}
        for key in ("name", "alt_name"):
            if tags.get(key):
                titles.setdefault(Languages.ALL, []).append(tags[key])
        for language in self.config.languages:
            title = tags.get(f"name:{language}")
            if title:
                titles.setdefault(language, []).append(title)
        return titles

    def update_location(self, feature: Feature):
        """
        Set the geolocation used for search

        Lines are located at their start, everything else at its centroid.
        Nothing is set when the centroid is empty.
        """
        geometry = feature.geometry
        if isinstance(geometry, (LineString, MultiLineString)) and not geometry.is_empty:
            first = geometry.geoms[0].coords[0] if isinstance(geometry, MultiLineString) else geometry.coords[0]
            feature.attributes[FeatureAttributes.POI_GEOLOCATION] = {
                FeatureAttributes.LAT: first[1],
                FeatureAttributes.LON: first[0]
            }
            return
        centroid = self.geometry.centroid(geometry)
        if centroid is None:
            return
        feature.attributes[FeatureAttributes.POI_GEOLOCATION] = {
            FeatureAttributes.LAT: centroid.y,
            FeatureAttributes.LON: centroid.x
        }

    def report_invalid_geometries(self, features: Iterable[Feature]) -> int:
        """
        Log invalid and empty geometries without dropping them

        Returns:
            Number of features with a problem
        """
        problems = 0
        for feature in features:
            geometry = feature.geometry
            feature_id = feature.attributes.get(FeatureAttributes.ID)
            if geometry.is_empty:
                logger.error(f"{geometry.geom_type} with ID: {feature_id} is an empty geometry - check for non-closed relations.")
                problems += 1
                continue
            validity = self.geometry.validate(geometry)
            if not validity.valid:
                logger.error(f"{geometry.geom_type} with ID: {feature_id} {validity.reason}")
                problems += 1
        return problems

    @staticmethod
    def change_lwn_hiking_routes_to_none_category(features: Iterable[Feature]):
        """Local walking network route relations are not shown as hiking routes"""
        for feature in features:
            if not str(feature.attributes.get(FeatureAttributes.ID, "")).startswith("relation_"):
                continue
            if feature.attributes.get("network") == "lwn" and feature.attributes.get("route") == "hiking":
                feature.attributes[FeatureAttributes.POI_CATEGORY] = Categories.NONE
