"""
Main pipeline for trailmerge

Wires the preprocessing and editing components:

  1. Group raw OSM elements by name
  2. Merge every group and build enriched features
  3. Build the line cache from highways
  4. Add simple points, snapping them onto cached lines
"""

import json
import os
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Union
from loguru import logger

from .config import get_config, validate_config, TrailMergeConfig
from .editing import ChangeSetOrchestrator, LineSnapInserter, AddPointResult
from .line_cache import LineCache
from .models import AddSimplePointRequest, GeoJSONFeatureCollection, GeoJSONFeature
from .osm.models import OSMWay, GraphElement
from .preprocessing import Feature, FeatureBuilder


def group_by_name(elements: Iterable[GraphElement]) -> Dict[str, List[GraphElement]]:
    """Group elements by their name tag, unnamed elements share the "" key"""
    groups: Dict[str, List[GraphElement]] = {}
    for element in elements:
        groups.setdefault(element.tags.get("name", ""), []).append(element)
    return groups


class TrailMergePipeline:
    """
    Main pipeline from raw OSM elements to features, and from new points to
    OSM edits

    Usage:
        pipeline = TrailMergePipeline()
        features = pipeline.preprocess(elements)
        pipeline.rebuild_line_cache(elements)
        result = pipeline.add_point(OsmApiClient(), request)
    """

    def __init__(self, config: Optional[TrailMergeConfig] = None, cache_dir: Optional[str] = None):
        self.config = config or get_config()
        validate_config(self.config)
        self.feature_builder = FeatureBuilder(config=self.config.preprocess)
        self.line_cache = LineCache(cache_dir or self.config.cache_dir)
        self.line_cache.load()
        self.inserter = LineSnapInserter(self.line_cache, self.config.snap)
        self.orchestrator = ChangeSetOrchestrator(
            self.inserter,
            self.line_cache,
            feature_builder=self.feature_builder,
            config=self.config
        )

    def preprocess(self, elements: Union[Mapping[str, Sequence[GraphElement]], Iterable[GraphElement]]) -> List[Feature]:
        """
        Build features from raw elements or from an already grouped dictionary
        """
        names_dictionary = elements if isinstance(elements, Mapping) else group_by_name(elements)
        return self.feature_builder.preprocess(names_dictionary)

    def rebuild_line_cache(self, elements: Iterable[GraphElement]) -> int:
        """
        Fill the line cache with every highway way

        Returns:
            Number of cached line features
        """
        highways = [e for e in elements if isinstance(e, OSMWay) and "highway" in e.tags]
        features = self.feature_builder.preprocess_lines(highways)
        self.line_cache.update(features)
        self.line_cache.save()
        logger.info(f"Line cache rebuilt from {len(highways)} highways")
        return len(features)

    def add_point(self, api, request: AddSimplePointRequest) -> AddPointResult:
        """Add a simple point for the user the api client is authenticated as"""
        result = self.orchestrator.add(api, request.lat_lng.lat, request.lat_lng.lng, request.point_type)
        if result.change.modified_ways():
            self.line_cache.save()
        return result

    def save(self, features: Iterable[Feature], output_path: str) -> str:
        """Save features as a GeoJSON FeatureCollection"""
        os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
        collection = GeoJSONFeatureCollection(
            features=[GeoJSONFeature.model_validate(f.to_geojson()) for f in features]
        )
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(collection.model_dump(), f, indent=2, ensure_ascii=False)

        logger.info(f"Saved {len(collection.features)} features to {output_path}")
        return output_path
