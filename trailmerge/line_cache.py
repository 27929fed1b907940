"""
Line feature caching

Keeps the line (highway) features used for snapping new points, answers
bounding box queries and persists the features to disk
"""

import os
import json
import tempfile
import threading
from typing import Dict, Iterable, List, Optional, Tuple
from loguru import logger
from shapely.geometry import box

from .preprocessing.features import Feature


BoundingBox = Tuple[float, float, float, float]  # (min_lon, min_lat, max_lon, max_lat)


class LineCache:
    """In-memory line features keyed by OSM way id, optionally persisted as GeoJSON"""

    def __init__(self, cache_dir: Optional[str] = None):
        self.cache_dir = cache_dir
        self._features: Dict[int, List[Feature]] = {}
        self._lock = threading.RLock()

    def get_cache_path(self) -> Optional[str]:
        if not self.cache_dir:
            return None
        return os.path.join(self.cache_dir, "line_cache.geojson")

    def __len__(self) -> int:
        with self._lock:
            return sum(len(features) for features in self._features.values())

    def get(self, line_id: int) -> List[Feature]:
        with self._lock:
            return list(self._features.get(line_id, []))

    def all_features(self) -> List[Feature]:
        with self._lock:
            return [f for features in self._features.values() for f in features]

    def update(self, features: Iterable[Feature]):
        """Add features, replacing cached features of the same lines"""
        grouped: Dict[int, List[Feature]] = {}
        for feature in features:
            line_id = feature.osm_id
            if line_id is None:
                logger.warning(f"Feature without identifier can't be cached: {feature.attributes}")
                continue
            grouped.setdefault(line_id, []).append(feature)
        with self._lock:
            self._features.update(grouped)
        logger.info(f"Line cache updated with {sum(len(f) for f in grouped.values())} features")

    def replace(self, line_id: int, features: Iterable[Feature]):
        """Replace every cached feature of a line"""
        features = list(features)
        with self._lock:
            if features:
                self._features[line_id] = features
            else:
                self._features.pop(line_id, None)
        logger.info(f"Line {line_id} replaced in cache with {len(features)} features")

    def find_lines_near(self, bounding_box: BoundingBox) -> List[Feature]:
        """
        Get line features intersecting a bounding box

        Args:
            bounding_box: (min_lon, min_lat, max_lon, max_lat)
        """
        area = box(*bounding_box)
        with self._lock:
            candidates = self.all_features()
        return [f for f in candidates if not f.geometry.is_empty and f.geometry.intersects(area)]

    def load(self, cache_path: Optional[str] = None) -> int:
        """Load line features from disk if the cache file exists"""
        cache_path = cache_path or self.get_cache_path()
        if not cache_path or not os.path.exists(cache_path):
            return 0
        try:
            with open(cache_path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            features = [Feature.from_geojson(item) for item in data.get("features", [])]
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load line cache {cache_path}: {e}")
            return 0
        self.update(features)
        logger.info(f"Loaded {len(features)} line features from cache: {cache_path}")
        return len(features)

    def save(self, cache_path: Optional[str] = None):
        """
        Save line features to disk

        The file is written next to the target and moved over it, so readers
        never see a partial cache and concurrent saves don't interleave.
        """
        cache_path = cache_path or self.get_cache_path()
        if not cache_path:
            return
        cache_dir = os.path.dirname(cache_path) or "."
        with self._lock:
            data = {
                "type": "FeatureCollection",
                "features": [f.to_geojson() for f in self.all_features()]
            }
            temp_path = None
            try:
                os.makedirs(cache_dir, exist_ok=True)
                with tempfile.NamedTemporaryFile(
                    'w', encoding='utf-8', dir=cache_dir, suffix=".tmp", delete=False
                ) as f:
                    temp_path = f.name
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, cache_path)
                temp_path = None
                logger.info(f"Saved line cache to {cache_path}")
            except OSError as e:
                logger.warning(f"Failed to save line cache {cache_path}: {e}")
            finally:
                if temp_path and os.path.exists(temp_path):
                    os.remove(temp_path)
