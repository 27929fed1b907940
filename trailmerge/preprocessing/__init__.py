"""
OSM preprocessing

Merges same-name element groups and converts them to enriched features
"""

from .tags import merge_missing_tags, merge_overriding_tags
from .merger import GraphMerger
from .features import Feature, FeatureAttributes, FeatureBuilder

__all__ = [
    "merge_missing_tags",
    "merge_overriding_tags",
    "GraphMerger",
    "Feature",
    "FeatureAttributes",
    "FeatureBuilder",
]
