"""
Configuration settings for trailmerge
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Any
import os

from dotenv import load_dotenv


# Pick up OSM_ACCESS_TOKEN and friends from a local .env, never overriding real env vars
load_dotenv(override=False)


@dataclass
class OsmApiConfig:
    """OSM API endpoints and configuration"""
    # API 0.6 root, the sandbox is https://master.apis.dev.openstreetmap.org
    base_url: str = "https://api.openstreetmap.org"

    # OAuth2 bearer token of the editing user
    access_token: str = field(default_factory=lambda: os.getenv("OSM_ACCESS_TOKEN", ""))

    # Request settings
    request_timeout: int = 30
    max_retries: int = 3
    retry_delay: float = 1.0

    # User agent / changeset metadata
    user_agent: str = "trailmerge/1.0"
    created_by: str = "trailmerge"
    changeset_comment: str = "Uploading simple POI, type: {point_type} using trailmerge"


@dataclass
class SnapConfig:
    """Line snapping thresholds (meters)"""
    # Padding around the target when querying the line cache
    search_padding_m: float = 300.0

    # A new point closer than this to a line/vertex is considered on it
    snap_threshold_m: float = 30.0

    # Planar conversion used for lon/lat distances
    meters_per_degree: float = 111000.0


@dataclass
class PreprocessConfig:
    """Feature preprocessing configuration"""
    # Languages that get their own title list from name:<lang> tags
    languages: List[str] = field(default_factory=lambda: ["he", "en", "ar", "ru"])

    # Search factor for elements no category rule matches
    default_search_factor: float = 0.5

    # Tag based classification, first matching rule wins
    category_rules: List[Dict[str, Any]] = field(default_factory=lambda: [
        {"key": "natural", "values": ["spring"], "icon": "icon-tint", "color": "blue", "category": "Water", "search_factor": 1.0},
        {"key": "amenity", "values": ["drinking_water"], "icon": "icon-tint", "color": "blue", "category": "Water", "search_factor": 1.0},
        {"key": "waterway", "values": ["stream", "river", "waterfall"], "icon": "icon-tint", "color": "blue", "category": "Water", "search_factor": 0.7},
        {"key": "historic", "values": None, "icon": "icon-ruins", "color": "#666666", "category": "Historic", "search_factor": 1.0},
        {"key": "natural", "values": ["peak", "cave_entrance"], "icon": "icon-peak", "color": "black", "category": "Natural", "search_factor": 1.0},
        {"key": "tourism", "values": ["viewpoint"], "icon": "icon-viewpoint", "color": "#008000", "category": "Viewpoint", "search_factor": 1.0},
        {"key": "tourism", "values": ["camp_site", "picnic_site"], "icon": "icon-campsite", "color": "#734a08", "category": "Camping", "search_factor": 1.0},
        {"key": "route", "values": ["hiking", "foot"], "icon": "icon-hike", "color": "black", "category": "Hiking", "search_factor": 1.0},
        {"key": "route", "values": ["bicycle", "mtb"], "icon": "icon-bike", "color": "black", "category": "Bicycle", "search_factor": 1.0},
        {"key": "highway", "values": None, "icon": "icon-map-signs", "color": "black", "category": "None", "search_factor": 0.5},
    ])

    # Fallback classification
    default_icon: str = "icon-search"
    default_color: str = "black"


@dataclass
class EditConfig:
    """Point editing configuration"""
    # Serialize edits that touch the same line / vertex inside this process
    serialize_target_edits: bool = True


@dataclass
class TrailMergeConfig:
    """Root configuration"""
    # Directory for the persisted line cache (None keeps it in memory only)
    cache_dir: Optional[str] = None

    api: OsmApiConfig = field(default_factory=OsmApiConfig)
    snap: SnapConfig = field(default_factory=SnapConfig)
    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    edit: EditConfig = field(default_factory=EditConfig)


# Global config instance
config = TrailMergeConfig()


def get_config() -> TrailMergeConfig:
    """Get global configuration"""
    return config


def validate_config(config: TrailMergeConfig) -> None:
    """
    Validate that all required configuration values are set.
    Raises ValueError if any required value is missing or invalid.
    """
    errors = []

    if config.api is None:
        errors.append("api configuration is required but not set")
    else:
        if not config.api.base_url:
            errors.append("api.base_url is required but not set")
        if config.api.max_retries < 1:
            errors.append(f"api.max_retries must be at least 1, got {config.api.max_retries}")

    if config.snap is None:
        errors.append("snap configuration is required but not set")
    else:
        if config.snap.snap_threshold_m <= 0:
            errors.append(f"snap.snap_threshold_m must be positive, got {config.snap.snap_threshold_m}")
        if config.snap.search_padding_m < config.snap.snap_threshold_m:
            errors.append(
                f"snap.search_padding_m ({config.snap.search_padding_m}) must not be smaller than "
                f"snap.snap_threshold_m ({config.snap.snap_threshold_m})"
            )
        if config.snap.meters_per_degree <= 0:
            errors.append(f"snap.meters_per_degree must be positive, got {config.snap.meters_per_degree}")

    if config.preprocess is None:
        errors.append("preprocess configuration is required but not set")
    else:
        for i, rule in enumerate(config.preprocess.category_rules):
            missing = [k for k in ("key", "icon", "color", "category") if k not in rule]
            if missing:
                errors.append(f"preprocess.category_rules[{i}] is missing {', '.join(missing)}")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ValueError(error_msg)
