"""
Pydantic models for requests and GeoJSON output
"""

from enum import Enum
from typing import List, Dict, Any, Literal
from pydantic import BaseModel, Field


# ============================================================
# GeoJSON Types
# ============================================================

class GeoJSONFeature(BaseModel):
    type: Literal["Feature"] = "Feature"
    geometry: Dict[str, Any]  # shapely mapping(), [lon, lat] order
    properties: Dict[str, Any] = Field(default_factory=dict)


class GeoJSONFeatureCollection(BaseModel):
    type: Literal["FeatureCollection"] = "FeatureCollection"
    features: List[GeoJSONFeature] = Field(default_factory=list)


# ============================================================
# Request Models
# ============================================================

class SimplePointType(str, Enum):
    TAP = "tap"
    PARKING = "parking"
    BOLLARDS = "bollards"
    CATTLE_GRID = "cattle_grid"
    CLOSED_GATE = "closed_gate"
    OPEN_GATE = "open_gate"


class LatLng(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)


class AddSimplePointRequest(BaseModel):
    lat_lng: LatLng
    point_type: SimplePointType
