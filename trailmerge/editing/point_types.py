"""
Simple point types that can be added to the map
"""

from typing import Dict, Union

from ..errors import UnsupportedPointType
from ..models import SimplePointType


POINT_TYPE_TAGS: Dict[SimplePointType, Dict[str, str]] = {
    SimplePointType.TAP: {"amenity": "drinking_water"},
    SimplePointType.PARKING: {"amenity": "parking"},
    SimplePointType.BOLLARDS: {"barrier": "yes", "motor_vehicle": "no"},
    SimplePointType.CATTLE_GRID: {"barrier": "cattle_grid"},
    SimplePointType.CLOSED_GATE: {"barrier": "gate", "access": "no"},
    SimplePointType.OPEN_GATE: {"barrier": "gate", "access": "yes"},
}

# Barriers only make sense on the line they block
NEEDS_LINE_ATTACHMENT: Dict[SimplePointType, bool] = {
    SimplePointType.TAP: False,
    SimplePointType.PARKING: False,
    SimplePointType.BOLLARDS: True,
    SimplePointType.CATTLE_GRID: True,
    SimplePointType.CLOSED_GATE: True,
    SimplePointType.OPEN_GATE: True,
}


def to_point_type(point_type: Union[SimplePointType, str]) -> SimplePointType:
    try:
        return SimplePointType(point_type)
    except ValueError:
        raise UnsupportedPointType(f"Invalid point type {point_type}") from None


def point_type_tags(point_type: Union[SimplePointType, str]) -> Dict[str, str]:
    """Tags of a new point of the given type (a fresh dict)"""
    point_type = to_point_type(point_type)
    if point_type not in POINT_TYPE_TAGS:
        raise UnsupportedPointType(f"Invalid point type {point_type}")
    return dict(POINT_TYPE_TAGS[point_type])


def needs_line_attachment(point_type: Union[SimplePointType, str]) -> bool:
    point_type = to_point_type(point_type)
    if point_type not in NEEDS_LINE_ATTACHMENT:
        raise UnsupportedPointType(f"Invalid point type {point_type}")
    return NEEDS_LINE_ATTACHMENT[point_type]
