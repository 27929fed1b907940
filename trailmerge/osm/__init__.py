"""
OpenStreetMap data access

- Models: Data structures (OSMNode, OSMWay, OSMRelation, ChangeSet)
- Parser: OSM JSON response parsing
- osmChange: XML serialization of change sets
- API client: authenticated OSM API communication
"""

from .models import OSMNode, OSMWay, OSMRelation, RelationMember, ChangeSet, NEW_ELEMENT_ID
from .parser import OSMResponseParser
from .api_client import OsmApiClient

__all__ = [
    "OSMNode",
    "OSMWay",
    "OSMRelation",
    "RelationMember",
    "ChangeSet",
    "NEW_ELEMENT_ID",
    "OSMResponseParser",
    "OsmApiClient",
]
