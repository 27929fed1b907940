"""
trailmerge - OSM element consolidation and simple point editing

- preprocessing: merge same-name OSM elements into enriched features
- editing: snap new points onto lines and upload them as OSM changesets
"""

__version__ = "1.0.0"
