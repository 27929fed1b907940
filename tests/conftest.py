"""Pytest fixtures for trailmerge tests."""
import pytest
from loguru import logger


@pytest.fixture
def make_node():
    """Factory for OSMNode, lat/lon default to the id."""
    from trailmerge.osm.models import OSMNode

    def _make(node_id, lat=None, lon=None, tags=None, version=None):
        return OSMNode(
            id=node_id,
            lat=float(node_id if lat is None else lat),
            lon=float(node_id if lon is None else lon),
            tags=dict(tags or {}),
            version=version
        )
    return _make


@pytest.fixture
def make_way(make_node):
    """Factory for OSMWay from node ids or OSMNode objects."""
    from trailmerge.osm.models import OSMWay

    def _make(way_id, nodes, tags=None, version=None):
        resolved = tuple(n if not isinstance(n, int) else make_node(n) for n in nodes)
        return OSMWay(id=way_id, nodes=resolved, tags=dict(tags or {}), version=version)
    return _make


@pytest.fixture
def make_relation():
    """Factory for OSMRelation from (element, role) pairs or plain elements."""
    from trailmerge.osm.models import OSMRelation, RelationMember

    def _make(relation_id, members, tags=None):
        resolved = []
        for member in members:
            if isinstance(member, tuple):
                resolved.append(RelationMember(member=member[0], role=member[1]))
            else:
                resolved.append(RelationMember(member=member))
        return OSMRelation(id=relation_id, members=tuple(resolved), tags=dict(tags or {}))
    return _make


@pytest.fixture
def log_messages():
    """Collect loguru messages emitted during the test."""
    messages = []
    handler_id = logger.add(lambda message: messages.append(message.record), level="DEBUG")
    yield messages
    logger.remove(handler_id)


@pytest.fixture
def feature_builder():
    """FeatureBuilder with default configuration."""
    from trailmerge.config import PreprocessConfig
    from trailmerge.preprocessing import FeatureBuilder
    return FeatureBuilder(config=PreprocessConfig())


@pytest.fixture
def line_cache():
    """Empty in-memory line cache."""
    from trailmerge.line_cache import LineCache
    return LineCache()


@pytest.fixture
def snap_config():
    """Snap configuration with the default thresholds."""
    from trailmerge.config import SnapConfig
    return SnapConfig()


@pytest.fixture
def trail(make_node, make_way):
    """
    Trail with vertices 0.001 degrees (about 111 m) apart, vertex ids 101..105:
    east along latitude 31.0, north-east to 103, then east along 31.001.
    """
    coordinates = [(31.0, 35.0), (31.0, 35.001), (31.001, 35.002), (31.001, 35.003), (31.001, 35.004)]
    nodes = [make_node(101 + i, lat=lat, lon=lon) for i, (lat, lon) in enumerate(coordinates)]
    return make_way(500, nodes, tags={"highway": "path", "name": "Trail"}, version=3)


@pytest.fixture
def cached_trail(trail, line_cache, feature_builder):
    """Line cache holding the trail."""
    line_cache.update(feature_builder.preprocess_lines([trail]))
    return line_cache
