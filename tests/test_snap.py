"""Tests for snapping new points onto lines."""
import pytest
from shapely.geometry import LineString

from trailmerge.editing.snap import CreatePoint, InsertVertex, LineSnapInserter, ModifyVertex
from trailmerge.errors import NoNearbyLineError, UnsupportedPointType
from trailmerge.models import SimplePointType
from trailmerge.preprocessing.features import Feature, FeatureAttributes


@pytest.fixture
def inserter(cached_trail, snap_config):
    return LineSnapInserter(cached_trail, snap_config)


class TestThresholds:
    """Meter settings are converted to degrees."""

    def test_snap_threshold(self, inserter):
        assert inserter.snap_threshold == pytest.approx(30 / 111000)

    def test_search_padding(self, inserter):
        assert inserter.search_padding == pytest.approx(300 / 111000)


class TestDecide:
    """Tests for the create / modify / insert decision."""

    def test_tap_is_standalone(self, inserter):
        """A tap is never attached, even right on a vertex."""
        decision = inserter.decide(31.0, 35.001, SimplePointType.TAP)
        assert decision == CreatePoint(lat=31.0, lon=35.001, tags={"amenity": "drinking_water"})

    def test_parking_far_from_lines(self, inserter):
        decision = inserter.decide(32.0, 34.0, "parking")
        assert isinstance(decision, CreatePoint)
        assert decision.tags == {"amenity": "parking"}

    def test_gate_near_interior_vertex_modifies_it(self, inserter):
        decision = inserter.decide(31.0001, 35.001, SimplePointType.CLOSED_GATE)
        assert decision == ModifyVertex(vertex_id=102, tags={"barrier": "gate", "access": "no"})

    def test_gate_near_endpoint_modifies_endpoint(self, inserter):
        """The closest vertex is an end of the line, no vertex is inserted past it."""
        decision = inserter.decide(31.0002, 35.0003, SimplePointType.OPEN_GATE)
        assert decision == ModifyVertex(vertex_id=101, tags={"barrier": "gate", "access": "yes"})

    def test_insert_before_closest_vertex(self, inserter):
        """Closer to the segment before the closest vertex, inserted before it."""
        decision = inserter.decide(30.99995, 35.0006, SimplePointType.BOLLARDS)
        assert isinstance(decision, InsertVertex)
        assert decision.line_id == 500
        assert decision.index == 1
        assert (decision.previous_vertex_id, decision.next_vertex_id) == (101, 102)
        assert (decision.lat, decision.lon) == (30.99995, 35.0006)
        assert decision.tags == {"barrier": "yes", "motor_vehicle": "no"}

    def test_insert_after_closest_vertex(self, inserter):
        """Closer to the segment after the closest vertex, inserted after it."""
        decision = inserter.decide(31.0005, 35.0014, SimplePointType.CATTLE_GRID)
        assert isinstance(decision, InsertVertex)
        assert decision.index == 2
        assert (decision.previous_vertex_id, decision.next_vertex_id) == (102, 103)
        assert decision.tags == {"barrier": "cattle_grid"}

    def test_no_line_nearby(self, inserter):
        with pytest.raises(NoNearbyLineError):
            inserter.decide(31.01, 35.0, SimplePointType.CLOSED_GATE)

    def test_empty_cache(self, line_cache, snap_config):
        with pytest.raises(NoNearbyLineError):
            LineSnapInserter(line_cache, snap_config).decide(31.0, 35.0, SimplePointType.CLOSED_GATE)

    def test_unknown_type(self, inserter):
        with pytest.raises(UnsupportedPointType):
            inserter.decide(31.0, 35.0, "bench")

    def test_unknown_type_is_value_error(self, inserter):
        with pytest.raises(ValueError):
            inserter.decide(31.0, 35.0, "bench")

    def test_decision_tags_are_fresh(self, inserter):
        """Changing a decision's tags doesn't leak into the next decision."""
        first = inserter.decide(31.0, 35.0, SimplePointType.TAP)
        first.tags["note"] = "changed"
        second = inserter.decide(31.0, 35.0, SimplePointType.TAP)
        assert second.tags == {"amenity": "drinking_water"}


class TestGetClosestLine:
    """Tests for picking the line to snap to."""

    def test_closest_of_two(self, line_cache, snap_config, feature_builder, trail, make_node, make_way):
        other = make_way(600, [make_node(201, lat=31.0002, lon=35.0), make_node(202, lat=31.0002, lon=35.001)],
                         tags={"highway": "track"})
        line_cache.update(feature_builder.preprocess_lines([trail, other]))
        inserter = LineSnapInserter(line_cache, snap_config)

        closest = inserter.get_closest_line(31.00015, 35.0005)

        assert closest.feature.osm_id == 600
        assert closest.distance == pytest.approx(0.00005)

    def test_line_without_vertex_ids_is_skipped(self, line_cache, snap_config):
        feature = Feature(
            geometry=LineString([(35.0, 31.0), (35.001, 31.0)]),
            attributes={FeatureAttributes.ID: "way_7", FeatureAttributes.POI_OSM_NODES: [1]}
        )
        line_cache.update([feature])
        inserter = LineSnapInserter(line_cache, snap_config)
        assert inserter.get_closest_line(31.0, 35.0005) is None


class TestPerpendicularDistance:
    """Distance to the line through two vertices."""

    def test_point_above_segment(self):
        assert LineSnapInserter.perpendicular_distance((0, 0), (2, 0), (1, 1)) == pytest.approx(1.0)

    def test_point_past_segment_end(self):
        """The line is not clipped at the segment ends."""
        assert LineSnapInserter.perpendicular_distance((0, 0), (1, 0), (5, 2)) == pytest.approx(2.0)

    def test_degenerate_segment(self):
        assert LineSnapInserter.perpendicular_distance((1, 1), (1, 1), (4, 5)) == pytest.approx(5.0)
