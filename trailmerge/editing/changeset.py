"""
Change set orchestration

Turns an edit decision into an osmChange, uploads it in its own changeset and
refreshes the local line cache afterwards
"""

from contextlib import nullcontext
from dataclasses import dataclass, replace
from typing import Any, Iterable, Optional, Protocol, Union
from loguru import logger

from ..config import get_config, TrailMergeConfig
from ..errors import CacheRefreshFailure, UploadConflictError
from ..models import SimplePointType
from ..osm.models import ChangeSet, OSMNode, OSMWay, NEW_ELEMENT_ID
from ..preprocessing.features import Feature, FeatureBuilder
from ..preprocessing.merger import GraphMerger
from ..preprocessing.tags import merge_overriding_tags
from .locks import KeyedLocks
from .point_types import to_point_type
from .snap import CreatePoint, EditDecision, InsertVertex, LineSnapInserter, ModifyVertex


class LineStore(Protocol):
    """Writable line cache, LineCache implements it"""

    def replace(self, line_id: int, features: Iterable[Feature]):
        ...


@dataclass
class AddPointResult:
    changeset_id: int
    decision: EditDecision
    change: ChangeSet
    cache_refreshed: bool = True


class ChangeSetOrchestrator:
    """
    Adds simple points to OSM

    The remote calls run strictly in order: open changeset, upload, close.
    A failure in any of them propagates and leaves an opened changeset to
    time out on the server.
    """

    def __init__(
        self,
        inserter: LineSnapInserter,
        line_cache: LineStore,
        feature_builder: Optional[FeatureBuilder] = None,
        config: Optional[TrailMergeConfig] = None,
        locks: Optional[KeyedLocks] = None
    ):
        self.config = config or get_config()
        self.inserter = inserter
        self.line_cache = line_cache
        self.feature_builder = feature_builder or FeatureBuilder(config=self.config.preprocess)
        self.merger = GraphMerger()
        self.locks = locks or KeyedLocks()

    def add(self, api: Any, lat: float, lon: float, point_type: Union[SimplePointType, str]) -> AddPointResult:
        """
        Add a point of the given type at the given location

        Args:
            api: Authenticated OSM API client of the editing user
            lat: Latitude of the new point
            lon: Longitude of the new point
            point_type: Type of the new point

        Returns:
            AddPointResult with the changeset id and what was uploaded

        Raises:
            UnsupportedPointType, NoNearbyLineError, UploadFailure (RemoteReadFailure when a server read fails)
        """
        point_type = to_point_type(point_type)
        decision = self.inserter.decide(lat, lon, point_type)
        with self._hold_target(decision):
            change = self.build_change(api, decision)
            changeset_id = api.create_changeset(self.config.api.changeset_comment.format(point_type=point_type.value))
            api.upload_changeset(changeset_id, change)
            api.close_changeset(changeset_id)
            cache_refreshed = self.refresh_modified_lines(api, change)
        return AddPointResult(
            changeset_id=changeset_id,
            decision=decision,
            change=change,
            cache_refreshed=cache_refreshed
        )

    def build_change(self, api: Any, decision: EditDecision) -> ChangeSet:
        """
        Build the osmChange for a decision

        New elements get NEW_ELEMENT_ID, the server assigns the real id.
        """
        if isinstance(decision, CreatePoint):
            return ChangeSet(create=(self._new_node(decision.lat, decision.lon, decision.tags),))

        if isinstance(decision, ModifyVertex):
            node = api.get_node(decision.vertex_id)
            updated_node = replace(node, tags=merge_overriding_tags(decision.tags, node.tags))
            return ChangeSet(modify=(updated_node,))

        if isinstance(decision, InsertVertex):
            way = api.get_complete_way(decision.line_id)
            index = self._insert_position(way, decision)
            new_node = self._new_node(decision.lat, decision.lon, decision.tags)
            nodes = way.nodes[:index] + (new_node,) + way.nodes[index:]
            return ChangeSet(create=(new_node,), modify=(replace(way, nodes=nodes),))

        raise TypeError(f"Unknown edit decision {type(decision).__name__}")

    def refresh_modified_lines(self, api: Any, change: ChangeSet) -> bool:
        """
        Refresh the cached features of every modified line

        Failures are logged, the edit itself already succeeded.

        Returns:
            True if every modified line was refreshed
        """
        refreshed = True
        for way in change.modified_ways():
            try:
                self.refresh_line(api, way.id)
            except CacheRefreshFailure as e:
                logger.warning(f"Line cache refresh failed, cache is stale until the next rebuild: {e}")
                refreshed = False
        return refreshed

    def refresh_line(self, api: Any, line_id: int):
        try:
            complete_way = api.get_complete_way(line_id)
            merged_ways = [e for e in self.merger.merge([complete_way]) if isinstance(e, OSMWay)]
            features = self.feature_builder.preprocess_lines(merged_ways)
            self.line_cache.replace(line_id, features)
        except Exception as e:
            raise CacheRefreshFailure(f"Failed to refresh line {line_id}: {e}") from e

    @staticmethod
    def _insert_position(way: OSMWay, decision: InsertVertex) -> int:
        """
        Position of the new vertex in the server copy of the way

        The vertices the decision was made between must still be adjacent on
        the server, the cached index is only a tie breaker for ways that
        pass the same pair twice.

        Raises:
            UploadConflictError: The pair is no longer adjacent
        """
        node_ids = way.node_ids
        positions = [
            i + 1 for i in range(len(node_ids) - 1)
            if node_ids[i] == decision.previous_vertex_id and node_ids[i + 1] == decision.next_vertex_id
        ]
        if not positions:
            raise UploadConflictError(
                f"Vertices {decision.previous_vertex_id} and {decision.next_vertex_id} are no longer "
                f"adjacent in line {way.id} on the server"
            )
        return min(positions, key=lambda position: abs(position - decision.index))

    def _hold_target(self, decision: EditDecision):
        if not self.config.edit.serialize_target_edits:
            return nullcontext()
        if isinstance(decision, InsertVertex):
            return self.locks.hold(("way", decision.line_id))
        if isinstance(decision, ModifyVertex):
            return self.locks.hold(("node", decision.vertex_id))
        return nullcontext()

    @staticmethod
    def _new_node(lat: float, lon: float, tags) -> OSMNode:
        return OSMNode(id=NEW_ELEMENT_ID, lat=lat, lon=lon, tags=dict(tags))
