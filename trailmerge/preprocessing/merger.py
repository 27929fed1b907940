"""
OSM element merging

Consolidates a group of elements that share a name into a minimal set of
elements: ways that are members of a relation in the group are folded into
the relation, and ways that share an end node are chained together.
"""

from dataclasses import replace
from typing import List, Optional, Sequence, Tuple
from loguru import logger

from ..errors import MergeAmbiguity
from ..osm.models import OSMNode, OSMWay, OSMRelation, GraphElement
from .tags import merge_missing_tags


class GraphMerger:
    """Merges same-name groups of OSM elements"""

    def merge(self, elements: Sequence[GraphElement]) -> List[GraphElement]:
        """
        Merge a group of elements sharing a name

        Nodes are returned as they are, ways are absorbed into relations or
        chained together, relations get the tags of the ways they absorbed.

        Args:
            elements: Elements of one name group

        Returns:
            Merged elements: nodes, then ways, then relations
        """
        if len(elements) == 1:
            return list(elements)

        nodes = [e for e in elements if isinstance(e, OSMNode)]
        ways = [e for e in elements if isinstance(e, OSMWay)]
        relations = [e for e in elements if isinstance(e, OSMRelation)]
        if len(nodes) == len(elements) or len(relations) == len(elements):
            return list(elements)

        relations, ways = self.merge_ways_into_relations(relations, ways)
        ways = self.merge_ways(ways)

        merged: List[GraphElement] = []
        merged.extend(nodes)
        merged.extend(ways)
        merged.extend(relations)
        return merged

    def merge_ways_into_relations(
        self,
        relations: Sequence[OSMRelation],
        ways: Sequence[OSMWay]
    ) -> Tuple[List[OSMRelation], List[OSMWay]]:
        """
        Fold ways that are relation members into their relation

        Returns:
            Tuple of (relations with absorbed tags, ways left to merge)
        """
        ways_to_keep = list(ways)
        updated_relations = []
        for relation in relations:
            tags = relation.tags
            for member_way in relation.iter_ways():
                way = next((w for w in ways_to_keep if w.id == member_way.id), None)
                if way is None:
                    continue
                tags = merge_missing_tags(way.tags, tags)
                ways_to_keep = [w for w in ways_to_keep if w is not way]
                logger.debug(f"Way {way.id} absorbed into relation {relation.id}")
            updated_relations.append(relation if tags is relation.tags else replace(relation, tags=tags))
        return updated_relations, ways_to_keep

    def merge_ways(self, ways: Sequence[OSMWay]) -> List[OSMWay]:
        """
        Chain ways that start or end with the same node

        The first way seeds the merged list. Every pass tries to attach the
        pending ways (last to first) to a merged way; a pass that attaches
        nothing promotes the first pending way to a merged way of its own.

        Args:
            ways: The ways to merge

        Returns:
            New list of merged ways
        """
        if not ways:
            return []
        for way in ways:
            if len(way.nodes) < 2:
                logger.warning(f"Way {way.id} has {len(way.nodes)} nodes, leaving it as is")

        merged_ways = [ways[0]]
        ways_to_merge = list(ways[1:])
        while ways_to_merge:
            merged_ways, ways_to_merge, found_a_way_to_merge_to = self._merge_pass(merged_ways, ways_to_merge)
            if found_a_way_to_merge_to:
                continue
            merged_ways = merged_ways + [ways_to_merge[0]]
            ways_to_merge = ways_to_merge[1:]
        return merged_ways

    def _merge_pass(
        self,
        merged_ways: List[OSMWay],
        ways_to_merge: List[OSMWay]
    ) -> Tuple[List[OSMWay], List[OSMWay], bool]:
        merged_ways = list(merged_ways)
        remaining = []
        found = False
        for way_to_merge in reversed(ways_to_merge):
            target_index = self._find_way_to_merge_to(merged_ways, way_to_merge)
            if target_index is None:
                remaining.append(way_to_merge)
                continue
            merged_ways[target_index] = self.splice(merged_ways[target_index], way_to_merge)
            found = True
        remaining.reverse()
        return merged_ways, remaining, found

    def _find_way_to_merge_to(self, merged_ways: List[OSMWay], way_to_merge: OSMWay) -> Optional[int]:
        if not self._is_extendable(way_to_merge):
            return None
        for index, merged_way in enumerate(merged_ways):
            if self._is_extendable(merged_way) and self.can_be_merged(merged_way, way_to_merge):
                return index
        return None

    @staticmethod
    def _is_extendable(way: OSMWay) -> bool:
        return len(way.nodes) >= 2 and not way.is_closed

    @staticmethod
    def can_be_merged(way1: OSMWay, way2: OSMWay) -> bool:
        return (way1.last_node_id == way2.first_node_id or
                way1.first_node_id == way2.last_node_id or
                GraphMerger.can_be_reverse_merged(way1, way2))

    @staticmethod
    def can_be_reverse_merged(way1: OSMWay, way2: OSMWay) -> bool:
        return (way1.first_node_id == way2.first_node_id or
                way1.last_node_id == way2.last_node_id)

    def splice(self, way_to_merge_to: OSMWay, way_to_merge: OSMWay) -> OSMWay:
        """
        Append or prepend way_to_merge to way_to_merge_to

        On a head-to-head or tail-to-tail match the absorbed way is reversed,
        unless it is oneway, in which case the accumulating way is reversed.

        Returns:
            New way with way_to_merge_to's id and both ways' tags
        """
        if way_to_merge_to.is_closed:
            raise MergeAmbiguity(f"Way {way_to_merge_to.id} is a closed ring and can't be extended")

        target_nodes = way_to_merge_to.nodes
        nodes = way_to_merge.nodes
        if self.can_be_reverse_merged(way_to_merge_to, way_to_merge):
            if way_to_merge.is_oneway:
                target_nodes = tuple(reversed(target_nodes))
            else:
                nodes = tuple(reversed(nodes))

        if nodes[-1].id == target_nodes[0].id:
            merged_nodes = nodes[:-1] + target_nodes
        elif nodes[0].id == target_nodes[-1].id:
            merged_nodes = target_nodes + nodes[1:]
        else:
            raise MergeAmbiguity(f"Ways {way_to_merge_to.id} and {way_to_merge.id} do not share an end node")

        return replace(
            way_to_merge_to,
            nodes=merged_nodes,
            tags=merge_missing_tags(way_to_merge.tags, way_to_merge_to.tags)
        )
