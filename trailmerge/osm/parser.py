"""
OSM response parser

Parses OSM API / Overpass JSON responses into complete OSMNode, OSMWay and
OSMRelation objects
"""

from typing import Dict, Any, List, Optional, Set
from loguru import logger

from .models import OSMNode, OSMWay, OSMRelation, RelationMember, GraphElement


class OSMResponseParser:
    """Parses OSM JSON responses"""

    @staticmethod
    def parse_elements(data: Dict[str, Any]) -> List[GraphElement]:
        """
        Parse a JSON response into complete elements

        Ways get their nodes resolved, relations get their way, node and
        sub-relation members resolved. Members missing from the response
        are dropped (the response did not include them).

        Args:
            data: JSON response with an "elements" list

        Returns:
            List of parsed elements, in response order
        """
        raw_elements = data.get("elements", [])
        nodes: Dict[int, OSMNode] = {}
        for element in raw_elements:
            if element.get("type") == "node":
                nodes[element["id"]] = OSMResponseParser.parse_node(element)

        ways: Dict[int, OSMWay] = {}
        for element in raw_elements:
            if element.get("type") == "way":
                way_nodes = []
                for node_id in element.get("nodes", []):
                    if node_id in nodes:
                        way_nodes.append(nodes[node_id])
                    else:
                        logger.warning(f"Way {element['id']} references missing node {node_id}")
                ways[element["id"]] = OSMWay(
                    id=element["id"],
                    nodes=tuple(way_nodes),
                    tags=dict(element.get("tags", {})),
                    version=element.get("version")
                )

        raw_relations = {e["id"]: e for e in raw_elements if e.get("type") == "relation"}
        relations: Dict[int, OSMRelation] = {}
        for relation_id in raw_relations:
            OSMResponseParser._resolve_relation(relation_id, raw_relations, nodes, ways, relations, set())

        result: List[GraphElement] = []
        for element in raw_elements:
            element_type = element.get("type")
            if element_type == "node":
                result.append(nodes[element["id"]])
            elif element_type == "way":
                result.append(ways[element["id"]])
            elif element_type == "relation":
                result.append(relations[element["id"]])
        return result

    @staticmethod
    def parse_node(element: Dict[str, Any]) -> OSMNode:
        return OSMNode(
            id=element["id"],
            lat=element["lat"],
            lon=element["lon"],
            tags=dict(element.get("tags", {})),
            version=element.get("version")
        )

    @staticmethod
    def _resolve_relation(
        relation_id: int,
        raw_relations: Dict[int, Dict[str, Any]],
        nodes: Dict[int, OSMNode],
        ways: Dict[int, OSMWay],
        relations: Dict[int, OSMRelation],
        in_progress: Set[int]
    ) -> Optional[OSMRelation]:
        if relation_id in relations:
            return relations[relation_id]
        if relation_id in in_progress:
            logger.warning(f"Relation {relation_id} is part of a membership cycle, cutting it")
            return None
        raw = raw_relations[relation_id]
        in_progress.add(relation_id)

        members = []
        for member in raw.get("members", []):
            ref = member.get("ref")
            role = member.get("role", "")
            member_type = member.get("type")
            if member_type == "node" and ref in nodes:
                members.append(RelationMember(member=nodes[ref], role=role))
            elif member_type == "way" and ref in ways:
                members.append(RelationMember(member=ways[ref], role=role))
            elif member_type == "relation" and ref in raw_relations:
                sub_relation = OSMResponseParser._resolve_relation(
                    ref, raw_relations, nodes, ways, relations, in_progress
                )
                if sub_relation is not None:
                    members.append(RelationMember(member=sub_relation, role=role))

        in_progress.discard(relation_id)
        relations[relation_id] = OSMRelation(
            id=relation_id,
            members=tuple(members),
            tags=dict(raw.get("tags", {})),
            version=raw.get("version")
        )
        return relations[relation_id]
