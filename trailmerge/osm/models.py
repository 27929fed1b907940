"""
OSM data models

Immutable data classes for OSM nodes, ways and relations. Every
transformation creates new instances with dataclasses.replace.
"""

from typing import Dict, Iterator, List, Optional, Set, Tuple, Union
from dataclasses import dataclass, field


@dataclass(frozen=True)
class OSMNode:
    """Represents an OSM node (point)"""
    id: int
    lat: float
    lon: float
    tags: Dict[str, str] = field(default_factory=dict)
    version: Optional[int] = None

    @property
    def kind(self) -> str:
        return "node"

    def get_coordinates(self) -> List[float]:
        """Get coordinates as [lon, lat]"""
        return [self.lon, self.lat]


@dataclass(frozen=True)
class OSMWay:
    """Represents an OSM way (line or polygon) with its resolved nodes"""
    id: int
    nodes: Tuple[OSMNode, ...]
    tags: Dict[str, str] = field(default_factory=dict)
    version: Optional[int] = None

    @property
    def kind(self) -> str:
        return "way"

    @property
    def node_ids(self) -> List[int]:
        return [n.id for n in self.nodes]

    @property
    def first_node_id(self) -> Optional[int]:
        return self.nodes[0].id if self.nodes else None

    @property
    def last_node_id(self) -> Optional[int]:
        return self.nodes[-1].id if self.nodes else None

    @property
    def is_closed(self) -> bool:
        """First and last vertex are the same node"""
        return len(self.nodes) > 1 and self.nodes[0].id == self.nodes[-1].id

    @property
    def is_oneway(self) -> bool:
        return self.tags.get("oneway") == "true"

    def get_coordinates(self) -> List[List[float]]:
        """Get coordinates as [lon, lat] list"""
        return [[n.lon, n.lat] for n in self.nodes]


@dataclass(frozen=True)
class RelationMember:
    """A relation member with its role"""
    member: "GraphElement"
    role: str = ""


@dataclass(frozen=True)
class OSMRelation:
    """Represents an OSM relation with resolved members"""
    id: int
    members: Tuple[RelationMember, ...]
    tags: Dict[str, str] = field(default_factory=dict)
    version: Optional[int] = None

    @property
    def kind(self) -> str:
        return "relation"

    def iter_ways(self) -> Iterator[OSMWay]:
        """Yield every way reachable from this relation, including through sub-relations"""
        yield from (way for way, _ in self.iter_ways_with_roles())

    def iter_ways_with_roles(self) -> Iterator[Tuple[OSMWay, str]]:
        visited: Set[int] = set()
        stack = [self]
        while stack:
            relation = stack.pop()
            if relation.id in visited:
                continue
            visited.add(relation.id)
            sub_relations = []
            for member in relation.members:
                if isinstance(member.member, OSMWay):
                    yield member.member, member.role
                elif isinstance(member.member, OSMRelation):
                    sub_relations.append(member.member)
            # Keep member order: first sub-relation is visited first
            stack.extend(reversed(sub_relations))


GraphElement = Union[OSMNode, OSMWay, OSMRelation]


# Id of elements that don't exist on the server yet
NEW_ELEMENT_ID = -1


@dataclass(frozen=True)
class ChangeSet:
    """Elements to create and modify, uploaded as one osmChange"""
    create: Tuple[GraphElement, ...] = ()
    modify: Tuple[GraphElement, ...] = ()

    def __post_init__(self):
        create_ids = [(e.kind, e.id) for e in self.create]
        if len(create_ids) != len(set(create_ids)):
            raise ValueError(f"Duplicate ids in created elements: {create_ids}")
        for element in self.create:
            if element.id >= 0:
                raise ValueError(f"Created {element.kind} must have a negative temporary id, got {element.id}")
        for element in self.modify:
            if element.id < 0:
                raise ValueError(f"Modified {element.kind} must have a real id, got {element.id}")

    def modified_ways(self) -> List[OSMWay]:
        return [e for e in self.modify if isinstance(e, OSMWay)]
