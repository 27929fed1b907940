"""
osmChange serialization

Builds the XML documents the OSM API 0.6 expects for changeset creation and
diff uploads
"""

import xml.etree.ElementTree as ET
from typing import Dict, Mapping

from .models import ChangeSet, OSMNode, OSMWay, OSMRelation, GraphElement


def changeset_xml(tags: Mapping[str, str]) -> bytes:
    """<osm><changeset> document with the given changeset tags"""
    root = ET.Element("osm")
    changeset = ET.SubElement(root, "changeset")
    _add_tags(changeset, tags)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def osm_change_xml(change: ChangeSet, changeset_id: int, generator: str = "trailmerge") -> bytes:
    """
    Serialize a change set as an osmChange document

    Args:
        change: Elements to create and modify
        changeset_id: Open changeset the elements are uploaded to
        generator: Value of the generator attribute
    """
    root = ET.Element("osmChange", {"version": "0.6", "generator": generator})
    if change.create:
        create = ET.SubElement(root, "create")
        for element in change.create:
            _add_element(create, element, changeset_id)
    if change.modify:
        modify = ET.SubElement(root, "modify")
        for element in change.modify:
            _add_element(modify, element, changeset_id)
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


def _add_element(parent: ET.Element, element: GraphElement, changeset_id: int):
    attributes: Dict[str, str] = {"id": str(element.id), "changeset": str(changeset_id)}
    if element.version is not None:
        attributes["version"] = str(element.version)

    if isinstance(element, OSMNode):
        attributes["lat"] = repr(element.lat)
        attributes["lon"] = repr(element.lon)
        node = ET.SubElement(parent, "node", attributes)
        _add_tags(node, element.tags)
    elif isinstance(element, OSMWay):
        way = ET.SubElement(parent, "way", attributes)
        for node_id in element.node_ids:
            ET.SubElement(way, "nd", {"ref": str(node_id)})
        _add_tags(way, element.tags)
    elif isinstance(element, OSMRelation):
        relation = ET.SubElement(parent, "relation", attributes)
        for member in element.members:
            ET.SubElement(relation, "member", {
                "type": member.member.kind,
                "ref": str(member.member.id),
                "role": member.role
            })
        _add_tags(relation, element.tags)
    else:
        raise TypeError(f"Can't serialize {type(element).__name__}")


def _add_tags(parent: ET.Element, tags: Mapping[str, str]):
    for key, value in tags.items():
        ET.SubElement(parent, "tag", {"k": key, "v": str(value)})
