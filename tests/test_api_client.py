"""Tests for the OSM API client and osmChange serialization."""
import xml.etree.ElementTree as ET
from dataclasses import replace
from unittest.mock import MagicMock

import pytest
import requests

from trailmerge.config import OsmApiConfig
from trailmerge.errors import RemoteReadFailure, UploadConflictError, UploadFailure
from trailmerge.osm import OsmApiClient
from trailmerge.osm.models import ChangeSet, OSMNode, OSMRelation, RelationMember
from trailmerge.osm.osm_change import changeset_xml, osm_change_xml


def _response(json_data=None, text="", status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    response.json.return_value = json_data
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(response=response)
    return response


@pytest.fixture
def session():
    mock_session = MagicMock()
    mock_session.headers = {}
    return mock_session


@pytest.fixture
def client(session):
    config = OsmApiConfig(base_url="https://osm.example.org/", retry_delay=0.0)
    return OsmApiClient(access_token="secret", config=config, session=session)


class TestSession:
    """Tests for session setup."""

    def test_headers(self, client, session):
        assert session.headers["Authorization"] == "Bearer secret"
        assert session.headers["User-Agent"] == "trailmerge/1.0"

    def test_no_token_warns(self, session, log_messages):
        OsmApiClient(access_token="", config=OsmApiConfig(), session=session)
        assert "Authorization" not in session.headers
        assert any(r["level"].name == "WARNING" for r in log_messages)


class TestReads:
    """Tests for GET requests."""

    def test_get_node(self, client, session):
        session.get.return_value = _response({"elements": [
            {"type": "node", "id": 5, "lat": 31.0, "lon": 35.0, "version": 3, "tags": {"barrier": "yes"}}
        ]})

        node = client.get_node(5)

        assert node == OSMNode(id=5, lat=31.0, lon=35.0, tags={"barrier": "yes"}, version=3)
        assert session.get.call_args[0][0] == "https://osm.example.org/api/0.6/node/5.json"

    def test_get_complete_way(self, client, session):
        session.get.return_value = _response({"elements": [
            {"type": "node", "id": 1, "lat": 31.0, "lon": 35.0},
            {"type": "node", "id": 2, "lat": 31.0, "lon": 35.001},
            {"type": "way", "id": 500, "nodes": [1, 2], "version": 7, "tags": {"highway": "path"}},
        ]})

        way = client.get_complete_way(500)

        assert way.node_ids == [1, 2]
        assert way.version == 7
        assert session.get.call_args[0][0].endswith("/way/500/full.json")

    def test_retry_after_timeout(self, client, session):
        session.get.side_effect = [
            requests.exceptions.Timeout(),
            _response({"elements": [{"type": "node", "id": 5, "lat": 1.0, "lon": 2.0}]}),
        ]
        assert client.get_node(5).id == 5
        assert session.get.call_count == 2

    def test_gives_up_after_retries(self, client, session):
        session.get.side_effect = requests.exceptions.Timeout()
        with pytest.raises(RemoteReadFailure):
            client.get_node(5)
        assert session.get.call_count == 3

    def test_not_found_is_not_retried(self, client, session):
        session.get.return_value = _response(status_code=404)
        with pytest.raises(RemoteReadFailure) as excinfo:
            client.get_node(5)
        assert session.get.call_count == 1
        assert excinfo.value.status_code == 404

    def test_missing_element(self, client, session):
        session.get.return_value = _response({"elements": []})
        with pytest.raises(RemoteReadFailure):
            client.get_complete_way(500)


class TestWrites:
    """Tests for changeset calls."""

    def test_create_changeset(self, client, session):
        session.request.return_value = _response(text="1234\n")

        changeset_id = client.create_changeset("Uploading simple POI, type: tap using trailmerge")

        assert changeset_id == 1234
        method, url = session.request.call_args[0]
        assert method == "PUT"
        assert url == "https://osm.example.org/api/0.6/changeset/create"
        body = ET.fromstring(session.request.call_args[1]["data"])
        tags = {t.get("k"): t.get("v") for t in body.iter("tag")}
        assert tags == {"created_by": "trailmerge", "comment": "Uploading simple POI, type: tap using trailmerge"}

    def test_upload_and_close(self, client, session):
        session.request.return_value = _response()
        change = ChangeSet(create=(OSMNode(id=-1, lat=31.0, lon=35.0, tags={"amenity": "parking"}),))

        client.upload_changeset(77, change)
        client.close_changeset(77)

        calls = session.request.call_args_list
        assert calls[0][0] == ("POST", "https://osm.example.org/api/0.6/changeset/77/upload")
        assert calls[1][0] == ("PUT", "https://osm.example.org/api/0.6/changeset/77/close")
        assert calls[1][1]["data"] is None

    def test_conflict(self, client, session):
        session.request.return_value = _response(text="Version mismatch", status_code=409)
        change = ChangeSet(modify=(OSMNode(id=5, lat=31.0, lon=35.0, version=1),))

        with pytest.raises(UploadConflictError) as exc_info:
            client.upload_changeset(77, change)
        assert exc_info.value.status_code == 409

    def test_server_error(self, client, session):
        session.request.return_value = _response(text="oops", status_code=500)
        with pytest.raises(UploadFailure) as exc_info:
            client.create_changeset("comment")
        assert not isinstance(exc_info.value, UploadConflictError)
        assert exc_info.value.status_code == 500

    def test_connection_error_is_not_retried(self, client, session):
        session.request.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(UploadFailure):
            client.close_changeset(77)
        assert session.request.call_count == 1


class TestOsmChangeXml:
    """Tests for osmChange documents."""

    def test_create_and_modify(self, trail):
        new_node = OSMNode(id=-1, lat=31.0, lon=35.0005, tags={"barrier": "gate", "access": "no"})
        way = replace(trail, nodes=trail.nodes[:1] + (new_node,) + trail.nodes[1:])

        root = ET.fromstring(osm_change_xml(ChangeSet(create=(new_node,), modify=(way,)), 42))

        assert root.tag == "osmChange"
        assert root.get("version") == "0.6"
        node = root.find("create/node")
        assert node.get("id") == "-1"
        assert node.get("changeset") == "42"
        assert float(node.get("lat")) == 31.0
        assert float(node.get("lon")) == 35.0005
        assert node.get("version") is None
        assert {t.get("k"): t.get("v") for t in node.findall("tag")} == {"barrier": "gate", "access": "no"}

        way_element = root.find("modify/way")
        assert way_element.get("id") == "500"
        assert way_element.get("version") == "3"
        assert [nd.get("ref") for nd in way_element.findall("nd")] == ["101", "-1", "102", "103", "104", "105"]

    def test_relation_members(self, trail):
        relation = OSMRelation(id=9, members=(RelationMember(member=trail, role="forward"),),
                               tags={"type": "route"}, version=1)
        root = ET.fromstring(osm_change_xml(ChangeSet(modify=(relation,)), 42))
        member = root.find("modify/relation/member")
        assert (member.get("type"), member.get("ref"), member.get("role")) == ("way", "500", "forward")

    def test_empty_sections_omitted(self):
        root = ET.fromstring(osm_change_xml(ChangeSet(), 42))
        assert list(root) == []

    def test_changeset_document(self):
        root = ET.fromstring(changeset_xml({"comment": "hello"}))
        assert root.find("changeset/tag").get("v") == "hello"
