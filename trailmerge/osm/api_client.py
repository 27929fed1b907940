"""
OSM API client

Handles communication with the authenticated OSM API 0.6 including:
- Retry logic for reads
- Changeset open / upload / close
- Error mapping for writes
"""

import time
import requests
from typing import Dict, Any, Optional
from loguru import logger

from ..config import get_config, OsmApiConfig
from ..errors import RemoteReadFailure, UploadConflictError, UploadFailure
from .models import ChangeSet, OSMNode, OSMWay
from .osm_change import changeset_xml, osm_change_xml
from .parser import OSMResponseParser


class OsmApiClient:
    """Client for the OSM editing API, authenticated with an OAuth2 bearer token"""

    def __init__(self, access_token: Optional[str] = None, config: Optional[OsmApiConfig] = None,
                 session: Optional[requests.Session] = None):
        self.config = config or get_config().api
        self.base_url = self.config.base_url.rstrip("/") + "/api/0.6"
        self.timeout = self.config.request_timeout
        self.parser = OSMResponseParser()
        self.session = session or requests.Session()
        self.session.headers["User-Agent"] = self.config.user_agent
        token = access_token if access_token is not None else self.config.access_token
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"
        else:
            logger.warning("No OSM access token configured - write requests will be rejected")

    # ============================================================
    # Reads
    # ============================================================

    def get_json(self, path: str, retry_delay: Optional[float] = None) -> Dict[str, Any]:
        """
        GET a JSON resource with retry logic

        Args:
            path: Path below /api/0.6
            retry_delay: Initial delay between retries (increases with attempts)

        Returns:
            Parsed JSON response

        Raises:
            RemoteReadFailure: If the request fails after all retries
        """
        retry_delay = self.config.retry_delay if retry_delay is None else retry_delay
        url = f"{self.base_url}/{path.lstrip('/')}"
        max_retries = self.config.max_retries

        for attempt in range(max_retries):
            try:
                response = self.session.get(url, timeout=self.timeout)
                response.raise_for_status()
                return response.json()
            except requests.exceptions.Timeout:
                wait_time = retry_delay * (attempt + 1)
                logger.warning(f"OSM API timeout on {path} (attempt {attempt + 1}/{max_retries}). Retrying in {wait_time}s...")
                if attempt < max_retries - 1:
                    time.sleep(wait_time)
                else:
                    logger.error(f"OSM API failed: timeout on {path} after {max_retries} attempts")
                    raise RemoteReadFailure(f"OSM API timeout on {path} after {max_retries} attempts")
            except requests.exceptions.HTTPError as e:
                status = e.response.status_code if e.response is not None else None
                if status in [429, 504] and attempt < max_retries - 1:
                    wait_time = retry_delay * (attempt + 1)
                    logger.warning(f"OSM API {status} on {path} (attempt {attempt + 1}/{max_retries}). Retrying in {wait_time}s...")
                    time.sleep(wait_time)
                else:
                    logger.error(f"OSM API failed: HTTP {status} on {path}")
                    raise RemoteReadFailure(f"OSM API HTTP error {status} on {path}", status) from e
            except requests.exceptions.RequestException as e:
                logger.warning(f"OSM API request failed on {path} (attempt {attempt + 1}): {e}")
                if attempt < max_retries - 1:
                    time.sleep(retry_delay * (attempt + 1))
                else:
                    logger.error(f"OSM API failed: request exception on {path} after {max_retries} attempts: {e}")
                    raise RemoteReadFailure(f"OSM API request on {path} failed after {max_retries} attempts: {e}") from e

        raise RemoteReadFailure(f"OSM API request on {path} was not attempted")

    def get_node(self, node_id: int) -> OSMNode:
        """Fetch the current version of a node"""
        data = self.get_json(f"node/{node_id}.json")
        elements = self.parser.parse_elements(data)
        node = next((e for e in elements if isinstance(e, OSMNode) and e.id == node_id), None)
        if node is None:
            raise RemoteReadFailure(f"OSM API response for node {node_id} does not contain it")
        return node

    def get_complete_way(self, way_id: int) -> OSMWay:
        """Fetch the current version of a way with all its nodes"""
        data = self.get_json(f"way/{way_id}/full.json")
        elements = self.parser.parse_elements(data)
        way = next((e for e in elements if isinstance(e, OSMWay) and e.id == way_id), None)
        if way is None:
            raise RemoteReadFailure(f"OSM API response for way {way_id} does not contain it")
        return way

    # ============================================================
    # Writes - never retried
    # ============================================================

    def create_changeset(self, comment: str) -> int:
        """Open a changeset and return its id"""
        body = changeset_xml({"created_by": self.config.created_by, "comment": comment})
        response = self._write("PUT", "changeset/create", body)
        changeset_id = int(response.text.strip())
        logger.info(f"Opened changeset {changeset_id}: {comment}")
        return changeset_id

    def upload_changeset(self, changeset_id: int, change: ChangeSet):
        """Upload a diff to an open changeset"""
        body = osm_change_xml(change, changeset_id, generator=self.config.created_by)
        self._write("POST", f"changeset/{changeset_id}/upload", body)
        logger.info(f"Uploaded changeset {changeset_id}: {len(change.create)} created, {len(change.modify)} modified")

    def close_changeset(self, changeset_id: int):
        self._write("PUT", f"changeset/{changeset_id}/close", None)
        logger.info(f"Closed changeset {changeset_id}")

    def _write(self, method: str, path: str, body: Optional[bytes]) -> requests.Response:
        url = f"{self.base_url}/{path}"
        headers = {"Content-Type": "text/xml; charset=utf-8"} if body is not None else {}
        try:
            response = self.session.request(method, url, data=body, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            return response
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            text = e.response.text if e.response is not None else ""
            logger.error(f"OSM API {method} {path} failed: HTTP {status} {text}")
            if status == 409:
                raise UploadConflictError(f"OSM API conflict on {path}: {text}", status_code=status) from e
            raise UploadFailure(f"OSM API HTTP error {status} on {path}: {text}", status_code=status) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"OSM API {method} {path} failed: {e}")
            raise UploadFailure(f"OSM API request on {path} failed: {e}") from e
