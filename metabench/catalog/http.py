"""
HTTP/JSON catalog client.

Speaks a REST mapping of the catalog operations:

    GET/POST        /databases
    DELETE          /databases/{db}
    GET/POST        /databases/{db}/tables
    GET/PUT/DELETE  /databases/{db}/tables/{table}
    GET/POST        /databases/{db}/tables/{table}/partitions
    GET/DELETE      /databases/{db}/tables/{table}/partitions/{name}
    GET             /databases/{db}/tables/{table}/partition-names
    GET             /notifications/current
"""

import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from ..config import Config
from .base import (
    AlreadyExistsError,
    CatalogClient,
    CatalogError,
    NoSuchObjectError,
    Partition,
    Table,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


def _seg(value: str) -> str:
    return quote(value, safe="")


class HttpCatalogClient(CatalogClient):
    """
    Catalog client over HTTP.

    Each instance owns one ``requests.Session`` and therefore one pool of
    keep-alive connections. Failed calls are not retried; a timing harness
    must see every failure.

    Configuration (via environment variables):
        - HMS_HOST / HMS_PORT: server address when not given explicitly
        - REQUEST_TIMEOUT: per-request timeout in seconds (0 disables it)
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        timeout: Optional[float] = None,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/") + API_PREFIX
        timeout = Config.REQUEST_TIMEOUT if timeout is None else timeout
        self.timeout = timeout if timeout and timeout > 0 else None
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    # ==========================================================================
    # Databases
    # ==========================================================================

    def get_all_databases(self, pattern: Optional[str] = None) -> List[str]:
        params = {"pattern": pattern} if pattern else None
        return self._call("GET", "/databases", params=params)["databases"]

    def create_database(self, name: str, description: str = "") -> None:
        self._call("POST", "/databases", payload={"name": name, "description": description})

    def drop_database(self, name: str, cascade: bool = True) -> None:
        self._call(
            "DELETE",
            f"/databases/{_seg(name)}",
            params={"cascade": str(cascade).lower()},
        )

    # ==========================================================================
    # Tables
    # ==========================================================================

    def get_all_tables(self, db_name: str, pattern: Optional[str] = None) -> List[str]:
        params = {"pattern": pattern} if pattern else None
        return self._call("GET", f"/databases/{_seg(db_name)}/tables", params=params)["tables"]

    def create_table(self, table: Table) -> None:
        self._call("POST", f"/databases/{_seg(table.db_name)}/tables", payload=table.to_dict())

    def get_table(self, db_name: str, table_name: str) -> Table:
        return Table.from_dict(self._call("GET", self._table_path(db_name, table_name)))

    def drop_table(self, db_name: str, table_name: str) -> None:
        self._call("DELETE", self._table_path(db_name, table_name))

    def alter_table(self, db_name: str, table_name: str, table: Table) -> None:
        self._call("PUT", self._table_path(db_name, table_name), payload=table.to_dict())

    # ==========================================================================
    # Partitions
    # ==========================================================================

    def add_partition(self, partition: Partition) -> None:
        self.add_partitions([partition])

    def add_partitions(self, partitions: List[Partition]) -> None:
        if not partitions:
            return
        first = partitions[0]
        self._call(
            "POST",
            self._table_path(first.db_name, first.table_name) + "/partitions",
            payload={"partitions": [p.to_dict() for p in partitions]},
        )

    def get_partition(self, db_name: str, table_name: str, values: List[str]) -> Partition:
        path = self._partition_path(db_name, table_name, values)
        return Partition.from_dict(self._call("GET", path))

    def list_partitions(self, db_name: str, table_name: str) -> List[Partition]:
        data = self._call("GET", self._table_path(db_name, table_name) + "/partitions")
        return [Partition.from_dict(p) for p in data["partitions"]]

    def get_partition_names(self, db_name: str, table_name: str) -> List[str]:
        data = self._call("GET", self._table_path(db_name, table_name) + "/partition-names")
        return data["names"]

    def get_partitions_by_names(
        self,
        db_name: str,
        table_name: str,
        names: List[str],
    ) -> List[Partition]:
        data = self._call(
            "GET",
            self._table_path(db_name, table_name) + "/partitions",
            params={"name": names},
        )
        return [Partition.from_dict(p) for p in data["partitions"]]

    def drop_partition(self, db_name: str, table_name: str, values: List[str]) -> None:
        self._call("DELETE", self._partition_path(db_name, table_name, values))

    # ==========================================================================
    # Notifications and lifecycle
    # ==========================================================================

    def get_current_notification_id(self) -> int:
        return int(self._call("GET", "/notifications/current")["eventId"])

    def close(self) -> None:
        self.session.close()

    # ==========================================================================
    # Transport
    # ==========================================================================

    @staticmethod
    def _table_path(db_name: str, table_name: str) -> str:
        return f"/databases/{_seg(db_name)}/tables/{_seg(table_name)}"

    def _partition_path(self, db_name: str, table_name: str, values: List[str]) -> str:
        # The server resolves values against the table's partition keys
        name = "/".join(values)
        return self._table_path(db_name, table_name) + f"/partitions/{_seg(name)}"

    def _call(
        self,
        method: str,
        path: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Make one API call.

        Returns:
            Decoded JSON body, or an empty dict for an empty body

        Raises:
            NoSuchObjectError: On HTTP 404
            AlreadyExistsError: On HTTP 409
            CatalogError: On any other failure
        """
        url = f"{self.base_url}{path}"
        logger.debug(f">>> {method} {url}")
        if payload is not None:
            logger.debug(f"Payload:\n{json.dumps(payload, ensure_ascii=False, indent=2)}")

        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                params=params,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            raise CatalogError(f"Request timeout: {method} {url}") from e
        except requests.exceptions.RequestException as e:
            raise CatalogError(f"Network error: {method} {url}: {e}") from e

        logger.debug(f"<<< {response.status_code} {method} {url}")

        if response.status_code == 404:
            raise NoSuchObjectError(f"{method} {path}: {response.text}")
        if response.status_code == 409:
            raise AlreadyExistsError(f"{method} {path}: {response.text}")
        if response.status_code >= 400:
            raise CatalogError(f"HTTP {response.status_code}: {method} {path}: {response.text}")

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise CatalogError(f"Invalid JSON from {method} {path}") from e
