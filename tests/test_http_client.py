import json
from unittest.mock import MagicMock

import pytest
import requests

from metabench.catalog import AlreadyExistsError, CatalogError, NoSuchObjectError
from metabench.catalog.builders import build_partition, build_table, create_schema
from metabench.catalog.http import API_PREFIX, HttpCatalogClient

BASE = "http://localhost:9083"


def make_response(status: int = 200, body=None) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.content = json.dumps(body).encode() if body is not None else b""
    response.text = response.content.decode()
    response.json.return_value = body
    return response


@pytest.fixture
def session() -> MagicMock:
    return MagicMock(spec=requests.Session, headers={})


@pytest.fixture
def http_client(session) -> HttpCatalogClient:
    return HttpCatalogClient(BASE, timeout=0, session=session)


def last_call(session: MagicMock):
    args, kwargs = session.request.call_args
    return args[0], args[1], kwargs


class TestRequests:
    def test_get_all_databases(self, session, http_client) -> None:
        session.request.return_value = make_response(body={"databases": ["a", "b"]})
        assert http_client.get_all_databases("a*") == ["a", "b"]
        method, url, kwargs = last_call(session)
        assert method == "GET"
        assert url == f"{BASE}{API_PREFIX}/databases"
        assert kwargs["params"] == {"pattern": "a*"}
        assert kwargs["timeout"] is None

    def test_create_table_payload(self, session, http_client) -> None:
        session.request.return_value = make_response(201)
        table = build_table("db", "t", create_schema(["a:int"])).unwrap()
        http_client.create_table(table)
        method, url, kwargs = last_call(session)
        assert method == "POST"
        assert url.endswith("/databases/db/tables")
        assert kwargs["json"]["tableName"] == "t"
        assert kwargs["json"]["columns"] == [{"name": "a", "type": "int", "comment": ""}]

    def test_get_table_round_trip(self, session, http_client) -> None:
        table = build_table("db", "t", partition_keys=create_schema(["d"])).unwrap()
        session.request.return_value = make_response(body=table.to_dict())
        assert http_client.get_table("db", "t") == table

    def test_partition_path_is_quoted(self, session, http_client) -> None:
        session.request.return_value = make_response()
        http_client.drop_partition("db", "t", ["2024/01"])
        _, url, _ = last_call(session)
        assert url.endswith("/tables/t/partitions/2024%2F01")

    def test_add_partitions_batch(self, session, http_client) -> None:
        session.request.return_value = make_response()
        table = build_table("db", "t", partition_keys=create_schema(["d"])).unwrap()
        partitions = [build_partition(table, [v]).unwrap() for v in ["x", "y"]]
        http_client.add_partitions(partitions)
        _, url, kwargs = last_call(session)
        assert url.endswith("/databases/db/tables/t/partitions")
        assert [p["values"] for p in kwargs["json"]["partitions"]] == [["x"], ["y"]]

    def test_add_no_partitions_skips_request(self, session, http_client) -> None:
        http_client.add_partitions([])
        session.request.assert_not_called()

    def test_notification_id(self, session, http_client) -> None:
        session.request.return_value = make_response(body={"eventId": 17})
        assert http_client.get_current_notification_id() == 17

    def test_timeout_from_argument(self, session) -> None:
        session.request.return_value = make_response(body={"databases": []})
        HttpCatalogClient(BASE, timeout=2.5, session=session).get_all_databases()
        assert last_call(session)[2]["timeout"] == 2.5

    def test_close(self, session, http_client) -> None:
        http_client.close()
        session.close.assert_called_once()


class TestErrors:
    def test_not_found(self, session, http_client) -> None:
        session.request.return_value = make_response(404, {"error": "no table"})
        with pytest.raises(NoSuchObjectError):
            http_client.get_table("db", "missing")

    def test_conflict(self, session, http_client) -> None:
        session.request.return_value = make_response(409)
        with pytest.raises(AlreadyExistsError):
            http_client.create_database("db")

    def test_server_error(self, session, http_client) -> None:
        session.request.return_value = make_response(500)
        with pytest.raises(CatalogError, match="HTTP 500"):
            http_client.get_all_databases()

    def test_network_error(self, session, http_client) -> None:
        session.request.side_effect = requests.exceptions.ConnectionError("refused")
        with pytest.raises(CatalogError, match="Network error"):
            http_client.get_all_databases()

    def test_timeout(self, session, http_client) -> None:
        session.request.side_effect = requests.exceptions.Timeout()
        with pytest.raises(CatalogError, match="timeout"):
            http_client.get_all_databases()

    def test_invalid_json(self, session, http_client) -> None:
        response = make_response(body={})
        response.content = b"<html>"
        response.json.side_effect = ValueError("not json")
        session.request.return_value = response
        with pytest.raises(CatalogError, match="Invalid JSON"):
            http_client.get_all_databases()
