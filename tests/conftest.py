from collections.abc import Callable

import pytest

from metabench.benchmark.catalog_benchmarks import BenchData, prepare_database
from metabench.catalog import CatalogStore, MemoryCatalogClient, get_client_factory


class Counter:
    """Callable recording how many times it was invoked."""

    def __init__(self, fail_at: int = -1, error: Exception = None):
        self.calls = 0
        self.fail_at = fail_at
        self.error = error or RuntimeError("boom")

    def __call__(self, *args) -> None:
        index = self.calls
        self.calls += 1
        if index == self.fail_at:
            raise self.error


@pytest.fixture
def counter() -> Callable[..., Counter]:
    """Return a factory of invocation counters."""
    return Counter


@pytest.fixture
def store() -> CatalogStore:
    return CatalogStore()


@pytest.fixture
def client(store: CatalogStore) -> MemoryCatalogClient:
    with MemoryCatalogClient(store) as c:
        yield c


@pytest.fixture
def bench_data(store: CatalogStore, client: MemoryCatalogClient) -> BenchData:
    """Benchmark state on a prepared in-memory database."""
    data = BenchData(
        db_name="bench",
        client=client,
        client_factory=get_client_factory("memory", store=store),
    )
    prepare_database(data)
    return data
