import pytest

from metabench.benchmark.catalog_benchmarks import (
    BenchData,
    TEST_TABLE,
    add_concurrent_partition_add,
    add_get_table,
    add_list_databases,
    build_suite,
    prepare_database,
)
from metabench.benchmark.micro import MicroBenchmark
from metabench.benchmark.suite import BenchmarkSuite
from metabench.catalog import MemoryCatalogClient
from metabench.config import SuiteConfiguration

EXPECTED_NAMES = [
    "getNid",
    "listDatabases",
    "listTables",
    "listTables.3",
    "getTable",
    "createTable",
    "dropTable",
    "dropTableWithPartitions",
    "dropTableWithPartitions.3",
    "addPartition",
    "dropPartition",
    "listPartition",
    "listPartitions.3",
    "getPartition",
    "getPartitions.3",
    "getPartitionNames",
    "getPartitionNames.3",
    "getPartitionsByNames",
    "getPartitionsByNames.3",
    "addPartitions.3",
    "dropPartitions.3",
    "renameTable",
    "renameTable.3",
    "dropDatabase",
    "dropDatabase.3",
    "concurrentPartitionAdd#2",
]


@pytest.fixture
def config() -> SuiteConfiguration:
    return SuiteConfiguration(warmup=1, spin=2, threads=2, instances=3, parameters=2)


class TestBuildSuite:
    def test_names(self, config) -> None:
        suite = build_suite(config, BenchData(db_name="bench"))
        assert suite.list_matching([]) == EXPECTED_NAMES

    def test_selection_by_pattern(self, config) -> None:
        suite = build_suite(config, BenchData(db_name="bench"))
        assert suite.list_matching(["dropDatabase"]) == ["dropDatabase", "dropDatabase.3"]

    def test_full_run_on_memory_backend(self, config, bench_data, client) -> None:
        suite = build_suite(config, bench_data)
        result = suite.run_matching()

        assert not suite.failures
        assert list(result) == EXPECTED_NAMES
        for name, stats in result.items():
            if name.startswith("concurrent"):
                assert stats.count == config.instances
            else:
                assert stats.count == config.spin

        # Every benchmark cleans up after itself
        assert client.get_all_databases() == ["bench"]
        assert client.get_all_tables("bench") == []

    def test_parameters_attached(self, bench_data) -> None:
        bench_data.parameters = 2
        table = bench_data.table()
        assert table.parameters == {"param_0": "value_0", "param_1": "value_1"}
        assert table.table_name == TEST_TABLE


class TestCatalogBenchmarks:
    def test_list_databases_only(self, bench_data) -> None:
        suite = BenchmarkSuite(MicroBenchmark(warmup=0, spin=3))
        add_list_databases(suite, "listDatabases", bench_data)
        add_get_table(suite, "getTable", bench_data)
        result = suite.run_matching(["list"])
        assert list(result) == ["listDatabases"]
        assert result["listDatabases"].count == 3

    def test_get_table_missing_is_isolated(self, bench_data) -> None:
        suite = BenchmarkSuite(MicroBenchmark(warmup=0, spin=1))
        suite.add("getMissing", lambda: bench_data.client.get_table("bench", "missing"))
        add_list_databases(suite, "listDatabases", bench_data)
        result = suite.run_matching()
        assert list(result) == ["listDatabases"]
        assert "missing" in str(suite.failures["getMissing"].cause)

    def test_concurrent_uses_one_connection_per_worker(self, store, bench_data) -> None:
        opened = []

        def factory():
            c = MemoryCatalogClient(store)
            opened.append(c)
            return c

        bench_data.client_factory = factory
        suite = BenchmarkSuite(MicroBenchmark(warmup=0, spin=1), threads=3)
        add_concurrent_partition_add(suite, "concurrentPartitionAdd#3", bench_data, 7)

        result = suite.run_matching()

        assert result["concurrentPartitionAdd#3"].count == 7
        assert len(opened) == 3
        assert all(c.closed for c in opened)
        assert not bench_data.client.table_exists("bench", TEST_TABLE)

    def test_prepare_database_removes_stale_table(self, client) -> None:
        data = BenchData(db_name="fresh", client=client)
        prepare_database(data)
        data.create_table()
        prepare_database(data)
        assert client.db_exists("fresh")
        assert client.get_all_tables("fresh") == []
