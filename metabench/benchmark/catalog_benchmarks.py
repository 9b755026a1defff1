"""
Catalog operation benchmarks and the standard benchmark suite.

Every benchmark times one catalog call; the objects it needs are created
and removed in untimed hooks. Sequential benchmarks share the connection in
``BenchData.client``; the concurrent benchmark opens one connection per
worker through ``BenchData.client_factory``.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from ..catalog import CatalogClient
from ..catalog.base import Partition, Table, partition_name
from ..catalog.builders import build_many_partitions, build_partition, build_table, create_schema
from ..config import SuiteConfiguration
from .micro import MicroBenchmark
from .suite import BenchmarkSuite

logger = logging.getLogger(__name__)

TEST_TABLE = "bench_table"
TABLE_COLUMNS = ["name", "id:int", "created:timestamp"]
PARTITION_KEYS = ["d"]


@dataclass
class BenchData:
    """
    Shared state of the catalog benchmarks.

    Attributes:
        db_name: Database the benchmarks work in
        table_name: Base name of the tables they create
        client: Connection used by sequential benchmarks, set before running
        client_factory: Opens additional connections for concurrent workers
        parameters: Number of parameters attached to tables and partitions
    """
    db_name: str
    table_name: str = TEST_TABLE
    client: Optional[CatalogClient] = None
    client_factory: Optional[Callable[[], CatalogClient]] = None
    parameters: int = 0

    def table(self, name: Optional[str] = None, partitioned: bool = False, db_name: Optional[str] = None) -> Table:
        """Build (without creating) a benchmark table definition."""
        return build_table(
            db_name or self.db_name,
            name or self.table_name,
            columns=create_schema(TABLE_COLUMNS),
            partition_keys=create_schema(PARTITION_KEYS) if partitioned else None,
            parameters={f"param_{i}": f"value_{i}" for i in range(self.parameters)},
        ).unwrap()

    def create_table(self, name: Optional[str] = None, partitioned: bool = False) -> Table:
        table = self.table(name, partitioned)
        self.client.create_table(table)
        return table

    def drop_table_if_exists(self, name: Optional[str] = None) -> None:
        name = name or self.table_name
        if self.client.table_exists(self.db_name, name):
            self.client.drop_table(self.db_name, name)

    def partitions(self, table: Table, count: int) -> List[Partition]:
        return build_many_partitions(table, PARTITION_KEYS, count).unwrap()


def prepare_database(data: BenchData) -> None:
    """Create the benchmark database if needed and remove a stale test table."""
    if not data.client.db_exists(data.db_name):
        logger.info(f"Creating database {data.db_name}")
        data.client.create_database(data.db_name)
    data.drop_table_if_exists()


# ==========================================================================
# Databases and tables
# ==========================================================================

def add_get_notification_id(suite: BenchmarkSuite, name: str, data: BenchData) -> None:
    suite.add(name, lambda: data.client.get_current_notification_id())


def add_list_databases(suite: BenchmarkSuite, name: str, data: BenchData) -> None:
    suite.add(name, lambda: data.client.get_all_databases())


def add_list_tables(suite: BenchmarkSuite, name: str, data: BenchData, count: int = 0) -> None:
    """List tables of the benchmark database after creating ``count`` extra tables."""
    names = [f"{data.table_name}_{i}" for i in range(count)]

    def setup():
        for table_name in names:
            data.create_table(table_name)

    def teardown():
        for table_name in names:
            data.drop_table_if_exists(table_name)

    suite.add(
        name,
        lambda: data.client.get_all_tables(data.db_name),
        setup=setup,
        teardown=teardown,
    )


def add_get_table(suite: BenchmarkSuite, name: str, data: BenchData) -> None:
    suite.add(
        name,
        lambda: data.client.get_table(data.db_name, data.table_name),
        setup=lambda: data.create_table(),
        teardown=lambda: data.drop_table_if_exists(),
    )


def add_create_table(suite: BenchmarkSuite, name: str, data: BenchData) -> None:
    table = data.table()
    suite.add(
        name,
        lambda: data.client.create_table(table),
        post=lambda: data.client.drop_table(data.db_name, data.table_name),
        teardown=lambda: data.drop_table_if_exists(),
    )


def add_drop_table(suite: BenchmarkSuite, name: str, data: BenchData) -> None:
    table = data.table()
    suite.add(
        name,
        lambda: data.client.drop_table(data.db_name, data.table_name),
        pre=lambda: data.client.create_table(table),
        teardown=lambda: data.drop_table_if_exists(),
    )


def add_drop_table_with_partitions(
    suite: BenchmarkSuite,
    name: str,
    data: BenchData,
    count: int,
) -> None:
    table = data.table(partitioned=True)
    partitions = data.partitions(table, count)

    def pre():
        data.client.create_table(table)
        data.client.add_partitions(partitions)

    suite.add(
        name,
        lambda: data.client.drop_table(data.db_name, data.table_name),
        pre=pre,
        teardown=lambda: data.drop_table_if_exists(),
    )


def add_rename_table(suite: BenchmarkSuite, name: str, data: BenchData, count: int) -> None:
    """Rename a table holding ``count`` partitions, renaming it back untimed."""
    table = data.table(partitioned=True)
    partitions = data.partitions(table, count)
    new_name = f"{data.table_name}_renamed"
    renamed = data.table(new_name, partitioned=True)

    def setup():
        data.client.create_table(table)
        data.client.add_partitions(partitions)

    def teardown():
        data.drop_table_if_exists(new_name)
        data.drop_table_if_exists()

    suite.add(
        name,
        lambda: data.client.alter_table(data.db_name, data.table_name, renamed),
        post=lambda: data.client.alter_table(data.db_name, new_name, table),
        setup=setup,
        teardown=teardown,
    )


def add_drop_database(suite: BenchmarkSuite, name: str, data: BenchData, count: int) -> None:
    """Drop a database containing ``count`` tables."""
    db_name = f"{data.db_name}_{data.table_name}_db"
    tables = [data.table(f"{data.table_name}_{i}", db_name=db_name) for i in range(count)]

    def pre():
        data.client.create_database(db_name)
        for table in tables:
            data.client.create_table(table)

    def teardown():
        if data.client.db_exists(db_name):
            data.client.drop_database(db_name, cascade=True)

    suite.add(
        name,
        lambda: data.client.drop_database(db_name, cascade=True),
        pre=pre,
        teardown=teardown,
    )


# ==========================================================================
# Partitions
# ==========================================================================

def _partitioned_table_hooks(data: BenchData, table: Table, partitions: List[Partition]):
    def setup():
        data.drop_table_if_exists()
        data.client.create_table(table)
        if partitions:
            data.client.add_partitions(partitions)

    def teardown():
        data.drop_table_if_exists()

    return setup, teardown


def add_add_partition(suite: BenchmarkSuite, name: str, data: BenchData) -> None:
    table = data.table(partitioned=True)
    partition = build_partition(table, ["d0"]).unwrap()
    setup, teardown = _partitioned_table_hooks(data, table, [])
    suite.add(
        name,
        lambda: data.client.add_partition(partition),
        post=lambda: data.client.drop_partition(data.db_name, data.table_name, partition.values),
        setup=setup,
        teardown=teardown,
    )


def add_drop_partition(suite: BenchmarkSuite, name: str, data: BenchData) -> None:
    table = data.table(partitioned=True)
    partition = build_partition(table, ["d0"]).unwrap()
    setup, teardown = _partitioned_table_hooks(data, table, [])
    suite.add(
        name,
        lambda: data.client.drop_partition(data.db_name, data.table_name, partition.values),
        pre=lambda: data.client.add_partition(partition),
        setup=setup,
        teardown=teardown,
    )


def add_list_partitions(suite: BenchmarkSuite, name: str, data: BenchData, count: int) -> None:
    table = data.table(partitioned=True)
    setup, teardown = _partitioned_table_hooks(data, table, data.partitions(table, count))
    suite.add(
        name,
        lambda: data.client.list_partitions(data.db_name, data.table_name),
        setup=setup,
        teardown=teardown,
    )


def add_get_partitions(suite: BenchmarkSuite, name: str, data: BenchData, count: int) -> None:
    """Fetch each of ``count`` partitions individually in one timed call."""
    table = data.table(partitioned=True)
    partitions = data.partitions(table, count)
    setup, teardown = _partitioned_table_hooks(data, table, partitions)

    def operation():
        for partition in partitions:
            data.client.get_partition(data.db_name, data.table_name, partition.values)

    suite.add(name, operation, setup=setup, teardown=teardown)


def add_get_partition_names(suite: BenchmarkSuite, name: str, data: BenchData, count: int) -> None:
    table = data.table(partitioned=True)
    setup, teardown = _partitioned_table_hooks(data, table, data.partitions(table, count))
    suite.add(
        name,
        lambda: data.client.get_partition_names(data.db_name, data.table_name),
        setup=setup,
        teardown=teardown,
    )


def add_get_partitions_by_names(
    suite: BenchmarkSuite,
    name: str,
    data: BenchData,
    count: int,
) -> None:
    table = data.table(partitioned=True)
    partitions = data.partitions(table, count)
    names = [partition_name(table.partition_keys, p.values) for p in partitions]
    setup, teardown = _partitioned_table_hooks(data, table, partitions)
    suite.add(
        name,
        lambda: data.client.get_partitions_by_names(data.db_name, data.table_name, names),
        setup=setup,
        teardown=teardown,
    )


def add_add_partitions(suite: BenchmarkSuite, name: str, data: BenchData, count: int) -> None:
    table = data.table(partitioned=True)
    partitions = data.partitions(table, count)
    setup, teardown = _partitioned_table_hooks(data, table, [])

    def post():
        for partition in partitions:
            data.client.drop_partition(data.db_name, data.table_name, partition.values)

    suite.add(
        name,
        lambda: data.client.add_partitions(partitions),
        post=post,
        setup=setup,
        teardown=teardown,
    )


def add_drop_partitions(suite: BenchmarkSuite, name: str, data: BenchData, count: int) -> None:
    table = data.table(partitioned=True)
    partitions = data.partitions(table, count)
    setup, teardown = _partitioned_table_hooks(data, table, [])

    def operation():
        for partition in partitions:
            data.client.drop_partition(data.db_name, data.table_name, partition.values)

    suite.add(
        name,
        operation,
        pre=lambda: data.client.add_partitions(partitions),
        setup=setup,
        teardown=teardown,
    )


def add_concurrent_partition_add(
    suite: BenchmarkSuite,
    name: str,
    data: BenchData,
    iterations: int,
) -> None:
    """
    Add partitions to one table from several threads at once.

    Each worker opens its own connection. Worker ``w`` adds partition
    ``d=w{w}_{i}`` on its iteration ``i``, so no two calls collide.
    """
    table = data.table(partitioned=True)
    opened: List[CatalogClient] = []
    lock = threading.Lock()
    setup, drop_table = _partitioned_table_hooks(data, table, [])

    def worker_factory(worker: int):
        client = data.client_factory()
        with lock:
            opened.append(client)

        def operation(iteration: int):
            partition = build_partition(table, [f"w{worker}_{iteration}"]).unwrap()
            client.add_partition(partition)

        return operation

    def teardown():
        with lock:
            clients = list(opened)
            opened.clear()
        for client in clients:
            client.close()
        drop_table()

    suite.add_concurrent(name, worker_factory, iterations, setup=setup, teardown=teardown)


# ==========================================================================
# Suite
# ==========================================================================

def build_suite(config: SuiteConfiguration, data: BenchData) -> BenchmarkSuite:
    """
    Register the standard catalog benchmarks.

    Names with a ``.N`` suffix work on ``config.instances`` objects; the
    concurrent benchmark is suffixed with ``#T`` for ``config.threads``.
    """
    n = config.instances
    data.parameters = config.parameters

    suite = BenchmarkSuite(
        MicroBenchmark(config.warmup, config.spin),
        threads=config.threads,
        scale=config.scale,
        sanitize=config.sanitize,
    )

    add_get_notification_id(suite, "getNid", data)
    add_list_databases(suite, "listDatabases", data)
    add_list_tables(suite, "listTables", data)
    add_list_tables(suite, f"listTables.{n}", data, n)
    add_get_table(suite, "getTable", data)
    add_create_table(suite, "createTable", data)
    add_drop_table(suite, "dropTable", data)
    add_drop_table_with_partitions(suite, "dropTableWithPartitions", data, 1)
    add_drop_table_with_partitions(suite, f"dropTableWithPartitions.{n}", data, n)
    add_add_partition(suite, "addPartition", data)
    add_drop_partition(suite, "dropPartition", data)
    add_list_partitions(suite, "listPartition", data, 1)
    add_list_partitions(suite, f"listPartitions.{n}", data, n)
    add_get_partitions(suite, "getPartition", data, 1)
    add_get_partitions(suite, f"getPartitions.{n}", data, n)
    add_get_partition_names(suite, "getPartitionNames", data, 1)
    add_get_partition_names(suite, f"getPartitionNames.{n}", data, n)
    add_get_partitions_by_names(suite, "getPartitionsByNames", data, 1)
    add_get_partitions_by_names(suite, f"getPartitionsByNames.{n}", data, n)
    add_add_partitions(suite, f"addPartitions.{n}", data, n)
    add_drop_partitions(suite, f"dropPartitions.{n}", data, n)
    add_rename_table(suite, "renameTable", data, 1)
    add_rename_table(suite, f"renameTable.{n}", data, n)
    add_drop_database(suite, "dropDatabase", data, 1)
    add_drop_database(suite, f"dropDatabase.{n}", data, n)
    add_concurrent_partition_add(suite, f"concurrentPartitionAdd#{config.threads}", data, n)

    return suite
