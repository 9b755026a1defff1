"""
In-process catalog backend.

All connections opened on one ``CatalogStore`` see the same data; the store
serializes access with a lock so any number of threads may use it.
"""

import copy
import fnmatch
import logging
import threading
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .base import (
    AlreadyExistsError,
    CatalogClient,
    NoSuchObjectError,
    Partition,
    SchemaError,
    Table,
    partition_name,
)

logger = logging.getLogger(__name__)


@dataclass
class _TableState:
    table: Table
    partitions: "OrderedDict[str, Partition]" = field(default_factory=OrderedDict)


@dataclass
class _DatabaseState:
    description: str = ""
    tables: Dict[str, _TableState] = field(default_factory=dict)


def _matches(name: str, pattern: Optional[str]) -> bool:
    return pattern is None or fnmatch.fnmatchcase(name, pattern)


class CatalogStore:
    """Shared catalog contents with a notification counter."""

    def __init__(self):
        self.lock = threading.RLock()
        self.databases: Dict[str, _DatabaseState] = {}
        self.notification_id = 0

    def notify(self) -> None:
        self.notification_id += 1


class MemoryCatalogClient(CatalogClient):
    """
    Catalog client backed by a ``CatalogStore``.

    Objects are copied on the way in and out, so callers never share
    mutable state with the store.

    Example:
        store = CatalogStore()
        with MemoryCatalogClient(store) as client:
            client.create_database("bench")
    """

    name = "memory"

    def __init__(self, store: Optional[CatalogStore] = None):
        self.store = store if store is not None else CatalogStore()
        self._closed = False

    # ==========================================================================
    # Databases
    # ==========================================================================

    def get_all_databases(self, pattern: Optional[str] = None) -> List[str]:
        with self.store.lock:
            return sorted(n for n in self.store.databases if _matches(n, pattern))

    def create_database(self, name: str, description: str = "") -> None:
        with self.store.lock:
            if name in self.store.databases:
                raise AlreadyExistsError(f"Database {name} already exists")
            self.store.databases[name] = _DatabaseState(description=description)
            self.store.notify()

    def drop_database(self, name: str, cascade: bool = True) -> None:
        with self.store.lock:
            db = self._db(name)
            if db.tables and not cascade:
                raise SchemaError(f"Database {name} is not empty")
            logger.debug(f"Dropping database {name} with {len(db.tables)} tables")
            del self.store.databases[name]
            self.store.notify()

    # ==========================================================================
    # Tables
    # ==========================================================================

    def get_all_tables(self, db_name: str, pattern: Optional[str] = None) -> List[str]:
        with self.store.lock:
            return sorted(n for n in self._db(db_name).tables if _matches(n, pattern))

    def create_table(self, table: Table) -> None:
        with self.store.lock:
            db = self._db(table.db_name)
            if table.table_name in db.tables:
                raise AlreadyExistsError(f"Table {table.db_name}.{table.table_name} already exists")
            db.tables[table.table_name] = _TableState(table=copy.deepcopy(table))
            self.store.notify()

    def get_table(self, db_name: str, table_name: str) -> Table:
        with self.store.lock:
            return copy.deepcopy(self._table(db_name, table_name).table)

    def drop_table(self, db_name: str, table_name: str) -> None:
        with self.store.lock:
            self._table(db_name, table_name)
            del self.store.databases[db_name].tables[table_name]
            self.store.notify()

    def alter_table(self, db_name: str, table_name: str, table: Table) -> None:
        with self.store.lock:
            state = self._table(db_name, table_name)
            db = self.store.databases[db_name]
            new_name = table.table_name
            if new_name != table_name:
                if table.db_name != db_name:
                    raise SchemaError("Cannot move a table between databases")
                if new_name in db.tables:
                    raise AlreadyExistsError(f"Table {db_name}.{new_name} already exists")
                del db.tables[table_name]
            state.table = copy.deepcopy(table)
            for partition in state.partitions.values():
                partition.table_name = new_name
            db.tables[new_name] = state
            self.store.notify()

    # ==========================================================================
    # Partitions
    # ==========================================================================

    def add_partition(self, partition: Partition) -> None:
        self.add_partitions([partition])

    def add_partitions(self, partitions: List[Partition]) -> None:
        with self.store.lock:
            staged = []
            for partition in partitions:
                state = self._table(partition.db_name, partition.table_name)
                key = self._partition_key(state, partition.values)
                if key in state.partitions or any(k == key and s is state for s, k, _ in staged):
                    raise AlreadyExistsError(
                        f"Partition {key} of {partition.db_name}.{partition.table_name} already exists"
                    )
                staged.append((state, key, copy.deepcopy(partition)))

            for state, key, partition in staged:
                state.partitions[key] = partition
            if staged:
                self.store.notify()

    def get_partition(self, db_name: str, table_name: str, values: List[str]) -> Partition:
        with self.store.lock:
            state = self._table(db_name, table_name)
            key = self._partition_key(state, values)
            if key not in state.partitions:
                raise NoSuchObjectError(f"Partition {key} of {db_name}.{table_name} not found")
            return copy.deepcopy(state.partitions[key])

    def list_partitions(self, db_name: str, table_name: str) -> List[Partition]:
        with self.store.lock:
            state = self._table(db_name, table_name)
            return [copy.deepcopy(p) for p in state.partitions.values()]

    def get_partition_names(self, db_name: str, table_name: str) -> List[str]:
        with self.store.lock:
            return list(self._table(db_name, table_name).partitions.keys())

    def get_partitions_by_names(
        self,
        db_name: str,
        table_name: str,
        names: List[str],
    ) -> List[Partition]:
        with self.store.lock:
            state = self._table(db_name, table_name)
            return [copy.deepcopy(state.partitions[n]) for n in names if n in state.partitions]

    def drop_partition(self, db_name: str, table_name: str, values: List[str]) -> None:
        with self.store.lock:
            state = self._table(db_name, table_name)
            key = self._partition_key(state, values)
            if key not in state.partitions:
                raise NoSuchObjectError(f"Partition {key} of {db_name}.{table_name} not found")
            del state.partitions[key]
            self.store.notify()

    # ==========================================================================
    # Notifications and lifecycle
    # ==========================================================================

    def get_current_notification_id(self) -> int:
        with self.store.lock:
            return self.store.notification_id

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    # ==========================================================================
    # Lookups (caller holds the lock)
    # ==========================================================================

    def _db(self, name: str) -> _DatabaseState:
        db = self.store.databases.get(name)
        if db is None:
            raise NoSuchObjectError(f"Database {name} not found")
        return db

    def _table(self, db_name: str, table_name: str) -> _TableState:
        state = self._db(db_name).tables.get(table_name)
        if state is None:
            raise NoSuchObjectError(f"Table {db_name}.{table_name} not found")
        return state

    @staticmethod
    def _partition_key(state: _TableState, values: List[str]) -> str:
        keys = state.table.partition_keys
        if len(keys) != len(values):
            raise SchemaError(
                f"Partition values do not match table schema of {state.table.table_name}"
            )
        return partition_name(keys, values)
