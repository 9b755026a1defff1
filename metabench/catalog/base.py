"""
Base catalog client interface for metadata services.
All catalog backends must implement this interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


DEFAULT_TABLE_TYPE = "MANAGED_TABLE"


@dataclass(frozen=True)
class FieldSchema:
    """A column or partition key."""
    name: str
    type: str = "string"
    comment: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "type": self.type, "comment": self.comment}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FieldSchema":
        return cls(
            name=data["name"],
            type=data.get("type", "string"),
            comment=data.get("comment", ""),
        )


@dataclass
class Table:
    """Table metadata as stored in the catalog."""
    db_name: str
    table_name: str
    columns: List[FieldSchema] = field(default_factory=list)
    partition_keys: List[FieldSchema] = field(default_factory=list)
    table_type: str = DEFAULT_TABLE_TYPE
    location: str = ""
    parameters: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "dbName": self.db_name,
            "tableName": self.table_name,
            "columns": [c.to_dict() for c in self.columns],
            "partitionKeys": [k.to_dict() for k in self.partition_keys],
            "tableType": self.table_type,
            "location": self.location,
            "parameters": dict(self.parameters),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Table":
        return cls(
            db_name=data["dbName"],
            table_name=data["tableName"],
            columns=[FieldSchema.from_dict(c) for c in data.get("columns", [])],
            partition_keys=[FieldSchema.from_dict(k) for k in data.get("partitionKeys", [])],
            table_type=data.get("tableType", DEFAULT_TABLE_TYPE),
            location=data.get("location", ""),
            parameters=dict(data.get("parameters", {})),
        )


@dataclass
class Partition:
    """Partition metadata; ``values`` line up with the table's partition keys."""
    db_name: str
    table_name: str
    values: List[str]
    location: str = ""
    parameters: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "dbName": self.db_name,
            "tableName": self.table_name,
            "values": list(self.values),
            "location": self.location,
            "parameters": dict(self.parameters),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Partition":
        return cls(
            db_name=data["dbName"],
            table_name=data["tableName"],
            values=list(data.get("values", [])),
            location=data.get("location", ""),
            parameters=dict(data.get("parameters", {})),
        )


def partition_name(keys: List[FieldSchema], values: List[str]) -> str:
    """Build a partition name such as ``date=d1/hour=h1``."""
    return "/".join(f"{k.name}={v}" for k, v in zip(keys, values))


class CatalogClient(ABC):
    """
    Abstract base class for catalog service clients.

    One instance is one connection. Instances are not required to be safe
    for concurrent use: concurrent benchmarks open one client per worker.

    Example:
        with client_factory() as client:
            if not client.db_exists("bench"):
                client.create_database("bench")
    """

    name: str = "base"

    # ==========================================================================
    # Databases
    # ==========================================================================

    @abstractmethod
    def get_all_databases(self, pattern: Optional[str] = None) -> List[str]:
        """
        List database names.

        Args:
            pattern: Optional glob-style filter ("*" and "?" wildcards)
        """
        pass

    @abstractmethod
    def create_database(self, name: str, description: str = "") -> None:
        pass

    @abstractmethod
    def drop_database(self, name: str, cascade: bool = True) -> None:
        """Drop a database; with ``cascade`` its tables are dropped too."""
        pass

    def db_exists(self, name: str) -> bool:
        return name in self.get_all_databases()

    # ==========================================================================
    # Tables
    # ==========================================================================

    @abstractmethod
    def get_all_tables(self, db_name: str, pattern: Optional[str] = None) -> List[str]:
        pass

    @abstractmethod
    def create_table(self, table: Table) -> None:
        pass

    @abstractmethod
    def get_table(self, db_name: str, table_name: str) -> Table:
        pass

    @abstractmethod
    def drop_table(self, db_name: str, table_name: str) -> None:
        pass

    @abstractmethod
    def alter_table(self, db_name: str, table_name: str, table: Table) -> None:
        """Replace a table definition; a different name in ``table`` renames it."""
        pass

    def table_exists(self, db_name: str, table_name: str) -> bool:
        return table_name in self.get_all_tables(db_name)

    # ==========================================================================
    # Partitions
    # ==========================================================================

    @abstractmethod
    def add_partition(self, partition: Partition) -> None:
        pass

    @abstractmethod
    def add_partitions(self, partitions: List[Partition]) -> None:
        pass

    @abstractmethod
    def get_partition(self, db_name: str, table_name: str, values: List[str]) -> Partition:
        pass

    @abstractmethod
    def list_partitions(self, db_name: str, table_name: str) -> List[Partition]:
        pass

    @abstractmethod
    def get_partition_names(self, db_name: str, table_name: str) -> List[str]:
        pass

    @abstractmethod
    def get_partitions_by_names(
        self,
        db_name: str,
        table_name: str,
        names: List[str],
    ) -> List[Partition]:
        pass

    @abstractmethod
    def drop_partition(self, db_name: str, table_name: str, values: List[str]) -> None:
        pass

    # ==========================================================================
    # Notifications and lifecycle
    # ==========================================================================

    @abstractmethod
    def get_current_notification_id(self) -> int:
        pass

    def close(self) -> None:
        """Release the connection."""
        pass

    def __enter__(self) -> "CatalogClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name})>"


class CatalogError(Exception):
    """Base exception for catalog errors."""
    pass


class NoSuchObjectError(CatalogError):
    """Raised when a database, table or partition does not exist."""
    pass


class AlreadyExistsError(CatalogError):
    """Raised when creating an object that already exists."""
    pass


class SchemaError(CatalogError):
    """Raised when a catalog object definition is invalid."""
    pass
