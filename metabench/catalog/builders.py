"""
Validating constructors for catalog objects.

Builders never raise on invalid input; they report the problem through
``BuildResult`` so callers decide how to surface it.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .base import (
    DEFAULT_TABLE_TYPE,
    FieldSchema,
    Partition,
    SchemaError,
    Table,
    partition_name,
)

TYPE_SEPARATOR = ":"
DEFAULT_TYPE = "string"


@dataclass
class BuildResult:
    """Outcome of building a catalog object."""
    success: bool = False
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, value: Any) -> "BuildResult":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str) -> "BuildResult":
        return cls(success=False, error=error)

    def unwrap(self) -> Any:
        """Return the built value or raise SchemaError with the reported error."""
        if not self.success:
            raise SchemaError(self.error)
        return self.value


def param_to_schema(param: str) -> FieldSchema:
    """Parse ``name`` or ``name:type`` into a FieldSchema."""
    if TYPE_SEPARATOR in param:
        name, col_type = param.split(TYPE_SEPARATOR, 1)
        return FieldSchema(name=name, type=col_type.lower())
    return FieldSchema(name=param, type=DEFAULT_TYPE)


def create_schema(params: Optional[List[str]]) -> List[FieldSchema]:
    """
    Create a schema from parameter strings.

    Args:
        params: Each item is a simple name or ``name:type`` for non-string types

    Returns:
        List of FieldSchema, empty for no parameters
    """
    if not params:
        return []
    return [param_to_schema(p) for p in params]


def build_table(
    db_name: str,
    table_name: str,
    columns: Optional[List[FieldSchema]] = None,
    partition_keys: Optional[List[FieldSchema]] = None,
    table_type: str = DEFAULT_TABLE_TYPE,
    location: Optional[str] = None,
    parameters: Optional[Dict[str, str]] = None,
) -> BuildResult:
    """
    Build a table definition.

    Fails on empty names and on a column or partition key name used twice.
    """
    if not db_name or not table_name:
        return BuildResult.fail("Database and table names are required")

    columns = list(columns or [])
    partition_keys = list(partition_keys or [])
    names = [c.name for c in columns + partition_keys]
    duplicates = sorted({n for n in names if names.count(n) > 1})
    if duplicates:
        return BuildResult.fail(f"Duplicate column names in {table_name}: {', '.join(duplicates)}")

    return BuildResult.ok(Table(
        db_name=db_name,
        table_name=table_name,
        columns=columns,
        partition_keys=partition_keys,
        table_type=table_type,
        location=location if location is not None else f"/warehouse/{db_name}.db/{table_name}",
        parameters=dict(parameters or {}),
    ))


def build_partition(
    table: Table,
    values: List[str],
    location: Optional[str] = None,
) -> BuildResult:
    """
    Build a partition of ``table``.

    Fails when the number of values differs from the number of partition
    keys. The location defaults to the table location followed by the
    partition name.
    """
    keys = table.partition_keys
    if len(keys) != len(values):
        return BuildResult.fail(
            f"Partition values do not match table schema of {table.db_name}.{table.table_name}: "
            f"{len(values)} values for {len(keys)} keys"
        )

    if location is None:
        location = f"{table.location}/{partition_name(keys, values)}"

    return BuildResult.ok(Partition(
        db_name=table.db_name,
        table_name=table.table_name,
        values=list(values),
        location=location,
        parameters=dict(table.parameters),
    ))


def build_many_partitions(table: Table, prefixes: List[str], count: int) -> BuildResult:
    """
    Build ``count`` partitions whose values are ``prefix + index``.

    Args:
        table: Partitioned table
        prefixes: One value prefix per partition key
        count: Number of partitions

    Returns:
        BuildResult holding the list of partitions
    """
    partitions = []
    for i in range(count):
        result = build_partition(table, [f"{p}{i}" for p in prefixes])
        if not result.success:
            return result
        partitions.append(result.value)
    return BuildResult.ok(partitions)
