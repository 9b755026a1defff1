"""
Catalog service clients.
Each backend implements the CatalogClient interface.
"""

from typing import Callable, Optional

from .base import (
    CatalogClient,
    CatalogError,
    NoSuchObjectError,
    AlreadyExistsError,
    SchemaError,
    FieldSchema,
    Table,
    Partition,
)
from .builders import BuildResult, build_table, build_partition, create_schema
from .memory import CatalogStore, MemoryCatalogClient
from .http import HttpCatalogClient

# Registry of available backends
CLIENTS = {
    "memory": MemoryCatalogClient,
    "http": HttpCatalogClient,
}

ClientFactory = Callable[[], CatalogClient]


def get_client_factory(
    backend: str,
    url: Optional[str] = None,
    store: Optional[CatalogStore] = None,
) -> ClientFactory:
    """
    Get a function opening new connections to a catalog backend.

    Every call of the returned factory opens an independent connection.
    Connections of the memory backend share one store.

    Args:
        backend: Backend name (e.g., 'memory', 'http')
        url: Server base URL, required by the http backend
        store: Store shared by memory connections (default: a new one)

    Raises:
        ValueError: If the backend is not found or the URL is missing
    """
    name = backend.lower()
    if name not in CLIENTS:
        available = ", ".join(CLIENTS.keys())
        raise ValueError(f"Unknown catalog backend: {backend}. Available: {available}")

    if name == "memory":
        shared = store if store is not None else CatalogStore()
        return lambda: MemoryCatalogClient(shared)

    if not url:
        raise ValueError(f"Catalog backend '{backend}' requires a server URL")
    return lambda: HttpCatalogClient(url)


def list_backends() -> list:
    """List all available backend names."""
    return list(CLIENTS.keys())


__all__ = [
    "CatalogClient",
    "CatalogError",
    "NoSuchObjectError",
    "AlreadyExistsError",
    "SchemaError",
    "FieldSchema",
    "Table",
    "Partition",
    "BuildResult",
    "build_table",
    "build_partition",
    "create_schema",
    "CatalogStore",
    "MemoryCatalogClient",
    "HttpCatalogClient",
    "get_client_factory",
    "list_backends",
    "CLIENTS",
]
