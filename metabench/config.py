"""
Configuration management for Metastore Benchmark.
Loads settings from environment variables and .env file.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from dotenv import load_dotenv

from .benchmark.errors import ConfigurationError
from .benchmark.reporter import DEFAULT_SEPARATOR, validate_separator
from .benchmark.statistics import TimeScale

logger = logging.getLogger(__name__)

# Load .env file from project root
PROJECT_ROOT = Path(__file__).parent.parent
load_dotenv(PROJECT_ROOT / ".env")

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 9083
ENV_HOST = "HMS_HOST"
ENV_PORT = "HMS_PORT"


class Config:
    """Central configuration management."""

    # ==========================================================================
    # Server
    # ==========================================================================
    HMS_HOST: Optional[str] = os.getenv(ENV_HOST)
    HMS_PORT: Optional[str] = os.getenv(ENV_PORT)
    CATALOG_BACKEND: str = os.getenv("CATALOG_BACKEND", "http")
    # 0 means no timeout: a hung call blocks its benchmark
    REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "0"))

    # ==========================================================================
    # Benchmark Settings
    # ==========================================================================
    WARMUP: int = int(os.getenv("BENCH_WARMUP", "15"))
    SPIN: int = int(os.getenv("BENCH_SPIN", "100"))
    THREADS: int = int(os.getenv("BENCH_THREADS", "2"))
    INSTANCES: int = int(os.getenv("BENCH_INSTANCES", "100"))

    # Output directories
    REPORT_DIR: Path = PROJECT_ROOT / os.getenv("REPORT_DIR", "reports")

    @classmethod
    def ensure_directories(cls):
        """Create output directories if they don't exist."""
        cls.REPORT_DIR.mkdir(parents=True, exist_ok=True)


@dataclass(frozen=True)
class SuiteConfiguration:
    """
    Run parameters, fixed once the run starts.

    Attributes:
        scale: Display unit for reports and raw-sample files
        sanitize: Remove outliers from displayed statistics
        warmup: Discarded iterations per benchmark
        spin: Measured iterations per benchmark
        threads: Worker count of concurrent benchmarks
        instances: Object count of the ".N" benchmark variants
        parameters: Number of table/partition parameters
        separator: CSV field separator
    """
    scale: TimeScale = TimeScale.MILLISECONDS
    sanitize: bool = False
    warmup: int = 15
    spin: int = 100
    threads: int = 2
    instances: int = 100
    parameters: int = 0
    separator: str = DEFAULT_SEPARATOR

    def __post_init__(self):
        for name in ("warmup", "spin", "instances", "parameters"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} must be non-negative (got {getattr(self, name)})")
        if self.threads < 1:
            raise ConfigurationError(f"threads must be at least 1 (got {self.threads})")
        validate_separator(self.separator)

    @classmethod
    def from_env(cls, **overrides) -> "SuiteConfiguration":
        """Build a configuration from Config defaults and explicit overrides."""
        values = {
            "warmup": Config.WARMUP,
            "spin": Config.SPIN,
            "threads": Config.THREADS,
            "instances": Config.INSTANCES,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def split_host_port(address: str) -> Tuple[str, Optional[str]]:
    """
    Split ``host``, ``host:port``, ``[v6]`` or ``[v6]:port``.

    A bare IPv6 literal (more than one colon, no brackets) is a host
    without a port.

    Raises:
        ConfigurationError: If a bracketed address is malformed
    """
    if address.startswith("["):
        end = address.find("]")
        rest = address[end + 1:]
        if end == -1 or (rest and not rest.startswith(":")):
            raise ConfigurationError(f"Invalid server address: {address}")
        return address[1:end], rest[1:] or None

    if address.count(":") == 1:
        host, port = address.split(":")
        return host, port or None
    return address, None


def resolve_server(host: Optional[str] = None, port: Optional[int] = None) -> Tuple[str, int]:
    """
    Resolve the catalog server address.

    Host comes from the argument, then HMS_HOST, then "localhost".
    Port comes from a "host:port" host string, then the argument, then
    HMS_PORT, then the default port 9083.

    Raises:
        ConfigurationError: If the address or a port is not valid
    """
    host, host_port = split_host_port(host or Config.HMS_HOST or DEFAULT_HOST)

    if host_port:
        port_string: Optional[str] = host_port
    elif port is not None:
        port_string = str(port)
    else:
        port_string = Config.HMS_PORT

    try:
        resolved_port = int(port_string) if port_string else DEFAULT_PORT
    except ValueError as e:
        raise ConfigurationError(f"Invalid port: {port_string}") from e

    logger.info(f"Connecting to {host}:{resolved_port}")
    return host, resolved_port


def server_url(host: Optional[str] = None, port: Optional[int] = None) -> str:
    """HTTP base URL of the catalog server."""
    resolved_host, resolved_port = resolve_server(host, port)
    if ":" in resolved_host:
        resolved_host = f"[{resolved_host}]"
    return f"http://{resolved_host}:{resolved_port}"
