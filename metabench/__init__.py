"""
Latency and throughput benchmarks for metadata catalog services.
"""

__version__ = "1.0.0"
