"""
Utility functions for benchmark module.
Separated to avoid circular imports.
"""

import os
import platform
import socket
from datetime import datetime
from typing import Dict, Iterable, List, Optional


def get_machine_info() -> Dict[str, str]:
    """
    Get machine information for report context.

    Returns:
        Dictionary with hostname, platform, python version and CPU count
    """
    return {
        "hostname": socket.gethostname(),
        "platform": f"{platform.system()} {platform.release()}",
        "python": platform.python_version(),
        "cpu_count": str(os.cpu_count() or 1),
    }


def get_report_name(prefix: str = "benchmark") -> str:
    """
    Generate a timestamped report file stem.

    Format: prefix_YYYYMMDD_HHMMSS
    """
    return f"{prefix}_{datetime.now().strftime('%Y%m%d_%H%M%S')}"


def split_patterns(patterns: Optional[str], extra: Iterable[str] = ()) -> List[str]:
    """
    Merge a comma-separated pattern option with positional patterns.

    Empty pieces are dropped, so ``"a,,b"`` yields ``["a", "b"]``.
    """
    result = [p.strip() for p in (patterns or "").split(",") if p.strip()]
    result.extend(p for p in extra if p)
    return result
