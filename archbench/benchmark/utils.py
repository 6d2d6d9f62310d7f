"""
Utility functions for benchmark module.
Separated to avoid circular imports.
"""

import os
import platform
import socket
from datetime import datetime
from typing import Dict


def get_machine_info() -> Dict[str, str]:
    """
    Get machine information for report context.

    Timings are only comparable between runs on the same machine, so every
    report records where it was produced.

    Returns:
        Dictionary with machine details including:
        - hostname: Machine hostname
        - platform: OS platform info
        - machine: Hardware architecture
        - python: Interpreter implementation and version
        - cpu_count: Number of logical CPUs
    """
    return {
        "hostname": socket.gethostname(),
        "platform": f"{platform.system()} {platform.release()}",
        "machine": platform.machine() or "unknown",
        "python": f"{platform.python_implementation()} {platform.python_version()}",
        "cpu_count": str(os.cpu_count() or "unknown"),
    }


def get_report_subdir_name() -> str:
    """
    Generate report subdirectory name based on date and hostname.

    Format: YYYYMMDD_hostname
    Example: 20251224_bench-01

    Returns:
        Subdirectory name string
    """
    date_str = datetime.now().strftime("%Y%m%d")
    hostname = socket.gethostname().replace("_", "-") or "localhost"
    return f"{date_str}_{hostname}"
