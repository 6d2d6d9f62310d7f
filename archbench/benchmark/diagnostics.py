"""
Optional per-run process diagnostics.

The harness calls before_run/after_run around every timed run and stores
whatever after_run returns with the run result. The default does nothing.
"""

import logging
import socket
import sys
from typing import Dict, Optional

from ..errors import BenchmarkError

logger = logging.getLogger(__name__)


class UnsupportedRuntime(BenchmarkError):
    """Raised when diagnostics are requested on a runtime that cannot provide them."""
    pass


class Diagnostics:
    """Hooks around every timed run."""

    def before_run(self, run_id: int) -> None:
        pass

    def after_run(self, run_id: int) -> Dict[str, float]:
        return {}


class NullDiagnostics(Diagnostics):
    """Diagnostics that record nothing."""
    pass


class ResourceDiagnostics(Diagnostics):
    """
    CPU time and peak memory of the architecture's processes.

    Uses getrusage, so it is only available on POSIX systems. By default the
    usage of terminated child processes is read, which covers architectures
    launched as a command. Use scope="self" for in-process architectures.

    Recorded per run:
        - cpu_time_ms: user + system CPU time spent during the run
        - max_rss_kb: peak resident set size seen so far (a high-water mark,
          not a per-run delta)
    """

    def __init__(self, scope: str = "children"):
        try:
            import resource
        except ImportError:
            raise UnsupportedRuntime(
                f"Resource diagnostics are not available on {sys.platform}"
            ) from None

        self._resource = resource
        if scope == "children":
            self._who = resource.RUSAGE_CHILDREN
        elif scope == "self":
            self._who = resource.RUSAGE_SELF
        else:
            raise ValueError(f"Unknown scope: {scope}")
        self._cpu_before: Optional[float] = None

    def _cpu_seconds(self) -> float:
        usage = self._resource.getrusage(self._who)
        return usage.ru_utime + usage.ru_stime

    def before_run(self, run_id: int) -> None:
        self._cpu_before = self._cpu_seconds()

    def after_run(self, run_id: int) -> Dict[str, float]:
        usage = self._resource.getrusage(self._who)
        cpu_after = usage.ru_utime + usage.ru_stime
        cpu_before = self._cpu_before if self._cpu_before is not None else cpu_after
        self._cpu_before = None

        max_rss = float(usage.ru_maxrss)
        if sys.platform == "darwin":
            # reported in bytes on macOS
            max_rss /= 1024

        figures = {
            "cpu_time_ms": (cpu_after - cpu_before) * 1000,
            "max_rss_kb": max_rss,
        }
        logger.debug(f"Run {run_id} diagnostics: {figures}")
        return figures


def check_data_source(host: str, port: int, timeout: float = 2.0) -> bool:
    """
    Check that the data source the architectures read from is listening.

    Args:
        host: Data source host
        port: Data source port
        timeout: Connection timeout in seconds

    Returns:
        True if a TCP connection could be opened
    """
    try:
        with socket.create_connection((host, port), timeout=timeout):
            return True
    except OSError as e:
        logger.debug(f"Data source {host}:{port} not reachable: {e}")
        return False
