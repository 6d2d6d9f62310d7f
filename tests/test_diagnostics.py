import socket

import pytest

from archbench.benchmark.diagnostics import (
    NullDiagnostics,
    ResourceDiagnostics,
    check_data_source,
)


def test_null_diagnostics_record_nothing():
    diagnostics = NullDiagnostics()
    diagnostics.before_run(0)

    assert diagnostics.after_run(0) == {}


def test_resource_diagnostics_figures():
    pytest.importorskip("resource")
    diagnostics = ResourceDiagnostics(scope="self")

    diagnostics.before_run(0)
    sum(range(10000))
    figures = diagnostics.after_run(0)

    assert set(figures) == {"cpu_time_ms", "max_rss_kb"}
    assert figures["cpu_time_ms"] >= 0
    assert figures["max_rss_kb"] > 0


def test_resource_diagnostics_scope():
    pytest.importorskip("resource")

    with pytest.raises(ValueError):
        ResourceDiagnostics(scope="threads")


def test_check_data_source_reachable():
    server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    server.bind(("127.0.0.1", 0))
    server.listen(1)
    try:
        assert check_data_source("127.0.0.1", server.getsockname()[1])
    finally:
        server.close()


def test_check_data_source_unreachable():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()

    assert not check_data_source("127.0.0.1", port, timeout=0.5)
