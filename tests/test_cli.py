import json
import shlex
import socket
import sys

import pytest
from click.testing import CliRunner

import main
from archbench.benchmark.diagnostics import UnsupportedRuntime
from archbench.config import Config

from conftest import PIPELINE_SCRIPT


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Point every output directory into tmp_path."""
    monkeypatch.setattr(Config, "OUTPUT_DIR", tmp_path / "output")
    monkeypatch.setattr(Config, "QUERY_OUTPUT_DIR", tmp_path / "output" / "query")
    monkeypatch.setattr(Config, "REPORT_DIR", tmp_path / "output" / "reports")
    return tmp_path


@pytest.fixture
def closed_port():
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def test_validate(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "q1_0.txt").write_text("a,b,5\nc,d,7\ne,f,3\n")

    result = CliRunner().invoke(main.cli, ["validate", "q1_0.txt"])

    assert result.exit_code == 0
    assert "5.000" in result.output


def test_validate_malformed(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / "good.txt").write_text("a,1\n")
    (tmp_path / "bad.txt").write_text("a,one\n")

    result = CliRunner().invoke(main.cli, ["validate", "good.txt", "bad.txt"])

    assert result.exit_code == 1
    assert "invalid" in result.output


def test_list_architectures():
    result = CliRunner().invoke(main.cli, ["list-architectures"])

    assert result.exit_code == 0
    assert "command" in result.output
    assert "http" in result.output
    assert "Not configured" in result.output


def test_run_without_data_source(workspace, closed_port):
    result = CliRunner().invoke(
        main.cli, ["run", "-a", "command", "--host", "127.0.0.1", "--port", str(closed_port)]
    )

    assert result.exit_code == main.EXIT_DATA_SOURCE_NOT_FOUND
    assert "not reachable" in result.output


def test_run_with_unsupported_diagnostics(workspace, monkeypatch):
    def unsupported(*args, **kwargs):
        raise UnsupportedRuntime("Resource diagnostics are not available on test")

    monkeypatch.setattr(main, "ResourceDiagnostics", unsupported)

    result = CliRunner().invoke(main.cli, ["run", "-a", "command", "--skip-check", "--diagnostics"])

    assert result.exit_code == main.EXIT_UNSUPPORTED_RUNTIME


def test_run_unknown_architecture(workspace):
    result = CliRunner().invoke(main.cli, ["run", "-a", "spark", "--skip-check"])

    assert result.exit_code == main.EXIT_ERROR
    assert "Unknown architecture" in result.output


def test_run_unconfigured_architecture(workspace):
    result = CliRunner().invoke(main.cli, ["run", "-a", "command", "--skip-check"])

    assert result.exit_code == main.EXIT_ERROR
    assert "ARCHITECTURE_COMMAND" in result.output


def test_run_command_architecture(workspace, monkeypatch):
    script = workspace / "pipeline.py"
    script.write_text(PIPELINE_SCRIPT)
    monkeypatch.setenv(
        "ARCHITECTURE_COMMAND", f"{shlex.quote(sys.executable)} {shlex.quote(str(script))}"
    )

    result = CliRunner().invoke(
        main.cli, ["run", "-a", "command", "-n", "2", "--skip-check", "--format", "json"]
    )

    assert result.exit_code == 0, result.output
    reports = list((workspace / "output" / "reports").rglob("*.json"))
    assert len(reports) == 1
    data = json.loads(reports[0].read_text(encoding="utf-8"))
    measurement = data["measurements"][0]
    assert measurement["architecture_name"] == "CommandArchitecture"
    assert measurement["run_count"] == 2
    assert measurement["median_execution_time_ms"] == 42.0
    assert measurement["median_delay_per_metric"] == {"query1": 3.0, "query2": 3.0}
    assert list((workspace / "output" / "query").iterdir()) == []


def test_run_failing_architecture(workspace, monkeypatch):
    script = workspace / "pipeline.py"
    script.write_text(PIPELINE_SCRIPT)
    monkeypatch.setenv(
        "ARCHITECTURE_COMMAND",
        f"{shlex.quote(sys.executable)} {shlex.quote(str(script))} --exit-code 4",
    )

    result = CliRunner().invoke(main.cli, ["run", "-a", "command", "-n", "1", "--skip-check"])

    assert result.exit_code == main.EXIT_ERROR
    assert "warm-up run failed" in result.output


def test_init(workspace, monkeypatch):
    monkeypatch.chdir(workspace)

    result = CliRunner().invoke(main.cli, ["init"])

    assert result.exit_code == 0
    assert (workspace / "output" / "reports").is_dir()
