from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pytest

from archbench.architectures.base import BaseArchitecture
from archbench.benchmark.metrics import MaxMinAverageMeasurement, MeasurementCollector
from archbench.benchmark.runner import BenchmarkConfig, BenchmarkRunner
from archbench.benchmark.state import OutputDirectory, StateReset
from archbench.errors import ResetFailure, RunFailure


class FakeArchitecture(BaseArchitecture):
    """
    Deterministic architecture writing two-line artifacts.

    Timed run i returns durations[i] and writes, for every metric, the values
    averages[i] - 1 and averages[i] + 1, so the artifact averages to
    averages[i]. The warm-up run is recognized by its "_cache" destination.
    """

    name = "fake"
    display_name = "Fake Architecture"

    def __init__(
        self,
        durations: Sequence[int],
        averages: Optional[Sequence[int]] = None,
        fail_on: Sequence[Optional[int]] = (),
        malformed_on: Sequence[int] = (),
    ):
        self.durations = list(durations)
        self.averages = list(averages) if averages is not None else [1] * len(self.durations)
        self.fail_on = set(fail_on)
        self.malformed_on = set(malformed_on)
        self.warmup_calls = 0
        self.timed_calls = 0
        self.seen_destinations: List[Dict[str, Path]] = []
        super().__init__()

    def _load_config(self):
        return {}

    def run(self) -> int:
        destinations = {metric: self.output_destination(metric) for metric in self.metrics}
        self.seen_destinations.append(destinations)

        if destinations[self.metrics[0]].stem.endswith("_cache"):
            run_id = None
            self.warmup_calls += 1
        else:
            run_id = self.timed_calls
            self.timed_calls += 1

        if run_id in self.fail_on:
            raise RunFailure(f"scripted failure at run {run_id}")

        average = 1 if run_id is None else self.averages[run_id]
        for path in destinations.values():
            if run_id in self.malformed_on:
                path.write_text("a,b,not-a-number\n")
            else:
                path.write_text(f"a,b,{average - 1}\nc,d,{average + 1}\n")

        return 0 if run_id is None else self.durations[run_id]


class OtherFakeArchitecture(FakeArchitecture):
    name = "other"
    display_name = "Other Fake Architecture"


class RecordingReset(StateReset):
    """Counts resets; fails from the given call on if fail_from is set."""

    def __init__(self, fail_from: Optional[int] = None):
        self.calls = 0
        self.fail_from = fail_from

    def reset(self) -> None:
        self.calls += 1
        if self.fail_from is not None and self.calls >= self.fail_from:
            raise ResetFailure("table trip is locked")


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch):
    """Keep a developer's .env from leaking into the tests."""
    for name in (
        "ARCHITECTURE_COMMAND",
        "ARCHITECTURE_WORKING_DIR",
        "ARCHITECTURE_URL",
        "DATABASE_URL",
        "TRUNCATE_TABLES",
        "DATA_HOST",
        "DATA_PORT",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def query_dir(tmp_path: Path) -> Path:
    return tmp_path / "query"


@pytest.fixture
def recording_reset() -> RecordingReset:
    return RecordingReset()


@pytest.fixture
def make_runner(query_dir: Path, recording_reset: RecordingReset):
    """Build a runner writing into tmp_path with in-memory state reset."""

    def _make(num_times: int = 3, **kwargs) -> BenchmarkRunner:
        state_reset = kwargs.pop("state_reset", recording_reset)
        diagnostics = kwargs.pop("diagnostics", None)
        return BenchmarkRunner(
            BenchmarkConfig(num_times=num_times, **kwargs),
            outputs=OutputDirectory(query_dir),
            state_reset=state_reset,
            diagnostics=diagnostics,
        )

    return _make


@pytest.fixture
def sample_measurement():
    collector = MeasurementCollector("FakeArchitecture", ["query1", "query2"])
    collector.start()
    for duration, average in [(10, 1), (20, 2), (30, 3)]:
        summary = MaxMinAverageMeasurement(
            average=float(average), min=average - 1, max=average + 1
        )
        collector.record(duration, {"query1": summary, "query2": summary})
    collector.stop()
    return collector.calculate(metadata={"display_name": "Fake Architecture"})


# Stand-in pipeline executable for the command architecture; prints its
# own duration as the last stdout line.
PIPELINE_SCRIPT = """
import argparse
import time

parser = argparse.ArgumentParser()
parser.add_argument("--host")
parser.add_argument("--port")
parser.add_argument("--query1-output")
parser.add_argument("--query2-output")
parser.add_argument("--exit-code", type=int, default=0)
parser.add_argument("--sleep", type=float, default=0)
args = parser.parse_args()

time.sleep(args.sleep)

for path in (args.query1_output, args.query2_output):
    with open(path, "w") as f:
        f.write(args.host + "," + args.port + ",3\\n")

if args.exit_code:
    raise SystemExit(args.exit_code)
print("processed")
print(42)
"""
