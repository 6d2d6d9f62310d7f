import pytest

from archbench.benchmark.metrics import (
    MaxMinAverageMeasurement,
    Measurement,
    MeasurementCollector,
    RunResult,
)
from archbench.errors import EmptyStream


def _triple(average, low, high):
    return MaxMinAverageMeasurement(average=average, min=low, max=high)


def test_triple_orders_values():
    with pytest.raises(ValueError):
        _triple(5.0, 7, 3)

    with pytest.raises(ValueError):
        _triple(9.0, 3, 7)


def test_triple_to_dict():
    assert _triple(5.0, 3, 7).to_dict() == {"average": 5.0, "min": 3, "max": 7}


def test_run_result_metrics_are_read_only():
    result = RunResult(id=0, execution_time_ms=10, metrics={"query1": _triple(1.0, 0, 2)})

    with pytest.raises(TypeError):
        result.metrics["query2"] = _triple(1.0, 0, 2)


def test_measurement_requires_ordered_run_ids():
    runs = [
        RunResult(id=1, execution_time_ms=10),
        RunResult(id=0, execution_time_ms=20),
    ]

    with pytest.raises(ValueError):
        Measurement(
            architecture_name="EDAPrimer",
            run_count=2,
            median_execution_time_ms=15.0,
            median_delay_per_metric={},
            runs=runs,
        )


def test_measurement_requires_run_count():
    with pytest.raises(ValueError):
        Measurement(
            architecture_name="EDAPrimer",
            run_count=3,
            median_execution_time_ms=10,
            median_delay_per_metric={},
            runs=[RunResult(id=0, execution_time_ms=10)],
        )


def test_collector_drains_medians(sample_measurement):
    assert sample_measurement.architecture_name == "FakeArchitecture"
    assert sample_measurement.run_count == 3
    assert sample_measurement.median_execution_time_ms == 20
    assert dict(sample_measurement.median_delay_per_metric) == {"query1": 2.0, "query2": 2.0}
    assert [run.id for run in sample_measurement.runs] == [0, 1, 2]
    assert sample_measurement.metric_names == ["query1", "query2"]
    assert sample_measurement.started_at <= sample_measurement.finished_at


def test_collector_rejects_missing_metric():
    collector = MeasurementCollector("EDAPrimer", ["query1", "query2"])

    with pytest.raises(ValueError, match="query2"):
        collector.record(10, {"query1": _triple(1.0, 0, 2)})

    assert collector.count == 0


def test_collector_medians_diagnostics():
    collector = MeasurementCollector("EDAPrimer", ["query1"])
    for run_id, cpu in enumerate([30.0, 10.0, 20.0]):
        collector.record(run_id, {"query1": _triple(1.0, 0, 2)}, {"cpu_time_ms": cpu})

    measurement = collector.calculate()

    assert measurement.median_diagnostics["cpu_time_ms"] == 20.0
    assert measurement.runs[0].diagnostics["cpu_time_ms"] == 30.0


def test_calculate_without_runs_fails():
    with pytest.raises(EmptyStream):
        MeasurementCollector("EDAPrimer", ["query1"]).calculate()


def test_measurement_to_dict(sample_measurement):
    data = sample_measurement.to_dict()

    assert data["run_count"] == 3
    assert data["median_delay_per_metric"]["query1"] == 2.0
    assert data["runs"][2]["metrics"]["query2"] == {"average": 3.0, "min": 2, "max": 4}
    assert data["metadata"] == {"display_name": "Fake Architecture"}
    assert data["total_duration_sec"] >= 0
