"""
Measurement data model and per-evaluation aggregation.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import Dict, List, Any, Mapping, Optional, Sequence, Tuple, Union

from .median import StreamingMedian

Number = Union[int, float]


@dataclass(frozen=True)
class MaxMinAverageMeasurement:
    """
    Average, minimum and maximum of one metric over one run.

    Only built from a non-empty sample, so min <= average <= max always holds.
    """
    average: float
    min: Number
    max: Number

    def __post_init__(self):
        if self.min > self.max:
            raise ValueError(f"min {self.min} is greater than max {self.max}")
        if not self.min <= self.average <= self.max:
            raise ValueError(
                f"average {self.average} is outside [{self.min}, {self.max}]"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "average": self.average,
            "min": self.min,
            "max": self.max,
        }


@dataclass(frozen=True)
class RunResult:
    """
    Result of one timed run of an architecture.

    Attributes:
        id: 0-based run index, in execution order
        execution_time_ms: Wall-clock duration reported by the run
        metrics: Metric name -> (average, min, max) over the run's artifact
        diagnostics: Optional per-run process figures (CPU time, memory)
    """
    id: int
    execution_time_ms: int
    metrics: Mapping[str, MaxMinAverageMeasurement] = field(default_factory=dict)
    diagnostics: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "metrics", MappingProxyType(dict(self.metrics)))
        object.__setattr__(self, "diagnostics", MappingProxyType(dict(self.diagnostics)))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "execution_time_ms": self.execution_time_ms,
            "metrics": {name: m.to_dict() for name, m in self.metrics.items()},
            "diagnostics": dict(self.diagnostics),
        }


@dataclass(frozen=True)
class Measurement:
    """
    Summary of all timed runs of one architecture.

    The runs are kept in execution order and runs[i].id == i.
    """
    architecture_name: str
    run_count: int
    median_execution_time_ms: float
    median_delay_per_metric: Mapping[str, float]
    runs: Tuple[RunResult, ...]
    median_diagnostics: Mapping[str, float] = field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "runs", tuple(self.runs))
        object.__setattr__(
            self, "median_delay_per_metric", MappingProxyType(dict(self.median_delay_per_metric))
        )
        object.__setattr__(
            self, "median_diagnostics", MappingProxyType(dict(self.median_diagnostics))
        )

        if len(self.runs) != self.run_count:
            raise ValueError(
                f"{self.architecture_name}: expected {self.run_count} runs, got {len(self.runs)}"
            )
        for index, run in enumerate(self.runs):
            if run.id != index:
                raise ValueError(
                    f"{self.architecture_name}: run at position {index} has id {run.id}"
                )

    @property
    def metric_names(self) -> List[str]:
        """Names of the tracked metrics, in tracking order."""
        return list(self.median_delay_per_metric.keys())

    @property
    def total_duration_sec(self) -> float:
        """Wall-clock time of the whole evaluation, warm-up included."""
        if self.started_at is None or self.finished_at is None:
            return 0.0
        return (self.finished_at - self.started_at).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "architecture_name": self.architecture_name,
            "run_count": self.run_count,
            "median_execution_time_ms": self.median_execution_time_ms,
            "median_delay_per_metric": dict(self.median_delay_per_metric),
            "median_diagnostics": dict(self.median_diagnostics),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "total_duration_sec": self.total_duration_sec,
            "metadata": self.metadata,
            "runs": [run.to_dict() for run in self.runs],
        }


class MeasurementCollector:
    """
    Collects run results during one evaluation.

    Usage:
        collector = MeasurementCollector("EDAPrimer", ["query1", "query2"])

        for i in range(num_times):
            duration = architecture.run()
            collector.record(duration, parse_artifacts())

        measurement = collector.calculate()
    """

    def __init__(self, architecture_name: str, metrics: Sequence[str]):
        """
        Initialize measurement collector.

        Args:
            architecture_name: Name of the evaluated architecture
            metrics: Names of the metrics every run reports
        """
        self.architecture_name = architecture_name
        self.metrics = tuple(metrics)

        self.runs: List[RunResult] = []

        # One median per tracked quantity
        self._median_duration: StreamingMedian = StreamingMedian()
        self._median_delay: Dict[str, StreamingMedian] = {
            name: StreamingMedian() for name in self.metrics
        }
        self._median_diagnostics: Dict[str, StreamingMedian] = {}

        # Timing
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None

    def start(self) -> None:
        """Mark the start of the evaluation."""
        self.start_time = time.time()

    def stop(self) -> None:
        """Mark the end of the evaluation."""
        self.end_time = time.time()

    @property
    def count(self) -> int:
        """Number of recorded runs."""
        return len(self.runs)

    def record(
        self,
        execution_time_ms: int,
        metrics: Mapping[str, MaxMinAverageMeasurement],
        diagnostics: Optional[Mapping[str, float]] = None,
    ) -> RunResult:
        """
        Record one timed run.

        Args:
            execution_time_ms: Duration reported by the run
            metrics: Parsed artifact summary per tracked metric
            diagnostics: Optional per-run process figures

        Returns:
            The RunResult appended for this run
        """
        missing = [name for name in self.metrics if name not in metrics]
        if missing:
            raise ValueError(f"run is missing metrics: {', '.join(missing)}")

        self._median_duration.add(execution_time_ms)
        for name in self.metrics:
            self._median_delay[name].add(metrics[name].average)

        diagnostics = diagnostics or {}
        for name, value in diagnostics.items():
            self._median_diagnostics.setdefault(name, StreamingMedian()).add(value)

        result = RunResult(
            id=len(self.runs),
            execution_time_ms=execution_time_ms,
            metrics={name: metrics[name] for name in self.metrics},
            diagnostics=diagnostics,
        )
        self.runs.append(result)
        return result

    def calculate(self, metadata: Optional[Dict[str, Any]] = None) -> Measurement:
        """
        Drain the medians into a Measurement.

        Args:
            metadata: Extra context stored with the measurement

        Returns:
            Measurement over all recorded runs

        Raises:
            EmptyStream: If no run was recorded
        """
        return Measurement(
            architecture_name=self.architecture_name,
            run_count=len(self.runs),
            median_execution_time_ms=self._median_duration.median(),
            median_delay_per_metric={
                name: median.median() for name, median in self._median_delay.items()
            },
            runs=tuple(self.runs),
            median_diagnostics={
                name: median.median() for name, median in self._median_diagnostics.items()
            },
            started_at=datetime.fromtimestamp(self.start_time) if self.start_time else None,
            finished_at=datetime.fromtimestamp(self.end_time) if self.end_time else None,
            metadata=dict(metadata or {}),
        )
