"""
Benchmark execution and reporting package.
"""

from .median import StreamingMedian
from .metrics import MaxMinAverageMeasurement, RunResult, Measurement, MeasurementCollector
from .artifact import ArtifactParser
from .runner import BenchmarkConfig, BenchmarkRunner, MultiArchitectureRunner
from .reporter import Reporter

__all__ = [
    "StreamingMedian",
    "MaxMinAverageMeasurement",
    "RunResult",
    "Measurement",
    "MeasurementCollector",
    "ArtifactParser",
    "BenchmarkConfig",
    "BenchmarkRunner",
    "MultiArchitectureRunner",
    "Reporter",
]
