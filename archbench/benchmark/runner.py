"""
Benchmark runner for evaluating architectures.
"""

import logging
import numbers
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Callable, Dict, Any, Iterator, List, Optional

from ..architectures.base import BaseArchitecture
from ..config import Config
from ..errors import EvaluationError, ResetFailure, RunFailure, RunTimeout
from .artifact import ArtifactParser
from .diagnostics import Diagnostics, NullDiagnostics
from .metrics import Measurement, MeasurementCollector, RunResult
from .state import (
    RESET_LOCK,
    NullStateReset,
    OutputDirectory,
    StateReset,
    TableTruncator,
)

logger = logging.getLogger(__name__)


@dataclass
class BenchmarkConfig:
    """Configuration for evaluating an architecture."""
    num_times: int = 10
    warmup: bool = True
    validate_warmup: bool = False
    run_timeout: Optional[float] = None
    keep_artifacts: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "num_times": self.num_times,
            "warmup": self.warmup,
            "validate_warmup": self.validate_warmup,
            "run_timeout": self.run_timeout,
            "keep_artifacts": self.keep_artifacts,
        }


def default_state_reset() -> StateReset:
    """Table truncation as configured in the environment, or nothing."""
    db_config = Config.get_database_config()
    if db_config["url"] and db_config["tables"]:
        return TableTruncator(db_config["url"], db_config["tables"])
    return NullStateReset()


class BenchmarkRunner:
    """
    Evaluates an architecture by running it repeatedly.

    Protocol:
        - One untimed warm-up run to prime caches
        - num_times timed runs, each writing its own artifacts
        - After every run the artifacts are cleared and external state reset
        - Medians of the duration and of every metric's average are kept

    Any failure aborts the evaluation; there is no partial measurement and
    no retry, since a failed run leaves the cache state unknown.

    Example:
        runner = BenchmarkRunner(BenchmarkConfig(num_times=10))
        measurement = runner.evaluate(architecture)
    """

    def __init__(
        self,
        config: Optional[BenchmarkConfig] = None,
        outputs: Optional[OutputDirectory] = None,
        state_reset: Optional[StateReset] = None,
        diagnostics: Optional[Diagnostics] = None,
        parser: Optional[ArtifactParser] = None,
    ):
        """
        Initialize benchmark runner.

        Args:
            config: Benchmark configuration
            outputs: Directory receiving the artifacts of each run
            state_reset: Reset of the architecture's persisted state
            diagnostics: Per-run diagnostics hooks
            parser: Artifact parser
        """
        self.config = config or BenchmarkConfig(
            num_times=Config.NUM_TIMES,
            run_timeout=Config.RUN_TIMEOUT or None,
        )
        if self.config.num_times < 1:
            raise ValueError(f"num_times must be at least 1, got {self.config.num_times}")

        self.outputs = outputs or OutputDirectory(
            Config.QUERY_OUTPUT_DIR,
            archive_dir=Config.OUTPUT_DIR / "archive" if self.config.keep_artifacts else None,
        )
        self.state_reset = state_reset or default_state_reset()
        self.diagnostics = diagnostics or NullDiagnostics()
        self.parser = parser or ArtifactParser()

        # Callbacks
        self._on_progress: Optional[Callable[[int, int], None]] = None
        self._on_run: Optional[Callable[[RunResult], None]] = None

    def on_progress(self, callback: Callable[[int, int], None]) -> "BenchmarkRunner":
        """
        Set progress callback.

        Args:
            callback: Function(completed, total) called after each timed run
        """
        self._on_progress = callback
        return self

    def on_run(self, callback: Callable[[RunResult], None]) -> "BenchmarkRunner":
        """
        Set run callback.

        Args:
            callback: Function(run_result) called after each timed run
        """
        self._on_run = callback
        return self

    def evaluate(self, architecture: BaseArchitecture) -> Measurement:
        """
        Evaluate an architecture.

        Args:
            architecture: Architecture under test

        Returns:
            Measurement over num_times runs

        Raises:
            EvaluationError: If the warm-up or any timed run failed
        """
        name = type(architecture).__name__
        num_times = self.config.num_times
        collector = MeasurementCollector(name, architecture.metrics)

        logger.info(f"Evaluating {name}: {num_times} runs")
        collector.start()

        if self.config.warmup:
            with self._run_context(name, None):
                self._warm_up(architecture, name)
            logger.info(f"{name}: warm-up run complete")

        for run_id in range(num_times):
            with self._run_context(name, run_id):
                result = self._timed_run(architecture, name, run_id, collector)

            logger.info(f"{name}: run {run_id + 1}/{num_times} took {result.execution_time_ms}ms")

            if self._on_run:
                self._on_run(result)
            if self._on_progress:
                self._on_progress(run_id + 1, num_times)

        collector.stop()
        measurement = collector.calculate(metadata={
            "display_name": architecture.display_name,
            **self.config.to_dict(),
        })

        logger.info(
            f"{name}: median execution time {measurement.median_execution_time_ms}ms"
        )
        return measurement

    @contextmanager
    def _run_context(self, name: str, run_id: Optional[int]) -> Iterator[None]:
        """Attach the architecture and run to anything that aborts a run."""
        stage = "warm-up" if run_id is None else f"run {run_id}"
        try:
            yield
        except EvaluationError:
            raise
        except Exception as e:
            logger.error(f"{name}: {stage} failed: {e}")
            raise EvaluationError(name, run_id, e) from e

    def _warm_up(self, architecture: BaseArchitecture, name: str) -> None:
        paths = {
            metric: self.outputs.path_for(name, metric)
            for metric in architecture.metrics
        }
        for metric, path in paths.items():
            architecture.set_output_destination(metric, path)

        with self._isolated_run():
            self._invoke(architecture)
            if self.config.validate_warmup:
                for path in paths.values():
                    self.parser.validate(path)

    def _timed_run(
        self,
        architecture: BaseArchitecture,
        name: str,
        run_id: int,
        collector: MeasurementCollector,
    ) -> RunResult:
        paths = {
            metric: self.outputs.path_for(name, metric, run_id)
            for metric in architecture.metrics
        }
        for metric, path in paths.items():
            architecture.set_output_destination(metric, path)

        with self._isolated_run():
            self.diagnostics.before_run(run_id)
            duration = self._invoke(architecture)
            figures = self.diagnostics.after_run(run_id)

            metrics = {
                metric: self.parser.summarize(path) for metric, path in paths.items()
            }
            for metric, summary in metrics.items():
                logger.debug(
                    f"{name}: run {run_id} {metric} "
                    f"avg={summary.average:.3f} min={summary.min} max={summary.max}"
                )

            return collector.record(duration, metrics, figures)

    @contextmanager
    def _isolated_run(self) -> Iterator[None]:
        """
        Empty the output directory and reset external state after the body.

        A reset failure wins over the run's own error, which is logged and
        kept on the ResetFailure.
        """
        run_error = None
        try:
            try:
                with self.outputs.scoped_cleanup():
                    try:
                        yield
                    except Exception as e:
                        run_error = e
                        raise
            finally:
                with RESET_LOCK:
                    self.state_reset.reset()
        except ResetFailure as e:
            if run_error is not None and e is not run_error:
                logger.error(f"Run failed before the reset did: {type(run_error).__name__}: {run_error}")
                e.run_error = run_error
            raise

    def _invoke(self, architecture: BaseArchitecture) -> int:
        """
        Run the architecture once, bounded by run_timeout if set.

        Returns:
            Execution time in milliseconds

        Raises:
            RunTimeout: If the run did not finish in time
            RunFailure: If the run raised or returned an invalid duration
        """
        timeout = self.config.run_timeout
        try:
            if architecture.enforces_timeout:
                architecture.set_run_timeout(timeout)
                duration = architecture.run()
            elif timeout:
                duration = self._run_bounded(architecture, timeout)
            else:
                duration = architecture.run()
        except RunFailure:
            raise
        except Exception as e:
            raise RunFailure(f"{type(e).__name__}: {e}") from e

        if (
            isinstance(duration, bool)
            or not isinstance(duration, numbers.Integral)
            or duration < 0
        ):
            raise RunFailure(f"invalid execution time: {duration!r}")
        return int(duration)

    @staticmethod
    def _run_bounded(architecture: BaseArchitecture, timeout: float) -> Any:
        """
        Run an architecture that cannot bound itself on a watchdog thread.

        The thread is a daemon so a stuck run never holds up interpreter
        exit. It cannot be stopped, so the timeout is reported as abandoned.
        """
        finished = threading.Event()
        outcome: Dict[str, Any] = {}

        def target():
            try:
                outcome["duration"] = architecture.run()
            except Exception as e:
                outcome["error"] = e
            finally:
                finished.set()

        worker = threading.Thread(
            target=target, name=f"run-{architecture.name}", daemon=True
        )
        worker.start()
        worker.join(timeout=timeout)

        if not finished.is_set():
            logger.error(f"{architecture.name}: run still going after {timeout}s, abandoning it")
            raise RunTimeout(f"run did not finish within {timeout}s", abandoned=True)
        if "error" in outcome:
            raise outcome["error"]
        return outcome["duration"]


class MultiArchitectureRunner:
    """
    Evaluate several architectures one after another.

    Example:
        runner = MultiArchitectureRunner(BenchmarkRunner())
        runner.add_architecture(CommandArchitecture())
        runner.add_architecture(HttpArchitecture())

        measurements = runner.run_comparison()
    """

    def __init__(self, runner: Optional[BenchmarkRunner] = None):
        """Initialize multi-architecture runner."""
        self.runner = runner or BenchmarkRunner()
        self.architectures: List[BaseArchitecture] = []
        self.results: Dict[str, Measurement] = {}
        self.failures: Dict[str, EvaluationError] = {}

    def add_architecture(self, architecture: BaseArchitecture) -> "MultiArchitectureRunner":
        """Add an architecture to evaluate."""
        self.architectures.append(architecture)
        return self

    def run_comparison(self, continue_on_error: bool = False) -> Dict[str, Measurement]:
        """
        Evaluate all architectures.

        Args:
            continue_on_error: Record a failed evaluation and go on with the
                next architecture. Reset failures always stop the sequence.

        Returns:
            Dictionary mapping architecture name to measurement

        Raises:
            EvaluationError: If an evaluation failed and the sequence stops
        """
        logger.info(f"Evaluating {len(self.architectures)} architectures")

        for architecture in self.architectures:
            logger.info(f"{'=' * 60}")
            logger.info(f"Architecture: {architecture.display_name}")
            logger.info(f"{'=' * 60}")

            try:
                measurement = self.runner.evaluate(architecture)
            except EvaluationError as e:
                self.failures[e.architecture] = e
                if e.is_fatal or not continue_on_error:
                    raise
                logger.warning(f"Skipping {e.architecture}: {e}")
                continue

            self.results[measurement.architecture_name] = measurement

        return self.results

    def get_comparison_summary(self) -> Dict[str, Any]:
        """
        Get a summary comparison of all evaluated architectures.

        Returns:
            Summary dictionary, fastest median execution time first
        """
        ranked = sorted(
            self.results.values(),
            key=lambda m: m.median_execution_time_ms,
        )
        return {
            "architectures": [
                {
                    "name": m.architecture_name,
                    "runs": m.run_count,
                    "median_execution_time_ms": m.median_execution_time_ms,
                    "median_delay_per_metric": dict(m.median_delay_per_metric),
                }
                for m in ranked
            ],
            "fastest": ranked[0].architecture_name if ranked else None,
            "failed": {name: str(error) for name, error in self.failures.items()},
        }
