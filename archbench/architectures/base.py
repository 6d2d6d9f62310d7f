"""
Base architecture interface for the benchmark harness.
All architectures under test must implement this interface.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Any, Optional, Tuple, Union

from ..config import DEFAULT_METRICS


class BaseArchitecture(ABC):
    """
    Abstract base class for architectures under test.

    An architecture is an external pipeline that consumes the data source,
    writes one artifact per metric and reports how long it took. It must be
    re-runnable without re-initialization.

    Example:
        class MyArchitecture(BaseArchitecture):
            name = "mine"

            def _load_config(self):
                return {}

            def run(self):
                # Write self.output_destination("query1") etc.
                return duration_ms
    """

    # Architecture identification
    name: str = "base"
    display_name: str = "Base Architecture"

    # Metrics for which an artifact is written on every run
    metrics: Tuple[str, ...] = DEFAULT_METRICS

    # Whether run() honours self.run_timeout itself and stops its work when
    # the bound expires. Other architectures are bounded from outside.
    enforces_timeout: bool = False

    def __init__(self, **overrides):
        """
        Initialize architecture with configuration.

        Args:
            **overrides: Values replacing the loaded configuration
        """
        self.config = self._load_config()
        self.config.update({k: v for k, v in overrides.items() if v is not None})
        self._validate_config()
        self._destinations: Dict[str, Path] = {}
        self.run_timeout: Optional[float] = None

    def set_run_timeout(self, seconds: Optional[float]) -> None:
        """
        Bound the next runs to this many seconds, None for no bound.

        Only honoured by architectures with enforces_timeout set.
        """
        self.run_timeout = seconds or None

    @abstractmethod
    def _load_config(self) -> Dict[str, Any]:
        """
        Load architecture-specific configuration.

        Returns:
            Dictionary containing architecture configuration
        """
        pass

    def _validate_config(self) -> None:
        """
        Validate that required configuration is present.
        Raises ConfigurationError if validation fails.
        """
        pass

    def set_output_destination(self, metric: str, path: Union[str, Path]) -> None:
        """
        Set where the artifact of a metric is written on the next run.

        Args:
            metric: Metric name, one of self.metrics
            path: Artifact path
        """
        if metric not in self.metrics:
            raise ConfigurationError(
                f"{self.name} does not write metric '{metric}'. "
                f"Available: {', '.join(self.metrics)}"
            )
        self._destinations[metric] = Path(path)

    def output_destination(self, metric: str) -> Path:
        """
        Get the configured artifact path of a metric.

        Raises:
            ConfigurationError: If no destination was set
        """
        try:
            return self._destinations[metric]
        except KeyError:
            raise ConfigurationError(
                f"No output destination set for metric '{metric}'"
            ) from None

    @abstractmethod
    def run(self) -> int:
        """
        Execute the architecture once, blocking until it finishes.

        Returns:
            Execution time in milliseconds
        """
        pass

    def is_configured(self) -> bool:
        """
        Check if the architecture has everything it needs to run.

        Returns:
            True if configured, False otherwise
        """
        try:
            self._validate_config()
            return True
        except ConfigurationError:
            return False

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name})>"


class ArchitectureError(Exception):
    """Base exception for architecture errors."""
    pass


class ConfigurationError(ArchitectureError):
    """Raised when architecture configuration is invalid."""
    pass
