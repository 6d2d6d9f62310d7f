"""
Architecture triggered over HTTP.

The remote pipeline exposes POST {base_url}/run. The request carries the data
source and the artifact destinations; the pipeline writes the artifacts to a
file system shared with the harness and answers once it is done:

    {"execution_time_ms": 1234}
"""

import json
import logging
import time
from typing import Dict, Any

import requests

from .base import BaseArchitecture, ArchitectureError, ConfigurationError
from ..errors import RunTimeout
from ..config import Config

logger = logging.getLogger(__name__)


class HttpArchitecture(BaseArchitecture):
    """
    Architecture whose pipeline runs behind an HTTP endpoint.

    Configuration (via environment variables):
        - ARCHITECTURE_URL: Base URL of the pipeline service
        - REQUEST_TIMEOUT: Request timeout in seconds
        - DATA_HOST / DATA_PORT: Data source forwarded to the pipeline
    """

    name = "http"
    display_name = "HTTP Pipeline"
    enforces_timeout = True

    def _load_config(self) -> Dict[str, Any]:
        """Load HTTP configuration from environment."""
        return Config.get_http_config()

    def _validate_config(self) -> None:
        """Validate HTTP configuration."""
        if not self.config.get("base_url"):
            raise ConfigurationError(
                "ARCHITECTURE_URL is required. "
                "Please set it in your .env file."
            )

    @property
    def run_url(self) -> str:
        return self.config["base_url"].rstrip("/") + "/run"

    def run(self) -> int:
        """
        Trigger one run and wait for the response.

        Returns:
            Execution time in milliseconds, as reported by the pipeline or
            measured around the request

        Raises:
            ArchitectureError: On network errors and non-200 responses
            RunTimeout: If run_timeout is set and the response did not arrive in time
        """
        payload = {
            "host": self.config["host"],
            "port": self.config["port"],
            "outputs": {
                metric: str(self.output_destination(metric)) for metric in self.metrics
            },
        }

        logger.debug(f"POST {self.run_url}")
        logger.debug(f"Payload:\n{json.dumps(payload, indent=2)}")

        start_time = time.perf_counter()
        try:
            response = requests.post(
                self.run_url,
                json=payload,
                headers={"Content-Type": "application/json"},
                timeout=self.run_timeout or self.config.get("timeout"),
            )
        except requests.exceptions.Timeout as e:
            if self.run_timeout:
                # the remote pipeline keeps going after we stop waiting
                raise RunTimeout(
                    f"{self.run_url} did not answer within {self.run_timeout}s",
                    abandoned=True,
                ) from e
            raise ArchitectureError(f"Request timeout: {self.run_url}") from e
        except requests.exceptions.RequestException as e:
            raise ArchitectureError(f"Network error: {e}") from e
        elapsed_ms = int(round((time.perf_counter() - start_time) * 1000))

        if response.status_code != 200:
            raise ArchitectureError(f"HTTP {response.status_code}: {response.text}")

        try:
            data = response.json()
        except ValueError:
            data = {}

        logger.debug(f"Response ({elapsed_ms}ms): {data}")

        reported = data.get("execution_time_ms") if isinstance(data, dict) else None
        if isinstance(reported, int) and not isinstance(reported, bool):
            return reported
        return elapsed_ms
