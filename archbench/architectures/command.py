"""
Architecture launched as a local command.

The command receives the data source and the artifact destinations as
arguments:

    <command> --host HOST --port PORT --query1-output PATH --query2-output PATH
"""

import logging
import shlex
import subprocess
import time
from typing import Dict, Any, List, Optional

from .base import BaseArchitecture, ArchitectureError, ConfigurationError
from ..errors import RunTimeout
from ..config import Config

logger = logging.getLogger(__name__)


class CommandArchitecture(BaseArchitecture):
    """
    Architecture whose pipeline is an executable.

    If the last non-empty line the command prints is an integer, it is taken
    as the execution time in milliseconds the pipeline measured itself.
    Otherwise the wall-clock time of the process is used. With a run timeout
    set, the process is killed when it expires.

    Configuration (via environment variables):
        - ARCHITECTURE_COMMAND: Command line to execute
        - ARCHITECTURE_WORKING_DIR: Working directory (optional)
        - DATA_HOST / DATA_PORT: Data source passed to the command
    """

    name = "command"
    display_name = "Local Command"
    enforces_timeout = True

    def _load_config(self) -> Dict[str, Any]:
        """Load command configuration from environment."""
        return Config.get_command_config()

    def _validate_config(self) -> None:
        """Validate command configuration."""
        if not self.config.get("command"):
            raise ConfigurationError(
                "ARCHITECTURE_COMMAND is required. "
                "Please set it in your .env file."
            )

    def build_command(self) -> List[str]:
        """
        Build the argument vector for the next run.

        Returns:
            Command and arguments
        """
        command = self.config["command"]
        args = shlex.split(command) if isinstance(command, str) else list(command)
        args += ["--host", str(self.config["host"]), "--port", str(self.config["port"])]
        for metric in self.metrics:
            args += [f"--{metric}-output", str(self.output_destination(metric))]
        return args

    def run(self) -> int:
        """
        Run the command once.

        Returns:
            Execution time in milliseconds

        Raises:
            ArchitectureError: If the command cannot be started or exits non-zero
            RunTimeout: If run_timeout is set and expired
        """
        args = self.build_command()
        for metric in self.metrics:
            self.output_destination(metric).parent.mkdir(parents=True, exist_ok=True)

        logger.debug(f"Running: {' '.join(shlex.quote(a) for a in args)}")

        start_time = time.perf_counter()
        try:
            proc = subprocess.run(
                args,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                cwd=self.config.get("working_dir") or None,
                timeout=self.run_timeout,
                check=False,
            )
        except subprocess.TimeoutExpired as e:
            # subprocess.run has already killed and reaped the child
            raise RunTimeout(
                f"{args[0]} did not finish within {self.run_timeout}s and was killed"
            ) from e
        except OSError as e:
            raise ArchitectureError(f"Cannot start {args[0]}: {e}") from e
        elapsed_ms = int(round((time.perf_counter() - start_time) * 1000))

        if proc.returncode != 0:
            stderr = proc.stderr.strip().splitlines()
            detail = stderr[-1] if stderr else "no output"
            raise ArchitectureError(f"{args[0]} exited with status {proc.returncode}: {detail}")

        reported = self._reported_duration(proc.stdout)
        if reported is not None:
            logger.debug(f"Reported duration: {reported}ms (wall clock {elapsed_ms}ms)")
            return reported
        return elapsed_ms

    @staticmethod
    def _reported_duration(stdout: str) -> Optional[int]:
        lines = [line.strip() for line in stdout.splitlines() if line.strip()]
        if not lines:
            return None
        try:
            return int(lines[-1])
        except ValueError:
            return None
