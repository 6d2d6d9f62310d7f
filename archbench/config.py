"""
Configuration management for the architecture benchmark harness.
Loads settings from environment variables and .env file.
"""

import os
from pathlib import Path
from typing import Dict, Any, List, Optional
from dotenv import load_dotenv

# Load .env file from project root
PROJECT_ROOT = Path(__file__).parent.parent
load_dotenv(PROJECT_ROOT / ".env")


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Config:
    """Central configuration management."""

    # ==========================================================================
    # Evaluation Settings
    # ==========================================================================
    NUM_TIMES: int = int(os.getenv("NUM_TIMES", "10"))
    RUN_TIMEOUT: float = float(os.getenv("RUN_TIMEOUT", "0"))
    REQUEST_TIMEOUT: int = int(os.getenv("REQUEST_TIMEOUT", "30"))

    # Output directories
    OUTPUT_DIR: Path = PROJECT_ROOT / os.getenv("OUTPUT_DIR", "output")
    QUERY_OUTPUT_DIR: Path = PROJECT_ROOT / os.getenv("QUERY_OUTPUT_DIR", "output/query")
    REPORT_DIR: Path = PROJECT_ROOT / os.getenv("REPORT_DIR", "output/reports")
    REPORT_TEMPLATE: str = os.getenv("REPORT_TEMPLATE", "")

    # ==========================================================================
    # External Collaborators
    # ==========================================================================

    @classmethod
    def get_data_source_config(cls) -> Dict[str, Any]:
        """Get the host/port of the data source the architectures read from."""
        return {
            "host": os.getenv("DATA_HOST", "localhost"),
            "port": int(os.getenv("DATA_PORT", "9000")),
        }

    @classmethod
    def get_database_config(cls) -> Dict[str, Any]:
        """Get the database whose tables are truncated between runs."""
        return {
            "url": os.getenv("DATABASE_URL", ""),
            "tables": _split_list(os.getenv("TRUNCATE_TABLES", "trip,tripchangetop10")),
        }

    @classmethod
    def get_command_config(cls) -> Dict[str, Any]:
        """Get configuration for architectures launched as a local command."""
        return {
            "command": os.getenv("ARCHITECTURE_COMMAND", ""),
            "working_dir": os.getenv("ARCHITECTURE_WORKING_DIR", ""),
            **cls.get_data_source_config(),
        }

    @classmethod
    def get_http_config(cls) -> Dict[str, Any]:
        """Get configuration for architectures triggered over HTTP."""
        return {
            "base_url": os.getenv("ARCHITECTURE_URL", ""),
            "timeout": cls.REQUEST_TIMEOUT,
            **cls.get_data_source_config(),
        }

    @classmethod
    def get_architecture_config(cls, architecture_name: str) -> Optional[Dict[str, Any]]:
        """Get configuration for a specific architecture by name."""
        config_methods = {
            "command": cls.get_command_config,
            "http": cls.get_http_config,
        }

        method = config_methods.get(architecture_name.lower())
        if method:
            return method()
        return None

    @classmethod
    def ensure_directories(cls):
        """Create output directories if they don't exist."""
        cls.OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        cls.QUERY_OUTPUT_DIR.mkdir(parents=True, exist_ok=True)
        cls.REPORT_DIR.mkdir(parents=True, exist_ok=True)


# Metrics written by the architectures: the delay of every emitted result of
# the two continuous queries.
QUERY1 = "query1"
QUERY2 = "query2"
DEFAULT_METRICS = (QUERY1, QUERY2)
