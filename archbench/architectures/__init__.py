"""
Architectures under test.
Each architecture implements the BaseArchitecture interface.
"""

from .base import BaseArchitecture, ArchitectureError, ConfigurationError
from .command import CommandArchitecture
from .http import HttpArchitecture

# Registry of available architectures
ARCHITECTURES = {
    "command": CommandArchitecture,
    "http": HttpArchitecture,
}


def get_architecture(name: str, **overrides) -> BaseArchitecture:
    """
    Get an architecture instance by name.

    Args:
        name: Architecture name (e.g., 'command', 'http')
        **overrides: Configuration values replacing the environment ones

    Returns:
        Architecture instance

    Raises:
        ValueError: If architecture is not found
    """
    architecture_class = ARCHITECTURES.get(name.lower())
    if not architecture_class:
        available = ", ".join(ARCHITECTURES.keys())
        raise ValueError(f"Unknown architecture: {name}. Available: {available}")

    return architecture_class(**overrides)


def list_architectures() -> list:
    """List all available architecture names."""
    return list(ARCHITECTURES.keys())


__all__ = [
    "BaseArchitecture",
    "ArchitectureError",
    "ConfigurationError",
    "CommandArchitecture",
    "HttpArchitecture",
    "get_architecture",
    "list_architectures",
    "ARCHITECTURES",
]
