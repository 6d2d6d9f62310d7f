"""
Architecture benchmark harness.

Runs an architecture under test repeatedly after a warm-up run, summarizes
the delays it writes to its output artifacts and keeps running medians of
the execution time and of every metric.

Key modules:
- architectures: Architectures under test and their registry
- benchmark: Evaluation runner, measurement model and reporting
- config: Environment-based configuration
"""

__version__ = "0.1.0"
