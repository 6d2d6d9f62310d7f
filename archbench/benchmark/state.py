"""
Run isolation: artifact locations and the reset of external run state.

Every timed run writes its artifacts into a directory that is emptied after
the run, and any tables the architecture filled are truncated, so the next
run starts from the same state. Resets go through RESET_LOCK because they are
process-wide side effects.
"""

import logging
import shutil
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from ..errors import ResetFailure

logger = logging.getLogger(__name__)

RESET_LOCK = threading.Lock()


class StateReset:
    """Something that puts external run state back to empty."""

    def reset(self) -> None:
        raise NotImplementedError


class NullStateReset(StateReset):
    """Reset that does nothing, for architectures without external state."""

    def reset(self) -> None:
        pass


class OutputDirectory(StateReset):
    """
    Directory the architecture writes its artifacts into.

    Example:
        outputs = OutputDirectory("output/query")
        path = outputs.path_for("EDAPrimer", "query1", 0)
        with outputs.scoped_cleanup():
            ...  # run and parse; the directory is emptied afterwards
    """

    def __init__(self, path: Union[str, Path], archive_dir: Optional[Union[str, Path]] = None):
        """
        Initialize output directory.

        Args:
            path: Directory holding the artifacts of the current run
            archive_dir: If set, artifacts are moved here instead of deleted
        """
        self.path = Path(path)
        self.archive_dir = Path(archive_dir) if archive_dir else None

    def path_for(self, architecture_name: str, metric: str, run_id: Optional[int] = None) -> Path:
        """
        Get the artifact path of a metric for one run.

        Args:
            architecture_name: Name of the evaluated architecture
            metric: Metric name
            run_id: Timed run index, None for the warm-up run

        Returns:
            Path unique to this architecture, metric and run
        """
        suffix = "cache" if run_id is None else str(run_id)
        return self.path / f"{architecture_name}_{metric}_{suffix}.txt"

    def clear(self) -> None:
        """
        Remove everything in the directory.

        Raises:
            ResetFailure: If an entry cannot be removed
        """
        if not self.path.exists():
            return

        try:
            for entry in self.path.iterdir():
                if self.archive_dir is not None:
                    self.archive_dir.mkdir(parents=True, exist_ok=True)
                    target = self.archive_dir / entry.name
                    if target.is_dir():
                        shutil.rmtree(target)
                    elif target.exists():
                        target.unlink()
                    shutil.move(str(entry), str(target))
                elif entry.is_dir() and not entry.is_symlink():
                    shutil.rmtree(entry)
                else:
                    entry.unlink()
        except OSError as e:
            raise ResetFailure(f"Cannot clear output directory {self.path}: {e}") from e

        logger.debug(f"Cleared output directory: {self.path}")

    def reset(self) -> None:
        self.clear()

    @contextmanager
    def scoped_cleanup(self) -> Iterator["OutputDirectory"]:
        """Create the directory, and empty it on exit even if the body failed."""
        self.path.mkdir(parents=True, exist_ok=True)
        try:
            yield self
        finally:
            self.clear()


class TableTruncator(StateReset):
    """
    Truncates the tables an architecture persists its state in.

    Dialects without TRUNCATE TABLE (SQLite) get DELETE FROM instead.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        tables: Sequence[str] = (),
        engine: Optional[Engine] = None,
    ):
        """
        Initialize table truncator.

        Args:
            url: SQLAlchemy database URL
            tables: Names of the tables to truncate after every run
            engine: Existing engine, used instead of url
        """
        if engine is None and not url:
            raise ValueError("Either url or engine is required")
        self.url = url
        self.tables: List[str] = list(tables)
        self._engine = engine

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = create_engine(self.url, pool_pre_ping=True)
        return self._engine

    def truncate_table(self, table: str) -> None:
        """
        Truncate a single table.

        Raises:
            ResetFailure: If the statement fails
        """
        engine = self.engine
        quoted = engine.dialect.identifier_preparer.quote(table)
        if engine.dialect.name == "sqlite":
            statement = f"DELETE FROM {quoted}"
        else:
            statement = f"TRUNCATE TABLE {quoted}"

        try:
            with engine.begin() as conn:
                conn.execute(text(statement))
        except SQLAlchemyError as e:
            raise ResetFailure(f"Cannot truncate table {table}: {e}") from e

        logger.debug(f"Truncated table: {table}")

    def reset(self) -> None:
        for table in self.tables:
            self.truncate_table(table)

    def dispose(self) -> None:
        """Close pooled connections."""
        if self._engine is not None:
            self._engine.dispose()
