"""
Parser for the line-oriented output artifacts written by architectures.

Every line is a comma-separated record whose last field is the metric value,
for example a query result followed by its delay in milliseconds:

    2013-01-01 00:00:00,2013-01-01 00:30:00,...,12
"""

import logging
import math
import re
from pathlib import Path
from typing import Iterator, Tuple, Union

from .metrics import MaxMinAverageMeasurement
from ..errors import EmptyArtifact, MalformedArtifact

logger = logging.getLogger(__name__)

Number = Union[int, float]

# Plain decimal text only: no digit separators, no nan/inf spellings
_INTEGER = re.compile(r"[-+]?\d+", re.ASCII)
_DECIMAL = re.compile(r"[-+]?(\d+(\.\d*)?|\.\d+)([eE][-+]?\d+)?", re.ASCII)


class ArtifactParser:
    """
    Summarize the trailing numeric field of an artifact in a single pass.

    Example:
        parser = ArtifactParser()
        summary = parser.summarize("output/query/EDAPrimer_query1_0.txt")
        print(summary.average, summary.min, summary.max)
    """

    def __init__(self, delimiter: str = ",", encoding: str = "utf-8"):
        """
        Initialize artifact parser.

        Args:
            delimiter: Field separator
            encoding: File encoding
        """
        self.delimiter = delimiter
        self.encoding = encoding

    def summarize(self, file_path: Union[str, Path]) -> MaxMinAverageMeasurement:
        """
        Compute average, min and max of the trailing field over all records.

        Args:
            file_path: Path to the artifact

        Returns:
            MaxMinAverageMeasurement of the trailing field

        Raises:
            MalformedArtifact: If a record is blank or has no numeric trailing
                field, or the file cannot be read
            EmptyArtifact: If the artifact has no records
        """
        path = Path(file_path)
        count = 0
        total = 0
        minimum = None
        maximum = None

        for _, value in self._iter_values(path):
            count += 1
            total += value
            if minimum is None or value < minimum:
                minimum = value
            if maximum is None or value > maximum:
                maximum = value

        if count == 0:
            raise EmptyArtifact(f"Artifact has no records: {path}", path=str(path))

        # float rounding can push the mean just outside [min, max]
        average = min(max(total / count, minimum), maximum)

        logger.debug(
            f"Parsed {count} records from {path.name}: "
            f"avg={average:.3f} min={minimum} max={maximum}"
        )
        return MaxMinAverageMeasurement(average=float(average), min=minimum, max=maximum)

    def validate(self, file_path: Union[str, Path]) -> int:
        """
        Check that every record of an artifact is well formed.

        Args:
            file_path: Path to the artifact

        Returns:
            Number of records

        Raises:
            MalformedArtifact: On the first bad record
            EmptyArtifact: If the artifact has no records
        """
        path = Path(file_path)
        count = sum(1 for _ in self._iter_values(path))
        if count == 0:
            raise EmptyArtifact(f"Artifact has no records: {path}", path=str(path))
        return count

    def _iter_values(self, path: Path) -> Iterator[Tuple[int, Number]]:
        """Yield (line_number, value) for every line; a blank line is malformed."""
        try:
            with open(path, "r", encoding=self.encoding) as f:
                for line_number, line in enumerate(f, start=1):
                    line = line.strip()
                    if not line:
                        raise MalformedArtifact(
                            f"{path}:{line_number}: blank line",
                            path=str(path),
                            line_number=line_number,
                        )
                    yield line_number, self._parse_line(line, path, line_number)
        except OSError as e:
            raise MalformedArtifact(f"Cannot read artifact {path}: {e}", path=str(path)) from e

    def _parse_line(self, line: str, path: Path, line_number: int) -> Number:
        field = line.split(self.delimiter)[-1].strip()
        if not field:
            raise MalformedArtifact(
                f"{path}:{line_number}: empty trailing field",
                path=str(path),
                line_number=line_number,
            )

        if _INTEGER.fullmatch(field):
            return int(field)

        if not _DECIMAL.fullmatch(field):
            raise MalformedArtifact(
                f"{path}:{line_number}: trailing field is not a number: {field!r}",
                path=str(path),
                line_number=line_number,
            )

        value = float(field)
        if not math.isfinite(value):
            raise MalformedArtifact(
                f"{path}:{line_number}: trailing field is not finite: {field!r}",
                path=str(path),
                line_number=line_number,
            )
        return value
