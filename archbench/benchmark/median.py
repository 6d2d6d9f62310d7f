"""
Running median over a stream of numeric observations.
"""

import heapq
import math
import numbers
from typing import Generic, List, TypeVar, Union

from ..errors import EmptyStream, InvalidObservation

T = TypeVar("T", int, float)


class StreamingMedian(Generic[T]):
    """
    Median of a sequence of values seen one at a time.

    The lower half lives in a max-heap (stored negated) and the upper half in
    a min-heap. Their sizes never differ by more than one, so the median is
    read off the heap tops.

    Usage:
        median = StreamingMedian()
        for duration in durations:
            median.add(duration)
        print(median.median())
    """

    def __init__(self):
        self._lower: List[T] = []  # negated
        self._upper: List[T] = []

    def __len__(self) -> int:
        return len(self._lower) + len(self._upper)

    def add(self, value: T) -> None:
        """
        Add one observation.

        Args:
            value: Finite int or float

        Raises:
            InvalidObservation: If value is not a finite real number
        """
        self._check(value)

        if self._lower and value < -self._lower[0]:
            heapq.heappush(self._lower, -value)
        elif self._upper and value > self._upper[0]:
            heapq.heappush(self._upper, value)
        elif len(self._lower) <= len(self._upper):
            # On the boundary: the smaller half takes it
            heapq.heappush(self._lower, -value)
        else:
            heapq.heappush(self._upper, value)

        self._rebalance()

    def median(self) -> Union[T, float]:
        """
        Get the median of all observations so far.

        Odd counts return the middle value unchanged; even counts return the
        mean of the two middle values as a float.

        Raises:
            EmptyStream: If no value has been added
        """
        if not self._lower and not self._upper:
            raise EmptyStream("median of an empty stream is undefined")

        if len(self._lower) > len(self._upper):
            return -self._lower[0]
        if len(self._upper) > len(self._lower):
            return self._upper[0]
        return float(-self._lower[0] + self._upper[0]) / 2

    def _rebalance(self) -> None:
        if len(self._lower) > len(self._upper) + 1:
            heapq.heappush(self._upper, -heapq.heappop(self._lower))
        elif len(self._upper) > len(self._lower) + 1:
            heapq.heappush(self._lower, -heapq.heappop(self._upper))

    @staticmethod
    def _check(value) -> None:
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            raise InvalidObservation(f"not a number: {value!r}")
        if isinstance(value, numbers.Integral):
            return
        if not math.isfinite(value):
            raise InvalidObservation(f"not a finite number: {value!r}")
