"""
Fortschritt, Chunk-Plan und Abbruch

Ein Durchlauf teilt [0, length) in aufeinanderfolgende, nicht
überlappende Bereiche; total steht nach der Planung fest, current steigt
pro Chunk um eins.
"""

import math
import threading
from collections.abc import Iterator
from dataclasses import dataclass

from ..core.constants import PROGRESS_COMPLETE
from ..core.exceptions import SeparationCancelledError


@dataclass(frozen=True)
class Progress:
    """Fortschritts-Ereignis: current von total Chunks erledigt."""

    total: int
    current: int

    @property
    def fraction(self) -> float:
        if self.total == 0:
            return PROGRESS_COMPLETE
        return self.current / self.total

    @property
    def is_complete(self) -> bool:
        return self.current >= self.total


@dataclass(frozen=True)
class ChunkPlan:
    """
    Aufteilung eines Signals in Chunks.

    Attributes:
        length: Länge des Signals in Samples
        chunk_size: maximale Chunk-Länge
    """

    length: int
    chunk_size: int

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.length < 0:
            raise ValueError(f"length must not be negative, got {self.length}")

    @property
    def count(self) -> int:
        return math.ceil(self.length / self.chunk_size)

    def ranges(self) -> Iterator[tuple[int, int, int]]:
        """Liefert (index, start, stop); nur der letzte Bereich darf kürzer sein."""
        for index in range(self.count):
            start = index * self.chunk_size
            yield index, start, min(start + self.chunk_size, self.length)

    def progress(self, completed: int) -> Progress:
        return Progress(total=self.count, current=completed)


class CancellationToken:
    """
    Kooperativer Abbruch, threadsicher.

    Der Separator prüft das Token vor jedem Chunk.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, completed: int | None = None, total: int | None = None) -> None:
        """
        Raises:
            SeparationCancelledError: Abbruch wurde angefordert
        """
        if self._event.is_set():
            raise SeparationCancelledError(completed=completed, total=total)
