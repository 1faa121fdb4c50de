"""Stereo-Paar (links/rechts) für Samples, Spektrogramme und Tensoren."""

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

import numpy as np

from ..core.exceptions import ShapeMismatchError

V = TypeVar("V")
W = TypeVar("W")


@dataclass(frozen=True)
class StereoValues(Generic[V]):
    """Linker und rechter Kanal."""

    left: V
    right: V

    def values(self) -> tuple[V, V]:
        return (self.left, self.right)

    def map_channels(self, transform: Callable[[V], W]) -> "StereoValues[W]":
        """Wendet transform auf beide Kanäle an (links zuerst)."""
        return StereoValues(left=transform(self.left), right=transform(self.right))

    @classmethod
    def from_array(cls, array: np.ndarray) -> "StereoValues[np.ndarray]":
        """
        Baut ein Stereo-Paar aus einem Mono- oder Mehrkanal-Array.

        Args:
            array: (n,) Mono (wird dupliziert) oder (channels, n) channel-first;
                Kanäle nach den ersten beiden werden ignoriert

        Raises:
            ShapeMismatchError: kein 1-D/2-D Array oder keine Kanäle
        """
        array = np.asarray(array, dtype=np.float32)
        if array.ndim == 1:
            return cls(left=array, right=array)
        if array.ndim != 2 or array.shape[0] == 0:
            raise ShapeMismatchError(expected=(2, None), actual=array.shape, what="waveform")
        if array.shape[0] == 1:
            return cls(left=array[0], right=array[0])
        return cls(left=array[0], right=array[1])

    @property
    def length(self) -> int:
        """Länge des längeren Kanals."""
        return max(len(self.left), len(self.right))
