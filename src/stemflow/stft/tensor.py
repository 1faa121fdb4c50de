"""
Tensor-Layout für das Separations-Modell

Das Modell erwartet (frequency, time) statt (time, frequency); Real- und
Imaginärteil liegen in einer letzten Achse der Länge 2.
"""

from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

from ..core.exceptions import ShapeMismatchError
from .spectrogram import Spectrogram


@dataclass(frozen=True)
class SpectrogramTensor:
    """
    Komplexes Spektrogramm im Modell-Layout.

    Attributes:
        complex: float32 Array (frequency, time, 2); Kanal 0 real, 1 imaginär
    """

    complex: np.ndarray

    def __post_init__(self):
        if self.complex.ndim != 3 or self.complex.shape[-1] != 2:
            raise ShapeMismatchError(
                expected=(*self.complex.shape[:2], 2),
                actual=self.complex.shape,
                what="complex spectrogram tensor",
            )

    @classmethod
    def from_spectrogram(cls, spectrogram: Spectrogram) -> "SpectrogramTensor":
        values = np.stack([spectrogram.real.T, spectrogram.imag.T], axis=-1)
        return cls(np.ascontiguousarray(values, dtype=np.float32))

    @property
    def frequency_bins(self) -> int:
        return self.complex.shape[0]

    @property
    def frame_count(self) -> int:
        return self.complex.shape[1]

    @property
    def magnitude(self) -> np.ndarray:
        """sqrt(real² + imag²), Form (frequency, time)."""
        return np.hypot(self.complex[..., 0], self.complex[..., 1])

    def to_spectrogram(self) -> Spectrogram:
        return complex_to_spectrogram(self.complex)


def complex_to_spectrogram(values: np.ndarray) -> Spectrogram:
    """(frequency, time, 2) Array zurück in ein (time, frequency) Spectrogram."""
    if values.ndim != 3 or values.shape[-1] != 2:
        raise ShapeMismatchError(
            expected=(*values.shape[:2], 2), actual=values.shape, what="complex spectrogram tensor"
        )
    return Spectrogram(values[..., 0].T, values[..., 1].T)


def stack_channels(channels: Sequence[np.ndarray]) -> np.ndarray:
    """
    Stapelt Kanal-Arrays gleicher Form auf einer neuen führenden Achse.

    Raises:
        ShapeMismatchError: Kanäle haben unterschiedliche Formen
    """
    first = np.asarray(channels[0])
    for channel in channels[1:]:
        if np.shape(channel) != first.shape:
            raise ShapeMismatchError(
                expected=first.shape, actual=np.shape(channel), what="channel"
            )
    return np.stack(channels, axis=0)


def pad_or_clamp(samples: np.ndarray, length: int) -> np.ndarray:
    """Füllt ein 1-D Array mit Nullen auf oder kürzt es auf length Samples."""
    samples = np.asarray(samples, dtype=np.float32)
    if samples.ndim != 1:
        raise ShapeMismatchError(expected=(length,), actual=samples.shape, what="sample buffer")
    if len(samples) >= length:
        return samples[:length]
    return np.pad(samples, (0, length - len(samples)), mode="constant")
