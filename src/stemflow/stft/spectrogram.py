"""
Spektrogramm-Datentyp

Zeitlich geordnete Folge von Frames; jeder Frame hält Real- und
Imaginärteil der ersten frequency_limit Bins.
"""

from dataclasses import dataclass

import numpy as np

from ..core.exceptions import ShapeMismatchError


@dataclass(frozen=True)
class Frame:
    """Ein STFT-Frame: Real- und Imaginärteil gleicher Länge."""

    real: np.ndarray
    imag: np.ndarray


class Spectrogram:
    """
    Spektrogramm als zwei 2-D float32 Arrays der Form (time_frames, frequency_bins).

    Alle Frames haben durch das 2-D Layout dieselbe Länge.
    """

    __slots__ = ("real", "imag")

    def __init__(self, real: np.ndarray, imag: np.ndarray):
        real = np.asarray(real, dtype=np.float32)
        imag = np.asarray(imag, dtype=np.float32)
        if real.ndim != 2 or real.shape != imag.shape:
            raise ShapeMismatchError(
                expected=real.shape if real.ndim == 2 else None,
                actual=imag.shape,
                what="spectrogram",
            )
        self.real = real
        self.imag = imag

    @classmethod
    def from_complex(cls, values: np.ndarray) -> "Spectrogram":
        """Baut ein Spektrogramm aus einem komplexen (time, frequency) Array."""
        values = np.asarray(values)
        if values.ndim != 2:
            raise ShapeMismatchError(expected=None, actual=values.shape, what="complex spectrogram")
        return cls(values.real, values.imag)

    @classmethod
    def empty(cls, frequency_bins: int) -> "Spectrogram":
        shape = (0, frequency_bins)
        return cls(np.zeros(shape, dtype=np.float32), np.zeros(shape, dtype=np.float32))

    @property
    def frame_count(self) -> int:
        return self.real.shape[0]

    @property
    def frequency_bins(self) -> int:
        return self.real.shape[1]

    @property
    def shape(self) -> tuple[int, int]:
        return self.real.shape

    @property
    def frames(self) -> list[Frame]:
        return [Frame(real=r, imag=i) for r, i in zip(self.real, self.imag)]

    @property
    def magnitude_frames(self) -> np.ndarray:
        """Betrag pro Bin, Form (time_frames, frequency_bins)."""
        return np.hypot(self.real, self.imag)

    def to_complex(self) -> np.ndarray:
        values = np.empty(self.shape, dtype=np.complex64)
        values.real = self.real
        values.imag = self.imag
        return values

    def __len__(self) -> int:
        return self.frame_count

    def __repr__(self) -> str:
        return f"Spectrogram(frames={self.frame_count}, bins={self.frequency_bins})"
