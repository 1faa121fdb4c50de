"""
Schnittstellen der Separation

Definiert die Protokolle für das externe Modell, Audio-Quellen und -Senken.

Dieses Protocol ermöglicht:
- Austauschbare Backends (ONNX, eigene Wrapper)
- Bessere Testbarkeit durch deterministische Fake-Modelle
- Type Safety mit Protocol statt ABC

Usage:
    def run(model: SeparationModel, magnitude: np.ndarray) -> None:
        masks = model.predict(magnitude)
        for name, mask in masks.items():
            ...
"""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

import numpy as np

from ..audio.stereo import StereoValues
from .stems import Stems


@runtime_checkable
class SeparationModel(Protocol):
    """
    Protocol für Separations-Modelle.

    Das Modell ist eine Black Box: Magnitude-Tensor rein, eine Maske pro
    Stem raus. Stelligkeit und Reihenfolge gibt stems_type vor.
    """

    stems_type: type[Stems]

    def predict(self, magnitude: np.ndarray) -> Stems[np.ndarray]:
        """
        Berechnet die Masken.

        Args:
            magnitude: float32 Array (2, frequency, time)

        Returns:
            stems_type-Container mit je einer Maske (2, frequency, time)
        """
        ...


@runtime_checkable
class AudioSource(Protocol):
    """Protocol für Quellen, aus denen Stereo-Bereiche gelesen werden."""

    @property
    def length(self) -> int: ...

    @property
    def sample_rate(self) -> int: ...

    def read_stereo_samples(self, start: int, stop: int) -> StereoValues[np.ndarray]:
        """Liest [start, stop); der letzte Bereich darf kürzer sein."""
        ...


@runtime_checkable
class AudioSink(Protocol):
    """Protocol für Senken, die Chunks eines Stems aufnehmen."""

    def append(self, samples: Sequence[np.ndarray]) -> None:
        """Hängt einen Block an (ein Array pro Kanal)."""
        ...
