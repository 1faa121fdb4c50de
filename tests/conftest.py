import os
import sys
import tempfile
from pathlib import Path

import numpy as np
import pytest

# Add src to the Python path so that stemflow can be imported in tests
src_path = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_path))

# Log-Dateien der Tests nicht ins Arbeitsverzeichnis schreiben
os.environ.setdefault("STEMFLOW_LOG_DIR", str(Path(tempfile.gettempdir()) / "stemflow-test-logs"))

from stemflow.core.config import SeparationSettings  # noqa: E402
from stemflow.core.exceptions import ModelPredictionError  # noqa: E402
from stemflow.separation.stems import Stems2, Stems4  # noqa: E402


class IdentityMaskModel:
    """Liefert für jeden Stem eine Maske aus Einsen."""

    def __init__(self, stems_type=Stems2):
        self.stems_type = stems_type
        self.calls = 0
        self.shapes = []

    def predict(self, magnitude):
        self.calls += 1
        self.shapes.append(magnitude.shape)
        return self.stems_type.from_values(
            np.ones_like(magnitude) for _ in range(self.stems_type.arity())
        )


class ConstantMaskModel:
    """Eine konstante Maske pro Stem, z.B. Stems4 mit (1.0, 0.5, 0.25, 0.0)."""

    def __init__(self, stems_type=Stems4, factors=(1.0, 0.5, 0.25, 0.0)):
        self.stems_type = stems_type
        self.factors = factors
        self.calls = 0

    def predict(self, magnitude):
        self.calls += 1
        return self.stems_type.from_values(
            np.full_like(magnitude, factor) for factor in self.factors
        )


class FailingModel:
    def __init__(self, stems_type=Stems2):
        self.stems_type = stems_type
        self.calls = 0

    def predict(self, magnitude):
        self.calls += 1
        raise ModelPredictionError("inference backend unavailable")


class WrongShapeModel:
    """Liefert Masken mit vertauschten Achsen."""

    def __init__(self, stems_type=Stems2):
        self.stems_type = stems_type
        self.calls = 0

    def predict(self, magnitude):
        self.calls += 1
        wrong = np.ones(magnitude.shape[::-1], dtype=np.float32)
        return self.stems_type.from_values(wrong for _ in range(self.stems_type.arity()))


@pytest.fixture
def small_settings():
    # fft 64, hop 16, all 33 bins, 9 frames -> chunk_size 128
    return SeparationSettings(fft_size=64, frequency_limit=33, clamping_frame_count=9, hop_length=16)


@pytest.fixture
def identity_model():
    return IdentityMaskModel()


@pytest.fixture
def rng():
    return np.random.default_rng(0)


@pytest.fixture
def stereo_noise(rng):
    """300 Samples Stereo-Rauschen, channel-first."""
    return rng.uniform(-0.5, 0.5, size=(2, 300)).astype(np.float32)
