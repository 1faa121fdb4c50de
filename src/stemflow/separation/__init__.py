"""Stem-Container, Modell-Adapter und Separations-Orchestrierung."""

from .model_protocol import AudioSink, AudioSource, SeparationModel
from .onnx_model import OnnxSeparationModel, clear_session_pool, get_cached_session
from .progress import CancellationToken, ChunkPlan, Progress
from .separator import AudioSeparator
from .stems import Stems, Stems2, Stems4, Stems5, stems_for_count

__all__ = [
    "AudioSeparator",
    "AudioSink",
    "AudioSource",
    "SeparationModel",
    "OnnxSeparationModel",
    "clear_session_pool",
    "get_cached_session",
    "CancellationToken",
    "ChunkPlan",
    "Progress",
    "Stems",
    "Stems2",
    "Stems4",
    "Stems5",
    "stems_for_count",
]
