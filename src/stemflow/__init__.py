"""
stemflow - Chunkweise Stem-Separation mit STFT und Masken-Modellen.

Zerlegt Stereo-Aufnahmen beliebiger Länge in 2, 4 oder 5 Stems
(vocals, drums, bass, ...) mit einem vortrainierten Spleeter-Modell.
"""

__version__ = "0.1.0"

from .audio import AudioFile, AudioFileStreamWriter, InMemoryAudioSink, StereoValues, WaveformSource
from .core.config import Config, SeparationSettings, get_config
from .core.exceptions import StemflowError
from .separation import (
    AudioSeparator,
    CancellationToken,
    OnnxSeparationModel,
    Progress,
    Stems,
    Stems2,
    Stems4,
    Stems5,
    stems_for_count,
)
from .stft import STFT, Spectrogram, SpectrogramTensor

__all__ = [
    "__version__",
    "AudioFile",
    "AudioFileStreamWriter",
    "InMemoryAudioSink",
    "StereoValues",
    "WaveformSource",
    "Config",
    "SeparationSettings",
    "get_config",
    "StemflowError",
    "AudioSeparator",
    "CancellationToken",
    "OnnxSeparationModel",
    "Progress",
    "Stems",
    "Stems2",
    "Stems4",
    "Stems5",
    "stems_for_count",
    "STFT",
    "Spectrogram",
    "SpectrogramTensor",
]
