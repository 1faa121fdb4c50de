"""STFT-Engine und Spektrogramm-Typen."""

from .engine import STFT, normalized_hann_window
from .spectrogram import Frame, Spectrogram
from .tensor import SpectrogramTensor, complex_to_spectrogram, pad_or_clamp, stack_channels

__all__ = [
    "STFT",
    "normalized_hann_window",
    "Frame",
    "Spectrogram",
    "SpectrogramTensor",
    "complex_to_spectrogram",
    "pad_or_clamp",
    "stack_channels",
]
