"""
Core module for stemflow.

Contains fundamental components like configuration, constants and exceptions.
"""

from .exceptions import (
    # Audio
    AudioError,
    AudioFileError,
    AudioFileWriterError,
    # Configuration
    ConfigurationError,
    # Model
    ModelError,
    ModelPredictionError,
    # Separation
    SeparationCancelledError,
    SeparationError,
    ShapeMismatchError,
    StemArityError,
    # Base
    StemflowError,
    # STFT
    STFTError,
    # Utility
    wrap_exception,
)

__all__ = [
    # Base
    "StemflowError",
    # Configuration
    "ConfigurationError",
    # STFT
    "STFTError",
    # Audio
    "AudioError",
    "AudioFileError",
    "AudioFileWriterError",
    # Model
    "ModelError",
    "ModelPredictionError",
    "ShapeMismatchError",
    # Separation
    "SeparationError",
    "StemArityError",
    "SeparationCancelledError",
    # Utility
    "wrap_exception",
]
