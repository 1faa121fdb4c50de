"""
Custom Exceptions für stemflow.

Hierarchie:
    StemflowError (Base)
    ├── ConfigurationError
    ├── STFTError
    ├── AudioError
    │   ├── AudioFileError
    │   └── AudioFileWriterError
    ├── ModelError
    │   ├── ModelPredictionError
    │   └── ShapeMismatchError
    └── SeparationError
        ├── StemArityError
        └── SeparationCancelledError
"""

from collections.abc import Sequence


class StemflowError(Exception):
    """
    Base exception für alle stemflow Fehler.

    Alle custom exceptions erben von dieser Klasse.
    Ermöglicht spezifisches Exception-Handling für Aufrufer der Separation.
    """

    def __init__(self, message: str = "", details: dict = None):
        """
        Initialize exception with message and optional details.

        Args:
            message: Human-readable error message
            details: Optional dict with additional context
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(StemflowError):
    """
    Konfigurations-Fehler.

    Raised when:
    - fft_size is not a power of two
    - frequency_limit exceeds the Nyquist bin count
    - hop_length or clamping_frame_count are out of range
    - an unsupported stem count is requested
    """

    pass


# =============================================================================
# STFT Errors
# =============================================================================


class STFTError(StemflowError):
    """
    Ressourcen-Fehler innerhalb der Transformation.

    Raised when:
    - the input cannot be addressed as a 1-D sample buffer
    - a spectrogram carries more bins than the half spectrum
    - a work buffer cannot be allocated
    """

    pass


# =============================================================================
# Audio Errors
# =============================================================================


class AudioError(StemflowError):
    """
    Audio-bezogene Fehler.

    Base class for all audio source/sink errors.
    """

    pass


class AudioFileError(AudioError):
    """
    Audio-Datei kann nicht gelesen werden.

    Raised when:
    - libsndfile cannot open or decode the file
    - a read fails mid-stream
    """

    pass


class AudioFileWriterError(AudioError):
    """
    Fehler beim Schreiben einer Stem-Datei.

    Raised when:
    - an appended block has no channels
    - the channel count does not match the writer
    - channels have different frame counts
    - the writer was already closed
    """

    pass


# =============================================================================
# Model Errors
# =============================================================================


class ModelError(StemflowError):
    """
    Fehler des externen Separations-Modells.

    Base class for inference related errors.
    """

    pass


class ModelPredictionError(ModelError):
    """
    Inferenz fehlgeschlagen.

    Raised when the inference runtime fails for any reason. The original
    runtime exception is chained and summarised in ``details``.
    """

    pass


class ShapeMismatchError(ModelError):
    """
    Tensor mit unerwarteter Form.

    Raised when a mask or spectrogram tensor does not have the expected
    rank/shape.
    """

    def __init__(
        self,
        expected: Sequence[int] = None,
        actual: Sequence[int] = None,
        what: str = "tensor",
        **kwargs,
    ):
        expected = tuple(expected) if expected is not None else None
        actual = tuple(actual) if actual is not None else None
        message = f"Unexpected {what} shape: expected {expected}, got {actual}"
        super().__init__(message, details={"expected": expected, "actual": actual, **kwargs})
        self.expected = expected
        self.actual = actual


# =============================================================================
# Separation Errors
# =============================================================================


class SeparationError(StemflowError):
    """
    Separations-bezogene Fehler.

    Base class for orchestration errors.
    """

    pass


class StemArityError(SeparationError):
    """
    Falsche Anzahl an Stem-Werten.

    Raised when a stem container is built from a number of values that
    does not match its fixed arity.
    """

    def __init__(self, stems_type: str = None, expected: int = None, actual: int = None, **kwargs):
        message = f"{stems_type or 'Stems'} expects {expected} values, got {actual}"
        super().__init__(
            message,
            details={"stems_type": stems_type, "expected": expected, "actual": actual, **kwargs},
        )


class SeparationCancelledError(SeparationError):
    """
    Separation wurde abgebrochen.

    Raised at the next chunk boundary after cancellation was requested.
    """

    def __init__(self, completed: int = None, total: int = None, **kwargs):
        message = "Separation cancelled"
        if completed is not None and total is not None:
            message += f" after {completed}/{total} chunks"
        super().__init__(message, details={"completed": completed, "total": total, **kwargs})
        self.completed = completed
        self.total = total


# =============================================================================
# Utility Functions
# =============================================================================


def wrap_exception(original: Exception, wrapper_class: type) -> StemflowError:
    """
    Wrap a third-party exception in a stemflow exception.

    Args:
        original: The original exception
        wrapper_class: The StemflowError class to use

    Returns:
        Wrapped StemflowError instance

    Example:
        try:
            session.run(...)
        except Exception as e:
            raise wrap_exception(e, ModelPredictionError) from e
    """
    return wrapper_class(
        message=str(original),
        details={
            "original_type": type(original).__name__,
            "original_args": original.args,
        },
    )
