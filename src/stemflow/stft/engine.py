"""
STFT Engine

Gefensterte Vorwärts-/Rückwärts-Transformation mit gewichtetem Overlap-Add.

- Fenster: periodisches Hann, skaliert auf mittlere Energie 1
- forward: Zero-Padding um fft_size/2 auf beiden Seiten, real-FFT pro Frame,
  nur die ersten frequency_limit Bins werden behalten
- inverse: Bins auf das halbe Spektrum auffüllen, irfft, Fenster,
  Overlap-Add und Division durch die akkumulierte Fensterenergie
"""

import librosa
import numpy as np
import scipy.fft
import scipy.signal

from ..core.config import validate_stft_parameters
from ..core.constants import WINDOW_ENERGY_EPSILON
from ..core.exceptions import STFTError
from ..utils.logger import get_logger
from .spectrogram import Spectrogram

logger = get_logger(__name__)


def normalized_hann_window(fft_size: int) -> np.ndarray:
    """
    Periodisches Hann-Fenster mit mittlerer Energie 1.

    Entspricht sqrt(2/3) * (1 - cos(2*pi*n/N)).
    """
    window = scipy.signal.get_window("hann", fft_size, fftbins=True)
    return window * np.sqrt(8.0 / 3.0)


class STFT:
    """
    Short-Time Fourier Transform mit fester Konfiguration.

    Args:
        fft_size: Fensterlänge (positive Zweierpotenz)
        hop_length: Schrittweite zwischen zwei Frames
        frequency_limit: Anzahl der behaltenen Bins (1..fft_size/2+1)

    Raises:
        ConfigurationError: bei ungültigen Parametern

    Example:
        >>> stft = STFT(4096, 1024, 1024)
        >>> spectrogram = stft.forward(np.zeros(220160, dtype=np.float32))
        >>> spectrogram.shape
        (216, 1024)
    """

    def __init__(self, fft_size: int, hop_length: int, frequency_limit: int):
        validate_stft_parameters(fft_size, hop_length, frequency_limit)
        self.fft_size = int(fft_size)
        self.hop_length = int(hop_length)
        self.frequency_limit = int(frequency_limit)
        self._window = normalized_hann_window(self.fft_size)
        logger.debug(f"STFT erstellt: {self!r}")

    @property
    def window(self) -> np.ndarray:
        return self._window.copy()

    @property
    def pad(self) -> int:
        return self.fft_size // 2

    @property
    def half_spectrum_bins(self) -> int:
        return self.fft_size // 2 + 1

    def frame_count(self, length: int) -> int:
        """Anzahl der Frames für ein Signal der Länge length."""
        padded_length = length + 2 * self.pad
        return (padded_length - self.fft_size) // self.hop_length + 1

    def forward(self, waveform: np.ndarray) -> Spectrogram:
        """
        Vorwärts-Transformation.

        Args:
            waveform: 1-D Sample-Array

        Returns:
            Spectrogram mit frame_count(len(waveform)) Frames zu je
            frequency_limit Bins

        Raises:
            STFTError: Eingabe ist kein 1-D Buffer oder Speicher reicht nicht
        """
        samples = np.asarray(waveform)
        if samples.ndim != 1:
            raise STFTError(
                f"Expected a 1-D sample buffer, got shape {samples.shape}",
                details={"shape": samples.shape},
            )

        try:
            padded = np.pad(samples.astype(np.float64), (self.pad, self.pad), mode="constant")
            frames = librosa.util.frame(
                padded, frame_length=self.fft_size, hop_length=self.hop_length, axis=0
            )
            spectrum = scipy.fft.rfft(frames * self._window, axis=1)
        except MemoryError as e:
            raise STFTError(
                "Not enough memory for the forward transform",
                details={"length": len(samples), "fft_size": self.fft_size},
            ) from e

        return Spectrogram.from_complex(spectrum[:, : self.frequency_limit])

    def inverse(self, spectrogram: Spectrogram) -> np.ndarray:
        """
        Rückwärts-Transformation mit gewichtetem Overlap-Add.

        Args:
            spectrogram: Spektrogramm mit höchstens fft_size/2+1 Bins

        Returns:
            float32 Waveform der Länge hop_length * (frame_count - 1);
            leer für ein leeres Spektrogramm

        Raises:
            STFTError: zu viele Bins oder Speicher reicht nicht
        """
        frame_count = spectrogram.frame_count
        bins = spectrogram.frequency_bins
        if bins > self.half_spectrum_bins:
            raise STFTError(
                f"Spectrogram has {bins} bins, at most {self.half_spectrum_bins} supported",
                details={"bins": bins, "fft_size": self.fft_size},
            )
        if frame_count == 0:
            return np.zeros(0, dtype=np.float32)

        try:
            spectrum = np.zeros((frame_count, self.half_spectrum_bins), dtype=np.complex128)
            spectrum[:, :bins] = spectrogram.to_complex()
            frames = scipy.fft.irfft(spectrum, n=self.fft_size, axis=1) * self._window

            output_length = self.hop_length * (frame_count - 1) + self.fft_size
            output = np.zeros(output_length, dtype=np.float64)
            window_energy = np.zeros(output_length, dtype=np.float64)
            squared_window = self._window**2
            for index, frame in enumerate(frames):
                start = index * self.hop_length
                output[start : start + self.fft_size] += frame
                window_energy[start : start + self.fft_size] += squared_window
        except MemoryError as e:
            raise STFTError(
                "Not enough memory for the inverse transform",
                details={"frames": frame_count, "fft_size": self.fft_size},
            ) from e

        covered = window_energy > WINDOW_ENERGY_EPSILON
        output[covered] /= window_energy[covered]
        return output[self.pad : output_length - self.pad].astype(np.float32)

    def __repr__(self) -> str:
        return (
            f"STFT(fft_size={self.fft_size}, hop_length={self.hop_length}, "
            f"frequency_limit={self.frequency_limit})"
        )
