"""
Audio-Quellen

AudioFile liest beliebige Bereiche einer Audio-Datei über soundfile
(libsndfile), ohne die ganze Datei in den Speicher zu laden.
WaveformSource bedient dieselbe Schnittstelle aus einem In-Memory Signal.
"""

from pathlib import Path

import numpy as np
import soundfile as sf

from ..core.constants import SUPPORTED_AUDIO_FORMATS
from ..core.exceptions import AudioFileError, wrap_exception
from ..utils.logger import get_logger
from .stereo import StereoValues

logger = get_logger(__name__)


class AudioFile:
    """
    Lesender Zugriff auf eine Audio-Datei.

    Samples werden channel-first als float32 geliefert: (channels, frames).

    Args:
        path: Pfad zur Audio-Datei

    Raises:
        FileNotFoundError: Datei existiert nicht
        AudioFileError: libsndfile kann die Datei nicht öffnen
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        if not self.path.exists():
            raise FileNotFoundError(f"Audio file not found: {self.path}")
        if self.path.suffix.lower() not in SUPPORTED_AUDIO_FORMATS:
            logger.warning(f"Unbekanntes Audio-Format {self.path.suffix}, versuche trotzdem")

        try:
            self._file = sf.SoundFile(str(self.path), mode="r")
        except Exception as e:
            logger.error(f"Audio-Datei konnte nicht geöffnet werden: {self.path}: {e}")
            raise wrap_exception(e, AudioFileError) from e

        logger.debug(
            f"Audio geöffnet: {self.path.name} "
            f"({self.length} frames, {self.channel_count} ch, {self.sample_rate} Hz)"
        )

    @property
    def length(self) -> int:
        return self._file.frames

    @property
    def channel_count(self) -> int:
        return self._file.channels

    @property
    def sample_rate(self) -> int:
        return self._file.samplerate

    @property
    def closed(self) -> bool:
        return self._file.closed

    def read_samples(self, start: int | None = None, stop: int | None = None) -> np.ndarray:
        """
        Liest den Bereich [start, stop) aller Kanäle.

        Der Bereich wird auf die Datei begrenzt; ein leerer Bereich liefert
        ein Array der Form (channels, 0).

        Returns:
            float32 Array (channels, frames)

        Raises:
            AudioFileError: Lesefehler
        """
        start = 0 if start is None else max(0, min(start, self.length))
        stop = self.length if stop is None else max(start, min(stop, self.length))
        frames = stop - start
        if frames == 0:
            return np.zeros((self.channel_count, 0), dtype=np.float32)

        try:
            self._file.seek(start)
            data = self._file.read(frames, dtype="float32", always_2d=True)
        except Exception as e:
            logger.error(f"Lesefehler in {self.path} [{start}:{stop}]: {e}")
            raise wrap_exception(e, AudioFileError) from e
        return np.ascontiguousarray(data.T)

    def read_monaural_samples(self, start: int | None = None, stop: int | None = None) -> np.ndarray:
        """Mittelwert über alle Kanäle."""
        return self.read_samples(start, stop).mean(axis=0)

    def read_stereo_samples(
        self, start: int | None = None, stop: int | None = None
    ) -> StereoValues[np.ndarray]:
        """Links/rechts; Mono-Dateien werden dupliziert."""
        return StereoValues.from_array(self.read_samples(start, stop))

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()

    def __enter__(self) -> "AudioFile":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"AudioFile(path='{self.path}', frames={self.length}, sr={self.sample_rate})"


class WaveformSource:
    """
    In-Memory Audio-Quelle.

    Args:
        waveform: Stereo-Paar oder Array (mono oder channel-first)
        sample_rate: Abtastrate in Hz
    """

    def __init__(self, waveform: StereoValues[np.ndarray] | np.ndarray, sample_rate: int = 44100):
        if not isinstance(waveform, StereoValues):
            waveform = StereoValues.from_array(waveform)
        self.waveform = waveform.map_channels(lambda c: np.asarray(c, dtype=np.float32))
        self.sample_rate = sample_rate

    @property
    def length(self) -> int:
        return self.waveform.length

    def read_stereo_samples(
        self, start: int | None = None, stop: int | None = None
    ) -> StereoValues[np.ndarray]:
        start = 0 if start is None else start
        stop = self.length if stop is None else stop
        return self.waveform.map_channels(lambda c: c[start:stop])
