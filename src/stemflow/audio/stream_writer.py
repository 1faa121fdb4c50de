"""
Audio-Senken

AudioFileStreamWriter schreibt Stem-Chunks fortlaufend in eine Datei,
InMemoryAudioSink sammelt sie für die weitere Verarbeitung im Speicher.
"""

from collections.abc import Sequence
from pathlib import Path

import numpy as np
import soundfile as sf

from ..core.constants import DEFAULT_OUTPUT_SUBTYPES
from ..core.exceptions import AudioFileWriterError, wrap_exception
from ..utils.logger import get_logger

logger = get_logger(__name__)


def _validate_block(samples: Sequence[np.ndarray], channel_count: int) -> np.ndarray:
    """
    Prüft einen Block aus Kanal-Arrays und liefert ihn als (frames, channels).

    Raises:
        AudioFileWriterError: keine Kanäle, falsche Kanalanzahl oder
            unterschiedliche Längen
    """
    if len(samples) == 0:
        raise AudioFileWriterError("No channels to write")
    if len(samples) != channel_count:
        raise AudioFileWriterError(
            f"Expected {channel_count} channels, got {len(samples)}",
            details={"expected": channel_count, "actual": len(samples)},
        )
    lengths = {len(channel) for channel in samples}
    if len(lengths) != 1:
        raise AudioFileWriterError(
            "Channels have different lengths",
            details={"lengths": sorted(lengths)},
        )
    return np.stack([np.asarray(channel, dtype=np.float32) for channel in samples], axis=1)


class AudioFileStreamWriter:
    """
    Schreibt Audio blockweise in eine Datei.

    Args:
        path: Ziel-Datei (Format aus der Endung)
        sample_rate: Abtastrate in Hz
        channel_count: Anzahl der Kanäle pro Block
        subtype: soundfile-Subtype; Default FLOAT für WAV/AIFF

    Raises:
        AudioFileWriterError: Datei kann nicht angelegt werden
    """

    def __init__(
        self,
        path: str | Path,
        sample_rate: int,
        channel_count: int = 1,
        subtype: str | None = None,
    ):
        self.path = Path(path)
        self.sample_rate = sample_rate
        self.channel_count = channel_count
        self.subtype = subtype or DEFAULT_OUTPUT_SUBTYPES.get(self.path.suffix.lower())
        self.frames_written = 0

        self.path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._file = sf.SoundFile(
                str(self.path),
                mode="w",
                samplerate=sample_rate,
                channels=channel_count,
                subtype=self.subtype,
            )
        except Exception as e:
            logger.error(f"Ausgabe-Datei konnte nicht angelegt werden: {self.path}: {e}")
            raise wrap_exception(e, AudioFileWriterError) from e

    @property
    def closed(self) -> bool:
        return self._file.closed

    def append(self, samples: Sequence[np.ndarray]) -> None:
        """
        Hängt einen Block an.

        Args:
            samples: ein Array pro Kanal, alle gleich lang
        """
        if self.closed:
            raise AudioFileWriterError(f"Writer for {self.path} is closed")
        block = _validate_block(samples, self.channel_count)
        if len(block) == 0:
            return
        try:
            self._file.write(block)
        except Exception as e:
            logger.error(f"Schreibfehler in {self.path}: {e}")
            raise wrap_exception(e, AudioFileWriterError) from e
        self.frames_written += len(block)

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()
            logger.debug(f"{self.path.name} geschlossen ({self.frames_written} frames)")

    def __enter__(self) -> "AudioFileStreamWriter":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __repr__(self) -> str:
        return f"AudioFileStreamWriter(path='{self.path}', frames_written={self.frames_written})"


class InMemoryAudioSink:
    """Sammelt angehängte Blöcke im Speicher."""

    def __init__(self, channel_count: int = 1):
        self.channel_count = channel_count
        self._blocks: list[np.ndarray] = []

    @property
    def frames_written(self) -> int:
        return sum(len(block) for block in self._blocks)

    def append(self, samples: Sequence[np.ndarray]) -> None:
        self._blocks.append(_validate_block(samples, self.channel_count))

    def to_array(self) -> np.ndarray:
        """
        Returns:
            (frames,) für Mono, sonst (channels, frames)
        """
        if self._blocks:
            data = np.concatenate(self._blocks, axis=0)
        else:
            data = np.zeros((0, self.channel_count), dtype=np.float32)
        if self.channel_count == 1:
            return data[:, 0]
        return np.ascontiguousarray(data.T)
