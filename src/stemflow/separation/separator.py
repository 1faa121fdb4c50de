"""
Audio Separator

Zerlegt ein Stereo-Signal chunkweise in Stems:

    Chunk → STFT → Modell (Masken) → Maske anwenden → inverse STFT → Stem-Chunk

Lange Aufnahmen werden in Chunks von hop_length * (clamping_frame_count - 1)
Samples verarbeitet, strikt nacheinander und mit begrenztem Speicher.
Alle Streams sind Generatoren: ein Chunk wird erst verarbeitet, wenn der
Aufrufer das nächste Ereignis anfordert.

Ereignis-Folge pro Aufruf:
    Progress(0, total), dann pro Chunk die Stems und Progress(i + 1, total)

Bei einem Fehler wird er geloggt und unverändert weitergereicht; danach
kommt kein Ereignis mehr. Bereits geschriebene Ausgaben bleiben erhalten.
"""

import asyncio
from collections.abc import AsyncIterator, Callable, Iterator
from contextlib import ExitStack
from pathlib import Path

import numpy as np

from ..audio.audio_file import AudioFile, WaveformSource
from ..audio.stereo import StereoValues
from ..audio.stream_writer import AudioFileStreamWriter
from ..core.config import Config, SeparationSettings, get_config, stem_count_from_config
from ..core.exceptions import (
    ConfigurationError,
    SeparationCancelledError,
    ShapeMismatchError,
    StemArityError,
)
from ..stft.engine import STFT
from ..stft.tensor import SpectrogramTensor, complex_to_spectrogram, pad_or_clamp, stack_channels
from ..utils.logger import get_logger
from .model_protocol import AudioSink, AudioSource, SeparationModel
from .onnx_model import OnnxSeparationModel
from .progress import CancellationToken, ChunkPlan, Progress
from .stems import Stems, Stems2, stems_for_count

logger = get_logger(__name__)

SeparationEvent = tuple[Stems[np.ndarray] | None, Progress]


class AudioSeparator:
    """
    Chunkweise Stem-Separation mit einem austauschbaren Modell.

    Args:
        model: Modell-Adapter (SeparationModel); seine stems_type bestimmt
            Anzahl und Reihenfolge der Stems
        settings: STFT- und Chunk-Parameter (Default: 4096/1024/216)

    Example:
        separator = AudioSeparator.from_onnx("models/2stems.onnx")
        for progress in separator.iter_separate_file(
            "song.wav", Stems2(vocals=Path("vocals.wav"), accompaniment=Path("acc.wav"))
        ):
            print(f"{progress.fraction:.0%}")
    """

    def __init__(self, model: SeparationModel, settings: SeparationSettings | None = None):
        self.model = model
        self.settings = settings or SeparationSettings()
        self.stft = STFT(
            self.settings.fft_size, self.settings.hop_length, self.settings.frequency_limit
        )

    @classmethod
    def from_onnx(
        cls,
        model_path: str | Path,
        stems_type: type[Stems] = Stems2,
        settings: SeparationSettings | None = None,
        providers: list[str] | None = None,
    ) -> "AudioSeparator":
        """Separator mit einem ONNX-Modell (Session wird gecacht)."""
        model = OnnxSeparationModel(model_path, stems_type=stems_type, providers=providers)
        return cls(model, settings)

    @classmethod
    def from_config(cls, config: Config | None = None) -> "AudioSeparator":
        """Separator aus den Sections [STFT] und [Separation] der Konfiguration."""
        config = config or get_config()
        model_path = config.get("Separation", "model_path")
        if not model_path:
            raise ConfigurationError(
                "Missing [Separation] model_path",
                details={"section": "Separation", "option": "model_path"},
            )
        return cls.from_onnx(
            model_path,
            stems_type=stems_for_count(stem_count_from_config(config)),
            settings=SeparationSettings.from_config(config),
            providers=config.get_list("Separation", "providers"),
        )

    @property
    def stems_type(self) -> type[Stems]:
        return self.model.stems_type

    @property
    def chunk_size(self) -> int:
        return self.settings.chunk_size

    # =========================================================================
    # Per-Chunk Algorithmus
    # =========================================================================

    def _analyze(self, chunk: StereoValues[np.ndarray]) -> tuple[np.ndarray, np.ndarray]:
        """
        STFT beider Kanäle auf Analyse-Länge chunk_size.

        Returns:
            (complex (2, F, T, 2), magnitude (2, F, T))
        """
        tensors = chunk.map_channels(
            lambda samples: SpectrogramTensor.from_spectrogram(
                self.stft.forward(pad_or_clamp(samples, self.chunk_size))
            )
        )
        complex_tensor = stack_channels([t.complex for t in tensors.values()])
        magnitude = stack_channels([t.magnitude for t in tensors.values()])
        return complex_tensor, magnitude

    def _predict(self, magnitude: np.ndarray) -> Stems[np.ndarray]:
        """Ruft das Modell auf und prüft die Form jeder Maske."""
        masks = self.model.predict(magnitude)
        if type(masks) is not self.stems_type:
            masks = self.stems_type.from_values(masks.values())

        expected = magnitude.shape

        def checked(mask: np.ndarray) -> np.ndarray:
            mask = np.asarray(mask, dtype=np.float32)
            if mask.shape == (*expected, 1):
                mask = mask[..., 0]
            if mask.shape != expected:
                raise ShapeMismatchError(expected=expected, actual=mask.shape, what="mask")
            return mask

        return masks.map_stems(checked)

    def _synthesize(self, mask: np.ndarray, complex_tensor: np.ndarray, length: int) -> np.ndarray:
        """Maske anwenden, Kanäle mitteln, inverse STFT, auf length kürzen."""
        masked = (mask[..., None] * complex_tensor).mean(axis=0)
        waveform = self.stft.inverse(complex_to_spectrogram(masked))
        return waveform[:length]

    def separate_chunk(self, chunk: StereoValues[np.ndarray]) -> Stems[np.ndarray]:
        """
        Separiert einen Chunk.

        Args:
            chunk: linke/rechte Samples, höchstens chunk_size lang

        Returns:
            Mono-Waveform pro Stem, so lang wie der längere Kanal
        """
        length = max(len(chunk.left), len(chunk.right))
        complex_tensor, magnitude = self._analyze(chunk)
        masks = self._predict(magnitude)
        return masks.map_stems(lambda mask: self._synthesize(mask, complex_tensor, length))

    async def aseparate_chunk(self, chunk: StereoValues[np.ndarray]) -> Stems[np.ndarray]:
        """Wie separate_chunk; Synthese der Stems läuft nebenläufig in Threads."""
        length = max(len(chunk.left), len(chunk.right))
        complex_tensor, magnitude = await asyncio.to_thread(self._analyze, chunk)
        masks = await asyncio.to_thread(self._predict, magnitude)
        return await masks.async_map_stems(
            lambda mask: asyncio.to_thread(self._synthesize, mask, complex_tensor, length)
        )

    # =========================================================================
    # Streams
    # =========================================================================

    def _plan(self, source: AudioSource) -> ChunkPlan:
        plan = ChunkPlan(length=source.length, chunk_size=self.chunk_size)
        logger.info(
            f"Starte Separation: {plan.length} Samples in {plan.count} Chunks "
            f"à {plan.chunk_size} ({self.stems_type.__name__})"
        )
        return plan

    def _chunk_outputs(
        self, source: AudioSource, cancel_token: CancellationToken | None = None
    ) -> Iterator[SeparationEvent]:
        plan = self._plan(source)
        yield None, plan.progress(0)

        for index, start, stop in plan.ranges():
            try:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled(index, plan.count)
                chunk = source.read_stereo_samples(start, stop)
                stems = self.separate_chunk(chunk)
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled(index + 1, plan.count)
            except SeparationCancelledError as e:
                logger.info(f"Separation abgebrochen nach {e.completed}/{plan.count} Chunks")
                raise
            except Exception as e:
                logger.error(f"Separation fehlgeschlagen bei Chunk {index + 1}/{plan.count}: {e}")
                raise
            logger.debug(f"Chunk {index + 1}/{plan.count} separiert [{start}:{stop}]")
            yield stems, plan.progress(index + 1)

        logger.info("Separation abgeschlossen")

    async def _achunk_outputs(
        self, source: AudioSource, cancel_token: CancellationToken | None = None
    ) -> AsyncIterator[SeparationEvent]:
        plan = self._plan(source)
        yield None, plan.progress(0)

        for index, start, stop in plan.ranges():
            try:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled(index, plan.count)
                chunk = await asyncio.to_thread(source.read_stereo_samples, start, stop)
                stems = await self.aseparate_chunk(chunk)
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled(index + 1, plan.count)
            except SeparationCancelledError as e:
                logger.info(f"Separation abgebrochen nach {e.completed}/{plan.count} Chunks")
                raise
            except Exception as e:
                logger.error(f"Separation fehlgeschlagen bei Chunk {index + 1}/{plan.count}: {e}")
                raise
            logger.debug(f"Chunk {index + 1}/{plan.count} separiert [{start}:{stop}]")
            yield stems, plan.progress(index + 1)

        logger.info("Separation abgeschlossen")

    def _check_sinks(self, sinks: Stems[AudioSink]) -> None:
        if type(sinks).arity() != self.stems_type.arity():
            raise StemArityError(
                stems_type=self.stems_type.__name__,
                expected=self.stems_type.arity(),
                actual=type(sinks).arity(),
            )

    @staticmethod
    def _write_stems(sinks: Stems[AudioSink], stems: Stems[np.ndarray]) -> None:
        for sink, samples in zip(sinks.values(), stems.values()):
            sink.append([samples])

    def iter_separate(
        self,
        waveform: StereoValues[np.ndarray] | np.ndarray,
        cancel_token: CancellationToken | None = None,
    ) -> Iterator[SeparationEvent]:
        """
        Separiert ein In-Memory Signal.

        Yields:
            (None, Progress(0, total)), danach (Stems, Progress(i + 1, total))
        """
        yield from self._chunk_outputs(WaveformSource(waveform), cancel_token)

    async def separate(
        self,
        waveform: StereoValues[np.ndarray] | np.ndarray,
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[SeparationEvent]:
        """Asynchrone Variante von iter_separate."""
        async for event in self._achunk_outputs(WaveformSource(waveform), cancel_token):
            yield event

    def iter_separate_source(
        self,
        source: AudioSource,
        sinks: Stems[AudioSink],
        cancel_token: CancellationToken | None = None,
    ) -> Iterator[Progress]:
        """
        Separiert eine Quelle in eine Senke pro Stem.

        Jeder Stem-Chunk wird vor dem zugehörigen Progress angehängt.
        """
        self._check_sinks(sinks)
        for stems, progress in self._chunk_outputs(source, cancel_token):
            if stems is not None:
                self._write_stems(sinks, stems)
            yield progress

    async def separate_source(
        self,
        source: AudioSource,
        sinks: Stems[AudioSink],
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[Progress]:
        """Asynchrone Variante von iter_separate_source."""
        self._check_sinks(sinks)
        async for stems, progress in self._achunk_outputs(source, cancel_token):
            if stems is not None:
                await asyncio.to_thread(self._write_stems, sinks, stems)
            yield progress

    def iter_separate_file(
        self,
        input_path: str | Path,
        output_paths: Stems[Path],
        cancel_token: CancellationToken | None = None,
    ) -> Iterator[Progress]:
        """
        Separiert eine Audio-Datei in eine Mono-Datei pro Stem.

        Die Writer laufen mit der Abtastrate der Eingabe und werden beim
        Ende, bei einem Fehler und beim Verwerfen des Streams geschlossen.
        """
        with AudioFile(input_path) as audio_file, ExitStack() as stack:
            writers = output_paths.map_stems(
                lambda path: stack.enter_context(
                    AudioFileStreamWriter(path, audio_file.sample_rate, channel_count=1)
                )
            )
            yield from self.iter_separate_source(audio_file, writers, cancel_token)

    async def separate_file(
        self,
        input_path: str | Path,
        output_paths: Stems[Path],
        cancel_token: CancellationToken | None = None,
    ) -> AsyncIterator[Progress]:
        """Asynchrone Variante von iter_separate_file."""
        audio_file = await asyncio.to_thread(AudioFile, input_path)
        with audio_file, ExitStack() as stack:
            writers = output_paths.map_stems(
                lambda path: stack.enter_context(
                    AudioFileStreamWriter(path, audio_file.sample_rate, channel_count=1)
                )
            )
            async for progress in self.separate_source(audio_file, writers, cancel_token):
                yield progress

    def separate_waveform(
        self,
        waveform: StereoValues[np.ndarray] | np.ndarray,
        progress_callback: Callable[[int, int], None] | None = None,
    ) -> Stems[np.ndarray]:
        """
        Separiert ein In-Memory Signal vollständig.

        Args:
            waveform: Stereo-Paar oder Array (mono oder channel-first)
            progress_callback: Optional callback(completed, total)

        Returns:
            Eine zusammenhängende Waveform pro Stem
        """
        pieces: list[Stems[np.ndarray]] = []
        for stems, progress in self.iter_separate(waveform):
            if stems is not None:
                pieces.append(stems)
            if progress_callback:
                progress_callback(progress.current, progress.total)

        if not pieces:
            return self.stems_type.from_values(
                np.zeros(0, dtype=np.float32) for _ in range(self.stems_type.arity())
            )
        return self.stems_type.from_values(
            np.concatenate(parts) for parts in zip(*(p.values() for p in pieces))
        )

    def __repr__(self) -> str:
        return (
            f"AudioSeparator(stems={self.stems_type.__name__}, fft_size={self.settings.fft_size}, "
            f"chunk_size={self.chunk_size})"
        )
