from unittest.mock import patch

import numpy as np
import pytest
from conftest import ConstantMaskModel, FailingModel, IdentityMaskModel, WrongShapeModel

from stemflow.audio.audio_file import WaveformSource
from stemflow.audio.stereo import StereoValues
from stemflow.audio.stream_writer import InMemoryAudioSink
from stemflow.core.config import Config, SeparationSettings
from stemflow.core.exceptions import (
    ConfigurationError,
    ModelPredictionError,
    SeparationCancelledError,
    ShapeMismatchError,
    StemArityError,
)
from stemflow.separation.progress import CancellationToken, Progress
from stemflow.separation.separator import AudioSeparator
from stemflow.separation.stems import Stems2, Stems4, Stems5


@pytest.fixture
def separator(identity_model, small_settings):
    return AudioSeparator(identity_model, small_settings)


@pytest.fixture
def stereo(stereo_noise):
    return StereoValues.from_array(stereo_noise)


class TestSeparateChunk:
    def test_model_input_shape(self, separator, identity_model, stereo):
        chunk = stereo.map_channels(lambda c: c[:128])
        stems = separator.separate_chunk(chunk)

        assert identity_model.shapes == [(2, 33, 9)]
        assert isinstance(stems, Stems2)
        assert all(len(stem) == 128 for stem in stems.values())

    def test_identity_mask_returns_downmix(self, separator, stereo):
        chunk = stereo.map_channels(lambda c: c[:128])
        stems = separator.separate_chunk(chunk)

        expected = (chunk.left + chunk.right) / 2
        np.testing.assert_allclose(stems.vocals, expected, atol=1e-4)
        np.testing.assert_allclose(stems.accompaniment, expected, atol=1e-4)

    def test_short_chunk_is_truncated(self, separator, stereo):
        chunk = stereo.map_channels(lambda c: c[:44])
        stems = separator.separate_chunk(chunk)

        assert all(len(stem) == 44 for stem in stems.values())
        np.testing.assert_allclose(stems.vocals, (chunk.left + chunk.right) / 2, atol=1e-4)

    def test_unequal_channels_use_longer_length(self, separator):
        chunk = StereoValues(np.ones(30, dtype=np.float32), np.ones(50, dtype=np.float32))
        stems = separator.separate_chunk(chunk)
        assert len(stems.vocals) == 50

    def test_constant_masks_scale_each_stem(self, small_settings, stereo):
        separator = AudioSeparator(ConstantMaskModel(), small_settings)
        chunk = stereo.map_channels(lambda c: c[:128])

        stems = separator.separate_chunk(chunk)

        downmix = (chunk.left + chunk.right) / 2
        assert isinstance(stems, Stems4)
        for factor, stem in zip((1.0, 0.5, 0.25, 0.0), stems.values()):
            np.testing.assert_allclose(stem, factor * downmix, atol=1e-4)

    def test_trailing_singleton_mask_axis_is_squeezed(self, small_settings, stereo):
        class ChannelAxisModel(IdentityMaskModel):
            def predict(self, magnitude):
                return super().predict(magnitude).map_stems(lambda mask: mask[..., None])

        separator = AudioSeparator(ChannelAxisModel(), small_settings)
        stems = separator.separate_chunk(stereo.map_channels(lambda c: c[:128]))
        assert stems.vocals.shape == (128,)

    def test_wrong_mask_shape(self, small_settings, stereo):
        separator = AudioSeparator(WrongShapeModel(), small_settings)
        with pytest.raises(ShapeMismatchError) as exc_info:
            separator.separate_chunk(stereo.map_channels(lambda c: c[:128]))
        assert exc_info.value.expected == (2, 33, 9)

    def test_wrong_mask_count(self, small_settings, stereo):
        class TooFewMasks(IdentityMaskModel):
            def predict(self, magnitude):
                return Stems2(np.ones_like(magnitude), np.ones_like(magnitude))

        separator = AudioSeparator(TooFewMasks(stems_type=Stems5), small_settings)
        with pytest.raises(StemArityError):
            separator.separate_chunk(stereo.map_channels(lambda c: c[:128]))


class TestIterSeparate:
    def test_event_sequence(self, separator, stereo):
        events = list(separator.iter_separate(stereo))

        assert events[0] == (None, Progress(total=3, current=0))
        assert [progress for _, progress in events[1:]] == [
            Progress(total=3, current=1),
            Progress(total=3, current=2),
            Progress(total=3, current=3),
        ]
        assert [len(stems.vocals) for stems, _ in events[1:]] == [128, 128, 44]

    def test_concatenated_output_is_downmix(self, separator, stereo):
        pieces = [stems.vocals for stems, _ in separator.iter_separate(stereo) if stems]
        output = np.concatenate(pieces)

        assert len(output) == 300
        np.testing.assert_allclose(output, (stereo.left + stereo.right) / 2, atol=1e-4)

    def test_pull_based(self, separator, identity_model, stereo):
        events = separator.iter_separate(stereo)
        assert identity_model.calls == 0

        next(events)
        assert identity_model.calls == 0

        next(events)
        assert identity_model.calls == 1

    def test_empty_waveform(self, separator, identity_model):
        events = list(separator.iter_separate(np.zeros((2, 0), dtype=np.float32)))
        assert events == [(None, Progress(total=0, current=0))]
        assert identity_model.calls == 0

    def test_mono_array_input(self, separator):
        mono = np.linspace(-1, 1, 200, dtype=np.float32)
        output = separator.separate_waveform(mono)
        np.testing.assert_allclose(output.vocals, mono, atol=1e-4)

    def test_failure_is_raised_once(self, small_settings, stereo):
        model = FailingModel()
        events = AudioSeparator(model, small_settings).iter_separate(stereo)

        assert next(events) == (None, Progress(total=3, current=0))
        with pytest.raises(ModelPredictionError):
            next(events)
        with pytest.raises(StopIteration):
            next(events)
        assert model.calls == 1

    def test_cancellation_before_chunk(self, separator, identity_model, stereo):
        token = CancellationToken()
        events = separator.iter_separate(stereo, cancel_token=token)
        next(events)
        next(events)

        token.cancel()
        with pytest.raises(SeparationCancelledError) as exc_info:
            next(events)

        assert exc_info.value.completed == 1
        assert exc_info.value.total == 3
        assert identity_model.calls == 1

    def test_cancelled_before_start(self, separator, identity_model, stereo):
        token = CancellationToken()
        token.cancel()
        events = separator.iter_separate(stereo, cancel_token=token)

        assert next(events)[1].current == 0
        with pytest.raises(SeparationCancelledError):
            next(events)
        assert identity_model.calls == 0

    @pytest.mark.parametrize("cancel_on_call", [2, 3])
    def test_cancellation_during_chunk(self, small_settings, stereo, cancel_on_call):
        token = CancellationToken()

        class CancelsDuringPredict(IdentityMaskModel):
            def predict(self, magnitude):
                masks = super().predict(magnitude)
                if self.calls == cancel_on_call:
                    token.cancel()
                return masks

        model = CancelsDuringPredict()
        separator = AudioSeparator(model, small_settings)

        currents = []
        with pytest.raises(SeparationCancelledError) as exc_info:
            for _, progress in separator.iter_separate(stereo, cancel_token=token):
                currents.append(progress.current)

        assert currents == list(range(cancel_on_call))
        assert exc_info.value.completed == cancel_on_call
        assert exc_info.value.total == 3
        assert model.calls == cancel_on_call


class TestIterSeparateSource:
    def test_writes_each_stem_before_progress(self, small_settings, stereo):
        separator = AudioSeparator(ConstantMaskModel(), small_settings)
        sinks = Stems4(*(InMemoryAudioSink() for _ in range(4)))
        written = []

        for progress in separator.iter_separate_source(WaveformSource(stereo), sinks):
            written.append((progress.current, sinks.vocals.frames_written))

        assert written == [(0, 0), (1, 128), (2, 256), (3, 300)]
        downmix = (stereo.left + stereo.right) / 2
        np.testing.assert_allclose(sinks.drums.to_array(), 0.5 * downmix, atol=1e-4)
        np.testing.assert_allclose(sinks.other.to_array(), 0.0, atol=1e-4)

    def test_sink_arity_mismatch(self, separator, stereo):
        sinks = Stems4(*(InMemoryAudioSink() for _ in range(4)))
        with pytest.raises(StemArityError):
            list(separator.iter_separate_source(WaveformSource(stereo), sinks))

    def test_partial_output_stays_after_failure(self, small_settings, stereo):
        class FailsOnSecondChunk(IdentityMaskModel):
            def predict(self, magnitude):
                if self.calls == 1:
                    self.calls += 1
                    raise ModelPredictionError("second chunk failed")
                return super().predict(magnitude)

        separator = AudioSeparator(FailsOnSecondChunk(), small_settings)
        sinks = Stems2(InMemoryAudioSink(), InMemoryAudioSink())

        with pytest.raises(ModelPredictionError):
            list(separator.iter_separate_source(WaveformSource(stereo), sinks))
        assert sinks.vocals.frames_written == 128


class TestSeparateWaveform:
    def test_progress_callback(self, separator, stereo):
        calls = []
        stems = separator.separate_waveform(stereo, progress_callback=lambda c, t: calls.append((c, t)))

        assert calls == [(0, 3), (1, 3), (2, 3), (3, 3)]
        assert len(stems.vocals) == 300

    def test_empty_input(self, separator):
        stems = separator.separate_waveform(np.zeros(0, dtype=np.float32))
        assert isinstance(stems, Stems2)
        assert all(len(stem) == 0 for stem in stems.values())


class TestFactories:
    def test_defaults(self, identity_model):
        separator = AudioSeparator(identity_model)
        assert separator.chunk_size == 1024 * 215
        assert separator.stems_type is Stems2
        assert "Stems2" in repr(separator)

    def test_from_onnx(self, small_settings):
        with patch("stemflow.separation.separator.OnnxSeparationModel") as model_class:
            model_class.return_value.stems_type = Stems4
            separator = AudioSeparator.from_onnx(
                "models/4stems.onnx", stems_type=Stems4, settings=small_settings
            )

        model_class.assert_called_once_with("models/4stems.onnx", stems_type=Stems4, providers=None)
        assert separator.stems_type is Stems4
        assert separator.settings is small_settings

    def test_from_config(self, tmp_path):
        config = Config(str(tmp_path / "stemflow.ini"))
        config.set("Separation", "stem_count", 5)
        config.set("Separation", "model_path", "models/5stems.onnx")
        config.set("STFT", "fft_size", 64)
        config.set("STFT", "hop_length", 16)
        config.set("STFT", "frequency_limit", 33)

        with patch("stemflow.separation.separator.OnnxSeparationModel") as model_class:
            model_class.return_value.stems_type = Stems5
            separator = AudioSeparator.from_config(config)

        model_class.assert_called_once_with(
            "models/5stems.onnx", stems_type=Stems5, providers=["CPUExecutionProvider"]
        )
        assert separator.settings == SeparationSettings(
            fft_size=64, frequency_limit=33, clamping_frame_count=216, hop_length=16
        )

    def test_from_config_requires_model_path(self, tmp_path):
        config = Config(str(tmp_path / "stemflow.ini"))
        config.config.remove_option("Separation", "model_path")

        with patch("stemflow.separation.separator.OnnxSeparationModel") as model_class:
            with pytest.raises(ConfigurationError) as exc_info:
                AudioSeparator.from_config(config)

        assert exc_info.value.details["option"] == "model_path"
        model_class.assert_not_called()
