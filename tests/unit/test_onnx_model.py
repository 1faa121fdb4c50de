from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from stemflow.core.exceptions import ModelPredictionError
from stemflow.separation import onnx_model
from stemflow.separation.model_protocol import SeparationModel
from stemflow.separation.onnx_model import (
    OnnxSeparationModel,
    clear_session_pool,
    get_cached_session,
    resolve_providers,
)
from stemflow.separation.stems import Stems2, Stems4


@pytest.fixture(autouse=True)
def empty_pool():
    clear_session_pool()
    yield
    clear_session_pool()


@pytest.fixture
def model_file(tmp_path):
    path = tmp_path / "2stems.onnx"
    path.write_bytes(b"fake onnx model")
    return path


@pytest.fixture
def mock_session():
    session = MagicMock()
    session.get_providers.return_value = ["CPUExecutionProvider"]
    # Output i ist konstant i
    session.run.side_effect = lambda names, feed: [
        np.full(feed["magnitude"].shape, index, dtype=np.float32) for index, _ in enumerate(names)
    ]
    with patch.object(onnx_model.ort, "InferenceSession", return_value=session) as factory, patch.object(
        onnx_model.ort, "get_available_providers", return_value=["CPUExecutionProvider"]
    ):
        factory.session = session
        yield factory


class TestProviders:
    def test_unavailable_providers_are_dropped(self):
        with patch.object(
            onnx_model.ort, "get_available_providers", return_value=["CPUExecutionProvider"]
        ):
            selected = resolve_providers(["CUDAExecutionProvider", "CPUExecutionProvider"])
        assert selected == ["CPUExecutionProvider"]

    def test_falls_back_to_cpu(self):
        with patch.object(onnx_model.ort, "get_available_providers", return_value=[]):
            assert resolve_providers(["DmlExecutionProvider"]) == ["CPUExecutionProvider"]


class TestSessionPool:
    def test_session_is_cached(self, model_file, mock_session):
        first = get_cached_session(model_file)
        second = get_cached_session(model_file)

        assert first is second
        assert mock_session.call_count == 1

    def test_clear_session_pool(self, model_file, mock_session):
        get_cached_session(model_file)
        clear_session_pool()
        get_cached_session(model_file)
        assert mock_session.call_count == 2

    def test_missing_model(self, tmp_path, mock_session):
        with pytest.raises(FileNotFoundError):
            get_cached_session(tmp_path / "missing.onnx")

    def test_session_creation_failure(self, model_file):
        with patch.object(
            onnx_model.ort, "InferenceSession", side_effect=RuntimeError("invalid protobuf")
        ):
            with pytest.raises(ModelPredictionError):
                get_cached_session(model_file)


class TestOnnxSeparationModel:
    def test_predict_requests_mask_outputs(self, model_file, mock_session):
        model = OnnxSeparationModel(model_file, stems_type=Stems4)
        magnitude = np.ones((2, 33, 9), dtype=np.float64)

        masks = model.predict(magnitude)

        assert isinstance(model, SeparationModel)
        assert isinstance(masks, Stems4)
        assert masks.drums.shape == (2, 33, 9)
        assert masks.bass[0, 0, 0] == 2.0

        output_names, feed = mock_session.session.run.call_args.args
        assert output_names == ["vocalsMask", "drumsMask", "bassMask", "otherMask"]
        assert feed["magnitude"].dtype == np.float32

    def test_custom_input_name(self, model_file, mock_session):
        mock_session.session.run.side_effect = lambda names, feed: [
            np.zeros(feed["spectrogram"].shape) for _ in names
        ]
        model = OnnxSeparationModel(model_file, stems_type=Stems2, input_name="spectrogram")
        masks = model.predict(np.ones((2, 4, 3)))
        assert masks.accompaniment.shape == (2, 4, 3)

    def test_runtime_failure_is_wrapped(self, model_file, mock_session):
        mock_session.session.run.side_effect = RuntimeError("[ONNXRuntimeError] shape mismatch")
        model = OnnxSeparationModel(model_file)

        with pytest.raises(ModelPredictionError) as exc_info:
            model.predict(np.ones((2, 4, 3)))
        assert exc_info.value.details["original_type"] == "RuntimeError"
