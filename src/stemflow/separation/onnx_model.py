"""
ONNX Runtime Adapter für Separations-Modelle

Lädt ein exportiertes Spleeter-Modell als onnxruntime.InferenceSession und
bedient das SeparationModel-Protocol:

- Input: Magnitude (2, frequency, time) als float32
- Outputs: eine Maske pro Stem, benannt "<stem>Mask"

Sessions werden pro Modell-Pfad gecacht, damit mehrere Separatoren dasselbe
Modell nur einmal laden.
"""

from pathlib import Path
from typing import Any

import numpy as np
import onnxruntime as ort

from ..core.constants import DEFAULT_ONNX_PROVIDERS, MAGNITUDE_INPUT_NAME
from ..core.exceptions import ModelPredictionError, wrap_exception
from ..utils.logger import get_logger
from .stems import Stems, Stems2

logger = get_logger(__name__)

# Global Session Pool, Key: aufgelöster Modell-Pfad
_SESSION_POOL: dict[str, "OnnxRuntimeSession"] = {}


def resolve_providers(providers: list[str] | None = None) -> list[str]:
    """
    Filtert die gewünschten Execution Providers auf die verfügbaren.

    Nicht verfügbare Provider werden mit Warnung verworfen; bleibt keiner
    übrig, wird CPUExecutionProvider verwendet.
    """
    requested = list(providers or DEFAULT_ONNX_PROVIDERS)
    available = set(ort.get_available_providers())
    selected = [p for p in requested if p in available]

    dropped = [p for p in requested if p not in available]
    if dropped:
        logger.warning(f"ONNX Provider nicht verfügbar, ignoriert: {dropped}")
    if not selected:
        selected = list(DEFAULT_ONNX_PROVIDERS)
    return selected


def get_cached_session(
    model_path: str | Path, providers: list[str] | None = None
) -> "OnnxRuntimeSession":
    """
    Holt gecachte ONNX Session oder erstellt neue.

    Args:
        model_path: Pfad zum ONNX Model
        providers: Liste von Execution Providers

    Returns:
        Gecachte oder neue OnnxRuntimeSession
    """
    cache_key = str(Path(model_path).resolve())

    if cache_key not in _SESSION_POOL:
        _SESSION_POOL[cache_key] = OnnxRuntimeSession(model_path, providers)
        logger.info(f"ONNX Session gecacht: {Path(model_path).name}")

    return _SESSION_POOL[cache_key]


def clear_session_pool():
    """Leert den Session-Pool."""
    _SESSION_POOL.clear()
    logger.info("ONNX Session-Pool geleert")


class OnnxRuntimeSession:
    """
    Wrapper für onnxruntime.InferenceSession mit Provider-Auswahl.

    Raises:
        FileNotFoundError: Modell-Datei existiert nicht
        ModelPredictionError: Session kann nicht erstellt werden
    """

    def __init__(self, model_path: str | Path, providers: list[str] | None = None):
        self.model_path = Path(model_path)
        if not self.model_path.exists():
            raise FileNotFoundError(f"ONNX Model nicht gefunden: {model_path}")

        self.providers = resolve_providers(providers)

        try:
            self.session = ort.InferenceSession(str(self.model_path), providers=self.providers)
        except Exception as e:
            logger.error(f"ONNX Session Fehler: {e}")
            raise wrap_exception(e, ModelPredictionError) from e

        logger.info(f"ONNX Session erstellt: {self.model_path.name}")
        logger.debug(f"  Active Providers: {self.session.get_providers()}")

    def run(self, input_data: dict[str, Any], output_names: list[str] | None = None) -> list[Any]:
        """
        Führt Inference durch.

        Args:
            input_data: Dict {input_name: numpy_array}
            output_names: Optionale Liste von Output-Namen

        Returns:
            Liste von Output-Arrays in der Reihenfolge von output_names

        Raises:
            ModelPredictionError: Inferenz fehlgeschlagen
        """
        try:
            return self.session.run(output_names, input_data)
        except Exception as e:
            logger.error(f"ONNX Inference Fehler: {e}")
            raise wrap_exception(e, ModelPredictionError) from e

    def get_providers(self) -> list[str]:
        """Gibt aktive Execution Providers zurück."""
        return self.session.get_providers()


class OnnxSeparationModel:
    """
    Separations-Modell über ONNX Runtime.

    Args:
        model_path: Pfad zum .onnx Modell
        stems_type: Stem-Container passend zu den Modell-Ausgaben
        providers: Execution Providers (Default: CPU)
        input_name: Name des Magnitude-Inputs

    Example:
        model = OnnxSeparationModel("models/4stems.onnx", stems_type=Stems4)
        masks = model.predict(magnitude)
        masks.drums.shape  # (2, 1024, 216)
    """

    def __init__(
        self,
        model_path: str | Path,
        stems_type: type[Stems] = Stems2,
        providers: list[str] | None = None,
        input_name: str = MAGNITUDE_INPUT_NAME,
    ):
        self.stems_type = stems_type
        self.input_name = input_name
        self._session = get_cached_session(model_path, providers)

    @property
    def output_names(self) -> list[str]:
        return list(self.stems_type.mask_feature_names())

    def predict(self, magnitude: np.ndarray) -> Stems[np.ndarray]:
        """
        Berechnet eine Maske pro Stem.

        Raises:
            ModelPredictionError: Inferenz fehlgeschlagen
        """
        feed = {self.input_name: np.ascontiguousarray(magnitude, dtype=np.float32)}
        outputs = self._session.run(feed, self.output_names)
        return self.stems_type.from_values(np.asarray(o, dtype=np.float32) for o in outputs)

    def __repr__(self) -> str:
        return (
            f"OnnxSeparationModel(model='{self._session.model_path.name}', "
            f"stems={self.stems_type.__name__})"
        )
