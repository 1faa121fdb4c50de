"""
Zentrales Konfigurations-Management für stemflow

Verwendet configparser für .ini-Dateien.
Automatische Erstellung von Standardkonfiguration.
Die STFT- und Separations-Parameter werden in SeparationSettings gebündelt
und beim Erzeugen validiert.
"""

import configparser
import logging
from dataclasses import dataclass
from numbers import Integral
from pathlib import Path
from typing import Any

from ..utils.logger import get_logger, setup_logging
from .constants import (
    DEFAULT_CLAMPING_FRAME_COUNT,
    DEFAULT_FFT_SIZE,
    DEFAULT_FREQUENCY_LIMIT,
    DEFAULT_ONNX_PROVIDERS,
    DEFAULT_STEM_COUNT,
    HOP_DIVISOR,
    SUPPORTED_STEM_COUNTS,
)
from .exceptions import ConfigurationError

logger = get_logger(__name__)


class Config:
    """Zentrale Konfigurationsklasse für stemflow."""

    def __init__(self, config_file: str = "stemflow.ini"):
        """
        Initialisiert die Konfiguration.

        Args:
            config_file: Pfad zur Konfigurationsdatei
        """
        self.config_file = Path(config_file)
        self.config = configparser.ConfigParser()
        self.load()

    def load(self) -> None:
        """Lädt die Konfiguration aus der Datei oder erstellt Standardkonfiguration."""
        if self.config_file.exists():
            self.config.read(self.config_file, encoding="utf-8")
            logger.info(f"Konfiguration aus {self.config_file} geladen")
        else:
            logger.info(
                f"Konfigurationsdatei {self.config_file} nicht gefunden. "
                "Erstelle Standardkonfiguration."
            )
            self._create_default_config()
            self.save()

    def _create_default_config(self) -> None:
        """Erstellt die Standardkonfiguration."""
        # STFT (muss zum Training des Modells passen)
        self.config["STFT"] = {
            "fft_size": str(DEFAULT_FFT_SIZE),
            "hop_length": str(DEFAULT_FFT_SIZE // HOP_DIVISOR),
            "frequency_limit": str(DEFAULT_FREQUENCY_LIMIT),
        }

        # Separation
        self.config["Separation"] = {
            "clamping_frame_count": str(DEFAULT_CLAMPING_FRAME_COUNT),
            "stem_count": str(DEFAULT_STEM_COUNT),
            "model_path": "models/2stems.onnx",
            "providers": ",".join(DEFAULT_ONNX_PROVIDERS),
        }

        # Logging
        self.config["Logging"] = {
            "console_level": "INFO",
            "file_level": "DEBUG",
            "log_file": "stemflow.log",
            "log_dir": "logs",
        }

    def save(self) -> None:
        """Speichert die Konfiguration in die Datei."""
        self.config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(self.config_file, "w", encoding="utf-8") as f:
            self.config.write(f)
        logger.info(f"Konfiguration in {self.config_file} gespeichert")

    def get(self, section: str, option: str, default: Any | None = None) -> str | None:
        """
        Holt einen Konfigurationswert.

        Args:
            section: Section-Name
            option: Option-Name
            default: Default-Wert falls nicht gefunden

        Returns:
            Konfigurationswert oder default
        """
        try:
            return self.config.get(section, option)
        except (configparser.NoSectionError, configparser.NoOptionError):
            logger.warning(
                f"Konfigurationswert [{section}] {option} nicht gefunden. "
                f"Verwende Default: {default}"
            )
            return default

    def get_int(self, section: str, option: str, default: int | None = None) -> int | None:
        """
        Holt einen Integer-Konfigurationswert.

        Args:
            section: Section-Name
            option: Option-Name
            default: Default-Wert

        Returns:
            Integer-Wert oder default
        """
        try:
            return self.config.getint(section, option)
        except (configparser.NoSectionError, configparser.NoOptionError, ValueError):
            return default

    def get_list(self, section: str, option: str, default: list[str] | None = None) -> list[str] | None:
        """Holt eine komma-separierte Liste (leere Einträge werden verworfen)."""
        value = self.get(section, option)
        if value is None:
            return default
        items = [item.strip() for item in value.split(",") if item.strip()]
        return items or default

    def set(self, section: str, option: str, value: Any) -> None:
        """
        Setzt einen Konfigurationswert.

        Args:
            section: Section-Name
            option: Option-Name
            value: Zu setzender Wert
        """
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, option, str(value))
        logger.debug(f"Konfiguration gesetzt: [{section}] {option} = {value}")

    def __repr__(self) -> str:
        sections = ", ".join(self.config.sections())
        return f"Config(file='{self.config_file}', sections=[{sections}])"


# Globale Konfigurationsinstanz
_config = None


def get_config(config_file: str = "stemflow.ini") -> Config:
    """
    Gibt die globale Konfigurationsinstanz zurück.

    Args:
        config_file: Pfad zur Konfigurationsdatei

    Returns:
        Config-Instanz
    """
    global _config
    if _config is None:
        _config = Config(config_file)
    return _config


def is_power_of_two(value: int) -> bool:
    return value > 0 and (value & (value - 1)) == 0


def validate_stft_parameters(fft_size: int, hop_length: int, frequency_limit: int) -> None:
    """
    Prüft die STFT-Parameter.

    Raises:
        ConfigurationError: fft_size keine Zweierpotenz, hop_length <= 0 oder
            frequency_limit außerhalb von 1..fft_size/2+1
    """
    if not isinstance(fft_size, Integral) or not is_power_of_two(fft_size):
        raise ConfigurationError(
            f"fft_size must be a positive power of two, got {fft_size}",
            details={"fft_size": fft_size},
        )
    if not isinstance(hop_length, Integral) or hop_length <= 0:
        raise ConfigurationError(
            f"hop_length must be positive, got {hop_length}",
            details={"hop_length": hop_length},
        )
    max_bins = fft_size // 2 + 1
    if not isinstance(frequency_limit, Integral) or not 1 <= frequency_limit <= max_bins:
        raise ConfigurationError(
            f"frequency_limit must be in 1..{max_bins}, got {frequency_limit}",
            details={"frequency_limit": frequency_limit, "fft_size": fft_size},
        )


@dataclass(frozen=True)
class SeparationSettings:
    """
    Parameter einer Separation.

    Die Werte müssen zur Trainings-Konfiguration des Modells passen.

    Attributes:
        fft_size: Fensterlänge der STFT (Zweierpotenz)
        frequency_limit: Anzahl der behaltenen Frequenz-Bins
        clamping_frame_count: STFT-Frames pro Modell-Aufruf
        hop_length: Schrittweite (Default: fft_size / 4)
    """

    fft_size: int = DEFAULT_FFT_SIZE
    frequency_limit: int = DEFAULT_FREQUENCY_LIMIT
    clamping_frame_count: int = DEFAULT_CLAMPING_FRAME_COUNT
    hop_length: int | None = None

    def __post_init__(self):
        if self.hop_length is None:
            object.__setattr__(self, "hop_length", self.fft_size // HOP_DIVISOR)
        validate_stft_parameters(self.fft_size, self.hop_length, self.frequency_limit)
        if not isinstance(self.clamping_frame_count, Integral) or self.clamping_frame_count < 2:
            raise ConfigurationError(
                f"clamping_frame_count must be at least 2, got {self.clamping_frame_count}",
                details={"clamping_frame_count": self.clamping_frame_count},
            )

    @property
    def chunk_size(self) -> int:
        """Samples pro Chunk: hop_length * (clamping_frame_count - 1)."""
        return self.hop_length * (self.clamping_frame_count - 1)

    @classmethod
    def from_config(cls, config: Config) -> "SeparationSettings":
        """
        Erzeugt Settings aus den Sections [STFT] und [Separation].

        Fehlende oder ungültige Werte fallen auf die Defaults zurück;
        gültige, aber inkonsistente Werte lösen ConfigurationError aus.
        """
        fft_size = config.get_int("STFT", "fft_size", DEFAULT_FFT_SIZE)
        settings = cls(
            fft_size=fft_size,
            frequency_limit=config.get_int("STFT", "frequency_limit", DEFAULT_FREQUENCY_LIMIT),
            clamping_frame_count=config.get_int(
                "Separation", "clamping_frame_count", DEFAULT_CLAMPING_FRAME_COUNT
            ),
            hop_length=config.get_int("STFT", "hop_length", None),
        )
        logger.debug(f"SeparationSettings geladen: {settings}")
        return settings


def stem_count_from_config(config: Config) -> int:
    """Liest [Separation] stem_count und prüft ihn gegen die unterstützten Werte."""
    stem_count = config.get_int("Separation", "stem_count", DEFAULT_STEM_COUNT)
    if stem_count not in SUPPORTED_STEM_COUNTS:
        raise ConfigurationError(
            f"Unsupported stem count {stem_count}",
            details={"stem_count": stem_count, "supported": SUPPORTED_STEM_COUNTS},
        )
    return stem_count


def configure_logging(config: Config) -> logging.Logger:
    """Richtet das Logging nach der Section [Logging] ein."""

    def level(option: str, default: int) -> int:
        name = (config.get("Logging", option) or "").upper()
        value = logging.getLevelName(name)
        return value if isinstance(value, int) else default

    return setup_logging(
        log_file=config.get("Logging", "log_file", "stemflow.log"),
        console_level=level("console_level", logging.INFO),
        file_level=level("file_level", logging.DEBUG),
        log_dir=config.get("Logging", "log_dir"),
    )
