"""
Zentrale Konstanten für stemflow

Diese Werte müssen zur Trainings-Konfiguration des Separations-Modells
passen. Abweichungen werden nicht erkannt und führen zu schlechterem Audio.
"""

# =============================================================================
# STFT DEFAULTS
# =============================================================================

DEFAULT_FFT_SIZE = 4096
DEFAULT_FREQUENCY_LIMIT = 1024

# hop_length = fft_size / HOP_DIVISOR
HOP_DIVISOR = 4

# Overlap-add: samples with accumulated window energy below this stay untouched
WINDOW_ENERGY_EPSILON = 1e-8

# =============================================================================
# SEPARATION DEFAULTS
# =============================================================================

# STFT frames consumed by one model inference call
DEFAULT_CLAMPING_FRAME_COUNT = 216

DEFAULT_STEM_COUNT = 2
SUPPORTED_STEM_COUNTS = (2, 4, 5)

# Model I/O
MAGNITUDE_INPUT_NAME = "magnitude"
MASK_FEATURE_SUFFIX = "Mask"
DEFAULT_ONNX_PROVIDERS = ["CPUExecutionProvider"]

# =============================================================================
# FILE FORMATS
# =============================================================================

SUPPORTED_AUDIO_FORMATS = {".wav", ".flac", ".ogg", ".aiff", ".aif", ".mp3"}

# Output subtype per container; formats not listed use the libsndfile default
DEFAULT_OUTPUT_SUBTYPES = {".wav": "FLOAT", ".aiff": "FLOAT", ".aif": "FLOAT"}

# =============================================================================
# PROGRESS
# =============================================================================

PROGRESS_COMPLETE = 1.0
