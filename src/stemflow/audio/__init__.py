"""Audio-Quellen, -Senken und Stereo-Paar."""

from .audio_file import AudioFile, WaveformSource
from .stereo import StereoValues
from .stream_writer import AudioFileStreamWriter, InMemoryAudioSink

__all__ = [
    "AudioFile",
    "WaveformSource",
    "StereoValues",
    "AudioFileStreamWriter",
    "InMemoryAudioSink",
]
