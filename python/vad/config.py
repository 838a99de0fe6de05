"""Configuration types for voice activity detection."""

import logging
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from pathlib import Path

from vad.exceptions import ConfigurationError

SAMPLE_RATE = 16000
SAMPLE_WIDTH = 2  # int16


class LogLevel(IntEnum):
    """Log levels mirroring Python's logging module."""

    NOTSET = logging.NOTSET
    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL


class SileroModel(StrEnum):
    """Available Silero VAD ONNX models. Values are the resource file names."""

    V4 = "silero_vad_legacy.onnx"
    V5 = "silero_vad_v5.onnx"

    def frame_sizes(self, sample_rate: int = SAMPLE_RATE) -> tuple[int, ...]:
        """Frame lengths (in samples) the model accepts at sample_rate."""
        scale = sample_rate // 8000
        if self is SileroModel.V5:
            return (256 * scale,)
        return (256 * scale, 512 * scale, 768 * scale)


@dataclass(frozen=True)
class VadOptions:
    """Options fixed for one listening session.

    Attributes:
        positive_speech_threshold: Probability at or above which a frame counts as speech
        negative_speech_threshold: Probability below which a frame counts as silence
        pre_speech_pad_frames: Frames of pre-roll kept before a speech start
        redemption_frames: Silent frames tolerated before the utterance ends
        frame_samples: Samples per inference frame
        min_speech_frames: Speech frames needed before a start is real (not a misfire)
        submit_user_speech_on_pause: Finalize (rather than drop) speech when pausing
        model: Silero model variant
    """

    positive_speech_threshold: float = 0.5
    negative_speech_threshold: float = 0.35
    pre_speech_pad_frames: int = 1
    redemption_frames: int = 8
    frame_samples: int = 1536
    min_speech_frames: int = 3
    submit_user_speech_on_pause: bool = False
    model: SileroModel = SileroModel.V4

    def __post_init__(self) -> None:
        for name in ("positive_speech_threshold", "negative_speech_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigurationError(f"{name} must be within [0, 1], got {value}")
        if self.negative_speech_threshold >= self.positive_speech_threshold:
            raise ConfigurationError(
                "negative_speech_threshold must be below positive_speech_threshold, got "
                f"{self.negative_speech_threshold} >= {self.positive_speech_threshold}"
            )
        if self.frame_samples <= 0:
            raise ConfigurationError(f"frame_samples must be positive, got {self.frame_samples}")
        if self.pre_speech_pad_frames < 0:
            raise ConfigurationError("pre_speech_pad_frames must not be negative")
        if self.redemption_frames < 0:
            raise ConfigurationError("redemption_frames must not be negative")
        if self.min_speech_frames < 1:
            raise ConfigurationError("min_speech_frames must be at least 1")


# Presets for common use cases
VAD_LEGACY = VadOptions()  # default
# 512 samples is 32ms at 16kHz, so frame counts are scaled up to the same durations
VAD_V5 = VadOptions(
    frame_samples=512,
    pre_speech_pad_frames=3,
    redemption_frames=24,
    min_speech_frames=9,
    model=SileroModel.V5,
)
VAD_SUBMIT_ON_PAUSE = VadOptions(submit_user_speech_on_pause=True)


@dataclass(frozen=True)
class AppConfig:
    """Static application configuration."""

    # Environment
    log_level: LogLevel = LogLevel.INFO
    model_dir: Path = field(default_factory=lambda: Path.home() / ".cache" / "silero-vad")
    is_debug: bool = False

    # Audio
    sample_rate: int = SAMPLE_RATE
    device_id: int | None = None  # None = system default

    # Initial options for start_listening()
    vad_options: VadOptions = field(default_factory=lambda: VAD_LEGACY)

    def model_path(self, model: SileroModel) -> Path:
        """Full path to the model resource file."""
        return self.model_dir / model.value
