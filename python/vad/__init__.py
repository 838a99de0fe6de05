"""Streaming voice activity detection with Silero models and RxPy event streams."""

from vad.config import (
    VAD_LEGACY,
    VAD_SUBMIT_ON_PAUSE,
    VAD_V5,
    AppConfig,
    LogLevel,
    SileroModel,
    VadOptions,
)
from vad.events import (
    FrameProcessed,
    Misfire,
    RealSpeechStart,
    SpeechEnd,
    SpeechStart,
    VadErrorEvent,
    VadEvent,
    VadEventType,
)
from vad.exceptions import (
    AudioStreamError,
    ConfigurationError,
    InferenceError,
    ModelLoadError,
    ModelNotLoadedError,
    PermissionDeniedError,
    VadError,
)
from vad.handler import HandlerDependencies, VadHandler
from vad.iterator import InferenceBackend, VadIterator
from vad.silero import SileroBackend
from vad.types import SpeechProbabilities

__all__ = [
    "VAD_LEGACY",
    "VAD_SUBMIT_ON_PAUSE",
    "VAD_V5",
    "AppConfig",
    "AudioStreamError",
    "ConfigurationError",
    "FrameProcessed",
    "HandlerDependencies",
    "InferenceBackend",
    "InferenceError",
    "LogLevel",
    "Misfire",
    "ModelLoadError",
    "ModelNotLoadedError",
    "PermissionDeniedError",
    "RealSpeechStart",
    "SileroBackend",
    "SileroModel",
    "SpeechEnd",
    "SpeechProbabilities",
    "SpeechStart",
    "VadError",
    "VadErrorEvent",
    "VadEvent",
    "VadEventType",
    "VadHandler",
    "VadIterator",
    "VadOptions",
]
