"""Shared type definitions for voice activity detection."""

from collections.abc import Callable
from typing import NamedTuple, TypedDict

import numpy as np
from numpy.typing import NDArray
from reactivex import Observable


class DeviceMeta(TypedDict):
    name: str
    index: int
    hostapi: int
    max_input_channels: int
    max_output_channels: int
    default_low_input_latency: float
    default_low_output_latency: float
    default_high_input_latency: float
    default_high_output_latency: float
    default_samplerate: float


class SpeechProbabilities(NamedTuple):
    """Scores for the most recently inferred frame. Not required to sum to 1."""

    is_speech: float
    not_speech: float


# Raw little-endian int16 mono PCM, arbitrary length
type PcmChunk = bytes

# Fixed length normalized samples (frame_samples long). NOTE the length is convention only
type AudioFrame = NDArray[np.float32]

# Backend owned tensors threaded between consecutive inference calls
type RecurrentState = dict[str, NDArray[np.float32]]

type Operator[T, U] = Callable[[Observable[T]], Observable[U]]
