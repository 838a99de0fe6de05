"""Events emitted by the VAD iterator, in emission order per frame."""

from dataclasses import dataclass
from enum import StrEnum
from typing import ClassVar

import numpy as np
from numpy.typing import NDArray

from vad.rechunk import to_pcm16
from vad.types import AudioFrame, SpeechProbabilities


class VadEventType(StrEnum):
    START = "start"
    REAL_START = "realStart"
    FRAME_PROCESSED = "frameProcessed"
    END = "end"
    MISFIRE = "misfire"
    ERROR = "error"


@dataclass(frozen=True)
class SpeechStart:
    """Candidate speech onset."""

    type: ClassVar[VadEventType] = VadEventType.START


@dataclass(frozen=True)
class RealSpeechStart:
    """Onset confirmed after min_speech_frames speech frames."""

    type: ClassVar[VadEventType] = VadEventType.REAL_START


@dataclass(frozen=True, eq=False)
class FrameProcessed:
    """Raw scores for every inferred frame, regardless of decision state."""

    probabilities: SpeechProbabilities
    frame: AudioFrame

    type: ClassVar[VadEventType] = VadEventType.FRAME_PROCESSED

    @property
    def is_speech(self) -> float:
        return self.probabilities.is_speech

    @property
    def not_speech(self) -> float:
        return self.probabilities.not_speech


@dataclass(frozen=True, eq=False)
class SpeechEnd:
    """Utterance finished. audio holds every buffered frame, pre-roll included."""

    audio: NDArray[np.float32]

    type: ClassVar[VadEventType] = VadEventType.END

    @property
    def pcm(self) -> bytes:
        """Audio as little-endian int16 PCM, the representation the source delivered."""
        return to_pcm16(self.audio)


@dataclass(frozen=True)
class Misfire:
    """Candidate onset retracted as noise. Its audio is discarded."""

    type: ClassVar[VadEventType] = VadEventType.MISFIRE


@dataclass(frozen=True)
class VadErrorEvent:
    """Non-fatal failure. Processing continues."""

    message: str

    type: ClassVar[VadEventType] = VadEventType.ERROR


type VadEvent = SpeechStart | RealSpeechStart | FrameProcessed | SpeechEnd | Misfire | VadErrorEvent
