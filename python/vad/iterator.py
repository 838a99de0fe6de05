"""Streaming voice activity detection.

VadIterator consumes raw int16 PCM in arbitrary chunks, scores each complete
frame with an inference backend and runs a hysteresis state machine over the
scores, emitting VadEvents synchronously and in order.

States are Idle and ActiveSpeech. While Idle the last pre_speech_pad_frames
frames are kept as pre-roll. A frame at or above the positive threshold starts
an utterance (SpeechStart); the utterance is confirmed (RealSpeechStart) once
min_speech_frames frames have scored as speech. Frames below the negative
threshold count towards redemption; when the count reaches redemption_frames
the utterance ends, as SpeechEnd if it was confirmed or Misfire otherwise.
Frames between the two thresholds are buffered but change no counters.

Example:
    iterator = VadIterator(VadOptions(model=SileroModel.V5, frame_samples=512))
    iterator.init_model(cfg.model_path(SileroModel.V5))
    iterator.set_vad_event_callback(events.append)
    for chunk in mic:
        iterator.process_audio_data(chunk)
"""

import logging
from collections import deque
from collections.abc import Callable
from pathlib import Path
from typing import Protocol

import numpy as np

from vad.config import SAMPLE_RATE, VadOptions
from vad.events import (
    FrameProcessed,
    Misfire,
    RealSpeechStart,
    SpeechEnd,
    SpeechStart,
    VadErrorEvent,
    VadEvent,
)
from vad.exceptions import ModelLoadError, ModelNotLoadedError
from vad.rechunk import PcmFramer, to_float32
from vad.silero import SileroBackend
from vad.types import AudioFrame, PcmChunk, RecurrentState, SpeechProbabilities

logger = logging.getLogger(__name__)

type VadEventCallback = Callable[[VadEvent], None]


class InferenceBackend(Protocol):
    def load(self, path: str | Path) -> None: ...

    def initial_state(self) -> RecurrentState: ...

    def infer(
        self, frame: AudioFrame, state: RecurrentState
    ) -> tuple[SpeechProbabilities, RecurrentState]: ...

    def close(self) -> None: ...


class VadIterator:
    """Frame-by-frame speech detector. Not thread safe; callers serialize all calls."""

    def __init__(
        self,
        options: VadOptions | None = None,
        backend: InferenceBackend | None = None,
        sample_rate: int = SAMPLE_RATE,
        is_debug: bool = False,
    ) -> None:
        self.options = options or VadOptions()
        self.sample_rate = sample_rate
        self.is_debug = is_debug
        self._backend: InferenceBackend = backend or SileroBackend(
            self.options.model, self.options.frame_samples, sample_rate
        )
        self._framer = PcmFramer(self.options.frame_samples)
        self._callback: VadEventCallback | None = None
        self._state: RecurrentState = {}
        self._loaded = False
        self._released = False

        self._pre_speech: deque[AudioFrame] = deque(maxlen=self.options.pre_speech_pad_frames)
        self._speech: list[AudioFrame] = []
        self._speaking = False
        self._confirmed = False
        self._speech_frames = 0
        self._redemption = 0

    @property
    def speaking(self) -> bool:
        """True while an utterance (confirmed or candidate) is in progress."""
        return self._speaking

    @property
    def frame_bytes(self) -> int:
        return self._framer.frame_bytes

    @property
    def pre_speech_frames(self) -> int:
        return len(self._pre_speech)

    def init_model(self, path: str | Path) -> None:
        """Load the inference backend. Must be called exactly once before processing."""
        if self._released:
            raise ModelNotLoadedError("VAD iterator has been released")
        if self._loaded:
            raise ModelLoadError("VAD model already loaded")
        self._backend.load(path)
        self._state = self._backend.initial_state()
        self._loaded = True

    def set_vad_event_callback(self, callback: VadEventCallback | None) -> None:
        self._callback = callback

    def process_audio_data(self, data: PcmChunk) -> None:
        """Buffer data and run the decision algorithm on every frame it completes."""
        if not self._loaded:
            raise ModelNotLoadedError(
                "VAD iterator has been released" if self._released else "call init_model() first"
            )
        for pcm in self._framer.feed(data):
            self._process_frame(to_float32(pcm))

    def force_end_speech(self) -> None:
        """Finalize the current utterance now, even if it was never confirmed."""
        if self._speaking:
            self._end_speech()

    def reset(self) -> None:
        """Drop all buffered audio and counters without emitting anything."""
        self._framer.clear()
        self._pre_speech.clear()
        self._clear_utterance()
        if self._loaded:
            self._state = self._backend.initial_state()

    def release(self) -> None:
        """Free the backend. The iterator cannot be used afterwards."""
        if self._released:
            return
        self.reset()
        self._backend.close()
        self._released = True
        self._loaded = False
        self._state = {}
        self._callback = None
        logger.info("VAD iterator released")

    def _process_frame(self, frame: AudioFrame) -> None:
        try:
            probs, self._state = self._backend.infer(frame, self._state)
        except Exception as e:
            logger.warning("VAD inference failed, skipping frame: %s", e)
            self._emit(VadErrorEvent(f"Inference failed: {e}"))
            return

        self._emit(FrameProcessed(probabilities=probs, frame=frame))
        if self._speaking:
            self._on_active_frame(frame, probs.is_speech)
        else:
            self._on_idle_frame(frame, probs.is_speech)

    def _on_idle_frame(self, frame: AudioFrame, prob: float) -> None:
        if prob < self.options.positive_speech_threshold:
            self._pre_speech.append(frame)  # oldest frame falls off at maxlen
            return

        self._speaking = True
        self._speech = [*self._pre_speech, frame]
        self._pre_speech.clear()
        self._speech_frames = 1
        self._redemption = 0
        self._emit(SpeechStart())
        self._check_real_start()

    def _on_active_frame(self, frame: AudioFrame, prob: float) -> None:
        opts = self.options
        self._speech.append(frame)

        if prob >= opts.positive_speech_threshold:
            self._speech_frames += 1
            self._redemption = 0
            self._check_real_start()
        elif prob < opts.negative_speech_threshold:
            self._redemption += 1
            # ends on the frame where the count reaches redemption_frames
            if self._redemption >= opts.redemption_frames:
                if self._confirmed:
                    self._end_speech()
                else:
                    self._clear_utterance()
                    self._emit(Misfire())

    def _check_real_start(self) -> None:
        if not self._confirmed and self._speech_frames >= self.options.min_speech_frames:
            self._confirmed = True
            self._emit(RealSpeechStart())

    def _end_speech(self) -> None:
        audio = np.concatenate(self._speech) if self._speech else np.zeros(0, dtype=np.float32)
        self._clear_utterance()
        self._emit(SpeechEnd(audio=audio))

    def _clear_utterance(self) -> None:
        self._speech = []
        self._speaking = False
        self._confirmed = False
        self._speech_frames = 0
        self._redemption = 0

    def _emit(self, event: VadEvent) -> None:
        if self.is_debug:
            logger.debug("VAD event: %s", event.type)
        if self._callback is not None:
            self._callback(event)
