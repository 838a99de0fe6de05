"""Listening session that wires an audio source to a VadIterator.

Events are published on a subject and exposed as per-type observables:

    handler = VadHandler()
    handler.on_speech_end.subscribe(on_next=submit)
    handler.on_error.subscribe(on_next=print)
    handler.start_listening(VAD_SUBMIT_ON_PAUSE)
    ...
    handler.pause_listening()  # submits the current utterance
    handler.dispose()
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray
from reactivex import Observable
from reactivex import operators as ops
from reactivex.abc import DisposableBase
from reactivex.subject import Subject

from vad.config import AppConfig, VadOptions
from vad.events import (
    FrameProcessed,
    Misfire,
    RealSpeechStart,
    SpeechStart,
    VadErrorEvent,
    VadEvent,
)
from vad.exceptions import VadError
from vad.iterator import VadIterator
from vad.source import AudioSource, MicrophoneSource
from vad.types import PcmChunk
from vad.vad import filter_event, utterances

logger = logging.getLogger(__name__)


def default_iterator(options: VadOptions, cfg: AppConfig) -> VadIterator:
    return VadIterator(options, sample_rate=cfg.sample_rate, is_debug=cfg.is_debug)


@dataclass
class HandlerDependencies:
    iterator: Callable[[VadOptions, AppConfig], VadIterator] = default_iterator


class VadHandler:
    def __init__(
        self,
        source: AudioSource | None = None,
        maybe_cfg: AppConfig | None = None,
        maybe_deps: HandlerDependencies | None = None,
    ) -> None:
        self.cfg = maybe_cfg or AppConfig()
        self._deps = maybe_deps or HandlerDependencies()
        self._owns_source = source is None
        self._source: AudioSource = source or MicrophoneSource(
            self.cfg.device_id, self.cfg.sample_rate
        )
        self._events: Subject[VadEvent] = Subject()
        self._iterator: VadIterator | None = None
        self._subscription: DisposableBase | None = None
        self._submit_on_pause = False
        self._disposed = False
        # the source delivers on its own thread, every iterator call goes through this lock
        self._lock = threading.RLock()

    @property
    def events(self) -> Observable[VadEvent]:
        return self._events

    @property
    def on_speech_start(self) -> Observable[SpeechStart]:
        return self._events.pipe(filter_event(SpeechStart))

    @property
    def on_real_speech_start(self) -> Observable[RealSpeechStart]:
        return self._events.pipe(filter_event(RealSpeechStart))

    @property
    def on_speech_end(self) -> Observable[NDArray[np.float32]]:
        return self._events.pipe(utterances())

    @property
    def on_frame_processed(self) -> Observable[FrameProcessed]:
        return self._events.pipe(filter_event(FrameProcessed))

    @property
    def on_misfire(self) -> Observable[Misfire]:
        return self._events.pipe(filter_event(Misfire))

    @property
    def on_error(self) -> Observable[str]:
        errors: Observable[VadErrorEvent] = self._events.pipe(filter_event(VadErrorEvent))
        return errors.pipe(ops.map(lambda e: e.message))

    def start_listening(self, options: VadOptions | None = None) -> None:
        """Load the model (first call only) and start streaming the source through it.

        Options are fixed by the first call; later calls reuse the loaded iterator.
        Model and configuration errors raise. Permission and stream failures are
        published as error events.
        """
        opts = options or self.cfg.vad_options
        with self._lock:
            if self._disposed:
                raise VadError("VadHandler has been disposed")
            if self._iterator is None:
                iterator = self._deps.iterator(opts, self.cfg)
                iterator.init_model(self.cfg.model_path(opts.model))
                iterator.set_vad_event_callback(self._handle_vad_event)
                self._iterator = iterator
                self._submit_on_pause = opts.submit_user_speech_on_pause

        if not self._source.has_permission():
            self._emit_error("VadHandler: No permission to record audio.")
            return

        self._dispose_subscription()
        try:
            stream = self._source.start()
        except VadError as e:
            self._emit_error(f"AudioStreamer error: {e}")
            return
        self._subscription = stream.subscribe(
            on_next=self._process_audio, on_error=self._on_stream_error
        )

    def pause_listening(self) -> None:
        logger.debug("pause_listening")
        try:
            self._force_end_if_submitting()
            self._source.pause()
        except VadError as e:
            self._emit_error(str(e))

    def resume_listening(self) -> None:
        logger.debug("resume_listening")
        try:
            self._source.resume()
        except VadError as e:
            self._emit_error(str(e))

    def stop_listening(self) -> None:
        logger.debug("stop_listening")
        try:
            self._force_end_if_submitting()
            self._dispose_subscription()
            self._source.stop()
        except VadError as e:
            self._emit_error(str(e))
        finally:
            with self._lock:
                if self._iterator is not None:
                    self._iterator.reset()

    def dispose(self) -> None:
        """Stop listening and free the model. The handler cannot be restarted."""
        if self._disposed:
            return
        self.stop_listening()
        with self._lock:
            if self._iterator is not None:
                self._iterator.release()
                self._iterator = None
            self._disposed = True
        self._events.on_completed()
        if self._owns_source:
            self._source.close()

    def _force_end_if_submitting(self) -> None:
        with self._lock:
            if self._submit_on_pause and self._iterator is not None:
                self._iterator.force_end_speech()

    def _process_audio(self, chunk: PcmChunk) -> None:
        with self._lock:
            if self._iterator is not None:
                self._iterator.process_audio_data(chunk)

    def _on_stream_error(self, error: Exception) -> None:
        self._emit_error(f"AudioStreamer error: {error}")

    def _dispose_subscription(self) -> None:
        if self._subscription is not None:
            self._subscription.dispose()
            self._subscription = None

    def _handle_vad_event(self, event: VadEvent) -> None:
        if self.cfg.is_debug:
            logger.debug("VadHandler: VAD event %s", event.type)
        self._events.on_next(event)

    def _emit_error(self, message: str) -> None:
        logger.warning(message)
        self._events.on_next(VadErrorEvent(message))
