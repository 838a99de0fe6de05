"""Voice activity detection operators for RxPy streams.

Example:
    from vad.iterator import VadIterator
    from vad.vad import utterances, vad_events

    iterator = VadIterator(options)
    iterator.init_model(cfg.model_path(options.model))
    mic.start().pipe(
        vad_events(iterator),
        utterances(),
    ).subscribe(on_next=lambda audio: submit(audio))
"""

from typing import cast

import numpy as np
import reactivex
from numpy.typing import NDArray
from reactivex import Observable
from reactivex import operators as ops
from reactivex.abc import DisposableBase, ObserverBase, SchedulerBase
from reactivex.disposable import Disposable

from vad.events import Misfire, SpeechEnd, SpeechStart, VadEvent
from vad.exceptions import VadError
from vad.iterator import VadIterator
from vad.types import Operator, PcmChunk


def vad_events(
    iterator: VadIterator, flush_on_complete: bool = False
) -> Operator[PcmChunk, VadEvent]:
    """Run raw PCM through iterator and emit its events in order.

    The iterator's callback is owned by the subscription while it is active.
    With flush_on_complete, an utterance still in progress when the source
    completes is finalized with force_end_speech() before completing.
    """

    def _operator(source: Observable[PcmChunk]) -> Observable[VadEvent]:
        def subscribe(
            observer: ObserverBase[VadEvent], scheduler: SchedulerBase | None = None
        ) -> DisposableBase:
            iterator.set_vad_event_callback(observer.on_next)

            def on_next(chunk: PcmChunk) -> None:
                try:
                    iterator.process_audio_data(chunk)
                except VadError as e:
                    observer.on_error(e)

            def on_completed() -> None:
                if flush_on_complete:
                    iterator.force_end_speech()
                observer.on_completed()

            subscription = source.subscribe(
                on_next=on_next,
                on_error=observer.on_error,
                on_completed=on_completed,
                scheduler=scheduler,
            )

            def dispose() -> None:
                subscription.dispose()
                iterator.set_vad_event_callback(None)

            return Disposable(dispose)

        return reactivex.create(subscribe)

    return _operator


def filter_event[E](cls: type[E]) -> Operator[VadEvent, E]:
    """Filter to only events of type cls, with type narrowing."""

    def _operator(source: Observable[VadEvent]) -> Observable[E]:
        filtered: Observable[VadEvent] = source.pipe(ops.filter(lambda e: isinstance(e, cls)))
        return filtered.pipe(ops.map(lambda e: cast("E", e)))

    return _operator


def utterances() -> Operator[VadEvent, NDArray[np.float32]]:
    """Emit the audio of every finished utterance."""

    def get_audio(event: SpeechEnd) -> NDArray[np.float32]:
        return event.audio

    def _operator(source: Observable[VadEvent]) -> Observable[NDArray[np.float32]]:
        ended: Observable[SpeechEnd] = source.pipe(filter_event(SpeechEnd))
        return ended.pipe(ops.map(get_audio))

    return _operator


def while_speaking() -> Operator[VadEvent, bool]:
    """Emit True on speech start and False once the utterance ends or misfires."""

    def is_boundary(event: VadEvent) -> bool:
        return isinstance(event, (SpeechStart, SpeechEnd, Misfire))

    def to_speaking(event: VadEvent) -> bool:
        return isinstance(event, SpeechStart)

    def _operator(source: Observable[VadEvent]) -> Observable[bool]:
        boundaries: Observable[VadEvent] = source.pipe(ops.filter(is_boundary))
        return boundaries.pipe(ops.map(to_speaking), ops.distinct_until_changed())

    return _operator
