"""PCM frame reassembly, plus the equivalent rechunk operator for RxPy streams."""

from collections.abc import Iterator

import numpy as np
import reactivex as rx
from reactivex import Observable
from reactivex import operators as ops
from reactivex.abc import SchedulerBase

from vad.config import SAMPLE_WIDTH
from vad.exceptions import ConfigurationError
from vad.types import AudioFrame, Operator, PcmChunk


def to_float32(pcm: PcmChunk) -> AudioFrame:
    """Normalize little-endian int16 samples to float32 in [-1, 1)."""
    return np.frombuffer(pcm, dtype="<i2").astype(np.float32) / 32768.0


def to_pcm16(samples: AudioFrame) -> PcmChunk:
    """Inverse of to_float32. Out of range samples are clipped."""
    scaled = np.clip(np.rint(samples * 32768.0), -32768, 32767)
    return scaled.astype("<i2").tobytes()


class PcmFramer:
    """Slices an arbitrary byte stream into fixed-size frames.

    Chunk boundaries need not align with samples or frames. Bytes are copied
    into a single frame-sized buffer allocated up front; trailing bytes stay
    there until the next feed() completes the frame.
    """

    def __init__(self, frame_samples: int, sample_width: int = SAMPLE_WIDTH) -> None:
        if frame_samples <= 0 or sample_width <= 0:
            raise ConfigurationError(
                f"invalid frame geometry: {frame_samples} samples x {sample_width} bytes"
            )
        self.frame_bytes = frame_samples * sample_width
        self._frame = bytearray(self.frame_bytes)
        self._filled = 0

    @property
    def pending(self) -> int:
        """Buffered bytes not yet emitted as a frame."""
        return self._filled

    @property
    def capacity(self) -> int:
        return len(self._frame)

    def feed(self, data: PcmChunk) -> Iterator[PcmChunk]:
        """Consume all of data now, returning the frames it completed in arrival order."""
        frames: list[PcmChunk] = []
        view = memoryview(data)
        while view:
            n = min(self.frame_bytes - self._filled, len(view))
            self._frame[self._filled : self._filled + n] = view[:n]
            self._filled += n
            view = view[n:]
            if self._filled == self.frame_bytes:
                frames.append(bytes(self._frame))
                self._filled = 0
        return iter(frames)

    def clear(self) -> None:
        self._filled = 0


def rechunk_pcm(
    frame_samples: int = 1536, sample_width: int = SAMPLE_WIDTH
) -> Operator[PcmChunk, PcmChunk]:
    """Accumulate raw PCM into fixed-size frames.

    Emits frames as they fill. On completion an incomplete tail is dropped rather
    than zero-padded, so inference never scores synthetic silence.
    """

    def _operator(source: Observable[PcmChunk]) -> Observable[PcmChunk]:
        # one framer per subscription
        def create(_scheduler: SchedulerBase | None) -> Observable[PcmChunk]:
            framer = PcmFramer(frame_samples, sample_width)

            def process(chunk: PcmChunk) -> Observable[PcmChunk]:
                return rx.from_iterable(framer.feed(chunk))

            return source.pipe(ops.flat_map(process))

        return rx.defer(create)

    return _operator
