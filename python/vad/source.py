"""Microphone audio source delivering raw int16 PCM as an observable.

sounddevice is imported on use: loading it needs the PortAudio shared library,
which headless hosts running only the detector do not have.
"""

import logging
from typing import TYPE_CHECKING, Protocol

from reactivex import Observable
from reactivex import operators as ops
from reactivex.scheduler import NewThreadScheduler
from reactivex.subject import Subject

from vad.config import SAMPLE_RATE
from vad.exceptions import AudioStreamError, PermissionDeniedError
from vad.types import DeviceMeta, PcmChunk

if TYPE_CHECKING:
    import sounddevice as sd  # type: ignore[import-untyped]

logger = logging.getLogger(__name__)


class AudioSource(Protocol):
    def has_permission(self) -> bool: ...

    def start(self) -> Observable[PcmChunk]: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def stop(self) -> None: ...

    def close(self) -> None: ...


def query_input_device(device: int | None = None) -> DeviceMeta:
    """Query sounddevice for input device metadata."""
    import sounddevice as sd  # type: ignore[import-untyped]

    return sd.query_devices(device, kind="input")  # type: ignore[no-any-return]


class MicrophoneSource:
    """Captures mono 16-bit PCM from an input device."""

    def __init__(
        self, device: int | None = None, sample_rate: int = SAMPLE_RATE, blocksize: int = 0
    ) -> None:
        self.device = device
        self.sample_rate = sample_rate
        self.blocksize = blocksize  # 0 lets PortAudio pick
        self._stream: "sd.RawInputStream | None" = None
        self._subject: Subject[PcmChunk] | None = None

    def has_permission(self) -> bool:
        """False when the input device cannot be opened or queried."""
        import sounddevice as sd  # type: ignore[import-untyped]

        try:
            meta = query_input_device(self.device)
        except (sd.PortAudioError, ValueError) as e:
            logger.warning("No usable input device: %s", e)
            return False
        return meta["max_input_channels"] > 0

    def start(self) -> Observable[PcmChunk]:
        """Open and start the input stream. Restarting replaces the previous stream."""
        import sounddevice as sd  # type: ignore[import-untyped]

        if not self.has_permission():
            raise PermissionDeniedError(f"No permission to record from device {self.device}")
        self.stop()
        subject: Subject[PcmChunk] = Subject()

        def callback(
            data: object, _frames: int, _time: object, status: "sd.CallbackFlags"
        ) -> None:
            if status:
                logger.debug("Input stream status: %s", status)
            subject.on_next(bytes(data))  # type: ignore[call-overload]

        # NOTE - sd resamples if the device supports it, most devices default to 44.1khz or 48khz
        try:
            stream = sd.RawInputStream(
                device=self.device,
                samplerate=self.sample_rate,
                channels=1,
                dtype="int16",
                blocksize=self.blocksize,
                callback=callback,
            )
            stream.start()
        except sd.PortAudioError as e:
            raise AudioStreamError(f"Failed to start input stream: {e}") from e

        self._stream = stream
        self._subject = subject
        # callback runs on system audio thread, observe_on switches to new thread for downstream
        return subject.pipe(ops.observe_on(NewThreadScheduler()))

    def pause(self) -> None:
        if self._stream is None:
            return
        import sounddevice as sd  # type: ignore[import-untyped]

        try:
            self._stream.stop()
        except sd.PortAudioError as e:
            raise AudioStreamError(f"Failed to pause input stream: {e}") from e

    def resume(self) -> None:
        if self._stream is None:
            return
        import sounddevice as sd  # type: ignore[import-untyped]

        try:
            self._stream.start()
        except sd.PortAudioError as e:
            raise AudioStreamError(f"Failed to resume input stream: {e}") from e

    def stop(self) -> None:
        stream, subject = self._stream, self._subject
        self._stream = None
        self._subject = None
        if stream is not None:
            import sounddevice as sd  # type: ignore[import-untyped]

            try:
                stream.stop()
                stream.close()
            except sd.PortAudioError as e:
                raise AudioStreamError(f"Failed to stop input stream: {e}") from e
            finally:
                if subject is not None:
                    subject.on_completed()

    def close(self) -> None:
        self.stop()
