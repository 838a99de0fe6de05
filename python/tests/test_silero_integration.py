"""Integration test for the Silero models through the VAD iterator."""

import numpy as np
import pytest
from scripts.download_models import get_model_paths
from vad.config import VAD_LEGACY, VAD_V5, VadOptions
from vad.events import FrameProcessed, VadEvent, VadEventType
from vad.iterator import VadIterator

SAMPLE_RATE = 16000


@pytest.mark.slow
@pytest.mark.parametrize("options", [VAD_LEGACY, VAD_V5], ids=["v4", "v5"])
def test_silence_scores_low_and_never_starts(options: VadOptions) -> None:
    """Integration test: real model, two seconds of digital silence."""
    model_path = str(get_model_paths()[options.model])
    iterator = VadIterator(options)
    iterator.init_model(model_path)
    events: list[VadEvent] = []
    iterator.set_vad_event_callback(events.append)

    pcm = np.zeros(2 * SAMPLE_RATE, dtype="<i2").tobytes()
    # 100ms chunks, deliberately not frame aligned
    step = SAMPLE_RATE // 10 * 2
    for i in range(0, len(pcm), step):
        iterator.process_audio_data(pcm[i : i + step])
    iterator.release()

    frames = [e for e in events if isinstance(e, FrameProcessed)]
    assert len(frames) == len(pcm) // iterator.frame_bytes
    assert all(0.0 <= f.is_speech <= 1.0 for f in frames)
    assert all(f.is_speech < options.positive_speech_threshold for f in frames)
    assert {e.type for e in events} == {VadEventType.FRAME_PROCESSED}
