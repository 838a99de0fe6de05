"""Silero VAD inference backend using onnxruntime.

Both model generations take one frame of normalized audio plus the sample rate,
and return a speech probability. They differ in their recurrent state:

- v4 (legacy) carries LSTM tensors h and c, each [2, 1, 64]
- v5 carries a single state tensor [2, 1, 128], and expects the last 64 samples
  (32 at 8kHz) of the previous frame prepended to the current one
"""

import logging
from pathlib import Path

import numpy as np
import onnxruntime as ort  # type: ignore[import-untyped]

from vad.config import SAMPLE_RATE, SileroModel
from vad.exceptions import (
    ConfigurationError,
    InferenceError,
    ModelLoadError,
    ModelNotLoadedError,
)
from vad.types import AudioFrame, RecurrentState, SpeechProbabilities

logger = logging.getLogger(__name__)

SUPPORTED_SAMPLE_RATES = (8000, 16000)

_INPUTS: dict[SileroModel, frozenset[str]] = {
    SileroModel.V4: frozenset({"input", "sr", "h", "c"}),
    SileroModel.V5: frozenset({"input", "sr", "state"}),
}


class SileroBackend:
    """Silero VAD ONNX session that satisfies the InferenceBackend protocol."""

    def __init__(
        self,
        model: SileroModel = SileroModel.V4,
        frame_samples: int = 1536,
        sample_rate: int = SAMPLE_RATE,
    ) -> None:
        if sample_rate not in SUPPORTED_SAMPLE_RATES:
            raise ConfigurationError(
                f"Silero supports sample rates {SUPPORTED_SAMPLE_RATES}, got {sample_rate}"
            )
        if frame_samples not in model.frame_sizes(sample_rate):
            raise ConfigurationError(
                f"Silero {model.name} at {sample_rate}Hz needs frame_samples in "
                f"{model.frame_sizes(sample_rate)}, got {frame_samples}"
            )
        self.model = model
        self.frame_samples = frame_samples
        self.sample_rate = sample_rate
        self._sr = np.array(sample_rate, dtype=np.int64)
        self._context_size = 64 if sample_rate == 16000 else 32
        self._session: ort.InferenceSession | None = None

    @property
    def loaded(self) -> bool:
        return self._session is not None

    def load(self, path: str | Path) -> None:
        """Open the model at path and check it matches the selected variant."""
        if not Path(path).is_file():
            raise ModelLoadError(f"Model resource not found: {path}")
        try:
            opts = ort.SessionOptions()
            opts.inter_op_num_threads = 1
            opts.intra_op_num_threads = 1
            session = ort.InferenceSession(
                str(path), sess_options=opts, providers=["CPUExecutionProvider"]
            )
        except Exception as e:
            raise ModelLoadError(f"Failed to load VAD model {path}: {e}") from e

        names = {i.name for i in session.get_inputs()}
        expected = _INPUTS[self.model]
        if names != expected:
            raise ModelLoadError(
                f"{path} is not a Silero {self.model.name} model: "
                f"inputs {sorted(names)}, expected {sorted(expected)}"
            )
        self._session = session
        logger.info("Loaded Silero %s model from %s", self.model.name, path)

    def initial_state(self) -> RecurrentState:
        if self.model is SileroModel.V5:
            return {
                "state": np.zeros((2, 1, 128), dtype=np.float32),
                "context": np.zeros((1, self._context_size), dtype=np.float32),
            }
        return {
            "h": np.zeros((2, 1, 64), dtype=np.float32),
            "c": np.zeros((2, 1, 64), dtype=np.float32),
        }

    def infer(
        self, frame: AudioFrame, state: RecurrentState
    ) -> tuple[SpeechProbabilities, RecurrentState]:
        """Score one frame. Returns probabilities and the next recurrent state."""
        if self._session is None:
            raise ModelNotLoadedError("Silero model not loaded")
        x = np.asarray(frame, dtype=np.float32).reshape(1, -1)
        try:
            if self.model is SileroModel.V5:
                x = np.concatenate([state["context"], x], axis=1)
                out, next_state = self._session.run(
                    None, {"input": x, "state": state["state"], "sr": self._sr}
                )
                new_state = {"state": next_state, "context": x[:, -self._context_size :]}
            else:
                out, hn, cn = self._session.run(
                    None, {"input": x, "sr": self._sr, "h": state["h"], "c": state["c"]}
                )
                new_state = {"h": hn, "c": cn}
        except Exception as e:
            raise InferenceError(f"Silero {self.model.name} inference failed: {e}") from e

        prob = float(np.asarray(out).reshape(-1)[0])
        return SpeechProbabilities(is_speech=prob, not_speech=1.0 - prob), new_state

    def close(self) -> None:
        """Drop the session. Safe to call more than once."""
        self._session = None
