"""Tests for the Silero ONNX backend with a mocked onnxruntime session."""

from collections.abc import Iterator
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import numpy as np
import pytest

from vad.config import SileroModel
from vad.exceptions import (
    ConfigurationError,
    InferenceError,
    ModelLoadError,
    ModelNotLoadedError,
)
from vad.silero import SileroBackend

V4_INPUTS = ("input", "sr", "h", "c")
V5_INPUTS = ("input", "state", "sr")


@pytest.fixture
def model_file(tmp_path: Path) -> Path:
    path = tmp_path / "silero.onnx"
    path.write_bytes(b"onnx")
    return path


def mock_session(inputs: tuple[str, ...]) -> MagicMock:
    session = MagicMock()
    session.get_inputs.return_value = [SimpleNamespace(name=n) for n in inputs]
    return session


@pytest.fixture
def inference_session() -> Iterator[MagicMock]:
    with patch("vad.silero.ort.InferenceSession") as cls:
        yield cls


def test_load_missing_file_raises(tmp_path: Path) -> None:
    backend = SileroBackend()
    with pytest.raises(ModelLoadError):
        backend.load(tmp_path / "missing.onnx")
    assert not backend.loaded


def test_load_wraps_runtime_errors(model_file: Path, inference_session: MagicMock) -> None:
    inference_session.side_effect = RuntimeError("INVALID_PROTOBUF")

    with pytest.raises(ModelLoadError, match="INVALID_PROTOBUF"):
        SileroBackend().load(model_file)


def test_load_rejects_other_variant(model_file: Path, inference_session: MagicMock) -> None:
    """A v5 file loaded as v4 has the wrong inputs."""
    inference_session.return_value = mock_session(V5_INPUTS)

    with pytest.raises(ModelLoadError, match="not a Silero V4 model"):
        SileroBackend(SileroModel.V4).load(model_file)


def test_v4_infer_threads_lstm_state(model_file: Path, inference_session: MagicMock) -> None:
    session = mock_session(V4_INPUTS)
    hn = np.ones((2, 1, 64), dtype=np.float32)
    cn = np.full((2, 1, 64), 2.0, dtype=np.float32)
    session.run.return_value = [np.array([[0.8]], dtype=np.float32), hn, cn]
    inference_session.return_value = session

    backend = SileroBackend(SileroModel.V4, frame_samples=1536)
    backend.load(model_file)
    state = backend.initial_state()
    frame = np.zeros(1536, dtype=np.float32)
    probs, new_state = backend.infer(frame, state)

    assert probs.is_speech == pytest.approx(0.8)
    assert probs.not_speech == pytest.approx(0.2)
    assert new_state["h"] is hn
    assert new_state["c"] is cn

    feeds = session.run.call_args.args[1]
    assert feeds["input"].shape == (1, 1536)
    assert feeds["sr"] == 16000
    assert feeds["sr"].dtype == np.int64
    assert feeds["h"].shape == (2, 1, 64)


def test_v5_infer_prepends_context(model_file: Path, inference_session: MagicMock) -> None:
    session = mock_session(V5_INPUTS)
    next_state = np.ones((2, 1, 128), dtype=np.float32)
    session.run.return_value = [np.array([[0.3]], dtype=np.float32), next_state]
    inference_session.return_value = session

    backend = SileroBackend(SileroModel.V5, frame_samples=512)
    backend.load(model_file)
    state = backend.initial_state()
    assert state["state"].shape == (2, 1, 128)
    assert state["context"].shape == (1, 64)

    frame = np.linspace(-1, 1, 512, dtype=np.float32)
    probs, new_state = backend.infer(frame, state)

    feeds = session.run.call_args.args[1]
    assert feeds["input"].shape == (1, 576)
    np.testing.assert_array_equal(feeds["input"][0, :64], 0.0)
    np.testing.assert_array_equal(new_state["context"][0], frame[-64:])
    assert new_state["state"] is next_state
    assert probs.is_speech == pytest.approx(0.3)


def test_infer_before_load_raises() -> None:
    backend = SileroBackend()
    with pytest.raises(ModelNotLoadedError):
        backend.infer(np.zeros(1536, dtype=np.float32), backend.initial_state())


def test_infer_wraps_session_errors(model_file: Path, inference_session: MagicMock) -> None:
    session = mock_session(V4_INPUTS)
    session.run.side_effect = RuntimeError("bad shape")
    inference_session.return_value = session

    backend = SileroBackend()
    backend.load(model_file)
    with pytest.raises(InferenceError, match="bad shape"):
        backend.infer(np.zeros(1536, dtype=np.float32), backend.initial_state())


def test_close_unloads(model_file: Path, inference_session: MagicMock) -> None:
    inference_session.return_value = mock_session(V4_INPUTS)
    backend = SileroBackend()
    backend.load(model_file)
    backend.close()
    backend.close()

    assert not backend.loaded


@pytest.mark.parametrize(
    ("model", "frame_samples", "sample_rate"),
    [
        (SileroModel.V5, 1536, 16000),
        (SileroModel.V4, 1000, 16000),
        (SileroModel.V4, 512, 44100),
    ],
)
def test_unsupported_geometry_rejected(
    model: SileroModel, frame_samples: int, sample_rate: int
) -> None:
    with pytest.raises(ConfigurationError):
        SileroBackend(model, frame_samples, sample_rate)
