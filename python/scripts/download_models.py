#!/usr/bin/env python3
"""Download the Silero VAD ONNX models the handler loads.

Both variants are published upstream under the same file name, so each is
saved under its SileroModel asset name and opened once with SileroBackend to
check it really is the expected variant. A file that fails the check is
removed rather than left in the cache.
"""

import argparse
import sys
import urllib.request
from pathlib import Path

from vad.config import SAMPLE_RATE, AppConfig, SileroModel
from vad.exceptions import ModelLoadError
from vad.silero import SileroBackend

DEFAULT_CACHE_DIR = AppConfig().model_dir
RELEASES = "https://github.com/snakers4/silero-vad/raw"
MODELS: dict[str, tuple[SileroModel, str]] = {
    "v4": (SileroModel.V4, f"{RELEASES}/v4.0/files/silero_vad.onnx"),
    "v5": (SileroModel.V5, f"{RELEASES}/v5.0/files/silero_vad.onnx"),
}


def verify_model(model: SileroModel, path: Path) -> None:
    """Raise ModelLoadError unless path holds a loadable model of this variant."""
    backend = SileroBackend(model, model.frame_sizes(SAMPLE_RATE)[0], SAMPLE_RATE)
    backend.load(path)
    backend.close()


def get_model_path(name: str, cache_dir: Path | None = None) -> Path:
    """Path of a cached model, downloading it first if needed."""
    if name not in MODELS:
        raise ValueError(f"Unknown model: {name}. Available: {list(MODELS)}")
    cache_dir = cache_dir or DEFAULT_CACHE_DIR
    model, url = MODELS[name]
    dest = cache_dir / model.value
    if dest.exists():
        return dest

    cache_dir.mkdir(parents=True, exist_ok=True)
    print(f"Downloading Silero {name} from {url} -> {dest}")
    urllib.request.urlretrieve(url, dest)
    try:
        verify_model(model, dest)
    except ModelLoadError:
        dest.unlink(missing_ok=True)
        raise
    return dest


def get_model_paths(
    names: list[str] | None = None, cache_dir: Path | None = None
) -> dict[SileroModel, Path]:
    """Fetch several variants (all by default), keyed by variant."""
    return {MODELS[name][0]: get_model_path(name, cache_dir) for name in names or list(MODELS)}


def main() -> int:
    parser = argparse.ArgumentParser(description="Download Silero VAD ONNX models")
    parser.add_argument(
        "models",
        nargs="*",
        default=list(MODELS),
        choices=list(MODELS),
        help="Variants to download (default: all)",
    )
    parser.add_argument(
        "--cache-dir",
        type=Path,
        default=DEFAULT_CACHE_DIR,
        help=f"Cache directory (default: {DEFAULT_CACHE_DIR})",
    )
    args = parser.parse_args()

    try:
        paths = get_model_paths(args.models, args.cache_dir)
    except (OSError, ModelLoadError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for model, path in paths.items():
        print(f"{model.name} ready: {path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
