#!/usr/bin/env python3
"""Test program to listen to the mic and print voice activity events."""

import argparse
import logging
import signal
import sys
import threading

from vad.config import VAD_LEGACY, VAD_V5, AppConfig, LogLevel
from vad.exceptions import VadError
from vad.handler import VadHandler


def main() -> int:
    parser = argparse.ArgumentParser(description="Print VAD events from the microphone")
    parser.add_argument("--v5", action="store_true", help="Use the Silero v5 model")
    parser.add_argument("--device", type=int, default=None, help="Input device index")
    parser.add_argument("--debug", action="store_true", help="Log every VAD event")
    args = parser.parse_args()

    cfg = AppConfig(
        log_level=LogLevel.DEBUG if args.debug else LogLevel.INFO,
        is_debug=args.debug,
        device_id=args.device,
        vad_options=VAD_V5 if args.v5 else VAD_LEGACY,
    )
    logging.basicConfig(level=cfg.log_level, format="%(asctime)s %(name)s %(message)s")

    done = threading.Event()
    handler = VadHandler(maybe_cfg=cfg)
    handler.on_speech_start.subscribe(on_next=lambda _: print("> speech start"))
    handler.on_real_speech_start.subscribe(on_next=lambda _: print("> speech confirmed"))
    handler.on_misfire.subscribe(on_next=lambda _: print("> misfire"))
    handler.on_speech_end.subscribe(
        on_next=lambda audio: print(f"> speech end ({len(audio) / cfg.sample_rate:.2f}s)")
    )
    handler.on_error.subscribe(on_next=lambda msg: print(f"Error: {msg}", file=sys.stderr))
    handler.events.subscribe(on_completed=done.set)

    try:
        handler.start_listening()
    except VadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print("Listening... (Ctrl+C to stop)")
    signal.signal(signal.SIGINT, lambda *_: handler.dispose())
    done.wait()
    print("Done.")

    return 0


if __name__ == "__main__":
    sys.exit(main())
