import argparse
import os
import sys
import time

SRC = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from voiceform.audio_utils import load_audio_file
from voiceform.config import DEFAULT_CONFIG_PATH, load_or_default
from voiceform.errors import CaptureError
from voiceform.transcriber import build_transcriber


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("audio_path", help="Path to audio file to transcribe.")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Config file.")
    parser.add_argument("--backend", choices=("remote", "local"), help="Override backend.")
    parser.add_argument("--model", help="Whisper model name (local backend).")
    parser.add_argument("--language", help="Language code (e.g., en).")
    args = parser.parse_args()

    config = load_or_default(args.config).transcription
    if args.backend:
        config.backend = args.backend
    if args.model:
        config.whisper_model = args.model
    if args.language:
        config.language = args.language

    blob = load_audio_file(args.audio_path)
    print(f"Audio: {blob.size} bytes, {blob.content_type}, {blob.duration_seconds:.2f}s")

    started = time.time()
    try:
        text = build_transcriber(config).transcribe(blob)
    except CaptureError as exc:
        print(f"Failed: {exc.reason}")
        return 1
    elapsed = time.time() - started
    print(f"Backend: {config.backend}")
    print(f"Characters: {len(text)}")
    print(f"Elapsed: {elapsed:.2f}s")
    print(text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
