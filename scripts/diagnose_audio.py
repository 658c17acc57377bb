import argparse
import io
import os
import sys
import time
import wave

import numpy as np

SRC = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src"))
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from voiceform.errors import CaptureError
from voiceform.recorder import MicrophoneCapture, find_input_device


def _describe_device(info: dict) -> None:
    print(f"Input device: {info.get('name', '')}")
    print(f"Index: {info.get('index', '')}")
    print(f"Host API: {info.get('hostapi', '')}")
    print(f"Max input channels: {info.get('max_input_channels', 0)}")
    print(f"Default sample rate: {info.get('default_samplerate', '')}")


def _levels(data: bytes) -> tuple[float, float]:
    with wave.open(io.BytesIO(data), "rb") as handle:
        frames = np.frombuffer(handle.readframes(handle.getnframes()), dtype=np.int16)
    if not frames.size:
        return 0.0, 0.0
    samples = frames.astype("float32") / 32768.0
    return float(np.sqrt(np.mean(samples**2))), float(np.max(np.abs(samples)))


def main() -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("--device", help="Device name substring.")
    parser.add_argument("--seconds", type=float, default=4.0, help="Test duration.")
    parser.add_argument("--rate", type=int, default=16000, help="Sample rate.")
    parser.add_argument("--out", help="Write the captured WAV here.")
    args = parser.parse_args()

    try:
        _describe_device(find_input_device(args.device))
        capture = MicrophoneCapture(sample_rate_hz=args.rate, device_name=args.device)
        capture.begin()
    except CaptureError as exc:
        print(exc.reason)
        return 1

    print(f"Recording {args.seconds:.1f}s...")
    try:
        time.sleep(args.seconds)
    finally:
        blob = capture.end()

    print(f"Captured: {blob.size} bytes, {blob.duration_seconds:.2f}s")
    print(f"Dropped chunks: {capture.dropped_chunks}")
    if blob.size:
        rms, peak = _levels(blob.data)
        print(f"RMS {rms:.3f} | Peak {peak:.3f}")
    if args.out and blob.size:
        with open(args.out, "wb") as handle:
            handle.write(blob.data)
        print(f"Wrote {args.out}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
