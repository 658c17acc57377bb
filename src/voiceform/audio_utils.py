"""Audio helpers."""

from __future__ import annotations

import io
import mimetypes
import os
import wave
from typing import Sequence

import numpy as np

from .models import AudioBlob


def encode_wav(
    chunks: Sequence[np.ndarray],
    sample_rate_hz: int,
    channels: int,
) -> AudioBlob:
    """Concatenate int16 frame chunks and wrap them in a WAV container."""
    if chunks:
        frames = np.concatenate([np.asarray(c).reshape(-1, channels) for c in chunks], axis=0)
    else:
        frames = np.zeros((0, channels), dtype=np.int16)
    if frames.dtype != np.int16:
        frames = frames.astype(np.int16)

    buffer = io.BytesIO()
    if frames.shape[0]:
        with wave.open(buffer, "wb") as handle:
            handle.setnchannels(channels)
            handle.setsampwidth(2)
            handle.setframerate(sample_rate_hz)
            handle.writeframes(frames.tobytes())

    return AudioBlob(
        data=buffer.getvalue(),
        content_type="audio/wav",
        sample_rate_hz=sample_rate_hz,
        channels=channels,
        duration_seconds=frames.shape[0] / float(sample_rate_hz),
    )


def load_audio_file(path: str) -> AudioBlob:
    with open(path, "rb") as handle:
        data = handle.read()

    content_type = mimetypes.guess_type(path)[0] or "application/octet-stream"
    if os.path.splitext(path)[1].lower() != ".wav":
        return AudioBlob(data=data, content_type=content_type)

    with wave.open(io.BytesIO(data), "rb") as handle:
        rate = handle.getframerate()
        channels = handle.getnchannels()
        frames = handle.getnframes()
    return AudioBlob(
        data=data,
        content_type="audio/wav",
        sample_rate_hz=rate,
        channels=channels,
        duration_seconds=frames / float(rate) if rate else 0.0,
    )
