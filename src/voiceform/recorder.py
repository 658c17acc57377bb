"""Microphone capture."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, List, Optional

from .audio_utils import encode_wav
from .errors import CaptureError, DeviceUnavailable, PermissionDenied
from .models import AudioBlob

logger = logging.getLogger("voiceform")

PERMISSION_MESSAGE = (
    "Microphone permission denied. Please enable it in your system settings."
)


def list_input_devices() -> List[Dict[str, Any]]:
    try:
        import sounddevice as sd
    except Exception as exc:  # pragma: no cover - environment-dependent
        raise DeviceUnavailable("sounddevice is required for device detection.") from exc

    devices = sd.query_devices()
    return [dict(d) for d in devices if d.get("max_input_channels", 0) > 0]


def select_preferred_device(
    candidates: List[Dict[str, Any]],
    prefer_name: Optional[str] = None,
) -> Dict[str, Any]:
    if not candidates:
        raise DeviceUnavailable("No input devices found.")
    if prefer_name:
        preferred = [
            d for d in candidates if prefer_name.lower() in d.get("name", "").lower()
        ]
        if preferred:
            return preferred[0]
    return candidates[0]


def find_input_device(prefer_name: Optional[str] = None) -> Dict[str, Any]:
    candidates = list_input_devices()
    return select_preferred_device(candidates, prefer_name=prefer_name)


def _sounddevice_stream(device_name: Optional[str] = None, **kwargs):
    try:
        import sounddevice as sd
    except Exception as exc:  # pragma: no cover - environment-dependent
        raise DeviceUnavailable("sounddevice is required for recording.") from exc

    device_index = None
    if device_name:
        device_index = find_input_device(device_name).get("index")
    return sd.InputStream(device=device_index, **kwargs)


def _classify(exc: Exception) -> CaptureError:
    if isinstance(exc, CaptureError):
        return exc
    if isinstance(exc, PermissionError) or "permission" in str(exc).lower():
        return PermissionDenied(PERMISSION_MESSAGE)
    return DeviceUnavailable(f"Could not open the microphone: {exc}")


class MicrophoneCapture:
    """One exclusive input stream at a time, collected into a WAV blob.

    ``release()`` is the only place the stream is stopped and closed. It is
    safe to call any number of times, from ``end()``, from an error path or
    from teardown.
    """

    def __init__(
        self,
        sample_rate_hz: int = 16000,
        channels: int = 1,
        device_name: Optional[str] = None,
        stream_factory: Optional[Callable[..., Any]] = None,
        on_error: Optional[Callable[[CaptureError], None]] = None,
    ) -> None:
        self.sample_rate_hz = sample_rate_hz
        self.channels = channels
        self.device_name = device_name
        self.on_error = on_error
        self.dropped_chunks = 0
        self._stream_factory = stream_factory or _sounddevice_stream
        self._stream = None
        self._chunks: List[Any] = []
        self._lock = threading.Lock()
        self._releasing = False

    @property
    def active(self) -> bool:
        return self._stream is not None

    def begin(self) -> None:
        if self._stream is not None:
            raise RuntimeError("A capture is already active.")
        with self._lock:
            self._chunks = []
        self.dropped_chunks = 0
        self._releasing = False

        try:
            stream = self._stream_factory(
                device_name=self.device_name,
                samplerate=self.sample_rate_hz,
                channels=self.channels,
                dtype="int16",
                callback=self._callback,
                finished_callback=self._finished,
            )
        except Exception as exc:
            raise _classify(exc) from exc

        self._stream = stream
        try:
            stream.start()
        except Exception as exc:
            self.release()
            raise _classify(exc) from exc
        logger.info(
            "Microphone capture started (%s Hz, %s ch)", self.sample_rate_hz, self.channels
        )

    def end(self) -> AudioBlob:
        if self._stream is None:
            raise RuntimeError("No capture is active.")
        chunks = self.release()
        blob = encode_wav(chunks, self.sample_rate_hz, self.channels)
        logger.info(
            "Microphone capture finished: %d bytes, %.1fs, %d dropped chunks",
            blob.size,
            blob.duration_seconds,
            self.dropped_chunks,
        )
        return blob

    def release(self) -> List[Any]:
        with self._lock:
            stream, self._stream = self._stream, None
            if stream is not None:
                self._releasing = True
        if stream is not None:
            for action in ("stop", "close"):
                try:
                    getattr(stream, action)()
                except Exception:
                    logger.exception("Failed to %s input stream", action)
            logger.debug("Microphone released")
        with self._lock:
            chunks = self._chunks
            self._chunks = []
        return chunks

    def _callback(self, indata, _frames, _time, status) -> None:
        if status:
            self.dropped_chunks += 1
            return
        with self._lock:
            self._chunks.append(indata.copy())

    def _finished(self) -> None:
        if self._releasing or self._stream is None:
            return
        logger.warning("Input stream stopped unexpectedly")
        if self.on_error is not None:
            self.on_error(DeviceUnavailable("The audio stream stopped unexpectedly."))
