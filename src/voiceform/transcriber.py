"""Speech-to-text backends."""

from __future__ import annotations

import io
import logging
from typing import Optional

import requests

from .config import TranscriptionConfig
from .errors import TranscriptionFailed
from .models import AudioBlob
from .remote import auth_headers, error_reason, json_body

logger = logging.getLogger("voiceform")


class TranscriptionClient:
    """Posts a recording to the transcription endpoint.

    The request is multipart: the audio bytes under ``audio`` and the
    encoding under ``mimeType``, since the server decodes by format. One
    attempt per call; failures raise ``TranscriptionFailed``.
    """

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        timeout_s: float = 60.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.url = url
        self.api_key = api_key
        self.timeout_s = timeout_s
        self.session = session or requests.Session()

    def transcribe(self, blob: AudioBlob) -> str:
        files = {"audio": (f"recording.{blob.extension}", blob.data, blob.content_type)}
        data = {"mimeType": blob.content_type}
        logger.info("Transcribing %d bytes of %s", blob.size, blob.content_type)
        try:
            response = self.session.post(
                self.url,
                files=files,
                data=data,
                headers=auth_headers(self.api_key),
                timeout=self.timeout_s,
            )
        except requests.RequestException as exc:
            raise TranscriptionFailed(
                f"Could not reach the transcription service: {exc}"
            ) from exc

        body = json_body(response)
        if not response.ok:
            reason = error_reason(body) or (
                f"Transcription HTTP error! status: {response.status_code}"
            )
            raise TranscriptionFailed(reason)

        text = body.get("transcription") if isinstance(body, dict) else None
        if not isinstance(text, str):
            raise TranscriptionFailed("Transcription service returned a malformed response.")
        return text.strip()


class LocalTranscriber:
    """Transcribes in process with Faster-Whisper."""

    def __init__(
        self,
        model_name: str = "small",
        language: Optional[str] = None,
        device: Optional[str] = None,
        compute_type: Optional[str] = None,
    ) -> None:
        self.model_name = model_name
        self.language = language
        self.device = device
        self.compute_type = compute_type
        self._model = None

    def _load_model(self):
        if self._model is not None:
            return self._model
        try:
            from faster_whisper import WhisperModel
        except Exception as exc:  # pragma: no cover - optional dependency
            raise TranscriptionFailed(
                "faster-whisper is required for local transcription."
            ) from exc

        kwargs = {}
        if self.device:
            kwargs["device"] = self.device
        if self.compute_type:
            kwargs["compute_type"] = self.compute_type
        self._model = WhisperModel(self.model_name, **kwargs)
        return self._model

    def transcribe(self, blob: AudioBlob) -> str:
        model = self._load_model()
        try:
            segments, _info = model.transcribe(io.BytesIO(blob.data), language=self.language)
            text = " ".join(seg.text.strip() for seg in segments if seg.text.strip())
        except Exception as exc:
            logger.exception("Local transcription failed")
            raise TranscriptionFailed(f"Local transcription failed: {exc}") from exc
        return text


def build_transcriber(config: TranscriptionConfig):
    if config.backend == "local":
        return LocalTranscriber(model_name=config.whisper_model, language=config.language)
    return TranscriptionClient(config.url, api_key=config.api_key, timeout_s=config.timeout_s)
