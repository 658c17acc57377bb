import pytest
import requests

from voiceform.config import TranscriptionConfig
from voiceform.errors import TranscriptionFailed
from voiceform.models import AudioBlob
from voiceform.transcriber import LocalTranscriber, TranscriptionClient, build_transcriber

BLOB = AudioBlob(data=b"RIFFdata", content_type="audio/wav")


def test_transcribe_posts_audio_and_mime_type(fake_session, fake_response):
    session = fake_session(fake_response(payload={"transcription": "  Hello there. "}))
    client = TranscriptionClient("http://stt/api/transcribe", api_key="k", session=session)

    assert client.transcribe(BLOB) == "Hello there."

    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url == "http://stt/api/transcribe"
    assert kwargs["files"]["audio"] == ("recording.wav", b"RIFFdata", "audio/wav")
    assert kwargs["data"] == {"mimeType": "audio/wav"}
    assert kwargs["headers"] == {"Authorization": "Bearer k"}


def test_server_error_reason_is_surfaced(fake_session, fake_response):
    session = fake_session(fake_response(500, payload={"error": "quota exceeded"}))
    client = TranscriptionClient("http://stt", session=session)
    with pytest.raises(TranscriptionFailed) as info:
        client.transcribe(BLOB)
    assert info.value.reason == "quota exceeded"


def test_status_code_used_when_error_body_is_not_json(fake_session, fake_response):
    session = fake_session(fake_response(502, text="<html>Bad gateway</html>"))
    client = TranscriptionClient("http://stt", session=session)
    with pytest.raises(TranscriptionFailed) as info:
        client.transcribe(BLOB)
    assert info.value.reason == "Transcription HTTP error! status: 502"


def test_unreachable_service(fake_session):
    session = fake_session(requests.ConnectionError("refused"))
    client = TranscriptionClient("http://stt", session=session)
    with pytest.raises(TranscriptionFailed) as info:
        client.transcribe(BLOB)
    assert info.value.reason.startswith("Could not reach the transcription service")


def test_missing_transcription_member_is_malformed(fake_session, fake_response):
    session = fake_session(fake_response(payload={"text": "hello"}))
    client = TranscriptionClient("http://stt", session=session)
    with pytest.raises(TranscriptionFailed) as info:
        client.transcribe(BLOB)
    assert "malformed" in info.value.reason


def test_build_transcriber_picks_backend():
    remote = build_transcriber(TranscriptionConfig(url="http://stt", timeout_s=5))
    assert isinstance(remote, TranscriptionClient)
    assert remote.timeout_s == 5

    local = build_transcriber(TranscriptionConfig(backend="local", whisper_model="tiny"))
    assert isinstance(local, LocalTranscriber)
    assert local.model_name == "tiny"
