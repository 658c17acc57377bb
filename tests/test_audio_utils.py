import numpy as np

from voiceform.audio_utils import encode_wav, load_audio_file


def test_encode_wav_of_nothing_is_empty():
    blob = encode_wav([], 16000, 1)
    assert blob.size == 0
    assert blob.duration_seconds == 0.0


def test_load_audio_file_reads_wav_metadata(tmp_path):
    blob = encode_wav([np.zeros((8000, 1), dtype=np.int16)], 8000, 1)
    path = tmp_path / "clip.wav"
    path.write_bytes(blob.data)

    loaded = load_audio_file(str(path))
    assert loaded.content_type == "audio/wav"
    assert loaded.sample_rate_hz == 8000
    assert loaded.duration_seconds == 1.0
    assert loaded.extension == "wav"


def test_load_audio_file_keeps_other_formats_opaque(tmp_path):
    path = tmp_path / "clip.mp3"
    path.write_bytes(b"ID3fake")
    loaded = load_audio_file(str(path))
    assert loaded.data == b"ID3fake"
    assert loaded.content_type == "audio/mpeg"
    assert loaded.extension == "mp3"
