import os
from datetime import datetime, timezone

from voiceform.storage import ensure_structure, sanitize_name, utc_timestamp


def test_utc_timestamp_format():
    stamp = utc_timestamp(datetime(2025, 5, 21, 9, 30, 0, 123, tzinfo=timezone.utc))
    assert stamp == "2025-05-21T09:30:00+00:00"


def test_sanitize_name():
    assert sanitize_name("Client Intake/2025") == "Client-Intake-2025"
    assert sanitize_name("  ") == "General"


def test_ensure_structure_creates_folders(tmp_path):
    paths = ensure_structure(str(tmp_path))
    assert set(paths) == {"root", "submissions", "templates"}
    for key in ("submissions", "templates"):
        assert os.path.isdir(paths[key])
