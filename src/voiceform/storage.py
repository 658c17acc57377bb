"""Storage and naming utilities."""

from __future__ import annotations

import os
from datetime import datetime, timezone


def utc_timestamp(dt: datetime | None = None) -> str:
    now = dt or datetime.now(timezone.utc)
    return now.isoformat(timespec="seconds")


def ensure_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def sanitize_name(name: str) -> str:
    value = (name or "").strip()
    if not value:
        return "General"
    return value.replace(" ", "-").replace("/", "-").replace("\\", "-")


def ensure_structure(base_dir: str) -> dict:
    root = base_dir or os.getcwd()
    paths = {
        "root": root,
        "submissions": os.path.join(root, "Submissions"),
        "templates": os.path.join(root, "Templates"),
    }
    for path in paths.values():
        ensure_dir(path)
    return paths
