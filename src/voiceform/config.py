"""Configuration handling."""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field
from typing import Optional

import yaml

DEFAULT_CONFIG_PATH = "voiceform_config.yml"


@dataclass
class AudioConfig:
    sample_rate_hz: int = 16000
    channels: int = 1
    device_name: Optional[str] = None


@dataclass
class TranscriptionConfig:
    backend: str = "remote"
    url: str = "http://localhost:3000/api/transcribe"
    api_key: Optional[str] = None
    timeout_s: float = 60.0
    whisper_model: str = "small"
    language: Optional[str] = None


@dataclass
class ExtractionConfig:
    url: str = "http://localhost:3000/api/parse"
    api_key: Optional[str] = None
    timeout_s: float = 60.0


@dataclass
class StoreConfig:
    backend: str = "file"
    base_dir: str = ""
    url: Optional[str] = None
    api_key: Optional[str] = None
    table: str = "form_submissions"
    timeout_s: float = 15.0


@dataclass
class CaptureConfig:
    status_interval_s: float = 2.5
    rating_policy: str = "minimum"
    public: bool = False


@dataclass
class Config:
    log_dir: str = "logs"
    debug: bool = False
    audio: AudioConfig = field(default_factory=AudioConfig)
    transcription: TranscriptionConfig = field(default_factory=TranscriptionConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)


def apply_env_overrides(config: Config) -> Config:
    api_key = os.environ.get("VOICEFORM_API_KEY")
    if api_key:
        config.transcription.api_key = api_key
        config.extraction.api_key = api_key
    store_key = os.environ.get("VOICEFORM_STORE_KEY")
    if store_key:
        config.store.api_key = store_key
    return config


def load_config(path: str) -> Config:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}

    audio = AudioConfig(**data.get("audio", {}))
    transcription = TranscriptionConfig(**data.get("transcription", {}))
    extraction = ExtractionConfig(**data.get("extraction", {}))
    store = StoreConfig(**data.get("store", {}))
    capture = CaptureConfig(**data.get("capture", {}))

    if transcription.backend not in ("remote", "local"):
        raise ValueError(f"Unknown transcription backend: {transcription.backend}")
    if store.backend not in ("file", "rest"):
        raise ValueError(f"Unknown store backend: {store.backend}")

    config = Config(
        log_dir=data.get("log_dir", "logs"),
        debug=bool(data.get("debug", False)),
        audio=audio,
        transcription=transcription,
        extraction=extraction,
        store=store,
        capture=capture,
    )
    return apply_env_overrides(config)


def load_or_default(path: Optional[str]) -> Config:
    if path and os.path.exists(path):
        return load_config(path)
    return apply_env_overrides(Config())


def save_config(path: str, config: Config) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(asdict(config), handle, sort_keys=False)
