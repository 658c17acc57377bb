"""Capture pipeline error types."""

from __future__ import annotations


class CaptureError(Exception):
    """Base for every failure the capture pipeline reports to the user."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class PermissionDenied(CaptureError):
    """The operating system refused access to the microphone."""


class DeviceUnavailable(CaptureError):
    """No capture hardware, or the audio backend is missing."""


class TranscriptionFailed(CaptureError):
    pass


class ExtractionFailed(CaptureError):
    pass


class PersistenceFailed(CaptureError):
    pass


class ValidationFailed(CaptureError):
    """Extraction was attempted without a transcript or without fields."""
