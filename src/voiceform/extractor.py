"""Field extraction from a transcript."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional

import requests

from .errors import ExtractionFailed, ValidationFailed
from .fields import field_schema_entry
from .models import FieldDefinition
from .remote import auth_headers, error_reason, json_body

logger = logging.getLogger("voiceform")


def build_field_schema(fields: Iterable[FieldDefinition]) -> List[Dict[str, Any]]:
    """Schema entries in display order, with options or rating bounds only where needed."""
    ordered = sorted(fields, key=lambda f: f.display_order)
    return [field_schema_entry(f) for f in ordered]


def check_extraction_input(transcript: Optional[str], fields: List[FieldDefinition]) -> None:
    if not transcript or not transcript.strip() or not fields:
        raise ValidationFailed("Missing data for parsing step.")


class ExtractionClient:
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

    def extract(
        self, transcript: str, schema: List[Dict[str, Any]]
    ) -> Dict[str, Any]:
        payload = {"transcription": transcript, "fields": schema}
        logger.info("Extracting %d fields from %d chars", len(schema), len(transcript))
        try:
            response = self.session.post(
                self.url,
                json=payload,
                headers=auth_headers(self.api_key),
                timeout=self.timeout_s,
            )
        except requests.RequestException as exc:
            raise ExtractionFailed(f"Could not reach the extraction service: {exc}") from exc

        body = json_body(response)
        if not response.ok:
            reason = error_reason(body) or f"Parsing HTTP error! status: {response.status_code}"
            raise ExtractionFailed(reason)
        if not isinstance(body, dict):
            raise ExtractionFailed("Extraction service returned a malformed response.")

        parsed = body.get("parsedData")
        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ExtractionFailed("Extraction service returned a malformed response.")

        known = {entry["internal_key"] for entry in schema}
        extra = sorted(set(parsed) - known)
        if extra:
            logger.warning("Extraction returned unrequested keys: %s", ", ".join(extra))
        return {key: value for key, value in parsed.items() if key in known}
