"""Submission persistence and template loading."""

from __future__ import annotations

import logging
import os
import uuid
from typing import Any, Dict, Optional

import requests

from .config import StoreConfig
from .errors import PersistenceFailed
from .models import FieldDefinition, FormTemplate, SubmissionRecord
from .session_io import load_submission, load_template_file, save_submission
from .storage import ensure_structure, sanitize_name, utc_timestamp

logger = logging.getLogger("voiceform")

SAVE_FAILED = "Failed to save submission."
MISSING_ID = "Could not retrieve submission ID after saving."


class JsonFileSubmissionStore:
    """Keeps one JSON file per submission under ``<base_dir>/Submissions``."""

    def __init__(self, base_dir: str) -> None:
        self.paths = ensure_structure(base_dir)

    def submission_path(self, submission_id: str) -> str:
        return os.path.join(self.paths["submissions"], f"{submission_id}.json")

    def insert(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        record = SubmissionRecord(
            id=uuid.uuid4().hex,
            template_id=payload["template_id"],
            form_data=payload["form_data"],
            actor_id=payload.get("user_id"),
            created_at=utc_timestamp(),
        )
        save_submission(self.submission_path(record.id), record)
        return {"id": record.id, "created_at": record.created_at}

    def get(self, submission_id: str) -> SubmissionRecord:
        return load_submission(self.submission_path(submission_id))

    def load_template(self, template_id: str) -> FormTemplate:
        folder = self.paths["templates"]
        for ext in (".yml", ".yaml"):
            path = os.path.join(folder, f"{sanitize_name(template_id)}{ext}")
            if os.path.exists(path):
                template = load_template_file(path)
                template.id = template.id or template_id
                return template
        raise LookupError(f"Form template not found: {template_id}")


class RestSubmissionStore:
    """PostgREST-style tables: form_templates, form_fields and submissions."""

    def __init__(
        self,
        url: str,
        api_key: Optional[str] = None,
        table: str = "form_submissions",
        timeout_s: float = 15.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = url.rstrip("/") + "/rest/v1"
        self.api_key = api_key
        self.table = table
        self.timeout_s = timeout_s
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["apikey"] = self.api_key
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    def _select(self, table: str, params: Dict[str, str]) -> list:
        response = self.session.get(
            f"{self.base_url}/{table}",
            params=params,
            headers=self._headers(),
            timeout=self.timeout_s,
        )
        response.raise_for_status()
        return response.json() or []

    def insert(self, payload: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        headers = self._headers()
        headers["Prefer"] = "return=representation"
        response = self.session.post(
            f"{self.base_url}/{self.table}",
            params={"select": "id,created_at"},
            json=[payload],
            headers=headers,
            timeout=self.timeout_s,
        )
        response.raise_for_status()
        body = response.json() if response.content else None
        if isinstance(body, list):
            return body[0] if body else None
        return body

    def load_template(self, template_id: str) -> FormTemplate:
        rows = self._select(
            "form_templates",
            {"id": f"eq.{template_id}", "select": "id,name,description"},
        )
        if not rows:
            raise LookupError(f"Form template not found: {template_id}")
        field_rows = self._select(
            "form_fields",
            {
                "template_id": f"eq.{template_id}",
                "select": "id,label,internal_key,field_type,display_order,options,rating_min,rating_max",
                "order": "display_order.asc",
            },
        )
        row = rows[0]
        return FormTemplate(
            id=str(row["id"]),
            name=row.get("name") or "",
            description=row.get("description"),
            fields=[FieldDefinition.from_row(f) for f in field_rows],
        )


class SubmissionPersistence:
    """Writes the finalized review mapping and returns the new submission id."""

    def __init__(self, store) -> None:
        self.store = store

    def save(
        self,
        template_id: str,
        form_data: Dict[str, Any],
        actor_id: Optional[str] = None,
    ) -> str:
        payload: Dict[str, Any] = {"template_id": template_id, "form_data": dict(form_data)}
        if actor_id:
            payload["user_id"] = actor_id
        try:
            row = self.store.insert(payload)
        except (requests.RequestException, OSError, ValueError, TypeError) as exc:
            logger.error("Submission insert rejected: %s", exc)
            raise PersistenceFailed(SAVE_FAILED) from exc

        submission_id = row.get("id") if isinstance(row, dict) else None
        if not submission_id:
            logger.error("Insert succeeded but no id returned: %r", row)
            raise PersistenceFailed(MISSING_ID)
        logger.info("Saved submission %s for template %s", submission_id, template_id)
        return str(submission_id)


def build_store(config: StoreConfig):
    if config.backend == "rest":
        if not config.url:
            raise ValueError("store.url is required for the rest backend.")
        return RestSubmissionStore(
            config.url,
            api_key=config.api_key,
            table=config.table,
            timeout_s=config.timeout_s,
        )
    return JsonFileSubmissionStore(config.base_dir)


def resolve_template(store, reference: str) -> FormTemplate:
    """Load a template from a YAML path, or by id from the store."""
    if os.path.isfile(reference):
        template = load_template_file(reference)
    else:
        template = store.load_template(reference)
    if not template.fields:
        logger.warning("Template %s has no fields", template.id)
    return template
