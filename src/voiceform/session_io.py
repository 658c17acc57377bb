"""Submission and template files."""

from __future__ import annotations

import json
from dataclasses import asdict

import yaml

from .models import FieldDefinition, FormTemplate, SubmissionRecord


def save_submission(path: str, record: SubmissionRecord) -> None:
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(asdict(record), handle, indent=2)


def load_submission(path: str) -> SubmissionRecord:
    with open(path, "r", encoding="utf-8") as handle:
        data = json.load(handle)
    return SubmissionRecord(
        id=data["id"],
        template_id=data["template_id"],
        form_data=data.get("form_data") or {},
        actor_id=data.get("actor_id"),
        created_at=data.get("created_at"),
    )


def template_from_dict(data: dict) -> FormTemplate:
    fields = [FieldDefinition.from_row(row) for row in data.get("fields") or []]
    fields.sort(key=lambda f: f.display_order)
    return FormTemplate(
        id=str(data.get("id") or data.get("name") or ""),
        name=str(data.get("name") or data.get("id") or "Untitled form"),
        description=data.get("description"),
        fields=fields,
    )


def load_template_file(path: str) -> FormTemplate:
    with open(path, "r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    return template_from_dict(data)
