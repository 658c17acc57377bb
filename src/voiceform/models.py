"""Data models for voiceform."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class FieldType(str, Enum):
    SHORT_TEXT = "text"
    LONG_TEXT = "textarea"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "checkbox"
    SINGLE_CHOICE = "select"
    MULTI_CHOICE = "multicheckbox"
    RATED_SCALE = "rating"

    @classmethod
    def parse(cls, value: str) -> "FieldType":
        raw = (value or "").strip().lower()
        try:
            return cls(raw)
        except ValueError:
            pass
        if raw in _FIELD_TYPE_ALIASES:
            return _FIELD_TYPE_ALIASES[raw]
        raise ValueError(f"Unknown field type: {value!r}")

    @property
    def has_choices(self) -> bool:
        return self in (FieldType.SINGLE_CHOICE, FieldType.MULTI_CHOICE)


_FIELD_TYPE_ALIASES = {
    "radio": FieldType.SINGLE_CHOICE,
    "dropdown": FieldType.SINGLE_CHOICE,
    "checkbox_group": FieldType.MULTI_CHOICE,
    "multi_select": FieldType.MULTI_CHOICE,
    "number_integer": FieldType.NUMBER,
    "number_decimal": FieldType.NUMBER,
    "currency": FieldType.NUMBER,
    "percentage": FieldType.NUMBER,
    "email": FieldType.SHORT_TEXT,
    "url": FieldType.SHORT_TEXT,
    "phone": FieldType.SHORT_TEXT,
    "address": FieldType.SHORT_TEXT,
    "time": FieldType.SHORT_TEXT,
    "datetime": FieldType.SHORT_TEXT,
    "password": FieldType.SHORT_TEXT,
}

DEFAULT_RATING_MIN = 1
DEFAULT_RATING_MAX = 5


@dataclass(frozen=True)
class FieldDefinition:
    key: str
    label: str
    type: FieldType
    choices: Tuple[str, ...] = ()
    scale_min: Optional[int] = None
    scale_max: Optional[int] = None
    display_order: int = 0
    id: Optional[str] = None

    @property
    def has_valid_scale(self) -> bool:
        if self.scale_min is None or self.scale_max is None:
            return False
        return self.scale_min < self.scale_max

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "FieldDefinition":
        """Build a field from a store row or a YAML template entry."""
        field_type = FieldType.parse(str(row.get("field_type") or row.get("type") or ""))
        key = row.get("internal_key") or row.get("key")
        if not key:
            raise ValueError("Field is missing its internal_key.")
        choices: Tuple[str, ...] = ()
        if field_type.has_choices:
            choices = tuple(str(opt) for opt in (row.get("options") or row.get("choices") or []))
        scale_min = scale_max = None
        if field_type is FieldType.RATED_SCALE:
            scale_min = row.get("rating_min", row.get("scale_min"))
            scale_max = row.get("rating_max", row.get("scale_max"))
            scale_min = DEFAULT_RATING_MIN if scale_min is None else int(scale_min)
            scale_max = DEFAULT_RATING_MAX if scale_max is None else int(scale_max)
        row_id = row.get("id")
        return cls(
            key=str(key),
            label=str(row.get("label") or key),
            type=field_type,
            choices=choices,
            scale_min=scale_min,
            scale_max=scale_max,
            display_order=int(row.get("display_order") or 0),
            id=str(row_id) if row_id is not None else None,
        )


@dataclass
class FormTemplate:
    id: str
    name: str
    description: Optional[str] = None
    fields: List[FieldDefinition] = field(default_factory=list)

    @property
    def keys(self) -> List[str]:
        return [f.key for f in self.fields]

    def get_field(self, key: str) -> FieldDefinition:
        for item in self.fields:
            if item.key == key:
                return item
        raise KeyError(key)


@dataclass(frozen=True)
class AudioBlob:
    data: bytes
    content_type: str = "audio/wav"
    sample_rate_hz: int = 16000
    channels: int = 1
    duration_seconds: float = 0.0

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        subtype = self.content_type.split("/", 1)[-1].split(";", 1)[0]
        return {"x-wav": "wav", "mpeg": "mp3", "mp4": "m4a"}.get(subtype, subtype)


@dataclass
class SubmissionRecord:
    id: str
    template_id: str
    form_data: Dict[str, Any]
    actor_id: Optional[str] = None
    created_at: Optional[str] = None
