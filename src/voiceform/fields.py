"""Per-field-type behavior.

Every ``FieldType`` has exactly one handler. A handler knows the empty value
for its type, how to coerce an incoming value (from the extraction service or
from a user edit), what hint to show when prompting, which extra schema
members the extraction service needs, and which input widget renders it.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from .models import FieldDefinition, FieldType

RATING_POLICIES = ("minimum", "clamp")

_TRUE_WORDS = ("true", "yes", "y", "1", "on")
_FALSE_WORDS = ("false", "no", "n", "0", "off", "")


def _collapse(value: Any) -> Any:
    # Slider-style controls emit single-element lists.
    if isinstance(value, (list, tuple)) and len(value) == 1:
        item = value[0]
        if isinstance(item, (int, float)) and not isinstance(item, bool):
            return item
    return value


def _to_number(value: Any) -> int | float:
    if isinstance(value, bool):
        raise ValueError("Expected a number, got a boolean.")
    number = None
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        text = value.strip().replace(",", "")
        try:
            number = int(text)
        except ValueError:
            try:
                number = float(text)
            except ValueError:
                pass
    if number is None:
        raise ValueError(f"Expected a number, got {value!r}.")
    # JSON has no NaN or infinity.
    if isinstance(number, float) and not math.isfinite(number):
        raise ValueError(f"Expected a finite number, got {value!r}.")
    return number


class FieldHandler:
    widget = "input"

    def empty(self, field: FieldDefinition) -> Any:
        return ""

    def coerce(self, field: FieldDefinition, value: Any, policy: str = "minimum") -> Any:
        raise NotImplementedError

    def display(self, field: FieldDefinition, value: Any) -> Any:
        return self.empty(field) if value is None else value

    def hint(self, field: FieldDefinition) -> Optional[str]:
        return None

    def schema_extras(self, field: FieldDefinition) -> Dict[str, Any]:
        return {}

    def config_error(self, field: FieldDefinition) -> Optional[str]:
        return None


class TextHandler(FieldHandler):
    def __init__(self, widget: str = "input") -> None:
        self.widget = widget

    def coerce(self, field, value, policy="minimum"):
        if value is None:
            return ""
        if isinstance(value, (list, tuple, dict, set)):
            raise ValueError(f"{field.key}: expected text, got {type(value).__name__}.")
        if isinstance(value, bool):
            return "Yes" if value else "No"
        return str(value)


class NumberHandler(FieldHandler):
    widget = "number"

    def empty(self, field):
        return None

    def coerce(self, field, value, policy="minimum"):
        value = _collapse(value)
        if value is None or value == "":
            return None
        return _to_number(value)


class DateHandler(FieldHandler):
    widget = "date"

    def coerce(self, field, value, policy="minimum"):
        if value is None or value == "":
            return ""
        if isinstance(value, datetime):
            return value.date().isoformat()
        if isinstance(value, date):
            return value.isoformat()
        if isinstance(value, str):
            return datetime.strptime(value.strip(), "%Y-%m-%d").date().isoformat()
        raise ValueError(f"{field.key}: expected a YYYY-MM-DD date, got {value!r}.")

    def hint(self, field):
        return "Format: YYYY-MM-DD"


class BooleanHandler(FieldHandler):
    widget = "checkbox"

    def empty(self, field):
        return False

    def coerce(self, field, value, policy="minimum"):
        if value is None:
            return False
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)) and value in (0, 1):
            return bool(value)
        if isinstance(value, str):
            word = value.strip().lower()
            if word in _TRUE_WORDS:
                return True
            if word in _FALSE_WORDS:
                return False
        raise ValueError(f"{field.key}: expected yes/no, got {value!r}.")

    def hint(self, field):
        return "Answer: Yes / No"


class SingleChoiceHandler(FieldHandler):
    widget = "select"

    def coerce(self, field, value, policy="minimum"):
        if value is None or value == "":
            return ""
        if not isinstance(value, str):
            raise ValueError(f"{field.key}: expected one option, got {value!r}.")
        if value not in field.choices:
            raise ValueError(f"{field.key}: {value!r} is not one of the options.")
        return value

    def hint(self, field):
        return f"Options: {', '.join(field.choices)}"

    def schema_extras(self, field):
        return {"options": list(field.choices)}

    def config_error(self, field):
        return None if field.choices else "No options defined."


class MultiChoiceHandler(SingleChoiceHandler):
    widget = "checkbox-group"

    def empty(self, field):
        return []

    def coerce(self, field, value, policy="minimum"):
        if value is None or value == "":
            return []
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            raise ValueError(f"{field.key}: expected a list of options, got {value!r}.")
        selected: List[str] = []
        for item in value:
            if item not in field.choices:
                raise ValueError(f"{field.key}: {item!r} is not one of the options.")
            if item not in selected:
                selected.append(item)
        return selected

    def display(self, field, value):
        return list(value) if value else []

    def split_known(self, field: FieldDefinition, value: Any):
        """Partition a list into known options (in order) and the rest."""
        if not isinstance(value, (list, tuple)):
            return value, []
        known = [item for item in value if item in field.choices]
        return known, [item for item in value if item not in field.choices]


class RatingHandler(FieldHandler):
    widget = "slider"

    def empty(self, field):
        return None

    def coerce(self, field, value, policy="minimum"):
        if not field.has_valid_scale:
            raise ValueError(f"{field.key}: Invalid rating scale configured.")
        value = _collapse(value)
        if value is None or value == "":
            return None
        number = _to_number(value)
        if isinstance(number, float):
            if not number.is_integer():
                raise ValueError(f"{field.key}: ratings are whole numbers, got {value!r}.")
            number = int(number)
        if field.scale_min <= number <= field.scale_max:
            return number
        if policy == "clamp":
            return max(field.scale_min, min(field.scale_max, number))
        return field.scale_min

    def display(self, field, value):
        if not field.has_valid_scale:
            return None
        return field.scale_min if value is None else value

    def hint(self, field):
        if field.scale_min is not None and field.scale_max is not None:
            return f"Rate from {field.scale_min} to {field.scale_max}"
        return "Provide a rating"

    def schema_extras(self, field):
        return {"rating_min": field.scale_min, "rating_max": field.scale_max}

    def config_error(self, field):
        return None if field.has_valid_scale else "Invalid rating scale configured."


HANDLERS: Dict[FieldType, FieldHandler] = {
    FieldType.SHORT_TEXT: TextHandler(),
    FieldType.LONG_TEXT: TextHandler(widget="textarea"),
    FieldType.NUMBER: NumberHandler(),
    FieldType.DATE: DateHandler(),
    FieldType.BOOLEAN: BooleanHandler(),
    FieldType.SINGLE_CHOICE: SingleChoiceHandler(),
    FieldType.MULTI_CHOICE: MultiChoiceHandler(),
    FieldType.RATED_SCALE: RatingHandler(),
}

_unhandled = set(FieldType) - set(HANDLERS)
if _unhandled:
    raise RuntimeError(f"Field types without a handler: {sorted(t.value for t in _unhandled)}")


def handler_for(field: FieldDefinition) -> FieldHandler:
    return HANDLERS[field.type]


def field_hint(field: FieldDefinition) -> Optional[str]:
    return handler_for(field).hint(field)


def field_schema_entry(field: FieldDefinition) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "label": field.label,
        "internal_key": field.key,
        "field_type": field.type.value,
    }
    entry.update(handler_for(field).schema_extras(field))
    return entry
