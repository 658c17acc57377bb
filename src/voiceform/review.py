"""Editable field values during review."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from .fields import RATING_POLICIES, handler_for
from .models import FieldDefinition, FieldType

logger = logging.getLogger("voiceform")


class ReviewState:
    """Mapping of field key to value, coerced per field type.

    Keys are always a subset of the fields the store was built with. Reads
    never fail for a known key: a field without a value reads as the empty
    default of its type.
    """

    def __init__(
        self,
        fields: Iterable[FieldDefinition],
        rating_policy: str = "minimum",
    ) -> None:
        if rating_policy not in RATING_POLICIES:
            raise ValueError(f"Unknown rating policy: {rating_policy!r}")
        self._fields: Dict[str, FieldDefinition] = {f.key: f for f in fields}
        self._values: Dict[str, Any] = {}
        self.rating_policy = rating_policy

    @property
    def fields(self) -> List[FieldDefinition]:
        return list(self._fields.values())

    def _field(self, key: str) -> FieldDefinition:
        try:
            return self._fields[key]
        except KeyError:
            raise KeyError(f"Unknown field key: {key!r}") from None

    def set(self, key: str, value: Any) -> Any:
        field = self._field(key)
        coerced = handler_for(field).coerce(field, value, self.rating_policy)
        self._values[key] = coerced
        return coerced

    def get(self, key: str) -> Any:
        field = self._field(key)
        handler = handler_for(field)
        if key not in self._values:
            return handler.display(field, None)
        return handler.display(field, self._values[key])

    def toggle_multi_choice(self, key: str, option: str, included: bool) -> List[str]:
        field = self._field(key)
        if field.type is not FieldType.MULTI_CHOICE:
            raise ValueError(f"{key} is not a multi-choice field.")
        if option not in field.choices:
            raise ValueError(f"{key}: {option!r} is not one of the options.")
        current = list(self._values.get(key) or [])
        if included and option not in current:
            current.append(option)
        elif not included and option in current:
            current.remove(option)
        self._values[key] = current
        return list(current)

    def populate(self, mapping: Optional[Mapping[str, Any]]) -> None:
        """Replace every value with extraction output.

        Every field key ends up present. Missing or unusable values fall back
        to the empty default; keys the form does not define are dropped, as are
        multi-choice options outside the field's choices.
        """
        mapping = dict(mapping or {})
        unknown = sorted(set(mapping) - set(self._fields))
        if unknown:
            logger.warning("Dropping unknown extracted keys: %s", ", ".join(unknown))
        self._values = {}
        for key, field in self._fields.items():
            handler = handler_for(field)
            raw = mapping.get(key)
            if field.type is FieldType.MULTI_CHOICE:
                raw, dropped = handler.split_known(field, raw)
                if dropped:
                    logger.warning("Dropping unknown options for %s: %s", key, dropped)
            try:
                self._values[key] = handler.coerce(field, raw, self.rating_policy)
            except ValueError as exc:
                logger.warning("Discarding extracted value for %s: %s", key, exc)
                self._values[key] = handler.empty(field)

    def as_dict(self) -> Dict[str, Any]:
        return {key: self.get(key) for key in self._fields if key in self._values}

    def clear(self) -> None:
        self._values = {}

    def is_empty(self) -> bool:
        return not self._values

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values
