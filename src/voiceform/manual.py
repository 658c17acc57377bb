"""Typed form entry without a recording."""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from .models import FieldDefinition, FieldType, FormTemplate
from .review import ReviewState

logger = logging.getLogger("voiceform")


class ManualEntry:
    """Answers typed by the user, coerced the same way as reviewed values.

    Only answered fields are submitted. Public entries never carry an actor id
    and redirect to the public confirmation page.
    """

    def __init__(
        self,
        template: FormTemplate,
        persistence,
        public: bool = False,
        actor_id: Optional[str] = None,
        rating_policy: str = "minimum",
    ) -> None:
        self.template = template
        self.persistence = persistence
        self.public = public
        self.actor_id = None if public else actor_id
        self.review = ReviewState(template.fields, rating_policy)
        self.submission_id: Optional[str] = None
        self.redirect_to: Optional[str] = None

    @property
    def boolean_fields(self) -> List[FieldDefinition]:
        return [f for f in self.template.fields if f.type is FieldType.BOOLEAN]

    @property
    def offers_select_all(self) -> bool:
        return len(self.boolean_fields) >= 2

    def answer(self, key: str, value: Any) -> Any:
        return self.review.set(key, value)

    def toggle(self, key: str, option: str, included: bool) -> List[str]:
        return self.review.toggle_multi_choice(key, option, included)

    def select_all(self, value: bool) -> None:
        for field in self.boolean_fields:
            self.review.set(field.key, value)

    def submit(self) -> str:
        if self.submission_id is not None:
            raise RuntimeError("This entry was already submitted.")
        submission_id = self.persistence.save(
            self.template.id, self.review.as_dict(), self.actor_id
        )
        self.submission_id = submission_id
        if self.public:
            self.redirect_to = "/form/submitted"
        else:
            self.redirect_to = f"/submissions/{submission_id}"
        logger.info("Manual entry saved as %s", submission_id)
        return submission_id
