"""Phase-based text rendering of a capture session."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Optional

from .fields import field_hint, handler_for
from .models import FieldDefinition, FieldType
from .pipeline import CaptureSession, Phase
from .review import ReviewState


@dataclass
class FieldView:
    key: str
    label: str
    widget: str
    value: Any
    disabled: bool
    options: List[str] = field(default_factory=list)
    message: Optional[str] = None
    scale_min: Optional[int] = None
    scale_max: Optional[int] = None

    @property
    def accepts_input(self) -> bool:
        return not self.disabled and self.message is None


def _clean_text(value: str) -> str:
    return " ".join(value.split())


def build_field_view(field: FieldDefinition, review: ReviewState, editable: bool) -> FieldView:
    handler = handler_for(field)
    problem = handler.config_error(field)
    if problem and field.type is FieldType.RATED_SCALE:
        # A broken scale cannot take input in any phase.
        return FieldView(
            key=field.key,
            label=field.label,
            widget="message",
            value=None,
            disabled=True,
            message=problem,
        )
    return FieldView(
        key=field.key,
        label=field.label,
        widget=handler.widget,
        value=review.get(field.key),
        disabled=not editable,
        options=list(field.choices),
        message=problem,
        scale_min=field.scale_min,
        scale_max=field.scale_max,
    )


def build_review_views(session: CaptureSession) -> List[FieldView]:
    editable = session.phase is Phase.REVIEWING and not session.requesting_device
    return [build_field_view(f, session.review, editable) for f in session.review.fields]


def format_value(view: FieldView) -> str:
    value = view.value
    if view.widget == "checkbox":
        return "Yes" if value else "No"
    if view.widget == "checkbox-group":
        return ", ".join(value) if value else "(none)"
    if value is None or value == "":
        return "(empty)"
    return str(value)


def render_field_list(fields: List[FieldDefinition]) -> List[str]:
    if not fields:
        return ["- No fields defined."]
    lines = []
    for item in fields:
        hint = field_hint(item)
        suffix = f" ({_clean_text(hint)})" if hint else ""
        lines.append(f"- {_clean_text(item.label)}{suffix}")
    return lines


def render_review(views: List[FieldView]) -> List[str]:
    lines: List[str] = []
    for view in views:
        lock = "" if view.accepts_input else " [locked]"
        if view.widget == "message":
            lines.append(f"- {_clean_text(view.label)} [{view.key}]: {view.message}")
            continue
        line = f"- {_clean_text(view.label)} [{view.key}]{lock}: {format_value(view)}"
        if view.options:
            line = f"{line}  options: {', '.join(view.options)}"
        elif view.widget == "slider":
            line = f"{line}  range: {view.scale_min}-{view.scale_max}"
        if view.message:
            line = f"{line}  ({view.message})"
        lines.append(line)
    return lines


def render_session(session: CaptureSession, title: str = "") -> str:
    lines: List[str] = []
    if title:
        lines.append(f"# {_clean_text(title)}")
        lines.append("")

    phase = session.phase
    fields = session.review.fields
    if phase is Phase.PROMPTING:
        lines.append("## Instructions")
        lines.append("")
        lines.append("Start recording and clearly state the information for the following fields:")
        lines.extend(render_field_list(fields))
        if session.permission_warning:
            lines.append("")
            lines.append(f"! {session.permission_warning}")
    elif phase is Phase.RECORDING:
        lines.append("## Recording...")
        lines.append("")
        lines.append("Please provide information for:")
        lines.extend(render_field_list(fields))
    elif phase is Phase.PROCESSING:
        lines.append("## Processing Recording")
        lines.append("")
        lines.append(session.status_message or "Working...")
    elif phase in (Phase.REVIEWING, Phase.SUBMITTING):
        lines.append("## Review & Edit")
        lines.append("")
        if phase is Phase.SUBMITTING:
            lines.append("Saving...")
        else:
            lines.append(
                "Please review the extracted information and make any necessary corrections before saving."
            )
        lines.append("")
        lines.extend(render_review(build_review_views(session)))
        if session.regenerate_error:
            lines.append("")
            lines.append(f"! {session.regenerate_error}")
    elif phase is Phase.SUBMITTED:
        lines.append("## Saved")
        lines.append("")
        lines.append(f"Submission: {session.submission_id}")
    elif phase is Phase.ERROR:
        lines.append("## Error")
        lines.append("")
        lines.append(session.last_error or "An unknown error occurred.")
        if session.transcript:
            lines.append("")
            lines.append("### Transcription")
            lines.append("")
            lines.append(session.transcript)
        lines.append("")
        lines.append("Record again to retry.")

    if session.transcript and phase is Phase.REVIEWING:
        lines.append("")
        lines.append("### Transcription")
        lines.append("")
        lines.append(session.transcript)
    lines.append("")
    return "\n".join(lines)
