from voiceform.models import FieldDefinition, FieldType
from voiceform.pipeline import CaptureSession, Phase
from voiceform.renderer import build_review_views, render_field_list, render_session
from voiceform.review import ReviewState

FIELDS = [
    FieldDefinition("name", "Full  Name", FieldType.SHORT_TEXT),
    FieldDefinition("pets", "Pets", FieldType.MULTI_CHOICE, choices=("dog", "cat")),
    FieldDefinition("score", "Score", FieldType.RATED_SCALE, scale_min=1, scale_max=10),
]
BROKEN = FieldDefinition("stars", "Stars", FieldType.RATED_SCALE, scale_min=5, scale_max=1)


def make_session(phase, fields=FIELDS):
    return CaptureSession(review=ReviewState(fields), phase=phase)


def test_fields_are_locked_outside_review():
    for phase in Phase:
        views = build_review_views(make_session(phase))
        if phase is Phase.REVIEWING:
            assert all(view.accepts_input for view in views)
        else:
            assert not any(view.accepts_input for view in views)


def test_invalid_rating_scale_renders_message():
    session = make_session(Phase.REVIEWING, FIELDS + [BROKEN])
    view = build_review_views(session)[-1]
    assert view.widget == "message"
    assert view.message == "Invalid rating scale configured."
    assert not view.accepts_input


def test_field_list_includes_hints():
    lines = render_field_list(FIELDS)
    assert lines[0] == "- Full Name"
    assert lines[1] == "- Pets (Options: dog, cat)"
    assert lines[2] == "- Score (Rate from 1 to 10)"
    assert render_field_list([]) == ["- No fields defined."]


def test_prompting_shows_permission_warning():
    session = make_session(Phase.PROMPTING)
    session.permission_warning = "Microphone permission denied."
    text = render_session(session, "Pet survey")
    assert text.startswith("# Pet survey")
    assert "## Instructions" in text
    assert "! Microphone permission denied." in text


def test_review_shows_values_and_transcript():
    session = make_session(Phase.REVIEWING)
    session.review.populate({"name": "Alex", "pets": ["cat"], "score": 7})
    session.transcript = "I'm Alex, I have a cat, seven out of ten."
    text = render_session(session)
    assert "- Full Name [name]: Alex" in text
    assert "- Pets [pets]: cat  options: dog, cat" in text
    assert "- Score [score]: 7  range: 1-10" in text
    assert "### Transcription" in text


def test_error_shows_reason_and_transcript():
    session = make_session(Phase.ERROR)
    session.last_error = "model unavailable"
    session.transcript = "hello"
    text = render_session(session)
    assert "## Error" in text
    assert "model unavailable" in text
    assert "hello" in text


def test_processing_shows_status_message():
    session = make_session(Phase.PROCESSING)
    session.status_message = "Almost there..."
    assert "Almost there..." in render_session(session)


def test_fields_are_locked_while_a_new_recording_is_requested():
    session = make_session(Phase.REVIEWING)
    session.requesting_device = True
    assert not any(view.accepts_input for view in build_review_views(session))
