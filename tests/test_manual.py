import pytest

from voiceform.errors import PersistenceFailed
from voiceform.manual import ManualEntry
from voiceform.models import FieldDefinition, FieldType, FormTemplate
from voiceform.persistence import JsonFileSubmissionStore, SubmissionPersistence

CHECKLIST = FormTemplate(
    id="safety",
    name="Safety checklist",
    fields=[
        FieldDefinition("inspector", "Inspector", FieldType.SHORT_TEXT),
        FieldDefinition("exits_clear", "Exits clear", FieldType.BOOLEAN),
        FieldDefinition("alarm_tested", "Alarm tested", FieldType.BOOLEAN),
        FieldDefinition("areas", "Areas", FieldType.MULTI_CHOICE, choices=("lobby", "roof")),
    ],
)


class RecordingPersistence:
    def __init__(self, submission_id="sub-5", error=None):
        self.submission_id = submission_id
        self.error = error
        self.calls = []

    def save(self, template_id, form_data, actor_id=None):
        self.calls.append((template_id, form_data, actor_id))
        if self.error:
            raise self.error
        return self.submission_id


def test_select_all_sets_every_boolean():
    entry = ManualEntry(CHECKLIST, RecordingPersistence())
    assert entry.offers_select_all
    entry.select_all(True)
    assert entry.review.as_dict() == {"exits_clear": True, "alarm_tested": True}
    entry.select_all(False)
    assert entry.review.get("alarm_tested") is False


def test_select_all_needs_two_boolean_fields():
    single = FormTemplate(
        id="t", name="T", fields=[FieldDefinition("ok", "OK", FieldType.BOOLEAN)]
    )
    assert not ManualEntry(single, RecordingPersistence()).offers_select_all


def test_answers_use_field_coercion():
    entry = ManualEntry(CHECKLIST, RecordingPersistence())
    assert entry.answer("exits_clear", "yes") is True
    assert entry.toggle("areas", "roof", True) == ["roof"]
    with pytest.raises(ValueError):
        entry.answer("areas", ["basement"])


def test_public_submit_drops_actor_and_redirects_to_confirmation():
    persistence = RecordingPersistence()
    entry = ManualEntry(CHECKLIST, persistence, public=True, actor_id="user-1")
    entry.answer("inspector", "Dana")

    assert entry.submit() == "sub-5"
    assert persistence.calls == [("safety", {"inspector": "Dana"}, None)]
    assert entry.redirect_to == "/form/submitted"


def test_signed_in_submit_keeps_actor(tmp_path):
    store = JsonFileSubmissionStore(str(tmp_path))
    entry = ManualEntry(CHECKLIST, SubmissionPersistence(store), actor_id="user-1")
    entry.select_all(True)

    submission_id = entry.submit()

    record = store.get(submission_id)
    assert record.actor_id == "user-1"
    assert record.form_data == {"exits_clear": True, "alarm_tested": True}
    assert entry.redirect_to == f"/submissions/{submission_id}"
    with pytest.raises(RuntimeError):
        entry.submit()


def test_failed_submit_can_be_retried():
    persistence = RecordingPersistence(error=PersistenceFailed("Failed to save submission."))
    entry = ManualEntry(CHECKLIST, persistence)
    with pytest.raises(PersistenceFailed):
        entry.submit()
    persistence.error = None
    assert entry.submit() == "sub-5"
