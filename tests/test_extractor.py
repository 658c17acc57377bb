import pytest

from voiceform.errors import ExtractionFailed, ValidationFailed
from voiceform.extractor import ExtractionClient, build_field_schema, check_extraction_input
from voiceform.models import FieldDefinition, FieldType

FIELDS = [
    FieldDefinition("rating", "Rating", FieldType.RATED_SCALE, scale_min=1, scale_max=5, display_order=2),
    FieldDefinition("name", "Name", FieldType.SHORT_TEXT, display_order=0),
    FieldDefinition("likes_dogs", "Likes dogs", FieldType.BOOLEAN, display_order=1),
]


def test_schema_follows_display_order():
    schema = build_field_schema(FIELDS)
    assert [entry["internal_key"] for entry in schema] == ["name", "likes_dogs", "rating"]
    assert schema[2]["rating_min"] == 1
    assert schema[2]["rating_max"] == 5


@pytest.mark.parametrize("transcript,fields", [("", FIELDS), ("   ", FIELDS), ("hello", [])])
def test_missing_input_is_a_validation_error(transcript, fields):
    with pytest.raises(ValidationFailed) as info:
        check_extraction_input(transcript, fields)
    assert info.value.reason == "Missing data for parsing step."


def test_extract_posts_transcription_and_fields(fake_session, fake_response):
    session = fake_session(
        fake_response(payload={"parsedData": {"name": "Alex", "likes_dogs": True, "rating": 4}})
    )
    client = ExtractionClient("http://llm/api/parse", session=session)
    schema = build_field_schema(FIELDS)

    result = client.extract("My name is Alex.", schema)

    assert result == {"name": "Alex", "likes_dogs": True, "rating": 4}
    _method, url, kwargs = session.calls[0]
    assert url == "http://llm/api/parse"
    assert kwargs["json"] == {"transcription": "My name is Alex.", "fields": schema}


def test_unrequested_keys_are_dropped(fake_session, fake_response):
    session = fake_session(fake_response(payload={"parsedData": {"name": "Alex", "age": 30}}))
    client = ExtractionClient("http://llm", session=session)
    assert client.extract("Alex, 30", build_field_schema(FIELDS)) == {"name": "Alex"}


def test_null_parsed_data_means_nothing_extracted(fake_session, fake_response):
    session = fake_session(fake_response(payload={"parsedData": None}))
    client = ExtractionClient("http://llm", session=session)
    assert client.extract("mumble", build_field_schema(FIELDS)) == {}


def test_error_body_becomes_reason(fake_session, fake_response):
    session = fake_session(fake_response(500, payload={"error": "model unavailable"}))
    client = ExtractionClient("http://llm", session=session)
    with pytest.raises(ExtractionFailed) as info:
        client.extract("hello", build_field_schema(FIELDS))
    assert info.value.reason == "model unavailable"


def test_status_fallback_reason(fake_session, fake_response):
    session = fake_session(fake_response(503, text="Service Unavailable"))
    client = ExtractionClient("http://llm", session=session)
    with pytest.raises(ExtractionFailed) as info:
        client.extract("hello", build_field_schema(FIELDS))
    assert info.value.reason == "Parsing HTTP error! status: 503"


def test_non_object_body_is_malformed(fake_session, fake_response):
    session = fake_session(fake_response(payload=["name"]))
    client = ExtractionClient("http://llm", session=session)
    with pytest.raises(ExtractionFailed):
        client.extract("hello", build_field_schema(FIELDS))
