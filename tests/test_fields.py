import pytest

from voiceform.fields import HANDLERS, field_hint, field_schema_entry
from voiceform.models import FieldDefinition, FieldType


def test_every_field_type_has_a_handler():
    assert set(HANDLERS) == set(FieldType)


def test_field_type_parse_accepts_aliases():
    assert FieldType.parse("radio") is FieldType.SINGLE_CHOICE
    assert FieldType.parse("dropdown") is FieldType.SINGLE_CHOICE
    assert FieldType.parse("checkbox_group") is FieldType.MULTI_CHOICE
    assert FieldType.parse("number_decimal") is FieldType.NUMBER
    assert FieldType.parse("Email") is FieldType.SHORT_TEXT
    assert FieldType.parse("rating") is FieldType.RATED_SCALE
    with pytest.raises(ValueError):
        FieldType.parse("signature")


def test_from_row_reads_store_columns():
    field = FieldDefinition.from_row(
        {
            "id": 7,
            "label": "Colour",
            "internal_key": "colour",
            "field_type": "radio",
            "display_order": 2,
            "options": ["Red", "Blue"],
            "rating_min": None,
            "rating_max": None,
        }
    )
    assert field.key == "colour"
    assert field.type is FieldType.SINGLE_CHOICE
    assert field.choices == ("Red", "Blue")
    assert field.display_order == 2
    assert field.id == "7"
    assert field.scale_min is None


def test_from_row_defaults_missing_rating_bounds():
    field = FieldDefinition.from_row({"key": "score", "type": "rating"})
    assert (field.scale_min, field.scale_max) == (1, 5)
    assert field.has_valid_scale


def test_hints_follow_field_type():
    choice = FieldDefinition("c", "C", FieldType.MULTI_CHOICE, choices=("A", "B"))
    rating = FieldDefinition("r", "R", FieldType.RATED_SCALE, scale_min=1, scale_max=10)
    assert field_hint(choice) == "Options: A, B"
    assert field_hint(rating) == "Rate from 1 to 10"
    assert field_hint(FieldDefinition("d", "D", FieldType.DATE)) == "Format: YYYY-MM-DD"
    assert field_hint(FieldDefinition("b", "B", FieldType.BOOLEAN)) == "Answer: Yes / No"
    assert field_hint(FieldDefinition("t", "T", FieldType.SHORT_TEXT)) is None


def test_schema_entry_only_carries_members_the_type_needs():
    text = FieldDefinition("name", "Name", FieldType.SHORT_TEXT)
    choice = FieldDefinition("colour", "Colour", FieldType.SINGLE_CHOICE, choices=("Red",))
    rating = FieldDefinition("score", "Score", FieldType.RATED_SCALE, scale_min=0, scale_max=3)

    assert field_schema_entry(text) == {
        "label": "Name",
        "internal_key": "name",
        "field_type": "text",
    }
    assert field_schema_entry(choice)["options"] == ["Red"]
    assert "rating_min" not in field_schema_entry(choice)
    entry = field_schema_entry(rating)
    assert entry["rating_min"] == 0
    assert entry["rating_max"] == 3
    assert "options" not in entry
