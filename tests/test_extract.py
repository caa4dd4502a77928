import json

import pytest

from stockvoice.errors import ResponseParseError, SchemaViolation
from stockvoice.nodes.extract import ChangeExtractor, extract_changes


def test_decodes_changes_in_order():
    raw = json.dumps(
        {
            "changes": [
                {"manufacturer": "Toyota", "part": "bremžu disks", "model": "Corolla", "quantity": 2, "action": "add"},
                {"manufacturer": "BMW", "part": "filtrs", "model": "E46", "quantity": 1, "action": "remove"},
            ]
        },
        ensure_ascii=False,
    )
    batch = ChangeExtractor().extract(raw)
    assert [c.manufacturer for c in batch.changes] == ["Toyota", "BMW"]
    first = batch.changes[0]
    assert (first.part, first.model, first.quantity, first.action) == ("bremžu disks", "Corolla", 2, "add")
    assert batch.changes[1].action == "remove"


def test_missing_quantity_and_action_get_defaults():
    batch = extract_changes('{"changes": [{"manufacturer": "Audi", "part": "lukturis", "model": "A4"}]}')
    change = batch.changes[0]
    assert change.quantity == 1
    assert change.action == "add"


def test_null_quantity_and_action_get_defaults():
    batch = extract_changes('{"changes": [{"manufacturer": "Audi", "part": "x", "model": "A4", "quantity": null, "action": null}]}')
    assert batch.changes[0].quantity == 1
    assert batch.changes[0].action == "add"


def test_surrounding_whitespace_is_trimmed():
    batch = extract_changes('\n\n  {"changes": []}  \n')
    assert batch.changes == []


def test_action_is_lowercased_and_unknown_action_is_kept():
    batch = extract_changes('{"changes": [{"action": " Remove "}, {"action": "sell"}]}')
    assert batch.changes[0].action == "remove"
    assert batch.changes[1].action == "sell"


def test_non_positive_quantity_is_not_rejected_here():
    batch = extract_changes('{"changes": [{"manufacturer": "A", "part": "b", "model": "c", "quantity": 0}]}')
    assert batch.changes[0].quantity == 0


def test_prose_response_raises_parse_error_with_raw_text():
    raw = "Sure! Here is your JSON: {"
    with pytest.raises(ResponseParseError) as exc:
        extract_changes(raw)
    assert exc.value.raw_text == raw


def test_missing_changes_field_raises_schema_violation():
    with pytest.raises(SchemaViolation) as exc:
        extract_changes('{"items": []}')
    assert exc.value.raw_text == '{"items": []}'


@pytest.mark.parametrize("raw", ['[]', '"changes"', '{"changes": {"a": 1}}', '{"changes": null}'])
def test_wrong_top_level_shape_raises_schema_violation(raw):
    with pytest.raises(SchemaViolation):
        extract_changes(raw)


def test_non_object_element_is_kept_with_error():
    batch = extract_changes('{"changes": ["add two discs", {"manufacturer": "A", "part": "b", "model": "c"}]}')
    assert len(batch.changes) == 2
    assert "not an object" in batch.changes[0].error
    assert batch.changes[1].error is None


@pytest.mark.parametrize(
    "field,value",
    [("quantity", 1.5), ("quantity", "two"), ("manufacturer", ["Toyota"]), ("action", 3)],
)
def test_undecodable_field_does_not_fail_the_batch(field, value):
    good = {"manufacturer": "Toyota", "part": "bremžu disks", "model": "Corolla", "quantity": 2}
    bad = {**good, field: value}
    batch = extract_changes(json.dumps({"changes": [good, bad]}))

    assert batch.changes[0].error is None
    assert batch.changes[0].quantity == 2
    assert batch.changes[1].error.startswith(f"{field}=")
    # 其余字段保持原值
    assert batch.changes[1].part == "bremžu disks"


def test_error_key_from_completion_is_ignored():
    batch = extract_changes('{"changes": [{"manufacturer": "A", "part": "b", "model": "c", "error": "boom"}]}')
    assert batch.changes[0].error is None
