import pytest

from driftcheck.utils.json_extraction import extract_json_from_response, parse_json_object


@pytest.mark.parametrize(
    "content,expected",
    [
        ('{"a": 1}', {"a": 1}),
        ('```json\n{"a": 1}\n```', {"a": 1}),
        ('Here you go:\n```\n{"a": 1}\n```\nDone.', {"a": 1}),
        ('Sure! {"a": {"b": 2}} hope this helps', {"a": {"b": 2}}),
        ('["x", "y"]', {"items": ["x", "y"]}),
    ],
)
def test_parse_json_object_variants(content, expected):
    assert parse_json_object(content) == expected


def test_no_json_raises_value_error():
    with pytest.raises(ValueError):
        extract_json_from_response("   ")
    with pytest.raises(ValueError):
        parse_json_object("no json here")
