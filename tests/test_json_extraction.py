"""Tests for locating JSON inside model output."""

import pytest

from food_scanner.domain.errors import MalformedResponseError
from food_scanner.services.json_extraction import extract_json_object


def test_extracts_object_wrapped_in_prose() -> None:
    text = 'Sure! Here you go:\n```json\n{"category": "upf", "confidence": 0.7}\n```'

    assert extract_json_object(text) == {"category": "upf", "confidence": 0.7}


def test_braces_inside_strings_do_not_break_extraction() -> None:
    text = 'Result: {"explanation": "contains } and { characters", "ok": true} done'

    assert extract_json_object(text) == {
        "explanation": "contains } and { characters",
        "ok": True,
    }


def test_skips_unbalanced_prefix_before_real_object() -> None:
    text = 'I think {this is not json. Anyway: {"detected_food": "bread"}'

    assert extract_json_object(text) == {"detected_food": "bread"}


def test_returns_first_of_several_objects() -> None:
    assert extract_json_object('{"a": 1} and {"b": 2}') == {"a": 1}


def test_nested_objects_are_kept_whole() -> None:
    text = '{"sugar": {"sugar_content": 5}, "category": "minimal"}'

    assert extract_json_object(text)["sugar"] == {"sugar_content": 5}


def test_raises_when_no_object_present() -> None:
    with pytest.raises(MalformedResponseError):
        extract_json_object("I cannot analyze this")
