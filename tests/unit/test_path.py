# tests/unit/test_path.py

from __future__ import annotations
import sys
from pathlib import Path
import pytest

# Make "src" importable
sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "src"))

from unichat.core.errors import ConfigError
from unichat.protocol.path import extract, extract_text, parse_path


def test_extract_nested_hit():
    doc = {"choices": [{"message": {"content": "hi"}}]}
    assert extract(doc, "choices[0].message.content") == "hi"


def test_extract_missing_is_absent_not_error():
    assert extract({}, "choices[0].message.content") is None


def test_extract_custom_template_path():
    assert extract({"a": {"b": ["x", "y"]}}, "a.b[1]") == "y"


@pytest.mark.parametrize("doc, path", [
    ({"a": [1, 2]}, "a[5]"),           # index out of bounds
    ({"a": "text"}, "a[0]"),           # indexing a string
    ({"a": 3}, "a.b"),                 # field on a number
    ({"a": [{"b": 1}]}, "a.b"),        # field on a list
    ({"a": {"0": "x"}}, "a[0]"),       # index on a dict
    (None, "a"),
])
def test_extract_stops_quietly(doc, path):
    assert extract(doc, path) is None


def test_extract_multi_index_and_top_level_array():
    assert extract({"grid": [[0, 1], [2, 3]]}, "grid[1][0]") == 2
    assert extract([{"text": "t"}], "[0].text") == "t"


def test_extract_never_raises_on_malformed_path():
    assert extract({"a": 1}, "a..b") is None
    assert extract({"a": 1}, "a[x]") is None
    assert extract({"a": 1}, "") is None


def test_parse_path_rejects_bad_syntax():
    assert parse_path("choices[0].delta.content") == ("choices", 0, "delta", "content")
    for bad in ("", "a..b", "a[-1]", "a[b]", "a.[0]", "a]"):
        with pytest.raises(ConfigError):
            parse_path(bad)


def test_extract_text_coercion():
    doc = {"s": "x", "n": 3, "o": {"k": 1}, "z": None}
    assert extract_text(doc, "s") == "x"
    assert extract_text(doc, "n") == "3"
    assert extract_text(doc, "o") == '{"k": 1}'
    assert extract_text(doc, "z") == ""
    assert extract_text(doc, "missing") == ""
