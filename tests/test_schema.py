"""Tests for schema derivation, serialization and parsing."""

import pytest

from localesync.errors import SchemaParseError, SchemaRoundTripError
from localesync.schema import (derive_schema, flatten_schema, parse_schema, serialize_schema, verify_round_trip,
                               write_schema)


def test_serialize_layout():
    text = serialize_schema(derive_schema(["common.greeting", "common.sign-in", "title"]))
    assert text == (
        "export interface LocaleStructure {\n"
        "\tcommon: {\n"
        "\t\tgreeting: string;\n"
        "\t\t'sign-in': string;\n"
        "\t};\n"
        "\ttitle: string;\n"
        "}\n"
    )


def test_serialization_is_order_independent():
    keys = ["b.x", "a.y", "a.b.c"]
    assert serialize_schema(derive_schema(keys)) == serialize_schema(derive_schema(list(reversed(keys))))


def test_round_trip_with_quoted_and_numeric_segments():
    keys = {"list.0", "list.1", "nav.sign-in", "nav.home", "_private.$x", "deep.a.b.c.d"}
    text = serialize_schema(derive_schema(keys), indent="  ")
    assert parse_schema(text) == keys
    assert flatten_schema(derive_schema(keys)) == sorted(keys)


def test_prefix_conflict_fails_round_trip():
    keys = ["a", "a.b"]
    text = serialize_schema(derive_schema(keys))
    with pytest.raises(SchemaRoundTripError) as excinfo:
        verify_round_trip(keys, text)
    assert excinfo.value.missing == ["a"]


def test_parse_skips_comments_and_blank_lines():
    text = "// generated\n\nexport interface X {\n\t// section\n\ta: string;\n}\n"
    assert parse_schema(text) == {"a"}


@pytest.mark.parametrize("text", [
    "a: string;\n",
    "export interface X {\n\ta: number;\n}\n",
    "export interface X {\n\tb: {\n\t\ta: string;\n}\n",
    "export interface X {\n\texport interface Y {\n\t}\n}\n",
])
def test_parse_errors(text):
    with pytest.raises(SchemaParseError):
        parse_schema(text)


def test_write_schema_only_when_changed(tmp_path):
    path = tmp_path / "i18n" / "types.ts"
    text = serialize_schema(derive_schema(["a.b"]))
    assert write_schema(str(path), text) is True
    mtime = path.stat().st_mtime_ns
    assert write_schema(str(path), text) is False
    assert path.stat().st_mtime_ns == mtime
    assert path.read_text(encoding="utf-8") == text
    assert list(path.parent.iterdir()) == [path]
