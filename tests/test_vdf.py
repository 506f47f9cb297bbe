"""Tests for scrunner.vdf: lossless parse/serialize, navigation, errors."""

from __future__ import annotations

import pathlib

import pytest

import scrunner.errors
import scrunner.vdf

MULTILINE = b"""\
"UserLocalConfigStore"
{
\t// written by Steam
\t"Software"
\t{
\t\t"Valve"
\t\t{
\t\t\t"Name"\t\t"Ada \\"the\\" Tester"
\t\t\t"Count"\t\t42
\t\t}
\t}

\t"Extra"\t"on"\t[$WIN32]
}
"""

SAMPLES = [
    MULTILINE,
    b'Apps { "100" { LaunchOptions "old" } }\n',
    b'"a"{"b""c"}',
    b"\xef\xbb\xbf\"root\"\r\n{\r\n\t\"k\"\t\"v\"\r\n}\r\n",
    b'"root"\n{\n\t"bytes"\t"\xff\xfe raw"\n}\n',
    b'"root" { "empty" { } "path" "C:\\\\Games\\\\x" }\n\n\n',
    b'"Root"\n{\n\t"sub" [$WIN32]\n\t{\n\t\t"a"\t\t"1"\n\t}\n}\n',
    b"",
]


class TestRoundTrip:
    @pytest.mark.parametrize("data", SAMPLES)
    def test_untouched_document_is_byte_identical(self, data: bytes) -> None:
        assert scrunner.vdf.serialize(scrunner.vdf.parse(data)) == data

    @pytest.mark.parametrize("data", SAMPLES)
    def test_reparse_is_structurally_equal(self, data: bytes) -> None:
        document = scrunner.vdf.parse(data)
        again = scrunner.vdf.parse(scrunner.vdf.serialize(document))
        assert again.to_dict() == document.to_dict()

    def test_str_input(self) -> None:
        text = '"a" { "b" "c" }'
        assert scrunner.vdf.serialize(scrunner.vdf.parse(text)) == text.encode()

    def test_parse_file(self, tmp_path: pathlib.Path) -> None:
        path = tmp_path / "x.vdf"
        path.write_bytes(MULTILINE)
        assert scrunner.vdf.parse_file(path).get_leaf(
            ("UserLocalConfigStore", "Software", "Valve", "Count")
        ).value == 42


class TestValues:
    def test_quoted_and_bare_values(self) -> None:
        document = scrunner.vdf.parse(MULTILINE)
        valve = document.get_section(("UserLocalConfigStore", "Software", "Valve"))
        assert valve.get("Name").value == 'Ada "the" Tester'
        assert valve.get("Count").value == 42

    def test_quoted_digits_stay_strings(self) -> None:
        document = scrunner.vdf.parse('"a" { "n" "7" }')
        assert document.get_leaf(("a", "n")).value == "7"

    def test_bare_non_integer_is_string(self) -> None:
        document = scrunner.vdf.parse("a { n 1.5 }")
        assert document.get_leaf(("a", "n")).value == "1.5"

    def test_escapes(self) -> None:
        document = scrunner.vdf.parse(r'"a" { "v" "x\ty\nz\\w\q" }')
        assert document.get_leaf(("a", "v")).value == "x\ty\nz\\w\\q"

    def test_condition_suffix_kept(self) -> None:
        document = scrunner.vdf.parse(MULTILINE)
        leaf = document.get_leaf(("UserLocalConfigStore", "Extra"))
        assert leaf.value == "on"
        assert leaf.suffix == "\t[$WIN32]"

    def test_condition_on_section_kept(self) -> None:
        document = scrunner.vdf.parse(SAMPLES[6])
        sub = document.get_section(("Root", "sub"))
        assert sub.condition == "[$WIN32]\n\t"
        assert sub.get("a").value == "1"

        document.set_leaf(("Root", "sub", "a"), "2")
        assert scrunner.vdf.serialize(document) == SAMPLES[6].replace(b'"1"', b'"2"')

    def test_bracket_value_without_brace_is_a_value(self) -> None:
        document = scrunner.vdf.parse('"a" { "k" [x] }')
        assert document.get_leaf(("a", "k")).value == "[x]"

    def test_bom_recorded(self) -> None:
        assert scrunner.vdf.parse(SAMPLES[3]).bom is True

    def test_to_dict(self) -> None:
        document = scrunner.vdf.parse(MULTILINE)
        assert document.to_dict() == {
            "UserLocalConfigStore": {
                "Software": {"Valve": {"Name": 'Ada "the" Tester', "Count": 42}},
                "Extra": "on",
            }
        }

    def test_deep_nesting(self) -> None:
        depth = 5000
        data = "".join(f'"s{i}" {{ ' for i in range(depth)) + '"k" "v" ' + "} " * depth
        document = scrunner.vdf.parse(data)
        path = tuple(f"s{i}" for i in range(depth)) + ("k",)
        assert document.get_leaf(path).value == "v"
        assert scrunner.vdf.serialize(document) == data.encode()
        assert len(document.to_dict()) == 1


class TestErrors:
    @pytest.mark.parametrize(
        "data, message",
        [
            ('"a" { "b" "c"', "not closed"),
            ('"a" { "b" "c" } }', "unmatched"),
            ('"a" { { } }', "expected a key"),
            ('"a" { "b" "c" "b" "d" }', "duplicate key"),
            ('"a" { "b"', "after key"),
            ('"a" { "b" }', "has no value"),
            ('"a" "b"', "top level"),
            ('"a" { "b" "unterminated }', "unterminated"),
        ],
    )
    def test_malformed(self, data: str, message: str) -> None:
        with pytest.raises(scrunner.errors.MalformedFormat, match=message):
            scrunner.vdf.parse(data)

    def test_error_position(self) -> None:
        with pytest.raises(scrunner.errors.MalformedFormat) as info:
            scrunner.vdf.parse('"a"\n{\n  }\n}\n')
        assert info.value.line == 4
        assert info.value.column == 1
        assert "(line 4, column 1)" in str(info.value)


class TestNavigation:
    def test_get_never_creates(self) -> None:
        document = scrunner.vdf.parse(MULTILINE)
        assert document.get_section(("UserLocalConfigStore", "Nope")) is None
        assert document.get_leaf(("UserLocalConfigStore", "Nope", "x")) is None
        assert scrunner.vdf.serialize(document) == MULTILINE

    def test_get_is_case_sensitive(self) -> None:
        document = scrunner.vdf.parse(MULTILINE)
        assert document.get_section("userlocalconfigstore") is None

    def test_get_section_through_leaf_is_none(self) -> None:
        document = scrunner.vdf.parse(MULTILINE)
        assert document.get_section(("UserLocalConfigStore", "Extra", "x")) is None

    def test_get_or_create_through_leaf_raises(self) -> None:
        document = scrunner.vdf.parse(MULTILINE)
        with pytest.raises(ValueError):
            document.get_or_create_section(("UserLocalConfigStore", "Extra", "x"))

    def test_set_leaf_on_section_raises(self) -> None:
        document = scrunner.vdf.parse(MULTILINE)
        with pytest.raises(ValueError):
            document.set_leaf(("UserLocalConfigStore", "Software"), "x")

    def test_set_leaf_at_top_level_raises(self) -> None:
        document = scrunner.vdf.parse(MULTILINE)
        with pytest.raises(ValueError):
            document.set_leaf("loose", "x")

    def test_set_leaf_rejects_other_types(self) -> None:
        document = scrunner.vdf.parse(MULTILINE)
        with pytest.raises(TypeError):
            document.set_leaf(("UserLocalConfigStore", "flag"), True)
        with pytest.raises(TypeError):
            document.set_leaf(("UserLocalConfigStore", "ratio"), 1.5)

    def test_remove_leaf(self) -> None:
        document = scrunner.vdf.parse(MULTILINE)
        assert document.remove_leaf(("UserLocalConfigStore", "Extra")) is True
        assert document.remove_leaf(("UserLocalConfigStore", "Extra")) is False
        assert document.remove_leaf(("UserLocalConfigStore", "Software")) is False
        assert b"Extra" not in scrunner.vdf.serialize(document)

    def test_duplicate_add_raises(self) -> None:
        document = scrunner.vdf.parse(MULTILINE)
        with pytest.raises(ValueError, match="duplicate"):
            document.add(scrunner.vdf.Section("UserLocalConfigStore"))


class TestMutationStyle:
    def test_changed_value_only_touches_its_token(self) -> None:
        document = scrunner.vdf.parse(MULTILINE)
        document.set_leaf(("UserLocalConfigStore", "Software", "Valve", "Count"), 43)
        expected = MULTILINE.replace(b"42", b"43")
        assert scrunner.vdf.serialize(document) == expected

    def test_int_to_str_is_quoted(self) -> None:
        document = scrunner.vdf.parse(MULTILINE)
        document.set_leaf(("UserLocalConfigStore", "Software", "Valve", "Count"), "42")
        assert b'"Count"\t\t"42"' in scrunner.vdf.serialize(document)

    def test_new_nodes_follow_tab_style(self) -> None:
        document = scrunner.vdf.parse('"a"\n{\n\t"b"\t\t"c"\n}\n')
        document.set_leaf(("a", "new", "k"), 'say "hi"')
        assert scrunner.vdf.serialize(document) == (
            b'"a"\n{\n\t"b"\t\t"c"\n'
            b'\t"new"\n\t{\n\t\t"k"\t\t"say \\"hi\\""\n\t}\n}\n'
        )

    def test_new_nodes_keep_crlf(self) -> None:
        document = scrunner.vdf.parse(b'"root"\r\n{\r\n\t"k"\t"v"\r\n}\r\n')
        document.set_leaf(("root", "new", "x"), "1")
        data = scrunner.vdf.serialize(document)
        assert data == (
            b'"root"\r\n{\r\n\t"k"\t"v"\r\n'
            b'\t"new"\r\n\t{\r\n\t\t"x"\t\t"1"\r\n\t}\r\n}\r\n'
        )
        assert data.count(b"\n") == data.count(b"\r\n")

    def test_new_top_level_section(self) -> None:
        document = scrunner.vdf.parse(b"")
        document.set_leaf(("root", "k"), 1)
        data = scrunner.vdf.serialize(document)
        assert data == b'"root"\n{\n\t"k"\t\t1\n}'
        assert scrunner.vdf.parse(data).to_dict() == {"root": {"k": 1}}

    def test_inline_file_end_to_end(self) -> None:
        data = b'Other { "x" "1" }\nApps { "100" { LaunchOptions "old" } }\nLast { y 2 }\n'
        document = scrunner.vdf.parse(data)
        document.set_leaf(("Apps", "100", "LaunchOptions"), "new")
        document.set_leaf(("Apps", "200", "LaunchOptions"), "new")

        out = scrunner.vdf.serialize(document)
        assert out == (
            b'Other { "x" "1" }\n'
            b'Apps { "100" { LaunchOptions "new" } "200" { "LaunchOptions" "new" } }\n'
            b"Last { y 2 }\n"
        )
        assert scrunner.vdf.parse(out).to_dict()["Apps"] == {
            "100": {"LaunchOptions": "new"},
            "200": {"LaunchOptions": "new"},
        }
