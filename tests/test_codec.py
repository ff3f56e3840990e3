"""tests/test_codec.py — Unit tests for the row codec."""

import pytest
from flatdb import codec
from flatdb.codec import Row, decode_row, encode_row
from flatdb.errors import ArityMismatch, InvalidInput
from flatdb.schema import Schema


# ---------------------------------------------------------------------------
# Delimited-line encoding
# ---------------------------------------------------------------------------

class TestEncodeRow:
    def test_plain_values_unquoted(self):
        assert encode_row(["1", "Ahmet", "Sekmen"]) == "1,Ahmet,Sekmen"

    def test_comma_is_quoted(self):
        assert encode_row(["Doe, Jr.", "x"]) == '"Doe, Jr.",x'

    def test_quote_is_doubled(self):
        assert encode_row(['say "hi"']) == '"say ""hi"""'

    def test_newline_is_quoted(self):
        assert encode_row(["a\nb"]) == '"a\nb"'

    def test_accepts_row(self):
        assert encode_row(Row(["a", "b"])) == "a,b"


class TestDecodeRow:
    def test_plain_line(self):
        assert decode_row("1,Ahmet,Sekmen") == ["1", "Ahmet", "Sekmen"]

    def test_quoted_comma(self):
        assert decode_row('"Doe, Jr.",x') == ["Doe, Jr.", "x"]

    def test_doubled_quote_is_literal(self):
        assert decode_row('"say ""hi""",z') == ['say "hi"', "z"]

    def test_field_made_of_a_quote(self):
        assert decode_row('""""') == ['"']

    def test_trailing_empty_field_kept(self):
        assert decode_row("a,b,") == ["a", "b", ""]

    def test_empty_fields_in_middle(self):
        assert decode_row(",,") == ["", "", ""]

    def test_empty_line_is_one_empty_field(self):
        assert decode_row("") == [""]

    def test_returns_row(self):
        row = decode_row("a,b")
        assert isinstance(row, Row)
        assert row.values == ["a", "b"]


class TestRoundTrip:
    @pytest.mark.parametrize("values", [
        ["1", "Ahmet", "Sekmen", "sekmenahmet04@gmail.com"],
        ["Doe, Jr.", "", "x"],
        ['"quoted"', 'mid"dle', '""'],
        ["line one\nline two", "tab\there", "cr\rhere"],
        ["", "", ""],
        ["trailing", ""],
        [",", '"', "\n"],
    ])
    def test_decode_inverts_encode(self, values):
        assert decode_row(encode_row(values)) == values


class TestIterRecords:
    def test_joins_lines_inside_quotes(self):
        lines = ["h1,h2\n", '"first\n', 'second",x\n', "a,b\n"]
        records = list(codec.iter_records(lines))
        assert records == [(0, "h1,h2"), (1, '"first\nsecond",x'), (3, "a,b")]

    def test_line_without_terminator(self):
        assert list(codec.iter_records(["a,b"])) == [(0, "a,b")]

    def test_unterminated_quote_at_eof(self):
        assert list(codec.iter_records(['"open\n', "still\n"])) == [(0, '"open\nstill')]

    def test_crlf_terminator_removed(self):
        assert list(codec.iter_records(["a,b\r\n", "c,d\r\n"])) == [(0, "a,b"), (1, "c,d")]

    def test_quoted_carriage_return_kept(self):
        line = encode_row(["x", "y\r"]) + "\r\n"
        [(_, text)] = codec.iter_records([line])
        assert decode_row(text) == ["x", "y\r"]


class TestValidate:
    def test_matching_arity_passes(self):
        codec.validate(["1", "a"], Schema(["id", "name"]))

    def test_mismatch_raises(self):
        with pytest.raises(ArityMismatch) as exc:
            codec.validate(["1"], Schema(["id", "name"]))
        assert exc.value.got == 1
        assert exc.value.expected == 2

    def test_mismatch_is_value_error(self):
        with pytest.raises(ValueError):
            codec.validate(["1", "2", "3"], Schema(["id", "name"]))


class TestRowAccess:
    def test_get_by_index(self):
        row = Row(["1", "Ahmet"])
        assert row.get(1) == "Ahmet"
        assert row.get(5) is None

    def test_get_by_name(self):
        schema = Schema(["id", "name"])
        row = Row(["1", "Ahmet"])
        assert row.get_by_name(schema, "name") == "Ahmet"
        assert row.get_by_name(schema, "nope") is None


# ---------------------------------------------------------------------------
# Typed value encoding
# ---------------------------------------------------------------------------

class TestTextToValue:
    @pytest.mark.parametrize("text, expected", [
        ("NULL", None),
        ("42", 42),
        ("-7", -7),
        ("3.5", 3.5),
        ("1e3", 1000.0),
        ("true", True),
        ("false", False),
        ("[1,2]", [1, 2]),
        ('{"a":1}', {"a": 1}),
        ("hello", "hello"),
        ("", ""),
    ])
    def test_conversion(self, text, expected):
        value = codec.text_to_value(text)
        assert value == expected
        assert type(value) is type(expected)

    def test_broken_array_stays_string(self):
        assert codec.text_to_value("[not json]") == "[not json]"

    def test_brace_text_that_is_not_an_object(self):
        assert codec.text_to_value("{oops}") == "{oops}"

    def test_non_finite_stays_string(self):
        assert codec.text_to_value("nan") == "nan"
        assert codec.text_to_value("inf") == "inf"

    @pytest.mark.parametrize("text", ["\u0661\u0662", "\uff11\uff12", "1.\u0665"])
    def test_non_ascii_digits_stay_string(self, text):
        assert codec.text_to_value(text) == text


class TestValueToText:
    @pytest.mark.parametrize("value, expected", [
        (None, "NULL"),
        (True, "true"),
        (False, "false"),
        (12, "12"),
        (2.5, "2.5"),
        ("text", "text"),
        ([1, "a"], '[1,"a"]'),
        ({"k": [True]}, '{"k":[true]}'),
    ])
    def test_conversion(self, value, expected):
        assert codec.value_to_text(value) == expected

    def test_unsupported_type(self):
        with pytest.raises(InvalidInput):
            codec.value_to_text(object())

    @pytest.mark.parametrize("value", [[float("nan")], {"x": float("inf")}])
    def test_non_finite_inside_container_rejected(self, value):
        with pytest.raises(InvalidInput):
            codec.value_to_text(value)

    def test_dumps_compact_rejects_nan(self):
        with pytest.raises(ValueError):
            codec.dumps_compact({"x": float("nan")})

    def test_string_null_is_ambiguous(self):
        # accepted limitation of the typed bridge
        assert codec.text_to_value(codec.value_to_text("NULL")) is None


class TestObjects:
    SCHEMA = Schema(["id", "firstname", "lastname", "email"])

    def test_row_to_object_promotes_numbers(self):
        row = Row(["1", "Ahmet", "Sekmen", "sekmenahmet04@gmail.com"])
        assert codec.row_to_object(row, self.SCHEMA) == {
            "id": 1,
            "firstname": "Ahmet",
            "lastname": "Sekmen",
            "email": "sekmenahmet04@gmail.com",
        }

    def test_row_to_object_short_row(self):
        assert codec.row_to_object(["1"], self.SCHEMA) == {"id": 1}

    def test_row_from_object_fills_missing_with_empty(self):
        row = codec.row_from_object({"id": 2, "email": None}, self.SCHEMA)
        assert row == ["2", "", "", "NULL"]

    def test_row_from_object_ignores_unknown_keys(self):
        row = codec.row_from_object({"id": 3, "phone": "555"}, self.SCHEMA)
        assert row == ["3", "", "", ""]

    def test_row_from_object_rejects_non_object(self):
        with pytest.raises(InvalidInput):
            codec.row_from_object([1, 2], self.SCHEMA)
