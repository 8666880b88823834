"""
CSV rendering of record sets.
"""

import csv
import io
from datetime import datetime, timezone

import pytest

from elbtal_backup.errors import SerializationError
from elbtal_backup.export.csv_writer import records_to_csv, render_value


def test_empty_record_set_is_empty_string():
    assert records_to_csv([]) == ""


def test_header_and_one_line_per_row():
    rows = [
        {"id": "c1", "vorname": "Erika", "plz": "20095"},
        {"id": "c2", "vorname": "Max", "plz": "22301"},
        {"id": "c3", "vorname": "Jana", "plz": "21029"},
    ]
    text = records_to_csv(rows)

    lines = text.split("\n")
    assert len(lines) == 4
    assert lines[0] == "id,vorname,plz"
    assert lines[1] == "c1,Erika,20095"
    assert not text.endswith("\n")


def test_embedded_quote_and_comma_are_escaped():
    text = records_to_csv([{"value": 'a,b"c'}])
    assert text == 'value\n"a,b""c"'


def test_missing_and_none_values_render_empty():
    rows = [
        {"id": "c1", "ort": "Hamburg", "status": "new"},
        {"id": "c2", "ort": None},
    ]
    assert records_to_csv(rows).split("\n")[2] == "c2,,"


def test_header_comes_from_first_row_only():
    rows = [
        {"id": "c1", "ort": "Hamburg"},
        {"id": "c2", "ort": "Kiel", "extra": "ignored"},
    ]
    assert records_to_csv(rows) == "id,ort\nc1,Hamburg\nc2,Kiel"


def test_reader_round_trip_with_line_breaks():
    rows = [
        {"id": "c1", "nachricht": "Guten Tag,\nich habe \"Fragen\"."},
        {"id": "c2", "nachricht": "kurz"},
    ]
    parsed = list(csv.reader(io.StringIO(records_to_csv(rows))))
    assert parsed == [
        ["id", "nachricht"],
        ["c1", "Guten Tag,\nich habe \"Fragen\"."],
        ["c2", "kurz"],
    ]


def test_render_value_types():
    assert render_value(None) is None
    assert render_value(3) == "3"
    assert render_value(True) == "True"
    assert render_value(
        datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)
    ) == "2024-05-01T08:00:00+00:00"
    assert render_value({"a": 1, "b": [1, 2]}) == '{"a":1,"b":[1,2]}'


def test_same_rows_render_identically():
    rows = [{"id": "c1", "meta": {"k": "v"}}, {"id": "c2", "meta": None}]
    assert records_to_csv(rows) == records_to_csv([dict(r) for r in rows])


def test_non_mapping_row_raises():
    with pytest.raises(SerializationError):
        records_to_csv([{"id": "c1"}, ("c2",)])


def test_single_empty_column_is_quoted_not_blank():
    text = records_to_csv([{"a": "x"}, {"a": None}, {"a": ""}])

    assert text == 'a\nx\n""\n""'
    assert [r["a"] for r in csv.DictReader(io.StringIO(text))] == ["x", "", ""]
