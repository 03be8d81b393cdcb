import io

import pandas as pd
import pytest

from cardio_intake.decode import decode_spreadsheet, decode_text
from cardio_intake.errors import DecodeError, UnsupportedFileError
from cardio_intake.normalize import normalize_rows


def _xlsx(frame: pd.DataFrame) -> bytes:
    buf = io.BytesIO()
    frame.to_excel(buf, index=False)
    return buf.getvalue()


def test_csv_rows_keyed_by_header():
    rows = decode_spreadsheet("a.csv", b"Name,Age\nJane,52\nBob,40\n")
    assert rows == [{"Name": "Jane", "Age": 52}, {"Name": "Bob", "Age": 40}]


def test_csv_blank_cells_are_omitted_but_rows_kept():
    rows = decode_spreadsheet("a.csv", b"Name,Age\n,52\n,\n\n")
    assert rows == [{"Age": 52}, {}]


def test_csv_semicolon_and_crlf():
    rows = decode_spreadsheet("a.CSV", b"Name;Age\r\nJane;52\r\nBob;40\r\n")
    assert rows[1] == {"Name": "Bob", "Age": 40}


def test_csv_latin1_and_bom():
    raw = "Name,City\nPaul,Montréal\nAnne,Québec\n".encode("latin-1")
    assert decode_spreadsheet("a.csv", raw)[0]["City"] == "Montréal"

    text = decode_text("\ufeffName\nZoë\n".encode("utf-8"))
    assert text.startswith("Name")


def test_blank_cell_lets_later_alias_resolve():
    rows = decode_spreadsheet("a.csv", b"HeartRate,HR\n,66\n")
    assert normalize_rows(rows)[0].resting_hr == 66


def test_xlsx_first_sheet():
    frame = pd.DataFrame({"MRN": [1001, 1002], "Age": [52, None], "Sex": ["F", None]})
    rows = decode_spreadsheet("batch.xlsx", _xlsx(frame))
    assert len(rows) == 2
    assert rows[1] == {"MRN": 1002}

    records = normalize_rows(rows)
    assert records[0].patient_id == "1001"
    assert records[0].age == 52
    assert records[0].gender == "Female"
    assert records[1].age == 45
    assert records[1].gender == "Male"


def test_xlsx_values_are_python_scalars():
    frame = pd.DataFrame({"Angina": [1, 0]})
    rows = decode_spreadsheet("batch.xlsx", _xlsx(frame))
    assert all(type(r["Angina"]) in (int, float) for r in rows)
    assert [r.angina for r in normalize_rows(rows)] == [True, False]


def test_unsupported_extension():
    with pytest.raises(UnsupportedFileError):
        decode_spreadsheet("report.pdf", b"%PDF-1.4")
    with pytest.raises(UnsupportedFileError):
        decode_spreadsheet("noext", b"Name\nA\n")


def test_corrupt_workbook():
    with pytest.raises(DecodeError):
        decode_spreadsheet("broken.xls", b"\x00\x01garbage")


def test_csv_numeric_cells_are_typed():
    rows = decode_spreadsheet("a.csv", b"ID,Angina,METs,Slope,MRN\n7,1,8.5,Flat,007\n")
    assert rows == [{"ID": 7, "Angina": 1, "METs": 8.5, "Slope": "Flat", "MRN": "007"}]
    assert type(rows[0]["Angina"]) is int
    assert type(rows[0]["METs"]) is float


def test_csv_numeric_angina_and_ids():
    records = normalize_rows(decode_spreadsheet("a.csv", b"PatientID,Name,Angina\n1001,A,1\n1002,B,0\n"))
    assert [r.angina for r in records] == [True, False]
    assert [r.patient_id for r in records] == ["1001", "1002"]
