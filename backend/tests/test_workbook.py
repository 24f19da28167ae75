import io
import zipfile
from datetime import datetime

import pytest
from openpyxl import Workbook

from result_portal.exceptions import DecodeError
from result_portal.services.workbook import decode_workbook


def _xlsx_bytes(sheets):
    workbook = Workbook()
    workbook.remove(workbook.active)
    for name, rows in sheets.items():
        worksheet = workbook.create_sheet(title=name)
        for row in rows:
            worksheet.append(row)
    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def test_xlsx_sheets_keep_workbook_order(tmp_path):
    path = tmp_path / "results.xlsx"
    path.write_bytes(_xlsx_bytes({
        "Batch-9B": [["Name", "Reg"], ["Alice", 2024001]],
        "Batch-5D": [["Name", "Reg"], ["Bob", 2024002]],
    }))

    sheets = decode_workbook(path)

    assert [s.name for s in sheets] == ["Batch-9B", "Batch-5D"]
    assert sheets[0].rows == [["Name", "Reg"], ["Alice", 2024001]]


def test_xlsx_cells_are_normalized():
    data = _xlsx_bytes({"S": [[85.0, 72.5, True, datetime(2024, 3, 1), "  "]]})

    sheet, = decode_workbook(data)

    assert sheet.rows == [[85, 72.5, "TRUE", "2024-03-01T00:00:00", None]]


def test_rows_are_padded_to_rectangle():
    data = _xlsx_bytes({"S": [["a"], ["b", "c", "d"]]})

    sheet, = decode_workbook(data)

    assert sheet.rows == [["a", None, None], ["b", "c", "d"]]


def test_csv_is_read_as_single_sheet(tmp_path):
    path = tmp_path / "results.csv"
    path.write_text("Name;Reg;Mark\nAlice;2024001;85\n", encoding="utf-8")

    sheet, = decode_workbook(path)

    assert sheet.name == "Sheet1"
    assert sheet.rows == [["Name", "Reg", "Mark"], ["Alice", "2024001", "85"]]


def test_csv_with_byte_order_mark():
    sheet, = decode_workbook("\ufeffName,Reg\nAlice,1\n".encode("utf-8"))

    assert sheet.rows[0] == ["Name", "Reg"]


@pytest.mark.parametrize("data", [
    b"",
    b"   \n",
    b"\x00\x01\x02\x03garbage",
    b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64,
    b"PK\x03\x04 this is not really a zip",
])
def test_unrecognizable_content_raises_decode_error(data):
    with pytest.raises(DecodeError):
        decode_workbook(data)


def test_zip_that_is_not_a_workbook_raises_decode_error():
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        archive.writestr("readme.txt", "hello")

    with pytest.raises(DecodeError):
        decode_workbook(buffer.getvalue())


def test_xlsx_with_truncated_sheet_xml_raises_decode_error():
    data = _xlsx_bytes({"Batch-9B": [["SL", "Name", "Reg", "Mark"], [1, "Alice", "2024001", 85]]})
    rebuilt = io.BytesIO()
    with zipfile.ZipFile(io.BytesIO(data)) as source, zipfile.ZipFile(rebuilt, "w") as target:
        for item in source.infolist():
            content = source.read(item.filename)
            if item.filename == "xl/worksheets/sheet1.xml":
                content = content[:len(content) // 2]
            target.writestr(item, content)

    with pytest.raises(DecodeError, match="not a valid Excel workbook"):
        decode_workbook(rebuilt.getvalue())


def test_missing_file_raises_decode_error(tmp_path):
    with pytest.raises(DecodeError):
        decode_workbook(tmp_path / "missing.xlsx")
