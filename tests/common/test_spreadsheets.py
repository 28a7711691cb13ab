from __future__ import annotations

import io
from datetime import date

import pandas as pd
import pytest

from pos_backoffice.core.exceptions import ValidationError
from pos_backoffice.spreadsheets.columns import (
    EMPLOYEE_IMPORT_ALIASES,
    PRODUCT_IMPORT_ALIASES,
    normalize_row_keys,
    squash,
)
from pos_backoffice.spreadsheets.reader import read_table
from pos_backoffice.spreadsheets.writer import (
    CSV_MIMETYPE,
    XLSX_MIMETYPE,
    attachment_name,
    export_format,
    write_table,
)


def test_header_spellings_collapse():
    assert squash("Employee ID") == squash("employee_id") == squash("employeeId") == "employeeid"


def test_normalize_employee_row_keys():
    row = {"Employee ID": "E007", "Full Name": "Ann", "Joining Date": "2024-01-01", "Unknown": "x"}
    assert normalize_row_keys(row, EMPLOYEE_IMPORT_ALIASES) == {
        "employeeId": "E007",
        "name": "Ann",
        "joiningDate": "2024-01-01",
    }


def test_normalize_product_price_headers():
    row = {"Product Name": "Tea", "Selling Price (USD)": "2.50", "Purchase Price (USD)": "1.00"}
    out = normalize_row_keys(row, PRODUCT_IMPORT_ALIASES)
    assert out["price"] == "2.50"
    assert out["purchaseCost"] == "1.00"


def test_export_format_and_filename():
    assert export_format("excel") == "xlsx"
    assert export_format(None) == "csv"
    with pytest.raises(ValidationError):
        export_format("pdf")
    assert attachment_name("sales_report", "csv", date(2025, 3, 9)) == "sales_report_2025-03-09.csv"


def test_csv_export_has_bom_and_header_order():
    file = write_table(
        [{"B": 2, "A": 1}],
        ["A", "B"],
        fmt="csv",
        prefix="x",
        today=date(2025, 1, 1),
    )
    assert file.mimetype == CSV_MIMETYPE
    assert file.content.startswith(b"\xef\xbb\xbf")
    assert file.content.decode("utf-8-sig").splitlines() == ["A,B", "1,2"]


def test_xlsx_export_readable_by_pandas():
    file = write_table(
        [{"Name": "Tea", "Qty": 3}],
        ["Name", "Qty"],
        fmt="xlsx",
        prefix="inventory",
        today=date(2025, 1, 1),
        sheet_name="Inventory",
    )
    assert file.mimetype == XLSX_MIMETYPE
    assert file.filename == "inventory_2025-01-01.xlsx"
    df = pd.read_excel(io.BytesIO(file.content), sheet_name="Inventory", engine="openpyxl")
    assert list(df.columns) == ["Name", "Qty"]
    assert df.iloc[0]["Name"] == "Tea"


def test_read_csv_strips_and_skips_blank_rows():
    data = "\ufeffName , Salary\n Ann ,100\n,\nBob, 200 \n".encode("utf-8")
    assert read_table(data, "staff.csv") == [
        {"Name": "Ann", "Salary": "100"},
        {"Name": "Bob", "Salary": "200"},
    ]


def test_read_rejects_other_extensions():
    with pytest.raises(ValidationError):
        read_table(b"x", "staff.pdf")


def test_employee_id_alias_ignores_record_uuid():
    row = {"id": "3f2a-uuid", "employeeId": "E777", "name": "Ann"}
    assert normalize_row_keys(row, EMPLOYEE_IMPORT_ALIASES)["employeeId"] == "E777"
    assert "employeeId" not in normalize_row_keys({"id": "3f2a-uuid"}, EMPLOYEE_IMPORT_ALIASES)


def test_normalize_rejects_rows_that_are_not_objects():
    with pytest.raises(ValidationError, match="Row must be an object"):
        normalize_row_keys("junk", EMPLOYEE_IMPORT_ALIASES)
    with pytest.raises(ValidationError):
        normalize_row_keys(["Tea", "2"], PRODUCT_IMPORT_ALIASES)


@pytest.mark.parametrize(
    "data, filename",
    [
        (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1" + b"\x00" * 64, "legacy.xls"),
        (b"PK\x03\x04 truncated", "broken.xlsx"),
        (b"not a workbook at all", "staff.xlsx"),
    ],
)
def test_unreadable_workbook_is_a_validation_error(data, filename):
    with pytest.raises(ValidationError, match="Could not read spreadsheet"):
        read_table(data, filename)
