from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Sequence

import pandas as pd

from ..core.exceptions import ValidationError

CSV_MIMETYPE = "text/csv"
XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
FORMATS = ("csv", "xlsx")


@dataclass(frozen=True)
class ExportFile:
    content: bytes
    mimetype: str
    filename: str


def export_format(value: str | None) -> str:
    fmt = (value or "csv").strip().lower()
    if fmt == "excel":
        fmt = "xlsx"
    if fmt not in FORMATS:
        raise ValidationError("Format must be csv or xlsx")
    return fmt


def attachment_name(prefix: str, ext: str, today: date) -> str:
    return f"{prefix}_{today.strftime('%Y-%m-%d')}.{ext}"


def write_csv(rows: Sequence[Mapping[str, Any]], headers: Sequence[str]) -> bytes:
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=list(headers), extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow(row)
    return out.getvalue().encode("utf-8-sig")


def write_xlsx(rows: Sequence[Mapping[str, Any]], headers: Sequence[str], *, sheet_name: str) -> bytes:
    df = pd.DataFrame(list(rows), columns=list(headers))
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name[:31])
    return output.getvalue()


def write_table(
    rows: Sequence[Mapping[str, Any]],
    headers: Sequence[str],
    *,
    fmt: str,
    prefix: str,
    today: date,
    sheet_name: str = "Sheet1",
) -> ExportFile:
    fmt = export_format(fmt)
    if fmt == "xlsx":
        content = write_xlsx(rows, headers, sheet_name=sheet_name)
        mimetype = XLSX_MIMETYPE
    else:
        content = write_csv(rows, headers)
        mimetype = CSV_MIMETYPE
    return ExportFile(content=content, mimetype=mimetype, filename=attachment_name(prefix, fmt, today))
