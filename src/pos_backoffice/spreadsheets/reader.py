from __future__ import annotations

import io
import zipfile
from typing import Dict, List

import pandas as pd
from openpyxl.utils.exceptions import InvalidFileException

from ..core.exceptions import ValidationError


def read_table(data: bytes, filename: str) -> List[Dict[str, str]]:
    """Read an uploaded CSV or XLSX file into rows of stripped strings.

    Completely blank rows are dropped.
    """
    name = (filename or "").lower()
    buf = io.BytesIO(data)
    try:
        if name.endswith(".xlsx") or name.endswith(".xls"):
            df = pd.read_excel(buf, dtype=str, engine="openpyxl")
        elif name.endswith(".csv") or not name:
            df = pd.read_csv(buf, dtype=str, keep_default_na=False, encoding="utf-8-sig")
        else:
            raise ValidationError("Only .csv and .xlsx files are supported")
    except (ValueError, pd.errors.ParserError) as e:
        raise ValidationError(f"Could not read spreadsheet: {e}")
    except (zipfile.BadZipFile, InvalidFileException, KeyError):
        # legacy .xls or a damaged .xlsx
        raise ValidationError("Could not read spreadsheet: not a valid .xlsx workbook")

    df = df.fillna("")
    rows: List[Dict[str, str]] = []
    for record in df.to_dict(orient="records"):
        row = {str(k).strip(): str(v).strip() for k, v in record.items()}
        if any(row.values()):
            rows.append(row)
    return rows
