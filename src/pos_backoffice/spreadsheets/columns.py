"""Spreadsheet headers for exports and accepted header variants for imports.

Export headers are part of the file format users exchange with other tools;
keep them byte-for-byte stable.
"""

from __future__ import annotations

import re
from collections import abc
from typing import Any, Dict, Mapping, Sequence

from ..core.exceptions import ValidationError

EMPLOYEE_EXPORT_HEADERS = [
    "Employee ID",
    "Name",
    "Position",
    "Department",
    "Email",
    "Phone",
    "Joining Date",
    "Salary",
    "Photo URL",
    "Status",
]

EMPLOYEE_TEMPLATE_HEADERS = EMPLOYEE_EXPORT_HEADERS

SALARY_EXPORT_HEADERS = ["Employee", "Salary Date", "Salary Amount", "Deductions", "Total"]

PRODUCT_EXPORT_HEADERS = [
    "Product Name",
    "Category",
    "Purchase Price (USD)",
    "Selling Price (USD)",
    "Quantity",
    "Unit",
    "Sold Out",
    "Available",
    "Status",
]

PRODUCT_EXPORT_XLSX_HEADERS = PRODUCT_EXPORT_HEADERS + ["Profit Margin"]

# price cell for products priced per size
PER_SIZE = "Per size"

PRODUCT_TEMPLATE_HEADERS = ["Product Name", "Category", "Price (USD)", "Quantity", "Unit"]

SALES_EXPORT_HEADERS = [
    "Sale ID",
    "Invoice No",
    "Date & Time",
    "Customer Name",
    "Dining Option",
    "Subtotal",
    "Discount Amount",
    "Total Amount",
    "Pay by",
    "Payment Status",
    "Order Status",
]

# canonical key -> squashed header spellings accepted on import
EMPLOYEE_IMPORT_ALIASES: Dict[str, Sequence[str]] = {
    "employeeId": ("employeeid", "empid"),
    "name": ("name", "fullname", "employeename"),
    "position": ("position", "title"),
    "department": ("department", "dept"),
    "email": ("email", "emailaddress"),
    "phone": ("phone", "phonenumber", "mobile"),
    "joiningDate": ("joiningdate", "joindate", "datejoined"),
    "salary": ("salary", "basesalary"),
    "photoUrl": ("photourl", "photo"),
    "status": ("status",),
}

PRODUCT_IMPORT_ALIASES: Dict[str, Sequence[str]] = {
    "name": ("productname", "name"),
    "category": ("category", "categoryname"),
    "price": ("priceusd", "sellingpriceusd", "price", "sellingprice"),
    "purchaseCost": ("purchasepriceusd", "purchaseprice", "purchasecost", "cost"),
    "quantity": ("quantity", "qty", "stock"),
    "unit": ("unit",),
    "description": ("description",),
    "barcode": ("barcode",),
}

_NON_ALNUM = re.compile(r"[^a-z0-9]")


def squash(header: str) -> str:
    """'Employee ID', 'employee_id' and 'employeeId' all become 'employeeid'."""
    return _NON_ALNUM.sub("", str(header).lower())


def normalize_row_keys(row: Any, aliases: Mapping[str, Sequence[str]]) -> Dict[str, Any]:
    if not isinstance(row, abc.Mapping):
        raise ValidationError("Row must be an object with column headers")
    lookup = {variant: key for key, variants in aliases.items() for variant in variants}
    out: Dict[str, Any] = {}
    for header, value in row.items():
        key = lookup.get(squash(header))
        if key and (key not in out or out[key] in (None, "")):
            out[key] = value
    return out
