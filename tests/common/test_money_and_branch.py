from __future__ import annotations

from decimal import Decimal

import pytest

from pos_backoffice.common.branch import resolve_branch_id, with_branch_id
from pos_backoffice.common.money import format_currency, optional_decimal, quantize, to_decimal
from pos_backoffice.common.serialization import to_json_value
from pos_backoffice.core.enums import Role
from pos_backoffice.core.exceptions import ValidationError


def test_to_decimal_accepts_form_input():
    assert to_decimal("$1,250.50") == Decimal("1250.50")
    assert to_decimal(None) == Decimal("0")
    assert to_decimal("  ") == Decimal("0")
    assert to_decimal(3) == Decimal("3")


def test_to_decimal_rejects_garbage():
    with pytest.raises(ValidationError):
        to_decimal("abc", "Price")
    with pytest.raises(ValidationError):
        to_decimal(True)


@pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf"), Decimal("NaN"), "Infinity", "nan"])
def test_to_decimal_rejects_non_finite(value):
    with pytest.raises(ValidationError, match="Salary must be a number"):
        to_decimal(value, "Salary")


def test_optional_decimal_keeps_blank_as_none():
    assert optional_decimal("") is None
    assert optional_decimal("2.5") == Decimal("2.5")


def test_rounding_and_currency_format():
    assert quantize(Decimal("2.345")) == Decimal("2.35")
    assert format_currency(Decimal("1234.5")) == "$1,234.50"
    assert format_currency(Decimal("-3")) == "-$3.00"


def test_with_branch_id_appends_query_param():
    assert with_branch_id("/api/products", None) == "/api/products"
    assert with_branch_id("/api/products", "b1") == "/api/products?branchId=b1"
    assert with_branch_id("/api/products?limit=5", "b1") == "/api/products?limit=5&branchId=b1"


def test_branch_scope_resolution():
    branch_session = {"userType": "branch", "branchId": "b-own"}
    user_session = {"userType": "user", "branchId": "b-home"}

    assert resolve_branch_id({"branchId": "b2"}, branch_session) == "b2"
    assert resolve_branch_id({}, branch_session) == "b-own"
    assert resolve_branch_id({"branchId": "all"}, branch_session) == "b-own"
    assert resolve_branch_id({}, user_session) is None


def test_json_values_for_api_payloads():
    assert to_json_value({"a": Decimal("1.5"), "r": Role.ADMIN, "l": [Decimal("2")]}) == {
        "a": 1.5,
        "r": "admin",
        "l": [2.0],
    }
