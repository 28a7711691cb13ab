from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest
from werkzeug.security import generate_password_hash

from pos_backoffice.common.pagination import paginate
from pos_backoffice.container import Container
from pos_backoffice.core.enums import Role
from pos_backoffice.employees.service import EmployeeService, OrgUnitService
from pos_backoffice.inventory.service import AdjustmentService, InventoryService, MainProductService
from pos_backoffice.main import create_app
from pos_backoffice.payroll.model import StaffSalary
from pos_backoffice.payroll.service import PayrollService
from pos_backoffice.sales.model import Order
from pos_backoffice.sales.service import SalesService
from pos_backoffice.users.model import User
from pos_backoffice.users.service import AuthService

NOW = datetime(2025, 7, 1, 9, 30)


class Users:
    def __init__(self, *users):
        self._users = {u.username: u for u in users}

    def get_by_id(self, user_id):
        return next((u for u in self._users.values() if u.id == user_id), None)

    def get_by_username(self, username):
        return self._users.get(username)

    def list_all(self):
        return []


class Categories:
    def list_all(self):
        return []

    def get_by_id(self, category_id):
        return None

    def get_by_name(self, name):
        return None


class Products:
    def __init__(self):
        self._by_id = {}

    def list_products(self, criteria):
        return [p for p in self._by_id.values() if criteria.matches(p)]

    def list_paginated(self, criteria, page):
        return paginate(self.list_products(criteria), page)

    def get_by_id(self, product_id):
        return self._by_id.get(product_id)

    def get_by_name(self, name, *, branch_id):
        return next((p for p in self._by_id.values() if p.name == name and p.branch_id == branch_id), None)

    def create(self, product):
        self._by_id[product.id] = product
        return product


class Orders:
    def __init__(self, *orders):
        self._orders = list(orders)

    def list_all(self, criteria, search, *, limit):
        return self._orders[:limit]

    def stats(self, criteria, search):
        return {
            "count": len(self._orders),
            "revenue": sum((o.total for o in self._orders), Decimal("0")),
            "due": Decimal("0"),
            "paid": sum((o.total for o in self._orders), Decimal("0")),
        }

    def sold_quantities(self, product_ids=None):
        return {}


class Salaries:
    def __init__(self, *salaries):
        self._by_id = {s.id: s for s in salaries}

    def get_by_id(self, salary_id):
        return self._by_id.get(salary_id)


def _container() -> Container:
    users = Users(
        User(id="u1", username="admin", password_hash=generate_password_hash("secret"), full_name="A", role=Role.ADMIN),
        User(id="u2", username="staff", password_hash=generate_password_hash("secret"), full_name="S", role=Role.STAFF),
    )
    products = Products()
    orders = Orders(Order(id="o1", order_number=7, total=Decimal("12.5"), created_at=NOW))
    return Container(
        auth_service=AuthService(users, Users()),
        employee_service=EmployeeService(None, clock=lambda: NOW),
        position_service=OrgUnitService(None, label="Position"),
        department_service=OrgUnitService(None, label="Department"),
        payroll_service=PayrollService(
            None,
            Salaries(
                StaffSalary(
                    id="s1",
                    employee_id="e1",
                    salary_date=NOW,
                    salary_amount=Decimal("1000"),
                    deduct_salary=Decimal("150"),
                    total_salary=Decimal("850"),
                )
            ),
            None,
            clock=lambda: NOW,
        ),
        inventory_service=InventoryService(Categories(), products, orders, threshold=5, clock=lambda: NOW),
        adjustment_service=AdjustmentService(None, products),
        main_product_service=MainProductService(None, products, orders, Users()),
        sales_service=SalesService(orders, invoice_prefix="INV-", clock=lambda: NOW),
        clock=lambda: NOW,
    )


@pytest.fixture()
def client(monkeypatch):
    monkeypatch.setenv("APP_ENV", "testing")
    app = create_app(container=_container())
    return app.test_client()


def _login(client, username):
    return client.post("/api/auth/login", json={"username": username, "password": "secret"})


def test_requires_login(client):
    resp = client.get("/api/products/paginated")
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Authentication required"}


def test_bad_password(client):
    resp = client.post("/api/auth/login", json={"username": "admin", "password": "nope"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Invalid username or password"


def test_login_and_me(client):
    assert _login(client, "admin").get_json()["user"]["role"] == "admin"
    me = client.get("/api/auth/me").get_json()["user"]
    assert me["username"] == "admin"
    client.post("/api/auth/logout")
    assert client.get("/api/auth/me").status_code == 401


def test_staff_cannot_create_products(client):
    _login(client, "staff")
    resp = client.post("/api/products", json={"name": "Tea", "price": 2})
    assert resp.status_code == 403


def test_admin_creates_and_lists_products(client):
    _login(client, "admin")
    resp = client.post("/api/products", json={"name": "Tea", "price": "2.50", "quantity": 3})
    assert resp.status_code == 201
    assert resp.get_json()["status"] == "low_stock"

    listed = client.get("/api/products/paginated?limit=10").get_json()
    assert listed["total"] == 1
    assert listed["products"][0]["name"] == "Tea"

    bad = client.post("/api/products", json={"name": "", "price": 1})
    assert bad.status_code == 400
    assert bad.get_json() == {"error": "Product name is required"}


def test_missing_product_is_404(client):
    _login(client, "admin")
    assert client.get("/api/products/nope").status_code == 404


def test_sales_stats_and_export(client):
    _login(client, "staff")
    stats = client.get("/api/sales/stats?dateFilter=all").get_json()
    assert stats["totalSales"] == 1
    assert stats["totalRevenue"] == 12.5

    resp = client.get("/api/orders/export?format=csv")
    assert resp.status_code == 200
    assert resp.headers["Content-Disposition"] == "attachment; filename=sales_report_2025-07-01.csv"
    assert "INV-7" in resp.data.decode("utf-8-sig")

    as_json = client.get("/api/orders/export?format=json").get_json()
    assert as_json["orders"][0]["orderNumber"] == 7


def test_invalid_filter_is_400(client):
    _login(client, "staff")
    resp = client.get("/api/sales/stats?paymentStatus=bogus")
    assert resp.status_code == 400


def test_unknown_ledger_kind_is_404(client):
    _login(client, "admin")
    resp = client.get("/api/staff-ledger/bonuses")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "Unknown ledger type: bonuses"}


def test_employee_template_download(client):
    _login(client, "staff")
    resp = client.get("/api/employees/template?format=csv")
    assert resp.status_code == 200
    assert resp.headers["Content-Disposition"] == "attachment; filename=employees_template_2025-07-01.csv"


def test_employee_import_needs_rows(client):
    _login(client, "admin")
    resp = client.post("/api/employees/import", json={"employees": "nope"})
    assert resp.status_code == 400


def test_product_import_template_download(client):
    _login(client, "staff")
    resp = client.get("/api/products/template")
    assert resp.status_code == 200
    assert resp.headers["Content-Disposition"] == "attachment; filename=inventory_import_template_2025-07-01.xlsx"

    as_csv = client.get("/api/products/template?format=csv")
    assert as_csv.data.decode("utf-8-sig").splitlines()[0] == "Product Name,Category,Price (USD),Quantity,Unit"


def test_get_salary_record(client):
    _login(client, "staff")
    salary = client.get("/api/staff-salaries/s1").get_json()
    assert salary["totalSalary"] == 850.0
    assert salary["employeeId"] == "e1"

    missing = client.get("/api/staff-salaries/nope")
    assert missing.status_code == 404
    assert missing.get_json() == {"error": "Salary record not found"}
