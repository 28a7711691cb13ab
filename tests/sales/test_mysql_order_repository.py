from __future__ import annotations

from datetime import datetime
from decimal import Decimal

import pytest

from pos_backoffice.common.pagination import PageRequest
from pos_backoffice.core.enums import AdjustmentType, PaymentStatus
from pos_backoffice.core.exceptions import NotFoundError
from pos_backoffice.inventory.model import InventoryAdjustment
from pos_backoffice.inventory.mysql_inventory_repository import MySQLAdjustmentRepository
from pos_backoffice.sales.model import OrderFilter
from pos_backoffice.sales.mysql_sales_repository import MySQLOrderRepository
from pos_backoffice.sales.search import parse_invoice_search


class FakeCursor:
    def __init__(self, db):
        self._db = db
        self.rowcount = 0
        self._result = []

    def execute(self, sql, params=()):
        self._db.executed.append((" ".join(sql.split()), tuple(params)))
        self._result = self._db.results.pop(0) if self._db.results else []
        self.rowcount = self._db.rowcount

    def fetchone(self):
        return self._result[0] if self._result else None

    def fetchall(self):
        return list(self._result)

    def close(self):
        pass


class FakeConnection:
    def __init__(self, db):
        self._db = db

    def cursor(self, dictionary=False):
        return FakeCursor(self._db)

    def commit(self):
        self._db.commits += 1

    def rollback(self):
        self._db.rollbacks += 1

    def close(self):
        pass


class FakeDatabase:
    """Stands in for DatabaseConnection; records SQL and replays canned results."""

    def __init__(self, *results, rowcount=1):
        self.results = list(results)
        self.executed = []
        self.commits = 0
        self.rollbacks = 0
        self.rowcount = rowcount

    def connect(self):
        return FakeConnection(self)


ORDER_ROW = {
    "id": "o1",
    "order_number": 15,
    "branch_id": "b1",
    "customer_name": None,
    "subtotal": 10.0,
    "discount": None,
    "total": Decimal("10.00"),
    "paid_amount": "10",
    "due_amount": 0,
    "status": "completed",
    "payment_status": "paid",
    "payment_method": "Cash",
    "created_at": datetime(2025, 5, 1, 12, 0),
}


def test_list_paginated_counts_then_pages():
    db = FakeDatabase([{"total": 21}], [ORDER_ROW])
    repo = MySQLOrderRepository(db)
    page = repo.list_paginated(OrderFilter(branch_id="b1"), parse_invoice_search("INV-15"), PageRequest(10, 20))

    assert page.total == 21
    assert page.items[0].order_number == 15
    assert page.items[0].subtotal == Decimal("10.0")
    assert page.items[0].discount == Decimal("0")

    count_sql, count_args = db.executed[0]
    assert count_sql.startswith("SELECT COUNT(*) AS total FROM orders o WHERE o.branch_id=%s")
    list_sql, list_args = db.executed[1]
    assert list_sql.endswith("ORDER BY o.created_at DESC LIMIT %s OFFSET %s")
    assert list_args == count_args + (10, 20)
    assert db.commits == 1


def test_update_payment_builds_partial_set():
    db = FakeDatabase()
    repo = MySQLOrderRepository(db)
    assert repo.update_payment("o1", payment_status=PaymentStatus.PARTIAL, payment_method=None)
    assert db.executed == [("UPDATE orders SET payment_status=%s WHERE id=%s", ("partial", "o1"))]
    assert repo.update_payment("o1", payment_status=None, payment_method=None) is False


def test_delete_removes_items_first():
    db = FakeDatabase()
    MySQLOrderRepository(db).delete("o1")
    assert [sql for sql, _ in db.executed] == [
        "DELETE FROM order_items WHERE order_id=%s",
        "DELETE FROM orders WHERE id=%s",
    ]


def test_sold_quantities_by_product():
    db = FakeDatabase([{"product_id": "p1", "sold": Decimal("4")}, {"product_id": "p2", "sold": None}])
    sold = MySQLOrderRepository(db).sold_quantities(["p1", "p2"])
    assert sold == {"p1": Decimal("4"), "p2": Decimal("0")}
    assert db.executed[0][1] == ("completed", "p1", "p2")


def _adjustment(**kw):
    fields = dict(
        id="a1",
        product_id="p1",
        adjustment_type=AdjustmentType.ADD,
        quantity=Decimal("3"),
        reason="Delivery",
    )
    fields.update(kw)
    return InventoryAdjustment(**fields)


def test_adjustment_locks_product_and_writes_in_one_transaction():
    db = FakeDatabase([{"quantity": Decimal("10")}])
    change = MySQLAdjustmentRepository(db).create(
        _adjustment(),
        next_quantity=lambda current, _history: current + Decimal("3"),
    )
    assert db.executed[0] == ("SELECT quantity FROM products WHERE id=%s FOR UPDATE", ("p1",))
    assert db.executed[1][0].startswith("INSERT INTO inventory_adjustments")
    assert db.executed[2] == ("UPDATE products SET quantity=%s WHERE id=%s", (Decimal("13"), "p1"))
    assert (change.before, change.after) == (Decimal("10"), Decimal("13"))
    # insert + update commit together, then the read-back commits on its own
    assert db.commits == 2


def test_adjustment_delete_reads_history_inside_the_lock():
    history_row = {
        "id": "a0",
        "product_id": "p1",
        "adjustment_type": "add",
        "quantity": Decimal("8"),
        "reason": "Delivery",
        "notes": None,
        "performed_by": None,
        "created_at": datetime(2025, 5, 1, 9, 0),
        "product_name": "Tea",
    }
    db = FakeDatabase([{"quantity": Decimal("20")}], [history_row])
    seen = []

    def replay(current, history):
        seen.extend(a.id for a in history())
        return Decimal("8")

    change = MySQLAdjustmentRepository(db).delete(_adjustment(adjustment_type=AdjustmentType.SET), next_quantity=replay)
    assert seen == ["a0"]
    assert [sql.split(" ")[0] for sql, _ in db.executed] == ["SELECT", "SELECT", "DELETE", "UPDATE"]
    assert change.after == Decimal("8")
    assert db.commits == 1


def test_adjustment_on_missing_product_rolls_back():
    db = FakeDatabase([])
    with pytest.raises(NotFoundError):
        MySQLAdjustmentRepository(db).create(_adjustment(), next_quantity=lambda current, _history: current)
    assert len(db.executed) == 1
    assert db.rollbacks == 1
    assert db.commits == 0


def test_failed_statement_rolls_back():
    class Boom(FakeDatabase):
        def connect(self):
            conn = super().connect()
            conn.cursor = lambda dictionary=False: _Exploding()
            return conn

    class _Exploding(FakeCursor):
        def __init__(self):
            pass

        def execute(self, sql, params=()):
            raise RuntimeError("lost connection")

    db = Boom()
    with pytest.raises(RuntimeError):
        MySQLOrderRepository(db).delete("o1")
    assert db.rollbacks == 1
    assert db.commits == 0
