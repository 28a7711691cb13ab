from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional, Sequence

from ..common.pagination import Page, PageRequest
from ..core.constants import DUE_MANAGEMENT_SOURCE
from ..core.enums import OrderStatus, PaymentStatus
from ..database.connection import DatabaseConnection
from ..database.mysql_base import WhereBuilder, db_cursor, dec, fetchall, fetchone, like
from .model import Order, OrderFilter, OrderItem, ProductSalesRow
from .repository import OrderRepository
from .search import InvoiceSearch

_ORDER_COLUMNS = """
    o.id, o.order_number, o.branch_id, o.customer_name, o.customer_phone, o.dining_option,
    o.order_source, o.subtotal, o.discount, o.total, o.paid_amount, o.due_amount, o.status,
    o.payment_status, o.payment_method, o.created_at
"""


def _row_to_order(row: dict, items: Sequence[OrderItem] = ()) -> Order:
    return Order(
        id=row["id"],
        order_number=int(row["order_number"]),
        branch_id=row.get("branch_id"),
        customer_name=row.get("customer_name"),
        customer_phone=row.get("customer_phone"),
        dining_option=row.get("dining_option"),
        order_source=row.get("order_source"),
        subtotal=dec(row.get("subtotal")),
        discount=dec(row.get("discount")),
        total=dec(row.get("total")),
        paid_amount=dec(row.get("paid_amount")),
        due_amount=dec(row.get("due_amount")),
        status=OrderStatus(row.get("status") or OrderStatus.COMPLETED.value),
        payment_status=PaymentStatus(row.get("payment_status") or PaymentStatus.PAID.value),
        payment_method=row.get("payment_method"),
        created_at=row.get("created_at"),
        items=list(items),
    )


def _row_to_item(row: dict) -> OrderItem:
    return OrderItem(
        id=row["id"],
        order_id=row["order_id"],
        product_id=row.get("product_id"),
        product_name=row.get("product_name") or "",
        quantity=dec(row.get("quantity")),
        price=dec(row.get("price")),
        total=dec(row.get("total")),
    )


def sales_where(*, branch_id: Optional[str] = None) -> WhereBuilder:
    """Completed orders that did not come from due management."""
    where = WhereBuilder()
    if branch_id:
        where.add("o.branch_id=%s", branch_id)
    where.add("o.status=%s", OrderStatus.COMPLETED.value)
    where.add("(o.order_source IS NULL OR o.order_source<>%s)", DUE_MANAGEMENT_SOURCE)
    return where


def build_order_where(criteria: OrderFilter, search: InvoiceSearch) -> WhereBuilder:
    where = sales_where(branch_id=criteria.branch_id)

    if not search.is_empty:
        if search.order_number is not None:
            where.add("(o.order_number=%s OR LOWER(o.customer_name) LIKE %s)", search.order_number, like(search.term))
        else:
            where.add("LOWER(o.customer_name) LIKE %s", like(search.term))

    method = (criteria.payment_method or "").strip()
    if method and method.lower() != "all":
        # split payments are stored as a comma separated list
        where.add("(o.payment_method=%s OR LOWER(o.payment_method) LIKE %s)", method, like(method))

    if criteria.payment_status:
        where.add("o.payment_status=%s", criteria.payment_status.value)
    if criteria.min_amount is not None:
        where.add("o.total>=%s", criteria.min_amount)
    if criteria.max_amount is not None:
        where.add("o.total<=%s", criteria.max_amount)

    rng = criteria.date_range
    if rng and rng.start:
        where.add("o.created_at>=%s", rng.start)
    if rng and rng.end:
        where.add("o.created_at<=%s", rng.end)

    if criteria.months and not (rng and rng.start and rng.end):
        clauses = []
        params = []
        for year, month in criteria.months:
            clauses.append("(YEAR(o.created_at)=%s AND MONTH(o.created_at)=%s)")
            params.extend([year, month])
        where.add("(" + " OR ".join(clauses) + ")", *params)

    product_term = (criteria.product_search or "").strip()
    if product_term:
        where.add(
            "EXISTS (SELECT 1 FROM order_items oi WHERE oi.order_id=o.id AND LOWER(oi.product_name) LIKE %s)",
            like(product_term),
        )
    return where


class MySQLOrderRepository(OrderRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_paginated(self, criteria: OrderFilter, search: InvoiceSearch, page: PageRequest) -> Page[Order]:
        where = build_order_where(criteria, search)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM orders o {where.sql()}", where.args())
            total = int((fetchone(cur) or {}).get("total") or 0)
            cur.execute(
                f"SELECT {_ORDER_COLUMNS} FROM orders o {where.sql()} ORDER BY o.created_at DESC LIMIT %s OFFSET %s",
                where.args() + (page.limit, page.offset),
            )
            items = [_row_to_order(r) for r in fetchall(cur)]
        return Page(items=items, total=total, limit=page.limit, offset=page.offset)

    def list_all(self, criteria: OrderFilter, search: InvoiceSearch, *, limit: int) -> Sequence[Order]:
        where = build_order_where(criteria, search)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_ORDER_COLUMNS} FROM orders o {where.sql()} ORDER BY o.created_at DESC LIMIT %s",
                where.args() + (limit,),
            )
            return [_row_to_order(r) for r in fetchall(cur)]

    def stats(self, criteria: OrderFilter, search: InvoiceSearch) -> Dict[str, Decimal]:
        where = build_order_where(criteria, search)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS count,
                       COALESCE(SUM(o.total), 0) AS revenue,
                       COALESCE(SUM(o.due_amount), 0) AS due,
                       COALESCE(SUM(o.paid_amount), 0) AS paid
                FROM orders o {where.sql()}
                """,
                where.args(),
            )
            row = fetchone(cur) or {}
        return {
            "count": dec(row.get("count")),
            "revenue": dec(row.get("revenue")),
            "due": dec(row.get("due")),
            "paid": dec(row.get("paid")),
        }

    def get_by_id(self, order_id: str) -> Optional[Order]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_ORDER_COLUMNS} FROM orders o WHERE o.id=%s", (order_id,))
            row = fetchone(cur)
            if not row:
                return None
            cur.execute(
                "SELECT id, order_id, product_id, product_name, quantity, price, total "
                "FROM order_items WHERE order_id=%s ORDER BY product_name",
                (order_id,),
            )
            items = [_row_to_item(r) for r in fetchall(cur)]
        return _row_to_order(row, items)

    def list_items(self, order_id: str) -> Sequence[OrderItem]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, order_id, product_id, product_name, quantity, price, total "
                "FROM order_items WHERE order_id=%s ORDER BY product_name",
                (order_id,),
            )
            return [_row_to_item(r) for r in fetchall(cur)]

    def update_payment(
        self,
        order_id: str,
        *,
        payment_status: Optional[PaymentStatus],
        payment_method: Optional[str],
    ) -> bool:
        sets = []
        params = []
        if payment_status is not None:
            sets.append("payment_status=%s")
            params.append(payment_status.value)
        if payment_method is not None:
            sets.append("payment_method=%s")
            params.append(payment_method)
        if not sets:
            return False
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"UPDATE orders SET {', '.join(sets)} WHERE id=%s", tuple(params) + (order_id,))
            return cur.rowcount > 0

    def delete(self, order_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM order_items WHERE order_id=%s", (order_id,))
            cur.execute("DELETE FROM orders WHERE id=%s", (order_id,))
            return cur.rowcount > 0

    def sold_quantities(self, product_ids: Optional[Iterable[str]] = None) -> Dict[str, Decimal]:
        where = WhereBuilder()
        where.add("o.status=%s", OrderStatus.COMPLETED.value)
        where.add("oi.product_id IS NOT NULL")
        ids = list(product_ids or [])
        if ids:
            where.add(f"oi.product_id IN ({', '.join(['%s'] * len(ids))})", *ids)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT oi.product_id, COALESCE(SUM(oi.quantity), 0) AS sold
                FROM order_items oi
                JOIN orders o ON o.id = oi.order_id
                {where.sql()}
                GROUP BY oi.product_id
                """,
                where.args(),
            )
            return {r["product_id"]: dec(r.get("sold")) for r in fetchall(cur)}

    def product_sales(
        self,
        start: datetime,
        end: datetime,
        *,
        branch_id: Optional[str],
        search: str,
        page: PageRequest,
    ) -> Page[ProductSalesRow]:
        where = sales_where(branch_id=branch_id)
        where.add("o.created_at>=%s", start)
        where.add("o.created_at<=%s", end)
        where.add_search(("COALESCE(p.name, oi.product_name)",), search)
        grouped = f"""
            SELECT oi.product_id, COALESCE(p.name, oi.product_name) AS product_name,
                   SUM(oi.quantity) AS quantity, SUM(oi.total) AS revenue
            FROM order_items oi
            JOIN orders o ON o.id = oi.order_id
            LEFT JOIN products p ON p.id = oi.product_id
            {where.sql()}
            GROUP BY oi.product_id, COALESCE(p.name, oi.product_name)
        """
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM ({grouped}) t", where.args())
            total = int((fetchone(cur) or {}).get("total") or 0)
            cur.execute(
                f"SELECT * FROM ({grouped}) t ORDER BY t.product_name LIMIT %s OFFSET %s",
                where.args() + (page.limit, page.offset),
            )
            items = [
                ProductSalesRow(
                    product_id=r.get("product_id"),
                    product_name=r.get("product_name") or "",
                    quantity=dec(r.get("quantity")),
                    revenue=dec(r.get("revenue")),
                )
                for r in fetchall(cur)
            ]
        return Page(items=items, total=total, limit=page.limit, offset=page.offset)
