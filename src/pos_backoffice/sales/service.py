from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.date_ranges import DateRange
from ..common.money import ZERO, as_float, format_currency
from ..common.pagination import Page, PageRequest
from ..common.validators import optional_str
from ..core.constants import DEFAULT_INVOICE_PREFIX, MAX_EXPORT_ROWS, WALK_IN_CUSTOMER
from ..core.enums import PaymentStatus
from ..core.exceptions import NotFoundError, ValidationError
from ..spreadsheets.columns import SALES_EXPORT_HEADERS
from ..spreadsheets.writer import ExportFile, write_table
from .model import Order, OrderFilter, OrderItem, ProductSalesRow
from .repository import OrderRepository
from .search import parse_invoice_search

logger = logging.getLogger(__name__)


class SalesService:
    """Sales page: completed orders, their totals and the product summary."""

    def __init__(
        self,
        orders: OrderRepository,
        *,
        invoice_prefix: str = DEFAULT_INVOICE_PREFIX,
        max_export_rows: int = MAX_EXPORT_ROWS,
        clock: Callable[[], datetime] = now_local,
    ):
        self._orders = orders
        self._invoice_prefix = invoice_prefix or DEFAULT_INVOICE_PREFIX
        self._max_export_rows = max_export_rows
        self._clock = clock

    @property
    def invoice_prefix(self) -> str:
        return self._invoice_prefix

    def list_paginated(self, criteria: OrderFilter, page: PageRequest) -> Page[Order]:
        search = parse_invoice_search(criteria.search, self._invoice_prefix)
        return self._orders.list_paginated(criteria, search, page)

    def stats(self, criteria: OrderFilter) -> Dict[str, Any]:
        search = parse_invoice_search(criteria.search, self._invoice_prefix)
        totals = self._orders.stats(criteria, search)
        count = int(totals.get("count", ZERO))
        revenue = totals.get("revenue", ZERO)
        return {
            "totalSales": count,
            "totalRevenue": as_float(revenue),
            "totalDue": as_float(totals.get("due", ZERO)),
            "totalPaid": as_float(totals.get("paid", ZERO)),
            "averageOrderValue": as_float(revenue / count) if count else 0.0,
        }

    def get(self, order_id: str) -> Order:
        order = self._orders.get_by_id(order_id)
        if not order:
            raise NotFoundError("Order not found")
        return order

    def list_items(self, order_id: str) -> Sequence[OrderItem]:
        self.get(order_id)
        return self._orders.list_items(order_id)

    def update_payment(self, order_id: str, data: Mapping[str, Any]) -> Order:
        self.get(order_id)
        status = None
        if "paymentStatus" in data:
            raw = (optional_str(data.get("paymentStatus")) or "").lower()
            try:
                status = PaymentStatus(raw)
            except ValueError:
                raise ValidationError("Payment status must be paid, due or partial")
        method = optional_str(data.get("paymentMethod")) if "paymentMethod" in data else None
        if status is None and method is None:
            raise ValidationError("Nothing to update")
        self._orders.update_payment(order_id, payment_status=status, payment_method=method)
        logger.info("Updated payment of order %s", order_id)
        return self.get(order_id)

    def delete(self, order_id: str) -> None:
        order = self.get(order_id)
        self._orders.delete(order_id)
        logger.info("Deleted order %s", order.invoice_number(self._invoice_prefix))

    def sold_quantities(self, product_ids: Optional[Iterable[str]] = None) -> Dict[str, Decimal]:
        return self._orders.sold_quantities(product_ids)

    def product_summary(
        self,
        period: Optional[DateRange],
        *,
        branch_id: Optional[str],
        search: str,
        page: PageRequest,
    ) -> Page[ProductSalesRow]:
        if not period or not period.start or not period.end:
            raise ValidationError("startDate and endDate are required")
        return self._orders.product_sales(period.start, period.end, branch_id=branch_id, search=search, page=page)

    def export_orders(self, criteria: OrderFilter) -> Sequence[Order]:
        search = parse_invoice_search(criteria.search, self._invoice_prefix)
        return self._orders.list_all(criteria, search, limit=self._max_export_rows)

    def export_row(self, order: Order) -> Dict[str, Any]:
        return {
            "Sale ID": order.id,
            "Invoice No": order.invoice_number(self._invoice_prefix),
            "Date & Time": order.created_at.strftime("%Y-%m-%d %H:%M:%S") if order.created_at else "",
            "Customer Name": order.customer_name or WALK_IN_CUSTOMER,
            "Dining Option": order.dining_option or "",
            "Subtotal": format_currency(order.subtotal),
            "Discount Amount": format_currency(order.discount),
            "Total Amount": format_currency(order.total),
            "Pay by": order.payment_method or "N/A",
            "Payment Status": order.payment_status.value,
            "Order Status": order.status.value,
        }

    def export(self, criteria: OrderFilter, *, fmt: str) -> ExportFile:
        orders = self.export_orders(criteria)
        logger.info("Exporting %d sales", len(orders))
        return write_table(
            [self.export_row(o) for o in orders],
            SALES_EXPORT_HEADERS,
            fmt=fmt,
            prefix="sales_report",
            today=self._clock().date(),
            sheet_name="Sales",
        )
