from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, Optional, Protocol, Sequence

from ..common.pagination import Page, PageRequest
from ..core.enums import PaymentStatus
from .model import Order, OrderFilter, OrderItem, ProductSalesRow
from .search import InvoiceSearch


class OrderRepository(Protocol):
    """Read side of completed sales plus the few edits the sales page allows."""

    def list_paginated(self, criteria: OrderFilter, search: InvoiceSearch, page: PageRequest) -> Page[Order]:
        raise NotImplementedError

    def list_all(self, criteria: OrderFilter, search: InvoiceSearch, *, limit: int) -> Sequence[Order]:
        raise NotImplementedError

    def stats(self, criteria: OrderFilter, search: InvoiceSearch) -> Dict[str, Decimal]:
        """Keys: count, revenue, due, paid."""
        raise NotImplementedError

    def get_by_id(self, order_id: str) -> Optional[Order]:
        raise NotImplementedError

    def list_items(self, order_id: str) -> Sequence[OrderItem]:
        raise NotImplementedError

    def update_payment(
        self,
        order_id: str,
        *,
        payment_status: Optional[PaymentStatus],
        payment_method: Optional[str],
    ) -> bool:
        raise NotImplementedError

    def delete(self, order_id: str) -> bool:
        raise NotImplementedError

    def sold_quantities(self, product_ids: Optional[Iterable[str]] = None) -> Dict[str, Decimal]:
        raise NotImplementedError

    def product_sales(
        self,
        start: datetime,
        end: datetime,
        *,
        branch_id: Optional[str],
        search: str,
        page: PageRequest,
    ) -> Page[ProductSalesRow]:
        raise NotImplementedError
