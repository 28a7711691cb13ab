from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from ..common.date_ranges import DateRange, YearMonth
from ..common.serialization import to_json_value
from ..core.enums import OrderStatus, PaymentStatus

ZERO = Decimal("0")


@dataclass(frozen=True)
class OrderItem:
    id: str
    order_id: str
    product_id: Optional[str]
    product_name: str
    quantity: Decimal
    price: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return to_json_value(
            {
                "id": self.id,
                "orderId": self.order_id,
                "productId": self.product_id,
                "productName": self.product_name,
                "quantity": self.quantity,
                "price": self.price,
                "total": self.total,
            }
        )


@dataclass(frozen=True)
class Order:
    """A POS order. Completed orders outside due management count as sales."""

    id: str
    order_number: int
    total: Decimal
    subtotal: Decimal = ZERO
    discount: Decimal = ZERO
    paid_amount: Decimal = ZERO
    due_amount: Decimal = ZERO
    status: OrderStatus = OrderStatus.COMPLETED
    payment_status: PaymentStatus = PaymentStatus.PAID
    payment_method: Optional[str] = None
    branch_id: Optional[str] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    dining_option: Optional[str] = None
    order_source: Optional[str] = None
    created_at: Optional[datetime] = None
    items: List[OrderItem] = field(default_factory=list)

    def invoice_number(self, prefix: str) -> str:
        return f"{prefix}{self.order_number}"

    def to_dict(self, *, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "orderNumber": self.order_number,
            "branchId": self.branch_id,
            "customerName": self.customer_name,
            "customerPhone": self.customer_phone,
            "diningOption": self.dining_option,
            "orderSource": self.order_source,
            "subtotal": self.subtotal,
            "discount": self.discount,
            "total": self.total,
            "paidAmount": self.paid_amount,
            "dueAmount": self.due_amount,
            "status": self.status,
            "paymentStatus": self.payment_status,
            "paymentMethod": self.payment_method,
            "createdAt": self.created_at,
        }
        if include_items:
            data["items"] = [i.to_dict() for i in self.items]
        return to_json_value(data)


@dataclass(frozen=True)
class OrderFilter:
    search: str = ""
    branch_id: Optional[str] = None
    payment_method: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None
    min_amount: Optional[Decimal] = None
    max_amount: Optional[Decimal] = None
    date_range: Optional[DateRange] = None
    months: List[YearMonth] = field(default_factory=list)
    product_search: str = ""


@dataclass(frozen=True)
class ProductSalesRow:
    """Quantity and revenue for one product over a period."""

    product_id: Optional[str]
    product_name: str
    quantity: Decimal
    revenue: Decimal

    def to_dict(self) -> dict:
        return to_json_value(
            {
                "productId": self.product_id,
                "product": self.product_name,
                "quantity": self.quantity,
                "revenue": self.revenue,
            }
        )
