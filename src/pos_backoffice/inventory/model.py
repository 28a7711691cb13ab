from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..common.date_ranges import DateRange
from ..common.serialization import to_json_value
from ..core.constants import DEFAULT_STOCK_THRESHOLD, UNCATEGORIZED
from ..core.enums import AdjustmentType, StockStatus
from .stock import stock_status

ZERO = Decimal("0")


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    description: Optional[str] = None

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "description": self.description}


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    price: Decimal
    quantity: Decimal = ZERO
    purchase_cost: Optional[Decimal] = None
    category_id: Optional[str] = None
    branch_id: Optional[str] = None
    unit: str = "pcs"
    description: Optional[str] = None
    stock_short: Decimal = ZERO
    stock_short_reason: Optional[str] = None
    barcode: Optional[str] = None
    size_prices: Optional[str] = None
    created_at: Optional[datetime] = None
    category_name: Optional[str] = None

    def status(self, threshold: int = DEFAULT_STOCK_THRESHOLD) -> StockStatus:
        return stock_status(self.quantity, threshold)

    @property
    def stock_value(self) -> Decimal:
        return self.quantity * self.price

    @property
    def purchase_value(self) -> Decimal:
        return self.quantity * (self.purchase_cost or ZERO)

    @property
    def has_size_prices(self) -> bool:
        """True when ``size_prices`` holds a non-empty JSON object."""
        if not self.size_prices:
            return False
        try:
            parsed = json.loads(self.size_prices)
        except ValueError:
            return False
        return isinstance(parsed, dict) and bool(parsed)

    def to_dict(self, threshold: int = DEFAULT_STOCK_THRESHOLD) -> dict:
        return to_json_value(
            {
                "id": self.id,
                "name": self.name,
                "price": self.price,
                "purchaseCost": self.purchase_cost,
                "categoryId": self.category_id,
                "categoryName": self.category_name,
                "branchId": self.branch_id,
                "unit": self.unit,
                "description": self.description,
                "quantity": self.quantity,
                "stockShort": self.stock_short,
                "stockShortReason": self.stock_short_reason,
                "barcode": self.barcode,
                "sizePrices": self.size_prices,
                "status": self.status(threshold),
                "createdAt": self.created_at,
            }
        )


@dataclass(frozen=True)
class ProductFilter:
    """Product list criteria. A branch filter also matches unassigned products."""

    search: str = ""
    branch_id: Optional[str] = None
    category_id: Optional[str] = None
    status: Optional[StockStatus] = None
    threshold: int = DEFAULT_STOCK_THRESHOLD
    min_price: Optional[Decimal] = None
    max_price: Optional[Decimal] = None
    in_stock: Optional[bool] = None
    has_shortage: Optional[bool] = None
    created: Optional[DateRange] = None

    def matches(self, product: Product) -> bool:
        if self.branch_id and product.branch_id not in (self.branch_id, None):
            return False
        if self.category_id == UNCATEGORIZED:
            if product.category_id:
                return False
        elif self.category_id and product.category_id != self.category_id:
            return False
        if self.status and product.status(self.threshold) != self.status:
            return False
        if self.min_price is not None and product.price < self.min_price:
            return False
        if self.max_price is not None and product.price > self.max_price:
            return False
        if self.in_stock is True and product.quantity <= 0:
            return False
        if self.in_stock is False and product.quantity > 0:
            return False
        if self.has_shortage is True and product.stock_short <= 0:
            return False
        if self.has_shortage is False and product.stock_short > 0:
            return False
        if self.created and not self.created.contains(product.created_at):
            return False
        term = self.search.strip().lower()
        if term and term not in product.name.lower():
            return False
        return True


@dataclass(frozen=True)
class InventoryAdjustment:
    id: str
    product_id: str
    adjustment_type: AdjustmentType
    quantity: Decimal
    reason: str
    notes: Optional[str] = None
    performed_by: Optional[str] = None
    created_at: Optional[datetime] = None
    product_name: Optional[str] = None

    def to_dict(self) -> dict:
        return to_json_value(
            {
                "id": self.id,
                "productId": self.product_id,
                "productName": self.product_name,
                "adjustmentType": self.adjustment_type,
                "quantity": self.quantity,
                "reason": self.reason,
                "notes": self.notes,
                "performedBy": self.performed_by,
                "createdAt": self.created_at,
            }
        )


@dataclass(frozen=True)
class StockChange:
    """An adjustment write and the product quantity around it."""

    adjustment: InventoryAdjustment
    before: Decimal
    after: Decimal


@dataclass(frozen=True)
class AdjustmentFilter:
    product_id: Optional[str] = None
    adjustment_type: Optional[AdjustmentType] = None
    search: str = ""
    branch_id: Optional[str] = None
    created: Optional[DateRange] = None


@dataclass(frozen=True)
class MainProduct:
    """Groups per-branch products that are the same physical item."""

    id: str
    name: str
    description: Optional[str] = None
    main_stock_count: Decimal = ZERO
    created_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        return to_json_value(
            {
                "id": self.id,
                "name": self.name,
                "description": self.description,
                "mainStockCount": self.main_stock_count,
                "createdAt": self.created_at,
            }
        )


@dataclass(frozen=True)
class MainProductItem:
    id: str
    main_product_id: str
    product: Product

    def to_dict(self) -> dict:
        return {"id": self.id, "mainProductId": self.main_product_id, "product": self.product.to_dict()}
