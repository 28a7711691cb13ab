from __future__ import annotations

from decimal import Decimal
from typing import Callable, Dict, Iterable, Optional, Protocol, Sequence

from ..common.pagination import Page, PageRequest
from .model import (
    AdjustmentFilter,
    Category,
    InventoryAdjustment,
    MainProduct,
    MainProductItem,
    Product,
    ProductFilter,
    StockChange,
)


class CategoryRepository(Protocol):
    def list_all(self) -> Sequence[Category]:
        raise NotImplementedError

    def get_by_id(self, category_id: str) -> Optional[Category]:
        raise NotImplementedError

    def get_by_name(self, name: str) -> Optional[Category]:
        raise NotImplementedError

    def create(self, category: Category) -> Category:
        raise NotImplementedError


class ProductRepository(Protocol):
    def list_products(self, criteria: ProductFilter) -> Sequence[Product]:
        raise NotImplementedError

    def list_paginated(self, criteria: ProductFilter, page: PageRequest) -> Page[Product]:
        raise NotImplementedError

    def get_by_id(self, product_id: str) -> Optional[Product]:
        raise NotImplementedError

    def get_by_name(self, name: str, *, branch_id: Optional[str]) -> Optional[Product]:
        raise NotImplementedError

    def create(self, product: Product) -> Product:
        raise NotImplementedError

    def update(self, product: Product) -> Product:
        raise NotImplementedError

    def delete(self, product_id: str) -> bool:
        raise NotImplementedError


# (locked product quantity, loader for the product's adjustments oldest first) -> new quantity
QuantityUpdate = Callable[[Decimal, Callable[[], Sequence[InventoryAdjustment]]], Decimal]


class AdjustmentRepository(Protocol):
    """Adjustment writes lock the product row, compute the new quantity from it
    with ``next_quantity`` and store both in the same transaction.
    """

    def list_paginated(self, criteria: AdjustmentFilter, page: PageRequest) -> Page[InventoryAdjustment]:
        raise NotImplementedError

    def list_for_product(self, product_id: str) -> Sequence[InventoryAdjustment]:
        """Oldest first."""
        raise NotImplementedError

    def get_by_id(self, adjustment_id: str) -> Optional[InventoryAdjustment]:
        raise NotImplementedError

    def create(self, adjustment: InventoryAdjustment, *, next_quantity: QuantityUpdate) -> StockChange:
        raise NotImplementedError

    def update(self, adjustment: InventoryAdjustment, *, next_quantity: QuantityUpdate) -> StockChange:
        raise NotImplementedError

    def delete(self, adjustment: InventoryAdjustment, *, next_quantity: QuantityUpdate) -> StockChange:
        raise NotImplementedError


class MainProductRepository(Protocol):
    def list_all(self) -> Sequence[MainProduct]:
        raise NotImplementedError

    def get_by_id(self, main_product_id: str) -> Optional[MainProduct]:
        raise NotImplementedError

    def create(self, main_product: MainProduct) -> MainProduct:
        raise NotImplementedError

    def update(self, main_product: MainProduct) -> MainProduct:
        raise NotImplementedError

    def delete(self, main_product_id: str) -> bool:
        raise NotImplementedError

    def list_items(self, main_product_id: str) -> Sequence[MainProductItem]:
        raise NotImplementedError

    def add_item(self, *, item_id: str, main_product_id: str, product_id: str) -> None:
        raise NotImplementedError

    def remove_item(self, *, main_product_id: str, product_id: str) -> bool:
        raise NotImplementedError


class SoldQuantitySource(Protocol):
    """Quantities sold per product across completed orders."""

    def sold_quantities(self, product_ids: Optional[Iterable[str]] = None) -> Dict[str, Decimal]:
        raise NotImplementedError
