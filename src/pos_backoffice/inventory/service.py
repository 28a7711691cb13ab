from __future__ import annotations

import json
import logging
from collections import OrderedDict
from dataclasses import replace
from decimal import Decimal
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from ..common.bulk import ImportResult
from ..common.datetime_utils import now_local
from ..common.money import ZERO, optional_decimal, quantize, to_decimal
from ..common.pagination import Page, PageRequest
from ..common.validators import optional_str, require_non_empty, require_non_negative, require_positive
from ..core.constants import DEFAULT_STOCK_THRESHOLD, MAIN_BRANCH_LABEL
from ..core.enums import AdjustmentType, StockStatus
from ..core.exceptions import ConflictError, NotFoundError, ValidationError
from ..database.mysql_base import new_id
from ..spreadsheets.columns import (
    PER_SIZE,
    PRODUCT_EXPORT_HEADERS,
    PRODUCT_EXPORT_XLSX_HEADERS,
    PRODUCT_IMPORT_ALIASES,
    PRODUCT_TEMPLATE_HEADERS,
    normalize_row_keys,
)
from ..spreadsheets.writer import ExportFile, export_format, write_table
from ..users.repository import BranchRepository
from . import stock
from .model import (
    AdjustmentFilter,
    Category,
    InventoryAdjustment,
    MainProduct,
    Product,
    ProductFilter,
)
from .repository import (
    AdjustmentRepository,
    CategoryRepository,
    MainProductRepository,
    ProductRepository,
    QuantityUpdate,
    SoldQuantitySource,
)

logger = logging.getLogger(__name__)


def _num(value: Decimal) -> float:
    return float(value)


def inventory_stats(products: Sequence[Product], *, threshold: int = DEFAULT_STOCK_THRESHOLD) -> dict:
    statuses = [p.status(threshold) for p in products]
    shortages = [p.stock_short for p in products if p.stock_short > 0]
    return {
        "totalProducts": len(products),
        "lowStockCount": statuses.count(StockStatus.LOW_STOCK),
        "outOfStockCount": statuses.count(StockStatus.OUT_OF_STOCK),
        "totalStockValue": _num(sum((p.stock_value for p in products), ZERO)),
        "totalPurchaseCost": _num(sum((p.purchase_value for p in products), ZERO)),
        "totalQuantity": _num(sum((p.quantity for p in products), ZERO)),
        "totalShortage": _num(sum(shortages, ZERO)),
        "shortageCount": len(shortages),
    }


def _profit_margin(product: Product) -> Any:
    if product.has_size_prices or not product.purchase_cost or product.purchase_cost <= 0:
        return "N/A"
    return f"{quantize(product.price - product.purchase_cost):.2f}"


def _format_qty(value: Decimal) -> str:
    normalized = value.normalize()
    return f"{normalized:f}" if normalized == normalized.to_integral() else str(quantize(value))


class InventoryService:
    """Categories, products, stock status, stats and spreadsheet exchange."""

    def __init__(
        self,
        categories: CategoryRepository,
        products: ProductRepository,
        sold: SoldQuantitySource,
        *,
        threshold: int = DEFAULT_STOCK_THRESHOLD,
        clock: Callable[[], Any] = now_local,
    ):
        self._categories = categories
        self._products = products
        self._sold = sold
        self._threshold = threshold
        self._clock = clock

    @property
    def threshold(self) -> int:
        return self._threshold

    # --- categories -----------------------------------------------------

    def list_categories(self) -> Sequence[Category]:
        return self._categories.list_all()

    def create_category(self, *, name: Any, description: Any = None) -> Category:
        name = require_non_empty(name, "Category name")
        if self._categories.get_by_name(name):
            raise ConflictError(f"Category '{name}' already exists")
        category = self._categories.create(Category(id=new_id(), name=name, description=optional_str(description)))
        logger.info("Created category %s", name)
        return category

    # --- products -------------------------------------------------------

    def list_paginated(self, criteria: ProductFilter, page: PageRequest) -> Page[Product]:
        return self._products.list_paginated(criteria, page)

    def low_stock(self, *, branch_id: Optional[str], page: PageRequest) -> Page[Product]:
        criteria = ProductFilter(branch_id=branch_id, status=StockStatus.LOW_STOCK, threshold=self._threshold)
        return self._products.list_paginated(criteria, page)

    def stats(self, *, branch_id: Optional[str] = None) -> dict:
        products = self._products.list_products(ProductFilter(branch_id=branch_id, threshold=self._threshold))
        return inventory_stats(products, threshold=self._threshold)

    def sold_quantities(self, product_ids: Optional[Sequence[str]] = None) -> Dict[str, Decimal]:
        return self._sold.sold_quantities(product_ids)

    def get_product(self, product_id: str) -> Product:
        product = self._products.get_by_id(product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    def _resolve_category(self, category_id: Any) -> Optional[str]:
        category_id = optional_str(category_id)
        if category_id and not self._categories.get_by_id(category_id):
            raise ValidationError("Category not found")
        return category_id

    def _ensure_unique_name(self, name: str, branch_id: Optional[str], *, exclude_id: Optional[str] = None) -> None:
        existing = self._products.get_by_name(name, branch_id=branch_id)
        if existing and existing.id != exclude_id:
            raise ConflictError(f"Product '{name}' already exists")

    @staticmethod
    def _size_prices(value: Any) -> Optional[str]:
        if value is None or value == "":
            return None
        if isinstance(value, (dict, list)):
            return json.dumps(value)
        return str(value)

    def create_product(self, data: Mapping[str, Any], *, branch_id: Optional[str] = None) -> Product:
        purchase_cost = optional_decimal(data.get("purchaseCost"), "Purchase cost")
        if purchase_cost is not None:
            require_non_negative(purchase_cost, "Purchase cost")
        product = Product(
            id=new_id(),
            name=require_non_empty(data.get("name"), "Product name"),
            price=require_non_negative(to_decimal(data.get("price"), "Price"), "Price"),
            purchase_cost=purchase_cost,
            category_id=self._resolve_category(data.get("categoryId")),
            branch_id=optional_str(data.get("branchId")) or branch_id,
            unit=optional_str(data.get("unit")) or "pcs",
            description=optional_str(data.get("description")),
            quantity=require_non_negative(to_decimal(data.get("quantity"), "Quantity"), "Quantity"),
            stock_short=require_non_negative(to_decimal(data.get("stockShort"), "Stock short"), "Stock short"),
            stock_short_reason=optional_str(data.get("stockShortReason")),
            barcode=optional_str(data.get("barcode")),
            size_prices=self._size_prices(data.get("sizePrices")),
        )
        self._ensure_unique_name(product.name, product.branch_id)
        created = self._products.create(product)
        logger.info("Created product %s", created.name)
        return created

    def update_product(self, product_id: str, data: Mapping[str, Any]) -> Product:
        current = self.get_product(product_id)
        changes: Dict[str, Any] = {}
        if "name" in data:
            changes["name"] = require_non_empty(data.get("name"), "Product name")
        if "price" in data:
            changes["price"] = require_non_negative(to_decimal(data.get("price"), "Price"), "Price")
        if "purchaseCost" in data:
            cost = optional_decimal(data.get("purchaseCost"), "Purchase cost")
            changes["purchase_cost"] = require_non_negative(cost, "Purchase cost") if cost is not None else None
        if "categoryId" in data:
            changes["category_id"] = self._resolve_category(data.get("categoryId"))
        if "branchId" in data:
            changes["branch_id"] = optional_str(data.get("branchId"))
        if "unit" in data:
            changes["unit"] = optional_str(data.get("unit")) or "pcs"
        if "quantity" in data:
            changes["quantity"] = require_non_negative(to_decimal(data.get("quantity"), "Quantity"), "Quantity")
        if "stockShort" in data:
            changes["stock_short"] = require_non_negative(to_decimal(data.get("stockShort"), "Stock short"), "Stock short")
        for key, attr in (
            ("description", "description"),
            ("stockShortReason", "stock_short_reason"),
            ("barcode", "barcode"),
        ):
            if key in data:
                changes[attr] = optional_str(data.get(key))
        if "sizePrices" in data:
            changes["size_prices"] = self._size_prices(data.get("sizePrices"))

        updated = replace(current, **changes)
        if updated.name != current.name or updated.branch_id != current.branch_id:
            self._ensure_unique_name(updated.name, updated.branch_id, exclude_id=current.id)
        saved = self._products.update(updated)
        logger.info("Updated product %s", saved.name)
        return saved

    def delete_product(self, product_id: str) -> None:
        product = self.get_product(product_id)
        self._products.delete(product_id)
        logger.info("Deleted product %s", product.name)

    def export_products(self, criteria: ProductFilter, *, fmt: str) -> ExportFile:
        fmt = export_format(fmt)
        products = self._products.list_products(criteria)
        sold = self._sold.sold_quantities([p.id for p in products])
        rows = []
        for p in products:
            sold_qty = sold.get(p.id, ZERO)
            per_size = p.has_size_prices
            row = {
                "Product Name": p.name,
                "Category": p.category_name or p.category_id or "",
                "Purchase Price (USD)": PER_SIZE if per_size else _num(p.purchase_cost or ZERO),
                "Selling Price (USD)": PER_SIZE if per_size else _num(p.price),
                "Quantity": _num(p.quantity),
                "Unit": p.unit,
                "Sold Out": f"{_format_qty(sold_qty)}/{_format_qty(p.quantity)}",
                # oversold products export a negative availability
                "Available": _num(p.quantity - sold_qty),
                "Status": p.status(criteria.threshold).label,
                "Profit Margin": _profit_margin(p),
            }
            rows.append(row)
        headers = PRODUCT_EXPORT_XLSX_HEADERS if fmt == "xlsx" else PRODUCT_EXPORT_HEADERS
        return write_table(
            rows,
            headers,
            fmt=fmt,
            prefix="inventory",
            today=self._clock().date(),
            sheet_name="Inventory",
        )

    def import_products(self, rows: Sequence[Mapping[str, Any]], *, branch_id: Optional[str] = None) -> ImportResult:
        """Create products from spreadsheet rows; the category must already exist by name."""
        result = ImportResult()
        for index, raw in enumerate(rows):
            label = f"Row {index + 1}"
            try:
                row = normalize_row_keys(raw, PRODUCT_IMPORT_ALIASES)
                name = optional_str(row.get("name"))
                if not name:
                    raise ValidationError("Product Name is required")
                category_name = optional_str(row.get("category")) or ""
                category = self._categories.get_by_name(category_name) if category_name else None
                if not category:
                    raise ValidationError(f'Category "{category_name}" not found for product "{name}"')
                self.create_product(
                    {
                        "name": name,
                        "price": row.get("price") or "0",
                        "purchaseCost": row.get("purchaseCost"),
                        "quantity": row.get("quantity") or "0",
                        "unit": optional_str(row.get("unit")) or "Unit",
                        "categoryId": category.id,
                        "description": row.get("description"),
                        "barcode": row.get("barcode"),
                    },
                    branch_id=branch_id,
                )
                result.success += 1
            except (ValidationError, ConflictError) as e:
                result.record_failure(label, str(e))
        logger.info("Product import finished: %d ok, %d failed", result.success, result.failed)
        return result

    def import_template(self, *, fmt: str) -> ExportFile:
        samples = [
            {"Product Name": "Sample Product 1", "Category": "Rice", "Price (USD)": 10.5, "Quantity": 100, "Unit": "Kg"},
            {"Product Name": "Sample Product 2", "Category": "Soup", "Price (USD)": 8.0, "Quantity": 50, "Unit": "Bowl"},
        ]
        return write_table(
            samples,
            PRODUCT_TEMPLATE_HEADERS,
            fmt=fmt,
            prefix="inventory_import_template",
            today=self._clock().date(),
            sheet_name="Template",
        )


class AdjustmentService:
    """Stock adjustments; every write keeps the product quantity in step."""

    def __init__(self, adjustments: AdjustmentRepository, products: ProductRepository):
        self._adjustments = adjustments
        self._products = products

    def list_paginated(self, criteria: AdjustmentFilter, page: PageRequest) -> Page[InventoryAdjustment]:
        return self._adjustments.list_paginated(criteria, page)

    def _get(self, adjustment_id: str) -> InventoryAdjustment:
        adjustment = self._adjustments.get_by_id(adjustment_id)
        if not adjustment:
            raise NotFoundError("Adjustment not found")
        return adjustment

    def _get_product(self, product_id: str) -> Product:
        product = self._products.get_by_id(product_id)
        if not product:
            raise NotFoundError("Product not found")
        return product

    @staticmethod
    def _parse_type(value: Any) -> AdjustmentType:
        try:
            return AdjustmentType(str(value or "").strip().lower())
        except ValueError:
            raise ValidationError("Adjustment type must be add, remove or set")

    @staticmethod
    def _parse_quantity(value: Any, adjustment_type: AdjustmentType) -> Decimal:
        qty = to_decimal(value, "Quantity")
        if adjustment_type == AdjustmentType.SET:
            return require_non_negative(qty, "Quantity")
        return require_positive(qty, "Quantity")

    @staticmethod
    def _reverse(adjustment: InventoryAdjustment) -> QuantityUpdate:
        def reversed_quantity(current: Decimal, history: Callable[[], Sequence[InventoryAdjustment]]) -> Decimal:
            others: List[InventoryAdjustment] = []
            if adjustment.adjustment_type == AdjustmentType.SET:
                others = [a for a in history() if a.id != adjustment.id]
            return stock.reverse(current, adjustment, others=others)

        return reversed_quantity

    def create(self, data: Mapping[str, Any], *, performed_by: Optional[str] = None) -> InventoryAdjustment:
        product = self._get_product(require_non_empty(data.get("productId"), "Product"))
        adjustment_type = self._parse_type(data.get("adjustmentType"))
        quantity = self._parse_quantity(data.get("quantity"), adjustment_type)
        adjustment = InventoryAdjustment(
            id=new_id(),
            product_id=product.id,
            adjustment_type=adjustment_type,
            quantity=quantity,
            reason=require_non_empty(data.get("reason"), "Reason"),
            notes=optional_str(data.get("notes")),
            performed_by=optional_str(data.get("performedBy")) or performed_by,
        )
        change = self._adjustments.create(
            adjustment,
            next_quantity=lambda current, _history: stock.apply(current, adjustment_type, quantity),
        )
        logger.info(
            "Adjusted %s: %s %s (%s -> %s)",
            product.name,
            adjustment_type.value,
            quantity,
            change.before,
            change.after,
        )
        return change.adjustment

    def update(self, adjustment_id: str, data: Mapping[str, Any]) -> InventoryAdjustment:
        """Undo the old effect then apply the new one; product and timestamp never change."""
        current = self._get(adjustment_id)

        adjustment_type = (
            self._parse_type(data.get("adjustmentType")) if "adjustmentType" in data else current.adjustment_type
        )
        quantity = (
            self._parse_quantity(data.get("quantity"), adjustment_type)
            if "quantity" in data
            else self._parse_quantity(current.quantity, adjustment_type)
        )
        updated = replace(
            current,
            adjustment_type=adjustment_type,
            quantity=quantity,
            reason=require_non_empty(data.get("reason"), "Reason") if "reason" in data else current.reason,
            notes=optional_str(data.get("notes")) if "notes" in data else current.notes,
        )

        undo = self._reverse(current)
        change = self._adjustments.update(
            updated,
            next_quantity=lambda qty, history: stock.apply(undo(qty, history), adjustment_type, quantity),
        )
        logger.info("Updated adjustment %s (%s -> %s)", adjustment_id, change.before, change.after)
        return change.adjustment

    def delete(self, adjustment_id: str) -> None:
        current = self._get(adjustment_id)
        change = self._adjustments.delete(current, next_quantity=self._reverse(current))
        logger.info("Deleted adjustment %s (%s -> %s)", adjustment_id, change.before, change.after)


class MainProductService:
    """Main products group the per-branch products of one physical item."""

    def __init__(
        self,
        main_products: MainProductRepository,
        products: ProductRepository,
        sold: SoldQuantitySource,
        branches: BranchRepository,
    ):
        self._main_products = main_products
        self._products = products
        self._sold = sold
        self._branches = branches

    def list_all(self) -> Sequence[MainProduct]:
        return self._main_products.list_all()

    def get(self, main_product_id: str) -> MainProduct:
        main_product = self._main_products.get_by_id(main_product_id)
        if not main_product:
            raise NotFoundError("Main product not found")
        return main_product

    def create(self, data: Mapping[str, Any]) -> MainProduct:
        main_product = MainProduct(
            id=new_id(),
            name=require_non_empty(data.get("name"), "Name"),
            description=optional_str(data.get("description")),
            main_stock_count=require_non_negative(
                to_decimal(data.get("mainStockCount"), "Main stock count"), "Main stock count"
            ),
        )
        created = self._main_products.create(main_product)
        logger.info("Created main product %s", created.name)
        return created

    def update(self, main_product_id: str, data: Mapping[str, Any]) -> MainProduct:
        current = self.get(main_product_id)
        changes: Dict[str, Any] = {}
        if "name" in data:
            changes["name"] = require_non_empty(data.get("name"), "Name")
        if "description" in data:
            changes["description"] = optional_str(data.get("description"))
        if "mainStockCount" in data:
            changes["main_stock_count"] = require_non_negative(
                to_decimal(data.get("mainStockCount"), "Main stock count"), "Main stock count"
            )
        return self._main_products.update(replace(current, **changes))

    def delete(self, main_product_id: str) -> None:
        self.get(main_product_id)
        self._main_products.delete(main_product_id)
        logger.info("Deleted main product %s", main_product_id)

    def list_items(self, main_product_id: str):
        self.get(main_product_id)
        return self._main_products.list_items(main_product_id)

    def add_item(self, main_product_id: str, product_id: Any) -> None:
        self.get(main_product_id)
        product_id = require_non_empty(product_id, "Product")
        if not self._products.get_by_id(product_id):
            raise NotFoundError("Product not found")
        if any(i.product.id == product_id for i in self._main_products.list_items(main_product_id)):
            raise ConflictError("Product is already linked to this main product")
        self._main_products.add_item(item_id=new_id(), main_product_id=main_product_id, product_id=product_id)

    def remove_item(self, main_product_id: str, product_id: str) -> None:
        if not self._main_products.remove_item(main_product_id=main_product_id, product_id=product_id):
            raise NotFoundError("Item not found")

    def stats(self, main_product_id: str) -> dict:
        """Stock and sales of every linked product, with a per-branch breakdown.

        Total stock is the main stock count when set, otherwise the sum of
        linked product quantities.
        """
        main_product = self.get(main_product_id)
        items = self._main_products.list_items(main_product_id)
        sold_map = self._sold.sold_quantities([i.product.id for i in items])
        branch_names: Dict[str, str] = {}

        total_supplied = ZERO
        total_sold = ZERO
        breakdown: "OrderedDict[str, Dict[str, Decimal]]" = OrderedDict()
        sub_products = []
        for item in items:
            product = item.product
            qty = product.quantity
            sold = sold_map.get(product.id, ZERO)
            available = max(ZERO, qty - sold)
            total_supplied += qty
            total_sold += sold

            branch_name = None
            if product.branch_id:
                if product.branch_id not in branch_names:
                    branch = self._branches.get_by_id(product.branch_id)
                    branch_names[product.branch_id] = branch.name if branch else "Unknown"
                branch_name = branch_names[product.branch_id]
            bucket = breakdown.setdefault(branch_name or MAIN_BRANCH_LABEL, {"quantity": ZERO, "sold": ZERO, "available": ZERO})
            bucket["quantity"] += qty
            bucket["sold"] += sold
            bucket["available"] += available

            sub_products.append(
                {
                    "product": product.to_dict(),
                    "quantity": _num(qty),
                    "sold": _num(sold),
                    "available": _num(available),
                    "branchName": branch_name,
                }
            )

        total_quantity = sum((b["quantity"] for b in breakdown.values()), ZERO)
        total_stock = main_product.main_stock_count if main_product.main_stock_count > 0 else total_supplied
        total_available = max(ZERO, total_stock - total_quantity)
        return {
            "totalStock": _num(total_stock),
            "branchBreakdown": [
                {
                    "branchName": name,
                    "quantity": _num(b["quantity"]),
                    "sold": _num(b["sold"]),
                    "available": _num(b["available"]),
                }
                for name, b in breakdown.items()
            ],
            "totalQuantity": _num(total_quantity),
            "totalSold": _num(total_sold),
            "totalAvailable": _num(total_available),
            "available": _num(total_available),
            "subProducts": sub_products,
        }
