from __future__ import annotations

from decimal import Decimal
from typing import Callable, Optional, Sequence

from ..common.pagination import Page, PageRequest
from ..core.constants import UNCATEGORIZED
from ..core.enums import AdjustmentType, StockStatus
from ..core.exceptions import NotFoundError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import WhereBuilder, db_cursor, dec, fetchall, fetchone
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
from .repository import (
    AdjustmentRepository,
    CategoryRepository,
    MainProductRepository,
    ProductRepository,
    QuantityUpdate,
)

_PRODUCT_SELECT = """
    SELECT p.id, p.name, p.price, p.purchase_cost, p.category_id, p.branch_id, p.unit, p.description,
           p.quantity, p.stock_short, p.stock_short_reason, p.barcode, p.size_prices, p.created_at,
           c.name AS category_name
    FROM products p
    LEFT JOIN categories c ON c.id = p.category_id
"""

_ADJUSTMENT_SELECT = """
    SELECT a.id, a.product_id, a.adjustment_type, a.quantity, a.reason, a.notes, a.performed_by,
           a.created_at, p.name AS product_name
    FROM inventory_adjustments a
    JOIN products p ON p.id = a.product_id
"""


def _row_to_product(row: dict) -> Product:
    purchase_cost = row.get("purchase_cost")
    return Product(
        id=row["id"],
        name=row["name"],
        price=dec(row.get("price")),
        purchase_cost=dec(purchase_cost) if purchase_cost is not None else None,
        category_id=row.get("category_id"),
        branch_id=row.get("branch_id"),
        unit=row.get("unit") or "pcs",
        description=row.get("description"),
        quantity=dec(row.get("quantity")),
        stock_short=dec(row.get("stock_short")),
        stock_short_reason=row.get("stock_short_reason"),
        barcode=row.get("barcode"),
        size_prices=row.get("size_prices"),
        created_at=row.get("created_at"),
        category_name=row.get("category_name"),
    )


def _row_to_adjustment(row: dict) -> InventoryAdjustment:
    return InventoryAdjustment(
        id=row["id"],
        product_id=row["product_id"],
        adjustment_type=AdjustmentType(row["adjustment_type"]),
        quantity=dec(row.get("quantity")),
        reason=row.get("reason") or "",
        notes=row.get("notes"),
        performed_by=row.get("performed_by"),
        created_at=row.get("created_at"),
        product_name=row.get("product_name"),
    )


def build_product_where(criteria: ProductFilter) -> WhereBuilder:
    where = WhereBuilder()
    if criteria.branch_id:
        where.add("(p.branch_id=%s OR p.branch_id IS NULL)", criteria.branch_id)
    if criteria.category_id == UNCATEGORIZED:
        where.add("p.category_id IS NULL")
    elif criteria.category_id:
        where.add("p.category_id=%s", criteria.category_id)
    if criteria.status == StockStatus.OUT_OF_STOCK:
        where.add("p.quantity<=0")
    elif criteria.status == StockStatus.LOW_STOCK:
        where.add("p.quantity>0 AND p.quantity<=%s", criteria.threshold)
    elif criteria.status == StockStatus.IN_STOCK:
        where.add("p.quantity>%s", criteria.threshold)
    if criteria.min_price is not None:
        where.add("p.price>=%s", criteria.min_price)
    if criteria.max_price is not None:
        where.add("p.price<=%s", criteria.max_price)
    if criteria.in_stock is True:
        where.add("p.quantity>0")
    elif criteria.in_stock is False:
        where.add("p.quantity<=0")
    if criteria.has_shortage is True:
        where.add("p.stock_short>0")
    elif criteria.has_shortage is False:
        where.add("p.stock_short<=0")
    if criteria.created and criteria.created.start:
        where.add("p.created_at>=%s", criteria.created.start)
    if criteria.created and criteria.created.end:
        where.add("p.created_at<=%s", criteria.created.end)
    where.add_search(("p.name",), criteria.search)
    return where


def build_adjustment_where(criteria: AdjustmentFilter) -> WhereBuilder:
    where = WhereBuilder()
    if criteria.product_id:
        where.add("a.product_id=%s", criteria.product_id)
    if criteria.adjustment_type:
        where.add("a.adjustment_type=%s", criteria.adjustment_type.value)
    if criteria.branch_id:
        where.add("(p.branch_id=%s OR p.branch_id IS NULL)", criteria.branch_id)
    if criteria.created and criteria.created.start:
        where.add("a.created_at>=%s", criteria.created.start)
    if criteria.created and criteria.created.end:
        where.add("a.created_at<=%s", criteria.created.end)
    where.add_search(("p.name",), criteria.search)
    return where


class MySQLCategoryRepository(CategoryRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_all(self) -> Sequence[Category]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, description FROM categories ORDER BY name")
            return [Category(id=r["id"], name=r["name"], description=r.get("description")) for r in fetchall(cur)]

    def get_by_id(self, category_id: str) -> Optional[Category]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, description FROM categories WHERE id=%s", (category_id,))
            row = fetchone(cur)
            return Category(id=row["id"], name=row["name"], description=row.get("description")) if row else None

    def get_by_name(self, name: str) -> Optional[Category]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, description FROM categories WHERE LOWER(name)=%s", (name.strip().lower(),))
            row = fetchone(cur)
            return Category(id=row["id"], name=row["name"], description=row.get("description")) if row else None

    def create(self, category: Category) -> Category:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO categories (id, name, description) VALUES (%s, %s, %s)",
                (category.id, category.name, category.description),
            )
        return category


class MySQLProductRepository(ProductRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_products(self, criteria: ProductFilter) -> Sequence[Product]:
        where = build_product_where(criteria)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_PRODUCT_SELECT} {where.sql()} ORDER BY p.name", where.args())
            return [_row_to_product(r) for r in fetchall(cur)]

    def list_paginated(self, criteria: ProductFilter, page: PageRequest) -> Page[Product]:
        where = build_product_where(criteria)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT COUNT(*) AS total FROM products p {where.sql()}", where.args())
            total = int((fetchone(cur) or {}).get("total") or 0)
            cur.execute(
                f"{_PRODUCT_SELECT} {where.sql()} ORDER BY p.name LIMIT %s OFFSET %s",
                where.args() + (page.limit, page.offset),
            )
            items = [_row_to_product(r) for r in fetchall(cur)]
        return Page(items=items, total=total, limit=page.limit, offset=page.offset)

    def get_by_id(self, product_id: str) -> Optional[Product]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_PRODUCT_SELECT} WHERE p.id=%s", (product_id,))
            row = fetchone(cur)
            return _row_to_product(row) if row else None

    def get_by_name(self, name: str, *, branch_id: Optional[str]) -> Optional[Product]:
        with db_cursor(self._conn_factory) as (_, cur):
            if branch_id:
                cur.execute(
                    f"{_PRODUCT_SELECT} WHERE LOWER(p.name)=%s AND p.branch_id=%s",
                    (name.strip().lower(), branch_id),
                )
            else:
                cur.execute(
                    f"{_PRODUCT_SELECT} WHERE LOWER(p.name)=%s AND p.branch_id IS NULL",
                    (name.strip().lower(),),
                )
            row = fetchone(cur)
            return _row_to_product(row) if row else None

    def create(self, product: Product) -> Product:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                INSERT INTO products
                    (id, name, price, purchase_cost, category_id, branch_id, unit, description,
                     quantity, stock_short, stock_short_reason, barcode, size_prices)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    product.id,
                    product.name,
                    product.price,
                    product.purchase_cost,
                    product.category_id,
                    product.branch_id,
                    product.unit,
                    product.description,
                    product.quantity,
                    product.stock_short,
                    product.stock_short_reason,
                    product.barcode,
                    product.size_prices,
                ),
            )
        return self.get_by_id(product.id) or product

    def update(self, product: Product) -> Product:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                UPDATE products
                SET name=%s, price=%s, purchase_cost=%s, category_id=%s, branch_id=%s, unit=%s,
                    description=%s, quantity=%s, stock_short=%s, stock_short_reason=%s, barcode=%s,
                    size_prices=%s
                WHERE id=%s
                """,
                (
                    product.name,
                    product.price,
                    product.purchase_cost,
                    product.category_id,
                    product.branch_id,
                    product.unit,
                    product.description,
                    product.quantity,
                    product.stock_short,
                    product.stock_short_reason,
                    product.barcode,
                    product.size_prices,
                    product.id,
                ),
            )
        return self.get_by_id(product.id) or product

    def delete(self, product_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM products WHERE id=%s", (product_id,))
            return cur.rowcount > 0


class MySQLAdjustmentRepository(AdjustmentRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def list_paginated(self, criteria: AdjustmentFilter, page: PageRequest) -> Page[InventoryAdjustment]:
        where = build_adjustment_where(criteria)
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT COUNT(*) AS total
                FROM inventory_adjustments a
                JOIN products p ON p.id = a.product_id
                {where.sql()}
                """,
                where.args(),
            )
            total = int((fetchone(cur) or {}).get("total") or 0)
            cur.execute(
                f"{_ADJUSTMENT_SELECT} {where.sql()} ORDER BY a.created_at DESC LIMIT %s OFFSET %s",
                where.args() + (page.limit, page.offset),
            )
            items = [_row_to_adjustment(r) for r in fetchall(cur)]
        return Page(items=items, total=total, limit=page.limit, offset=page.offset)

    def list_for_product(self, product_id: str) -> Sequence[InventoryAdjustment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_ADJUSTMENT_SELECT} WHERE a.product_id=%s ORDER BY a.created_at ASC", (product_id,))
            return [_row_to_adjustment(r) for r in fetchall(cur)]

    def get_by_id(self, adjustment_id: str) -> Optional[InventoryAdjustment]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"{_ADJUSTMENT_SELECT} WHERE a.id=%s", (adjustment_id,))
            row = fetchone(cur)
            return _row_to_adjustment(row) if row else None

    def _locked_quantity(self, cur, product_id: str) -> Decimal:
        cur.execute("SELECT quantity FROM products WHERE id=%s FOR UPDATE", (product_id,))
        row = fetchone(cur)
        if not row:
            raise NotFoundError("Product not found")
        return dec(row.get("quantity"))

    @staticmethod
    def _history(cur, product_id: str) -> Callable[[], Sequence[InventoryAdjustment]]:
        def load() -> Sequence[InventoryAdjustment]:
            cur.execute(f"{_ADJUSTMENT_SELECT} WHERE a.product_id=%s ORDER BY a.created_at ASC", (product_id,))
            return [_row_to_adjustment(r) for r in fetchall(cur)]

        return load

    def create(self, adjustment: InventoryAdjustment, *, next_quantity: QuantityUpdate) -> StockChange:
        with db_cursor(self._conn_factory) as (_, cur):
            before = self._locked_quantity(cur, adjustment.product_id)
            after = next_quantity(before, self._history(cur, adjustment.product_id))
            cur.execute(
                """
                INSERT INTO inventory_adjustments
                    (id, product_id, adjustment_type, quantity, reason, notes, performed_by)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (
                    adjustment.id,
                    adjustment.product_id,
                    adjustment.adjustment_type.value,
                    adjustment.quantity,
                    adjustment.reason,
                    adjustment.notes,
                    adjustment.performed_by,
                ),
            )
            cur.execute("UPDATE products SET quantity=%s WHERE id=%s", (after, adjustment.product_id))
        return StockChange(self.get_by_id(adjustment.id) or adjustment, before, after)

    def update(self, adjustment: InventoryAdjustment, *, next_quantity: QuantityUpdate) -> StockChange:
        with db_cursor(self._conn_factory) as (_, cur):
            before = self._locked_quantity(cur, adjustment.product_id)
            after = next_quantity(before, self._history(cur, adjustment.product_id))
            cur.execute(
                """
                UPDATE inventory_adjustments
                SET adjustment_type=%s, quantity=%s, reason=%s, notes=%s
                WHERE id=%s
                """,
                (
                    adjustment.adjustment_type.value,
                    adjustment.quantity,
                    adjustment.reason,
                    adjustment.notes,
                    adjustment.id,
                ),
            )
            cur.execute("UPDATE products SET quantity=%s WHERE id=%s", (after, adjustment.product_id))
        return StockChange(self.get_by_id(adjustment.id) or adjustment, before, after)

    def delete(self, adjustment: InventoryAdjustment, *, next_quantity: QuantityUpdate) -> StockChange:
        with db_cursor(self._conn_factory) as (_, cur):
            before = self._locked_quantity(cur, adjustment.product_id)
            after = next_quantity(before, self._history(cur, adjustment.product_id))
            cur.execute("DELETE FROM inventory_adjustments WHERE id=%s", (adjustment.id,))
            if cur.rowcount == 0:
                raise NotFoundError("Adjustment not found")
            cur.execute("UPDATE products SET quantity=%s WHERE id=%s", (after, adjustment.product_id))
        return StockChange(adjustment, before, after)


class MySQLMainProductRepository(MainProductRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    @staticmethod
    def _row_to_main(row: dict) -> MainProduct:
        return MainProduct(
            id=row["id"],
            name=row["name"],
            description=row.get("description"),
            main_stock_count=dec(row.get("main_stock_count")),
            created_at=row.get("created_at"),
        )

    def list_all(self) -> Sequence[MainProduct]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("SELECT id, name, description, main_stock_count, created_at FROM main_products ORDER BY name")
            return [self._row_to_main(r) for r in fetchall(cur)]

    def get_by_id(self, main_product_id: str) -> Optional[MainProduct]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT id, name, description, main_stock_count, created_at FROM main_products WHERE id=%s",
                (main_product_id,),
            )
            row = fetchone(cur)
            return self._row_to_main(row) if row else None

    def create(self, main_product: MainProduct) -> MainProduct:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO main_products (id, name, description, main_stock_count) VALUES (%s, %s, %s, %s)",
                (main_product.id, main_product.name, main_product.description, main_product.main_stock_count),
            )
        return main_product

    def update(self, main_product: MainProduct) -> MainProduct:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "UPDATE main_products SET name=%s, description=%s, main_stock_count=%s WHERE id=%s",
                (main_product.name, main_product.description, main_product.main_stock_count, main_product.id),
            )
        return main_product

    def delete(self, main_product_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute("DELETE FROM main_products WHERE id=%s", (main_product_id,))
            return cur.rowcount > 0

    def list_items(self, main_product_id: str) -> Sequence[MainProductItem]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT i.id AS item_id, i.main_product_id, prod.*
                FROM main_product_items i
                JOIN ({_PRODUCT_SELECT}) prod ON prod.id = i.product_id
                WHERE i.main_product_id=%s
                ORDER BY prod.name
                """,
                (main_product_id,),
            )
            return [
                MainProductItem(id=r["item_id"], main_product_id=r["main_product_id"], product=_row_to_product(r))
                for r in fetchall(cur)
            ]

    def add_item(self, *, item_id: str, main_product_id: str, product_id: str) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "INSERT INTO main_product_items (id, main_product_id, product_id) VALUES (%s, %s, %s)",
                (item_id, main_product_id, product_id),
            )

    def remove_item(self, *, main_product_id: str, product_id: str) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "DELETE FROM main_product_items WHERE main_product_id=%s AND product_id=%s",
                (main_product_id, product_id),
            )
            return cur.rowcount > 0

