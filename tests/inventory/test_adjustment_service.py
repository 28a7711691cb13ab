from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest

from pos_backoffice.core.enums import AdjustmentType
from pos_backoffice.core.exceptions import NotFoundError, ValidationError
from pos_backoffice.inventory.model import InventoryAdjustment, Product, StockChange
from pos_backoffice.inventory.service import AdjustmentService


class InMemoryStore:
    """Products and adjustments sharing one store, like the two MySQL tables."""

    def __init__(self, *products: Product):
        self.products = {p.id: p for p in products}
        self.adjustments: list[InventoryAdjustment] = []

    # product side
    def get_by_id(self, product_id):
        return self.products.get(product_id)

    def _set_quantity(self, product_id, quantity):
        self.products[product_id] = replace(self.products[product_id], quantity=quantity)


class InMemoryAdjustments:
    """Applies ``next_quantity`` to the stored quantity at write time, like the row lock does."""

    def __init__(self, store: InMemoryStore):
        self._store = store

    def list_for_product(self, product_id):
        return [a for a in self._store.adjustments if a.product_id == product_id]

    def get_by_id(self, adjustment_id):
        return next((a for a in self._store.adjustments if a.id == adjustment_id), None)

    def _write(self, adjustment, next_quantity, mutate):
        before = self._store.products[adjustment.product_id].quantity
        after = next_quantity(before, lambda: self.list_for_product(adjustment.product_id))
        mutate()
        self._store._set_quantity(adjustment.product_id, after)
        return StockChange(adjustment, before, after)

    def create(self, adjustment, *, next_quantity):
        return self._write(adjustment, next_quantity, lambda: self._store.adjustments.append(adjustment))

    def update(self, adjustment, *, next_quantity):
        def mutate():
            self._store.adjustments = [adjustment if a.id == adjustment.id else a for a in self._store.adjustments]

        return self._write(adjustment, next_quantity, mutate)

    def delete(self, adjustment, *, next_quantity):
        def mutate():
            self._store.adjustments = [a for a in self._store.adjustments if a.id != adjustment.id]

        return self._write(adjustment, next_quantity, mutate)


def _setup(quantity="10"):
    store = InMemoryStore(Product(id="p1", name="Tea", price=Decimal("2"), quantity=Decimal(quantity)))
    return AdjustmentService(InMemoryAdjustments(store), store), store


def _qty(store) -> Decimal:
    return store.products["p1"].quantity


def test_create_applies_to_product_quantity():
    svc, store = _setup("10")
    created = svc.create(
        {"productId": "p1", "adjustmentType": "add", "quantity": "5", "reason": "Delivery"},
        performed_by="admin",
    )
    assert created.performed_by == "admin"
    assert _qty(store) == Decimal("15")

    svc.create({"productId": "p1", "adjustmentType": "REMOVE", "quantity": 40, "reason": "Spoiled"})
    assert _qty(store) == Decimal("0")


def test_create_validation():
    svc, _ = _setup()
    with pytest.raises(ValidationError):
        svc.create({"productId": "p1", "adjustmentType": "swap", "quantity": 1, "reason": "x"})
    with pytest.raises(ValidationError):
        svc.create({"productId": "p1", "adjustmentType": "add", "quantity": 0, "reason": "x"})
    with pytest.raises(ValidationError):
        svc.create({"productId": "p1", "adjustmentType": "add", "quantity": 1, "reason": ""})
    with pytest.raises(NotFoundError):
        svc.create({"productId": "nope", "adjustmentType": "add", "quantity": 1, "reason": "x"})

    # a set to zero is allowed
    svc.create({"productId": "p1", "adjustmentType": "set", "quantity": 0, "reason": "Count"})


def test_update_reverses_old_effect_first():
    svc, store = _setup("10")
    adj = svc.create({"productId": "p1", "adjustmentType": "add", "quantity": "5", "reason": "Delivery"})
    updated = svc.update(adj.id, {"quantity": "2"})
    assert updated.adjustment_type == AdjustmentType.ADD
    assert _qty(store) == Decimal("12")

    svc.update(adj.id, {"adjustmentType": "remove", "quantity": "4"})
    assert _qty(store) == Decimal("6")


def test_delete_of_set_replays_remaining_history():
    svc, store = _setup("0")
    svc.create({"productId": "p1", "adjustmentType": "add", "quantity": "8", "reason": "Delivery"})
    counted = svc.create({"productId": "p1", "adjustmentType": "set", "quantity": "20", "reason": "Count"})
    svc.create({"productId": "p1", "adjustmentType": "remove", "quantity": "3", "reason": "Sold"})
    assert _qty(store) == Decimal("17")

    svc.delete(counted.id)
    assert _qty(store) == Decimal("5")
    with pytest.raises(NotFoundError):
        svc.delete(counted.id)


def test_adjustments_use_quantity_at_write_time():
    store = InMemoryStore(Product(id="p1", name="Tea", price=Decimal("2"), quantity=Decimal("10")))
    snapshot = InMemoryStore(Product(id="p1", name="Tea", price=Decimal("2"), quantity=Decimal("10")))
    svc = AdjustmentService(InMemoryAdjustments(store), snapshot)

    # another writer moved the stock after the snapshot was read
    store._set_quantity("p1", Decimal("4"))
    removed = svc.create({"productId": "p1", "adjustmentType": "remove", "quantity": "3", "reason": "Spoiled"})
    assert _qty(store) == Decimal("1")

    svc.create({"productId": "p1", "adjustmentType": "add", "quantity": "5", "reason": "Delivery"})
    assert _qty(store) == Decimal("6")

    svc.delete(removed.id)
    assert _qty(store) == Decimal("9")
