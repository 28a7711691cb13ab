"""Quantity arithmetic for inventory adjustments."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable, Protocol

from ..core.enums import AdjustmentType, StockStatus

ZERO = Decimal("0")


class _Adjustment(Protocol):
    adjustment_type: AdjustmentType
    quantity: Decimal


def apply(current: Decimal, adjustment_type: AdjustmentType, quantity: Decimal) -> Decimal:
    """Quantity after an adjustment; removals never go below zero."""
    if adjustment_type == AdjustmentType.ADD:
        return current + quantity
    if adjustment_type == AdjustmentType.REMOVE:
        return max(ZERO, current - quantity)
    return quantity


def replay(adjustments: Iterable[_Adjustment]) -> Decimal:
    """Quantity obtained by applying ``adjustments`` in order, starting from zero."""
    quantity = ZERO
    for adj in adjustments:
        quantity = apply(quantity, adj.adjustment_type, adj.quantity)
    return quantity


def reverse(current: Decimal, adjustment: _Adjustment, *, others: Iterable[_Adjustment] = ()) -> Decimal:
    """Quantity with ``adjustment`` undone.

    A ``set`` cannot be inverted arithmetically, so the product's other
    adjustments (oldest first) are replayed from zero instead.
    """
    if adjustment.adjustment_type == AdjustmentType.ADD:
        return max(ZERO, current - adjustment.quantity)
    if adjustment.adjustment_type == AdjustmentType.REMOVE:
        return current + adjustment.quantity
    return replay(others)


def stock_status(quantity: Decimal, threshold: int) -> StockStatus:
    if quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= threshold:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK
