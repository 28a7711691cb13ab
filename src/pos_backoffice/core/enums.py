from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """User role used for authorization."""

    ADMIN = "admin"
    MANAGER = "manager"
    STAFF = "staff"


class UserType(str, Enum):
    """Kind of account stored in the session: a person or a branch login."""

    USER = "user"
    BRANCH = "branch"


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class AdjustmentType(str, Enum):
    """How an inventory adjustment changes a product quantity."""

    ADD = "add"
    REMOVE = "remove"
    SET = "set"


class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"

    @property
    def label(self) -> str:
        return {
            StockStatus.IN_STOCK: "In Stock",
            StockStatus.LOW_STOCK: "Low Stock",
            StockStatus.OUT_OF_STOCK: "Out of Stock",
        }[self]


class LedgerKind(str, Enum):
    """Staff ledger entries that adjust the payable amount."""

    DEDUCTION = "deduction"
    ADVANCE = "advance"
    LOAN = "loan"
    UNPAID_LEAVE = "unpaid_leave"
    PREVIOUS_DUE = "previous_due"

    @classmethod
    def from_slug(cls, slug: str) -> "LedgerKind":
        """Map URL slugs (deductions, unpaid-leave, ...) to a kind."""
        mapping = {
            "deductions": cls.DEDUCTION,
            "advances": cls.ADVANCE,
            "loans": cls.LOAN,
            "unpaid-leave": cls.UNPAID_LEAVE,
            "previous-due": cls.PREVIOUS_DUE,
        }
        try:
            return mapping[slug]
        except KeyError:
            return cls(slug)


class LedgerStatus(str, Enum):
    PENDING = "pending"
    SETTLED = "settled"


class OrderStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PAID = "paid"
    DUE = "due"
    PARTIAL = "partial"
