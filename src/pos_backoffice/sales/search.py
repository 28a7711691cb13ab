from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.constants import DEFAULT_INVOICE_PREFIX


@dataclass(frozen=True)
class InvoiceSearch:
    """A parsed sales search box value.

    ``order_number`` is set only when the term (minus the invoice prefix) is
    all digits; such searches match that order number exactly or the
    customer name. Anything else matches the customer name only.
    """

    term: str
    order_number: Optional[int] = None

    @property
    def is_empty(self) -> bool:
        return not self.term


def parse_invoice_search(term: Optional[str], prefix: Optional[str] = DEFAULT_INVOICE_PREFIX) -> InvoiceSearch:
    trimmed = (term or "").strip()
    if not trimmed:
        return InvoiceSearch(term="")

    prefix = prefix or DEFAULT_INVOICE_PREFIX
    number_part = trimmed
    if trimmed.upper().startswith(prefix.upper()):
        number_part = trimmed[len(prefix):]

    if number_part.isdigit() and number_part.isascii():
        return InvoiceSearch(term=trimmed, order_number=int(number_part))
    return InvoiceSearch(term=trimmed)


def matches_order(search: InvoiceSearch, *, order_number: int, customer_name: Optional[str]) -> bool:
    """In-memory equivalent of the SQL search condition."""
    if search.is_empty:
        return True
    if search.order_number is not None and order_number == search.order_number:
        return True
    return search.term.lower() in (customer_name or "").lower()
