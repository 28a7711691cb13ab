from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Generic, List, Mapping, Optional, Sequence, TypeVar

from ..core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from ..core.exceptions import ValidationError

T = TypeVar("T")


def _int_arg(args: Mapping[str, Any], name: str) -> Optional[int]:
    raw = args.get(name)
    if raw is None or str(raw).strip() == "":
        return None
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{name} must be an integer")


@dataclass(frozen=True)
class PageRequest:
    limit: int = DEFAULT_PAGE_SIZE
    offset: int = 0

    def __post_init__(self):
        if self.limit < 1:
            object.__setattr__(self, "limit", 1)
        elif self.limit > MAX_PAGE_SIZE:
            object.__setattr__(self, "limit", MAX_PAGE_SIZE)
        if self.offset < 0:
            object.__setattr__(self, "offset", 0)

    @classmethod
    def from_page(cls, page: int, page_size: int = DEFAULT_PAGE_SIZE) -> "PageRequest":
        """1-based page number to limit/offset."""
        page = max(int(page), 1)
        size = max(min(int(page_size), MAX_PAGE_SIZE), 1)
        return cls(limit=size, offset=(page - 1) * size)

    @classmethod
    def from_args(cls, args: Mapping[str, Any], *, default_limit: int = DEFAULT_PAGE_SIZE) -> "PageRequest":
        """Accepts ``limit``/``offset`` or ``page``/``pageSize`` query args."""
        page = _int_arg(args, "page")
        if page is not None:
            size = _int_arg(args, "pageSize") or _int_arg(args, "limit") or default_limit
            return cls.from_page(page, size)
        limit = _int_arg(args, "limit")
        offset = _int_arg(args, "offset")
        return cls(limit=default_limit if limit is None else limit, offset=offset or 0)


@dataclass(frozen=True)
class Page(Generic[T]):
    items: List[T]
    total: int
    limit: int
    offset: int

    @property
    def page_count(self) -> int:
        if self.total <= 0:
            return 0
        return math.ceil(self.total / self.limit)

    @property
    def page_number(self) -> int:
        return self.offset // self.limit + 1

    @property
    def has_next(self) -> bool:
        return self.offset + len(self.items) < self.total

    def to_dict(self, key: str, serialize: Optional[Callable[[T], Any]] = None) -> dict:
        items = [serialize(i) for i in self.items] if serialize else list(self.items)
        return {key: items, "total": self.total}


def paginate(items: Sequence[T], request: PageRequest) -> Page[T]:
    sliced = list(items[request.offset : request.offset + request.limit])
    return Page(items=sliced, total=len(items), limit=request.limit, offset=request.offset)
