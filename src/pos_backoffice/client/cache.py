from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Tuple

CacheKey = Tuple[str, Tuple[Tuple[str, str], ...]]


def cache_key(path: str, params: Optional[Mapping[str, Any]] = None) -> CacheKey:
    """Path plus sorted non-empty params; ``None`` and "" are dropped."""
    items = tuple(
        sorted((str(k), str(v)) for k, v in (params or {}).items() if v is not None and v != "")
    )
    return path, items


class QueryCache:
    """In-process cache of GET responses, invalidated by path prefix."""

    def __init__(self):
        self._entries: Dict[CacheKey, Any] = {}

    def __contains__(self, key: CacheKey) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: CacheKey, default: Any = None) -> Any:
        return self._entries.get(key, default)

    def set(self, key: CacheKey, value: Any) -> None:
        self._entries[key] = value

    def invalidate(self, prefix: str) -> int:
        """Drop every entry whose path starts with ``prefix``; returns the count."""
        stale = [k for k in self._entries if k[0].startswith(prefix)]
        for k in stale:
            del self._entries[k]
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()
