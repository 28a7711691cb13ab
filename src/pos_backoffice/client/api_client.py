"""
HTTP client for the back-office API, used by scripts and other services.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

import requests
from requests.exceptions import RequestException

from ..common.branch import with_branch_id
from .cache import QueryCache, cache_key

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class ApiClientError(Exception):
    """Non-2xx response or transport failure.

    ``status`` is 0 when the server could not be reached.
    """

    def __init__(self, status: int, message: str):
        super().__init__(f"{status} - {message}" if status else message)
        self.status = status
        self.message = message


def _error_message(response: requests.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text or response.reason or "Request failed"
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return response.text or response.reason or "Request failed"


class BackofficeClient:
    """Cached queries and invalidating mutations over a ``requests.Session``.

    Args:
        base_url: API root, e.g. ``http://localhost:5000``
        branch_id: branch added as ``branchId`` to every query
        session: optional pre-configured session (cookies, adapters)
    """

    def __init__(
        self,
        base_url: str,
        branch_id: Optional[str] = None,
        session: Optional[requests.Session] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.base_url = base_url.rstrip("/")
        self.branch_id = branch_id
        self.session = session or requests.Session()
        self.timeout = timeout
        self.cache = QueryCache()

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def with_branch_id(self, path: str) -> str:
        return with_branch_id(path, self.branch_id)

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        url = self._url(path)
        try:
            logger.debug("%s %s", method, url)
            response = self.session.request(method=method, url=url, timeout=self.timeout, **kwargs)
        except RequestException as e:
            logger.error("API request failed: %s", e)
            raise ApiClientError(0, f"Failed to connect to the server: {e}")
        if not response.ok:
            message = _error_message(response)
            logger.error("API request failed: %s - %s", response.status_code, message)
            raise ApiClientError(response.status_code, message)
        return response

    def _params(self, params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        out = {k: v for k, v in (params or {}).items() if v is not None and v != ""}
        if self.branch_id and "branchId" not in out:
            out["branchId"] = self.branch_id
        return out

    def query(self, path: str, params: Optional[Mapping[str, Any]] = None, *, refresh: bool = False) -> Any:
        """GET ``path`` as JSON, served from the cache unless ``refresh``."""
        merged = self._params(params)
        key = cache_key(path, merged)
        if not refresh and key in self.cache:
            return self.cache.get(key)
        data = self._request("GET", path, params=merged).json()
        self.cache.set(key, data)
        return data

    def mutate(
        self,
        method: str,
        path: str,
        json: Any = None,
        *,
        invalidates: Iterable[str] = (),
    ) -> Any:
        """Send a write request; cached queries under ``invalidates`` are dropped on success."""
        response = self._request(method.upper(), path, json=json)
        for prefix in invalidates:
            self.cache.invalidate(prefix)
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            return None

    def download(self, path: str, params: Optional[Mapping[str, Any]] = None) -> bytes:
        """Raw bytes of an export endpoint; never cached."""
        return self._request("GET", path, params=self._params(params)).content

    def login(self, username: str, password: str) -> Dict[str, Any]:
        data = self.mutate("POST", "/api/auth/login", {"username": username, "password": password})
        self.cache.clear()
        return data or {}

    def logout(self) -> None:
        self.mutate("POST", "/api/auth/logout")
        self.cache.clear()
