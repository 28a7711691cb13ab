from __future__ import annotations

import pytest

from pos_backoffice.common.pagination import Page, PageRequest, paginate
from pos_backoffice.core.constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE
from pos_backoffice.core.exceptions import ValidationError


def test_page_request_clamps_bounds():
    assert PageRequest(limit=0, offset=-5) == PageRequest(limit=1, offset=0)
    assert PageRequest(limit=MAX_PAGE_SIZE + 1).limit == MAX_PAGE_SIZE


def test_from_args_accepts_page_and_page_size():
    req = PageRequest.from_args({"page": "3", "pageSize": "20"})
    assert req.limit == 20
    assert req.offset == 40


def test_from_args_accepts_limit_and_offset():
    req = PageRequest.from_args({"limit": "10", "offset": "30"})
    assert (req.limit, req.offset) == (10, 30)
    assert PageRequest.from_args({}).limit == DEFAULT_PAGE_SIZE
    assert PageRequest.from_args({}, default_limit=25).limit == 25


def test_from_args_rejects_non_numbers():
    with pytest.raises(ValidationError):
        PageRequest.from_args({"limit": "ten"})


def test_paginate_slices_and_reports_total():
    page = paginate(list(range(7)), PageRequest(limit=3, offset=3))
    assert page.items == [3, 4, 5]
    assert page.total == 7
    assert page.page_number == 2
    assert page.page_count == 3
    assert page.has_next


def test_page_to_dict_uses_given_key():
    page = Page(items=[1, 2], total=9, limit=2, offset=0)
    assert page.to_dict("orders", lambda i: {"n": i}) == {"orders": [{"n": 1}, {"n": 2}], "total": 9}
    assert Page(items=[], total=0, limit=10, offset=0).page_count == 0
