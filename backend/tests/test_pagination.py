# ruff: noqa

from datetime import datetime, timedelta, timezone

import pytest

from teamboard.core.errors import ValidationError
from teamboard.db.pagination import PageParams, check_page_bounds, order_clause, validate_date_range
from teamboard.models.projects import Project
from teamboard.schemas.common import Page, PageMeta


def test_offset_is_page_minus_one_times_limit():
    assert PageParams(page=1, limit=10).offset == 0
    assert PageParams(page=4, limit=25).offset == 75


def test_raw_params_carry_limit_and_offset():
    raw = PageParams(page=3, limit=20).to_raw_params()
    assert raw.limit == 20
    assert raw.offset == 40


def test_page_create_builds_pagination_block():
    page = Page.create(["a", "b"], PageParams(page=2, limit=2), total=5)
    assert list(page.items) == ["a", "b"]
    assert page.pagination.total_items == 5
    assert page.pagination.total_pages == 3
    assert page.pagination.current_page == 2
    assert page.pagination.has_next_page is True
    assert page.pagination.has_prev_page is True
    assert set(page.model_dump()) == {"items", "pagination"}


def test_page_bounds_ceiling():
    check_page_bounds(100, 100)
    with pytest.raises(ValidationError) as exc:
        check_page_bounds(101, 100)
    assert exc.value.status_code == 400
    assert exc.value.errors[0]["field"] == "pagination"


def test_page_meta_flags():
    meta = PageMeta.build(total=25, page=2, limit=10)
    assert meta.total_pages == 3
    assert meta.has_next_page is True
    assert meta.has_prev_page is True
    last = PageMeta.build(total=25, page=3, limit=10)
    assert last.has_next_page is False
    empty = PageMeta.build(total=0, page=1, limit=10)
    assert empty.total_pages == 0
    assert empty.has_next_page is False


def test_date_range_rejects_inverted_bounds():
    start = datetime(2026, 3, 1)
    with pytest.raises(ValidationError) as exc:
        validate_date_range(start, start - timedelta(days=1))
    assert exc.value.detail == "Start date cannot be later than end date"


def test_date_range_rejects_spans_over_ceiling():
    start = datetime(2024, 1, 1)
    validate_date_range(start, start + timedelta(days=730))
    with pytest.raises(ValidationError):
        validate_date_range(start, start + timedelta(days=731))


def test_date_range_normalizes_aware_values():
    aware = datetime(2026, 1, 1, 12, tzinfo=timezone(timedelta(hours=2)))
    result = validate_date_range(aware, None)
    assert result.start == datetime(2026, 1, 1, 10)
    assert result.end is None


def test_unknown_sort_key_falls_back_to_default():
    columns = {"id": Project.id, "name": Project.name, "created_at": Project.created_at}
    clauses = order_clause(PageParams(sort_by="password", sort_order="asc"), columns, "created_at")
    assert "created_at" in str(clauses[0])
    assert len(clauses) == 2
