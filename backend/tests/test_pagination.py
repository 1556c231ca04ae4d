"""
Road Trip Planner Backend — Pagination Tests
=============================================

What we test:
    ✅ page/limit normalization and the server-side ceiling
    ✅ Envelope math at the edges (empty, exact fit, past the end)
"""

from roadtrip_api.services.pagination import MAX_OFFSET, build_pagination, page_request


class TestPageRequest:
    def test_defaults(self):
        request = page_request(None, None, default_limit=12)
        assert (request.page, request.limit, request.offset) == (1, 12, 0)

    def test_non_positive_values_fall_back(self):
        """page=0 and limit=-5 behave like missing values."""
        request = page_request(0, -5, default_limit=10)
        assert (request.page, request.limit) == (1, 10)

    def test_limit_is_clamped(self):
        assert page_request(1, 5000, default_limit=10, max_limit=100).limit == 100

    def test_offset(self):
        assert page_request(3, 12, default_limit=10).offset == 24

    def test_offset_is_capped_for_huge_pages(self):
        request = page_request(10**19, 100, default_limit=10)
        assert request.page == 10**19
        assert request.offset == MAX_OFFSET


class TestBuildPagination:
    def test_middle_page(self):
        envelope = build_pagination(page_request(2, 10, 10), total=25)
        assert envelope.total_pages == 3
        assert envelope.has_next and envelope.has_prev

    def test_exact_fit(self):
        envelope = build_pagination(page_request(2, 10, 10), total=20)
        assert envelope.total_pages == 2
        assert not envelope.has_next

    def test_empty(self):
        envelope = build_pagination(page_request(1, 10, 10), total=0)
        assert envelope.total_pages == 0
        assert not envelope.has_next and not envelope.has_prev

    def test_past_the_end(self):
        """A page beyond the last one is not an error."""
        envelope = build_pagination(page_request(9, 10, 10), total=5)
        assert envelope.current_page == 9
        assert envelope.total_pages == 1
        assert not envelope.has_next and envelope.has_prev

    def test_camel_case_wire_format(self):
        envelope = build_pagination(page_request(1, 10, 10), total=1)
        assert set(envelope.model_dump(by_alias=True)) == {
            "currentPage",
            "totalPages",
            "totalItems",
            "hasNext",
            "hasPrev",
            "limit",
        }
