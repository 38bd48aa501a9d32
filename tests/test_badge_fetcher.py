"""
Test badge fetcher pagination
"""
import asyncio

import pytest

from conftest import json_response
from credly2png.core.badge_fetcher import BadgeFetcher
from credly2png.core.errors import FetchFailed
from credly2png.core.transport import TransportRouter


class _PagedFetch:
    """Serve pages keyed by URL; anything missing is a connection error"""

    def __init__(self, pages):
        self.pages = pages
        self.calls = []

    async def __call__(self, url):
        self.calls.append(url)
        if url not in self.pages:
            raise ConnectionError(f"no route to {url}")
        return json_response(self.pages[url])


def _fetch_all(pages, fetcher=None, profile_id="jane"):
    fetch = _PagedFetch(pages)
    session = TransportRouter(fetch=fetch).session()
    fetcher = fetcher or BadgeFetcher()
    return asyncio.run(fetcher.fetch_all(profile_id, session)), fetch


class TestBadgeFetcher:
    """Test BadgeFetcher.fetch_all"""

    def setup_method(self):
        self.fetcher = BadgeFetcher()
        self.page1 = self.fetcher.page_url("jane", 1)
        self.page2 = self.fetcher.page_url("jane", 2)
        self.page3 = self.fetcher.page_url("jane", 3)

    def test_page_url(self):
        assert self.page1 == "https://www.credly.com/users/jane/badges.json?page=1&per_page=100"

    def test_has_more_pagination(self):
        entries, fetch = _fetch_all({
            self.page1: {"data": [{"id": 1}, {"id": 2}], "metadata": {"has_more": True}},
            self.page2: {"data": [{"id": 3}], "metadata": {"has_more": False}},
        })
        assert [entry["id"] for entry in entries] == [1, 2, 3]
        assert fetch.calls == [self.page1, self.page2]

    def test_next_page_url_is_followed(self):
        cursor = "https://www.credly.com/users/jane/badges.json?cursor=abc"
        entries, fetch = _fetch_all({
            self.page1: {"data": [{"id": 1}], "metadata": {"next_page_url": cursor}},
            cursor: {"data": [{"id": 2}], "metadata": {}},
        })
        assert [entry["id"] for entry in entries] == [1, 2]
        assert fetch.calls == [self.page1, cursor]

    def test_empty_page_stops(self):
        entries, fetch = _fetch_all({
            self.page1: {"data": [{"id": 1}], "metadata": {"has_more": True}},
            self.page2: {"data": [], "metadata": {"has_more": True}},
        })
        assert len(entries) == 1
        assert len(fetch.calls) == 2

    def test_partial_failure_returns_earlier_pages(self):
        """Test a failing second page yields exactly the first page"""
        entries, _ = _fetch_all({
            self.page1: {"data": [{"id": 1}, {"id": 2}], "metadata": {"has_more": True}},
        })
        assert [entry["id"] for entry in entries] == [1, 2]

    def test_first_page_failure_raises(self):
        with pytest.raises(FetchFailed):
            _fetch_all({})

    def test_repeated_cursor_terminates(self):
        entries, fetch = _fetch_all({
            self.page1: {"data": [{"id": 1}], "metadata": {"next_page_url": self.page1}},
        })
        assert len(entries) == 1
        assert fetch.calls == [self.page1]

    def test_page_limit_terminates(self):
        fetcher = BadgeFetcher(max_pages=2)
        entries, fetch = _fetch_all(
            {
                self.page1: {"data": [{"id": 1}], "metadata": {"has_more": True}},
                self.page2: {"data": [{"id": 2}], "metadata": {"has_more": True}},
                self.page3: {"data": [{"id": 3}], "metadata": {"has_more": True}},
            },
            fetcher=fetcher,
        )
        assert len(entries) == 2
        assert len(fetch.calls) == 2


class TestDisplayName:
    """Test BadgeFetcher.fetch_display_name"""

    def _name(self, pages):
        session = TransportRouter(fetch=_PagedFetch(pages)).session()
        return asyncio.run(BadgeFetcher().fetch_display_name("jane", session))

    def test_full_name(self):
        url = "https://www.credly.com/users/jane.json"
        assert self._name({url: {"data": {"first_name": "Jane", "last_name": "Doe"}}}) == "Jane Doe"

    def test_falls_back_to_id(self):
        assert self._name({}) == "jane"

    def test_blank_name_falls_back_to_id(self):
        url = "https://www.credly.com/users/jane.json"
        assert self._name({url: {"data": {"first_name": " ", "last_name": None}}}) == "jane"
