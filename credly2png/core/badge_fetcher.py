"""
Badge fetching module - drains a profile's paginated badge list
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from .errors import FetchFailed, TransportExhausted
from .transport import JSON, TransportSession

logger = logging.getLogger(__name__)

BADGES_URL = "https://www.credly.com/users/{profile_id}/badges.json?page={page}&per_page={per_page}"
PROFILE_URL = "https://www.credly.com/users/{profile_id}.json"


class BadgeFetcher:
    """Fetch badge entries and display names from Credly"""

    def __init__(self, per_page: int = 100, max_pages: int = 500):
        """
        Initialize fetcher

        Args:
            per_page: Page size requested from the service
            max_pages: Hard stop for pagination, whatever the service reports
        """
        self.per_page = per_page
        self.max_pages = max_pages

    def page_url(self, profile_id: str, page: int) -> str:
        return BADGES_URL.format(profile_id=profile_id, page=page, per_page=self.per_page)

    async def fetch_all(self, profile_id: str, session: TransportSession) -> List[Dict[str, Any]]:
        """
        Fetch every badge entry of one profile

        Follows ``metadata.next_page_url`` when the service provides one and
        falls back to ``metadata.has_more`` with a page counter otherwise.

        Args:
            profile_id: Canonical profile id
            session: Transport session used for every page

        Returns:
            Raw badge entries in service order. If a later page fails on
            every route, the entries gathered so far.

        Raises:
            FetchFailed: If not a single page could be fetched
        """
        entries: List[Dict[str, Any]] = []
        page = 1
        pages_fetched = 0
        url: Optional[str] = self.page_url(profile_id, page)
        seen_urls = set()

        while url and pages_fetched < self.max_pages:
            seen_urls.add(url)
            try:
                payload = await session.request(url, JSON)
            except TransportExhausted as exc:
                if pages_fetched == 0:
                    raise FetchFailed(
                        f"Failed to fetch badges for {profile_id}. "
                        "User may not exist or profile is private."
                    ) from exc
                logger.warning(
                    "Stopping %s after %d page(s); page %d failed: %s",
                    profile_id,
                    pages_fetched,
                    page,
                    exc,
                )
                return entries

            pages_fetched += 1
            data = payload.get("data") or []
            if not data:
                break
            entries.extend(item for item in data if isinstance(item, dict))

            url = self._next_page_url(payload, profile_id, page)
            page += 1
            if url in seen_urls:
                logger.warning("Pagination cursor repeated for %s, stopping: %s", profile_id, url)
                break
        else:
            if url:
                logger.warning("Page limit %d reached for %s", self.max_pages, profile_id)

        logger.info("Fetched %d badge(s) for %s over %d page(s)", len(entries), profile_id, pages_fetched)
        return entries

    async def fetch_display_name(self, profile_id: str, session: TransportSession) -> str:
        """Best-effort human-readable name; falls back to the id itself."""
        try:
            payload = await session.request(PROFILE_URL.format(profile_id=profile_id), JSON)
        except TransportExhausted as exc:
            logger.debug("Display name unavailable for %s: %s", profile_id, exc)
            return profile_id

        data = payload.get("data") or {}
        if not isinstance(data, dict):
            return profile_id
        parts = [str(data.get(key) or "").strip() for key in ("first_name", "last_name")]
        name = " ".join(part for part in parts if part)
        return name or profile_id

    def _next_page_url(self, payload: Dict[str, Any], profile_id: str, page: int) -> Optional[str]:
        metadata = payload.get("metadata") or {}
        if not isinstance(metadata, dict):
            return None
        next_url = metadata.get("next_page_url")
        if next_url:
            return str(next_url)
        if metadata.get("has_more"):
            return self.page_url(profile_id, page + 1)
        return None
