"""
Transport routing - direct and relay-prefixed HTTP routes with sticky fallback
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence
from urllib.parse import quote, urlparse

import requests

from .config import Settings
from .errors import Credly2PngError, TransportExhausted

logger = logging.getLogger(__name__)

JSON = "json"
IMAGE = "image"

Fetch = Callable[[str], Awaitable[Any]]


class RouteError(Credly2PngError):
    """Raised by a single route attempt; the router moves on to the next route."""


class Route:
    """One way of reaching a logical URL"""

    name = "route"

    def resolve(self, url: str) -> str:
        raise NotImplementedError

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"


class DirectRoute(Route):
    name = "direct"

    def resolve(self, url: str) -> str:
        return url


class RelayRoute(Route):
    """Reach the URL through a relay that takes the target as an encoded suffix."""

    def __init__(self, prefix: str):
        self.prefix = prefix
        self.name = urlparse(prefix).netloc or prefix

    def resolve(self, url: str) -> str:
        return self.prefix + quote(url, safe="")


class TransportRouter:
    """Issue logical requests through an ordered list of routes"""

    def __init__(
        self,
        routes: Optional[Sequence[Route]] = None,
        timeout: float = 30.0,
        user_agent: str = "credly2png/0.1.0",
        fetch: Optional[Fetch] = None,
    ):
        """
        Initialize router

        Args:
            routes: Routes in preference order (defaults to direct only)
            timeout: Per-request timeout in seconds
            user_agent: User-Agent header for outgoing requests
            fetch: Async callable ``fetch(url) -> response`` replacing the
                default requests-based fetch; the response needs
                ``status_code`` and ``content``
        """
        self.routes: List[Route] = list(routes) if routes else [DirectRoute()]
        self.timeout = timeout
        self.headers = {"User-Agent": user_agent}
        self._fetch = fetch or self._http_get
        self._default_session: Optional[TransportSession] = None

    @classmethod
    def from_settings(cls, settings: Settings, fetch: Optional[Fetch] = None) -> "TransportRouter":
        routes: List[Route] = [DirectRoute()]
        routes.extend(RelayRoute(prefix) for prefix in settings.relay_prefixes)
        return cls(
            routes,
            timeout=settings.timeout,
            user_agent=settings.user_agent,
            fetch=fetch,
        )

    @property
    def direct_routes(self) -> List[Route]:
        return [route for route in self.routes if isinstance(route, DirectRoute)]

    @property
    def relay_routes(self) -> List[Route]:
        return [route for route in self.routes if not isinstance(route, DirectRoute)]

    def session(self, routes: Optional[Sequence[Route]] = None) -> "TransportSession":
        """Start a new logical session with no sticky route."""
        return TransportSession(self, routes)

    async def request(self, url: str, kind: str = JSON) -> Any:
        """Request through the router-wide default session."""
        if self._default_session is None:
            self._default_session = self.session()
        return await self._default_session.request(url, kind)

    async def attempt(self, route: Route, url: str, kind: str = JSON) -> Any:
        """
        Try one route once

        Returns:
            Parsed JSON mapping for ``kind="json"``, raw bytes for ``kind="image"``

        Raises:
            RouteError: On non-success status or malformed payload
            requests.RequestException: On network failure
        """
        target = route.resolve(url)
        response = await self._fetch(target)

        status = getattr(response, "status_code", 200)
        if status >= 400:
            raise RouteError(f"HTTP {status} via {route.name}: {url}")

        content = response.content or b""
        if kind == IMAGE:
            if not content:
                raise RouteError(f"Empty image body via {route.name}: {url}")
            return content

        try:
            payload = json.loads(content)
        except ValueError as exc:
            raise RouteError(f"Malformed JSON via {route.name}: {url}") from exc
        if not isinstance(payload, dict):
            raise RouteError(f"Unexpected JSON payload via {route.name}: {url}")
        return payload

    async def _http_get(self, url: str) -> requests.Response:
        return await asyncio.to_thread(
            requests.get,
            url,
            headers=self.headers,
            timeout=self.timeout,
        )


class TransportSession:
    """Sticky-route state for one logical session (one profile fetch)"""

    def __init__(self, router: TransportRouter, routes: Optional[Sequence[Route]] = None):
        self.router = router
        self.routes: List[Route] = list(routes) if routes else list(router.routes)
        self._sticky: Dict[str, Route] = {}

    def sticky_route(self, kind: str = JSON) -> Optional[Route]:
        return self._sticky.get(kind)

    def reset(self) -> None:
        self._sticky.clear()

    def _ordered_routes(self, kind: str) -> List[Route]:
        sticky = self._sticky.get(kind)
        if sticky is None:
            return list(self.routes)
        return [sticky] + [route for route in self.routes if route is not sticky]

    async def request(self, url: str, kind: str = JSON) -> Any:
        """
        Request a logical URL, falling back across routes

        Raises:
            TransportExhausted: If every route failed; carries the last cause
        """
        last_error: Optional[Exception] = None
        for route in self._ordered_routes(kind):
            try:
                result = await self.router.attempt(route, url, kind)
            except (requests.RequestException, RouteError, OSError) as exc:
                last_error = exc
                logger.debug("Route %s failed for %s: %s", route.name, url, exc)
                continue
            if self._sticky.get(kind) is not route:
                logger.debug("Sticking to route %s for %s requests", route.name, kind)
            self._sticky[kind] = route
            return result

        raise TransportExhausted(url, last_error) from last_error
