"""
Test transport routing
"""
import asyncio

import pytest

from conftest import bytes_response, json_response
from credly2png.core.config import Settings
from credly2png.core.errors import TransportExhausted
from credly2png.core.transport import IMAGE, JSON, DirectRoute, RelayRoute, TransportRouter

URL = "https://www.credly.com/users/jane/badges.json?page=1&per_page=100"
RELAY_A = "https://relay-a.test/?"
RELAY_B = "https://relay-b.test/raw?url="


class _ScriptedFetch:
    """Answer per route prefix: a response, or an exception to raise"""

    def __init__(self, answers):
        self.answers = answers
        self.calls = []

    async def __call__(self, url):
        self.calls.append(url)
        for prefix in (RELAY_A, RELAY_B):
            if url.startswith(prefix):
                answer = self.answers.get(prefix)
                break
        else:
            answer = self.answers.get("direct")
        if isinstance(answer, Exception):
            raise answer
        return answer


def _router(fetch):
    return TransportRouter([DirectRoute(), RelayRoute(RELAY_A), RelayRoute(RELAY_B)], fetch=fetch)


class TestRoutes:
    """Test route URL resolution"""

    def test_direct(self):
        assert DirectRoute().resolve(URL) == URL

    def test_relay_encodes_target(self):
        route = RelayRoute("https://corsproxy.io/?")
        assert route.resolve("https://a.test/b?c=1") == "https://corsproxy.io/?https%3A%2F%2Fa.test%2Fb%3Fc%3D1"
        assert route.name == "corsproxy.io"

    def test_from_settings(self):
        router = TransportRouter.from_settings(Settings())
        assert isinstance(router.routes[0], DirectRoute)
        assert [route.prefix for route in router.relay_routes] == Settings().relay_prefixes


class TestTransportSession:
    """Test fallback and sticky routes"""

    def test_falls_back_in_order(self):
        """Test network error and bad status both move on to the next route"""
        fetch = _ScriptedFetch({
            "direct": ConnectionError("refused"),
            RELAY_A: json_response({}, status_code=503),
            RELAY_B: json_response({"data": [1]}),
        })
        session = _router(fetch).session()

        payload = asyncio.run(session.request(URL, JSON))

        assert payload == {"data": [1]}
        assert len(fetch.calls) == 3
        assert session.sticky_route(JSON).prefix == RELAY_B

    def test_sticky_route_tried_first(self):
        fetch = _ScriptedFetch({
            "direct": ConnectionError("refused"),
            RELAY_A: json_response({"data": []}),
        })
        session = _router(fetch).session()

        async def scenario():
            await session.request(URL, JSON)
            fetch.calls.clear()
            await session.request(URL, JSON)

        asyncio.run(scenario())
        assert len(fetch.calls) == 1
        assert fetch.calls[0].startswith(RELAY_A)

    def test_sticky_falls_back_when_it_fails(self):
        """Test a failing sticky route is followed by the remaining routes in order"""
        fetch = _ScriptedFetch({
            "direct": ConnectionError("refused"),
            RELAY_A: json_response({"data": []}),
            RELAY_B: json_response({"data": ["b"]}),
        })
        session = _router(fetch).session()

        async def scenario():
            await session.request(URL, JSON)
            fetch.answers[RELAY_A] = ConnectionError("relay down")
            fetch.calls.clear()
            return await session.request(URL, JSON)

        assert asyncio.run(scenario()) == {"data": ["b"]}
        assert [call[:16] for call in fetch.calls] == [RELAY_A[:16], URL[:16], RELAY_B[:16]]
        assert session.sticky_route(JSON).prefix == RELAY_B

    def test_new_session_forgets_sticky(self):
        fetch = _ScriptedFetch({"direct": ConnectionError("x"), RELAY_A: json_response({})})
        router = _router(fetch)
        session = router.session()
        asyncio.run(session.request(URL, JSON))
        assert session.sticky_route(JSON) is not None
        assert router.session().sticky_route(JSON) is None
        session.reset()
        assert session.sticky_route(JSON) is None

    def test_sticky_is_per_kind(self):
        fetch = _ScriptedFetch({"direct": ConnectionError("x"), RELAY_A: bytes_response(b"\x89PNG")})
        session = _router(fetch).session()
        data = asyncio.run(session.request("https://img.test/a.png", IMAGE))
        assert data == b"\x89PNG"
        assert session.sticky_route(IMAGE).prefix == RELAY_A
        assert session.sticky_route(JSON) is None

    def test_malformed_json_is_a_failure(self):
        fetch = _ScriptedFetch({
            "direct": bytes_response(b"<html>blocked</html>"),
            RELAY_A: json_response(["not", "a", "mapping"]),
            RELAY_B: json_response({"ok": True}),
        })
        assert asyncio.run(_router(fetch).session().request(URL, JSON)) == {"ok": True}

    def test_exhausted_carries_last_cause(self):
        last = ConnectionError("relay b down")
        fetch = _ScriptedFetch({
            "direct": ConnectionError("refused"),
            RELAY_A: json_response({}, status_code=500),
            RELAY_B: last,
        })
        with pytest.raises(TransportExhausted) as info:
            asyncio.run(_router(fetch).session().request(URL, JSON))
        assert info.value.cause is last
        assert info.value.__cause__ is last
        assert info.value.url == URL

    def test_router_default_session(self):
        fetch = _ScriptedFetch({"direct": json_response({"data": []})})
        router = TransportRouter(fetch=fetch)
        assert asyncio.run(router.request(URL)) == {"data": []}
