"""
Shared fakes for the network side of the pipeline
"""
import asyncio
import io
import json
from types import SimpleNamespace

import pytest
from PIL import Image

PROFILE_URL = "https://www.credly.com/users/{}.json"
BADGES_PREFIX = "https://www.credly.com/users/{}/badges.json"


def png_bytes(width=40, height=20, color=(200, 30, 30, 255)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGBA", (width, height), color).save(buffer, format="PNG")
    return buffer.getvalue()


def json_response(payload, status_code=200):
    return SimpleNamespace(status_code=status_code, content=json.dumps(payload).encode("utf-8"))


def bytes_response(data, status_code=200):
    return SimpleNamespace(status_code=status_code, content=data)


def make_badge(badge_id, template_id, name, issuer="Acme", issued_at="2024-01-15T00:00:00Z", image_url=None):
    return {
        "id": badge_id,
        "issued_at": issued_at,
        "expires_at": None,
        "image_url": image_url,
        "badge_template": {
            "id": template_id,
            "name": name,
            "description": f"{name} description",
        },
        "issuer": {"entities": [{"entity": {"name": issuer}}]},
    }


class FakeCredly:
    """
    In-memory Credly: one page per profile, configurable delays and failures

    ``profiles`` maps profile id -> {"name": (first, last), "badges": [...]}.
    Badge image URLs of the form ``https://img.test/<key>.png`` are served as
    PNGs unless listed in ``broken_images``.
    """

    def __init__(self, profiles, fetch_delays=None, image_delays=None, broken_images=(), missing=()):
        self.profiles = profiles
        self.fetch_delays = fetch_delays or {}
        self.image_delays = image_delays or {}
        self.broken_images = set(broken_images)
        self.missing = set(missing)
        self.calls = []

    async def __call__(self, url):
        self.calls.append(url)
        for profile_id, profile in self.profiles.items():
            if url == PROFILE_URL.format(profile_id):
                first, last = profile.get("name", ("", ""))
                return json_response({"data": {"first_name": first, "last_name": last}})
            if url.startswith(BADGES_PREFIX.format(profile_id)):
                await asyncio.sleep(self.fetch_delays.get(profile_id, 0))
                if profile_id in self.missing:
                    return json_response({"error": "not found"}, status_code=404)
                return json_response({"data": profile["badges"], "metadata": {"has_more": False}})

        if url.startswith("https://img.test/"):
            key = url.rsplit("/", 1)[-1].split(".")[0]
            await asyncio.sleep(self.image_delays.get(key, 0))
            if key in self.broken_images:
                return bytes_response(b"", status_code=404)
            return bytes_response(png_bytes())

        raise ConnectionError(f"unexpected url {url}")


@pytest.fixture
def fake_credly():
    return FakeCredly
