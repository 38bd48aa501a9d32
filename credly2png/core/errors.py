"""
Exception hierarchy for credly2png
"""
from __future__ import annotations

from typing import Optional


class Credly2PngError(RuntimeError):
    """Base class for every failure raised by credly2png."""


class InvalidIdentifier(Credly2PngError, ValueError):
    """Raised when an input line does not name a Credly profile."""


class TransportExhausted(Credly2PngError):
    """Raised when every route failed for one logical request."""

    def __init__(self, url: str, cause: Optional[BaseException] = None):
        self.url = url
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"All routes failed for {url}{detail}")


class FetchFailed(Credly2PngError):
    """Raised when not a single credential page could be fetched for a profile."""


class ImageLoadFailed(Credly2PngError):
    """Raised when an image could not be acquired and decoded by any strategy."""


class PackagingFailed(Credly2PngError):
    """Raised when an export artifact cannot be assembled or written."""
