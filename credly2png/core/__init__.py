"""
credly2png - Render Credly badges onto fixed-size PNG canvases

This package fetches the public badges of one or more Credly profiles,
letterboxes every badge image onto a canvas of fixed size, exports the
results as PNG files, a ZIP archive or a CSV summary, and lists the
badges that several profiles have in common.
"""

__version__ = "0.1.0"
__author__ = "credly2png contributors"
__license__ = "MIT"

from .models import BatchFilters, CredentialRecord, HolderGroup
from .converter import BadgeConverter

__all__ = [
    "BadgeConverter",
    "BatchFilters",
    "CredentialRecord",
    "HolderGroup",
]
