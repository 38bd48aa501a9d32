"""
credly2png - Render Credly badges onto fixed-size PNG canvases

This is the main public API module.
"""

from .core.models import BatchFilters, CredentialRecord, HolderGroup
from .core.converter import BadgeConverter

__version__ = "0.1.0"
__all__ = [
    "BadgeConverter",
    "BatchFilters",
    "CredentialRecord",
    "HolderGroup",
]
