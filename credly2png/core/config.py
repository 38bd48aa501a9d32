"""
Runtime settings for credly2png
"""
from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import Credly2PngError

DEFAULT_RELAY_PREFIXES = [
    "https://corsproxy.io/?",
    "https://api.allorigins.win/raw?url=",
]


class Settings(BaseModel):
    """Canvas size, concurrency limits and transport options"""

    width: int = Field(default=512, gt=0)
    height: int = Field(default=254, gt=0)
    profile_concurrency: int = Field(default=3, gt=0)
    image_concurrency: int = Field(default=6, gt=0)
    timeout: float = Field(default=30.0, gt=0)
    per_page: int = Field(default=100, gt=0)
    max_pages: int = Field(default=500, gt=0)
    relay_prefixes: List[str] = Field(default_factory=lambda: list(DEFAULT_RELAY_PREFIXES))
    user_agent: str = "credly2png/0.1.0"

    @field_validator("relay_prefixes")
    @classmethod
    def _strip_empty_prefixes(cls, value: List[str]) -> List[str]:
        return [prefix.strip() for prefix in value if prefix and prefix.strip()]


def load_settings(path: Optional[str] = None, **overrides: Any) -> Settings:
    """
    Build settings from an optional YAML file plus explicit overrides

    Args:
        path: YAML file with any subset of the ``Settings`` fields
        **overrides: Values that win over the file; ``None`` values are ignored

    Returns:
        Validated Settings

    Raises:
        Credly2PngError: If the file is unreadable or a value is invalid
    """
    values: dict = {}
    if path:
        config_file = Path(path).expanduser()
        try:
            loaded = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise Credly2PngError(f"Unable to read config file: {config_file}") from exc
        if loaded is not None and not isinstance(loaded, dict):
            raise Credly2PngError(f"Config file must contain a mapping: {config_file}")
        values.update(loaded or {})

    values.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return Settings(**values)
    except ValidationError as exc:
        raise Credly2PngError(f"Invalid settings: {exc}") from exc
