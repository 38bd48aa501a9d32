"""
Profile identifier extraction from free-form input lines
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, List, Union

from .errors import InvalidIdentifier

logger = logging.getLogger(__name__)

PROFILE_URL_PATTERN = re.compile(
    r"^(?:[a-z][a-z0-9+.\-]*://)?(?:www\.)?credly\.com/users/(?P<id>[^/?#\s]+)(?:[/?#]|$)",
    re.IGNORECASE,
)
BARE_ID_PATTERN = re.compile(r"^[A-Za-z0-9._\-]+$")


@dataclass
class ParsedInput:
    profile_ids: List[str] = field(default_factory=list)
    invalid_lines: List[str] = field(default_factory=list)

    @property
    def invalid_count(self) -> int:
        return len(self.invalid_lines)


def extract_profile_id(line: str) -> str:
    """
    Extract the canonical profile id from one input line

    Accepts profile URLs (``https://www.credly.com/users/jane-doe/badges``,
    with or without protocol and ``www.``) and bare ids (``jane-doe``).

    Raises:
        InvalidIdentifier: If the line names no profile
    """
    value = (line or "").strip()
    if not value:
        raise InvalidIdentifier("Profile reference cannot be empty.")

    match = PROFILE_URL_PATTERN.match(value)
    if match:
        candidate = match.group("id")
    elif "/" not in value and BARE_ID_PATTERN.fullmatch(value):
        candidate = value
    else:
        raise InvalidIdentifier(
            f"Invalid Credly profile reference: {value}. "
            "Expected: https://www.credly.com/users/username"
        )

    if not BARE_ID_PATTERN.fullmatch(candidate) or candidate.startswith("."):
        raise InvalidIdentifier(f"Invalid Credly username: {candidate}")
    return candidate.lower()


def parse_profile_lines(source: Union[str, Iterable[str]]) -> ParsedInput:
    """Parse newline-separated profile references, keeping going past bad lines."""
    lines = source.splitlines() if isinstance(source, str) else list(source)
    parsed = ParsedInput()
    seen = set()

    for raw_line in lines:
        line = raw_line.strip()
        if not line:
            continue
        try:
            profile_id = extract_profile_id(line)
        except InvalidIdentifier as exc:
            logger.warning("Skipping input line: %s", exc)
            parsed.invalid_lines.append(line)
            continue
        if profile_id in seen:
            continue
        seen.add(profile_id)
        parsed.profile_ids.append(profile_id)

    return parsed
