"""
Data models for credly2png
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Mapping, Optional, Tuple

CREDENTIAL_URL_TEMPLATE = "https://www.credly.com/badges/{id}"


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a service timestamp (ISO 8601, optional trailing Z)."""
    if not value:
        return None
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text[:10])
    except ValueError:
        return None


@dataclass(frozen=True)
class CredentialRecord:
    """One issued badge, tagged with the profile it was fetched for"""
    template_id: Optional[str]
    name: str
    owner: str
    issuer: str = ""
    description: str = ""
    issued_at: Optional[str] = None
    expires_at: Optional[str] = None
    image_url: Optional[str] = None
    credential_url: Optional[str] = None

    @property
    def identity(self) -> str:
        """Grouping key across profiles: template id, else name"""
        return self.template_id or self.name

    @property
    def issued_date(self) -> Optional[date]:
        parsed = parse_timestamp(self.issued_at)
        return parsed.date() if parsed else None

    @classmethod
    def from_api(cls, raw: Mapping[str, Any], owner: str) -> "CredentialRecord":
        """Build a record from one entry of the badges.json ``data`` array."""
        template = _mapping(raw.get("badge_template"))
        name = template.get("name") or raw.get("name") or "Unknown Badge"
        template_id = template.get("id")

        image_url = (
            raw.get("image_url")
            or _mapping(raw.get("image")).get("url")
            or template.get("image_url")
        )

        badge_id = raw.get("id")
        credential_url = raw.get("badge_url") or (
            CREDENTIAL_URL_TEMPLATE.format(id=badge_id) if badge_id else None
        )

        return cls(
            template_id=str(template_id) if template_id else None,
            name=str(name).strip(),
            owner=owner,
            issuer=_issuer_name(raw, template),
            description=str(template.get("description") or raw.get("description") or ""),
            issued_at=raw.get("issued_at") or raw.get("issued_at_date"),
            expires_at=raw.get("expires_at") or raw.get("expires_at_date"),
            image_url=image_url,
            credential_url=credential_url,
        )

    def __str__(self):
        return f"{self.name} ({self.issuer or 'unknown issuer'}) [{self.owner}]"


def _mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, dict) else {}


def _issuer_name(raw: Mapping[str, Any], template: Mapping[str, Any]) -> str:
    issuer = raw.get("issuer") or template.get("issuer") or {}
    if isinstance(issuer, str):
        return issuer
    issuer = _mapping(issuer)
    entities = issuer.get("entities")
    for entity in entities if isinstance(entities, list) else []:
        name = _mapping(_mapping(entity).get("entity")).get("name")
        if name:
            return str(name)
    owner = _mapping(template.get("owner"))
    if owner.get("name"):
        return str(owner["name"])
    summary = issuer.get("summary") or ""
    return str(summary).removeprefix("issued by ").strip()


@dataclass(frozen=True)
class BatchFilters:
    """Keyword and minimum-issued-date filters applied per profile"""
    keyword: Optional[str] = None
    issued_after: Optional[date] = None

    def matches(self, record: CredentialRecord) -> bool:
        if self.keyword:
            needle = self.keyword.strip().lower()
            haystack = " ".join(
                (record.name, record.issuer, record.description)
            ).lower()
            if needle and needle not in haystack:
                return False
        if self.issued_after:
            issued = record.issued_date
            if issued is None or issued < self.issued_after:
                return False
        return True


class ProfileStatus:
    PENDING = "pending"
    FETCHING = "fetching"
    RENDERING = "rendering"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ProfileOutcome:
    """Per-profile status marker shown next to each profile"""
    profile_id: str
    status: str = ProfileStatus.PENDING
    record_count: int = 0
    fetched_count: int = 0
    slots: range = range(0)
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == ProfileStatus.FAILED

    def __str__(self):
        if self.failed:
            return f"{self.profile_id}: failed ({self.error})"
        return f"{self.profile_id}: {self.status}, {self.record_count} badges"


@dataclass
class Slot:
    """A reserved position in the result list, with its image if rendered"""
    index: int
    record: CredentialRecord
    image: Any = None
    error: Optional[str] = None

    @property
    def rendered(self) -> bool:
        return self.image is not None


@dataclass(frozen=True)
class HolderGroup:
    """A credential identity held by several profiles"""
    identity: str
    holders: Tuple[str, ...]
    record: CredentialRecord
    index: int

    @property
    def holder_count(self) -> int:
        return len(self.holders)

