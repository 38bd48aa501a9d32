"""
Shared, index-addressed result list for one batch run
"""
from __future__ import annotations

import threading
from typing import Any, Dict, Iterator, List, Optional, Sequence

from .models import CredentialRecord, ProfileOutcome, Slot


class ResultStore:
    """
    Ordered badge results shared by every profile in a batch

    Profiles reserve a contiguous index range before any image work starts,
    and images are written back to those indices, so the final order is the
    reservation order whatever order images complete in.

    All mutators are plain (non-async) methods: none of them can be
    suspended part-way. Each one also holds a reentrant lock, so it stays
    atomic if a caller ever drives the store from worker threads.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._slots: List[Slot] = []
        self.display_names: Dict[str, str] = {}
        self.outcomes: Dict[str, ProfileOutcome] = {}

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[Slot]:
        return iter(self.slots())

    def reserve(self, records: Sequence[CredentialRecord]) -> range:
        """Append ``records`` and return the index range they occupy."""
        with self._lock:
            start = len(self._slots)
            for offset, record in enumerate(records):
                self._slots.append(Slot(index=start + offset, record=record))
            return range(start, len(self._slots))

    def store_image(self, index: int, image: Any) -> None:
        with self._lock:
            slot = self._slots[index]
            slot.image = image
            slot.error = None

    def mark_failed(self, index: int, reason: str) -> None:
        with self._lock:
            slot = self._slots[index]
            slot.image = None
            slot.error = reason

    def slot(self, index: int) -> Slot:
        with self._lock:
            return self._slots[index]

    def slots(self) -> List[Slot]:
        with self._lock:
            return list(self._slots)

    @property
    def records(self) -> List[CredentialRecord]:
        return [slot.record for slot in self.slots()]

    def rendered_slots(self) -> List[Slot]:
        return [slot for slot in self.slots() if slot.rendered]

    def failed_slots(self) -> List[Slot]:
        return [slot for slot in self.slots() if slot.error]

    def set_display_name(self, profile_id: str, name: str) -> None:
        with self._lock:
            self.display_names[profile_id] = name

    def display_name(self, profile_id: str) -> str:
        return self.display_names.get(profile_id) or profile_id

    def outcome(self, profile_id: str) -> ProfileOutcome:
        with self._lock:
            if profile_id not in self.outcomes:
                self.outcomes[profile_id] = ProfileOutcome(profile_id=profile_id)
            return self.outcomes[profile_id]

    def set_status(self, profile_id: str, status: str, error: Optional[str] = None) -> ProfileOutcome:
        with self._lock:
            outcome = self.outcome(profile_id)
            outcome.status = status
            outcome.error = error
            return outcome

    def contributing_profiles(self) -> List[str]:
        """Profiles with at least one record, in first-slot order."""
        seen: Dict[str, None] = {}
        for slot in self.slots():
            seen.setdefault(slot.record.owner, None)
        return list(seen)
