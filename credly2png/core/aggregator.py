"""
Cross-profile aggregation - badges held by more than one profile
"""
from __future__ import annotations

from typing import Dict, Iterable, List, Tuple, Union

from .models import CredentialRecord, HolderGroup, Slot


def compute_common(
    entries: Iterable[Union[CredentialRecord, Slot]],
    min_holders: int = 2,
) -> List[HolderGroup]:
    """
    Group badges by template identity and keep the shared ones

    Args:
        entries: Records in slot order, or the slots themselves
        min_holders: Minimum number of distinct profiles per group

    Returns:
        Groups with at least ``min_holders`` distinct holders, most held
        first; ties keep first-encountered order
    """
    groups: Dict[str, Tuple[int, CredentialRecord, Dict[str, None]]] = {}

    for position, entry in enumerate(entries):
        if isinstance(entry, Slot):
            index, record = entry.index, entry.record
        else:
            index, record = position, entry

        identity = record.identity
        if identity not in groups:
            groups[identity] = (index, record, {})
        groups[identity][2].setdefault(record.owner, None)

    common = [
        HolderGroup(
            identity=identity,
            holders=tuple(holders),
            record=record,
            index=index,
        )
        for identity, (index, record, holders) in groups.items()
        if len(holders) >= min_holders
    ]
    return sorted(common, key=lambda group: -group.holder_count)
