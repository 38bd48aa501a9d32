"""
Export module - single images, zip archive, CSV summary and shared-badge report
"""
from __future__ import annotations

import csv
import io
import logging
import re
import zipfile
from pathlib import Path
from typing import Dict, Iterable, List, Mapping

from PIL import Image

from .errors import PackagingFailed
from .models import HolderGroup, Slot
from .result_store import ResultStore

logger = logging.getLogger(__name__)

ARCHIVE_NAME = "credly_badges_processed.zip"
CSV_NAME = "credly_badges.csv"
CSV_HEADER = ["Profile", "Name", "Issuer", "IssuedAt", "ExpiresAt", "CredentialURL", "ImageURL"]


def sanitize_filename(name: str, max_length: int = 100) -> str:
    """Reduce a badge name to ``[A-Za-z0-9._-]``, collapsing and trimming underscores."""
    safe = re.sub(r"[^a-zA-Z0-9._-]", "_", name or "")
    safe = re.sub(r"__+", "_", safe)
    safe = safe.strip("_")
    return safe[:max_length]


def image_filename(slot: Slot) -> str:
    stem = sanitize_filename(slot.record.name) or f"badge_{slot.index + 1}"
    return f"{stem}_processed.png"


def profile_dirname(profile_id: str) -> str:
    """Archive folder for a profile; never empty and never a dot path."""
    return sanitize_filename(profile_id).lstrip("._") or "profile"


def encode_png(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    try:
        image.save(buffer, format="PNG", optimize=True)
    except (OSError, ValueError) as exc:
        raise PackagingFailed(f"Failed to encode PNG: {exc}") from exc
    return buffer.getvalue()


def export_images(store: ResultStore, output_dir: str) -> List[Path]:
    """
    Write one PNG per rendered badge

    Args:
        store: Finished result store
        output_dir: Target directory, created if missing

    Returns:
        Written paths in slot order
    """
    target_dir = Path(output_dir).expanduser()
    used: Dict[str, int] = {}
    written: List[Path] = []

    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        for slot in store.rendered_slots():
            filename = _unique_name(image_filename(slot), used)
            path = target_dir / filename
            path.write_bytes(encode_png(slot.image))
            written.append(path)
    except OSError as exc:
        raise PackagingFailed(f"Failed to write images to {target_dir}: {exc}") from exc

    logger.info("Wrote %d image(s) to %s", len(written), target_dir)
    return written


def archive_entries(store: ResultStore) -> List[tuple]:
    """``(path, slot)`` pairs for the archive, ordinal counted per profile."""
    entries = []
    ordinals: Dict[str, int] = {}
    for slot in store.slots():
        owner = slot.record.owner
        ordinals[owner] = ordinals.get(owner, 0) + 1
        if not slot.rendered:
            continue
        stem = sanitize_filename(slot.record.name) or f"badge_{ordinals[owner]}"
        entries.append((f"{profile_dirname(owner)}/{ordinals[owner]}_{stem}_processed.png", slot))
    return entries


def build_archive(store: ResultStore) -> bytes:
    """Zip every rendered badge as ``{profile}/{ordinal}_{name}_processed.png``."""
    entries = archive_entries(store)
    if not entries:
        raise PackagingFailed("No processed badges to archive")

    buffer = io.BytesIO()
    try:
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
            for path, slot in entries:
                archive.writestr(path, encode_png(slot.image))
    except (OSError, zipfile.BadZipFile) as exc:
        raise PackagingFailed(f"Failed to create ZIP file: {exc}") from exc
    return buffer.getvalue()


def write_archive(store: ResultStore, path: str) -> Path:
    output = Path(path).expanduser()
    payload = build_archive(store)
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_bytes(payload)
    except OSError as exc:
        raise PackagingFailed(f"Failed to write archive {output}: {exc}") from exc
    return output


def build_csv(store: ResultStore) -> str:
    """One row per badge, whether or not its image rendered."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for slot in store.slots():
        record = slot.record
        writer.writerow([
            record.owner,
            record.name,
            record.issuer,
            record.issued_at or "",
            record.expires_at or "",
            record.credential_url or "",
            record.image_url or "",
        ])
    return buffer.getvalue()


def write_csv(store: ResultStore, path: str) -> Path:
    output = Path(path).expanduser()
    try:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(build_csv(store), encoding="utf-8", newline="")
    except OSError as exc:
        raise PackagingFailed(f"Failed to write CSV {output}: {exc}") from exc
    return output


def format_common_report(groups: Iterable[HolderGroup], display_names: Mapping[str, str]) -> str:
    lines = []
    for group in groups:
        holders = ", ".join(display_names.get(holder) or holder for holder in group.holders)
        issuer = f" ({group.record.issuer})" if group.record.issuer else ""
        lines.append(f"{group.record.name}{issuer}: {group.holder_count} holders - {holders}")
    return "\n".join(lines)


def _unique_name(filename: str, used: Dict[str, int]) -> str:
    count = used.get(filename, 0)
    used[filename] = count + 1
    if not count:
        return filename
    stem, _, suffix = filename.rpartition(".")
    return f"{stem}_{count + 1}.{suffix}"
