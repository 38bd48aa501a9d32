"""
Main converter class for credly2png
"""
from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Iterable, List, Optional, Union

from . import exporter
from .config import Settings
from .errors import InvalidIdentifier
from .identifiers import parse_profile_lines
from .models import BatchFilters
from .pipeline import BatchCoordinator, BatchResult, PipelineListener
from .transport import TransportRouter


class BadgeConverter:
    """Fetch Credly profiles, render badge images and export the results"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        router: Optional[TransportRouter] = None,
        listener: Optional[PipelineListener] = None,
    ):
        """
        Initialize converter

        Args:
            settings: Canvas size, concurrency and transport options
            router: Transport router, mainly for tests
            listener: Presentation hooks notified while the batch runs
        """
        self.settings = settings or Settings()
        self.coordinator = BatchCoordinator(self.settings, router=router, listener=listener)

    def fetch(
        self,
        source: Union[str, Iterable[str]],
        filters: Optional[BatchFilters] = None,
    ) -> BatchResult:
        """
        Fetch and render every profile named in ``source``

        Args:
            source: Newline-separated text or an iterable of profile references
            filters: Optional keyword / issued-date filters

        Returns:
            BatchResult with ordered slots, per-profile outcomes and shared badges

        Raises:
            InvalidIdentifier: If no line names a valid profile
        """
        return asyncio.run(self.fetch_async(source, filters))

    async def fetch_async(
        self,
        source: Union[str, Iterable[str]],
        filters: Optional[BatchFilters] = None,
    ) -> BatchResult:
        parsed = parse_profile_lines(source)
        if not parsed.profile_ids:
            raise InvalidIdentifier(
                "No valid Credly profile found. Expected: https://www.credly.com/users/username"
            )
        result = await self.coordinator.run(parsed.profile_ids, filters)
        result.invalid_lines = tuple(parsed.invalid_lines)
        return result

    @staticmethod
    def save_images(result: BatchResult, output_dir: str) -> List[Path]:
        return exporter.export_images(result.store, output_dir)

    @staticmethod
    def save_archive(result: BatchResult, path: str) -> Path:
        return exporter.write_archive(result.store, path)

    @staticmethod
    def save_csv(result: BatchResult, path: str) -> Path:
        return exporter.write_csv(result.store, path)

    @staticmethod
    def common_report(result: BatchResult) -> str:
        return exporter.format_common_report(result.common, result.store.display_names)
