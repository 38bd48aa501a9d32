"""
Multi-profile fetch-and-render pipeline
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from functools import partial
from typing import List, Optional, Sequence, Tuple

from .aggregator import compute_common
from .badge_fetcher import BadgeFetcher
from .config import Settings
from .errors import FetchFailed, ImageLoadFailed
from .image_processor import ImageNormalizer
from .limiter import ConcurrencyLimiter
from .models import BatchFilters, CredentialRecord, HolderGroup, ProfileOutcome, ProfileStatus
from .result_store import ResultStore
from .transport import TransportRouter

logger = logging.getLogger(__name__)


class PipelineListener:
    """Presentation hooks; every method is called from the event loop thread."""

    def profile_started(self, profile_id: str) -> None:
        pass

    def profile_reserved(self, profile_id: str, display_name: str, slots: range) -> None:
        pass

    def image_ready(self, index: int) -> None:
        pass

    def image_failed(self, index: int, reason: str) -> None:
        pass

    def profile_failed(self, outcome: ProfileOutcome) -> None:
        pass

    def profile_finished(self, outcome: ProfileOutcome) -> None:
        pass

    def batch_finished(self, result: "BatchResult") -> None:
        pass


@dataclass
class BatchResult:
    """Everything a batch run hands back to the presentation layer"""
    profile_ids: Tuple[str, ...]
    store: ResultStore
    common: Tuple[HolderGroup, ...] = ()
    invalid_lines: Tuple[str, ...] = ()

    @property
    def outcomes(self) -> List[ProfileOutcome]:
        return [self.store.outcome(profile_id) for profile_id in self.profile_ids]

    @property
    def failed_profiles(self) -> List[ProfileOutcome]:
        return [outcome for outcome in self.outcomes if outcome.failed]

    def __str__(self):
        return (
            f"{len(self.profile_ids)} profile(s), {len(self.store)} badge(s), "
            f"{len(self.store.rendered_slots())} rendered, {len(self.common)} shared"
        )


class ProfileOrchestrator:
    """Fetch, filter, reserve and render one profile's badges"""

    def __init__(
        self,
        router: TransportRouter,
        fetcher: BadgeFetcher,
        normalizer: ImageNormalizer,
        width: int,
        height: int,
        listener: Optional[PipelineListener] = None,
    ):
        self.router = router
        self.fetcher = fetcher
        self.normalizer = normalizer
        self.width = width
        self.height = height
        self.listener = listener or PipelineListener()

    async def process(
        self,
        profile_id: str,
        store: ResultStore,
        filters: BatchFilters,
        image_limiter: ConcurrencyLimiter,
    ) -> None:
        """
        Process one profile; failures end up on its status marker, never raised

        Args:
            profile_id: Canonical profile id
            store: Shared result store for the batch
            filters: Keyword / issued-date filters
            image_limiter: Limiter shared by every profile's image loads
        """
        store.set_status(profile_id, ProfileStatus.FETCHING)
        self.listener.profile_started(profile_id)

        try:
            records = await self._fetch_records(profile_id, store)
        except FetchFailed as exc:
            self._fail(store, profile_id, str(exc))
            return
        except Exception as exc:
            logger.exception("Unexpected failure fetching %s", profile_id)
            self._fail(store, profile_id, f"{type(exc).__name__}: {exc}")
            return

        kept = [record for record in records if filters.matches(record)]

        # Reservation must not contain an await: the range is fixed before
        # any other profile can append.
        slots = store.reserve(kept)
        outcome = store.set_status(profile_id, ProfileStatus.RENDERING)
        outcome.fetched_count = len(records)
        outcome.record_count = len(kept)
        outcome.slots = slots
        self.listener.profile_reserved(profile_id, store.display_name(profile_id), slots)
        logger.info("%s: kept %d of %d badge(s)", profile_id, len(kept), len(records))

        await asyncio.gather(
            *(image_limiter.run(partial(self._render_slot, store, index)) for index in slots)
        )

        store.set_status(profile_id, ProfileStatus.DONE)
        self.listener.profile_finished(outcome)

    async def _fetch_records(self, profile_id: str, store: ResultStore) -> List[CredentialRecord]:
        session = self.router.session()
        display_name, entries = await asyncio.gather(
            self.fetcher.fetch_display_name(profile_id, session),
            self.fetcher.fetch_all(profile_id, session),
            return_exceptions=True,
        )
        if isinstance(entries, BaseException):
            raise entries
        if isinstance(display_name, BaseException):
            logger.debug("Display name lookup failed for %s: %s", profile_id, display_name)
            display_name = profile_id
        store.set_display_name(profile_id, display_name)
        return [CredentialRecord.from_api(entry, owner=profile_id) for entry in entries]

    async def _render_slot(self, store: ResultStore, index: int) -> None:
        record = store.slot(index).record
        try:
            image = await self.normalizer.normalize(record.image_url, self.width, self.height)
        except ImageLoadFailed as exc:
            reason = str(exc)
        except Exception as exc:
            logger.exception("Unexpected failure rendering %s", record)
            reason = f"{type(exc).__name__}: {exc}"
        else:
            store.store_image(index, image)
            self.listener.image_ready(index)
            return

        logger.warning("Image failed for %s: %s", record, reason)
        store.mark_failed(index, reason)
        self.listener.image_failed(index, reason)

    def _fail(self, store: ResultStore, profile_id: str, reason: str) -> None:
        logger.warning("Profile %s failed: %s", profile_id, reason)
        outcome = store.set_status(profile_id, ProfileStatus.FAILED, error=reason)
        self.listener.profile_failed(outcome)
        self.listener.profile_finished(outcome)


class BatchCoordinator:
    """Run the profile pipeline over a batch of profiles"""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        router: Optional[TransportRouter] = None,
        listener: Optional[PipelineListener] = None,
    ):
        """
        Initialize coordinator

        Args:
            settings: Canvas size, limits and transport options
            router: Transport router (built from settings when omitted)
            listener: Presentation hooks
        """
        self.settings = settings or Settings()
        self.router = router or TransportRouter.from_settings(self.settings)
        self.listener = listener or PipelineListener()
        self.fetcher = BadgeFetcher(
            per_page=self.settings.per_page,
            max_pages=self.settings.max_pages,
        )
        self.normalizer = ImageNormalizer(self.router)
        self.orchestrator = ProfileOrchestrator(
            self.router,
            self.fetcher,
            self.normalizer,
            width=self.settings.width,
            height=self.settings.height,
            listener=self.listener,
        )

    async def run(
        self,
        profile_ids: Sequence[str],
        filters: Optional[BatchFilters] = None,
        store: Optional[ResultStore] = None,
    ) -> BatchResult:
        """
        Process every profile concurrently and aggregate shared badges

        A failing profile never cancels the others. Shared badges are computed
        once all profiles settled, and only if two or more profiles
        contributed at least one badge.
        """
        filters = filters or BatchFilters()
        store = store if store is not None else ResultStore()
        unique_ids = tuple(dict.fromkeys(profile_ids))

        profile_limiter = ConcurrencyLimiter(self.settings.profile_concurrency)
        image_limiter = ConcurrencyLimiter(self.settings.image_concurrency)

        for profile_id in unique_ids:
            store.outcome(profile_id)

        settled = await asyncio.gather(
            *(
                profile_limiter.run(
                    partial(self.orchestrator.process, profile_id, store, filters, image_limiter)
                )
                for profile_id in unique_ids
            ),
            return_exceptions=True,
        )
        for profile_id, result in zip(unique_ids, settled):
            if isinstance(result, BaseException):
                logger.error("Profile %s aborted: %r", profile_id, result)
                outcome = store.set_status(profile_id, ProfileStatus.FAILED, error=str(result))
                self.listener.profile_failed(outcome)

        common: Tuple[HolderGroup, ...] = ()
        if len(store.contributing_profiles()) >= 2:
            common = tuple(compute_common(store.slots()))

        result = BatchResult(profile_ids=unique_ids, store=store, common=common)
        self.listener.batch_finished(result)
        return result
