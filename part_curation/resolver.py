"""Find the first loadable image of a catalog item.

Every URL is probed at most once per resolver: results are cached as plain
booleans, and concurrent callers asking about the same URL share a single
in-flight probe task.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List, Optional

from .candidates import extract_candidates
from .config import DEFAULT_BACKUP_IMAGES, CurationConfig, FieldPriorityTable
from .images import ImageLoader, RequestsImageLoader
from .models import CacheEntry, CacheStats, CatalogItem, ImageCandidate, ImageDimensions
from .utils import item_label, truncate

logger = logging.getLogger("part_curation")


class ImageCandidateResolver:
    """Probe image candidates in priority order with per-URL memoization."""

    def __init__(
        self,
        config: Optional[CurationConfig] = None,
        loader: Optional[ImageLoader] = None,
    ) -> None:
        self.config = config or CurationConfig()
        self._loader: ImageLoader = loader or RequestsImageLoader(
            base_url=self.config.base_url,
            max_bytes=self.config.max_image_bytes,
        )
        self._cache: Dict[str, bool] = {}
        self._pending: Dict[str, "asyncio.Task[bool]"] = {}

    def extract_candidates(
        self,
        item: CatalogItem,
        table: Optional[FieldPriorityTable] = None,
    ) -> List[ImageCandidate]:
        return extract_candidates(
            item, table or self.config.field_table, self.config.filters
        )

    def _is_acceptable(self, dimensions: Optional[ImageDimensions]) -> bool:
        if dimensions is None:
            return False
        if dimensions.width <= 0 or dimensions.height <= 0:
            return False
        return (
            dimensions.width >= self.config.min_width
            and dimensions.height >= self.config.min_height
        )

    async def _measure(self, url: str, timeout: float) -> bool:
        try:
            dimensions = await asyncio.wait_for(self._loader(url, timeout), timeout)
        except asyncio.TimeoutError:
            logger.debug("Timed out after %.2fs probing %s", timeout, url)
            return False
        except Exception as exc:  # noqa: BLE001 - every load failure means "not loadable"
            logger.warning("Failed to load image %s: %s", url, exc)
            return False
        if not self._is_acceptable(dimensions):
            logger.debug("Rejecting %s: dimensions %s below threshold", url, dimensions)
            return False
        return True

    async def _run_probe(self, url: str, timeout: float) -> bool:
        outcome = False
        try:
            outcome = await self._measure(url, timeout)
            return outcome
        finally:
            # Cache write and pending removal happen in one step; a probe
            # detached by clear() no longer owns the slot and records nothing.
            if self._pending.get(url) is asyncio.current_task():
                del self._pending[url]
                self._cache[url] = outcome

    async def probe(self, url: str, timeout: Optional[float] = None) -> bool:
        """Return whether ``url`` loads as an image of acceptable size.

        Never raises for load problems: errors and timeouts yield False.
        """
        cached = self._cache.get(url)
        if cached is not None:
            return cached
        task = self._pending.get(url)
        if task is None:
            effective = self.config.probe_timeout if timeout is None else timeout
            task = asyncio.ensure_future(self._run_probe(url, effective))
            self._pending[url] = task
        else:
            logger.debug("Joining in-flight probe for %s", url)
        # Shielded so that one waiter being cancelled does not abort the shared probe.
        return await asyncio.shield(task)

    async def resolve_first_valid(
        self,
        item: CatalogItem,
        table: Optional[FieldPriorityTable] = None,
        max_candidates: Optional[int] = None,
    ) -> Optional[ImageCandidate]:
        """Probe candidates one at a time and return the first loadable one."""
        limit = self.config.max_candidates if max_candidates is None else max_candidates
        candidates = self.extract_candidates(item, table)[: max(0, limit)]
        label = item_label(item)
        logger.debug("Found %d candidate image(s) for item %s", len(candidates), label)

        for position, candidate in enumerate(candidates, start=1):
            logger.debug(
                "Testing image %d/%d for item %s (%s): %s",
                position,
                len(candidates),
                label,
                candidate.source,
                candidate.url,
            )
            if await self.probe(candidate.url):
                logger.debug("Valid image for item %s (%s)", label, candidate.source)
                return candidate

        logger.info("No valid image found for item %s", label)
        return None

    async def resolve_all_valid(
        self,
        item: CatalogItem,
        limit: int = DEFAULT_BACKUP_IMAGES,
        table: Optional[FieldPriorityTable] = None,
    ) -> List[ImageCandidate]:
        """Collect up to ``limit`` loadable candidates, in priority order."""
        valid: List[ImageCandidate] = []
        if limit < 1:
            return valid
        for candidate in self.extract_candidates(item, table):
            if await self.probe(candidate.url):
                valid.append(candidate)
                if len(valid) >= limit:
                    break
        return valid

    async def resolve_display_url(self, item: CatalogItem) -> str:
        """URL to render for ``item``, falling back to the configured placeholder."""
        candidate = await self.resolve_first_valid(item)
        if candidate is None:
            return self.config.fallback_image
        return candidate.url

    def clear(self) -> None:
        """Forget cached results and detach in-flight probes."""
        self._cache.clear()
        self._pending.clear()

    def close(self) -> None:
        """Release resources held by the loader, if it holds any."""
        close = getattr(self._loader, "close", None)
        if callable(close):
            close()

    def stats(self) -> CacheStats:
        return CacheStats(
            cache_size=len(self._cache),
            pending_probes=len(self._pending),
            entries=[CacheEntry(truncate(url), valid) for url, valid in self._cache.items()],
        )


_default_resolver: Optional[ImageCandidateResolver] = None


def default_resolver() -> ImageCandidateResolver:
    """Shared resolver for callers that do not manage their own instance."""
    global _default_resolver
    if _default_resolver is None:
        _default_resolver = ImageCandidateResolver(CurationConfig.from_env())
    return _default_resolver
