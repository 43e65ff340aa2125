"""Cursor over the validated images of one catalog item."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence, Set

from .config import DEFAULT_BACKUP_IMAGES
from .models import CatalogItem, ImageCandidate
from .resolver import ImageCandidateResolver

logger = logging.getLogger("part_curation")


class ImageGallery:
    """Browse an item's loadable images, dropping ones that fail to render later.

    Render failures are kept in the gallery's own ``rejected`` set; the
    resolver's probe cache is never modified.
    """

    def __init__(self, images: Sequence[ImageCandidate]) -> None:
        self._images: List[ImageCandidate] = list(images)
        self.rejected: Set[str] = set()
        self.index = 0
        self.error_count = 0

    @classmethod
    async def load(
        cls,
        resolver: ImageCandidateResolver,
        item: CatalogItem,
        limit: int = DEFAULT_BACKUP_IMAGES,
    ) -> "ImageGallery":
        images = await resolver.resolve_all_valid(item, limit=limit)
        return cls(images)

    def __len__(self) -> int:
        return len(self._images)

    @property
    def images(self) -> List[ImageCandidate]:
        return list(self._images)

    @property
    def has_images(self) -> bool:
        return bool(self._images)

    @property
    def current(self) -> Optional[ImageCandidate]:
        if not self._images:
            return None
        return self._images[self.index]

    def next(self) -> Optional[ImageCandidate]:
        if self._images:
            self.index = (self.index + 1) % len(self._images)
        return self.current

    def previous(self) -> Optional[ImageCandidate]:
        if self._images:
            self.index = (self.index - 1) % len(self._images)
        return self.current

    def mark_current_invalid(self) -> Optional[ImageCandidate]:
        """Drop the current image and return the one now shown, if any."""
        self.error_count += 1
        if not self._images:
            return None
        dropped = self._images.pop(self.index)
        self.rejected.add(dropped.url)
        logger.debug("Dropped image %s (%s) after render failure", dropped.url, dropped.source)
        self.index = min(self.index, max(0, len(self._images) - 1))
        return self.current
