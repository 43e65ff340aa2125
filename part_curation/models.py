"""Data models shared by the feed and image resolution code."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping

CatalogItem = Mapping[str, Any]

KIND_SINGLE = "single"
KIND_ARRAY_ELEMENT = "array-element"


@dataclass(frozen=True)
class ImageCandidate:
    """Image reference found on a catalog item, not yet confirmed loadable."""

    url: str
    source: str
    priority: int
    kind: str = KIND_SINGLE


@dataclass(frozen=True)
class ImageDimensions:
    """Natural pixel size reported by an image loader."""

    width: int
    height: int


@dataclass
class CacheEntry:
    url: str
    is_valid: bool


@dataclass
class CacheStats:
    """Snapshot of the resolver's probe cache for diagnostics."""

    cache_size: int
    pending_probes: int
    entries: List[CacheEntry] = field(default_factory=list)
