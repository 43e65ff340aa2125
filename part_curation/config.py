"""Configuration objects and constants for feed ordering and image probing."""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

logger = logging.getLogger("part_curation")

DEFAULT_CATEGORY = "Other"
DEFAULT_MAX_CONSECUTIVE = 2
DEFAULT_SWITCH_PROBABILITY = 0.7
DEFAULT_PROBE_TIMEOUT = 10.0
DEFAULT_MAX_CANDIDATES = 5
DEFAULT_BACKUP_IMAGES = 3
DEFAULT_MIN_DIMENSION = 50
DEFAULT_MAX_IMAGE_BYTES = 10 * 1024 * 1024
DEFAULT_FALLBACK_IMAGE = "/images/placeholder-part.svg"

DEFAULT_SINGLE_FIELDS = (
    "image",
    "featured_image",
    "main_image",
    "thumbnail",
    "product_image",
    "picture",
    "photo",
    "img",
)
DEFAULT_ARRAY_FIELDS = ("images", "gallery", "pictures", "photos")

DEFAULT_DENY_URLS = (
    "https://via.placeholder.com/150",
    "https://via.placeholder.com/300",
    "https://via.placeholder.com/400",
    "https://placeholder.com/150",
    "https://placeholder.com/300",
    "https://example.com/image.jpg",
    "https://example.com/placeholder.jpg",
)
DEFAULT_DENY_PATTERNS = (
    r"^https?://.*placeholder.*150.*150",
    r"^https?://.*example\.com.*\.(jpg|png|gif|webp)",
    # Inlined 24x24 SVG icon used as an empty-image stand-in.
    r"^data:image/svg\+xml;base64,PHN2ZyB3aWR0aD0iMjQi",
)

ENV_PREFIX = "PART_CURATION_"


@dataclass
class FieldPriorityTable:
    """Ordered image field names of a catalog item.

    Single-valued fields come first and are ranked 1, 2, 3...; element ``i``
    of array field ``m`` is ranked ``array_base_priority + m * array_field_stride + i``.
    """

    single_fields: Tuple[str, ...] = DEFAULT_SINGLE_FIELDS
    array_fields: Tuple[str, ...] = DEFAULT_ARRAY_FIELDS
    array_base_priority: int = 20
    array_field_stride: int = 10

    def single_priority(self, index: int) -> int:
        return index + 1

    def array_priority(self, field_index: int, element_index: int) -> int:
        return (
            self.array_base_priority
            + field_index * self.array_field_stride
            + element_index
        )


@dataclass
class FilterConfig:
    """Rules used to reject image references before any network call."""

    min_length: int = 10
    allowed_schemes: Tuple[str, ...] = ("http", "https")
    relative_prefixes: Tuple[str, ...] = ("/", "./")
    deny_urls: Tuple[str, ...] = DEFAULT_DENY_URLS
    deny_patterns: Tuple[str, ...] = DEFAULT_DENY_PATTERNS
    _compiled: List[re.Pattern] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._compiled = [re.compile(p, re.IGNORECASE) for p in self.deny_patterns]

    @property
    def compiled_patterns(self) -> List[re.Pattern]:
        return self._compiled


@dataclass
class CurationConfig:
    """Top-level settings that control feed ordering and image resolution."""

    max_consecutive: int = DEFAULT_MAX_CONSECUTIVE
    switch_probability: float = DEFAULT_SWITCH_PROBABILITY
    probe_timeout: float = DEFAULT_PROBE_TIMEOUT
    max_candidates: int = DEFAULT_MAX_CANDIDATES
    min_width: int = DEFAULT_MIN_DIMENSION
    min_height: int = DEFAULT_MIN_DIMENSION
    base_url: Optional[str] = None
    fallback_image: str = DEFAULT_FALLBACK_IMAGE
    max_image_bytes: int = DEFAULT_MAX_IMAGE_BYTES
    field_table: FieldPriorityTable = field(default_factory=FieldPriorityTable)
    filters: FilterConfig = field(default_factory=FilterConfig)

    @classmethod
    def from_env(cls, environ=None) -> "CurationConfig":
        """Build a config, applying ``PART_CURATION_*`` overrides when present."""
        env = os.environ if environ is None else environ
        config = cls()
        for name, cast in (
            ("max_consecutive", int),
            ("probe_timeout", float),
            ("max_candidates", int),
        ):
            raw = env.get(ENV_PREFIX + name.upper())
            if not raw:
                continue
            try:
                setattr(config, name, cast(raw))
            except ValueError:
                logger.warning(
                    "Ignoring %s%s=%r; keeping default %s",
                    ENV_PREFIX,
                    name.upper(),
                    raw,
                    getattr(config, name),
                )
        base_url = env.get(ENV_PREFIX + "BASE_URL")
        if base_url:
            config.base_url = base_url
        fallback = env.get(ENV_PREFIX + "FALLBACK_IMAGE")
        if fallback:
            config.fallback_image = fallback
        return config
