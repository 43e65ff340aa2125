"""Image reference filtering and candidate extraction for catalog items."""

from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from .config import FieldPriorityTable, FilterConfig
from .models import KIND_ARRAY_ELEMENT, KIND_SINGLE, CatalogItem, ImageCandidate

DEFAULT_FIELD_TABLE = FieldPriorityTable()
DEFAULT_FILTER = FilterConfig()


def _is_absolute_url(value: str, schemes) -> bool:
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme.lower() in schemes and bool(parsed.netloc)


def is_valid_reference(value: Any, config: FilterConfig = DEFAULT_FILTER) -> bool:
    """Return True if ``value`` looks like a usable image reference.

    No network access happens here; this only screens out empty strings,
    unsupported schemes and well-known placeholder images.
    """
    if not isinstance(value, str):
        return False
    candidate = value.strip()
    if len(candidate) < config.min_length:
        return False
    if not _is_absolute_url(candidate, config.allowed_schemes) and not candidate.startswith(
        config.relative_prefixes
    ):
        return False
    if candidate in config.deny_urls:
        return False
    return not any(pattern.search(candidate) for pattern in config.compiled_patterns)


def _clean(value: Any, config: FilterConfig) -> Optional[str]:
    if not isinstance(value, str):
        return None
    url = value.strip()
    if not url or not is_valid_reference(url, config):
        return None
    return url


def extract_candidates(
    item: CatalogItem,
    table: FieldPriorityTable = DEFAULT_FIELD_TABLE,
    config: FilterConfig = DEFAULT_FILTER,
) -> List[ImageCandidate]:
    """Collect the item's image references, deduplicated and sorted by priority."""
    found: List[ImageCandidate] = []

    for index, key in enumerate(table.single_fields):
        url = _clean(item.get(key), config)
        if url:
            found.append(ImageCandidate(url, key, table.single_priority(index), KIND_SINGLE))

    for field_index, key in enumerate(table.array_fields):
        values = item.get(key)
        if not isinstance(values, (list, tuple)):
            continue
        for element_index, value in enumerate(values):
            url = _clean(value, config)
            if url:
                found.append(
                    ImageCandidate(
                        url,
                        f"{key}[{element_index}]",
                        table.array_priority(field_index, element_index),
                        KIND_ARRAY_ELEMENT,
                    )
                )

    best: Dict[str, ImageCandidate] = {}
    for candidate in sorted(found, key=lambda c: c.priority):
        best.setdefault(candidate.url, candidate)
    return list(best.values())
