"""Utility helpers for catalog records and diagnostic strings."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .config import DEFAULT_CATEGORY


def category_of(item: Any, key: str = "category", fallback: str = DEFAULT_CATEGORY) -> str:
    """Return an item's category from a mapping key or attribute, or ``fallback``."""
    if isinstance(item, Mapping):
        value = item.get(key)
    else:
        value = getattr(item, key, None)
    if value is None:
        return fallback
    value = str(value).strip()
    return value or fallback


def item_label(item: Any) -> str:
    """Best-effort identifier used in log lines."""
    if isinstance(item, Mapping):
        value = item.get("id")
    else:
        value = getattr(item, "id", None)
    return "unknown" if value is None else str(value)


def truncate(value: str, limit: int = 50) -> str:
    """Shorten long URLs for display, marking the cut with an ellipsis."""
    if len(value) <= limit:
        return value
    return value[:limit] + "..."
