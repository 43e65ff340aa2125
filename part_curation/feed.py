"""Display ordering for catalog feeds.

The distributor shuffles a catalog while keeping any single category from
occupying more than ``max_consecutive`` neighbouring slots. When every
remaining item belongs to one category the limit is relaxed so that all
items are still placed.
"""

from __future__ import annotations

import logging
import random
from collections import deque
from typing import Any, Deque, Dict, List, Optional, Sequence, TypeVar

from .config import DEFAULT_MAX_CONSECUTIVE, DEFAULT_SWITCH_PROBABILITY
from .utils import category_of

logger = logging.getLogger("part_curation")

T = TypeVar("T")


def shuffle(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Return a uniformly shuffled copy of ``items`` (Fisher-Yates)."""
    source = rng or random
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = source.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


def _group_by_category(
    items: Sequence[T],
    category_key: str,
    rng: Optional[random.Random],
) -> Dict[str, Deque[T]]:
    groups: Dict[str, List[T]] = {}
    for item in items:
        groups.setdefault(category_of(item, category_key), []).append(item)
    keys = shuffle(list(groups), rng)
    return {key: deque(shuffle(groups[key], rng)) for key in keys}


def distribute_with_category_limit(
    items: Sequence[T],
    max_consecutive: int = DEFAULT_MAX_CONSECUTIVE,
    rng: Optional[random.Random] = None,
    switch_probability: float = DEFAULT_SWITCH_PROBABILITY,
    category_key: str = "category",
) -> List[T]:
    """Order ``items`` randomly with at most ``max_consecutive`` same-category neighbours.

    While the current run is below the limit, the previous category is still
    skipped with probability ``switch_probability`` to favour variety. Once
    the limit is reached it is skipped unconditionally, unless it is the only
    category left.
    """
    if max_consecutive < 1:
        raise ValueError(f"max_consecutive must be at least 1, got {max_consecutive}")
    if len(items) <= max_consecutive:
        return shuffle(items, rng)

    source = rng or random
    queues = _group_by_category(items, category_key, rng)
    result: List[T] = []
    last_category: Optional[str] = None
    run_length = 0
    relaxed = 0

    while len(result) < len(items):
        available = [key for key, queue in queues.items() if queue]
        if last_category is not None and last_category in available:
            if run_length >= max_consecutive:
                available.remove(last_category)
            elif source.random() < switch_probability:
                available.remove(last_category)
        if not available:
            available = [key for key, queue in queues.items() if queue]
            relaxed += 1

        picked = source.choice(available)
        result.append(queues[picked].popleft())
        if picked == last_category:
            run_length += 1
        else:
            last_category = picked
            run_length = 1

    if relaxed:
        logger.debug(
            "Category limit %d relaxed %d time(s) while ordering %d items",
            max_consecutive,
            relaxed,
            len(items),
        )
    return result


def max_run_length(items: Sequence[Any], category_key: str = "category") -> int:
    """Length of the longest same-category run in an ordering."""
    longest = 0
    current = 0
    previous: Optional[str] = None
    for item in items:
        category = category_of(item, category_key)
        current = current + 1 if category == previous else 1
        previous = category
        longest = max(longest, current)
    return longest
