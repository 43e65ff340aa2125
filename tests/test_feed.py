import random
from collections import Counter

import pytest

from part_curation.feed import distribute_with_category_limit, max_run_length, shuffle
from part_curation.utils import category_of


def make_items(counts):
    items = []
    for category, count in counts.items():
        for n in range(count):
            items.append({"id": f"{category}-{n}", "category": category})
    return items


def ids(items):
    return [item["id"] for item in items]


def longest_run_with_alternatives(ordered):
    """Longest same-category run counted only while other categories still had items left."""
    remaining = Counter(category_of(item) for item in ordered)
    longest = 0
    run = 0
    previous = None
    for item in ordered:
        category = category_of(item)
        alternatives = any(count for cat, count in remaining.items() if cat != category)
        remaining[category] -= 1
        if category == previous:
            run += 1
        else:
            run = 1
            previous = category
        if alternatives:
            longest = max(longest, run)
    return longest


def test_shuffle_is_a_permutation(rng):
    items = list(range(50))
    shuffled = shuffle(items, rng)
    assert len(shuffled) == len(items)
    assert sorted(shuffled) == items


def test_shuffle_does_not_mutate_input(rng):
    items = [1, 2, 3, 4, 5]
    shuffle(items, rng)
    assert items == [1, 2, 3, 4, 5]


def test_shuffle_handles_empty_and_single():
    assert shuffle([]) == []
    assert shuffle(["only"]) == ["only"]


def test_shuffle_reaches_every_permutation():
    rng = random.Random(7)
    seen = Counter(tuple(shuffle("abc", rng)) for _ in range(6000))
    assert len(seen) == 6
    # Each of the 6 orderings should land near 1000 draws.
    assert all(700 < count < 1300 for count in seen.values())


def test_distribute_empty_input():
    assert distribute_with_category_limit([], 2) == []


def test_distribute_short_input_is_plain_shuffle(rng):
    items = make_items({"Brakes": 2})
    out = distribute_with_category_limit(items, 2, rng=rng)
    assert sorted(ids(out)) == sorted(ids(items))


def test_distribute_rejects_non_positive_limit():
    with pytest.raises(ValueError):
        distribute_with_category_limit(make_items({"A": 3}), 0)


def test_distribute_keeps_every_item_exactly_once():
    items = make_items({"Brakes": 7, "Filters": 5, "Lights": 4, "Tyres": 1})
    for seed in range(50):
        out = distribute_with_category_limit(items, 2, rng=random.Random(seed))
        assert len(out) == len(items)
        assert Counter(ids(out)) == Counter(ids(items))


def test_distribute_respects_limit_when_alternatives_exist():
    items = make_items({"Brakes": 6, "Filters": 6, "Lights": 6})
    for seed in range(200):
        out = distribute_with_category_limit(items, 2, rng=random.Random(seed))
        assert longest_run_with_alternatives(out) <= 2


def test_distribute_uneven_categories_only_relax_at_the_tail():
    items = make_items({"Engine": 12, "Filters": 3, "Lights": 2})
    for seed in range(200):
        out = distribute_with_category_limit(items, 2, rng=random.Random(seed))
        assert longest_run_with_alternatives(out) <= 2
        assert Counter(ids(out)) == Counter(ids(items))


def test_distribute_single_category_returns_everything():
    items = make_items({"Engine": 9})
    out = distribute_with_category_limit(items, 2, rng=random.Random(3))
    assert sorted(ids(out)) == sorted(ids(items))
    assert max_run_length(out) == 9


def test_missing_category_is_grouped_as_other():
    items = [{"id": n} for n in range(4)] + [{"id": "x", "category": None}]
    items += make_items({"Brakes": 5})
    out = distribute_with_category_limit(items, 2, rng=random.Random(11))
    assert longest_run_with_alternatives(out) <= 2
    assert sum(1 for item in out if category_of(item) == "Other") == 5


def test_zero_switch_probability_still_enforces_limit():
    items = make_items({"Brakes": 5, "Filters": 5})
    out = distribute_with_category_limit(
        items, 2, rng=random.Random(5), switch_probability=0.0
    )
    assert longest_run_with_alternatives(out) <= 2


def test_full_switch_probability_alternates_two_categories():
    items = make_items({"Brakes": 4, "Filters": 4})
    out = distribute_with_category_limit(
        items, 2, rng=random.Random(9), switch_probability=1.0
    )
    categories = [item["category"] for item in out]
    assert all(a != b for a, b in zip(categories, categories[1:]))


def test_seeded_rng_is_reproducible():
    items = make_items({"Brakes": 5, "Filters": 5, "Lights": 5})
    first = distribute_with_category_limit(items, 2, rng=random.Random(42))
    second = distribute_with_category_limit(items, 2, rng=random.Random(42))
    assert ids(first) == ids(second)


def test_attribute_style_items_are_supported():
    class Part:
        def __init__(self, id, category):
            self.id = id
            self.category = category

    items = [Part(n, "A" if n % 2 else "B") for n in range(10)]
    out = distribute_with_category_limit(items, 1, rng=random.Random(2))
    assert len(out) == 10
    assert max_run_length(out) == 1
