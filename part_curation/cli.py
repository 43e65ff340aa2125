"""Command-line entry point for inspecting feed orderings and image resolution."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import random
import sys
import time
from pathlib import Path
from typing import Any, Dict, Iterable, List, Sequence

from .config import DEFAULT_BACKUP_IMAGES, CurationConfig
from .feed import distribute_with_category_limit, max_run_length
from .resolver import ImageCandidateResolver
from .utils import category_of, item_label

logger = logging.getLogger("part_curation.cli")

COMMANDS = ("order", "images")


def _ensure_command_prefix(argv: Sequence[str], commands: Iterable[str]) -> Sequence[str]:
    if not argv:
        return argv
    first = argv[0]
    if first in commands or first.startswith("-"):
        return argv
    return ("order", *argv)


def load_catalog(path: Path) -> List[Dict[str, Any]]:
    """Read a JSON catalog: a list of items or an object holding one."""
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("items", data.get("products"))
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a list of catalog items")
    return [item for item in data if isinstance(item, dict)]


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("catalog", type=Path, help="JSON file with catalog items")
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )


def _add_order_arguments(parser: argparse.ArgumentParser) -> None:
    _add_common_arguments(parser)
    parser.add_argument(
        "--max-consecutive",
        type=int,
        default=None,
        help="Maximum number of same-category items in a row (default: 2)",
    )
    parser.add_argument(
        "--switch-probability",
        type=float,
        default=None,
        help="Chance of switching category before the limit is reached (default: 0.7)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed the random source for a reproducible ordering",
    )


def _add_image_arguments(parser: argparse.ArgumentParser) -> None:
    _add_common_arguments(parser)
    parser.add_argument(
        "--base-url",
        default=None,
        help="Base URL used to resolve relative image paths",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=None,
        help="Seconds to wait for each image probe (default: 10)",
    )
    parser.add_argument(
        "--max-candidates",
        type=int,
        default=None,
        help="Number of candidates to probe per item (default: 5)",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help=f"List up to {DEFAULT_BACKUP_IMAGES} valid images per item instead of the first",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Order catalog feeds and resolve loadable product images.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    order_parser = subparsers.add_parser(
        "order", help="Print a category-balanced random ordering of a catalog"
    )
    _add_order_arguments(order_parser)

    images_parser = subparsers.add_parser(
        "images", help="Probe each item's image candidates and print the chosen URL"
    )
    _add_image_arguments(images_parser)
    return parser


def parse_args(
    argv: Sequence[str] | None = None,
    parser: argparse.ArgumentParser | None = None,
) -> argparse.Namespace:
    parser = parser or build_parser()
    argv = list(sys.argv[1:] if argv is None else argv)
    argv = list(_ensure_command_prefix(argv, COMMANDS))
    return parser.parse_args(argv)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )


def _build_config(args: argparse.Namespace) -> CurationConfig:
    config = CurationConfig.from_env()
    for name in ("max_consecutive", "switch_probability", "base_url", "max_candidates"):
        value = getattr(args, name, None)
        if value is not None:
            setattr(config, name, value)
    timeout = getattr(args, "timeout", None)
    if timeout is not None:
        config.probe_timeout = timeout
    return config


def _run_order(args: argparse.Namespace) -> None:
    config = _build_config(args)
    items = load_catalog(args.catalog)
    rng = random.Random(args.seed) if args.seed is not None else None
    ordered = distribute_with_category_limit(
        items,
        config.max_consecutive,
        rng=rng,
        switch_probability=config.switch_probability,
    )
    for item in ordered:
        sys.stdout.write(f"{item_label(item)}\t{category_of(item)}\n")
    sys.stdout.flush()
    logger.debug(
        "Ordered %d items; longest same-category run is %d",
        len(ordered),
        max_run_length(ordered),
    )


async def _resolve_catalog(
    resolver: ImageCandidateResolver,
    items: List[Dict[str, Any]],
    list_all: bool,
) -> List[tuple]:
    rows = []
    for item in items:
        if list_all:
            found = await resolver.resolve_all_valid(item)
            urls = [candidate.url for candidate in found] or [resolver.config.fallback_image]
        else:
            urls = [await resolver.resolve_display_url(item)]
        rows.append((item_label(item), urls))
    return rows


def _run_images(args: argparse.Namespace) -> None:
    config = _build_config(args)
    items = load_catalog(args.catalog)
    resolver = ImageCandidateResolver(config)

    overall_start = time.perf_counter()
    try:
        rows = asyncio.run(_resolve_catalog(resolver, items, args.all))
    finally:
        resolver.close()
    total_elapsed = time.perf_counter() - overall_start

    for label, urls in rows:
        sys.stdout.write(label + "\t" + "\t".join(urls) + "\n")
    sys.stdout.flush()

    stats = resolver.stats()
    logger.info(
        "Resolved %d items in %.2fs (%d URLs probed)",
        len(rows),
        total_elapsed,
        stats.cache_size,
    )
    if args.verbose:
        for entry in stats.entries:
            logger.debug("%s -> %s", entry.url, "ok" if entry.is_valid else "rejected")


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parse_args(argv, parser)
    _configure_logging(args.verbose)
    try:
        if args.command == "order":
            _run_order(args)
        else:
            _run_images(args)
    except (OSError, ValueError) as exc:
        # Unreadable catalogs and invalid limits are usage errors, not crashes.
        parser.error(str(exc))


if __name__ == "__main__":
    main()
